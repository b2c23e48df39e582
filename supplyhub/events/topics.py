"""Domain event topics published by the capacity core.

Consumed by the notification collaborator through webhook subscriptions.
"""

ORDER_CREATED = "order.created"
ORDER_ACCEPTED = "order.accepted"
ORDER_STATUS_CHANGED = "order.status.changed"
