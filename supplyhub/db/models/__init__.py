from .common import *  # noqa
from .company import *  # noqa
from .capacity import *  # noqa
from .orders import *  # noqa

# Platform event-bus tables (transactional outbox + webhook subscriptions)
from supplyhub.events.outbox import *  # noqa
from supplyhub.events.subscriptions import *  # noqa
