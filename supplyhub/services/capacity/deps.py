from __future__ import annotations

from functools import lru_cache

from supplyhub.core.clock import Clock, SystemClock
from supplyhub.events import bus
from supplyhub.events.bus import EventSink
from supplyhub.services.capacity.policy import CapacityPolicy


@lru_cache(maxsize=1)
def get_policy() -> CapacityPolicy:
    return CapacityPolicy.from_env()


def get_clock() -> Clock:
    return SystemClock()


def get_event_sink() -> EventSink:
    return bus.publish
