from __future__ import annotations

import random
import string
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...

    def today(self) -> date: ...


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def today(self) -> date:
        return self.now().date()


@dataclass
class FixedClock:
    """Clock pinned to one instant, for deterministic scheduling output."""

    instant: datetime

    def now(self) -> datetime:
        return self.instant

    def today(self) -> date:
        return self.instant.date()


_BASE36 = string.digits + string.ascii_uppercase


@dataclass
class DisplayIdGenerator:
    """Human-readable order ids: TX-YYYYMMDD-XXXX."""

    clock: Clock = field(default_factory=SystemClock)
    rng: random.Random = field(default_factory=random.SystemRandom)
    prefix: str = "TX"

    def __call__(self) -> str:
        stamp = self.clock.now().strftime("%Y%m%d")
        suffix = "".join(self.rng.choice(_BASE36) for _ in range(4))
        return f"{self.prefix}-{stamp}-{suffix}"
