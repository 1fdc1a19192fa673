"""
Clock source used by the booking lifecycle and the expiry sweeper
"""
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the TIMESTAMP WITHOUT TIME ZONE columns"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Clock:
    """Wall clock. Swapped for a fixed clock in tests."""

    def now(self) -> datetime:
        return utcnow()


system_clock = Clock()


def get_clock() -> Clock:
    """Dependency to get the clock source"""
    return system_clock
