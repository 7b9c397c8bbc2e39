"""
Injectable clock

Sequence partitions and date bounds are computed from the calendar day of the
issuing process; tests swap in a FixedClock to control day rollover.
"""
from datetime import date, datetime, timedelta
from typing import Optional, Protocol
from zoneinfo import ZoneInfo


class Clock(Protocol):
    def now(self) -> datetime:
        ...

    def today(self) -> date:
        ...


class SystemClock:
    """Wall clock, optionally pinned to a business timezone"""

    def __init__(self, timezone: Optional[str] = None):
        self.tz = ZoneInfo(timezone) if timezone else None

    def now(self) -> datetime:
        if self.tz is None:
            return datetime.now()
        # naive local time in the business zone, matching DateTime columns
        return datetime.now(self.tz).replace(tzinfo=None)

    def today(self) -> date:
        return self.now().date()


class FixedClock:
    """Clock that only moves when told to"""

    def __init__(self, current: datetime):
        self.current = current

    def now(self) -> datetime:
        return self.current

    def today(self) -> date:
        return self.current.date()

    def advance(self, days: int = 0, **kwargs) -> datetime:
        self.current = self.current + timedelta(days=days, **kwargs)
        return self.current

    def set(self, current: datetime) -> None:
        self.current = current
