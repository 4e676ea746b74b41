"""Clock capability used by date-dependent domain logic."""

from datetime import date
from typing import Protocol


class Clock(Protocol):
    """Source of the current business date."""

    def today(self) -> date: ...


class SystemClock:
    """Clock backed by the local system date."""

    def today(self) -> date:
        return date.today()


class FixedClock:
    """Clock frozen at a given date; it can be moved explicitly."""

    def __init__(self, current: date):
        self.current = current

    def today(self) -> date:
        return self.current

    def set(self, current: date) -> None:
        self.current = current
