"""Data models for plan parsing and calendar encoding."""
from dataclasses import dataclass
from datetime import date
from typing import Optional, Union


@dataclass(frozen=True)
class TimeOfDay:
    """Time of day extracted from a plan line."""
    hour: int
    minute: int


@dataclass(frozen=True)
class Event:
    """Concrete calendar event produced from a plan line."""
    title: str
    description: str
    date: date
    all_day: bool
    hour: int = 0
    minute: int = 0


@dataclass(frozen=True)
class WeekdayLine:
    """Plan line that mentions a weekday (0=Sunday ... 6=Saturday)."""
    line: str
    weekday_index: int
    time: Optional[TimeOfDay]


@dataclass(frozen=True)
class PlainLine:
    """Plan line without a weekday mention."""
    line: str
    time: Optional[TimeOfDay]


ClassifiedLine = Union[WeekdayLine, PlainLine]
