"""Calendar encoder producing iCalendar (RFC 5545) documents from events."""
import logging
import random
import string
from datetime import date, datetime, time, timedelta
from typing import Callable, List, Optional, Sequence

from dateutil import tz as dateutil_tz

from planner.exceptions import InvariantViolation
from planner.models import Event

logger = logging.getLogger(__name__)

CONTENT_TYPE = "text/calendar;charset=utf-8"
DEFAULT_FILENAME = "chatsync-plan.ics"

_BASE36_DIGITS = string.digits + string.ascii_lowercase


def escape_text(text: str) -> str:
    """
    Escape free text for an iCalendar property value.

    Backslashes are escaped first so that the escapes added for semicolons,
    commas and newlines are not escaped again.

    Args:
        text: Raw text

    Returns:
        Escaped text
    """
    return (
        text
        .replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\n", "\\n")
    )


def unescape_text(text: str) -> str:
    """Reverse escape_text."""
    result = []
    chars = iter(text)
    for char in chars:
        if char != "\\":
            result.append(char)
            continue
        escaped = next(chars, "")
        if escaped in ("n", "N"):
            result.append("\n")
        else:
            result.append(escaped)
    return "".join(result)


def format_date(value: date) -> str:
    """Format a date as YYYYMMDD."""
    return value.strftime("%Y%m%d")


def format_local_datetime(value: datetime) -> str:
    """Format a floating local datetime as YYYYMMDDTHHMM00."""
    return value.strftime("%Y%m%dT%H%M00")


def format_utc_datetime(value: datetime) -> str:
    """Format a UTC datetime as YYYYMMDDTHHMMSSZ."""
    return value.strftime("%Y%m%dT%H%M%SZ")


class CalendarEncoder:
    """Encoder for turning parsed events into a calendar document."""

    PRODUCT_ID = "-//ChatSync//EN"
    UID_DOMAIN = "chatsync"
    LINE_SEPARATOR = "\r\n"
    EVENT_DURATION = timedelta(hours=1)
    UID_SUFFIX_BITS = 64

    def __init__(
        self,
        clock: Optional[Callable[[], datetime]] = None,
        rng: Optional[random.Random] = None
    ):
        """
        Initialize the encoder.

        Args:
            clock: Callable returning the current UTC datetime (default: now)
            rng: Random source for UID suffixes (default: module random)
        """
        self.clock = clock or (lambda: datetime.now(dateutil_tz.tzutc()))
        self.rng = rng or random

    def encode(self, events: Sequence[Event]) -> str:
        """
        Encode events into an iCalendar document.

        Args:
            events: Ordered events produced by ScheduleParser

        Returns:
            Calendar document text with CRLF line endings

        Raises:
            InvariantViolation: If an event breaks the Event invariants
        """
        stamp = format_utc_datetime(self.clock())
        issued_uids = set()

        lines = [
            "BEGIN:VCALENDAR",
            "VERSION:2.0",
            f"PRODID:{self.PRODUCT_ID}",
        ]

        for event in events:
            self._validate_event(event)
            uid = self._generate_uid(event, issued_uids)
            lines.extend(self._event_lines(event, uid, stamp))

        lines.append("END:VCALENDAR")

        logger.info(f"Encoded {len(events)} events into calendar document")
        return self.LINE_SEPARATOR.join(lines) + self.LINE_SEPARATOR

    def _event_lines(self, event: Event, uid: str, stamp: str) -> List[str]:
        lines = [
            "BEGIN:VEVENT",
            f"UID:{uid}",
            f"DTSTAMP:{stamp}",
        ]

        if event.all_day:
            lines.append(f"DTSTART;VALUE=DATE:{format_date(event.date)}")
        else:
            start = datetime.combine(event.date, time(event.hour, event.minute))
            end = start + self.EVENT_DURATION
            lines.append(f"DTSTART:{format_local_datetime(start)}")
            lines.append(f"DTEND:{format_local_datetime(end)}")

        lines.append(f"SUMMARY:{escape_text(event.title)}")
        lines.append(f"DESCRIPTION:{escape_text(event.description)}")
        lines.append("END:VEVENT")
        return lines

    def _generate_uid(self, event: Event, issued_uids: set) -> str:
        """
        Generate a UID unique within the current document.

        Format: <event date as YYYYMMDDHHMMSS>-<random base36>@chatsync
        """
        prefix = datetime.combine(event.date, time()).strftime("%Y%m%d%H%M%S")

        while True:
            suffix = _to_base36(self.rng.getrandbits(self.UID_SUFFIX_BITS))
            uid = f"{prefix}-{suffix}@{self.UID_DOMAIN}"
            if uid not in issued_uids:
                issued_uids.add(uid)
                return uid
            logger.debug(f"UID collision on {uid}, regenerating")

    def _validate_event(self, event: Event) -> None:
        if isinstance(event.date, datetime) or not isinstance(event.date, date):
            raise InvariantViolation(
                f"Event date must be a calendar date, got {event.date!r}"
            )
        if not isinstance(event.title, str) or not isinstance(event.description, str):
            raise InvariantViolation(
                f"Event title and description must be text: {event!r}"
            )
        if not _is_int_in_range(event.hour, 0, 23):
            raise InvariantViolation(f"Event hour out of range: {event.hour!r}")
        if not _is_int_in_range(event.minute, 0, 59):
            raise InvariantViolation(f"Event minute out of range: {event.minute!r}")


def _is_int_in_range(value, low: int, high: int) -> bool:
    return (
        isinstance(value, int)
        and not isinstance(value, bool)
        and low <= value <= high
    )


def _to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))
