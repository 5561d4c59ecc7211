"""Schedule parser turning free-form plan text into dated events."""
import logging
import re
from datetime import date, timedelta
from typing import List, Optional

from planner.exceptions import InvalidRangeError
from planner.models import (
    ClassifiedLine,
    Event,
    PlainLine,
    TimeOfDay,
    WeekdayLine,
)

logger = logging.getLogger(__name__)


class ScheduleParser:
    """Heuristic parser for weekly or day-by-day plans."""

    HEADER_PREFIXES = ("month ", "phase ", "week ", "by the end of")

    # Table order matters: the first name found wins
    WEEKDAYS = (
        ("sunday", 0),
        ("monday", 1),
        ("tuesday", 2),
        ("wednesday", 3),
        ("thursday", 4),
        ("friday", 5),
        ("saturday", 6),
    )

    # h[:mm] [am|pm] is tried before strict 24-hour h:mm. Digits and word
    # boundaries are ASCII, the gap before am/pm allows Unicode spaces.
    TIME_PATTERN = re.compile(
        r"(\b\d{1,2})(?::(\d{2}))?"
        r"[\s\u00a0\u1680\u2000-\u200a\u2028\u2029\u202f\u205f\u3000\ufeff]*"
        r"(am|pm)?\b|(\b\d{1,2}):(\d{2})\b",
        re.ASCII,
    )

    # Whitespace and byte order marks around a line
    TRIM_PATTERN = re.compile(r"^[\s\ufeff]+|[\s\ufeff]+$")

    TITLE_PREFIX_PATTERN = re.compile(r"^[-*0-9.)\s]+")
    MAX_TITLE_LENGTH = 60

    def parse(self, text: str, start_date: date, end_date: date) -> List[Event]:
        """
        Parse plan text into events bounded by a date window.

        If any line mentions a weekday, every such line becomes a weekly
        recurring event and all other lines are ignored. Otherwise each line
        is assigned to one consecutive day starting at start_date.

        Args:
            text: Raw plan text (may be empty)
            start_date: First day of the window
            end_date: Last day of the window (inclusive)

        Returns:
            List of Event objects, empty if nothing could be derived

        Raises:
            InvalidRangeError: If end_date is before start_date
        """
        if end_date < start_date:
            raise InvalidRangeError(
                f"End date {end_date.isoformat()} is before start date "
                f"{start_date.isoformat()}"
            )

        lines = self.filter_lines(text or "")
        classified = [self.classify_line(line) for line in lines]
        weekday_lines = [c for c in classified if isinstance(c, WeekdayLine)]

        if weekday_lines:
            events = self._expand_weekly(weekday_lines, start_date, end_date)
            mode = "weekly"
        else:
            events = self._expand_sequential(classified, start_date, end_date)
            mode = "sequential"

        logger.info(
            f"Parsed {len(events)} events from {len(lines)} plan lines "
            f"({mode} mode)"
        )
        return events

    def filter_lines(self, text: str) -> List[str]:
        """
        Split text into trimmed lines, dropping blanks and section headers.

        Args:
            text: Raw plan text

        Returns:
            List of candidate event lines
        """
        lines = []
        for raw_line in text.split("\n"):
            line = self.TRIM_PATTERN.sub("", raw_line)
            if not line:
                continue
            if line.lower().startswith(self.HEADER_PREFIXES):
                logger.debug(f"Skipping section header: {line}")
                continue
            lines.append(line)
        return lines

    def classify_line(self, line: str) -> ClassifiedLine:
        """Tag a line with its weekday (if any) and time of day (if any)."""
        time = self.parse_time_from_line(line)
        weekday_index = self.find_weekday(line)

        if weekday_index is None:
            return PlainLine(line=line, time=time)

        logger.debug(f"Line matched weekday {weekday_index}: {line}")
        return WeekdayLine(line=line, weekday_index=weekday_index, time=time)

    def find_weekday(self, line: str) -> Optional[int]:
        """
        Find the first weekday name (in table order) contained in a line.

        This is a plain substring match, so "Mondays" or "sundayschool" also
        count as a mention.
        """
        lower = line.lower()
        for name, index in self.WEEKDAYS:
            if name in lower:
                return index
        return None

    def parse_time_from_line(self, line: str) -> Optional[TimeOfDay]:
        """
        Extract a time such as "6:30 am", "7pm" or "18:00" from a line.

        Only the first match is considered. A match that yields an hour
        outside 0-23 or a minute outside 0-59 counts as no time at all.

        Args:
            line: Plan line

        Returns:
            TimeOfDay or None if the line has no usable time
        """
        match = self.TIME_PATTERN.search(line.lower())
        if not match:
            return None

        if match.group(1) is not None:
            hour = int(match.group(1))
            minute = int(match.group(2)) if match.group(2) else 0
            period = match.group(3)

            if period == "pm" and hour < 12:
                hour += 12
            if period == "am" and hour == 12:
                hour = 0
        elif match.group(4) is not None and match.group(5) is not None:
            hour = int(match.group(4))
            minute = int(match.group(5))
        else:
            return None

        if not (0 <= hour <= 23 and 0 <= minute <= 59):
            return None

        return TimeOfDay(hour=hour, minute=minute)

    def clean_title(self, line: str) -> str:
        """Strip leading bullets and numbering, then truncate."""
        title = self.TITLE_PREFIX_PATTERN.sub("", line)
        return title[:self.MAX_TITLE_LENGTH]

    def _expand_weekly(
        self,
        weekday_lines: List[WeekdayLine],
        start_date: date,
        end_date: date
    ) -> List[Event]:
        """
        Expand weekday lines into one event per matching date.

        Groups are emitted in the order their lines appear in the text.
        """
        events = []

        for tagged in weekday_lines:
            offset = (tagged.weekday_index - _sunday_based_weekday(start_date)) % 7
            if (end_date - start_date).days < offset:
                continue

            # Never step past end_date, which may be date.max
            cursor = start_date + timedelta(days=offset)
            while True:
                events.append(self._build_event(tagged.line, cursor, tagged.time))
                if (end_date - cursor).days < 7:
                    break
                cursor += timedelta(days=7)

        return events

    def _expand_sequential(
        self,
        classified: List[ClassifiedLine],
        start_date: date,
        end_date: date
    ) -> List[Event]:
        """Assign each line to consecutive days, truncating at end_date."""
        events = []
        current_date = start_date

        for index, tagged in enumerate(classified):
            events.append(self._build_event(tagged.line, current_date, tagged.time))

            if current_date >= end_date:
                dropped = len(classified) - index - 1
                if dropped:
                    logger.debug(f"Date window exhausted, dropping {dropped} remaining lines")
                break
            current_date += timedelta(days=1)

        return events

    def _build_event(
        self,
        line: str,
        event_date: date,
        time: Optional[TimeOfDay]
    ) -> Event:
        return Event(
            title=self.clean_title(line),
            description=line,
            date=event_date,
            all_day=time is None,
            hour=time.hour if time else 0,
            minute=time.minute if time else 0,
        )


def _sunday_based_weekday(day: date) -> int:
    # isoweekday: Monday=1 ... Sunday=7
    return day.isoweekday() % 7
