"""Date window resolution for plan parsing."""
import logging
from datetime import date, datetime
from typing import Optional, Tuple, Union

from dateutil.relativedelta import relativedelta

from planner.exceptions import InvalidRangeError

logger = logging.getLogger(__name__)

DEFAULT_DURATION_MONTHS = 1


def resolve_window(
    start_date: Union[str, date],
    duration_months: Optional[Union[str, int]] = None,
    default_months: int = DEFAULT_DURATION_MONTHS
) -> Tuple[date, date]:
    """
    Resolve a start date and a duration in months into a date window.

    The end date lands on the same day of the month N months later, clamped
    to the last day of that month (Jan 31 + 1 month = Feb 28/29).

    Args:
        start_date: ISO date string (YYYY-MM-DD) or date
        duration_months: Whole months; missing, invalid or non-positive
            values fall back to default_months
        default_months: Fallback duration

    Returns:
        Tuple of (start_date, end_date)

    Raises:
        InvalidRangeError: If start_date cannot be parsed or the end date
            falls outside the supported calendar
    """
    start = _coerce_date(start_date)
    months = _coerce_months(duration_months, default_months)
    try:
        end = start + relativedelta(months=months)
    except (ValueError, OverflowError) as e:
        raise InvalidRangeError(
            f"Window of {months} months from {start.isoformat()} is out of range: {e}"
        )

    logger.debug(f"Resolved window {start.isoformat()} - {end.isoformat()} ({months} months)")
    return start, end


def _coerce_date(value: Union[str, date]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    try:
        return datetime.strptime(str(value).strip(), "%Y-%m-%d").date()
    except ValueError:
        raise InvalidRangeError(f"Invalid start date: {value!r}")


def _coerce_months(value: Optional[Union[str, int]], default_months: int) -> int:
    try:
        months = int(value)
    except (TypeError, ValueError):
        return default_months

    if months <= 0:
        return default_months
    return months
