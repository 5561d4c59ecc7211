"""Preview rendering for parsed events."""
from typing import Any, Dict, List, Sequence

from planner.models import Event

MAX_PREVIEW_ITEMS = 10


def format_event_when(event: Event) -> str:
    """Return "All-day" or the zero-padded start time."""
    if event.all_day:
        return "All-day"
    return f"{event.hour:02d}:{event.minute:02d}"


def build_preview(
    events: Sequence[Event],
    max_items: int = MAX_PREVIEW_ITEMS
) -> Dict[str, Any]:
    """
    Summarize the first events of a schedule for display.

    Args:
        events: Parsed events
        max_items: Number of events listed individually

    Returns:
        Dict with "items", "total" and "more" (None when nothing is hidden)
    """
    items: List[Dict[str, str]] = []
    for event in events[:max_items]:
        items.append({
            'title': event.title or "(no title)",
            'date': f"{event.date:%b} {event.date.day}, {event.date.year}",
            'when': format_event_when(event),
        })

    hidden = len(events) - max_items
    return {
        'items': items,
        'total': len(events),
        'more': f"+ {hidden} more events..." if hidden > 0 else None,
    }
