"""Exceptions raised by the planner core."""


class PlannerError(Exception):
    """Base class for planner errors."""


class InvalidRangeError(PlannerError, ValueError):
    """Raised when a date window is unusable (end before start, bad date)."""


class InvariantViolation(PlannerError):
    """Raised when an Event handed to the encoder breaks its invariants."""
