"""
Exception types raised by valstats.

Everything derives from ValstatsError so callers can catch the whole family
at a service boundary.
"""


class ValstatsError(Exception):
    """Base class for all valstats errors."""


class ValidationError(ValstatsError, ValueError):
    """Telemetry is missing required sections or has malformed fields."""

    def __init__(self, message: str, errors: list[dict] | None = None):
        super().__init__(message)
        self.errors = errors or []


class DataIntegrityError(ValstatsError):
    """Telemetry references a team other than Red or Blue."""


class ConsistencyError(ValstatsError):
    """
    An aggregate would become invalid after reversing a match.

    Raised when a reverse does not line up with an earlier apply, e.g. a
    counter would go negative or the agent entry is missing.
    """


class StoreConflictError(ValstatsError):
    """A profile kept changing underneath us and retries were exhausted."""
