"""
Exceptions raised by the freshness computation and its collaborators.
"""


class FreshnessError(Exception):
    """Base class for dependency freshness errors."""


class NotFoundError(FreshnessError):
    """The source-control host does not know the repository or ref."""


class ConfigurationError(FreshnessError):
    """Invalid or incomplete configuration detected at startup."""


class RateLimitExhaustedError(FreshnessError):
    """Remaining source-control quota is at or below the configured reserve."""


class AggregationCancelled(FreshnessError):
    """The aggregation was cancelled before this edge finished."""
