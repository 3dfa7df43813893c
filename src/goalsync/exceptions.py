# src/goalsync/exceptions.py
"""
Custom exceptions for the goalsync library.

This module defines a hierarchy of custom exception classes so callers
can tell configuration mistakes apart from remote-service failures and
apply the matching policy (reject, retry on the next trigger, or disable
the goal until its configuration is fixed).
"""


class GoalSyncError(Exception):
    """Base class for all goalsync specific errors."""
    def __init__(self, message: str = "An unspecified error occurred in goalsync."):
        super().__init__(message)


class ConfigError(GoalSyncError):
    """Raised for errors related to configuration loading or validation."""
    def __init__(self, message: str = "Configuration error."):
        super().__init__(message)


class ValidationError(GoalSyncError, ValueError):
    """
    Raised when a value is rejected at configuration or extraction time.

    Also a ``ValueError`` so it can be raised from inside pydantic
    validators and surface as a normal model validation failure.
    """
    def __init__(self, message: str = "Validation error."):
        super().__init__(message)


class InvalidCutoffError(ValidationError):
    """Raised for a malformed day-end time or one between 06:00 and 07:00."""
    def __init__(self, value: object = None, message: str = "Invalid day-end time."):
        self.value = value
        super().__init__(
            f"{message} Got {value!r}; choose between 00:00-06:00 or 07:00-23:59."
        )


class InvalidTimezoneError(ValidationError):
    """Raised when a timezone name is not a known IANA zone."""
    def __init__(self, timezone_name: str = "", message: str = "Unknown timezone."):
        self.timezone_name = timezone_name
        super().__init__(f"{message} Timezone: '{timezone_name}'")


class UnsupportedMetricKind(ValidationError):
    """Raised when asked to extract a metric kind that does not exist."""
    def __init__(self, kind: object = None, message: str = "Unsupported metric kind."):
        self.kind = kind
        super().__init__(f"{message} Kind: {kind!r}")


class DocumentError(GoalSyncError):
    """Base class for errors related to reading tracked documents."""
    def __init__(self, message: str = "Document error."):
        super().__init__(message)


class DocumentNotFoundError(DocumentError):
    """Raised when a tracked document does not exist in the store."""
    def __init__(self, path: str = "", message: str = "Document not found."):
        self.path = path
        super().__init__(f"{message} Path: '{path}'")


class RemoteError(GoalSyncError):
    """Base class for errors originating from the remote goal service."""
    def __init__(self, goal_slug: str = "", message: str = "Remote service error."):
        self.goal_slug = goal_slug
        prefix = f"Goal '{goal_slug}': " if goal_slug else ""
        super().__init__(f"{prefix}{message}")


class AuthError(RemoteError):
    """Raised when the remote service rejects the configured credentials."""
    def __init__(self, goal_slug: str = "", message: str = "Authentication failed."):
        super().__init__(goal_slug, message)


class NotFoundError(RemoteError):
    """Raised when the remote service does not recognize the goal slug."""
    def __init__(self, goal_slug: str = "", message: str = "Goal not found on the remote service."):
        super().__init__(goal_slug, message)


class TransientRemoteError(RemoteError):
    """Base class for failures that may succeed on a later trigger."""
    def __init__(self, goal_slug: str = "", message: str = "Transient remote error."):
        super().__init__(goal_slug, message)


class NetworkFailure(TransientRemoteError):
    """Raised for connection errors, timeouts and unexpected HTTP statuses."""
    def __init__(self, goal_slug: str = "", message: str = "Network failure.", status: int | None = None):
        self.status = status
        super().__init__(goal_slug, message)


class RateLimitError(TransientRemoteError):
    """Raised when the remote service's rate limit is exceeded."""
    def __init__(self, goal_slug: str = "", message: str = "Rate limit exceeded."):
        super().__init__(goal_slug, message)
