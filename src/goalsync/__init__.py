# src/goalsync/__init__.py
"""
goalsync - Periodic metric-to-goal synchronization.

Derives a number from a tracked document (word count, completed or
uncompleted tasks), works out which calendar day it belongs to given a
configurable day-end time, and records it on a remote goal tracker as
today's single datapoint, updating it in place on later runs.
"""

from importlib.metadata import PackageNotFoundError, version

from .service import GoalSync
from .models import (
    DayStamp,
    DocumentSource,
    Goal,
    MetricKind,
    PendingTrigger,
    PollingInterval,
    ReconcileAction,
    ReconcileResult,
    RemoteDatapoint,
    TriggerSource,
)
from .exceptions import (
    AuthError,
    ConfigError,
    DocumentError,
    DocumentNotFoundError,
    GoalSyncError,
    InvalidCutoffError,
    InvalidTimezoneError,
    NetworkFailure,
    NotFoundError,
    RateLimitError,
    RemoteError,
    TransientRemoteError,
    UnsupportedMetricKind,
    ValidationError,
)
from .config import SyncConfig, load_config
from .core import DayBoundary, ReconciliationEngine, UpdatePolicy, day_stamp, extract
from .remote import BaseGoalClient, BeeminderClient, DryRunGoalClient
from .scheduling import TriggerScheduler

try:
    __version__ = version("goalsync")
except PackageNotFoundError:
    __version__ = "0.0.0"


__all__ = [
    # Core API
    "GoalSync",

    # Data Models
    "DayStamp",
    "DocumentSource",
    "Goal",
    "MetricKind",
    "PendingTrigger",
    "PollingInterval",
    "ReconcileAction",
    "ReconcileResult",
    "RemoteDatapoint",
    "TriggerSource",

    # Exceptions
    "AuthError",
    "ConfigError",
    "DocumentError",
    "DocumentNotFoundError",
    "GoalSyncError",
    "InvalidCutoffError",
    "InvalidTimezoneError",
    "NetworkFailure",
    "NotFoundError",
    "RateLimitError",
    "RemoteError",
    "TransientRemoteError",
    "UnsupportedMetricKind",
    "ValidationError",

    # Configuration
    "SyncConfig",
    "load_config",

    # Reconciliation
    "DayBoundary",
    "ReconciliationEngine",
    "UpdatePolicy",
    "day_stamp",
    "extract",

    # Remote clients
    "BaseGoalClient",
    "BeeminderClient",
    "DryRunGoalClient",

    # Scheduling
    "TriggerScheduler",

    "__version__",
]
