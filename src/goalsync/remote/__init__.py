# src/goalsync/remote/__init__.py
"""
Remote goal-service clients.

``BaseGoalClient`` is the interface the reconciliation engine relies on;
``BeeminderClient`` talks to the Beeminder HTTP API and
``DryRunGoalClient`` wraps any client to log writes instead of sending them.
"""

from .base import BaseGoalClient
from .beeminder import DEFAULT_BASE_URL, BeeminderClient, DryRunGoalClient

__all__ = [
    "BaseGoalClient",
    "BeeminderClient",
    "DryRunGoalClient",
    "DEFAULT_BASE_URL",
]
