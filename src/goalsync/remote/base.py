# src/goalsync/remote/base.py
"""
Abstract Base Class for remote goal-tracking services.

The reconciliation engine only ever talks to a service through this
interface: read the last datapoint, append a datapoint, or overwrite an
existing one.  Implementations map transport failures onto the
``goalsync.exceptions`` remote error hierarchy.
"""

import abc
from typing import Any, Optional

from ..models import DayStamp, RemoteDatapoint


class BaseGoalClient(abc.ABC):
    """
    Abstract Base Class for goal-service integrations.

    Errors an implementation may raise from any operation:
        - ``NetworkFailure`` / ``RateLimitError`` (transient)
        - ``AuthError`` (invalid credentials)
        - ``NotFoundError`` (goal slug unknown to the service)
    """

    @abc.abstractmethod
    def get_name(self) -> str:
        """Return the unique identifier name for this client."""
        pass

    @abc.abstractmethod
    async def fetch_last(self, goal_slug: str) -> RemoteDatapoint:
        """
        Return the most recent datapoint of a goal.

        A goal without data is not an error: implementations return
        :meth:`RemoteDatapoint.none`.

        Args:
            goal_slug: Remote goal identifier.

        Returns:
            The latest datapoint, or the "none" sentinel.
        """
        pass

    @abc.abstractmethod
    async def create(
        self,
        goal_slug: str,
        value: float,
        daystamp: DayStamp,
        comment: str = "",
    ) -> RemoteDatapoint:
        """
        Append a new datapoint for ``daystamp``.

        Returns:
            The datapoint as recorded by the service.
        """
        pass

    @abc.abstractmethod
    async def update(
        self,
        goal_slug: str,
        datapoint_id: str,
        value: float,
        comment: str = "",
    ) -> RemoteDatapoint:
        """
        Overwrite the value of an existing datapoint.

        The datapoint's day-stamp is never changed by an update.

        Returns:
            The datapoint as recorded by the service.
        """
        pass

    async def close(self) -> None:
        """Release network resources. Default: nothing to release."""
        return None

    async def __aenter__(self) -> "BaseGoalClient":
        return self

    async def __aexit__(self, exc_type: Optional[type], exc: Optional[BaseException], tb: Any) -> None:
        await self.close()
