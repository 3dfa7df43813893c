# src/goalsync/remote/beeminder.py
"""
Client for the Beeminder datapoints API.

Endpoints used (all relative to ``{base_url}/users/{username}``):

    GET  /goals/{slug}/datapoints.json?count=1   last datapoint
    POST /goals/{slug}/datapoints.json           create (value, comment, daystamp)
    PUT  /goals/{slug}/datapoints/{id}.json      update (value, comment)

The auth token is passed on every call as the ``auth_token`` query
parameter.  Timeouts are enforced by the aiohttp session and surface as
``NetworkFailure``.
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from ..exceptions import AuthError, ConfigError, NetworkFailure, NotFoundError, RateLimitError
from ..models import DayStamp, RemoteDatapoint
from .base import BaseGoalClient

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://www.beeminder.com/api/v1"
DEFAULT_TIMEOUT_SECONDS = 30.0


class BeeminderClient(BaseGoalClient):
    """
    Beeminder implementation of :class:`BaseGoalClient`.

    Args:
        config: Dictionary with:
            'username': Beeminder user name. Required.
            'auth_token': Personal auth token. Required.
            'base_url' (optional): API root (default: the public API).
            'timeout_seconds' (optional): Total request timeout (default: 30).
    """
    _session: Optional[aiohttp.ClientSession] = None

    def __init__(self, config: Dict[str, Any]):
        self._username = str(config.get("username") or "").strip()
        self._auth_token = str(config.get("auth_token") or "").strip()
        if not self._username:
            raise ConfigError("BeeminderClient requires 'username' in its configuration.")
        if not self._auth_token:
            raise ConfigError("BeeminderClient requires 'auth_token' in its configuration.")

        self._base_url = str(config.get("base_url") or DEFAULT_BASE_URL).rstrip("/")
        self._timeout = float(config.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS))
        logger.info(f"BeeminderClient configured for user '{self._username}' at {self._base_url}")

    def get_name(self) -> str:
        return "beeminder"

    async def _get_session(self) -> aiohttp.ClientSession:
        """Gets or creates the aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self._timeout))
            logger.debug("Created new aiohttp.ClientSession for BeeminderClient.")
        return self._session

    def _goal_url(self, goal_slug: str, suffix: str) -> str:
        return f"{self._base_url}/users/{self._username}/goals/{goal_slug}/{suffix}"

    async def _request(
        self,
        method: str,
        url: str,
        goal_slug: str,
        payload: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Send one request and decode the JSON body, mapping failures to remote errors."""
        query = {"auth_token": self._auth_token}
        if params:
            query.update(params)

        logger.debug(f"{method} {url} goal={goal_slug} payload={payload}")
        session = await self._get_session()
        try:
            async with session.request(method, url, params=query, json=payload) as response:
                if response.status >= 400:
                    detail = (await response.text())[:500]
                    self._raise_for_status(goal_slug, response.status, detail)
                return await response.json(content_type=None)
        except asyncio.TimeoutError:
            logger.warning(f"Beeminder request for '{goal_slug}' timed out after {self._timeout}s.")
            raise NetworkFailure(goal_slug, f"Request timed out after {self._timeout}s.")
        except aiohttp.ClientError as e:
            logger.warning(f"Could not reach Beeminder for '{goal_slug}': {e}")
            raise NetworkFailure(goal_slug, f"Could not connect to server: {e}")
        except json.JSONDecodeError as e:
            raise NetworkFailure(goal_slug, f"Invalid JSON in response: {e}")

    @staticmethod
    def _raise_for_status(goal_slug: str, status: int, detail: str) -> None:
        if status in (401, 403):
            raise AuthError(goal_slug, f"Beeminder rejected the auth token ({status}): {detail}")
        if status == 404:
            raise NotFoundError(goal_slug, f"Beeminder does not know this goal ({status}): {detail}")
        if status == 429:
            raise RateLimitError(goal_slug, f"Beeminder rate limit hit: {detail}")
        raise NetworkFailure(goal_slug, f"Server Error ({status}): {detail}", status=status)

    @staticmethod
    def _to_datapoint(goal_slug: str, data: Any) -> RemoteDatapoint:
        if not isinstance(data, dict):
            raise NetworkFailure(goal_slug, f"Unexpected datapoint payload: {data!r}"[:500])
        return RemoteDatapoint(
            id=data.get("id") or "",
            value=float(data.get("value") or 0.0),
            daystamp=data.get("daystamp") or None,
            comment=data.get("comment") or "",
        )

    async def fetch_last(self, goal_slug: str) -> RemoteDatapoint:
        data = await self._request(
            "GET",
            self._goal_url(goal_slug, "datapoints.json"),
            goal_slug,
            params={"count": 1},
        )
        if not isinstance(data, list):
            raise NetworkFailure(goal_slug, f"Expected a datapoint list, got {type(data).__name__}")
        if not data:
            logger.debug(f"Goal '{goal_slug}' has no datapoints yet.")
            return RemoteDatapoint.none()
        datapoints: List[Any] = data
        return self._to_datapoint(goal_slug, datapoints[0])

    async def create(
        self,
        goal_slug: str,
        value: float,
        daystamp: DayStamp,
        comment: str = "",
    ) -> RemoteDatapoint:
        data = await self._request(
            "POST",
            self._goal_url(goal_slug, "datapoints.json"),
            goal_slug,
            payload={"value": value, "comment": comment, "daystamp": daystamp.compact},
        )
        datapoint = self._to_datapoint(goal_slug, data)
        logger.info(f"Created datapoint {datapoint.id} for '{goal_slug}' on {daystamp}: {value}")
        return datapoint

    async def update(
        self,
        goal_slug: str,
        datapoint_id: str,
        value: float,
        comment: str = "",
    ) -> RemoteDatapoint:
        data = await self._request(
            "PUT",
            self._goal_url(goal_slug, f"datapoints/{datapoint_id}.json"),
            goal_slug,
            payload={"value": value, "comment": comment},
        )
        datapoint = self._to_datapoint(goal_slug, data)
        logger.info(f"Updated datapoint {datapoint_id} for '{goal_slug}': {value}")
        return datapoint

    async def close(self) -> None:
        """Closes the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()
            logger.info("BeeminderClient aiohttp session closed.")
        self._session = None


class DryRunGoalClient(BaseGoalClient):
    """
    Wraps a real client: reads go through, writes are only logged.

    Useful to check what a configuration would submit without touching
    the remote goal.
    """

    def __init__(self, inner: BaseGoalClient):
        self._inner = inner
        self._counter = 0

    def get_name(self) -> str:
        return f"dry_run({self._inner.get_name()})"

    async def fetch_last(self, goal_slug: str) -> RemoteDatapoint:
        return await self._inner.fetch_last(goal_slug)

    async def create(
        self,
        goal_slug: str,
        value: float,
        daystamp: DayStamp,
        comment: str = "",
    ) -> RemoteDatapoint:
        self._counter += 1
        logger.info(f"[DRY_RUN] Would create datapoint for '{goal_slug}' on {daystamp}: {value} ({comment})")
        return RemoteDatapoint(id=f"dry-run-{self._counter}", value=value, daystamp=daystamp, comment=comment)

    async def update(
        self,
        goal_slug: str,
        datapoint_id: str,
        value: float,
        comment: str = "",
    ) -> RemoteDatapoint:
        logger.info(f"[DRY_RUN] Would update datapoint {datapoint_id} for '{goal_slug}': {value} ({comment})")
        return RemoteDatapoint(id=datapoint_id, value=value, comment=comment)

    async def close(self) -> None:
        await self._inner.close()
