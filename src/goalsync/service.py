# src/goalsync/service.py
"""
Service facade for goalsync.

``GoalSync`` wires the configuration snapshot, the remote client, the
document store, the reconciliation engine, the trigger scheduler and the
host command registry together.  It is initialized asynchronously with
:meth:`GoalSync.create`.

Example:
    sync = await GoalSync.create(config_file_path="~/.config/goalsync/config.toml")
    await sync.start()
    sync.commands.run("submit-datapoint-all")
    ...
    await sync.stop()
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Set

from .commands import CommandRegistry
from .config import RemoteConfig, SyncConfig, load_config
from .core.reconcile import ReconciliationEngine
from .documents.base import DocumentStore, Subscription
from .documents.filesystem import FileSystemDocumentStore
from .exceptions import (
    AuthError,
    DocumentError,
    GoalSyncError,
    NotFoundError,
    TransientRemoteError,
    ValidationError,
)
from .logging_config import log_display
from .models import DocumentSource, Goal, PendingTrigger, ReconcileResult, TriggerSource
from .remote.base import BaseGoalClient
from .remote.beeminder import BeeminderClient, DryRunGoalClient
from .scheduling.scheduler import TriggerScheduler

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def build_client(remote: RemoteConfig) -> BaseGoalClient:
    """Instantiate the remote client described by ``remote``."""
    client: BaseGoalClient = BeeminderClient(remote.model_dump())
    if remote.dry_run:
        client = DryRunGoalClient(client)
    return client


class GoalSync:
    """
    Periodic metric-to-goal synchronization service.

    Use :meth:`create` rather than the constructor when the client or the
    document store should be built from the configuration.
    """

    def __init__(
        self,
        config: SyncConfig,
        client: BaseGoalClient,
        store: DocumentStore,
        clock: Optional[Clock] = None,
        owns_client: bool = False,
        owns_store: bool = False,
    ):
        self._config = config
        self._client = client
        self._store = store
        self._clock = clock or utc_now
        self._owns_client = owns_client
        self._owns_store = owns_store

        self._engine = self._build_engine(config, client)
        self._scheduler = TriggerScheduler(
            processor=self.process,
            tick_interval=timedelta(seconds=config.scheduler.tick_seconds),
            settle_delay=timedelta(seconds=config.scheduler.settle_delay_seconds),
        )
        self._commands = CommandRegistry(self.submit, config.scheduler.max_goal_commands)
        self._commands.rebuild(config.goals)

        self._subscriptions: List[Subscription] = []
        self._disabled: Set[str] = set()
        self._last_results: Dict[str, ReconcileResult] = {}
        self._started = False

    @classmethod
    async def create(
        cls,
        config: Optional[SyncConfig] = None,
        *,
        config_file_path: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
        client: Optional[BaseGoalClient] = None,
        store: Optional[DocumentStore] = None,
        clock: Optional[Clock] = None,
    ) -> "GoalSync":
        """
        Build a service from a configuration snapshot or config sources.

        Collaborators that are not passed in are built from the
        configuration and closed by :meth:`stop`.

        Raises:
            ConfigError: If the configuration cannot be loaded.
        """
        if config is None:
            config = load_config(config_file_path, overrides)
        owns_client = client is None
        owns_store = store is None
        if client is None:
            client = build_client(config.remote)
        if store is None:
            store = FileSystemDocumentStore(
                root=config.vault.root,
                daily_notes_folder=config.vault.daily_notes_folder,
                daily_note_format=config.vault.daily_note_format,
                watch_interval=config.scheduler.watch_interval_seconds,
            )
        logger.info(f"goalsync initialized with {len(config.goals)} goal(s) using {client.get_name()}")
        return cls(config, client, store, clock=clock, owns_client=owns_client, owns_store=owns_store)

    # -- accessors -----------------------------------------------------------

    @property
    def config(self) -> SyncConfig:
        return self._config

    @property
    def engine(self) -> ReconciliationEngine:
        return self._engine

    @property
    def scheduler(self) -> TriggerScheduler:
        return self._scheduler

    @property
    def commands(self) -> CommandRegistry:
        return self._commands

    @property
    def disabled_goals(self) -> Set[str]:
        """Goals the remote service did not recognize, until the next config change."""
        return set(self._disabled)

    @staticmethod
    def _build_engine(config: SyncConfig, client: BaseGoalClient) -> ReconciliationEngine:
        return ReconciliationEngine(
            client,
            timezone=config.timezone,
            day_end=config.day_end,
            update_policy=config.scheduler.update_policy,
        )

    # -- lifecycle -----------------------------------------------------------

    async def start(self) -> None:
        """Arm timers, watch tracked documents and start draining."""
        if self._started:
            return
        self._started = True
        self._scheduler.configure(self._config.goals)
        await self._scheduler.start()
        self._subscribe_documents()
        logger.info("goalsync started")

    async def stop(self) -> None:
        """Tear everything down; no timer fires after this returns."""
        self._unsubscribe_documents()
        await self._scheduler.stop()
        if self._owns_store:
            await self._store.close()
        if self._owns_client:
            await self._client.close()
        self._started = False
        logger.info("goalsync stopped")

    async def apply_config(self, config: SyncConfig) -> None:
        """
        Swap in a new configuration snapshot.

        Timers are disarmed and re-armed in one step, commands and document
        subscriptions are rebuilt, and goals disabled after a "not found"
        response get another chance.

        If the new client or engine cannot be built, the error propagates
        and the previous snapshot stays in effect.  A replaced client is
        closed once the in-flight reconciliation has finished with it.

        Raises:
            ConfigError: If the remote client cannot be built.
        """
        client = self._client
        if self._owns_client and config.remote != self._config.remote:
            client = build_client(config.remote)
        try:
            engine = self._build_engine(config, client)
        except GoalSyncError:
            if client is not self._client:
                await client.close()
            raise

        old_client = self._client if client is not self._client else None
        self._config = config
        self._client = client
        self._engine = engine
        self._disabled.clear()
        self._scheduler.settle_delay = timedelta(seconds=config.scheduler.settle_delay_seconds)
        self._scheduler.tick_interval = timedelta(seconds=config.scheduler.tick_seconds)
        self._scheduler.configure(config.goals)
        self._commands.rebuild(config.goals)
        if self._started:
            self._subscribe_documents()
        logger.info(f"Configuration applied: {len(config.goals)} goal(s)")

        if old_client is not None:
            await self._scheduler.wait_idle()
            await old_client.close()
            logger.debug(f"Closed previous client {old_client.get_name()}")

    # -- triggers ------------------------------------------------------------

    def submit(self, goal_index: Optional[int] = None) -> List[str]:
        """
        Manually queue one goal (0-based index) or every goal.

        Returns immediately with the queued slugs.

        Raises:
            IndexError: If ``goal_index`` does not name a configured goal.
        """
        goals = self._config.goals
        if goal_index is None:
            return [t.goal_slug for t in self._scheduler.trigger_all([g.slug for g in goals])]
        if not 0 <= goal_index < len(goals):
            raise IndexError(f"No goal at index {goal_index} ({len(goals)} configured)")
        return [self._scheduler.enqueue(goals[goal_index].slug, TriggerSource.MANUAL).goal_slug]

    async def run_once(self, goal_index: Optional[int] = None) -> List[ReconcileResult]:
        """Queue goals and drain the queue in the calling task."""
        slugs = self.submit(goal_index)
        await self._scheduler.drain()
        return [self._last_results[slug] for slug in dict.fromkeys(slugs) if slug in self._last_results]

    def _subscribe_documents(self) -> None:
        self._unsubscribe_documents()
        paths: Dict[str, List[str]] = {}
        for goal in self._config.goals:
            if goal.auto_submit and goal.document_source == DocumentSource.FIXED:
                paths.setdefault(goal.file_path, []).append(goal.slug)

        for path, slugs in paths.items():
            def _changed(_path: str, slugs: List[str] = slugs) -> None:
                for slug in slugs:
                    self._scheduler.notify_changed(slug)

            self._subscriptions.append(self._store.on_change(path, _changed))

    def _unsubscribe_documents(self) -> None:
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions.clear()

    # -- processing ----------------------------------------------------------

    async def _resolve_path(self, goal: Goal, engine: ReconciliationEngine, now: datetime) -> Optional[str]:
        if goal.document_source == DocumentSource.FIXED:
            return goal.file_path
        return await self._store.resolve_dynamic(goal.document_source, engine.day_stamp_for(goal, now))

    async def process(self, trigger: PendingTrigger) -> Optional[ReconcileResult]:
        """
        Reconcile the goal named by ``trigger``.

        Failures are contained to this goal: they are logged and the
        trigger is dropped.  The next trigger for the goal retries.

        Returns:
            The reconciliation result, or ``None`` if nothing was written.
        """
        config = self._config
        engine = self._engine
        goal = config.goal(trigger.goal_slug)
        if goal is None:
            logger.warning(f"Dropping trigger for unknown goal '{trigger.goal_slug}'")
            return None
        if goal.slug in self._disabled:
            logger.warning(f"Goal '{goal.slug}' is disabled until its configuration is corrected")
            return None

        now = self._clock()
        try:
            path = await self._resolve_path(goal, engine, now)
            if path is None:
                logger.warning(f"No document to read for goal '{goal.slug}' ({goal.document_source.value})")
                return None
            text = await self._store.read(path)
            result = await engine.reconcile(goal, text, now, source_path=path)
        except AuthError as e:
            log_display(logger, logging.ERROR, f"Authentication failed, check the auth token: {e}")
            return None
        except NotFoundError as e:
            self._disabled.add(goal.slug)
            log_display(logger, logging.ERROR, f"Disabling goal until configuration changes: {e}")
            return None
        except TransientRemoteError as e:
            logger.warning(f"Remote service unavailable, will retry on the next trigger: {e}")
            return None
        except DocumentError as e:
            logger.warning(f"Could not read document for goal '{goal.slug}': {e}")
            return None
        except ValidationError as e:
            logger.error(f"Goal '{goal.slug}' is misconfigured: {e}")
            return None

        self._last_results[goal.slug] = result
        return result

    def last_result(self, goal_slug: str) -> Optional[ReconcileResult]:
        return self._last_results.get(goal_slug)

    def get_status(self) -> Dict[str, Any]:
        """Service status: scheduler state, disabled goals and last results."""
        return {
            "started": self._started,
            "client": self._client.get_name(),
            "goals": [goal.slug for goal in self._config.goals],
            "disabled_goals": sorted(self._disabled),
            "watched_documents": [s.path for s in self._subscriptions if s.active],
            "commands": [command.id for command in self._commands.list()],
            "last_results": {slug: r.to_dict() for slug, r in self._last_results.items()},
            "scheduler": self._scheduler.get_status(),
        }
