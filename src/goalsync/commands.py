# src/goalsync/commands.py
"""
Commands exposed to the host application.

One "submit for all goals" command plus one "submit for goal N" command
per configured goal (N = 1..max_goal_commands).  Running a command only
enqueues triggers and returns; processing happens on the scheduler's
drain loop.  The registry is rebuilt whenever the configuration changes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from .models import Goal

logger = logging.getLogger(__name__)

SUBMIT_ALL_ID = "submit-datapoint-all"
SUBMIT_GOAL_ID = "submit-datapoint-goal-{n}"

Submitter = Callable[[Optional[int]], List[str]]


@dataclass(frozen=True)
class Command:
    """A host-invokable command."""

    id: str
    name: str
    goal_index: Optional[int] = None


class CommandRegistry:
    """
    Command table keyed by command id.

    Args:
        submit: Callable taking a 0-based goal index (``None`` for all
            goals) and returning the enqueued slugs.
        max_goal_commands: Upper bound on per-goal commands.
    """

    def __init__(self, submit: Submitter, max_goal_commands: int = 10):
        self._submit = submit
        self._max_goal_commands = max_goal_commands
        self._commands: Dict[str, Command] = {}

    def rebuild(self, goals: Sequence[Goal]) -> List[Command]:
        """Replace every command with the set matching ``goals``."""
        self._commands.clear()
        self._add(Command(id=SUBMIT_ALL_ID, name="Submit datapoint for all goals"))
        for index, goal in enumerate(goals[: self._max_goal_commands]):
            label = goal.slug or f"Goal {index + 1}"
            self._add(
                Command(
                    id=SUBMIT_GOAL_ID.format(n=index + 1),
                    name=f"Submit datapoint for {label}",
                    goal_index=index,
                )
            )
        logger.debug(f"Registered {len(self._commands)} command(s)")
        return self.list()

    def _add(self, command: Command) -> None:
        self._commands[command.id] = command

    def get(self, command_id: str) -> Optional[Command]:
        return self._commands.get(command_id)

    def list(self) -> List[Command]:
        return list(self._commands.values())

    def run(self, command_id: str) -> List[str]:
        """
        Run a command: enqueue its goal(s) and return immediately.

        Raises:
            KeyError: If ``command_id`` is not registered.
        """
        command = self._commands.get(command_id)
        if command is None:
            raise KeyError(f"Unknown command: {command_id}")
        logger.info(f"Running command '{command.id}'")
        return self._submit(command.goal_index)
