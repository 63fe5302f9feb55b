"""
Action sinks.

The sink is the downstream consumer of flushed action batches.
"""

from abc import ABC, abstractmethod

import structlog

from hubsync.connectors.base.config import EntityType
from hubsync.connectors.base.records import Action

logger = structlog.get_logger()


class ActionSink(ABC):
    """Receives batches of actions. Consumers must be idempotent per action."""

    @abstractmethod
    async def send(self, actions: list[Action]) -> None:
        """
        Deliver a batch of actions.

        Args:
            actions: Snapshot of buffered actions; the caller keeps no reference
        """
        pass


class LoggingActionSink(ActionSink):
    """Logs meeting actions only, to keep the output readable."""

    async def send(self, actions: list[Action]) -> None:
        meeting_actions = [action for action in actions if action.entity == EntityType.MEETINGS]
        if meeting_actions:
            logger.info(
                "Meeting actions",
                count=len(meeting_actions),
                actions=[action.to_payload() for action in meeting_actions],
            )
        else:
            logger.info("No meeting related actions", count=len(actions))


class InMemoryActionSink(ActionSink):
    """Collects batches in memory (testing and dry runs)."""

    def __init__(self):
        self.batches: list[list[Action]] = []

    async def send(self, actions: list[Action]) -> None:
        self.batches.append(list(actions))

    @property
    def actions(self) -> list[Action]:
        return [action for batch in self.batches for action in batch]
