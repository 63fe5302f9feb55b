"""
Bounded action buffer.

Actions accumulate in an owned list. Pushing onto a full buffer flushes the
full contents to the sink first, so a batch never exceeds the capacity.
"""

import structlog

from hubsync.connectors.base.records import Action
from hubsync.sync.sink import ActionSink

logger = structlog.get_logger()

DEFAULT_CAPACITY = 2000


class ActionBuffer:
    """
    Append-only buffer with a size-triggered flush.

    Snapshot and clear happen with no await in between, so pushes made while
    the sink is busy land in the emptied buffer.
    """

    def __init__(
        self,
        sink: ActionSink,
        capacity: int = DEFAULT_CAPACITY,
        **log_context: object,
    ):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._sink = sink
        self._actions: list[Action] = []
        self.capacity = capacity
        self.flushed_actions = 0
        self.flush_count = 0
        self.failed_flushes = 0
        self._log = logger.bind(**log_context)

    def __len__(self) -> int:
        return len(self._actions)

    @property
    def pending(self) -> tuple[Action, ...]:
        return tuple(self._actions)

    async def push(self, action: Action) -> None:
        """Buffer an action, flushing first when the buffer is full."""
        if len(self._actions) >= self.capacity:
            await self.flush()
        self._actions.append(action)

    async def flush(self) -> int:
        """Hand everything buffered to the sink; returns the batch size delivered."""
        if not self._actions:
            return 0

        snapshot = list(self._actions)
        self._actions.clear()
        self.flush_count += 1

        self._log.info("Flushing actions", count=len(snapshot))
        try:
            await self._sink.send(snapshot)
        except Exception as e:
            self.failed_flushes += 1
            self._log.error("Action sink failed", count=len(snapshot), error=str(e))
            return 0

        self.flushed_actions += len(snapshot)
        return len(snapshot)

    async def drain(self) -> int:
        """Flush remaining actions regardless of the threshold."""
        return await self.flush()
