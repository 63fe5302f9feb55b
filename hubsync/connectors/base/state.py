"""
Sync Run State

Tracks per-entity progress for one account run and aggregates it into a
run report returned by the orchestrator.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EntitySyncStatus(BaseModel):
    """
    Outcome of a single entity pipeline.

    `window_end` is the `now` snapshot the pipeline searched up to; it becomes
    the new watermark when the pipeline is allowed to advance it.
    """

    entity: str
    window_end: datetime | None = None

    # Progress
    pages_processed: int = 0
    actions_emitted: int = 0
    records_skipped: int = 0
    window_resets: int = 0

    # Timestamps
    started_at: datetime | None = None
    completed_at: datetime | None = None

    # Status
    status: str = "idle"  # idle, syncing, completed, failed
    error_message: str | None = None

    def mark_started(self, window_end: datetime) -> None:
        """Mark pipeline as started."""
        self.status = "syncing"
        self.window_end = window_end
        self.started_at = _utcnow()
        self.error_message = None

    def mark_completed(self) -> None:
        """Mark pipeline as completed."""
        self.status = "completed"
        self.completed_at = _utcnow()

    def mark_failed(self, error: str) -> None:
        """Mark pipeline as failed."""
        self.status = "failed"
        self.completed_at = _utcnow()
        self.error_message = error

    @property
    def succeeded(self) -> bool:
        return self.status == "completed"


class AccountSyncReport(BaseModel):
    """Outcome of one account run across all entity pipelines."""

    hub_id: str
    token_refreshed: bool = False
    entities: dict[str, EntitySyncStatus] = Field(default_factory=dict)
    actions_flushed: int = 0
    flush_failures: int = 0
    errors: list[str] = Field(default_factory=list)

    def get_entity(self, entity: str) -> EntitySyncStatus:
        """Get or create status for an entity."""
        if entity not in self.entities:
            self.entities[entity] = EntitySyncStatus(entity=entity)
        return self.entities[entity]

    def record_error(self, operation: str, error: BaseException) -> None:
        self.errors.append(f"{operation}: {error}")

    @property
    def failed_entities(self) -> list[str]:
        return [name for name, status in self.entities.items() if status.status == "failed"]


class SyncRunReport(BaseModel):
    """Outcome of a whole sync invocation."""

    api_key: str
    started_at: datetime = Field(default_factory=_utcnow)
    completed_at: datetime | None = None
    accounts: list[AccountSyncReport] = Field(default_factory=list)

    @property
    def total_actions(self) -> int:
        return sum(account.actions_flushed for account in self.accounts)
