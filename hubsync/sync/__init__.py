"""Sync orchestration, action buffering, sinks and the domain store."""

from hubsync.sync.buffer import ActionBuffer
from hubsync.sync.orchestrator import HubSpotSyncOrchestrator, run_sync
from hubsync.sync.sink import ActionSink, InMemoryActionSink, LoggingActionSink
from hubsync.sync.store import DomainStore, InMemoryDomainStore, JsonFileDomainStore

__all__ = [
    "ActionBuffer",
    "ActionSink",
    "DomainStore",
    "HubSpotSyncOrchestrator",
    "InMemoryActionSink",
    "InMemoryDomainStore",
    "JsonFileDomainStore",
    "LoggingActionSink",
    "run_sync",
]
