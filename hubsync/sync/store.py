"""
Domain store.

Holds the tenant record with its HubSpot accounts, tokens and watermarks.
"""

import asyncio
from abc import ABC, abstractmethod
from pathlib import Path

import structlog

from hubsync.connectors.base.config import Domain

logger = structlog.get_logger()


class DomainStore(ABC):
    """
    Abstract storage for the domain record.

    Implementations own persistence; the sync engine mutates the loaded
    record in place and calls `save` once per account run.
    """

    @abstractmethod
    async def load(self) -> Domain:
        """Load the domain record with its accounts."""
        pass

    @abstractmethod
    async def save(self, domain: Domain) -> None:
        """Persist updated watermarks and access tokens."""
        pass


class InMemoryDomainStore(DomainStore):
    """In-memory store keeping a snapshot per save (testing and dry runs)."""

    def __init__(self, domain: Domain):
        self._domain = domain
        self.snapshots: list[Domain] = []

    async def load(self) -> Domain:
        return self._domain

    async def save(self, domain: Domain) -> None:
        self._domain = domain
        self.snapshots.append(domain.model_copy(deep=True))
        logger.debug("Domain saved", api_key=domain.api_key, saves=len(self.snapshots))


class JsonFileDomainStore(DomainStore):
    """Domain record kept in a JSON file, rewritten on every save."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    async def load(self) -> Domain:
        text = await asyncio.to_thread(self.path.read_text, encoding="utf-8")
        return Domain.model_validate_json(text)

    async def save(self, domain: Domain) -> None:
        payload = domain.model_dump_json(indent=2)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        await asyncio.to_thread(tmp_path.write_text, payload, encoding="utf-8")
        await asyncio.to_thread(tmp_path.replace, self.path)
        logger.debug("Domain saved", api_key=domain.api_key, path=str(self.path))
