"""
Sync Orchestrator

Runs the incremental HubSpot sync for every account of the domain record.

Per account, strictly in order:
    refresh token -> contacts -> companies -> meetings -> drain buffer -> persist

Each step is isolated: a failure is logged and recorded in the run report,
and the remaining steps still run.
"""

from collections.abc import Callable, Sequence
from datetime import datetime, timezone

import httpx
import structlog

from hubsync.config import Settings, get_settings
from hubsync.connectors.auth.oauth2 import HubSpotCredentials, HubSpotOAuthClient
from hubsync.connectors.base.config import Domain, HubSpotAccount, SearchWindow
from hubsync.connectors.base.state import AccountSyncReport, EntitySyncStatus, SyncRunReport
from hubsync.connectors.cursors import merge_watermarks_monotonic
from hubsync.connectors.http import RetryPolicy
from hubsync.connectors.sources.crm.associations import AssociationResolver
from hubsync.connectors.sources.crm.hubspot import HubSpotClient
from hubsync.connectors.sources.crm.processors import DEFAULT_PROCESSORS, EntityProcessor
from hubsync.connectors.sources.crm.search import PaginatedSearch
from hubsync.sync.buffer import ActionBuffer
from hubsync.sync.sink import ActionSink, LoggingActionSink
from hubsync.sync.store import DomainStore

logger = structlog.get_logger()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HubSpotSyncOrchestrator:
    """
    Sequences the entity pipelines for each HubSpot account.

    Example usage:
        orchestrator = HubSpotSyncOrchestrator(store, sink)
        report = await orchestrator.run()
    """

    def __init__(
        self,
        store: DomainStore,
        sink: ActionSink,
        *,
        settings: Settings | None = None,
        oauth: HubSpotOAuthClient | None = None,
        retry_policy: RetryPolicy | None = None,
        http_client_factory: Callable[[], httpx.AsyncClient] | None = None,
        processors: Sequence[type[EntityProcessor]] = DEFAULT_PROCESSORS,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._store = store
        self._sink = sink
        self._settings = settings or get_settings()
        self._oauth = oauth or HubSpotOAuthClient.from_settings(self._settings)
        self._retry_policy = retry_policy or RetryPolicy(
            max_attempts=self._settings.retry_max_attempts,
            base_delay=self._settings.retry_base_delay_seconds,
        )
        self._http_client_factory = http_client_factory or self._default_http_client
        self._processors = tuple(processors)
        self._clock = clock

    def _default_http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._settings.http_timeout_seconds)

    async def run(self) -> SyncRunReport:
        """Sync every account of the domain record, one after another."""
        domain = await self._store.load()
        report = SyncRunReport(api_key=domain.api_key)

        logger.info("Start pulling data from HubSpot", api_key=domain.api_key, accounts=len(domain.accounts))
        for account in domain.accounts:
            report.accounts.append(await self.sync_account(domain, account))

        report.completed_at = _utcnow()
        logger.info(
            "Finished pulling data from HubSpot",
            api_key=domain.api_key,
            accounts=len(report.accounts),
            actions=report.total_actions,
        )
        return report

    async def sync_account(self, domain: Domain, account: HubSpotAccount) -> AccountSyncReport:
        """Run every entity pipeline for one account and persist its watermarks."""
        log = logger.bind(api_key=domain.api_key, hub_id=account.hub_id)
        report = AccountSyncReport(hub_id=account.hub_id)
        log.info("Start processing account")

        async with self._http_client_factory() as http_client:
            client = HubSpotClient(
                HubSpotCredentials.from_account(account),
                oauth=self._oauth,
                http_client=http_client,
                retry_policy=self._retry_policy,
                base_url=self._settings.hubspot_base_url,
            )

            try:
                await client.refresh_credentials()
                report.token_refreshed = True
            except Exception as e:
                # Entity steps still run; their calls refresh inline on 401.
                log.error("Token refresh failed", operation="refresh_access_token", error=str(e))
                report.record_error("refresh_access_token", e)

            resolver = AssociationResolver(client)
            buffer = ActionBuffer(
                self._sink,
                capacity=self._settings.action_buffer_capacity,
                api_key=domain.api_key,
                hub_id=account.hub_id,
            )

            for processor_cls in self._processors:
                processor = self._build_processor(processor_cls, resolver)
                operation = f"process_{processor.entity.value}"
                status = report.get_entity(processor.entity.value)
                try:
                    await self._sync_entity(client, processor, account, buffer, status)
                    log.info(
                        "Entity synced",
                        operation=operation,
                        pages=status.pages_processed,
                        actions=status.actions_emitted,
                        skipped=status.records_skipped,
                        window_resets=status.window_resets,
                    )
                except Exception as e:
                    status.mark_failed(str(e))
                    report.record_error(operation, e)
                    log.error(
                        "Entity sync failed",
                        operation=operation,
                        error=str(e),
                        error_type=type(e).__name__,
                    )

            await buffer.drain()
            report.actions_flushed = buffer.flushed_actions
            report.flush_failures = buffer.failed_flushes
            log.info("Drained action buffer", flushed=buffer.flushed_actions, flushes=buffer.flush_count)

        try:
            self._persist(account, client.credentials, report)
        except Exception as e:
            log.error("Persisting watermarks failed", operation="persist_watermarks", error=str(e))
            report.record_error("persist_watermarks", e)

        try:
            await self._store.save(domain)
        except Exception as e:
            log.error("Saving domain failed", operation="save_domain", error=str(e))
            report.record_error("save_domain", e)

        log.info("Finish processing account", failed_entities=report.failed_entities)
        return report

    def _build_processor(
        self,
        processor_cls: type[EntityProcessor],
        resolver: AssociationResolver,
    ) -> EntityProcessor:
        search_config = processor_cls.search_config.model_copy(
            update={
                "page_size": self._settings.search_page_size,
                "max_offset": self._settings.search_max_offset,
            }
        )
        return processor_cls(resolver, search_config=search_config)

    async def _sync_entity(
        self,
        client: HubSpotClient,
        processor: EntityProcessor,
        account: HubSpotAccount,
        buffer: ActionBuffer,
        status: EntitySyncStatus,
    ) -> None:
        watermark = account.get_watermark(processor.entity)
        now = self._clock()
        status.mark_started(now)

        search = PaginatedSearch(
            client,
            processor.search_config,
            SearchWindow(lower_bound=watermark, upper_bound=now),
        )
        try:
            async for page in search.pages():
                result = await processor.process_page(page, watermark)
                for action in result.actions:
                    await buffer.push(action)
                status.pages_processed += 1
                status.actions_emitted += len(result.actions)
                status.records_skipped += result.skipped
        finally:
            status.window_resets = search.window_resets

        status.mark_completed()

    def _persist(
        self,
        account: HubSpotAccount,
        credentials: HubSpotCredentials,
        report: AccountSyncReport,
    ) -> None:
        """Advance watermarks and write back the (possibly refreshed) tokens."""
        advance_on_failure = self._settings.advance_watermark_on_failure
        new_watermarks = {
            entity: status.window_end
            for entity, status in report.entities.items()
            if status.window_end is not None and (status.succeeded or advance_on_failure)
        }
        account.last_pulled_dates = merge_watermarks_monotonic(account.last_pulled_dates, new_watermarks)

        if credentials.access_token and credentials.access_token != account.access_token:
            account.access_token = credentials.access_token
        if credentials.refresh_token and credentials.refresh_token != account.refresh_token:
            account.refresh_token = credentials.refresh_token


async def run_sync(
    store: DomainStore,
    sink: ActionSink | None = None,
    settings: Settings | None = None,
) -> SyncRunReport:
    """Run one sync pass with default collaborators."""
    orchestrator = HubSpotSyncOrchestrator(store, sink or LoggingActionSink(), settings=settings)
    return await orchestrator.run()
