"""
Host-to-company mapping orchestration.

Walks every recorded app host list, attributes each hostname to a company and
writes the results through to storage. Failures of a single host or record
are logged and skipped; a run always covers every enumerated record.
"""

from __future__ import annotations

import structlog

from ..core.exceptions import StorageError, XrayError
from ..core.logging import get_logger, log_context
from ..core.sets import dedup
from ..models.mapping import HostFailure, MappingRunReport
from ..services.attribution import AttributionClient
from ..storage import HostStore


class MappingOrchestrator:
    """Drives the mapping pipeline sequentially over apps and hosts."""

    def __init__(
        self,
        store: HostStore,
        client: AttributionClient,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self.store = store
        self.client = client
        self.logger = logger or get_logger(__name__)

    def _record_failure(
        self,
        report: MappingRunReport,
        app_host_id: int,
        host_name: str | None,
        error: XrayError,
    ) -> None:
        self.logger.warning(
            "Host mapping failed" if host_name else "App host record failed",
            host=host_name,
            error_kind=error.kind.value,
            error=str(error),
        )
        report.failures.append(
            HostFailure(
                app_host_id=app_host_id,
                host_name=host_name,
                kind=error.kind,
                message=str(error),
            )
        )

    async def map_host(self, report: MappingRunReport, app_host_id: int, host_name: str) -> None:
        """Attribute one hostname and persist the company and association."""
        report.hosts_attempted += 1
        try:
            mapping = await self.client.map_hosts([host_name])
            await self.store.upsert_company(mapping)
            await self.store.upsert_association(app_host_id, mapping.company_id)
        except XrayError as e:
            self._record_failure(report, app_host_id, host_name, e)
            return

        report.mappings_stored += 1
        self.logger.debug(
            "Stored mapping",
            host=host_name,
            company=mapping.company_name,
        )

    async def _map_record(self, report: MappingRunReport, app_host_id: int) -> None:
        try:
            record = await self.store.get_app_hosts(app_host_id)
        except StorageError as e:
            self._record_failure(report, app_host_id, None, e)
            return

        for host_name in dedup(list(record.host_names)):
            await self.map_host(report, app_host_id, host_name)

    async def run(self) -> MappingRunReport:
        """Run one full pass over all app host records.

        Raises:
            StorageError: If the record identifiers cannot be enumerated
        """
        report = MappingRunReport()
        app_host_ids = await self.store.list_app_host_ids()
        self.logger.info("Starting host mapping", records=len(app_host_ids))

        for app_host_id in app_host_ids:
            report.records_seen += 1
            with log_context(app_host_id=app_host_id):
                await self._map_record(report, app_host_id)

        self.logger.info(
            "Host mapping completed",
            records=report.records_seen,
            hosts=report.hosts_attempted,
            stored=report.mappings_stored,
            failed=len(report.failures),
            failed_hosts=report.failed_hosts,
        )
        return report
