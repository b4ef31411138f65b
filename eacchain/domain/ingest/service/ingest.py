"""IngestService - drives one batch run from source groups to chain updates."""

import asyncio
import logging
from dataclasses import field
from datetime import UTC, datetime
from typing import Any

import logfire

from eacchain.domain.chain.model.comparison import FULL_PAYLOAD, ComparisonStrategy, FieldEquality
from eacchain.domain.chain.service.registry import ChainRegistry
from eacchain.domain.ingest.model.value import (
    BatchPolicy,
    BatchReport,
    ChainNames,
    ChainUpdate,
    FileConvention,
    GroupErrorPolicy,
    GroupKind,
    GroupOutcome,
    GroupStatus,
    SourceGroup,
)
from eacchain.domain.ingest.port.source import ResultSink, Row, SourceRowProvider
from eacchain.domain.record.port.content_store import ContentStore
from eacchain.domain.record.service.document_cache import Attachment, DocumentCache
from eacchain.domain.record.service.graph_builder import RecordGraphBuilder
from eacchain.domain.shared.error import (
    FetchError,
    NotFoundError,
    TransportError,
    ValidationError,
)
from eacchain.domain.shared.model.cid import ContentId
from eacchain.domain.shared.service import Service

logger = logging.getLogger(__name__)

# Failures confined to one group's resources; everything else is run-scoped
GROUP_ERRORS = (ValidationError, FetchError, NotFoundError)

DISTRIBUTION_STRATEGY = FieldEquality("certificates")


class RunAborted(Exception):
    """Internal signal: a group failed under the abort policy."""


class IngestService(Service):
    """Runs the batch: transaction groups, attestation groups, then aggregate chains.

    Groups are processed one at a time to completion. Per-group failures are
    reported and skipped (or stop the run under the abort policy); run-scoped
    TransportError and KeyStoreError propagate.
    """

    source: SourceRowProvider
    store: ContentStore
    builder: RecordGraphBuilder
    registry: ChainRegistry
    transaction_files: FileConvention
    attestation_files: FileConvention
    policy: BatchPolicy = field(default_factory=BatchPolicy)
    chains: ChainNames = field(default_factory=ChainNames)
    sink: ResultSink | None = None

    async def run(self) -> BatchReport:
        """Execute one batch run.

        Returns:
            BatchReport with per-group outcomes and per-chain updates.

        Raises:
            TransportError: The content store or name service failed after retries.
            KeyStoreError: A chain identity could not be listed or created.
            IntegrityError: A chain's parent links are broken.
        """
        report = BatchReport(started_at=datetime.now(UTC))
        cache = DocumentCache(store=self.store)
        orders: dict[str, ContentId] = {}
        attestations: dict[str, ContentId] = {}
        touched: list[str] = []

        with logfire.span("IngestRun"):
            try:
                for group in await self.source.list_groups(GroupKind.TRANSACTION):
                    outcome = await self._run_group(group, self._ingest_transaction, report)
                    if outcome.aggregate is not None:
                        orders[group.name] = outcome.aggregate

                for group in await self.source.list_groups(GroupKind.ATTESTATION):
                    outcome = await self._run_group(
                        group,
                        lambda g: self._ingest_attestation(g, cache, report, touched),
                        report,
                    )
                    if outcome.aggregate is not None:
                        attestations[group.name] = outcome.aggregate
            except RunAborted:
                report.aborted = True

            report.attachments_fetched = cache.fetch_count

            if report.skipped and not self.policy.partial_aggregate:
                logger.warning(
                    f"{len(report.skipped)} groups failed; aggregate chains left unchanged"
                )
            else:
                if orders:
                    await self._append(
                        self.chains.transactions, {"orders": orders}, FULL_PAYLOAD, report
                    )
                    touched.append(self.chains.transactions)
                if attestations:
                    await self._append(
                        self.chains.deliveries,
                        {"attestations": attestations},
                        FULL_PAYLOAD,
                        report,
                    )
                    touched.append(self.chains.deliveries)

            if touched:
                await self._update_directory(touched, report)

        report.completed_at = datetime.now(UTC)
        logger.info(
            f"Run completed: {len(report.processed)} groups processed, "
            f"{len(report.skipped)} skipped, {len(report.advanced)} chains advanced, "
            f"{report.attachments_fetched} attachments fetched"
        )
        return report

    async def _run_group(self, group: SourceGroup, ingest, report: BatchReport) -> GroupOutcome:
        with logfire.span("IngestGroup {group}", group=group.name, kind=group.kind.value):
            try:
                outcome = await ingest(group)
            except GROUP_ERRORS as e:
                outcome = GroupOutcome(
                    group=group.name,
                    kind=group.kind,
                    status=GroupStatus.SKIPPED,
                    reason=_describe(e),
                )
                logger.error(f"Skipping {group.kind.value} group '{group.name}': {outcome.reason}")
                logfire.warn("Group skipped", group=group.name, reason=outcome.reason)
                report.groups.append(outcome)
                if self.policy.on_group_error is GroupErrorPolicy.ABORT:
                    raise RunAborted(group.name) from e
                return outcome

        report.groups.append(outcome)
        return outcome

    async def _ingest_transaction(self, group: SourceGroup) -> GroupOutcome:
        contracts_file, demands_file = await self._select_files(group, self.transaction_files)
        contract_rows = await self.source.read_table(group, contracts_file)
        demand_rows = await self.source.read_table(group, demands_file)

        graph = await self.builder.build_order(group.name, contract_rows, demand_rows)

        if self.policy.write_back and self.sink is not None:
            await self._write_back(group, contracts_file, contract_rows, graph.order)

        return GroupOutcome(
            group=group.name,
            kind=group.kind,
            status=GroupStatus.PROCESSED,
            aggregate=graph.order,
            records=len(graph.level.parent_ids),
            children=len(graph.level.children),
            skipped_rows=graph.level.skipped_rows,
        )

    async def _ingest_attestation(
        self,
        group: SourceGroup,
        cache: DocumentCache,
        report: BatchReport,
        touched: list[str],
    ) -> GroupOutcome:
        certificates_file, supplies_file = await self._select_files(group, self.attestation_files)
        certificate_rows = await self.source.read_table(group, certificates_file)
        supply_rows = await self.source.read_table(group, supplies_file)

        async def fetch(name: str) -> Attachment:
            return await self.source.fetch_attachment(group, name)

        def reference(name: str) -> str:
            return self.source.attachment_reference(group, name)

        graph = await self.builder.build_attestation(
            group.name, certificate_rows, supply_rows, cache, fetch, reference
        )

        for document, certificates in graph.certificates_by_document().items():
            await self._append_distribution(document, certificates, report)
            touched.append(str(document))

        return GroupOutcome(
            group=group.name,
            kind=group.kind,
            status=GroupStatus.PROCESSED,
            aggregate=graph.attestation,
            records=len(graph.level.parent_ids),
            children=len(graph.level.children),
            skipped_rows=graph.level.skipped_rows,
        )

    async def _append_distribution(
        self, document: ContentId, certificates: tuple[ContentId, ...], report: BatchReport
    ) -> None:
        """Keep the certificates already distributed for `document` and add new ones."""
        name = str(document)
        head = await self.registry.head_block(name)
        existing = list(head.payload.get("certificates") or ()) if head else []
        merged = existing + [c for c in certificates if c not in existing]
        payload = {"attestation_document": document, "certificates": tuple(merged)}
        await self._append(name, payload, DISTRIBUTION_STRATEGY, report)

    async def _update_directory(self, names: list[str], report: BatchReport) -> None:
        """Publish name -> pointer id for every chain touched, merged with earlier runs."""
        head = await self.registry.head_block(self.chains.directory)
        directory: dict[str, str] = dict(head.payload.get("chains") or {}) if head else {}
        for name in names:
            identity = await self.registry.ensure_identity(name)
            directory[name] = identity.id
        await self._append(self.chains.directory, {"chains": directory}, FULL_PAYLOAD, report)

    async def _append(
        self,
        name: str,
        payload: dict[str, Any],
        strategy: ComparisonStrategy,
        report: BatchReport,
    ) -> ChainUpdate:
        attempt = 0
        while True:
            try:
                result = await self.registry.append(name, payload, strategy)
                break
            except TransportError as e:
                if isinstance(e, FetchError) or attempt >= self.policy.retry_attempts:
                    raise
                attempt += 1
                logger.warning(
                    f"Append to '{name}' failed ({e.message}), retrying in "
                    f"{self.policy.retry_backoff:.1f}s "
                    f"(attempt {attempt}/{self.policy.retry_attempts})"
                )
                await asyncio.sleep(self.policy.retry_backoff)

        update = ChainUpdate.from_result(result)
        report.chains.append(update)
        return update

    async def _select_files(
        self, group: SourceGroup, convention: FileConvention
    ) -> tuple[str, str]:
        files = await self.source.list_files(group)
        return (
            _select_one(group, files, convention.parent_file(group.name)),
            _select_one(group, files, convention.child_file(group.name)),
        )

    async def _write_back(
        self, group: SourceGroup, file_name: str, rows: list[Row], order: ContentId
    ) -> None:
        column = self.policy.write_back_column
        if rows and all(row.get(column) == str(order) for row in rows):
            return
        updated = [{**row, column: str(order)} for row in rows]
        await self.sink.write_table(group, file_name, updated)
        logger.info(f"Wrote {column}={order} back to {group.name}/{file_name}")


def _select_one(group: SourceGroup, files: list[str], expected: str) -> str:
    matches = [f for f in files if f == expected]
    if len(matches) == 1:
        return matches[0]
    problem = "Didn't find" if not matches else f"Found {len(matches)} copies of"
    raise ValidationError(
        f"{problem} '{expected}' in '{group.location}'",
        field=expected,
        group=group.name,
    )


def _describe(error: Exception) -> str:
    message = getattr(error, "message", str(error))
    context = [
        f"{name}={value}"
        for name in ("group", "field")
        if (value := getattr(error, name, None))
    ]
    name = type(error).__name__
    return f"{name}: {message}" + (f" ({', '.join(context)})" if context else "")
