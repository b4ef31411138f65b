"""RecordGraphBuilder - links normalized records into parent -> children hierarchies."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from eacchain.domain.record.model.record import SKIP, EMPTY_LINKSET, LinkSet, Record
from eacchain.domain.record.model.rules import ChildDefault, HierarchySpec
from eacchain.domain.record.port.content_store import ContentStore
from eacchain.domain.record.service.document_cache import (
    AttachmentFetcher,
    AttachmentReference,
    DocumentCache,
)
from eacchain.domain.record.service.normalizer import RecordNormalizer
from eacchain.domain.shared.error import ConfigurationError, ValidationError
from eacchain.domain.shared.model.cid import ContentId
from eacchain.domain.shared.service import Service

logger = logging.getLogger(__name__)

Row = dict[str, Any]


@dataclass
class LevelResult:
    """Stored records of one parent -> children level."""

    parent_ids: LinkSet = EMPTY_LINKSET  # every stored parent, in row order
    parents: dict[str, ContentId] = field(default_factory=dict)  # key -> cid, last row wins
    children: dict[str, ContentId] = field(default_factory=dict)  # child key -> cid, last row wins
    groups: dict[str, LinkSet] = field(default_factory=dict)  # parent key -> all children
    attachments: LinkSet = EMPTY_LINKSET  # distinct attachment ids, first-seen order
    parent_attachments: dict[str, ContentId] = field(default_factory=dict)  # parent cid -> doc
    skipped_rows: int = 0
    applied_rules: list[str] = field(default_factory=list)


@dataclass
class OrderGraph:
    """Contracts with their demands, and the order aggregate referencing them."""

    name: str
    order: ContentId
    level: LevelResult


@dataclass
class AttestationGraph:
    """Certificates with their supplies, and the attestation aggregate referencing them."""

    name: str
    attestation: ContentId
    level: LevelResult

    def certificates_by_document(self) -> dict[ContentId, LinkSet]:
        """Group stored certificate ids by the attestation document they link to."""
        grouped: dict[ContentId, list[ContentId]] = {}
        for cert_id in self.level.parent_ids:
            doc = self.level.parent_attachments.get(str(cert_id))
            if doc is not None:
                grouped.setdefault(doc, []).append(cert_id)
        return {doc: tuple(ids) for doc, ids in grouped.items()}


class RecordGraphBuilder(Service):
    """Builds the order and attestation hierarchies, storing children before parents."""

    store: ContentStore
    normalizer: RecordNormalizer
    order_spec: HierarchySpec
    attestation_spec: HierarchySpec

    async def build_order(
        self,
        name: str,
        contract_rows: Iterable[Row],
        demand_rows: Iterable[Row],
    ) -> OrderGraph:
        """Store demands, then contracts enriched with their demands, then the order."""
        level = await self.link_level(self.order_spec, name, contract_rows, demand_rows)
        order = Record(
            kind="order",
            data={
                "name": name,
                "contracts": level.parent_ids,
                "allocations": dict(level.children),
            },
        )
        order_id = await self.store.put(order.to_ipld())
        logger.info(
            f"Order {name}: {len(level.parent_ids)} contracts, "
            f"{len(level.children)} allocations -> {order_id}"
        )
        return OrderGraph(name=name, order=order_id, level=level)

    async def build_attestation(
        self,
        name: str,
        certificate_rows: Iterable[Row],
        supply_rows: Iterable[Row],
        cache: DocumentCache,
        fetch_attachment: AttachmentFetcher,
        attachment_reference: AttachmentReference | None = None,
    ) -> AttestationGraph:
        """Store supplies, then certificates with supplies and document links, then the attestation.

        `attachment_reference` resolves a bare attachment name to the run-unique
        key used by `cache`; without it the name itself is the key.
        """
        level = await self.link_level(
            self.attestation_spec,
            name,
            certificate_rows,
            supply_rows,
            cache=cache,
            fetch_attachment=fetch_attachment,
            attachment_reference=attachment_reference,
        )
        attestation = Record(
            kind="attestation",
            data={
                "name": name,
                "attestation_documents": level.attachments,
                "certificates": level.parent_ids,
                "supplies": dict(level.children),
            },
        )
        attestation_id = await self.store.put(attestation.to_ipld())
        logger.info(
            f"Attestation {name}: {len(level.parent_ids)} certificates, "
            f"{len(level.children)} supplies -> {attestation_id}"
        )
        return AttestationGraph(name=name, attestation=attestation_id, level=level)

    async def link_level(
        self,
        spec: HierarchySpec,
        group: str,
        parent_rows: Iterable[Row],
        child_rows: Iterable[Row],
        cache: DocumentCache | None = None,
        fetch_attachment: AttachmentFetcher | None = None,
        attachment_reference: AttachmentReference | None = None,
    ) -> LevelResult:
        """Store every child, group them by parent key, then store each enriched parent.

        Raises:
            ValidationError: A child row does not name its parent, or a value is malformed.
            MissingAttachmentError: A parent row names no attachment.
            FetchError: An attachment could not be fetched.
        """
        result = LevelResult()
        groups: dict[str, list[ContentId]] = {}

        for child in self._normalize_all(spec.child_kind, spec, child_rows, result, group):
            parent_key = child.get(spec.child_parent_key)
            if parent_key is None:
                raise ValidationError(
                    f"{spec.child_kind} row {child.get(spec.child_rules.key_field)!r} in '{group}' "
                    f"has no '{spec.child_parent_key}'",
                    field=spec.child_parent_key,
                    group=group,
                )
            child_key = _require(child, spec.child_key, group)
            child_id = await self.store.put(child.to_ipld())
            groups.setdefault(str(parent_key), []).append(child_id)
            result.children[child_key] = child_id

        result.groups = {key: tuple(ids) for key, ids in groups.items()}

        parent_ids: list[ContentId] = []
        attachments: list[ContentId] = []
        for parent in self._normalize_all(spec.parent_kind, spec, parent_rows, result, group):
            key = _require(parent, spec.parent_key, group)
            children = result.groups.get(key)
            if children is None:
                children = EMPTY_LINKSET if spec.missing_children is ChildDefault.EMPTY else None
                logger.debug(f"{spec.parent_kind} {key} in '{group}' has no {spec.child_kind} rows")
            updates: dict[str, Any] = {spec.children_field: children}

            doc_id: ContentId | None = None
            if spec.attachment_field is not None:
                if cache is None or fetch_attachment is None:
                    raise ConfigurationError(
                        f"{spec.parent_kind} rows need an attachment cache and fetcher"
                    )
                try:
                    doc_id = await cache.get_or_fetch(
                        parent.get(spec.attachment_field), fetch_attachment, attachment_reference
                    )
                except ValidationError as e:
                    e.field = e.field or spec.attachment_field
                    e.group = e.group or group
                    raise
                updates[spec.attachment_link_field] = doc_id
                if doc_id not in attachments:
                    attachments.append(doc_id)

            parent_id = await self.store.put(parent.with_fields(**updates).to_ipld())
            parent_ids.append(parent_id)
            result.parents[key] = parent_id
            if doc_id is not None:
                result.parent_attachments[str(parent_id)] = doc_id

        orphans = set(result.groups) - set(result.parents)
        if orphans:
            logger.warning(
                f"{len(orphans)} {spec.child_kind} parent keys in '{group}' match no "
                f"{spec.parent_kind}: {sorted(orphans)}"
            )

        result.parent_ids = tuple(parent_ids)
        result.attachments = tuple(attachments)
        return result

    def _normalize_all(
        self,
        kind: str,
        spec: HierarchySpec,
        rows: Iterable[Row],
        result: LevelResult,
        group: str,
    ) -> list[Record]:
        rules = spec.parent_rules if kind == spec.parent_kind else spec.child_rules
        records: list[Record] = []
        for row in rows:
            try:
                normalized = self.normalizer.normalize_with_trace(row, rules, kind)
            except ValidationError as e:
                e.group = e.group or group
                raise
            result.applied_rules.extend(normalized.applied_rules)
            if normalized.record is SKIP:
                result.skipped_rows += 1
                continue
            records.append(normalized.record)
        return records


def _require(record: Record, key_field: str, group: str) -> str:
    value = record.get(key_field)
    if value is None:
        raise ValidationError(
            f"{record.kind} row in '{group}' is missing '{key_field}'",
            field=key_field,
            group=group,
        )
    return str(value)
