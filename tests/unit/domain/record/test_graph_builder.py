"""Unit tests for RecordGraphBuilder."""

from unittest.mock import AsyncMock

import pytest

from eacchain.domain.record.model.rules import ChildDefault
from eacchain.domain.record.service.document_cache import Attachment, DocumentCache
from eacchain.domain.shared.error import FetchError, MissingAttachmentError, ValidationError
from eacchain.domain.shared.model.cid import ContentId


def pdf_fetcher() -> AsyncMock:
    async def fetch(name: str) -> Attachment:
        return Attachment(name=name, data=f"pdf:{name}".encode(), media_type="application/pdf")

    return AsyncMock(side_effect=fetch)


def links_in(value) -> list[ContentId]:
    if isinstance(value, ContentId):
        return [value]
    if isinstance(value, dict):
        return [link for v in value.values() for link in links_in(v)]
    if isinstance(value, (list, tuple)):
        return [link for v in value for link in links_in(v)]
    return []


async def walk(store, root: ContentId) -> set[ContentId]:
    """Every id reachable from `root`; each one must resolve through `store.get`."""
    seen: set[ContentId] = set()
    pending = [root]
    while pending:
        cid = pending.pop()
        if cid in seen:
            continue
        seen.add(cid)
        pending.extend(links_in(await store.get(cid)))
    return seen


class TestBuildOrder:
    @pytest.mark.asyncio
    async def test_contract_with_demands(self, builder, store, contract_rows, demand_rows):
        graph = await builder.build_order("2021_transaction_1", contract_rows, demand_rows)

        contract = await store.get(graph.level.parents["C1"])
        assert contract["volume_MWh"] == 1250.5
        assert contract["demands"] == (
            graph.level.children["A1"],
            graph.level.children["A2"],
        )
        assert "step9_transaction_complete" not in contract

        demand = await store.get(graph.level.children["A2"])
        assert demand == {
            "allocation_id": "A2",
            "contract_id": "C1",
            "minerID": "f05678",
            "volume_MWh": 250.5,
        }

    @pytest.mark.asyncio
    async def test_contract_without_demands_gets_empty_list(
        self, builder, store, contract_rows, demand_rows
    ):
        graph = await builder.build_order("2021_transaction_1", contract_rows, demand_rows)

        contract = await store.get(graph.level.parents["C2"])
        assert contract["demands"] == []
        assert contract["contractDate"] == "2021-06-15"

    @pytest.mark.asyncio
    async def test_order_aggregate(self, builder, store, contract_rows, demand_rows):
        graph = await builder.build_order("2021_transaction_1", contract_rows, demand_rows)

        order = await store.get(graph.order)
        assert order["name"] == "2021_transaction_1"
        assert order["contracts"] == (graph.level.parents["C1"], graph.level.parents["C2"])
        assert order["allocations"] == {
            "A1": graph.level.children["A1"],
            "A2": graph.level.children["A2"],
        }
        assert graph.level.skipped_rows == 1

    @pytest.mark.asyncio
    async def test_rebuild_yields_identical_ids(self, builder, store, contract_rows, demand_rows):
        first = await builder.build_order("2021_transaction_1", contract_rows, demand_rows)
        blocks = store.block_count()

        second = await builder.build_order("2021_transaction_1", contract_rows, demand_rows)

        assert second.order == first.order
        assert second.level.parent_ids == first.level.parent_ids
        assert store.block_count() == blocks

    @pytest.mark.asyncio
    async def test_duplicate_child_keys_last_row_wins_map_but_linkset_keeps_all(
        self, builder, store, contract_rows
    ):
        demands = [
            {"allocation_id": "A1", "contract_id": "C1", "volume_MWh": "1"},
            {"allocation_id": "A1", "contract_id": "C1", "volume_MWh": "2"},
        ]

        graph = await builder.build_order("g", contract_rows, demands)

        contract = await store.get(graph.level.parents["C1"])
        assert len(contract["demands"]) == 2
        assert graph.level.children["A1"] == contract["demands"][1]
        assert (await store.get(graph.level.children["A1"]))["volume_MWh"] == 2

    @pytest.mark.asyncio
    async def test_linkset_order_follows_row_order(self, builder, store, contract_rows, demand_rows):
        graph = await builder.build_order("g", contract_rows, list(reversed(demand_rows)))

        contract = await store.get(graph.level.parents["C1"])
        assert contract["demands"] == (graph.level.children["A2"], graph.level.children["A1"])

    @pytest.mark.asyncio
    async def test_demand_without_contract_id_raises(self, builder, contract_rows):
        demands = [{"allocation_id": "A9", "contract_id": None}]

        with pytest.raises(ValidationError) as exc_info:
            await builder.build_order("g", contract_rows, demands)

        assert exc_info.value.field == "contract_id"
        assert exc_info.value.group == "g"

    @pytest.mark.asyncio
    async def test_malformed_number_reports_group(self, builder, demand_rows):
        contracts = [{"contract_id": "C1", "volume_MWh": "lots"}]

        with pytest.raises(ValidationError) as exc_info:
            await builder.build_order("g", contracts, demand_rows)

        assert exc_info.value.field == "volume_MWh"
        assert exc_info.value.group == "g"


class TestBuildAttestation:
    @pytest.mark.asyncio
    async def test_certificates_link_supplies_and_documents(
        self, builder, store, certificate_rows, supply_rows
    ):
        cache = DocumentCache(store=store)
        fetcher = pdf_fetcher()

        graph = await builder.build_attestation(
            "2021_attestation_1", certificate_rows, supply_rows, cache, fetcher
        )

        cert = await store.get(graph.level.parents["CERT-1"])
        assert cert["supplies"] == (graph.level.children["G1"],)
        assert cert["attestation_document"] == cache._entries["attestation.pdf"]
        assert fetcher.await_count == 2  # attestation.pdf, other.pdf

    @pytest.mark.asyncio
    async def test_certificate_without_supplies_gets_null(
        self, builder, store, certificate_rows, supply_rows
    ):
        graph = await builder.build_attestation(
            "a", certificate_rows, supply_rows, DocumentCache(store=store), pdf_fetcher()
        )

        cert = await store.get(graph.level.parents["CERT-3"])
        assert "supplies" in cert
        assert cert["supplies"] is None

    @pytest.mark.asyncio
    async def test_attestation_aggregate(self, builder, store, certificate_rows, supply_rows):
        cache = DocumentCache(store=store)
        graph = await builder.build_attestation(
            "a", certificate_rows, supply_rows, cache, pdf_fetcher()
        )

        attestation = await store.get(graph.attestation)
        assert attestation["name"] == "a"
        assert attestation["attestation_documents"] == (
            cache._entries["attestation.pdf"],
            cache._entries["other.pdf"],
        )
        assert attestation["certificates"] == graph.level.parent_ids
        assert set(attestation["supplies"]) == {"G1", "G2"}

    @pytest.mark.asyncio
    async def test_certificates_grouped_by_document(
        self, builder, store, certificate_rows, supply_rows
    ):
        cache = DocumentCache(store=store)
        graph = await builder.build_attestation(
            "a", certificate_rows, supply_rows, cache, pdf_fetcher()
        )

        grouped = graph.certificates_by_document()

        assert grouped == {
            cache._entries["attestation.pdf"]: (
                graph.level.parents["CERT-1"],
                graph.level.parents["CERT-2"],
            ),
            cache._entries["other.pdf"]: (graph.level.parents["CERT-3"],),
        }

    @pytest.mark.asyncio
    async def test_missing_attachment_name_raises_with_context(self, builder, store, supply_rows):
        certificates = [{"certificate": "CERT-1", "attestation_file": None}]

        with pytest.raises(MissingAttachmentError) as exc_info:
            await builder.build_attestation(
                "a", certificates, supply_rows, DocumentCache(store=store), pdf_fetcher()
            )

        assert exc_info.value.field == "attestation_file"
        assert exc_info.value.group == "a"

    @pytest.mark.asyncio
    async def test_fetch_failure_propagates(self, builder, store, certificate_rows, supply_rows):
        fetcher = AsyncMock(side_effect=FetchError("404"))

        with pytest.raises(FetchError):
            await builder.build_attestation(
                "a", certificate_rows, supply_rows, DocumentCache(store=store), fetcher
            )


class TestHierarchySpecDefaults:
    def test_defaults_differ_between_hierarchies(self, normalization):
        assert normalization.order_spec().missing_children is ChildDefault.EMPTY
        assert normalization.attestation_spec().missing_children is ChildDefault.NULL

    def test_attestation_documents_are_linked_from_certificates(self, normalization):
        spec = normalization.attestation_spec()
        assert spec.attachment_field == "attestation_file"
        assert spec.attachment_link_field == "attestation_document"


class TestLinkIntegrity:
    @pytest.mark.asyncio
    async def test_every_link_from_an_order_resolves(
        self, builder, store, contract_rows, demand_rows
    ):
        graph = await builder.build_order("2021_transaction_1", contract_rows, demand_rows)

        reachable = await walk(store, graph.order)

        assert set(graph.level.parent_ids) <= reachable
        assert set(graph.level.children.values()) <= reachable

    @pytest.mark.asyncio
    async def test_every_link_from_an_attestation_resolves_including_documents(
        self, builder, store, certificate_rows, supply_rows
    ):
        cache = DocumentCache(store=store)
        graph = await builder.build_attestation(
            "2021_attestation_1", certificate_rows, supply_rows, cache, pdf_fetcher()
        )

        reachable = await walk(store, graph.attestation)

        assert set(graph.level.attachments) <= reachable
        document = await store.get(graph.level.attachments[0])
        assert document == {"/": {"bytes": "cGRmOmF0dGVzdGF0aW9uLnBkZg"}}
