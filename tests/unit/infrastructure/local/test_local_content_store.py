"""Tests for LocalContentStore."""

import pytest

from eacchain.domain.shared.error import NotFoundError
from eacchain.domain.shared.model.cid import ContentId
from eacchain.infrastructure.local.content_store import LocalContentStore, canonical_bytes

DOC = ContentId("bafyreigvmueic3oi6rrz7ys3ep65dcbyrg36vzmrhktbmlyjmi2owm4wha")


class TestPut:
    @pytest.mark.asyncio
    async def test_key_order_does_not_change_content_id(self, store):
        a = await store.put({"contract_id": "C1", "volume_MWh": 1250.5})
        b = await store.put({"volume_MWh": 1250.5, "contract_id": "C1"})

        assert a == b
        assert a.root.startswith("sha256-")

    @pytest.mark.asyncio
    async def test_different_values_get_different_ids(self, store):
        assert await store.put({"v": 1}) != await store.put({"v": 2})

    @pytest.mark.asyncio
    async def test_same_content_across_instances(self, tmp_path):
        first = await LocalContentStore(tmp_path / "one").put({"doc": DOC})
        second = await LocalContentStore(tmp_path / "two").put({"doc": DOC})

        assert first == second

    @pytest.mark.asyncio
    async def test_put_is_idempotent_on_disk(self, store):
        await store.put({"v": 1})
        await store.put({"v": 1})

        assert store.block_count() == 1

    def test_canonical_encoding(self):
        assert canonical_bytes({"b": [DOC], "a": None}) == (
            b'{"a":null,"b":[{"/":"' + DOC.root.encode() + b'"}]}'
        )


class TestGet:
    @pytest.mark.asyncio
    async def test_links_are_restored(self, store):
        cid = await store.put({"attestation_document": DOC, "certificates": (DOC,), "supplies": None})

        assert await store.get(cid) == {
            "attestation_document": DOC,
            "certificates": (DOC,),
            "supplies": None,
        }

    @pytest.mark.asyncio
    async def test_unknown_id_raises_not_found(self, store):
        with pytest.raises(NotFoundError):
            await store.get(ContentId("sha256-" + "0" * 64))

    @pytest.mark.asyncio
    async def test_foreign_id_raises_not_found(self, store):
        with pytest.raises(NotFoundError):
            await store.get(DOC)

    @pytest.mark.asyncio
    async def test_binary_resolves_to_bytes_node(self, store):
        cid = await store.put_binary(b"%PDF-1.4", "application/pdf")

        assert await store.get(cid) == {"/": {"bytes": "JVBERi0xLjQ"}}
        assert await store.get_binary(cid) == b"%PDF-1.4"
        assert store.contains(cid)


class TestPutBinary:
    @pytest.mark.asyncio
    async def test_same_bytes_same_id(self, store):
        a = await store.put_binary(b"bytes", "application/pdf")
        b = await store.put_binary(b"bytes", "application/pdf")

        assert a == b
        assert store.block_count() == 1
