"""Unit tests for DocumentCache."""

from unittest.mock import AsyncMock

import pytest

from eacchain.domain.record.service.document_cache import Attachment, DocumentCache
from eacchain.domain.shared.error import (
    FetchError,
    MissingAttachmentError,
    NotFoundError,
    TransportError,
)


def attachment(name: str = "attestation.pdf", data: bytes = b"%PDF-1.4 doc") -> Attachment:
    return Attachment(name=name, data=data, media_type="application/pdf")


class TestDocumentCache:
    @pytest.mark.asyncio
    async def test_fetches_once_per_name(self, store):
        cache = DocumentCache(store=store)
        fetcher = AsyncMock(return_value=attachment())

        first = await cache.get_or_fetch("attestation.pdf", fetcher)
        second = await cache.get_or_fetch("attestation.pdf", fetcher)

        assert first == second
        fetcher.assert_awaited_once_with("attestation.pdf")
        assert cache.fetch_count == 1
        assert len(cache) == 1
        assert "attestation.pdf" in cache

    @pytest.mark.asyncio
    async def test_stores_bytes_in_content_store(self, store):
        cache = DocumentCache(store=store)

        cid = await cache.get_or_fetch("attestation.pdf", AsyncMock(return_value=attachment()))

        assert await store.get_binary(cid) == b"%PDF-1.4 doc"

    @pytest.mark.asyncio
    async def test_identical_bytes_under_two_names_share_a_content_id(self, store):
        cache = DocumentCache(store=store)
        fetcher = AsyncMock(side_effect=[attachment("a.pdf"), attachment("b.pdf")])

        a = await cache.get_or_fetch("a.pdf", fetcher)
        b = await cache.get_or_fetch("b.pdf", fetcher)

        assert a == b
        assert cache.fetch_count == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", [None, "", "  "])
    async def test_empty_name_raises_missing_attachment(self, store, name):
        cache = DocumentCache(store=store)
        fetcher = AsyncMock()

        with pytest.raises(MissingAttachmentError):
            await cache.get_or_fetch(name, fetcher)
        fetcher.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [TransportError("down"), NotFoundError("404")])
    async def test_fetcher_failure_becomes_fetch_error(self, store, error):
        cache = DocumentCache(store=store)

        with pytest.raises(FetchError) as exc_info:
            await cache.get_or_fetch("attestation.pdf", AsyncMock(side_effect=error))

        assert exc_info.value.__cause__ is error
        assert "attestation.pdf" not in cache

    @pytest.mark.asyncio
    async def test_fetch_error_propagates_unchanged(self, store):
        cache = DocumentCache(store=store)
        error = FetchError("gone")

        with pytest.raises(FetchError) as exc_info:
            await cache.get_or_fetch("attestation.pdf", AsyncMock(side_effect=error))

        assert exc_info.value is error

    @pytest.mark.asyncio
    async def test_reference_keys_the_cache(self, store):
        cache = DocumentCache(store=store)
        fetcher = AsyncMock(
            side_effect=[attachment(data=b"%PDF group one"), attachment(data=b"%PDF group two")]
        )

        one = await cache.get_or_fetch("attestation.pdf", fetcher, lambda n: f"g1/{n}")
        two = await cache.get_or_fetch("attestation.pdf", fetcher, lambda n: f"g2/{n}")
        again = await cache.get_or_fetch("attestation.pdf", fetcher, lambda n: f"g1/{n}")

        assert one != two
        assert again == one
        assert cache.fetch_count == 2
        assert "g1/attestation.pdf" in cache
