"""Tests for LocalNameService."""

import json
from datetime import timedelta

import pytest

from eacchain.domain.shared.error import KeyStoreError
from eacchain.domain.shared.model.cid import ContentId
from eacchain.infrastructure.local.name_service import LocalNameService, parse_lifetime

X = ContentId("bafyreixxxxxxxxxxxxxxxxxxxxxxxxxxxxxxxx")
Y = ContentId("bafyreiyyyyyyyyyyyyyyyyyyyyyyyyyyyyyyyy")


class TestIdentities:
    @pytest.mark.asyncio
    async def test_generate_and_list(self, names):
        identity = await names.generate_identity("transactions", "ed25519")

        assert identity.name == "transactions"
        assert identity.id.startswith("ed25519-")
        assert await names.list_identities() == [identity]

    @pytest.mark.asyncio
    async def test_identity_survives_new_instance(self, tmp_path):
        identity = await LocalNameService(tmp_path).generate_identity("chains", "ed25519")

        assert await LocalNameService(tmp_path).list_identities() == [identity]

    @pytest.mark.asyncio
    async def test_duplicate_name_rejected(self, names):
        await names.generate_identity("transactions", "ed25519")

        with pytest.raises(KeyStoreError):
            await names.generate_identity("transactions", "ed25519")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("name", "key_type"), [("../escape", "ed25519"), ("ok", "rsa")])
    async def test_invalid_requests_rejected(self, names, name, key_type):
        with pytest.raises(KeyStoreError):
            await names.generate_identity(name, key_type)

    @pytest.mark.asyncio
    async def test_corrupt_key_file_raises(self, names):
        (names.keys_dir / "broken.pem").write_text("not a key")

        with pytest.raises(KeyStoreError):
            await names.list_identities()


class TestPointers:
    @pytest.mark.asyncio
    async def test_unpublished_resolves_to_none(self, names):
        identity = await names.generate_identity("transactions", "ed25519")

        assert await names.resolve(identity) is None

    @pytest.mark.asyncio
    async def test_publish_then_resolve_latest(self, names):
        identity = await names.generate_identity("transactions", "ed25519")

        await names.publish(identity, X, "87600h")
        await names.publish(identity, Y, "87600h")

        assert await names.resolve(identity) == Y
        record = json.loads((names.names_dir / f"{identity.id}.json").read_text())
        assert record["sequence"] == 1

    @pytest.mark.asyncio
    async def test_tampered_record_rejected(self, names):
        identity = await names.generate_identity("transactions", "ed25519")
        await names.publish(identity, X, "87600h")
        path = names.names_dir / f"{identity.id}.json"
        record = json.loads(path.read_text())
        record["value"] = Y.root
        path.write_text(json.dumps(record))

        with pytest.raises(KeyStoreError):
            await names.resolve(identity)

    @pytest.mark.asyncio
    async def test_expired_record_resolves_to_none(self, names):
        identity = await names.generate_identity("transactions", "ed25519")

        await names.publish(identity, X, "0s")

        assert await names.resolve(identity) is None


class TestParseLifetime:
    def test_units(self):
        assert parse_lifetime("87600h") == timedelta(hours=87600)
        assert parse_lifetime("30m") == timedelta(minutes=30)
        assert parse_lifetime("45s") == timedelta(seconds=45)

    def test_invalid(self):
        with pytest.raises(ValueError):
            parse_lifetime("ten years")
