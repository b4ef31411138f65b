"""IPFS adapter for the ContentStore port (DAG objects and raw attachments)."""

import json
import logging
from typing import Any

import canonicaljson

from eacchain.domain.record.model.record import from_ipld, to_ipld
from eacchain.domain.record.port.content_store import ContentStore
from eacchain.domain.shared.error import TransportError
from eacchain.domain.shared.model.cid import ContentId
from eacchain.infrastructure.ipfs.client import IpfsClient

logger = logging.getLogger(__name__)


class IpfsContentStore(ContentStore):
    """Stores values as pinned DAG nodes; the node does the hashing and encoding."""

    def __init__(
        self,
        client: IpfsClient,
        store_codec: str = "dag-cbor",
        hash_alg: str = "sha2-256",
        cid_version: int = 1,
        pin: bool = True,
    ) -> None:
        self._client = client
        self._store_codec = store_codec
        self._hash_alg = hash_alg
        self._cid_version = cid_version
        self._pin = pin

    async def put(self, value: dict[str, Any]) -> ContentId:
        body = canonicaljson.encode_canonical_json(to_ipld(value))
        result = await self._client.post_json(
            "dag/put",
            params={
                "input-codec": "dag-json",
                "store-codec": self._store_codec,
                "hash": self._hash_alg,
                "pin": self._pin,
            },
            files={"file": ("node.json", body, "application/json")},
        )
        try:
            cid = ContentId(result["Cid"]["/"])
        except (KeyError, TypeError, ValueError) as e:
            raise TransportError(f"Unexpected dag/put response: {result!r}") from e
        logger.debug(f"dag/put -> {cid}")
        return cid

    async def get(self, cid: ContentId) -> dict[str, Any]:
        value = await self._client.post_json(
            "dag/get",
            params={"arg": cid.root, "output-codec": "dag-json"},
        )
        if not isinstance(value, dict):
            raise TransportError(f"dag/get {cid} returned a non-object value")
        return from_ipld(value)

    async def put_binary(self, data: bytes, media_type: str) -> ContentId:
        response = await self._client.post(
            "add",
            params={
                "cid-version": self._cid_version,
                "hash": self._hash_alg,
                "pin": self._pin,
                "raw-leaves": True,
            },
            files={"file": ("attachment", data, media_type)},
        )
        # add answers with one JSON object per line; the last names the root
        lines = [line for line in response.text.splitlines() if line.strip()]
        try:
            cid = ContentId(json.loads(lines[-1])["Hash"])
        except (IndexError, KeyError, TypeError, ValueError) as e:
            raise TransportError(f"Unexpected add response: {response.text[:200]!r}") from e
        logger.debug(f"add ({len(data)} bytes, {media_type}) -> {cid}")
        return cid
