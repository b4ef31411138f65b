"""Filesystem content store for offline runs and tests.

Objects are encoded as canonical JSON (sorted keys, no insignificant whitespace,
UTF-8) with links in IPLD form, and addressed by the SHA-256 of that encoding.
"""

import base64
import hashlib
import json
import tempfile
from pathlib import Path
from typing import Any

import canonicaljson

from eacchain.domain.record.model.record import from_ipld, to_ipld
from eacchain.domain.record.port.content_store import ContentStore
from eacchain.domain.shared.error import NotFoundError, TransportError
from eacchain.domain.shared.model.cid import LINK_KEY, ContentId

ID_PREFIX = "sha256-"
OBJECT_MEDIA_TYPE = "application/json"


def canonical_bytes(value: Any) -> bytes:
    """Canonical encoding of a value tree (links converted to {"/": cid})."""
    return canonicaljson.encode_canonical_json(to_ipld(value))


def bytes_node(data: bytes) -> dict[str, Any]:
    """IPLD bytes form of a raw block, as dag-json renders it (unpadded base64)."""
    return {LINK_KEY: {"bytes": base64.b64encode(data).decode("ascii").rstrip("=")}}


def content_id_for(data: bytes) -> ContentId:
    return ContentId(ID_PREFIX + hashlib.sha256(data).hexdigest())


class LocalContentStore(ContentStore):
    """Content-addressed blocks under `<base>/blocks/ab/<digest>`.

    Every block is written once; re-putting identical content is a no-op.
    """

    def __init__(self, base_path: str | Path) -> None:
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _block_path(self, cid: ContentId) -> Path:
        digest = cid.root.removeprefix(ID_PREFIX)
        return self.base_path / "blocks" / digest[:2] / digest

    async def put(self, value: dict[str, Any]) -> ContentId:
        data = canonical_bytes(value)
        cid = content_id_for(data)
        self._write_once(cid, data, OBJECT_MEDIA_TYPE)
        return cid

    async def get(self, cid: ContentId) -> dict[str, Any]:
        if not cid.root.startswith(ID_PREFIX):
            raise NotFoundError(f"Content not found: {cid}")
        target = self._block_path(cid)
        if not target.exists():
            raise NotFoundError(f"Content not found: {cid}")
        try:
            data = target.read_bytes()
        except OSError as e:
            raise TransportError(f"Could not read {cid}: {e}") from e
        if self._media_type(target) != OBJECT_MEDIA_TYPE:
            return bytes_node(data)
        return from_ipld(json.loads(data))

    async def put_binary(self, data: bytes, media_type: str) -> ContentId:
        cid = content_id_for(data)
        self._write_once(cid, data, media_type)
        return cid

    async def get_binary(self, cid: ContentId) -> bytes:
        target = self._block_path(cid)
        if not target.exists():
            raise NotFoundError(f"Content not found: {cid}")
        return target.read_bytes()

    def contains(self, cid: ContentId) -> bool:
        return self._block_path(cid).exists()

    def block_count(self) -> int:
        blocks = self.base_path / "blocks"
        if not blocks.exists():
            return 0
        return sum(1 for p in blocks.glob("*/*") if not p.name.endswith(".type"))

    def _media_type(self, target: Path) -> str:
        sidecar = target.with_name(target.name + ".type")
        if sidecar.exists():
            return sidecar.read_text().strip()
        return OBJECT_MEDIA_TYPE

    def _write_once(self, cid: ContentId, data: bytes, media_type: str) -> None:
        target = self._block_path(cid)
        if target.exists():
            return
        target.parent.mkdir(parents=True, exist_ok=True)

        # Atomic write: write to temp file then rename
        fd, tmp_path = tempfile.mkstemp(dir=target.parent)
        try:
            with open(fd, "wb") as f:
                f.write(data)
            Path(tmp_path).rename(target)
        except OSError as e:
            Path(tmp_path).unlink(missing_ok=True)
            raise TransportError(f"Could not write {cid}: {e}") from e

        if media_type != OBJECT_MEDIA_TYPE:
            target.with_name(target.name + ".type").write_text(media_type)
