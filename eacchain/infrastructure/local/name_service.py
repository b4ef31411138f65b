"""Filesystem name service: ed25519 identities and signed pointer records.

Directory structure:
    <base>/
        keys/<name>.pem     # PKCS8 private key per identity
        names/<id>.json     # latest signed pointer record per identity
"""

import base64
import json
import re
from datetime import UTC, datetime, timedelta
from pathlib import Path

import canonicaljson
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from eacchain.domain.chain.model.value import Identity
from eacchain.domain.chain.port.name_service import NameService
from eacchain.domain.shared.error import KeyStoreError, TransportError
from eacchain.domain.shared.model.cid import ContentId

ID_PREFIX = "ed25519-"
SUPPORTED_KEY_TYPES = ("ed25519",)

_NAME_RE = re.compile(r"^[A-Za-z0-9._\-]{1,128}$")
_LIFETIME_RE = re.compile(r"^(\d+)(h|m|s)$")


def parse_lifetime(lifetime: str) -> timedelta:
    """Parse "87600h" / "30m" / "45s" durations."""
    match = _LIFETIME_RE.match(lifetime.strip())
    if not match:
        raise ValueError(f"Invalid lifetime: {lifetime!r}")
    amount, unit = int(match.group(1)), match.group(2)
    return {"h": timedelta(hours=amount), "m": timedelta(minutes=amount), "s": timedelta(seconds=amount)}[unit]


def _identity_id(public_key: Ed25519PublicKey) -> str:
    raw = public_key.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )
    return ID_PREFIX + raw.hex()


class LocalNameService(NameService):
    """Key-authorized pointers kept on the local filesystem."""

    def __init__(self, base_path: str | Path) -> None:
        self.base_path = Path(base_path)
        self.keys_dir.mkdir(parents=True, exist_ok=True)
        self.names_dir.mkdir(parents=True, exist_ok=True)

    @property
    def keys_dir(self) -> Path:
        return self.base_path / "keys"

    @property
    def names_dir(self) -> Path:
        return self.base_path / "names"

    async def list_identities(self) -> list[Identity]:
        identities = []
        try:
            key_files = sorted(self.keys_dir.glob("*.pem"))
        except OSError as e:
            raise KeyStoreError(f"Could not list key store: {e}") from e
        for key_file in key_files:
            private_key = self._load_private_key(key_file)
            identities.append(
                Identity(name=key_file.stem, id=_identity_id(private_key.public_key()))
            )
        return identities

    async def generate_identity(self, name: str, key_type: str) -> Identity:
        if key_type not in SUPPORTED_KEY_TYPES:
            raise KeyStoreError(f"Unsupported key type: {key_type}")
        if not _NAME_RE.match(name):
            raise KeyStoreError(f"Invalid identity name: {name!r}")
        key_file = self.keys_dir / f"{name}.pem"
        if key_file.exists():
            raise KeyStoreError(f"Identity already exists: {name}")

        private_key = Ed25519PrivateKey.generate()
        pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
        try:
            key_file.write_bytes(pem)
            key_file.chmod(0o600)
        except OSError as e:
            raise KeyStoreError(f"Could not write key for {name}: {e}") from e
        return Identity(name=name, id=_identity_id(private_key.public_key()))

    async def publish(self, identity: Identity, cid: ContentId, lifetime: str) -> None:
        private_key = self._load_private_key(self.keys_dir / f"{identity.name}.pem")
        if _identity_id(private_key.public_key()) != identity.id:
            raise KeyStoreError(f"Key for {identity.name} does not match identity {identity.id}")

        current = self._read_record(identity)
        sequence = current["sequence"] + 1 if current else 0
        validity = (datetime.now(UTC) + parse_lifetime(lifetime)).isoformat()
        unsigned = {"value": cid.root, "sequence": sequence, "validity": validity}
        signature = private_key.sign(canonicaljson.encode_canonical_json(unsigned))
        record = {**unsigned, "signature": base64.b64encode(signature).decode()}

        target = self.names_dir / f"{identity.id}.json"
        tmp = target.with_suffix(".tmp")
        try:
            tmp.write_text(json.dumps(record))
            tmp.replace(target)
        except OSError as e:
            raise TransportError(f"Could not publish {identity.name}: {e}") from e

    async def resolve(self, identity: Identity) -> ContentId | None:
        record = self._read_record(identity)
        if record is None:
            return None

        public_key = Ed25519PublicKey.from_public_bytes(
            bytes.fromhex(identity.id.removeprefix(ID_PREFIX))
        )
        unsigned = {k: record[k] for k in ("value", "sequence", "validity")}
        try:
            public_key.verify(
                base64.b64decode(record["signature"]),
                canonicaljson.encode_canonical_json(unsigned),
            )
        except InvalidSignature as e:
            raise KeyStoreError(f"Pointer record for {identity.name} has an invalid signature") from e

        if datetime.fromisoformat(record["validity"]) < datetime.now(UTC):
            return None
        return ContentId(record["value"])

    def _read_record(self, identity: Identity) -> dict | None:
        target = self.names_dir / f"{identity.id}.json"
        if not target.exists():
            return None
        try:
            return json.loads(target.read_text())
        except (OSError, ValueError) as e:
            raise TransportError(f"Could not read pointer for {identity.name}: {e}") from e

    def _load_private_key(self, key_file: Path) -> Ed25519PrivateKey:
        try:
            key = serialization.load_pem_private_key(key_file.read_bytes(), password=None)
        except (OSError, ValueError) as e:
            raise KeyStoreError(f"Could not load key {key_file.name}: {e}") from e
        if not isinstance(key, Ed25519PrivateKey):
            raise KeyStoreError(f"Key {key_file.name} is not an ed25519 key")
        return key
