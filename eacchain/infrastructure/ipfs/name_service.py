"""IPNS adapter for the NameService port."""

import logging

from eacchain.domain.chain.model.value import Identity
from eacchain.domain.chain.port.name_service import NameService
from eacchain.domain.shared.error import (
    EACError,
    KeyStoreError,
    NotFoundError,
    TransportError,
)
from eacchain.domain.shared.model.cid import ContentId
from eacchain.infrastructure.ipfs.client import IpfsClient

logger = logging.getLogger(__name__)

IPNS_PREFIX = "/ipns/"
IPFS_PREFIX = "/ipfs/"

# name/resolve answers for a key that was never published
_UNRESOLVED_MARKERS = ("could not resolve name", "not found")


class IpnsNameService(NameService):
    """Identities are node keys; pointers are IPNS records signed by the node."""

    def __init__(self, client: IpfsClient, resolve_timeout: str = "30s") -> None:
        self._client = client
        self._resolve_timeout = resolve_timeout

    async def list_identities(self) -> list[Identity]:
        try:
            result = await self._client.post_json("key/list", params={"l": True})
        except EACError as e:
            raise KeyStoreError(f"Could not list node keys: {e.message}") from e
        return [
            Identity(name=key["Name"], id=key["Id"])
            for key in (result or {}).get("Keys") or []
        ]

    async def generate_identity(self, name: str, key_type: str) -> Identity:
        try:
            key = await self._client.post_json(
                "key/gen", params={"arg": name, "type": key_type}
            )
        except EACError as e:
            raise KeyStoreError(f"Could not generate key '{name}': {e.message}") from e
        logger.info(f"Generated {key_type} key '{name}' -> {key['Id']}")
        return Identity(name=key["Name"], id=key["Id"])

    async def publish(self, identity: Identity, cid: ContentId, lifetime: str) -> None:
        result = await self._client.post_json(
            "name/publish",
            params={
                "arg": f"{IPFS_PREFIX}{cid.root}",
                "key": identity.name,
                "lifetime": lifetime,
                "allow-offline": True,
            },
        )
        logger.debug(f"Published {result.get('Name')} -> {result.get('Value')}")

    async def resolve(self, identity: Identity) -> ContentId | None:
        """Resolve the identity's pointer, following at most one /ipns/ indirection."""
        path = await self._resolve_path(f"{IPNS_PREFIX}{identity.id}")
        if path is not None and path.startswith(IPNS_PREFIX):
            path = await self._resolve_path(path)
        if path is None:
            return None
        if not path.startswith(IPFS_PREFIX):
            raise TransportError(f"Name {identity.name} resolved to an unsupported path: {path}")
        return ContentId(path[len(IPFS_PREFIX) :].split("/", 1)[0])

    async def _resolve_path(self, name: str) -> str | None:
        try:
            result = await self._client.post_json(
                "name/resolve",
                params={
                    "arg": name,
                    "recursive": False,
                    "nocache": True,
                    "dht-timeout": self._resolve_timeout,
                },
            )
        except NotFoundError:
            return None
        except TransportError as e:
            if any(marker in e.message.lower() for marker in _UNRESOLVED_MARKERS):
                return None
            raise
        return result.get("Path")
