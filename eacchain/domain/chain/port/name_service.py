"""Port for the mutable-name (pointer) publication service."""

from abc import abstractmethod
from typing import Protocol

from eacchain.domain.chain.model.value import Identity
from eacchain.domain.shared.model.cid import ContentId
from eacchain.domain.shared.port import Port


class NameService(Port, Protocol):
    """Key-authorized mutable pointers, one per identity."""

    @abstractmethod
    async def list_identities(self) -> list[Identity]:
        """Raises KeyStoreError if the key store cannot be read."""
        ...

    @abstractmethod
    async def generate_identity(self, name: str, key_type: str) -> Identity:
        """Raises KeyStoreError if the keypair cannot be created."""
        ...

    @abstractmethod
    async def publish(self, identity: Identity, cid: ContentId, lifetime: str) -> None:
        """Point `identity` at `cid` for `lifetime` (e.g. "87600h")."""
        ...

    @abstractmethod
    async def resolve(self, identity: Identity) -> ContentId | None:
        """Current target of the pointer, or None if it was never published."""
        ...
