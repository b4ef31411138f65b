"""Port for the content-addressable object store."""

from abc import abstractmethod
from typing import Any, Protocol

from eacchain.domain.shared.model.cid import ContentId
from eacchain.domain.shared.port import Port


class ContentStore(Port, Protocol):
    """Stores immutable values keyed by the hash of their canonical encoding.

    Values are plain trees (dict/list/scalars) that may contain ContentId links
    and LinkSets; adapters translate links to and from the store's link form.
    """

    @abstractmethod
    async def put(self, value: dict[str, Any]) -> ContentId:
        """Canonically encode and store `value` (pinned). Idempotent."""
        ...

    @abstractmethod
    async def get(self, cid: ContentId) -> dict[str, Any]:
        """Resolve a stored value.

        Raw attachment blocks resolve to their IPLD bytes form,
        `{"/": {"bytes": <unpadded base64>}}`, so every link in the graph resolves.

        Raises:
            NotFoundError: `cid` is unknown to the store.
            TransportError: The store is unreachable.
        """
        ...

    @abstractmethod
    async def put_binary(self, data: bytes, media_type: str) -> ContentId:
        """Store raw attachment bytes (pinned). Idempotent."""
        ...
