"""Chain value objects."""

from typing import Any

from eacchain.domain.shared.model.cid import ContentId
from eacchain.domain.shared.model.value import ValueObject

PARENT_FIELD = "parent"


class Identity(ValueObject):
    """Keypair bound 1:1 to a chain name; `id` is the published pointer name."""

    name: str
    id: str


class ChainBlock(ValueObject):
    """One stored block: payload fields plus the parent link (None at depth 0)."""

    cid: ContentId
    payload: dict[str, Any]
    parent: ContentId | None = None


class AppendResult(ValueObject):
    """Outcome of ChainRegistry.append."""

    name: str
    updated: bool
    head: ContentId
    previous: ContentId | None = None
