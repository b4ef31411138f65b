"""Record - immutable normalized row stored in the content-addressed graph."""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from types import MappingProxyType
from typing import Any

from pydantic import field_validator

from eacchain.domain.shared.model.cid import LINK_KEY, ContentId
from eacchain.domain.shared.model.value import ValueObject

# Ordered children of a parent record, in source row order.
LinkSet = tuple[ContentId, ...]

EMPTY_LINKSET: LinkSet = ()


class Skip(Enum):
    """Marker returned instead of a Record for structurally empty rows."""

    SKIP = "skip"


SKIP = Skip.SKIP


class Record(ValueObject):
    """An immutable mapping of field name to scalar, link, LinkSet or keyed links.

    `kind` names the business entity (contract, demand, order, ...) for logs and
    errors only; it is not part of the stored value.
    """

    kind: str
    data: Mapping[str, Any]

    @field_validator("data", mode="after")
    @classmethod
    def _freeze(cls, value: Mapping[str, Any]) -> Mapping[str, Any]:
        return MappingProxyType(dict(value))

    def __getitem__(self, name: str) -> Any:
        return self.data[name]

    def __contains__(self, name: object) -> bool:
        return name in self.data

    def get(self, name: str, default: Any = None) -> Any:
        return self.data.get(name, default)

    def keys(self) -> list[str]:
        return list(self.data)

    def with_fields(self, **updates: Any) -> Record:
        """Return a new Record with `updates` applied; field order is kept, new fields go last."""
        return Record(kind=self.kind, data={**self.data, **updates})

    def to_ipld(self) -> dict[str, Any]:
        return to_ipld(self.data)


def to_ipld(value: Any) -> Any:
    """Convert a value tree into its storable form (links as {"/": cid}, tuples as lists)."""
    if isinstance(value, ContentId):
        return value.link()
    if isinstance(value, Record):
        return value.to_ipld()
    if isinstance(value, Mapping):
        return {str(k): to_ipld(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_ipld(v) for v in value]
    return value


def from_ipld(value: Any) -> Any:
    """Inverse of `to_ipld`: restore ContentId links; arrays of links become LinkSets."""
    if ContentId.is_link(value):
        return ContentId(value[LINK_KEY])
    if isinstance(value, dict):
        return {k: from_ipld(v) for k, v in value.items()}
    if isinstance(value, list):
        items = [from_ipld(v) for v in value]
        if items and all(isinstance(v, ContentId) for v in items):
            return tuple(items)
        return items
    return value
