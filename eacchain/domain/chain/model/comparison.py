"""Named strategies for deciding whether a candidate payload changes a chain."""

from abc import ABC, abstractmethod
from typing import Any

from eacchain.domain.record.model.record import to_ipld

_MISSING = object()


class ComparisonStrategy(ABC):
    """Compares the head block's payload (parent stripped) with a candidate payload."""

    name: str

    @abstractmethod
    def equal(self, head: dict[str, Any], candidate: dict[str, Any]) -> bool: ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name})"


class FullPayload(ComparisonStrategy):
    """Structural equality of every payload field."""

    name = "full-payload"

    def equal(self, head: dict[str, Any], candidate: dict[str, Any]) -> bool:
        return to_ipld(head) == to_ipld(candidate)


class FieldEquality(ComparisonStrategy):
    """Equality of a single designated field; other fields are ignored."""

    def __init__(self, field: str) -> None:
        self.field = field
        self.name = f"field:{field}"

    def equal(self, head: dict[str, Any], candidate: dict[str, Any]) -> bool:
        return to_ipld(head.get(self.field, _MISSING)) == to_ipld(
            candidate.get(self.field, _MISSING)
        )


FULL_PAYLOAD = FullPayload()
