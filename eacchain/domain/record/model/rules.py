"""Normalization rules and hierarchy shapes for source tables."""

from enum import StrEnum

from pydantic import Field

from eacchain.domain.shared.model.value import ValueObject


class RenameRule(ValueObject):
    """Named compatibility rule mapping a legacy column onto the expected one.

    Applied only when `source` is present and `target` is absent in the row.
    """

    name: str  # e.g. "legacy-tranche-id"
    source: str
    target: str


class NormalizationRules(ValueObject):
    """Per-table rules consumed by the RecordNormalizer."""

    key_field: str  # primary business key; rows without it are skipped
    redact: frozenset[str] = frozenset()  # workflow/status columns, never stored
    numeric: frozenset[str] = frozenset()  # "1,250.5" -> 1250.5
    dates: frozenset[str] = frozenset()  # normalized to ISO-8601
    renames: tuple[RenameRule, ...] = ()


class ChildDefault(StrEnum):
    """What a parent stores when no child row matched its key."""

    EMPTY = "empty"  # empty LinkSet
    NULL = "null"  # explicit null marker


class HierarchySpec(ValueObject):
    """Shape of one parent -> children link level."""

    parent_kind: str
    child_kind: str
    parent_key: str  # business key on the parent rows (e.g. contract_id)
    child_parent_key: str  # column on child rows that references the parent
    child_key: str  # business key of child rows (e.g. allocation_id)
    children_field: str  # field on the parent holding the LinkSet (e.g. demands)
    missing_children: ChildDefault = ChildDefault.EMPTY
    parent_rules: NormalizationRules
    child_rules: NormalizationRules
    attachment_field: str | None = None  # parent column naming an attachment
    attachment_link_field: str = Field(default="attestation_document")
