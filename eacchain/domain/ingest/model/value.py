"""Ingest run value objects: source groups, file conventions, policy, and the report."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from eacchain.domain.chain.model.value import AppendResult
from eacchain.domain.shared.model.cid import ContentId
from eacchain.domain.shared.model.value import ValueObject


class GroupKind(StrEnum):
    """Kind of source folder; the value is the marker in the folder name."""

    TRANSACTION = "transaction"
    ATTESTATION = "attestation"

    @property
    def marker(self) -> str:
        return f"_{self.value}_"


class SourceGroup(ValueObject):
    """A named collection of related source tables (one folder)."""

    name: str
    kind: GroupKind
    path: str | None = None  # location in the backing store, defaults to name

    @property
    def location(self) -> str:
        return self.path or self.name


class FileConvention(ValueObject):
    """Expected file names inside a group: `<group><suffix>`."""

    parent_suffix: str
    child_suffix: str

    def parent_file(self, group: str) -> str:
        return f"{group}{self.parent_suffix}"

    def child_file(self, group: str) -> str:
        return f"{group}{self.child_suffix}"


class GroupErrorPolicy(StrEnum):
    SKIP = "skip"  # log, report the group as skipped, continue
    ABORT = "abort"  # stop processing further groups


class BatchPolicy(ValueObject):
    """How a run reacts to per-group failures and transient transport errors."""

    on_group_error: GroupErrorPolicy = GroupErrorPolicy.SKIP
    partial_aggregate: bool = True
    retry_attempts: int = 2
    retry_backoff: float = 1.0
    write_back: bool = False
    write_back_column: str = "order_cid"


class ChainNames(ValueObject):
    """Names of the run-level chains."""

    transactions: str = "transactions"
    deliveries: str = "deliveries"
    directory: str = "chains"


class GroupStatus(StrEnum):
    PROCESSED = "processed"
    SKIPPED = "skipped"


class GroupOutcome(ValueObject):
    """Result of processing one source group."""

    group: str
    kind: GroupKind
    status: GroupStatus
    aggregate: ContentId | None = None
    records: int = 0
    children: int = 0
    skipped_rows: int = 0
    reason: str | None = None


class ChainStatus(StrEnum):
    ADVANCED = "advanced"
    UNCHANGED = "unchanged"


class ChainUpdate(ValueObject):
    """Result of one chain append during a run."""

    name: str
    status: ChainStatus
    head: ContentId
    previous: ContentId | None = None

    @classmethod
    def from_result(cls, result: AppendResult) -> "ChainUpdate":
        return cls(
            name=result.name,
            status=ChainStatus.ADVANCED if result.updated else ChainStatus.UNCHANGED,
            head=result.head,
            previous=result.previous,
        )


@dataclass
class BatchReport:
    """Per-group outcomes and per-chain updates of one run."""

    started_at: datetime
    completed_at: datetime | None = None
    groups: list[GroupOutcome] = field(default_factory=list)
    chains: list[ChainUpdate] = field(default_factory=list)
    attachments_fetched: int = 0
    aborted: bool = False

    @property
    def processed(self) -> list[GroupOutcome]:
        return [g for g in self.groups if g.status is GroupStatus.PROCESSED]

    @property
    def skipped(self) -> list[GroupOutcome]:
        return [g for g in self.groups if g.status is GroupStatus.SKIPPED]

    @property
    def advanced(self) -> list[ChainUpdate]:
        return [c for c in self.chains if c.status is ChainStatus.ADVANCED]

    def chain(self, name: str) -> ChainUpdate | None:
        """Last update recorded for `name` in this run."""
        for update in reversed(self.chains):
            if update.name == name:
                return update
        return None
