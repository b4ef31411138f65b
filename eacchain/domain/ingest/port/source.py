"""Ports for reading source tables and writing results back."""

from abc import abstractmethod
from typing import Any, Protocol

from eacchain.domain.ingest.model.value import GroupKind, SourceGroup
from eacchain.domain.record.service.document_cache import Attachment
from eacchain.domain.shared.port import Port

Row = dict[str, Any]


class SourceRowProvider(Port, Protocol):
    """Yields source groups, their tables as raw rows, and attachment bytes."""

    @abstractmethod
    async def list_groups(self, kind: GroupKind) -> list[SourceGroup]:
        """Groups whose name carries the kind's marker, in listing order.

        Raises:
            TransportError: The backing store could not be listed.
        """
        ...

    @abstractmethod
    async def list_files(self, group: SourceGroup) -> list[str]:
        """File names directly inside the group. Raises FetchError."""
        ...

    @abstractmethod
    async def read_table(self, group: SourceGroup, file_name: str) -> list[Row]:
        """Rows of a CSV table inside the group. Raises FetchError."""
        ...

    @abstractmethod
    async def fetch_attachment(self, group: SourceGroup, name: str) -> Attachment:
        """Raw bytes of an attachment named by a row (file in the group, or a URL)."""
        ...

    @abstractmethod
    def attachment_reference(self, group: SourceGroup, name: str) -> str:
        """Location `fetch_attachment` would read `name` from; unique across groups."""
        ...


class ResultSink(Port, Protocol):
    """Accepts updated tables for round-tripping into the source's backing store."""

    @abstractmethod
    async def write_table(self, group: SourceGroup, file_name: str, rows: list[Row]) -> None:
        """Raises TransportError if the table could not be written."""
        ...
