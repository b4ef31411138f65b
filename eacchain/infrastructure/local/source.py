"""Directory adapters for the SourceRowProvider and ResultSink ports.

Mirrors the repository layout on disk:
    <root>/
        <prefix>_transaction_<n>/
            <group>_step2_orderSupply.csv
            <group>_step3_match.csv
        <prefix>_attestation_<n>/
            <group>_step5_redemption_data.csv
            <group>_step6_generationRecords.csv
            <attachment files>
"""

import logging
import mimetypes
from pathlib import Path

from eacchain.domain.ingest.model.value import GroupKind, SourceGroup
from eacchain.domain.ingest.port.source import ResultSink, Row, SourceRowProvider
from eacchain.domain.record.service.document_cache import Attachment
from eacchain.domain.shared.error import FetchError, TransportError
from eacchain.infrastructure.shared.tabular import encode_csv, parse_csv

logger = logging.getLogger(__name__)


class DirectorySourceProvider(SourceRowProvider):
    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).expanduser()

    async def list_groups(self, kind: GroupKind) -> list[SourceGroup]:
        if not self.root.is_dir():
            raise TransportError(f"Source directory not found: {self.root}")
        return [
            SourceGroup(name=path.name, kind=kind, path=path.name)
            for path in sorted(self.root.iterdir())
            if path.is_dir() and kind.marker in path.name
        ]

    async def list_files(self, group: SourceGroup) -> list[str]:
        folder = self.root / group.location
        if not folder.is_dir():
            raise FetchError(f"Group folder not found: {folder}")
        return sorted(p.name for p in folder.iterdir() if p.is_file())

    async def read_table(self, group: SourceGroup, file_name: str) -> list[Row]:
        target = self.root / group.location / file_name
        try:
            text = target.read_text(encoding="utf-8")
        except OSError as e:
            raise FetchError(f"Could not read {target}: {e}") from e
        return parse_csv(text)

    def attachment_reference(self, group: SourceGroup, name: str) -> str:
        return str(self.root / group.location / name)

    async def fetch_attachment(self, group: SourceGroup, name: str) -> Attachment:
        target = self.root / group.location / name
        try:
            data = target.read_bytes()
        except OSError as e:
            raise FetchError(f"Could not read attachment {target}: {e}") from e
        media_type = mimetypes.guess_type(name)[0] or "application/octet-stream"
        return Attachment(name=name, data=data, media_type=media_type)


class DirectoryResultSink(ResultSink):
    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).expanduser()

    async def write_table(self, group: SourceGroup, file_name: str, rows: list[Row]) -> None:
        target = self.root / group.location / file_name
        tmp = target.with_suffix(target.suffix + ".tmp")
        try:
            tmp.write_text(encode_csv(rows), encoding="utf-8")
            tmp.replace(target)
        except OSError as e:
            raise TransportError(f"Could not write {target}: {e}") from e
        logger.info(f"Wrote {len(rows)} rows to {target}")
