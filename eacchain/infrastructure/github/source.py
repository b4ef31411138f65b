"""GitHub adapter for the SourceRowProvider port."""

import logging
import mimetypes

from eacchain.domain.ingest.model.value import GroupKind, SourceGroup
from eacchain.domain.ingest.port.source import Row, SourceRowProvider
from eacchain.domain.record.service.document_cache import Attachment
from eacchain.domain.shared.error import FetchError, NotFoundError, TransportError
from eacchain.infrastructure.github.client import GitHubRepository
from eacchain.infrastructure.shared.tabular import parse_csv

logger = logging.getLogger(__name__)


class GitHubSourceProvider(SourceRowProvider):
    """Groups are top-level folders of the repository; tables are CSV files in them."""

    def __init__(self, repository: GitHubRepository) -> None:
        self._repo = repository

    async def list_groups(self, kind: GroupKind) -> list[SourceGroup]:
        try:
            entries = await self._repo.list_contents()
        except NotFoundError as e:
            raise TransportError(
                f"Repository {self._repo.owner}/{self._repo.repo} not found"
            ) from e
        groups = [
            SourceGroup(name=entry["name"], kind=kind, path=entry["path"])
            for entry in entries
            if entry.get("type") == "dir" and kind.marker in entry["name"]
        ]
        logger.info(f"Found {len(groups)} {kind.value} groups in {self._repo.owner}/{self._repo.repo}")
        return groups

    async def list_files(self, group: SourceGroup) -> list[str]:
        try:
            entries = await self._repo.list_contents(group.location)
        except (NotFoundError, TransportError) as e:
            raise FetchError(f"Could not list '{group.location}': {e.message}") from e
        return [entry["name"] for entry in entries if entry.get("type") == "file"]

    async def read_table(self, group: SourceGroup, file_name: str) -> list[Row]:
        url = self._repo.raw_file_url(f"{group.location}/{file_name}")
        try:
            response = await self._repo.download(url)
        except (NotFoundError, TransportError) as e:
            raise FetchError(f"Could not download '{file_name}': {e.message}") from e
        rows = parse_csv(response.text)
        logger.debug(f"Read {len(rows)} rows from {group.location}/{file_name}")
        return rows

    def attachment_reference(self, group: SourceGroup, name: str) -> str:
        """Absolute URLs as-is, otherwise the raw URL of a file in the group folder."""
        if name.startswith(("http://", "https://")):
            return name
        return self._repo.raw_file_url(f"{group.location}/{name}")

    async def fetch_attachment(self, group: SourceGroup, name: str) -> Attachment:
        url = self.attachment_reference(group, name)
        try:
            response = await self._repo.download(url)
        except (NotFoundError, TransportError) as e:
            raise FetchError(f"Could not download attachment '{name}': {e.message}") from e

        media_type = response.headers.get("content-type", "").split(";")[0].strip()
        if not media_type or media_type in ("text/plain", "application/octet-stream"):
            media_type = mimetypes.guess_type(name)[0] or "application/octet-stream"
        return Attachment(name=name, data=response.content, media_type=media_type)
