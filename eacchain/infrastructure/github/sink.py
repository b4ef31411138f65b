"""GitHub adapter for the ResultSink port: commits updated tables through the contents API."""

import base64
import logging

from eacchain.domain.ingest.model.value import SourceGroup
from eacchain.domain.ingest.port.source import ResultSink, Row
from eacchain.domain.shared.error import ConfigurationError
from eacchain.infrastructure.github.client import GitHubRepository
from eacchain.infrastructure.shared.tabular import encode_csv

logger = logging.getLogger(__name__)


class GitHubResultSink(ResultSink):
    def __init__(self, repository: GitHubRepository, committer: str = "eacchain") -> None:
        self._repo = repository
        self._committer = committer

    async def write_table(self, group: SourceGroup, file_name: str, rows: list[Row]) -> None:
        if not self._repo.token:
            raise ConfigurationError("Writing back to GitHub requires source.token")

        path = f"{group.location}/{file_name}"
        sha = await self._repo.file_sha(path)
        body = {
            "message": f"{self._committer}: update {file_name}",
            "content": base64.b64encode(encode_csv(rows).encode("utf-8")).decode("ascii"),
            "branch": self._repo.branch,
        }
        if sha is not None:
            body["sha"] = sha
        await self._repo.request("PUT", self._repo.contents_url(path), json=body)
        logger.info(f"Committed {path} ({len(rows)} rows)")
