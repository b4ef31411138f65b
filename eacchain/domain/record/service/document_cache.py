"""DocumentCache - per-run deduplication of binary attachments."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import field

from eacchain.domain.record.port.content_store import ContentStore
from eacchain.domain.shared.error import EACError, FetchError, MissingAttachmentError
from eacchain.domain.shared.model.cid import ContentId
from eacchain.domain.shared.model.value import ValueObject
from eacchain.domain.shared.service import Service

logger = logging.getLogger(__name__)


class Attachment(ValueObject):
    """Raw attachment bytes as returned by a fetcher."""

    name: str
    data: bytes
    media_type: str = "application/octet-stream"


AttachmentFetcher = Callable[[str], Awaitable[Attachment]]

# Maps an attachment name to a reference unique within the run (path or URL)
AttachmentReference = Callable[[str], str]


class DocumentCache(Service):
    """Maps attachment references to content ids for the duration of one run.

    Bare names are only unique inside one source group, so callers pass the
    resolved reference (group path or URL) as the cache key. Not persisted:
    every run re-derives entries and relies on put_binary idempotence to avoid
    duplicate storage across runs.
    """

    store: ContentStore
    _entries: dict[str, ContentId] = field(default_factory=dict)
    fetch_count: int = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, reference: object) -> bool:
        return reference in self._entries

    async def get_or_fetch(
        self,
        name: str | None,
        fetcher: AttachmentFetcher,
        reference: AttachmentReference | None = None,
    ) -> ContentId:
        """Return the content id for `name`, fetching and storing it on first use.

        `reference` maps the name to the cache key; the name itself by default.

        Raises:
            MissingAttachmentError: `name` is empty or absent.
            FetchError: The fetcher could not retrieve the bytes.
        """
        if name is None or not str(name).strip():
            raise MissingAttachmentError("Record references an attachment with no name")
        name = str(name).strip()
        key = reference(name) if reference is not None else name

        cached = self._entries.get(key)
        if cached is not None:
            logger.debug(f"Attachment cache hit: {key} -> {cached}")
            return cached

        try:
            attachment = await fetcher(name)
        except FetchError:
            raise
        except EACError as e:
            raise FetchError(f"Could not fetch attachment '{name}': {e.message}") from e
        self.fetch_count += 1

        cid = await self.store.put_binary(attachment.data, attachment.media_type)
        self._entries[key] = cid
        logger.info(f"Stored attachment {key} ({len(attachment.data)} bytes) as {cid}")
        return cid
