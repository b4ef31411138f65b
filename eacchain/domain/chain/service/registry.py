"""ChainRegistry - single-writer, append-only chains behind mutable named pointers."""

import logging
from dataclasses import field
from typing import Any

import logfire

from eacchain.domain.chain.model.comparison import FULL_PAYLOAD, ComparisonStrategy
from eacchain.domain.chain.model.value import PARENT_FIELD, AppendResult, ChainBlock, Identity
from eacchain.domain.chain.port.name_service import NameService
from eacchain.domain.record.model.record import to_ipld
from eacchain.domain.record.port.content_store import ContentStore
from eacchain.domain.shared.error import IntegrityError, TransportError
from eacchain.domain.shared.model.cid import ContentId
from eacchain.domain.shared.service import Service

logger = logging.getLogger(__name__)

DEFAULT_LIFETIME = "87600h"  # ten years


class ChainRegistry(Service):
    """Manages one pointer per chain name: Absent -> Published.

    Assumes exactly one writer per chain name. TransportError and KeyStoreError
    propagate to the caller; retry policy belongs to the batch driver.
    """

    store: ContentStore
    names: NameService
    lifetime: str = DEFAULT_LIFETIME
    key_type: str = "ed25519"
    _identities: dict[str, Identity] = field(default_factory=dict)
    _unpublished: set[str] = field(default_factory=set)  # identities generated here, no block yet

    async def ensure_identity(self, name: str) -> Identity:
        """Return the identity for `name`, creating it on first use."""
        identity = await self._find_identity(name)
        if identity is not None:
            return identity

        identity = await self.names.generate_identity(name, self.key_type)
        self._identities[name] = identity
        self._unpublished.add(name)
        logfire.info("Created chain identity", chain=name, identity=identity.id)
        return identity

    async def resolve(self, name: str) -> ContentId | None:
        """Currently published head of `name`, or None if the chain was never published."""
        identity = await self._find_identity(name)
        if identity is None:
            return None
        return await self.names.resolve(identity)

    async def head_block(self, name: str) -> ChainBlock | None:
        head = await self.resolve(name)
        if head is None:
            return None
        return await self.get_block(head)

    async def get_block(self, cid: ContentId) -> ChainBlock:
        stored = await self.store.get(cid)
        parent = stored.get(PARENT_FIELD)
        if parent is not None and not isinstance(parent, ContentId):
            raise IntegrityError(f"Block {cid} has a malformed parent link: {parent!r}")
        payload = {k: v for k, v in stored.items() if k != PARENT_FIELD}
        return ChainBlock(cid=cid, payload=payload, parent=parent)

    async def append(
        self,
        name: str,
        payload: dict[str, Any],
        strategy: ComparisonStrategy = FULL_PAYLOAD,
    ) -> AppendResult:
        """Append `payload` as a new block unless it equals the head under `strategy`.

        Idempotent: repeating an append with unchanged content performs no store
        write and no republish. Only an identity generated by this registry may
        start a chain; a pre-existing identity whose pointer no longer resolves
        is an error, never a new first block.

        Raises:
            TransportError: The pointer of an existing chain did not resolve.
        """
        candidate = {k: v for k, v in payload.items() if k != PARENT_FIELD}

        with logfire.span("ChainAppend {chain}", chain=name, strategy=strategy.name):
            identity = await self.ensure_identity(name)
            head = await self.names.resolve(identity)

            if head is None:
                if name not in self._unpublished:
                    raise TransportError(
                        f"Chain '{name}' ({identity.id}) exists but its pointer did not "
                        "resolve; refusing to start a second first block"
                    )
                new_head = await self._write_block(identity, candidate, parent=None)
                self._unpublished.discard(name)
                logger.info(f"Chain '{name}' published first block {new_head}")
                return AppendResult(name=name, updated=True, head=new_head, previous=None)

            current = await self.get_block(head)
            if strategy.equal(current.payload, candidate):
                logger.info(f"Chain '{name}' unchanged at {head} ({strategy.name})")
                return AppendResult(name=name, updated=False, head=head, previous=head)

            new_head = await self._write_block(identity, candidate, parent=head)
            logger.info(f"Chain '{name}' advanced {head} -> {new_head}")
            return AppendResult(name=name, updated=True, head=new_head, previous=head)

    async def history(self, name: str, limit: int | None = None) -> list[ChainBlock]:
        """Blocks from the head back towards the first block (parent None).

        Raises:
            IntegrityError: The parent links form a cycle.
        """
        blocks: list[ChainBlock] = []
        cid = await self.resolve(name)
        seen: set[str] = set()
        while cid is not None:
            if limit is not None and len(blocks) >= limit:
                break
            if cid.root in seen:
                raise IntegrityError(f"Chain '{name}' has a parent cycle at {cid}")
            seen.add(cid.root)
            block = await self.get_block(cid)
            blocks.append(block)
            cid = block.parent
        return blocks

    async def _write_block(
        self, identity: Identity, candidate: dict[str, Any], parent: ContentId | None
    ) -> ContentId:
        block = {**candidate, PARENT_FIELD: parent}
        cid = await self.store.put(to_ipld(block))
        await self.names.publish(identity, cid, self.lifetime)
        return cid

    async def _find_identity(self, name: str) -> Identity | None:
        cached = self._identities.get(name)
        if cached is not None:
            return cached
        for identity in await self.names.list_identities():
            if identity.name == name:
                self._identities[name] = identity
                return identity
        return None
