"""Content identifiers and the IPLD link form used to embed them in stored objects."""

from __future__ import annotations

import re
from typing import Any, ClassVar

from pydantic import field_validator

from eacchain.domain.shared.model.value import RootValueObject

# Key of the IPLD link object: {"/": "<cid>"}
LINK_KEY = "/"


class ContentId(RootValueObject[str]):
    """Deterministic identifier of a stored immutable value.

    Opaque to the engine: IPFS CIDs (``bafy...``) and local digests
    (``sha256-<hex>``) are both valid.
    """

    _re: ClassVar[re.Pattern] = re.compile(r"^[A-Za-z0-9\-_]{8,128}$")

    @field_validator("root")
    @classmethod
    def _validate(cls, v: str) -> str:
        v = v.strip()
        if v.startswith("/ipfs/"):
            v = v[len("/ipfs/") :]
        if not cls._re.match(v):
            raise ValueError(f"invalid ContentId: {v!r}")
        return v

    @classmethod
    def parse(cls, value: str) -> ContentId:
        return cls.model_validate(value)

    def link(self) -> dict[str, str]:
        """IPLD link form for embedding in a stored object."""
        return {LINK_KEY: self.root}

    @staticmethod
    def is_link(value: Any) -> bool:
        return (
            isinstance(value, dict)
            and len(value) == 1
            and LINK_KEY in value
            and isinstance(value[LINK_KEY], str)
        )

    def __str__(self) -> str:
        return self.root
