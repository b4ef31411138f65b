"""Error hierarchy for eacchain.

Error layers:
- EACError: Base class for all eacchain errors
- DomainError: Source data or graph invariants violated (skip the group, or fatal for a chain)
- InfrastructureError: Store, name service, key store or network failures

The batch driver decides per layer whether a failure skips one group or aborts the run.
"""


class EACError(Exception):
    """Base class for all eacchain errors."""

    def __init__(self, message: str, code: str | None = None) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(message)


# =============================================================================
# Domain Errors
# =============================================================================


class DomainError(EACError):
    """Base class for domain errors."""


class NotFoundError(DomainError):
    """Referenced content id or chain block does not resolve."""


class ValidationError(DomainError):
    """Source data violates a structural expectation."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        group: str | None = None,
        code: str = "VALIDATION_ERROR",
    ) -> None:
        super().__init__(message, code=code)
        self.field = field
        self.group = group


class MissingAttachmentError(ValidationError):
    """A record references an attachment with an empty or absent name."""

    def __init__(self, message: str, field: str | None = None, group: str | None = None) -> None:
        super().__init__(message, field=field, group=group, code="MISSING_ATTACHMENT")


class IntegrityError(DomainError):
    """A stored chain violates the append-only parent-link invariant."""


# =============================================================================
# Infrastructure Errors
# =============================================================================


class InfrastructureError(EACError):
    """Base class for infrastructure/system errors."""


class TransportError(InfrastructureError):
    """Network or storage node unreachable, or a non-success response."""


class FetchError(TransportError):
    """Source rows or an attachment could not be retrieved for one group."""


class KeyStoreError(InfrastructureError):
    """Identity creation or lookup failed."""


class ConfigurationError(InfrastructureError):
    """System misconfiguration detected."""
