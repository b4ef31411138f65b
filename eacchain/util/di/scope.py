"""Custom Dishka scopes for eacchain."""

from dishka import BaseScope, new_scope


class Scope(BaseScope):  # type: ignore[misc]  # BaseScope is designed to be subclassed
    """eacchain dependency injection scopes.

    Hierarchy: APP -> RUN

    - APP: Process lifetime (HTTP clients, stores, name services)
    - RUN: One batch run or CLI command
    """

    APP = new_scope("APP")
    RUN = new_scope("RUN")
