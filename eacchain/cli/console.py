"""Console output for the CLI.

Provides a Console class that wraps rich for consistent output.
All CLI output should go through this module.
"""

from typing import Any

from rich.console import Console as RichConsole
from rich.table import Table

from eacchain.domain.chain.model.value import ChainBlock
from eacchain.domain.ingest.model.value import BatchReport, ChainStatus, GroupStatus


def short_cid(cid: Any, width: int = 16) -> str:
    """Abbreviate a content id for tables ("bafyrei...x4kq")."""
    text = str(cid)
    if len(text) <= width:
        return text
    return f"{text[: width - 6]}...{text[-4:]}"


class Console:
    """CLI output manager wrapping rich."""

    def __init__(
        self,
        *,
        force_terminal: bool | None = None,
    ) -> None:
        self._console = RichConsole(force_terminal=force_terminal, stderr=False)
        self._err_console = RichConsole(force_terminal=force_terminal, stderr=True)

    # -------------------------------------------------------------------------
    # Status messages
    # -------------------------------------------------------------------------

    def success(self, message: str) -> None:
        self._console.print(f"[green]✓[/green] {message}")

    def error(self, message: str, *, hint: str | None = None) -> None:
        """Print an error message to stderr."""
        self._err_console.print(f"[red]✗[/red] {message}")
        if hint:
            self._err_console.print(f"  [dim]{hint}[/dim]")

    def warning(self, message: str) -> None:
        self._console.print(f"[yellow]⚠[/yellow] {message}")

    # -------------------------------------------------------------------------
    # Structured output
    # -------------------------------------------------------------------------

    def print(self, *args: Any, **kwargs: Any) -> None:
        self._console.print(*args, **kwargs)

    def table(
        self,
        rows: list[dict[str, Any]],
        columns: list[tuple[str, str]],  # (key, header)
        *,
        title: str | None = None,
    ) -> None:
        table = Table(title=title, show_header=True, header_style="bold")
        for _, header in columns:
            table.add_column(header)
        for row in rows:
            table.add_row(*[str(row.get(key, "")) for key, _ in columns])
        self._console.print(table)

    # -------------------------------------------------------------------------
    # Batch reports and chains
    # -------------------------------------------------------------------------

    def batch_report(self, report: BatchReport) -> None:
        """Print per-group outcomes and per-chain updates of a run."""
        if report.groups:
            self.table(
                [
                    {
                        "group": g.group,
                        "kind": g.kind.value,
                        "status": _status(g.status),
                        "detail": short_cid(g.aggregate) if g.aggregate else g.reason or "",
                    }
                    for g in report.groups
                ],
                [("group", "Group"), ("kind", "Kind"), ("status", "Status"), ("detail", "Aggregate / reason")],
                title="Groups",
            )
        else:
            self.warning("No source groups found")

        if report.chains:
            self.table(
                [
                    {
                        "name": short_cid(c.name, 24),
                        "status": _status(c.status),
                        "head": short_cid(c.head),
                    }
                    for c in report.chains
                ],
                [("name", "Chain"), ("status", "Status"), ("head", "Head")],
                title="Chains",
            )

        summary = (
            f"{len(report.processed)} processed, {len(report.skipped)} skipped, "
            f"{len(report.advanced)} chains advanced, "
            f"{report.attachments_fetched} attachments fetched"
        )
        if report.aborted:
            self.error(f"Run aborted after a group failure ({summary})")
        elif report.skipped:
            self.warning(summary)
        else:
            self.success(summary)

    def chain_history(self, name: str, blocks: list[ChainBlock]) -> None:
        if not blocks:
            self.warning(f"Chain '{name}' has not been published")
            return
        # A truncated walk stops short of the root, so depths are unknown.
        complete = blocks[-1].parent is None
        self.table(
            [
                {
                    "position": len(blocks) - i - 1 if complete else f"head~{i}",
                    "cid": str(block.cid),
                    "parent": str(block.parent) if block.parent else "-",
                    "fields": ", ".join(sorted(block.payload)),
                }
                for i, block in enumerate(blocks)
            ],
            [
                ("position", "Depth" if complete else "From head"),
                ("cid", "Block"),
                ("parent", "Parent"),
                ("fields", "Fields"),
            ],
            title=f"Chain '{name}'" if complete else f"Chain '{name}' (latest {len(blocks)})",
        )

    def status(self, message: str):
        """Return a status context manager for long operations."""
        return self._console.status(message)


def _status(status: GroupStatus | ChainStatus) -> str:
    color = {
        GroupStatus.PROCESSED: "green",
        GroupStatus.SKIPPED: "yellow",
        ChainStatus.ADVANCED: "green",
        ChainStatus.UNCHANGED: "dim",
    }[status]
    return f"[{color}]{status.value}[/{color}]"


# Module-level default instance for convenience
_default: Console | None = None


def get_console() -> Console:
    """Get the default console instance."""
    global _default
    if _default is None:
        _default = Console()
    return _default
