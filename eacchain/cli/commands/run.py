"""Batch ingestion command."""

import asyncio
import sys
from pathlib import Path

import cyclopts
from dishka import AsyncContainer

from eacchain.cli.console import get_console
from eacchain.cli.util.runtime import load_config, setup, with_container
from eacchain.domain.ingest.model.value import BatchReport, GroupErrorPolicy
from eacchain.domain.ingest.service.ingest import IngestService
from eacchain.domain.shared.error import EACError

app = cyclopts.App(name="run", help="Ingest source groups and update chains")


async def _execute(container: AsyncContainer) -> BatchReport:
    async with container() as run_scope:
        service = await run_scope.get(IngestService)
        return await service.run()


@app.default
def run(
    *,
    config: Path | None = None,
    write_back: bool | None = None,
    abort_on_error: bool = False,
) -> None:
    """Run one ingestion batch.

    Args:
        config: YAML config file (overrides EAC_CONFIG_FILE).
        write_back: Write order cids back into the contracts tables.
        abort_on_error: Stop at the first failing group instead of skipping it.
    """
    settings = load_config(config)
    if write_back is not None:
        settings.batch.write_back = write_back
    if abort_on_error:
        settings.batch.on_group_error = GroupErrorPolicy.ABORT
    setup(settings)

    console = get_console()
    try:
        with console.status("Ingesting..."):
            report = asyncio.run(with_container(settings, _execute))
    except EACError as e:
        console.error(f"Run failed: {e.message}", hint=f"[{e.code}]")
        sys.exit(1)

    console.batch_report(report)
    if report.aborted:
        sys.exit(1)
