"""Chain inspection commands."""

import asyncio
import sys
from pathlib import Path

import cyclopts
from dishka import AsyncContainer

from eacchain.cli.console import get_console
from eacchain.cli.util.runtime import load_config, setup, with_container
from eacchain.domain.chain.service.registry import ChainRegistry
from eacchain.domain.shared.error import EACError

app = cyclopts.App(name="chain", help="Inspect published chains")


@app.command
def resolve(name: str, *, config: Path | None = None) -> None:
    """Print the current head of a chain.

    Args:
        name: Chain name (e.g. transactions, deliveries, chains).
        config: YAML config file.
    """
    settings = load_config(config)
    setup(settings)

    async def _resolve(container: AsyncContainer):
        registry = await container.get(ChainRegistry)
        return await registry.resolve(name)

    console = get_console()
    try:
        head = asyncio.run(with_container(settings, _resolve))
    except EACError as e:
        console.error(f"Could not resolve '{name}': {e.message}")
        sys.exit(1)

    if head is None:
        console.warning(f"Chain '{name}' has not been published")
        sys.exit(1)
    console.print(str(head))


@app.command
def history(name: str, *, limit: int = 10, config: Path | None = None) -> None:
    """Show the blocks of a chain from the head backwards.

    Args:
        name: Chain name.
        limit: Maximum number of blocks to show.
        config: YAML config file.
    """
    settings = load_config(config)
    setup(settings)

    async def _history(container: AsyncContainer):
        registry = await container.get(ChainRegistry)
        return await registry.history(name, limit=limit)

    console = get_console()
    try:
        blocks = asyncio.run(with_container(settings, _history))
    except EACError as e:
        console.error(f"Could not read chain '{name}': {e.message}")
        sys.exit(1)
    console.chain_history(name, blocks)
