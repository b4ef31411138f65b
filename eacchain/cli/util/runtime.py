"""Shared startup for CLI commands: config loading, logging, container lifecycle."""

import os
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TypeVar

import logfire
from dishka import AsyncContainer

from eacchain.application.di import create_container
from eacchain.config import Config, configure_logging

T = TypeVar("T")


def load_config(path: Path | None = None) -> Config:
    """Build the effective Config, optionally from a YAML file."""
    if path is not None:
        os.environ["EAC_CONFIG_FILE"] = str(path)
    return Config()  # type: ignore[call-arg]


def setup(config: Config) -> None:
    configure_logging(config.logging)
    # Inert unless LOGFIRE_TOKEN is set
    logfire.configure(service_name="eacchain", send_to_logfire="if-token-present", console=False)


async def with_container(config: Config, func: Callable[[AsyncContainer], Awaitable[T]]) -> T:
    """Run `func` against a fresh container and close it afterwards."""
    container = create_container(config)
    try:
        return await func(container)
    finally:
        await container.close()
