"""Main CLI application using Cyclopts."""

import cyclopts

from eacchain import __version__
from eacchain.cli.commands import chain, config, run

app = cyclopts.App(
    name="eacchain",
    help="Versioned content-addressed records for energy attribute certificates",
    version=__version__,
)

app.command(run.app, name="run")
app.command(chain.app, name="chain")
app.command(config.app, name="config")
