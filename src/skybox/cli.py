"""skybox CLI — edit one project tree from many machines."""

from __future__ import annotations

from typing import Annotated

import typer

from skybox import __version__
from skybox.utils.console import configure_logging

app = typer.Typer(
    name="skybox",
    help="Mirror remote project trees locally, with remote locks and ownership so only one machine works on a tree at a time.",
    no_args_is_help=True,
)

# Sub-command groups
remote_app = typer.Typer(help="Manage remotes", no_args_is_help=True)
config_app = typer.Typer(help="Configuration utilities", no_args_is_help=True)

app.add_typer(remote_app, name="remote")
app.add_typer(config_app, name="config")


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"skybox {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option("--version", "-V", callback=version_callback, is_eager=True),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log remote commands and sync engine calls"),
    ] = False,
) -> None:
    """skybox — multi-machine project sync."""
    configure_logging("debug" if verbose else "warning")


# Import and register commands
from skybox.commands.init import init  # noqa: E402
from skybox.commands.remote import remote_add, remote_list  # noqa: E402
from skybox.commands.locks import lock, locks, unlock  # noqa: E402
from skybox.commands.owner import owner  # noqa: E402
from skybox.commands.sync import sync  # noqa: E402
from skybox.commands.status import status  # noqa: E402
from skybox.commands.lifecycle import down, pause, resume  # noqa: E402
from skybox.commands.config_cmd import validate  # noqa: E402

# Register top-level commands
app.command()(init)
app.command()(locks)
app.command()(lock)
app.command()(unlock)
app.command()(owner)
app.command()(sync)
app.command()(status)
app.command()(pause)
app.command()(resume)
app.command()(down)

# Register sub-commands
remote_app.command(name="add")(remote_add)
remote_app.command(name="list")(remote_list)

config_app.command(name="validate")(validate)
