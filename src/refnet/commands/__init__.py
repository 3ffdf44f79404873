"""Subcommand modules for refnet.

register_commands() uses deferred imports so ``refnet --help`` stays fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register the command groups on the root CLI group."""
    from refnet.commands.network import network
    from refnet.commands.store import store

    cli.add_command(store)
    cli.add_command(network)
