"""Command group: relationship store setup."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from refnet.commands._base import RefnetGroup
from refnet.services.store import StoreService, init_store

if TYPE_CHECKING:
    from refnet.commands._context import AppContext

_STORE_EXAMPLES = """\
  refnet store init
  refnet store load people.json
  refnet --json store load people.json"""


@click.group(cls=RefnetGroup, examples=_STORE_EXAMPLES)
def store() -> None:
    """Create and populate the SQLite relationship store."""


@store.command(
    examples="""\
  refnet store init
  REFNET_STORE__DATABASE=/tmp/people.db refnet store init"""
)
@click.pass_obj
def init(app: AppContext) -> None:
    """Create the store database (idempotent)."""
    app.emit(init_store(app.settings))


@store.command(
    examples="""\
  refnet store load people.json
  refnet -v store load people.json"""
)
@click.argument("dataset", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def load(app: AppContext, dataset: Path) -> None:
    """Load persons and relationships from a JSON file.

    Records whose id is already stored are skipped.
    """
    app.emit(StoreService(app.store).load_file(dataset))
