"""AppContext — shared Click context for all commands.

Created once by the root CLI group and passed down via ``@click.pass_obj``.
Opens the store lazily and centralizes result emission (stdout/stderr
routing and exit codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from refnet.config.logging import configure_logging
from refnet.output.formatters import OutputSettings, format_result
from refnet.services.telemetry import enable_telemetry

if TYPE_CHECKING:
    from refnet.config.settings import RefnetSettings
    from refnet.infrastructure.database import SqlRelationshipStore
    from refnet.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    The store is opened on first use so ``--help`` and ``--version``
    never touch the database.
    """

    def __init__(self, settings: RefnetSettings) -> None:
        self.settings = settings
        self._store: SqlRelationshipStore | None = None

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)
        if settings.verbose:
            enable_telemetry()

    @property
    def store(self) -> SqlRelationshipStore:
        """The SQLite store. Fails with a usage hint if it was never initialized."""
        if self._store is None:
            from refnet.infrastructure.database import SqlRelationshipStore, create_db_engine

            path = self.settings.database_path
            if not path.is_file():
                msg = f"No store at {path}. Run 'refnet store init' first."
                raise click.ClickException(msg)
            self._store = SqlRelationshipStore(create_db_engine(path))
        return self._store

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success: stdout, warnings to stderr (JSON mode keeps them in the payload).
        * Failure: stderr, exit code 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
