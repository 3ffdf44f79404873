"""The ``refnet`` command: global output flags, config selection and subcommands."""

from __future__ import annotations

from pathlib import Path

import click

from refnet import __version__
from refnet.commands import register_commands
from refnet.commands._base import RefnetGroup
from refnet.commands._context import AppContext
from refnet.config.settings import RefnetSettings

_EXAMPLES = """\
  refnet store init
  refnet store load people.json
  refnet network layout p_001 --depth 3
  refnet --root ~/crm --json network select p_001 p_017
  refnet -c team.toml -v network build p_001"""


@click.group(cls=RefnetGroup, examples=_EXAMPLES, invoke_without_command=True)
@click.version_option(version=__version__, prog_name="refnet")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-q", "--quiet", is_flag=True, help="Minimal output (node ids only).")
@click.option("-v", "--verbose", is_flag=True, help="Debug logs and timing spans.")
@click.option("--log-json", is_flag=True, help="Log JSON lines to stderr.")
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Use this refnet.toml instead of searching for one.",
)
@click.option(
    "--root",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project directory holding the store (default: the refnet.toml directory).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_path: Path | None,
    root: Path | None,
) -> None:
    """refnet — build, lay out and explore referral networks."""
    ctx.obj = AppContext(
        RefnetSettings.from_cli(
            config_path=str(config_path) if config_path else None,
            root=root,
            json_output=json_output,
            quiet=quiet,
            verbose=verbose,
            log_json=log_json,
        )
    )
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
