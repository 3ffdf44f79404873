"""Click classes taking an ``examples=`` keyword.

Commands with examples grow an eager ``--examples`` flag, which keeps
``--help`` short for commands whose real use is a referral id and a few
traversal flags.
"""

from __future__ import annotations

from typing import Any

import click


def examples_option(examples: str) -> click.Option:
    """An eager ``--examples`` flag that prints *examples* and exits."""

    def show(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if value:
            click.echo(f"Examples for '{ctx.command_path}':\n\n{examples}")
            ctx.exit(0)

    return click.Option(
        ["--examples"],
        is_flag=True,
        expose_value=False,
        is_eager=True,
        callback=show,
        help="Show usage examples.",
    )


class _ExamplesMixin:
    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        if examples:
            self.params.append(examples_option(examples))  # type: ignore[attr-defined]


class RefnetCommand(_ExamplesMixin, click.Command):
    pass


class RefnetGroup(_ExamplesMixin, click.Group):
    """Group whose subcommands are :class:`RefnetCommand` by default."""

    command_class = RefnetCommand
