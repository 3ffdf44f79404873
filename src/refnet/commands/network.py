"""Command group: build and explore a person's referral network."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import click

from refnet.commands._base import RefnetGroup
from refnet.domain.types import Role
from refnet.services.network import NetworkService

if TYPE_CHECKING:
    from collections.abc import Callable

    from refnet.commands._context import AppContext

_NETWORK_EXAMPLES = """\
  refnet network build p_001
  refnet network build p_001 --depth 3 --no-members
  refnet network layout p_001 --width 1200 --height 600
  refnet network filter p_001 --role referral --search smith
  refnet network select p_001 p_017
  refnet --json network layout p_001"""


def _traversal_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """--depth and --members/--no-members, shared by every subcommand."""
    func = click.option(
        "--members/--no-members",
        "include_members",
        default=None,
        help="Include member targets (default from config).",
    )(func)
    return click.option(
        "--depth",
        type=int,
        default=None,
        help="Maximum referral hops from the root (default from config).",
    )(func)


def _viewport_options(func: Callable[..., Any]) -> Callable[..., Any]:
    func = click.option("--height", type=float, default=None, help="Viewport height.")(func)
    return click.option("--width", type=float, default=None, help="Viewport width.")(func)


@click.group(cls=RefnetGroup, examples=_NETWORK_EXAMPLES)
def network() -> None:
    """Build, lay out and inspect referral networks."""


@network.command(
    examples="""\
  refnet network build p_001
  refnet --json network build p_001 --depth 0"""
)
@click.argument("root_id")
@_traversal_options
@click.pass_obj
def build(
    app: AppContext,
    root_id: str,
    depth: int | None,
    include_members: bool | None,
) -> None:
    """Discover everyone reachable from ROOT_ID through referrals."""
    svc = NetworkService(app.store, app.settings)
    app.emit(svc.build(root_id, depth=depth, include_members=include_members))


@network.command(
    examples="""\
  refnet network layout p_001
  refnet network layout p_001 --width 800 --height 400"""
)
@click.argument("root_id")
@_traversal_options
@_viewport_options
@click.pass_obj
def layout(
    app: AppContext,
    root_id: str,
    depth: int | None,
    include_members: bool | None,
    width: float | None,
    height: float | None,
) -> None:
    """Build the network and compute settled node positions."""
    svc = NetworkService(app.store, app.settings)
    app.emit(
        svc.layout(
            root_id,
            depth=depth,
            include_members=include_members,
            width=width,
            height=height,
        )
    )


@network.command(
    name="filter",
    examples="""\
  refnet network filter p_001 --role lead
  refnet network filter p_001 --search 555-01"""
)
@click.argument("root_id")
@click.option(
    "--role",
    type=click.Choice([str(r) for r in Role]),
    default=None,
    help="Keep only nodes with this role.",
)
@click.option("--search", default=None, help="Match name, email or phone.")
@_traversal_options
@_viewport_options
@click.pass_obj
def filter_cmd(
    app: AppContext,
    root_id: str,
    role: str | None,
    search: str | None,
    depth: int | None,
    include_members: bool | None,
    width: float | None,
    height: float | None,
) -> None:
    """Show the part of the laid-out network that matches a filter."""
    svc = NetworkService(app.store, app.settings)
    app.emit(
        svc.filter(
            root_id,
            role=role,
            search=search,
            depth=depth,
            include_members=include_members,
            width=width,
            height=height,
        )
    )


@network.command(
    examples="""\
  refnet network select p_001 p_017
  refnet --json network select p_001 p_017"""
)
@click.argument("root_id")
@click.argument("node_id")
@_traversal_options
@click.pass_obj
def select(
    app: AppContext,
    root_id: str,
    node_id: str,
    depth: int | None,
    include_members: bool | None,
) -> None:
    """Show the detail snapshot for NODE_ID in ROOT_ID's network."""
    svc = NetworkService(app.store, app.settings)
    app.emit(svc.select(root_id, node_id, depth=depth, include_members=include_members))
