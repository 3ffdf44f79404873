"""Layout engine — deterministic anchoring followed by force relaxation.

Anchoring rows, top to bottom:

* members, evenly spaced across the viewport (pinned);
* each member's single-referrer children, in a band under the member (pinned);
* multi-referrer targets, under the mean x of their referrers (free);
* everything else, fanned out one row below its discovering referrer (free).

Free nodes are then relaxed by :mod:`refnet.network.simulation` and, once
the loop stops for any reason, pinned where they ended up. Nodes that were
already pinned (a previous layout, a drag) keep their coordinates, so a
second layout of a settled graph changes nothing.

:func:`layout` relaxes back-to-back. :func:`layout_async` paces the ticks
on the event loop and mirrors each one onto the graph, so a host can draw
and drag while the network is still moving.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import TYPE_CHECKING

import networkx as nx
import structlog

from refnet.config.models import LayoutConfig, SimulationConfig
from refnet.domain.errors import InvalidStateError, InvalidViewportError
from refnet.domain.types import NetworkState, is_valid_transition
from refnet.network.graph import Free, NodeView, Pinned, RelaxationSummary, Viewport
from refnet.network.simulation import (
    Body,
    Bounds,
    RelaxationDriver,
    SettleReason,
    SimulationState,
)

if TYPE_CHECKING:
    from refnet.network.graph import NetworkGraph

logger = structlog.get_logger(__name__)

type DriverCallback = Callable[[RelaxationDriver], None]


def validate_viewport(viewport: Viewport) -> None:
    """Raise :class:`InvalidViewportError` unless both dimensions are positive."""
    if viewport.width <= 0 or viewport.height <= 0:
        raise InvalidViewportError(viewport.width, viewport.height)


def layout(
    graph: NetworkGraph,
    viewport: Viewport,
    config: LayoutConfig | None = None,
    simulation: SimulationConfig | None = None,
    *,
    clock: Callable[[], float] = time.monotonic,
) -> NetworkGraph:
    """Position every node of *graph* inside *viewport*, mutating it in place.

    Returns the same graph. With no member nodes the graph is returned
    unpositioned and stays ``built`` (the caller shows an empty state).

    Raises:
        InvalidViewportError: non-positive width or height; the graph is
            left untouched.
        InvalidStateError: the graph was never built or is discarded.
    """
    validate_viewport(viewport)
    target = _target_state(graph)
    if graph.is_empty:
        logger.debug("layout_empty_state", root_id=graph.root_id, nodes=len(graph.nodes))
        return graph

    state = prepare_layout(graph, viewport, config, simulation)
    driver = RelaxationDriver(state, clock=clock)
    reason = driver.run()
    apply_state(graph, driver.state)
    _finish(graph, driver, reason, relaxed=state.free_count)
    graph.transition(target)
    return graph


async def layout_async(
    graph: NetworkGraph,
    viewport: Viewport,
    config: LayoutConfig | None = None,
    simulation: SimulationConfig | None = None,
    *,
    on_start: DriverCallback | None = None,
    interval: float | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> NetworkGraph:
    """Like :func:`layout`, but relax on the event loop one tick at a time.

    The graph is ``laid_out`` as soon as every node has an anchor, so
    *on_start* can wrap it in an :class:`InteractiveNetwork` together with
    the driver before the first tick. Each tick is copied onto the graph.
    When the loop stops (converged, iteration limit, timeout or
    :meth:`RelaxationDriver.cancel`) the remaining free nodes are pinned.
    Cancelling the task leaves them free and re-raises.
    """
    validate_viewport(viewport)
    target = _target_state(graph)
    if graph.is_empty:
        logger.debug("layout_empty_state", root_id=graph.root_id, nodes=len(graph.nodes))
        return graph

    state = prepare_layout(graph, viewport, config, simulation)
    graph.transition(target)
    driver = RelaxationDriver(
        state,
        clock=clock,
        on_tick=lambda s: apply_state(graph, s),
    )
    if on_start is not None:
        on_start(driver)
    reason = await driver.run_async(interval)
    _finish(graph, driver, reason, relaxed=state.free_count)
    return graph


def _finish(
    graph: NetworkGraph,
    driver: RelaxationDriver,
    reason: SettleReason,
    *,
    relaxed: int,
) -> None:
    pinned = settle(graph)
    graph.relaxation = RelaxationSummary(
        reason=str(reason),
        ticks=driver.state.tick,
        relaxed=relaxed,
    )
    logger.debug(
        "layout_settled",
        root_id=graph.root_id,
        reason=str(reason),
        ticks=driver.state.tick,
        relaxed=relaxed,
        force_pinned=pinned,
    )


def _target_state(graph: NetworkGraph) -> NetworkState:
    # BUILT → LAID_OUT, LAID_OUT → LAID_OUT, INTERACTIVE → INTERACTIVE
    target = NetworkState.LAID_OUT
    if graph.state == NetworkState.INTERACTIVE:
        target = NetworkState.INTERACTIVE
    if not is_valid_transition(graph.state, target):
        raise InvalidStateError(str(graph.state), str(target))
    return target


# ---------------------------------------------------------------------------
# Anchoring
# ---------------------------------------------------------------------------


def prepare_layout(
    graph: NetworkGraph,
    viewport: Viewport,
    config: LayoutConfig | None = None,
    simulation: SimulationConfig | None = None,
) -> SimulationState:
    """Anchor all nodes and return the initial simulation state.

    Shared by :func:`layout` and :func:`layout_async`. Leaves the graph
    state alone.
    """
    validate_viewport(viewport)
    cfg = config or LayoutConfig()
    sim = simulation or SimulationConfig()

    for edge in graph.edges:
        edge.offset = cfg.edge_offset

    placed: set[str] = {node_id for node_id, node in graph.nodes.items() if node.is_pinned}
    spacing = anchor_members(graph, viewport, cfg, placed)
    anchor_children(graph, spacing, cfg, placed)
    anchor_remaining(graph, viewport, cfg, sim, placed)
    return build_state(graph, viewport, cfg, sim)


def _place(node: NodeView, x: float, y: float, *, pinned: bool, placed: set[str]) -> None:
    node.anchor = (x, y)
    node.position = Pinned(x, y) if pinned else Free(x, y)
    placed.add(node.id)


def anchor_members(
    graph: NetworkGraph,
    viewport: Viewport,
    cfg: LayoutConfig,
    placed: set[str],
) -> float:
    """Step 1: members evenly along the top row, in input order.

    Returns the member spacing, which also sizes the child bands.
    """
    members = graph.members()
    spacing = viewport.width / (len(members) + 1)
    for index, member in enumerate(members):
        if member.id in placed:
            continue
        _place(member, (index + 1) * spacing, cfg.member_row_y, pinned=True, placed=placed)
    return spacing


def anchor_children(
    graph: NetworkGraph,
    spacing: float,
    cfg: LayoutConfig,
    placed: set[str],
) -> None:
    """Step 2: single-referrer children in a band centered under each member."""
    for member in graph.members():
        origin = member.xy
        if origin is None:
            continue
        children = [
            graph.nodes[edge.target]
            for edge in graph.outgoing(member.id)
            if not edge.multi_referrer
        ]
        children = list({child.id: child for child in children if child.id not in placed}.values())
        if not children:
            continue
        child_spacing = spacing / (len(children) + 1)
        start = origin[0] - spacing / 2 + child_spacing
        for index, child in enumerate(children):
            x = start + child_spacing * index
            _place(child, x, cfg.child_row_y, pinned=True, placed=placed)


def anchor_remaining(
    graph: NetworkGraph,
    viewport: Viewport,
    cfg: LayoutConfig,
    sim: SimulationConfig,
    placed: set[str],
) -> None:
    """Steps 3 and 3b: free anchors for everything not yet placed.

    Multi-referrer targets sit under the mean x of their placed referrers
    on the third row. Other nodes fan out one row below their discovering
    referrer, which in discovery order is always placed first.

    Nodes are visited in discovery order, so a multi-referrer target
    reached before one of its referrers (that referrer links back to it
    from deeper in the network) is anchored under the referrers placed so
    far only. The relaxation pulls it toward the late referrer afterwards.
    """
    fan_counts: dict[str, int] = {}
    for node in graph.nodes.values():
        if node.id in placed:
            continue
        referrers = [graph.nodes[rid] for rid in graph.referrers_of(node.id) if rid in placed]
        points = [r.xy for r in referrers if r.xy is not None]

        if node.multi_referrer and points:
            x = sum(p[0] for p in points) / len(points)
            y = max(cfg.multi_referrer_row_y, max(p[1] for p in points) + cfg.row_gap)
        elif points:
            parent = referrers[0]
            i = fan_counts.get(parent.id, 0)
            fan_counts[parent.id] = i + 1
            step = (i + 1) // 2 * sim.min_separation
            x = points[0][0] + (step if i % 2 else -step)
            y = points[0][1] + cfg.row_gap
        else:
            x = viewport.width / 2
            y = cfg.member_row_y
        _place(node, x, y, pinned=False, placed=placed)


# ---------------------------------------------------------------------------
# Simulation bridge
# ---------------------------------------------------------------------------


def layout_bounds(viewport: Viewport, margin: float) -> Bounds:
    """Viewport minus *margin* on every side (collapsing to the center if too small)."""
    half_w = viewport.width / 2
    half_h = viewport.height / 2
    return Bounds(
        min_x=min(margin, half_w),
        min_y=min(margin, half_h),
        max_x=max(viewport.width - margin, half_w),
        max_y=max(viewport.height - margin, half_h),
    )


def build_state(
    graph: NetworkGraph,
    viewport: Viewport,
    cfg: LayoutConfig,
    sim: SimulationConfig,
) -> SimulationState:
    """Translate positioned nodes and their links into a simulation state."""
    bodies: list[Body] = []
    index: dict[str, int] = {}
    for node in graph.nodes.values():
        xy = node.xy
        if xy is None:
            continue
        anchor = node.anchor or xy
        index[node.id] = len(bodies)
        bodies.append(
            Body(
                id=node.id,
                x=xy[0],
                y=xy[1],
                anchor_x=anchor[0],
                anchor_y=anchor[1],
                pinned=node.is_pinned,
            )
        )

    # One spring per linked pair, whatever the direction or multiplicity.
    links = nx.Graph(graph.to_networkx())
    springs = tuple(
        (index[u], index[v]) for u, v in links.edges() if u != v and u in index and v in index
    )
    return SimulationState(
        bodies=tuple(bodies),
        springs=springs,
        bounds=layout_bounds(viewport, cfg.margin),
        config=sim,
    )


def apply_state(graph: NetworkGraph, state: SimulationState) -> None:
    """Copy body coordinates back onto the graph's nodes."""
    for body in state.bodies:
        node = graph.nodes.get(body.id)
        if node is None:
            continue
        node.position = Pinned(body.x, body.y) if body.pinned else Free(body.x, body.y)


def settle(graph: NetworkGraph) -> int:
    """Pin every free node where it stands. Returns how many were pinned."""
    count = 0
    for node in graph.nodes.values():
        match node.position:
            case Free(x, y):
                node.position = Pinned(x, y)
                count += 1
            case Pinned() | None:
                pass
    return count

