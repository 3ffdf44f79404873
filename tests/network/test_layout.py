"""Tests for anchoring, relaxation and settling."""

from __future__ import annotations

import asyncio
import itertools
import math
from collections.abc import Callable

import pytest

from refnet.config.models import LayoutConfig, SimulationConfig
from refnet.domain.errors import InvalidStateError, InvalidViewportError
from refnet.domain.types import NetworkState
from refnet.infrastructure.store import InMemoryRelationshipStore
from refnet.network.graph import Free, NetworkGraph, Pinned, RelaxationSummary, Viewport
from refnet.network.interaction import InteractiveNetwork
from refnet.network.layout import (
    layout,
    layout_async,
    layout_bounds,
    prepare_layout,
    settle,
)
from tests.conftest import lead, member, referral, refers

Build = Callable[..., NetworkGraph]

VIEWPORT = Viewport(300, 500)


def _within(graph: NetworkGraph, viewport: Viewport, margin: float = 20.0) -> bool:
    for xy in graph.positions().values():
        assert xy is not None
        x, y = xy
        if not (margin - 1e-6 <= x <= viewport.width - margin + 1e-6):
            return False
        if not (margin - 1e-6 <= y <= viewport.height - margin + 1e-6):
            return False
    return True


class TestAnchoring:
    def test_members_and_children_rows(
        self, scenario_a: InMemoryRelationshipStore, build: Build
    ) -> None:
        graph = build(scenario_a, "M1", 1)
        state = prepare_layout(graph, VIEWPORT)
        assert graph.nodes["M1"].position == Pinned(150.0, 60.0)
        assert graph.nodes["R1"].position == Pinned(125.0, 150.0)
        assert graph.nodes["R2"].position == Pinned(175.0, 150.0)
        assert state.free_count == 0

    def test_multi_referrer_anchor_is_mean_of_referrers(
        self, scenario_b: InMemoryRelationshipStore, build: Build
    ) -> None:
        graph = build(scenario_b, "M1", 2)
        prepare_layout(graph, VIEWPORT)
        assert graph.nodes["M1"].position == Pinned(100.0, 60.0)
        assert graph.nodes["M2"].position == Pinned(200.0, 60.0)
        assert graph.nodes["R1"].anchor == (150.0, 220.0)
        assert isinstance(graph.nodes["R1"].position, Free)

    def test_unanchored_descendants_start_below_referrer(self, build: Build) -> None:
        store = InMemoryRelationshipStore(
            persons=[member("M1"), referral("R1"), referral("R2")],
            relationships=[refers("M1", "R1"), refers("R1", "R2")],
        )
        graph = build(store, "M1", 2)
        prepare_layout(graph, VIEWPORT)
        r1 = graph.nodes["R1"].xy
        assert r1 is not None
        assert graph.nodes["R2"].position == Free(r1[0], r1[1] + 80.0)

    def test_late_referrer_not_in_multi_referrer_anchor(self, build: Build) -> None:
        # Y is discovered after X and links back to it.
        store = InMemoryRelationshipStore(
            persons=[member("M1"), referral("X"), referral("Z"), lead("Y")],
            relationships=[
                refers("M1", "X"),
                refers("M1", "Z"),
                refers("Z", "Y"),
                refers("Y", "X"),
            ],
        )
        graph = build(store, "M1", 3)
        prepare_layout(graph, VIEWPORT)
        assert graph.nodes["X"].multi_referrer
        assert graph.nodes["X"].anchor == (150.0, 220.0)
        assert graph.nodes["Y"].anchor == (150.0, 230.0)

    def test_edge_offset_from_config(
        self, scenario_a: InMemoryRelationshipStore, build: Build
    ) -> None:
        graph = build(scenario_a, "M1", 1)
        prepare_layout(graph, VIEWPORT, LayoutConfig(edge_offset=22.0))
        assert all(e.offset == 22.0 for e in graph.edges)


class TestLayout:
    def test_all_nodes_pinned_after_settle(
        self, scenario_b: InMemoryRelationshipStore, build: Build
    ) -> None:
        graph = layout(build(scenario_b, "M1", 2), VIEWPORT)
        assert graph.state == NetworkState.LAID_OUT
        assert all(n.is_pinned for n in graph.nodes.values())

    def test_positions_within_margin(self, build: Build) -> None:
        store = InMemoryRelationshipStore(
            persons=[member("M1"), member("M2")] + [referral(f"R{i}") for i in range(6)],
            relationships=[refers("M1", "M2")]
            + [refers("M1", f"R{i}") for i in range(6)]
            + [refers("M2", f"R{i}") for i in range(3)],
        )
        graph = layout(build(store, "M1", 2), VIEWPORT)
        assert _within(graph, VIEWPORT)

    def test_layout_is_idempotent(
        self, scenario_b: InMemoryRelationshipStore, build: Build
    ) -> None:
        graph = layout(build(scenario_b, "M1", 2), VIEWPORT)
        first = graph.positions()
        layout(graph, VIEWPORT)
        assert graph.positions() == first

    def test_zero_width_viewport_rejected(
        self, scenario_a: InMemoryRelationshipStore, build: Build
    ) -> None:
        graph = build(scenario_a, "M1", 1)
        with pytest.raises(InvalidViewportError):
            layout(graph, Viewport(0, 500))
        assert all(xy is None for xy in graph.positions().values())
        assert graph.state == NetworkState.BUILT

    def test_bad_viewport_leaves_laid_out_graph_unchanged(
        self, scenario_a: InMemoryRelationshipStore, build: Build
    ) -> None:
        graph = layout(build(scenario_a, "M1", 1), VIEWPORT)
        before = graph.positions()
        with pytest.raises(InvalidViewportError):
            layout(graph, Viewport(300, -1))
        assert graph.positions() == before

    def test_no_members_is_empty_state(self, build: Build) -> None:
        store = InMemoryRelationshipStore(
            persons=[lead("L1"), referral("R1")],
            relationships=[refers("L1", "R1")],
        )
        graph = layout(build(store, "L1", 2), VIEWPORT)
        assert graph.is_empty
        assert graph.state == NetworkState.BUILT
        assert all(xy is None for xy in graph.positions().values())

    def test_unbuilt_graph_rejected(self) -> None:
        with pytest.raises(InvalidStateError):
            layout(NetworkGraph(root_id="M1", max_depth=1), VIEWPORT)

    def test_interactive_graph_stays_interactive(
        self, scenario_b: InMemoryRelationshipStore, build: Build
    ) -> None:
        view = InteractiveNetwork(layout(build(scenario_b, "M1", 2), VIEWPORT))
        layout(view.graph, VIEWPORT)
        assert view.graph.state == NetworkState.INTERACTIVE

    def test_dragged_pin_survives_relayout(
        self, scenario_b: InMemoryRelationshipStore, build: Build
    ) -> None:
        view = InteractiveNetwork(layout(build(scenario_b, "M1", 2), VIEWPORT))
        view.begin_drag("R1")
        view.end_drag(40.0, 400.0)
        layout(view.graph, VIEWPORT)
        assert view.graph.nodes["R1"].position == Pinned(40.0, 400.0)


class TestRelaxation:
    def test_shared_anchor_targets_keep_minimum_separation(self, build: Build) -> None:
        targets = [f"S{i}" for i in range(8)]
        store = InMemoryRelationshipStore(
            persons=[member("M1"), member("M2")] + [referral(t) for t in targets],
            relationships=[refers("M1", "M2")]
            + [refers("M1", t) for t in targets]
            + [refers("M2", t) for t in targets],
        )
        graph = layout(build(store, "M1", 2), Viewport(960, 500))
        assert {graph.nodes[t].anchor for t in targets} == {(480.0, 220.0)}
        assert graph.relaxation is not None
        assert graph.relaxation.relaxed == 8

        sep = SimulationConfig().min_separation
        points = [graph.nodes[t].xy for t in targets]
        for a, b in itertools.combinations(points, 2):
            assert a is not None and b is not None
            assert math.dist(a, b) >= sep - 1.0

    def test_timeout_pins_remaining_free_nodes(
        self, scenario_b: InMemoryRelationshipStore, build: Build
    ) -> None:
        ticks = itertools.count(0.0, 1.5)
        graph = layout(
            build(scenario_b, "M1", 2),
            VIEWPORT,
            simulation=SimulationConfig(energy_threshold=0.0),
            clock=lambda: next(ticks),
        )
        assert graph.relaxation == RelaxationSummary(reason="timeout", ticks=1, relaxed=1)
        assert all(isinstance(n.position, Pinned) for n in graph.nodes.values())
        # Pinned where the single tick left it, not back at the anchor.
        assert graph.nodes["R1"].position != Pinned(150.0, 220.0)

    def test_settled_graph_records_relaxation(
        self, scenario_a: InMemoryRelationshipStore, build: Build
    ) -> None:
        graph = layout(build(scenario_a, "M1", 1), VIEWPORT)
        # Nothing free to relax, so the first tick already converges.
        assert graph.relaxation == RelaxationSummary(reason="converged", ticks=1, relaxed=0)


class TestLayoutAsync:
    def test_matches_sync_layout(
        self, scenario_b: InMemoryRelationshipStore, build: Build
    ) -> None:
        expected = layout(build(scenario_b, "M1", 2), VIEWPORT).positions()
        graph = asyncio.run(layout_async(build(scenario_b, "M1", 2), VIEWPORT, interval=0))
        assert graph.state == NetworkState.LAID_OUT
        assert graph.positions() == expected

    def test_timeout_pins_remaining_free_nodes(
        self, scenario_b: InMemoryRelationshipStore, build: Build
    ) -> None:
        ticks = itertools.count(0.0, 1.5)
        graph = asyncio.run(
            layout_async(
                build(scenario_b, "M1", 2),
                VIEWPORT,
                simulation=SimulationConfig(energy_threshold=0.0),
                interval=0,
                clock=lambda: next(ticks),
            )
        )
        assert graph.relaxation is not None
        assert graph.relaxation.reason == "timeout"
        assert all(isinstance(n.position, Pinned) for n in graph.nodes.values())

    def test_ticks_are_mirrored_onto_the_graph(
        self, scenario_b: InMemoryRelationshipStore, build: Build
    ) -> None:
        graph = build(scenario_b, "M1", 2)
        seen: list[tuple[float, float] | None] = []

        def watch(driver: object) -> None:
            assert graph.state == NetworkState.LAID_OUT
            seen.append(graph.nodes["R1"].xy)

        cfg = SimulationConfig(energy_threshold=0.0, max_iterations=3)
        asyncio.run(layout_async(graph, VIEWPORT, simulation=cfg, on_start=watch, interval=0))
        assert seen == [(150.0, 220.0)]
        assert graph.relaxation is not None
        assert graph.relaxation.ticks == 3
        assert graph.nodes["R1"].position != Pinned(150.0, 220.0)

    def test_empty_network_is_untouched(self, build: Build) -> None:
        store = InMemoryRelationshipStore(persons=[lead("L1")])
        graph = asyncio.run(layout_async(build(store, "L1", 1), VIEWPORT))
        assert graph.state == NetworkState.BUILT
        assert graph.relaxation is None

    def test_bad_viewport(self, scenario_a: InMemoryRelationshipStore, build: Build) -> None:
        graph = build(scenario_a, "M1", 1)
        with pytest.raises(InvalidViewportError):
            asyncio.run(layout_async(graph, Viewport(-1, 10)))
        assert graph.state == NetworkState.BUILT


class TestHelpers:
    def test_bounds_collapse_for_tiny_viewport(self) -> None:
        bounds = layout_bounds(Viewport(30, 30), 20.0)
        assert (bounds.min_x, bounds.max_x) == (15.0, 15.0)
        assert (bounds.min_y, bounds.max_y) == (15.0, 15.0)

    def test_settle_pins_free_nodes(
        self, scenario_b: InMemoryRelationshipStore, build: Build
    ) -> None:
        graph = build(scenario_b, "M1", 2)
        prepare_layout(graph, VIEWPORT)
        assert settle(graph) == 1
        assert graph.nodes["R1"].position == Pinned(150.0, 220.0)
        assert settle(graph) == 0
