"""NetworkService — build, lay out, filter and inspect a referral network.

Each operation builds a fresh graph for the requested root, so results
never depend on a previous invocation. Core exceptions are translated
into failed results and core warnings into ``ServiceResult.warnings``.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from refnet.domain.errors import RefnetError
from refnet.domain.types import Role
from refnet.network.builder import build_network
from refnet.network.graph import NetworkGraph, NodeView, Viewport, edge_segment
from refnet.network.interaction import (
    InteractiveNetwork,
    NodePredicate,
    all_of,
    role_filter,
    search_filter,
    snapshot,
)
from refnet.network.layout import layout
from refnet.services.base import BaseService
from refnet.services.result import ServiceResult
from refnet.services.telemetry import trace_span, traced

if TYPE_CHECKING:
    from refnet.network.interaction import NodeSnapshot


def _loop_running() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


def _node_payload(node: NodeView) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": node.id,
        "name": node.name,
        "role": str(node.role),
        "depth": node.depth,
        "multi_referrer": node.multi_referrer,
    }
    xy = node.xy
    if xy is not None:
        payload["x"] = round(xy[0], 2)
        payload["y"] = round(xy[1], 2)
        payload["pinned"] = node.is_pinned
    return payload


def _graph_payload(graph: NetworkGraph) -> dict[str, Any]:
    edges: list[dict[str, Any]] = []
    for edge in graph.edges:
        item: dict[str, Any] = {
            "id": edge.relationship_id,
            "source": edge.source,
            "target": edge.target,
            "multi_referrer": edge.multi_referrer,
        }
        source = graph.nodes[edge.source]
        target = graph.nodes[edge.target]
        if source.is_positioned and target.is_positioned:
            seg = edge_segment(source, target, edge.offset)
            item["segment"] = [
                round(seg.x1, 2),
                round(seg.y1, 2),
                round(seg.x2, 2),
                round(seg.y2, 2),
            ]
        edges.append(item)
    return {
        "root_id": graph.root_id,
        "depth": graph.max_depth,
        "include_members": graph.include_members,
        "state": str(graph.state),
        "nodes": [_node_payload(n) for n in graph.nodes.values()],
        "edges": edges,
        "multi_referrers": [n.id for n in graph.nodes.values() if n.multi_referrer],
    }


class NetworkService(BaseService):
    """Referral network operations over a :class:`RelationshipStore`.

    The methods are synchronous and drive the async builder with
    ``asyncio.run``, so they refuse to run inside an event loop. Async
    hosts await :func:`build_network` and :func:`layout_async` directly.
    """

    def _build(
        self,
        root_id: str,
        depth: int | None,
        include_members: bool | None,
    ) -> NetworkGraph:
        if _loop_running():
            msg = "NetworkService is synchronous; await build_network() from async code"
            raise RuntimeError(msg)
        cfg = self._settings.network
        with trace_span("build_network") as span:
            graph = asyncio.run(
                build_network(
                    self._store,
                    root_id,
                    cfg.default_depth if depth is None else depth,
                    cfg.include_members if include_members is None else include_members,
                    depth_ceiling=cfg.depth_ceiling,
                    batch_size=cfg.lookup_batch_size,
                )
            )
            if span is not None:
                span.annotate(
                    nodes=len(graph.nodes),
                    edges=len(graph.edges),
                    frontier_sizes=list(graph.frontier_sizes),
                    warnings=len(graph.warnings),
                )
        return graph

    def _viewport(self, width: float | None, height: float | None) -> Viewport:
        cfg = self._settings.layout
        return Viewport(
            width=cfg.default_width if width is None else width,
            height=cfg.default_height if height is None else height,
        )

    def _layout(
        self,
        root_id: str,
        depth: int | None,
        include_members: bool | None,
        width: float | None,
        height: float | None,
    ) -> NetworkGraph:
        viewport = self._viewport(width, height)
        graph = self._build(root_id, depth, include_members)
        with trace_span("layout") as span:
            layout(graph, viewport, self._settings.layout, self._settings.simulation)
            if span is not None and graph.relaxation is not None:
                span.annotate(
                    settle_reason=graph.relaxation.reason,
                    ticks=graph.relaxation.ticks,
                    relaxed=graph.relaxation.relaxed,
                )
        return graph

    @traced
    def build(
        self,
        root_id: str,
        *,
        depth: int | None = None,
        include_members: bool | None = None,
    ) -> ServiceResult:
        """Build the network for *root_id* without positions."""
        op = "build_network"
        try:
            graph = self._build(root_id, depth, include_members)
        except RefnetError as exc:
            return self._error(op, exc)
        return ServiceResult(
            ok=True,
            op=op,
            data=_graph_payload(graph),
            warnings=self._warning_messages(graph.warnings),
        )

    @traced
    def layout(
        self,
        root_id: str,
        *,
        depth: int | None = None,
        include_members: bool | None = None,
        width: float | None = None,
        height: float | None = None,
    ) -> ServiceResult:
        """Build and lay out the network. No members means ``empty: true``."""
        op = "layout_network"
        try:
            graph = self._layout(root_id, depth, include_members, width, height)
        except RefnetError as exc:
            return self._error(op, exc)
        data = _graph_payload(graph)
        data["empty"] = graph.is_empty
        return ServiceResult(
            ok=True,
            op=op,
            data=data,
            warnings=self._warning_messages(graph.warnings),
        )

    @traced
    def filter(
        self,
        root_id: str,
        *,
        role: Role | str | None = None,
        search: str | None = None,
        depth: int | None = None,
        include_members: bool | None = None,
        width: float | None = None,
        height: float | None = None,
    ) -> ServiceResult:
        """Lay out the network and return the frame left visible by the filter."""
        op = "filter_network"
        predicates: list[NodePredicate] = []
        if role:
            predicates.append(role_filter(role))
        if search:
            predicates.append(search_filter(search))
        try:
            graph = self._layout(root_id, depth, include_members, width, height)
            if graph.is_empty:
                return ServiceResult(
                    ok=True,
                    op=op,
                    data={"root_id": root_id, "empty": True, "nodes": [], "edges": []},
                    warnings=self._warning_messages(graph.warnings),
                )
            view = InteractiveNetwork(graph, self._settings.interaction)
            view.set_filter(all_of(*predicates))
            frame = view.frame()
            view.close()
        except RefnetError as exc:
            return self._error(op, exc)
        data: dict[str, Any] = {
            "root_id": root_id,
            "empty": False,
            "total": len(graph.nodes),
            **frame,
        }
        return ServiceResult(
            ok=True,
            op=op,
            data=data,
            warnings=self._warning_messages(graph.warnings),
        )

    @traced
    def select(
        self,
        root_id: str,
        node_id: str,
        *,
        depth: int | None = None,
        include_members: bool | None = None,
    ) -> ServiceResult:
        """Snapshot of one node as a detail panel would receive it."""
        op = "select_node"
        selected: list[NodeSnapshot] = []
        try:
            graph = self._layout(root_id, depth, include_members, None, None)
            if graph.is_empty:
                # Nothing to interact with; look the node up directly.
                selected.append(snapshot(graph, node_id))
            else:
                view = InteractiveNetwork(
                    graph,
                    self._settings.interaction,
                    on_node_selected=selected.append,
                )
                view.select(node_id)
                view.close()
        except RefnetError as exc:
            return self._error(op, exc)
        return ServiceResult(
            ok=True,
            op=op,
            data=selected[0].model_dump(mode="json"),
            warnings=self._warning_messages(graph.warnings),
        )
