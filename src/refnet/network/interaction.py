"""Interaction layer — zoom/pan, drag-to-repin, filtering and selection.

None of these operations rebuild the network. Zoom and pan only touch the
view transform; filtering only changes what is visible; dragging pins the
dragged node wherever it is dropped. The wrapped graph stays in the
``interactive`` state until :meth:`InteractiveNetwork.close`.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import BaseModel

from refnet.config.models import InteractionConfig
from refnet.domain.errors import InvalidDragError, InvalidStateError
from refnet.domain.types import NetworkState, Role
from refnet.network.graph import Pinned, VisibleSubgraph, edge_segment

if TYPE_CHECKING:
    from refnet.network.graph import NetworkGraph, NodeView
    from refnet.network.simulation import RelaxationDriver

logger = structlog.get_logger(__name__)

type NodePredicate = Callable[[NodeView], bool]


# ---------------------------------------------------------------------------
# View transform
# ---------------------------------------------------------------------------


@dataclass
class ViewTransform:
    """Scale and translation applied at render time only."""

    min_scale: float = 0.5
    max_scale: float = 3.0
    scale: float = 1.0
    tx: float = 0.0
    ty: float = 0.0

    def zoom_by(self, factor: float, center: tuple[float, float] | None = None) -> float:
        """Multiply the scale by *factor* (clamped), keeping *center* fixed on screen."""
        new_scale = min(max(self.scale * factor, self.min_scale), self.max_scale)
        if center is not None and new_scale != self.scale:
            cx, cy = center
            ratio = new_scale / self.scale
            self.tx = cx - (cx - self.tx) * ratio
            self.ty = cy - (cy - self.ty) * ratio
        self.scale = new_scale
        return self.scale

    def pan(self, dx: float, dy: float) -> None:
        self.tx += dx
        self.ty += dy

    def reset(self) -> None:
        self.scale = 1.0
        self.tx = 0.0
        self.ty = 0.0

    def to_screen(self, x: float, y: float) -> tuple[float, float]:
        return (x * self.scale + self.tx, y * self.scale + self.ty)

    def to_world(self, sx: float, sy: float) -> tuple[float, float]:
        return ((sx - self.tx) / self.scale, (sy - self.ty) / self.scale)


# ---------------------------------------------------------------------------
# Drag state machine: Idle | Dragging(node_id)
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Idle:
    """No drag in progress."""


@dataclass(frozen=True, slots=True)
class Dragging:
    """A drag of *node_id* is in progress."""

    node_id: str


type DragState = Idle | Dragging


# ---------------------------------------------------------------------------
# Filtering
# ---------------------------------------------------------------------------


def apply_filter(graph: NetworkGraph, predicate: NodePredicate) -> VisibleSubgraph:
    """Nodes matching *predicate* plus edges whose endpoints both match.

    Node objects are shared with *graph*, so positions are never copied
    or discarded.
    """
    nodes = {node_id: node for node_id, node in graph.nodes.items() if predicate(node)}
    edges = [e for e in graph.edges if e.source in nodes and e.target in nodes]
    return VisibleSubgraph(nodes=nodes, edges=edges)


def match_all(node: NodeView) -> bool:
    return True


def role_filter(role: Role | str) -> NodePredicate:
    """Keep nodes with the given role label."""
    wanted = Role(role)
    return lambda node: node.role == wanted


def search_filter(term: str) -> NodePredicate:
    """Case-insensitive match on name or email; phone matches the raw term."""
    needle = term.lower()

    def predicate(node: NodeView) -> bool:
        if not term:
            return True
        return (
            needle in node.name.lower()
            or (node.email is not None and needle in node.email.lower())
            or (node.phone is not None and term in node.phone)
        )

    return predicate


def all_of(*predicates: NodePredicate) -> NodePredicate:
    return lambda node: all(p(node) for p in predicates)


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------


class NodeSnapshot(BaseModel):
    """What the detail panel receives when a node is selected."""

    model_config = {"frozen": True}

    id: str
    name: str
    email: str | None = None
    phone: str | None = None
    role: Role
    depth: int
    incoming_referrals: int
    outgoing_referrals: int
    multi_referrer: bool = False


type SelectionCallback = Callable[[NodeSnapshot], None]


def snapshot(graph: NetworkGraph, node_id: str) -> NodeSnapshot:
    """Detail-panel snapshot for *node_id*, with referral counts."""
    node = graph.node(node_id)
    g = graph.to_networkx()
    return NodeSnapshot(
        id=node.id,
        name=node.name,
        email=node.email,
        phone=node.phone,
        role=node.role,
        depth=node.depth,
        incoming_referrals=g.in_degree(node.id),
        outgoing_referrals=g.out_degree(node.id),
        multi_referrer=node.multi_referrer,
    )


# ---------------------------------------------------------------------------
# InteractiveNetwork
# ---------------------------------------------------------------------------


class InteractiveNetwork:
    """A laid-out graph wrapped for live interaction.

    Usage::

        view = InteractiveNetwork(layout(graph, viewport), on_node_selected=panel.show)
        view.zoom_in()
        view.begin_drag("p_1")
        view.drag_to(120, 80)
        view.end_drag()
        view.set_filter(role_filter("referral"))
        view.close()
    """

    def __init__(
        self,
        graph: NetworkGraph,
        config: InteractionConfig | None = None,
        *,
        on_node_selected: SelectionCallback | None = None,
        driver: RelaxationDriver | None = None,
    ) -> None:
        graph.transition(NetworkState.INTERACTIVE)
        self.graph = graph
        self.config = config or InteractionConfig()
        self.transform = ViewTransform(
            min_scale=self.config.min_scale,
            max_scale=self.config.max_scale,
        )
        self.drag: DragState = Idle()
        self.selected_id: str | None = None
        self.visible = apply_filter(graph, match_all)
        self._predicate: NodePredicate = match_all
        self._on_node_selected = on_node_selected
        self._driver = driver

    def _require_open(self) -> None:
        if self.graph.state == NetworkState.DISCARDED:
            raise InvalidStateError(str(self.graph.state), str(NetworkState.INTERACTIVE))

    # -- zoom / pan ------------------------------------------------------

    def zoom_in(self, center: tuple[float, float] | None = None) -> float:
        self._require_open()
        return self.transform.zoom_by(self.config.zoom_in_factor, center)

    def zoom_out(self, center: tuple[float, float] | None = None) -> float:
        self._require_open()
        return self.transform.zoom_by(self.config.zoom_out_factor, center)

    def pan(self, dx: float, dy: float) -> None:
        self._require_open()
        self.transform.pan(dx, dy)

    def reset_view(self) -> None:
        self._require_open()
        self.transform.reset()

    # -- drag ------------------------------------------------------------

    def begin_drag(self, node_id: str) -> None:
        """Idle → Dragging: pin the node where it is and reheat neighbors."""
        self._require_open()
        match self.drag:
            case Dragging(current):
                raise InvalidDragError(f"Already dragging '{current}'")
            case Idle():
                pass
        node = self.graph.node(node_id)
        if node.xy is None:
            raise InvalidDragError(f"Node '{node_id}' has no position")
        if self._driver is not None and self._driver.running:
            # The driver is ahead of the graph between ticks.
            x, y = self._driver.position_of(node_id)
            node.position = Pinned(x, y)
            self._driver.set_alpha_target(self.config.drag_alpha_target)
            self._driver.move_body(node_id, x, y)
        else:
            node.pin()
        self.drag = Dragging(node_id)
        logger.debug("drag_started", node_id=node_id)

    def drag_to(self, x: float, y: float) -> None:
        """Dragging → Dragging: the pinned coordinates track the pointer."""
        self._require_open()
        match self.drag:
            case Idle():
                raise InvalidDragError("No drag in progress")
            case Dragging(node_id):
                self.graph.nodes[node_id].position = Pinned(x, y)
                if self._driver is not None and self._driver.running:
                    self._driver.move_body(node_id, x, y)

    def end_drag(self, x: float | None = None, y: float | None = None) -> None:
        """Dragging → Idle: the node stays pinned at the drop point."""
        self._require_open()
        match self.drag:
            case Idle():
                raise InvalidDragError("No drag in progress")
            case Dragging(node_id):
                if x is not None and y is not None:
                    self.drag_to(x, y)
                if self._driver is not None and self._driver.running:
                    self._driver.set_alpha_target(0.0)
                self.drag = Idle()
                logger.debug("drag_ended", node_id=node_id, position=self.graph.nodes[node_id].xy)

    # -- filter ----------------------------------------------------------

    def set_filter(self, predicate: NodePredicate) -> VisibleSubgraph:
        self._require_open()
        self._predicate = predicate
        self.visible = apply_filter(self.graph, predicate)
        return self.visible

    def clear_filter(self) -> VisibleSubgraph:
        return self.set_filter(match_all)

    # -- selection -------------------------------------------------------

    def select(self, node_id: str) -> NodeSnapshot:
        """Make *node_id* the single selection and notify the detail panel."""
        self._require_open()
        snap = snapshot(self.graph, node_id)
        self.selected_id = node_id
        if self._on_node_selected is not None:
            self._on_node_selected(snap)
        return snap

    def clear_selection(self) -> None:
        self.selected_id = None

    # -- rendering -------------------------------------------------------

    def frame(self) -> dict[str, Any]:
        """Screen-space description of what is currently visible.

        This is the payload handed to the external render surface.
        """
        self._require_open()
        nodes: list[dict[str, Any]] = []
        for node in self.visible.nodes.values():
            xy = node.xy
            if xy is None:
                continue
            sx, sy = self.transform.to_screen(*xy)
            nodes.append(
                {
                    "id": node.id,
                    "name": node.name,
                    "role": str(node.role),
                    "depth": node.depth,
                    "x": round(sx, 2),
                    "y": round(sy, 2),
                    "pinned": node.is_pinned,
                    "selected": node.id == self.selected_id,
                    "multi_referrer": node.multi_referrer,
                }
            )
        edges: list[dict[str, Any]] = []
        for edge in self.visible.edges:
            source = self.graph.nodes[edge.source]
            target = self.graph.nodes[edge.target]
            if source.xy is None or target.xy is None:
                continue
            seg = edge_segment(source, target, edge.offset)
            x1, y1 = self.transform.to_screen(seg.x1, seg.y1)
            x2, y2 = self.transform.to_screen(seg.x2, seg.y2)
            edges.append(
                {
                    "source": edge.source,
                    "target": edge.target,
                    "multi_referrer": edge.multi_referrer,
                    "x1": round(x1, 2),
                    "y1": round(y1, 2),
                    "x2": round(x2, 2),
                    "y2": round(y2, 2),
                }
            )
        return {
            "scale": round(self.transform.scale, 4),
            "translate": [round(self.transform.tx, 2), round(self.transform.ty, 2)],
            "nodes": nodes,
            "edges": edges,
        }

    # -- lifecycle -------------------------------------------------------

    def close(self) -> None:
        """Discard the view: cancel any running relaxation and drop the graph."""
        if self.graph.state == NetworkState.DISCARDED:
            return
        if self._driver is not None:
            self._driver.cancel()
        self.drag = Idle()
        self.selected_id = None
        self.graph.transition(NetworkState.DISCARDED)
        logger.debug("network_discarded", root_id=self.graph.root_id)
