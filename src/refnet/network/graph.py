"""NetworkGraph — the in-memory node/edge model shared by builder, layout and views.

A graph is built fresh per (root, depth, include_members) query, mutated
in place by layout and drag, and discarded when its view closes. Nothing
here is persisted.

Pin status is an explicit tagged state rather than a nullable field pair::

    match node.position:
        case Pinned(x, y): ...
        case Free(x, y): ...
        case None: ...  # not laid out yet
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import networkx as nx

from refnet.domain.errors import InvalidStateError, NotFoundError
from refnet.domain.types import NetworkState, Role, is_valid_transition

if TYPE_CHECKING:
    from refnet.domain.errors import RefnetWarning
    from refnet.domain.models import Person, Relationship

DEFAULT_EDGE_OFFSET = 15.0


# ---------------------------------------------------------------------------
# Position: Free(x, y) | Pinned(x, y)
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Free:
    """Position subject to force relaxation."""

    x: float
    y: float


@dataclass(frozen=True, slots=True)
class Pinned:
    """Position fixed in place; exerts forces but is never integrated."""

    x: float
    y: float


type Position = Free | Pinned


@dataclass(frozen=True, slots=True)
class Viewport:
    """Drawing area in world units."""

    width: float
    height: float


@dataclass(frozen=True, slots=True)
class Segment:
    """A straight edge segment ready for rendering."""

    x1: float
    y1: float
    x2: float
    y2: float


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------


@dataclass
class NodeView:
    """One person in the network, regardless of how many paths reach them."""

    id: str
    name: str
    role: Role
    depth: int
    email: str | None = None
    phone: str | None = None
    position: Position | None = None
    anchor: tuple[float, float] | None = None
    multi_referrer: bool = False

    @classmethod
    def from_person(cls, person: Person, depth: int) -> NodeView:
        return cls(
            id=person.id,
            name=person.name,
            role=person.role,
            depth=depth,
            email=person.email,
            phone=person.phone,
        )

    @property
    def is_positioned(self) -> bool:
        return self.position is not None

    @property
    def is_pinned(self) -> bool:
        return isinstance(self.position, Pinned)

    @property
    def xy(self) -> tuple[float, float] | None:
        match self.position:
            case Free(x, y) | Pinned(x, y):
                return (x, y)
            case None:
                return None

    def pin(self, x: float | None = None, y: float | None = None) -> None:
        """Pin at (*x*, *y*), or at the current coordinates when omitted."""
        current = self.xy
        if current is None and (x is None or y is None):
            raise ValueError(f"Node '{self.id}' has no position to pin")
        cx, cy = current if current is not None else (0.0, 0.0)
        self.position = Pinned(cx if x is None else x, cy if y is None else y)


@dataclass
class EdgeView:
    """One discovered referral relationship."""

    source: str
    target: str
    relationship_id: str = ""
    type: str = "referral"
    strength: str | None = None
    is_primary: bool = False
    multi_referrer: bool = False
    offset: float = DEFAULT_EDGE_OFFSET

    @classmethod
    def from_relationship(cls, rel: Relationship) -> EdgeView:
        return cls(
            source=rel.source_id,
            target=rel.target_id,
            relationship_id=rel.id,
            type=str(rel.type),
            strength=rel.strength,
            is_primary=rel.is_primary,
        )


# ---------------------------------------------------------------------------
# NetworkGraph
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RelaxationSummary:
    """How the last relaxation of a graph ended."""

    reason: str
    ticks: int
    relaxed: int


@dataclass
class NetworkGraph:
    """Deduplicated referral graph rooted at *root_id*.

    ``nodes`` keeps discovery order (breadth-first), which the layout
    uses to order children under their referrer. ``edges`` keeps one
    entry per discovered relationship, including edges into nodes that
    were already visited through another parent. ``frontier_sizes[d]``
    counts the people first reached at depth ``d + 1``.
    """

    root_id: str
    max_depth: int
    include_members: bool = True
    nodes: dict[str, NodeView] = field(default_factory=dict)
    edges: list[EdgeView] = field(default_factory=list)
    state: NetworkState = NetworkState.UNBUILT
    warnings: list[RefnetWarning] = field(default_factory=list)
    frontier_sizes: list[int] = field(default_factory=list)
    relaxation: RelaxationSummary | None = None

    def transition(self, target: NetworkState) -> None:
        """Move to *target*, raising :class:`InvalidStateError` if not allowed."""
        if not is_valid_transition(self.state, target):
            raise InvalidStateError(str(self.state), str(target))
        self.state = target

    def node(self, node_id: str) -> NodeView:
        try:
            return self.nodes[node_id]
        except KeyError:
            raise NotFoundError(node_id, what="Node") from None

    def members(self) -> list[NodeView]:
        """Member nodes in discovery order."""
        return [n for n in self.nodes.values() if n.role == Role.MEMBER]

    @property
    def is_empty(self) -> bool:
        """True when no member can anchor a layout."""
        return not self.members()

    def incoming(self, node_id: str) -> list[EdgeView]:
        return [e for e in self.edges if e.target == node_id]

    def outgoing(self, node_id: str) -> list[EdgeView]:
        return [e for e in self.edges if e.source == node_id]

    def referrers_of(self, node_id: str) -> list[str]:
        """Distinct source ids of edges into *node_id*, in edge order."""
        return list(dict.fromkeys(e.source for e in self.incoming(node_id)))

    def to_networkx(self) -> nx.MultiDiGraph[str]:
        """Return a NetworkX multigraph view with one edge per EdgeView.

        Node attributes carry role and depth; parallel edges are preserved
        so in-degree counts every recorded referral.
        """
        g: nx.MultiDiGraph[str] = nx.MultiDiGraph()
        for node in self.nodes.values():
            g.add_node(node.id, role=str(node.role), depth=node.depth)
        for edge in self.edges:
            g.add_edge(
                edge.source,
                edge.target,
                relationship_id=edge.relationship_id,
                multi_referrer=edge.multi_referrer,
            )
        return g

    def positions(self) -> dict[str, tuple[float, float] | None]:
        return {node_id: node.xy for node_id, node in self.nodes.items()}


@dataclass(frozen=True)
class VisibleSubgraph:
    """What a filter leaves visible. Shares NodeView objects with the graph."""

    nodes: dict[str, NodeView]
    edges: list[EdgeView]


# ---------------------------------------------------------------------------
# Edge geometry
# ---------------------------------------------------------------------------


def edge_segment(
    source: NodeView,
    target: NodeView,
    offset: float = DEFAULT_EDGE_OFFSET,
) -> Segment:
    """Segment between two node centers, trimmed by *offset* at the target end.

    The trim leaves room for a direction marker. Coincident centers yield
    a zero-length segment rather than a division by zero.
    """
    start = source.xy
    end = target.xy
    if start is None or end is None:
        raise ValueError(f"Edge {source.id} -> {target.id} has an unpositioned endpoint")
    dx = end[0] - start[0]
    dy = end[1] - start[1]
    dr = math.hypot(dx, dy)
    if dr == 0:
        return Segment(start[0], start[1], end[0], end[1])
    return Segment(start[0], start[1], end[0] - dx * offset / dr, end[1] - dy * offset / dr)


def graph_segments(graph: NetworkGraph) -> list[tuple[EdgeView, Segment]]:
    """Segments for every edge whose endpoints are both positioned."""
    out: list[tuple[EdgeView, Segment]] = []
    for edge in graph.edges:
        source = graph.nodes[edge.source]
        target = graph.nodes[edge.target]
        if source.is_positioned and target.is_positioned:
            out.append((edge, edge_segment(source, target, edge.offset)))
    return out
