"""Network builder — breadth-first referral traversal from a root person.

Each depth level is one frontier. Outgoing referral lookups for the whole
frontier are issued concurrently (sibling reads are independent), then the
results are merged sequentially in frontier order so discovery order stays
deterministic. Every relationship whose target resolves is recorded as an
edge, including edges into people already reached through another parent;
that is what lets multi-referrer targets be detected afterwards.
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Iterator
from typing import TYPE_CHECKING

import structlog

from refnet.domain.errors import (
    DepthCappedWarning,
    InvalidDepthError,
    NotFoundError,
    PartialDataWarning,
)
from refnet.domain.types import NetworkState, Role
from refnet.network.graph import EdgeView, NetworkGraph, NodeView

if TYPE_CHECKING:
    from refnet.domain.errors import RefnetWarning
    from refnet.domain.models import Person, Relationship
    from refnet.infrastructure.store import RelationshipStore

logger = structlog.get_logger(__name__)

DEPTH_CEILING = 10
LOOKUP_BATCH_SIZE = 16


class VisitedSet:
    """Traversal-scoped set of discovered person ids.

    :meth:`claim` is a single locked check-and-insert, so the same person
    can never be counted as newly discovered twice even when lookups are
    merged from several threads.
    """

    def __init__(self) -> None:
        self._ids: set[str] = set()
        self._lock = threading.Lock()

    def claim(self, person_id: str) -> bool:
        """Mark *person_id* visited. Returns False if it already was."""
        with self._lock:
            if person_id in self._ids:
                return False
            self._ids.add(person_id)
            return True

    def __contains__(self, person_id: object) -> bool:
        with self._lock:
            return person_id in self._ids

    def __len__(self) -> int:
        with self._lock:
            return len(self._ids)

    def __iter__(self) -> Iterator[str]:
        with self._lock:
            return iter(sorted(self._ids))


async def build_network(
    store: RelationshipStore,
    root_id: str,
    max_depth: int,
    include_members: bool = True,
    *,
    visited: VisitedSet | None = None,
    depth_ceiling: int = DEPTH_CEILING,
    batch_size: int = LOOKUP_BATCH_SIZE,
) -> NetworkGraph:
    """Build the referral network reachable from *root_id*.

    Args:
        store: Point-lookup relationship store.
        root_id: Person the query originates from (depth 0).
        max_depth: Maximum hop count. Clamped to *depth_ceiling* with a
            :class:`DepthCappedWarning`.
        include_members: When False, member targets are skipped. The root
            is always kept.
        visited: Optional visited set to populate; a fresh one is used
            otherwise. Pass one in to inspect what the traversal reached.
        depth_ceiling: Hard safety cap on *max_depth*.
        batch_size: Maximum concurrent lookups per batch.

    Raises:
        NotFoundError: *root_id* does not resolve to a person.
        InvalidDepthError: *max_depth* is negative (also a ValueError).
    """
    if max_depth < 0:
        raise InvalidDepthError(max_depth)

    graph = NetworkGraph(root_id=root_id, max_depth=max_depth, include_members=include_members)

    if max_depth > depth_ceiling:
        _record(graph, DepthCappedWarning(max_depth, depth_ceiling), "depth_capped")
        max_depth = depth_ceiling
        graph.max_depth = max_depth

    root = await asyncio.to_thread(store.get_person, root_id)
    if root is None:
        raise NotFoundError(root_id)

    if visited is None:
        visited = VisitedSet()
    visited.claim(root.id)
    graph.nodes[root.id] = NodeView.from_person(root, depth=0)

    frontier = [root.id]
    depth = 0
    while frontier and depth < max_depth:
        relationships = await _fetch_outgoing(store, frontier, batch_size)
        targets = await _resolve_targets(store, relationships, batch_size)
        next_frontier: list[str] = []

        for rel in relationships:
            person = targets.get(rel.target_id)
            if person is None:
                _record(graph, PartialDataWarning(rel.id, rel.target_id), "partial_data")
                continue
            if not include_members and person.role == Role.MEMBER and person.id != root.id:
                continue
            if visited.claim(person.id):
                graph.nodes[person.id] = NodeView.from_person(person, depth=depth + 1)
                next_frontier.append(person.id)
            elif person.id not in graph.nodes:
                # Claimed by a caller-supplied visited set before this traversal.
                logger.debug("skip_foreign_visited", person_id=person.id)
                continue
            graph.edges.append(EdgeView.from_relationship(rel))

        if next_frontier:
            graph.frontier_sizes.append(len(next_frontier))
        frontier = next_frontier
        depth += 1

    mark_multi_referrers(graph)
    graph.transition(NetworkState.BUILT)
    logger.debug(
        "network_built",
        root_id=root.id,
        depth=max_depth,
        nodes=len(graph.nodes),
        edges=len(graph.edges),
    )
    return graph


def mark_multi_referrers(graph: NetworkGraph) -> set[str]:
    """Flag every target with two or more distinct referrers.

    Sets ``multi_referrer`` on all incoming edges of such targets and on
    the target nodes themselves. Returns the flagged node ids.
    """
    g = graph.to_networkx()
    flagged = {node_id for node_id in g.nodes if len(set(g.predecessors(node_id))) >= 2}
    for edge in graph.edges:
        edge.multi_referrer = edge.target in flagged
    for node_id, node in graph.nodes.items():
        node.multi_referrer = node_id in flagged
    return flagged


# ---------------------------------------------------------------------------
# Concurrent lookups
# ---------------------------------------------------------------------------


async def _fetch_outgoing(
    store: RelationshipStore,
    frontier: list[str],
    batch_size: int,
) -> list[Relationship]:
    """Outgoing referrals for the whole frontier, flattened in frontier order."""
    out: list[Relationship] = []
    for i in range(0, len(frontier), batch_size):
        batch = frontier[i : i + batch_size]
        results = await asyncio.gather(
            *(asyncio.to_thread(store.get_outgoing_referral_edges, pid) for pid in batch)
        )
        for rels in results:
            out.extend(rel for rel in rels if rel.is_referral)
    return out


async def _resolve_targets(
    store: RelationshipStore,
    relationships: list[Relationship],
    batch_size: int,
) -> dict[str, Person | None]:
    """Look up each distinct target once."""
    target_ids = list(dict.fromkeys(rel.target_id for rel in relationships))
    resolved: dict[str, Person | None] = {}
    for i in range(0, len(target_ids), batch_size):
        batch = target_ids[i : i + batch_size]
        people = await asyncio.gather(*(asyncio.to_thread(store.get_person, tid) for tid in batch))
        resolved.update(zip(batch, people, strict=True))
    return resolved


def _record(graph: NetworkGraph, warning: RefnetWarning, event: str) -> None:
    graph.warnings.append(warning)
    logger.warning(event, root_id=graph.root_id, detail=str(warning))
