"""RelationshipStore — the point-lookup contract the network builder consumes.

The store holds people and directed relationships and exposes only two
reads. The builder calls them from worker threads, so implementations
must tolerate concurrent reads.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from refnet.domain.models import Person, Relationship
from refnet.domain.types import RelationshipType


@runtime_checkable
class RelationshipStore(Protocol):
    """Read-only access to people and their outgoing referrals."""

    def get_person(self, person_id: str) -> Person | None:
        """Return the person, or None if unknown."""
        ...

    def get_outgoing_referral_edges(self, person_id: str) -> list[Relationship]:
        """Return referral relationships whose source is *person_id*."""
        ...


class InMemoryRelationshipStore:
    """Dict-backed store for tests and embedding hosts.

    Relationships are returned in insertion order, which fixes the
    discovery order the layout relies on.
    """

    def __init__(
        self,
        persons: Iterable[Person] = (),
        relationships: Iterable[Relationship] = (),
    ) -> None:
        self._persons: dict[str, Person] = {}
        self._outgoing: dict[str, list[Relationship]] = {}
        for person in persons:
            self.add_person(person)
        for rel in relationships:
            self.add_relationship(rel)

    def add_person(self, person: Person) -> None:
        self._persons[person.id] = person

    def add_relationship(self, rel: Relationship) -> None:
        self._outgoing.setdefault(rel.source_id, []).append(rel)

    def get_person(self, person_id: str) -> Person | None:
        return self._persons.get(person_id)

    def get_outgoing_referral_edges(self, person_id: str) -> list[Relationship]:
        return [
            rel
            for rel in self._outgoing.get(person_id, [])
            if rel.type == RelationshipType.REFERRAL
        ]
