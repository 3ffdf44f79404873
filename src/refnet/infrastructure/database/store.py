"""SqlRelationshipStore — RelationshipStore backed by SQLite tables."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

from sqlalchemy import insert, select

from refnet.domain.models import Person, Relationship
from refnet.domain.types import RelationshipType
from refnet.infrastructure.database.schema import persons, relationships

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine, Row


def _person_from_row(row: Row[Any]) -> Person:
    return Person(
        id=row.id,
        first_name=row.first_name or "",
        last_name=row.last_name or "",
        email=row.email,
        phone=row.phone,
        is_member=bool(row.is_member),
        is_referral=bool(row.is_referral),
        is_lead=bool(row.is_lead),
    )


def _relationship_from_row(row: Row[Any]) -> Relationship:
    return Relationship(
        id=row.id,
        source_id=row.source_id,
        target_id=row.target_id,
        type=RelationshipType(row.relationship_type),
        direction=row.direction or "outgoing",
        is_primary=bool(row.is_primary),
        strength=row.strength,
    )


class SqlRelationshipStore:
    """Point lookups over the ``persons`` and ``relationships`` tables.

    Outgoing relationships come back in insertion order (``seq``), which
    makes discovery order reproducible across runs.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @property
    def engine(self) -> Engine:
        return self._engine

    def get_person(self, person_id: str) -> Person | None:
        with self._engine.connect() as conn:
            row = conn.execute(select(persons).where(persons.c.id == person_id)).first()
        return _person_from_row(row) if row is not None else None

    def get_outgoing_referral_edges(self, person_id: str) -> list[Relationship]:
        stmt = (
            select(relationships)
            .where(
                relationships.c.source_id == person_id,
                relationships.c.relationship_type == str(RelationshipType.REFERRAL),
            )
            .order_by(relationships.c.seq)
        )
        with self._engine.connect() as conn:
            return [_relationship_from_row(row) for row in conn.execute(stmt)]

    def load(self, people: list[Person], rels: list[Relationship]) -> dict[str, int]:
        """Insert people and relationships in one transaction.

        Existing ids are skipped, so loading the same file twice is harmless.
        """
        added_people = 0
        added_rels = 0
        with self._engine.begin() as conn:
            for person in people:
                exists = conn.execute(
                    select(persons.c.id).where(persons.c.id == person.id)
                ).first()
                if exists is not None:
                    continue
                conn.execute(
                    insert(persons).values(
                        id=person.id,
                        first_name=person.first_name,
                        last_name=person.last_name,
                        email=person.email,
                        phone=person.phone,
                        is_member=int(person.is_member),
                        is_referral=int(person.is_referral),
                        is_lead=int(person.is_lead),
                    )
                )
                added_people += 1
            for rel in rels:
                exists = conn.execute(
                    select(relationships.c.id).where(relationships.c.id == rel.id)
                ).first()
                if exists is not None:
                    continue
                conn.execute(
                    insert(relationships).values(
                        id=rel.id,
                        source_id=rel.source_id,
                        target_id=rel.target_id,
                        relationship_type=str(rel.type),
                        direction=rel.direction,
                        is_primary=int(rel.is_primary),
                        strength=rel.strength,
                    )
                )
                added_rels += 1
        return {"persons": added_people, "relationships": added_rels}


def read_dataset(path: Path) -> tuple[list[Person], list[Relationship]]:
    """Parse a ``{"persons": [...], "relationships": [...]}`` JSON file.

    Raises ``ValueError`` on malformed JSON and pydantic's
    ``ValidationError`` (a ``ValueError``) on invalid records.
    """
    raw: dict[str, Any] = json.loads(path.read_text(encoding="utf-8"))
    people = [Person.model_validate(p) for p in raw.get("persons", [])]
    rels = [Relationship.model_validate(r) for r in raw.get("relationships", [])]
    return people, rels
