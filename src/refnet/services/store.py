"""StoreService — create the SQLite store and load JSON datasets into it."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError

from refnet.infrastructure.database import init_database, read_dataset
from refnet.services.result import ServiceResult
from refnet.services.telemetry import trace_span, traced

if TYPE_CHECKING:
    from pathlib import Path

    from refnet.config.settings import RefnetSettings
    from refnet.infrastructure.database import SqlRelationshipStore


@traced
def init_store(settings: RefnetSettings) -> ServiceResult:
    """Create the database file and tables. Idempotent."""
    path = settings.database_path
    existed = path.exists()
    engine = init_database(path)
    engine.dispose()
    return ServiceResult(
        ok=True,
        op="init_store",
        data={"path": str(path), "created": not existed},
    )


class StoreService:
    """Bulk writes into a :class:`SqlRelationshipStore`."""

    def __init__(self, store: SqlRelationshipStore) -> None:
        self._store = store

    @traced
    def load_file(self, path: Path) -> ServiceResult:
        """Load a ``{"persons": [...], "relationships": [...]}`` JSON file."""
        op = "load_store"
        try:
            with trace_span("read_dataset"):
                people, rels = read_dataset(path)
        except ValueError as exc:
            return ServiceResult.failure(op, "INVALID_DATA", str(exc), path=str(path))
        try:
            with trace_span("insert"):
                counts = self._store.load(people, rels)
        except IntegrityError as exc:
            return ServiceResult.failure(
                op,
                "INVALID_DATA",
                "Dataset violates store constraints",
                path=str(path),
                reason=str(exc.orig),
            )
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "path": str(path),
                "persons": counts["persons"],
                "relationships": counts["relationships"],
                "skipped": len(people) + len(rels) - counts["persons"] - counts["relationships"],
            },
        )
