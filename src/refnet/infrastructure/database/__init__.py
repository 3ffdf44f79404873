"""SQLite persistence for the relationship store (SQLAlchemy Core)."""

from refnet.infrastructure.database.engine import create_db_engine, init_database
from refnet.infrastructure.database.schema import metadata, persons, relationships
from refnet.infrastructure.database.store import SqlRelationshipStore, read_dataset

__all__ = [
    "SqlRelationshipStore",
    "create_db_engine",
    "init_database",
    "metadata",
    "persons",
    "read_dataset",
    "relationships",
]
