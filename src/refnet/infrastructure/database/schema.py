"""SQLAlchemy Core table definitions for the relationship store.

Only the columns the network engine reads are modelled. Contact
preferences, pipeline status and message history live elsewhere in the
host application and are never touched here.
"""

from __future__ import annotations

from sqlalchemy import (
    Column,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
)

metadata = MetaData()

persons = Table(
    "persons",
    metadata,
    Column("id", Text, primary_key=True),
    Column("first_name", Text, nullable=False, default="", server_default=""),
    Column("last_name", Text, nullable=False, default="", server_default=""),
    Column("email", Text),
    Column("phone", Text),
    Column("is_member", Integer, default=0, server_default="0"),
    Column("is_referral", Integer, default=0, server_default="0"),
    Column("is_lead", Integer, default=0, server_default="0"),
)

# No foreign key on target_id: dangling references are tolerated and
# reported as partial data by the builder.
relationships = Table(
    "relationships",
    metadata,
    Column("seq", Integer, primary_key=True, autoincrement=True),
    Column("id", Text, nullable=False, unique=True),
    Column("source_id", Text, ForeignKey("persons.id"), nullable=False),
    Column("target_id", Text, nullable=False),
    Column("relationship_type", Text, nullable=False, default="referral"),
    Column("direction", Text, default="outgoing", server_default="outgoing"),
    Column("is_primary", Integer, default=0, server_default="0"),
    Column("strength", Text),
    Index("ix_relationships_source_type", "source_id", "relationship_type"),
)
