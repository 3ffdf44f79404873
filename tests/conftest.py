"""Shared pytest fixtures for refnet tests."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner
from sqlalchemy.engine import Engine

from refnet.config.settings import RefnetSettings
from refnet.domain.models import Person, Relationship
from refnet.domain.types import RelationshipType
from refnet.infrastructure.database.engine import init_database
from refnet.infrastructure.database.store import SqlRelationshipStore
from refnet.infrastructure.store import InMemoryRelationshipStore
from refnet.network.builder import build_network
from refnet.network.graph import NetworkGraph
from refnet.services.telemetry import disable_telemetry

# ---------------------------------------------------------------------------
# Record builders
# ---------------------------------------------------------------------------


def member(pid: str, first: str = "", last: str = "", **kwargs: Any) -> Person:
    return Person(id=pid, first_name=first or pid, last_name=last, is_member=True, **kwargs)


def referral(pid: str, first: str = "", last: str = "", **kwargs: Any) -> Person:
    return Person(id=pid, first_name=first or pid, last_name=last, is_referral=True, **kwargs)


def lead(pid: str, first: str = "", last: str = "", **kwargs: Any) -> Person:
    return Person(id=pid, first_name=first or pid, last_name=last, is_lead=True, **kwargs)


def refers(source: str, target: str, rel_id: str | None = None, **kwargs: Any) -> Relationship:
    return Relationship(
        id=rel_id or f"{source}->{target}",
        source_id=source,
        target_id=target,
        **kwargs,
    )


def family(source: str, target: str) -> Relationship:
    return Relationship(
        id=f"{source}~{target}",
        source_id=source,
        target_id=target,
        type=RelationshipType.FAMILY,
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def scenario_a() -> InMemoryRelationshipStore:
    """M1 (member) refers R1 and R2 (referral only)."""
    return InMemoryRelationshipStore(
        persons=[
            member("M1", "Maya", "Moss", email="maya@example.com", phone="555-0100"),
            referral("R1", "Rita", "Reyes", email="Rita.Reyes@Example.com", phone="555-0101"),
            referral("R2", "Ravi", "Rao", email="ravi@example.com", phone="555-0102"),
        ],
        relationships=[refers("M1", "R1"), refers("M1", "R2")],
    )


@pytest.fixture
def scenario_b() -> InMemoryRelationshipStore:
    """M1 refers M2 and R1; M2 also refers R1."""
    return InMemoryRelationshipStore(
        persons=[member("M1"), member("M2"), referral("R1")],
        relationships=[refers("M1", "M2"), refers("M1", "R1"), refers("M2", "R1")],
    )


@pytest.fixture
def build() -> Callable[..., NetworkGraph]:
    """Run the async builder to completion."""

    def _build(store: Any, root_id: str, max_depth: int, **kwargs: Any) -> NetworkGraph:
        return asyncio.run(build_network(store, root_id, max_depth, **kwargs))

    return _build


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "refnet.db"


@pytest.fixture
def db_engine(db_path: Path) -> Generator[Engine]:
    """Initialized SQLite engine with all tables created."""
    engine = init_database(db_path)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sql_store(db_engine: Engine) -> SqlRelationshipStore:
    return SqlRelationshipStore(db_engine)


@pytest.fixture
def settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> RefnetSettings:
    """Default settings rooted at a temp directory."""
    monkeypatch.delenv("REFNET_CONFIG", raising=False)
    return RefnetSettings.from_cli(root=tmp_path)


@pytest.fixture
def dataset_file(tmp_path: Path) -> Path:
    """JSON dataset: a member with two referrals, one of them shared with a second member."""
    data = {
        "persons": [
            {"id": "M1", "first_name": "Maya", "last_name": "Moss", "is_member": True},
            {"id": "M2", "first_name": "Noah", "last_name": "Nash", "is_member": True},
            {
                "id": "R1",
                "first_name": "Rita",
                "last_name": "Reyes",
                "email": "rita@example.com",
                "is_referral": True,
            },
            {"id": "L1", "first_name": "Lena", "last_name": "Lund", "is_lead": True},
        ],
        "relationships": [
            {"id": "rel-1", "source_id": "M1", "target_id": "M2"},
            {"id": "rel-2", "source_id": "M1", "target_id": "R1"},
            {"id": "rel-3", "source_id": "M2", "target_id": "R1"},
            {"id": "rel-4", "source_id": "R1", "target_id": "L1"},
            {"id": "rel-5", "source_id": "M1", "target_id": "L1", "type": "family"},
        ],
    }
    path = tmp_path / "people.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


@pytest.fixture
def _isolated_store(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Run CLI commands from a temp directory so the store lands there."""
    monkeypatch.delenv("REFNET_CONFIG", raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def _reset_telemetry() -> Generator[None]:
    """``-v`` invocations enable telemetry for the whole thread; undo it."""
    yield
    disable_telemetry()
