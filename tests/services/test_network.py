"""Tests for NetworkService — result payloads, errors and warnings."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from refnet.config.settings import RefnetSettings
from refnet.infrastructure.store import InMemoryRelationshipStore
from refnet.services.network import NetworkService
from tests.conftest import lead, member, referral, refers


@pytest.fixture
def svc(scenario_b: InMemoryRelationshipStore, settings: RefnetSettings) -> NetworkService:
    return NetworkService(scenario_b, settings)


class TestBuild:
    def test_payload(self, svc: NetworkService) -> None:
        result = svc.build("M1")
        assert result.ok
        assert result.op == "build_network"
        assert [n["id"] for n in result.data["nodes"]] == ["M1", "M2", "R1"]
        assert result.data["multi_referrers"] == ["R1"]
        assert result.data["state"] == "built"
        assert result.data["depth"] == 2
        assert "x" not in result.data["nodes"][0]

    def test_depth_override(self, svc: NetworkService) -> None:
        result = svc.build("M1", depth=0)
        assert [n["id"] for n in result.data["nodes"]] == ["M1"]

    def test_exclude_members(self, svc: NetworkService) -> None:
        result = svc.build("M1", include_members=False)
        assert [n["id"] for n in result.data["nodes"]] == ["M1", "R1"]

    def test_unknown_root(self, svc: NetworkService) -> None:
        result = svc.build("nobody")
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "NOT_FOUND"
        assert result.error.detail == {"id": "nobody"}

    def test_negative_depth(self, svc: NetworkService) -> None:
        result = svc.build("M1", depth=-2)
        assert result.error is not None
        assert result.error.code == "INVALID_DEPTH"

    def test_refuses_to_run_inside_event_loop(self, svc: NetworkService) -> None:
        async def from_async_host() -> None:
            svc.build("M1")

        with pytest.raises(RuntimeError, match="synchronous"):
            asyncio.run(from_async_host())

    def test_warnings_become_strings(self, settings: RefnetSettings) -> None:
        store = InMemoryRelationshipStore(
            persons=[member("M1")],
            relationships=[refers("M1", "ghost")],
        )
        result = NetworkService(store, settings).build("M1", depth=50)
        assert result.ok
        assert len(result.warnings) == 2
        assert any("capped" in w for w in result.warnings)
        assert any("ghost" in w for w in result.warnings)

    def test_config_default_depth(
        self, scenario_b: InMemoryRelationshipStore, tmp_path: Path
    ) -> None:
        (tmp_path / "refnet.toml").write_text("[network]\ndefault_depth = 1\n")
        settings = RefnetSettings.from_cli(root=tmp_path)
        result = NetworkService(scenario_b, settings).build("M2")
        assert [n["id"] for n in result.data["nodes"]] == ["M2", "R1"]


class TestLayout:
    def test_positions_and_segments(self, svc: NetworkService) -> None:
        result = svc.layout("M1", width=300, height=500)
        assert result.ok
        assert result.data["state"] == "laid_out"
        assert result.data["empty"] is False
        assert all(n["pinned"] for n in result.data["nodes"])
        m1 = result.data["nodes"][0]
        assert (m1["x"], m1["y"]) == (100.0, 60.0)
        assert all(len(e["segment"]) == 4 for e in result.data["edges"])

    def test_invalid_viewport(self, svc: NetworkService) -> None:
        result = svc.layout("M1", width=0)
        assert result.error is not None
        assert result.error.code == "INVALID_VIEWPORT"

    def test_empty_state(self, settings: RefnetSettings) -> None:
        store = InMemoryRelationshipStore(
            persons=[lead("L1"), referral("R1")],
            relationships=[refers("L1", "R1")],
        )
        result = NetworkService(store, settings).layout("L1")
        assert result.ok
        assert result.data["empty"] is True
        assert result.data["state"] == "built"


class TestFilter:
    def test_role(self, svc: NetworkService) -> None:
        result = svc.filter("M1", role="member")
        assert result.ok
        assert [n["id"] for n in result.data["nodes"]] == ["M1", "M2"]
        assert result.data["total"] == 3
        assert [(e["source"], e["target"]) for e in result.data["edges"]] == [("M1", "M2")]

    def test_no_filter_shows_everything(self, svc: NetworkService) -> None:
        result = svc.filter("M1")
        assert len(result.data["nodes"]) == 3
        assert len(result.data["edges"]) == 3

    def test_search(self, svc: NetworkService) -> None:
        result = svc.filter("M1", search="r1")
        assert [n["id"] for n in result.data["nodes"]] == ["R1"]


class TestSelect:
    def test_snapshot(self, svc: NetworkService) -> None:
        result = svc.select("M1", "R1")
        assert result.ok
        assert result.data["id"] == "R1"
        assert result.data["incoming_referrals"] == 2
        assert result.data["multi_referrer"] is True
        assert result.data["role"] == "referral"

    def test_unknown_node(self, svc: NetworkService) -> None:
        result = svc.select("M1", "nobody")
        assert result.error is not None
        assert result.error.code == "NOT_FOUND"
