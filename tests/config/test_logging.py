"""Tests for structlog configuration."""

from __future__ import annotations

import json
import logging
from collections.abc import Generator

import pytest
import structlog

from refnet.config.logging import configure_logging


@pytest.fixture(autouse=True)
def _restore_logging() -> Generator[None]:
    """Restore root logger state after each test."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    refnet = logging.getLogger("refnet")
    refnet_level = refnet.level
    yield
    root.handlers = original_handlers
    root.setLevel(original_level)
    refnet.setLevel(refnet_level)


class TestConfigureLogging:
    def test_verbose_enables_debug(self) -> None:
        configure_logging(verbose=True, log_json=False)
        assert logging.getLogger("refnet").level == logging.DEBUG
        assert logging.getLogger().level == logging.WARNING

    def test_non_verbose_sets_warning(self) -> None:
        configure_logging(verbose=False, log_json=False)
        assert logging.getLogger("refnet").level == logging.WARNING

    def test_json_mode_output(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(verbose=True, log_json=True)
        log = structlog.get_logger("refnet.network.builder")
        log.warning("partial_data", root_id="M1", detail="missing")
        parsed = json.loads(capfd.readouterr().err.strip())
        assert parsed["event"] == "partial_data"
        assert parsed["root_id"] == "M1"
        assert parsed["level"] == "warning"
        assert parsed["logger"] == "refnet.network.builder"
        assert "timestamp" in parsed

    def test_debug_hidden_unless_verbose(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(verbose=False, log_json=True)
        structlog.get_logger("refnet.network.layout").debug("layout_settled")
        assert capfd.readouterr().err == ""

    def test_stdlib_logger_gets_structured_fields(
        self, capfd: pytest.CaptureFixture[str]
    ) -> None:
        configure_logging(verbose=True, log_json=True)
        logging.getLogger("refnet.infrastructure").debug("opened store")
        parsed = json.loads(capfd.readouterr().err.strip())
        assert parsed["event"] == "opened store"
        assert parsed["level"] == "debug"

    def test_third_party_debug_is_suppressed(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(verbose=True, log_json=True)
        logging.getLogger("sqlalchemy.engine").debug("SELECT 1")
        logging.getLogger("asyncio").debug("loop noise")
        assert capfd.readouterr().err == ""

    def test_idempotent_calls(self) -> None:
        configure_logging(verbose=True, log_json=False)
        configure_logging(verbose=True, log_json=True)
        assert len(logging.getLogger().handlers) == 1

    def test_floats_are_rounded(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(verbose=True, log_json=True)
        structlog.get_logger("refnet.network.interaction").debug(
            "drag_ended", node_id="R1", position=(40.123456, 399.987654), energy=0.000123456
        )
        parsed = json.loads(capfd.readouterr().err.strip())
        assert parsed["position"] == [40.123, 399.988]
        assert parsed["energy"] == 0.0
        assert parsed["node_id"] == "R1"
