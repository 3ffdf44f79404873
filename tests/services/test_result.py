"""Tests for ServiceResult and ServiceError."""

import json

import pytest
from pydantic import ValidationError

from refnet.services.result import ServiceError, ServiceResult


class TestServiceResult:
    def test_success_construction(self) -> None:
        result = ServiceResult(ok=True, op="build_network", data={"root_id": "M1"})
        assert result.ok is True
        assert result.data == {"root_id": "M1"}
        assert result.warnings == []
        assert result.error is None
        assert result.meta is None

    def test_failure_helper(self) -> None:
        result = ServiceResult.failure("layout_network", "INVALID_VIEWPORT", "bad", width=0)
        assert result.ok is False
        assert result.error == ServiceError(
            code="INVALID_VIEWPORT", message="bad", detail={"width": 0}
        )

    def test_frozen(self) -> None:
        result = ServiceResult(ok=True, op="x")
        with pytest.raises(ValidationError):
            result.ok = False  # type: ignore[misc]

    def test_json_round_trip(self) -> None:
        result = ServiceResult(ok=True, op="select_node", warnings=["partial"], data={"id": "R1"})
        parsed = json.loads(result.model_dump_json())
        assert parsed["warnings"] == ["partial"]
        assert ServiceResult.model_validate(parsed) == result
