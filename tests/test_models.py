"""
Tests for models.py and errors.py – enums, factor registry, records and error bodies.
"""
import pytest
from pydantic import ValidationError as PydanticValidationError

from factories import make_vendor

from ea_assistant.errors import (
    ConfigurationError,
    ExecutionError,
    UpstreamError,
    ValidationError,
)
from ea_assistant.models import (
    FACTOR_KEYS,
    QUADRANT_FACTORS,
    Artifact,
    ArtifactType,
    Quadrant,
    VendorScoreRecord,
)


class TestFactorRegistry:
    def test_twelve_factors(self):
        assert len(QUADRANT_FACTORS) == 12
        assert len(set(FACTOR_KEYS)) == 12

    @pytest.mark.parametrize("axis", ["execute", "vision"])
    def test_axis_weights_sum_to_100(self, axis):
        assert sum(f["weight"] for f in QUADRANT_FACTORS if f["axis"] == axis) == 100


class TestVendorScoreRecord:
    def test_score_bounds(self):
        with pytest.raises(PydanticValidationError):
            VendorScoreRecord(name="X Corp", quadrant=Quadrant.LEADERS,
                              ability_to_execute=120, completeness_of_vision=50)

    def test_json_dump(self):
        dumped = make_vendor().model_dump(mode="json")
        assert dumped["quadrant"] == "Leaders"
        assert VendorScoreRecord(**dumped) == make_vendor()


class TestArtifact:
    def test_size_kb(self):
        art = Artifact(ArtifactType.PDF, "a.pdf", "A", "", b"x" * 1536, "application/pdf")
        assert art.size_kb == 1.5


class TestErrors:
    def test_validation_body(self):
        err = ValidationError("Technology parameter required")
        assert err.status_code == 400
        assert err.to_body() == {"success": False, "error": "Technology parameter required"}

    def test_configuration_hint(self):
        err = ConfigurationError("OpenAI API key not configured", hint="Add OPENAI_API_KEY")
        assert err.status_code == 500
        assert err.to_body()["hint"] == "Add OPENAI_API_KEY"

    def test_upstream_keeps_vendor_status(self):
        err = UpstreamError("Gemini", 403, "API key invalid")
        assert err.status_code == 403
        assert err.to_body() == {"success": False, "error": "Gemini API error: 403", "details": "API key invalid"}

    def test_execution_error(self):
        assert ExecutionError("x").status_code == 500
