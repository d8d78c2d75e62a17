"""Tests for engine configuration models.

Covers: axis domain lookup, var-path resolution, per-engine defaults,
validation of out-of-range values, camelCase construction.
"""

import pytest
from pydantic import ValidationError

from expression_diagnostics.engine.config import (
    AxisDomainConfig,
    ConflictDetectorConfig,
    FeasibilityConfig,
    GateAnalysisConfig,
)
from expression_diagnostics.models.axis import AxisInterval
from expression_diagnostics.models.common import PrototypeDomain


# ===================================================================
# AxisDomainConfig
# ===================================================================


class TestAxisDomains:
    """Native value domain per axis."""

    @pytest.mark.parametrize(
        ("axis", "expected"),
        [
            ("valence", AxisInterval(min=-1.0, max=1.0)),
            ("threat", AxisInterval(min=-1.0, max=1.0)),
            ("affective_empathy", AxisInterval(min=0.0, max=1.0)),
            ("sex_inhibition", AxisInterval(min=0.0, max=1.0)),
        ],
    )
    def test_known_axes(self, axis: str, expected: AxisInterval) -> None:
        assert AxisDomainConfig().domain_for_axis(axis) == expected

    def test_unknown_axis_follows_prototype_domain(self) -> None:
        config = AxisDomainConfig()
        assert config.domain_for_axis("novelty") == AxisInterval(min=-1.0, max=1.0)
        assert config.domain_for_axis(
            "novelty", PrototypeDomain.SEXUAL,
        ) == AxisInterval(min=0.0, max=1.0)

    def test_inverted_range_rejected(self) -> None:
        with pytest.raises(ValidationError):
            AxisDomainConfig(mood_range=(1.0, -1.0))

    def test_non_positive_scale_rejected(self) -> None:
        with pytest.raises(ValidationError):
            AxisDomainConfig(namespace_scales={"moodAxes": 0.0})


class TestResolveAxisPath:
    """Expression var paths map to (axis, raw scale)."""

    def test_namespaced(self) -> None:
        assert AxisDomainConfig().resolve_axis_path("moodAxes.threat") == ("threat", 100.0)

    def test_scalar_path(self) -> None:
        assert AxisDomainConfig().resolve_axis_path("sexualArousal") == (
            "sexual_arousal", 1.0,
        )

    @pytest.mark.parametrize(
        "path", ["emotions.fear", "moodAxes", "moodAxes.", "moodAxes.a.b", "turnCount"],
    )
    def test_non_axis_paths(self, path: str) -> None:
        assert AxisDomainConfig().resolve_axis_path(path) is None


# ===================================================================
# Engine configs
# ===================================================================


class TestEngineConfigDefaults:
    """Defaults match the shipped thresholds."""

    def test_gate_analysis(self) -> None:
        config = GateAnalysisConfig()
        assert config.knife_edge_width == 0.02
        assert config.prototype_namespaces == {
            "emotions": PrototypeDomain.EMOTION,
            "sexualStates": PrototypeDomain.SEXUAL,
        }

    def test_feasibility(self) -> None:
        assert FeasibilityConfig().rare_pass_rate == 0.0005

    def test_conflict_detector(self) -> None:
        config = ConflictDetectorConfig()
        assert config.min_top_fit_score == 0.30
        assert config.top_prototype_count == 3
        assert config.max_suggested_fixes == 5
        assert "previousEmotions" in config.emotion_namespaces


class TestEngineConfigValidation:
    """Engine configs reject invalid values."""

    def test_negative_knife_edge_rejected(self) -> None:
        with pytest.raises(ValidationError):
            GateAnalysisConfig(knife_edge_width=-0.1)

    def test_pass_rate_above_one_rejected(self) -> None:
        with pytest.raises(ValidationError):
            FeasibilityConfig(rare_pass_rate=1.5)

    def test_zero_fix_cap_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ConflictDetectorConfig(max_suggested_fixes=0)

    def test_camel_case_keys(self) -> None:
        config = ConflictDetectorConfig.model_validate({"minTopFitScore": 0.5})
        assert config.min_top_fit_score == 0.5
