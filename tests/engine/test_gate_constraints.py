"""Tests for the Gate Constraint Analyzer.

Covers: AND-chain tightening, raw-scale normalization, OR / NOT / condition
reference warnings, empty-axis detection, required-prototype gate merging,
knife-edge detection and merge_prototype_gates.
"""

import pytest

from expression_diagnostics.engine.config import GateAnalysisConfig
from expression_diagnostics.engine.gate_constraints import (
    GateAnalysisResult,
    GateConstraintAnalyzer,
)
from expression_diagnostics.engine.registry import InMemoryPrototypeRegistry
from expression_diagnostics.models.axis import AxisInterval
from expression_diagnostics.models.common import PrototypeDomain


def _cmp(op: str, path: str, value: float) -> dict:
    return {op: [{"var": path}, value]}


def _expr(*logic: dict) -> dict:
    return {"prerequisites": [{"logic": item} for item in logic]}


# ===================================================================
# Empty input
# ===================================================================


class TestEmptyInput:
    """No logic means no constraints and no warnings."""

    @pytest.mark.parametrize("expression", [None, {}, [], {"prerequisites": []}])
    def test_empty(self, expression: object) -> None:
        result = GateConstraintAnalyzer().analyze(expression)
        assert result == GateAnalysisResult()
        assert result.constrained_axes == []


# ===================================================================
# AND chains
# ===================================================================


class TestConjunctions:
    """Comparisons under AND tighten per-axis intervals."""

    def test_mood_axes_are_rescaled(self) -> None:
        result = GateConstraintAnalyzer().analyze(_expr({
            "and": [
                _cmp(">=", "moodAxes.threat", 30),
                _cmp("<=", "moodAxes.valence", -10),
            ],
        }))
        assert result.axis_intervals["threat"].min == pytest.approx(0.3)
        assert result.axis_intervals["threat"].max == pytest.approx(1.0)
        assert result.axis_intervals["valence"].min == pytest.approx(-1.0)
        assert result.axis_intervals["valence"].max == pytest.approx(-0.1)
        assert result.warnings == []

    def test_prerequisites_are_conjoined(self) -> None:
        result = GateConstraintAnalyzer().analyze(_expr(
            _cmp(">=", "moodAxes.arousal", 20),
            _cmp("<=", "moodAxes.arousal", 60),
        ))
        interval = result.axis_intervals["arousal"]
        assert (interval.min, interval.max) == pytest.approx((0.2, 0.6))

    def test_sexual_axis_starts_at_unit_domain(self) -> None:
        result = GateConstraintAnalyzer().analyze(
            _cmp("<=", "sexualAxes.sex_inhibition", 40),
        )
        interval = result.axis_intervals["sex_inhibition"]
        assert (interval.min, interval.max) == pytest.approx((0.0, 0.4))

    def test_scalar_sexual_arousal_path_is_not_rescaled(self) -> None:
        result = GateConstraintAnalyzer().analyze(_cmp(">=", "sexualArousal", 0.4))
        interval = result.axis_intervals["sexual_arousal"]
        assert (interval.min, interval.max) == pytest.approx((0.4, 1.0))

    def test_reversed_operands(self) -> None:
        result = GateConstraintAnalyzer().analyze({"<=": [30, {"var": "moodAxes.threat"}]})
        assert result.axis_intervals["threat"].min == pytest.approx(0.3)

    def test_between_form(self) -> None:
        result = GateConstraintAnalyzer().analyze(
            {"<=": [10, {"var": "moodAxes.arousal"}, 40]},
        )
        interval = result.axis_intervals["arousal"]
        assert (interval.min, interval.max) == pytest.approx((0.1, 0.4))

    def test_unrelated_paths_ignored(self) -> None:
        result = GateConstraintAnalyzer().analyze(_cmp(">=", "turnCount", 3))
        assert result.axis_intervals == {}
        assert result.warnings == []

    def test_only_constrained_axes_reported(self) -> None:
        result = GateConstraintAnalyzer().analyze(_cmp(">=", "moodAxes.threat", 30))
        assert list(result.axis_intervals) == ["threat"]

    def test_intervals_always_valid(self) -> None:
        result = GateConstraintAnalyzer().analyze(_expr(
            _cmp(">", "moodAxes.threat", 10),
            _cmp("<", "moodAxes.threat", 90),
            _cmp(">=", "moodAxes.engagement", -50),
        ))
        for interval in result.axis_intervals.values():
            assert interval.min <= interval.max


# ===================================================================
# Unanalyzed structure
# ===================================================================


class TestWarnings:
    """OR, NOT and condition references are reported, not guessed at."""

    def test_or_keeps_pre_or_interval(self) -> None:
        result = GateConstraintAnalyzer().analyze({
            "and": [
                _cmp(">=", "moodAxes.threat", 20),
                {"or": [
                    _cmp(">=", "moodAxes.threat", 50),
                    _cmp(">=", "moodAxes.arousal", 50),
                ]},
            ],
        })
        assert result.axis_intervals["threat"].min == pytest.approx(0.2)
        assert "arousal" not in result.axis_intervals
        assert len(result.warnings) == 1
        assert "OR block with 2 alternatives" in result.warnings[0]
        assert "moodAxes.arousal, moodAxes.threat" in result.warnings[0]

    def test_or_on_irrelevant_paths_is_silent(self) -> None:
        result = GateConstraintAnalyzer().analyze({
            "or": [_cmp(">=", "turnCount", 1), _cmp(">=", "scene.tension", 2)],
        })
        assert result.warnings == []

    def test_nested_or_warns_once(self) -> None:
        result = GateConstraintAnalyzer().analyze({
            "or": [
                _cmp(">=", "moodAxes.threat", 50),
                {"or": [_cmp(">=", "emotions.fear", 0.5), True]},
            ],
        })
        assert len(result.warnings) == 1

    def test_not_warns(self) -> None:
        result = GateConstraintAnalyzer().analyze(
            {"!": _cmp(">=", "moodAxes.threat", 50)},
        )
        assert result.axis_intervals == {}
        assert result.warnings == ["NOT block over moodAxes.threat is not analyzed"]

    def test_condition_ref_warns(self) -> None:
        result = GateConstraintAnalyzer().analyze(
            {"and": [{"condition_ref": "core:is_alone"}, _cmp(">=", "moodAxes.threat", 10)]},
        )
        assert result.axis_intervals["threat"].min == pytest.approx(0.1)
        assert len(result.warnings) == 1
        assert "'core:is_alone'" in result.warnings[0]


# ===================================================================
# Empty axes
# ===================================================================


class TestEmptyAxes:
    """Crossed bounds are recorded, not raised."""

    def test_contradictory_bounds(self) -> None:
        result = GateConstraintAnalyzer().analyze(_expr(
            _cmp(">=", "moodAxes.threat", 60),
            _cmp("<=", "moodAxes.threat", 20),
        ))
        assert result.has_empty_axes
        assert "threat" not in result.axis_intervals
        empty = result.empty_axes[0]
        assert empty.axis == "threat"
        assert empty.lower == pytest.approx(0.6)
        assert empty.upper == pytest.approx(0.2)
        assert empty.message == (
            "Contradictory constraints on threat: min 0.600 > max 0.200"
        )
        assert result.constrained_axes == ["threat"]

    def test_other_axes_still_reported(self) -> None:
        result = GateConstraintAnalyzer().analyze(_expr(
            _cmp(">=", "moodAxes.threat", 60),
            _cmp("<=", "moodAxes.threat", 20),
            _cmp(">=", "moodAxes.valence", 0),
        ))
        assert "valence" in result.axis_intervals

    def test_touching_bounds_are_not_empty(self) -> None:
        result = GateConstraintAnalyzer().analyze(_expr(
            _cmp(">=", "moodAxes.threat", 40),
            _cmp("<=", "moodAxes.threat", 40),
        ))
        assert not result.has_empty_axes
        assert result.axis_intervals["threat"].is_degenerate


# ===================================================================
# Required prototypes
# ===================================================================


class TestRequiredPrototypes:
    """High-direction thresholds on emotions pull in the prototype's gates."""

    def test_gates_merged(self, analyzer: GateConstraintAnalyzer) -> None:
        result = analyzer.analyze(_cmp(">=", "emotions.fear", 0.5))
        assert result.axis_intervals["threat"].min == pytest.approx(0.3)
        assert [r.prototype_id for r in result.required_prototypes] == ["fear"]
        assert result.required_prototypes[0].domain == PrototypeDomain.EMOTION

    def test_sexual_state_gates_merged(self, analyzer: GateConstraintAnalyzer) -> None:
        result = analyzer.analyze(_cmp(">", "sexualStates.desire", 0.2))
        interval = result.axis_intervals["sexual_arousal"]
        assert (interval.min, interval.max) == pytest.approx((0.35, 1.0))

    def test_low_direction_does_not_require(
        self, analyzer: GateConstraintAnalyzer,
    ) -> None:
        result = analyzer.analyze(_cmp("<=", "emotions.calm", 0.2))
        assert result.required_prototypes == []
        assert result.axis_intervals == {}

    def test_required_deduplicated(self, analyzer: GateConstraintAnalyzer) -> None:
        result = analyzer.analyze(_expr(
            _cmp(">=", "emotions.fear", 0.3),
            _cmp(">=", "emotions.fear", 0.6),
        ))
        assert len(result.required_prototypes) == 1

    def test_gate_contradicts_expression(
        self, analyzer: GateConstraintAnalyzer,
    ) -> None:
        result = analyzer.analyze(_expr(
            _cmp("<=", "moodAxes.threat", 10),
            _cmp(">=", "emotions.fear", 0.5),
        ))
        assert [e.axis for e in result.empty_axes] == ["threat"]
        assert result.empty_axes[0].lower == pytest.approx(0.3)
        assert result.empty_axes[0].upper == pytest.approx(0.1)

    def test_unknown_prototype_warns(self, analyzer: GateConstraintAnalyzer) -> None:
        result = analyzer.analyze(_cmp(">=", "emotions.nonexistent", 0.5))
        assert len(result.warnings) == 1
        assert "nonexistent" in result.warnings[0]
        assert "its gates are not applied" in result.warnings[0]

    def test_without_registry_gates_are_skipped(self) -> None:
        result = GateConstraintAnalyzer().analyze(_cmp(">=", "emotions.fear", 0.5))
        assert result.axis_intervals == {}
        assert [r.prototype_id for r in result.required_prototypes] == ["fear"]


# ===================================================================
# Knife edges
# ===================================================================


class TestKnifeEdges:
    """Intervals no wider than knife_edge_width are flagged."""

    def test_narrow_interval_flagged(self) -> None:
        result = GateConstraintAnalyzer().analyze(_expr(
            _cmp(">=", "moodAxes.threat", 30),
            _cmp("<=", "moodAxes.threat", 31),
        ))
        assert [k.axis for k in result.knife_edges] == ["threat"]
        assert result.knife_edges[0].width == pytest.approx(0.01)

    def test_wide_interval_not_flagged(self) -> None:
        result = GateConstraintAnalyzer().analyze(_cmp(">=", "moodAxes.threat", 30))
        assert result.knife_edges == []

    def test_custom_width(self) -> None:
        analyzer = GateConstraintAnalyzer(config=GateAnalysisConfig(knife_edge_width=0.5))
        result = analyzer.analyze(_expr(
            _cmp(">=", "moodAxes.threat", 30),
            _cmp("<=", "moodAxes.threat", 70),
        ))
        assert [k.axis for k in result.knife_edges] == ["threat"]


# ===================================================================
# merge_prototype_gates
# ===================================================================


class TestMergePrototypeGates:
    """Intersecting a prototype's own gates into existing intervals."""

    def test_from_native_domain(self, registry: InMemoryPrototypeRegistry) -> None:
        calm = registry.get("emotion", "calm")
        result = GateConstraintAnalyzer().merge_prototype_gates(calm)
        assert result.axis_intervals["arousal"] == AxisInterval(min=-1.0, max=0.3)
        assert result.axis_intervals["threat"] == AxisInterval(min=-1.0, max=0.2)

    def test_into_existing_intervals(self, registry: InMemoryPrototypeRegistry) -> None:
        calm = registry.get("emotion", "calm")
        result = GateConstraintAnalyzer().merge_prototype_gates(
            calm, {"threat": AxisInterval(min=0.5, max=1.0)},
        )
        assert [e.axis for e in result.empty_axes] == ["threat"]
        assert result.axis_intervals["arousal"].max == pytest.approx(0.3)

    def test_existing_axes_kept(self, registry: InMemoryPrototypeRegistry) -> None:
        joy = registry.get("emotion", "joy")
        result = GateConstraintAnalyzer().merge_prototype_gates(
            joy, {"arousal": AxisInterval(min=0.0, max=0.5)},
        )
        assert result.axis_intervals["arousal"] == AxisInterval(min=0.0, max=0.5)
        assert result.axis_intervals["valence"] == AxisInterval(min=0.2, max=1.0)
