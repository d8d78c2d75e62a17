"""Engine configuration: axis domains and per-engine thresholds.

All defaults match the authoring tool's shipped axis model and can be
overridden per analysis by passing a custom config at construction.

Deterministic -- no LLM calls.
"""

from __future__ import annotations

from pydantic import Field, model_validator

from expression_diagnostics.models.axis import AxisInterval
from expression_diagnostics.models.common import DiagnosticsBase, PrototypeDomain


class AxisDomainConfig(DiagnosticsBase):
    """Native value domain of every axis, and how expression paths map to axes.

    Mood axes live on ``[-1, 1]``; affect traits and sexual axes on
    ``[0, 1]``. Axes not listed fall back to the default domain of the
    prototype table being analysed.
    """

    mood_axes: tuple[str, ...] = (
        "valence",
        "arousal",
        "agency_control",
        "threat",
        "engagement",
        "future_expectancy",
        "self_evaluation",
        "affiliation",
    )
    affect_traits: tuple[str, ...] = (
        "affective_empathy",
        "cognitive_empathy",
        "harm_aversion",
    )
    sexual_axes: tuple[str, ...] = (
        "sexual_arousal",
        "sex_excitation",
        "sex_inhibition",
        "baseline_libido",
    )

    mood_range: tuple[float, float] = (-1.0, 1.0)
    unit_range: tuple[float, float] = (0.0, 1.0)

    # Expression var-path namespace -> raw scale of the values it carries.
    # Raw thresholds are divided by the scale before tightening.
    namespace_scales: dict[str, float] = Field(
        default_factory=lambda: {
            "moodAxes": 100.0,
            "mood": 100.0,
            "affectTraits": 100.0,
            "sexualAxes": 100.0,
            "sexual": 100.0,
        },
    )
    # Var paths that are themselves an axis (no namespace prefix).
    scalar_axis_paths: dict[str, str] = Field(
        default_factory=lambda: {"sexualArousal": "sexual_arousal"},
    )

    @model_validator(mode="after")
    def _validate_ranges(self) -> AxisDomainConfig:
        for name in ("mood_range", "unit_range"):
            lo, hi = getattr(self, name)
            if lo > hi:
                raise ValueError(f"{name} lower bound {lo} > upper bound {hi}.")
        bad = [ns for ns, scale in self.namespace_scales.items() if scale <= 0]
        if bad:
            raise ValueError(f"Namespace scales must be positive: {bad}")
        return self

    def domain_for_axis(
        self,
        axis: str,
        prototype_domain: PrototypeDomain = PrototypeDomain.EMOTION,
    ) -> AxisInterval:
        """Native interval of *axis* before any constraint applies."""
        if axis in self.mood_axes:
            lo, hi = self.mood_range
        elif axis in self.affect_traits or axis in self.sexual_axes:
            lo, hi = self.unit_range
        elif prototype_domain == PrototypeDomain.SEXUAL:
            lo, hi = self.unit_range
        else:
            lo, hi = self.mood_range
        return AxisInterval(min=lo, max=hi)

    def resolve_axis_path(self, var_path: str) -> tuple[str, float] | None:
        """Map an expression var path to ``(axis, raw_scale)``.

        ``"moodAxes.threat"`` -> ``("threat", 100.0)``. Returns ``None`` for
        paths that do not address an axis.
        """
        if var_path in self.scalar_axis_paths:
            return self.scalar_axis_paths[var_path], 1.0
        namespace, sep, axis = var_path.partition(".")
        if not sep or not axis or "." in axis:
            return None
        scale = self.namespace_scales.get(namespace)
        if scale is None:
            return None
        return axis, scale


class GateAnalysisConfig(DiagnosticsBase):
    """Configuration for the gate-constraint analyzer."""

    knife_edge_width: float = Field(default=0.02, ge=0.0)
    # Var-path namespace -> prototype table whose gates a threshold enforces.
    prototype_namespaces: dict[str, PrototypeDomain] = Field(
        default_factory=lambda: {
            "emotions": PrototypeDomain.EMOTION,
            "sexualStates": PrototypeDomain.SEXUAL,
        },
    )


class FeasibilityConfig(DiagnosticsBase):
    """Configuration for clause feasibility classification."""

    # Below this sampled pass rate a reachable clause is RARE (0.05%).
    rare_pass_rate: float = Field(default=0.0005, ge=0.0, le=1.0)


class ConflictDetectorConfig(DiagnosticsBase):
    """Configuration for fit/feasibility conflict detection."""

    min_top_fit_score: float = Field(default=0.30, ge=0.0, le=1.0)
    top_prototype_count: int = Field(default=3, ge=0)
    max_suggested_fixes: int = Field(default=5, ge=1)
    emotion_namespaces: tuple[str, ...] = (
        "emotions",
        "previousEmotions",
        "sexualStates",
        "previousSexualStates",
    )
