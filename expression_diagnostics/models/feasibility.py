"""Pydantic schemas for clause feasibility, fit rankings, gate alignment and conflicts.

FeasibilityClauseResult, PrototypeFitResult and GateAlignmentResult are
produced by upstream engines (sampling, fit ranking, gate alignment) and only
consumed here. Conflict is produced by the conflict detector.
"""

from pydantic import Field

from expression_diagnostics.models.axis import AxisInterval
from expression_diagnostics.models.common import (
    ConflictType,
    DiagnosticsBase,
    FeasibilityClassification,
    GateOperator,
    SignalKind,
)

# ---------------------------------------------------------------------------
# Clause feasibility (sampling engine output)
# ---------------------------------------------------------------------------


class FeasibilityClauseResult(DiagnosticsBase):
    """Sampling statistics and verdict for one threshold clause."""

    clause_id: str = Field(..., min_length=1)
    var_path: str = Field(..., min_length=1)
    operator: GateOperator
    threshold: float
    signal: SignalKind = SignalKind.FINAL
    population: int = Field(default=0, ge=0)
    pass_rate: float | None = Field(default=None, ge=0.0, le=1.0)
    max_value: float | None = None
    p95_value: float | None = Field(default=None, alias="p95Value")
    margin_max: float | None = None
    classification: FeasibilityClassification = FeasibilityClassification.UNKNOWN
    evidence: dict[str, object] = Field(default_factory=dict)
    source_path: str | None = None

    @property
    def is_impossible(self) -> bool:
        return self.classification == FeasibilityClassification.IMPOSSIBLE


# ---------------------------------------------------------------------------
# Prototype fit ranking (fit-ranking engine output)
# ---------------------------------------------------------------------------


class LeaderboardEntry(DiagnosticsBase):
    """One ranked prototype in the fit leaderboard."""

    prototype_id: str = Field(..., min_length=1)
    composite_score: float
    rank: int | None = None


class PrototypeFitResult(DiagnosticsBase):
    """Prototypes ranked by how well they fit the expression, best first."""

    leaderboard: list[LeaderboardEntry] = Field(default_factory=list)

    @property
    def top_score(self) -> float | None:
        if not self.leaderboard:
            return None
        return self.leaderboard[0].composite_score


# ---------------------------------------------------------------------------
# Gate alignment (gate-alignment engine output)
# ---------------------------------------------------------------------------


class GateContradiction(DiagnosticsBase):
    """Mood-regime interval and gate-derived interval that do not overlap."""

    emotion_id: str = Field(..., min_length=1)
    axis: str = Field(..., min_length=1)
    regime_interval: AxisInterval | None = None
    gate_interval: AxisInterval | None = None
    reason: str | None = None


class GateAlignmentResult(DiagnosticsBase):
    """Alignment of prototype gates against the expression's mood regime."""

    contradictions: list[GateContradiction] | None = Field(default_factory=list)
    tight_passages: list[dict[str, object]] = Field(default_factory=list)
    has_issues: bool = False


# ---------------------------------------------------------------------------
# Conflict (detector output)
# ---------------------------------------------------------------------------


class Conflict(DiagnosticsBase):
    """A cross-signal conflict with an explanation and ordered fixes."""

    type: ConflictType
    impossible_clause_ids: list[str] = Field(default_factory=list)
    top_prototypes: list[tuple[str, float]] = Field(default_factory=list)
    explanation: str
    suggested_fixes: list[str] = Field(default_factory=list)
