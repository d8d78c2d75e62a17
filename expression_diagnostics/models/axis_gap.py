"""Pydantic schemas for axis-gap detection signals, recommendations and reports.

PCA residuals, hub prototypes, coverage gaps, multi-axis conflicts and
candidate-axis validations come from upstream detectors. Recommendation and
AxisGapReport are produced by the axis_gap package.
"""

from __future__ import annotations

from pydantic import Field

from expression_diagnostics.models.common import (
    CandidateVerdict,
    ConfidenceLevel,
    DiagnosticsBase,
    RecommendationPriority,
    RecommendationType,
)

# ---------------------------------------------------------------------------
# Upstream detector signals
# ---------------------------------------------------------------------------


class TopLoading(DiagnosticsBase):
    """Prototype with a large projection on the residual component."""

    prototype_id: str
    loading: float


class ReconstructionError(DiagnosticsBase):
    """How poorly the current axes reconstruct one prototype."""

    prototype_id: str
    error: float


class PCAResult(DiagnosticsBase):
    """Residual-variance analysis of the prototype weight matrix."""

    residual_variance_ratio: float = 0.0
    additional_significant_components: int = Field(default=0, ge=0)
    top_loading_prototypes: list[TopLoading] = Field(default_factory=list)
    reconstruction_errors: list[ReconstructionError] = Field(default_factory=list)
    residual_eigenvector: dict[str, float] | None = None
    cumulative_variance: list[float] = Field(default_factory=list)
    explained_variance: list[float] = Field(default_factory=list)
    components_for_80_pct: int = Field(default=0, alias="componentsFor80Pct")
    components_for_90_pct: int = Field(default=0, alias="componentsFor90Pct")


class HubPrototype(DiagnosticsBase):
    """Prototype whose similarity neighbourhood overlaps many others."""

    prototype_id: str
    hub_score: float = 0.0
    overlapping_prototypes: list[str] = Field(default_factory=list)
    neighborhood_diversity: int = 0
    suggested_axis_concept: str | None = None


class CoverageGap(DiagnosticsBase):
    """Cluster of prototypes poorly explained by every existing axis."""

    cluster_id: str
    centroid_prototypes: list[str] = Field(default_factory=list)
    distance_to_nearest_axis: float = 0.0
    cluster_magnitude: float | None = None
    cluster_size: int | None = None
    gap_score: float | None = None


class MultiAxisConflict(DiagnosticsBase):
    """Prototype loading on many axes with mixed signs."""

    prototype_id: str
    active_axis_count: int = 0
    sign_balance: float = 0.0
    positive_axes: list[str] | None = None
    negative_axes: list[str] | None = None
    flag_reason: str | None = None


class SplitConflicts(DiagnosticsBase):
    """Multi-axis conflicts split by flag reason."""

    high_axis_loadings: list[MultiAxisConflict] = Field(default_factory=list)
    sign_tensions: list[MultiAxisConflict] = Field(default_factory=list)


class CandidateAxisValidation(DiagnosticsBase):
    """Upstream verdict on a proposed new axis."""

    candidate_id: str
    source: str = "unknown"
    is_recommended: bool = False
    recommendation: CandidateVerdict = CandidateVerdict.INSUFFICIENT_DATA
    affected_prototypes: list[str] = Field(default_factory=list)
    confidence: float | None = None
    direction: dict[str, float] | None = None
    improvement: dict[str, float] | None = None


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------


class RelationshipEntry(DiagnosticsBase):
    """Link from one recommendation to another with shared prototypes."""

    id: str
    similarity: float = Field(..., ge=0.0, le=1.0)
    shared_prototypes: list[str] = Field(default_factory=list)


class RecommendationRelationships(DiagnosticsBase):
    """Links grouped by category; categories without links stay empty."""

    potentially_redundant: list[RelationshipEntry] = Field(default_factory=list)
    overlapping: list[RelationshipEntry] = Field(default_factory=list)
    complementary: list[RelationshipEntry] = Field(default_factory=list)


class Recommendation(DiagnosticsBase):
    """Prioritized action on the axis model.

    ``id`` is content-addressed over type and affected prototypes, so two
    recommendations about the same prototype set always share it.
    """

    id: str
    priority: RecommendationPriority
    type: RecommendationType
    description: str
    affected_prototypes: list[str] = Field(default_factory=list)
    evidence: list[str] = Field(default_factory=list)
    relationships: RecommendationRelationships | None = None


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------


class SignalBreakdown(DiagnosticsBase):
    """Counts of triggered signals per detection method."""

    pca_signals: int = 0
    hub_signals: int = 0
    coverage_gap_signals: int = 0
    multi_axis_conflict_signals: int = 0
    high_axis_loading_signals: int = 0
    sign_tension_signals: int = 0
    candidate_axis_count: int | None = None
    recommended_candidate_count: int | None = None


class ReportSummary(DiagnosticsBase):
    total_prototypes_analyzed: int = 0
    recommendation_count: int = 0
    potential_gaps_detected: int = 0
    signal_breakdown: SignalBreakdown = Field(default_factory=SignalBreakdown)
    confidence: ConfidenceLevel = ConfidenceLevel.LOW


class TopAxis(DiagnosticsBase):
    axis: str
    weight: float


class PrototypeWeightSummary(DiagnosticsBase):
    """Why a prototype was flagged, and its dominant axes."""

    prototype_id: str
    top_axes: list[TopAxis] = Field(default_factory=list)
    reasons: list[str] = Field(default_factory=list)
    metrics_by_reason: dict[str, dict[str, float]] = Field(default_factory=dict)
    distinct_family_count: int = 0
    multi_signal_agreement: bool = False


class AxisGapReport(DiagnosticsBase):
    """Full axis-gap diagnostic output for one analysis pass."""

    summary: ReportSummary = Field(default_factory=ReportSummary)
    pca_analysis: PCAResult = Field(default_factory=PCAResult)
    hub_prototypes: list[HubPrototype] = Field(default_factory=list)
    coverage_gaps: list[CoverageGap] = Field(default_factory=list)
    multi_axis_conflicts: list[MultiAxisConflict] = Field(default_factory=list)
    high_axis_loadings: list[MultiAxisConflict] = Field(default_factory=list)
    sign_tensions: list[MultiAxisConflict] = Field(default_factory=list)
    recommendations: list[Recommendation] = Field(default_factory=list)
    prototype_weight_summaries: list[PrototypeWeightSummary] = Field(
        default_factory=list,
    )
    candidate_axes: list[CandidateAxisValidation] | None = None
