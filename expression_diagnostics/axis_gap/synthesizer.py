"""Axis Gap Report Synthesizer.

Assembles the axis-gap report: recommendations from the builder (sorted by
priority), per-method signal counts, an overall confidence level and, for
each flagged prototype, why it was flagged and which axes dominate it.

Confidence:
- low with 0-1 triggered detection methods, medium with 2, high with 3+
- boosted one level when a single prototype is flagged by 3+ distinct
  method families (pca, hubs, gaps, conflicts)

Deterministic -- no LLM calls.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from expression_diagnostics.axis_gap.config import AxisGapConfig
from expression_diagnostics.axis_gap.recommendations import (
    AxisGapRecommendationBuilder,
    sort_by_priority,
)
from expression_diagnostics.models.axis import Prototype
from expression_diagnostics.models.axis_gap import (
    AxisGapReport,
    CandidateAxisValidation,
    CoverageGap,
    HubPrototype,
    MultiAxisConflict,
    PCAResult,
    PrototypeWeightSummary,
    ReportSummary,
    SignalBreakdown,
    SplitConflicts,
    TopAxis,
)
from expression_diagnostics.models.common import ConfidenceLevel

logger = logging.getLogger(__name__)

_CONFIDENCE_STEPS = [ConfidenceLevel.LOW, ConfidenceLevel.MEDIUM, ConfidenceLevel.HIGH]

# Reason -> detection-method family. Conflict flag reasons map to "conflicts".
_REASON_FAMILIES: dict[str, str] = {
    "extreme_projection": "pca",
    "high_reconstruction_error": "pca",
    "hub": "hubs",
    "coverage_gap": "gaps",
}
_CONFLICTS_FAMILY = "conflicts"
_DEFAULT_CONFLICT_REASON = "multi_axis_conflict"
_MULTI_SIGNAL_REASONS = 3
_BOOST_FAMILY_COUNT = 3


class _FlagCollector:
    """Reasons (with metrics) and method families per prototype id."""

    def __init__(self) -> None:
        self.reasons: dict[str, dict[str, dict[str, float]]] = {}
        self.families: dict[str, set[str]] = {}

    def add(self, prototype_id: str, reason: str, metrics: dict[str, float]) -> None:
        by_reason = self.reasons.setdefault(prototype_id, {})
        by_reason.setdefault(reason, metrics)
        family = _REASON_FAMILIES.get(reason, _CONFLICTS_FAMILY)
        self.families.setdefault(prototype_id, set()).add(family)


def build_empty_report(total_prototypes: int = 0) -> AxisGapReport:
    """Zeroed report, used when analysis is skipped."""
    return AxisGapReport(
        summary=ReportSummary(total_prototypes_analyzed=total_prototypes),
    )


class AxisGapReportSynthesizer:
    """Builds the full axis-gap report from detector outputs."""

    def __init__(
        self,
        config: AxisGapConfig | None = None,
        recommendation_builder: AxisGapRecommendationBuilder | None = None,
    ) -> None:
        self._config = config or AxisGapConfig()
        self._builder = recommendation_builder or AxisGapRecommendationBuilder(
            self._config,
        )

    def synthesize(
        self,
        pca_result: PCAResult | None,
        hubs: list[HubPrototype] | None,
        gaps: list[CoverageGap] | None,
        conflicts: list[MultiAxisConflict] | None,
        total_prototypes: int,
        prototypes: list[Prototype] | None = None,
        split_conflicts: SplitConflicts | Mapping[str, object] | None = None,
        candidate_axis_validation: list[CandidateAxisValidation] | None = None,
    ) -> AxisGapReport:
        """Synthesize the report.

        Args:
            pca_result: residual PCA analysis, or ``None``.
            hubs: hub prototypes.
            gaps: coverage gaps.
            conflicts: multi-axis conflicts.
            total_prototypes: number of prototypes analyzed.
            prototypes: prototype definitions for weight summaries.
            split_conflicts: conflicts split into high-axis-loading and
                sign-tension lists.
            candidate_axis_validation: upstream candidate-axis verdicts.
        """
        hubs = hubs or []
        gaps = gaps or []
        conflicts = conflicts or []
        split = self._coerce_split(split_conflicts)
        pca = pca_result or PCAResult()

        recommendations = sort_by_priority(self._builder.generate(
            pca, hubs, gaps, conflicts, candidate_axis_validation,
        ))

        pca_triggered = self._builder.is_pca_triggered(
            pca, bool(hubs or gaps or conflicts),
        )
        breakdown = SignalBreakdown(
            pca_signals=1 if pca_triggered else 0,
            hub_signals=len(hubs),
            coverage_gap_signals=len(gaps),
            multi_axis_conflict_signals=len(conflicts),
            high_axis_loading_signals=len(split.high_axis_loadings),
            sign_tension_signals=len(split.sign_tensions),
            candidate_axis_count=(
                len(candidate_axis_validation)
                if candidate_axis_validation is not None
                else None
            ),
            recommended_candidate_count=(
                sum(1 for c in candidate_axis_validation if c.is_recommended)
                if candidate_axis_validation is not None
                else None
            ),
        )

        summaries = self.compute_prototype_weight_summaries(
            prototypes, pca, hubs, gaps, conflicts,
        )
        methods_triggered = sum(
            [pca_triggered, bool(hubs), bool(gaps), bool(conflicts)],
        )
        confidence = self.compute_confidence(methods_triggered, summaries)

        logger.debug(
            "AxisGapReportSynthesizer: %d recommendation(s), %d method(s), "
            "confidence=%s",
            len(recommendations),
            methods_triggered,
            confidence,
        )

        return AxisGapReport(
            summary=ReportSummary(
                total_prototypes_analyzed=total_prototypes,
                recommendation_count=len(recommendations),
                potential_gaps_detected=len(recommendations),
                signal_breakdown=breakdown,
                confidence=confidence,
            ),
            pca_analysis=pca,
            hub_prototypes=hubs,
            coverage_gaps=gaps,
            multi_axis_conflicts=conflicts,
            high_axis_loadings=split.high_axis_loadings,
            sign_tensions=split.sign_tensions,
            recommendations=recommendations,
            prototype_weight_summaries=summaries,
            candidate_axes=candidate_axis_validation,
        )

    @staticmethod
    def compute_confidence(
        methods_triggered: int,
        summaries: list[PrototypeWeightSummary],
    ) -> ConfidenceLevel:
        """Confidence from the triggered method count, with family boost."""
        if methods_triggered >= 3:
            step = 2
        elif methods_triggered == 2:
            step = 1
        else:
            step = 0
        if any(s.distinct_family_count >= _BOOST_FAMILY_COUNT for s in summaries):
            step = min(step + 1, len(_CONFIDENCE_STEPS) - 1)
        return _CONFIDENCE_STEPS[step]

    def compute_prototype_weight_summaries(
        self,
        prototypes: list[Prototype] | None,
        pca_result: PCAResult | None,
        hubs: list[HubPrototype] | None,
        gaps: list[CoverageGap] | None,
        conflicts: list[MultiAxisConflict] | None,
    ) -> list[PrototypeWeightSummary]:
        """Per flagged prototype: reasons, metrics per reason and top axes.

        Only prototypes present in *prototypes* are summarized, in that order.
        """
        if not prototypes:
            return []

        flags = _FlagCollector()

        pca = pca_result or PCAResult()
        for loading in pca.top_loading_prototypes:
            flags.add(
                loading.prototype_id,
                "extreme_projection",
                {"projection_score": loading.loading},
            )
        for recon in pca.reconstruction_errors:
            if recon.error >= self._config.reconstruction_error_threshold:
                flags.add(
                    recon.prototype_id,
                    "high_reconstruction_error",
                    {"reconstruction_error": recon.error},
                )

        for hub in hubs or []:
            flags.add(hub.prototype_id, "hub", {"hub_score": hub.hub_score})

        for gap in gaps or []:
            metrics = {"distance_to_nearest_axis": gap.distance_to_nearest_axis}
            if gap.cluster_magnitude is not None:
                metrics["cluster_magnitude"] = gap.cluster_magnitude
            for prototype_id in gap.centroid_prototypes:
                flags.add(prototype_id, "coverage_gap", dict(metrics))

        for conflict in conflicts or []:
            flags.add(
                conflict.prototype_id,
                conflict.flag_reason or _DEFAULT_CONFLICT_REASON,
                {
                    "active_axis_count": float(conflict.active_axis_count),
                    "sign_balance": conflict.sign_balance,
                },
            )

        summaries: list[PrototypeWeightSummary] = []
        for prototype in prototypes:
            reasons = flags.reasons.get(prototype.id)
            if not reasons:
                continue
            summaries.append(PrototypeWeightSummary(
                prototype_id=prototype.id,
                top_axes=self._top_axes(prototype),
                reasons=list(reasons),
                metrics_by_reason=reasons,
                distinct_family_count=len(flags.families[prototype.id]),
                multi_signal_agreement=len(reasons) >= _MULTI_SIGNAL_REASONS,
            ))
        return summaries

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _top_axes(self, prototype: Prototype) -> list[TopAxis]:
        ranked = sorted(
            prototype.weights.items(), key=lambda item: abs(item[1]), reverse=True,
        )
        return [
            TopAxis(axis=axis, weight=weight)
            for axis, weight in ranked[: self._config.top_axes_count]
        ]

    @staticmethod
    def _coerce_split(
        split_conflicts: SplitConflicts | Mapping[str, object] | None,
    ) -> SplitConflicts:
        if split_conflicts is None:
            return SplitConflicts()
        if isinstance(split_conflicts, SplitConflicts):
            return split_conflicts
        return SplitConflicts.model_validate(dict(split_conflicts))
