"""Axis Gap Recommendation Builder.

Turns axis-gap detection signals into prioritized recommendations, in this
order:

1. Validated candidate axes: add_axis -> HIGH NEW_AXIS,
   refine_prototypes -> LOW REFINE_EXISTING, insufficient_data skipped.
2. HIGH  PCA + coverage gap -> one NEW_AXIS over both prototype sets.
3. HIGH  hub related to a gap -> NEW_AXIS per hub.
4. MEDIUM single signal -> INVESTIGATE (hub without gaps, gap without hubs
   and not consumed by rule 2, PCA without gaps).
5. LOW   multi-axis conflicts -> REFINE_EXISTING per conflict.
6. LOW   diffuse residual (high variance, no extra component, nothing
   corroborating) -> one INVESTIGATE.

Recommendation ids are content hashes over type and sorted prototypes, so
identical inputs always give identical ids.

Deterministic -- no LLM calls.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Iterable, Mapping

from expression_diagnostics.axis_gap.config import AxisGapConfig
from expression_diagnostics.axis_gap.relationships import link_recommendations
from expression_diagnostics.models.axis_gap import (
    CandidateAxisValidation,
    CoverageGap,
    HubPrototype,
    MultiAxisConflict,
    PCAResult,
    Recommendation,
)
from expression_diagnostics.models.common import (
    CandidateVerdict,
    RecommendationPriority,
    RecommendationType,
)

logger = logging.getLogger(__name__)

_PRIORITY_ORDER: dict[str, int] = {
    RecommendationPriority.HIGH: 0,
    RecommendationPriority.MEDIUM: 1,
    RecommendationPriority.LOW: 2,
}
_EIGENVECTOR_AXES_SHOWN = 5


# ---------------------------------------------------------------------------
# Construction helpers
# ---------------------------------------------------------------------------


def recommendation_id(
    rec_type: RecommendationType | str,
    prototypes: Iterable[str],
) -> str:
    """Content-addressed id: ``rec_<type>_<sha256(type, sorted prototypes)[:12]>``."""
    type_value = str(rec_type)
    payload = "|".join([type_value, *sorted(set(prototypes))])
    digest = hashlib.sha256(payload.encode("utf-8")).hexdigest()[:12]
    return f"rec_{type_value.lower()}_{digest}"


def build_recommendation(
    priority: RecommendationPriority | str,
    rec_type: RecommendationType | str,
    description: str,
    prototypes: Iterable[str],
    evidence: Iterable[str],
) -> Recommendation:
    """Build one recommendation with sorted unique prototypes and an id."""
    affected = sorted(set(prototypes))
    lines = list(evidence) or ["Signal detected"]
    return Recommendation(
        id=recommendation_id(rec_type, affected),
        priority=RecommendationPriority(priority),
        type=RecommendationType(rec_type),
        description=description,
        affected_prototypes=affected,
        evidence=lines,
    )


def _priority_of(item: object) -> object:
    if isinstance(item, Mapping):
        return item.get("priority")
    return getattr(item, "priority", None)


def sort_by_priority(recommendations: list) -> list:
    """Stable in-place sort high -> medium -> low; unknown priorities last.

    Accepts Recommendation models or plain mappings with a ``priority`` key.
    Returns the same list for chaining.
    """
    recommendations.sort(
        key=lambda item: _PRIORITY_ORDER.get(_priority_of(item), len(_PRIORITY_ORDER)),
    )
    return recommendations


def _unique(ids: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(ids))


def _pct(value: float) -> str:
    return f"{value * 100:.1f}%"


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


class AxisGapRecommendationBuilder:
    """Builds prioritized, cross-linked axis-gap recommendations."""

    def __init__(self, config: AxisGapConfig | None = None) -> None:
        self._config = config or AxisGapConfig()

    @property
    def config(self) -> AxisGapConfig:
        return self._config

    def is_pca_triggered(
        self,
        pca_result: PCAResult | None,
        has_other_signals: bool,
    ) -> bool:
        """Whether the PCA residual counts as a signal on its own.

        Extra significant components always trigger. A residual ratio at or
        above threshold triggers when corroboration is not required or when
        hubs, gaps or conflicts are present.
        """
        if pca_result is None:
            return False
        if pca_result.additional_significant_components > 0:
            return True
        threshold = self._config.pca_residual_variance_threshold
        if pca_result.residual_variance_ratio < threshold:
            return False
        return not self._config.pca_require_corroboration or has_other_signals

    def generate(
        self,
        pca_result: PCAResult | None,
        hubs: list[HubPrototype] | None,
        gaps: list[CoverageGap] | None,
        conflicts: list[MultiAxisConflict] | None,
        candidate_axis_validation: list[CandidateAxisValidation] | None = None,
    ) -> list[Recommendation]:
        """Generate recommendations from all signals.

        ``None`` for any input means that detector produced nothing.
        Relationships are attached after every recommendation exists.
        """
        hubs = hubs or []
        gaps = gaps or []
        conflicts = conflicts or []

        has_other_signals = bool(hubs or gaps or conflicts)
        pca_triggered = self.is_pca_triggered(pca_result, has_other_signals)

        recommendations = self._candidate_recommendations(
            candidate_axis_validation or [],
        )

        consumed_by_pca = False
        if pca_triggered and gaps:
            recommendations.append(self._pca_gap_recommendation(pca_result, gaps))
            consumed_by_pca = True

        for hub in hubs:
            overlap = set(hub.overlapping_prototypes)
            related = [g for g in gaps if overlap & set(g.centroid_prototypes)]
            if related:
                recommendations.append(self._hub_gap_recommendation(hub, related))

        if not gaps:
            recommendations.extend(self._hub_investigation(hub) for hub in hubs)
        if not hubs and not consumed_by_pca:
            recommendations.extend(self._gap_investigation(gap) for gap in gaps)
        if pca_triggered and not gaps:
            recommendations.append(self._pca_investigation(pca_result))

        secondary = pca_triggered or bool(hubs) or bool(gaps)
        recommendations.extend(
            self._conflict_recommendation(conflict, simplified=secondary)
            for conflict in conflicts
        )

        if self._is_diffuse_residual(pca_result, pca_triggered):
            recommendations.append(self._diffuse_residual_recommendation(pca_result))

        logger.debug(
            "AxisGapRecommendationBuilder: %d recommendation(s), pca_triggered=%s",
            len(recommendations),
            pca_triggered,
        )
        return link_recommendations(recommendations, self._config)

    # ------------------------------------------------------------------
    # Candidate axes
    # ------------------------------------------------------------------

    def _candidate_recommendations(
        self,
        candidates: list[CandidateAxisValidation],
    ) -> list[Recommendation]:
        recs: list[Recommendation] = []
        for candidate in candidates:
            if candidate.recommendation == CandidateVerdict.ADD_AXIS:
                recs.append(build_recommendation(
                    RecommendationPriority.HIGH,
                    RecommendationType.NEW_AXIS,
                    f"Add a new axis from validated candidate '{candidate.candidate_id}' "
                    f"(source: {candidate.source}).",
                    candidate.affected_prototypes,
                    self._candidate_evidence(candidate),
                ))
            elif candidate.recommendation == CandidateVerdict.REFINE_PROTOTYPES:
                recs.append(build_recommendation(
                    RecommendationPriority.LOW,
                    RecommendationType.REFINE_EXISTING,
                    f"Candidate '{candidate.candidate_id}' (source: {candidate.source}) "
                    f"does not justify a new axis; consider refining existing prototypes.",
                    candidate.affected_prototypes,
                    self._candidate_evidence(candidate),
                ))
        return recs

    @staticmethod
    def _candidate_evidence(candidate: CandidateAxisValidation) -> list[str]:
        evidence: list[str] = []
        if candidate.confidence is not None:
            evidence.append(f"Validation confidence: {candidate.confidence:.2f}")
        for metric, value in sorted((candidate.improvement or {}).items()):
            evidence.append(f"Improvement {metric}: {value:.3f}")
        evidence.append(f"Affected prototypes: {len(candidate.affected_prototypes)}")
        return evidence

    # ------------------------------------------------------------------
    # High priority
    # ------------------------------------------------------------------

    def _pca_gap_recommendation(
        self,
        pca_result: PCAResult,
        gaps: list[CoverageGap],
    ) -> Recommendation:
        prototypes = _unique([
            *(t.prototype_id for t in pca_result.top_loading_prototypes),
            *(p for g in gaps for p in g.centroid_prototypes),
        ])
        farthest = max(g.distance_to_nearest_axis for g in gaps)
        return build_recommendation(
            RecommendationPriority.HIGH,
            RecommendationType.NEW_AXIS,
            "PCA residual and coverage gaps agree: the current axes miss a "
            "dimension shared by these prototypes. Add a new axis.",
            prototypes,
            [
                f"PCA residual variance: {_pct(pca_result.residual_variance_ratio)}",
                f"Additional significant components: "
                f"{pca_result.additional_significant_components}",
                f"Coverage gaps: {len(gaps)} (max distance to nearest axis "
                f"{farthest:.3f})",
            ],
        )

    @staticmethod
    def _hub_gap_recommendation(
        hub: HubPrototype,
        related: list[CoverageGap],
    ) -> Recommendation:
        concept = hub.suggested_axis_concept or "unnamed concept"
        centroid = {p for g in related for p in g.centroid_prototypes}
        shared = [p for p in hub.overlapping_prototypes if p in centroid]
        nearest = min(g.distance_to_nearest_axis for g in related)
        return build_recommendation(
            RecommendationPriority.HIGH,
            RecommendationType.NEW_AXIS,
            f"Hub prototype '{hub.prototype_id}' bridges a coverage gap; "
            f"add a new axis for '{concept}'.",
            [hub.prototype_id, *shared],
            [
                f"Hub score: {hub.hub_score:.2f}",
                f"Distance to nearest axis: {nearest:.3f}",
                f"Related gaps: {', '.join(g.cluster_id for g in related)}",
            ],
        )

    # ------------------------------------------------------------------
    # Medium priority
    # ------------------------------------------------------------------

    @staticmethod
    def _hub_investigation(hub: HubPrototype) -> Recommendation:
        concept = hub.suggested_axis_concept or "unnamed concept"
        return build_recommendation(
            RecommendationPriority.MEDIUM,
            RecommendationType.INVESTIGATE,
            f"Hub prototype '{hub.prototype_id}' overlaps many neighbours; "
            f"investigate whether '{concept}' needs its own axis.",
            [hub.prototype_id, *hub.overlapping_prototypes],
            [
                f"Hub score: {hub.hub_score:.2f}",
                f"Overlapping prototypes: {len(hub.overlapping_prototypes)}",
                f"Neighborhood diversity: {hub.neighborhood_diversity}",
            ],
        )

    @staticmethod
    def _gap_investigation(gap: CoverageGap) -> Recommendation:
        evidence = [f"Distance to nearest axis: {gap.distance_to_nearest_axis:.3f}"]
        if gap.cluster_magnitude is not None:
            evidence.append(f"Cluster magnitude: {gap.cluster_magnitude:.3f}")
        if gap.cluster_size is not None:
            evidence.append(f"Cluster size: {gap.cluster_size}")
        return build_recommendation(
            RecommendationPriority.MEDIUM,
            RecommendationType.INVESTIGATE,
            f"Coverage gap '{gap.cluster_id}' is poorly explained by every "
            f"existing axis; investigate its prototypes.",
            gap.centroid_prototypes,
            evidence,
        )

    @staticmethod
    def _pca_investigation(pca_result: PCAResult) -> Recommendation:
        loadings = ", ".join(
            f"{t.prototype_id} ({t.loading:+.2f})"
            for t in pca_result.top_loading_prototypes
        )
        return build_recommendation(
            RecommendationPriority.MEDIUM,
            RecommendationType.INVESTIGATE,
            "PCA finds variance the current axes do not explain; investigate "
            "the top-loading prototypes for a missing dimension.",
            [t.prototype_id for t in pca_result.top_loading_prototypes],
            [
                f"Unexplained residual variance: {_pct(pca_result.residual_variance_ratio)}",
                f"Additional significant components: "
                f"{pca_result.additional_significant_components}",
                f"Top loadings: {loadings or 'none'}",
            ],
        )

    # ------------------------------------------------------------------
    # Low priority
    # ------------------------------------------------------------------

    @staticmethod
    def _conflict_recommendation(
        conflict: MultiAxisConflict,
        simplified: bool,
    ) -> Recommendation:
        evidence = [
            f"Active axes: {conflict.active_axis_count}",
            f"Sign balance: {conflict.sign_balance:.2f}",
        ]
        if not simplified:
            evidence.append(
                f"Positive axes: {', '.join(conflict.positive_axes or []) or 'none'}"
            )
            evidence.append(
                f"Negative axes: {', '.join(conflict.negative_axes or []) or 'none'}"
            )
        return build_recommendation(
            RecommendationPriority.LOW,
            RecommendationType.REFINE_EXISTING,
            f"Prototype '{conflict.prototype_id}' loads on many axes with mixed "
            f"signs; consider refining its weights.",
            [conflict.prototype_id],
            evidence,
        )

    def _is_diffuse_residual(
        self,
        pca_result: PCAResult | None,
        pca_triggered: bool,
    ) -> bool:
        if pca_result is None or pca_triggered:
            return False
        return (
            self._config.pca_require_corroboration
            and pca_result.additional_significant_components == 0
            and pca_result.residual_variance_ratio
            >= self._config.pca_residual_variance_threshold
        )

    def _diffuse_residual_recommendation(self, pca_result: PCAResult) -> Recommendation:
        worst = sorted(
            pca_result.reconstruction_errors,
            key=lambda r: r.error,
            reverse=True,
        )[: self._config.diffuse_worst_count]

        if worst:
            worst_line = "Worst-fitting prototypes: " + ", ".join(
                f"{r.prototype_id} ({r.error:.3f})" for r in worst
            )
        else:
            worst_line = "No worst-fitting prototypes reported"

        eigenvector = pca_result.residual_eigenvector or {}
        if eigenvector:
            top = sorted(eigenvector.items(), key=lambda kv: abs(kv[1]), reverse=True)
            eigen_line = "Residual eigenvector: " + ", ".join(
                f"{axis} ({weight:+.3f})"
                for axis, weight in top[:_EIGENVECTOR_AXES_SHOWN]
            )
        else:
            eigen_line = "No residual eigenvector available"

        threshold = self._config.pca_residual_variance_threshold
        return build_recommendation(
            RecommendationPriority.LOW,
            RecommendationType.INVESTIGATE,
            f"Residual variance ({_pct(pca_result.residual_variance_ratio)}) is "
            f"diffuse: no component passes the broken-stick test and no other "
            f"signal corroborates it. Investigate the worst-fitting prototypes.",
            [r.prototype_id for r in worst],
            [
                f"Residual variance: {_pct(pca_result.residual_variance_ratio)} "
                f"(Threshold: {_pct(threshold)})",
                worst_line,
                eigen_line,
            ],
        )
