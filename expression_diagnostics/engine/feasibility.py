"""Clause feasibility classification.

Classifies a threshold clause against the achievable intensity bounds and
the sampling statistics of the clause:

- IMPOSSIBLE: the bounds cannot satisfy the clause (or the region is empty)
- UNKNOWN: no bounds and no sampled population
- RARE: reachable, but the sampled pass rate is below ``rare_pass_rate``
- OK: everything else

Deterministic -- no LLM calls.
"""

from __future__ import annotations

from expression_diagnostics.engine.config import FeasibilityConfig
from expression_diagnostics.engine.intensity_bounds import IntensityBounds
from expression_diagnostics.models.common import (
    FeasibilityClassification,
    GateOperator,
)
from expression_diagnostics.models.feasibility import FeasibilityClauseResult


def is_unsatisfiable(
    operator: GateOperator,
    threshold: float,
    bounds: IntensityBounds,
) -> bool:
    """True when no value in *bounds* satisfies ``value <operator> threshold``."""
    if not bounds.reachable:
        return True
    if operator == GateOperator.GTE:
        return bounds.max < threshold
    if operator == GateOperator.GT:
        return bounds.max <= threshold
    if operator == GateOperator.LTE:
        return bounds.min > threshold
    return bounds.min >= threshold


class FeasibilityClassifier:
    """Assigns OK / RARE / IMPOSSIBLE / UNKNOWN to threshold clauses."""

    def __init__(self, config: FeasibilityConfig | None = None) -> None:
        self._config = config or FeasibilityConfig()

    def classify(
        self,
        operator: GateOperator | str,
        threshold: float,
        bounds: IntensityBounds | None,
        population: int | None = None,
        pass_rate: float | None = None,
    ) -> FeasibilityClassification:
        """Classify one clause.

        Args:
            operator: comparison operator of the clause.
            threshold: clause threshold, on the intensity scale.
            bounds: achievable bounds, or ``None`` when not computed.
            population: number of samples that reached the clause.
            pass_rate: fraction of those samples passing the clause.
        """
        op = GateOperator(operator)
        if bounds is not None and is_unsatisfiable(op, threshold, bounds):
            return FeasibilityClassification.IMPOSSIBLE
        if bounds is None and not population:
            return FeasibilityClassification.UNKNOWN
        if pass_rate is not None and pass_rate < self._config.rare_pass_rate:
            return FeasibilityClassification.RARE
        return FeasibilityClassification.OK

    def classify_result(
        self,
        result: FeasibilityClauseResult,
        bounds: IntensityBounds | None,
    ) -> FeasibilityClauseResult:
        """Copy of *result* with ``classification`` filled in."""
        classification = self.classify(
            result.operator,
            result.threshold,
            bounds,
            population=result.population,
            pass_rate=result.pass_rate,
        )
        update: dict[str, object] = {"classification": classification}
        if bounds is not None and bounds.reachable and result.max_value is None:
            update["max_value"] = bounds.max
        return result.model_copy(update=update)
