"""Fit / Feasibility Conflict Detector.

Cross-references three already-computed signals and reports where they
disagree:

1. fit_vs_clause_impossible -- the fit leaderboard says the expression is
   well matched (top composite score >= min_top_fit_score) while at least
   one clause is IMPOSSIBLE.
2. gate_contradiction -- the gate-alignment engine found a mood-regime
   interval and a gate interval on the same axis that do not overlap. One
   conflict per (emotion, axis) pair; repeated pairs are dropped.

No bounds math happens here. Missing inputs mean "no signal".

Deterministic -- no LLM calls.
"""

from __future__ import annotations

import logging

from expression_diagnostics.engine.config import ConflictDetectorConfig
from expression_diagnostics.models.axis import AxisInterval
from expression_diagnostics.models.common import ConflictType, SignalKind
from expression_diagnostics.models.feasibility import (
    Conflict,
    FeasibilityClauseResult,
    GateAlignmentResult,
    GateContradiction,
    PrototypeFitResult,
)


def gate_clause_id(emotion_id: str, axis: str) -> str:
    """Synthetic clause id for a gate contradiction."""
    return f"gate:{emotion_id}:{axis}"


def _format_interval(interval: AxisInterval | None) -> str:
    if interval is None:
        return "[?]"
    return f"[{interval.min:.3f}, {interval.max:.3f}]"


class FitFeasibilityConflictDetector:
    """Detects conflicts between fit rankings, feasibility and gate alignment."""

    def __init__(
        self,
        config: ConflictDetectorConfig | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config or ConflictDetectorConfig()
        self._logger = logger or logging.getLogger(__name__)

    def detect(
        self,
        prototype_fit_result: PrototypeFitResult | None,
        feasibility_results: list[FeasibilityClauseResult] | None,
        gate_alignment_result: GateAlignmentResult | None,
    ) -> list[Conflict]:
        """Return fit-vs-impossible conflicts first, then gate contradictions."""
        conflicts: list[Conflict] = []

        fit_conflict = self._detect_fit_vs_impossible(
            prototype_fit_result, feasibility_results or [],
        )
        if fit_conflict is not None:
            conflicts.append(fit_conflict)

        contradictions = (
            gate_alignment_result.contradictions
            if gate_alignment_result is not None
            else None
        )
        seen: set[tuple[str, str]] = set()
        for contradiction in contradictions or []:
            key = (contradiction.emotion_id, contradiction.axis)
            if key in seen:
                continue
            seen.add(key)
            conflicts.append(self._gate_conflict(contradiction))

        self._logger.debug(
            "FitFeasibilityConflictDetector: %d conflict(s) detected",
            len(conflicts),
        )
        return conflicts

    # ------------------------------------------------------------------
    # Rule 1: fit vs impossible clause
    # ------------------------------------------------------------------

    def _detect_fit_vs_impossible(
        self,
        fit_result: PrototypeFitResult | None,
        feasibility_results: list[FeasibilityClauseResult],
    ) -> Conflict | None:
        if fit_result is None or not fit_result.leaderboard:
            return None
        top_score = fit_result.leaderboard[0].composite_score
        if top_score < self._config.min_top_fit_score:
            return None

        impossible = [r for r in feasibility_results if r.is_impossible]
        if not impossible:
            return None

        top = [
            (entry.prototype_id, entry.composite_score)
            for entry in fit_result.leaderboard[: self._config.top_prototype_count]
        ]
        names = ", ".join(prototype_id for prototype_id, _ in top)
        paths = ", ".join(r.var_path for r in impossible)
        explanation = (
            f"Top-fitting prototypes ({names}) match this expression "
            f"(best score {top_score:.3f}), yet {len(impossible)} clause(s) "
            f"can never pass: {paths}."
        )

        return Conflict(
            type=ConflictType.FIT_VS_CLAUSE_IMPOSSIBLE,
            impossible_clause_ids=[r.clause_id for r in impossible],
            top_prototypes=top,
            explanation=explanation,
            suggested_fixes=self._clause_fixes(impossible),
        )

    def _clause_fixes(self, impossible: list[FeasibilityClauseResult]) -> list[str]:
        fixes: list[str] = []

        for result in impossible:
            achievable = (
                f"{result.max_value:.3f}" if result.max_value is not None else "unknown"
            )
            fixes.append(
                f"Lower the threshold on {result.var_path} from "
                f"{result.threshold:.3f}; achievable max is {achievable}."
            )

        for result in impossible:
            emotion = self._emotion_name(result.var_path)
            if emotion is not None:
                fixes.append(
                    f"Reconsider requiring '{emotion}'; it cannot reach the "
                    f"required intensity under this expression's constraints."
                )

        for result in impossible:
            if result.signal == SignalKind.DELTA:
                fixes.append(
                    f"Use the final value of {result.var_path} instead of its "
                    f"per-turn delta."
                )

        return self._cap(fixes)

    def _emotion_name(self, var_path: str) -> str | None:
        namespace, sep, rest = var_path.partition(".")
        if not sep or namespace not in self._config.emotion_namespaces:
            return None
        name = rest.split(".", 1)[0]
        return name or None

    # ------------------------------------------------------------------
    # Rule 2: gate contradiction
    # ------------------------------------------------------------------

    def _gate_conflict(self, contradiction: GateContradiction) -> Conflict:
        emotion_id, axis = contradiction.emotion_id, contradiction.axis
        explanation = (
            f"Gate contradiction for '{emotion_id}' on axis '{axis}': the mood "
            f"regime allows {_format_interval(contradiction.regime_interval)} "
            f"but its gates require {_format_interval(contradiction.gate_interval)}."
        )
        fixes = [
            f"Adjust the {axis} constraint so the mood regime overlaps the "
            f"gates of '{emotion_id}'."
        ]
        return Conflict(
            type=ConflictType.GATE_CONTRADICTION,
            impossible_clause_ids=[gate_clause_id(emotion_id, axis)],
            top_prototypes=[],
            explanation=explanation,
            suggested_fixes=self._cap(fixes),
        )

    def _cap(self, fixes: list[str]) -> list[str]:
        return list(dict.fromkeys(fixes))[: self._config.max_suggested_fixes]
