"""Standalone expression diagnostics script.

Loads a JSON bundle (prototype lookups, one expression and optional upstream
signals), runs the diagnostics pipeline and prints a summary.

Bundle keys:
    prototypes      {"emotion": {id: {weights, gates}}, "sexual": {...}}
    expression      expression with ``prerequisites`` or bare JSON-Logic
    feasibility     optional list of clause results (camelCase accepted)
    prototypeFit    optional {"leaderboard": [...]}
    gateAlignment   optional {"contradictions": [...]}
    axisGap         optional {"pcaResult", "hubs", "gaps", "conflicts",
                    "splitConflicts", "candidateAxisValidation",
                    "totalPrototypes"}

Usage:
    python -m scripts.diagnose bundle.json
    python -m scripts.diagnose --json bundle.json
"""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Mapping
from pathlib import Path

from expression_diagnostics.axis_gap.synthesizer import AxisGapReportSynthesizer
from expression_diagnostics.engine.config import GateAnalysisConfig
from expression_diagnostics.engine.conflicts import FitFeasibilityConflictDetector
from expression_diagnostics.engine.feasibility import FeasibilityClassifier
from expression_diagnostics.engine.gate_constraints import (
    GateAnalysisResult,
    GateConstraintAnalyzer,
)
from expression_diagnostics.engine.intensity_bounds import IntensityBoundsCalculator
from expression_diagnostics.engine.logic import iter_comparisons, parse_logic
from expression_diagnostics.engine.registry import (
    InMemoryPrototypeRegistry,
    PrototypeNotFoundError,
)
from expression_diagnostics.models.axis_gap import (
    AxisGapReport,
    CandidateAxisValidation,
    CoverageGap,
    HubPrototype,
    MultiAxisConflict,
    PCAResult,
)
from expression_diagnostics.models.common import FeasibilityClassification
from expression_diagnostics.models.feasibility import (
    Conflict,
    FeasibilityClauseResult,
    GateAlignmentResult,
    PrototypeFitResult,
)
from expression_diagnostics.observability.logging import configure_logging


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


def _derive_clauses(
    expression: object,
    config: GateAnalysisConfig,
) -> list[FeasibilityClauseResult]:
    """Threshold clauses on emotions / sexual states found in the expression."""
    logic = expression.get("prerequisites") if isinstance(expression, Mapping) else None
    if logic is not None:
        raw = [p.get("logic") for p in logic if isinstance(p, Mapping)]
    else:
        raw = expression
    if not raw:
        return []
    clauses: list[FeasibilityClauseResult] = []
    for comparison in iter_comparisons(parse_logic(raw)):
        namespace = comparison.var_path.partition(".")[0]
        if namespace not in config.prototype_namespaces:
            continue
        clauses.append(FeasibilityClauseResult(
            clause_id=f"clause_{len(clauses)}",
            var_path=comparison.var_path,
            operator=comparison.operator,
            threshold=comparison.threshold,
        ))
    return clauses


def _classify_clauses(
    clauses: list[FeasibilityClauseResult],
    analysis: GateAnalysisResult,
    calculator: IntensityBoundsCalculator,
    classifier: FeasibilityClassifier,
    config: GateAnalysisConfig,
) -> list[FeasibilityClauseResult]:
    classified: list[FeasibilityClauseResult] = []
    for clause in clauses:
        if clause.classification != FeasibilityClassification.UNKNOWN:
            classified.append(clause)
            continue
        namespace, _, prototype_id = clause.var_path.partition(".")
        domain = config.prototype_namespaces.get(namespace)
        bounds = None
        if domain is not None and prototype_id:
            try:
                bounds = calculator.bounds_for_analysis(prototype_id, domain, analysis)
            except PrototypeNotFoundError:
                bounds = None
        classified.append(classifier.classify_result(clause, bounds))
    return classified


def _synthesize_axis_gap(payload: Mapping[str, object]) -> AxisGapReport:
    pca = payload.get("pcaResult")
    candidates = payload.get("candidateAxisValidation")
    prototypes = payload.get("totalPrototypes", 0)
    return AxisGapReportSynthesizer().synthesize(
        PCAResult.model_validate(pca) if pca is not None else None,
        [HubPrototype.model_validate(h) for h in payload.get("hubs") or []],
        [CoverageGap.model_validate(g) for g in payload.get("gaps") or []],
        [MultiAxisConflict.model_validate(c) for c in payload.get("conflicts") or []],
        int(prototypes),
        split_conflicts=payload.get("splitConflicts"),
        candidate_axis_validation=(
            [CandidateAxisValidation.model_validate(c) for c in candidates]
            if candidates is not None
            else None
        ),
    )


def diagnose(bundle: Mapping[str, object]) -> dict[str, object]:
    """Run the full pipeline over one bundle and return the results."""
    registry = InMemoryPrototypeRegistry.from_lookup(bundle.get("prototypes") or {})
    gate_config = GateAnalysisConfig()
    expression = bundle.get("expression")

    analysis = GateConstraintAnalyzer(registry, config=gate_config).analyze(expression)

    raw_feasibility = bundle.get("feasibility")
    if raw_feasibility is None:
        clauses = _derive_clauses(expression, gate_config)
    else:
        clauses = [FeasibilityClauseResult.model_validate(r) for r in raw_feasibility]
    clauses = _classify_clauses(
        clauses,
        analysis,
        IntensityBoundsCalculator(registry),
        FeasibilityClassifier(),
        gate_config,
    )

    fit = bundle.get("prototypeFit")
    alignment = bundle.get("gateAlignment")
    conflicts = FitFeasibilityConflictDetector().detect(
        PrototypeFitResult.model_validate(fit) if fit is not None else None,
        clauses,
        GateAlignmentResult.model_validate(alignment) if alignment is not None else None,
    )

    axis_gap = bundle.get("axisGap")
    return {
        "analysis": analysis,
        "clauses": clauses,
        "conflicts": conflicts,
        "axis_gap": _synthesize_axis_gap(axis_gap) if axis_gap is not None else None,
    }


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


def to_json(results: Mapping[str, object]) -> dict[str, object]:
    """JSON-ready form of :func:`diagnose` output (camelCase keys)."""
    analysis: GateAnalysisResult = results["analysis"]
    axis_gap: AxisGapReport | None = results["axis_gap"]
    return {
        "axisIntervals": {
            axis: interval.model_dump(by_alias=True)
            for axis, interval in analysis.axis_intervals.items()
        },
        "emptyAxes": [
            {"axis": e.axis, "min": e.lower, "max": e.upper, "message": e.message}
            for e in analysis.empty_axes
        ],
        "knifeEdges": [
            {"axis": k.axis, "width": k.width} for k in analysis.knife_edges
        ],
        "warnings": list(analysis.warnings),
        "clauses": [
            c.model_dump(mode="json", by_alias=True) for c in results["clauses"]
        ],
        "conflicts": [
            c.model_dump(mode="json", by_alias=True) for c in results["conflicts"]
        ],
        "axisGap": (
            axis_gap.model_dump(mode="json", by_alias=True, exclude_none=True)
            if axis_gap is not None
            else None
        ),
    }


def _print_analysis(analysis: GateAnalysisResult) -> None:
    """Print axis intervals, empty axes and warnings."""
    print()
    print("  Axis intervals:")
    if not analysis.axis_intervals and not analysis.empty_axes:
        print("    (unconstrained)")
    narrow = {k.axis for k in analysis.knife_edges}
    for axis, interval in analysis.axis_intervals.items():
        edge = "  knife-edge" if axis in narrow else ""
        print(f"    {axis:<20} [{interval.min:>7.3f}, {interval.max:>7.3f}]{edge}")
    for empty in analysis.empty_axes:
        print(f"    {empty.axis:<20} EMPTY  {empty.message}")
    if analysis.warnings:
        print()
        print(f"  Warnings ({len(analysis.warnings)}):")
        for w in analysis.warnings:
            print(f"    - {w}")


def _print_clauses(clauses: list[FeasibilityClauseResult]) -> None:
    """Print one line per clause with its classification."""
    if not clauses:
        return
    print()
    print(f"  {'Clause':<12} {'Path':<28} {'Op':<3} {'Threshold':>9} {'Result':>11}")
    for c in clauses:
        print(
            f"  {c.clause_id:<12} {c.var_path[:28]:<28} {c.operator.value:<3}"
            f" {c.threshold:>9.3f} {c.classification.value:>11}"
        )


def _print_conflicts(conflicts: list[Conflict]) -> None:
    """Print conflicts and their suggested fixes."""
    print()
    print(f"  Conflicts ({len(conflicts)}):")
    for conflict in conflicts:
        print(f"    ! [{conflict.type.value}] {conflict.explanation}")
        for fix in conflict.suggested_fixes:
            print(f"        -> {fix}")


def _print_axis_gap(report: AxisGapReport) -> None:
    """Print axis-gap summary and recommendations."""
    summary = report.summary
    print()
    print(
        f"  Axis gap: {summary.recommendation_count} recommendation(s), "
        f"confidence {summary.confidence.value}"
    )
    for rec in report.recommendations:
        print(f"    [{rec.priority.value:<6}] {rec.type.value:<15} {rec.description}")


def main(argv: list[str] | None = None) -> int:
    """Run diagnostics on a bundle file."""
    parser = argparse.ArgumentParser(
        description="Run expression feasibility / axis-gap diagnostics on a JSON bundle",
    )
    parser.add_argument("bundle_path", type=Path, help="Path to bundle JSON")
    parser.add_argument(
        "--json", action="store_true", dest="as_json",
        help="Print machine-readable JSON instead of the summary",
    )
    args = parser.parse_args(argv)

    log = configure_logging()
    bundle = json.loads(args.bundle_path.read_text(encoding="utf-8"))
    log.info("diagnose_start", bundle=str(args.bundle_path))

    results = diagnose(bundle)
    conflicts: list[Conflict] = results["conflicts"]

    if args.as_json:
        print(json.dumps(to_json(results), indent=2))
    else:
        w = 60
        print("=" * w)
        print("  Expression Diagnostics")
        print(f"  {args.bundle_path}")
        print("=" * w)
        _print_analysis(results["analysis"])
        _print_clauses(results["clauses"])
        _print_conflicts(conflicts)
        if results["axis_gap"] is not None:
            _print_axis_gap(results["axis_gap"])
        print()
        print("=" * w)
        verdict = "PASS" if not conflicts else f"ISSUES ({len(conflicts)} conflicts)"
        print(f"  RESULT: {verdict}")
        print("=" * w)

    log.info("diagnose_done", conflicts=len(conflicts))
    return 0 if not conflicts else 1


if __name__ == "__main__":
    sys.exit(main())
