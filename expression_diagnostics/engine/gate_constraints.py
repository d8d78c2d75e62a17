"""Gate Constraint Analyzer -- per-axis intervals from expression logic.

Walks an expression's prerequisite logic and tightens one interval per axis:

1. Every axis starts at its native domain ([-1, 1] mood, [0, 1] traits/sexual).
2. Each comparison under an unconditional AND chain tightens its axis:
   ``>=``/``>`` raise min, ``<=``/``<`` lower max.
3. High-direction thresholds on emotions / sexual states mark the prototype
   as required; with a registry, its intrinsic gates tighten the same way.
4. Comparisons reachable only through OR are not intersected: a warning is
   emitted and the axis keeps its pre-OR interval. NOT blocks and condition
   references are likewise reported, never guessed at.

Crossed bounds (min > max) are recorded per axis as empty, not raised.

Deterministic -- no LLM calls.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

from expression_diagnostics.engine.config import AxisDomainConfig, GateAnalysisConfig
from expression_diagnostics.engine.logic import (
    AndNode,
    Comparison,
    ConditionRef,
    LogicNode,
    LogicVisitor,
    NotNode,
    OrNode,
    iter_comparisons,
    parse_logic,
)
from expression_diagnostics.engine.registry import (
    PrototypeNotFoundError,
    PrototypeRegistry,
)
from expression_diagnostics.models.axis import AxisInterval, GateClause, Prototype
from expression_diagnostics.models.common import PrototypeDomain


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EmptyAxis:
    """Axis whose constraints cross: no value satisfies all of them."""

    axis: str
    lower: float
    upper: float
    message: str


@dataclass(frozen=True)
class KnifeEdge:
    """Non-empty interval narrow enough to be fragile."""

    axis: str
    interval: AxisInterval

    @property
    def width(self) -> float:
        return self.interval.width


@dataclass(frozen=True)
class RequiredPrototype:
    """Prototype that must be active (high-direction threshold)."""

    prototype_id: str
    domain: PrototypeDomain
    var_path: str
    threshold: float


@dataclass(frozen=True)
class GateAnalysisResult:
    """Axis intervals implied by one expression."""

    axis_intervals: dict[str, AxisInterval] = field(default_factory=dict)
    empty_axes: list[EmptyAxis] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    required_prototypes: list[RequiredPrototype] = field(default_factory=list)
    knife_edges: list[KnifeEdge] = field(default_factory=list)

    @property
    def has_empty_axes(self) -> bool:
        return bool(self.empty_axes)

    @property
    def constrained_axes(self) -> list[str]:
        """Axes that are either bounded or empty, sorted."""
        return sorted({*self.axis_intervals, *(e.axis for e in self.empty_axes)})


# ---------------------------------------------------------------------------
# Bound bookkeeping
# ---------------------------------------------------------------------------


class _AxisBounds:
    """Raw (possibly crossed) bounds per axis, seeded from native domains."""

    def __init__(self, axis_config: AxisDomainConfig) -> None:
        self._axis_config = axis_config
        self._bounds: dict[str, tuple[float, float]] = {}

    def seed(self, intervals: Mapping[str, AxisInterval]) -> None:
        for axis, interval in intervals.items():
            self._bounds[axis] = (interval.min, interval.max)

    def tighten(
        self,
        clause: GateClause,
        domain: PrototypeDomain = PrototypeDomain.EMOTION,
    ) -> None:
        if clause.axis not in self._bounds:
            native = self._axis_config.domain_for_axis(clause.axis, domain)
            self._bounds[clause.axis] = (native.min, native.max)
        self._bounds[clause.axis] = clause.apply_to(*self._bounds[clause.axis])

    def split(self) -> tuple[dict[str, AxisInterval], list[EmptyAxis]]:
        intervals: dict[str, AxisInterval] = {}
        empty: list[EmptyAxis] = []
        for axis in sorted(self._bounds):
            lower, upper = self._bounds[axis]
            if lower > upper:
                empty.append(EmptyAxis(
                    axis=axis,
                    lower=lower,
                    upper=upper,
                    message=(
                        f"Contradictory constraints on {axis}: "
                        f"min {lower:.3f} > max {upper:.3f}"
                    ),
                ))
            else:
                intervals[axis] = AxisInterval(min=lower, max=upper)
        return intervals, empty


# ---------------------------------------------------------------------------
# Logic walk
# ---------------------------------------------------------------------------


class _ConjunctionCollector(LogicVisitor[None]):
    """Collects comparisons reachable through AND only; flags the rest."""

    def __init__(
        self,
        axis_config: AxisDomainConfig,
        config: GateAnalysisConfig,
        bounds: _AxisBounds,
    ) -> None:
        self._axis_config = axis_config
        self._config = config
        self._bounds = bounds
        self.warnings: list[str] = []
        self.required: list[RequiredPrototype] = []

    def _prototype_target(self, var_path: str) -> tuple[PrototypeDomain, str] | None:
        namespace, sep, prototype_id = var_path.partition(".")
        if not sep or not prototype_id:
            return None
        domain = self._config.prototype_namespaces.get(namespace)
        if domain is None:
            return None
        return domain, prototype_id

    def _is_relevant(self, comparison: Comparison) -> bool:
        return (
            self._axis_config.resolve_axis_path(comparison.var_path) is not None
            or self._prototype_target(comparison.var_path) is not None
        )

    def visit_and(self, node: AndNode) -> None:
        for child in node.children:
            self.visit(child)

    def visit_comparison(self, node: Comparison) -> None:
        resolved = self._axis_config.resolve_axis_path(node.var_path)
        if resolved is not None:
            axis, scale = resolved
            self._bounds.tighten(GateClause(
                axis=axis,
                operator=node.operator,
                threshold=node.threshold / scale,
            ))
            return

        target = self._prototype_target(node.var_path)
        if target is not None and node.operator.is_lower_bound:
            domain, prototype_id = target
            self.required.append(RequiredPrototype(
                prototype_id=prototype_id,
                domain=domain,
                var_path=node.var_path,
                threshold=node.threshold,
            ))

    def visit_or(self, node: OrNode) -> None:
        paths = sorted({
            c.var_path for c in iter_comparisons(node) if self._is_relevant(c)
        })
        if not paths:
            return
        self.warnings.append(
            f"OR block with {len(node.children)} alternatives constrains "
            f"{', '.join(paths)}; alternatives are not intersected and "
            f"those axes keep their pre-OR intervals"
        )

    def visit_not(self, node: NotNode) -> None:
        paths = sorted({c.var_path for c in iter_comparisons(node)})
        detail = f" over {', '.join(paths)}" if paths else ""
        self.warnings.append(f"NOT block{detail} is not analyzed")

    def visit_condition_ref(self, node: ConditionRef) -> None:
        self.warnings.append(
            f"Condition reference {node.ref!r} is not resolved; "
            f"its constraints are not applied"
        )


# ---------------------------------------------------------------------------
# Analyzer
# ---------------------------------------------------------------------------


def _extract_logic(expression: object) -> LogicNode | None:
    """Pull the logic tree out of the accepted expression shapes."""
    if expression is None:
        return None
    if isinstance(expression, list):
        return parse_logic(expression) if expression else None
    if isinstance(expression, Mapping) and "prerequisites" in expression:
        prerequisites = expression.get("prerequisites") or []
        logic = [
            p.get("logic") if isinstance(p, Mapping) else p
            for p in prerequisites
        ]
        logic = [item for item in logic if item is not None]
        return parse_logic(logic) if logic else None
    if isinstance(expression, Mapping):
        return parse_logic(dict(expression)) if expression else None
    return None


class GateConstraintAnalyzer:
    """Derives per-axis intervals from an expression's prerequisite logic."""

    def __init__(
        self,
        registry: PrototypeRegistry | None = None,
        axis_config: AxisDomainConfig | None = None,
        config: GateAnalysisConfig | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._registry = registry
        self._axis_config = axis_config or AxisDomainConfig()
        self._config = config or GateAnalysisConfig()
        self._logger = logger or logging.getLogger(__name__)

    def analyze(self, expression: object) -> GateAnalysisResult:
        """Analyze *expression* and return its axis intervals.

        Args:
            expression: mapping with ``prerequisites: [{logic: ...}]``, a bare
                JSON-Logic mapping, a list of logic nodes, or ``None``.
        """
        root = _extract_logic(expression)
        if root is None:
            return GateAnalysisResult()

        bounds = _AxisBounds(self._axis_config)
        collector = _ConjunctionCollector(self._axis_config, self._config, bounds)
        collector.visit(root)

        warnings = list(collector.warnings)
        required = self._dedupe_required(collector.required)
        if self._registry is not None:
            for requirement in required:
                try:
                    prototype = self._registry.get(
                        requirement.domain, requirement.prototype_id,
                    )
                except PrototypeNotFoundError as exc:
                    warnings.append(f"{exc}; its gates are not applied")
                    continue
                for gate in prototype.gates:
                    bounds.tighten(gate, requirement.domain)

        result = self._finish(bounds, warnings, required)
        self._logger.debug(
            "Gate analysis: %d axes, %d empty, %d warnings",
            len(result.axis_intervals),
            len(result.empty_axes),
            len(result.warnings),
        )
        return result

    def merge_prototype_gates(
        self,
        prototype: Prototype,
        intervals: Mapping[str, AxisInterval] | None = None,
        domain: PrototypeDomain = PrototypeDomain.EMOTION,
    ) -> GateAnalysisResult:
        """Intersect *prototype*'s own gates into *intervals*.

        Axes absent from *intervals* start at their native domain.
        """
        bounds = _AxisBounds(self._axis_config)
        bounds.seed(intervals or {})
        for gate in prototype.gates:
            bounds.tighten(gate, domain)
        return self._finish(bounds, [], [])

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @staticmethod
    def _dedupe_required(
        required: list[RequiredPrototype],
    ) -> list[RequiredPrototype]:
        seen: set[tuple[PrototypeDomain, str]] = set()
        unique: list[RequiredPrototype] = []
        for requirement in required:
            key = (requirement.domain, requirement.prototype_id)
            if key in seen:
                continue
            seen.add(key)
            unique.append(requirement)
        return unique

    def _finish(
        self,
        bounds: _AxisBounds,
        warnings: list[str],
        required: list[RequiredPrototype],
    ) -> GateAnalysisResult:
        intervals, empty = bounds.split()
        knife_edges = [
            KnifeEdge(axis=axis, interval=interval)
            for axis, interval in intervals.items()
            if interval.width <= self._config.knife_edge_width
        ]
        return GateAnalysisResult(
            axis_intervals=intervals,
            empty_axes=empty,
            warnings=warnings,
            required_prototypes=required,
            knife_edges=knife_edges,
        )
