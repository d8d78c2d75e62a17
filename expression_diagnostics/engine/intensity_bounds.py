"""Intensity Bounds Calculator -- reachable intensity interval of a prototype.

Intensity is a normalized weighted sum over independent axis boxes:

    intensity(x) = sum_a(w_a * x_a) / sum_a(|w_a|)

Each axis maximizes independently: ``x_a = hi`` when ``w_a >= 0``, else ``lo``;
the minimum picks the opposite end. A degenerate interval pins the axis so
both bounds see the same contribution, which makes ``min == max`` for a fully
pinned sample.

No clamping is applied; the interval is exactly what the box admits.

Deterministic -- no LLM calls.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass

import numpy as np

from expression_diagnostics.engine.config import AxisDomainConfig
from expression_diagnostics.engine.gate_constraints import GateAnalysisResult
from expression_diagnostics.engine.registry import PrototypeRegistry, coerce_domain
from expression_diagnostics.models.axis import AxisInterval, Prototype
from expression_diagnostics.models.common import PrototypeDomain

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IntensityBounds:
    """Achievable ``[min, max]`` intensity of one prototype.

    ``reachable`` is False when the constraint region itself is empty; the
    numeric bounds are then zero and carry no meaning.
    """

    min: float
    max: float
    reachable: bool = True

    @property
    def width(self) -> float:
        return self.max - self.min

    @classmethod
    def unreachable(cls) -> IntensityBounds:
        return cls(min=0.0, max=0.0, reachable=False)


class IntensityBoundsCalculator:
    """Closed-form intensity bounds over per-axis interval constraints."""

    def __init__(
        self,
        registry: PrototypeRegistry,
        axis_config: AxisDomainConfig | None = None,
    ) -> None:
        self._registry = registry
        self._axis_config = axis_config or AxisDomainConfig()

    def calculate_bounds(
        self,
        prototype_id: str,
        domain: PrototypeDomain | str,
        axis_constraints: Mapping[str, AxisInterval] | None = None,
    ) -> IntensityBounds:
        """Compute the reachable intensity interval.

        Args:
            prototype_id: prototype to evaluate.
            domain: prototype table (``emotion`` or ``sexual``).
            axis_constraints: axis -> interval; axes not listed use their
                native domain. ``None`` gives theoretical global bounds.

        Raises:
            PrototypeNotFoundError: unknown prototype id or domain.
        """
        resolved = coerce_domain(domain)
        prototype = self._registry.get(resolved, prototype_id)
        constraints = axis_constraints or {}

        axes = list(prototype.weights)
        if not axes:
            return IntensityBounds(min=0.0, max=0.0)

        weights = np.array([prototype.weights[a] for a in axes], dtype=np.float64)
        lows = np.empty(len(axes), dtype=np.float64)
        highs = np.empty(len(axes), dtype=np.float64)
        for i, axis in enumerate(axes):
            interval = constraints.get(axis)
            if interval is None:
                interval = self._axis_config.domain_for_axis(axis, resolved)
            lows[i] = interval.min
            highs[i] = interval.max

        sum_abs = float(np.abs(weights).sum())
        if sum_abs == 0.0:
            return IntensityBounds(min=0.0, max=0.0)

        positive = weights >= 0
        max_raw = float(np.sum(weights * np.where(positive, highs, lows)))
        min_raw = float(np.sum(weights * np.where(positive, lows, highs)))

        return IntensityBounds(min=min_raw / sum_abs, max=max_raw / sum_abs)

    def evaluate_at(
        self,
        prototype_id: str,
        domain: PrototypeDomain | str,
        point: Mapping[str, float],
    ) -> float:
        """Intensity of the prototype at one concrete axis point.

        Axes missing from *point* contribute 0.
        """
        prototype = self._registry.get(coerce_domain(domain), prototype_id)
        return _weighted_intensity(prototype, point)

    def bounds_for_analysis(
        self,
        prototype_id: str,
        domain: PrototypeDomain | str,
        analysis: GateAnalysisResult,
    ) -> IntensityBounds:
        """Bounds under the intervals derived by a gate analysis.

        An analysis with any empty axis admits no point at all, so the
        result is marked unreachable.
        """
        if analysis.has_empty_axes:
            # Unknown ids raise even when the region is empty.
            self._registry.get(coerce_domain(domain), prototype_id)
            logger.debug(
                "Bounds for %s unreachable: empty axes %s",
                prototype_id,
                [e.axis for e in analysis.empty_axes],
            )
            return IntensityBounds.unreachable()
        return self.calculate_bounds(prototype_id, domain, analysis.axis_intervals)


def _weighted_intensity(prototype: Prototype, point: Mapping[str, float]) -> float:
    sum_abs = prototype.sum_abs_weights
    if sum_abs == 0.0:
        return 0.0
    raw = sum(w * float(point.get(axis, 0.0)) for axis, w in prototype.weights.items())
    return raw / sum_abs
