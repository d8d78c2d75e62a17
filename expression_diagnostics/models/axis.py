"""Axis intervals, gate clauses and prototypes.

An axis is a continuous dimension of the mood / state space. A prototype is a
weighted sum over axes, switched on only when all of its gate clauses hold.
"""

from __future__ import annotations

import math
import re

from pydantic import Field, field_validator, model_validator

from expression_diagnostics.models.common import DiagnosticsBase, GateOperator

# "threat >= 0.35", "sex_inhibition<0.4", "valence > -.2"
_GATE_PATTERN = re.compile(
    r"^\s*(?P<axis>[A-Za-z_][A-Za-z0-9_]*)\s*"
    r"(?P<op>>=|<=|>|<)\s*"
    r"(?P<value>[-+]?(?:\d+(?:\.\d*)?|\.\d+))\s*$"
)


# ---------------------------------------------------------------------------
# AxisInterval
# ---------------------------------------------------------------------------


class AxisInterval(DiagnosticsBase):
    """Closed interval ``[min, max]`` of admissible values on one axis.

    ``min == max`` marks a pinned (degenerate) axis. Empty intervals are not
    representable; callers that can cross bounds track raw floats instead.
    """

    min: float
    max: float

    @model_validator(mode="after")
    def _validate_bounds(self) -> AxisInterval:
        if not (math.isfinite(self.min) and math.isfinite(self.max)):
            raise ValueError(
                f"Interval bounds must be finite, got [{self.min}, {self.max}]."
            )
        if self.min > self.max:
            raise ValueError(
                f"Interval min ({self.min}) > max ({self.max})."
            )
        return self

    @classmethod
    def pinned(cls, value: float) -> AxisInterval:
        """Degenerate interval fixing the axis at *value*."""
        return cls(min=value, max=value)

    @property
    def width(self) -> float:
        return self.max - self.min

    @property
    def is_degenerate(self) -> bool:
        return self.min == self.max

    def contains(self, value: float) -> bool:
        return self.min <= value <= self.max

    def intersect(self, other: AxisInterval) -> AxisInterval | None:
        """Intersection with *other*, or ``None`` when they do not overlap."""
        lower = max(self.min, other.min)
        upper = min(self.max, other.max)
        if lower > upper:
            return None
        return AxisInterval(min=lower, max=upper)


# ---------------------------------------------------------------------------
# GateClause
# ---------------------------------------------------------------------------


class GateClause(DiagnosticsBase):
    """Single inequality on one axis, e.g. ``threat >= 0.35``."""

    axis: str = Field(..., min_length=1)
    operator: GateOperator
    threshold: float

    @classmethod
    def parse(cls, text: str) -> GateClause:
        """Parse a gate string such as ``"arousal <= 0.4"``.

        Raises:
            ValueError: if *text* is not ``<axis> <op> <number>``.
        """
        match = _GATE_PATTERN.match(text) if isinstance(text, str) else None
        if match is None:
            msg = f"Malformed gate clause: {text!r}"
            raise ValueError(msg)
        return cls(
            axis=match.group("axis"),
            operator=GateOperator(match.group("op")),
            threshold=float(match.group("value")),
        )

    @property
    def is_lower_bound(self) -> bool:
        return self.operator.is_lower_bound

    def apply_to(self, lower: float, upper: float) -> tuple[float, float]:
        """Tighten the raw bound pair ``(lower, upper)`` with this clause.

        Strict and non-strict operators tighten identically; the result may
        cross (``lower > upper``) when clauses contradict.
        """
        if self.is_lower_bound:
            return max(lower, self.threshold), upper
        return lower, min(upper, self.threshold)

    def is_satisfied_by(self, value: float) -> bool:
        if self.operator == GateOperator.GTE:
            return value >= self.threshold
        if self.operator == GateOperator.GT:
            return value > self.threshold
        if self.operator == GateOperator.LTE:
            return value <= self.threshold
        return value < self.threshold

    def __str__(self) -> str:
        return f"{self.axis} {self.operator.value} {self.threshold:g}"


# ---------------------------------------------------------------------------
# Prototype
# ---------------------------------------------------------------------------


class Prototype(DiagnosticsBase):
    """Weighted-sum model over axes for one discrete emotion or state."""

    id: str = Field(..., min_length=1)
    weights: dict[str, float] = Field(default_factory=dict)
    gates: list[GateClause] = Field(default_factory=list)

    @field_validator("gates", mode="before")
    @classmethod
    def _parse_gate_strings(cls, value: object) -> object:
        if value is None:
            return []
        if isinstance(value, list):
            return [
                GateClause.parse(item) if isinstance(item, str) else item
                for item in value
            ]
        return value

    @field_validator("weights")
    @classmethod
    def _finite_weights(cls, value: dict[str, float]) -> dict[str, float]:
        bad = sorted(axis for axis, w in value.items() if not math.isfinite(w))
        if bad:
            raise ValueError(f"Non-finite weights on axes: {', '.join(bad)}")
        return value

    @property
    def sum_abs_weights(self) -> float:
        return sum(abs(w) for w in self.weights.values())

    def gates_on(self, axis: str) -> list[GateClause]:
        """Gate clauses constraining *axis*, in declaration order."""
        return [g for g in self.gates if g.axis == axis]
