"""Shared enums and the base model used across the diagnostics domain models."""

from enum import StrEnum

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


# --- Shared enums ---


class PrototypeDomain(StrEnum):
    """Prototype table selector."""

    EMOTION = "emotion"
    SEXUAL = "sexual"


class GateOperator(StrEnum):
    """Inequality operators allowed in gate clauses and threshold comparisons."""

    GTE = ">="
    GT = ">"
    LTE = "<="
    LT = "<"

    @property
    def is_lower_bound(self) -> bool:
        """``>=`` and ``>`` raise the axis minimum."""
        return self in (GateOperator.GTE, GateOperator.GT)


class FeasibilityClassification(StrEnum):
    """Verdict on whether a clause threshold is achievable."""

    OK = "OK"
    RARE = "RARE"
    IMPOSSIBLE = "IMPOSSIBLE"
    UNKNOWN = "UNKNOWN"


class SignalKind(StrEnum):
    """Which signal a clause reads: the final value or its per-turn delta."""

    FINAL = "final"
    DELTA = "delta"


class ConflictType(StrEnum):
    """Cross-signal conflict categories."""

    FIT_VS_CLAUSE_IMPOSSIBLE = "fit_vs_clause_impossible"
    GATE_CONTRADICTION = "gate_contradiction"


class RecommendationPriority(StrEnum):
    """Axis-gap recommendation priority."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RecommendationType(StrEnum):
    """Axis-gap recommendation action type."""

    NEW_AXIS = "NEW_AXIS"
    INVESTIGATE = "INVESTIGATE"
    REFINE_EXISTING = "REFINE_EXISTING"


class CandidateVerdict(StrEnum):
    """Outcome of upstream candidate-axis validation."""

    ADD_AXIS = "add_axis"
    REFINE_PROTOTYPES = "refine_prototypes"
    INSUFFICIENT_DATA = "insufficient_data"


class ConfidenceLevel(StrEnum):
    """Overall confidence of an axis-gap report."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# --- Base model ---


class DiagnosticsBase(BaseModel):
    """Base model for all diagnostics Pydantic models.

    Instances are immutable. Fields accept both snake_case names and the
    camelCase keys emitted by the upstream engines.
    """

    model_config = {
        "populate_by_name": True,
        "alias_generator": to_camel,
        "frozen": True,
        "protected_namespaces": (),
    }
