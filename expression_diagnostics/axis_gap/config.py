"""Axis-gap recommendation configuration.

Thresholds for when a PCA residual counts as a signal, how recommendations
are linked by prototype overlap, and how flagged prototypes are summarized.

Deterministic -- no LLM calls.
"""

from __future__ import annotations

from pydantic import Field, model_validator

from expression_diagnostics.models.common import DiagnosticsBase


class AxisGapConfig(DiagnosticsBase):
    """Configuration for the axis-gap recommendation builder and synthesizer."""

    # Unexplained variance share at which the PCA residual becomes a signal.
    pca_residual_variance_threshold: float = Field(default=0.15, ge=0.0, le=1.0)
    # Residual alone (no extra components) needs hubs, gaps or conflicts.
    pca_require_corroboration: bool = True

    # Jaccard similarity cut-offs for linking recommendations.
    redundant_similarity: float = Field(default=0.70, ge=0.0, le=1.0)
    related_similarity: float = Field(default=0.30, ge=0.0, le=1.0)

    reconstruction_error_threshold: float = Field(default=0.5, ge=0.0)
    diffuse_worst_count: int = Field(default=5, ge=1)
    top_axes_count: int = Field(default=5, ge=1)

    @model_validator(mode="after")
    def _validate_similarity_order(self) -> AxisGapConfig:
        if self.related_similarity > self.redundant_similarity:
            raise ValueError(
                f"related_similarity ({self.related_similarity}) must not exceed "
                f"redundant_similarity ({self.redundant_similarity})."
            )
        return self
