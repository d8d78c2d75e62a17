"""Axis-gap recommendations (PCA residual, hub, coverage-gap and conflict signals).

Deterministic -- no LLM calls.
"""
