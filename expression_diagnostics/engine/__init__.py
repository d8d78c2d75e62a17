"""Constraint and feasibility engines.

Gate-constraint analysis, intensity bounds, clause classification and
conflict detection over prototype axis models.

Deterministic -- no LLM calls.
"""
