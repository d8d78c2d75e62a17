"""Expression diagnostics core.

Gate-constraint derivation, intensity bounds, fit/feasibility conflict
detection and axis-gap recommendations for emotion and state prototypes.

Deterministic -- no I/O, no LLM calls.
"""

__version__ = "0.1.0"
