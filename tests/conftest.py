"""Shared pytest fixtures for the expression diagnostics test suite.

Provides:
- prototype_lookup: raw lookup data for both prototype domains
- registry: InMemoryPrototypeRegistry built from the lookup
- analyzer / calculator: engines wired to that registry
"""

import pytest

from expression_diagnostics.engine.gate_constraints import GateConstraintAnalyzer
from expression_diagnostics.engine.intensity_bounds import IntensityBoundsCalculator
from expression_diagnostics.engine.registry import InMemoryPrototypeRegistry


@pytest.fixture
def prototype_lookup() -> dict:
    """Small emotion + sexual prototype tables with known closed-form bounds."""
    return {
        "emotion": {
            "joy": {
                "weights": {"valence": 1.0, "arousal": 0.5},
                "gates": ["valence >= 0.2"],
            },
            "fear": {
                "weights": {"threat": 1.0, "valence": -0.5, "agency_control": -0.5},
                "gates": ["threat >= 0.3"],
            },
            "calm": {
                "weights": {"arousal": -1.0, "threat": -0.5},
                "gates": ["arousal <= 0.3", "threat <= 0.2"],
            },
            "numb": {"weights": {}, "gates": []},
        },
        "sexual": {
            "desire": {
                "weights": {"sexual_arousal": 1.0, "sex_inhibition": -1.0},
                "gates": ["sexual_arousal >= 0.35"],
            },
            "saturated": {
                "weights": {
                    "sexual_arousal": 1.0,
                    "sex_excitation": 1.0,
                    "baseline_libido": 1.0,
                    "affective_empathy": 1.0,
                    "cognitive_empathy": 1.0,
                    "harm_aversion": 1.0,
                },
                "gates": [],
            },
        },
    }


@pytest.fixture
def registry(prototype_lookup: dict) -> InMemoryPrototypeRegistry:
    return InMemoryPrototypeRegistry.from_lookup(prototype_lookup)


@pytest.fixture
def analyzer(registry: InMemoryPrototypeRegistry) -> GateConstraintAnalyzer:
    return GateConstraintAnalyzer(registry)


@pytest.fixture
def calculator(registry: InMemoryPrototypeRegistry) -> IntensityBoundsCalculator:
    return IntensityBoundsCalculator(registry)
