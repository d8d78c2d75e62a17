"""Tests for the diagnose script.

Covers: full pipeline over a bundle (derived clauses, empty-axis
impossibility, both conflict rules, axis-gap report), supplied feasibility
results, JSON output and exit codes of main().
"""

import json
from pathlib import Path

import pytest

from expression_diagnostics.models.common import (
    ConflictType,
    FeasibilityClassification,
    RecommendationPriority,
)
from scripts.diagnose import diagnose, main, to_json


def _prototypes() -> dict:
    return {
        "emotion": {
            "fear": {
                "weights": {"threat": 1.0, "valence": -0.5},
                "gates": ["threat >= 0.3"],
            },
            "joy": {"weights": {"valence": 1.0}, "gates": ["valence >= 0.1"]},
        },
    }


@pytest.fixture
def conflicting_bundle() -> dict:
    """Expression that caps threat below fear's gate while requiring fear."""
    return {
        "prototypes": _prototypes(),
        "expression": {
            "prerequisites": [{
                "logic": {
                    "and": [
                        {"<=": [{"var": "moodAxes.threat"}, 10]},
                        {">=": [{"var": "emotions.fear"}, 0.5]},
                    ],
                },
            }],
        },
        "prototypeFit": {
            "leaderboard": [
                {"prototypeId": "fear", "compositeScore": 0.8},
                {"prototypeId": "joy", "compositeScore": 0.2},
            ],
        },
        "gateAlignment": {
            "contradictions": [{
                "emotionId": "fear",
                "axis": "threat",
                "regimeInterval": {"min": -1.0, "max": 0.1},
                "gateInterval": {"min": 0.3, "max": 1.0},
            }],
        },
        "axisGap": {
            "pcaResult": {
                "residualVarianceRatio": 0.25,
                "additionalSignificantComponents": 1,
                "topLoadingPrototypes": [{"prototypeId": "fear", "loading": 0.9}],
            },
            "totalPrototypes": 2,
        },
    }


@pytest.fixture
def clean_bundle() -> dict:
    return {
        "prototypes": _prototypes(),
        "expression": {"prerequisites": [{
            "logic": {">=": [{"var": "emotions.joy"}, 0.4]},
        }]},
        "prototypeFit": {"leaderboard": [{"prototypeId": "joy", "compositeScore": 0.9}]},
    }


# ===================================================================
# diagnose()
# ===================================================================


class TestDiagnose:
    """End-to-end pipeline over in-memory bundles."""

    def test_conflicting_bundle(self, conflicting_bundle: dict) -> None:
        results = diagnose(conflicting_bundle)

        analysis = results["analysis"]
        assert [e.axis for e in analysis.empty_axes] == ["threat"]

        clauses = results["clauses"]
        assert [c.var_path for c in clauses] == ["emotions.fear"]
        assert clauses[0].clause_id == "clause_0"
        assert clauses[0].classification == FeasibilityClassification.IMPOSSIBLE

        conflicts = results["conflicts"]
        assert [c.type for c in conflicts] == [
            ConflictType.FIT_VS_CLAUSE_IMPOSSIBLE,
            ConflictType.GATE_CONTRADICTION,
        ]
        assert conflicts[0].impossible_clause_ids == ["clause_0"]
        assert conflicts[1].impossible_clause_ids == ["gate:fear:threat"]

        report = results["axis_gap"]
        assert report.summary.total_prototypes_analyzed == 2
        assert [r.priority for r in report.recommendations] == [
            RecommendationPriority.MEDIUM,
        ]

    def test_clean_bundle(self, clean_bundle: dict) -> None:
        results = diagnose(clean_bundle)
        assert results["analysis"].axis_intervals["valence"].min == pytest.approx(0.1)
        assert results["clauses"][0].classification == FeasibilityClassification.OK
        assert results["conflicts"] == []
        assert results["axis_gap"] is None

    def test_supplied_feasibility_is_classified(self, clean_bundle: dict) -> None:
        clean_bundle["feasibility"] = [
            {
                "clauseId": "c7",
                "varPath": "emotions.joy",
                "operator": ">=",
                "threshold": 0.99,
                "population": 1000,
                "passRate": 0.0,
                "maxValue": 0.5,
            },
            {
                "clauseId": "c8",
                "varPath": "emotions.joy",
                "operator": ">=",
                "threshold": 0.2,
                "classification": "RARE",
            },
        ]
        results = diagnose(clean_bundle)
        by_id = {c.clause_id: c for c in results["clauses"]}
        # Reachable under valence >= 0.1 (max 1.0), so sampling decides.
        assert by_id["c7"].classification == FeasibilityClassification.RARE
        assert by_id["c8"].classification == FeasibilityClassification.RARE
        assert results["conflicts"] == []

    def test_unknown_prototype_clause_stays_unknown(self, clean_bundle: dict) -> None:
        clean_bundle["expression"] = {">=": [{"var": "emotions.nonexistent"}, 0.4]}
        results = diagnose(clean_bundle)
        assert results["clauses"][0].classification == FeasibilityClassification.UNKNOWN
        assert any("nonexistent" in w for w in results["analysis"].warnings)

    def test_to_json(self, conflicting_bundle: dict) -> None:
        payload = to_json(diagnose(conflicting_bundle))
        assert payload["emptyAxes"][0]["axis"] == "threat"
        assert payload["clauses"][0]["classification"] == "IMPOSSIBLE"
        assert payload["conflicts"][1]["type"] == "gate_contradiction"
        assert payload["axisGap"]["summary"]["recommendationCount"] == 1
        json.dumps(payload)


# ===================================================================
# main()
# ===================================================================


class TestMain:
    """Command-line entry point."""

    def _write(self, tmp_path: Path, bundle: dict) -> Path:
        path = tmp_path / "bundle.json"
        path.write_text(json.dumps(bundle), encoding="utf-8")
        return path

    def test_json_output(
        self,
        tmp_path: Path,
        conflicting_bundle: dict,
        capsys: pytest.CaptureFixture,
    ) -> None:
        code = main([str(self._write(tmp_path, conflicting_bundle)), "--json"])
        payload = json.loads(capsys.readouterr().out)
        assert code == 1
        assert len(payload["conflicts"]) == 2

    def test_summary_output_pass(
        self,
        tmp_path: Path,
        clean_bundle: dict,
        capsys: pytest.CaptureFixture,
    ) -> None:
        code = main([str(self._write(tmp_path, clean_bundle))])
        out = capsys.readouterr().out
        assert code == 0
        assert "RESULT: PASS" in out
        assert "valence" in out

    def test_summary_output_issues(
        self,
        tmp_path: Path,
        conflicting_bundle: dict,
        capsys: pytest.CaptureFixture,
    ) -> None:
        code = main([str(self._write(tmp_path, conflicting_bundle))])
        out = capsys.readouterr().out
        assert code == 1
        assert "ISSUES (2 conflicts)" in out
        assert "EMPTY" in out
        assert "Axis gap: 1 recommendation(s)" in out
