"""Cross-links between recommendations by affected-prototype overlap.

Similarity is the Jaccard index of the two affected-prototype sets:

- same type, similarity >= redundant_similarity    -> potentially_redundant
- same type, related <= similarity < redundant     -> overlapping
- different type, similarity >= related_similarity -> complementary

Links are symmetric. Recommendations sharing an id are never linked to each
other. A recommendation with no qualifying link keeps
``relationships = None``.
"""

from __future__ import annotations

from expression_diagnostics.axis_gap.config import AxisGapConfig
from expression_diagnostics.models.axis_gap import (
    Recommendation,
    RecommendationRelationships,
    RelationshipEntry,
)


def jaccard_similarity(left: set[str], right: set[str]) -> float:
    """|A & B| / |A | B|; two empty sets share nothing and score 0."""
    union = left | right
    if not union:
        return 0.0
    return len(left & right) / len(union)


def _category(
    similarity: float,
    same_type: bool,
    config: AxisGapConfig,
) -> str | None:
    if similarity < config.related_similarity:
        return None
    if not same_type:
        return "complementary"
    if similarity >= config.redundant_similarity:
        return "potentially_redundant"
    return "overlapping"


def link_recommendations(
    recommendations: list[Recommendation],
    config: AxisGapConfig | None = None,
) -> list[Recommendation]:
    """Return copies of *recommendations* with ``relationships`` filled in.

    Order is preserved; inputs are not modified.
    """
    config = config or AxisGapConfig()
    links: list[dict[str, list[RelationshipEntry]]] = [
        {"potentially_redundant": [], "overlapping": [], "complementary": []}
        for _ in recommendations
    ]
    sets = [set(rec.affected_prototypes) for rec in recommendations]

    for i in range(len(recommendations)):
        for j in range(i + 1, len(recommendations)):
            if recommendations[i].id == recommendations[j].id:
                continue
            similarity = jaccard_similarity(sets[i], sets[j])
            category = _category(
                similarity,
                recommendations[i].type == recommendations[j].type,
                config,
            )
            if category is None:
                continue
            shared = sorted(sets[i] & sets[j])
            links[i][category].append(RelationshipEntry(
                id=recommendations[j].id, similarity=similarity,
                shared_prototypes=shared,
            ))
            links[j][category].append(RelationshipEntry(
                id=recommendations[i].id, similarity=similarity,
                shared_prototypes=shared,
            ))

    linked: list[Recommendation] = []
    for rec, categories in zip(recommendations, links, strict=True):
        if any(categories.values()):
            rec = rec.model_copy(
                update={"relationships": RecommendationRelationships(**categories)},
            )
        linked.append(rec)
    return linked
