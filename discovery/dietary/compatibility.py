from __future__ import annotations

from typing import Iterable

from ..recommendations.models import Restaurant, SafetyLevel
from .tags import normalize_tags


def dietary_compatibility(restaurant: Restaurant, required_restrictions: Iterable[str]) -> float:
    """
    Fraction of the required restrictions the restaurant supports.

    A fully supported tag counts 1.0; otherwise the restaurant's partial
    score for that tag counts (clamped to [0, 1]); unknown tags count 0.0.
    No requirements means every restaurant is fully compatible. Listings
    that declare no dietary support score 0.0 against any requirement.
    """
    required = normalize_tags(required_restrictions)
    if not required:
        return 1.0

    supported = set(restaurant.supported_dietary_restrictions)
    total = 0.0
    for tag in required:
        if tag in supported:
            total += 1.0
        elif tag in restaurant.dietary_scores:
            total += min(1.0, max(0.0, float(restaurant.dietary_scores[tag])))
    return total / len(required)


def safety_level(
    restaurant: Restaurant,
    avoid_allergens: Iterable[str],
    required_restrictions: Iterable[str] = (),
) -> SafetyLevel:
    if set(normalize_tags(avoid_allergens)) & set(restaurant.allergens):
        return SafetyLevel.warning
    if normalize_tags(required_restrictions) and not restaurant.has_verified_dietary_info:
        return SafetyLevel.caution
    return SafetyLevel.ok


def score(
    restaurant: Restaurant,
    required_restrictions: Iterable[str],
    avoid_allergens: Iterable[str],
) -> tuple[float, SafetyLevel]:
    """Return ``(compatibility, safety)`` for one restaurant. Pure and deterministic."""
    required = normalize_tags(required_restrictions)
    return (
        dietary_compatibility(restaurant, required),
        safety_level(restaurant, avoid_allergens, required),
    )
