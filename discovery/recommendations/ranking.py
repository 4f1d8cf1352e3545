from __future__ import annotations

import logging
from typing import Iterable

from ..dietary.compatibility import score as dietary_score
from ..errors import InvalidQueryParameter
from ..geo.filter import filter_by_radius, validate_radius
from .config import DEFAULT_WEIGHTS, ScoringWeights
from .models import BudgetRange, RecommendationItem, Restaurant, SafetyLevel, UserPreferences

logger = logging.getLogger(__name__)

MIN_COMPATIBILITY = 0.5
UNVERIFIED_MIN_COMPATIBILITY = 0.8
NEUTRAL_SIGNAL = 0.5
DEFAULT_RATING = 3.0
BELOW_BUDGET_FIT = 0.7
OVER_BUDGET_CAP = 0.5

# Typical meal cost per price level ($ .. $$$$)
PRICE_LEVEL_COST = {1: 10.0, 2: 20.0, 3: 40.0, 4: 70.0}

CHAIN_INDICATORS = ("mcdonald", "subway", "starbucks", "kfc", "pizza hut")


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def _cost_fit(cost: float, budget: BudgetRange) -> float:
    if budget.minimum <= cost <= budget.maximum:
        return _clamp(1.0 - abs(cost - budget.preferred) / budget.preferred)
    if cost < budget.minimum:
        return BELOW_BUDGET_FIT
    return _clamp(1.0 - (cost - budget.maximum) / budget.maximum, high=OVER_BUDGET_CAP)


def price_fit(restaurant: Restaurant, budget: BudgetRange) -> float:
    """How well the restaurant's cost matches the user's budget, in [0, 1]."""
    if restaurant.average_meal_cost is not None:
        return _cost_fit(restaurant.average_meal_cost, budget)
    if restaurant.price_level is not None:
        expected = PRICE_LEVEL_COST.get(restaurant.price_level, budget.preferred)
        return _clamp(1.0 - abs(expected - budget.preferred) / budget.preferred)
    return NEUTRAL_SIGNAL


def is_chain(restaurant: Restaurant) -> bool:
    name = restaurant.name.lower()
    return any(indicator in name for indicator in CHAIN_INDICATORS)


def _rejection_reason(
    restaurant: Restaurant,
    prefs: UserPreferences,
    compatibility: float,
    safety: SafetyLevel,
) -> str | None:
    if safety == SafetyLevel.warning:
        return "allergen"
    if restaurant.rating is not None and restaurant.rating < prefs.minimum_rating:
        return "rating"
    if restaurant.price_level is not None and prefs.budget_level > 0:
        if restaurant.price_level > prefs.budget_level:
            return "price"
    if prefs.dietary_restrictions and compatibility < MIN_COMPATIBILITY:
        return "dietary"
    if (
        prefs.require_dietary_verification
        and not restaurant.has_verified_dietary_info
        and compatibility < UNVERIFIED_MIN_COMPATIBILITY
    ):
        return "unverified"
    if not prefs.include_chains and is_chain(restaurant):
        return "chain"
    return None


def score_candidate(
    restaurant: Restaurant,
    prefs: UserPreferences,
    compatibility: float,
    distance_km: float | None,
    radius_km: float | None,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> float:
    """Weighted blend of distance, rating, dietary, price and open-now signals."""
    if distance_km is None or not radius_km:
        distance_signal = NEUTRAL_SIGNAL
    else:
        distance_signal = _clamp(1.0 - distance_km / radius_km)

    rating = restaurant.rating if restaurant.rating is not None else DEFAULT_RATING
    rating_signal = _clamp(rating / 5.0)
    open_signal = 1.0 if restaurant.is_open_now else 0.0

    return (
        weights.distance * distance_signal
        + weights.rating * rating_signal
        + weights.dietary * compatibility
        + weights.price * price_fit(restaurant, prefs.budget)
        + weights.open_now * open_signal
    )


def rank(
    candidates: Iterable[Restaurant],
    prefs: UserPreferences,
    origin_lat: float | None,
    origin_lon: float | None,
    limit: int,
    *,
    radius_km: float | None = None,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> list[RecommendationItem]:
    """
    Screen, score and order candidates for one user.

    With an origin, candidates are first narrowed to ``radius_km`` (default:
    the user's max travel distance). Without one, no distance filtering is
    done and the distance signal is neutral. Allergen warnings are always
    dropped. Ties in score are broken by restaurant id.
    """
    if limit < 0:
        raise InvalidQueryParameter(f"limit must be non-negative, got {limit}")
    if (origin_lat is None) != (origin_lon is None):
        raise InvalidQueryParameter("origin latitude and longitude must be given together")

    if origin_lat is not None:
        radius = radius_km if radius_km is not None else prefs.max_travel_distance_km
        validate_radius(radius)
        located = [(m.restaurant, m.distance_km) for m in filter_by_radius(candidates, origin_lat, origin_lon, radius)]
    else:
        radius = None
        located = [(restaurant, None) for restaurant in candidates]

    if limit == 0 or not located:
        return []

    items: list[RecommendationItem] = []
    rejected: dict[str, int] = {}
    for restaurant, distance in located:
        compatibility, safety = dietary_score(restaurant, prefs.dietary_restrictions, prefs.allergens)
        reason = _rejection_reason(restaurant, prefs, compatibility, safety)
        if reason is not None:
            rejected[reason] = rejected.get(reason, 0) + 1
            continue
        items.append(RecommendationItem(
            restaurant=restaurant,
            distance_km=distance,
            compatibility=compatibility,
            safety=safety,
            score=score_candidate(restaurant, prefs, compatibility, distance, radius, weights),
        ))

    if rejected:
        logger.debug("Rejected candidates by reason: %s", rejected)

    items.sort(key=lambda item: (-item.score, item.restaurant.id))
    return items[:limit]
