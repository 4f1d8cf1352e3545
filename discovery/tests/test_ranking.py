import pytest

from discovery.errors import InvalidQueryParameter
from discovery.recommendations.config import ScoringWeights
from discovery.recommendations.models import BudgetRange, Restaurant, SafetyLevel, UserPreferences
from discovery.recommendations.ranking import price_fit, rank, score_candidate

SF = (37.7749, -122.4194)


def _restaurant(rid: str, **kwargs) -> Restaurant:
    kwargs.setdefault("name", rid)
    kwargs.setdefault("latitude", SF[0])
    kwargs.setdefault("longitude", SF[1])
    return Restaurant(id=rid, **kwargs)


def _ids(items) -> list[str]:
    return [item.restaurant.id for item in items]


def test_empty_candidates_returns_empty():
    assert rank([], UserPreferences(), *SF, limit=10) == []


def test_zero_limit_returns_empty():
    assert rank([_restaurant("a")], UserPreferences(), *SF, limit=0) == []


def test_negative_limit_rejected():
    with pytest.raises(InvalidQueryParameter):
        rank([_restaurant("a")], UserPreferences(), *SF, limit=-1)


def test_half_origin_rejected():
    with pytest.raises(InvalidQueryParameter):
        rank([_restaurant("a")], UserPreferences(), SF[0], None, limit=5)


def test_invalid_radius_rejected():
    with pytest.raises(InvalidQueryParameter):
        rank([_restaurant("a")], UserPreferences(), *SF, limit=5, radius_km=0.0)


def test_allergen_warning_never_returned():
    candidates = [
        _restaurant("peanut", allergens=["peanuts"], rating=5.0, price_level=1),
        _restaurant("safe", allergens=["dairy"], rating=2.0),
    ]
    prefs = UserPreferences(allergens=["peanuts"])
    result = rank(candidates, prefs, *SF, limit=10)
    assert _ids(result) == ["safe"]
    assert all(item.safety != SafetyLevel.warning for item in result)


def test_rating_filter():
    candidates = [
        _restaurant("low", rating=2.5),
        _restaurant("good", rating=4.0),
        _restaurant("unrated"),
    ]
    result = rank(candidates, UserPreferences(minimum_rating=3.5), *SF, limit=10)
    assert sorted(_ids(result)) == ["good", "unrated"]


def test_price_filter_respects_budget_level():
    candidates = [
        _restaurant("budget", price_level=1),
        _restaurant("mid", price_level=2),
        _restaurant("fine", price_level=4),
    ]
    result = rank(candidates, UserPreferences(budget_level=2), *SF, limit=10)
    assert sorted(_ids(result)) == ["budget", "mid"]


def test_budget_level_zero_disables_price_filter():
    candidates = [_restaurant("fine", price_level=4)]
    assert _ids(rank(candidates, UserPreferences(budget_level=0), *SF, limit=10)) == ["fine"]


def test_dietary_threshold_applies_only_with_restrictions():
    candidates = [
        _restaurant("veggie", supported_dietary_restrictions=["vegetarian"]),
        _restaurant("steak"),
        _restaurant("vegan", supported_dietary_restrictions=["vegan", "vegetarian"]),
    ]
    strict = rank(candidates, UserPreferences(dietary_restrictions=["vegetarian"]), *SF, limit=10)
    assert sorted(_ids(strict)) == ["vegan", "veggie"]

    relaxed = rank(candidates, UserPreferences(), *SF, limit=10)
    assert len(relaxed) == 3


def test_verification_requirement_drops_weak_unverified():
    candidates = [
        _restaurant("half", supported_dietary_restrictions=["vegan"]),
        _restaurant("half-verified", supported_dietary_restrictions=["vegan"], has_verified_dietary_info=True),
    ]
    prefs = UserPreferences(dietary_restrictions=["vegan", "gluten_free"], require_dietary_verification=True)
    assert _ids(rank(candidates, prefs, *SF, limit=10)) == ["half-verified"]


def test_chain_exclusion():
    candidates = [_restaurant("c1", name="Subway Market St"), _restaurant("c2", name="Local Deli")]
    assert _ids(rank(candidates, UserPreferences(include_chains=False), *SF, limit=10)) == ["c2"]
    assert len(rank(candidates, UserPreferences(), *SF, limit=10)) == 2


def test_multiple_filters_simultaneously():
    candidates = [
        _restaurant("perfect", supported_dietary_restrictions=["vegetarian"], rating=4.5, price_level=2),
        _restaurant("expensive", supported_dietary_restrictions=["vegetarian"], rating=4.8, price_level=4),
        _restaurant("low-rated", supported_dietary_restrictions=["vegetarian"], rating=2.0, price_level=1),
    ]
    prefs = UserPreferences(dietary_restrictions=["vegetarian"], minimum_rating=4.0, budget_level=2)
    assert _ids(rank(candidates, prefs, *SF, limit=10)) == ["perfect"]


def test_out_of_radius_and_unlocated_excluded_with_origin():
    candidates = [
        _restaurant("near"),
        _restaurant("far", latitude=SF[0] + 0.2),
        _restaurant("nowhere", latitude=None, longitude=None),
    ]
    result = rank(candidates, UserPreferences(max_travel_distance_km=5.0), *SF, limit=10)
    assert _ids(result) == ["near"]
    assert result[0].distance_km == pytest.approx(0.0, abs=1e-9)


def test_explicit_radius_overrides_travel_distance():
    candidates = [_restaurant("far", latitude=SF[0] + 0.1)]  # ~11 km
    prefs = UserPreferences(max_travel_distance_km=5.0)
    assert rank(candidates, prefs, *SF, limit=10) == []
    assert _ids(rank(candidates, prefs, *SF, limit=10, radius_km=15.0)) == ["far"]


def test_without_origin_distance_is_neutral_and_unlocated_kept():
    candidates = [_restaurant("nowhere", latitude=None, longitude=None), _restaurant("here")]
    result = rank(candidates, UserPreferences(), None, None, limit=10)
    assert sorted(_ids(result)) == ["here", "nowhere"]
    assert all(item.distance_km is None for item in result)
    assert result[0].score == result[1].score


def test_closer_restaurant_ranks_higher():
    candidates = [_restaurant("far", latitude=SF[0] + 0.03), _restaurant("near", latitude=SF[0] + 0.001)]
    assert _ids(rank(candidates, UserPreferences(), *SF, limit=10)) == ["near", "far"]


def test_ties_broken_by_id():
    candidates = [_restaurant(rid, rating=4.0) for rid in ("c", "a", "b")]
    result = rank(candidates, UserPreferences(), *SF, limit=10)
    assert _ids(result) == ["a", "b", "c"]


def test_ranking_is_stable_across_runs():
    candidates = [
        _restaurant(f"r{i:02d}", rating=3.0 + (i % 3) * 0.5, price_level=1 + i % 2, latitude=SF[0] + i * 0.001)
        for i in range(20)
    ]
    first = rank(candidates, UserPreferences(), *SF, limit=20)
    for _ in range(5):
        assert rank(list(reversed(candidates)), UserPreferences(), *SF, limit=20) == first


def test_limit_truncates_best_first():
    candidates = [_restaurant(f"r{i}", rating=float(i)) for i in range(1, 6)]
    result = rank(candidates, UserPreferences(), *SF, limit=2)
    assert _ids(result) == ["r5", "r4"]
    assert [item.score for item in result] == sorted((item.score for item in result), reverse=True)


def test_weights_change_ordering():
    candidates = [
        _restaurant("close-mediocre", rating=3.0),
        _restaurant("far-excellent", rating=5.0, latitude=SF[0] + 0.04),
    ]
    by_distance = ScoringWeights(distance=1.0, rating=0.0, dietary=0.0, price=0.0, open_now=0.0)
    by_rating = ScoringWeights(distance=0.0, rating=1.0, dietary=0.0, price=0.0, open_now=0.0)
    assert _ids(rank(candidates, UserPreferences(), *SF, limit=2, weights=by_distance))[0] == "close-mediocre"
    assert _ids(rank(candidates, UserPreferences(), *SF, limit=2, weights=by_rating))[0] == "far-excellent"


def test_invalid_weights_rejected():
    with pytest.raises(ValueError):
        ScoringWeights(distance=-0.1)
    with pytest.raises(ValueError):
        ScoringWeights(distance=0, rating=0, dietary=0, price=0, open_now=0)


def test_score_candidate_components():
    restaurant = _restaurant("x", rating=5.0, average_meal_cost=20.0, is_open_now=True)
    prefs = UserPreferences()
    # distance 0 of 5 km, perfect rating, full compatibility, preferred cost, open
    assert score_candidate(restaurant, prefs, 1.0, 0.0, 5.0) == pytest.approx(1.0)
    # unknown distance is neutral
    assert score_candidate(restaurant, prefs, 1.0, None, None) == pytest.approx(1.0 - 0.25 * 0.5)


@pytest.mark.parametrize(
    "cost, expected",
    [
        (20.0, 1.0),
        (30.0, 0.5),
        (3.0, 0.7),
        (60.0, 0.5),
        (120.0, 0.0),
    ],
)
def test_price_fit_by_average_cost(cost, expected):
    restaurant = _restaurant("x", average_meal_cost=cost)
    assert price_fit(restaurant, BudgetRange()) == pytest.approx(expected)


def test_price_fit_falls_back_to_price_level_then_neutral():
    assert price_fit(_restaurant("x", price_level=2), BudgetRange()) == pytest.approx(1.0)
    assert price_fit(_restaurant("x", price_level=3), BudgetRange()) == pytest.approx(0.0)
    assert price_fit(_restaurant("x"), BudgetRange()) == 0.5
