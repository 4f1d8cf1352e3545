from __future__ import annotations

from collections import Counter
from typing import Any


def _rate(count: int, total: int) -> float:
    return round(count / total * 100, 1) if total else 0.0


def compute_analytics(events: list[dict[str, Any]]) -> dict[str, Any]:
    searches = [e for e in events if e["type"] == "search"]
    total = len(searches)

    times = [s["response_time_ms"] for s in searches if "response_time_ms" in s]
    avg_time = round(sum(times) / len(times), 1) if times else 0.0

    returned = [s.get("results_returned", 0) for s in searches]
    avg_returned = round(sum(returned) / total, 1) if total else 0.0

    query_counter: Counter[str] = Counter()
    for s in searches:
        query = (s.get("query") or "").strip().lower()
        if query:
            query_counter[query] += 1
    top_queries = [{"name": n, "count": c} for n, c in query_counter.most_common(10)]

    dietary_counter: Counter[str] = Counter()
    allergen_counter: Counter[str] = Counter()
    for s in searches:
        dietary_counter.update(s.get("dietary_restrictions") or [])
        allergen_counter.update(s.get("allergens") or [])

    filter_counts = {"location": 0, "dietary": 0, "allergens": 0, "rating": 0, "budget": 0}
    for s in searches:
        if s.get("located"):
            filter_counts["location"] += 1
        if s.get("dietary_restrictions"):
            filter_counts["dietary"] += 1
        if s.get("allergens"):
            filter_counts["allergens"] += 1
        if s.get("minimum_rating", 0) > 0:
            filter_counts["rating"] += 1
        if s.get("budget_level", 0) > 0:
            filter_counts["budget"] += 1

    cache_hits = sum(1 for s in searches if s.get("cache_hit"))

    return {
        "total_searches": total,
        "avg_response_time_ms": avg_time,
        "avg_results_returned": avg_returned,
        "top_queries": top_queries,
        "dietary_usage": dict(dietary_counter.most_common()),
        "allergen_usage": dict(allergen_counter.most_common()),
        "filter_usage": {k: _rate(v, total) for k, v in filter_counts.items()},
        "cache_stats": {
            "hits": cache_hits,
            "misses": total - cache_hits,
            "hit_rate": _rate(cache_hits, total),
        },
    }
