from __future__ import annotations

import logging
import time

from ..analytics.store import record_event
from ..geo.filter import bounding_box, validate_origin, validate_radius
from .cache import ResultCache, get_cache
from .config import DEFAULT_WEIGHTS, ScoringWeights
from .data_store import CandidateFilter, RestaurantRepository, get_repository
from .fingerprint import request_fingerprint
from .models import DiscoveryRequest, DiscoveryResponse
from .ranking import rank

logger = logging.getLogger(__name__)


def _validate(request: DiscoveryRequest) -> None:
    """Reject bad query parameters before touching the cache or repository."""
    if request.latitude is not None and request.longitude is not None:
        validate_origin(request.latitude, request.longitude)
        validate_radius(request.effective_radius_km)


def _compute(
    request: DiscoveryRequest,
    repository: RestaurantRepository,
    weights: ScoringWeights,
) -> DiscoveryResponse:
    located = request.latitude is not None
    candidate_filter = CandidateFilter(
        bounding_box=(
            bounding_box(request.latitude, request.longitude, request.effective_radius_km)
            if located else None
        ),
        query=request.query,
    )
    candidates = repository.fetch_candidates(candidate_filter)

    items = rank(
        candidates,
        request.preferences,
        request.latitude,
        request.longitude,
        request.limit,
        radius_km=request.effective_radius_km if located else None,
        weights=weights,
    )
    logger.info(
        "Ranked %d of %d candidates (query=%r, located=%s)",
        len(items), len(candidates), request.query, located,
    )
    return DiscoveryResponse(recommendations=items, total_candidates=len(candidates))


def _record_search(request: DiscoveryRequest, response: DiscoveryResponse, start_time: float) -> None:
    prefs = request.preferences
    record_event("search", {
        "query": request.query,
        "located": request.latitude is not None,
        "radius_km": request.effective_radius_km,
        "dietary_restrictions": prefs.dietary_restrictions,
        "allergens": prefs.allergens,
        "minimum_rating": prefs.minimum_rating,
        "budget_level": prefs.budget_level,
        "total_candidates": response.total_candidates,
        "results_returned": len(response.recommendations),
        "response_time_ms": round((time.time() - start_time) * 1000, 1),
        "cache_hit": response.cache_hit,
    })


def get_recommendations(
    request: DiscoveryRequest,
    repository: RestaurantRepository | None = None,
    cache: ResultCache | None = None,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> DiscoveryResponse:
    """
    Run the discovery pipeline for one request.

    A fingerprint hit returns the cached response. On a miss, candidates
    are fetched (with bounding-box and text pushdown), geo-filtered,
    screened and ranked, and the response is cached.
    """
    start_time = time.time()
    _validate(request)

    if repository is None:
        repository = get_repository()
    if cache is None:
        cache = get_cache()

    fingerprint = request_fingerprint(request)
    response, hit = cache.get_or_compute(
        fingerprint, lambda: _compute(request, repository, weights),
    )
    if hit:
        response = response.model_copy(update={"cache_hit": True})

    _record_search(request, response, start_time)
    return response
