from __future__ import annotations

import hashlib
import json
from typing import Any

from .config import DEFAULT_CACHE_CONFIG
from .models import DiscoveryRequest


def normalize_query(query: str | None) -> str:
    """Lowercase and collapse whitespace so trivially different queries share a key."""
    return " ".join((query or "").lower().split())


def _round_coordinate(value: float | None, precision: int) -> float | None:
    if value is None:
        return None
    # +0.0 folds -0.0 into the same bucket
    return round(float(value), precision) + 0.0


def make_fingerprint(
    query: str | None,
    latitude: float | None,
    longitude: float | None,
    filters: dict[str, Any] | None = None,
    precision: int = DEFAULT_CACHE_CONFIG.location_precision,
) -> str:
    """
    Stable cache key for a (query, location, filters) triple.

    Coordinates are rounded to ``precision`` decimal places so nearby
    origins collapse into the same bucket.
    """
    payload = {
        "q": normalize_query(query),
        "lat": _round_coordinate(latitude, precision),
        "lon": _round_coordinate(longitude, precision),
        "filters": filters or {},
    }
    canonical = json.dumps(payload, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()[:16]


def request_fingerprint(
    request: DiscoveryRequest,
    precision: int = DEFAULT_CACHE_CONFIG.location_precision,
) -> str:
    prefs = request.preferences.model_dump()
    prefs["dietary_restrictions"] = sorted(prefs["dietary_restrictions"])
    prefs["allergens"] = sorted(prefs["allergens"])
    filters = {
        "radius_km": request.effective_radius_km if request.latitude is not None else None,
        "limit": request.limit,
        "preferences": prefs,
    }
    return make_fingerprint(request.query, request.latitude, request.longitude, filters, precision)
