from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .analytics.aggregator import compute_analytics
from .analytics.store import get_events
from .errors import InvalidQueryParameter
from .recommendations.cache import get_cache
from .recommendations.models import DiscoveryRequest, DiscoveryResponse
from .recommendations.retrieval import get_recommendations

app = FastAPI(title="Restaurant Discovery API", version="1.0.0")


@app.exception_handler(InvalidQueryParameter)
def invalid_query_parameter(request: Request, exc: InvalidQueryParameter) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/discover", response_model=DiscoveryResponse)
def discover(body: DiscoveryRequest) -> DiscoveryResponse:
    return get_recommendations(body)


# ── Cache & analytics ───────────────────────────────────────────────────


@app.get("/cache/stats")
def cache_stats() -> dict:
    return get_cache().stats()


@app.delete("/cache")
def clear_cache() -> dict:
    get_cache().clear()
    return {"status": "cleared"}


@app.get("/analytics")
def analytics() -> dict:
    return compute_analytics(get_events())
