from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")

_BUNDLED_CSV = Path(__file__).resolve().parent.parent / "data" / "restaurants.csv"


@dataclass(frozen=True)
class ScoringWeights:
    """
    Relative importance of each ranking signal.

    Each signal lies in [0, 1]; the final score is the weighted sum.
    """

    distance: float = 0.25
    rating: float = 0.20
    dietary: float = 0.30
    price: float = 0.20
    open_now: float = 0.05

    def __post_init__(self) -> None:
        values = (self.distance, self.rating, self.dietary, self.price, self.open_now)
        if any(v < 0 for v in values):
            raise ValueError("scoring weights must be non-negative")
        if sum(values) <= 0:
            raise ValueError("at least one scoring weight must be positive")


@dataclass(frozen=True)
class CacheConfig:
    ttl_seconds: float = float(os.getenv("DISCOVERY_CACHE_TTL_SECONDS", "300"))
    max_entries: int = int(os.getenv("DISCOVERY_CACHE_MAX_ENTRIES", "1024"))
    location_precision: int = int(os.getenv("DISCOVERY_LOCATION_PRECISION", "3"))


@dataclass(frozen=True)
class DataConfig:
    restaurants_path: Path = field(
        default_factory=lambda: Path(os.getenv("DISCOVERY_RESTAURANTS_CSV", str(_BUNDLED_CSV)))
    )


DEFAULT_WEIGHTS = ScoringWeights()
DEFAULT_CACHE_CONFIG = CacheConfig()
DEFAULT_DATA_CONFIG = DataConfig()
