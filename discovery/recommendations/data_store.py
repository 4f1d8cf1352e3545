from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Protocol

import pandas as pd
from pydantic import ValidationError

from ..geo.filter import BoundingBox
from .config import DEFAULT_DATA_CONFIG
from .fingerprint import normalize_query
from .models import Restaurant

logger = logging.getLogger(__name__)

_TAG_COLUMNS = ("supported_dietary_restrictions", "allergens")
_TEXT_COLUMNS = ("name", "cuisine_type", "address")


@dataclass(frozen=True)
class CandidateFilter:
    """What a repository may push down before the pipeline screens candidates."""

    bounding_box: BoundingBox | None = None
    query: str = ""

    def admits(self, restaurant: Restaurant) -> bool:
        if self.bounding_box is not None:
            if restaurant.latitude is None or restaurant.longitude is None:
                return False
            if not self.bounding_box.contains(restaurant.latitude, restaurant.longitude):
                return False
        query = normalize_query(self.query)
        if query:
            return query in search_text(restaurant.name, restaurant.cuisine_type, restaurant.address)
        return True


def search_text(*fields) -> str:
    """Lowercased, whitespace-collapsed text a query is matched against."""
    return normalize_query(" ".join("" if _optional(f) is None else str(f) for f in fields))


class RestaurantRepository(Protocol):
    def fetch_candidates(self, candidate_filter: CandidateFilter) -> list[Restaurant]:
        ...


class InMemoryRepository:
    """Repository over an already materialised list of restaurants."""

    def __init__(self, restaurants: Iterable[Restaurant]) -> None:
        self._restaurants = list(restaurants)

    def fetch_candidates(self, candidate_filter: CandidateFilter) -> list[Restaurant]:
        return [r for r in self._restaurants if candidate_filter.admits(r)]


def _split_tags(value) -> list[str]:
    if not isinstance(value, str):
        return []
    return [t.strip() for t in value.split(",") if t.strip()]


def _parse_scores(value) -> dict[str, float]:
    """Parse ``"gluten_free:0.6, vegan:0.3"`` into a dict, ignoring bad pairs."""
    scores: dict[str, float] = {}
    for pair in _split_tags(value):
        tag, _, raw = pair.partition(":")
        try:
            scores[tag.strip()] = float(raw)
        except ValueError:
            continue
    return scores


def _prepare(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    df["id"] = df["id"].astype(str)
    for col in ("latitude", "longitude"):
        df[col] = pd.to_numeric(df[col], errors="coerce") if col in df else float("nan")
    for col in (*_TAG_COLUMNS, "dietary_scores"):
        if col not in df:
            df[col] = None
    for col in _TAG_COLUMNS:
        df[f"{col}_list"] = df[col].apply(_split_tags)
    df["dietary_scores_map"] = df["dietary_scores"].apply(_parse_scores)

    for col in _TEXT_COLUMNS:
        if col not in df:
            df[col] = None
    df["search_text"] = [search_text(*fields) for fields in df[list(_TEXT_COLUMNS)].itertuples(index=False)]
    return df


def _optional(value):
    return None if value is None or pd.isna(value) else value


def _flag(value, default: bool) -> bool:
    value = _optional(value)
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def _row_to_restaurant(row: pd.Series) -> Restaurant:
    return Restaurant(
        id=row["id"],
        name=str(_optional(row.get("name")) or ""),
        address=str(_optional(row.get("address")) or ""),
        latitude=_optional(row.get("latitude")),
        longitude=_optional(row.get("longitude")),
        rating=_optional(row.get("rating")),
        price_level=_optional(row.get("price_level")),
        cuisine_type=_optional(row.get("cuisine_type")),
        supported_dietary_restrictions=row["supported_dietary_restrictions_list"],
        allergens=row["allergens_list"],
        dietary_scores=row["dietary_scores_map"],
        has_verified_dietary_info=_flag(row.get("has_verified_dietary_info"), default=False),
        average_meal_cost=_optional(row.get("average_meal_cost")),
        is_open_now=_flag(row.get("is_open_now"), default=True),
        cached_at=_optional(row.get("cached_at")),
    )


class DataFrameRepository:
    """Restaurant repository backed by an in-memory pandas DataFrame."""

    def __init__(self, df: pd.DataFrame) -> None:
        self._df = _prepare(df)

    @classmethod
    def from_csv(cls, path: Path) -> DataFrameRepository:
        return cls(pd.read_csv(path))

    def __len__(self) -> int:
        return len(self._df)

    def fetch_candidates(self, candidate_filter: CandidateFilter) -> list[Restaurant]:
        df = self._df
        mask = pd.Series(True, index=df.index)

        box = candidate_filter.bounding_box
        if box is not None:
            mask &= df["latitude"].notna() & df["longitude"].notna()
            mask &= (df["latitude"] - box.origin_lat).abs() <= box.d_lat
            if box.d_lon is not None:
                lon_delta = ((df["longitude"] - box.origin_lon + 180.0) % 360.0 - 180.0).abs()
                mask &= lon_delta <= box.d_lon

        query = normalize_query(candidate_filter.query)
        if query:
            mask &= df["search_text"].str.contains(query, regex=False, na=False)

        restaurants: list[Restaurant] = []
        for _, row in df.loc[mask].iterrows():
            try:
                restaurants.append(_row_to_restaurant(row))
            except ValidationError as exc:
                logger.warning("Skipping malformed restaurant row %s: %s", row.get("id"), exc.errors()[0]["msg"])
        return restaurants


_repository: DataFrameRepository | None = None
_repository_lock = threading.Lock()


def get_repository() -> DataFrameRepository:
    """Return the bundled CSV repository, loading it on first call."""
    global _repository
    with _repository_lock:
        if _repository is None:
            path = DEFAULT_DATA_CONFIG.restaurants_path
            _repository = DataFrameRepository.from_csv(path)
            logger.info("Loaded %d restaurants from %s", len(_repository), path)
        return _repository
