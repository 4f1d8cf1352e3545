from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..dietary.tags import normalize_tag, normalize_tags


class SafetyLevel(str, Enum):
    ok = "ok"
    caution = "caution"
    warning = "warning"


class Restaurant(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str = ""
    address: str = ""
    latitude: float | None = Field(default=None, ge=-90.0, le=90.0)
    longitude: float | None = Field(default=None, ge=-180.0, le=180.0)
    rating: float | None = Field(default=None, ge=0.0, le=5.0)
    price_level: int | None = Field(default=None, ge=1, le=4)
    cuisine_type: str | None = None
    supported_dietary_restrictions: list[str] = Field(default_factory=list)
    allergens: list[str] = Field(default_factory=list)
    dietary_scores: dict[str, float] = Field(
        default_factory=dict,
        description="Partial support per restriction tag, 0.0-1.0",
    )
    has_verified_dietary_info: bool = False
    average_meal_cost: float | None = Field(default=None, ge=0.0)
    is_open_now: bool = True
    cached_at: datetime | None = None

    @field_validator("supported_dietary_restrictions", "allergens", mode="before")
    @classmethod
    def _normalize_tag_list(cls, value):
        return normalize_tags(value)

    @field_validator("dietary_scores", mode="before")
    @classmethod
    def _normalize_score_keys(cls, value):
        if value is None:
            return {}
        if not isinstance(value, dict):
            return value
        return {normalize_tag(k): v for k, v in value.items()}


class BudgetRange(BaseModel):
    minimum: float = Field(default=5.0, ge=0.0)
    preferred: float = Field(default=20.0, gt=0.0)
    maximum: float = Field(default=50.0, gt=0.0)

    @model_validator(mode="after")
    def _check_order(self) -> BudgetRange:
        if not self.minimum <= self.preferred <= self.maximum:
            raise ValueError("budget must satisfy minimum <= preferred <= maximum")
        return self


class UserPreferences(BaseModel):
    dietary_restrictions: list[str] = Field(default_factory=list)
    allergens: list[str] = Field(default_factory=list)
    minimum_rating: float = Field(default=0.0, ge=0.0, le=5.0)
    budget_level: int = Field(
        default=2, ge=0, le=4, description="Highest acceptable price level; 0 disables the filter"
    )
    max_travel_distance_km: float = Field(default=5.0, gt=0.0)
    budget: BudgetRange = Field(default_factory=BudgetRange)
    include_chains: bool = True
    require_dietary_verification: bool = False

    @field_validator("dietary_restrictions", "allergens", mode="before")
    @classmethod
    def _normalize_tag_list(cls, value):
        return normalize_tags(value)


class DiscoveryRequest(BaseModel):
    query: str = Field(default="", max_length=200, description="Free text matched against name, cuisine and address")
    latitude: float | None = Field(default=None, ge=-90.0, le=90.0)
    longitude: float | None = Field(default=None, ge=-180.0, le=180.0)
    radius_km: float | None = Field(
        default=None, gt=0.0, description="Defaults to preferences.max_travel_distance_km"
    )
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    limit: int = Field(default=10, ge=0, le=50)

    @model_validator(mode="after")
    def _check_origin_pair(self) -> DiscoveryRequest:
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be given together")
        return self

    @property
    def effective_radius_km(self) -> float:
        return self.radius_km if self.radius_km is not None else self.preferences.max_travel_distance_km


class RecommendationItem(BaseModel):
    restaurant: Restaurant
    distance_km: float | None = None
    compatibility: float
    safety: SafetyLevel
    score: float


class DiscoveryResponse(BaseModel):
    recommendations: list[RecommendationItem]
    total_candidates: int
    cache_hit: bool = False
