from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _Value(BaseModel):
    """Immutable value object; edits go through :meth:`replace`."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    def replace(self, **changes: object):
        """Return a validated copy with ``changes`` applied."""
        unknown = sorted(set(changes) - set(type(self).model_fields))
        if unknown:
            raise ValueError(f"unknown {type(self).__name__} field(s): {unknown}")
        return type(self).model_validate({**self.model_dump(), **changes})


class Coordinate(_Value):
    """Latitude/longitude kept as free text so partial edits survive."""

    latitude: str
    longitude: str

    def as_location(self) -> str:
        return f"{self.latitude},{self.longitude}"


class SoilProfile(_Value):
    ph: float
    moisture: float = Field(..., description="Volumetric moisture in percent.")
    nitrogen: float
    phosphorus: float
    potassium: float


class WeatherProfile(_Value):
    rainfall_mm: float
    temperature_c: float


class MarketProfile(_Value):
    demand_index: float = Field(..., ge=0.0, le=1.0)
    price_index: float = Field(..., ge=0.0, le=1.0)


class Recommendation(_Value):
    """Single scored crop suggestion returned by the recommendation service."""

    crop_name: str = Field(..., alias="crop")
    score: float
    expected_yield_tons_per_hectare: float = Field(..., alias="expected_yield_tpha")
    profit_index: float = Field(..., ge=0.0, le=1.0)
    sustainability_score: float = Field(..., ge=0.0, le=1.0)
    notes: Optional[str] = None


class AutoDataSnapshot(_Value):
    """Auto-data response; every section is optional."""

    soil: Optional[SoilProfile] = None
    weather: Optional[WeatherProfile] = None
    market: Optional[MarketProfile] = None

    def present_sections(self) -> List[str]:
        return [
            name
            for name in ("soil", "weather", "market")
            if getattr(self, name) is not None
        ]


class RecommendationRequest(_Value):
    """Request bundle posted to the recommendation service."""

    location: str
    soil: SoilProfile
    weather: WeatherProfile
    previous_crops: List[str] = Field(default_factory=list)
    market: MarketProfile
    preferred_language: str = "en"


class RecommendationResponse(_Value):
    recommendations: List[Recommendation] = Field(default_factory=list)

    @field_validator("recommendations", mode="before")
    @classmethod
    def missing_means_empty(cls, value: object) -> object:
        return [] if value is None else value


class RequestStatus(_Value):
    """Busy flags per operation plus the shared warning slot."""

    auto_fill_in_flight: bool = False
    recommend_in_flight: bool = False
    warning_message: Optional[str] = None

    @property
    def in_flight(self) -> bool:
        return self.auto_fill_in_flight or self.recommend_in_flight
