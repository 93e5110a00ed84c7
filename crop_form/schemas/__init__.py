from .models import (
    AutoDataSnapshot,
    Coordinate,
    MarketProfile,
    Recommendation,
    RecommendationRequest,
    RecommendationResponse,
    RequestStatus,
    SoilProfile,
    WeatherProfile,
)

__all__ = [
    "AutoDataSnapshot",
    "Coordinate",
    "MarketProfile",
    "Recommendation",
    "RecommendationRequest",
    "RecommendationResponse",
    "RequestStatus",
    "SoilProfile",
    "WeatherProfile",
]
