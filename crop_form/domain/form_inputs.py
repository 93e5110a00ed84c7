from __future__ import annotations

from typing import List

from ..schemas import Coordinate, MarketProfile, SoilProfile, WeatherProfile


DEFAULT_COORDINATE = Coordinate(latitude="22.57", longitude="88.36")
DEFAULT_SOIL = SoilProfile(
    ph=6.8, moisture=55, nitrogen=100, phosphorus=40, potassium=80
)
DEFAULT_WEATHER = WeatherProfile(rainfall_mm=800, temperature_c=28)
DEFAULT_MARKET = MarketProfile(demand_index=0.6, price_index=0.6)
DEFAULT_ROTATION_TEXT = "wheat,rice"
DEFAULT_LANGUAGE = "en"

ROTATION_SEPARATOR = ","


def parse_rotation_history(raw_text: str) -> List[str]:
    """Split comma-separated crop names, trimming blanks and dropping empties."""
    if not raw_text:
        return []
    parts = (item.strip() for item in str(raw_text).split(ROTATION_SEPARATOR))
    return [item for item in parts if item]
