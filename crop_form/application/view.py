from __future__ import annotations

import math
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..schemas import (
    Coordinate,
    MarketProfile,
    Recommendation,
    SoilProfile,
    WeatherProfile,
)

if TYPE_CHECKING:
    from .form_controller import FormController


AUTO_FILL_LABEL = "Auto-fill from APIs"
AUTO_FILL_BUSY_LABEL = "Loading..."
RECOMMEND_LABEL = "Get Recommendations"
RECOMMEND_BUSY_LABEL = "Please wait..."


class _ViewModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class ActionButton(_ViewModel):
    label: str
    disabled: bool


class StatTile(_ViewModel):
    label: str
    value: str
    suffix: str = ""

    @property
    def text(self) -> str:
        return f"{self.value}{self.suffix}"


class RecommendationCard(_ViewModel):
    title: str
    score_badge: str
    yield_text: str
    profit_percent: int
    sustainability_percent: int
    notes: Optional[str] = None


class FormView(_ViewModel):
    """Render-ready snapshot of the form."""

    coordinate: Coordinate
    soil: SoilProfile
    weather: WeatherProfile
    market: MarketProfile
    rotation_text: str
    rotation_history: List[str]
    in_flight: bool
    auto_fill_in_flight: bool
    recommend_in_flight: bool
    warning_message: Optional[str] = None
    recommendations: List[Recommendation] = Field(default_factory=list)
    auto_fill_button: ActionButton
    recommend_button: ActionButton
    soil_stats: List[StatTile] = Field(default_factory=list)
    cards: List[RecommendationCard] = Field(default_factory=list)


def format_number(value: float) -> str:
    """Render a float the way JavaScript's ``Number#toString`` does.

    ``55.0`` -> ``55``, ``1e-07`` -> ``1e-7``, ``1e+21`` -> ``1e+21``,
    ``0.00001`` -> ``0.00001``.
    """
    value = float(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "0"
    # repr() yields the shortest round-trip digits, the same ones JavaScript picks.
    sign, digit_tuple, exponent = Decimal(repr(value)).normalize().as_tuple()
    digits = "".join(str(d) for d in digit_tuple)
    k = len(digits)
    n = exponent + k
    prefix = "-" if sign else ""
    if k <= n <= 21:
        text = digits + "0" * (n - k)
    elif 0 < n <= 21:
        text = f"{digits[:n]}.{digits[n:]}"
    elif -6 < n <= 0:
        text = "0." + "0" * -n + digits
    else:
        power = n - 1
        mantissa = digits if k == 1 else f"{digits[0]}.{digits[1:]}"
        text = f"{mantissa}e{'+' if power > 0 else '-'}{abs(power)}"
    return prefix + text


def to_percent(fraction: float) -> int:
    # Half-up rounding, matching Math.round rather than banker's rounding.
    return int(math.floor(fraction * 100 + 0.5))


def build_soil_stats(soil: SoilProfile) -> List[StatTile]:
    return [
        StatTile(label="pH", value=format_number(soil.ph)),
        StatTile(label="Moisture", value=format_number(soil.moisture), suffix="%"),
        StatTile(label="Nitrogen", value=format_number(soil.nitrogen)),
        StatTile(label="Phosphorus", value=format_number(soil.phosphorus)),
        StatTile(label="Potassium", value=format_number(soil.potassium)),
    ]


def build_card(rec: Recommendation) -> RecommendationCard:
    return RecommendationCard(
        title=rec.crop_name,
        score_badge=f"Score {format_number(rec.score)}",
        yield_text=f"{format_number(rec.expected_yield_tons_per_hectare)} t/ha",
        profit_percent=to_percent(rec.profit_index),
        sustainability_percent=to_percent(rec.sustainability_score),
        notes=rec.notes or None,
    )


def build_form_view(form: "FormController") -> FormView:
    status = form.status
    busy = status.in_flight
    recommendations = form.recommendations
    return FormView(
        coordinate=form.coordinate,
        soil=form.soil,
        weather=form.weather,
        market=form.market,
        rotation_text=form.rotation_text,
        rotation_history=form.rotation_history,
        in_flight=busy,
        auto_fill_in_flight=status.auto_fill_in_flight,
        recommend_in_flight=status.recommend_in_flight,
        warning_message=status.warning_message,
        recommendations=recommendations,
        auto_fill_button=ActionButton(
            label=AUTO_FILL_BUSY_LABEL if busy else AUTO_FILL_LABEL,
            disabled=busy,
        ),
        recommend_button=ActionButton(
            label=RECOMMEND_BUSY_LABEL if busy else RECOMMEND_LABEL,
            disabled=busy,
        ),
        soil_stats=build_soil_stats(form.soil),
        cards=[build_card(rec) for rec in recommendations],
    )
