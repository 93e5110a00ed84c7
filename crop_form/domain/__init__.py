from .form_inputs import (
    DEFAULT_COORDINATE,
    DEFAULT_LANGUAGE,
    DEFAULT_MARKET,
    DEFAULT_ROTATION_TEXT,
    DEFAULT_SOIL,
    DEFAULT_WEATHER,
    parse_rotation_history,
)

__all__ = [
    "DEFAULT_COORDINATE",
    "DEFAULT_LANGUAGE",
    "DEFAULT_MARKET",
    "DEFAULT_ROTATION_TEXT",
    "DEFAULT_SOIL",
    "DEFAULT_WEATHER",
    "parse_rotation_history",
]
