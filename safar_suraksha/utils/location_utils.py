import math
from typing import Any

from safar_suraksha.core.errors import InvalidInputError


def coerce_coordinate(value: Any, field: str) -> float:
    """
    Convert a JSON coordinate into a finite float.

    Numbers and numeric strings are accepted, zero included. Booleans, null,
    blank strings and anything that does not parse to a finite number are
    rejected with InvalidInputError.
    """
    if value is None or isinstance(value, bool):
        raise InvalidInputError(f"Invalid or missing {field}")

    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise InvalidInputError(f"Invalid or missing {field}")

    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        raise InvalidInputError(f"Invalid or missing {field}") from None

    if not math.isfinite(number):
        raise InvalidInputError(f"Invalid or missing {field}")

    return number


def parse_coordinates(latitude: Any, longitude: Any) -> tuple[float, float]:
    """Validate a latitude/longitude pair, including range checks"""
    lat = coerce_coordinate(latitude, "latitude")
    lon = coerce_coordinate(longitude, "longitude")

    if not (-90 <= lat <= 90):
        raise InvalidInputError("Invalid latitude: must be between -90 and 90")

    if not (-180 <= lon <= 180):
        raise InvalidInputError("Invalid longitude: must be between -180 and 180")

    return lat, lon


def require_text(value: Any, field: str) -> str:
    """
    Return a required identifier as text.

    Non-blank strings pass through unchanged and integers are converted with
    str(). Null, booleans, blank strings and other JSON types are rejected.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    if not isinstance(value, str) or not value.strip():
        raise InvalidInputError(f"Missing {field}")
    return value


def optional_text(value: Any) -> str:
    """Render an optional field as text; null becomes the empty string"""
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)
