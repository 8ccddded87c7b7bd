from __future__ import annotations

from typing import Any, Optional

from ..core.exceptions import ValidationError


def require_coordinate(value: Any, field_name: str, *, limit: float) -> float:
    if value is None or value == "" or isinstance(value, bool):
        raise ValidationError("Location coordinates are required")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if not -limit <= number <= limit:
        raise ValidationError(f"{field_name} must be between -{limit:g} and {limit:g}")
    return number


def require_coordinates(latitude: Any, longitude: Any) -> tuple[float, float]:
    return (
        require_coordinate(latitude, "Latitude", limit=90),
        require_coordinate(longitude, "Longitude", limit=180),
    )


def optional_coordinates(latitude: Any, longitude: Any) -> Optional[tuple[float, float]]:
    """Both omitted means the caller skipped the location; one alone is malformed."""
    if latitude in (None, "") and longitude in (None, ""):
        return None
    return require_coordinates(latitude, longitude)
