import json
import logging
import math
from pathlib import Path
from typing import Any, Iterable, Iterator, List, Sequence

from safar_suraksha.core.errors import InvalidInputError, ZoneConfigurationError
from safar_suraksha.models.zone import GeoPoint, Zone, ZoneMatch

logger = logging.getLogger(__name__)

EARTH_RADIUS_M = 6371000.0

def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate distance between two points using Haversine formula
    Returns distance in meters
    """
    lat1, lon1, lat2, lon2 = map(math.radians, [lat1, lon1, lat2, lon2])
    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = math.sin(dlat/2)**2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon/2)**2
    c = 2 * math.asin(min(1.0, math.sqrt(a)))

    return EARTH_RADIUS_M * c

def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )

class ZoneRegistry:
    """
    Read-only catalog of restricted zones.

    Built once at startup from operator-authored data. Entries that fail
    validation are logged and left out; they never fault a request.
    """

    def __init__(self, zones: Iterable[Zone] = ()):
        self._zones: tuple[Zone, ...] = tuple(zones)

    @staticmethod
    def validate(candidate: Any) -> bool:
        """A zone is usable iff it has an id, a name, a numeric center and a positive radius"""
        if not isinstance(candidate, dict):
            return False

        zone_id = candidate.get("id")
        name = candidate.get("name")
        if not isinstance(zone_id, str) or not zone_id:
            return False
        if not isinstance(name, str) or not name:
            return False

        center = candidate.get("center")
        if not isinstance(center, dict):
            return False

        latitude = center.get("latitude")
        longitude = center.get("longitude")
        if not _is_number(latitude) or not _is_number(longitude):
            return False
        if not (-90 <= latitude <= 90) or not (-180 <= longitude <= 180):
            return False

        radius = candidate.get("radius")
        return _is_number(radius) and radius > 0

    @classmethod
    def from_entries(cls, entries: Iterable[Any]) -> "ZoneRegistry":
        zones: List[Zone] = []
        seen_ids: set[str] = set()

        for index, entry in enumerate(entries):
            if not cls.validate(entry):
                logger.warning("Skipping invalid geofence at index %d: %r", index, entry)
                continue

            if entry["id"] in seen_ids:
                logger.warning("Skipping duplicate geofence id %r at index %d", entry["id"], index)
                continue

            seen_ids.add(entry["id"])
            zones.append(Zone(
                id=entry["id"],
                name=entry["name"],
                center=GeoPoint(
                    latitude=entry["center"]["latitude"],
                    longitude=entry["center"]["longitude"]
                ),
                radius=entry["radius"]
            ))

        logger.info("Loaded %d geofence(s)", len(zones))
        return cls(zones)

    @classmethod
    def load(cls, path: Path) -> "ZoneRegistry":
        """Load the zone catalog from a JSON file holding a list of zones"""
        try:
            with open(path, encoding="utf-8") as f:
                entries = json.load(f)
        except (OSError, ValueError) as e:
            raise ZoneConfigurationError(f"Cannot read zone file {path}: {e}") from e

        if not isinstance(entries, list):
            raise ZoneConfigurationError(f"Zone file {path} must contain a JSON list")

        return cls.from_entries(entries)

    @property
    def zones(self) -> Sequence[Zone]:
        return self._zones

    def __iter__(self) -> Iterator[Zone]:
        return iter(self._zones)

    def __len__(self) -> int:
        return len(self._zones)

def evaluate_containment(
    latitude: float,
    longitude: float,
    zones: Iterable[Zone]
) -> List[ZoneMatch]:
    """
    Return every zone containing the point, in registry order.

    Each zone is tested on its own; overlapping zones all match and the
    boundary counts as inside.
    """
    if not _is_number(latitude) or not _is_number(longitude):
        raise InvalidInputError("Coordinates must be finite numbers")

    matches: List[ZoneMatch] = []
    for zone in zones:
        distance = calculate_distance(
            latitude, longitude,
            zone.center.latitude, zone.center.longitude
        )

        if distance <= zone.radius:
            matches.append(ZoneMatch(
                zone_id=zone.id,
                zone_name=zone.name,
                message=f"Entered {zone.name}"
            ))

    return matches
