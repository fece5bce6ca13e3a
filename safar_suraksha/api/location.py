import logging
from fastapi import APIRouter
from typing import Any

from safar_suraksha.api.deps import ScorerDep, ZoneRegistryDep
from safar_suraksha.core.geofencing import evaluate_containment
from safar_suraksha.models.location import LocationReport, LocationReportRequest
from safar_suraksha.utils.location_utils import parse_coordinates, require_text

logger = logging.getLogger(__name__)
router = APIRouter()

@router.post("/location")
async def update_location(
    location_data: LocationReportRequest,
    zone_registry: ZoneRegistryDep,
    scorer: ScorerDep
) -> dict[str, Any]:
    latitude, longitude = parse_coordinates(location_data.latitude, location_data.longitude)
    report = LocationReport(
        subject_id=require_text(location_data.touristId, "touristId"),
        latitude=latitude,
        longitude=longitude
    )
    logger.info("Location update: %s (%s, %s)", report.subject_id, latitude, longitude)

    matches = evaluate_containment(report.latitude, report.longitude, zone_registry)
    if matches:
        logger.info("Tourist %s inside zone(s): %s",
                    report.subject_id, ", ".join(m.zone_id for m in matches))

    return {
        "touristId": report.subject_id,
        "location": {"latitude": report.latitude, "longitude": report.longitude},
        "alerts": [match.to_payload() for match in matches],
        "safetyScore": scorer.score(matches)
    }

@router.get("/zones")
async def get_restricted_zones(zone_registry: ZoneRegistryDep) -> dict[str, Any]:
    """List the restricted zones currently in effect"""
    return {"zones": [zone.to_payload() for zone in zone_registry]}
