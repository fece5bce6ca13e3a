import logging
from fastapi import APIRouter
from typing import Any

from safar_suraksha.api.deps import BroadcasterDep
from safar_suraksha.core.emergency_alert import create_panic_alert
from safar_suraksha.models.location import LocationReportRequest
from safar_suraksha.utils.location_utils import parse_coordinates, require_text

logger = logging.getLogger(__name__)
router = APIRouter()

@router.post("/panic")
async def trigger_panic_alert(
    panic_data: LocationReportRequest,
    broadcaster: BroadcasterDep
) -> dict[str, Any]:
    latitude, longitude = parse_coordinates(panic_data.latitude, panic_data.longitude)
    subject_id = require_text(panic_data.touristId, "touristId")

    alert = create_panic_alert(subject_id, latitude, longitude)
    logger.warning("PANIC ALERT %s: %s at (%s, %s)", alert.id, subject_id, latitude, longitude)

    # Observer problems are handled inside the broadcaster and never fail the request.
    broadcaster.publish(alert)

    return {
        "status": "success",
        "message": "Panic alert received",
        "data": alert.to_payload()
    }
