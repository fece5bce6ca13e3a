import logging
from fastapi import APIRouter
from typing import Any

from safar_suraksha.api.deps import RegistrarDep, SettingsDep
from safar_suraksha.core.itinerary import build_itinerary_proof
from safar_suraksha.models.registration import RegistrationRequest
from safar_suraksha.utils.location_utils import optional_text, require_text

logger = logging.getLogger(__name__)
router = APIRouter()

@router.post("/generate-id")
async def generate_digital_id(
    registration_data: RegistrationRequest,
    registrar: RegistrarDep,
    app_settings: SettingsDep
) -> dict[str, Any]:
    """
    Issue a tamper-evident itinerary proof and anchor it on the ledger.

    Ledger problems never fail this endpoint: the record then comes back in
    FALLBACK mode with the proof value and no transaction reference.
    """
    proof = build_itinerary_proof(
        subject_id=require_text(registration_data.touristId, "touristId"),
        name=require_text(registration_data.name, "name"),
        trip_start=optional_text(registration_data.tripStart),
        trip_end=optional_text(registration_data.tripEnd)
    )

    record = await registrar.register(proof)
    logger.info("Issued %s registration for %s", record.mode.value, record.subject_id)

    return record.to_payload(app_settings.LEDGER_EXPLORER_TX_URL)
