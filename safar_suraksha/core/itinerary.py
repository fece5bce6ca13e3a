import hashlib
from typing import Optional

from safar_suraksha.core.errors import InvalidInputError
from safar_suraksha.models.registration import ItineraryProof

FIELD_DELIMITER = "|"

def _encode_field(value: str) -> str:
    # Length prefix keeps values that contain the delimiter from colliding.
    return f"{len(value)}:{value}"

def derive_proof_value(
    subject_id: str,
    name: str,
    trip_start: Optional[str] = None,
    trip_end: Optional[str] = None
) -> str:
    """
    Derive the SHA-256 proof value of an itinerary as lowercase hex.

    Missing trip dates hash as empty segments.
    """
    if not subject_id:
        raise InvalidInputError("Missing touristId")
    if not name:
        raise InvalidInputError("Missing name")

    canonical = FIELD_DELIMITER.join(
        _encode_field(field)
        for field in (subject_id, name, trip_start or "", trip_end or "")
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

def build_itinerary_proof(
    subject_id: str,
    name: str,
    trip_start: Optional[str] = None,
    trip_end: Optional[str] = None
) -> ItineraryProof:
    return ItineraryProof(
        subject_id=subject_id,
        display_name=name,
        trip_start=trip_start or "",
        trip_end=trip_end or "",
        proof_value=derive_proof_value(subject_id, name, trip_start, trip_end)
    )
