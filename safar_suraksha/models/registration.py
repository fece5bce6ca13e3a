from sqlmodel import SQLModel
from enum import Enum
from typing import Any, Optional
import json

class RegistrationRequest(SQLModel):
    touristId: Optional[Any] = None
    name: Optional[Any] = None
    # Dates are hashed as text; numbers are accepted and rendered with str()
    tripStart: Optional[Any] = None
    tripEnd: Optional[Any] = None

class RegistrationMode(str, Enum):
    ONCHAIN = "ONCHAIN"
    FALLBACK = "FALLBACK"

class ItineraryProof(SQLModel):
    subject_id: str
    display_name: str
    trip_start: str = ""
    trip_end: str = ""
    proof_value: str

class RegistrationRecord(ItineraryProof):
    transaction_ref: Optional[str] = None
    mode: RegistrationMode = RegistrationMode.FALLBACK

    @classmethod
    def from_proof(
        cls,
        proof: ItineraryProof,
        transaction_ref: Optional[str] = None
    ) -> "RegistrationRecord":
        mode = RegistrationMode.ONCHAIN if transaction_ref else RegistrationMode.FALLBACK
        return cls(
            **proof.model_dump(),
            transaction_ref=transaction_ref,
            mode=mode
        )

    def to_payload(self, explorer_url_template: Optional[str] = None) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "touristId": self.subject_id,
            "name": self.display_name,
            "tripStart": self.trip_start,
            "tripEnd": self.trip_end,
            "proofValue": self.proof_value,
            "transactionRef": self.transaction_ref,
            "mode": self.mode.value,
        }
        if self.transaction_ref and explorer_url_template:
            payload["explorerUrl"] = explorer_url_template.format(
                tx_hash=self.transaction_ref
            )
        payload["qrPayload"] = json.dumps(payload, sort_keys=True)
        return payload
