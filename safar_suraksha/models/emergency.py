from sqlmodel import SQLModel, Field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from safar_suraksha.models.zone import GeoPoint

class AlertSeverity(str, Enum):
    HIGH = "HIGH"

class AlertStatus(str, Enum):
    ACTIVE = "ACTIVE"

class PanicAlert(SQLModel):
    id: int
    subject_id: str
    location: GeoPoint
    severity: AlertSeverity = AlertSeverity.HIGH
    status: AlertStatus = AlertStatus.ACTIVE
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "touristId": self.subject_id,
            "location": {
                "latitude": self.location.latitude,
                "longitude": self.location.longitude,
            },
            "severity": self.severity.value,
            "status": self.status.value,
            "createdAt": self.created_at.isoformat(),
        }
