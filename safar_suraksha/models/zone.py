from sqlmodel import SQLModel
from typing import Any

class GeoPoint(SQLModel):
    latitude: float
    longitude: float

class Zone(SQLModel):
    id: str
    name: str
    center: GeoPoint
    radius: float  # meters

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "center": {
                "latitude": self.center.latitude,
                "longitude": self.center.longitude,
            },
            "radius": self.radius,
        }

class ZoneMatch(SQLModel):
    zone_id: str
    zone_name: str
    message: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "zoneId": self.zone_id,
            "zoneName": self.zone_name,
            "message": self.message,
        }
