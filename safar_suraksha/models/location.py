from sqlmodel import SQLModel
from typing import Any, Optional

class LocationReportRequest(SQLModel):
    # Coordinates stay untyped here so that malformed values reach the
    # explicit coordinate checks and are answered with a 400.
    touristId: Optional[Any] = None
    latitude: Optional[Any] = None
    longitude: Optional[Any] = None

class LocationReport(SQLModel):
    subject_id: str
    latitude: float
    longitude: float
