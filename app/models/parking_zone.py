"""
Parking zones table.
A zone is a payable location with a location type (drives the hourly rate),
a maximum stay and an optional recurring weekly restriction schedule.
The schedule is stored as JSON and validated into ZoneRestrictions on read.
"""

from sqlalchemy import Column, Integer, String, DateTime, Numeric, Float, Boolean, JSON
from app.database import Base
from app.schemas.zone import ZoneRestrictions


class LocationType:
    STREET = "STREET"
    GARAGE = "GARAGE"
    LOT = "LOT"
    METER = "METER"


class ParkingZone(Base):
    __tablename__ = "parking_zones"

    id = Column(Integer, primary_key=True, autoincrement=True)
    zone_number = Column(String(20), unique=True, nullable=False, index=True)  # uppercased
    zone_name = Column(String(200), nullable=False)
    location_type = Column(String(20), nullable=False, default=LocationType.STREET)
    rate_per_hour = Column(Numeric(10, 2), nullable=False)
    max_duration_hours = Column(Float, nullable=False)
    address = Column(String(300), nullable=False)
    restrictions_json = Column(JSON)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)

    @property
    def restrictions(self) -> ZoneRestrictions:
        """Typed restriction schedule. Raises pydantic.ValidationError on a malformed document."""
        return ZoneRestrictions.model_validate(self.restrictions_json or {})

    def __repr__(self):
        return f"<ParkingZone {self.zone_number} type={self.location_type} active={self.is_active}>"
