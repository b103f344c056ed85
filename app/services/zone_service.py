# app/services/zone_service.py
"""Read-only zone queries. Zones are maintained by admin tooling (see scripts/setup/seed_zones.py)."""

from typing import Optional
from sqlalchemy import or_
from sqlalchemy.orm import Session
from app.models.parking_zone import ParkingZone
from app.services.exceptions import NotFoundError


def get_zone(db: Session, zone_id: int) -> ParkingZone:
    zone = db.query(ParkingZone).filter(ParkingZone.id == zone_id).first()
    if not zone:
        raise NotFoundError(f"Zone {zone_id} not found")
    return zone


def find_zone_by_number(db: Session, zone_number: str) -> Optional[ParkingZone]:
    """Case-insensitive lookup; zone numbers are stored uppercased."""
    return db.query(ParkingZone).filter(ParkingZone.zone_number == zone_number.strip().upper()).first()


def list_active_zones(db: Session, query: Optional[str] = None):
    q = db.query(ParkingZone).filter(ParkingZone.is_active.is_(True))
    if query:
        pattern = f"%{query.strip()}%"
        q = q.filter(or_(
            ParkingZone.zone_number.ilike(pattern),
            ParkingZone.zone_name.ilike(pattern),
            ParkingZone.address.ilike(pattern),
        ))
    return q.order_by(ParkingZone.zone_number.asc()).all()
