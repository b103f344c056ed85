# app/services/vehicle_service.py
"""
Vehicle lookup and management helpers.
Used by session_service (ownership checks) and the vehicles router.
"""

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from app.models.vehicle import Vehicle
from app.models.parking_session import ParkingSession, SessionStatus
from app.services.exceptions import ConflictError, NotFoundError
from app.utils.time_utils import utcnow
from app.utils.logger import get_logger

logger = get_logger(__name__)


def lookup_vehicle_for_owner(db: Session, vehicle_id: int, user_id: int):
    """Find a vehicle by id that belongs to user_id. Returns None if absent or owned by someone else."""
    return db.query(Vehicle).filter(Vehicle.id == vehicle_id, Vehicle.user_id == user_id).first()


def lookup_vehicle_by_plate(db: Session, license_plate: str, state: str):
    return db.query(Vehicle).filter(
        Vehicle.license_plate == license_plate.strip().upper(),
        Vehicle.state == state.strip().upper(),
    ).first()


def list_user_vehicles(db: Session, user_id: int):
    return db.query(Vehicle).filter(Vehicle.user_id == user_id).order_by(Vehicle.created_at.desc()).all()


def register_vehicle(db: Session, user_id: int, license_plate: str, state: str, nickname: str = None) -> Vehicle:
    if lookup_vehicle_by_plate(db, license_plate, state):
        raise ConflictError("Vehicle with this license plate and state already exists")
    vehicle = Vehicle(
        user_id=user_id,
        license_plate=license_plate.strip().upper(),
        state=state.strip().upper(),
        nickname=(nickname or "").strip() or None,
        created_at=utcnow(),
    )
    db.add(vehicle)
    db.commit()
    db.refresh(vehicle)
    logger.info(f"[VEHICLE] Registered {vehicle.license_plate}/{vehicle.state} for user {user_id}")
    return vehicle


def remove_vehicle(db: Session, vehicle_id: int, user_id: int) -> None:
    vehicle = lookup_vehicle_for_owner(db, vehicle_id, user_id)
    if not vehicle:
        raise NotFoundError("Vehicle not found")
    open_session = db.query(ParkingSession).filter(
        ParkingSession.vehicle_id == vehicle_id,
        ParkingSession.status.in_(SessionStatus.NON_TERMINAL),
    ).first()
    if open_session:
        raise ConflictError("Vehicle has an open parking session")
    # finished sessions keep pointing at the vehicle
    if db.query(ParkingSession.id).filter(ParkingSession.vehicle_id == vehicle_id).first():
        raise ConflictError("Vehicle has parking history and cannot be removed")
    db.delete(vehicle)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Vehicle is still referenced and cannot be removed")
    logger.info(f"[VEHICLE] Removed {vehicle.license_plate}/{vehicle.state} for user {user_id}")
