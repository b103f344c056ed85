# app/services/enforcement_service.py
"""
Enforcement queries: is this plate paid up in this zone, which sessions are
running, which have run out. Read-only; expiry itself is the sweep in session_service.
"""

from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy.orm import Session
from app.config import settings
from app.models.parking_session import ParkingSession, SessionStatus
from app.models.vehicle import Vehicle
from app.services.zone_service import find_zone_by_number
from app.utils.time_utils import minutes_until, utcnow

MAX_PAGE = 100


def _zone_info(session: ParkingSession) -> dict:
    return {
        "zone_number": session.zone.zone_number,
        "zone_name": session.zone.zone_name,
        "address": session.zone.address,
    }


def _user_info(session: ParkingSession) -> dict:
    return {
        "name": session.user.name if session.user else "Unknown",
        "phone": session.user.phone if session.user else None,
    }


def validate_session(db: Session, license_plate: str, state: str, zone_number: str,
                     now: Optional[datetime] = None) -> dict:
    """Is the vehicle covered by a paid, unexpired session in this zone right now?"""
    now = now or utcnow()
    zone = find_zone_by_number(db, zone_number)
    if not zone:
        return {"valid_session": False, "error": "Zone not found"}

    session = (
        db.query(ParkingSession)
        .join(Vehicle, ParkingSession.vehicle_id == Vehicle.id)
        .filter(
            Vehicle.license_plate == license_plate.strip().upper(),
            Vehicle.state == state.strip().upper(),
            ParkingSession.zone_id == zone.id,
            ParkingSession.status.in_(SessionStatus.NON_TERMINAL),
        )
        .order_by(ParkingSession.start_time.desc())
        .first()
    )
    if not session:
        return {"valid_session": False, "message": "No active parking session found"}

    return {
        "valid_session": session.status in SessionStatus.RUNNING and session.scheduled_end_time > now,
        "session": {
            "session_id": session.id,
            "status": session.status,
            "start_time": session.start_time,
            "scheduled_end_time": session.scheduled_end_time,
            "time_remaining_minutes": minutes_until(session.scheduled_end_time, now),
            "paid_amount": session.total_cost,
        },
        "user": {**_user_info(session), "email": session.user.email if session.user else None},
    }


def list_active_sessions(db: Session, zone_id: Optional[int] = None, license_plate: Optional[str] = None,
                         limit: int = 50, offset: int = 0, now: Optional[datetime] = None) -> dict:
    now = now or utcnow()
    q = db.query(ParkingSession).filter(ParkingSession.status.in_(SessionStatus.NON_TERMINAL))
    if zone_id:
        q = q.filter(ParkingSession.zone_id == zone_id)
    if license_plate:
        q = q.join(Vehicle, ParkingSession.vehicle_id == Vehicle.id).filter(
            Vehicle.license_plate.ilike(f"%{license_plate.strip()}%"))

    total = q.count()
    sessions = q.order_by(ParkingSession.start_time.desc()).offset(max(offset, 0)).limit(min(limit, MAX_PAGE)).all()
    return {
        "data": [
            {
                "session_id": s.id,
                "license_plate": s.vehicle.license_plate,
                "state": s.vehicle.state,
                "zone": _zone_info(s),
                "start_time": s.start_time,
                "scheduled_end_time": s.scheduled_end_time,
                "status": s.status,
                "time_remaining_minutes": minutes_until(s.scheduled_end_time, now),
                "cost_paid": s.total_cost,
                "user": _user_info(s),
            }
            for s in sessions
        ],
        "pagination": {"total": total, "limit": limit, "offset": offset},
    }


def list_expired_sessions(db: Session, zone_id: Optional[int] = None, expired_since_minutes: int = 0,
                          limit: int = 50, now: Optional[datetime] = None) -> dict:
    """
    Running sessions past their end (not yet swept) plus swept EXPIRED ones.
    violation_eligible once the enforcement grace period has passed.
    """
    now = now or utcnow()
    cutoff = now - timedelta(minutes=expired_since_minutes)
    q = db.query(ParkingSession).filter(
        (ParkingSession.status.in_(SessionStatus.RUNNING) & (ParkingSession.scheduled_end_time < cutoff))
        | (ParkingSession.status == SessionStatus.EXPIRED)
    )
    if zone_id:
        q = q.filter(ParkingSession.zone_id == zone_id)

    sessions = q.order_by(ParkingSession.scheduled_end_time.asc()).limit(min(limit, MAX_PAGE)).all()
    data = []
    for s in sessions:
        minutes_expired = max(0, int((now - s.scheduled_end_time).total_seconds() // 60))
        data.append({
            "session_id": s.id,
            "license_plate": s.vehicle.license_plate,
            "state": s.vehicle.state,
            "zone": _zone_info(s),
            "scheduled_end_time": s.scheduled_end_time,
            "expired_at": s.end_time if s.status == SessionStatus.EXPIRED and s.end_time else s.scheduled_end_time,
            "minutes_expired": minutes_expired,
            "violation_eligible": minutes_expired >= settings.ENFORCEMENT_GRACE_MINUTES,
            "user": _user_info(s),
        })
    return {"data": data, "count": len(data)}
