# app/services/admin_service.py
"""Operator views over every user's sessions, and headline revenue figures."""

from datetime import datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.parking_session import ParkingSession, SessionStatus
from app.models.transaction import Transaction, TransactionStatus
from app.utils.time_utils import to_zone_local, utcnow

RECENT_SESSIONS = 5


def list_sessions(db: Session, status: Optional[str] = None, limit: int = 100, page: int = 1):
    """All sessions, newest first, optionally narrowed to one status."""
    q = db.query(ParkingSession)
    if status:
        q = q.filter(ParkingSession.status == status.upper())
    limit = max(1, min(limit, 100))
    return (
        q.order_by(ParkingSession.created_at.desc(), ParkingSession.id.desc())
        .offset((max(page, 1) - 1) * limit)
        .limit(limit)
        .all()
    )


def _zone_day_bounds(now: datetime):
    """Naive-UTC [start, end) of the zone-local calendar day containing `now`."""
    local = to_zone_local(now)
    start = datetime.combine(local.date(), time.min, tzinfo=local.tzinfo)
    end = datetime.combine(local.date() + timedelta(days=1), time.min, tzinfo=local.tzinfo)
    return (start.astimezone(timezone.utc).replace(tzinfo=None),
            end.astimezone(timezone.utc).replace(tzinfo=None))


def _money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(Decimal("0.01"))


def get_stats(db: Session, now: Optional[datetime] = None) -> dict:
    """
    Revenue is the net of COMPLETED transactions, so processed refunds count
    against it. "Today" is the zone-local day.
    """
    now = now or utcnow()
    day_start, day_end = _zone_day_bounds(now)

    completed = db.query(func.sum(Transaction.amount)).filter(Transaction.status == TransactionStatus.COMPLETED)
    total_revenue = completed.scalar()
    todays_revenue = completed.filter(Transaction.created_at >= day_start,
                                      Transaction.created_at < day_end).scalar()
    active = db.query(func.count(ParkingSession.id)).filter(
        ParkingSession.status.in_(SessionStatus.NON_TERMINAL)).scalar()
    total = db.query(func.count(ParkingSession.id)).scalar()
    recent = (
        db.query(ParkingSession)
        .order_by(ParkingSession.created_at.desc(), ParkingSession.id.desc())
        .limit(RECENT_SESSIONS)
        .all()
    )
    return {
        "total_revenue": _money(total_revenue),
        "todays_revenue": _money(todays_revenue),
        "active_sessions": active or 0,
        "total_sessions": total or 0,
        "recent_sessions": recent,
    }
