# app/routers/enforcement.py
"""Enforcement — officers check plates against paid sessions."""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.database import get_db
from app.dependencies import require_role
from app.models.user import User, UserRole
from app.schemas.enforcement import ValidateSessionRequest
from app.services import enforcement_service
from app.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()

officer = require_role(UserRole.ENFORCEMENT)


@router.get("/enforcement/active-sessions", summary="Running sessions")
def active_sessions(
    zone_id: Optional[int] = Query(None),
    license_plate: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: User = Depends(officer),
    db: Session = Depends(get_db),
):
    return enforcement_service.list_active_sessions(db, zone_id, license_plate, limit, offset)


@router.get("/enforcement/expired-sessions", summary="Sessions past their paid time")
def expired_sessions(
    zone_id: Optional[int] = Query(None),
    expired_since_minutes: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    user: User = Depends(officer),
    db: Session = Depends(get_db),
):
    return enforcement_service.list_expired_sessions(db, zone_id, expired_since_minutes, limit)


@router.post("/enforcement/validate-session", summary="Is this plate paid up here?")
def validate_session(body: ValidateSessionRequest, user: User = Depends(officer), db: Session = Depends(get_db)):
    result = enforcement_service.validate_session(db, body.license_plate, body.state, body.zone_number)
    logger.info(f"[ENFORCEMENT] Officer {user.id} checked {body.license_plate}/{body.state} "
                f"in {body.zone_number}: {'✅ valid' if result['valid_session'] else '❌ invalid'}")
    return result
