# app/routers/admin.py
"""Operator endpoints: session overview, revenue stats, and the maintenance sweeps a cron job calls."""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.database import get_db
from app.dependencies import require_role
from app.models.user import User, UserRole
from app.schemas.session import AdminStatsOut, SessionOut
from app.services import admin_service
from app.services.session_service import cancel_stale_pending_sessions, expire_overdue_sessions

router = APIRouter()


@router.get("/admin/sessions", response_model=list[SessionOut], summary="List every user's sessions")
def list_sessions(
    status: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=100),
    page: int = Query(1, ge=1),
    user: User = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db),
):
    return admin_service.list_sessions(db, status=status, limit=limit, page=page)


@router.get("/admin/stats", response_model=AdminStatsOut, summary="Revenue and session counts")
def read_stats(user: User = Depends(require_role(UserRole.ADMIN)), db: Session = Depends(get_db)):
    return admin_service.get_stats(db)


@router.post("/admin/sessions/expire", summary="Expire sessions past their scheduled end")
async def expire_sessions(user: User = Depends(require_role(UserRole.ADMIN)), db: Session = Depends(get_db)):
    return {"expired": await expire_overdue_sessions(db)}


@router.post("/admin/sessions/reap-pending", summary="Cancel unpaid sessions past the grace period")
async def reap_pending(user: User = Depends(require_role(UserRole.ADMIN)), db: Session = Depends(get_db)):
    return {"cancelled": await cancel_stale_pending_sessions(db)}
