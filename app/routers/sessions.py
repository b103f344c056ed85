# app/routers/sessions.py
"""Parking sessions — create, pay, extend, terminate."""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.database import get_db
from app.dependencies import get_current_user
from app.models.user import User
from app.schemas.session import SessionCreate, SessionConfirm, SessionExtend, SessionOut, TerminationOut
from app.services import session_service
from app.services.payment_gateway import PaymentGateway, get_payment_gateway
from app.services.pricing import effective_rate
from app.services.restrictions import check_restrictions
from app.utils.formatting import format_currency, format_duration
from app.utils.time_utils import to_zone_local

router = APIRouter()


@router.get("/sessions", response_model=list[SessionOut], summary="List my sessions")
def list_sessions(
    status: Optional[str] = Query(None),
    zone_id: Optional[int] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    page: int = Query(1, ge=1),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return session_service.list_user_sessions(db, user.id, status=status, zone_id=zone_id, limit=limit, page=page)


@router.post("/sessions", status_code=201, summary="Start a session (PENDING until paid)")
async def create_session(body: SessionCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    session = await session_service.create_session(db, user.id, body.vehicle_id, body.zone_id, body.duration_hours)
    check = check_restrictions(session.zone, to_zone_local(session.start_time), session.duration_hours)
    return {
        "session": SessionOut.model_validate(session),
        "rate_per_hour": effective_rate(session.zone),
        "formatted_total": format_currency(session.total_cost),
        "warnings": [w.message for w in check.warnings],
    }


@router.get("/sessions/{session_id}", response_model=SessionOut, summary="Get a session")
def read_session(session_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return session_service.get_session(db, session_id, user.id)


@router.post("/sessions/{session_id}/confirm", response_model=SessionOut, summary="Activate after payment")
async def confirm_session(session_id: int, body: SessionConfirm,
                          user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return await session_service.confirm_payment(db, session_id, body.payment_reference, user_id=user.id)


@router.post("/sessions/{session_id}/extend", summary="Add time to an active session")
async def extend_session(
    session_id: int,
    body: SessionExtend,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    result = await session_service.extend_session(db, gateway, session_id, user.id, body.additional_hours,
                                                  payment_method=body.payment_method)
    return {
        "session": SessionOut.model_validate(result.session),
        "additional_hours": float(result.additional_hours),
        "additional_cost": result.cost.as_dict(),
        "new_end_time": result.new_end_time,
        "message": f"Session extended by {format_duration(result.additional_hours)}",
    }


@router.post("/sessions/{session_id}/terminate", response_model=TerminationOut, summary="End a session early")
async def terminate_session(
    session_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    result = await session_service.terminate_session(db, gateway, session_id, user.id)
    return {
        "session": SessionOut.model_validate(result.session),
        "summary": result.summary,
        "message": result.message,
        "refund_error": result.refund_error,
    }
