# app/schemas/session.py
from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from app.schemas.transaction import TransactionOut


class SessionCreate(BaseModel):
    vehicle_id: int
    zone_id: int
    duration_hours: float = Field(gt=0)


class SessionConfirm(BaseModel):
    payment_reference: str


class SessionExtend(BaseModel):
    additional_hours: float = Field(gt=0)
    payment_method: Optional[str] = None   # saved gateway payment method for off-session charge


class SessionOut(BaseModel):
    id: int
    user_id: int
    vehicle_id: int
    zone_id: int
    start_time: datetime
    scheduled_end_time: datetime
    end_time: Optional[datetime]
    duration_hours: float
    actual_duration_hours: Optional[float]
    base_cost: Decimal
    tax_amount: Decimal
    processing_fee: Decimal
    total_cost: Decimal
    status: str
    extended_from_session_id: Optional[int]
    created_at: datetime
    transactions: List[TransactionOut] = []

    class Config:
        from_attributes = True


class TerminationSummaryOut(BaseModel):
    original_duration: float
    actual_time_used: float
    chargeable_time: float
    original_cost: Decimal
    final_cost: Decimal
    refund_amount: Decimal
    time_saved: float


class TerminationOut(BaseModel):
    session: SessionOut
    summary: TerminationSummaryOut
    message: str
    refund_error: Optional[str] = None


class AdminStatsOut(BaseModel):
    total_revenue: Decimal
    todays_revenue: Decimal
    active_sessions: int     # PENDING, ACTIVE or EXTENDED
    total_sessions: int
    recent_sessions: List[SessionOut]
