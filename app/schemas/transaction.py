# app/schemas/transaction.py
from pydantic import BaseModel
from datetime import datetime
from decimal import Decimal
from typing import Optional


class TransactionOut(BaseModel):
    id: int
    session_id: int
    amount: Decimal
    transaction_type: str
    status: str
    external_reference: Optional[str]
    failure_reason: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class PaymentIntentCreate(BaseModel):
    session_id: int


class PaymentIntentOut(BaseModel):
    client_secret: Optional[str]
    transaction_id: int
    payment_reference: str
    amount: Decimal
