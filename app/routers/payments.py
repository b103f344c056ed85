# app/routers/payments.py
"""
Payments — start a charge for a pending session, and receive gateway webhooks.
The webhook is called by the gateway, not a user: it is exempt from the API key
and authenticated by its signature instead.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.orm import Session
from app.database import get_db
from app.dependencies import get_current_user
from app.models.user import User
from app.schemas.transaction import PaymentIntentCreate, PaymentIntentOut
from app.services.payment_events import handle_payment_event
from app.services.payment_gateway import PaymentGateway, get_payment_gateway
from app.services.session_service import start_payment
router = APIRouter()


@router.post("/payments/create-intent", response_model=PaymentIntentOut, summary="Create a payment for a session")
async def create_intent(
    body: PaymentIntentCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    started = await start_payment(db, gateway, body.session_id, user.id)
    return {
        "client_secret": started.client_secret,
        "transaction_id": started.transaction.id,
        "payment_reference": started.transaction.external_reference,
        "amount": started.transaction.amount,
    }


@router.post("/payments/webhook", summary="Gateway webhook receiver")
async def payment_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None),
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """
    Always 200 once the signature checks out, so the gateway does not retry
    events we have chosen to ignore. A bad signature is a 400.
    """
    payload = await request.body()
    event = gateway.construct_event(payload, stripe_signature)
    result = await handle_payment_event(db, event)
    return {"received": True, **result}
