# app/services/payment_events.py
"""
Maps payment gateway webhook events onto transactions and sessions.

succeeded         → transaction COMPLETED; a PENDING session is confirmed (→ ACTIVE)
failed / canceled → transaction FAILED with the reason; a PENDING session → CANCELLED

Gateways redeliver events, so every branch is idempotent: a session that is
already active, or a transaction already settled, is left as it is.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Session
from app.models.parking_session import ParkingSession, SessionStatus
from app.models.transaction import Transaction, TransactionStatus
from app.services.exceptions import ConflictError
from app.services.payment_gateway import PaymentEvent
from app.services.session_service import _transition, confirm_payment
from app.utils.time_utils import utcnow
from app.utils.logger import get_logger

logger = get_logger(__name__)


def _session_id(event: PaymentEvent, transaction: Optional[Transaction]) -> Optional[int]:
    raw = event.metadata.get("sessionId")
    if raw is not None and str(raw).isdigit():
        return int(raw)
    return transaction.session_id if transaction else None


async def handle_payment_event(db: Session, event: PaymentEvent, now: Optional[datetime] = None) -> dict:
    now = now or utcnow()
    if event.type is None:
        logger.debug(f"[WEBHOOK] Ignoring event type {event.raw_type}")
        return {"handled": False, "event": event.raw_type}

    transaction = None
    if event.charge_id:
        transaction = db.query(Transaction).filter(Transaction.external_reference == event.charge_id).first()
    session_id = _session_id(event, transaction)
    logger.info(f"[WEBHOOK] {event.type} charge={event.charge_id} session={session_id}")

    if event.type == "succeeded":
        session = db.query(ParkingSession).filter(ParkingSession.id == session_id).first() if session_id else None
        if session and session.status == SessionStatus.PENDING and not event.charge_id:
            logger.warning(f"[WEBHOOK] Succeeded event for session {session.id} has no payment id; not confirming")
        elif session and session.status == SessionStatus.PENDING:
            try:
                await confirm_payment(db, session.id, event.charge_id, now=now)
                return {"handled": True, "session_id": session.id, "status": SessionStatus.ACTIVE}
            except ConflictError:
                logger.info(f"[WEBHOOK] Session {session.id} was confirmed concurrently")
        if transaction and transaction.status == TransactionStatus.PENDING:
            transaction.status = TransactionStatus.COMPLETED
            transaction.updated_at = now
            db.commit()
        return {"handled": True, "session_id": session_id}

    # failed | canceled
    reason = event.failure_reason or ("Payment canceled" if event.type == "canceled" else "Payment failed")
    if transaction and transaction.status == TransactionStatus.PENDING:
        transaction.status = TransactionStatus.FAILED
        transaction.failure_reason = reason
        transaction.updated_at = now
    cancelled = False
    if session_id:
        cancelled = _transition(db, session_id, SessionStatus.PENDING, {"status": SessionStatus.CANCELLED})
    db.commit()
    if cancelled:
        logger.warning(f"[WEBHOOK] Session {session_id} cancelled: {reason}")
    return {"handled": True, "session_id": session_id, "cancelled": cancelled}
