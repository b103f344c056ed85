# app/services/session_service.py
"""
Parking session lifecycle.

  PENDING ──confirm──▶ ACTIVE ──extend──▶ EXTENDED
     │                   │                   │
     │                   ├──terminate────────┴──▶ COMPLETED
     │                   └──sweep (elapsed)──────▶ EXPIRED
     └──payment failed / stale──▶ CANCELLED

Every transition is a conditional UPDATE on (id, status) so concurrent
requests cannot both win. A partial unique index keeps one open session per
vehicle. Extension charges before changing anything: a failed charge leaves
the session untouched. Termination is the opposite: the session completes even
when the refund fails, and the failure comes back as a warning.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import settings
from app.models.parking_session import ParkingSession, SessionStatus
from app.models.parking_zone import ParkingZone
from app.models.transaction import Transaction, TransactionStatus, TransactionType
from app.services.exceptions import (
    ConflictError, LimitExceeded, NotFoundError, PaymentError, RefundError,
    RestrictionError, ValidationError,
)
from app.services.payment_gateway import ChargeResult, PaymentGateway
from app.services.pricing import CostBreakdown, calculate_cost, calculate_refund, effective_rate, to_decimal
from app.services.restrictions import check_restrictions
from app.services.vehicle_service import lookup_vehicle_for_owner
from app.utils.formatting import format_currency
from app.utils.time_utils import add_hours, hours_between, to_zone_local, utcnow
from app.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class PaymentStart:
    session: ParkingSession
    transaction: Transaction
    client_secret: Optional[str]


@dataclass
class ExtensionResult:
    session: ParkingSession
    additional_hours: Decimal
    cost: CostBreakdown
    new_end_time: datetime


@dataclass
class TerminationResult:
    session: ParkingSession
    summary: dict = field(default_factory=dict)
    message: str = ""
    refund_error: Optional[str] = None


# ── Repository helpers ───────────────────────────────────────────────────────

def _transition(db: Session, session_id: int, expected: Union[str, Iterable[str]], values: dict) -> bool:
    """Compare-and-swap on status. Returns False when the row is no longer in an expected state."""
    expected = (expected,) if isinstance(expected, str) else tuple(expected)
    values = {"updated_at": utcnow(), **values}
    updated = (
        db.query(ParkingSession)
        .filter(ParkingSession.id == session_id, ParkingSession.status.in_(expected))
        .update(values, synchronize_session=False)
    )
    return updated == 1


def _owned_session(db: Session, session_id: int, user_id: Optional[int]) -> ParkingSession:
    session = db.query(ParkingSession).filter(ParkingSession.id == session_id).first()
    if not session or (user_id is not None and session.user_id != user_id):
        raise NotFoundError("Session not found")
    return session


def _stale_cutoff(now: datetime) -> datetime:
    return now - timedelta(minutes=settings.PENDING_GRACE_MINUTES)


def get_session(db: Session, session_id: int, user_id: int) -> ParkingSession:
    return _owned_session(db, session_id, user_id)


def list_user_sessions(db: Session, user_id: int, status: Optional[str] = None,
                       zone_id: Optional[int] = None, limit: int = 50, page: int = 1):
    q = db.query(ParkingSession).filter(ParkingSession.user_id == user_id)
    if status:
        q = q.filter(ParkingSession.status == status.upper())
    if zone_id:
        q = q.filter(ParkingSession.zone_id == zone_id)
    limit = max(1, min(limit, 100))
    return (
        q.order_by(ParkingSession.created_at.desc())
        .offset((max(page, 1) - 1) * limit)
        .limit(limit)
        .all()
    )


# ── Create ───────────────────────────────────────────────────────────────────

async def create_session(db: Session, user_id: int, vehicle_id: int, zone_id: int,
                         duration_hours, now: Optional[datetime] = None) -> ParkingSession:
    """Validate, check restrictions, price and persist a new PENDING session."""
    now = now or utcnow()
    hours = to_decimal(duration_hours, "duration_hours")
    if hours <= 0:
        raise ValidationError("Duration must be greater than 0")

    vehicle = lookup_vehicle_for_owner(db, vehicle_id, user_id)
    if not vehicle:
        raise NotFoundError("Vehicle not found")

    zone = db.query(ParkingZone).filter(ParkingZone.id == zone_id).first()
    if not zone or not zone.is_active:
        raise NotFoundError("Invalid or inactive parking zone")

    max_hours = to_decimal(zone.max_duration_hours, "max_duration_hours")
    if hours > max_hours:
        raise LimitExceeded(f"Maximum duration for this zone is {zone.max_duration_hours} hours",
                            max_additional_hours=float(max_hours))

    existing = (
        db.query(ParkingSession)
        .filter(ParkingSession.vehicle_id == vehicle_id,
                ParkingSession.status.in_(SessionStatus.NON_TERMINAL))
        .order_by(ParkingSession.created_at.desc())
        .first()
    )
    if existing:
        if existing.status in SessionStatus.RUNNING:
            raise ConflictError("This vehicle already has an active parking session. "
                                "Please end the current session before starting a new one.")
        if existing.created_at > _stale_cutoff(now):
            raise ConflictError("This vehicle has a pending payment. "
                                "Please complete or cancel the current session before starting a new one.")
        if not _transition(db, existing.id, SessionStatus.PENDING, {"status": SessionStatus.CANCELLED}):
            db.rollback()
            raise ConflictError("This vehicle's previous session changed state; please retry")
        db.commit()
        logger.info(f"[SESSION] Cancelled stale pending session {existing.id} for vehicle {vehicle_id}")

    check = check_restrictions(zone, to_zone_local(now), hours)
    if not check.can_park:
        descriptions = "; ".join(r.description for r in check.restrictions)
        logger.info(f"[SESSION] Zone {zone.zone_number} restricted for vehicle {vehicle_id}: {descriptions}")
        raise RestrictionError(f"Cannot park due to restrictions: {descriptions}",
                               restrictions=[asdict(r) for r in check.restrictions])
    for warning in check.warnings:
        logger.info(f"[SESSION] Zone {zone.zone_number} warning: {warning.message}")

    cost = calculate_cost(effective_rate(zone), hours)
    session = ParkingSession(
        user_id=user_id,
        vehicle_id=vehicle_id,
        zone_id=zone_id,
        start_time=now,
        scheduled_end_time=add_hours(now, hours),
        duration_hours=float(hours),
        base_cost=cost.base_cost,
        tax_amount=cost.tax_amount,
        processing_fee=cost.processing_fee,
        total_cost=cost.total_cost,
        status=SessionStatus.PENDING,
        created_at=now,
        updated_at=now,
    )
    db.add(session)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("This vehicle already has an open parking session")
    db.refresh(session)

    logger.info(f"[SESSION] Created {session.id} vehicle={vehicle_id} zone={zone.zone_number} "
                f"hours={hours} total={cost.total_cost}")
    return session


async def cancel_stale_pending_sessions(db: Session, now: Optional[datetime] = None) -> int:
    """Cancel every PENDING session older than the grace period. Idempotent."""
    now = now or utcnow()
    cancelled = (
        db.query(ParkingSession)
        .filter(ParkingSession.status == SessionStatus.PENDING,
                ParkingSession.created_at <= _stale_cutoff(now))
        .update({"status": SessionStatus.CANCELLED, "updated_at": now}, synchronize_session=False)
    )
    db.commit()
    if cancelled:
        logger.info(f"[SESSION] Reaped {cancelled} stale pending session(s)")
    return cancelled


# ── Payment ──────────────────────────────────────────────────────────────────

async def start_payment(db: Session, gateway: PaymentGateway, session_id: int, user_id: int) -> PaymentStart:
    """Create the gateway charge for a PENDING session and record it as a PENDING transaction."""
    session = _owned_session(db, session_id, user_id)
    if session.status != SessionStatus.PENDING:
        raise ConflictError("Session is not available for payment")

    charge = await gateway.create_charge(session.total_cost, metadata={
        "sessionId": session.id,
        "userId": user_id,
        "vehicleLicense": session.vehicle.license_plate,
        "zoneNumber": session.zone.zone_number,
    })
    now = utcnow()
    transaction = Transaction(
        user_id=user_id,
        session_id=session.id,
        amount=session.total_cost,
        transaction_type=TransactionType.CHARGE,
        status=TransactionStatus.PENDING,
        external_reference=charge.id,
        created_at=now,
        updated_at=now,
    )
    db.add(transaction)
    db.commit()
    db.refresh(transaction)
    return PaymentStart(session=session, transaction=transaction, client_secret=charge.client_secret)


async def confirm_payment(db: Session, session_id: int, external_reference: str,
                          user_id: Optional[int] = None, now: Optional[datetime] = None) -> ParkingSession:
    """
    PENDING → ACTIVE once the charge has gone through.
    The clock starts now, not at creation, so the driver gets the full paid duration.
    """
    now = now or utcnow()
    if not external_reference:
        raise ValidationError("Payment reference is required")

    session = _owned_session(db, session_id, user_id)
    if session.status != SessionStatus.PENDING:
        raise ConflictError("Session is not awaiting payment")

    activated = _transition(db, session.id, SessionStatus.PENDING, {
        "status": SessionStatus.ACTIVE,
        "start_time": now,
        "scheduled_end_time": add_hours(now, session.duration_hours),
    })
    if not activated:
        db.rollback()
        raise ConflictError("Payment for this session was already processed")

    transaction = db.query(Transaction).filter(
        Transaction.session_id == session.id,
        Transaction.external_reference == external_reference,
    ).first()
    if transaction:
        transaction.status = TransactionStatus.COMPLETED
        transaction.updated_at = now
    else:
        db.add(Transaction(
            user_id=session.user_id,
            session_id=session.id,
            amount=session.total_cost,
            transaction_type=TransactionType.CHARGE,
            status=TransactionStatus.COMPLETED,
            external_reference=external_reference,
            created_at=now,
            updated_at=now,
        ))
    db.commit()
    db.refresh(session)

    logger.info(f"[SESSION] Activated {session.id} until {session.scheduled_end_time:%Y-%m-%d %H:%M} "
                f"(payment {external_reference})")
    return session


# ── Extend ───────────────────────────────────────────────────────────────────

async def extend_session(db: Session, gateway: PaymentGateway, session_id: int, user_id: int,
                         additional_hours, now: Optional[datetime] = None,
                         payment_method: Optional[str] = None) -> ExtensionResult:
    """
    Add `additional_hours` to an ACTIVE session, extending from the scheduled
    end so unused time is kept. Charged first; nothing changes if the charge fails.
    """
    now = now or utcnow()
    hours = to_decimal(additional_hours, "additional_hours")
    if hours <= 0:
        raise ValidationError("Additional hours must be greater than 0")

    session = _owned_session(db, session_id, user_id)
    if session.status != SessionStatus.ACTIVE:
        raise ConflictError("Only active sessions can be extended")
    if now >= session.scheduled_end_time:
        raise ConflictError("Cannot extend session - please start a new parking session")

    zone = session.zone
    current = to_decimal(session.duration_hours, "duration_hours")
    max_hours = to_decimal(zone.max_duration_hours, "max_duration_hours")
    if current + hours > max_hours:
        remaining = max(Decimal("0"), max_hours - current)
        raise LimitExceeded(f"Total duration would exceed zone maximum of {zone.max_duration_hours} hours",
                            max_additional_hours=float(remaining))

    cost = calculate_cost(effective_rate(zone), hours)
    charge = await gateway.create_charge(cost.total_cost, metadata={
        "type": "session_extension",
        "sessionId": session.id,
        "additionalHours": str(hours),
    }, confirm=True, payment_method=payment_method)
    if not charge.succeeded:
        logger.warning(f"[SESSION] Extension charge {charge.id} for {session.id} ended as {charge.status}")
        raise PaymentError(f"Payment for the extension was not completed (status: {charge.status})")

    new_end = add_hours(session.scheduled_end_time, hours)
    extended = _transition(db, session.id, SessionStatus.ACTIVE, {
        "status": SessionStatus.EXTENDED,
        "duration_hours": float(current + hours),
        "scheduled_end_time": new_end,
        "base_cost": session.base_cost + cost.base_cost,
        "tax_amount": session.tax_amount + cost.tax_amount,
        "processing_fee": session.processing_fee + cost.processing_fee,
        "total_cost": session.total_cost + cost.total_cost,
    })
    if not extended:
        db.rollback()
        await _reverse_charge(gateway, charge, session.id)
        raise ConflictError("Session changed while the extension was being paid for")

    db.add(Transaction(
        user_id=session.user_id,
        session_id=session.id,
        amount=cost.total_cost,
        transaction_type=TransactionType.EXTENSION,
        status=TransactionStatus.COMPLETED,
        external_reference=charge.id,
        created_at=now,
        updated_at=now,
    ))
    db.commit()
    db.refresh(session)

    logger.info(f"[SESSION] Extended {session.id} by {hours}h until {new_end:%Y-%m-%d %H:%M} "
                f"(+{cost.total_cost})")
    return ExtensionResult(session=session, additional_hours=hours, cost=cost, new_end_time=new_end)


async def _reverse_charge(gateway: PaymentGateway, charge: ChargeResult, session_id: int) -> None:
    try:
        await gateway.create_refund(charge.id, charge.amount, metadata={
            "type": "extension_reversal", "sessionId": session_id,
        })
    except RefundError as e:
        logger.error(f"[REFUND] Could not reverse extension charge {charge.id} for session {session_id}: {e.detail}")


# ── Terminate ────────────────────────────────────────────────────────────────

def _refundable_charges(session: ParkingSession) -> list:
    """(reference, amount) of every completed payment, the original charge first, then extensions in order."""
    charges = [
        t for t in session.transactions
        if t.status == TransactionStatus.COMPLETED and t.external_reference and t.amount > 0
        and t.transaction_type in (TransactionType.CHARGE, TransactionType.EXTENSION)
    ]
    charges.sort(key=lambda t: (t.transaction_type != TransactionType.CHARGE, t.id))
    return [(t.external_reference, to_decimal(t.amount, "amount")) for t in charges]


async def terminate_session(db: Session, gateway: PaymentGateway, session_id: int, user_id: int,
                            now: Optional[datetime] = None) -> TerminationResult:
    """
    End an ACTIVE/EXTENDED session early and refund unused base + tax.

    The refund is split across the payments that funded the session, each
    gateway refund capped at what that payment charged, one REFUND
    transaction per gateway refund. It is best-effort: a failure is
    reported, never blocks completion.
    """
    now = now or utcnow()
    session = _owned_session(db, session_id, user_id)
    if session.status not in SessionStatus.RUNNING:
        raise ConflictError("Only active sessions can be terminated early")
    if now >= session.scheduled_end_time:
        raise ConflictError("Session has already expired")

    time_used = max(0.0, hours_between(session.start_time, now))
    refund = calculate_refund(effective_rate(session.zone), session.base_cost, session.tax_amount, time_used)
    original_duration = session.duration_hours
    original_cost = session.total_cost
    charges = _refundable_charges(session)

    completed = _transition(db, session.id, SessionStatus.RUNNING, {
        "status": SessionStatus.COMPLETED,
        "end_time": now,
        "actual_duration_hours": time_used,
    })
    if not completed:
        db.rollback()
        raise ConflictError("Session changed while it was being terminated")
    db.commit()

    refunded = Decimal("0")
    refund_error = None
    remaining = refund.refund_amount
    for reference, charged in charges:
        if remaining <= 0:
            break
        part = min(remaining, charged)
        try:
            result = await gateway.create_refund(reference, part, metadata={
                "type": "early_termination",
                "sessionId": session.id,
                "timeUsedHours": f"{time_used:.4f}",
            })
        except RefundError as e:
            refund_error = e.detail
            logger.warning(f"[REFUND] Session {session.id} terminated but refund of "
                           f"{part} against {reference} failed: {e.detail}")
            break
        refunded += part
        remaining -= part
        db.add(Transaction(
            user_id=session.user_id,
            session_id=session.id,
            amount=-part,
            transaction_type=TransactionType.REFUND,
            status=TransactionStatus.COMPLETED,
            external_reference=result.id,
            created_at=now,
            updated_at=now,
        ))
        db.commit()

    if remaining > 0 and refund_error is None:
        refund_error = ("No completed charge found to refund against" if not charges
                        else "Refund exceeds the amount charged")
        logger.warning(f"[REFUND] Session {session.id}: {refund_error} ({remaining} owed)")

    db.refresh(session)
    summary = {
        "original_duration": original_duration,
        "actual_time_used": round(time_used, 2),
        "chargeable_time": float(refund.chargeable_hours),
        "original_cost": original_cost,
        "final_cost": original_cost - refunded,
        "refund_amount": refund.refund_amount,
        "time_saved": round(max(0.0, original_duration - time_used), 2),
    }
    if refund_error and refunded > 0:
        message = (f"Session terminated. Refund of {format_currency(refunded)} will be processed; "
                   f"the remaining {format_currency(remaining)} will be reviewed.")
    elif refund_error:
        message = (f"Session terminated. Refund of {format_currency(refund.refund_amount)} "
                   f"could not be processed automatically and will be reviewed.")
    elif refunded > 0:
        message = f"Session terminated. Refund of {format_currency(refunded)} will be processed."
    else:
        message = "Session terminated successfully."

    logger.info(f"[SESSION] Terminated {session.id} after {time_used:.2f}h refund={refunded}")
    return TerminationResult(session=session, summary=summary, message=message, refund_error=refund_error)


# ── Expiry ───────────────────────────────────────────────────────────────────

async def expire_overdue_sessions(db: Session, now: Optional[datetime] = None) -> int:
    """
    Mark every running session whose scheduled end has passed as EXPIRED.
    One conditional bulk UPDATE, so it is idempotent and safe next to user transitions.
    """
    now = now or utcnow()
    expired = (
        db.query(ParkingSession)
        .filter(ParkingSession.status.in_(SessionStatus.RUNNING),
                ParkingSession.scheduled_end_time < now)
        .update({"status": SessionStatus.EXPIRED, "end_time": now, "updated_at": now},
                synchronize_session=False)
    )
    db.commit()
    if expired:
        logger.info(f"[EXPIRY] Marked {expired} session(s) expired")
    return expired
