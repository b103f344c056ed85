# app/services/payment_gateway.py
"""
Payment gateway client — Stripe payment intents and refunds through the stripe SDK.

stripe.PaymentIntent.create   → charge (amount in cents)
stripe.Refund.create          → refund against a payment intent
stripe.Webhook.construct_event → verifies the Stripe-Signature header on webhooks

The SDK is synchronous; calls run in the threadpool so the event loop is not blocked.
Without a real STRIPE_SECRET_KEY the gateway runs in demo mode: no network
calls, every charge and refund succeeds with a synthetic id.
"""

import uuid
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

import stripe
from starlette.concurrency import run_in_threadpool

from app.config import settings
from app.services.exceptions import PaymentError, RefundError, ValidationError
from app.utils.json_parser import safe_parse_json, get_nested
from app.utils.logger import get_logger

logger = get_logger(__name__)

# Stripe event type → outcome the lifecycle understands
EVENT_OUTCOMES = {
    "payment_intent.succeeded": "succeeded",
    "payment_intent.payment_failed": "failed",
    "payment_intent.canceled": "canceled",
}


@dataclass
class ChargeResult:
    id: str
    client_secret: Optional[str]
    status: str
    amount: Decimal

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"


@dataclass
class RefundResult:
    id: str
    status: str
    amount: Decimal


@dataclass
class PaymentEvent:
    type: Optional[str]            # succeeded | failed | canceled | None (ignored)
    charge_id: Optional[str]
    metadata: dict = field(default_factory=dict)
    failure_reason: Optional[str] = None
    raw_type: Optional[str] = None


def to_cents(amount) -> int:
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _metadata(metadata: Optional[dict]) -> dict:
    return {k: str(v) for k, v in (metadata or {}).items()}


def _is_demo_key(secret_key: Optional[str]) -> bool:
    key = secret_key or ""
    return len(key) < 20 or "placeholder" in key


def _demo_id(prefix: str) -> str:
    return f"{prefix}_demo_{uuid.uuid4().hex[:16]}"


def _error_message(exc: stripe.error.StripeError) -> str:
    return exc.user_message or str(exc) or exc.__class__.__name__


class PaymentGateway:
    def __init__(self, secret_key: Optional[str] = None, webhook_secret: Optional[str] = None,
                 currency: Optional[str] = None, demo_mode: Optional[bool] = None):
        self.secret_key = secret_key if secret_key is not None else settings.STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret if webhook_secret is not None else settings.STRIPE_WEBHOOK_SECRET
        self.currency = currency or settings.PAYMENT_CURRENCY
        self.demo_mode = _is_demo_key(self.secret_key) if demo_mode is None else demo_mode

    async def create_charge(self, amount, metadata: Optional[dict] = None, confirm: bool = False,
                            payment_method: Optional[str] = None) -> ChargeResult:
        """
        Create a payment intent for `amount` (currency units).
        With confirm=True the intent is confirmed off-session against `payment_method`.
        Raises PaymentError when Stripe rejects the charge or cannot be reached.
        """
        amount = Decimal(str(amount))
        if self.demo_mode:
            charge_id = _demo_id("pi")
            status = "succeeded" if confirm else "requires_payment_method"
            logger.info(f"[PAYMENT] Demo charge {charge_id} for {amount} ({status})")
            return ChargeResult(charge_id, f"{charge_id}_secret_{uuid.uuid4().hex[:8]}", status, amount)

        params = {
            "amount": to_cents(amount),
            "currency": self.currency,
            "metadata": _metadata(metadata),
        }
        if confirm:
            params.update({"confirm": True, "off_session": True})
            if payment_method:
                params["payment_method"] = payment_method
        else:
            params["automatic_payment_methods"] = {"enabled": True}

        try:
            intent = await run_in_threadpool(stripe.PaymentIntent.create, api_key=self.secret_key, **params)
        except stripe.error.StripeError as e:
            reason = _error_message(e)
            logger.error(f"[PAYMENT] Charge of {amount} failed: {reason}")
            raise PaymentError(f"Payment failed: {reason}")

        logger.info(f"[PAYMENT] Created {intent.get('id')} for {amount} status={intent.get('status')}")
        return ChargeResult(intent.get("id"), intent.get("client_secret"), intent.get("status") or "", amount)

    async def create_refund(self, charge_id: str, amount, metadata: Optional[dict] = None) -> RefundResult:
        """Refund `amount` of payment intent `charge_id`. Raises RefundError on failure."""
        amount = Decimal(str(amount))
        if self.demo_mode:
            refund_id = _demo_id("re")
            logger.info(f"[REFUND] Demo refund {refund_id} of {amount} against {charge_id}")
            return RefundResult(refund_id, "succeeded", amount)

        try:
            refund = await run_in_threadpool(
                stripe.Refund.create,
                api_key=self.secret_key,
                payment_intent=charge_id,
                amount=to_cents(amount),
                reason="requested_by_customer",
                metadata=_metadata(metadata),
            )
        except stripe.error.StripeError as e:
            reason = _error_message(e)
            logger.error(f"[REFUND] Refund of {amount} against {charge_id} failed: {reason}")
            raise RefundError(f"Refund failed: {reason}")

        logger.info(f"[REFUND] Created {refund.get('id')} of {amount} against {charge_id}")
        return RefundResult(refund.get("id"), refund.get("status") or "", amount)

    def construct_event(self, payload: bytes, signature: Optional[str]) -> PaymentEvent:
        """Verify and parse a webhook body into a PaymentEvent. Raises ValidationError when either fails."""
        data = safe_parse_json(payload)
        if data is None:
            raise ValidationError("Webhook body is not a JSON object")

        if self.webhook_secret:
            if not signature:
                raise ValidationError("Missing stripe signature")
            try:
                stripe.Webhook.construct_event(payload, signature, self.webhook_secret,
                                               tolerance=settings.WEBHOOK_TOLERANCE_SECONDS)
            except (stripe.error.SignatureVerificationError, ValueError) as e:
                logger.warning(f"[WEBHOOK] Rejected event: {e}")
                raise ValidationError("Invalid stripe signature")
        elif not self.demo_mode:
            raise ValidationError("STRIPE_WEBHOOK_SECRET is not set")

        raw_type = data.get("type")
        obj = get_nested(data, "data", "object", default={}) or {}
        return PaymentEvent(
            type=EVENT_OUTCOMES.get(raw_type),
            charge_id=obj.get("id"),
            metadata=obj.get("metadata") or {},
            failure_reason=get_nested(obj, "last_payment_error", "message"),
            raw_type=raw_type,
        )


def get_payment_gateway() -> PaymentGateway:
    """FastAPI dependency — a gateway configured from settings."""
    return PaymentGateway()
