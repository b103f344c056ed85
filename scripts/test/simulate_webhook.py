# scripts/test/simulate_webhook.py
"""Send a signed payment webhook to the backend, as the gateway would."""

import argparse
import hashlib
import hmac
import json
import time
import requests

BACKEND_URL = "http://localhost:8080/api/v1/payments/webhook"

EVENT_TYPES = {
    "succeeded": "payment_intent.succeeded",
    "failed": "payment_intent.payment_failed",
    "canceled": "payment_intent.canceled",
}


def sign(payload: bytes, secret: str) -> str:
    """Build a `Stripe-Signature` header; the stripe SDK only verifies them."""
    timestamp = str(int(time.time()))
    digest = hmac.new(secret.encode(), timestamp.encode() + b"." + payload, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def simulate(outcome, payment_reference, session_id, secret, url):
    intent = {"id": payment_reference, "object": "payment_intent", "metadata": {"sessionId": str(session_id)}}
    if outcome == "failed":
        intent["last_payment_error"] = {"message": "Your card was declined."}
    body = json.dumps({"type": EVENT_TYPES[outcome], "data": {"object": intent}}).encode()

    headers = {"Content-Type": "application/json"}
    if secret:
        headers["Stripe-Signature"] = sign(body, secret)
    resp = requests.post(url, data=body, headers=headers, timeout=10)
    print(f"✅ {EVENT_TYPES[outcome]} session={session_id} → HTTP {resp.status_code}: {resp.json()}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Simulate payment gateway webhooks")
    parser.add_argument("--outcome", default="succeeded", choices=list(EVENT_TYPES.keys()))
    parser.add_argument("--reference", required=True, help="payment_reference from create-intent")
    parser.add_argument("--session", type=int, required=True)
    parser.add_argument("--secret", default=None, help="STRIPE_WEBHOOK_SECRET (omit in demo mode)")
    parser.add_argument("--url", default=BACKEND_URL)
    args = parser.parse_args()

    simulate(args.outcome, args.reference, args.session, args.secret, args.url)
