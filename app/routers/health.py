# app/routers/health.py
"""
System health check endpoint.
Returns status of backend + DB + payment gateway reachability.
"""

import requests
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import text
from app.database import get_db
from app.config import settings
from app.services.payment_gateway import PaymentGateway, get_payment_gateway
from app.utils.time_utils import utcnow

router = APIRouter()


@router.get("/health", summary="System health check")
def health_check(db: Session = Depends(get_db), gateway: PaymentGateway = Depends(get_payment_gateway)):
    """
    Returns:
    - Backend status
    - Database connectivity
    - Payment gateway reachability ("demo" when no real key is configured)
    """
    result = {
        "status": "ok",
        "timestamp": utcnow().isoformat(),
        "backend": "ok",
        "database": "unknown",
        "payments": "demo" if gateway.demo_mode else "unknown",
    }

    # Check database
    try:
        db.execute(text("SELECT 1"))
        result["database"] = "ok"
    except Exception as e:
        result["database"] = f"error: {str(e)}"
        result["status"] = "degraded"

    if gateway.demo_mode:
        return result

    # Any HTTP answer means the gateway is reachable; 401 without credentials is expected
    try:
        resp = requests.get(f"{settings.STRIPE_API_BASE}/balance", auth=(gateway.secret_key, ""),
                            timeout=settings.PAYMENT_TIMEOUT_SECONDS)
        result["payments"] = "ok" if resp.status_code == 200 else f"http_{resp.status_code}"
    except requests.exceptions.ConnectionError:
        result["payments"] = "unreachable"
        result["status"] = "degraded"
    except requests.exceptions.RequestException as e:
        result["payments"] = f"error: {str(e)}"

    return result
