# app/services/exceptions.py
"""
Error taxonomy for the parking core.
Every error carries the HTTP status the API answers with and any structured
detail (restriction list, remaining allowance) the client needs for a message.
Rendered by the ParkingError handler in app.main.
"""

from typing import Optional


class ParkingError(Exception):
    status_code = 400
    code = "parking_error"

    def __init__(self, detail: str, **extra):
        super().__init__(detail)
        self.detail = detail
        self.extra = extra

    def to_dict(self) -> dict:
        return {"error": self.code, "detail": self.detail, **self.extra}


class ValidationError(ParkingError):
    """Malformed or missing input. Never persisted."""
    status_code = 400
    code = "validation_error"


class NotFoundError(ParkingError):
    """Zone, vehicle or session absent, or not owned by the caller."""
    status_code = 404
    code = "not_found"


class PermissionDenied(ParkingError):
    status_code = 403
    code = "permission_denied"


class ConflictError(ParkingError):
    """Vehicle already has an open session, or a state transition lost a race."""
    status_code = 409
    code = "conflict"


class RestrictionError(ParkingError):
    status_code = 422
    code = "restricted"

    def __init__(self, detail: str, restrictions: list):
        super().__init__(detail, restrictions=restrictions)
        self.restrictions = restrictions


class LimitExceeded(ParkingError):
    status_code = 400
    code = "limit_exceeded"

    def __init__(self, detail: str, max_additional_hours: Optional[float] = None):
        super().__init__(detail, max_additional_hours=max_additional_hours)
        self.max_additional_hours = max_additional_hours


class PaymentError(ParkingError):
    """External charge failed. The transition that needed it is aborted."""
    status_code = 402
    code = "payment_failed"


class RefundError(ParkingError):
    """External refund failed. Only ever reported as a warning on a completed termination."""
    status_code = 502
    code = "refund_failed"
