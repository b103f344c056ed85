# app/schemas/enforcement.py
from pydantic import BaseModel


class ValidateSessionRequest(BaseModel):
    license_plate: str
    state: str
    zone_number: str
