# app/schemas/vehicle.py
from pydantic import BaseModel, field_validator
from datetime import datetime
from typing import Optional


class VehicleCreate(BaseModel):
    license_plate: str
    state: str
    nickname: Optional[str] = None

    @field_validator("license_plate")
    @classmethod
    def _plate(cls, value: str) -> str:
        plate = value.strip().upper()
        if not 2 <= len(plate) <= 10 or not all(c.isalnum() or c in " -" for c in plate):
            raise ValueError("Invalid license plate format")
        return plate

    @field_validator("state")
    @classmethod
    def _state(cls, value: str) -> str:
        return value.strip().upper()


class VehicleOut(BaseModel):
    id: int
    user_id: int
    license_plate: str
    state: str
    nickname: Optional[str]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True
