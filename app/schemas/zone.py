# app/schemas/zone.py
"""
Zone schemas, including the typed restriction schedule.
ZoneRestrictions replaces the free-form restrictions JSON document: it is
validated whenever a zone's schedule is read.
"""

import re
from pydantic import BaseModel, field_validator
from datetime import datetime
from decimal import Decimal
from typing import Optional, List, Literal

_HHMM = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

RestrictionType = Literal["RUSH_HOUR", "STREET_CLEANING", "PERMIT_ONLY", "NO_PARKING", "LOADING_ZONE"]


class TimeRestriction(BaseModel):
    start_time: str                    # "HH:MM", zone-local
    end_time: str                      # "HH:MM", may be earlier than start (crosses midnight)
    days_of_week: List[int]            # 0 = Sunday … 6 = Saturday
    restriction_type: RestrictionType
    description: str = ""
    parking_allowed: bool = False      # parking tolerated during the window

    @field_validator("start_time", "end_time")
    @classmethod
    def _valid_time(cls, value: str) -> str:
        if not _HHMM.match(value):
            raise ValueError(f"'{value}' is not a 24-hour HH:MM time")
        return value

    @field_validator("days_of_week")
    @classmethod
    def _valid_days(cls, value: List[int]) -> List[int]:
        if not value:
            raise ValueError("days_of_week must not be empty")
        if any(d < 0 or d > 6 for d in value):
            raise ValueError("days_of_week entries must be 0 (Sunday) to 6 (Saturday)")
        return sorted(set(value))


class ZoneRestrictions(BaseModel):
    time_restrictions: List[TimeRestriction] = []
    allowed_during_restrictions: bool = False   # zone-wide tolerance for every window


class ZoneOut(BaseModel):
    id: int
    zone_number: str
    zone_name: str
    location_type: str
    rate_per_hour: Decimal
    max_duration_hours: float
    address: str
    restrictions_json: Optional[dict]
    is_active: bool

    class Config:
        from_attributes = True


class RestrictionOut(BaseModel):
    type: str
    description: str
    active_until: Optional[datetime] = None


class RestrictionWarningOut(BaseModel):
    type: str
    message: str
    warning_time: Optional[datetime] = None


class RestrictionCheckOut(BaseModel):
    can_park: bool
    restrictions: List[RestrictionOut]
    warnings: List[RestrictionWarningOut]


class CostBreakdownOut(BaseModel):
    base_cost: Decimal
    tax_amount: Decimal
    processing_fee: Decimal
    total_cost: Decimal


class CostEstimateOut(BaseModel):
    zone_number: str
    rate_per_hour: Decimal
    duration_hours: float
    cost: CostBreakdownOut
    formatted_total: str
