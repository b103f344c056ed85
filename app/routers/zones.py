# app/routers/zones.py
"""Zones — lookup, restriction preview, next available time and cost estimates."""

from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from app.database import get_db
from app.schemas.zone import ZoneOut, RestrictionCheckOut, CostEstimateOut
from app.services.pricing import effective_rate, estimate_cost
from app.services.restrictions import check_restrictions, next_available_time
from app.services.zone_service import get_zone, find_zone_by_number, list_active_zones
from app.utils.formatting import format_currency, format_restriction_message
from app.utils.time_utils import to_zone_local, utcnow

router = APIRouter()


def _local(value: Optional[datetime]) -> datetime:
    """Query times without an offset are taken as UTC."""
    return to_zone_local(value or utcnow())


@router.get("/zones", response_model=list[ZoneOut], summary="List active zones")
def list_zones(q: Optional[str] = Query(None, description="Search number, name or address"),
               db: Session = Depends(get_db)):
    return list_active_zones(db, q)


@router.get("/zones/number/{zone_number}", response_model=ZoneOut, summary="Find a zone by its posted number")
def zone_by_number(zone_number: str, db: Session = Depends(get_db)):
    zone = find_zone_by_number(db, zone_number)
    if not zone:
        raise HTTPException(status_code=404, detail="Zone not found")
    return zone


@router.get("/zones/{zone_id}", response_model=ZoneOut, summary="Get a zone")
def read_zone(zone_id: int, db: Session = Depends(get_db)):
    return get_zone(db, zone_id)


@router.get("/zones/{zone_id}/restrictions/check", response_model=RestrictionCheckOut,
            summary="Can a session start at this time?")
def restriction_check(
    zone_id: int,
    duration_hours: float = Query(..., gt=0),
    start: Optional[datetime] = Query(None, description="Defaults to now"),
    db: Session = Depends(get_db),
):
    zone = get_zone(db, zone_id)
    result = check_restrictions(zone, _local(start), duration_hours)
    body = result.as_dict()
    for item, restriction in zip(body["restrictions"], result.restrictions):
        item["description"] = format_restriction_message(restriction)
    return body


@router.get("/zones/{zone_id}/next-available", summary="Earliest time parking is allowed")
def next_available(zone_id: int, after: Optional[datetime] = Query(None), db: Session = Depends(get_db)):
    zone = get_zone(db, zone_id)
    start = _local(after)
    available = next_available_time(zone, start)
    return {
        "zone_id": zone.id,
        "from_time": start,
        "next_available_time": available,
        "available_now": available == start,
    }


@router.get("/zones/{zone_id}/estimate", response_model=CostEstimateOut, summary="Price a session")
def estimate(zone_id: int, duration_hours: float = Query(..., gt=0), db: Session = Depends(get_db)):
    zone = get_zone(db, zone_id)
    cost = estimate_cost(zone, duration_hours)
    return {
        "zone_number": zone.zone_number,
        "rate_per_hour": effective_rate(zone),
        "duration_hours": duration_hours,
        "cost": cost.as_dict(),
        "formatted_total": format_currency(cost.total_cost),
    }
