# app/routers/vehicles.py
"""Vehicles — the caller's registered plates."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.database import get_db
from app.dependencies import get_current_user
from app.models.user import User
from app.schemas.vehicle import VehicleCreate, VehicleOut
from app.services import vehicle_service

router = APIRouter()


@router.get("/vehicles", response_model=list[VehicleOut], summary="List my vehicles")
def list_vehicles(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return vehicle_service.list_user_vehicles(db, user.id)


@router.post("/vehicles", response_model=VehicleOut, status_code=201, summary="Register a vehicle")
def register_vehicle(body: VehicleCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Plates are unique per (plate, state) across all users."""
    return vehicle_service.register_vehicle(db, user.id, body.license_plate, body.state, body.nickname)


@router.delete("/vehicles/{vehicle_id}", summary="Remove a vehicle")
def remove_vehicle(vehicle_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    vehicle_service.remove_vehicle(db, vehicle_id, user.id)
    return {"status": "removed", "vehicle_id": vehicle_id}
