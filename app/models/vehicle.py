"""
Registered vehicles table.
Each vehicle belongs to one user; plate + state are stored uppercased and are unique together.
Used by session_service to check ownership before a session is created.
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from app.database import Base


class Vehicle(Base):
    __tablename__ = "vehicles"
    __table_args__ = (
        UniqueConstraint("license_plate", "state", name="uq_vehicle_plate_state"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    license_plate = Column(String(20), nullable=False, index=True)
    state = Column(String(10), nullable=False)
    nickname = Column(String(100))
    created_at = Column(DateTime)

    def __repr__(self):
        return f"<Vehicle {self.license_plate}/{self.state} owner={self.user_id}>"
