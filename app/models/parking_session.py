"""
Parking sessions table — one vehicle's paid occupancy of a zone.

Lifecycle: PENDING → ACTIVE → EXTENDED → COMPLETED | EXPIRED, or PENDING → CANCELLED.
Costs are cumulative across extensions. All transitions go through session_service
as conditional updates on (id, status).
"""

from sqlalchemy import Column, Integer, String, DateTime, Numeric, Float, ForeignKey, Index, text
from sqlalchemy.orm import relationship
from app.database import Base


class SessionStatus:
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    EXTENDED = "EXTENDED"
    COMPLETED = "COMPLETED"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"

    RUNNING = (ACTIVE, EXTENDED)
    NON_TERMINAL = (PENDING, ACTIVE, EXTENDED)
    TERMINAL = (COMPLETED, EXPIRED, CANCELLED)


_NON_TERMINAL_SQL = "status IN ('PENDING', 'ACTIVE', 'EXTENDED')"


class ParkingSession(Base):
    __tablename__ = "parking_sessions"
    __table_args__ = (
        # At most one non-terminal session per vehicle, enforced by the database
        Index(
            "uq_parking_sessions_open_vehicle",
            "vehicle_id",
            unique=True,
            postgresql_where=text(_NON_TERMINAL_SQL),
            sqlite_where=text(_NON_TERMINAL_SQL),
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False, index=True)
    zone_id = Column(Integer, ForeignKey("parking_zones.id"), nullable=False, index=True)
    start_time = Column(DateTime, nullable=False)
    scheduled_end_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime)
    duration_hours = Column(Float, nullable=False)          # cumulative, grows on extension
    actual_duration_hours = Column(Float)                   # set on early termination
    base_cost = Column(Numeric(10, 2), nullable=False)
    tax_amount = Column(Numeric(10, 2), nullable=False)
    processing_fee = Column(Numeric(10, 2), nullable=False)
    total_cost = Column(Numeric(10, 2), nullable=False)
    status = Column(String(20), nullable=False, default=SessionStatus.PENDING, index=True)
    extended_from_session_id = Column(Integer, ForeignKey("parking_sessions.id"))
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime)

    user = relationship("User")
    vehicle = relationship("Vehicle")
    zone = relationship("ParkingZone")
    transactions = relationship("Transaction", back_populates="session",
                                order_by="Transaction.id")

    def __repr__(self):
        return f"<ParkingSession {self.id} vehicle={self.vehicle_id} status={self.status}>"
