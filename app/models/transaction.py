"""
Transactions table — every monetary movement tied to a session.
Charges are positive, refunds negative. external_reference holds the payment
gateway id (payment intent or refund) and is how webhook events find their row.
"""

from sqlalchemy import Column, Integer, String, DateTime, Numeric, Text, ForeignKey
from sqlalchemy.orm import relationship
from app.database import Base


class TransactionStatus:
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class TransactionType:
    CHARGE = "CHARGE"
    EXTENSION = "EXTENSION"
    REFUND = "REFUND"


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    session_id = Column(Integer, ForeignKey("parking_sessions.id"), nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    transaction_type = Column(String(20), nullable=False, default=TransactionType.CHARGE)
    status = Column(String(20), nullable=False, default=TransactionStatus.PENDING, index=True)
    external_reference = Column(String(255), index=True)
    failure_reason = Column(Text)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime)

    session = relationship("ParkingSession", back_populates="transactions")

    def __repr__(self):
        return f"<Transaction {self.id} {self.transaction_type} {self.amount} status={self.status}>"
