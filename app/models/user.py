"""
Users table — drivers, administrators and enforcement officers.
Sign-up and password handling live outside this service; rows are created by admin tooling.
"""

from sqlalchemy import Column, Integer, String, DateTime
from app.database import Base


class UserRole:
    USER = "USER"
    ADMIN = "ADMIN"
    ENFORCEMENT = "ENFORCEMENT"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(200), nullable=False)
    phone = Column(String(50))
    role = Column(String(20), default=UserRole.USER, nullable=False)  # USER | ADMIN | ENFORCEMENT
    created_at = Column(DateTime)

    def __repr__(self):
        return f"<User {self.id} email={self.email} role={self.role}>"
