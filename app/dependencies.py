# app/dependencies.py
"""
Caller identity for user-facing routes.
Authentication happens upstream (gateway / API key); the caller is identified
by the X-User-Id header and resolved to a User row here.
"""

from typing import Optional
from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.user import User, UserRole
from app.services.exceptions import PermissionDenied


def get_current_user(x_user_id: Optional[str] = Header(None), db: Session = Depends(get_db)) -> User:
    if not x_user_id or not x_user_id.isdigit():
        raise HTTPException(status_code=401, detail="Missing or invalid X-User-Id header")
    user = db.query(User).filter(User.id == int(x_user_id)).first()
    if not user:
        raise HTTPException(status_code=401, detail="Unknown user")
    return user


def require_role(*roles: str):
    """Dependency factory: the caller must hold one of `roles` (ADMIN always passes)."""
    allowed = set(roles) | {UserRole.ADMIN}

    def _check(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            raise PermissionDenied("Access denied")
        return user

    return _check
