# app/crud/user.py
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import InvalidRequest
from app.core.security import get_password_hash, normalize_email
from app.models.user import User


def create_user(db: Session, email: str, password: str, display_name: Optional[str] = None) -> User:
    user = User(
        email=normalize_email(email),
        hashed_password=get_password_hash(password),
        display_name=(display_name or "").strip() or None,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise InvalidRequest("An account with this email already exists.")
    db.refresh(user)
    return user


def lookup_email_by_user_id(db: Session, user_id: int) -> Optional[str]:
    row = db.query(User.email).filter(User.id == user_id).first()
    return row[0] if row else None
