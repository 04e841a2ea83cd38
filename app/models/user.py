# app/models/user.py
from sqlalchemy import Column, Integer, String, DateTime

from app.core.clock import utcnow
from app.db.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)

    # stored lower-cased / stripped (see normalize_email)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    display_name = Column(String(255), nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)

    @property
    def label(self) -> str:
        """Name shown to other people (invite emails, member lists)."""
        return self.display_name or self.email
