"""Profile model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, String
from sports_booking.database import Base


class Profile(Base):
    """Account profile mirrored from the identity provider."""
    __tablename__ = "profiles"

    id = Column(String, primary_key=True)
    email = Column(String, unique=True, index=True)
    username = Column(String)
    role = Column(String, default="user")  # user/staff/admin
    first_name = Column(String)
    last_name = Column(String)
    student_id = Column(String)
    phone = Column(String)


class RevokedToken(Base):
    """Access token invalidated by an explicit sign-out."""
    __tablename__ = "revoked_tokens"

    jti = Column(String, primary_key=True)
    user_id = Column(String, index=True)
    revoked_at = Column(DateTime, default=datetime.now)
