"""Facility catalog model definitions."""

from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Time
from sports_booking.database import Base


class Category(Base):
    """A sport category; its open/close window applies to all of its courts."""
    __tablename__ = "sport_categories"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(String)
    image_url = Column(String)
    is_active = Column(Boolean, default=True)
    open_time = Column(Time)
    close_time = Column(Time)


class Court(Base):
    """A bookable court."""
    __tablename__ = "courts"

    id = Column(Integer, primary_key=True)
    category_id = Column(Integer, ForeignKey("sport_categories.id"), index=True)
    name = Column(String, nullable=False)
    type = Column(String, default="General")
    description = Column(String)
    price = Column(Numeric(10, 2), default=0)
    image_url = Column(String)
    is_active = Column(Boolean, default=True)


class Closure(Base):
    """Staff-declared unavailability of every court in a category."""
    __tablename__ = "category_closings"

    id = Column(Integer, primary_key=True)
    category_id = Column(Integer, ForeignKey("sport_categories.id"), nullable=False)
    closing_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    reason = Column(String)
    created_at = Column(DateTime, default=datetime.now)
