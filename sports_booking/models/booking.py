"""Booking model definitions."""

import enum
from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Time,
    UniqueConstraint,
)
from sports_booking.database import Base


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"


COURT_SLOT_CONSTRAINT = "uq_booking_slots_court_hour"
QUOTA_UNIT_CONSTRAINT = "uq_booking_quota_units_user_unit"


class Booking(Base):
    """A reservation of one court for a contiguous range of whole hours."""
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True)
    user_id = Column(String, ForeignKey("profiles.id"), nullable=False)
    court_id = Column(Integer, ForeignKey("courts.id"), nullable=False)
    booking_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    status = Column(String, nullable=False, default=BookingStatus.PENDING.value)
    payment_proof_url = Column(String)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    __table_args__ = (
        CheckConstraint("start_time < end_time", name="ck_bookings_time_order"),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking id={self.id} court={self.court_id} {self.booking_date} "
            f"{self.start_time}-{self.end_time} {self.status}>"
        )


class BookingSlot(Base):
    """One occupied hour of a non-cancelled booking.

    The unique constraint over (court, date, hour) is what keeps two live
    bookings of the same court from overlapping when their inserts race.
    """
    __tablename__ = "booking_slots"

    id = Column(Integer, primary_key=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    court_id = Column(Integer, nullable=False)
    slot_date = Column(Date, nullable=False)
    slot_hour = Column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("court_id", "slot_date", "slot_hour", name=COURT_SLOT_CONSTRAINT),
    )


class QuotaUnit(Base):
    """One booked hour charged against a user's daily quota.

    unit_index runs from 0 to quota - 1, so the unique constraint caps the
    number of live rows per user and date.
    """
    __tablename__ = "booking_quota_units"

    id = Column(Integer, primary_key=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, nullable=False)
    quota_date = Column(Date, nullable=False)
    unit_index = Column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "quota_date", "unit_index", name=QUOTA_UNIT_CONSTRAINT),
    )
