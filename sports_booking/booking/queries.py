from dataclasses import dataclass
from datetime import date, time

from sqlalchemy.orm import Session

from sports_booking.booking.slots import hours_between
from sports_booking.core import config
from sports_booking.models.booking import Booking, BookingStatus
from sports_booking.models.facility import Category, Closure, Court


@dataclass(frozen=True)
class CategoryWindow:
    category_id: int | None
    open_time: time
    close_time: time


def get_court(db: Session, court_id: int) -> Court | None:
    return db.query(Court).filter(Court.id == court_id).first()


def get_category_window(db: Session, court_id: int) -> CategoryWindow | None:
    row = (
        db.query(Court.category_id, Category.open_time, Category.close_time)
        .outerjoin(Category, Category.id == Court.category_id)
        .filter(Court.id == court_id)
        .first()
    )
    if row is None:
        return None

    category_id, open_time, close_time = row
    return CategoryWindow(
        category_id=category_id,
        open_time=open_time or config.DEFAULT_OPEN_TIME,
        close_time=close_time or config.DEFAULT_CLOSE_TIME,
    )


def list_non_cancelled_bookings(db: Session, court_id: int, day: date) -> list[Booking]:
    return db.query(Booking).filter(
        Booking.court_id == court_id,
        Booking.booking_date == day,
        Booking.status != BookingStatus.CANCELLED.value,
    ).order_by(Booking.start_time.asc()).all()


def list_closures(db: Session, category_id: int | None, day: date) -> list[Closure]:
    if category_id is None:
        return []
    return db.query(Closure).filter(
        Closure.category_id == category_id,
        Closure.closing_date == day,
    ).order_by(Closure.start_time.asc()).all()


def sum_user_hours(db: Session, user_id: str, day: date) -> int:
    ranges = db.query(Booking.start_time, Booking.end_time).filter(
        Booking.user_id == user_id,
        Booking.booking_date == day,
        Booking.status != BookingStatus.CANCELLED.value,
    ).all()
    return sum(hours_between(start_time, end_time) for start_time, end_time in ranges)


def list_bookings_for_date(db: Session, day: date, include_cancelled: bool = False) -> list[Booking]:
    query = db.query(Booking).filter(Booking.booking_date == day)
    if not include_cancelled:
        query = query.filter(Booking.status != BookingStatus.CANCELLED.value)
    return query.order_by(Booking.court_id.asc(), Booking.start_time.asc()).all()


def list_bookings_for_user(db: Session, user_id: str) -> list[Booking]:
    return db.query(Booking).filter(
        Booking.user_id == user_id,
    ).order_by(Booking.booking_date.desc(), Booking.start_time.asc()).all()


def list_all_bookings(db: Session) -> list[Booking]:
    return db.query(Booking).order_by(Booking.booking_date.desc(), Booking.start_time.asc()).all()


def list_upcoming_closures(db: Session, category_id: int, today: date) -> list[Closure]:
    return db.query(Closure).filter(
        Closure.category_id == category_id,
        Closure.closing_date >= today,
    ).order_by(Closure.closing_date.asc(), Closure.start_time.asc()).all()
