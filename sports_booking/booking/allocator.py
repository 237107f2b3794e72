"""Decide whether a court can be booked for a range of hours, and book it.

Checks run in a fixed order and the first failure is returned:

1. the caller is signed in and the range is a whole number of hours
2. the court exists and is open for booking
3. the date is inside the booking window
4. the range is inside the category's opening hours
5. no staff closure overlaps the range
6. campus accounts are not booking walk-in hours
7. the user stays within the daily hour quota
8. no live booking on the court overlaps the range

Steps 7 and 8 read current state and can be beaten by a concurrent request.
The insert is therefore guarded again in storage (see ``store.insert_booking``)
and losing there yields ``SlotConflictAtCommit`` rather than ``SlotConflict``.
"""

import logging
from dataclasses import dataclass
from datetime import date, time, timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sports_booking.auth.context import ActorContext
from sports_booking.booking import queries, store
from sports_booking.booking.rejections import (
    ClosedForMaintenance,
    CourtInactive,
    CourtNotFound,
    DailyQuotaExceeded,
    InvalidTimeRange,
    OutsideBookingWindow,
    OutsideOperatingHours,
    PersistenceError,
    Rejection,
    SlotConflict,
    SlotConflictAtCommit,
    Unauthenticated,
    WalkInOnly,
)
from sports_booking.booking.slots import (
    format_hour,
    hour_to_time,
    hours_between,
    is_whole_hour,
    iterate_slot_hours,
    overlaps,
    within_window,
)
from sports_booking.core import config
from sports_booking.events import ChangeNotifier, booking_changes
from sports_booking.models.booking import Booking, BookingStatus


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingRules:
    daily_hour_quota: int
    booking_window_days: int
    walk_in_email_domain: str
    walk_in_start_hour: int
    walk_in_end_hour: int
    default_closure_reason: str

    @classmethod
    def from_config(cls) -> 'BookingRules':
        return cls(
            daily_hour_quota=config.DAILY_HOUR_QUOTA,
            booking_window_days=config.BOOKING_WINDOW_DAYS,
            walk_in_email_domain=config.WALK_IN_EMAIL_DOMAIN,
            walk_in_start_hour=config.WALK_IN_START_HOUR,
            walk_in_end_hour=config.WALK_IN_END_HOUR,
            default_closure_reason=config.DEFAULT_CLOSURE_REASON,
        )

    def is_walk_in_account(self, email: str | None) -> bool:
        if not email or not self.walk_in_email_domain:
            return False
        return email.strip().lower().endswith(self.walk_in_email_domain)

    def is_walk_in_hour(self, hour: int) -> bool:
        return self.walk_in_start_hour <= hour < self.walk_in_end_hour


def check_time_range(start_time: time, end_time: time) -> InvalidTimeRange | None:
    if not is_whole_hour(start_time) or not is_whole_hour(end_time):
        return InvalidTimeRange()
    if start_time >= end_time:
        return InvalidTimeRange()
    return None


def check_booking_window(booking_date: date, today: date, rules: BookingRules) -> OutsideBookingWindow | None:
    last_day = today + timedelta(days=rules.booking_window_days)
    if booking_date < today or booking_date > last_day:
        return OutsideBookingWindow(
            first_bookable_date=today.isoformat(),
            last_bookable_date=last_day.isoformat(),
        )
    return None


def check_closures(closures, start_time: time, end_time: time, rules: BookingRules) -> ClosedForMaintenance | None:
    for closure in closures:
        if overlaps(closure.start_time, closure.end_time, start_time, end_time):
            reason = (closure.reason or '').strip() or rules.default_closure_reason
            return ClosedForMaintenance(reason=reason)
    return None


def check_walk_in(actor: ActorContext, start_time: time, end_time: time, rules: BookingRules) -> WalkInOnly | None:
    if not rules.is_walk_in_account(actor.email):
        return None
    if any(rules.is_walk_in_hour(hour) for hour in iterate_slot_hours(start_time, end_time)):
        return WalkInOnly(
            window_start=format_hour(hour_to_time(rules.walk_in_start_hour)),
            window_end=format_hour(hour_to_time(rules.walk_in_end_hour % 24)),
        )
    return None


def check_quota(hours_held: int, requested_hours: int, rules: BookingRules) -> DailyQuotaExceeded | None:
    if hours_held + requested_hours > rules.daily_hour_quota:
        return DailyQuotaExceeded(
            hours_remaining=max(0, rules.daily_hour_quota - hours_held),
            daily_limit=rules.daily_hour_quota,
        )
    return None


def check_conflicts(existing_bookings, start_time: time, end_time: time) -> SlotConflict | None:
    for existing in existing_bookings:
        if overlaps(existing.start_time, existing.end_time, start_time, end_time):
            return SlotConflict()
    return None


def create_booking(
    db: Session,
    actor: ActorContext | None,
    court_id: int,
    booking_date: date,
    start_time: time,
    end_time: time,
    payment_proof_url: str | None = None,
    *,
    today: date | None = None,
    rules: BookingRules | None = None,
    notifier: ChangeNotifier = booking_changes,
) -> Booking | Rejection:
    """Book ``court_id`` on ``booking_date`` for [start_time, end_time).

    Returns the new pending booking, or the first rejection that applies.
    Raises PersistenceError when the database fails.
    """
    rules = rules or BookingRules.from_config()
    today = today or date.today()

    try:
        rejection = _evaluate(db, actor, court_id, booking_date, start_time, end_time, today, rules)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to read booking state for court %s on %s', court_id, booking_date)
        raise PersistenceError('Could not check availability.') from exc

    if rejection is not None:
        logger.debug(
            'Booking rejected (%s) for user %s court %s %s %s-%s',
            rejection.code,
            actor.user_id if actor else None,
            court_id,
            booking_date,
            start_time,
            end_time,
        )
        return rejection

    booking = Booking(
        user_id=actor.user_id,
        court_id=court_id,
        booking_date=booking_date,
        start_time=start_time,
        end_time=end_time,
        status=BookingStatus.PENDING.value,
        payment_proof_url=payment_proof_url,
    )

    try:
        booking = store.insert_booking(db, booking, rules.daily_hour_quota, notifier=notifier)
    except store.CommitGuardViolation as exc:
        logger.info(
            'Booking for court %s on %s %s-%s lost a concurrent race (%s guard)',
            court_id,
            booking_date,
            start_time,
            end_time,
            exc.guard,
        )
        return SlotConflictAtCommit(guard=exc.guard)

    logger.info(
        'Booking %s created: user %s court %s %s %s-%s',
        booking.id,
        booking.user_id,
        booking.court_id,
        booking.booking_date,
        booking.start_time,
        booking.end_time,
    )
    return booking


def _evaluate(
    db: Session,
    actor: ActorContext | None,
    court_id: int,
    booking_date: date,
    start_time: time,
    end_time: time,
    today: date,
    rules: BookingRules,
) -> Rejection | None:
    if actor is None:
        return Unauthenticated()

    rejection = check_time_range(start_time, end_time)
    if rejection is not None:
        return rejection

    court = queries.get_court(db, court_id)
    if court is None:
        return CourtNotFound()
    if court.is_active is False:
        return CourtInactive()

    rejection = check_booking_window(booking_date, today, rules)
    if rejection is not None:
        return rejection

    window = queries.get_category_window(db, court_id)
    if not within_window(start_time, end_time, window.open_time, window.close_time):
        return OutsideOperatingHours(
            open_time=format_hour(window.open_time),
            close_time=format_hour(window.close_time),
        )

    rejection = check_closures(queries.list_closures(db, window.category_id, booking_date), start_time, end_time, rules)
    if rejection is not None:
        return rejection

    rejection = check_walk_in(actor, start_time, end_time, rules)
    if rejection is not None:
        return rejection

    hours_held = queries.sum_user_hours(db, actor.user_id, booking_date)
    rejection = check_quota(hours_held, hours_between(start_time, end_time), rules)
    if rejection is not None:
        return rejection

    return check_conflicts(queries.list_non_cancelled_bookings(db, court_id, booking_date), start_time, end_time)
