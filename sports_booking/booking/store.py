"""The one write path for bookings.

Every insert and status change goes through here so that the storage guards
are always maintained and subscribers hear about each committed change once.
"""

import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from sports_booking.booking.rejections import PersistenceError
from sports_booking.booking.slots import iterate_slot_hours
from sports_booking.events import BookingChange, ChangeNotifier, booking_changes
from sports_booking.models.booking import (
    COURT_SLOT_CONSTRAINT,
    QUOTA_UNIT_CONSTRAINT,
    Booking,
    BookingSlot,
    BookingStatus,
    QuotaUnit,
)


logger = logging.getLogger(__name__)

COURT_GUARD = 'court'
QUOTA_GUARD = 'quota'

BOOKING_FIELDS = ('user_id', 'court_id', 'booking_date', 'start_time', 'end_time', 'status', 'payment_proof_url')


class CommitGuardViolation(Exception):
    """A storage guard refused the write because a concurrent request won."""

    def __init__(self, guard: str):
        super().__init__(f'{guard} guard rejected the booking')
        self.guard = guard


class _QuotaUnitTaken(Exception):
    """The quota unit picked for this insert was claimed by a concurrent request."""


def _guard_from_integrity_error(exc: IntegrityError) -> str | None:
    # Postgres names the constraint, SQLite names the table.column pairs.
    message = str(getattr(exc, 'orig', exc))
    if QUOTA_UNIT_CONSTRAINT in message or f'{QuotaUnit.__tablename__}.' in message:
        return QUOTA_GUARD
    if COURT_SLOT_CONSTRAINT in message or f'{BookingSlot.__tablename__}.' in message:
        return COURT_GUARD
    return None


def _free_quota_units(db: Session, user_id: str, booking: Booking, daily_quota: int) -> list[int]:
    used = {
        unit_index
        for (unit_index,) in db.query(QuotaUnit.unit_index).filter(
            QuotaUnit.user_id == user_id,
            QuotaUnit.quota_date == booking.booking_date,
        ).all()
    }
    return [unit_index for unit_index in range(daily_quota) if unit_index not in used]


def _change_for(event_type: str, booking: Booking) -> BookingChange:
    return BookingChange(
        event_type=event_type,
        booking_id=booking.id,
        court_id=booking.court_id,
        booking_date=booking.booking_date.isoformat(),
        status=booking.status,
    )


def _insert_once(db: Session, booking: Booking, hours: list[int], daily_quota: int) -> BookingChange:
    free_units = _free_quota_units(db, booking.user_id, booking, daily_quota)
    if len(free_units) < len(hours):
        db.rollback()
        raise CommitGuardViolation(QUOTA_GUARD)

    db.add(booking)
    db.flush()

    for hour in hours:
        db.add(
            BookingSlot(
                booking_id=booking.id,
                court_id=booking.court_id,
                slot_date=booking.booking_date,
                slot_hour=hour,
            )
        )
    for unit_index in free_units[:len(hours)]:
        db.add(
            QuotaUnit(
                booking_id=booking.id,
                user_id=booking.user_id,
                quota_date=booking.booking_date,
                unit_index=unit_index,
            )
        )

    db.flush()
    change = _change_for('INSERT', booking)
    db.commit()
    return change


def insert_booking(
    db: Session,
    booking: Booking,
    daily_quota: int,
    notifier: ChangeNotifier = booking_changes,
) -> Booking:
    """Insert a booking with its hour slots and quota units in one transaction.

    When a concurrent request from the same user claims the quota unit picked
    here, the free units are read again and the insert is retried; each lost
    attempt means another unit was committed, so ``daily_quota + 1`` attempts
    always end in a commit or an exhausted quota.

    Raises CommitGuardViolation when the court hours or the user's quota were
    taken by a concurrent request, PersistenceError on any other database
    failure.
    """
    hours = iterate_slot_hours(booking.start_time, booking.end_time)
    fields = {name: getattr(booking, name) for name in BOOKING_FIELDS}
    attempts = daily_quota + 1

    for attempt in range(1, attempts + 1):
        candidate = booking if attempt == 1 else Booking(**fields)
        try:
            change = _insert_with_guards(db, candidate, hours, daily_quota)
        except _QuotaUnitTaken:
            logger.debug(
                'Quota unit for user %s on %s taken concurrently (attempt %s of %s)',
                fields['user_id'],
                fields['booking_date'],
                attempt,
                attempts,
            )
            continue

        notifier.publish(change)
        _refresh(db, candidate, change.booking_id)
        return candidate

    raise CommitGuardViolation(QUOTA_GUARD)


def _insert_with_guards(db: Session, booking: Booking, hours: list[int], daily_quota: int) -> BookingChange:
    try:
        return _insert_once(db, booking, hours, daily_quota)
    except IntegrityError as exc:
        db.rollback()
        guard = _guard_from_integrity_error(exc)
        if guard == QUOTA_GUARD:
            raise _QuotaUnitTaken() from exc
        if guard == COURT_GUARD:
            raise CommitGuardViolation(COURT_GUARD) from exc
        logger.exception('Booking for court %s on %s violated a constraint', booking.court_id, booking.booking_date)
        raise PersistenceError('Could not save the booking.') from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to insert booking for court %s on %s', booking.court_id, booking.booking_date)
        raise PersistenceError('Could not save the booking.') from exc


def _refresh(db: Session, booking: Booking, booking_id: int) -> None:
    try:
        db.refresh(booking)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to reload booking %s after commit', booking_id)
        raise PersistenceError('The booking was saved but could not be reloaded.') from exc


def update_status(
    db: Session,
    booking: Booking,
    new_status: BookingStatus,
    notifier: ChangeNotifier = booking_changes,
) -> Booking:
    """Persist a status change; cancelling releases the booking's hours and quota."""
    try:
        booking.status = new_status.value
        if new_status is BookingStatus.CANCELLED:
            db.query(BookingSlot).filter(BookingSlot.booking_id == booking.id).delete(synchronize_session=False)
            db.query(QuotaUnit).filter(QuotaUnit.booking_id == booking.id).delete(synchronize_session=False)
        change = _change_for('UPDATE', booking)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to update booking %s to %s', booking.id, new_status.value)
        raise PersistenceError('Could not update the booking.') from exc

    notifier.publish(change)
    _refresh(db, booking, change.booking_id)
    return booking
