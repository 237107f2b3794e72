import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sports_booking.auth.context import ActorContext
from sports_booking.booking import store
from sports_booking.booking.rejections import (
    BookingNotFound,
    InvalidTransition,
    PersistenceError,
    Rejection,
    Unauthenticated,
)
from sports_booking.events import ChangeNotifier, booking_changes
from sports_booking.models.booking import Booking, BookingStatus


logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    BookingStatus.PENDING: frozenset({BookingStatus.PAID, BookingStatus.CANCELLED}),
    BookingStatus.PAID: frozenset({BookingStatus.CANCELLED}),
    BookingStatus.CANCELLED: frozenset(),
}

STATUS_ALIASES = {'confirmed': BookingStatus.PAID}


def parse_status(value: str) -> BookingStatus:
    normalized = value.strip().lower()
    if normalized in STATUS_ALIASES:
        return STATUS_ALIASES[normalized]
    return BookingStatus(normalized)


def is_allowed_transition(current: BookingStatus, requested: BookingStatus) -> bool:
    return requested in ALLOWED_TRANSITIONS.get(current, frozenset())


def get_booking_for_update(db: Session, booking_id: int) -> Booking | None:
    return db.query(Booking).filter(Booking.id == booking_id).with_for_update().first()


def update_booking_status(
    db: Session,
    booking_id: int,
    new_status: BookingStatus,
    actor: ActorContext | None,
    notifier: ChangeNotifier = booking_changes,
) -> Booking | Rejection:
    """Move a booking to ``new_status`` if the lifecycle allows it.

    The same rules apply whoever asks; deciding who may ask is up to the caller.
    """
    if actor is None:
        return Unauthenticated()

    try:
        booking = get_booking_for_update(db, booking_id)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to load booking %s', booking_id)
        raise PersistenceError('Could not load the booking.') from exc

    if booking is None:
        db.rollback()
        return BookingNotFound()

    current = parse_status(booking.status)
    if not is_allowed_transition(current, new_status):
        db.rollback()
        logger.debug(
            'Rejected transition of booking %s from %s to %s by %s',
            booking_id,
            current.value,
            new_status.value,
            actor.user_id,
        )
        return InvalidTransition(current_status=current.value, requested_status=new_status.value)

    booking = store.update_status(db, booking, new_status, notifier=notifier)
    logger.info('Booking %s moved from %s to %s by %s', booking.id, current.value, new_status.value, actor.user_id)
    return booking
