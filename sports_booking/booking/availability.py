from dataclasses import dataclass
from datetime import date, time

from sqlalchemy.orm import Session

from sports_booking.auth.context import ActorContext
from sports_booking.booking import queries
from sports_booking.booking.allocator import BookingRules
from sports_booking.booking.slots import hour_to_time, overlaps

SLOT_AVAILABLE = 'available'
SLOT_BOOKED = 'booked'
SLOT_MINE = 'mine'
SLOT_CLOSED = 'closed'
SLOT_WALK_IN = 'walk_in'


@dataclass(frozen=True)
class HourSlot:
    start_time: time
    end_time: time
    status: str
    reason: str | None = None
    booking_id: int | None = None


def build_day_grid(
    db: Session,
    court_id: int,
    day: date,
    actor: ActorContext | None,
    rules: BookingRules,
) -> list[HourSlot] | None:
    """One entry per opening hour of the court on ``day``; None if the court is unknown.

    A closure outranks a booking, and a booking outranks the walk-in window.
    """
    window = queries.get_category_window(db, court_id)
    if window is None:
        return None

    closures = queries.list_closures(db, window.category_id, day)
    bookings = queries.list_non_cancelled_bookings(db, court_id, day)
    walk_in_account = actor is not None and rules.is_walk_in_account(actor.email)

    grid: list[HourSlot] = []
    for hour in range(window.open_time.hour, window.close_time.hour):
        slot_start = hour_to_time(hour)
        slot_end = hour_to_time(hour + 1) if hour < 23 else time.max

        closure = next(
            (c for c in closures if overlaps(c.start_time, c.end_time, slot_start, slot_end)),
            None,
        )
        if closure is not None:
            reason = (closure.reason or '').strip() or rules.default_closure_reason
            grid.append(HourSlot(slot_start, slot_end, SLOT_CLOSED, reason=reason))
            continue

        booking = next(
            (b for b in bookings if overlaps(b.start_time, b.end_time, slot_start, slot_end)),
            None,
        )
        if booking is not None:
            is_mine = actor is not None and booking.user_id == actor.user_id
            grid.append(
                HourSlot(
                    slot_start,
                    slot_end,
                    SLOT_MINE if is_mine else SLOT_BOOKED,
                    booking_id=booking.id if is_mine else None,
                )
            )
            continue

        if walk_in_account and rules.is_walk_in_hour(hour):
            grid.append(HourSlot(slot_start, slot_end, SLOT_WALK_IN))
            continue

        grid.append(HourSlot(slot_start, slot_end, SLOT_AVAILABLE))

    return grid
