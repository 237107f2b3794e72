from datetime import date, time

from sports_booking.booking.allocator import create_booking
from sports_booking.booking.availability import (
    SLOT_AVAILABLE,
    SLOT_BOOKED,
    SLOT_CLOSED,
    SLOT_MINE,
    SLOT_WALK_IN,
    build_day_grid,
)

BOOKING_DAY = date(2026, 3, 2)


def _statuses(grid) -> dict[int, str]:
    return {slot.start_time.hour: slot.status for slot in grid}


def test_grid_covers_category_opening_hours(db, court, alice, rules) -> None:
    grid = build_day_grid(db, court.id, BOOKING_DAY, alice, rules)

    assert [slot.start_time.hour for slot in grid] == list(range(8, 21))
    assert {slot.status for slot in grid} == {SLOT_AVAILABLE}


def test_grid_marks_bookings_closures_and_ownership(db, court, alice, bob, rules, notifier, add_closure) -> None:
    create_booking(db, alice, court.id, BOOKING_DAY, time(16), time(18), today=BOOKING_DAY, rules=rules, notifier=notifier)
    add_closure(time(12, 0), time(14, 0), reason='Floor polishing')

    alice_view = build_day_grid(db, court.id, BOOKING_DAY, alice, rules)
    bob_view = _statuses(build_day_grid(db, court.id, BOOKING_DAY, bob, rules))

    assert _statuses(alice_view)[16] == SLOT_MINE
    assert _statuses(alice_view)[17] == SLOT_MINE
    assert bob_view[16] == SLOT_BOOKED
    assert bob_view[12] == SLOT_CLOSED
    assert bob_view[13] == SLOT_CLOSED
    assert bob_view[14] == SLOT_AVAILABLE
    closed = next(slot for slot in alice_view if slot.start_time.hour == 12)
    assert closed.reason == 'Floor polishing'


def test_grid_shows_walk_in_hours_only_to_campus_accounts(db, court, alice, campus_student, rules) -> None:
    campus_view = _statuses(build_day_grid(db, court.id, BOOKING_DAY, campus_student, rules))
    public_view = _statuses(build_day_grid(db, court.id, BOOKING_DAY, alice, rules))

    assert campus_view[8] == SLOT_WALK_IN
    assert campus_view[15] == SLOT_WALK_IN
    assert campus_view[16] == SLOT_AVAILABLE
    assert public_view[8] == SLOT_AVAILABLE


def test_grid_for_unknown_court_is_none(db, rules) -> None:
    assert build_day_grid(db, 404, BOOKING_DAY, None, rules) is None
