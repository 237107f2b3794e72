from datetime import date, time

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from sports_booking.auth.context import ActorContext
from sports_booking.booking import store
from sports_booking.booking.allocator import create_booking
from sports_booking.booking.rejections import PersistenceError, SlotConflictAtCommit
from sports_booking.database import Base
from sports_booking.models.booking import Booking, BookingStatus, QuotaUnit
from sports_booking.models.facility import Category, Court
from sports_booking.models.user import Profile

BOOKING_DAY = date(2026, 3, 2)


@pytest.fixture
def strict_db():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, 'connect')
    def enable_foreign_keys(dbapi_connection, _connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()

    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    category = Category(name='Tennis', is_active=True, open_time=time(8, 0), close_time=time(21, 0))
    session.add(category)
    session.flush()
    session.add(Court(id=1, name='Court A', category_id=category.id, is_active=True))
    session.add(Profile(id='user-known', email='known@example.com'))
    session.commit()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


def _book(db, actor, court_id, start_hour, end_hour, rules, notifier):
    return create_booking(
        db, actor, court_id, BOOKING_DAY, time(start_hour), time(end_hour),
        today=BOOKING_DAY, rules=rules, notifier=notifier,
    )


def test_constraint_failure_other_than_guards_is_a_persistence_error(strict_db, rules, notifier) -> None:
    actor = ActorContext(user_id='user-without-profile', email='nobody@example.com')
    events = []
    notifier.subscribe(events.append)

    with pytest.raises(PersistenceError):
        _book(strict_db, actor, 1, 18, 19, rules, notifier)

    assert strict_db.query(Booking).count() == 0
    assert events == []


def test_known_profile_books_with_foreign_keys_enforced(strict_db, rules, notifier) -> None:
    actor = ActorContext(user_id='user-known', email='known@example.com')

    assert isinstance(_book(strict_db, actor, 1, 18, 19, rules, notifier), Booking)


def test_taken_quota_unit_is_retried_with_fresh_units(
    db, court, other_court, alice, rules, notifier, monkeypatch: pytest.MonkeyPatch,
) -> None:
    assert isinstance(_book(db, alice, court.id, 16, 17, rules, notifier), Booking)
    real_free_units = store._free_quota_units
    calls = []

    def stale_then_fresh(session, user_id, booking, daily_quota):
        calls.append(user_id)
        if len(calls) == 1:
            # Read before the first booking's unit was visible.
            return list(range(daily_quota))
        return real_free_units(session, user_id, booking, daily_quota)

    monkeypatch.setattr(store, '_free_quota_units', stale_then_fresh)
    events = []
    notifier.subscribe(events.append)

    result = _book(db, alice, other_court.id, 17, 18, rules, notifier)

    assert isinstance(result, Booking)
    assert len(calls) == 2
    assert sorted(unit.unit_index for unit in db.query(QuotaUnit).all()) == [0, 1]
    assert [(event.event_type, event.booking_id) for event in events] == [('INSERT', result.id)]


def test_quota_retries_stop_when_units_keep_being_taken(
    db, court, other_court, alice, rules, notifier, monkeypatch: pytest.MonkeyPatch,
) -> None:
    assert isinstance(_book(db, alice, court.id, 16, 18, rules, notifier), Booking)
    calls = []

    def always_stale(session, user_id, booking, daily_quota):
        calls.append(user_id)
        return list(range(daily_quota))

    monkeypatch.setattr('sports_booking.booking.queries.sum_user_hours', lambda *args: 0)
    monkeypatch.setattr(store, '_free_quota_units', always_stale)

    result = _book(db, alice, other_court.id, 18, 19, rules, notifier)

    assert result == SlotConflictAtCommit(guard='quota')
    assert len(calls) == rules.daily_hour_quota + 1
    assert db.query(Booking).count() == 1


def test_reload_failure_after_commit_is_a_persistence_error(
    db, court, alice, rules, notifier, monkeypatch: pytest.MonkeyPatch,
) -> None:
    events = []
    notifier.subscribe(events.append)

    def lost_connection(*args, **kwargs):
        raise OperationalError('SELECT bookings', {}, Exception('connection lost'))

    monkeypatch.setattr(db, 'refresh', lost_connection)

    with pytest.raises(PersistenceError):
        _book(db, alice, court.id, 18, 19, rules, notifier)

    assert [event.event_type for event in events] == ['INSERT']


def test_status_reload_failure_is_a_persistence_error(
    db, court, alice, rules, notifier, monkeypatch: pytest.MonkeyPatch,
) -> None:
    booking = _book(db, alice, court.id, 18, 19, rules, notifier)

    def lost_connection(*args, **kwargs):
        raise OperationalError('SELECT bookings', {}, Exception('connection lost'))

    monkeypatch.setattr(db, 'refresh', lost_connection)

    with pytest.raises(PersistenceError):
        store.update_status(db, booking, BookingStatus.PAID, notifier=notifier)
