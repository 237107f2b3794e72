import os
from datetime import date, time

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')
os.environ.setdefault('JWT_SECRET_KEY', 'test-secret-key-with-enough-length-for-hs256')

from sports_booking.auth.context import ActorContext  # noqa: E402
from sports_booking.booking.allocator import BookingRules  # noqa: E402
from sports_booking.database import Base  # noqa: E402
from sports_booking.events import ChangeNotifier  # noqa: E402
from sports_booking.models import booking, facility, user  # noqa: E402,F401
from sports_booking.models.facility import Category, Closure, Court  # noqa: E402

BOOKING_DAY = date(2026, 3, 2)


@pytest.fixture
def db_engine():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def db(db_engine):
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def rules() -> BookingRules:
    return BookingRules(
        daily_hour_quota=2,
        booking_window_days=0,
        walk_in_email_domain='@ku.th',
        walk_in_start_hour=8,
        walk_in_end_hour=16,
        default_closure_reason='closed for maintenance',
    )


@pytest.fixture
def notifier() -> ChangeNotifier:
    return ChangeNotifier()


@pytest.fixture
def category(db) -> Category:
    category = Category(name='Badminton', is_active=True, open_time=time(8, 0), close_time=time(21, 0))
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


@pytest.fixture
def court(db, category) -> Court:
    court = Court(name='Court 1', category_id=category.id, price=100, is_active=True)
    db.add(court)
    db.commit()
    db.refresh(court)
    return court


@pytest.fixture
def other_court(db, category) -> Court:
    court = Court(name='Court 2', category_id=category.id, price=100, is_active=True)
    db.add(court)
    db.commit()
    db.refresh(court)
    return court


@pytest.fixture
def add_closure(db, category):
    def _add(start_time: time, end_time: time, reason: str | None = 'Maintenance', closing_date: date = BOOKING_DAY):
        closure = Closure(
            category_id=category.id,
            closing_date=closing_date,
            start_time=start_time,
            end_time=end_time,
            reason=reason,
        )
        db.add(closure)
        db.commit()
        db.refresh(closure)
        return closure

    return _add


@pytest.fixture
def alice() -> ActorContext:
    return ActorContext(user_id='user-alice', email='alice@example.com')


@pytest.fixture
def bob() -> ActorContext:
    return ActorContext(user_id='user-bob', email='bob@example.com')


@pytest.fixture
def campus_student() -> ActorContext:
    return ActorContext(user_id='user-somchai', email='Somchai.K@KU.TH')


@pytest.fixture
def staff() -> ActorContext:
    return ActorContext(user_id='user-staff', email='desk@example.com', role='staff')
