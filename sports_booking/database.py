import os
from threading import Lock

from dotenv import load_dotenv
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from sports_booking.core import config


load_dotenv()
DATABASE_URL = os.getenv("DATABASE_URL")

engine = create_engine(DATABASE_URL, echo=config.SQL_ECHO, pool_pre_ping=True)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_booking_schema_checked = False

LOOKUP_INDEXES = [
    ('bookings', 'CREATE INDEX IF NOT EXISTS idx_bookings_court_date ON bookings(court_id, booking_date)'),
    ('bookings', 'CREATE INDEX IF NOT EXISTS idx_bookings_user_date ON bookings(user_id, booking_date)'),
    ('bookings', 'CREATE INDEX IF NOT EXISTS idx_bookings_status_date ON bookings(status, booking_date)'),
    (
        'category_closings',
        'CREATE INDEX IF NOT EXISTS idx_category_closings_category_date '
        'ON category_closings(category_id, closing_date)',
    ),
]


def ensure_booking_schema(bind=None) -> None:
    global _booking_schema_checked

    if _booking_schema_checked and bind is None:
        return

    with _schema_lock:
        if _booking_schema_checked and bind is None:
            return

        target = bind or engine
        existing_tables = set(inspect(target).get_table_names())

        with target.begin() as connection:
            for table_name, statement in LOOKUP_INDEXES:
                if table_name in existing_tables:
                    connection.execute(text(statement))

        if bind is None:
            _booking_schema_checked = True
