import asyncio
import json
import logging
from datetime import date, datetime, time

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sports_booking.auth.context import ActorContext
from sports_booking.auth.dependencies import get_current_actor, get_db, require_actor, require_staff
from sports_booking.booking import allocator, queries, transitions
from sports_booking.booking.rejections import PersistenceError, Rejection
from sports_booking.database import ensure_booking_schema
from sports_booking.events import BookingChange, ChangeNotifier, booking_changes
from sports_booking.models.booking import Booking, BookingStatus

router = APIRouter(tags=['bookings'])

logger = logging.getLogger(__name__)

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and Postgres credentials.'
MAX_PAYMENT_PROOF_URL_LENGTH = 2048
STREAM_KEEPALIVE_SECONDS = 15.0


class CreateBookingRequest(BaseModel):
    court_id: int
    booking_date: date
    start_time: time
    end_time: time
    payment_proof_url: str | None = None

    @field_validator('payment_proof_url')
    @classmethod
    def validate_payment_proof_url(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > MAX_PAYMENT_PROOF_URL_LENGTH:
            raise ValueError(f'Payment proof URL must be {MAX_PAYMENT_PROOF_URL_LENGTH} characters or fewer.')

        return normalized


class UpdateBookingStatusRequest(BaseModel):
    status: BookingStatus

    @field_validator('status', mode='before')
    @classmethod
    def normalize_status(cls, value):
        if isinstance(value, str):
            try:
                return transitions.parse_status(value)
            except ValueError as exc:
                raise ValueError('Status must be one of pending, paid, confirmed or cancelled.') from exc
        return value


class PublicBookingResponse(BaseModel):
    """What anyone may see of a booking: enough to draw the day grid."""

    id: int
    court_id: int
    booking_date: date
    start_time: time
    end_time: time
    status: str

    class Config:
        from_attributes = True


class BookingResponse(BaseModel):
    id: int
    user_id: str
    court_id: int
    booking_date: date
    start_time: time
    end_time: time
    status: str
    payment_proof_url: str | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


def ensure_database_ready() -> None:
    try:
        ensure_booking_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


def raise_for_rejection(rejection: Rejection) -> None:
    raise HTTPException(status_code=rejection.status_code, detail=rejection.as_detail())


def format_sse(change: BookingChange) -> str:
    return f'event: booking\ndata: {json.dumps(change.as_payload())}\n\n'


async def booking_change_stream(
    request: Request,
    notifier: ChangeNotifier = booking_changes,
    keepalive_seconds: float = STREAM_KEEPALIVE_SECONDS,
):
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[BookingChange] = asyncio.Queue()

    def on_change(change: BookingChange) -> None:
        # Called from whichever worker thread committed the change.
        loop.call_soon_threadsafe(queue.put_nowait, change)

    unsubscribe = notifier.subscribe(on_change)
    try:
        yield ': connected\n\n'
        while not await request.is_disconnected():
            try:
                change = await asyncio.wait_for(queue.get(), timeout=keepalive_seconds)
            except asyncio.TimeoutError:
                yield ': keepalive\n\n'
                continue
            yield format_sse(change)
    finally:
        unsubscribe()


@router.post('', response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    data: CreateBookingRequest,
    actor: ActorContext | None = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        result = allocator.create_booking(
            db,
            actor,
            court_id=data.court_id,
            booking_date=data.booking_date,
            start_time=data.start_time,
            end_time=data.end_time,
            payment_proof_url=data.payment_proof_url,
        )
    except PersistenceError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc

    if isinstance(result, Rejection):
        raise_for_rejection(result)

    return result


@router.put('/{booking_id}/status', response_model=BookingResponse)
def update_booking_status(
    booking_id: int,
    data: UpdateBookingStatusRequest,
    actor: ActorContext | None = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        if actor is not None and not actor.is_staff:
            booking = db.query(Booking).filter(Booking.id == booking_id).first()
            if booking is not None and (
                booking.user_id != actor.user_id or data.status is not BookingStatus.CANCELLED
            ):
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail='Only staff can approve bookings, and users can only cancel their own bookings.',
                )

        result = transitions.update_booking_status(db, booking_id, data.status, actor)
    except (PersistenceError, SQLAlchemyError) as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc

    if isinstance(result, Rejection):
        raise_for_rejection(result)

    return result


@router.get('/date/{day}', response_model=list[PublicBookingResponse])
def list_bookings_by_date(
    day: date,
    include_cancelled: bool = Query(default=False),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return queries.list_bookings_for_date(db, day, include_cancelled=include_cancelled)
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.get('/me', response_model=list[BookingResponse])
def list_my_bookings(
    actor: ActorContext = Depends(require_actor),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return queries.list_bookings_for_user(db, actor.user_id)
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.get('/all', response_model=list[BookingResponse])
def list_all_bookings(
    actor: ActorContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    del actor
    ensure_database_ready()

    try:
        return queries.list_all_bookings(db)
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.get('/changes')
async def stream_booking_changes(request: Request):
    return StreamingResponse(booking_change_stream(request), media_type='text/event-stream')
