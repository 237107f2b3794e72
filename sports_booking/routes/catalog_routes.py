import logging
from datetime import date, datetime, time
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sports_booking.auth.context import ActorContext
from sports_booking.auth.dependencies import get_current_actor, get_db, require_staff
from sports_booking.booking import queries
from sports_booking.booking.allocator import BookingRules
from sports_booking.booking.availability import build_day_grid
from sports_booking.models.facility import Category, Closure, Court
from sports_booking.routes.booking_routes import DATABASE_UNAVAILABLE_DETAIL, ensure_database_ready

router = APIRouter(tags=['catalog'])

logger = logging.getLogger(__name__)

MAX_CLOSURE_REASON_LENGTH = 200


class CategoryResponse(BaseModel):
    id: int
    name: str
    description: str | None = None
    image_url: str | None = None
    is_active: bool | None = None
    open_time: time | None = None
    close_time: time | None = None

    class Config:
        from_attributes = True


class CourtResponse(BaseModel):
    id: int
    category_id: int | None = None
    name: str
    type: str | None = None
    description: str | None = None
    price: Decimal | None = None
    image_url: str | None = None
    is_active: bool | None = None

    class Config:
        from_attributes = True


class CreateClosureRequest(BaseModel):
    closing_date: date
    start_time: time
    end_time: time
    reason: str | None = None

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > MAX_CLOSURE_REASON_LENGTH:
            raise ValueError(f'Reason must be {MAX_CLOSURE_REASON_LENGTH} characters or fewer.')

        return normalized

    @model_validator(mode='after')
    def validate_time_order(self) -> 'CreateClosureRequest':
        if self.start_time >= self.end_time:
            raise ValueError('Closure must end after it starts.')
        return self


class ClosureResponse(BaseModel):
    id: int
    category_id: int
    closing_date: date
    start_time: time
    end_time: time
    reason: str | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class HourSlotResponse(BaseModel):
    start_time: time
    end_time: time
    status: str
    reason: str | None = None
    booking_id: int | None = None

    class Config:
        from_attributes = True


def _database_unavailable() -> HTTPException:
    logger.exception('Catalog query failed')
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=DATABASE_UNAVAILABLE_DETAIL,
    )


@router.get('/categories', response_model=list[CategoryResponse])
def list_categories(db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return db.query(Category).order_by(Category.name.asc()).all()
    except SQLAlchemyError as exc:
        raise _database_unavailable() from exc


@router.get('/categories/{category_id}/closings', response_model=list[ClosureResponse])
def list_category_closings(category_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return queries.list_upcoming_closures(db, category_id, date.today())
    except SQLAlchemyError as exc:
        raise _database_unavailable() from exc


@router.post(
    '/categories/{category_id}/closings',
    response_model=ClosureResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_category_closing(
    category_id: int,
    data: CreateClosureRequest,
    actor: ActorContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        category = db.query(Category).filter(Category.id == category_id).first()
        if not category:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Category not found.',
            )

        closure = Closure(
            category_id=category_id,
            closing_date=data.closing_date,
            start_time=data.start_time,
            end_time=data.end_time,
            reason=data.reason,
        )
        db.add(closure)
        db.commit()
        db.refresh(closure)
    except SQLAlchemyError as exc:
        db.rollback()
        raise _database_unavailable() from exc

    logger.info(
        'Closure %s added to category %s on %s %s-%s by %s',
        closure.id,
        category_id,
        closure.closing_date,
        closure.start_time,
        closure.end_time,
        actor.user_id,
    )
    return closure


@router.delete('/categories/closings/{closure_id}', status_code=status.HTTP_204_NO_CONTENT)
def remove_category_closing(
    closure_id: int,
    actor: ActorContext = Depends(require_staff),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        closure = db.query(Closure).filter(Closure.id == closure_id).first()
        if not closure:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Closure not found.',
            )

        db.delete(closure)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise _database_unavailable() from exc

    logger.info('Closure %s removed by %s', closure_id, actor.user_id)


@router.get('/courts', response_model=list[CourtResponse])
def list_courts(
    category_id: int | None = Query(default=None),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        query = db.query(Court)
        if category_id is not None:
            query = query.filter(Court.category_id == category_id)
        return query.order_by(Court.id.asc()).all()
    except SQLAlchemyError as exc:
        raise _database_unavailable() from exc


@router.get('/courts/{court_id}', response_model=CourtResponse)
def get_court(court_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        court = queries.get_court(db, court_id)
    except SQLAlchemyError as exc:
        raise _database_unavailable() from exc

    if not court:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Court not found.',
        )
    return court


@router.get('/courts/{court_id}/availability', response_model=list[HourSlotResponse])
def get_court_availability(
    court_id: int,
    day: date | None = Query(default=None),
    actor: ActorContext | None = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        grid = build_day_grid(db, court_id, day or date.today(), actor, BookingRules.from_config())
    except SQLAlchemyError as exc:
        raise _database_unavailable() from exc

    if grid is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Court not found.',
        )
    return grid
