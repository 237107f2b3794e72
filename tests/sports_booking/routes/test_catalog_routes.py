from datetime import date, time, timedelta

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from sports_booking.models.facility import Closure
from sports_booking.routes.catalog_routes import (
    CreateClosureRequest,
    create_category_closing,
    get_court,
    get_court_availability,
    list_categories,
    list_category_closings,
    list_courts,
    remove_category_closing,
)


@pytest.fixture(autouse=True)
def skip_schema_check(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr('sports_booking.routes.catalog_routes.ensure_database_ready', lambda: None)


def test_create_closure_request_normalizes_reason() -> None:
    request = CreateClosureRequest(
        closing_date=date(2026, 3, 2), start_time=time(12), end_time=time(14), reason='  Floor polishing  ',
    )

    assert request.reason == 'Floor polishing'


def test_create_closure_request_rejects_reversed_times() -> None:
    with pytest.raises(ValidationError):
        CreateClosureRequest(closing_date=date(2026, 3, 2), start_time=time(14), end_time=time(12))


def test_list_categories_and_courts(db, category, court, other_court) -> None:
    assert [item.name for item in list_categories(db=db)] == ['Badminton']
    assert [item.id for item in list_courts(category_id=category.id, db=db)] == [court.id, other_court.id]
    assert list_courts(category_id=category.id + 1, db=db) == []


def test_get_court_not_found(db) -> None:
    with pytest.raises(HTTPException) as exception_info:
        get_court(court_id=404, db=db)

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Court not found.'


def test_staff_adds_and_removes_closure(db, category, staff) -> None:
    tomorrow = date.today() + timedelta(days=1)
    data = CreateClosureRequest(closing_date=tomorrow, start_time=time(12), end_time=time(14), reason='Tournament')

    closure = create_category_closing(category_id=category.id, data=data, actor=staff, db=db)

    assert [item.id for item in list_category_closings(category_id=category.id, db=db)] == [closure.id]

    remove_category_closing(closure_id=closure.id, actor=staff, db=db)

    assert db.query(Closure).count() == 0


def test_past_closures_are_not_listed(db, category, add_closure) -> None:
    add_closure(time(12), time(14), closing_date=date.today() - timedelta(days=1))

    assert list_category_closings(category_id=category.id, db=db) == []


def test_closure_for_unknown_category(db, staff) -> None:
    data = CreateClosureRequest(closing_date=date.today(), start_time=time(12), end_time=time(14))

    with pytest.raises(HTTPException) as exception_info:
        create_category_closing(category_id=404, data=data, actor=staff, db=db)

    assert exception_info.value.status_code == 404


def test_removing_unknown_closure(db, staff) -> None:
    with pytest.raises(HTTPException) as exception_info:
        remove_category_closing(closure_id=404, actor=staff, db=db)

    assert exception_info.value.status_code == 404


def test_court_availability_reflects_closures(db, court, alice, add_closure) -> None:
    add_closure(time(12), time(13), reason='Cleaning', closing_date=date(2026, 3, 2))

    grid = get_court_availability(court_id=court.id, day=date(2026, 3, 2), actor=alice, db=db)

    by_hour = {slot.start_time.hour: slot for slot in grid}
    assert by_hour[12].status == 'closed'
    assert by_hour[12].reason == 'Cleaning'
    assert by_hour[13].status == 'available'


def test_court_availability_for_unknown_court(db) -> None:
    with pytest.raises(HTTPException) as exception_info:
        get_court_availability(court_id=404, day=date(2026, 3, 2), actor=None, db=db)

    assert exception_info.value.status_code == 404
