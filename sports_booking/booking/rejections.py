"""Typed outcomes for booking requests that are refused.

A rejection is an expected answer, not a fault: the allocator and the status
guard return these as values and the HTTP layer turns them into responses.
Storage failures are raised as ``PersistenceError`` instead.
"""

from dataclasses import asdict, dataclass
from typing import ClassVar

from fastapi import status


class PersistenceError(Exception):
    """The database could not be read or written. Safe to retry."""


@dataclass(frozen=True)
class Rejection:
    code: ClassVar[str] = 'rejected'
    status_code: ClassVar[int] = status.HTTP_400_BAD_REQUEST

    @property
    def message(self) -> str:
        return 'The request was rejected.'

    def as_detail(self) -> dict:
        return {'code': self.code, 'message': self.message, **asdict(self)}


@dataclass(frozen=True)
class Unauthenticated(Rejection):
    code: ClassVar[str] = 'unauthenticated'
    status_code: ClassVar[int] = status.HTTP_401_UNAUTHORIZED

    @property
    def message(self) -> str:
        return 'Please sign in to make a booking.'


@dataclass(frozen=True)
class InvalidTimeRange(Rejection):
    code: ClassVar[str] = 'invalid_time_range'

    @property
    def message(self) -> str:
        return 'Bookings must start and end on the hour, and end after they start.'


@dataclass(frozen=True)
class OutsideBookingWindow(Rejection):
    code: ClassVar[str] = 'outside_booking_window'
    first_bookable_date: str = ''
    last_bookable_date: str = ''

    @property
    def message(self) -> str:
        if self.first_bookable_date == self.last_bookable_date:
            return f'Bookings can only be made for {self.first_bookable_date}.'
        return f'Bookings can only be made from {self.first_bookable_date} to {self.last_bookable_date}.'


@dataclass(frozen=True)
class OutsideOperatingHours(Rejection):
    code: ClassVar[str] = 'outside_operating_hours'
    open_time: str = ''
    close_time: str = ''

    @property
    def message(self) -> str:
        return f'This court can only be booked between {self.open_time} and {self.close_time}.'


@dataclass(frozen=True)
class ClosedForMaintenance(Rejection):
    code: ClassVar[str] = 'closed_for_maintenance'
    status_code: ClassVar[int] = status.HTTP_409_CONFLICT
    reason: str = ''

    @property
    def message(self) -> str:
        return f'This time is unavailable: {self.reason}'


@dataclass(frozen=True)
class WalkInOnly(Rejection):
    code: ClassVar[str] = 'walk_in_only'
    status_code: ClassVar[int] = status.HTTP_403_FORBIDDEN
    window_start: str = ''
    window_end: str = ''

    @property
    def message(self) -> str:
        return (
            f'{self.window_start} to {self.window_end} is walk-in only for campus accounts '
            'and cannot be booked online.'
        )


@dataclass(frozen=True)
class DailyQuotaExceeded(Rejection):
    code: ClassVar[str] = 'daily_quota_exceeded'
    status_code: ClassVar[int] = status.HTTP_409_CONFLICT
    hours_remaining: int = 0
    daily_limit: int = 0

    @property
    def message(self) -> str:
        return (
            f'You can book at most {self.daily_limit} hours per day '
            f'({self.hours_remaining} remaining).'
        )


@dataclass(frozen=True)
class SlotConflict(Rejection):
    code: ClassVar[str] = 'slot_conflict'
    status_code: ClassVar[int] = status.HTTP_409_CONFLICT

    @property
    def message(self) -> str:
        return 'This time has already been booked. Please choose another time.'


@dataclass(frozen=True)
class SlotConflictAtCommit(Rejection):
    """Another request took the hours between our checks and our insert."""

    code: ClassVar[str] = 'slot_conflict_at_commit'
    status_code: ClassVar[int] = status.HTTP_409_CONFLICT
    guard: str = 'court'
    retryable: bool = True

    @property
    def message(self) -> str:
        return 'Someone just booked this time. Refresh and try again.'


@dataclass(frozen=True)
class InvalidTransition(Rejection):
    code: ClassVar[str] = 'invalid_transition'
    status_code: ClassVar[int] = status.HTTP_409_CONFLICT
    current_status: str = ''
    requested_status: str = ''

    @property
    def message(self) -> str:
        return f'A {self.current_status} booking cannot be changed to {self.requested_status}.'


@dataclass(frozen=True)
class CourtNotFound(Rejection):
    code: ClassVar[str] = 'court_not_found'
    status_code: ClassVar[int] = status.HTTP_404_NOT_FOUND

    @property
    def message(self) -> str:
        return 'Court not found.'


@dataclass(frozen=True)
class CourtInactive(Rejection):
    code: ClassVar[str] = 'court_inactive'
    status_code: ClassVar[int] = status.HTTP_409_CONFLICT

    @property
    def message(self) -> str:
        return 'This court is not open for booking.'


@dataclass(frozen=True)
class BookingNotFound(Rejection):
    code: ClassVar[str] = 'booking_not_found'
    status_code: ClassVar[int] = status.HTTP_404_NOT_FOUND

    @property
    def message(self) -> str:
        return 'Booking not found.'
