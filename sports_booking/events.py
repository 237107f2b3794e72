"""Publish/subscribe for booking changes.

Views subscribe to learn that the booking grid needs refreshing. Only the
booking store publishes, once per committed mutation.
"""

import logging
from dataclasses import asdict, dataclass
from threading import Lock
from typing import Callable


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingChange:
    event_type: str  # INSERT/UPDATE
    booking_id: int
    court_id: int
    booking_date: str
    status: str

    def as_payload(self) -> dict:
        return asdict(self)


Subscriber = Callable[[BookingChange], None]


class ChangeNotifier:
    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []
        self._lock = Lock()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, event: BookingChange) -> None:
        with self._lock:
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                logger.exception('Booking change subscriber failed for booking %s', event.booking_id)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)


booking_changes = ChangeNotifier()
