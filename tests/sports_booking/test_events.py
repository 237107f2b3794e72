import logging

from sports_booking.events import BookingChange, ChangeNotifier


def _change(booking_id: int = 1) -> BookingChange:
    return BookingChange(
        event_type='INSERT',
        booking_id=booking_id,
        court_id=3,
        booking_date='2026-03-02',
        status='pending',
    )


def test_subscribers_receive_published_changes() -> None:
    notifier = ChangeNotifier()
    received = []
    notifier.subscribe(received.append)

    notifier.publish(_change())

    assert received == [_change()]


def test_unsubscribe_stops_delivery() -> None:
    notifier = ChangeNotifier()
    received = []
    unsubscribe = notifier.subscribe(received.append)

    unsubscribe()
    unsubscribe()
    notifier.publish(_change())

    assert received == []
    assert notifier.subscriber_count == 0


def test_failing_subscriber_does_not_block_others(caplog) -> None:
    notifier = ChangeNotifier()
    received = []

    def broken(_change):
        raise RuntimeError('view went away')

    notifier.subscribe(broken)
    notifier.subscribe(received.append)

    with caplog.at_level(logging.ERROR, logger='sports_booking.events'):
        notifier.publish(_change(7))

    assert [change.booking_id for change in received] == [7]
    assert 'booking 7' in caplog.text


def test_payload_is_json_ready() -> None:
    assert _change().as_payload() == {
        'event_type': 'INSERT',
        'booking_id': 1,
        'court_id': 3,
        'booking_date': '2026-03-02',
        'status': 'pending',
    }
