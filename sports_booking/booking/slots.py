from datetime import time


def is_whole_hour(value: time) -> bool:
    return value.minute == 0 and value.second == 0 and value.microsecond == 0


def hours_between(start_time: time, end_time: time) -> int:
    """Number of whole hours in [start_time, end_time); 0 when the range is empty."""
    return max(0, end_time.hour - start_time.hour)


def iterate_slot_hours(start_time: time, end_time: time) -> list[int]:
    return list(range(start_time.hour, end_time.hour))


def overlaps(a_start: time, a_end: time, b_start: time, b_end: time) -> bool:
    # Half-open intervals: a booking ending at 17:00 does not touch one starting at 17:00.
    return a_start < b_end and a_end > b_start


def within_window(start_time: time, end_time: time, open_time: time, close_time: time) -> bool:
    return open_time <= start_time and end_time <= close_time


def hour_to_time(hour: int) -> time:
    return time(hour, 0)


def format_hour(value: time) -> str:
    return value.strftime('%H:%M')
