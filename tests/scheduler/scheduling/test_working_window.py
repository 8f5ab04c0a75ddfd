from datetime import date, time
from types import SimpleNamespace

from scheduler.scheduling.availability import (
    WorkingWindow,
    day_of_week,
    minutes_since_midnight,
    resolve_working_window,
)

MONDAY = date(2026, 1, 5)


def _schedule(day: int, start: time, end: time) -> SimpleNamespace:
    return SimpleNamespace(day_of_week=day, start_time=start, end_time=end)


def _override(day: date, start: time | None = None, end: time | None = None, blocked: bool = False) -> SimpleNamespace:
    return SimpleNamespace(date=day, start_time=start, end_time=end, is_blocked=blocked)


def test_day_of_week_counts_from_sunday() -> None:
    assert day_of_week(date(2026, 1, 4)) == 0
    assert day_of_week(MONDAY) == 1
    assert day_of_week(date(2026, 1, 10)) == 6


def test_minutes_since_midnight() -> None:
    assert minutes_since_midnight(time(9, 45)) == 585


def test_weekly_schedule_applies_when_no_override() -> None:
    window = resolve_working_window([_schedule(1, time(9, 0), time(12, 0))], [], MONDAY)

    assert window == WorkingWindow(540, 720)


def test_no_schedule_for_weekday_yields_no_window() -> None:
    assert resolve_working_window([_schedule(2, time(9, 0), time(12, 0))], [], MONDAY) is None


def test_blocked_override_closes_the_day() -> None:
    window = resolve_working_window(
        [_schedule(1, time(9, 0), time(12, 0))],
        [_override(MONDAY, time(13, 0), time(15, 0), blocked=True)],
        MONDAY,
    )

    assert window is None


def test_override_hours_replace_weekly_schedule() -> None:
    window = resolve_working_window(
        [_schedule(1, time(9, 0), time(12, 0))],
        [_override(MONDAY, time(14, 0), time(16, 30))],
        MONDAY,
    )

    assert window == WorkingWindow(840, 990)


def test_override_without_hours_falls_back_to_weekly_schedule() -> None:
    window = resolve_working_window(
        [_schedule(1, time(9, 0), time(12, 0))],
        [_override(MONDAY)],
        MONDAY,
    )

    assert window == WorkingWindow(540, 720)


def test_override_for_another_date_is_ignored() -> None:
    window = resolve_working_window(
        [_schedule(1, time(9, 0), time(12, 0))],
        [_override(date(2026, 1, 12), blocked=True)],
        MONDAY,
    )

    assert window == WorkingWindow(540, 720)


def test_override_on_day_without_weekly_hours_opens_it() -> None:
    sunday = date(2026, 1, 4)

    window = resolve_working_window([], [_override(sunday, time(10, 0), time(11, 0))], sunday)

    assert window == WorkingWindow(600, 660)
