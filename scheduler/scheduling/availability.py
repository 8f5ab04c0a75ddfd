"""
Working window resolution.

Decides which wall-clock hours apply to one calendar date: a blocked date
override closes the day, an override with explicit hours replaces the weekly
schedule outright (no merging), otherwise the weekly schedule for that weekday
applies.
"""

from dataclasses import dataclass
from datetime import date, time
from typing import Iterable, Optional


@dataclass(frozen=True)
class WorkingWindow:
    start_minutes: int
    end_minutes: int

    @classmethod
    def from_times(cls, start: time, end: time) -> 'WorkingWindow':
        return cls(minutes_since_midnight(start), minutes_since_midnight(end))

    def is_empty(self) -> bool:
        return self.end_minutes <= self.start_minutes


def minutes_since_midnight(value: time) -> int:
    return value.hour * 60 + value.minute


def day_of_week(target_date: date) -> int:
    """0=Sunday .. 6=Saturday."""
    return (target_date.weekday() + 1) % 7


def find_override(overrides: Iterable, target_date: date):
    for override in overrides:
        if override.date == target_date:
            return override
    return None


def find_weekly_schedule(weekly_schedules: Iterable, weekday: int):
    for schedule in weekly_schedules:
        if schedule.day_of_week == weekday:
            return schedule
    return None


def resolve_working_window(
    weekly_schedules: Iterable,
    overrides: Iterable,
    target_date: date,
) -> Optional[WorkingWindow]:
    override = find_override(overrides, target_date)

    if override is not None and override.is_blocked:
        return None

    if override is not None and override.start_time is not None and override.end_time is not None:
        window = WorkingWindow.from_times(override.start_time, override.end_time)
    else:
        schedule = find_weekly_schedule(weekly_schedules, day_of_week(target_date))
        if schedule is None:
            return None
        window = WorkingWindow.from_times(schedule.start_time, schedule.end_time)

    if window.is_empty():
        return None

    return window
