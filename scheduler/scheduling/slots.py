"""
Slot enumeration.

Turns the working window of a date into bookable slots for one event type:
candidates start every SLOT_INCREMENT_MINUTES from the window start, must fit
entirely in the window, must start strictly after ``now`` and must not touch
any existing confirmed booking padded by the event type's buffers. Local times
skipped by a daylight-saving change are never offered.

Results depend on ``now`` and on the current bookings, so they are recomputed
on every call.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from scheduler.core.timezones import exists_locally, get_zone, local_datetime, to_utc
from scheduler.scheduling.availability import resolve_working_window

SLOT_INCREMENT_MINUTES = 15


@dataclass(frozen=True)
class Slot:
    start: datetime
    end: datetime


def buffered_interval(booking, buffer_before: int, buffer_after: int) -> tuple[datetime, datetime]:
    return (
        to_utc(booking.start_time) - timedelta(minutes=buffer_before),
        to_utc(booking.end_time) + timedelta(minutes=buffer_after),
    )


def overlaps(start: datetime, end: datetime, other_start: datetime, other_end: datetime) -> bool:
    """Half-open ``[start, end)`` intersection; touching endpoints do not overlap."""
    return start < other_end and end > other_start


def iterate_candidate_starts(start_minutes: int, end_minutes: int, duration: int) -> Iterable[int]:
    current = start_minutes
    while current + duration <= end_minutes:
        yield current
        current += SLOT_INCREMENT_MINUTES


def resolve_slots(
    event_type,
    availability,
    weekly_schedules: Iterable,
    overrides: Iterable,
    existing_bookings: Iterable,
    target_date: date,
    now: datetime,
) -> list[Slot]:
    if event_type.duration is None or event_type.duration <= 0:
        raise ValueError('Event type duration must be positive.')

    if availability is None:
        return []

    window = resolve_working_window(weekly_schedules, overrides, target_date)
    if window is None:
        return []

    zone = get_zone(availability.timezone)
    now = to_utc(now)
    duration = timedelta(minutes=event_type.duration)
    busy = [
        buffered_interval(booking, event_type.buffer_before or 0, event_type.buffer_after or 0)
        for booking in existing_bookings
    ]

    window_end = to_utc(local_datetime(target_date, window.end_minutes, zone))

    slots: list[Slot] = []
    for offset in iterate_candidate_starts(window.start_minutes, window.end_minutes, event_type.duration):
        local_start = local_datetime(target_date, offset, zone)
        if not exists_locally(local_start):
            continue

        slot_start = to_utc(local_start)
        slot_end = slot_start + duration

        if slot_end > window_end or slot_start <= now:
            continue

        if any(overlaps(slot_start, slot_end, busy_start, busy_end) for busy_start, busy_end in busy):
            continue

        slots.append(Slot(start=slot_start, end=slot_end))

    return slots


def format_slot_time(slot: Slot, timezone_name: Optional[str]) -> str:
    return slot.start.astimezone(get_zone(timezone_name)).strftime('%H:%M')
