"""
Overlap detection against stored bookings.

``has_conflict`` is the write-time guard consulted before a booking is created
or rescheduled. It compares raw booking intervals unless buffers are passed in,
while the slot resolver always pads existing bookings with the event type's
buffers. Callers decide which behaviour they want through
``config.ENFORCE_BUFFERS_ON_WRITE``.

The guard only reads. Callers must hold ``lock_event_type`` in the same
transaction so that two writers for one event type cannot both pass the check.
"""

from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from scheduler.core.timezones import day_bounds, get_zone, to_utc
from scheduler.models.booking import STATUS_CONFIRMED, Booking
from scheduler.models.event_type import EventType


def lock_event_type(db: Session, event_type_id: int, host_id: int) -> Optional[EventType]:
    """Load the event type with a row lock held until the transaction ends."""
    return db.query(EventType).filter(
        EventType.id == event_type_id,
        EventType.user_id == host_id,
    ).with_for_update().first()


def find_conflicting_booking(
    db: Session,
    event_type_id: int,
    candidate_start: datetime,
    candidate_end: datetime,
    excluding_booking_id: Optional[int] = None,
    buffer_before: int = 0,
    buffer_after: int = 0,
) -> Optional[Booking]:
    # existing.start - before < end  and  existing.end + after > start
    latest_start = to_utc(candidate_end) + timedelta(minutes=buffer_before)
    earliest_end = to_utc(candidate_start) - timedelta(minutes=buffer_after)

    query = db.query(Booking).filter(
        Booking.event_type_id == event_type_id,
        Booking.status == STATUS_CONFIRMED,
        Booking.start_time < latest_start,
        Booking.end_time > earliest_end,
    )
    if excluding_booking_id is not None:
        query = query.filter(Booking.id != excluding_booking_id)

    return query.order_by(Booking.start_time.asc()).first()


def has_conflict(
    db: Session,
    event_type_id: int,
    candidate_start: datetime,
    candidate_end: datetime,
    excluding_booking_id: Optional[int] = None,
    buffer_before: int = 0,
    buffer_after: int = 0,
) -> bool:
    return find_conflicting_booking(
        db,
        event_type_id,
        candidate_start,
        candidate_end,
        excluding_booking_id=excluding_booking_id,
        buffer_before=buffer_before,
        buffer_after=buffer_after,
    ) is not None


def list_confirmed_bookings_on_day(
    db: Session,
    event_type_id: int,
    target_date: date,
    timezone_name: Optional[str],
) -> list[Booking]:
    """Confirmed bookings that intersect ``target_date`` in the host zone."""
    day_start, day_end = day_bounds(target_date, get_zone(timezone_name))
    return db.query(Booking).filter(
        Booking.event_type_id == event_type_id,
        Booking.status == STATUS_CONFIRMED,
        Booking.start_time < day_end,
        Booking.end_time > day_start,
    ).order_by(Booking.start_time.asc()).all()
