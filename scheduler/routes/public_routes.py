import logging
from datetime import date, datetime

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from scheduler.core.errors import NotFoundError, StoreError
from scheduler.core.timezones import UTC
from scheduler.models.availability import Availability
from scheduler.models.event_type import EventType
from scheduler.models.user import User
from scheduler.routes.availability_routes import get_default_availability
from scheduler.routes.booking_routes import BookingDetailResponse, CreateBookingRequest, create_booking
from scheduler.routes.dependencies import get_db, get_host_by_username
from scheduler.routes.event_type_routes import QuestionResponse
from scheduler.scheduling.overlap import list_confirmed_bookings_on_day
from scheduler.scheduling.slots import format_slot_time, resolve_slots

router = APIRouter(tags=['public'])

logger = logging.getLogger(__name__)


class PublicUserResponse(BaseModel):
    id: int
    name: str
    username: str
    timezone: str

    class Config:
        from_attributes = True


class PublicEventTypeResponse(BaseModel):
    id: int
    title: str
    description: str
    duration: int
    slug: str
    color: str

    class Config:
        from_attributes = True


class PublicProfileResponse(BaseModel):
    user: PublicUserResponse
    event_types: list[PublicEventTypeResponse]


class PublicEventTypeDetailResponse(BaseModel):
    user: PublicUserResponse
    event_type: PublicEventTypeResponse
    questions: list[QuestionResponse]


class SlotResponse(BaseModel):
    time: str
    start: datetime
    end: datetime


class SlotListResponse(BaseModel):
    slots: list[SlotResponse]


def get_active_event_type(db: Session, host: User, slug: str) -> EventType:
    event_type = db.query(EventType).filter(
        EventType.user_id == host.id,
        EventType.slug == slug.strip().lower(),
        EventType.is_active.is_(True),
    ).first()
    if event_type is None:
        raise NotFoundError('Event type not found')
    return event_type


def compute_open_slots(
    db: Session,
    host: User,
    event_type: EventType,
    target_date: date,
    now: datetime | None = None,
) -> SlotListResponse:
    availability: Availability | None = get_default_availability(db, host.id)
    if availability is None:
        return SlotListResponse(slots=[])

    existing_bookings = list_confirmed_bookings_on_day(db, event_type.id, target_date, availability.timezone)
    slots = resolve_slots(
        event_type,
        availability,
        availability.schedules,
        availability.overrides,
        existing_bookings,
        target_date,
        now or datetime.now(UTC),
    )
    return SlotListResponse(
        slots=[
            SlotResponse(time=format_slot_time(slot, availability.timezone), start=slot.start, end=slot.end)
            for slot in slots
        ]
    )


@router.get('/public/{username}', response_model=PublicProfileResponse)
def get_public_profile(username: str, db: Session = Depends(get_db)):
    try:
        host = get_host_by_username(db, username)
        event_types = db.query(EventType).filter(
            EventType.user_id == host.id,
            EventType.is_active.is_(True),
        ).order_by(EventType.id.asc()).all()
        return PublicProfileResponse(
            user=PublicUserResponse.model_validate(host),
            event_types=[PublicEventTypeResponse.model_validate(event_type) for event_type in event_types],
        )
    except SQLAlchemyError as exc:
        logger.exception('Failed to load public profile %s', username)
        raise StoreError() from exc


@router.get('/public/{username}/{slug}', response_model=PublicEventTypeDetailResponse)
def get_public_event_type(username: str, slug: str, db: Session = Depends(get_db)):
    try:
        host = get_host_by_username(db, username)
        event_type = get_active_event_type(db, host, slug)
        return PublicEventTypeDetailResponse(
            user=PublicUserResponse.model_validate(host),
            event_type=PublicEventTypeResponse.model_validate(event_type),
            questions=[QuestionResponse.model_validate(question) for question in event_type.questions],
        )
    except SQLAlchemyError as exc:
        logger.exception('Failed to load public event type %s/%s', username, slug)
        raise StoreError() from exc


@router.get('/public/{username}/{slug}/slots', response_model=SlotListResponse)
def list_public_slots(
    username: str,
    slug: str,
    slot_date: date = Query(..., alias='date'),
    db: Session = Depends(get_db),
):
    try:
        host = get_host_by_username(db, username)
        event_type = get_active_event_type(db, host, slug)
        return compute_open_slots(db, host, event_type, slot_date)
    except SQLAlchemyError as exc:
        logger.exception('Failed to compute slots for %s/%s on %s', username, slug, slot_date)
        raise StoreError() from exc


@router.get('/availability-slots', response_model=SlotListResponse)
def list_availability_slots(
    event_type_slug: str = Query(...),
    host_username: str = Query(...),
    slot_date: date = Query(..., alias='date'),
    db: Session = Depends(get_db),
):
    return list_public_slots(host_username, event_type_slug, slot_date=slot_date, db=db)


@router.post('/public/book', response_model=BookingDetailResponse, status_code=status.HTTP_201_CREATED)
def create_public_booking(
    data: CreateBookingRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    # Public bookings are scoped to the owner of the event type being booked.
    try:
        owner_id = db.query(EventType.user_id).filter(
            EventType.id == data.event_type_id,
            EventType.is_active.is_(True),
        ).scalar()
    except SQLAlchemyError as exc:
        logger.exception('Failed to resolve owner of event type %s', data.event_type_id)
        raise StoreError() from exc
    if owner_id is None:
        raise NotFoundError('Event type not found')

    return create_booking(data, background_tasks, db=db, host_id=owner_id)
