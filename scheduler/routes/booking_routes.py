import logging
from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from pydantic import BaseModel, EmailStr, field_validator, model_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from scheduler.core import config
from scheduler.core.errors import ConflictError, NotFoundError, StoreError, ValidationError
from scheduler.core.timezones import UTC, to_utc
from scheduler.models.booking import STATUS_CANCELLED, STATUS_CONFIRMED, Answer, Booking
from scheduler.models.event_type import EventType
from scheduler.notifications.booking import notify_cancelled, notify_confirmed
from scheduler.routes.dependencies import get_db, get_host_id
from scheduler.scheduling.overlap import has_conflict, lock_event_type

router = APIRouter(tags=['bookings'])

logger = logging.getLogger(__name__)

SLOT_UNAVAILABLE_MESSAGE = 'This time slot is no longer available'
UNKNOWN_QUESTION_MESSAGE = 'Unknown question'
MAX_NOTES_LENGTH = 2000


class AnswerRequest(BaseModel):
    question_id: int
    answer: str | None = None


class CreateBookingRequest(BaseModel):
    event_type_id: int
    booker_name: str
    booker_email: EmailStr
    start_time: datetime
    end_time: datetime
    notes: str | None = None
    answers: list[AnswerRequest] | None = None

    @field_validator('booker_name')
    @classmethod
    def validate_booker_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Missing required fields')
        return normalized

    @field_validator('booker_email')
    @classmethod
    def normalize_booker_email(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator('start_time', 'end_time')
    @classmethod
    def normalize_instant(cls, value: datetime) -> datetime:
        return to_utc(value).replace(microsecond=0)

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        if len(normalized) > MAX_NOTES_LENGTH:
            raise ValueError(f'Notes must be {MAX_NOTES_LENGTH} characters or fewer.')
        return normalized

    @model_validator(mode='after')
    def validate_time_order(self) -> 'CreateBookingRequest':
        if self.start_time >= self.end_time:
            raise ValueError('Start time must be before end time.')
        return self


class RescheduleBookingRequest(BaseModel):
    start_time: datetime
    end_time: datetime

    @field_validator('start_time', 'end_time')
    @classmethod
    def normalize_instant(cls, value: datetime) -> datetime:
        return to_utc(value).replace(microsecond=0)

    @model_validator(mode='after')
    def validate_time_order(self) -> 'RescheduleBookingRequest':
        if self.start_time >= self.end_time:
            raise ValueError('Start time must be before end time.')
        return self


class AnswerResponse(BaseModel):
    id: int
    question_id: int
    question: str | None = None
    answer: str


class BookingResponse(BaseModel):
    id: int
    uid: str
    event_type_id: int
    booker_name: str
    booker_email: str
    start_time: datetime
    end_time: datetime
    status: str
    notes: str = ''
    created_at: datetime | None = None

    class Config:
        from_attributes = True

    @field_validator('start_time', 'end_time', 'created_at')
    @classmethod
    def as_utc(cls, value: datetime | None) -> datetime | None:
        return to_utc(value) if value is not None else None


class BookingListItemResponse(BookingResponse):
    event_title: str
    duration: int
    color: str
    answers: list[AnswerResponse] = []


class BookingDetailResponse(BookingResponse):
    event_title: str
    duration: int
    color: str | None = None
    slug: str | None = None
    host_name: str | None = None
    username: str | None = None
    host_email: str | None = None


def build_booking_details(booking: Booking) -> dict:
    """Booking joined with its event type and host, detached from the session."""
    event_type = booking.event_type
    host = event_type.host
    return {
        'id': booking.id,
        'uid': booking.uid,
        'event_type_id': booking.event_type_id,
        'booker_name': booking.booker_name,
        'booker_email': booking.booker_email,
        'start_time': to_utc(booking.start_time),
        'end_time': to_utc(booking.end_time),
        'status': booking.status,
        'notes': booking.notes or '',
        'created_at': to_utc(booking.created_at) if booking.created_at else None,
        'event_title': event_type.title,
        'duration': event_type.duration,
        'color': event_type.color,
        'slug': event_type.slug,
        'host_name': host.name if host else None,
        'username': host.username if host else None,
        'host_email': host.email if host else None,
        'host_timezone': host.timezone if host else None,
    }


def serialize_booking_list_item(booking: Booking) -> BookingListItemResponse:
    details = build_booking_details(booking)
    return BookingListItemResponse(
        **details,
        answers=[
            AnswerResponse(
                id=answer.id,
                question_id=answer.question_id,
                question=answer.question.question if answer.question else None,
                answer=answer.answer,
            )
            for answer in booking.answers
        ],
    )


def get_owned_booking(db: Session, uid: str, host_id: int) -> Booking:
    booking = db.query(Booking).join(EventType, Booking.event_type_id == EventType.id).filter(
        Booking.uid == uid,
        EventType.user_id == host_id,
    ).first()
    if booking is None:
        raise NotFoundError('Booking not found')
    return booking


def write_guard_buffers(event_type: EventType) -> tuple[int, int]:
    if not config.ENFORCE_BUFFERS_ON_WRITE:
        return 0, 0
    return event_type.buffer_before or 0, event_type.buffer_after or 0


@router.get('', response_model=list[BookingListItemResponse])
def list_bookings(
    status_filter: str | None = Query(default=None, alias='status'),
    type_filter: str | None = Query(default=None, alias='type'),
    db: Session = Depends(get_db),
    host_id: int = Depends(get_host_id),
):
    if status_filter is not None and status_filter not in {STATUS_CONFIRMED, STATUS_CANCELLED}:
        raise ValidationError('Invalid booking status.')
    if type_filter is not None and type_filter not in {'upcoming', 'past'}:
        raise ValidationError('Invalid booking type. Use "upcoming" or "past".')

    try:
        now = datetime.now(UTC)
        query = db.query(Booking).join(EventType, Booking.event_type_id == EventType.id).filter(
            EventType.user_id == host_id,
        )

        if status_filter:
            query = query.filter(Booking.status == status_filter)

        if type_filter == 'upcoming':
            query = query.filter(
                Booking.start_time >= now,
                Booking.status == STATUS_CONFIRMED,
            ).order_by(Booking.start_time.asc())
        elif type_filter == 'past':
            query = query.filter(Booking.start_time < now).order_by(Booking.start_time.desc())
        else:
            query = query.order_by(Booking.start_time.desc())

        return [serialize_booking_list_item(booking) for booking in query.all()]
    except SQLAlchemyError as exc:
        logger.exception('Failed to list bookings')
        raise StoreError() from exc


@router.get('/{uid}', response_model=BookingDetailResponse)
def get_booking(uid: str, db: Session = Depends(get_db), host_id: int = Depends(get_host_id)):
    try:
        booking = get_owned_booking(db, uid, host_id)
        return BookingDetailResponse(**build_booking_details(booking))
    except SQLAlchemyError as exc:
        logger.exception('Failed to load booking %s', uid)
        raise StoreError() from exc


@router.post('', response_model=BookingDetailResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    data: CreateBookingRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    host_id: int = Depends(get_host_id),
):
    try:
        # Held until commit: concurrent writers for this event type queue here.
        event_type = lock_event_type(db, data.event_type_id, host_id)
        if event_type is None:
            db.rollback()
            raise NotFoundError('Event type not found')

        buffer_before, buffer_after = write_guard_buffers(event_type)
        if has_conflict(
            db,
            event_type.id,
            data.start_time,
            data.end_time,
            buffer_before=buffer_before,
            buffer_after=buffer_after,
        ):
            db.rollback()
            logger.info('Booking rejected for event type %s at %s: slot taken', event_type.id, data.start_time)
            raise ConflictError(SLOT_UNAVAILABLE_MESSAGE)

        question_ids = {question.id for question in event_type.questions}
        answers = data.answers or []
        if any(submitted.question_id not in question_ids for submitted in answers):
            db.rollback()
            raise ValidationError(UNKNOWN_QUESTION_MESSAGE)

        booking = Booking(
            event_type_id=event_type.id,
            booker_name=data.booker_name,
            booker_email=data.booker_email,
            start_time=data.start_time,
            end_time=data.end_time,
            status=STATUS_CONFIRMED,
            notes=data.notes or '',
        )
        db.add(booking)
        try:
            db.flush()
        except IntegrityError as exc:
            db.rollback()
            logger.info('Booking rejected for event type %s by store constraint', event_type.id)
            raise ConflictError(SLOT_UNAVAILABLE_MESSAGE) from exc

        for submitted in answers:
            if submitted.answer and submitted.answer.strip():
                booking.answers.append(Answer(question_id=submitted.question_id, answer=submitted.answer.strip()))

        db.commit()
        db.refresh(booking)

        details = build_booking_details(booking)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to create booking for event type %s', data.event_type_id)
        raise StoreError() from exc

    logger.info('Booking %s confirmed for event type %s', details['uid'], details['event_type_id'])
    background_tasks.add_task(notify_confirmed, details)

    return BookingDetailResponse(**details)


@router.post('/{uid}/cancel', response_model=BookingResponse)
def cancel_booking(
    uid: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    host_id: int = Depends(get_host_id),
):
    try:
        booking = get_owned_booking(db, uid, host_id)

        if booking.status == STATUS_CANCELLED:
            return booking

        booking.status = STATUS_CANCELLED
        db.commit()
        db.refresh(booking)

        details = build_booking_details(booking)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to cancel booking %s', uid)
        raise StoreError() from exc

    logger.info('Booking %s cancelled', uid)
    background_tasks.add_task(notify_cancelled, details)

    return booking


@router.post('/{uid}/reschedule', response_model=BookingResponse)
def reschedule_booking(
    uid: str,
    data: RescheduleBookingRequest,
    db: Session = Depends(get_db),
    host_id: int = Depends(get_host_id),
):
    try:
        booking = get_owned_booking(db, uid, host_id)

        if booking.status != STATUS_CONFIRMED:
            db.rollback()
            raise ValidationError('Only confirmed bookings can be rescheduled.')

        event_type = lock_event_type(db, booking.event_type_id, host_id)
        buffer_before, buffer_after = write_guard_buffers(event_type)
        if has_conflict(
            db,
            booking.event_type_id,
            data.start_time,
            data.end_time,
            excluding_booking_id=booking.id,
            buffer_before=buffer_before,
            buffer_after=buffer_after,
        ):
            db.rollback()
            logger.info('Reschedule of booking %s rejected: slot taken', uid)
            raise ConflictError(SLOT_UNAVAILABLE_MESSAGE)

        booking.start_time = data.start_time
        booking.end_time = data.end_time
        db.commit()
        db.refresh(booking)
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError(SLOT_UNAVAILABLE_MESSAGE) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to reschedule booking %s', uid)
        raise StoreError() from exc

    logger.info('Booking %s rescheduled to %s', uid, data.start_time)
    return booking
