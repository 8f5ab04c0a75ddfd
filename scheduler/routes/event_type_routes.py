import logging

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from scheduler.core.errors import ConflictError, NotFoundError, StoreError
from scheduler.models.event_type import DEFAULT_COLOR, DEFAULT_DURATION_MINUTES, EventType, Question
from scheduler.routes.dependencies import get_db, get_host, get_host_id

router = APIRouter(tags=['event-types'])

logger = logging.getLogger(__name__)

DUPLICATE_SLUG_MESSAGE = 'An event type with this URL slug already exists'


class QuestionRequest(BaseModel):
    question: str
    required: bool = False
    question_type: str = 'text'

    @field_validator('question')
    @classmethod
    def validate_question(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Question text is required.')
        return normalized


class EventTypeRequest(BaseModel):
    title: str
    slug: str
    description: str = ''
    duration: int = Field(default=DEFAULT_DURATION_MINUTES, gt=0)
    color: str = DEFAULT_COLOR
    is_active: bool = True
    buffer_before: int = Field(default=0, ge=0)
    buffer_after: int = Field(default=0, ge=0)
    questions: list[QuestionRequest] | None = None

    @field_validator('title')
    @classmethod
    def validate_title(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Title is required.')
        return normalized

    @field_validator('slug')
    @classmethod
    def validate_slug(cls, value: str) -> str:
        normalized = value.strip().lower()
        if not normalized:
            raise ValueError('Slug is required.')
        if '/' in normalized or ' ' in normalized:
            raise ValueError('Slug may not contain spaces or slashes.')
        return normalized


class QuestionResponse(BaseModel):
    id: int
    question: str
    required: bool
    question_type: str

    class Config:
        from_attributes = True


class EventTypeResponse(BaseModel):
    id: int
    user_id: int
    title: str
    description: str
    duration: int
    slug: str
    color: str
    is_active: bool
    buffer_before: int
    buffer_after: int
    username: str | None = None


class EventTypeDetailResponse(EventTypeResponse):
    questions: list[QuestionResponse] = []


def serialize_event_type(event_type: EventType) -> EventTypeResponse:
    return EventTypeResponse(
        id=event_type.id,
        user_id=event_type.user_id,
        title=event_type.title,
        description=event_type.description or '',
        duration=event_type.duration,
        slug=event_type.slug,
        color=event_type.color or DEFAULT_COLOR,
        is_active=bool(event_type.is_active),
        buffer_before=event_type.buffer_before or 0,
        buffer_after=event_type.buffer_after or 0,
        username=event_type.host.username if event_type.host else None,
    )


def get_owned_event_type(db: Session, event_type_id: int, host_id: int) -> EventType:
    event_type = db.query(EventType).filter(
        EventType.id == event_type_id,
        EventType.user_id == host_id,
    ).first()
    if event_type is None:
        raise NotFoundError('Event type not found')
    return event_type


def ensure_slug_available(db: Session, host_id: int, slug: str, excluding_id: int | None = None) -> None:
    query = db.query(EventType.id).filter(EventType.user_id == host_id, EventType.slug == slug)
    if excluding_id is not None:
        query = query.filter(EventType.id != excluding_id)
    if query.first() is not None:
        raise ConflictError(DUPLICATE_SLUG_MESSAGE)


def replace_questions(event_type: EventType, questions: list[QuestionRequest]) -> None:
    event_type.questions = [
        Question(question=q.question, required=q.required, question_type=q.question_type or 'text')
        for q in questions
    ]


@router.get('', response_model=list[EventTypeResponse])
def list_event_types(db: Session = Depends(get_db), host_id: int = Depends(get_host_id)):
    try:
        event_types = db.query(EventType).filter(EventType.user_id == host_id).order_by(EventType.id.asc()).all()
        return [serialize_event_type(event_type) for event_type in event_types]
    except SQLAlchemyError as exc:
        logger.exception('Failed to list event types')
        raise StoreError() from exc


@router.get('/{event_type_id}', response_model=EventTypeDetailResponse)
def get_event_type(event_type_id: int, db: Session = Depends(get_db), host_id: int = Depends(get_host_id)):
    try:
        event_type = get_owned_event_type(db, event_type_id, host_id)
        return EventTypeDetailResponse(
            **serialize_event_type(event_type).model_dump(),
            questions=[QuestionResponse.model_validate(question) for question in event_type.questions],
        )
    except SQLAlchemyError as exc:
        logger.exception('Failed to load event type %s', event_type_id)
        raise StoreError() from exc


@router.post('', response_model=EventTypeDetailResponse, status_code=status.HTTP_201_CREATED)
def create_event_type(data: EventTypeRequest, db: Session = Depends(get_db), host_id: int = Depends(get_host_id)):
    try:
        get_host(db, host_id)
        ensure_slug_available(db, host_id, data.slug)

        event_type = EventType(
            user_id=host_id,
            title=data.title,
            description=data.description,
            duration=data.duration,
            slug=data.slug,
            color=data.color or DEFAULT_COLOR,
            is_active=data.is_active,
            buffer_before=data.buffer_before,
            buffer_after=data.buffer_after,
        )
        if data.questions:
            replace_questions(event_type, data.questions)

        db.add(event_type)
        db.commit()
        db.refresh(event_type)

        return get_event_type(event_type.id, db=db, host_id=host_id)
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError(DUPLICATE_SLUG_MESSAGE) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to create event type')
        raise StoreError() from exc


@router.put('/{event_type_id}', response_model=EventTypeDetailResponse)
def update_event_type(
    event_type_id: int,
    data: EventTypeRequest,
    db: Session = Depends(get_db),
    host_id: int = Depends(get_host_id),
):
    try:
        event_type = get_owned_event_type(db, event_type_id, host_id)
        ensure_slug_available(db, host_id, data.slug, excluding_id=event_type.id)

        event_type.title = data.title
        event_type.description = data.description
        event_type.duration = data.duration
        event_type.slug = data.slug
        event_type.color = data.color or DEFAULT_COLOR
        event_type.is_active = data.is_active
        event_type.buffer_before = data.buffer_before
        event_type.buffer_after = data.buffer_after

        if data.questions is not None:
            replace_questions(event_type, data.questions)

        db.commit()
        db.refresh(event_type)

        return get_event_type(event_type.id, db=db, host_id=host_id)
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError(DUPLICATE_SLUG_MESSAGE) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to update event type %s', event_type_id)
        raise StoreError() from exc


@router.delete('/{event_type_id}')
def delete_event_type(event_type_id: int, db: Session = Depends(get_db), host_id: int = Depends(get_host_id)):
    try:
        event_type = db.query(EventType).filter(
            EventType.id == event_type_id,
            EventType.user_id == host_id,
        ).first()
        if event_type is not None:
            db.delete(event_type)
            db.commit()
        return {'success': True}
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to delete event type %s', event_type_id)
        raise StoreError() from exc
