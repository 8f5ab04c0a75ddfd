import logging
from datetime import date, time

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field, field_validator, model_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from scheduler.core.errors import ConflictError, NotFoundError, StoreError
from scheduler.core.timezones import is_valid_zone
from scheduler.models.availability import Availability, DateOverride, WeeklySchedule
from scheduler.routes.dependencies import get_db, get_host, get_host_id

router = APIRouter(tags=['availability'])

logger = logging.getLogger(__name__)

DEFAULT_AVAILABILITY_NAME = 'Custom Schedule'


def _normalize_timezone(value: str) -> str:
    normalized = value.strip() or 'UTC'
    if not is_valid_zone(normalized):
        raise ValueError('Unknown timezone.')
    return normalized


class WeeklyScheduleRequest(BaseModel):
    day_of_week: int = Field(ge=0, le=6)
    start_time: time
    end_time: time

    @model_validator(mode='after')
    def validate_time_order(self) -> 'WeeklyScheduleRequest':
        if self.start_time >= self.end_time:
            raise ValueError('Start time must be before end time.')
        return self


def _ensure_one_schedule_per_day(schedules: list[WeeklyScheduleRequest] | None) -> list[WeeklyScheduleRequest] | None:
    if schedules is None:
        return None
    days = [schedule.day_of_week for schedule in schedules]
    if len(days) != len(set(days)):
        raise ValueError('Only one schedule per day of week is allowed.')
    return schedules


class CreateAvailabilityRequest(BaseModel):
    name: str = DEFAULT_AVAILABILITY_NAME
    timezone: str = 'UTC'
    is_default: bool = False
    schedules: list[WeeklyScheduleRequest] | None = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        return value.strip() or DEFAULT_AVAILABILITY_NAME

    @field_validator('timezone')
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        return _normalize_timezone(value)

    @field_validator('schedules')
    @classmethod
    def validate_schedules(cls, value):
        return _ensure_one_schedule_per_day(value)


class UpdateAvailabilityRequest(CreateAvailabilityRequest):
    pass


class DateOverrideRequest(BaseModel):
    date: date
    start_time: time | None = None
    end_time: time | None = None
    is_blocked: bool = False

    @model_validator(mode='after')
    def validate_window(self) -> 'DateOverrideRequest':
        if self.is_blocked:
            return self
        if (self.start_time is None) != (self.end_time is None):
            raise ValueError('Provide both start and end time, or neither.')
        if self.start_time is not None and self.start_time >= self.end_time:
            raise ValueError('Start time must be before end time.')
        return self


class WeeklyScheduleResponse(BaseModel):
    id: int
    day_of_week: int
    start_time: time
    end_time: time

    class Config:
        from_attributes = True


class DateOverrideResponse(BaseModel):
    id: int
    availability_id: int
    date: date
    start_time: time | None = None
    end_time: time | None = None
    is_blocked: bool

    class Config:
        from_attributes = True


class AvailabilityResponse(BaseModel):
    id: int
    user_id: int
    name: str
    timezone: str
    is_default: bool
    schedules: list[WeeklyScheduleResponse] = []
    overrides: list[DateOverrideResponse] = []

    class Config:
        from_attributes = True


def get_owned_availability(db: Session, availability_id: int, host_id: int) -> Availability:
    availability = db.query(Availability).filter(
        Availability.id == availability_id,
        Availability.user_id == host_id,
    ).first()
    if availability is None:
        raise NotFoundError('Availability not found')
    return availability


def get_default_availability(db: Session, host_id: int) -> Availability | None:
    return db.query(Availability).filter(
        Availability.user_id == host_id,
        Availability.is_default.is_(True),
    ).first()


def demote_default_availability(db: Session, host_id: int, keep_id: int | None = None) -> None:
    query = db.query(Availability).filter(
        Availability.user_id == host_id,
        Availability.is_default.is_(True),
    )
    if keep_id is not None:
        query = query.filter(Availability.id != keep_id)
    query.update({Availability.is_default: False}, synchronize_session='fetch')


def replace_schedules(db: Session, availability: Availability, schedules: list[WeeklyScheduleRequest]) -> None:
    if availability.schedules:
        # Old rows must be gone before the new ones insert, or (availability_id, day_of_week) collides.
        availability.schedules.clear()
        db.flush()
    availability.schedules.extend(
        WeeklySchedule(day_of_week=s.day_of_week, start_time=s.start_time, end_time=s.end_time)
        for s in schedules
    )


@router.get('', response_model=list[AvailabilityResponse])
def list_availability(db: Session = Depends(get_db), host_id: int = Depends(get_host_id)):
    try:
        return db.query(Availability).filter(Availability.user_id == host_id).order_by(Availability.id.asc()).all()
    except SQLAlchemyError as exc:
        logger.exception('Failed to list availability')
        raise StoreError() from exc


@router.get('/{availability_id}', response_model=AvailabilityResponse)
def get_availability(availability_id: int, db: Session = Depends(get_db), host_id: int = Depends(get_host_id)):
    try:
        return get_owned_availability(db, availability_id, host_id)
    except SQLAlchemyError as exc:
        logger.exception('Failed to load availability %s', availability_id)
        raise StoreError() from exc


@router.post('', response_model=AvailabilityResponse, status_code=status.HTTP_201_CREATED)
def create_availability(
    data: CreateAvailabilityRequest,
    db: Session = Depends(get_db),
    host_id: int = Depends(get_host_id),
):
    try:
        get_host(db, host_id)

        if data.is_default:
            demote_default_availability(db, host_id)

        availability = Availability(
            user_id=host_id,
            name=data.name,
            timezone=data.timezone,
            is_default=data.is_default,
        )
        if data.schedules:
            replace_schedules(db, availability, data.schedules)

        db.add(availability)
        db.commit()
        db.refresh(availability)
        return availability
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError('Another schedule was made default at the same time. Try again.') from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to create availability')
        raise StoreError() from exc


@router.put('/{availability_id}', response_model=AvailabilityResponse)
def update_availability(
    availability_id: int,
    data: UpdateAvailabilityRequest,
    db: Session = Depends(get_db),
    host_id: int = Depends(get_host_id),
):
    try:
        availability = get_owned_availability(db, availability_id, host_id)

        if data.is_default:
            demote_default_availability(db, host_id, keep_id=availability.id)

        availability.name = data.name
        availability.timezone = data.timezone
        availability.is_default = data.is_default

        if data.schedules is not None:
            replace_schedules(db, availability, data.schedules)

        db.commit()
        db.refresh(availability)
        return availability
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError('Another schedule was made default at the same time. Try again.') from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to update availability %s', availability_id)
        raise StoreError() from exc


@router.delete('/{availability_id}')
def delete_availability(availability_id: int, db: Session = Depends(get_db), host_id: int = Depends(get_host_id)):
    try:
        availability = db.query(Availability).filter(
            Availability.id == availability_id,
            Availability.user_id == host_id,
        ).first()
        if availability is not None:
            db.delete(availability)
            db.commit()
        return {'success': True}
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to delete availability %s', availability_id)
        raise StoreError() from exc


@router.post('/{availability_id}/overrides', response_model=DateOverrideResponse, status_code=status.HTTP_201_CREATED)
def upsert_date_override(
    availability_id: int,
    data: DateOverrideRequest,
    response: Response,
    db: Session = Depends(get_db),
    host_id: int = Depends(get_host_id),
):
    try:
        availability = get_owned_availability(db, availability_id, host_id)
        start_time = None if data.is_blocked else data.start_time
        end_time = None if data.is_blocked else data.end_time

        override = db.query(DateOverride).filter(
            DateOverride.availability_id == availability.id,
            DateOverride.date == data.date,
        ).first()

        if override is None:
            override = DateOverride(availability_id=availability.id, date=data.date)
            db.add(override)
        else:
            response.status_code = status.HTTP_200_OK

        override.start_time = start_time
        override.end_time = end_time
        override.is_blocked = data.is_blocked

        db.commit()
        db.refresh(override)
        return override
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError('An override for this date already exists') from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to save override for availability %s', availability_id)
        raise StoreError() from exc


@router.delete('/{availability_id}/overrides/{override_id}')
def delete_date_override(
    availability_id: int,
    override_id: int,
    db: Session = Depends(get_db),
    host_id: int = Depends(get_host_id),
):
    try:
        availability = get_owned_availability(db, availability_id, host_id)
        db.query(DateOverride).filter(
            DateOverride.id == override_id,
            DateOverride.availability_id == availability.id,
        ).delete(synchronize_session=False)
        db.commit()
        return {'success': True}
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to delete override %s', override_id)
        raise StoreError() from exc
