import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from scheduler.core.errors import ConflictError, StoreError
from scheduler.core.timezones import is_valid_zone
from scheduler.routes.dependencies import get_db, get_host, get_host_id

router = APIRouter(tags=['user'])

logger = logging.getLogger(__name__)


class UpdateUserRequest(BaseModel):
    name: str
    email: str
    username: str
    timezone: str = 'UTC'

    @field_validator('username')
    @classmethod
    def validate_username(cls, value: str) -> str:
        normalized = value.strip().lower()
        if not normalized:
            raise ValueError('Username is required.')
        return normalized

    @field_validator('timezone')
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        if not is_valid_zone(value.strip()):
            raise ValueError('Unknown timezone.')
        return value.strip()


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    username: str
    timezone: str

    class Config:
        from_attributes = True


@router.get('', response_model=UserResponse)
def get_user(db: Session = Depends(get_db), host_id: int = Depends(get_host_id)):
    try:
        return get_host(db, host_id)
    except SQLAlchemyError as exc:
        logger.exception('Failed to load host %s', host_id)
        raise StoreError() from exc


@router.put('', response_model=UserResponse)
def update_user(data: UpdateUserRequest, db: Session = Depends(get_db), host_id: int = Depends(get_host_id)):
    try:
        host = get_host(db, host_id)
        host.name = data.name
        host.email = data.email
        host.username = data.username
        host.timezone = data.timezone
        db.commit()
        db.refresh(host)
        return host
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError('This username is already taken') from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to update host %s', host_id)
        raise StoreError() from exc
