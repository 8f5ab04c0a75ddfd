from sqlalchemy import func
from sqlalchemy.orm import Session

from scheduler.core import config
from scheduler.core.errors import NotFoundError
from scheduler.database import SessionLocal
# Imported for their side effect of registering every mapper before the first query.
from scheduler.models import availability, booking, event_type, user  # noqa: F401
from scheduler.models.user import User


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_host_id() -> int:
    return config.HOST_USER_ID


def get_host(db: Session, host_id: int) -> User:
    host = db.query(User).filter(User.id == host_id).first()
    if host is None:
        raise NotFoundError('User not found')
    return host


def get_host_by_username(db: Session, username: str) -> User:
    host = db.query(User).filter(func.lower(User.username) == username.strip().lower()).first()
    if host is None:
        raise NotFoundError('User not found')
    return host
