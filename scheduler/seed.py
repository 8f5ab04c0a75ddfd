"""Create the host account with a default schedule and event type.

Usage:
    python -m scheduler.seed
"""
import logging
import sys
from datetime import time

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from scheduler.core import config
from scheduler.database import Base, SessionLocal, engine, ensure_availability_schema, ensure_booking_schema
from scheduler.models.availability import Availability, WeeklySchedule
from scheduler.models.booking import Booking  # noqa: F401
from scheduler.models.event_type import EventType
from scheduler.models.user import User

logger = logging.getLogger(__name__)

WORKDAYS = (1, 2, 3, 4, 5)


def seed_host(db: Session, host_id: int) -> User:
    host = db.query(User).filter(User.id == host_id).first()
    if host is None:
        host = User(id=host_id, name='Host', email='host@example.com', username='host', timezone='UTC')
        db.add(host)
        db.flush()

    if db.query(Availability).filter(Availability.user_id == host.id).first() is None:
        db.add(
            Availability(
                user_id=host.id,
                name='Working Hours',
                timezone=host.timezone,
                is_default=True,
                schedules=[
                    WeeklySchedule(day_of_week=day, start_time=time(9, 0), end_time=time(17, 0))
                    for day in WORKDAYS
                ],
            )
        )

    if db.query(EventType).filter(EventType.user_id == host.id).first() is None:
        db.add(EventType(user_id=host.id, title='30 Minute Meeting', slug='30min', duration=30))

    db.commit()
    db.refresh(host)
    return host


def main() -> int:
    logging.basicConfig(level=config.LOG_LEVEL)
    Base.metadata.create_all(bind=engine)
    ensure_availability_schema()
    ensure_booking_schema()

    db = SessionLocal()
    try:
        host = seed_host(db, config.HOST_USER_ID)
    except SQLAlchemyError:
        db.rollback()
        logger.exception('Seeding failed')
        return 1
    finally:
        db.close()

    print(f'Host "{host.username}" ready (id={host.id}).')
    return 0


if __name__ == '__main__':
    sys.exit(main())
