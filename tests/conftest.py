import os
from datetime import time

import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')
os.environ.setdefault('NOTIFICATIONS_ENABLED', 'false')

from scheduler.database import Base, create_store_engine, ensure_availability_schema, ensure_booking_schema  # noqa: E402
from scheduler.models.availability import Availability, WeeklySchedule  # noqa: E402
from scheduler.models.booking import Booking  # noqa: E402,F401
from scheduler.models.event_type import EventType, Question  # noqa: E402
from scheduler.models.user import User  # noqa: E402

HOST_ID = 1
MONDAY = 1


def build_engine(url: str = 'sqlite://'):
    if url == 'sqlite://':
        engine = create_store_engine(url, poolclass=StaticPool)
    else:
        engine = create_store_engine(url)
    Base.metadata.create_all(bind=engine)
    ensure_availability_schema(bind=engine)
    ensure_booking_schema(bind=engine)
    return engine


def seed_host_records(session, *, buffer_before: int = 0, buffer_after: int = 0, timezone: str = 'UTC'):
    host = User(id=HOST_ID, name='Ada Host', email='host@example.com', username='ada', timezone=timezone)
    session.add(host)
    session.flush()

    event_type = EventType(
        user_id=host.id,
        title='Intro Call',
        slug='intro',
        duration=30,
        buffer_before=buffer_before,
        buffer_after=buffer_after,
        questions=[Question(question='What would you like to discuss?', required=False)],
    )
    availability = Availability(
        user_id=host.id,
        name='Working Hours',
        timezone=timezone,
        is_default=True,
        schedules=[WeeklySchedule(day_of_week=MONDAY, start_time=time(9, 0), end_time=time(12, 0))],
    )
    session.add_all([event_type, availability])
    session.commit()
    return host, event_type, availability


@pytest.fixture
def store_engine():
    engine = build_engine()
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def db(store_engine):
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=store_engine)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def file_store(tmp_path):
    """A seeded on-disk store whose sessions use separate connections."""
    engine = build_engine(f"sqlite:///{tmp_path / 'scheduler.db'}")
    session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    session = session_factory()
    try:
        _, event_type, _ = seed_host_records(session)
        event_type_id = event_type.id
    finally:
        session.close()

    try:
        yield session_factory, event_type_id
    finally:
        engine.dispose()


@pytest.fixture
def seeded(db):
    return seed_host_records(db)


@pytest.fixture
def host(seeded):
    return seeded[0]


@pytest.fixture
def event_type(seeded):
    return seeded[1]


@pytest.fixture
def availability(seeded):
    return seeded[2]
