from scheduler.models.availability import Availability
from scheduler.models.event_type import EventType
from scheduler.seed import seed_host


def test_seed_host_creates_default_schedule_and_event_type(db) -> None:
    host = seed_host(db, 7)

    availability = db.query(Availability).filter(Availability.user_id == 7).one()
    assert host.username == 'host'
    assert availability.is_default is True
    assert sorted(schedule.day_of_week for schedule in availability.schedules) == [1, 2, 3, 4, 5]
    assert db.query(EventType).filter(EventType.user_id == 7).one().slug == '30min'


def test_seed_host_is_repeatable(db) -> None:
    seed_host(db, 7)
    seed_host(db, 7)

    assert db.query(Availability).count() == 1
    assert db.query(EventType).count() == 1
