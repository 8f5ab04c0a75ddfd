from datetime import datetime, timezone

import pytest
from pydantic import ValidationError as PydanticValidationError

from scheduler.core.errors import ConflictError, NotFoundError
from scheduler.models.booking import Answer, Booking
from scheduler.models.event_type import EventType, Question
from scheduler.routes.event_type_routes import (
    EventTypeRequest,
    create_event_type,
    delete_event_type,
    get_event_type,
    list_event_types,
    update_event_type,
)

HOST_ID = 1


def test_event_type_request_normalizes_slug() -> None:
    request = EventTypeRequest(title=' Demo ', slug=' Product-Demo ')

    assert request.title == 'Demo'
    assert request.slug == 'product-demo'
    assert request.duration == 30


@pytest.mark.parametrize('payload', [
    {'title': 'Demo', 'slug': 'demo', 'duration': 0},
    {'title': 'Demo', 'slug': 'demo', 'buffer_before': -5},
    {'title': 'Demo', 'slug': 'has space'},
    {'title': '   ', 'slug': 'demo'},
])
def test_event_type_request_rejects_invalid_values(payload) -> None:
    with pytest.raises(PydanticValidationError):
        EventTypeRequest(**payload)


def test_create_event_type_with_questions(db, host) -> None:
    response = create_event_type(
        EventTypeRequest(
            title='Demo',
            slug='demo',
            duration=45,
            buffer_after=10,
            questions=[{'question': 'Company?', 'required': True}],
        ),
        db=db,
        host_id=HOST_ID,
    )

    assert response.duration == 45
    assert response.buffer_after == 10
    assert response.username == 'ada'
    assert [(q.question, q.required) for q in response.questions] == [('Company?', True)]


def test_create_event_type_rejects_duplicate_slug(db, event_type) -> None:
    with pytest.raises(ConflictError) as exception_info:
        create_event_type(EventTypeRequest(title='Other', slug='INTRO'), db=db, host_id=HOST_ID)

    assert exception_info.value.message == 'An event type with this URL slug already exists'


def test_update_event_type_replaces_questions_when_given(db, event_type) -> None:
    response = update_event_type(
        event_type.id,
        EventTypeRequest(title='Intro Call', slug='intro', questions=[{'question': 'Team size?'}]),
        db=db,
        host_id=HOST_ID,
    )

    assert [q.question for q in response.questions] == ['Team size?']
    assert db.query(Question).count() == 1


def test_update_event_type_keeps_questions_when_omitted(db, event_type) -> None:
    response = update_event_type(
        event_type.id,
        EventTypeRequest(title='Renamed', slug='intro', is_active=False),
        db=db,
        host_id=HOST_ID,
    )

    assert response.title == 'Renamed'
    assert response.is_active is False
    assert len(response.questions) == 1


def test_update_event_type_rejects_slug_of_sibling(db, host, event_type) -> None:
    db.add(EventType(user_id=host.id, title='Other', slug='other', duration=15))
    db.commit()

    with pytest.raises(ConflictError):
        update_event_type(event_type.id, EventTypeRequest(title='Intro', slug='other'), db=db, host_id=HOST_ID)


def test_update_unknown_event_type(db, host) -> None:
    with pytest.raises(NotFoundError):
        update_event_type(404, EventTypeRequest(title='X', slug='x'), db=db, host_id=HOST_ID)


def test_list_event_types_is_ordered(db, host, event_type) -> None:
    create_event_type(EventTypeRequest(title='Later', slug='later'), db=db, host_id=HOST_ID)

    assert [item.slug for item in list_event_types(db=db, host_id=HOST_ID)] == ['intro', 'later']


def test_delete_event_type_cascades_to_questions_bookings_and_answers(db, event_type) -> None:
    booking = Booking(
        event_type_id=event_type.id,
        booker_name='Grace',
        booker_email='grace@example.com',
        start_time=datetime(2026, 1, 5, 10, 0, tzinfo=timezone.utc),
        end_time=datetime(2026, 1, 5, 10, 30, tzinfo=timezone.utc),
    )
    booking.answers.append(Answer(question_id=event_type.questions[0].id, answer='Hello'))
    db.add(booking)
    db.commit()
    event_type_id = event_type.id

    assert delete_event_type(event_type_id, db=db, host_id=HOST_ID) == {'success': True}

    assert db.query(EventType).count() == 0
    assert db.query(Question).count() == 0
    assert db.query(Booking).count() == 0
    assert db.query(Answer).count() == 0
    with pytest.raises(NotFoundError):
        get_event_type(event_type_id, db=db, host_id=HOST_ID)
