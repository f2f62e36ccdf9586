import pytest
from pydantic import ValidationError as SchemaError
from sqlalchemy import event

from modules.common.errors import Forbidden, ValidationError
from modules.meeting import services
from modules.meeting.availability import candidate_rooms, search_available_rooms
from modules.meeting.models import RoomFeature
from modules.meeting.schemas import AvailabilitySearch, BookingCreate, RoomOut

from .conftest import at


@pytest.fixture()
def search(db, alice):
    def _search(start, end, capacity=1, features=None, now=None):
        criteria = AvailabilitySearch(capacity=capacity, start_time=start, end_time=end, features=features)
        return search_available_rooms(db, criteria, alice, now=now)
    return _search


def _numbers(rooms):
    return [r.room_number for r in rooms]


def test_empty_calendar_returns_every_room_ordered(search, rooms, tomorrow):
    assert _numbers(search(at(tomorrow, 9), at(tomorrow, 10))) == [101, 102, 103]


def test_capacity_is_a_minimum(search, rooms, tomorrow):
    assert _numbers(search(at(tomorrow, 9), at(tomorrow, 10), capacity=10)) == [101, 103]
    assert _numbers(search(at(tomorrow, 9), at(tomorrow, 10), capacity=21)) == []


def test_features_must_all_be_present(search, rooms, tomorrow):
    found = search(at(tomorrow, 9), at(tomorrow, 10), features=["Projector", "Whiteboard"])
    assert _numbers(found) == [103]

    found = search(at(tomorrow, 9), at(tomorrow, 10), features=["Wifi"])
    assert _numbers(found) == [101, 103]


def test_candidate_rooms_without_features(db, rooms):
    assert _numbers(candidate_rooms(db, 5)) == [101, 103]
    assert _numbers(candidate_rooms(db, 1, [RoomFeature.WHITEBOARD])) == [102, 103]


def test_booked_rooms_are_excluded(db, search, rooms, alice, tomorrow):
    services.create_booking(
        db, rooms[101].id, alice,
        BookingCreate(start_time=at(tomorrow, 10), end_time=at(tomorrow, 11), capacity=5, purpose="Review"),
    )

    assert _numbers(search(at(tomorrow, 10, 30), at(tomorrow, 11, 30), capacity=5)) == [103]
    # touching the booked window is free
    assert _numbers(search(at(tomorrow, 11), at(tomorrow, 12), capacity=5)) == [101, 103]


def test_cancelled_bookings_do_not_block(db, search, rooms, alice, tomorrow):
    b = services.create_booking(
        db, rooms[103].id, alice,
        BookingCreate(start_time=at(tomorrow, 10), end_time=at(tomorrow, 11), capacity=15, purpose="All hands"),
    )
    assert _numbers(search(at(tomorrow, 10), at(tomorrow, 11), capacity=15)) == []

    services.cancel_booking(db, b.id, alice)
    assert _numbers(search(at(tomorrow, 10), at(tomorrow, 11), capacity=15)) == [103]


def test_results_serialize_without_further_queries(db, engine, search, rooms, alice, tomorrow):
    services.create_booking(
        db, rooms[102].id, alice,
        BookingCreate(start_time=at(tomorrow, 8), end_time=at(tomorrow, 9), capacity=2, purpose="Early"),
    )
    found = search(at(tomorrow, 10), at(tomorrow, 11))

    statements = []

    def _count(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    event.listen(engine, "before_cursor_execute", _count)
    try:
        out = [RoomOut.model_validate(r) for r in found]
    finally:
        event.remove(engine, "before_cursor_execute", _count)

    assert statements == []
    assert [len(r.bookings) for r in out] == [0, 1, 0]


def test_search_in_the_past_is_rejected(search, rooms, tomorrow):
    with pytest.raises(ValidationError) as exc:
        search(at(tomorrow, 9), at(tomorrow, 10), now=at(tomorrow, 12))
    assert exc.value.message == "Cannot search for availability in the past"


def test_search_criteria_validation(tomorrow):
    with pytest.raises(SchemaError):
        AvailabilitySearch(capacity=1, start_time=at(tomorrow, 10), end_time=at(tomorrow, 10))
    with pytest.raises(SchemaError):
        AvailabilitySearch(capacity=0, start_time=at(tomorrow, 10), end_time=at(tomorrow, 11))
    with pytest.raises(SchemaError):
        AvailabilitySearch(capacity=1, start_time=at(tomorrow, 10), end_time=at(tomorrow, 11), features=["Sauna"])


def test_search_requires_a_principal(db, rooms, tomorrow):
    criteria = AvailabilitySearch(capacity=1, start_time=at(tomorrow, 9), end_time=at(tomorrow, 10))
    with pytest.raises(Forbidden):
        search_available_rooms(db, criteria, None)
