from sqlalchemy import inspect

from modules.meeting import models, services
from modules.meeting.migrations import ensure_booking_indexes, run_startup_migrations
from modules.meeting.schemas import BookingCreate

from .conftest import at


def test_missing_booking_indexes_are_created(engine):
    with engine.begin() as conn:
        conn.exec_driver_sql("DROP INDEX ix_bookings_room_time_status")

    ensure_booking_indexes(engine)

    names = {ix["name"] for ix in inspect(engine).get_indexes("bookings")}
    assert {"ix_bookings_room_time_status", "ix_bookings_user_start_status"} <= names


def test_startup_resyncs_room_booking_index(engine, db, rooms, alice, tomorrow):
    room = rooms[102]
    b = services.create_booking(
        db, room.id, alice,
        BookingCreate(start_time=at(tomorrow, 8), end_time=at(tomorrow, 9), capacity=2, purpose="Coffee"),
    )
    db.query(models.RoomBookingIndex).delete()
    db.commit()

    run_startup_migrations(engine)

    db.expire_all()
    assert room.bookings == [b.id]
