# modules/meeting/catalog.py
"""
Floors and rooms.

Deleting a room or a floor is refused while any affected room still has a
future confirmed booking. The check and the delete run inside the rooms'
critical section so a booking being created at the same moment is either
seen by the guard or finds the room gone.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from modules.common.errors import Conflict, NotFound, ValidationError
from modules.common.timeutils import utcnow
from modules.meeting import models, schemas
from modules.meeting.locks import floor_locks, room_transaction
from modules.security.perms import Action, Principal, authorize

logger = logging.getLogger(__name__)

# -------------------------------------------------
# Helpers
# -------------------------------------------------

def _commit_or_conflict(db: Session, message: str) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict(message)


def _room_number_taken(db: Session, room_number: int) -> bool:
    return db.query(models.Room.id).filter(models.Room.room_number == room_number).first() is not None


def _new_room(payload: schemas.RoomCreate, floor_id: Optional[int], principal: Principal) -> models.Room:
    room = models.Room(
        room_number=payload.room_number,
        name=payload.name.strip(),
        capacity=payload.capacity,
        floor_id=floor_id,
        created_by=principal.id,
    )
    room.set_features(payload.features)
    return room


def future_booking_counts(db: Session, room_ids: Sequence[int], now: Optional[datetime] = None) -> Dict[int, int]:
    """Confirmed bookings starting at or after `now`, per room."""
    if not room_ids:
        return {}
    rows = (
        db.query(models.Booking.room_id, func.count(models.Booking.id))
        .filter(models.Booking.room_id.in_(list(room_ids)))
        .filter(models.Booking.status == models.BookingStatus.CONFIRMED)
        .filter(models.Booking.start_time >= (now or utcnow()))
        .group_by(models.Booking.room_id)
        .all()
    )
    return {rid: n for rid, n in rows if n}


def _purge_room_bookings(db: Session, room_ids: Sequence[int]) -> None:
    # only past or cancelled bookings remain once the guard has passed
    (
        db.query(models.RoomBookingIndex)
        .filter(models.RoomBookingIndex.room_id.in_(list(room_ids)))
        .delete(synchronize_session="fetch")
    )
    (
        db.query(models.Booking)
        .filter(models.Booking.room_id.in_(list(room_ids)))
        .delete(synchronize_session="fetch")
    )
    # loaded booking_index collections still hold the bulk-deleted rows
    db.expire_all()

# -------------------------------------------------
# Floors
# -------------------------------------------------

def get_floor(db: Session, floor_id: int) -> models.Floor:
    floor = db.get(models.Floor, floor_id)
    if not floor:
        raise NotFound("Floor not found")
    return floor


def list_floors(db: Session, principal: Principal) -> List[models.Floor]:
    authorize(principal, Action.MANAGE_CATALOG)
    return db.query(models.Floor).order_by(models.Floor.number.asc()).all()


def create_floor(db: Session, payload: schemas.FloorCreate, principal: Principal) -> models.Floor:
    authorize(principal, Action.MANAGE_CATALOG)
    if db.query(models.Floor.id).filter(models.Floor.name == payload.name).first():
        raise Conflict("name already exists")
    if db.query(models.Floor.id).filter(models.Floor.number == payload.number).first():
        raise Conflict("number already exists")

    seen: set[int] = set()
    for r in payload.rooms:
        if r.room_number in seen:
            raise ValidationError(f"room_number {r.room_number} is repeated in the request")
        seen.add(r.room_number)
        if _room_number_taken(db, r.room_number):
            raise Conflict("room_number already exists")

    floor = models.Floor(
        name=payload.name.strip(),
        number=payload.number,
        description=payload.description or "",
        created_by=principal.id,
    )
    # floor and its rooms land in one transaction
    floor.rooms = [_new_room(r, None, principal) for r in payload.rooms]
    db.add(floor)
    _commit_or_conflict(db, "Floor or room already exists")
    db.refresh(floor)
    logger.info("Floor %s (%s) created with %d room(s)", floor.id, floor.name, len(floor.rooms))
    return floor


def update_floor(db: Session, floor_id: int, patch: schemas.FloorUpdate, principal: Principal) -> models.Floor:
    authorize(principal, Action.MANAGE_CATALOG)
    floor = get_floor(db, floor_id)
    data = patch.model_dump(exclude_none=True)

    name = data.get("name")
    if name is not None:
        name = name.strip()
        existing = db.query(models.Floor.id).filter(models.Floor.name == name).first()
        if existing and existing[0] != floor.id:
            raise Conflict("name already exists")
        floor.name = name
    if "description" in data:
        floor.description = data["description"]
    floor.updated_by = principal.id

    _commit_or_conflict(db, "name already exists")
    db.refresh(floor)
    return floor


def delete_floor(
    db: Session, floor_id: int, principal: Principal, now: Optional[datetime] = None
) -> schemas.FloorWithRoomsOut:
    """Delete a floor and its rooms; returns what was deleted."""
    authorize(principal, Action.MANAGE_CATALOG)
    get_floor(db, floor_id)

    # floor lock freezes the room set; room locks fence off booking writers
    with floor_locks.hold(floor_id):
        room_ids = [rid for (rid,) in db.query(models.Room.id).filter(models.Room.floor_id == floor_id).all()]
        with room_transaction(db, *room_ids, failure_message="Internal error deleting floor"):
            # row locks do the same across processes; rooms in id order like the in-process locks
            floor = db.get(models.Floor, floor_id, with_for_update=True, populate_existing=True)
            if not floor:
                raise NotFound("Floor not found")
            rooms = (
                db.query(models.Room)
                .filter(models.Room.floor_id == floor_id)
                .order_by(models.Room.id.asc())
                .with_for_update()
                .populate_existing()
                .all()
            )
            busy = future_booking_counts(db, room_ids, now)
            for room in sorted(rooms, key=lambda r: r.room_number):
                if room.id in busy:
                    raise Conflict(
                        f'Cannot delete floor. Room "{room.name}" (ID: {room.room_number}) has '
                        f"{busy[room.id]} future booking(s). Please cancel or wait for bookings to complete."
                    )
            snapshot = schemas.FloorWithRoomsOut.model_validate(floor)
            if room_ids:
                _purge_room_bookings(db, room_ids)
            db.delete(floor)

    logger.info("Floor %s deleted with %d room(s)", floor_id, len(room_ids))
    return snapshot

# -------------------------------------------------
# Rooms
# -------------------------------------------------

def _load_room(db: Session, room_id: int) -> models.Room:
    room = (
        db.query(models.Room)
        .options(selectinload(models.Room.feature_links), selectinload(models.Room.booking_index))
        .filter(models.Room.id == room_id)
        .first()
    )
    if not room:
        raise NotFound("Room not found")
    return room


def get_room(db: Session, room_id: int, principal: Principal) -> models.Room:
    authorize(principal, Action.VIEW_ROOMS)
    return _load_room(db, room_id)


def list_rooms_for_floor(db: Session, floor_id: int, principal: Principal) -> List[models.Room]:
    authorize(principal, Action.VIEW_ROOMS)
    get_floor(db, floor_id)
    return (
        db.query(models.Room)
        .options(selectinload(models.Room.feature_links), selectinload(models.Room.booking_index))
        .filter(models.Room.floor_id == floor_id)
        .order_by(models.Room.room_number.asc())
        .all()
    )


def create_room(db: Session, floor_id: int, payload: schemas.RoomCreate, principal: Principal) -> models.Room:
    authorize(principal, Action.MANAGE_CATALOG)
    with floor_locks.hold(floor_id):
        # waits out a floor delete running in another process
        floor = db.get(models.Floor, floor_id, with_for_update=True, populate_existing=True)
        if not floor:
            raise NotFound("Floor not found")
        if _room_number_taken(db, payload.room_number):
            db.rollback()
            raise Conflict("room_number already exists")
        room = _new_room(payload, floor_id, principal)
        db.add(room)
        _commit_or_conflict(db, "room_number already exists")
    db.refresh(room)
    logger.info("Room %s (#%s) created on floor %s", room.id, room.room_number, floor_id)
    return room


def update_room(db: Session, room_id: int, patch: schemas.RoomUpdate, principal: Principal) -> models.Room:
    """Capacity changes do not touch existing bookings."""
    authorize(principal, Action.MANAGE_CATALOG)
    room = _load_room(db, room_id)
    data = patch.model_dump(exclude_none=True)

    if "name" in data:
        room.name = data["name"].strip()
    if "capacity" in data:
        room.capacity = data["capacity"]
    if "features" in data:
        room.set_features(data["features"])
    room.updated_by = principal.id

    _commit_or_conflict(db, "Update failed due to unique constraint")
    db.refresh(room)
    return room


def delete_room(
    db: Session, room_id: int, principal: Principal, now: Optional[datetime] = None
) -> schemas.RoomOut:
    """Delete a room with no future confirmed bookings; returns what was deleted."""
    authorize(principal, Action.MANAGE_CATALOG)
    _load_room(db, room_id)

    with room_transaction(db, room_id, failure_message="Internal error deleting room"):
        room = db.get(models.Room, room_id, with_for_update=True, populate_existing=True)
        if not room:
            raise NotFound("Room not found")
        n = future_booking_counts(db, [room.id], now).get(room.id, 0)
        if n:
            raise Conflict(
                f"Cannot delete room with {n} future booking(s). Please cancel or wait for bookings to complete."
            )
        snapshot = schemas.RoomOut.model_validate(room)
        _purge_room_bookings(db, [room.id])
        db.delete(room)

    logger.info("Room %s deleted", room_id)
    return snapshot
