# modules/meeting/services.py
"""
Booking ledger.

A booking is ``confirmed`` from creation until it is ``cancelled``; the
transition is one-way. For any room the confirmed bookings never overlap:
every create/update/cancel runs its read-check-write inside the room's
critical section (`room_transaction`), so of several concurrent writers
with overlapping windows exactly one commits and the rest get `Conflict`.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from modules.common.errors import Conflict, NotFound, ValidationError
from modules.common.timeutils import utcnow
from modules.meeting import models, schemas
from modules.meeting.intervals import find_conflict
from modules.meeting.locks import room_transaction
from modules.security.perms import Action, Principal, authorize

logger = logging.getLogger(__name__)

# ----------------------------- helpers -----------------------------
def _get_booking(db: Session, booking_id: int) -> models.Booking:
    booking = db.get(models.Booking, booking_id)
    if not booking:
        raise NotFound("Booking not found")
    return booking


def _lock_room(db: Session, room_id: int) -> Optional[models.Room]:
    # row lock where the backend supports it; the in-process lock covers the rest
    return (
        db.query(models.Room)
        .filter(models.Room.id == room_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def _check_capacity(room: models.Room, capacity: int) -> None:
    if capacity > room.capacity:
        raise ValidationError(f"Room capacity is {room.capacity}, cannot accommodate {capacity} capacity")


def _future_confirmed(db: Session, now: datetime):
    return (
        db.query(models.Booking)
        .options(joinedload(models.Booking.room))
        .filter(models.Booking.status == models.BookingStatus.CONFIRMED)
        .filter(models.Booking.start_time >= now)
        .order_by(models.Booking.start_time.asc(), models.Booking.id.asc())
    )

# ------------------------------ create -----------------------------
def create_booking(
    db: Session,
    room_id: int,
    principal: Principal,
    payload: schemas.BookingCreate,
    now: Optional[datetime] = None,
) -> models.Booking:
    authorize(principal, Action.CREATE_BOOKING)
    now = now or utcnow()
    if payload.start_time < now:
        raise ValidationError("Cannot book in the past")

    booking: Optional[models.Booking] = None
    with room_transaction(db, room_id, failure_message="Internal error creating booking"):
        room = _lock_room(db, room_id)
        if not room:
            raise NotFound("Room not found")
        _check_capacity(room, payload.capacity)

        clash = find_conflict(db, room.id, payload.start_time, payload.end_time)
        if clash:
            logger.info("Booking conflict on room %s with booking %s", room.id, clash.id)
            raise Conflict("Room is already booked for this time slot")

        booking = models.Booking(
            room_id=room.id,
            user_id=principal.id,
            start_time=payload.start_time,
            end_time=payload.end_time,
            capacity=payload.capacity,
            purpose=payload.purpose,
            status=models.BookingStatus.CONFIRMED,
            created_by=principal.id,
        )
        db.add(booking)
        db.flush()
        db.add(models.RoomBookingIndex(room_id=room.id, booking_id=booking.id))

    db.refresh(booking)
    logger.info("Booking %s created on room %s by user %s", booking.id, booking.room_id, principal.id)
    return booking

# ------------------------------ update -----------------------------
def update_booking(
    db: Session,
    booking_id: int,
    principal: Principal,
    patch: schemas.BookingUpdate,
    now: Optional[datetime] = None,
) -> models.Booking:
    now = now or utcnow()
    booking = _get_booking(db, booking_id)
    authorize(principal, Action.UPDATE_BOOKING, owner_id=booking.user_id,
              message="Not authorized to update this booking")
    if not booking.is_confirmed:
        raise ValidationError("Cannot update a cancelled booking")
    if patch.start_time is not None and patch.start_time < now:
        raise ValidationError("Cannot update to a past time")

    with room_transaction(db, booking.room_id, failure_message="Internal error updating booking"):
        db.refresh(booking, with_for_update=True)
        if not booking.is_confirmed:
            raise ValidationError("Cannot update a cancelled booking")

        new_start = patch.start_time or booking.start_time
        new_end = patch.end_time or booking.end_time
        if new_end <= new_start:
            raise ValidationError("End time must be after start time")

        room = _lock_room(db, booking.room_id)
        if not room:
            raise NotFound("Room not found")
        if patch.capacity is not None:
            _check_capacity(room, patch.capacity)

        if patch.start_time is not None or patch.end_time is not None:
            clash = find_conflict(db, room.id, new_start, new_end, exclude_booking_id=booking.id)
            if clash:
                logger.info("Update of booking %s conflicts with booking %s", booking.id, clash.id)
                raise Conflict("Room is already booked for the updated time slot")

        booking.start_time = new_start
        booking.end_time = new_end
        if patch.capacity is not None:
            booking.capacity = patch.capacity
        if patch.purpose is not None:
            booking.purpose = patch.purpose
        booking.updated_by = principal.id

    db.refresh(booking)
    logger.info("Booking %s updated by user %s", booking.id, principal.id)
    return booking

# ------------------------------ cancel -----------------------------
def cancel_booking(db: Session, booking_id: int, principal: Principal) -> models.Booking:
    booking = _get_booking(db, booking_id)
    authorize(principal, Action.CANCEL_BOOKING, owner_id=booking.user_id,
              message="Not authorized to cancel this booking")
    if not booking.is_confirmed:
        raise ValidationError("Booking is already cancelled")

    with room_transaction(db, booking.room_id, failure_message="Internal error cancelling booking"):
        db.refresh(booking, with_for_update=True)
        if not booking.is_confirmed:
            raise ValidationError("Booking is already cancelled")
        booking.status = models.BookingStatus.CANCELLED
        booking.updated_by = principal.id
        (
            db.query(models.RoomBookingIndex)
            .filter(models.RoomBookingIndex.room_id == booking.room_id)
            .filter(models.RoomBookingIndex.booking_id == booking.id)
            .delete(synchronize_session="fetch")
        )

    db.refresh(booking)
    logger.info("Booking %s cancelled by user %s", booking.id, principal.id)
    return booking

# ------------------------------ listing ----------------------------
def list_user_bookings(
    db: Session, user_id: int, principal: Principal, now: Optional[datetime] = None
) -> List[models.Booking]:
    authorize(principal, Action.LIST_USER_BOOKINGS, owner_id=user_id,
              message="Not authorized to view these bookings")
    return _future_confirmed(db, now or utcnow()).filter(models.Booking.user_id == user_id).all()


def list_all_bookings(db: Session, principal: Principal, now: Optional[datetime] = None) -> List[models.Booking]:
    authorize(principal, Action.LIST_ALL_BOOKINGS, message="Not authorized to view all bookings")
    return _future_confirmed(db, now or utcnow()).all()

# ------------------------ room booking index -----------------------
def rebuild_room_index(db: Session, room_id: Optional[int] = None) -> int:
    """
    Recompute the room -> confirmed booking ids cache from the bookings table.
    Returns the number of index entries written.
    """
    q_index = db.query(models.RoomBookingIndex)
    q_bookings = db.query(models.Booking.room_id, models.Booking.id).filter(
        models.Booking.status == models.BookingStatus.CONFIRMED
    )
    if room_id is not None:
        q_index = q_index.filter(models.RoomBookingIndex.room_id == room_id)
        q_bookings = q_bookings.filter(models.Booking.room_id == room_id)

    q_index.delete(synchronize_session="fetch")
    rows = q_bookings.all()
    for rid, bid in rows:
        db.add(models.RoomBookingIndex(room_id=rid, booking_id=bid))
    db.commit()
    logger.info("Rebuilt room booking index (room=%s, entries=%d)", room_id if room_id is not None else "all", len(rows))
    return len(rows)
