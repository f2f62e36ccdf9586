# modules/meeting/routes.py
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from database.connection import get_db
from modules.meeting import availability, catalog, services
from modules.meeting.schemas import (
    AvailabilitySearch,
    BookingCreate,
    BookingEnvelope,
    BookingListEnvelope,
    BookingUpdate,
    FloorCreate,
    FloorEnvelope,
    FloorListEnvelope,
    FloorUpdate,
    RoomCreate,
    RoomEnvelope,
    RoomListEnvelope,
    RoomUpdate,
)
from modules.security.deps import require_roles
from modules.security.model import UserRole
from modules.security.perms import Principal

ANY_USER = require_roles(UserRole.ADMIN, UserRole.CLIENT)
ADMIN_ONLY = require_roles(UserRole.ADMIN)

availability_api = APIRouter(prefix="/api/v1/availability", tags=["Availability API"])
bookings_api = APIRouter(prefix="/api/v1/bookings", tags=["Bookings API"])
floors_api = APIRouter(prefix="/api/v1/floors", tags=["Floors API"])
rooms_api = APIRouter(prefix="/api/v1/rooms", tags=["Rooms API"])


# ---------- Availability ----------
@availability_api.post("/search", response_model=RoomListEnvelope)
def search_availability(
    payload: AvailabilitySearch,
    db: Session = Depends(get_db),
    me: Principal = Depends(ANY_USER),
):
    rooms = availability.search_available_rooms(db, payload, me)
    message = "Available rooms retrieved successfully" if rooms else "No rooms found matching the criteria"
    return {"message": message, "rooms": rooms, "count": len(rooms)}


# ---------- Bookings ----------
# "/all" is declared before "/{user_id}" so it is not captured as a user id
@bookings_api.get("/all", response_model=BookingListEnvelope)
def list_all_bookings(db: Session = Depends(get_db), me: Principal = Depends(ADMIN_ONLY)):
    bookings = services.list_all_bookings(db, me)
    return {"message": "All bookings retrieved successfully", "bookings": bookings, "count": len(bookings)}


@bookings_api.get("/{user_id}", response_model=BookingListEnvelope)
def list_user_bookings(user_id: int, db: Session = Depends(get_db), me: Principal = Depends(ANY_USER)):
    bookings = services.list_user_bookings(db, user_id, me)
    return {"message": "Bookings retrieved successfully", "bookings": bookings, "count": len(bookings)}


@bookings_api.post("/rooms/{room_id}", response_model=BookingEnvelope, status_code=status.HTTP_201_CREATED)
def create_booking(
    room_id: int,
    payload: BookingCreate,
    db: Session = Depends(get_db),
    me: Principal = Depends(ANY_USER),
):
    booking = services.create_booking(db, room_id, me, payload)
    return {"message": "Booking created successfully", "booking": booking}


@bookings_api.put("/{booking_id}", response_model=BookingEnvelope)
def update_booking(
    booking_id: int,
    payload: BookingUpdate,
    db: Session = Depends(get_db),
    me: Principal = Depends(ANY_USER),
):
    booking = services.update_booking(db, booking_id, me, payload)
    return {"message": "Booking updated successfully", "booking": booking}


@bookings_api.delete("/{booking_id}", response_model=BookingEnvelope)
def cancel_booking(booking_id: int, db: Session = Depends(get_db), me: Principal = Depends(ANY_USER)):
    booking = services.cancel_booking(db, booking_id, me)
    return {"message": "Booking cancelled successfully", "booking": booking}


# ---------- Floors ----------
@floors_api.get("", response_model=FloorListEnvelope)
def list_floors(db: Session = Depends(get_db), me: Principal = Depends(ADMIN_ONLY)):
    floors = catalog.list_floors(db, me)
    return {"message": "Floors retrieved successfully", "floors": floors, "count": len(floors)}


@floors_api.post("", response_model=FloorEnvelope, status_code=status.HTTP_201_CREATED)
def create_floor(payload: FloorCreate, db: Session = Depends(get_db), me: Principal = Depends(ADMIN_ONLY)):
    floor = catalog.create_floor(db, payload, me)
    return {"message": "Floor created successfully", "floor": floor}


@floors_api.put("/{floor_id}", response_model=FloorEnvelope)
def update_floor(
    floor_id: int,
    payload: FloorUpdate,
    db: Session = Depends(get_db),
    me: Principal = Depends(ADMIN_ONLY),
):
    floor = catalog.update_floor(db, floor_id, payload, me)
    return {"message": "Floor updated successfully", "floor": floor}


@floors_api.delete("/{floor_id}", response_model=FloorEnvelope)
def delete_floor(floor_id: int, db: Session = Depends(get_db), me: Principal = Depends(ADMIN_ONLY)):
    floor = catalog.delete_floor(db, floor_id, me)
    return {"message": "Floor deleted successfully", "floor": floor}


@floors_api.get("/{floor_id}/rooms", response_model=RoomListEnvelope)
def list_rooms_for_floor(floor_id: int, db: Session = Depends(get_db), me: Principal = Depends(ANY_USER)):
    rooms = catalog.list_rooms_for_floor(db, floor_id, me)
    return {"message": "Rooms retrieved successfully", "rooms": rooms, "count": len(rooms)}


@floors_api.post("/{floor_id}/rooms", response_model=RoomEnvelope, status_code=status.HTTP_201_CREATED)
def create_room(
    floor_id: int,
    payload: RoomCreate,
    db: Session = Depends(get_db),
    me: Principal = Depends(ADMIN_ONLY),
):
    room = catalog.create_room(db, floor_id, payload, me)
    return {"message": "Room created successfully", "room": room}


# ---------- Rooms ----------
@rooms_api.get("/{room_id}", response_model=RoomEnvelope)
def get_room(room_id: int, db: Session = Depends(get_db), me: Principal = Depends(ANY_USER)):
    room = catalog.get_room(db, room_id, me)
    return {"message": "Room retrieved successfully", "room": room}


@rooms_api.put("/{room_id}", response_model=RoomEnvelope)
def update_room(
    room_id: int,
    payload: RoomUpdate,
    db: Session = Depends(get_db),
    me: Principal = Depends(ADMIN_ONLY),
):
    room = catalog.update_room(db, room_id, payload, me)
    return {"message": "Room updated successfully", "room": room}


@rooms_api.delete("/{room_id}", response_model=RoomEnvelope)
def delete_room(room_id: int, db: Session = Depends(get_db), me: Principal = Depends(ADMIN_ONLY)):
    room = catalog.delete_room(db, room_id, me)
    return {"message": "Room deleted successfully", "room": room}


routers = [availability_api, bookings_api, floors_api, rooms_api]
