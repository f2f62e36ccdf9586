# modules/meeting/models.py
from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    ForeignKey,
    Text,
    Index,
    Enum as SAEnum,
)
from sqlalchemy.orm import relationship

from database.base import Base


def _values(enum_cls):
    return [m.value for m in enum_cls]


class BookingStatus(str, Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class RoomFeature(str, Enum):
    PROJECTOR = "Projector"
    WHITEBOARD = "Whiteboard"
    WIFI = "Wifi"


class Floor(Base):
    __tablename__ = "floors"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, unique=True)
    number = Column(Integer, nullable=False, unique=True)
    description = Column(Text, nullable=True, default="")

    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    updated_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    rooms = relationship("Room", back_populates="floor", cascade="all, delete-orphan", order_by="Room.room_number")


class Room(Base):
    __tablename__ = "rooms"
    id = Column(Integer, primary_key=True, index=True)
    room_number = Column(Integer, nullable=False, unique=True, index=True)
    name = Column(String(100), nullable=False)
    capacity = Column(Integer, nullable=False)
    floor_id = Column(Integer, ForeignKey("floors.id", ondelete="CASCADE"), nullable=False, index=True)

    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    updated_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    floor = relationship("Floor", back_populates="rooms")
    feature_links = relationship(
        "RoomFeatureLink",
        back_populates="room",
        cascade="all, delete-orphan",
    )
    booking_index = relationship(
        "RoomBookingIndex",
        back_populates="room",
        cascade="all, delete-orphan",
    )

    @property
    def features(self) -> list[RoomFeature]:
        return sorted((link.feature for link in self.feature_links), key=lambda f: f.value)

    def set_features(self, features) -> None:
        wanted = {RoomFeature(f) for f in (features or [])}
        self.feature_links = [link for link in self.feature_links if link.feature in wanted]
        have = {link.feature for link in self.feature_links}
        for f in sorted(wanted - have, key=lambda f: f.value):
            self.feature_links.append(RoomFeatureLink(feature=f))

    @property
    def bookings(self) -> list[int]:
        return sorted(entry.booking_id for entry in self.booking_index)


class RoomFeatureLink(Base):
    __tablename__ = "room_features"
    room_id = Column(Integer, ForeignKey("rooms.id", ondelete="CASCADE"), primary_key=True)
    feature = Column(SAEnum(RoomFeature, values_callable=_values), primary_key=True)

    room = relationship("Room", back_populates="feature_links")


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)

    room_id = Column(Integer, ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False)
    capacity = Column(Integer, nullable=False)
    purpose = Column(String(500), nullable=False)

    status = Column(SAEnum(BookingStatus, values_callable=_values), default=BookingStatus.CONFIRMED, nullable=False)

    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    updated_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    room = relationship("Room")

    __table_args__ = (
        # conflict lookups
        Index("ix_bookings_room_time_status", "room_id", "start_time", "end_time", "status"),
        # future bookings per user
        Index("ix_bookings_user_start_status", "user_id", "start_time", "status"),
    )

    @property
    def is_confirmed(self) -> bool:
        return self.status == BookingStatus.CONFIRMED


class RoomBookingIndex(Base):
    """Derived room -> confirmed booking ids index; rebuildable from `bookings`."""
    __tablename__ = "room_booking_index"

    room_id = Column(Integer, ForeignKey("rooms.id", ondelete="CASCADE"), primary_key=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), primary_key=True)

    room = relationship("Room", back_populates="booking_index")
