# modules/meeting/schemas.py
from __future__ import annotations

from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict

from modules.common.timeutils import to_utc_naive
from modules.meeting.models import BookingStatus, RoomFeature

ALLOWED_FEATURES = [f.value for f in RoomFeature]


def _coerce_features(v):
    if v is None:
        return v
    if not isinstance(v, (list, tuple, set)):
        raise ValueError("features must be a list")
    invalid = [str(f) for f in v if str(getattr(f, "value", f)) not in ALLOWED_FEATURES]
    if invalid:
        raise ValueError(
            f"Invalid features: {', '.join(invalid)}. Allowed features are: {', '.join(ALLOWED_FEATURES)}"
        )
    return v


def _utc(v: Optional[datetime]) -> Optional[datetime]:
    return to_utc_naive(v) if v is not None else None


# ---------- Rooms ----------
class RoomCreate(BaseModel):
    room_number: int = Field(..., ge=1)
    name: str = Field(..., min_length=1, max_length=100)
    capacity: int = Field(..., ge=1)
    features: List[RoomFeature] = []

    @field_validator("features", mode="before")
    @classmethod
    def _check_features(cls, v):
        return _coerce_features(v) or []


class RoomUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    capacity: Optional[int] = Field(default=None, ge=1)
    features: Optional[List[RoomFeature]] = None

    @field_validator("features", mode="before")
    @classmethod
    def _check_features(cls, v):
        return _coerce_features(v)

    @model_validator(mode="after")
    def _at_least_one(self):
        if all(getattr(self, k) is None for k in ("name", "capacity", "features")):
            raise ValueError("At least one field (name, capacity, or features) must be provided for update")
        return self


class RoomBrief(BaseModel):
    id: int
    room_number: int
    name: str
    capacity: int
    features: List[RoomFeature] = []
    floor_id: int
    model_config = ConfigDict(from_attributes=True)


class RoomOut(RoomBrief):
    bookings: List[int] = []
    created_by: int
    updated_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime


# ---------- Floors ----------
class FloorCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    number: int = Field(..., ge=0)
    description: str = ""
    rooms: List[RoomCreate] = []


class FloorUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None

    @model_validator(mode="after")
    def _at_least_one(self):
        if self.name is None and self.description is None:
            raise ValueError("At least one field (name or description) must be provided for update")
        return self


class FloorOut(BaseModel):
    id: int
    name: str
    number: int
    description: Optional[str] = ""
    created_by: int
    updated_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class FloorWithRoomsOut(FloorOut):
    rooms: List[RoomBrief] = []


# ---------- Bookings ----------
class BookingCreate(BaseModel):
    start_time: datetime
    end_time: datetime
    capacity: int = Field(..., ge=1)
    purpose: str = Field(..., min_length=1, max_length=500)

    @field_validator("start_time", "end_time")
    @classmethod
    def _utc_times(cls, v):
        return _utc(v)

    @field_validator("purpose")
    @classmethod
    def _strip_purpose(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("purpose must not be empty")
        return v

    @model_validator(mode="after")
    def _end_after_start(self):
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        return self


class BookingUpdate(BaseModel):
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    capacity: Optional[int] = Field(default=None, ge=1)
    purpose: Optional[str] = Field(default=None, min_length=1, max_length=500)

    @field_validator("start_time", "end_time")
    @classmethod
    def _utc_times(cls, v):
        return _utc(v)

    @field_validator("purpose")
    @classmethod
    def _strip_purpose(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("purpose must not be empty")
        return v

    @model_validator(mode="after")
    def _at_least_one(self):
        if not any(getattr(self, k) is not None for k in ("start_time", "end_time", "capacity", "purpose")):
            raise ValueError("At least one field must be provided for update")
        return self


class BookingOut(BaseModel):
    id: int
    room_id: int
    user_id: int
    start_time: datetime
    end_time: datetime
    capacity: int
    purpose: str
    status: BookingStatus
    created_by: int
    updated_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    room: Optional[RoomBrief] = None
    model_config = ConfigDict(from_attributes=True)


# ---------- Availability ----------
class AvailabilitySearch(BaseModel):
    capacity: int = Field(..., ge=1)
    start_time: datetime
    end_time: datetime
    features: Optional[List[RoomFeature]] = None

    @field_validator("features", mode="before")
    @classmethod
    def _check_features(cls, v):
        return _coerce_features(v)

    @field_validator("start_time", "end_time")
    @classmethod
    def _utc_times(cls, v):
        return _utc(v)

    @model_validator(mode="after")
    def _end_after_start(self):
        if self.end_time <= self.start_time:
            raise ValueError("endTime must be after startTime")
        return self


# ---------- Response envelopes ----------
class _Envelope(BaseModel):
    message: str
    model_config = ConfigDict(from_attributes=True)


class BookingEnvelope(_Envelope):
    booking: BookingOut


class BookingListEnvelope(_Envelope):
    bookings: List[BookingOut]
    count: int


class RoomEnvelope(_Envelope):
    room: RoomOut


class RoomListEnvelope(_Envelope):
    rooms: List[RoomOut]
    count: int


class FloorEnvelope(_Envelope):
    floor: FloorWithRoomsOut


class FloorListEnvelope(_Envelope):
    floors: List[FloorOut]
    count: int
