# modules/meeting/intervals.py
"""
Overlap predicate over half-open intervals ``[start, end)``.

Two intervals overlap iff ``a_start < b_end and b_start < a_end``. This one
test covers partial overlap, containment either way and identical windows;
intervals that merely touch (one ends when the other begins) do not overlap.
Only confirmed bookings take part in conflict lookups.
"""
from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Set

from sqlalchemy import and_
from sqlalchemy.orm import Session

from modules.meeting import models


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    return a_start < b_end and b_start < a_end


def overlap_filter(start: datetime, end: datetime):
    """SQL form of `overlaps` against Booking rows."""
    return and_(models.Booking.start_time < end, start < models.Booking.end_time)


def _confirmed_overlapping(db: Session, start: datetime, end: datetime):
    return (
        db.query(models.Booking)
        .filter(models.Booking.status == models.BookingStatus.CONFIRMED)
        .filter(overlap_filter(start, end))
    )


def find_conflict(
    db: Session,
    room_id: int,
    start: datetime,
    end: datetime,
    exclude_booking_id: Optional[int] = None,
) -> Optional[models.Booking]:
    q = _confirmed_overlapping(db, start, end).filter(models.Booking.room_id == room_id)
    if exclude_booking_id is not None:
        q = q.filter(models.Booking.id != exclude_booking_id)
    return q.order_by(models.Booking.start_time.asc()).first()


def has_conflict(
    db: Session,
    room_id: int,
    start: datetime,
    end: datetime,
    exclude_booking_id: Optional[int] = None,
) -> bool:
    return find_conflict(db, room_id, start, end, exclude_booking_id) is not None


def rooms_with_conflicts(db: Session, room_ids: Iterable[int], start: datetime, end: datetime) -> Set[int]:
    """Ids among `room_ids` holding a confirmed booking overlapping [start, end); one query."""
    ids = list(room_ids)
    if not ids:
        return set()
    rows = (
        db.query(models.Booking.room_id)
        .filter(models.Booking.room_id.in_(ids))
        .filter(models.Booking.status == models.BookingStatus.CONFIRMED)
        .filter(overlap_filter(start, end))
        .distinct()
        .all()
    )
    return {r[0] for r in rows}
