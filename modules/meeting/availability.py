# modules/meeting/availability.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from modules.common.errors import ValidationError
from modules.common.timeutils import utcnow
from modules.meeting import models, schemas
from modules.meeting.intervals import rooms_with_conflicts
from modules.security.perms import Action, Principal, authorize

logger = logging.getLogger(__name__)


def candidate_rooms(db: Session, min_capacity: int, features: Optional[List[models.RoomFeature]] = None) -> List[models.Room]:
    """Rooms with capacity >= min_capacity holding every requested feature."""
    q = (
        db.query(models.Room)
        .options(selectinload(models.Room.feature_links), selectinload(models.Room.booking_index))
        .filter(models.Room.capacity >= min_capacity)
    )
    wanted = sorted({models.RoomFeature(f) for f in (features or [])}, key=lambda f: f.value)
    if wanted:
        # superset test: the room must carry all of them, not just one
        having_all = (
            select(models.RoomFeatureLink.room_id)
            .where(models.RoomFeatureLink.feature.in_(wanted))
            .group_by(models.RoomFeatureLink.room_id)
            .having(func.count(func.distinct(models.RoomFeatureLink.feature)) == len(wanted))
        )
        q = q.filter(models.Room.id.in_(having_all))
    return q.order_by(models.Room.room_number.asc()).all()


def search_available_rooms(
    db: Session,
    criteria: schemas.AvailabilitySearch,
    principal: Principal,
    now: Optional[datetime] = None,
) -> List[models.Room]:
    authorize(principal, Action.SEARCH_AVAILABILITY)
    now = now or utcnow()
    if criteria.start_time < now:
        raise ValidationError("Cannot search for availability in the past")

    candidates = candidate_rooms(db, criteria.capacity, criteria.features)
    if not candidates:
        return []

    busy = rooms_with_conflicts(db, [r.id for r in candidates], criteria.start_time, criteria.end_time)
    free = [r for r in candidates if r.id not in busy]
    logger.debug(
        "Availability %s..%s cap>=%s: %d candidates, %d busy",
        criteria.start_time, criteria.end_time, criteria.capacity, len(candidates), len(busy),
    )
    return free
