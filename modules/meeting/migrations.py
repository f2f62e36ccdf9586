# modules/meeting/migrations.py
from __future__ import annotations

import logging
from typing import Set

from sqlalchemy import inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from modules.meeting import models
from modules.meeting.services import rebuild_room_index

logger = logging.getLogger(__name__)


def _get_indexes(engine: Engine, table: str) -> Set[str]:
    insp = inspect(engine)
    if table not in insp.get_table_names():
        return set()
    return {ix["name"] for ix in insp.get_indexes(table) if ix.get("name")}


# -------------------------------------------------------------------
# bookings
# -------------------------------------------------------------------
def ensure_booking_indexes(engine: Engine) -> None:
    """
    Databases created before the conflict-lookup indexes existed get them here;
    create_all does not add indexes to tables that already exist.
    """
    present = _get_indexes(engine, models.Booking.__tablename__)
    for ix in models.Booking.__table__.indexes:
        if ix.name and ix.name not in present:
            ix.create(bind=engine, checkfirst=True)
            logger.info("Created index %s", ix.name)


# -------------------------------------------------------------------
# Entry for app startup
# -------------------------------------------------------------------
def run_startup_migrations(engine: Engine) -> None:
    """
    Call after create_all when the app starts.
    """
    ensure_booking_indexes(engine)
    # room booking index is a cache; resync it with the bookings table
    with Session(bind=engine) as db:
        rebuild_room_index(db)
