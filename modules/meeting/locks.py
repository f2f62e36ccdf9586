# modules/meeting/locks.py
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from modules.common.errors import AppError, Internal

logger = logging.getLogger(__name__)


class KeyedLocks:
    """
    In-process mutex per key (room id, floor id).

    Writers that read-check-write a room's bookings (create, update, delete
    guards) hold the room's lock for the whole transaction. Different rooms
    never contend. Multi-room scopes acquire in ascending id order.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[int, threading.Lock] = {}

    def _lock_for(self, key: int) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, *keys: int) -> Iterator[None]:
        acquired: List[threading.Lock] = []
        try:
            for key in sorted(set(keys)):
                lock = self._lock_for(key)
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()


room_locks = KeyedLocks()
# held while a floor's set of rooms must not change (room creation, floor deletion)
floor_locks = KeyedLocks()


@contextmanager
def room_transaction(db: Session, *room_ids: int, failure_message: str = "Internal error") -> Iterator[None]:
    """
    Critical section for read-check-write sequences on the given rooms.

    Holds the rooms' locks for the whole unit of work and commits at the end.
    Domain errors roll back and propagate unchanged; storage failures roll
    back and surface as `Internal`. Nothing is retried.
    """
    with room_locks.hold(*room_ids):
        try:
            yield
            db.commit()
        except AppError:
            db.rollback()
            raise
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("%s (rooms=%s)", failure_message, list(room_ids))
            raise Internal(failure_message) from exc
        except Exception:
            db.rollback()
            raise
