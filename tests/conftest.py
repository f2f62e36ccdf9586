from __future__ import annotations

import os
import threading

os.environ.setdefault("LOG_TO_FILE", "false")

from datetime import datetime, timedelta
from typing import Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import event
from sqlalchemy.orm import Session, sessionmaker

from database.connection import create_all_tables, get_db, make_engine
from modules.common.errors import Conflict, NotFound, ValidationError
from modules.common.timeutils import utcnow
from modules.meeting import catalog
from modules.meeting.models import Room
from modules.meeting.schemas import FloorCreate, RoomCreate
from modules.security.model import User, UserRole
from modules.security.passwords import hash_password
from modules.security.perms import Principal
from modules.security.tokens import create_access_token


@pytest.fixture()
def engine(tmp_path):
    eng = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    create_all_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture()
def db(session_factory) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


def _make_user(db: Session, name: str, email: str, role: UserRole) -> Principal:
    user = User(name=name, email=email, password_hash=hash_password("password123"), role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    return Principal(id=user.id, email=user.email, role=user.role)


@pytest.fixture()
def admin(db) -> Principal:
    return _make_user(db, "Admin", "admin@example.com", UserRole.ADMIN)


@pytest.fixture()
def alice(db) -> Principal:
    return _make_user(db, "Alice", "alice@example.com", UserRole.CLIENT)


@pytest.fixture()
def bob(db) -> Principal:
    return _make_user(db, "Bob", "bob@example.com", UserRole.CLIENT)


@pytest.fixture()
def tomorrow() -> datetime:
    """Midnight two days out, so hour offsets on it are always in the future."""
    return (utcnow() + timedelta(days=2)).replace(hour=0, minute=0, second=0, microsecond=0)


def at(day: datetime, hour: int, minute: int = 0) -> datetime:
    return day.replace(hour=hour, minute=minute)


@pytest.fixture()
def floor(db, admin):
    return catalog.create_floor(
        db,
        FloorCreate(
            name="Ground",
            number=0,
            description="Lobby level",
            rooms=[
                RoomCreate(room_number=101, name="Everest", capacity=10, features=["Projector", "Wifi"]),
                RoomCreate(room_number=102, name="K2", capacity=4, features=["Whiteboard"]),
                RoomCreate(room_number=103, name="Denali", capacity=20, features=["Projector", "Whiteboard", "Wifi"]),
            ],
        ),
        admin,
    )


@pytest.fixture()
def rooms(db, floor) -> dict[int, Room]:
    return {r.room_number: r for r in floor.rooms}


@pytest.fixture()
def client(session_factory) -> Iterator[TestClient]:
    from main import app

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def auth_headers(principal: Principal) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(principal.id, principal.email, principal.role)}"}


def race(session_factory, *jobs) -> list:
    """
    Run each job(session) in its own thread and session, released together.
    Returns "ok" or the raised error's class name per job, in order.
    """
    barrier = threading.Barrier(len(jobs))
    results: list = [None] * len(jobs)

    def run(i, job):
        session = session_factory()
        try:
            barrier.wait()
            job(session)
            results[i] = "ok"
        except (Conflict, NotFound, ValidationError) as exc:
            results[i] = type(exc).__name__
        finally:
            session.close()

    threads = [threading.Thread(target=run, args=(i, job)) for i, job in enumerate(jobs)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)
    return results


def locked_selects(session: Session) -> list:
    """Names of the mapped classes read with FOR UPDATE through `session` from now on."""
    seen: list = []

    @event.listens_for(session, "do_orm_execute")
    def _spy(state):
        if state.is_select and state.statement._for_update_arg is not None:
            seen.append(state.bind_mapper.class_.__name__ if state.bind_mapper else None)

    return seen
