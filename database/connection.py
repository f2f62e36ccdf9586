# database/connection.py
import logging
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from config.settings import settings
from database.base import Base

logger = logging.getLogger(__name__)


def make_engine(url: str) -> Engine:
    return create_engine(
        url,
        connect_args={"check_same_thread": False} if url.startswith("sqlite") else {},
    )


engine = make_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# ---------- session ----------
def get_db() -> Generator:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

# ---------- bootstrap ----------
def create_all_tables(bind: Engine = engine) -> None:
    # models must be imported before create_all
    from modules.security import model as _sec_models  # noqa: F401
    from modules.meeting import models as _m_models     # noqa: F401

    Base.metadata.create_all(bind=bind)
    logger.info("Database tables ensured (%s)", bind.url.render_as_string(hide_password=True))
