# core/logging_config.py
import logging
import os
from logging.handlers import TimedRotatingFileHandler

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(settings) -> None:
    """Console logging always; a daily rotating file under LOG_DIR when LOG_TO_FILE is on."""
    root = logging.getLogger()
    root.setLevel((settings.LOG_LEVEL or "INFO").upper())

    formatter = logging.Formatter(LOG_FORMAT)
    handlers = [h for h in root.handlers if getattr(h, "_meeting_rooms", False)]
    for h in handlers:
        root.removeHandler(h)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    console._meeting_rooms = True
    root.addHandler(console)

    if settings.LOG_TO_FILE:
        os.makedirs(settings.LOG_DIR, exist_ok=True)
        file_handler = TimedRotatingFileHandler(
            os.path.join(settings.LOG_DIR, "app.log"),
            when="midnight",
            backupCount=settings.LOG_RETENTION_DAYS,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        file_handler._meeting_rooms = True
        root.addHandler(file_handler)
