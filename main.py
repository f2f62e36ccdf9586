# main.py
import logging
import time

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from config.settings import settings
from core.logging_config import configure_logging
from database.connection import SessionLocal, create_all_tables, engine
from modules.common.errors import setup_exception_handlers

configure_logging(settings)
logger = logging.getLogger("meeting_rooms")

# ----- App instance -----
app = FastAPI(title="Meeting Room Booking API", version="1.0.0")

# ----- Middlewares -----
class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "%s %s -> %s (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - start) * 1000.0,
        )
        return response

app.add_middleware(RequestLogMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_exception_handlers(app)

# ----- Routers -----
from modules.security.auth_routes import router as auth_router
from modules.meeting.routes import routers as meeting_routers

app.include_router(auth_router)
for r in meeting_routers:
    app.include_router(r)

# ----- Startup -----
from modules.meeting.migrations import run_startup_migrations
from modules.security.bootstrap import ensure_default_admin

@app.on_event("startup")
def on_startup():
    logger.info("Creating all database tables...")
    create_all_tables(engine)
    run_startup_migrations(engine)
    with SessionLocal() as db:
        ensure_default_admin(db)
    logger.info("Startup complete.")

@app.get("/health", include_in_schema=False)
def health():
    return {"status": "ok"}

# ----- Entrypoint -----
if __name__ == "__main__":
    uvicorn.run("main:app", host=settings.HOST, port=settings.PORT, reload=True)
