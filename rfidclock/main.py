# rfidclock/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .database import SessionLocal, engine, get_db, init_db
from .errors import (AlreadyCheckedIn, AttendanceError, EnrollmentFailed, InvalidBadgeId, InvalidConfiguration,
                     NoActiveSession, OutsideAllowedWindow, OwnershipConflict, WorkerNotFound)
from .logger_helper import create_logging_middleware, setup_logging
from .routers import access_audit as access_audit_router
from .routers import admin as admin_router
from .routers import attendance as attendance_router
from .routers import badges as badges_router
from .routers import metrics as metrics_router
from .routers import system as system_router
from .services import build_services
from .settings import settings as default_settings

logger = logging.getLogger(__name__)

# Domain error -> HTTP status
ERROR_STATUS = [
    (OwnershipConflict, 409),
    (AlreadyCheckedIn, 409),
    (NoActiveSession, 422),
    (OutsideAllowedWindow, 422),
    (WorkerNotFound, 404),
    (InvalidBadgeId, 400),
    (InvalidConfiguration, 400),
    (EnrollmentFailed, 504),
]


def status_for(exc):
    for exc_type, status in ERROR_STATUS:
        if isinstance(exc, exc_type):
            return status
    return 500


def create_app(settings=default_settings, session_factory=None, bind=None, mailbox=None, clock=None):
    session_factory = session_factory or SessionLocal
    bind = bind or engine
    setup_logging(settings.log_level, settings.log_file)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db(bind)
        logger.info("Database initialized")
        services = app.state.services
        services.badges.seed_pool(settings.system_badges)
        if settings.poller_enabled:
            services.scheduler.start()
        yield
        services.scheduler.stop()
        logger.info("Shutting down...")

    app = FastAPI(title="RFID Attendance Engine", lifespan=lifespan)
    app.state.services = build_services(settings, session_factory, mailbox=mailbox, clock=clock)

    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    create_logging_middleware(app, logging.getLogger("rfidclock.requests"))

    @app.exception_handler(AttendanceError)
    async def attendance_error_handler(request: Request, exc: AttendanceError):
        return JSONResponse(
            status_code=status_for(exc),
            content={"detail": {"code": exc.code, "message": exc.message}},
        )

    @app.get("/health")
    def health():
        services = app.state.services
        return {
            "status": "running",
            "poller_running": services.scheduler.running,
            "channels": {
                channel: {"kind": kind, "dedup_keys": len(services.poller.windows[channel])}
                for channel, kind in services.poller.channels.items()
            },
        }

    app.include_router(badges_router.router)
    app.include_router(attendance_router.router)
    app.include_router(metrics_router.router)
    app.include_router(admin_router.router)
    app.include_router(access_audit_router.router)
    app.include_router(system_router.router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("rfidclock.main:app", host="0.0.0.0", port=8000)
