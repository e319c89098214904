"""Demo Class Scheduler - FastAPI entrypoint."""
import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from pymongo.errors import ServerSelectionTimeoutError

from app.config import settings
from app.db import db_shutdown, db_startup
from app.errors import SchedulingError
from app.api import demo_classes, notifications
from app.api.deps import (
    get_demo_class_store,
    get_email_sender,
    get_notification_store,
    get_realtime_bus,
    get_user_directory,
)
from app.services.reminders import ReminderScheduler

logger = logging.getLogger(__name__)


def build_reminder_scheduler() -> ReminderScheduler:
    users = get_user_directory()
    return ReminderScheduler(
        get_demo_class_store(),
        get_notification_store(),
        get_email_sender(),
        get_realtime_bus(users),
        users,
        base_url=settings.base_url,
        interval_seconds=settings.reminder_interval_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        await db_startup()
    except ServerSelectionTimeoutError as e:
        logger.error(
            "MongoDB is not running. Start it with: docker compose up -d (from project root)"
        )
        raise RuntimeError(
            "MongoDB connection failed. Start MongoDB (e.g. docker compose up -d)."
        ) from e

    reminder_task = None
    if settings.reminders_enabled:
        reminder_task = asyncio.create_task(build_reminder_scheduler().run_forever())
    yield
    if reminder_task:
        reminder_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await reminder_task
    await db_shutdown()


app = FastAPI(
    title=settings.app_name,
    description="Demo class scheduling: create, reschedule, cancel and notify",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(SchedulingError)
async def scheduling_exception_handler(request: Request, exc: SchedulingError):
    return JSONResponse(status_code=exc.http_status, content=exc.to_response())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(p) for p in err["loc"] if p != "body"), "message": err["msg"]}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Validation failed", "errors": errors},
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(demo_classes.router, prefix="/api/demo-classes", tags=["Demo Classes"])
app.include_router(notifications.router, prefix="/api/notifications", tags=["Notifications"])


@app.get("/health")
def health():
    return {"status": "ok", "app": settings.app_name}
