from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from worktime.core.logging import configure_logging
from worktime.database import configure_database
from worktime.models import (  # noqa: F401
    company,
    employee,
    notification,
    service,
    subsidiary,
    time_entry,
    user,
)
from worktime.routers.auth import router as auth_router
from worktime.routers.dashboard import router as dashboard_router
from worktime.routers.employees import router as employees_router
from worktime.routers.estimation import router as estimation_router
from worktime.routers.notifications import router as notifications_router
from worktime.routers.reports import router as reports_router
from worktime.routers.subsidiary_services import router as subsidiary_services_router
from worktime.routers.timesheet import router as timesheet_router
from worktime.routers.validation import router as validation_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    configure_database()
    logger.info("Worktime service starting")
    yield
    logger.info("Worktime service stopping")


app = FastAPI(
    title="Worktime",
    lifespan=lifespan,
)


@app.middleware("http")
async def catch_unhandled_exceptions(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception:
        logger.exception(
            "Unhandled exception",
            extra={"method": request.method, "path": request.url.path},
        )
        return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


app.include_router(auth_router)
app.include_router(timesheet_router)
app.include_router(validation_router)
app.include_router(employees_router)
app.include_router(reports_router)
app.include_router(estimation_router)
app.include_router(dashboard_router)
app.include_router(notifications_router)
app.include_router(subsidiary_services_router)


@app.get("/")
def root():
    return {"status": "Worktime running"}


@app.get("/health")
def health():
    return {
        "status": "ok",
        "version": "1.0.0",
    }
