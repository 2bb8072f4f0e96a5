# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Worship Roster Service
======================
Schedules worship teams onto service dates, tracks member participation,
and negotiates schedule swaps between team leaders.

Swap request state machine:
    pending ─► accepted   (teams exchanged, rosters regenerated)
    pending ─► rejected
    pending ─► expired    (orphan cleanup, or superseded by another swap)

Port: 8005
"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from roster.controllers import schedule_controller, swap_controller, system_controller
from roster.core.config import settings
from roster.core.database import init_schema
from roster.core.dependencies import Container
from roster.core.errors import InconsistentStateError, RosterError
from roster.core.logging import get_logger
from roster.middleware import MetricsMiddleware, RequestContextMiddleware

logger = get_logger(__name__)


def create_app(container: Optional[Container] = None) -> FastAPI:
    """Build the application around an explicitly constructed container."""
    container = container or Container()

    @asynccontextmanager
    async def lifespan(application: FastAPI):
        if settings.AUTO_CREATE_SCHEMA:
            try:
                init_schema(container.engine)
            except SQLAlchemyError:
                logger.warning("Could not ensure schema, DB may not be ready yet")
        try:
            container.swap_service.refresh_gauges()
        except SQLAlchemyError:
            logger.warning("Could not seed gauges, DB may not be ready yet")
        logger.info("%s v%s started", settings.SERVICE_NAME, settings.SERVICE_VERSION)
        yield
        container.close()
        logger.info("Shutting down: notification pool and connection pool closed")

    app = FastAPI(
        title="Worship Roster Service",
        description="Worship team schedules, participation tracking and schedule swaps.",
        version=settings.SERVICE_VERSION,
        lifespan=lifespan,
    )
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestContextMiddleware)

    @app.exception_handler(RosterError)
    async def roster_error_handler(request: Request, exc: RosterError):
        if isinstance(exc, InconsistentStateError):
            # Full detail is already logged at CRITICAL by the swap service.
            return JSONResponse(
                status_code=exc.status_code,
                content={"error": exc.code, "detail": exc.public_message},
            )
        if exc.status_code >= 500:
            logger.error("Request failed: %s", exc)
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.code, "detail": str(exc)},
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error("Database error: %s", exc, exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "internal", "detail": "Database error"},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return JSONResponse(
            status_code=500,
            content={"error": "internal_server_error", "detail": str(exc)},
        )

    app.include_router(system_controller.router)
    app.include_router(schedule_controller.router)
    app.include_router(swap_controller.router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=settings.SERVICE_PORT)
