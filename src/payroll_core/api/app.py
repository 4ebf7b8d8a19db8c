"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from payroll_core import __version__
from payroll_core.api.routes import gl_router, health_router, simulations_router
from payroll_core.calculators.types import InvalidPayPeriodError, UnknownFrequencyError
from payroll_core.database import dispose_db, init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    init_db()
    yield
    # Shutdown
    await dispose_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Payroll Core API",
        description="Salary aggregation, statutory deductions and GL posting previews",
        version=__version__,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(InvalidPayPeriodError)
    async def invalid_period_handler(
        request: Request, exc: InvalidPayPeriodError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={
                "detail": str(exc),
                "code": "INVALID_PAY_PERIOD",
                "context": {"start": exc.start.isoformat(), "end": exc.end.isoformat()},
            },
        )

    @app.exception_handler(UnknownFrequencyError)
    async def unknown_frequency_handler(
        request: Request, exc: UnknownFrequencyError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={
                "detail": str(exc),
                "code": "UNKNOWN_FREQUENCY",
                "context": {"frequency": str(exc.code)},
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(simulations_router, prefix="/api/v1")
    app.include_router(gl_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
