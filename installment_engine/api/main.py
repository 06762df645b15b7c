"""FastAPI application factory"""

from contextlib import asynccontextmanager
from functools import partial

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from installment_engine.api.dependencies import ledger_scope
from installment_engine.api.middleware import RequestIDMiddleware, MetricsMiddleware
from installment_engine.api.v1 import installments
from installment_engine.domain.ledger import PlanLocks
from installment_engine.infrastructure.observability.logging import setup_logging
from installment_engine.infrastructure.tasks.overdue_sweeper import OverdueSweeper
from installment_engine.utils.clock import Clock, SystemClock
from installment_engine.config import settings

# Setup structured logging
setup_logging(settings.log_level)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed requests are a 400, like any other validation failure"""
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run the overdue sweeper for as long as the app is serving"""
    sweeper = None
    if settings.overdue_sweep_enabled:
        sweeper = OverdueSweeper(
            ledger_factory=partial(ledger_scope, app.state.clock, app.state.plan_locks),
            clock=app.state.clock,
            interval_seconds=settings.overdue_sweep_interval_seconds,
        )
        sweeper.start()
    app.state.overdue_sweeper = sweeper

    yield

    if sweeper is not None:
        await sweeper.stop()


def create_app(clock: Clock | None = None) -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Installment Plan Engine",
        description="Installment plan creation, payment settlement and overdue tracking",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Shared by request handlers and the overdue sweeper
    app.state.clock = clock or SystemClock()
    app.state.plan_locks = PlanLocks()

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(installments.router, prefix="/installments", tags=["installments"])

    return app


app = create_app()
