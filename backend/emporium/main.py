"""FastAPI application entry point."""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from emporium.config import settings
from emporium.db.engine import async_session, engine
from emporium.db.models import Base

# Routers
from emporium.api.approval_jobs import router as approval_jobs_router
from emporium.api.categories import router as categories_router
from emporium.api.products import router as products_router
from emporium.api.errors import register_exception_handlers
from emporium.services.approval_codec import default_codec
from emporium.services.approval_dispatch import default_dispatch_table, verify_registry

from emporium.utils.logger import ctx_request_id, ctx_user_id, setup_logger
from emporium.utils.tracing import setup_tracing, shutdown_tracing

logger = setup_logger(
    log_format=settings.LOG_FORMAT,
    log_level="DEBUG" if settings.DEBUG else settings.LOG_LEVEL,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # A codec shape without a dispatch entry (or the reverse) must stop startup.
    verify_registry(default_codec, default_dispatch_table)

    if settings.is_sqlite:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    # else: for PostgreSQL, run `alembic upgrade head` before starting the server

    if settings.SEED_DEFAULT_ADMIN:
        from emporium.services.user_service import ensure_default_admin
        async with async_session() as db:
            await ensure_default_admin(db)

    logger.info("Application lifespan startup complete")
    try:
        yield
    finally:
        shutdown_tracing()
        await engine.dispose()


app = FastAPI(
    title="Emporium",
    description="E-commerce catalog with approval-governed mutations",
    version="0.1.0",
    lifespan=lifespan,
)

# Initialize OpenTelemetry setup (if endpoint is provided in config)
setup_tracing(app, settings.OTLP_ENDPOINT)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    token = ctx_request_id.set(request_id)
    # get_current_user fills this in; it must not outlive the request
    user_token = ctx_user_id.set(None)
    try:
        response = await call_next(request)
    finally:
        ctx_user_id.reset(user_token)
        ctx_request_id.reset(token)
    response.headers["X-Request-ID"] = request_id
    return response


register_exception_handlers(app)

app.include_router(approval_jobs_router, prefix="/api/v1/approval-jobs", tags=["approval-jobs"])
app.include_router(categories_router, prefix="/api/v1/categories", tags=["categories"])
app.include_router(products_router, prefix="/api/v1/products", tags=["products"])


@app.get("/api/health")
async def health():
    return {"status": "ok"}


@app.get("/api/metrics", response_class=PlainTextResponse, tags=["observability"])
async def prometheus_metrics():
    """Prometheus-compatible text exposition of in-process metrics.

    Example line: ``emporium_approval_jobs_submitted_total{operation="CREATE",type="CATEGORY"} 3``
    """
    from emporium.utils.metrics import to_prometheus_text
    return to_prometheus_text()
