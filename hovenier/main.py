# hovenier/main.py
import time
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request

from hovenier import models  # noqa: F401  (registreert SQLAlchemy modellen)
from hovenier.api import invoices, projects, public, quotes
from hovenier.api.errors import install_error_handlers
from hovenier.core.logging_config import logger, setup_logging
from hovenier.core.settings import settings
from hovenier.db import Base, engine


def create_app() -> FastAPI:
    setup_logging()

    # ----------------------------------------------------
    # App init
    # ----------------------------------------------------
    app = FastAPI(title="Hovenier offerte-tot-factuur", version="0.1.0")
    install_error_handlers(app)

    # ----------------------------------------------------
    # Health
    # ----------------------------------------------------
    @app.get("/health", include_in_schema=True)
    def health() -> dict:
        return {"status": "ok"}

    # ----------------------------------------------------
    # Logging middleware
    # ----------------------------------------------------
    @app.middleware("http")
    async def logging_middleware(request: Request, call_next):
        start = time.time()
        request_id = request.headers.get("X-Request-ID") or uuid4().hex

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        bound_logger = logger.bind(endpoint=str(request.url.path), method=request.method)
        bound_logger.info("request_started")
        response = await call_next(request)
        latency_ms = round((time.time() - start) * 1000, 2)

        bound_logger.bind(status_code=response.status_code, latency_ms=latency_ms).info(
            "request_finished"
        )
        response.headers["X-Request-ID"] = request_id
        return response

    # ----------------------------------------------------
    # Routers
    # ----------------------------------------------------
    app.include_router(quotes.router)
    app.include_router(projects.router)
    app.include_router(invoices.router)
    app.include_router(public.router)

    # ----------------------------------------------------
    # Startup
    # ----------------------------------------------------
    @app.on_event("startup")
    def on_startup():
        Base.metadata.create_all(bind=engine)
        logger.info("startup", service="hovenier-api", database=settings.DATABASE_URL.split("://")[0])

    return app


app = create_app()
