from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from hovenier.core.errors import (
    HovenierError,
    NotFoundError,
    PersistenceError,
    PreconditionError,
    ValidationError,
)
from hovenier.core.logging_config import logger

# Volgorde telt: subclasses eerst
STATUS_BY_ERROR = (
    (NotFoundError, 404),
    (ValidationError, 422),
    (PreconditionError, 409),
    (PersistenceError, 503),
)


def status_for(exc: HovenierError) -> int:
    for cls, status in STATUS_BY_ERROR:
        if isinstance(exc, cls):
            return status
    return 400


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(HovenierError)
    def hovenier_error_handler(request: Request, exc: HovenierError):
        status = status_for(exc)
        log = logger.bind(endpoint=str(request.url.path), method=request.method, code=exc.code)
        if status >= 500:
            log.error("request_failed", error=exc.message)
        else:
            log.info("request_rejected", error=exc.message)
        return JSONResponse(status_code=status, content=jsonable_encoder({"error": exc.to_dict()}))
