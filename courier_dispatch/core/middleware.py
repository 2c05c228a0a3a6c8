# courier_dispatch/core/middleware.py
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import time
import logging

from courier_dispatch.shared.schemas.common import ErrorResponse
from .exceptions import (
    DispatchError, NotFoundError, InvalidStateError, GeocodingFailed,
    InvalidCoordinate, InvalidRadius, ConsistencyError
)

logger = logging.getLogger(__name__)

# Most specific first
ERROR_STATUS_CODES = [
    (NotFoundError, 404),
    (InvalidStateError, 409),
    (GeocodingFailed, 503),
    (InvalidCoordinate, 422),
    (InvalidRadius, 422),
    (ConsistencyError, 500),
]

def status_code_for(error: DispatchError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return 400

def setup_middleware(app: FastAPI):
    """Configure all middleware for the application"""

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request, call_next):
        start_time = time.time()

        response = await call_next(request)

        process_time = time.time() - start_time
        logger.info(
            f"{request.method} {request.url.path} - "
            f"Status: {response.status_code} - "
            f"Time: {process_time:.4f}s"
        )

        return response

def setup_exception_handlers(app: FastAPI):
    """Translate domain errors raised by the services into HTTP responses"""

    @app.exception_handler(DispatchError)
    async def dispatch_error_handler(request: Request, exc: DispatchError):
        status_code = status_code_for(exc)
        if isinstance(exc, ConsistencyError):
            logger.critical(f"{request.method} {request.url.path}: {exc}")
        elif status_code >= 500:
            logger.error(f"{request.method} {request.url.path}: {exc}")
        else:
            logger.info(f"{request.method} {request.url.path} rejected: {exc}")

        body = ErrorResponse(
            message=str(exc),
            error_code=exc.error_code,
            retryable=exc.retryable
        )
        return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))
