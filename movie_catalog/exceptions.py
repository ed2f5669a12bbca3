from typing import Optional, TYPE_CHECKING

from fastapi import Request, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
import logging

if TYPE_CHECKING:
    from .schemas.movie import MovieDetail

logger = logging.getLogger(__name__)


class MovieCatalogException(Exception):
    """Base exception for the application"""
    pass


class MovieNotFoundError(MovieCatalogException):
    def __init__(self, movie_id: str):
        super().__init__(f"movie {movie_id} not found")
        self.movie_id = movie_id


class StoreError(MovieCatalogException):
    """Data-access failure. The driver exception is kept as __cause__."""

    def __init__(self, operation: str, detail: Optional[str] = None):
        message = f"{operation} failed"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.operation = operation


class DetailResolutionError(MovieCatalogException):
    """
    A movie detail lookup failed.

    `operation` names the failing step ("get base movie", "fetch credits"),
    `section` the enrichment tag when a section fetch failed, and `partial`
    carries the detail as far as it was built before the failure.
    """

    def __init__(
        self,
        operation: str,
        cause: BaseException,
        section: Optional[str] = None,
        partial: Optional["MovieDetail"] = None,
    ):
        super().__init__(f"{operation}: {cause}")
        self.operation = operation
        self.cause = cause
        self.section = section
        self.partial = partial


class UpstreamTimeoutError(MovieCatalogException):
    pass


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


async def catalog_exception_handler(request: Request, exc: MovieCatalogException):
    """
    Map domain failures to client statuses.
    """
    request_id = _request_id(request)

    cause = exc.cause if isinstance(exc, DetailResolutionError) else exc
    if isinstance(cause, MovieNotFoundError):
        status_code = 404
    elif isinstance(exc, UpstreamTimeoutError):
        status_code = 504
    else:
        status_code = 502

    log = logger.info if status_code < 500 else logger.error
    log(
        f"HTTP {status_code} error",
        extra={"request_id": request_id, "path": request.url.path, "error": str(exc)},
    )

    return JSONResponse(
        status_code=status_code,
        content={"error": str(exc), "request_id": request_id},
    )


async def global_exception_handler(request: Request, exc: Exception):
    """
    Catch-all exception handler to execute last (if registered appropriately).
    Returns 500 JSON response and hides internal error details in production.
    """
    request_id = _request_id(request)

    logger.error(
        "Unhandled exception occurred",
        extra={"request_id": request_id, "path": request.url.path},
        exc_info=exc
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal Server Error",
            "message": "An unexpected error occurred. Please contact support.",
            "request_id": request_id
        },
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    """
    Handle standard FastAPI HTTPExceptions.
    """
    request_id = _request_id(request)

    # Log 5xx errors as errors, 4xx as info
    if exc.status_code >= 500:
        logger.error(f"HTTP {exc.status_code} error", extra={"request_id": request_id, "detail": exc.detail})
    else:
        logger.info(f"HTTP {exc.status_code} error", extra={"request_id": request_id, "detail": exc.detail})

    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail, "request_id": request_id},
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handle Pydantic validation errors.
    """
    request_id = _request_id(request)
    logger.info("Validation error", extra={"request_id": request_id, "errors": exc.errors()})

    return JSONResponse(
        status_code=422,
        content={
            "error": "Validation Error",
            "details": jsonable_errors(exc),
            "request_id": request_id
        },
    )


def jsonable_errors(exc: RequestValidationError):
    # pydantic v2 may put exception instances into "ctx"
    return jsonable_encoder(exc.errors(), custom_encoder={Exception: str})
