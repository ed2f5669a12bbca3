"""
=============================================================================
MOVIE CATALOG API
=============================================================================
Endpoints:
  - GET /api/movie/            movie detail (+ append_to_response sections)
  - GET /api/movies/search     free-text search
  - GET /api/movies/discover   filtered browsing
  - GET /health
=============================================================================
"""

from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings
from .dependencies import init_resources, close_resources
from .exceptions import (
    MovieCatalogException,
    catalog_exception_handler,
    global_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from .limiter import limiter
from .logging_config import setup_logging
from .middleware import RequestTrackingMiddleware
from .routers import movie_router

setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_resources()
    try:
        yield
    finally:
        await close_resources()


app = FastAPI(
    title="Movie Catalog API",
    description="Read-only movie catalog: details, search and discovery",
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(RequestTrackingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(MovieCatalogException, catalog_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

app.include_router(movie_router.router, tags=["movies"])


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "version": settings.APP_VERSION
    }
