import logging

import asyncpg
from fastapi import Depends

from .config import settings
from .repositories.movie_repository import MovieRepository
from .services.movie_service import MovieService

logger = logging.getLogger(__name__)


# Global state for connections
class AppState:
    pg_pool: asyncpg.Pool = None


state = AppState()


async def init_resources():
    """Initialize all resources"""
    state.pg_pool = await asyncpg.create_pool(
        settings.DATABASE_URL,
        min_size=settings.DB_POOL_MIN_SIZE,
        max_size=settings.DB_POOL_MAX_SIZE,
        command_timeout=settings.DB_COMMAND_TIMEOUT,
    )
    logger.info("Database pool initialized")


async def close_resources():
    """Close all resources"""
    if state.pg_pool:
        await state.pg_pool.close()
        state.pg_pool = None
    logger.info("Database pool closed")


# Dependencies
async def get_db_pool() -> asyncpg.Pool:
    return state.pg_pool


async def get_movie_service(db=Depends(get_db_pool)) -> MovieService:
    return MovieService(MovieRepository(db))
