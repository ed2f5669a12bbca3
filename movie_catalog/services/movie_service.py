import asyncio
import logging
import math
from typing import Iterable, Optional

from ..config import settings
from ..exceptions import (
    DetailResolutionError, MovieNotFoundError, StoreError, UpstreamTimeoutError,
)
from ..repositories.movie_repository import MovieRepository
from ..schemas.movie import (
    DiscoverParams, DiscoverResponse, MovieDetail, SearchResponse,
)
from .detail_assembler import DetailAssembler

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 20


def total_pages(total: int, page_size: int) -> int:
    if total <= 0 or page_size <= 0:
        return 0
    return math.ceil(total / page_size)


class MovieService:
    def __init__(self, movie_repo: MovieRepository, detail_timeout: Optional[float] = None):
        self.movie_repo = movie_repo
        self.assembler = DetailAssembler(movie_repo)
        self.detail_timeout = settings.DETAIL_TIMEOUT_SECONDS if detail_timeout is None else detail_timeout

    async def get_movie_by_id(self, movie_id: str, lang: str, append_to_response: Iterable[str]) -> MovieDetail:
        """
        Movie detail with the requested sections, bounded by the detail timeout.
        """
        try:
            return await asyncio.wait_for(
                self.assembler.resolve(movie_id, lang, append_to_response),
                timeout=self.detail_timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.error("Movie detail timed out", extra={"movie_id": movie_id})
            raise UpstreamTimeoutError(
                f"movie detail lookup exceeded {self.detail_timeout}s"
            ) from exc
        except DetailResolutionError as exc:
            if not isinstance(exc.cause, MovieNotFoundError):
                logger.error(
                    "Movie detail failed",
                    extra={"movie_id": movie_id, "operation": exc.operation, "section": exc.section},
                    exc_info=exc,
                )
            raise

    async def search_movies(
        self,
        query: str,
        language: str,
        include_adult: bool,
        primary_year: Optional[int],
        region: Optional[str],
        page: int,
        page_size: int,
    ) -> SearchResponse:
        try:
            total, items = await self.movie_repo.search_movies(
                query, include_adult, language, primary_year, region, page, page_size
            )
        except StoreError:
            logger.error("Search failed", exc_info=True)
            raise

        return SearchResponse(
            page=page,
            total_results=total,
            total_pages=total_pages(total, page_size),
            results=items,
        )

    async def discover_movies(self, params: DiscoverParams) -> DiscoverResponse:
        if params.page < 1:
            params.page = 1
        if params.page_size <= 0:
            params.page_size = DEFAULT_PAGE_SIZE
        elif params.page_size > MAX_PAGE_SIZE:
            params.page_size = MAX_PAGE_SIZE

        try:
            items, total = await self.movie_repo.discover_movies(params)
        except StoreError:
            logger.error("Discover failed", exc_info=True)
            raise

        return DiscoverResponse(
            page=params.page,
            page_size=params.page_size,
            total_results=total,
            total_pages=total_pages(total, params.page_size),
            results=items,
        )
