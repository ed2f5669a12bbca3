import uuid
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from ..dependencies import get_movie_service
from ..limiter import limiter
from ..schemas.movie import (
    DiscoverParams, DiscoverResponse, MovieDetail, SearchResponse,
)
from ..services.movie_service import DEFAULT_PAGE_SIZE, MovieService

router = APIRouter()


def split_csv(value: Optional[str], sep: str = ",") -> List[str]:
    """Split on sep, trim entries and drop empty ones"""
    if not value:
        return []
    return [part.strip() for part in value.split(sep) if part.strip()]


def parse_optional_float(value: Optional[str]) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except ValueError:
        return None


def parse_int(value: Optional[str], default: int) -> int:
    """Lenient integer parse; anything unparseable falls back to default"""
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def is_uuid(value: str) -> bool:
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


@router.get("/api/movie/", response_model=MovieDetail, response_model_exclude_none=True)
@limiter.limit("60/minute")
async def get_movie(
    request: Request,  # Required for limiter
    movie_id: Optional[str] = Query(None, alias="id"),
    lang: str = "en",
    append_to_response: Optional[str] = None,
    service: MovieService = Depends(get_movie_service),
):
    """
    Movie detail, optionally expanded with genres, companies and credits
    (`append_to_response=genres,credits`).
    """
    if not movie_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Movie id needed")
    if not is_uuid(movie_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid movie ID")

    return await service.get_movie_by_id(movie_id, lang, split_csv(append_to_response))


@router.get("/api/movies/search", response_model=SearchResponse, response_model_exclude_none=True)
@limiter.limit("30/minute")
async def search_movies(
    request: Request,
    query: str = "",
    include_adult: str = "false",
    language: str = "en-US",
    primary_release_year: Optional[str] = None,
    year: Optional[str] = None,
    region: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    service: MovieService = Depends(get_movie_service),
):
    """
    Free-text search over localised titles and overviews
    """
    query = query.strip()
    if not query:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="query parameter required")

    year_value = primary_release_year or year
    primary_year = None
    if year_value:
        try:
            primary_year = int(year_value)
        except ValueError:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid year")

    return await service.search_movies(
        query,
        language,
        include_adult in ("true", "1"),
        primary_year,
        region or None,
        page,
        page_size,
    )


@router.get("/api/movies/discover", response_model=DiscoverResponse, response_model_exclude_none=True)
@limiter.limit("30/minute")
async def discover_movies(
    request: Request,
    include_adult: str = "false",
    language: str = "en",
    sort_by: str = "popularity.desc",
    with_genres: Optional[str] = None,
    release_gte: Optional[date] = Query(None, alias="releaseGTE"),
    release_lte: Optional[date] = Query(None, alias="releaseLTE"),
    vote_avg_gte: Optional[str] = Query(None, alias="VoteAvgGTE"),
    vote_avg_lte: Optional[str] = Query(None, alias="VoteAvgLTE"),
    page: Optional[str] = None,
    page_size: Optional[str] = None,
    service: MovieService = Depends(get_movie_service),
):
    """
    Browse the catalog with filters.

    `with_genres` takes genre ids: comma separated means all of them,
    pipe separated means any of them.
    """
    genres_and = bool(with_genres) and "," in with_genres
    genres = split_csv(with_genres, "," if genres_and else "|")
    if not all(is_uuid(genre_id) for genre_id in genres):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid genre id")

    params = DiscoverParams(
        include_adult=include_adult == "true",
        language=language,
        sort_by=sort_by,
        with_genres=genres,
        with_genres_and=genres_and,
        release_date_gte=release_gte,
        release_date_lte=release_lte,
        vote_average_gte=parse_optional_float(vote_avg_gte),
        vote_average_lte=parse_optional_float(vote_avg_lte),
        page=parse_int(page, 1),
        page_size=parse_int(page_size, DEFAULT_PAGE_SIZE),
    )
    return await service.discover_movies(params)
