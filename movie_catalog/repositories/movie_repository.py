from typing import Any, List, Optional, Protocol, Tuple

import asyncpg
from asyncpg import Pool

from ..exceptions import MovieNotFoundError, StoreError
from ..schemas.movie import (
    Credit, DiscoverItem, DiscoverParams, MovieDetail, MovieSearchItem,
)

# Failures surfaced by asyncpg or the socket underneath it
DB_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)

SORT_COLUMNS = {
    "popularity": "ms.popularity",
    "release_date": "m.release_date",
    "vote_average": "ms.vote_average",
}
DEFAULT_ORDER = "ms.popularity DESC NULLS LAST, m.created_at DESC"


class MovieStore(Protocol):
    """Reads the detail assembler depends on. All of them are idempotent."""

    async def get_base(self, movie_id: str, lang: str) -> MovieDetail:
        ...

    async def fetch_genres(self, movie_id: str) -> List[str]:
        ...

    async def fetch_companies(self, movie_id: str) -> List[str]:
        ...

    async def fetch_credits(self, movie_id: str) -> List[Credit]:
        ...


def order_by_clause(sort_by: Optional[str]) -> str:
    """Translate `field.direction` into a whitelisted ORDER BY expression."""
    if not sort_by:
        return DEFAULT_ORDER
    field, _, direction = sort_by.partition(".")
    column = SORT_COLUMNS.get(field)
    if column is None:
        return DEFAULT_ORDER
    direction = direction.lower()
    if direction not in ("asc", "desc"):
        direction = "desc"
    return f"{column} {direction.upper()} NULLS LAST"


class MovieRepository:
    def __init__(self, db: Pool):
        self.db = db

    async def _fetch(self, operation: str, query: str, *args: Any) -> List[asyncpg.Record]:
        try:
            return await self.db.fetch(query, *args)
        except DB_ERRORS as exc:
            raise StoreError(operation, str(exc)) from exc

    async def get_base(self, movie_id: str, lang: str) -> MovieDetail:
        """Base fields, title and overview localised with fallback to the original"""
        query = """
            SELECT
                m.id,
                COALESCE(mt.title, m.title) AS title,
                COALESCE(mt.overview, m.overview) AS overview,
                to_char(m.release_date, 'YYYY-MM-DD') AS release_date,
                ms.vote_average, ms.vote_count,
                m.poster_path, m.backdrop_path, m.budget, m.revenue, m.homepage
            FROM movies m
            LEFT JOIN movie_translations mt ON mt.movie_id = m.id AND mt.language = $2
            LEFT JOIN movie_stats ms ON ms.movie_id = m.id
            WHERE m.id = $1::uuid
        """
        try:
            row = await self.db.fetchrow(query, movie_id, lang)
        except DB_ERRORS as exc:
            raise StoreError("query movie base", str(exc)) from exc
        if row is None:
            raise MovieNotFoundError(movie_id)
        return MovieDetail(**{**dict(row), "id": str(row["id"])})

    async def fetch_genres(self, movie_id: str) -> List[str]:
        query = """
            SELECT g.name
            FROM genres g
            JOIN movie_genres mg ON g.id = mg.genre_id
            WHERE mg.movie_id = $1::uuid
        """
        rows = await self._fetch("query genres", query, movie_id)
        return [row["name"] for row in rows]

    async def fetch_companies(self, movie_id: str) -> List[str]:
        query = """
            SELECT c.name
            FROM companies c
            JOIN movie_companies mc ON c.id = mc.company_id
            WHERE mc.movie_id = $1::uuid
        """
        rows = await self._fetch("query companies", query, movie_id)
        return [row["name"] for row in rows]

    async def fetch_credits(self, movie_id: str) -> List[Credit]:
        query = """
            SELECT p.name, p.known_for, c.credit_type
            FROM people p
            JOIN credits c ON p.id = c.person_id
            WHERE c.movie_id = $1::uuid
        """
        rows = await self._fetch("query credits", query, movie_id)
        return [Credit(**dict(row)) for row in rows]

    async def _count(self, operation: str, query: str, *args: Any) -> int:
        try:
            return await self.db.fetchval(query, *args)
        except DB_ERRORS as exc:
            raise StoreError(operation, str(exc)) from exc

    async def _page_total(self, operation: str, rows: List[asyncpg.Record], offset: int,
                          count_query: str, *args: Any) -> int:
        """Total matches from the window count, or a COUNT(*) for a page past the end"""
        if rows:
            return rows[0]["total_count"]
        if offset == 0:
            return 0
        return await self._count(operation, count_query, *args)

    async def search_movies(
        self,
        query_text: str,
        include_adult: bool,
        lang: str,
        year: Optional[int],
        region: Optional[str],
        page: int,
        page_size: int,
    ) -> Tuple[int, List[MovieSearchItem]]:
        """
        Case-insensitive match on localised title or overview.
        Returns (total matches, items of the requested page).
        """
        matches = """
            FROM movies m
            LEFT JOIN movie_translations mt ON mt.movie_id = m.id AND mt.language = $2
            LEFT JOIN movie_stats ms ON ms.movie_id = m.id
            WHERE (
                COALESCE(mt.title, m.title) ILIKE '%' || $1 || '%'
                OR COALESCE(mt.overview, m.overview) ILIKE '%' || $1 || '%'
            )
            AND ($3 OR m.adult = false)
            AND ($4::int IS NULL OR EXTRACT(YEAR FROM m.release_date)::int = $4::int)
            AND (
                $5::text IS NULL OR EXISTS (
                    SELECT 1
                    FROM movie_companies mc
                    JOIN companies c ON c.id = mc.company_id
                    WHERE mc.movie_id = m.id AND c.origin_country = $5::text
                )
            )
        """
        query = f"""
            SELECT
                m.id,
                COALESCE(mt.title, m.title) AS title,
                COALESCE(mt.overview, m.overview) AS overview,
                to_char(m.release_date, 'YYYY-MM-DD') AS release_date,
                ms.vote_average,
                ms.popularity,
                COUNT(*) OVER() AS total_count
            {matches}
            ORDER BY ms.popularity DESC NULLS LAST, m.created_at DESC
            LIMIT $6 OFFSET $7
        """
        filters = (query_text, lang, include_adult, year, region)
        offset = (page - 1) * page_size
        rows = await self._fetch("search movies", query, *filters, page_size, offset)

        total = await self._page_total(
            "count search matches", rows, offset, f"SELECT COUNT(*) {matches}", *filters,
        )
        items = [
            MovieSearchItem(
                id=str(row["id"]),
                title=row["title"],
                overview=row["overview"],
                release_date=row["release_date"],
                vote_average=row["vote_average"],
                popularity=row["popularity"],
            )
            for row in rows
        ]
        return total, items

    async def discover_movies(self, params: DiscoverParams) -> Tuple[List[DiscoverItem], int]:
        """
        Filtered catalog listing. Optional filters are passed as NULL and
        skipped inside the query; only ORDER BY comes from a whitelist.
        """
        matches = """
            FROM movies m
            LEFT JOIN movie_translations mt ON mt.movie_id = m.id AND mt.language = $1
            LEFT JOIN movie_stats ms ON ms.movie_id = m.id
            WHERE ($2 OR m.adult = false)
            AND ($3::date IS NULL OR m.release_date >= $3::date)
            AND ($4::date IS NULL OR m.release_date <= $4::date)
            AND ($5::float8 IS NULL OR ms.vote_average >= $5::float8)
            AND ($6::float8 IS NULL OR ms.vote_average <= $6::float8)
            AND (
                $7::uuid[] IS NULL
                OR ($8 AND m.id IN (
                    SELECT mg2.movie_id FROM movie_genres mg2
                    WHERE mg2.genre_id = ANY($7::uuid[])
                    GROUP BY mg2.movie_id
                    HAVING COUNT(DISTINCT mg2.genre_id) = cardinality($7::uuid[])
                ))
                OR (NOT $8 AND EXISTS (
                    SELECT 1 FROM movie_genres mg3
                    WHERE mg3.movie_id = m.id AND mg3.genre_id = ANY($7::uuid[])
                ))
            )
        """
        query = f"""
            SELECT
                m.id,
                COALESCE(mt.title, m.title) AS title,
                COALESCE(mt.overview, m.overview) AS overview,
                to_char(m.release_date, 'YYYY-MM-DD') AS release_date,
                ms.vote_average, ms.vote_count,
                m.poster_path, m.backdrop_path, ms.popularity,
                (
                    SELECT COALESCE(array_agg(g.id::text), ARRAY[]::text[])
                    FROM movie_genres mg JOIN genres g ON mg.genre_id = g.id
                    WHERE mg.movie_id = m.id
                ) AS genre_ids,
                COUNT(*) OVER() AS total_count
            {matches}
            ORDER BY {order_by_clause(params.sort_by)}
            LIMIT $9 OFFSET $10
        """
        filters = (
            params.language,
            params.include_adult,
            params.release_date_gte,
            params.release_date_lte,
            params.vote_average_gte,
            params.vote_average_lte,
            params.with_genres or None,
            params.with_genres_and,
        )
        offset = (params.page - 1) * params.page_size
        rows = await self._fetch("discover movies", query, *filters, params.page_size, offset)

        total = await self._page_total(
            "count discover matches", rows, offset, f"SELECT COUNT(*) {matches}", *filters,
        )
        items = [
            DiscoverItem(
                id=str(row["id"]),
                title=row["title"],
                overview=row["overview"],
                release_date=row["release_date"],
                vote_average=row["vote_average"],
                vote_count=row["vote_count"],
                poster_path=row["poster_path"],
                backdrop_path=row["backdrop_path"],
                popularity=row["popularity"],
                genre_ids=list(row["genre_ids"]),
            )
            for row in rows
        ]
        return items, total
