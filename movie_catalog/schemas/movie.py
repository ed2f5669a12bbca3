from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field


class Credit(BaseModel):
    """One cast or crew entry of a movie"""
    name: str
    known_for: Optional[str] = None
    credit_type: str


class MovieDetail(BaseModel):
    """
    Movie detail response.

    Base fields come from one lookup; the collections stay None unless the
    matching section was requested and fetched.
    """
    id: str
    title: str
    overview: Optional[str] = None
    release_date: Optional[str] = None
    vote_average: Optional[float] = None
    vote_count: Optional[int] = None
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    budget: Optional[int] = None
    revenue: Optional[int] = None
    homepage: Optional[str] = None
    genres: Optional[List[str]] = None
    production_companies: Optional[List[str]] = None
    credits: Optional[List[Credit]] = None


class MovieSearchItem(BaseModel):
    id: str
    title: str
    overview: Optional[str] = None
    release_date: Optional[str] = None
    vote_average: Optional[float] = None
    popularity: Optional[float] = None


class SearchResponse(BaseModel):
    page: int
    total_results: int
    total_pages: int
    results: List[MovieSearchItem]


class DiscoverParams(BaseModel):
    """Filters for the discover endpoint"""
    include_adult: bool = False
    language: str = "en"
    sort_by: str = "popularity.desc"
    with_genres: List[str] = Field(default_factory=list)
    with_genres_and: bool = False  # True: movie must carry every genre
    release_date_gte: Optional[date] = None
    release_date_lte: Optional[date] = None
    vote_average_gte: Optional[float] = None
    vote_average_lte: Optional[float] = None
    page: int = 1
    page_size: int = 20


class DiscoverItem(BaseModel):
    id: str
    title: str
    overview: Optional[str] = None
    release_date: Optional[str] = None
    vote_average: Optional[float] = None
    vote_count: Optional[int] = None
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    popularity: Optional[float] = None
    genre_ids: List[str] = Field(default_factory=list)


class DiscoverResponse(BaseModel):
    page: int
    page_size: int
    total_results: int
    total_pages: int
    results: List[DiscoverItem]
