import asyncio

import pytest
from unittest.mock import AsyncMock

from movie_catalog.exceptions import (
    DetailResolutionError, MovieNotFoundError, StoreError, UpstreamTimeoutError,
)
from movie_catalog.repositories.movie_repository import MovieRepository
from movie_catalog.schemas.movie import (
    DiscoverItem, DiscoverParams, MovieDetail, MovieSearchItem,
)
from movie_catalog.services.movie_service import MovieService, total_pages


@pytest.fixture
def mock_movie_repo():
    repo = AsyncMock(spec=MovieRepository)
    repo.get_base.return_value = MovieDetail(id="m1", title="Parasite")
    return repo


def test_total_pages():
    assert total_pages(0, 20) == 0
    assert total_pages(20, 20) == 1
    assert total_pages(45, 20) == 3


@pytest.mark.asyncio
async def test_get_movie_by_id_delegates_to_assembler(mock_movie_repo):
    mock_movie_repo.fetch_companies.return_value = ["CJ Entertainment"]
    service = MovieService(mock_movie_repo, detail_timeout=1)

    result = await service.get_movie_by_id("m1", "ko", ["companies"])

    assert result.title == "Parasite"
    assert result.production_companies == ["CJ Entertainment"]
    mock_movie_repo.get_base.assert_awaited_once_with("m1", "ko")


@pytest.mark.asyncio
async def test_get_movie_by_id_not_found(mock_movie_repo):
    mock_movie_repo.get_base.side_effect = MovieNotFoundError("m1")
    service = MovieService(mock_movie_repo, detail_timeout=1)

    with pytest.raises(DetailResolutionError) as exc_info:
        await service.get_movie_by_id("m1", "en", [])

    assert isinstance(exc_info.value.cause, MovieNotFoundError)


@pytest.mark.asyncio
async def test_get_movie_by_id_timeout(mock_movie_repo):
    async def slow_base(movie_id, lang):
        await asyncio.sleep(1)

    mock_movie_repo.get_base.side_effect = slow_base
    service = MovieService(mock_movie_repo, detail_timeout=0.01)

    with pytest.raises(UpstreamTimeoutError):
        await service.get_movie_by_id("m1", "en", [])


@pytest.mark.asyncio
async def test_search_movies_pagination(mock_movie_repo):
    items = [MovieSearchItem(id="m1", title="Inception", popularity=87.3)]
    mock_movie_repo.search_movies.return_value = (45, items)
    service = MovieService(mock_movie_repo)

    result = await service.search_movies("incep", "en-US", False, 2010, None, 2, 20)

    assert result.page == 2
    assert result.total_results == 45
    assert result.total_pages == 3
    assert result.results == items
    mock_movie_repo.search_movies.assert_awaited_once_with("incep", False, "en-US", 2010, None, 2, 20)


@pytest.mark.asyncio
async def test_search_movies_no_results(mock_movie_repo):
    mock_movie_repo.search_movies.return_value = (0, [])
    service = MovieService(mock_movie_repo)

    result = await service.search_movies("zzz", "en-US", False, None, None, 1, 20)

    assert result.total_pages == 0
    assert result.results == []


@pytest.mark.asyncio
async def test_search_movies_propagates_store_error(mock_movie_repo):
    mock_movie_repo.search_movies.side_effect = StoreError("search movies")
    service = MovieService(mock_movie_repo)

    with pytest.raises(StoreError):
        await service.search_movies("incep", "en-US", False, None, None, 1, 20)


@pytest.mark.asyncio
async def test_discover_clamps_paging(mock_movie_repo):
    mock_movie_repo.discover_movies.return_value = ([DiscoverItem(id="m1", title="Inception")], 250)
    service = MovieService(mock_movie_repo)

    result = await service.discover_movies(DiscoverParams(page=0, page_size=500))

    assert result.page == 1
    assert result.page_size == 100
    assert result.total_results == 250
    assert result.total_pages == 3
    params = mock_movie_repo.discover_movies.await_args.args[0]
    assert params.page == 1
    assert params.page_size == 100


@pytest.mark.asyncio
async def test_discover_defaults_non_positive_page_size(mock_movie_repo):
    mock_movie_repo.discover_movies.return_value = ([], 0)
    service = MovieService(mock_movie_repo)

    result = await service.discover_movies(DiscoverParams(page_size=0))

    assert result.page_size == 20
    assert result.total_pages == 0
