import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from unittest.mock import AsyncMock

from movie_catalog.main import app
from movie_catalog.dependencies import get_movie_service
from movie_catalog.limiter import limiter
from movie_catalog.repositories.movie_repository import MovieRepository
from movie_catalog.schemas.movie import MovieDetail
from movie_catalog.services.movie_service import MovieService

MOVIE_ID = "0190a1b2-7c3d-7e4f-8a9b-0c1d2e3f4a5b"


@pytest.fixture
def base_movie():
    return MovieDetail(id=MOVIE_ID, title="Inception", overview="Dreams within dreams", vote_average=8.4)


@pytest.fixture
def mock_movie_repo(base_movie):
    repo = AsyncMock(spec=MovieRepository)
    repo.get_base.return_value = base_movie
    return repo


@pytest_asyncio.fixture
async def client(mock_movie_repo):
    # Override dependencies
    app.dependency_overrides[get_movie_service] = lambda: MovieService(mock_movie_repo, detail_timeout=5)

    transport = ASGITransport(app=app)
    limiter.enabled = False
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    limiter.enabled = True

    app.dependency_overrides = {}
