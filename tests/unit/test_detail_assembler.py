import asyncio
import gc
import logging

import pytest
from unittest.mock import AsyncMock

from movie_catalog.exceptions import DetailResolutionError, MovieNotFoundError, StoreError
from movie_catalog.repositories.movie_repository import MovieRepository
from movie_catalog.schemas.movie import Credit, MovieDetail
from movie_catalog.services.detail_assembler import DetailAssembler, normalize_sections

CREDITS = [
    Credit(name="Leonardo DiCaprio", known_for="Acting", credit_type="cast"),
    Credit(name="Christopher Nolan", known_for="Directing", credit_type="crew"),
]


@pytest.fixture
def store():
    mock = AsyncMock(spec=MovieRepository)
    mock.get_base.return_value = MovieDetail(id="m1", title="X")
    mock.fetch_genres.return_value = ["Action", "Drama"]
    mock.fetch_companies.return_value = ["Warner Bros. Pictures", "Legendary Entertainment"]
    mock.fetch_credits.return_value = CREDITS
    return mock


@pytest.fixture
def failing_enrichment_store(store):
    store.fetch_genres.side_effect = StoreError("query genres")
    store.fetch_companies.side_effect = StoreError("query companies")
    store.fetch_credits.side_effect = StoreError("query credits")
    return store


def test_normalize_sections_dedupes_and_drops_unknown():
    assert normalize_sections(["credits", "bogus", "genres", "credits"]) == ["credits", "genres"]
    assert normalize_sections(None) == []
    assert normalize_sections({"bogus"}) == []


@pytest.mark.asyncio
async def test_no_sections_returns_base_only(failing_enrichment_store):
    result = await DetailAssembler(failing_enrichment_store).resolve("m1", "en", set())

    assert result.id == "m1"
    assert result.title == "X"
    assert result.genres is None
    assert result.production_companies is None
    assert result.credits is None
    failing_enrichment_store.get_base.assert_awaited_once_with("m1", "en")
    failing_enrichment_store.fetch_genres.assert_not_called()
    failing_enrichment_store.fetch_companies.assert_not_called()
    failing_enrichment_store.fetch_credits.assert_not_called()


@pytest.mark.asyncio
async def test_only_unknown_sections_behave_like_none(failing_enrichment_store):
    result = await DetailAssembler(failing_enrichment_store).resolve("m1", "en", {"bogus", "videos"})

    assert result == MovieDetail(id="m1", title="X")
    failing_enrichment_store.fetch_genres.assert_not_called()


@pytest.mark.asyncio
async def test_base_failure_skips_enrichment(store):
    store.get_base.side_effect = MovieNotFoundError("m1")

    with pytest.raises(DetailResolutionError) as exc_info:
        await DetailAssembler(store).resolve("m1", "en", {"genres", "companies", "credits"})

    assert exc_info.value.operation == "get base movie"
    assert isinstance(exc_info.value.cause, MovieNotFoundError)
    assert exc_info.value.section is None
    assert store.fetch_genres.await_count == 0
    assert store.fetch_companies.await_count == 0
    assert store.fetch_credits.await_count == 0


@pytest.mark.asyncio
async def test_all_sections_populated(store):
    result = await DetailAssembler(store).resolve("m1", "en", {"genres", "companies", "credits"})

    assert result.genres == ["Action", "Drama"]
    assert result.production_companies == ["Warner Bros. Pictures", "Legendary Entertainment"]
    assert result.credits == CREDITS
    store.fetch_genres.assert_awaited_once_with("m1")
    store.fetch_companies.assert_awaited_once_with("m1")
    store.fetch_credits.assert_awaited_once_with("m1")


@pytest.mark.asyncio
async def test_genres_only(store):
    result = await DetailAssembler(store).resolve("m1", "en", {"genres"})

    assert result.genres == ["Action", "Drama"]
    assert result.production_companies is None
    assert result.credits is None
    store.fetch_companies.assert_not_called()
    store.fetch_credits.assert_not_called()


@pytest.mark.asyncio
async def test_credits_failure_names_the_section(store):
    store.fetch_credits.side_effect = StoreError("query credits", "connection reset")

    with pytest.raises(DetailResolutionError) as exc_info:
        await DetailAssembler(store).resolve("m1", "en", {"genres", "companies", "credits"})

    error = exc_info.value
    assert error.section == "credits"
    assert error.operation == "fetch credits"
    assert str(error).startswith("fetch credits:")
    assert "query credits failed" in str(error)
    assert isinstance(error.__cause__, StoreError)


@pytest.mark.asyncio
async def test_credits_failure_fails_request_even_if_genres_succeed(store):
    store.fetch_credits.side_effect = StoreError("query credits")

    with pytest.raises(DetailResolutionError):
        await DetailAssembler(store).resolve("m1", "en", {"genres", "credits"})


@pytest.mark.asyncio
async def test_resolve_is_idempotent(store):
    assembler = DetailAssembler(store)
    base = store.get_base.return_value

    first = await assembler.resolve("m1", "en", ["genres", "credits"])
    second = await assembler.resolve("m1", "en", ["genres", "credits"])

    assert first == second
    assert first is not second
    # The store's own object is never enriched in place
    assert base.genres is None
    assert base.credits is None


@pytest.mark.asyncio
async def test_duplicate_tags_fetch_once(store):
    assembler = DetailAssembler(store)

    duplicated = await assembler.resolve("m1", "en", ["genres", "genres"])
    assert store.fetch_genres.await_count == 1

    single = await assembler.resolve("m1", "en", ["genres"])
    assert duplicated == single


@pytest.mark.asyncio
async def test_unknown_tag_is_ignored(store):
    assembler = DetailAssembler(store)

    with_bogus = await assembler.resolve("m1", "en", {"genres", "bogus"})
    plain = await assembler.resolve("m1", "en", {"genres"})

    assert with_bogus == plain


@pytest.mark.asyncio
async def test_empty_collection_is_populated(store):
    store.fetch_genres.return_value = []
    store.fetch_credits.return_value = []

    result = await DetailAssembler(store).resolve("m1", "en", ["genres", "credits"])

    assert result.genres == []
    assert result.credits == []


@pytest.mark.asyncio
async def test_sections_run_concurrently(store):
    started = 0
    all_started = asyncio.Event()

    async def rendezvous(result):
        nonlocal started
        started += 1
        if started == 3:
            all_started.set()
        # Sequential execution would never get past this point
        await all_started.wait()
        return result

    async def genres(movie_id):
        return await rendezvous(["Drama"])

    async def companies(movie_id):
        return await rendezvous(["A24"])

    async def credits(movie_id):
        return await rendezvous([])

    store.fetch_genres.side_effect = genres
    store.fetch_companies.side_effect = companies
    store.fetch_credits.side_effect = credits

    result = await asyncio.wait_for(
        DetailAssembler(store).resolve("m1", "en", ["genres", "companies", "credits"]),
        timeout=1,
    )

    assert result.genres == ["Drama"]
    assert result.production_companies == ["A24"]
    assert result.credits == []


@pytest.mark.asyncio
async def test_failure_cancels_pending_siblings(store):
    genres_cancelled = False

    async def never_finishes(movie_id):
        nonlocal genres_cancelled
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            genres_cancelled = True
            raise

    store.fetch_genres.side_effect = never_finishes
    store.fetch_credits.side_effect = StoreError("query credits")

    with pytest.raises(DetailResolutionError) as exc_info:
        await asyncio.wait_for(
            DetailAssembler(store).resolve("m1", "en", ["genres", "credits"]),
            timeout=1,
        )

    assert exc_info.value.section == "credits"
    assert genres_cancelled is True
    assert exc_info.value.partial.genres is None


@pytest.mark.asyncio
async def test_partial_detail_keeps_sections_finished_before_failure(store):
    async def slow_failure(movie_id):
        await asyncio.sleep(0.05)
        raise StoreError("query credits")

    store.fetch_credits.side_effect = slow_failure

    with pytest.raises(DetailResolutionError) as exc_info:
        await DetailAssembler(store).resolve("m1", "en", ["genres", "credits"])

    partial = exc_info.value.partial
    assert partial.id == "m1"
    assert partial.genres == ["Action", "Drama"]
    assert partial.credits is None


@pytest.mark.asyncio
async def test_late_success_after_failure_is_discarded(store):
    async def fast_failure(movie_id):
        raise StoreError("query genres")

    async def ignores_cancellation(movie_id):
        try:
            await asyncio.sleep(0.05)
        except asyncio.CancelledError:
            pass
        return ["Studio Ghibli"]

    store.fetch_genres.side_effect = fast_failure
    store.fetch_companies.side_effect = ignores_cancellation

    with pytest.raises(DetailResolutionError) as exc_info:
        await DetailAssembler(store).resolve("m1", "en", ["genres", "companies"])

    assert exc_info.value.section == "genres"
    assert exc_info.value.partial.production_companies is None
    store.fetch_companies.assert_awaited_once_with("m1")


@pytest.mark.asyncio
async def test_caller_timeout_cancels_sections(store):
    credits_cancelled = False

    async def hangs(movie_id):
        nonlocal credits_cancelled
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            credits_cancelled = True
            raise

    store.fetch_credits.side_effect = hangs

    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(
            DetailAssembler(store).resolve("m1", "en", ["genres", "credits"]),
            timeout=0.05,
        )

    assert credits_cancelled is True


@pytest.mark.asyncio
async def test_caller_timeout_retrieves_errors_raised_on_cancel(store, caplog):
    async def fails_when_cancelled(movie_id):
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            raise StoreError("query credits", "connection closed")

    store.fetch_credits.side_effect = fails_when_cancelled

    with caplog.at_level(logging.ERROR, logger="asyncio"):
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(
                DetailAssembler(store).resolve("m1", "en", ["genres", "credits"]),
                timeout=0.05,
            )
        gc.collect()

    assert not [r for r in caplog.records if "never retrieved" in r.getMessage()]


@pytest.mark.asyncio
@pytest.mark.parametrize("sections", [["genres", "credits"], ["credits", "genres"]])
async def test_partial_detail_does_not_depend_on_request_order(store, sections):
    async def fails_after_yield(movie_id):
        await asyncio.sleep(0)
        raise StoreError("query credits")

    store.fetch_credits.side_effect = fails_after_yield

    with pytest.raises(DetailResolutionError) as exc_info:
        await DetailAssembler(store).resolve("m1", "en", sections)

    assert exc_info.value.section == "credits"
    assert exc_info.value.partial.genres == ["Action", "Drama"]
