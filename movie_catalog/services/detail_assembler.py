import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..exceptions import DetailResolutionError
from ..repositories.movie_repository import MovieStore
from ..schemas.movie import MovieDetail

logger = logging.getLogger(__name__)

SECTION_GENRES = "genres"
SECTION_COMPANIES = "companies"
SECTION_CREDITS = "credits"

# section tag -> (store method, MovieDetail field)
SECTION_SOURCES = {
    SECTION_GENRES: ("fetch_genres", "genres"),
    SECTION_COMPANIES: ("fetch_companies", "production_companies"),
    SECTION_CREDITS: ("fetch_credits", "credits"),
}


def normalize_sections(sections: Optional[Iterable[str]]) -> List[str]:
    """Distinct recognised section tags, in first-seen order."""
    tags: List[str] = []
    for tag in sections or ():
        if tag in SECTION_SOURCES and tag not in tags:
            tags.append(tag)
    return tags


class DetailAssembler:
    """
    Builds a MovieDetail from one base lookup plus one concurrent store call
    per requested section.

    Fail-fast: the first section failure cancels the siblings still running,
    and is raised once every task has finished. The detail built up to that
    point travels on the raised DetailResolutionError as `partial`.
    """

    def __init__(self, store: MovieStore):
        self.store = store

    async def resolve(self, movie_id: str, lang: str, sections: Optional[Iterable[str]] = None) -> MovieDetail:
        try:
            base = await self.store.get_base(movie_id, lang)
        except Exception as exc:
            raise DetailResolutionError("get base movie", exc) from exc

        # The store may hand out shared objects
        detail = base.model_copy(deep=True)

        tags = normalize_sections(sections)
        if not tags:
            return detail

        logger.debug("Fetching sections", extra={"movie_id": movie_id, "sections": tags})
        results, failure = await self._fan_out(movie_id, tags)

        for tag in tags:
            if tag in results:
                setattr(detail, SECTION_SOURCES[tag][1], results[tag])

        if failure is not None:
            tag, exc = failure
            raise DetailResolutionError(f"fetch {tag}", exc, section=tag, partial=detail) from exc

        return detail

    async def _fetch_section(self, tag: str, movie_id: str, finished: List[str]) -> Any:
        method_name, _ = SECTION_SOURCES[tag]
        try:
            return await getattr(self.store, method_name)(movie_id)
        finally:
            finished.append(tag)

    async def _fan_out(
        self, movie_id: str, tags: List[str]
    ) -> Tuple[Dict[str, Any], Optional[Tuple[str, BaseException]]]:
        """
        Run one task per tag and wait for all of them.

        Returns the data of every section that succeeded before the first
        failure, and that failure as (tag, exception) or None.
        """
        # Tags in the order their store calls returned or raised
        finished: List[str] = []
        tasks = {
            asyncio.create_task(self._fetch_section(tag, movie_id, finished), name=f"section:{tag}"): tag
            for tag in tags
        }
        results: Dict[str, Any] = {}
        failure: Optional[Tuple[str, BaseException]] = None

        def completion_rank(task: asyncio.Task) -> int:
            tag = tasks[task]
            # Cancelled before it started: never reached the store
            return finished.index(tag) if tag in finished else len(finished)

        try:
            pending = set(tasks)
            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)

                for task in sorted(done, key=completion_rank):
                    tag = tasks[task]
                    if task.cancelled():
                        continue
                    exc = task.exception()
                    if exc is not None:
                        if failure is None:
                            failure = (tag, exc)
                            logger.warning(
                                "Section fetch failed, cancelling siblings",
                                extra={"movie_id": movie_id, "section": tag, "error": str(exc)},
                            )
                            for sibling in pending:
                                sibling.cancel()
                        continue
                    if failure is None:
                        results[tag] = task.result()
        finally:
            # Caller cancelled or timed out: no task outlives the request
            unfinished = [task for task in tasks if not task.done()]
            for task in unfinished:
                task.cancel()
            if unfinished:
                await asyncio.wait(unfinished)
            for task in tasks:
                # Store calls may turn cancellation into their own error;
                # reading it keeps asyncio from reporting it as unretrieved
                if task.done() and not task.cancelled():
                    task.exception()

        return results, failure
