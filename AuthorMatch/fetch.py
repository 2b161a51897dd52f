from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, Iterator, Optional

from .cache import ResolutionCache
from .config import SEARCH_VIEW
from .exceptions import FetchError, QueryValidationError
from .log_utils import logger, LogCategory, LogSource
from .models import FetchResult, QueryRecord

# search(query, view, on_rate_limit) -> raw response
SearchFunc = Callable[..., Dict[str, Any]]


def build_query(record: QueryRecord) -> str:
    """
    Build the author search expression for a record. Without a given name
    the search is made on surname and subject area only.
    """
    if record.first_name:
        return (
            f"AUTHLASTNAME({record.last_name}) AND AUTHFIRST({record.first_name}) "
            f"AND SUBJAREA({record.subject_area})"
        )
    return f"AUTHLASTNAME({record.last_name}) AND SUBJAREA({record.subject_area})"


class FetchStage:
    """
    Resolve each record to a raw search response, from the cache when
    possible and from the search service otherwise. Every record yields
    exactly one FetchResult; errors are captured per record and never stop
    the stage.
    """

    def __init__(self, cache: ResolutionCache, search: SearchFunc, view: str = SEARCH_VIEW):
        self.cache = cache
        self.search = search
        self.view = view
        self.fetched = 0
        self.cached = 0
        self.failed = 0

    def fetch(self, record: QueryRecord) -> FetchResult:
        query = build_query(record)
        tag = f"[{record.padded_index}]"
        logger.info(f"{tag} loading author: {query}", category=LogCategory.FETCH, source=LogSource.SCOPUS)

        try:
            if not record.raw_name:
                raise QueryValidationError("The name is empty")
            if not record.last_name:
                raise QueryValidationError(f"No surname in '{record.raw_name}'")

            body = self.cache.lookup(record.raw_name)
            from_cache = body is not None
            if body is None:
                body = self.search(query, self.view, self._rate_limit_logger(tag))
        except Exception as e:
            self.failed += 1
            logger.error(f"{tag} error: {e}", category=LogCategory.ERROR, source=LogSource.SCOPUS)
            return FetchResult.failure(record, _wrap_error(e, query))

        if from_cache:
            self.cached += 1
            logger.info(f"{tag} loaded from cache", category=LogCategory.CACHE, source=LogSource.CACHE)
        else:
            self.fetched += 1
            logger.info(f"{tag} loaded", category=LogCategory.FETCH, source=LogSource.SCOPUS)
        return FetchResult.success(record, body, from_cache=from_cache)

    def run(self, records: Iterable[QueryRecord]) -> Iterator[FetchResult]:
        for record in records:
            yield self.fetch(record)

    @staticmethod
    def _rate_limit_logger(tag: str) -> Callable[[Optional[str], Optional[str], Optional[str], int], None]:
        def on_rate_limit(limit: Optional[str], remaining: Optional[str], reset: Optional[str], status: int) -> None:
            logger.info(
                f"{tag} rateLimit: {(remaining or '').rjust(5)}/{limit} reset: {reset} [{status}]",
                category=LogCategory.RATE,
                source=LogSource.SCOPUS,
            )
        return on_rate_limit


def _wrap_error(err: Exception, query: str) -> FetchError:
    """
    Attach the failing query to an error while keeping the original as the cause.
    """
    wrapped = FetchError(str(err) or type(err).__name__, query=query)
    wrapped.__cause__ = err
    return wrapped
