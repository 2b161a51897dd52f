from __future__ import annotations

from typing import Any, Dict, Iterable

from .cache import JsonFileStore, ResolutionCache
from .exceptions import FILE_WRITE_ERRORS, FetchError, SinkWriteError
from .log_utils import logger, LogCategory, LogSource
from .models import ArchiveStats, FetchResult


def archive_file_id(result: FetchResult) -> str:
    """
    Name under which a result is archived: the identity string, or the
    zero-padded index when the identity is empty. Failures get an
    ``error-inx<index>-`` prefix so they never overwrite a good response.
    """
    record = result.record
    file_id = record.raw_name or record.index_key
    if not result.ok:
        return f"error-{record.index_key}-{file_id}"
    return file_id


def archive_payload(result: FetchResult) -> Dict[str, Any]:
    """
    Document written for a result: the raw response for a success, or the
    error with its query and cause chain for a failure.
    """
    if result.ok:
        return result.response

    err = result.error
    payload: Dict[str, Any] = {"name": type(err).__name__, "message": str(err)}
    if isinstance(err, FetchError):
        payload["query"] = err.query
        payload["cause"] = err.cause_chain()
    return payload


class ArchiveSink:
    """
    Persist every fetch result once. Results read from an authoritative
    cache are already on disk under the same name and are not rewritten.
    """

    def __init__(self, cache: ResolutionCache, store: JsonFileStore):
        self.cache = cache
        self.store = store
        self.stats = ArchiveStats()

    def write(self, result: FetchResult) -> bool:
        """
        Archive one result. Returns False when nothing was written, either
        because the cache already holds it or because the write failed; a
        failed write is logged and counted but does not raise.
        """
        record = result.record
        tag = f"[{record.padded_index}]"
        if result.from_cache and self.cache.is_cache_authoritative(record.raw_name):
            self.stats.skipped += 1
            logger.info(f"{tag} done: cached", category=LogCategory.SKIP, source=LogSource.ARCHIVE)
            return False

        file_id = archive_file_id(result)
        logger.info(f"{tag} writing to file", category=LogCategory.SAVE, source=LogSource.ARCHIVE)
        try:
            path = self._persist(file_id, archive_payload(result))
        except SinkWriteError as e:
            self.stats.failed += 1
            logger.error(f"{tag} {e}", category=LogCategory.ERROR, source=LogSource.ARCHIVE)
            return False

        self.stats.written += 1
        logger.info(f"{tag} done: {path}", category=LogCategory.SAVE, source=LogSource.ARCHIVE)
        return True

    def _persist(self, file_id: str, payload: Dict[str, Any]) -> str:
        try:
            return self.store.put(file_id, payload)
        except FILE_WRITE_ERRORS as e:
            raise SinkWriteError(f"Cannot archive {file_id!r}: {e}") from e

    def consume(self, results: Iterable[FetchResult]) -> ArchiveStats:
        for result in results:
            self.write(result)
        return self.stats
