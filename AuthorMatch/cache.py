from __future__ import annotations

import json
import os
from typing import Any, Dict, Optional

from .config import CACHE_FILE_PREFIX, CACHE_FILE_SUFFIX
from .exceptions import FILE_READ_ERRORS
from .io_utils import write_json
from .log_utils import logger, LogCategory, LogSource
from .text_utils import safe_file_id


class JsonFileStore:
    """
    Key/value store keeping one pretty-printed JSON document per key in a
    directory. ``path_for`` is the only place that knows how keys map onto
    file names.
    """

    def __init__(self, directory: str, prefix: str = CACHE_FILE_PREFIX, suffix: str = CACHE_FILE_SUFFIX):
        self.directory = directory
        self.prefix = prefix
        self.suffix = suffix

    def path_for(self, key: str) -> str:
        return os.path.join(self.directory, f"{self.prefix}{safe_file_id(key)}{self.suffix}")

    def get(self, key: str) -> Optional[Any]:
        """
        Return the stored document, or None when it is missing or unreadable.
        """
        path = self.path_for(key)
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            return None
        except FILE_READ_ERRORS as e:
            logger.debug(f"Unreadable cache document {path}: {e}", category=LogCategory.CACHE, source=LogSource.CACHE)
            return None

    def put(self, key: str, value: Any) -> str:
        path = self.path_for(key)
        write_json(path, value)
        return path


class ResolutionCache:
    """
    Previously persisted search responses keyed by the original identity
    string, so repeated names across the input share one slot.
    """

    def __init__(self, store: JsonFileStore, archive_store: Optional[JsonFileStore] = None):
        self.store = store
        self.archive_store = archive_store if archive_store is not None else store

    def lookup(self, name: str) -> Optional[Dict[str, Any]]:
        """
        Return the cached raw response for a name, or None on a miss. A
        document that is not a JSON object counts as a miss.
        """
        if not name:
            return None
        body = self.store.get(name)
        if not isinstance(body, dict):
            return None
        return body

    def is_cache_authoritative(self, name: str) -> bool:
        """
        True when the cache document for a name is the very file the archive
        would write, making a rewrite redundant.
        """
        return bool(name) and (
            os.path.abspath(self.store.path_for(name)) == os.path.abspath(self.archive_store.path_for(name))
        )
