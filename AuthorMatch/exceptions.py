from __future__ import annotations

import csv
import socket
from typing import Any, Dict, List, Optional

import requests

__all__ = [
    "HTTP_ERRORS",
    "TIMEOUT_ERRORS",
    "NETWORK_ERRORS",
    "DECODE_ERRORS",
    "PARSE_ERRORS",
    "NUMERIC_ERRORS",
    "FILE_IO_ERRORS",
    "FILE_READ_ERRORS",
    "FILE_WRITE_ERRORS",
    "CSV_ERRORS",
    "AuthorMatchError",
    "QueryValidationError",
    "SearchError",
    "FetchError",
    "SinkWriteError",
]

# errors raised when an HTTP request fails or a URL cannot be reached
HTTP_ERRORS = (requests.exceptions.RequestException,)

# errors that signal an operation has taken too long and hit a timeout at the OS or socket level
TIMEOUT_ERRORS = (TimeoutError, socket.timeout)

# umbrella group for network-related failures
NETWORK_ERRORS = HTTP_ERRORS + TIMEOUT_ERRORS

# errors that occur when converting response bytes into text using a specific encoding
DECODE_ERRORS = (UnicodeDecodeError, UnicodeError)

# errors raised while interpreting structured data such as JSON or response fields
PARSE_ERRORS = (ValueError, TypeError, KeyError)

# numeric conversion errors raised while parsing counts and rate-limit headers
NUMERIC_ERRORS = (TypeError, ValueError, OverflowError)

# file system operation errors when reading key files, input lists and cached documents
FILE_IO_ERRORS = (FileNotFoundError, OSError)

# combined file read errors including I/O failures, encoding issues, and malformed data
FILE_READ_ERRORS = FILE_IO_ERRORS + DECODE_ERRORS + PARSE_ERRORS

# file write operation errors including permissions, disk full, and unserializable data
FILE_WRITE_ERRORS = (OSError, TypeError, ValueError, UnicodeEncodeError)

# CSV file operation errors when writing the result table
CSV_ERRORS = (csv.Error, OSError, UnicodeEncodeError)


class AuthorMatchError(Exception):
    """
    Base class for errors raised while resolving author identities.
    """


class QueryValidationError(AuthorMatchError, ValueError):
    """
    An input record cannot be turned into a search, e.g. its name is empty.
    """


class SearchError(AuthorMatchError, RuntimeError):
    """
    The author search service failed (transport, authentication or quota).
    """

    def __init__(self, message: str, *, status: Optional[int] = None, query: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.query = query


class FetchError(AuthorMatchError):
    """
    Failure of a single record at the fetch stage. The original error is kept
    as ``__cause__`` and the query that produced it travels with the error so
    the archive can record both.
    """

    def __init__(self, message: str, *, query: str):
        super().__init__(message)
        self.query = query

    def cause_chain(self) -> List[Dict[str, Any]]:
        """
        Walk ``__cause__``/``__context__`` from the original error outwards and
        describe each link by class name and message.
        """
        chain: List[Dict[str, Any]] = []
        seen = set()
        err: Optional[BaseException] = self.__cause__ or self.__context__
        while err is not None and id(err) not in seen:
            seen.add(id(err))
            link: Dict[str, Any] = {"name": type(err).__name__, "message": str(err)}
            status = getattr(err, "status", None)
            if status is not None:
                link["status"] = status
            chain.append(link)
            err = err.__cause__ or err.__context__
        return chain


class SinkWriteError(AuthorMatchError, OSError):
    """
    An archive document could not be written.
    """
