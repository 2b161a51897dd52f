from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Union


def make_entry(author_id: str, surname: str, initials: str = "", given_name: str = "",
               document_count: Union[int, str] = 0) -> Dict[str, Any]:
    """
    Build one author entry shaped like the Scopus author search STANDARD view.
    """
    return {
        "dc:identifier": f"AUTHOR_ID:{author_id}",
        "preferred-name": {
            "surname": surname,
            "given-name": given_name,
            "initials": initials,
        },
        "document-count": str(document_count),
    }


def make_response(*entries: Dict[str, Any], total: Optional[int] = None) -> Dict[str, Any]:
    """
    Wrap entries in a search response. The reported total defaults to the
    number of entries.
    """
    if not entries:
        return empty_response()
    return {
        "search-results": {
            "opensearch:totalResults": str(len(entries) if total is None else total),
            "opensearch:startIndex": "0",
            "entry": list(entries),
        }
    }


def empty_response() -> Dict[str, Any]:
    """
    What the service returns when nothing matches.
    """
    return {
        "search-results": {
            "opensearch:totalResults": "0",
            "opensearch:startIndex": "0",
            "entry": [{"@_fa": "true", "error": "Result set was empty"}],
        }
    }


class FakeSearch:
    """
    Stand-in for the author search service. Responses are looked up by the
    surname found in the query; a value that is an exception is raised.
    """

    def __init__(self, responses: Dict[str, Any], default: Optional[Dict[str, Any]] = None):
        self.responses = responses
        self.default = default if default is not None else empty_response()
        self.calls: List[str] = []

    def __call__(self, query: str, view: str = "STANDARD",
                 on_rate_limit: Optional[Callable[..., None]] = None) -> Dict[str, Any]:
        self.calls.append(query)
        if on_rate_limit is not None:
            on_rate_limit("20000", "19999", "1700000000", 200)
        surname = query[len("AUTHLASTNAME("):query.index(")")]
        value = self.responses.get(surname, self.default)
        if isinstance(value, BaseException):
            raise value
        return value
