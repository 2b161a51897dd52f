import json
from unittest.mock import MagicMock

import pytest
import requests

from AuthorMatch.exceptions import SearchError
from AuthorMatch.scopus_client import ScopusAuthorSearchApi
from tests.fixtures import make_entry, make_response


def _response(status=200, body=None, headers=None):
    resp = requests.Response()
    resp.status_code = status
    resp._content = json.dumps(body if body is not None else {}).encode("utf-8")
    resp.headers.update(headers or {})
    resp.url = "https://api.elsevier.com/content/search/author"
    resp.reason = "Reason"
    return resp


def _client(responses, keys=("key-a", "key-b")):
    session = MagicMock()
    session.get.side_effect = list(responses)
    sleeps = []
    client = ScopusAuthorSearchApi(list(keys), max_concurrency=2, session=session, sleep=sleeps.append)
    return client, session, sleeps


def _used_keys(session):
    return [c.kwargs["headers"]["X-ELS-APIKey"] for c in session.get.call_args_list]


def test_search_returns_body_and_reports_rate_limit():
    body = make_response(make_entry("1", "Smith", "J."))
    headers = {"X-RateLimit-Limit": "20000", "X-RateLimit-Remaining": "19998", "X-RateLimit-Reset": "1700000000"}
    client, session, _ = _client([_response(200, body, headers)])
    events = []

    result = client.search("AUTHLASTNAME(Smith)", "STANDARD", lambda *args: events.append(args))

    assert result == body
    assert events == [("20000", "19998", "1700000000", 200)]
    params = session.get.call_args.kwargs["params"]
    assert params == {"query": "AUTHLASTNAME(Smith)", "view": "STANDARD"}
    assert _used_keys(session) == ["key-a"]


def test_exhausted_key_rotates_to_next():
    body = make_response(make_entry("1", "Smith", "J."))
    client, session, sleeps = _client([
        _response(429, {}, {"X-RateLimit-Remaining": "0"}),
        _response(200, body),
    ])

    assert client.search("q") == body
    assert _used_keys(session) == ["key-a", "key-b"]
    assert client.active_key_count == 1
    assert sleeps == []


def test_rejected_key_rotates_to_next():
    body = make_response(make_entry("1", "Smith", "J."))
    client, session, _ = _client([_response(401, {}), _response(200, body)])

    assert client.search("q") == body
    assert _used_keys(session) == ["key-a", "key-b"]


def test_all_keys_exhausted():
    client, _, _ = _client([
        _response(429, {}, {"X-ELS-Status": "QUOTA_EXCEEDED - Quota Exceeded"}),
        _response(429, {}, {"X-RateLimit-Remaining": "0"}),
    ])

    with pytest.raises(SearchError, match="exhausted"):
        client.search("q")
    assert client.active_key_count == 0


def test_throttling_waits_and_retries_same_key():
    body = make_response(make_entry("1", "Smith", "J."))
    client, session, sleeps = _client([
        _response(429, {}, {"X-RateLimit-Remaining": "5", "Retry-After": "2"}),
        _response(200, body),
    ])

    assert client.search("q") == body
    assert sleeps == [2.0]
    assert _used_keys(session) == ["key-a", "key-a"]


def test_throttling_gives_up_after_bounded_waits():
    client, _, sleeps = _client([_response(429, {}, {"Retry-After": "1"})] * 10)

    with pytest.raises(SearchError) as excinfo:
        client.search("q")
    assert excinfo.value.status == 429
    assert len(sleeps) == 3


def test_server_error_is_a_search_error():
    body = {"service-error": {"status": {"statusCode": "INVALID_INPUT", "statusText": "Invalid query"}}}
    client, _, _ = _client([_response(400, body)])

    with pytest.raises(SearchError, match="Invalid query") as excinfo:
        client.search("AUTHLASTNAME(")
    assert excinfo.value.status == 400
    assert excinfo.value.query == "AUTHLASTNAME("
    assert isinstance(excinfo.value.__cause__, requests.exceptions.HTTPError)


def test_transport_error_is_a_search_error():
    client, _, _ = _client([requests.exceptions.ConnectionError("refused")])

    with pytest.raises(SearchError, match="refused"):
        client.search("q")


def test_unexpected_body_is_a_search_error():
    client, _, _ = _client([_response(200, {"something": "else"})])

    with pytest.raises(SearchError, match="search-results"):
        client.search("q")


def test_requires_a_key():
    with pytest.raises(ValueError):
        ScopusAuthorSearchApi(["", ""])
