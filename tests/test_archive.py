import json
import os
from unittest.mock import patch

from AuthorMatch.archive import ArchiveSink, archive_file_id, archive_payload
from AuthorMatch.cache import JsonFileStore, ResolutionCache
from AuthorMatch.exceptions import SearchError
from AuthorMatch.fetch import FetchStage
from AuthorMatch.models import FetchResult
from AuthorMatch.normalize import parse_query_line
from tests.fixtures import FakeSearch, empty_response, make_entry, make_response


def _failure(line, index, error):
    stage = FetchStage(ResolutionCache(JsonFileStore("unused")), FakeSearch({"Smith": error}))
    return stage.fetch(parse_query_line(line, index))


def _read(path):
    with open(path, encoding="utf-8") as f:
        return json.load(f)


# ===== FILE NAMING =====

def test_file_id_for_success_is_the_name():
    result = FetchResult.success(parse_query_line("Smith, J\tENGI", 3), make_response())

    assert archive_file_id(result) == "Smith, J"


def test_file_id_for_failure_carries_error_prefix():
    result = _failure("Smith, J\tENGI", 3, SearchError("down"))

    assert archive_file_id(result) == "error-inx00003-Smith, J"


def test_file_id_for_empty_name_uses_index():
    result = _failure("\tENGI", 12, SearchError("unused"))

    assert archive_file_id(result) == "error-inx00012-inx00012"


# ===== PAYLOAD =====

def test_failure_payload_records_query_and_cause():
    result = _failure("Smith, J\tENGI", 1, SearchError("HTTP 401: invalid key", status=401))

    payload = archive_payload(result)

    assert payload["name"] == "FetchError"
    assert payload["message"] == "HTTP 401: invalid key"
    assert payload["query"] == "AUTHLASTNAME(Smith) AND AUTHFIRST(J) AND SUBJAREA(ENGI)"
    assert payload["cause"] == [{"name": "SearchError", "message": "HTTP 401: invalid key", "status": 401}]


def test_success_payload_is_the_raw_response():
    body = make_response(make_entry("1", "Smith", "J."))
    result = FetchResult.success(parse_query_line("Smith, J\tENGI", 1), body)

    assert archive_payload(result) is body


# ===== SINK =====

def test_writes_success_and_failure(tmp_path):
    store = JsonFileStore(str(tmp_path))
    sink = ArchiveSink(ResolutionCache(store), store)
    body = make_response(make_entry("1", "Smith", "J."))
    ok = FetchResult.success(parse_query_line("Smith, J\tENGI", 1), body)
    failed = _failure("Smith, J\tENGI", 2, SearchError("down"))

    stats = sink.consume([ok, failed])

    assert (stats.written, stats.skipped, stats.failed) == (2, 0, 0)
    assert _read(tmp_path / "au-name-Smith,_J.json") == body
    assert _read(tmp_path / "au-name-error-inx00002-Smith,_J.json")["message"] == "down"


def test_zero_match_response_is_archived(tmp_path):
    store = JsonFileStore(str(tmp_path))
    sink = ArchiveSink(ResolutionCache(store), store)
    result = FetchResult.success(parse_query_line("Nobody, X\tENGI", 1), empty_response())

    assert sink.write(result)
    assert _read(tmp_path / "au-name-Nobody,_X.json") == empty_response()


def test_cached_result_is_not_rewritten(tmp_path):
    store = JsonFileStore(str(tmp_path))
    sink = ArchiveSink(ResolutionCache(store), store)
    result = FetchResult.success(parse_query_line("Smith, J\tENGI", 1), make_response(), from_cache=True)

    with patch.object(store, "put") as put:
        assert not sink.write(result)

    put.assert_not_called()
    assert sink.stats.skipped == 1


def test_cached_result_is_copied_when_cache_lives_elsewhere(tmp_path):
    cache_store = JsonFileStore(str(tmp_path / "cache"))
    archive_store = JsonFileStore(str(tmp_path / "out"))
    sink = ArchiveSink(ResolutionCache(cache_store, archive_store), archive_store)
    body = make_response(make_entry("1", "Smith", "J."))
    result = FetchResult.success(parse_query_line("Smith, J\tENGI", 1), body, from_cache=True)

    assert sink.write(result)
    assert _read(tmp_path / "out" / "au-name-Smith,_J.json") == body


def test_write_failure_is_isolated(tmp_path):
    """
    A failed write is counted and the sink carries on with the next item.
    """
    store = JsonFileStore(str(tmp_path))
    sink = ArchiveSink(ResolutionCache(store), store)
    first = FetchResult.success(parse_query_line("Smith, J\tENGI", 1), make_response())
    second = FetchResult.success(parse_query_line("Doe, A\tENGI", 2), make_response())
    real_put = store.put

    def flaky_put(key, value):
        if key == "Smith, J":
            raise PermissionError("read-only")
        return real_put(key, value)

    with patch.object(store, "put", side_effect=flaky_put):
        stats = sink.consume([first, second])

    assert (stats.written, stats.failed) == (1, 1)
    assert os.path.exists(tmp_path / "au-name-Doe,_A.json")
