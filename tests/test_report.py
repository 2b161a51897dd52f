import csv
import io

from AuthorMatch.models import RESOLVED_AUTHOR_COLUMNS, CandidateEntry, ResolvedAuthor
from AuthorMatch.normalize import parse_query_line
from AuthorMatch.report import TabularEmitter, write_report


def _author(index, external_id, line="Smith, J\tENGI\t1\t50"):
    record = parse_query_line(line, index)
    candidate = CandidateEntry(external_id, "Smith", "John", "J.", 3)
    return ResolvedAuthor.from_match(record, candidate)


def test_header_comes_with_first_row_only():
    buf = io.StringIO()
    emitter = TabularEmitter(buf)

    emitter.emit(_author(1, "A1"))
    emitter.emit(_author(2, "A2"))

    rows = list(csv.reader(io.StringIO(buf.getvalue())))
    assert rows[0] == list(RESOLVED_AUTHOR_COLUMNS)
    assert len(rows) == 3
    assert rows[1][0] == "A1" and rows[2][0] == "A2"
    assert rows[1][-1] == "1"


def test_no_authors_no_header(tmp_path):
    path = tmp_path / "out" / "result.csv"

    assert write_report(str(path), []) == 0

    assert path.exists()
    assert path.read_text(encoding="utf-8") == ""


def test_report_replaces_previous_result(tmp_path):
    path = tmp_path / "result.csv"
    path.write_text("stale\n", encoding="utf-8")

    assert write_report(str(path), [_author(1, "A1")]) == 1

    with open(path, newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert rows == [{
        "id": "A1",
        "name": "Smith, J",
        "indicator": "1",
        "given-name": "John",
        "surname": "Smith",
        "initials": "J.",
        "number-of-publications": "50",
        "searching-subject-area": "ENGI",
        "document-count": "3",
        "lastName": "Smith",
        "firstName": "J",
        "index": "1",
    }]


def test_rows_are_written_as_they_arrive(tmp_path):
    """
    Each row reaches the file before the next author is produced.
    """
    path = tmp_path / "result.csv"
    sizes = []

    def authors():
        for i in range(1, 4):
            yield _author(i, f"A{i}")
            sizes.append(len(path.read_text(encoding="utf-8").splitlines()))

    write_report(str(path), authors())

    assert sizes == [2, 3, 4]


def test_names_with_commas_and_quotes_are_quoted():
    buf = io.StringIO()
    TabularEmitter(buf).emit(_author(1, "A1", line='O"Neil, J\tENGI'))

    rows = list(csv.reader(io.StringIO(buf.getvalue())))
    assert rows[1][1] == 'O"Neil, J'
