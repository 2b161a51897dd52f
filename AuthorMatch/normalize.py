from __future__ import annotations

from typing import Iterable, Iterator, List

from .log_utils import logger, LogCategory, LogSource
from .models import QueryRecord

# tab separated input columns after the name
_EXTRA_COLUMNS = 3


def parse_query_line(line: str, index: int) -> QueryRecord:
    """
    Parse one input line of the form
    ``Surname, Given<TAB>subject area<TAB>indicator<TAB>publications``.

    Each column is trimmed and missing columns become empty strings, so a
    line starting with a tab has an empty name. An empty or absent given
    name means the search is made on the surname alone.
    """
    fields: List[str] = [term.strip() for term in line.split("\t")]
    fields += [""] * (1 + _EXTRA_COLUMNS - len(fields))
    name, subject_area, indicator, publication_count = fields[:1 + _EXTRA_COLUMNS]

    last_name, _, first_name = name.partition(",")
    return QueryRecord(
        index=index,
        raw_name=name,
        last_name=last_name.strip(),
        first_name=first_name.strip() or None,
        subject_area=subject_area,
        indicator=indicator,
        publication_count=publication_count,
    )


def iter_query_records(lines: Iterable[str]) -> Iterator[QueryRecord]:
    """
    Turn raw input lines into QueryRecords numbered from 1. Blank lines are
    skipped and do not consume an index.
    """
    index = 0
    for line in lines:
        if not line.strip():
            continue
        index += 1
        record = parse_query_line(line, index)
        logger.info(
            f"start [{record.padded_index}]: {record.first_name or ''} {record.last_name}".rstrip(),
            category=LogCategory.QUERY,
            source=LogSource.SYSTEM,
        )
        yield record
