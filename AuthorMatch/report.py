from __future__ import annotations

import csv
import os
from typing import IO, Iterable, Optional, Sequence

from .log_utils import logger, LogCategory, LogSource
from .models import RESOLVED_AUTHOR_COLUMNS, ResolvedAuthor


class TabularEmitter:
    """
    Write resolved authors as CSV rows as they arrive. The header goes out
    with the first row, so a run without matches leaves the output empty.
    """

    def __init__(self, stream: IO[str], columns: Sequence[str] = RESOLVED_AUTHOR_COLUMNS):
        self.stream = stream
        self.columns = list(columns)
        self._writer = csv.DictWriter(stream, fieldnames=self.columns, extrasaction="raise")
        self._header_written = False
        self.rows = 0

    def emit(self, author: ResolvedAuthor) -> None:
        if not self._header_written:
            self._writer.writeheader()
            self._header_written = True
        self._writer.writerow(author.as_row())
        self.stream.flush()
        self.rows += 1

    def emit_all(self, authors: Iterable[ResolvedAuthor]) -> int:
        for author in authors:
            self.emit(author)
        return self.rows


def write_report(path: str, authors: Iterable[ResolvedAuthor], columns: Optional[Sequence[str]] = None) -> int:
    """
    Stream authors into a fresh CSV file at ``path``, replacing any earlier
    result, and return the number of rows written.
    """
    parent_dir = os.path.dirname(path)
    if parent_dir:
        os.makedirs(parent_dir, exist_ok=True)

    with open(path, "w", newline="", encoding="utf-8") as f:
        emitter = TabularEmitter(f, columns or RESOLVED_AUTHOR_COLUMNS)
        rows = emitter.emit_all(authors)

    logger.info(f"{rows} row(s) written to {path}", category=LogCategory.SAVE, source=LogSource.REPORT)
    return rows
