from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from .config import INDEX_WIDTH
from .text_utils import pad_index


# column order of the result table; every ResolvedAuthor row follows it
RESOLVED_AUTHOR_COLUMNS: Tuple[str, ...] = (
    "id",
    "name",
    "indicator",
    "given-name",
    "surname",
    "initials",
    "number-of-publications",
    "searching-subject-area",
    "document-count",
    "lastName",
    "firstName",
    "index",
)


@dataclass(frozen=True)
class QueryRecord:
    """
    One input identity to resolve. ``raw_name`` is the original
    "Surname, Given" text and doubles as the cache key; the remaining
    free-text columns are carried through to the result table unchanged.
    """
    index: int
    raw_name: str
    last_name: str
    first_name: Optional[str] = None
    subject_area: str = ""
    indicator: str = ""
    publication_count: str = ""

    @property
    def padded_index(self) -> str:
        return pad_index(self.index, INDEX_WIDTH, " ")

    @property
    def index_key(self) -> str:
        return f"inx{pad_index(self.index, INDEX_WIDTH)}"


@dataclass(frozen=True)
class CandidateEntry:
    """
    One author entry of a search response, reduced to the fields used for
    ranking and reporting.
    """
    external_id: str
    preferred_surname: str = ""
    preferred_given_name: str = ""
    preferred_initials: str = ""
    document_count: int = 0


@dataclass(frozen=True)
class FetchResult:
    """
    Outcome of resolving one QueryRecord. A success carries the raw response
    body; a failure carries the FetchError describing what went wrong.
    """
    record: QueryRecord
    response: Optional[Dict[str, Any]] = None
    error: Optional[BaseException] = None
    from_cache: bool = False

    @classmethod
    def success(cls, record: QueryRecord, response: Dict[str, Any], from_cache: bool = False) -> "FetchResult":
        return cls(record=record, response=response, from_cache=from_cache)

    @classmethod
    def failure(cls, record: QueryRecord, error: BaseException) -> "FetchResult":
        return cls(record=record, error=error, from_cache=False)

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ResolvedAuthor:
    """
    A record matched to exactly one external author.
    """
    external_id: str
    raw_name: str
    indicator: str
    given_name: str
    surname: str
    initials: str
    publication_count: str
    subject_area: str
    document_count: int
    last_name: str
    first_name: Optional[str]
    index: int

    @classmethod
    def from_match(cls, record: QueryRecord, candidate: CandidateEntry) -> "ResolvedAuthor":
        return cls(
            external_id=candidate.external_id,
            raw_name=record.raw_name,
            indicator=record.indicator,
            given_name=candidate.preferred_given_name,
            surname=candidate.preferred_surname,
            initials=candidate.preferred_initials,
            publication_count=record.publication_count,
            subject_area=record.subject_area,
            document_count=candidate.document_count,
            last_name=record.last_name,
            first_name=record.first_name,
            index=record.index,
        )

    def as_row(self) -> Dict[str, Any]:
        """
        Map the author onto the result table columns.
        """
        return {
            "id": self.external_id,
            "name": self.raw_name,
            "indicator": self.indicator,
            "given-name": self.given_name,
            "surname": self.surname,
            "initials": self.initials,
            "number-of-publications": self.publication_count,
            "searching-subject-area": self.subject_area,
            "document-count": self.document_count,
            "lastName": self.last_name,
            "firstName": self.first_name or "",
            "index": self.index,
        }


@dataclass
class ArchiveStats:
    written: int = 0
    skipped: int = 0
    failed: int = 0


@dataclass
class PipelineSummary:
    """
    Counters reported at the end of a run.
    """
    records: int = 0
    fetched: int = 0
    cached: int = 0
    failed: int = 0
    resolved: int = 0
    archive: ArchiveStats = field(default_factory=ArchiveStats)
