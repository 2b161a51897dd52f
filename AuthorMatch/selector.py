from __future__ import annotations

from typing import Any, Dict, Iterable, Iterator, List, Optional, Set

from .log_utils import logger, LogCategory, LogSource
from .models import CandidateEntry, FetchResult, QueryRecord, ResolvedAuthor
from .text_utils import safe_get_nested, to_int


def total_results(response: Optional[Dict[str, Any]]) -> int:
    """
    Number of matches the service reports for a search.
    """
    return to_int(safe_get_nested(response, "search-results", "opensearch:totalResults"))


def external_id_of(entry: Dict[str, Any]) -> str:
    """
    Author id without its namespace, e.g. ``AUTHOR_ID:7004212771`` -> ``7004212771``.
    """
    identifier = str(entry.get("dc:identifier") or "").strip()
    _, sep, tail = identifier.partition(":")
    return tail.strip() if sep else identifier


def parse_candidates(response: Optional[Dict[str, Any]]) -> List[CandidateEntry]:
    """
    Extract the author entries of a response in their original order.

    Entries without an identifier (the service sends an ``error`` entry for
    empty result sets) are ignored, and an author listed more than once is
    kept at its first position only.
    """
    entries = safe_get_nested(response, "search-results", "entry", default=[])
    if not isinstance(entries, list):
        return []

    candidates: List[CandidateEntry] = []
    seen: Set[str] = set()
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        external_id = external_id_of(entry)
        if not external_id or external_id in seen:
            continue
        seen.add(external_id)
        preferred = entry.get("preferred-name") or {}
        candidates.append(
            CandidateEntry(
                external_id=external_id,
                preferred_surname=str(preferred.get("surname") or ""),
                preferred_given_name=str(preferred.get("given-name") or ""),
                preferred_initials=str(preferred.get("initials") or ""),
                document_count=to_int(entry.get("document-count")),
            )
        )
    return candidates


def _bare_initials(text: str) -> str:
    """
    Initials without periods or spaces, so "J. K." and "JK" compare equal.
    """
    return "".join(ch for ch in text if ch not in ". ")


def name_matches(record: QueryRecord, candidate: CandidateEntry) -> bool:
    """
    Exact surname match, plus an initials match when a given name was supplied.
    """
    if candidate.preferred_surname != record.last_name:
        return False
    if not record.first_name:
        return True
    return _bare_initials(candidate.preferred_initials) == _bare_initials(record.first_name)


class CandidateSelector:
    """
    Pick at most one author per record while never handing out the same
    author id twice in a run.

    ``claimed_ids`` holds the ids already emitted; it is owned by this
    selector for the duration of a run and can be pre-seeded.
    """

    def __init__(self, claimed_ids: Optional[Set[str]] = None):
        self.claimed_ids: Set[str] = claimed_ids if claimed_ids is not None else set()

    def rank(self, candidates: Iterable[CandidateEntry]) -> List[CandidateEntry]:
        """
        Unclaimed candidates, most documents first. Ties keep the order of the response.
        """
        available = [c for c in candidates if c.external_id not in self.claimed_ids]
        return sorted(available, key=lambda c: c.document_count, reverse=True)

    def select(self, record: QueryRecord, response: Dict[str, Any]) -> Optional[ResolvedAuthor]:
        ranked = self.rank(parse_candidates(response))
        if not ranked:
            return None

        chosen = next((c for c in ranked if name_matches(record, c)), ranked[0])
        self.claimed_ids.add(chosen.external_id)
        return ResolvedAuthor.from_match(record, chosen)

    def resolve(self, results: Iterable[FetchResult]) -> Iterator[ResolvedAuthor]:
        """
        Select authors for successful results that report at least one
        match. Failures and empty searches are skipped here; the archive
        still records them.
        """
        for result in results:
            if not result.ok or total_results(result.response) <= 0:
                continue
            record = result.record
            author = self.select(record, result.response)
            if author is None:
                logger.info(
                    f"[{record.padded_index}] no unclaimed candidate",
                    category=LogCategory.SKIP,
                    source=LogSource.REPORT,
                )
                continue
            logger.success(
                f"[{record.padded_index}] matched {author.surname}, {author.initials} ({author.external_id})",
                category=LogCategory.MATCH,
                source=LogSource.REPORT,
            )
            yield author
