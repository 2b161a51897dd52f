from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Iterator, Optional, Set

from .archive import ArchiveSink
from .cache import JsonFileStore, ResolutionCache
from .config import (
    DEFAULT_CONFIG_NAME,
    DEFAULT_TARGET_DIR,
    OUTPUT_SUBDIR,
    RESULT_FILE_SUFFIX,
    RUN_LOG_NAME,
    SEARCH_VIEW,
    TEE_BUFFER_SIZE,
)
from .fetch import FetchStage, SearchFunc
from .io_utils import iter_lines
from .log_utils import logger, LogCategory, LogSource
from .models import FetchResult, PipelineSummary
from .normalize import iter_query_records
from .report import write_report
from .selector import CandidateSelector
from .tee import Tee


@dataclass(frozen=True)
class RunPaths:
    """
    File layout of one run.
    """
    input_file: str
    output_dir: str
    cache_dir: str
    result_file: str
    log_file: str

    @classmethod
    def for_config(cls, target_dir: str = DEFAULT_TARGET_DIR, config_name: str = DEFAULT_CONFIG_NAME) -> "RunPaths":
        output_dir = os.path.join(target_dir, OUTPUT_SUBDIR, config_name)
        return cls(
            input_file=os.path.join(target_dir, f"{config_name}.txt"),
            output_dir=output_dir,
            cache_dir=output_dir,
            result_file=os.path.join(output_dir, f"{config_name}{RESULT_FILE_SUFFIX}"),
            log_file=os.path.join(output_dir, RUN_LOG_NAME),
        )


def run_pipeline(
    paths: RunPaths,
    search: SearchFunc,
    *,
    view: str = SEARCH_VIEW,
    claimed_ids: Optional[Set[str]] = None,
    buffer_size: int = TEE_BUFFER_SIZE,
) -> PipelineSummary:
    """
    Resolve every identity of the input file.

    Records flow through the fetch stage once; each result is then handed to
    both the archive and the candidate selector, whose matches are written to
    the result table as they are found. The input file is opened before any
    work starts, so a missing input fails the run up front.
    """
    lines = iter_lines(paths.input_file)
    # open now rather than on first iteration so a missing file aborts here
    first = next(lines, None)

    cache_store = JsonFileStore(paths.cache_dir)
    archive_store = JsonFileStore(paths.output_dir)
    cache = ResolutionCache(cache_store, archive_store)

    stage = FetchStage(cache, search, view=view)
    archive = ArchiveSink(cache, archive_store)
    selector = CandidateSelector(claimed_ids if claimed_ids is not None else set())

    summary = PipelineSummary()

    def all_lines() -> Iterator[str]:
        if first is not None:
            yield first
            yield from lines

    def counted(results: Iterator[FetchResult]) -> Iterator[FetchResult]:
        for result in results:
            summary.records += 1
            yield result

    logger.step(f"Resolving authors from {paths.input_file}", category=LogCategory.PLAN, source=LogSource.SYSTEM)
    results = counted(stage.run(iter_query_records(all_lines())))
    archive_stats, resolved = Tee(results, maxsize=buffer_size).run(
        archive.consume,
        lambda branch: write_report(paths.result_file, selector.resolve(branch)),
    )

    summary.fetched = stage.fetched
    summary.cached = stage.cached
    summary.failed = stage.failed
    summary.archive = archive_stats
    summary.resolved = resolved
    logger.step(
        f"Run complete: {summary.records} record(s), {summary.fetched} fetched, {summary.cached} cached, "
        f"{summary.failed} failed, {summary.resolved} resolved",
        category=LogCategory.PLAN,
        source=LogSource.SYSTEM,
    )
    return summary
