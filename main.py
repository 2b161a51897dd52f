from __future__ import annotations

import argparse
import os
from typing import List, Optional

from AuthorMatch.config import API_KEY_ENV_VAR, DEFAULT_CONFIG_NAME, DEFAULT_KEY_FILE, DEFAULT_TARGET_DIR
from AuthorMatch.exceptions import CSV_ERRORS, DECODE_ERRORS, FILE_IO_ERRORS, FILE_READ_ERRORS
from AuthorMatch.io_utils import ensure_dir, read_api_keys
from AuthorMatch.log_utils import logger, LogCategory, LogSource
from AuthorMatch.pipeline import RunPaths, run_pipeline
from AuthorMatch.scopus_client import ScopusAuthorSearchApi


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Resolve a list of author names to Scopus author ids."
    )
    parser.add_argument("--config-name", default=DEFAULT_CONFIG_NAME,
                        help="run name; reads <target>/<name>.txt and writes <target>/output/<name>/")
    parser.add_argument("--target-dir", default=DEFAULT_TARGET_DIR, help="base directory for input and output")
    parser.add_argument("--key-file", default=DEFAULT_KEY_FILE,
                        help=f"API key file used when {API_KEY_ENV_VAR} is not set")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Check the run's preconditions (API keys, output directory), then resolve
    every author of the input file.

    Returns an exit code suitable for use as a command-line entry point:
    2 when a precondition is missing, 1 when the run itself failed.
    """
    args = build_parser().parse_args(argv)
    paths = RunPaths.for_config(args.target_dir, args.config_name)

    try:
        api_keys = read_api_keys(API_KEY_ENV_VAR, args.key_file)
    except FILE_READ_ERRORS as e:
        logger.error(f"Error reading API keys: {e}", category=LogCategory.ERROR, source=LogSource.SYSTEM)
        return 2

    try:
        ensure_dir(paths.output_dir)
    except OSError as e:
        logger.error(f"Cannot create output directory '{paths.output_dir}': {e}", category=LogCategory.ERROR)
        return 2

    logger.set_log_file(paths.log_file)
    logger.success(f"{len(api_keys)} API key(s) loaded", category=LogCategory.PLAN, source=LogSource.SYSTEM)

    if not os.path.exists(paths.input_file):
        logger.error(f"Input file not found: {paths.input_file}", category=LogCategory.ERROR)
        logger.close()
        return 2

    client = ScopusAuthorSearchApi(api_keys)
    try:
        summary = run_pipeline(paths, client.search)
    except FILE_IO_ERRORS + DECODE_ERRORS + CSV_ERRORS as e:
        logger.error(f"Run failed: {e}", category=LogCategory.ERROR, source=LogSource.SYSTEM)
        return 1
    finally:
        logger.info(f"Log file: {logger.log_file_path or 'n/a'}", category=LogCategory.PLAN)
        logger.close()

    logger.info(f"Result file: {paths.result_file} ({summary.resolved} author(s))", category=LogCategory.PLAN)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
