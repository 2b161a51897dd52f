from __future__ import annotations

import logging
import os
import sys
import threading
from typing import Optional


# Custom log levels for workflow visibility
STEP_LEVEL = 25  # Between INFO (20) and WARNING (30)
SUCCESS_LEVEL = 22  # Between INFO (20) and STEP (25)

logging.addLevelName(STEP_LEVEL, "STEP")
logging.addLevelName(SUCCESS_LEVEL, "SUCCESS")


class LogSource:
    """
    Constants for the parts of a run that emit messages, used for tagging and coloring.
    """
    SCOPUS = "Scopus"
    CACHE = "Cache"
    ARCHIVE = "Archive"
    REPORT = "Report"
    SYSTEM = "System"


class LogCategory:
    """
    Constants for log categories to tag what a message is about.
    """
    QUERY = "QUERY"
    FETCH = "FETCH"
    RATE = "RATE"
    CACHE = "CACHE"
    SAVE = "SAVE"
    SKIP = "SKIP"
    MATCH = "MATCH"
    ERROR = "ERROR"
    DEBUG = "DEBUG"
    PLAN = "PLAN"


class ColoredFormatter(logging.Formatter):
    """
    Formatter that adds ANSI color codes for the level, source, and category
    of each record when writing to a terminal.
    """

    CYAN = "\033[36m"
    WHITE = "\033[37m"
    BOLD_CYAN = "\033[1;36m"
    BOLD_GREEN = "\033[1;32m"
    YELLOW = "\033[33m"
    RED = "\033[31m"
    BOLD_RED = "\033[1;31m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    GREEN = "\033[32m"
    DARK_GRAY = "\033[90m"
    BOLD_BLUE = "\033[1;34m"
    RESET = "\033[0m"

    LEVEL_COLORS = {
        "DEBUG": CYAN,
        "INFO": WHITE,
        "STEP": BOLD_CYAN,
        "SUCCESS": BOLD_GREEN,
        "WARNING": YELLOW,
        "ERROR": RED,
        "CRITICAL": BOLD_RED,
    }

    SOURCE_COLORS = {
        LogSource.SCOPUS: YELLOW,
        LogSource.CACHE: CYAN,
        LogSource.ARCHIVE: BLUE,
        LogSource.REPORT: MAGENTA,
        LogSource.SYSTEM: WHITE,
    }

    CATEGORY_COLORS = {
        LogCategory.QUERY: BOLD_BLUE,
        LogCategory.FETCH: CYAN,
        LogCategory.RATE: DARK_GRAY,
        LogCategory.CACHE: CYAN,
        LogCategory.SAVE: GREEN,
        LogCategory.SKIP: DARK_GRAY,
        LogCategory.MATCH: BOLD_GREEN,
        LogCategory.ERROR: RED,
        LogCategory.DEBUG: DARK_GRAY,
        LogCategory.PLAN: MAGENTA,
    }

    def __init__(self, fmt: str, use_color: bool = True):
        super().__init__(fmt)
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        """
        Prefix the message with its source and category tags, colored when
        enabled, and restore the record afterwards so other handlers see the
        original message.
        """
        original_msg = record.msg
        original_levelname = record.levelname

        parts = []
        source = getattr(record, "source", None)
        category = getattr(record, "category", None)
        if source:
            parts.append(self._tag(source, self.SOURCE_COLORS.get(source)))
        if category:
            parts.append(self._tag(category, self.CATEGORY_COLORS.get(category)))
        if parts:
            record.msg = f"{' '.join(parts)} {record.msg}"

        if self.use_color and record.levelname in self.LEVEL_COLORS:
            record.levelname = f"{self.LEVEL_COLORS[record.levelname]}{record.levelname}{self.RESET}"

        try:
            return super().format(record)
        finally:
            record.msg = original_msg
            record.levelname = original_levelname

    def _tag(self, text: str, color: Optional[str]) -> str:
        if self.use_color and color:
            return f"{color}[{text}]{self.RESET}"
        return f"[{text}]"


class CategoryAdapter(logging.LoggerAdapter):
    """
    Adapter that moves ``source`` and ``category`` keywords into ``extra``.
    """

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        extra = kwargs.get("extra", {})

        source = kwargs.pop("source", None)
        if source:
            extra["source"] = source

        category = kwargs.pop("category", None)
        if category:
            extra["category"] = category

        kwargs["extra"] = extra
        return msg, kwargs


class Logger:
    """
    Run logger built on the standard logging module with colored console
    output, the custom STEP and SUCCESS levels, source/category tags and an
    optional mirror of every message into a run log file. Safe to call from
    the pipeline's worker threads.
    """

    LOG_FORMAT = "%(asctime)s [%(levelname)-8s] %(message)s"
    DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

    def __init__(self, name: str = "AuthorMatch"):
        self._logger = logging.getLogger(name)
        self._logger.setLevel(logging.DEBUG)
        self._logger.propagate = False
        self._logger.handlers.clear()

        self._console_handler = logging.StreamHandler(sys.stdout)
        self._console_handler.setLevel(logging.INFO)
        console_formatter = ColoredFormatter(self.LOG_FORMAT, use_color=sys.stdout.isatty())
        console_formatter.datefmt = self.DATE_FORMAT
        self._console_handler.setFormatter(console_formatter)
        self._logger.addHandler(self._console_handler)

        self._lock = threading.Lock()
        self._file_handler: Optional[logging.FileHandler] = None
        self._log_file_path: Optional[str] = None

        self._adapter = CategoryAdapter(self._logger, {})

    def set_log_file(self, path: str) -> None:
        """
        Start mirroring all log messages, including DEBUG, to the given file.
        """
        parent = os.path.dirname(path)
        if parent:
            try:
                os.makedirs(parent, exist_ok=True)
            except OSError:
                pass

        with self._lock:
            self._close_file_handler()
            try:
                handler = logging.FileHandler(path, mode="w", encoding="utf-8")
            except OSError as e:
                self._logger.error(f"Failed to open log file {path}: {e}")
                return
            handler.setLevel(logging.DEBUG)
            handler.setFormatter(ColoredFormatter(self.LOG_FORMAT, use_color=False))
            handler.formatter.datefmt = self.DATE_FORMAT
            self._logger.addHandler(handler)
            self._file_handler = handler
            self._log_file_path = path

    def close(self) -> None:
        """
        Stop logging to file.
        """
        with self._lock:
            self._close_file_handler()

    def _close_file_handler(self) -> None:
        if self._file_handler is not None:
            self._logger.removeHandler(self._file_handler)
            self._file_handler.close()
            self._file_handler = None
            self._log_file_path = None

    def step(self, msg: str, *, source: Optional[str] = None, category: Optional[str] = None):
        self._adapter.log(STEP_LEVEL, msg, source=source, category=category)

    def debug(self, msg: str, *, source: Optional[str] = None, category: Optional[str] = None):
        self._adapter.debug(msg, source=source, category=category)

    def info(self, msg: str, *, source: Optional[str] = None, category: Optional[str] = None):
        self._adapter.info(msg, source=source, category=category)

    def warn(self, msg: str, *, source: Optional[str] = None, category: Optional[str] = None):
        self._adapter.warning(msg, source=source, category=category)

    def error(self, msg: str, *, source: Optional[str] = None, category: Optional[str] = None):
        self._adapter.error(msg, source=source, category=category)

    def success(self, msg: str, *, source: Optional[str] = None, category: Optional[str] = None):
        self._adapter.log(SUCCESS_LEVEL, msg, source=source, category=category)

    @property
    def log_file_path(self) -> Optional[str]:
        return self._log_file_path


# Global logger instance
logger = Logger()
