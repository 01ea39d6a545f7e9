from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path

from mapcheck.logging.init import SUCCESS_LEVEL, get_logger
from mapcheck.models.log_entry import LogEntry

"""Append-only run log.

The run log is the only user-facing failure channel of an import or price
check: entries are kept in memory in order, echoed to the labeled console
logger as they arrive, and can be flushed to ``logs/run-YYYYMMDD-HHMMSS.log``
(UTC) as JSON Lines.

Single-threaded use only; one run owns one RunLog.
"""

__all__ = [
    "LogEntry",
    "RunLog",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"

_CONSOLE_LEVELS = {
    "info": logging.INFO,
    "success": SUCCESS_LEVEL,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class RunLog:
    """In-memory, append-only list of LogEntry. Flush writes JSON Lines."""

    def __init__(
        self, logger: logging.Logger | None = None, logs_dir: Path | None = None
    ) -> None:
        self._entries: list[LogEntry] = []
        self._flushed = 0
        self._file_path: Path | None = None
        self._logger = logger
        self._logs_dir = logs_dir if logs_dir is not None else LOGS_DIR

    @property
    def logger(self) -> logging.Logger:
        if self._logger is None:
            self._logger = get_logger()
        return self._logger

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            self._logs_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"run-{stamp}.log"
        return self._file_path

    @property
    def entries(self) -> list[LogEntry]:
        return list(self._entries)

    def add(self, level: str, message: str, source: str | None = None) -> LogEntry:
        entry = LogEntry.create(level, message, source)
        self._entries.append(entry)
        self.logger.log(_CONSOLE_LEVELS[level], message)
        return entry

    def info(self, message: str, source: str | None = None) -> LogEntry:
        return self.add("info", message, source)

    def success(self, message: str, source: str | None = None) -> LogEntry:
        return self.add("success", message, source)

    def warning(self, message: str, source: str | None = None) -> LogEntry:
        return self.add("warning", message, source)

    def error(self, message: str, source: str | None = None) -> LogEntry:
        return self.add("error", message, source)

    def by_level(self, level: str) -> list[LogEntry]:
        return [e for e in self._entries if e.level == level]

    def errors(self) -> list[LogEntry]:
        return self.by_level("error")

    def __len__(self) -> int:
        return len(self._entries)

    def flush(self) -> Path:
        """Append entries not yet written to the run log file.

        Entries stay in memory after a flush; only the write position moves.
        """
        fp = self.file_path
        pending = self._entries[self._flushed:]
        if not pending:
            return fp
        with fp.open("a", encoding="utf-8") as f:
            for entry in pending:
                f.write(entry.to_json_line() + "\n")
        self._flushed = len(self._entries)
        return fp
