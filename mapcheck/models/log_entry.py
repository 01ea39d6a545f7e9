from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""LogEntry model for the run log stream.

Every user-visible message of an import or a price check is a LogEntry:
timestamped, leveled, optionally attributed to a source. Entries are
serialized as JSON Lines with a fixed key set.
"""

__all__ = [
    "LEVELS",
    "LogEntry",
]

LEVELS = ("info", "success", "warning", "error")


@dataclass(frozen=True)
class LogEntry:
    """Structured run log entry.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        level: One of ``LEVELS``
        message: Human readable text
        source: Source id the entry belongs to, None for run-level entries
    """
    timestamp: str
    level: str
    message: str
    source: str | None = None

    @staticmethod
    def create(level: str, message: str, source: str | None = None) -> LogEntry:
        """Create a new LogEntry stamped with the current UTC time.

        Raises:
            ValueError: If ``level`` is not one of ``LEVELS``
        """
        if level not in LEVELS:
            raise ValueError(f"unknown log level: {level}")
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return LogEntry(timestamp=ts, level=level, message=message, source=source)

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)
