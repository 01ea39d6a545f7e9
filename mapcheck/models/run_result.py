from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

"""Import run result models.

Each source of an import run ends in exactly one SourceResult; the run as a
whole is summarized by ImportResult. Source failures are data here, not
exceptions: the pipeline catches them at the source boundary and records
them.
"""

__all__ = [
    "SourceStatus",
    "SourceResult",
    "ImportResult",
]


class SourceStatus(Enum):
    """Lifecycle of one source inside a run.

    fetching → parsing → filtering → mapping → persisting →
    (success | failed). Disabled sources go straight to skipped.
    """
    FETCHING = "fetching"
    PARSING = "parsing"
    FILTERING = "filtering"
    MAPPING = "mapping"
    PERSISTING = "persisting"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class SourceResult:
    """Outcome of importing one source."""
    source_id: str
    source_name: str
    status: SourceStatus
    rows_in: int = 0  # data rows after header slicing
    rows_after_filter: int = 0  # rows surviving the brand row filter
    rows_persisted: int = 0  # records written (rows with a SKU)
    elapsed_seconds: float = 0.0
    error: str | None = None
    failed_stage: SourceStatus | None = None  # stage the source was in when it failed

    @property
    def ok(self) -> bool:
        return self.status == SourceStatus.SUCCESS


@dataclass(frozen=True)
class ImportResult:
    """Aggregated result of one import run."""
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    source_results: list[SourceResult] = field(default_factory=list)
    aborted: bool = False  # store clear failed, nothing was imported
    error: str | None = None

    @property
    def total_persisted(self) -> int:
        return sum(r.rows_persisted for r in self.source_results if r.ok)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.source_results if r.status == SourceStatus.SUCCESS)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.source_results if r.status == SourceStatus.FAILED)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.source_results if r.status == SourceStatus.SKIPPED)
