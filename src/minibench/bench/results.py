"""Benchmark result data structures and serialization.

Hierarchy::

    RunReport (one benchmark run)
      → files: list[FileResult]            (non-compare mode)
        → file_scores: dict[str, float]    (function name → average ms)
      → comparisons: list[ComparisonRanking] (compare mode)
        → entries: list[RankingEntry]

Only ``FileResult`` is serialized; its JSON keys use the camelCase names
consumers of the ``--json`` output expect.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any


# ---------------------------------------------------------------------------
# Per-function result
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FunctionScore:
    """Average latency of one benchmark unit."""

    name: str
    average_latency_ms: float

    def __post_init__(self) -> None:
        if self.average_latency_ms < 0 or math.isnan(self.average_latency_ms):
            raise ValueError(
                f"average latency for {self.name!r} must be >= 0 "
                f"(got {self.average_latency_ms})"
            )


# ---------------------------------------------------------------------------
# Per-file result
# ---------------------------------------------------------------------------


@dataclass
class FileResult:
    """Scores for every benchmark run from one file."""

    file_name: str
    file_scores: dict[str, float] = field(default_factory=dict)
    total_time_ms: float | None = None
    error: str | None = None  # "failed: ..." when the file aborted

    @property
    def failed(self) -> bool:
        return self.error is not None

    def add_score(self, score: FunctionScore) -> None:
        self.file_scores[score.name] = score.average_latency_ms

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        d: dict[str, Any] = {
            "fileName": self.file_name,
            "fileScores": dict(self.file_scores),
        }
        if self.total_time_ms is not None:
            d["totalTimeMs"] = self.total_time_ms
        if self.error is not None:
            d["error"] = self.error
        return d


# ---------------------------------------------------------------------------
# Comparison ranking
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RankingEntry:
    """One candidate in a ranked comparison."""

    name: str
    average_latency_ms: float
    relative_slowdown: float


@dataclass
class ComparisonRanking:
    """Candidates of one comparison, fastest first."""

    name: str
    file_name: str = ""
    entries: list[RankingEntry] = field(default_factory=list)

    @property
    def fastest(self) -> RankingEntry | None:
        return self.entries[0] if self.entries else None


# ---------------------------------------------------------------------------
# Whole run
# ---------------------------------------------------------------------------


@dataclass
class RunReport:
    """Everything a run produced, in file discovery order."""

    files: list[FileResult] = field(default_factory=list)
    comparisons: list[ComparisonRanking] = field(default_factory=list)
    failures: list[FileResult] = field(default_factory=list)
    total_benchmarks: int = 0

    @property
    def failed(self) -> bool:
        """True if any file aborted with an error."""
        return bool(self.failures)
