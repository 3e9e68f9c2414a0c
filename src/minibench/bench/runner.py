"""Benchmark execution engine.

Orchestrates:
1. Configuration validation
2. File resolution and the ``*bench`` name filter
3. Module loading and export scanning (one asyncio task per file)
4. Sequential timing of every unit inside a file
5. Aggregation into a RunReport, with rankings in compare mode
6. Progress reporting

Files run concurrently on one event loop; the functions of a single
file never do, so sibling benchmarks do not contend with each other.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from minibench.bench.compare import rank_comparison
from minibench.bench.config import RunConfig, validate_config
from minibench.bench.discovery import (
    BenchmarkUnit,
    is_bench_file,
    load_module,
    resolve_files,
    scan_module,
    select_benchmarks,
    select_comparisons,
)
from minibench.bench.results import ComparisonRanking, FileResult, FunctionScore, RunReport
from minibench.bench.timing import BenchTimeoutError, run_unit, time_call
from minibench.formatting import format_ms

log = logging.getLogger("minibench")


# ---------------------------------------------------------------------------
# Progress callback
# ---------------------------------------------------------------------------


@dataclass
class BenchProgress:
    """Progress info passed to the callback."""

    phase: str  # "search", "found", "run", "done"
    file_name: str = ""
    function: str = ""
    average_ms: float | None = None
    detail: str = ""


ProgressCallback = Callable[[BenchProgress], None]


@dataclass
class _FileOutcome:
    result: FileResult
    comparisons: list[ComparisonRanking] = field(default_factory=list)


# ---------------------------------------------------------------------------
# BenchRunner
# ---------------------------------------------------------------------------


class BenchRunner:
    """Executes a benchmark run according to a RunConfig.

    Usage::

        config = RunConfig(include=["benchmarks/*_bench.py"])
        runner = BenchRunner(config)
        report = runner.run_sync()
    """

    def __init__(
        self,
        config: RunConfig,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        self.config = config
        self.progress: ProgressCallback = progress_callback or self._default_progress
        self.total_benchmarks = 0

    def run_sync(self) -> RunReport:
        """Run the benchmark on a fresh event loop."""
        return asyncio.run(self.run())

    async def run(self) -> RunReport:
        """Execute the full benchmark.

        Returns:
            RunReport with results in file discovery order.

        Raises:
            ValueError: If configuration is invalid.
        """
        errors = validate_config(self.config)
        if errors:
            messages = [f"  {e.field}: {e.message}" for e in errors]
            raise ValueError("Invalid benchmark configuration:\n" + "\n".join(messages))

        if not self.config.files:
            self.progress(BenchProgress(phase="search", detail=", ".join(self.config.include)))
        files = resolve_files(self.config.files, self.config.include, root=self.config.root)
        log.debug("Resolved %d candidate file(s)", len(files))

        self.total_benchmarks = 0
        outcomes = await asyncio.gather(*(self._run_file(path) for path in files))

        report = RunReport()
        for outcome in outcomes:
            if outcome is None:
                continue
            if outcome.result.failed:
                report.failures.append(outcome.result)
            if self.config.compare:
                report.comparisons.extend(outcome.comparisons)
            else:
                report.files.append(outcome.result)
        report.total_benchmarks = self.total_benchmarks
        return report

    # -- per file -----------------------------------------------------------

    async def _run_file(self, path: Path) -> _FileOutcome | None:
        """Load one file and run its benchmarks or comparisons.

        Returns None for files outside the ``*bench`` naming convention.
        A failure inside the file is recorded on its FileResult and does
        not stop the other files.
        """
        if not is_bench_file(path):
            log.debug("Skipping %s: not a benchmark file", path)
            return None

        file_name = str(path)
        self.progress(BenchProgress(phase="found", file_name=file_name))
        outcome = _FileOutcome(result=FileResult(file_name=file_name))

        try:
            module = await asyncio.to_thread(load_module, path)
            exports = scan_module(module)
            if self.config.compare:
                await self._run_comparisons(outcome, exports)
            else:
                await self._run_benchmarks(outcome.result, exports)
        except Exception as exc:  # noqa: BLE001
            outcome.result.error = _failure_marker(exc)
            log.error("%s %s", file_name, outcome.result.error)
            log.debug("Traceback for %s", file_name, exc_info=True)

        return outcome

    async def _run_benchmarks(self, result: FileResult, exports: list[tuple[str, Any]]) -> None:
        units = select_benchmarks(exports, self.config.functions)

        async def run_all() -> None:
            for unit in units:
                result.add_score(await self._time_unit(result.file_name, unit))

        total_ms = await time_call(run_all)
        if self.config.precision is not None:
            result.total_time_ms = round(total_ms, self.config.precision)

    async def _run_comparisons(self, outcome: _FileOutcome, exports: list[tuple[str, Any]]) -> None:
        file_name = outcome.result.file_name
        for group in select_comparisons(exports, self.config.functions):
            scores: dict[str, float] = {}
            for unit in group.units():
                score = await self._time_unit(file_name, unit)
                scores[score.name] = score.average_latency_ms
                outcome.result.add_score(score)
            outcome.comparisons.append(rank_comparison(group.name, scores, file_name=file_name))

    async def _time_unit(self, file_name: str, unit: BenchmarkUnit) -> FunctionScore:
        self.total_benchmarks += 1
        self.progress(BenchProgress(phase="run", file_name=file_name, function=unit.name))
        score = await run_unit(unit, self.config.iterations, timeout=self.config.timeout)
        self.progress(
            BenchProgress(
                phase="done",
                file_name=file_name,
                function=unit.name,
                average_ms=score.average_latency_ms,
            )
        )
        return score

    # -- progress -----------------------------------------------------------

    def _default_progress(self, progress: BenchProgress) -> None:
        """Default progress callback: log each step at INFO."""
        if progress.phase == "search":
            log.info("Looking for benchmarks in %s...", progress.detail)
        elif progress.phase == "found":
            log.info("Found %s", progress.file_name)
        elif progress.phase == "run":
            log.info("Running %s", progress.function)
        elif progress.phase == "done" and progress.average_ms is not None:
            log.info("Took %sms on average", format_ms(progress.average_ms, self.config.precision))


def _failure_marker(exc: BaseException) -> str:
    if isinstance(exc, BenchTimeoutError):
        return "failed: timeout"
    return f"failed: {type(exc).__name__}: {exc}"
