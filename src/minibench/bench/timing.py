"""Timing capture for benchmark units.

``time_call`` measures one invocation with ``time.perf_counter_ns``;
``run_unit`` drives a unit through the warm-up and measured phases and
reduces the samples to an average latency in milliseconds.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from minibench.bench.discovery import BenchmarkUnit
from minibench.bench.results import FunctionScore

log = logging.getLogger("minibench")

WARMUP_ITERATIONS = 3
DEFAULT_ITERATIONS = 3

_NS_PER_MS = 1_000_000


class BenchTimeoutError(TimeoutError):
    """An invocation did not complete within the configured timeout."""


# ---------------------------------------------------------------------------
# Timer
# ---------------------------------------------------------------------------


async def time_call(invoke: Callable[[], Awaitable[Any]]) -> float:
    """Time a single invocation of *invoke* and return milliseconds.

    The end timestamp is taken only after the awaitable returned by
    *invoke* has resolved, so waiting for asynchronous work is part of
    the measured interval.  Exceptions raised by the callable propagate
    unchanged.
    """
    start = time.perf_counter_ns()
    await invoke()
    elapsed = time.perf_counter_ns() - start
    return elapsed / _NS_PER_MS


# ---------------------------------------------------------------------------
# Invoker
# ---------------------------------------------------------------------------


async def run_unit(
    unit: BenchmarkUnit,
    iterations: int = DEFAULT_ITERATIONS,
    *,
    timeout: float | None = None,
) -> FunctionScore:
    """Warm up *unit*, then time it *iterations* times.

    The unit is invoked exactly ``WARMUP_ITERATIONS + iterations`` times,
    one call after another.  Warm-up results and timings are discarded.

    Args:
        unit: The benchmark to run.
        iterations: Number of measured invocations.
        timeout: Optional limit in seconds on awaiting each asynchronous
            result.  Synchronous bodies are never interrupted.

    Returns:
        FunctionScore with the mean of the measured samples.

    Raises:
        ValueError: If *iterations* is less than 1.
        BenchTimeoutError: If *timeout* is set and an await exceeds it.
    """
    if iterations < 1:
        raise ValueError(f"iterations must be at least 1 (got {iterations})")

    call = functools.partial(unit.invoke, timeout=timeout)
    try:
        for _ in range(WARMUP_ITERATIONS):
            await call()

        total_ms = 0.0
        for i in range(iterations):
            sample = await time_call(call)
            log.debug("%s: iteration %d/%d took %.6fms", unit.name, i + 1, iterations, sample)
            total_ms += sample
    except asyncio.TimeoutError as exc:
        if timeout is None:
            raise
        raise BenchTimeoutError(f"{unit.name} timed out after {timeout}s") from exc

    return FunctionScore(name=unit.name, average_latency_ms=total_ms / iterations)
