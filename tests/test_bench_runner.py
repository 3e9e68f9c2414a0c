"""Tests for minibench.bench.runner: benchmark execution engine."""

from __future__ import annotations

import asyncio
import tempfile
import time
import unittest
from pathlib import Path
from types import ModuleType
from unittest.mock import patch

from bench_test_helpers import CallCounter, make_module, write_bench_file

from minibench.bench.config import RunConfig
from minibench.bench.results import RunReport
from minibench.bench.runner import BenchProgress, BenchRunner
from minibench.bench.timing import WARMUP_ITERATIONS


def _make_config(**kwargs: object) -> RunConfig:
    """Create a RunConfig with sensible test defaults."""
    defaults: dict[str, object] = {"iterations": 2}
    defaults.update(kwargs)
    return RunConfig(**defaults)  # type: ignore[arg-type]


def _run(config: RunConfig, progress: list[BenchProgress] | None = None) -> RunReport:
    callback = progress.append if progress is not None else (lambda p: None)
    return BenchRunner(config, progress_callback=callback).run_sync()


_SAMPLE_BENCH = """
    import time

    def bench_alpha():
        return sum(range(10))

    def bench_beta():
        time.sleep(0.001)

    def helper_not_bench():
        raise AssertionError("helpers must not run")
"""

_COMPARE_BENCH = """
    import time

    def fast():
        pass

    def slow():
        time.sleep(0.005)

    def compare_speed():
        return [slow, fast]

    def bench_ignored_in_compare_mode():
        raise AssertionError("bench functions must not run with --compare")
"""


# ---------------------------------------------------------------------------
# Non-compare mode
# ---------------------------------------------------------------------------


class TestRunnerBenchmarks(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_runs_bench_functions_only(self) -> None:
        write_bench_file(self.root, "sample_bench.py", _SAMPLE_BENCH)
        report = _run(_make_config(include=["*.py"], root=self.root))
        self.assertEqual(len(report.files), 1)
        result = report.files[0]
        self.assertEqual(list(result.file_scores), ["bench_alpha", "bench_beta"])
        self.assertTrue(all(v >= 0 for v in result.file_scores.values()))
        self.assertGreaterEqual(result.file_scores["bench_beta"], 1.0)
        self.assertEqual(report.total_benchmarks, 2)
        self.assertFalse(report.failed)

    def test_non_bench_file_skipped(self) -> None:
        write_bench_file(self.root, "utils.py", "def bench_x():\n    raise SystemExit(3)\n")
        write_bench_file(self.root, "sample_bench.py", _SAMPLE_BENCH)
        report = _run(_make_config(include=["*.py"], root=self.root))
        self.assertEqual([Path(r.file_name).name for r in report.files], ["sample_bench.py"])

    def test_allow_list(self) -> None:
        write_bench_file(self.root, "sample_bench.py", _SAMPLE_BENCH)
        report = _run(
            _make_config(include=["*.py"], root=self.root, functions=["bench_alpha", "nope"])
        )
        self.assertEqual(list(report.files[0].file_scores), ["bench_alpha"])
        self.assertEqual(report.total_benchmarks, 1)

    def test_total_time_rounded(self) -> None:
        write_bench_file(self.root, "sample_bench.py", _SAMPLE_BENCH)
        report = _run(_make_config(include=["*.py"], root=self.root, precision=2))
        total = report.files[0].total_time_ms
        self.assertIsNotNone(total)
        self.assertEqual(total, round(total, 2))
        self.assertGreaterEqual(total, report.files[0].file_scores["bench_beta"])

    def test_total_time_omitted_without_rounding(self) -> None:
        write_bench_file(self.root, "sample_bench.py", _SAMPLE_BENCH)
        report = _run(_make_config(include=["*.py"], root=self.root, precision=None))
        self.assertIsNone(report.files[0].total_time_ms)
        self.assertNotIn("totalTimeMs", report.files[0].to_dict())

    def test_file_with_no_benchmarks(self) -> None:
        write_bench_file(self.root, "empty_bench.py", "X = 1\n")
        report = _run(_make_config(include=["*.py"], root=self.root))
        self.assertEqual(report.files[0].file_scores, {})
        self.assertEqual(report.total_benchmarks, 0)

    def test_explicit_files(self) -> None:
        path = write_bench_file(self.root, "sample_bench.py", _SAMPLE_BENCH)
        report = _run(_make_config(files=[str(path)], include=["does-not-match/*"]))
        self.assertEqual(report.files[0].file_name, str(path))

    def test_results_in_discovery_order(self) -> None:
        for name in ("b_bench.py", "a_bench.py", "c_bench.py"):
            write_bench_file(self.root, name, "def bench_x():\n    pass\n")
        report = _run(_make_config(include=["*.py"], root=self.root))
        self.assertEqual(
            [Path(r.file_name).name for r in report.files],
            ["a_bench.py", "b_bench.py", "c_bench.py"],
        )
        self.assertEqual(report.total_benchmarks, 3)

    def test_failure_isolated_per_file(self) -> None:
        write_bench_file(
            self.root,
            "broken_bench.py",
            """
            def bench_ok():
                pass

            def bench_broken():
                raise RuntimeError("kaput")
            """,
        )
        write_bench_file(self.root, "sample_bench.py", _SAMPLE_BENCH)
        report = _run(_make_config(include=["*.py"], root=self.root))

        self.assertTrue(report.failed)
        self.assertEqual(len(report.files), 2)
        broken, sample = report.files
        self.assertEqual(broken.error, "failed: RuntimeError: kaput")
        self.assertEqual(list(broken.file_scores), ["bench_ok"])
        self.assertIsNone(sample.error)
        self.assertEqual(list(sample.file_scores), ["bench_alpha", "bench_beta"])
        self.assertEqual(report.failures, [broken])

    def test_import_error_isolated(self) -> None:
        write_bench_file(self.root, "bad_bench.py", "import does_not_exist_anywhere\n")
        report = _run(_make_config(include=["*.py"], root=self.root))
        self.assertTrue(report.files[0].error.startswith("failed: ModuleNotFoundError"))

    def test_timeout_marker(self) -> None:
        write_bench_file(
            self.root,
            "hang_bench.py",
            """
            import asyncio

            async def bench_hang():
                await asyncio.sleep(30)
            """,
        )
        report = _run(_make_config(include=["*.py"], root=self.root, timeout=0.05))
        self.assertEqual(report.files[0].error, "failed: timeout")

    def test_timeout_keeps_sync_measurements_uncontended(self) -> None:
        """A sibling file's sync work never lands in another file's samples."""
        write_bench_file(self.root, "a_bench.py", "def bench_quick():\n    pass\n")
        write_bench_file(
            self.root,
            "b_bench.py",
            """
            import time

            def bench_slow():
                time.sleep(0.05)
            """,
        )
        report = _run(_make_config(include=["*.py"], root=self.root, iterations=3, timeout=10.0))

        self.assertFalse(report.failed)
        quick, slow = report.files
        self.assertLess(quick.file_scores["bench_quick"], 5.0)
        self.assertGreaterEqual(slow.file_scores["bench_slow"], 50.0)

    def test_invalid_config_raises_before_work(self) -> None:
        write_bench_file(self.root, "sample_bench.py", _SAMPLE_BENCH)
        progress: list[BenchProgress] = []
        with self.assertRaises(ValueError):
            _run(
                _make_config(include=["*.py"], root=self.root, compare=True, output_format="json"),
                progress,
            )
        self.assertEqual(progress, [])

    def test_progress_events(self) -> None:
        write_bench_file(self.root, "sample_bench.py", _SAMPLE_BENCH)
        progress: list[BenchProgress] = []
        _run(_make_config(include=["*.py"], root=self.root, functions=["bench_alpha"]), progress)
        self.assertEqual(
            [(p.phase, p.function) for p in progress],
            [("search", ""), ("found", ""), ("run", "bench_alpha"), ("done", "bench_alpha")],
        )
        self.assertIsNotNone(progress[-1].average_ms)


# ---------------------------------------------------------------------------
# Invocation accounting (in-memory modules)
# ---------------------------------------------------------------------------


class TestRunnerInvocations(unittest.TestCase):
    def test_each_unit_runs_warmup_plus_n(self) -> None:
        alpha = CallCounter("bench_alpha")
        beta = CallCounter("bench_beta")
        module = make_module("fake_bench", bench_alpha=alpha, bench_beta=beta)
        with patch("minibench.bench.runner.load_module", return_value=module):
            report = _run(_make_config(files=["fake_bench.py"], iterations=4))
        self.assertEqual(alpha.calls, WARMUP_ITERATIONS + 4)
        self.assertEqual(beta.calls, WARMUP_ITERATIONS + 4)
        self.assertEqual(list(report.files[0].file_scores), ["bench_alpha", "bench_beta"])

    def test_same_file_units_are_sequential(self) -> None:
        """The second benchmark's warm-up starts after the first finishes."""
        events: list[str] = []

        async def bench_first() -> None:
            events.append("first")
            await asyncio.sleep(0.001)

        async def bench_second() -> None:
            events.append("second")
            await asyncio.sleep(0.001)

        module = make_module("fake_bench", bench_first=bench_first, bench_second=bench_second)
        with patch("minibench.bench.runner.load_module", return_value=module):
            _run(_make_config(files=["fake_bench.py"], iterations=3))

        per_unit = WARMUP_ITERATIONS + 3
        self.assertEqual(events, ["first"] * per_unit + ["second"] * per_unit)

    def test_files_run_concurrently(self) -> None:
        """Async benchmarks in different files overlap their waits."""
        modules = {}
        for name in ("one_bench.py", "two_bench.py"):

            async def bench_wait() -> None:
                await asyncio.sleep(0.02)

            modules[name] = make_module(name, bench_wait=bench_wait)

        def fake_load(path: Path) -> ModuleType:
            return modules[path.name]

        with patch("minibench.bench.runner.load_module", side_effect=fake_load):
            start = time.perf_counter()
            report = _run(_make_config(files=list(modules), iterations=2))
            elapsed = time.perf_counter() - start

        self.assertEqual(report.total_benchmarks, 2)
        # 2 files x 5 calls x 20ms would be 200ms if run back to back.
        self.assertLess(elapsed, 0.19)


# ---------------------------------------------------------------------------
# Compare mode
# ---------------------------------------------------------------------------


class TestRunnerCompare(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_ranks_candidates(self) -> None:
        write_bench_file(self.root, "speed_bench.py", _COMPARE_BENCH)
        report = _run(_make_config(include=["*.py"], root=self.root, compare=True))

        self.assertEqual(report.files, [])
        self.assertEqual(len(report.comparisons), 1)
        ranking = report.comparisons[0]
        self.assertEqual(ranking.name, "compare_speed")
        self.assertEqual([e.name for e in ranking.entries], ["fast", "slow"])
        self.assertEqual(ranking.entries[0].relative_slowdown, 1.0)
        self.assertGreater(ranking.entries[1].relative_slowdown, 1.0)
        self.assertEqual(report.total_benchmarks, 2)

    def test_compare_allow_list(self) -> None:
        write_bench_file(self.root, "speed_bench.py", _COMPARE_BENCH)
        report = _run(
            _make_config(
                include=["*.py"], root=self.root, compare=True, functions=["compare_other"]
            )
        )
        self.assertEqual(report.comparisons, [])
        self.assertEqual(report.total_benchmarks, 0)

    def test_bad_factory_isolated(self) -> None:
        write_bench_file(self.root, "bad_bench.py", "def compare_bad():\n    return 42\n")
        write_bench_file(self.root, "speed_bench.py", _COMPARE_BENCH)
        report = _run(_make_config(include=["*.py"], root=self.root, compare=True))
        self.assertTrue(report.failed)
        self.assertIn("DiscoveryError", report.failures[0].error)
        self.assertEqual([r.name for r in report.comparisons], ["compare_speed"])


if __name__ == "__main__":
    unittest.main()
