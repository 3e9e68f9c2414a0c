"""Benchmark file and function discovery.

Handles:
- Resolving candidate files from an explicit list or include globs.
- Filtering files by the ``*bench`` naming convention.
- Loading a file as a module and scanning its exported callables.
- Selecting ``bench*`` units and ``compare*`` groups, optionally
  restricted to an allow-list of names.

Every ``BenchmarkUnit.invoke`` returns an awaitable, whether the wrapped
function is synchronous or not, so callers never branch on the kind of
function they are timing.
"""

from __future__ import annotations

import asyncio
import glob
import importlib.util
import inspect
import itertools
import logging
import sys
from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType
from typing import Any

log = logging.getLogger("minibench")

BENCH_FILE_SUFFIX = "bench"
BENCH_PREFIX = "bench"
COMPARE_PREFIX = "compare"

_module_counter = itertools.count()


class DiscoveryError(ValueError):
    """A benchmark module exported something the harness cannot run."""


# ---------------------------------------------------------------------------
# Units and groups
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BenchmarkUnit:
    """A named callable to be timed."""

    name: str
    is_async: bool
    invoke: Callable[..., Awaitable[Any]]

    @classmethod
    def from_function(cls, func: Callable[[], Any], name: str | None = None) -> BenchmarkUnit:
        """Wrap a zero-argument function, sync or async.

        The returned unit's ``invoke(timeout=None)`` awaits the function's
        result when it is awaitable (coroutines, futures, tasks) and
        returns it as-is otherwise.  The timeout only guards that await:
        a synchronous body runs inline and never yields to the event loop,
        so other files' benchmarks cannot run inside its measurement.
        """

        async def invoke(timeout: float | None = None) -> Any:
            result = func()
            if not inspect.isawaitable(result):
                return result
            if timeout is None:
                return await result
            return await asyncio.wait_for(result, timeout)

        return cls(
            name=name or callable_name(func),
            is_async=inspect.iscoroutinefunction(func),
            invoke=invoke,
        )


@dataclass(frozen=True)
class ComparisonGroup:
    """A ``compare*`` export whose call yields the competing functions."""

    name: str
    factory: Callable[[], Any]

    def units(self) -> list[BenchmarkUnit]:
        """Call the factory once and wrap each candidate, in order.

        Raises:
            DiscoveryError: If the factory does not return a sequence of
                callables.
        """
        candidates = self.factory()
        if isinstance(candidates, (str, bytes)) or not isinstance(candidates, Iterable):
            raise DiscoveryError(
                f"Comparison '{self.name}' must return a sequence of functions, "
                f"got {type(candidates).__name__}"
            )
        units: list[BenchmarkUnit] = []
        for candidate in candidates:
            if not callable(candidate):
                raise DiscoveryError(
                    f"Comparison '{self.name}' returned a non-callable "
                    f"{type(candidate).__name__}"
                )
            units.append(BenchmarkUnit.from_function(candidate))
        return units


def callable_name(func: Callable[..., Any]) -> str:
    """Display name of a callable; partials fall back to the wrapped function."""
    name = getattr(func, "__name__", None)
    if name is None and hasattr(func, "func"):
        name = getattr(func.func, "__name__", None)
    return name or repr(func)


# ---------------------------------------------------------------------------
# File resolution
# ---------------------------------------------------------------------------


def resolve_files(
    files: Sequence[str] | None = None,
    include: Sequence[str] | None = None,
    *,
    root: Path | None = None,
) -> list[Path]:
    """Resolve the candidate files for a run.

    An explicit *files* list wins and is joined onto the current working
    directory.  Otherwise each *include* glob is expanded recursively
    relative to *root* (default: the current working directory).

    Returns:
        Absolute paths, first occurrence kept when globs overlap.
    """
    if files:
        cwd = Path.cwd()
        return _dedupe(cwd / f for f in files)

    base = root or Path.cwd()
    found: list[Path] = []
    for pattern in include or []:
        matches = glob.glob(pattern, root_dir=base, recursive=True)
        found.extend(base / m for m in sorted(matches))
    return _dedupe(p for p in found if p.is_file())


def _dedupe(paths: Iterable[Path]) -> list[Path]:
    seen: set[Path] = set()
    result: list[Path] = []
    for p in paths:
        p = p.absolute()
        if p not in seen:
            seen.add(p)
            result.append(p)
    return result


def is_bench_file(path: str | Path) -> bool:
    """True if the file name before its first dot ends with ``bench``.

    ``sort_bench.py`` and ``microbench.py`` qualify; ``utils.py`` and
    ``bench_utils.py`` do not.
    """
    stem = Path(path).name.split(".", 1)[0]
    return stem.endswith(BENCH_FILE_SUFFIX)


# ---------------------------------------------------------------------------
# Module loading and scanning
# ---------------------------------------------------------------------------


def load_module(path: Path) -> ModuleType:
    """Import *path* as a fresh module.

    Each load gets a unique module name so two files with the same stem
    in different directories do not collide in ``sys.modules``.

    Raises:
        ImportError: If the file cannot be loaded as a Python module.
    """
    module_name = f"_minibench_{next(_module_counter)}_{path.stem.replace('.', '_')}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load benchmark file: {path}")
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except BaseException:
        sys.modules.pop(module_name, None)
        raise
    log.debug("Loaded %s as %s", path, module_name)
    return module


def scan_module(module: ModuleType) -> list[tuple[str, Callable[..., Any]]]:
    """List a module's exported callables in definition order.

    Honors ``__all__`` when the module defines it; otherwise every
    binding not starting with an underscore is an export, except
    functions and classes imported from another module.  No name
    filtering happens here.
    """
    namespace = vars(module)
    exported = getattr(module, "__all__", None)
    if exported is not None:
        names = [n for n in exported if n in namespace]
    else:
        names = [
            n
            for n in namespace
            if not n.startswith("_") and _defined_in(module, namespace[n])
        ]
    return [(n, namespace[n]) for n in names if callable(namespace[n])]


def _defined_in(module: ModuleType, obj: Any) -> bool:
    # Callable instances (partials, counters) carry their class's module.
    if inspect.isroutine(obj) or inspect.isclass(obj):
        return getattr(obj, "__module__", None) == module.__name__
    return True


def _filter_exports(
    exports: Iterable[tuple[str, Callable[..., Any]]],
    prefix: str,
    allow: Sequence[str] | None,
) -> list[tuple[str, Callable[..., Any]]]:
    allowed = set(allow) if allow else None
    return [
        (name, func)
        for name, func in exports
        if name.startswith(prefix) and (allowed is None or name in allowed)
    ]


def select_benchmarks(
    exports: Iterable[tuple[str, Callable[..., Any]]],
    allow: Sequence[str] | None = None,
) -> list[BenchmarkUnit]:
    """Units for every ``bench*`` export, restricted to *allow* if given.

    Names in *allow* that the module does not export are ignored.
    """
    return [
        BenchmarkUnit.from_function(func, name)
        for name, func in _filter_exports(exports, BENCH_PREFIX, allow)
    ]


def select_comparisons(
    exports: Iterable[tuple[str, Callable[..., Any]]],
    allow: Sequence[str] | None = None,
) -> list[ComparisonGroup]:
    """Groups for every ``compare*`` export, restricted to *allow* if given."""
    return [
        ComparisonGroup(name=name, factory=func)
        for name, func in _filter_exports(exports, COMPARE_PREFIX, allow)
    ]
