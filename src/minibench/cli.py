"""Command-line interface for minibench.

Provides the ``minibench`` entry point: discover ``*bench.py`` files,
time their ``bench*`` functions (or rank ``compare*`` groups), and print
the results as text or JSON.
"""

from __future__ import annotations

import logging
from pathlib import Path

import click

from minibench import __version__
from minibench.bench.config import (
    DEFAULT_CONFIG_FILE,
    ConfigError,
    RunConfig,
    config_from_project,
    load_project_config,
    validate_config,
)
from minibench.logging import setup_logging

log = logging.getLogger("minibench")


def _split_csv(values: tuple[str, ...]) -> list[str] | None:
    """Flatten repeated and comma-separated option values."""
    items = [v.strip() for value in values for v in value.split(",") if v.strip()]
    return items or None


def _exit_on_errors(config: RunConfig) -> None:
    errors = validate_config(config)
    if not errors:
        return
    for e in errors:
        click.echo(f"Error: {e.message}", err=True)
    raise SystemExit(1)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__)
@click.option(
    "--function",
    "functions",
    type=str,
    multiple=True,
    help="Only run these functions (repeatable or comma-separated).",
)
@click.option(
    "--file",
    "files",
    type=str,
    multiple=True,
    help="Only run these files, skipping the config include globs (repeatable).",
)
@click.option(
    "-n",
    "iterations",
    type=int,
    default=None,
    help="Number of times to run each benchmark (default: 3).",
)
@click.option("--json", "as_json", is_flag=True, help="Output results as JSON.")
@click.option("--compare", is_flag=True, help="Run compare* functions and rank their candidates.")
@click.option(
    "--fixed",
    type=int,
    default=None,
    help="Decimal places for reported latencies (default: 3).",
)
@click.option("--no-fixed", is_flag=True, help="Report raw, unrounded latencies.")
@click.option(
    "--timeout",
    type=float,
    default=None,
    help="Fail a file if one invocation takes longer than this many seconds.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    default=Path(DEFAULT_CONFIG_FILE),
    show_default=True,
    help="Project config file naming the benchmark include globs.",
)
@click.option("-v", "--verbose", is_flag=True, help="Show per-iteration timings.")
@click.option("-q", "--quiet", is_flag=True, help="Only show results and errors.")
@click.option("--log-file", type=click.Path(path_type=Path), default=None)
def main(
    functions: tuple[str, ...],
    files: tuple[str, ...],
    iterations: int | None,
    as_json: bool,
    compare: bool,
    fixed: int | None,
    no_fixed: bool,
    timeout: float | None,
    config_path: Path,
    verbose: bool,
    quiet: bool,
    log_file: Path | None,
) -> None:
    """Run micro-benchmarks found in *bench.py files.

    Every function whose name starts with ``bench`` is warmed up three
    times, then timed -n times.  With --compare, every function whose
    name starts with ``compare`` must return a list of functions, which
    are timed and ranked against each other.

    \b
    Examples:
        # Everything matched by the include globs in minibench.yaml
        minibench

        # One file, one function, ten iterations
        minibench --file benchmarks/sort_bench.py --function bench_sorted -n 10

        # Machine-readable output
        minibench --json > results.json
    """
    from minibench.bench.display import (
        format_comparisons,
        format_results_json,
        format_summary,
    )
    from minibench.bench.runner import BenchRunner

    setup_logging(verbose=verbose, quiet=quiet, json_output=as_json, log_file=log_file)

    cli_overrides: dict[str, object] = {
        "files": _split_csv(files),
        "functions": _split_csv(functions),
        "iterations": iterations,
        "output_format": "json" if as_json else "console",
        "compare": compare,
        "precision": "off" if no_fixed else fixed,
        "timeout": timeout,
    }

    # Flag conflicts are reported before the config file is even read.
    _exit_on_errors(config_from_project(None, cli_overrides=cli_overrides))

    project = None
    if not cli_overrides["files"]:
        log.info("Looking for %s...", config_path)
        try:
            project = load_project_config(config_path)
        except (FileNotFoundError, ConfigError) as exc:
            click.echo(f"Error: {exc}", err=True)
            raise SystemExit(1) from exc

    config = config_from_project(project, cli_overrides=cli_overrides)
    _exit_on_errors(config)

    runner = BenchRunner(config)
    try:
        report = runner.run_sync()
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc
    except KeyboardInterrupt:
        click.echo("\nBenchmark interrupted.", err=True)
        raise SystemExit(130)  # noqa: B904

    if config.json_output:
        click.echo(format_results_json(report))
    else:
        if config.compare and report.comparisons:
            click.echo()
            click.echo(format_comparisons(report, config.precision))
            click.echo()
        click.echo(format_summary(report))

    if report.failed:
        raise SystemExit(1)
