"""Benchmark run configuration and project config loading.

Handles:
- Loading the project config file (YAML) that names the include globs.
- Merging CLI options over config-file defaults.
- Validating the final configuration before any benchmark runs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

log = logging.getLogger("minibench")

DEFAULT_CONFIG_FILE = "minibench.yaml"
DEFAULT_PRECISION = 3


class ConfigError(ValueError):
    """The project config file is present but unusable."""


# ---------------------------------------------------------------------------
# RunConfig
# ---------------------------------------------------------------------------


@dataclass
class RunConfig:
    """Resolved configuration for a benchmark run."""

    # Selection
    files: list[str] | None = None  # Explicit files bypass the include globs
    include: list[str] = field(default_factory=list)
    root: Path | None = None  # Directory the include globs are relative to
    functions: list[str] | None = None  # Allow-list of export names

    # Iteration control
    iterations: int = 3
    timeout: float | None = None  # Per-invocation, seconds; None = wait forever

    # Output
    output_format: str = "console"  # "console" or "json"
    compare: bool = False
    precision: int | None = DEFAULT_PRECISION  # None disables rounding

    @property
    def json_output(self) -> bool:
        return self.output_format == "json"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@dataclass
class ValidationError:
    """A single configuration validation error."""

    field: str
    message: str


def validate_config(config: RunConfig) -> list[ValidationError]:
    """Validate a run configuration.

    Returns a list of validation errors.  Empty list means valid.
    """
    errors: list[ValidationError] = []

    if config.compare and config.json_output:
        errors.append(
            ValidationError(
                field="compare",
                message="Json format for compares not supported!",
            )
        )

    if config.output_format not in ("console", "json"):
        errors.append(
            ValidationError(
                field="output_format",
                message=f"Unknown output format '{config.output_format}'.",
            )
        )

    # An average over zero samples is undefined.
    if config.iterations < 1:
        errors.append(
            ValidationError(
                field="iterations",
                message=f"Need at least 1 measured iteration (got {config.iterations}).",
            )
        )

    if config.precision is not None and config.precision < 0:
        errors.append(
            ValidationError(
                field="precision",
                message=f"Rounding precision cannot be negative (got {config.precision}).",
            )
        )

    if config.timeout is not None and config.timeout <= 0:
        errors.append(
            ValidationError(
                field="timeout",
                message=f"Timeout must be positive (got {config.timeout}).",
            )
        )

    return errors


# ---------------------------------------------------------------------------
# Project config file
# ---------------------------------------------------------------------------


@dataclass
class ProjectConfig:
    """Settings read from the project config file."""

    path: Path
    include: list[str]
    iterations: int | None = None
    precision: int | None = None

    @property
    def root(self) -> Path:
        """Directory the include globs are relative to."""
        return self.path.parent


def load_project_config(config_path: Path) -> ProjectConfig:
    """Load the project config file.

    Config format::

        include: "benchmarks/**/*_bench.py"   # or a list of globs
        iterations: 5                          # optional default for -n
        fixed: 3                               # optional rounding precision

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigError: If the file is not valid YAML or lacks ``include``.
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    try:
        data = yaml.safe_load(config_path.read_text())
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {config_path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(
            f"Config file must be a YAML mapping, got {type(data).__name__}: {config_path}"
        )

    include = data.get("include")
    if isinstance(include, str):
        include = [include]
    if not include or not all(isinstance(p, str) and p for p in include):
        raise ConfigError(
            f"Config file {config_path} must set 'include' to a glob or a list of globs"
        )

    log.debug("Loaded config from %s: include=%s", config_path, include)
    return ProjectConfig(
        path=config_path.absolute(),
        include=list(include),
        iterations=_optional_int(data, "iterations", config_path),
        precision=_optional_int(data, "fixed", config_path),
    )


def _optional_int(data: dict[str, Any], key: str, config_path: Path) -> int | None:
    value = data.get(key)
    if value is None:
        return None
    # bool is an int subclass; reject "fixed: yes".
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"'{key}' in {config_path} must be an integer, got {value!r}")
    return value


def config_from_project(
    project: ProjectConfig | None,
    *,
    cli_overrides: dict[str, Any] | None = None,
) -> RunConfig:
    """Build a RunConfig from the project config and CLI options.

    CLI values take precedence over the config file, which takes
    precedence over the built-in defaults.  A CLI value of ``None``
    means "not given".

    Args:
        project: Loaded project config, or None when ``--file`` was given
            and no config file was needed.
        cli_overrides: Dict of CLI option values keyed by RunConfig field
            name.  ``"precision"`` may be the string ``"off"`` to disable
            rounding.
    """
    cli = cli_overrides or {}
    config = RunConfig(
        files=cli.get("files") or None,
        functions=cli.get("functions") or None,
        output_format=cli.get("output_format") or "console",
        compare=bool(cli.get("compare")),
        timeout=cli.get("timeout"),
    )

    if project is not None:
        config.include = list(project.include)
        config.root = project.root

    if cli.get("iterations") is not None:
        config.iterations = cli["iterations"]
    elif project is not None and project.iterations is not None:
        config.iterations = project.iterations

    precision = cli.get("precision")
    if precision == "off":
        config.precision = None
    elif precision is not None:
        config.precision = precision
    elif project is not None and project.precision is not None:
        config.precision = project.precision

    return config
