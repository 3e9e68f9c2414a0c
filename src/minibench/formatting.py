"""Shared text formatting helpers for minibench.

Provides functions for formatting latencies, ratios, aligned tables and
section headers used by the console reporter.
"""

from __future__ import annotations

import math


def format_ms(value: float, precision: int | None = 3) -> str:
    """Format a latency in milliseconds.

    Rounds to *precision* decimal places; ``None`` keeps Python's full
    float representation.

    Examples: ``format_ms(12.3456, 2) == '12.35'``,
    ``format_ms(0.5, None) == '0.5'``.
    """
    if math.isnan(value):
        return "N/A"
    if precision is None:
        return repr(float(value))
    return f"{value:.{precision}f}"


def format_ratio(value: float, precision: int | None = 3) -> str:
    """Format a relative slowdown; an infinite ratio prints as ``'inf'``."""
    if math.isinf(value):
        return "inf"
    return format_ms(value, precision)


def format_table(
    headers: list[str],
    rows: list[list[str]],
    *,
    alignments: list[str] | None = None,
    max_col_width: dict[int, int] | None = None,
    indent: int = 2,
) -> str:
    """Format a list of rows as an aligned text table.

    Auto-calculates column widths from content. Truncates columns that
    exceed *max_col_width* (with ``'...'`` suffix). Right-aligns columns
    marked ``'r'`` in *alignments*.

    Args:
        headers: Column header strings.
        rows: List of rows, each a list of cell strings.
        alignments: Per-column alignment: ``'l'``, ``'r'``, or ``'c'``.
        max_col_width: Column index to max width mapping.
        indent: Number of leading spaces per line.

    Returns:
        The formatted table as a string.
    """
    if not headers:
        return ""

    ncols = len(headers)
    alignments = list(alignments or [])
    while len(alignments) < ncols:
        alignments.append("l")

    max_widths = max_col_width or {}

    proc_headers = list(headers)
    proc_rows: list[list[str]] = []
    for row in rows:
        padded = list(row) + [""] * (ncols - len(row))
        proc_rows.append(padded[:ncols])

    for ci, max_w in max_widths.items():
        if ci < ncols:
            proc_headers[ci] = truncate(proc_headers[ci], max_w)
            for row in proc_rows:
                row[ci] = truncate(row[ci], max_w)

    widths = [len(h) for h in proc_headers]
    for row in proc_rows:
        for ci, cell in enumerate(row):
            widths[ci] = max(widths[ci], len(cell))

    prefix = " " * indent

    def _format_cell(text: str, width: int, align: str) -> str:
        if align == "r":
            return text.rjust(width)
        if align == "c":
            return text.center(width)
        return text.ljust(width)

    lines: list[str] = []
    header_line = "  ".join(
        _format_cell(proc_headers[i], widths[i], alignments[i]) for i in range(ncols)
    )
    lines.append(prefix + header_line.rstrip())
    lines.append(prefix + "\u2500" * len(header_line))

    for row in proc_rows:
        row_line = "  ".join(_format_cell(row[i], widths[i], alignments[i]) for i in range(ncols))
        lines.append(prefix + row_line.rstrip())

    return "\n".join(lines)


def format_section_header(title: str, width: int = 60) -> str:
    """Format a section header: ``'\u2500\u2500\u2500 Title \u2500\u2500...'``."""
    prefix = "\u2500\u2500\u2500 "
    suffix_len = width - len(prefix) - len(title) - 1
    suffix = " " + "\u2500" * max(0, suffix_len)
    return prefix + title + suffix


def truncate(text: str, max_len: int, suffix: str = "...") -> str:
    """Truncate text to *max_len*, adding *suffix* if truncated."""
    if len(text) <= max_len:
        return text
    if max_len <= len(suffix):
        return suffix[:max_len]
    return text[: max_len - len(suffix)] + suffix
