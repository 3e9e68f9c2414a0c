"""Terminal and JSON rendering of benchmark results.

Console output is a run summary or, in compare mode, one ranked table
per comparison.  JSON output is the list of per-file results, printed
once at the end of the run.
"""

from __future__ import annotations

import json

from minibench.bench.results import ComparisonRanking, RunReport
from minibench.formatting import (
    format_ms,
    format_ratio,
    format_section_header,
    format_table,
)

JSON_INDENT = 4


def format_ranking_table(ranking: ComparisonRanking, precision: int | None = 3) -> str:
    """Format one comparison as a table, fastest candidate first.

    Args:
        ranking: Ranked candidates of one comparison.
        precision: Decimal places for the average and slowdown columns.

    Returns:
        Formatted string for terminal output.
    """
    lines = [format_section_header(ranking.name)]
    if not ranking.entries:
        lines.append("  (no candidates)")
        return "\n".join(lines)

    rows = [
        [
            entry.name,
            format_ms(entry.average_latency_ms, precision),
            format_ratio(entry.relative_slowdown, precision),
        ]
        for entry in ranking.entries
    ]
    lines.append(
        format_table(
            ["Name", "Average (ms)", "Times slower"],
            rows,
            alignments=["l", "r", "r"],
            max_col_width={0: 40},
        )
    )
    return "\n".join(lines)


def format_comparisons(report: RunReport, precision: int | None = 3) -> str:
    """Format every ranking in *report*, separated by blank lines."""
    return "\n\n".join(format_ranking_table(r, precision) for r in report.comparisons)


def format_summary(report: RunReport) -> str:
    """One-line count of benchmarks run, plus any failed files."""
    lines = [f"Ran {report.total_benchmarks} benchmarks."]
    if report.failures:
        lines.append(f"{len(report.failures)} file(s) failed:")
        for failure in report.failures:
            lines.append(f"  {failure.file_name}: {failure.error}")
    return "\n".join(lines)


def format_results_json(report: RunReport) -> str:
    """Serialize the per-file results as a pretty-printed JSON array."""
    return json.dumps([r.to_dict() for r in report.files], indent=JSON_INDENT)
