"""Ranking of competing implementations inside a comparison group."""

from __future__ import annotations

import math
from collections.abc import Mapping

from minibench.bench.results import ComparisonRanking, RankingEntry


def relative_slowdown(average_ms: float, fastest_ms: float) -> float:
    """Ratio of *average_ms* to the fastest candidate's average.

    A zero-latency fastest candidate makes every other zero-latency
    candidate a tie (1.0) and anything slower infinitely slower.
    """
    if fastest_ms == 0:
        return 1.0 if average_ms == 0 else math.inf
    return average_ms / fastest_ms


def rank_comparison(
    name: str,
    scores: Mapping[str, float],
    *,
    file_name: str = "",
) -> ComparisonRanking:
    """Rank candidates fastest first.

    Ties keep the order in which the candidates were measured.  The
    fastest entry anchors the slowdown of every entry, itself included,
    so its own slowdown is exactly 1.0.

    Args:
        name: Display name of the comparison (the ``compare*`` export).
        scores: Candidate name → average latency in milliseconds, in
            measurement order.
        file_name: File the comparison came from.
    """
    ranked = sorted(scores.items(), key=lambda item: item[1])
    ranking = ComparisonRanking(name=name, file_name=file_name)
    if not ranked:
        return ranking

    fastest_ms = ranked[0][1]
    for candidate, average_ms in ranked:
        ranking.entries.append(
            RankingEntry(
                name=candidate,
                average_latency_ms=average_ms,
                relative_slowdown=relative_slowdown(average_ms, fastest_ms),
            )
        )
    return ranking
