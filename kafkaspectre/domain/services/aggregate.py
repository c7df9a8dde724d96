"""Summary-level aggregates shared by the audit pipeline."""
from __future__ import annotations

from typing import List, Sequence

from kafkaspectre.domain.models.audit import UnusedTopicFinding

DEFAULT_CLEANUP_LIMIT = 10

# (upper bound inclusive, label)
_HEALTH_BANDS = (
    (10.0, "excellent"),
    (25.0, "good"),
    (50.0, "fair"),
    (75.0, "poor"),
)


def percent(numerator: int, denominator: int) -> float:
    if denominator == 0:
        return 0.0
    return numerator / denominator * 100


def cluster_health_score(unused_percentage: float) -> str:
    for bound, label in _HEALTH_BANDS:
        if unused_percentage <= bound:
            return label
    return "critical"


def recommended_cleanup(
    unused: Sequence[UnusedTopicFinding], limit: int = DEFAULT_CLEANUP_LIMIT
) -> List[str]:
    """Names of the topics to clean up first, safest first."""
    if not unused or limit <= 0:
        return []
    ordered = sorted(unused, key=lambda t: (t.cleanup_priority, t.risk, t.name))
    return [t.name for t in ordered[:limit]]


def potential_savings(unused_count: int, unused_partitions: int, unused_partitions_pct: float) -> str:
    return (
        f"{unused_count} unused topics representing {unused_partitions} partitions "
        f"({unused_partitions_pct:.1f}% of total partitions)"
    )
