"""Risk scoring and presentation helpers for unused topics."""
from __future__ import annotations

import re
from typing import Dict, Mapping, Tuple

from kafkaspectre.domain.models.audit import ActiveTopicFinding, UnusedTopicFinding
from kafkaspectre.domain.models.topic import TopicRecord

RISK_HIGH = "high"
RISK_MEDIUM = "medium"
RISK_LOW = "low"

UNUSED_REASON = "No consumer groups found"

INTERESTING_CONFIG_KEYS = frozenset(
    {
        "retention.ms",
        "retention.bytes",
        "cleanup.policy",
        "min.insync.replicas",
        "compression.type",
        "max.message.bytes",
        "segment.ms",
        "segment.bytes",
        "delete.retention.ms",
    }
)

_RECOMMENDATIONS = {
    RISK_LOW: "Safe to delete after confirmation",
    RISK_MEDIUM: "Review before deletion",
    RISK_HIGH: "Investigate before deletion",
}

_INTEGER = re.compile(r"[+-]?\d+")
_MS_PER_MINUTE = 60_000
_MS_PER_HOUR = 60 * _MS_PER_MINUTE
_MS_PER_DAY = 24 * _MS_PER_HOUR


def classify_risk(partitions: int, replication_factor: int) -> Tuple[str, int]:
    """Return ``(risk, cleanup_priority)``; the first matching rule wins.

    >>> classify_risk(1, 3)
    ('high', 3)
    """
    if partitions >= 10 or replication_factor >= 3:
        return RISK_HIGH, 3
    if partitions >= 2 or replication_factor == 2:
        return RISK_MEDIUM, 2
    return RISK_LOW, 1


def recommendation_for_risk(risk: str) -> str:
    return _RECOMMENDATIONS.get(risk, "Review before deletion")


def format_retention(retention_ms: str) -> str:
    """Humanise a ``retention.ms`` value.

    ``""`` and ``"-1"`` mean infinite retention; text that is not an
    integer is returned unchanged.
    """
    if retention_ms in ("", "-1"):
        return "infinite"
    if not _INTEGER.fullmatch(retention_ms):
        return retention_ms

    ms = int(retention_ms)
    if ms <= 0:
        return f"{ms} ms"

    days, rest = divmod(ms, _MS_PER_DAY)
    hours = rest // _MS_PER_HOUR
    if days > 0:
        if hours > 0:
            return f"{days} days {hours} hours"
        return f"{days} days"
    if hours > 0:
        return f"{hours} hours"
    minutes = ms // _MS_PER_MINUTE
    if minutes > 0:
        return f"{minutes} minutes"
    return f"{ms} ms"


def interesting_config(config: Mapping[str, str]) -> Dict[str, str]:
    """Subset of *config* worth showing next to an unused topic."""
    return {k: v for k, v in config.items() if k in INTERESTING_CONFIG_KEYS}


def build_unused_topic(topic: TopicRecord) -> UnusedTopicFinding:
    risk, priority = classify_risk(topic.partitions, topic.replication_factor)
    retention_ms = topic.config.get("retention.ms", "")
    return UnusedTopicFinding(
        name=topic.name,
        partitions=topic.partitions,
        replication_factor=topic.replication_factor,
        retention_ms=retention_ms,
        retention_human=format_retention(retention_ms),
        cleanup_policy=topic.config.get("cleanup.policy", ""),
        min_insync_replicas=topic.config.get("min.insync.replicas", ""),
        interesting_config=interesting_config(topic.config),
        reason=UNUSED_REASON,
        recommendation=recommendation_for_risk(risk),
        risk=risk,
        cleanup_priority=priority,
    )


def build_active_topic(topic: TopicRecord, consumer_groups: list[str]) -> ActiveTopicFinding:
    return ActiveTopicFinding(
        name=topic.name,
        partitions=topic.partitions,
        replication_factor=topic.replication_factor,
        consumer_groups=list(consumer_groups),
        consumer_count=len(consumer_groups),
    )
