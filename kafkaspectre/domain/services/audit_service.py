"""Turn a cluster snapshot into the unused/active audit result."""
from __future__ import annotations

import logging
from typing import Dict, List, Sequence

from kafkaspectre.domain.models.audit import (
    ActiveTopicFinding,
    AuditResult,
    AuditSummary,
    UnusedTopicFinding,
)
from kafkaspectre.domain.models.cluster import ClusterMetadata
from kafkaspectre.domain.services.aggregate import (
    cluster_health_score,
    percent,
    potential_savings,
    recommended_cleanup,
)
from kafkaspectre.domain.services.exclude import matches
from kafkaspectre.domain.services.risk import (
    RISK_HIGH,
    RISK_LOW,
    RISK_MEDIUM,
    build_active_topic,
    build_unused_topic,
)

logger = logging.getLogger(__name__)


def consumers_by_topic(metadata: ClusterMetadata) -> Dict[str, List[str]]:
    """Map each consumed topic to the sorted, distinct ids of its groups."""
    groups_by_topic: Dict[str, set] = {}
    for group in metadata.consumer_groups.values():
        for topic in group.topics:
            groups_by_topic.setdefault(topic, set()).add(group.group_id)
    return {topic: sorted(ids) for topic, ids in groups_by_topic.items()}


class AuditReconciler:
    """Stateless: every call works on its own snapshot."""

    def reconcile(
        self,
        metadata: ClusterMetadata,
        exclude_internal: bool,
        exclude_patterns: Sequence[str] = (),
    ) -> AuditResult:
        consumers = consumers_by_topic(metadata)

        unused: List[UnusedTopicFinding] = []
        active: List[ActiveTopicFinding] = []
        risk_counts = {RISK_HIGH: 0, RISK_MEDIUM: 0, RISK_LOW: 0}
        internal_seen = 0
        analyzed = 0
        total_partitions = unused_partitions = active_partitions = 0

        for topic in metadata.topics.values():
            if topic.internal:
                internal_seen += 1
                if exclude_internal:
                    continue
            if matches(topic.name, exclude_patterns):
                continue

            analyzed += 1
            total_partitions += topic.partitions
            groups = consumers.get(topic.name, [])
            if groups:
                active.append(build_active_topic(topic, groups))
                active_partitions += topic.partitions
            else:
                finding = build_unused_topic(topic)
                unused.append(finding)
                unused_partitions += topic.partitions
                risk_counts[finding.risk] += 1

        unused.sort(key=lambda t: t.name)
        active.sort(key=lambda t: t.name)

        unused_pct = percent(len(unused), analyzed)
        unused_partitions_pct = percent(unused_partitions, total_partitions)
        cluster_name = metadata.brokers[0].host if metadata.brokers else "unknown"

        summary = AuditSummary(
            cluster_name=cluster_name,
            total_brokers=len(metadata.brokers),
            total_topics_including_internal=len(metadata.topics),
            total_topics_analyzed=analyzed,
            unused_topics=len(unused),
            active_topics=len(active),
            internal_topics_excluded=internal_seen if exclude_internal else 0,
            unused_percentage=unused_pct,
            total_partitions=total_partitions,
            unused_partitions=unused_partitions,
            active_partitions=active_partitions,
            unused_partitions_percentage=unused_partitions_pct,
            total_consumer_groups=len(metadata.consumer_groups),
            high_risk_count=risk_counts[RISK_HIGH],
            medium_risk_count=risk_counts[RISK_MEDIUM],
            low_risk_count=risk_counts[RISK_LOW],
            recommended_cleanup_topics=recommended_cleanup(unused),
            cluster_health_score=cluster_health_score(unused_pct),
            potential_savings_info=potential_savings(len(unused), unused_partitions, unused_partitions_pct),
        )
        logger.debug(
            "audit reconciled analyzed=%d unused=%d active=%d internal=%d",
            analyzed, len(unused), len(active), internal_seen,
        )
        return AuditResult(
            unused_topics=unused,
            active_topics=active,
            summary=summary,
            metadata=metadata,
            total_topics=analyzed,
            unused_count=len(unused),
            active_count=len(active),
            internal_count=internal_seen,
        )
