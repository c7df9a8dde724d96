"""Repository-versus-cluster drift classification."""
from __future__ import annotations

import logging
from typing import Dict, List, Sequence, Tuple

from kafkaspectre.domain.models.check import (
    CheckFinding,
    CheckResult,
    CheckStatus,
    CheckSummary,
    ScanResult,
    TopicReference,
)
from kafkaspectre.domain.models.cluster import ClusterMetadata
from kafkaspectre.domain.models.topic import TopicRecord, is_internal_topic
from kafkaspectre.domain.services.audit_service import consumers_by_topic
from kafkaspectre.domain.services.exclude import matches

logger = logging.getLogger(__name__)

REASON_MISSING = "topic is referenced in code but does not exist in cluster"
REASON_UNUSED_REFERENCED = (
    "topic is referenced in code and exists in cluster but has no active consumer groups"
)
REASON_UNUSED = "topic exists in cluster but has no active consumer groups"
REASON_UNREFERENCED = "topic exists in cluster with consumers but was not found in repository"
REASON_OK = "topic exists in cluster and has active consumers"

_COUNTER_FIELD = {
    CheckStatus.OK: "ok_count",
    CheckStatus.MISSING_IN_CLUSTER: "missing_in_cluster_count",
    CheckStatus.UNREFERENCED_IN_REPO: "unreferenced_in_repo_count",
    CheckStatus.UNUSED: "unused_count",
}


def classify_check_status(
    referenced_in_repo: bool, in_cluster: bool, has_consumers: bool
) -> Tuple[CheckStatus, str]:
    """Four-way classification; rules are evaluated in order."""
    if referenced_in_repo and not in_cluster:
        return CheckStatus.MISSING_IN_CLUSTER, REASON_MISSING
    if in_cluster and not has_consumers:
        if referenced_in_repo:
            return CheckStatus.UNUSED, REASON_UNUSED_REFERENCED
        return CheckStatus.UNUSED, REASON_UNUSED
    if not referenced_in_repo and in_cluster:
        return CheckStatus.UNREFERENCED_IN_REPO, REASON_UNREFERENCED
    return CheckStatus.OK, REASON_OK


def _excluded(name: str, exclude_internal: bool, patterns: Sequence[str]) -> bool:
    if exclude_internal and is_internal_topic(name):
        return True
    return matches(name, patterns)


class CheckReconciler:
    """Classify every topic name seen in the repository or the cluster."""

    def reconcile(
        self,
        scan: ScanResult,
        metadata: ClusterMetadata,
        exclude_internal: bool,
        exclude_patterns: Sequence[str] = (),
    ) -> CheckResult:
        consumers = consumers_by_topic(metadata)

        cluster_topics: Dict[str, TopicRecord] = {
            name: topic
            for name, topic in metadata.topics.items()
            if not (exclude_internal and topic.internal)
            and not matches(name, exclude_patterns)
        }
        repo_topics: Dict[str, TopicReference] = {
            name: ref
            for name, ref in scan.topics.items()
            if not _excluded(name, exclude_internal, exclude_patterns)
        }

        names = sorted(set(cluster_topics) | set(repo_topics))
        counters = dict.fromkeys(_COUNTER_FIELD.values(), 0)
        findings: List[CheckFinding] = []

        for name in names:
            ref = repo_topics.get(name)
            in_cluster = name in cluster_topics
            groups = list(consumers.get(name, []))
            status, reason = classify_check_status(
                ref is not None, in_cluster, in_cluster and bool(groups)
            )
            references = sorted(ref.occurrences, key=lambda o: o.sort_key()) if ref else []
            findings.append(
                CheckFinding(
                    topic=name,
                    status=status,
                    referenced_in_repo=ref is not None,
                    in_cluster=in_cluster,
                    consumer_groups=groups,
                    references=references,
                    reason=reason,
                )
            )
            counters[_COUNTER_FIELD[status]] += 1

        findings.sort(key=lambda f: (f.status.rank, f.topic))

        summary = CheckSummary(
            repo_path=scan.repo_path,
            files_scanned=scan.files_scanned,
            repo_topics=len(repo_topics),
            cluster_topics=len(cluster_topics),
            total_findings=len(names),
            **counters,
        )
        logger.debug("check reconciled findings=%d %s", len(findings), counters)
        return CheckResult(findings=findings, summary=summary)
