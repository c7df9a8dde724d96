"""Audit result DTOs: unused/active topic findings plus the summary block."""
from __future__ import annotations

from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field

from kafkaspectre.domain.models.cluster import ClusterMetadata


class UnusedTopicFinding(BaseModel):
    """A topic no consumer group has committed offsets for."""

    model_config = ConfigDict(frozen=True)

    name: str
    partitions: int = Field(..., ge=0)
    replication_factor: int = Field(..., ge=0)
    retention_ms: str = ""
    retention_human: str = ""
    cleanup_policy: str = ""
    min_insync_replicas: str = ""
    interesting_config: Dict[str, str] = Field(default_factory=dict)
    reason: str
    recommendation: str
    risk: str = Field(..., pattern=r"^(low|medium|high)$")
    cleanup_priority: int = Field(..., ge=1, le=3, description="1 = clean first")


class ActiveTopicFinding(BaseModel):
    """A topic with at least one consuming group."""

    model_config = ConfigDict(frozen=True)

    name: str
    partitions: int = Field(..., ge=0)
    replication_factor: int = Field(..., ge=0)
    consumer_groups: List[str]
    consumer_count: int = Field(..., ge=1)


class AuditSummary(BaseModel):
    """Aggregate counters for one audit run; field names are the JSON keys."""

    cluster_name: str
    total_brokers: int = 0
    total_topics_including_internal: int = 0
    total_topics_analyzed: int = 0
    unused_topics: int = 0
    active_topics: int = 0
    internal_topics_excluded: int = 0
    unused_percentage: float = 0.0
    total_partitions: int = 0
    unused_partitions: int = 0
    active_partitions: int = 0
    unused_partitions_percentage: float = 0.0
    total_consumer_groups: int = 0
    high_risk_count: int = 0
    medium_risk_count: int = 0
    low_risk_count: int = 0
    recommended_cleanup_topics: List[str] = Field(default_factory=list)
    cluster_health_score: str = "excellent"
    potential_savings_info: str = ""


class AuditResult(BaseModel):
    """Everything an audit encoder needs.

    ``internal_count`` tallies every internal topic seen, whether or not
    internal topics were excluded from the analysis.
    """

    unused_topics: List[UnusedTopicFinding] = Field(default_factory=list)
    active_topics: List[ActiveTopicFinding] = Field(default_factory=list)
    summary: AuditSummary
    metadata: ClusterMetadata
    total_topics: int = 0
    unused_count: int = 0
    active_count: int = 0
    internal_count: int = 0
