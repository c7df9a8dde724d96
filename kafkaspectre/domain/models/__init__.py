from kafkaspectre.domain.models.audit import (
    ActiveTopicFinding,
    AuditResult,
    AuditSummary,
    UnusedTopicFinding,
)
from kafkaspectre.domain.models.check import (
    CheckFinding,
    CheckResult,
    CheckStatus,
    CheckSummary,
    Occurrence,
    OccurrenceSource,
    ScanResult,
    TopicReference,
)
from kafkaspectre.domain.models.cluster import BrokerRecord, ClusterMetadata
from kafkaspectre.domain.models.consumer_group import ConsumerGroupRecord
from kafkaspectre.domain.models.topic import TopicRecord, is_internal_topic

__all__ = [
    "ActiveTopicFinding",
    "AuditResult",
    "AuditSummary",
    "BrokerRecord",
    "CheckFinding",
    "CheckResult",
    "CheckStatus",
    "CheckSummary",
    "ClusterMetadata",
    "ConsumerGroupRecord",
    "Occurrence",
    "OccurrenceSource",
    "ScanResult",
    "TopicRecord",
    "TopicReference",
    "UnusedTopicFinding",
    "is_internal_topic",
]
