from kafkaspectre.domain.services.audit_service import AuditReconciler, consumers_by_topic
from kafkaspectre.domain.services.check_service import CheckReconciler, classify_check_status
from kafkaspectre.domain.services.exclude import matches, normalize_patterns

__all__ = [
    "AuditReconciler",
    "CheckReconciler",
    "classify_check_status",
    "consumers_by_topic",
    "matches",
    "normalize_patterns",
]
