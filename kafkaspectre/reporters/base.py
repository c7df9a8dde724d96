"""Reporter interface and the payload builders shared by the JSON encoders."""
from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Any, Dict, List, TextIO

from kafkaspectre.domain.models.audit import AuditResult
from kafkaspectre.domain.models.check import CheckFinding, CheckResult, Occurrence

# Go-style reference layout, e.g. "2024-05-01 12:00:00 UTC"
FETCHED_AT_FORMAT = "%Y-%m-%d %H:%M:%S %Z"
ACTIVE_TOPICS_JSON_LIMIT = 50


class Reporter(ABC):
    """Writes an already-computed result to a text stream."""

    def __init__(self, stream: TextIO) -> None:
        self.stream = stream

    @abstractmethod
    def generate_audit(self, result: AuditResult) -> None: ...

    @abstractmethod
    def generate_check(self, result: CheckResult) -> None: ...

    def _write_json(self, payload: Any, indent: int | None = None) -> None:
        self.stream.write(json.dumps(payload, indent=indent, ensure_ascii=False))
        self.stream.write("\n")


def occurrence_dict(occ: Occurrence) -> Dict[str, Any]:
    out: Dict[str, Any] = {"file": occ.file}
    if occ.line:
        out["line"] = occ.line
    out["source"] = occ.source.value
    return out


def finding_dict(finding: CheckFinding) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "topic": finding.topic,
        "status": finding.status.value,
        "referenced_in_repo": finding.referenced_in_repo,
        "in_cluster": finding.in_cluster,
    }
    if finding.consumer_groups:
        out["consumer_groups"] = list(finding.consumer_groups)
    if finding.references:
        out["references"] = [occurrence_dict(o) for o in finding.references]
    out["reason"] = finding.reason
    return out


def check_payload(result: CheckResult) -> Dict[str, Any]:
    return {
        "summary": result.summary.model_dump(mode="json"),
        "findings": [finding_dict(f) for f in result.findings],
    }


def audit_payload(result: AuditResult) -> Dict[str, Any]:
    """Audit JSON document; active topics only appear for small clusters."""
    meta = result.metadata
    payload: Dict[str, Any] = {
        "summary": result.summary.model_dump(mode="json"),
        "unused_topics": [t.model_dump(mode="json") for t in result.unused_topics],
    }
    if result.active_count <= ACTIVE_TOPICS_JSON_LIMIT and result.active_topics:
        payload["active_topics"] = [t.model_dump(mode="json") for t in result.active_topics]
    brokers: List[Dict[str, Any]] = [
        {"id": b.broker_id, "host": b.host, "port": b.port} for b in meta.brokers
    ]
    payload["cluster_metadata"] = {
        "brokers": brokers,
        "consumer_groups_count": len(meta.consumer_groups),
        "fetched_at": meta.fetched_at.strftime(FETCHED_AT_FORMAT),
    }
    return payload
