"""``spectre/v1`` envelope for cross-tool ingestion."""
from __future__ import annotations

import hashlib
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, TextIO

from kafkaspectre import __version__
from kafkaspectre.domain.models.audit import AuditResult
from kafkaspectre.domain.models.check import CheckResult, CheckStatus
from kafkaspectre.reporters.base import Reporter

SCHEMA = "spectre/v1"
TOOL = "kafkaspectre"

_SEVERITIES = ("high", "medium", "low", "info")

_CHECK_MAPPING = {
    CheckStatus.MISSING_IN_CLUSTER: ("MISSING_IN_CLUSTER", "high"),
    CheckStatus.UNUSED: ("UNUSED", "medium"),
    CheckStatus.UNREFERENCED_IN_REPO: ("UNREFERENCED_IN_REPO", "low"),
}


def hash_bootstrap(bootstrap: str) -> str:
    """Stable identifier for a cluster that does not leak its address."""
    digest = hashlib.sha256(bootstrap.strip().encode("utf-8")).hexdigest()
    return f"sha256:{digest}"


def normalize_severity(risk: str) -> str:
    risk = risk.strip().lower()
    return risk if risk in ("high", "medium", "low") else "info"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SpectreHubReporter(Reporter):
    def __init__(
        self,
        stream: TextIO,
        bootstrap_server: str = "",
        version: str = __version__,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        super().__init__(stream)
        self.bootstrap_server = bootstrap_server
        self.version = version
        self._clock = clock

    def _envelope(self, findings: List[Dict[str, Any]], cluster: str = "") -> Dict[str, Any]:
        target: Dict[str, Any] = {"type": "kafka", "uri_hash": hash_bootstrap(self.bootstrap_server)}
        if cluster:
            target["cluster"] = cluster
        summary = {"total": len(findings), **dict.fromkeys(_SEVERITIES, 0)}
        for finding in findings:
            summary[finding["severity"]] += 1
        return {
            "schema": SCHEMA,
            "tool": TOOL,
            "version": self.version,
            "timestamp": self._clock().strftime("%Y-%m-%dT%H:%M:%SZ"),
            "target": target,
            "findings": findings,
            "summary": summary,
        }

    def generate_audit(self, result: AuditResult) -> None:
        findings = [
            {
                "id": "UNUSED_TOPIC",
                "severity": normalize_severity(t.risk),
                "location": t.name,
                "message": t.reason,
                "metadata": {
                    "partitions": t.partitions,
                    "replication_factor": t.replication_factor,
                    "retention": t.retention_human,
                    "recommendation": t.recommendation,
                },
            }
            for t in result.unused_topics
        ]
        self._write_json(self._envelope(findings, result.summary.cluster_name), indent=2)

    def generate_check(self, result: CheckResult) -> None:
        findings = []
        for f in result.findings:
            mapping = _CHECK_MAPPING.get(f.status)
            if mapping is None:
                continue
            finding_id, severity = mapping
            findings.append({"id": finding_id, "severity": severity, "location": f.topic, "message": f.reason})
        self._write_json(self._envelope(findings), indent=2)
