"""SARIF 2.1.0 encoder for code-scanning dashboards."""
from __future__ import annotations

import posixpath
from typing import Any, Dict, List, Sequence, TextIO, Tuple
from urllib.parse import quote

from kafkaspectre.domain.models.audit import AuditResult
from kafkaspectre.domain.models.check import CheckResult, CheckStatus, Occurrence
from kafkaspectre.reporters.base import Reporter

SARIF_SCHEMA = "https://json.schemastore.org/sarif-2.1.0.json"
SARIF_VERSION = "2.1.0"
TOOL_NAME = "KafkaSpectre"
TOOL_INFORMATION_URI = "https://github.com/ppiankov/kafkaspectre"
SRCROOT = "%SRCROOT%"

RULE_UNUSED_TOPIC = "kafkaspectre/UNUSED_TOPIC"
RULE_HIGH_RISK = "kafkaspectre/HIGH_RISK_TOPIC"
RULE_MEDIUM_RISK = "kafkaspectre/MEDIUM_RISK_TOPIC"
RULE_LOW_RISK = "kafkaspectre/LOW_RISK_TOPIC"
RULE_MISSING = "kafkaspectre/MISSING_IN_CLUSTER"
RULE_UNREFERENCED = "kafkaspectre/UNREFERENCED_IN_REPO"

# rule id -> (name, short, full, default level, tags)
_RULES: Dict[str, Tuple[str, str, str, str, Sequence[str]]] = {
    RULE_MISSING: (
        "Missing topic in cluster",
        "Topic is referenced in repository but missing in Kafka cluster",
        "The repository references a topic that was not found in the target cluster metadata.",
        "error",
        ("kafka", "reliability", "configuration"),
    ),
    RULE_UNUSED_TOPIC: (
        "Unused Kafka topic",
        "Topic has no active consumer groups",
        "The topic exists in Kafka but no active consumer groups are currently attached.",
        "warning",
        ("kafka", "cleanup", "cost"),
    ),
    RULE_UNREFERENCED: (
        "Unreferenced topic in repository",
        "Topic exists in Kafka but was not found in repository scan",
        "The topic appears to be active in Kafka but has no references in scanned files.",
        "warning",
        ("kafka", "drift", "inventory"),
    ),
    RULE_HIGH_RISK: (
        "High-risk unused topic",
        "Unused topic classified as high risk",
        "Unused topic has high cleanup risk based on partition count or replication settings.",
        "error",
        ("kafka", "cleanup", "high-risk"),
    ),
    RULE_MEDIUM_RISK: (
        "Medium-risk unused topic",
        "Unused topic classified as medium risk",
        "Unused topic has medium cleanup risk and should be reviewed before deletion.",
        "warning",
        ("kafka", "cleanup", "medium-risk"),
    ),
    RULE_LOW_RISK: (
        "Low-risk unused topic",
        "Unused topic classified as low risk",
        "Unused topic has low cleanup risk and can usually be removed after confirmation.",
        "note",
        ("kafka", "cleanup", "low-risk"),
    ),
}

_CHECK_RULES = {
    CheckStatus.MISSING_IN_CLUSTER: (RULE_MISSING, "error"),
    CheckStatus.UNUSED: (RULE_UNUSED_TOPIC, "warning"),
    CheckStatus.UNREFERENCED_IN_REPO: (RULE_UNREFERENCED, "warning"),
}

_AUDIT_RULES = {
    "high": (RULE_HIGH_RISK, "error"),
    "medium": (RULE_MEDIUM_RISK, "warning"),
}


def _rule(rule_id: str) -> Dict[str, Any]:
    name, short, full, level, tags = _RULES[rule_id]
    return {
        "id": rule_id,
        "name": name,
        "shortDescription": {"text": short},
        "fullDescription": {"text": full},
        "defaultConfiguration": {"level": level},
        "properties": {"tags": list(tags)},
    }


def path_to_file_uri(path: str) -> str:
    """``/repo`` -> ``file:///repo/``; always ends with a slash."""
    cleaned = posixpath.normpath(path.replace("\\", "/"))
    if not cleaned.startswith("/"):
        cleaned = "/" + cleaned
    if not cleaned.endswith("/"):
        cleaned += "/"
    return "file://" + quote(cleaned)


def _locations(refs: Sequence[Occurrence]) -> List[Dict[str, Any]]:
    locations = []
    for ref in refs:
        uri = ref.file.strip()
        if not uri:
            continue
        physical: Dict[str, Any] = {
            "artifactLocation": {"uri": posixpath.normpath(uri.replace("\\", "/")), "uriBaseId": SRCROOT}
        }
        if ref.line > 0:
            physical["region"] = {"startLine": ref.line}
        locations.append({"physicalLocation": physical})
    return locations


def _sort_results(results: List[Dict[str, Any]]) -> None:
    results.sort(key=lambda r: (r["ruleId"], r["properties"]["topic"], r["message"]["text"]))


def _run(rules: List[Dict[str, Any]], results: List[Dict[str, Any]]) -> Dict[str, Any]:
    run: Dict[str, Any] = {
        "tool": {"driver": {"name": TOOL_NAME, "informationUri": TOOL_INFORMATION_URI, "rules": rules}}
    }
    if results:
        run["results"] = results
    return run


def build_check_run(result: CheckResult) -> Dict[str, Any]:
    rules = [_rule(RULE_MISSING), _rule(RULE_UNUSED_TOPIC), _rule(RULE_UNREFERENCED)]
    results: List[Dict[str, Any]] = []
    for finding in result.findings:
        mapping = _CHECK_RULES.get(finding.status)
        if mapping is None:
            continue
        rule_id, level = mapping
        message = finding.reason.strip() or f'topic "{finding.topic}" has status {finding.status.value}'
        entry: Dict[str, Any] = {
            "ruleId": rule_id,
            "level": level,
            "message": {"text": f"{finding.topic}: {message}"},
            "partialFingerprints": {"topicStatus": f"{finding.topic}|{finding.status.value}"},
            "properties": {
                "topic": finding.topic,
                "status": finding.status.value,
                "referenced_in_repo": finding.referenced_in_repo,
                "in_cluster": finding.in_cluster,
                "reference_count": len(finding.references),
            },
        }
        if finding.consumer_groups:
            entry["properties"]["consumer_groups"] = list(finding.consumer_groups)
        locations = _locations(finding.references)
        if locations:
            entry["locations"] = locations
        results.append(entry)
    _sort_results(results)

    run = _run(rules, results)
    if result.summary.repo_path.strip():
        run["originalUriBaseIds"] = {SRCROOT: {"uri": path_to_file_uri(result.summary.repo_path)}}
    return run


def build_audit_run(result: AuditResult) -> Dict[str, Any]:
    rules = [_rule(r) for r in sorted((RULE_HIGH_RISK, RULE_LOW_RISK, RULE_MEDIUM_RISK))]
    results: List[Dict[str, Any]] = []
    for topic in result.unused_topics:
        risk = topic.risk.strip().lower()
        rule_id, level = _AUDIT_RULES.get(risk, (RULE_LOW_RISK, "note"))
        message = topic.reason.strip() or "topic has no active consumer groups"
        results.append(
            {
                "ruleId": rule_id,
                "level": level,
                "message": {"text": f"{topic.name}: {message}"},
                "partialFingerprints": {"topicRisk": f"{topic.name}|{risk}"},
                "properties": {
                    "topic": topic.name,
                    "risk": risk,
                    "partitions": topic.partitions,
                    "replication_factor": topic.replication_factor,
                    "retention_ms": topic.retention_ms,
                    "cleanup_policy": topic.cleanup_policy,
                    "recommendation": topic.recommendation,
                    "cleanup_priority": topic.cleanup_priority,
                },
            }
        )
    _sort_results(results)
    return _run(rules, results)


class SARIFReporter(Reporter):
    def __init__(self, stream: TextIO, pretty: bool = False) -> None:
        super().__init__(stream)
        self.pretty = pretty

    def _report(self, run: Dict[str, Any]) -> None:
        report = {"$schema": SARIF_SCHEMA, "version": SARIF_VERSION, "runs": [run]}
        self._write_json(report, indent=2 if self.pretty else None)

    def generate_audit(self, result: AuditResult) -> None:
        self._report(build_audit_run(result))

    def generate_check(self, result: CheckResult) -> None:
        self._report(build_check_run(result))
