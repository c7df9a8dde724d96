"""Human-readable report."""
from __future__ import annotations

from typing import TextIO

from kafkaspectre.domain.models.audit import AuditResult
from kafkaspectre.domain.models.check import CheckFinding, CheckResult, CheckStatus
from kafkaspectre.reporters.base import Reporter

_RISK_LEVEL = {"high": 3, "medium": 2, "low": 1}
_STATUS_ORDER = sorted(CheckStatus, key=lambda s: s.rank)
_MAX_GROUPS_SHOWN = 3
_MAX_REFERENCES_SHOWN = 5
_RULE = "-" * 50


class TextReporter(Reporter):
    """Plain-text report for terminals.

    ``bootstrap_server`` and ``repo`` only feed the banner printed above
    the report body.
    """

    def __init__(self, stream: TextIO, bootstrap_server: str = "", repo: str = "") -> None:
        super().__init__(stream)
        self.bootstrap_server = bootstrap_server
        self.repo = repo

    def _line(self, text: str = "") -> None:
        self.stream.write(text + "\n")

    # ------------------------------------------------------------------ #
    # Audit                                                               #
    # ------------------------------------------------------------------ #
    def generate_audit(self, result: AuditResult) -> None:
        s = result.summary
        w = self._line

        w("KafkaSpectre Audit")
        w(f"Broker: {self.bootstrap_server}")
        w(f"Topics: {s.total_topics_analyzed} (internal excluded: {s.internal_topics_excluded})")
        w(f"Consumer Groups: {s.total_consumer_groups}")
        w(_RULE)

        w("Kafka Cluster Audit Report")
        w("===========================")
        w()
        w("Summary:")
        w("========")
        w()
        w(f"Cluster: {s.cluster_name} ({s.total_brokers} brokers, {s.total_consumer_groups} consumer groups)")
        w()
        w("Topics:")
        w(f"  Total (including internal): {s.total_topics_including_internal}")
        w(f"  Analyzed:                   {s.total_topics_analyzed}")
        w(f"  Active (with consumers):    {s.active_topics}")
        w(f"  Unused (no consumers):      {s.unused_topics} ({s.unused_percentage:.1f}%)")
        w(f"  Internal (excluded):        {s.internal_topics_excluded}")
        w()
        w("Partitions:")
        w(f"  Total:    {s.total_partitions}")
        w(f"  Active:   {s.active_partitions}")
        w(f"  Unused:   {s.unused_partitions} ({s.unused_partitions_percentage:.1f}%)")
        w()
        if s.unused_topics > 0:
            w("Risk Breakdown:")
            w(f"  High Risk:   {s.high_risk_count} topics")
            w(f"  Medium Risk: {s.medium_risk_count} topics")
            w(f"  Low Risk:    {s.low_risk_count} topics")
            w()
        w(f"Cluster Health: {s.cluster_health_score}")
        w()
        w(f"Potential Savings: {s.potential_savings_info}")
        w()

        if result.unused_topics:
            w("Unused Topics (No Consumer Groups)")
            w("===================================")
            w()
            ordered = sorted(result.unused_topics, key=lambda t: (-_RISK_LEVEL.get(t.risk, 0), t.name))
            for t in ordered:
                w(f"[UNUSED] {t.name}")
                w(f"  Partitions: {t.partitions}, Replication: {t.replication_factor}")
                if t.retention_human:
                    w(f"  Retention: {t.retention_human}")
                if t.cleanup_policy:
                    w(f"  Cleanup Policy: {t.cleanup_policy}")
                w(f"  Reason: {t.reason}")
                w(f"  Risk: {t.risk}")
                w(f"  Recommendation: {t.recommendation}")
                w()

        if result.active_topics:
            w("Active Topics (With Consumer Groups)")
            w("=====================================")
            w()
            for t in sorted(result.active_topics, key=lambda t: t.name):
                groups = ", ".join(t.consumer_groups[:_MAX_GROUPS_SHOWN])
                hidden = len(t.consumer_groups) - _MAX_GROUPS_SHOWN
                if hidden > 0:
                    groups += f", ... and {hidden} more"
                w(f"[ACTIVE] {t.name}")
                w(f"  Partitions: {t.partitions}, Replication: {t.replication_factor}")
                w(f"  Consumer Groups ({len(t.consumer_groups)}): {groups}")
                w()

        if result.unused_count > 0:
            w("Cleanup Recommendations")
            w("=======================")
            w()
            w(f"Found {result.unused_count} unused topics that may be candidates for deletion.")
            w()
            w("Before deleting any topics:")
            w("  1. Verify with application owners that topics are truly unused")
            w("  2. Check if topics are consumed by external systems not visible here")
            w("  3. Consider archiving topic data before deletion")
            w("  4. Test in a non-production environment first")
            w()
            w("Risk Levels:")
            w("  - low:    Safe to delete (small topic, no consumers)")
            w("  - medium: Review carefully (larger topic, no consumers)")
            w("  - high:   Do not delete without confirmation")
        else:
            w("No unused topics detected. All topics have active consumer groups.")
            w()
            w(f"No issues detected. {s.total_topics_analyzed} topics scanned.")

    # ------------------------------------------------------------------ #
    # Check                                                               #
    # ------------------------------------------------------------------ #
    def generate_check(self, result: CheckResult) -> None:
        s = result.summary
        w = self._line

        w("KafkaSpectre Check")
        w(f"Broker: {self.bootstrap_server}")
        w(f"Repository: {self.repo or s.repo_path}")
        w(f"Cluster Topics: {s.cluster_topics}")
        w(f"Repository Topics: {s.repo_topics}")
        w(_RULE)

        w("Kafka Topic Check Report")
        w("========================")
        w()
        w("Summary:")
        w(f"  Repo Path:              {s.repo_path}")
        w(f"  Files Scanned:          {s.files_scanned}")
        w(f"  Topics In Repo:         {s.repo_topics}")
        w(f"  Topics In Cluster:      {s.cluster_topics}")
        w(f"  OK:                     {s.ok_count}")
        w(f"  MISSING_IN_CLUSTER:     {s.missing_in_cluster_count}")
        w(f"  UNREFERENCED_IN_REPO:   {s.unreferenced_in_repo_count}")
        w(f"  UNUSED:                 {s.unused_count}")
        w(f"  Total Findings:         {s.total_findings}")
        w()

        if not result.findings:
            w("No topic findings detected.")
            w()
            w(f"No issues detected. {s.repo_topics + s.cluster_topics} topics scanned in repository and cluster.")
            return

        for status in _STATUS_ORDER:
            group = sorted((f for f in result.findings if f.status is status), key=lambda f: f.topic)
            if not group:
                continue
            w(f"{status.value} ({len(group)})")
            w("-" * (len(status.value) + 5))
            w()
            for finding in group:
                self._write_finding(finding)

    def _write_finding(self, finding: CheckFinding) -> None:
        w = self._line
        w(f"[{finding.status.value}] {finding.topic}")
        if finding.reason:
            w(f"  Reason: {finding.reason}")
        if finding.consumer_groups:
            w(f"  Consumer Groups: {', '.join(finding.consumer_groups)}")
        if finding.references:
            w("  References:")
            for ref in finding.references[:_MAX_REFERENCES_SHOWN]:
                where = f"{ref.file}:{ref.line}" if ref.line > 0 else ref.file
                w(f"    - {where} ({ref.source.value})")
            hidden = len(finding.references) - _MAX_REFERENCES_SHOWN
            if hidden > 0:
                w(f"    - ... and {hidden} more")
        w()
