import pytest

from kafkaspectre.domain.models import CheckStatus, OccurrenceSource
from kafkaspectre.domain.services import (
    AuditReconciler,
    CheckReconciler,
    classify_check_status,
    consumers_by_topic,
)
from kafkaspectre.domain.services.check_service import (
    REASON_MISSING,
    REASON_OK,
    REASON_UNREFERENCED,
    REASON_UNUSED,
    REASON_UNUSED_REFERENCED,
)

from conftest import make_metadata, make_scan

# =========================================================================
# consumers_by_topic
# =========================================================================


class TestConsumersByTopic:
    def test_groups_sorted_and_distinct(self):
        metadata = make_metadata(
            [("topic-a", 1, 1), ("topic-b", 1, 1), ("topic-c", 1, 1)],
            groups={
                "cg-z": ["topic-a", "topic-b"],
                "cg-a": ["topic-a"],
                "cg-m": ["topic-c", "topic-c"],
            },
        )
        assert consumers_by_topic(metadata) == {
            "topic-a": ["cg-a", "cg-z"],
            "topic-b": ["cg-z"],
            "topic-c": ["cg-m"],
        }


# =========================================================================
# Audit
# =========================================================================


class TestAuditReconciler:
    def test_exclude_internal(self, audit_metadata):
        result = AuditReconciler().reconcile(audit_metadata, exclude_internal=True)
        s = result.summary

        assert result.total_topics == 4
        assert result.internal_count == 1
        assert result.active_count == 1
        assert result.unused_count == 3
        assert s.internal_topics_excluded == 1
        assert s.cluster_name == "broker-1"
        assert s.total_topics_including_internal == 5
        assert (s.total_partitions, s.unused_partitions, s.active_partitions) == (7, 4, 3)
        assert (s.high_risk_count, s.medium_risk_count, s.low_risk_count) == (1, 1, 1)
        assert s.unused_percentage == pytest.approx(75.0)
        assert s.unused_partitions_percentage == pytest.approx(57.14285714285714)
        assert s.cluster_health_score == "poor"
        assert s.potential_savings_info == (
            "3 unused topics representing 4 partitions (57.1% of total partitions)"
        )
        assert s.recommended_cleanup_topics == ["low-topic", "medium-topic", "high-topic"]
        assert [t.name for t in result.unused_topics] == ["high-topic", "low-topic", "medium-topic"]
        assert len(result.active_topics) == 1
        assert result.active_topics[0].consumer_count == 2

    def test_include_internal(self, audit_metadata):
        result = AuditReconciler().reconcile(audit_metadata, exclude_internal=False)
        s = result.summary

        assert result.total_topics == 5
        assert result.internal_count == 1
        assert result.unused_count == 4
        assert s.internal_topics_excluded == 0
        assert (s.total_partitions, s.unused_partitions) == (12, 9)
        assert s.unused_percentage == pytest.approx(80.0)
        assert s.cluster_health_score == "critical"
        assert s.recommended_cleanup_topics == [
            "low-topic",
            "__internal",
            "medium-topic",
            "high-topic",
        ]

    def test_exclude_patterns(self):
        metadata = make_metadata(
            [
                ("keep-active", 2, 1),
                ("keep-unused", 1, 1),
                ("skip-unused", 3, 1),
                ("__internal", 1, 1),
            ],
            groups={"cg": ["keep-active"]},
        )
        result = AuditReconciler().reconcile(metadata, False, ["skip-*", "__*"])

        assert result.total_topics == 2
        assert result.active_count == 1
        assert [t.name for t in result.unused_topics] == ["keep-unused"]

    def test_empty_cluster(self):
        metadata = make_metadata([], brokers=[])
        result = AuditReconciler().reconcile(metadata, exclude_internal=True)

        assert result.summary.cluster_name == "unknown"
        assert result.summary.unused_percentage == 0.0
        assert result.summary.cluster_health_score == "excellent"
        assert result.summary.recommended_cleanup_topics == []

    def test_group_on_unknown_topic_is_ignored(self):
        metadata = make_metadata([("orders", 1, 1)], groups={"cg": ["ghost"]})
        result = AuditReconciler().reconcile(metadata, exclude_internal=True)

        assert result.unused_count == 1
        assert result.summary.total_consumer_groups == 1


# =========================================================================
# Check
# =========================================================================


class TestClassifyCheckStatus:
    @pytest.mark.parametrize(
        "referenced,in_cluster,has_consumers,expected",
        [
            (True, False, False, (CheckStatus.MISSING_IN_CLUSTER, REASON_MISSING)),
            (True, True, False, (CheckStatus.UNUSED, REASON_UNUSED_REFERENCED)),
            (False, True, False, (CheckStatus.UNUSED, REASON_UNUSED)),
            (False, True, True, (CheckStatus.UNREFERENCED_IN_REPO, REASON_UNREFERENCED)),
            (True, True, True, (CheckStatus.OK, REASON_OK)),
        ],
    )
    def test_rules(self, referenced, in_cluster, has_consumers, expected):
        assert classify_check_status(referenced, in_cluster, has_consumers) == expected


class TestCheckReconciler:
    def test_classifies_and_orders_findings(self, check_scan, check_metadata):
        result = CheckReconciler().reconcile(check_scan, check_metadata, exclude_internal=True)
        s = result.summary

        assert (s.files_scanned, s.repo_topics, s.cluster_topics) == (5, 3, 3)
        assert s.total_findings == 4
        assert (s.ok_count, s.missing_in_cluster_count, s.unused_count, s.unreferenced_in_repo_count) == (
            1,
            1,
            1,
            1,
        )
        assert [f.topic for f in result.findings] == [
            "orders.missing",
            "stale.topic",
            "shared.topic",
            "orders.events",
        ]
        assert result.issue_count == 3

        by_topic = {f.topic: f for f in result.findings}
        missing = by_topic["orders.missing"]
        assert missing.status is CheckStatus.MISSING_IN_CLUSTER
        assert missing.referenced_in_repo and not missing.in_cluster

        stale = by_topic["stale.topic"]
        assert stale.status is CheckStatus.UNUSED
        assert stale.reason == REASON_UNUSED_REFERENCED

        shared = by_topic["shared.topic"]
        assert shared.status is CheckStatus.UNREFERENCED_IN_REPO
        assert shared.consumer_groups == ["shared-cg"]
        assert shared.references == []

        ok = by_topic["orders.events"]
        assert ok.status is CheckStatus.OK
        assert [r.file for r in ok.references] == ["config/app.yaml"]

    def test_internal_topics_kept_when_not_excluded(self, check_scan, check_metadata):
        result = CheckReconciler().reconcile(check_scan, check_metadata, exclude_internal=False)
        assert result.summary.cluster_topics == 4
        assert "__internal" in {f.topic for f in result.findings}

    def test_internal_excluded_from_repo_side_too(self, check_metadata):
        scan = make_scan("/repo", {"__internal": [("a.yaml", 1, OccurrenceSource.CONFIG)]})
        result = CheckReconciler().reconcile(scan, check_metadata, exclude_internal=True)
        assert result.summary.repo_topics == 0
        assert "__internal" not in {f.topic for f in result.findings}

    def test_exclude_patterns_both_sides(self):
        metadata = make_metadata(
            [("keep.cluster", 1, 1), ("skip.cluster", 1, 1)],
            groups={"cg-1": ["keep.cluster"], "cg-2": ["skip.cluster"]},
        )
        scan = make_scan(
            "/tmp/repo",
            {
                "keep.repo": [("config.yaml", 1, OccurrenceSource.CONFIG)],
                "skip.repo": [("config.yaml", 2, OccurrenceSource.CONFIG)],
            },
            files_scanned=2,
        )
        result = CheckReconciler().reconcile(scan, metadata, False, ["skip.*"])

        assert (result.summary.repo_topics, result.summary.cluster_topics) == (1, 1)
        assert result.summary.total_findings == 2
        assert not any(f.topic.startswith("skip.") for f in result.findings)

    def test_missing_topic_still_lists_consumer_groups(self):
        metadata = make_metadata([], groups={"legacy-cg": ["orders.old"]})
        scan = make_scan("/repo", {"orders.old": [("app.py", 4, OccurrenceSource.SOURCE_CODE)]})
        result = CheckReconciler().reconcile(scan, metadata, exclude_internal=True)

        (finding,) = result.findings
        assert finding.status is CheckStatus.MISSING_IN_CLUSTER
        assert finding.consumer_groups == ["legacy-cg"]

    def test_references_sorted(self):
        scan = make_scan(
            "/repo",
            {
                "orders": [
                    ("b.yaml", 1, OccurrenceSource.CONFIG),
                    ("a.yaml", 9, OccurrenceSource.CONFIG),
                    ("a.yaml", 2, OccurrenceSource.CONFIG),
                ]
            },
        )
        metadata = make_metadata([("orders", 1, 1)], groups={"cg": ["orders"]})
        result = CheckReconciler().reconcile(scan, metadata, exclude_internal=True)

        refs = result.findings[0].references
        assert [(r.file, r.line) for r in refs] == [("a.yaml", 2), ("a.yaml", 9), ("b.yaml", 1)]

    def test_no_topics_anywhere(self):
        result = CheckReconciler().reconcile(make_scan("/repo", {}), make_metadata([]), True)
        assert result.findings == []
        assert result.summary.total_findings == 0
        assert result.issue_count == 0


class TestEndToEndScenario:
    @pytest.fixture
    def metadata(self):
        return make_metadata(
            [("A", 3, 1), ("B", 1, 1), ("C", 10, 1)],
            groups={"cg-1": ["A"], "cg-2": ["A"], "cg-3": ["A"]},
        )

    def test_check_findings(self, metadata):
        scan = make_scan(
            "/repo",
            {
                "A": [("app.yaml", 1, OccurrenceSource.CONFIG)],
                "D": [("app.yaml", 2, OccurrenceSource.CONFIG)],
            },
        )
        result = CheckReconciler().reconcile(scan, metadata, exclude_internal=True)

        assert [(f.topic, f.status) for f in result.findings] == [
            ("D", CheckStatus.MISSING_IN_CLUSTER),
            ("B", CheckStatus.UNUSED),
            ("C", CheckStatus.UNUSED),
            ("A", CheckStatus.OK),
        ]
        assert result.summary.total_findings == len({"A", "B", "C"} | {"A", "D"})

    def test_audit_partitions_every_topic(self, metadata):
        result = AuditReconciler().reconcile(metadata, exclude_internal=True)

        unused = {t.name for t in result.unused_topics}
        active = {t.name for t in result.active_topics}
        assert unused == {"B", "C"}
        assert active == {"A"}
        assert unused | active == set(metadata.topics)
        assert [t.risk for t in result.unused_topics] == ["low", "high"]
        assert result.active_topics[0].consumer_count == 3
