"""
Shared fixtures for kafkaspectre tests.

Cluster snapshots are built in memory; nothing here talks to a broker.
"""

from datetime import datetime, timezone

import pytest

from kafkaspectre.core.config import get_settings
from kafkaspectre.domain.models import (
    BrokerRecord,
    ClusterMetadata,
    ConsumerGroupRecord,
    Occurrence,
    OccurrenceSource,
    ScanResult,
    TopicRecord,
    TopicReference,
)

FETCHED_AT = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    """Keep host environment variables out of Settings and reset the cache."""
    for var in (
        "KAFKASPECTRE_SASL_USERNAME",
        "KAFKASPECTRE_SASL_PASSWORD",
        "KAFKASPECTRE_DEFAULT_TIMEOUT_SEC",
        "KAFKASPECTRE_API_VERSION",
    ):
        monkeypatch.delenv(var, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def make_metadata(topics, groups=None, brokers=None):
    """Build a ClusterMetadata from ``(name, partitions, rf[, config])`` tuples."""
    records = {}
    for entry in topics:
        name, partitions, rf = entry[:3]
        config = entry[3] if len(entry) > 3 else {}
        records[name] = TopicRecord(
            name=name, partitions=partitions, replication_factor=rf, config=config
        )
    consumer_groups = {
        group_id: ConsumerGroupRecord(group_id=group_id, topics=list(group_topics))
        for group_id, group_topics in (groups or {}).items()
    }
    if brokers is None:
        brokers = [BrokerRecord(broker_id=1, host="broker-1", port=9092)]
    return ClusterMetadata(
        brokers=brokers,
        topics=records,
        consumer_groups=consumer_groups,
        fetched_at=FETCHED_AT,
    )


def make_scan(repo_path, references, files_scanned=1):
    """Build a ScanResult from ``{topic: [(file, line, source), ...]}``."""
    topics = {}
    for name, occurrences in references.items():
        ref = TopicReference(name=name)
        for file, line, source in occurrences:
            ref.add(Occurrence(file=file, line=line, source=source))
        topics[name] = ref
    return ScanResult(repo_path=repo_path, files_scanned=files_scanned, topics=topics)


@pytest.fixture
def audit_metadata():
    """One active topic, three unused topics of each risk and an internal topic."""
    return make_metadata(
        [
            ("active-topic", 3, 2, {"retention.ms": "3600000"}),
            ("low-topic", 1, 1, {"retention.ms": "60000"}),
            ("medium-topic", 2, 1, {"retention.ms": "60000"}),
            ("high-topic", 1, 3, {"retention.ms": "60000"}),
            ("__internal", 5, 1),
        ],
        groups={"cg-1": ["active-topic"], "cg-2": ["active-topic"]},
    )


@pytest.fixture
def check_metadata():
    return make_metadata(
        [
            ("orders.events", 3, 2),
            ("shared.topic", 1, 1),
            ("stale.topic", 1, 1),
            ("__internal", 1, 1),
        ],
        groups={"orders-cg": ["orders.events"], "shared-cg": ["shared.topic"]},
    )


@pytest.fixture
def check_scan():
    return make_scan(
        "/tmp/my-app",
        {
            "orders.events": [("config/app.yaml", 12, OccurrenceSource.CONFIG)],
            "orders.missing": [(".env", 1, OccurrenceSource.ENV)],
            "stale.topic": [("src/main.go", 8, OccurrenceSource.SOURCE_CODE)],
        },
        files_scanned=5,
    )
