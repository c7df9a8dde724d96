import pytest

from kafkaspectre.core.exceptions import ScanError
from kafkaspectre.domain.models import OccurrenceSource
from kafkaspectre.infra.scanner import (
    RepoScanner,
    ScanMode,
    detect_mode,
    extract_candidates,
    is_likely_topic,
    scan_config_text,
    scan_env_text,
    scan_source_text,
)


def write(path, content):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)


# =========================================================================
# Helpers
# =========================================================================


class TestDetectMode:
    @pytest.mark.parametrize(
        "path,mode",
        [
            ("config/app.yaml", ScanMode.CONFIG),
            ("app.YML", ScanMode.CONFIG),
            ("settings.json", ScanMode.CONFIG),
            (".env", ScanMode.ENV),
            (".env.production", ScanMode.ENV),
            ("src/main.go", ScanMode.SOURCE),
            ("worker.py", ScanMode.SOURCE),
            ("Consumer.java", ScanMode.SOURCE),
            ("README.md", ScanMode.NONE),
            ("main.ts", ScanMode.NONE),
        ],
    )
    def test_modes(self, path, mode):
        assert detect_mode(path) is mode


class TestIsLikelyTopic:
    @pytest.mark.parametrize("candidate", ["orders.events", "payments-v2", "audit_log"])
    def test_accepts_topic_names(self, candidate):
        assert is_likely_topic(candidate, candidate) is True

    @pytest.mark.parametrize(
        "candidate",
        ["ab", "12345", "http.example", "KAFKA_BROKERS", "topic", "Latest", "a{b}c"],
    )
    def test_rejects_noise(self, candidate):
        assert is_likely_topic(candidate, candidate) is False

    def test_rejects_placeholder_name(self):
        assert is_likely_topic("orders", "${orders}") is False


class TestExtractCandidates:
    def test_splits_lists_and_dedupes(self):
        assert extract_candidates('["billing.v1", "shipping.v2", "billing.v1"]') == [
            "billing.v1",
            "shipping.v2",
        ]

    def test_strips_inline_comment(self):
        assert extract_candidates("refunds.processed # old name: refunds") == ["refunds.processed"]

    def test_placeholder_yields_nothing(self):
        assert extract_candidates("${KAFKA_TOPIC_NAME}") == []

    def test_empty(self):
        assert extract_candidates("   ") == []


class TestExtractors:
    def test_config_block_list(self):
        content = "kafka:\n  topics:\n    - payments.completed\n    - refunds.processed\n  brokers: 3\n"
        assert scan_config_text(content) == [("payments.completed", 3), ("refunds.processed", 4)]

    def test_config_ignores_non_topic_keys(self):
        assert scan_config_text("name: orders-service\nbroker: kafka-1\n") == []

    def test_config_json_key(self):
        assert scan_config_text('{\n  "kafkaTopic": "inventory.updates",\n}') == [("inventory.updates", 2)]

    def test_env_only_topic_keys(self):
        content = "export KAFKA_TOPIC=deadletter.events\nOTHER_KEY=ignored.value\n# TOPIC=commented.out\n"
        assert scan_env_text(content) == [("deadletter.events", 1)]

    def test_source_requires_kafka_or_topic_on_line(self):
        content = 'name = "orders.service"\nproducer.send(topic="orders.created")\n// kafka "skipped.comment"\n'
        assert scan_source_text(content) == [("orders.created", 2)]


# =========================================================================
# RepoScanner
# =========================================================================


class TestRepoScanner:
    @pytest.fixture
    def repo(self, tmp_path):
        write(
            tmp_path / "config" / "app.yaml",
            "kafka:\n"
            "  topic: orders.events\n"
            "  topics:\n"
            "    - payments.completed\n"
            "    - refunds.processed # inline comment\n",
        )
        write(
            tmp_path / "config" / "app.json",
            '{\n  "kafkaTopic": "inventory.updates",\n  "topics": ["billing.v1", "shipping.v2"]\n}',
        )
        write(
            tmp_path / ".env",
            "KAFKA_TOPIC=deadletter.events\n"
            "KAFKA_TOPICS=bulk.one,bulk.two\n"
            "KAFKA_TOPIC_TEMPLATE=${KAFKA_TOPIC_NAME}\n"
            "OTHER_KEY=ignore\n",
        )
        write(
            tmp_path / "src" / "main.go",
            'package main\n\nfunc main() {\n\tkafkaTopic := "source.events"\n\t_ = kafkaTopic\n}\n',
        )
        return tmp_path

    def test_detects_topics_from_every_mode(self, repo):
        result = RepoScanner().scan(repo)

        assert result.files_scanned == 4
        for topic in (
            "orders.events",
            "payments.completed",
            "refunds.processed",
            "inventory.updates",
            "billing.v1",
            "shipping.v2",
            "deadletter.events",
            "bulk.one",
            "bulk.two",
            "source.events",
        ):
            assert topic in result.topics, topic
        assert "KAFKA_TOPIC_NAME" not in result.topics

    def test_occurrence_details(self, repo):
        result = RepoScanner().scan(repo)

        (orders,) = result.topics["orders.events"].occurrences
        assert (orders.file, orders.line, orders.source) == ("config/app.yaml", 2, OccurrenceSource.CONFIG)
        assert result.topics["deadletter.events"].occurrences[0].source is OccurrenceSource.ENV
        assert result.topics["source.events"].occurrences[0].source is OccurrenceSource.SOURCE_CODE
        assert result.repo_path == str(repo.resolve())

    def test_skips_vendor_dirs_and_large_files(self, tmp_path):
        write(tmp_path / "node_modules" / "lib" / "app.yaml", "topic: vendored.topic\n")
        write(tmp_path / ".git" / "config.yaml", "topic: git.topic\n")
        write(tmp_path / "big.yaml", "topic: huge.topic\n" + "#" * 200)
        write(tmp_path / "notes.txt", "topic: text.topic\n")

        result = RepoScanner(max_file_size=100).scan(tmp_path)

        assert result.files_scanned == 0
        assert result.topics == {}

    def test_same_topic_in_two_files(self, tmp_path):
        write(tmp_path / "b.yaml", "topic: orders\n")
        write(tmp_path / "a.yaml", "topic: orders\n")

        result = RepoScanner().scan(tmp_path)

        assert [o.file for o in result.topics["orders"].occurrences] == ["a.yaml", "b.yaml"]

    def test_undecodable_bytes_are_replaced(self, tmp_path):
        (tmp_path / "app.yaml").write_bytes(b"topic: orders.events \xff\n")
        assert "orders.events" in RepoScanner().scan(tmp_path).topics

    def test_missing_path(self, tmp_path):
        with pytest.raises(ScanError) as exc_info:
            RepoScanner().scan(tmp_path / "does-not-exist")
        assert exc_info.value.not_found is True

    def test_file_instead_of_directory(self, tmp_path):
        target = tmp_path / "file.yaml"
        target.write_text("topic: x\n")
        with pytest.raises(ScanError) as exc_info:
            RepoScanner().scan(target)
        assert exc_info.value.not_found is True

    def test_blank_path(self):
        with pytest.raises(ScanError):
            RepoScanner().scan("  ")
