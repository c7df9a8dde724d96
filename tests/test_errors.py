import pytest
from kafka.errors import KafkaTimeoutError, NoBrokersAvailable

from kafkaspectre.core.errors import (
    EXIT_FINDINGS,
    EXIT_INTERNAL,
    EXIT_INVALID_ARG,
    EXIT_NETWORK,
    EXIT_NOT_FOUND,
    EXIT_SUCCESS,
    exit_code_for,
)
from kafkaspectre.core.exceptions import (
    ConfigError,
    ConfigParseError,
    FindingsError,
    InvalidPatternError,
    MetadataFetchError,
    ScanError,
    UsageError,
)


class TestExitCodeFor:
    @pytest.mark.parametrize(
        "exc,code",
        [
            (None, EXIT_SUCCESS),
            (FindingsError(2), EXIT_FINDINGS),
            (UsageError("bootstrap-server is required"), EXIT_INVALID_ARG),
            (ConfigError("read config"), EXIT_INVALID_ARG),
            (ConfigParseError(3, "unknown key"), EXIT_INVALID_ARG),
            (InvalidPatternError("[", "unterminated character class"), EXIT_INVALID_ARG),
            (ScanError("/nope", "no such file or directory", not_found=True), EXIT_NOT_FOUND),
            (FileNotFoundError("x"), EXIT_NOT_FOUND),
            (MetadataFetchError("list topics", "network", "timed out"), EXIT_NETWORK),
            (MetadataFetchError("connect", "auth", "bad password"), EXIT_NETWORK),
            (NoBrokersAvailable(), EXIT_NETWORK),
            (KafkaTimeoutError(), EXIT_NETWORK),
            (TimeoutError(), EXIT_NETWORK),
            (ScanError("/repo", "permission denied"), EXIT_INTERNAL),
            (RuntimeError("bug"), EXIT_INTERNAL),
        ],
    )
    def test_classification(self, exc, code):
        assert exit_code_for(exc) == code

    def test_follows_cause_chain(self):
        try:
            try:
                raise UsageError("bad flag")
            except UsageError as inner:
                raise RuntimeError("wrapped") from inner
        except RuntimeError as outer:
            assert exit_code_for(outer) == EXIT_INVALID_ARG

    def test_exit_codes_are_distinct(self):
        codes = {EXIT_SUCCESS, EXIT_FINDINGS, EXIT_INVALID_ARG, EXIT_NOT_FOUND, EXIT_NETWORK, EXIT_INTERNAL}
        assert len(codes) == 6


class TestExceptionMessages:
    def test_config_parse_error_with_path(self):
        err = ConfigParseError(4, "unknown key 'x'", path="/etc/.kafkaspectre.yaml")
        assert str(err) == "parse config '/etc/.kafkaspectre.yaml': line 4: unknown key 'x'"

    def test_config_parse_error_without_path(self):
        assert str(ConfigParseError(1, "expected key: value")) == "line 1: expected key: value"

    def test_findings_error(self):
        assert str(FindingsError(3)) == "3 findings detected"
        assert FindingsError(3).count == 3
