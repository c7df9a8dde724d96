"""Error taxonomy shared by the CLI, the collaborators and the core."""
from __future__ import annotations

from pathlib import Path


class KafkaSpectreError(Exception):
    """Base class for every error raised on purpose by kafkaspectre."""


class ConfigError(KafkaSpectreError):
    """Config file could not be read or parsed; nothing from it is applied."""


class ConfigParseError(ConfigError):
    """Raised for a syntax error in a config file.

    Attributes
    ----------
    line : int
        1-based line number of the offending line.
    message : str
        What went wrong on that line.
    path : str | None
        The file being parsed, when known.
    """

    def __init__(self, line: int, message: str, path: str | Path | None = None) -> None:
        self.line = line
        self.message = message
        self.path = str(path) if path is not None else None
        text = f"line {line}: {message}"
        if self.path is not None:
            text = f"parse config {self.path!r}: {text}"
        super().__init__(text)


class InvalidPatternError(KafkaSpectreError):
    """An exclude-topic glob is malformed."""

    def __init__(self, pattern: str, reason: str) -> None:
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"invalid exclude topic pattern {pattern!r}: {reason}")


class UsageError(KafkaSpectreError):
    """Invalid combination of command-line options."""


class MetadataFetchError(KafkaSpectreError):
    """Cluster metadata could not be fetched.

    Attributes
    ----------
    operation : str
        The admin call that failed, e.g. ``"list topics"``.
    kind : str
        ``"network"`` for connectivity/timeout failures, ``"auth"`` for
        authentication or authorization failures.
    """

    def __init__(self, operation: str, kind: str, detail: str) -> None:
        self.operation = operation
        self.kind = kind
        super().__init__(f"{operation}: {detail}")


class ScanError(KafkaSpectreError):
    """Repository scan failed."""

    def __init__(self, path: str | Path, reason: str, *, not_found: bool = False) -> None:
        self.path = str(path)
        self.not_found = not_found
        super().__init__(f"repo path {self.path!r}: {reason}")


class FindingsError(KafkaSpectreError):
    """Raised with --fail-on-findings when a run reports at least one finding."""

    def __init__(self, count: int) -> None:
        self.count = count
        super().__init__(f"{count} findings detected")
