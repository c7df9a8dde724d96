"""Map raised errors onto process exit codes."""
from __future__ import annotations

import socket

from kafka.errors import KafkaTimeoutError, NoBrokersAvailable

from kafkaspectre.core.exceptions import (
    ConfigError,
    FindingsError,
    InvalidPatternError,
    MetadataFetchError,
    ScanError,
    UsageError,
)

EXIT_SUCCESS = 0
EXIT_FINDINGS = 1
EXIT_INVALID_ARG = 2
EXIT_NOT_FOUND = 3
EXIT_NETWORK = 4
EXIT_INTERNAL = 5

_INVALID_ARG = (ConfigError, InvalidPatternError, UsageError)
_NETWORK = (
    MetadataFetchError,
    NoBrokersAvailable,
    KafkaTimeoutError,
    ConnectionError,
    TimeoutError,
    socket.timeout,
)


def _classify_one(exc: BaseException) -> int | None:
    if isinstance(exc, FindingsError):
        return EXIT_FINDINGS
    if isinstance(exc, _INVALID_ARG):
        return EXIT_INVALID_ARG
    if isinstance(exc, ScanError):
        return EXIT_NOT_FOUND if exc.not_found else None
    if isinstance(exc, (FileNotFoundError, NotADirectoryError)):
        return EXIT_NOT_FOUND
    if isinstance(exc, _NETWORK):
        return EXIT_NETWORK
    return None


def exit_code_for(exc: BaseException | None) -> int:
    """Return the exit code for *exc*, following ``__cause__`` links."""
    if exc is None:
        return EXIT_SUCCESS
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        code = _classify_one(current)
        if code is not None:
            return code
        current = current.__cause__
    return EXIT_INTERNAL
