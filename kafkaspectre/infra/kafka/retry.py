"""Bounded exponential-backoff retry around kafka-python admin calls."""
from __future__ import annotations

import logging
import socket
import time
from typing import Callable, TypeVar

from kafka.errors import (
    AuthenticationFailedError,
    ClusterAuthorizationFailedError,
    GroupAuthorizationFailedError,
    IllegalSaslStateError,
    KafkaError,
    KafkaTimeoutError,
    NoBrokersAvailable,
    NodeNotReadyError,
    SaslAuthenticationFailedError,
    TopicAuthorizationFailedError,
    TransactionalIdAuthorizationFailedError,
    UnsupportedSaslMechanismError,
)

from kafkaspectre.core.exceptions import MetadataFetchError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_AUTH_ERRORS = (
    AuthenticationFailedError,
    SaslAuthenticationFailedError,
    UnsupportedSaslMechanismError,
    IllegalSaslStateError,
    TopicAuthorizationFailedError,
    ClusterAuthorizationFailedError,
    GroupAuthorizationFailedError,
    TransactionalIdAuthorizationFailedError,
)
_RETRYABLE = (KafkaTimeoutError, NoBrokersAvailable, NodeNotReadyError, socket.timeout)

DEFAULT_MAX_ATTEMPTS = 4
DEFAULT_INITIAL_BACKOFF = 0.5
DEFAULT_MAX_BACKOFF = 4.0


def is_auth_error(exc: BaseException) -> bool:
    return isinstance(exc, _AUTH_ERRORS)


def is_retryable(exc: BaseException) -> bool:
    if is_auth_error(exc):
        return False
    if isinstance(exc, _RETRYABLE):
        return True
    return isinstance(exc, KafkaError) and bool(getattr(exc, "retriable", False))


def with_retry(
    operation: str,
    fn: Callable[[], T],
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    initial_backoff: float = DEFAULT_INITIAL_BACKOFF,
    max_backoff: float = DEFAULT_MAX_BACKOFF,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call *fn* until it succeeds, backing off between transient failures.

    Parameters
    ----------
    operation : str
        Human-readable name used in log lines and the raised error.
    fn : callable
        Zero-argument callable doing the actual admin request.
    sleep : callable
        Injected for tests.

    Raises
    ------
    MetadataFetchError
        ``kind="auth"`` straight away for authentication/authorization
        failures; ``kind="network"`` for anything else once retries are
        exhausted or the error is not transient. Errors that are neither
        Kafka nor OS errors propagate unchanged.
    """
    backoff = initial_backoff
    attempt = 0
    while True:
        attempt += 1
        try:
            return fn()
        except (KafkaError, OSError) as exc:
            if is_auth_error(exc):
                raise MetadataFetchError(operation, "auth", str(exc) or type(exc).__name__) from exc
            if not is_retryable(exc):
                raise MetadataFetchError(operation, "network", str(exc) or type(exc).__name__) from exc
            if attempt >= max_attempts:
                raise MetadataFetchError(
                    operation,
                    "network",
                    f"{max_attempts} attempts exhausted: {exc or type(exc).__name__}",
                ) from exc

            logger.warning(
                "retrying after transient error operation=%s attempt=%d max_attempts=%d backoff=%.2fs error=%s",
                operation, attempt, max_attempts, backoff, exc,
            )
            sleep(backoff)
            backoff = min(backoff * 2, max_backoff)
