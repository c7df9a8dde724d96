"""kafka-python backed metadata source."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, TypeVar

from kafka import KafkaAdminClient
from kafka.admin import ConfigResource, ConfigResourceType
from kafka.errors import KafkaError

from kafkaspectre.core.config import Settings, get_settings
from kafkaspectre.core.exceptions import UsageError
from kafkaspectre.domain.models.cluster import BrokerRecord, ClusterMetadata
from kafkaspectre.domain.models.consumer_group import ConsumerGroupRecord
from kafkaspectre.domain.models.topic import TopicRecord
from kafkaspectre.infra.kafka.retry import with_retry

logger = logging.getLogger(__name__)

T = TypeVar("T")

SUPPORTED_MECHANISMS = ("PLAIN", "SCRAM-SHA-256", "SCRAM-SHA-512")


@dataclass(frozen=True)
class KafkaConnection:
    """Everything needed to reach one cluster."""

    bootstrap_servers: str
    auth_mechanism: str = ""
    username: str = ""
    password: str = ""
    tls: bool = False
    tls_cert: str = ""
    tls_key: str = ""
    tls_ca: str = ""
    timeout: float = 10.0

    @property
    def seeds(self) -> List[str]:
        return [s.strip() for s in self.bootstrap_servers.split(",") if s.strip()]

    @property
    def uses_tls(self) -> bool:
        return self.tls or bool(self.tls_cert) or bool(self.tls_ca)

    @property
    def security_protocol(self) -> str:
        if self.auth_mechanism:
            return "SASL_SSL" if self.uses_tls else "SASL_PLAINTEXT"
        return "SSL" if self.uses_tls else "PLAINTEXT"


class KafkaInspector:
    """
    Lazy, retrying adapter around kafka-python's admin client.

    No network work happens until :meth:`fetch`. Topic configs and group
    details are best-effort: failures there are logged and the snapshot is
    returned without them.
    """

    def __init__(
        self,
        connection: KafkaConnection,
        settings: Settings | None = None,
        admin_factory: Callable[..., Any] = KafkaAdminClient,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self.connection = connection
        self.settings = settings or get_settings()
        self._admin_factory = admin_factory
        self._sleep = sleep
        self._admin: Any = None

    # ---------- bootstrap common kwargs ----------
    def _common_kwargs(self) -> dict:
        conn = self.connection
        timeout_ms = int(conn.timeout * 1000) if conn.timeout > 0 else self.settings.request_timeout_ms
        kw = dict(
            bootstrap_servers=conn.seeds,
            client_id=self.settings.client_id,
            request_timeout_ms=timeout_ms,
            metadata_max_age_ms=self.settings.metadata_max_age_ms,
            api_version_auto_timeout_ms=self.settings.api_version_auto_timeout_ms,
            security_protocol=conn.security_protocol,
        )
        if self.settings.api_version:
            kw["api_version"] = tuple(int(p) for p in self.settings.api_version.split("."))
        if conn.auth_mechanism:
            mechanism = conn.auth_mechanism.upper()
            if mechanism not in SUPPORTED_MECHANISMS:
                raise UsageError(f"unsupported SASL mechanism: {conn.auth_mechanism}")
            kw.update(
                sasl_mechanism=mechanism,
                sasl_plain_username=conn.username or self.settings.sasl_username,
                sasl_plain_password=conn.password or self.settings.sasl_password,
            )
        if conn.uses_tls:
            kw["ssl_check_hostname"] = True
            if conn.tls_ca:
                kw["ssl_cafile"] = conn.tls_ca
            if conn.tls_cert and conn.tls_key:
                kw.update(ssl_certfile=conn.tls_cert, ssl_keyfile=conn.tls_key)
        return kw

    def _retry(self, operation: str, fn: Callable[[], T]) -> T:
        kwargs: Dict[str, Any] = dict(
            max_attempts=self.settings.retry_max_attempts,
            initial_backoff=self.settings.retry_initial_backoff_sec,
            max_backoff=self.settings.retry_max_backoff_sec,
        )
        if self._sleep is not None:
            kwargs["sleep"] = self._sleep
        return with_retry(operation, fn, **kwargs)

    def _ensure_admin(self) -> Any:
        if self._admin is None:
            kwargs = self._common_kwargs()
            logger.info("connecting to kafka bootstrap=%s protocol=%s", kwargs["bootstrap_servers"], kwargs["security_protocol"])
            self._admin = self._retry("connect to cluster", lambda: self._admin_factory(**kwargs))
        return self._admin

    def close(self) -> None:
        if self._admin is not None:
            try:
                self._admin.close()
            finally:
                self._admin = None

    def __enter__(self) -> "KafkaInspector":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ---------- Snapshot ----------
    def fetch(self) -> ClusterMetadata:
        """Fetch brokers, topics and consumer groups in one snapshot."""
        admin = self._ensure_admin()
        fetched_at = datetime.now(timezone.utc)

        brokers = self._fetch_brokers(admin)
        topics = self._fetch_topics(admin)
        self._attach_configs(admin, topics)
        groups = self._fetch_groups(admin)

        return ClusterMetadata(
            brokers=brokers,
            topics={name: TopicRecord(**fields) for name, fields in topics.items()},
            consumer_groups=groups,
            fetched_at=fetched_at,
        )

    def _fetch_brokers(self, admin: Any) -> List[BrokerRecord]:
        meta = self._retry("fetch broker metadata", admin.describe_cluster)
        return [
            BrokerRecord(
                broker_id=b["node_id"],
                host=b["host"],
                port=b["port"],
                rack=b.get("rack") or "",
            )
            for b in meta.get("brokers", [])
        ]

    def _fetch_topics(self, admin: Any) -> Dict[str, dict]:
        def _list() -> list:
            names = list(admin.list_topics())
            return admin.describe_topics(names) if names else []

        topics: Dict[str, dict] = {}
        for t in self._retry("list topics", _list):
            parts = t.get("partitions") or []
            rf = len(parts[0].get("replicas", [])) if parts else 0
            topics[t["topic"]] = {
                "name": t["topic"],
                "partitions": len(parts),
                "replication_factor": rf,
                "config": {},
            }
        return topics

    def _attach_configs(self, admin: Any, topics: Dict[str, dict]) -> None:
        if not topics:
            return
        resources = [ConfigResource(ConfigResourceType.TOPIC, name) for name in topics]
        try:
            responses = admin.describe_configs(config_resources=resources)
        except (KafkaError, OSError) as exc:
            logger.warning("failed to fetch topic configs topic_count=%d error=%s", len(topics), exc)
            return
        for name, entries in _iter_config_resources(responses):
            if name in topics:
                topics[name]["config"].update(entries)

    def _fetch_groups(self, admin: Any) -> Dict[str, ConsumerGroupRecord]:
        listed = self._retry("list consumer groups", admin.list_consumer_groups)
        group_ids = sorted({g[0] for g in listed})
        if not group_ids:
            return {}

        try:
            described = admin.describe_consumer_groups(group_ids)
        except (KafkaError, OSError) as exc:
            logger.warning(
                "failed to describe consumer groups consumer_group_count=%d error=%s", len(group_ids), exc
            )
            return {}

        groups: Dict[str, ConsumerGroupRecord] = {}
        for info in described:
            group_id = info.group
            if info.error_code:
                logger.warning("describe consumer group failed group=%s error_code=%s", group_id, info.error_code)
                continue
            try:
                offsets = admin.list_consumer_group_offsets(group_id)
                topics = sorted({tp.topic for tp in offsets})
            except (KafkaError, OSError) as exc:
                logger.debug("skipping offsets for group=%s error=%s", group_id, exc)
                topics = []
            groups[group_id] = ConsumerGroupRecord(
                group_id=group_id,
                state=info.state or "",
                member_count=len(info.members or []),
                topics=topics,
            )
        return groups


def _iter_config_resources(responses: Any) -> Iterable[tuple[str, Dict[str, str]]]:
    """Yield ``(topic, {key: value})`` from DescribeConfigs responses.

    Each resource is ``(error_code, error_message, resource_type,
    resource_name, config_entries)``; entries start with ``(name, value)``.
    Resources carrying an error code are skipped.
    """
    if not isinstance(responses, (list, tuple)):
        responses = [responses]
    for response in responses:
        for resource in getattr(response, "resources", None) or []:
            error_code, _msg, _rtype, name, entries = resource[:5]
            if error_code:
                logger.warning("describe configs failed topic=%s error_code=%s", name, error_code)
                continue
            config: Dict[str, str] = {}
            for entry in entries:
                key, value = entry[0], entry[1]
                if value is not None:
                    config[key] = value
            yield name, config
