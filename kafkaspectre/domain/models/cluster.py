"""Cluster- and broker-level records fetched once per run."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field

from kafkaspectre.domain.models.consumer_group import ConsumerGroupRecord
from kafkaspectre.domain.models.topic import TopicRecord


class BrokerRecord(BaseModel):
    """Identity of a single broker as reported by the cluster."""

    model_config = ConfigDict(frozen=True)

    broker_id: int = Field(..., description="Numeric broker ID")
    host: str
    port: int
    rack: str = ""


class ClusterMetadata(BaseModel):
    """Snapshot returned by a metadata source.

    ``topics`` and ``consumer_groups`` are keyed by topic name and group id.
    Broker order is whatever the source returned.
    """

    model_config = ConfigDict(frozen=True)

    brokers: List[BrokerRecord] = Field(default_factory=list)
    topics: Dict[str, TopicRecord] = Field(default_factory=dict)
    consumer_groups: Dict[str, ConsumerGroupRecord] = Field(default_factory=dict)
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def partition_count(self) -> int:
        return sum(t.partitions for t in self.topics.values())
