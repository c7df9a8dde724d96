"""Topic metadata record."""
from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field, model_validator

INTERNAL_TOPIC_PREFIX = "__"


def is_internal_topic(name: str) -> bool:
    """System/bookkeeping topics such as ``__consumer_offsets``."""
    return name.startswith(INTERNAL_TOPIC_PREFIX)


class TopicRecord(BaseModel):
    """Immutable view of one cluster topic.

    ``internal`` is derived from the name when not given explicitly.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, examples=["checkout-orders"])
    partitions: int = Field(default=0, ge=0)
    replication_factor: int = Field(default=0, ge=0)
    config: Dict[str, str] = Field(default_factory=dict)
    internal: bool = False

    @model_validator(mode="before")
    @classmethod
    def derive_internal(cls, data: Any) -> Any:
        if isinstance(data, dict) and "internal" not in data and isinstance(data.get("name"), str):
            data = {**data, "internal": is_internal_topic(data["name"])}
        return data
