"""Consumer-group record."""
from __future__ import annotations

from datetime import datetime
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field


class ConsumerGroupRecord(BaseModel):
    """One consumer group and the topics it has committed offsets for."""

    model_config = ConfigDict(frozen=True)

    group_id: str
    state: str = ""  # Stable / Empty / Dead …
    member_count: int = Field(default=0, ge=0)
    topics: List[str] = Field(default_factory=list)
    lag: Dict[str, int] = Field(default_factory=dict)
    last_commit: datetime | None = None
    coordinator: int = -1
