"""Repository-versus-cluster drift DTOs."""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Set

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr


class OccurrenceSource(str, Enum):
    """Which scanner mode produced an occurrence."""

    CONFIG = "yaml_json"
    ENV = "env"
    SOURCE_CODE = "source_regex"


class CheckStatus(str, Enum):
    OK = "OK"
    MISSING_IN_CLUSTER = "MISSING_IN_CLUSTER"
    UNREFERENCED_IN_REPO = "UNREFERENCED_IN_REPO"
    UNUSED = "UNUSED"

    @property
    def rank(self) -> int:
        """Severity order used to sort findings (0 sorts first)."""
        return _STATUS_RANK[self]


_STATUS_RANK = {
    CheckStatus.MISSING_IN_CLUSTER: 0,
    CheckStatus.UNUSED: 1,
    CheckStatus.UNREFERENCED_IN_REPO: 2,
    CheckStatus.OK: 3,
}


class Occurrence(BaseModel):
    """One place a topic name was found; ``line`` 0 means no line."""

    model_config = ConfigDict(frozen=True)

    file: str
    line: int = Field(default=0, ge=0)
    source: OccurrenceSource

    def sort_key(self) -> tuple:
        return (self.file, self.line, self.source.value)


class TopicReference(BaseModel):
    """All occurrences of one topic name across a repository."""

    name: str
    occurrences: List[Occurrence] = Field(default_factory=list)

    _seen: Set[tuple] = PrivateAttr(default_factory=set)

    def model_post_init(self, __context: Any) -> None:
        self._seen.update(o.sort_key() for o in self.occurrences)

    def add(self, occurrence: Occurrence) -> bool:
        """Append *occurrence* unless the same (file, line, source) is known."""
        key = occurrence.sort_key()
        if key in self._seen:
            return False
        self._seen.add(key)
        self.occurrences.append(occurrence)
        return True


class ScanResult(BaseModel):
    repo_path: str
    files_scanned: int = 0
    topics: Dict[str, TopicReference] = Field(default_factory=dict)


class CheckFinding(BaseModel):
    model_config = ConfigDict(frozen=True)

    topic: str
    status: CheckStatus
    referenced_in_repo: bool
    in_cluster: bool
    consumer_groups: List[str] = Field(default_factory=list)
    references: List[Occurrence] = Field(default_factory=list)
    reason: str


class CheckSummary(BaseModel):
    repo_path: str
    files_scanned: int = 0
    repo_topics: int = 0
    cluster_topics: int = 0
    total_findings: int = 0
    ok_count: int = 0
    missing_in_cluster_count: int = 0
    unreferenced_in_repo_count: int = 0
    unused_count: int = 0


class CheckResult(BaseModel):
    findings: List[CheckFinding] = Field(default_factory=list)
    summary: CheckSummary

    @property
    def issue_count(self) -> int:
        """Findings other than OK."""
        return self.summary.total_findings - self.summary.ok_count
