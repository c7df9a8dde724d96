"""Walk a source tree and collect Kafka topic names it mentions."""
from __future__ import annotations

import logging
import os
import re
import stat
from enum import Enum
from pathlib import Path
from typing import Dict, Iterator, List, Tuple

from kafkaspectre.core.exceptions import ScanError
from kafkaspectre.domain.models.check import Occurrence, OccurrenceSource, ScanResult, TopicReference

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 2 * 1024 * 1024

SKIP_DIRS = frozenset(
    {".git", ".idea", ".vscode", ".venv", "node_modules", "vendor", "dist", "build", "target", "bin"}
)

STOP_WORDS = frozenset(
    {
        "topic", "topics", "kafka", "true", "false", "null", "nil", "none",
        "default", "latest", "earliest", "name", "value", "string",
    }
)

_TOPIC_CONFIG_LINE = re.compile(
    r"^\s*(?:-\s*)?[\"']?([A-Za-z0-9_.-]*topic[s]?[A-Za-z0-9_.-]*)[\"']?\s*[:=]\s*(.*?)\s*,?\s*$",
    re.IGNORECASE | re.ASCII,
)
_ENV_LINE = re.compile(r"^\s*(?:export\s+)?([A-Za-z_][A-Za-z0-9_]*)\s*=\s*(.*)$", re.ASCII)
_QUOTED_TOKEN = re.compile(r"[\"'`]([A-Za-z0-9._-]{3,249})[\"'`]")
_PLAIN_TOKEN = re.compile(r"[A-Za-z0-9._-]{3,249}")
_INTEGER = re.compile(r"[+-]?\d+")
_UPPER_SNAKE = re.compile(r"[A-Z0-9_]*[A-Z][A-Z0-9_]*")


class ScanMode(Enum):
    NONE = 0
    CONFIG = 1
    ENV = 2
    SOURCE = 3


def detect_mode(path: str) -> ScanMode:
    base = os.path.basename(path).lower()
    ext = os.path.splitext(base)[1]
    if base == ".env" or base.startswith(".env."):
        return ScanMode.ENV
    if ext in (".yaml", ".yml", ".json"):
        return ScanMode.CONFIG
    if ext in (".go", ".py", ".java"):
        return ScanMode.SOURCE
    return ScanMode.NONE


# --------------------------------------------------------------------------- #
# Candidate filtering                                                         #
# --------------------------------------------------------------------------- #
def is_likely_topic(candidate: str, context: str) -> bool:
    """Heuristic filter for tokens that look like topic names."""
    if len(candidate) < 3:
        return False
    if _INTEGER.fullmatch(candidate):
        return False
    if candidate.lower().startswith("http"):
        return False
    if any(ch in candidate for ch in "{}[]()$"):
        return False
    if "${" + candidate + "}" in context:
        return False
    # env-var style names such as KAFKA_BROKERS
    if _UPPER_SNAKE.fullmatch(candidate):
        return False
    return candidate.lower() not in STOP_WORDS


def strip_inline_comment(value: str) -> str:
    in_single = in_double = False
    for i, ch in enumerate(value):
        if ch == "'" and not in_double:
            in_single = not in_single
        elif ch == '"' and not in_single:
            in_double = not in_double
        elif ch == "#" and not in_single and not in_double:
            return value[:i].strip()
    return value.strip()


def extract_candidates(value: str) -> List[str]:
    value = strip_inline_comment(value)
    if not value:
        return []
    # ${KAFKA_TOPIC} style placeholder
    if value.startswith("${") and value.endswith("}"):
        return []

    out: List[str] = []
    for token in _PLAIN_TOKEN.findall(value):
        if is_likely_topic(token, value) and token not in out:
            out.append(token)
    return out


def _indent(line: str) -> int:
    width = 0
    for ch in line:
        if ch == " ":
            width += 1
        elif ch == "\t":
            width += 2
        else:
            break
    return width


def _lines(content: str) -> Iterator[Tuple[int, str]]:
    lines = content.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    for number, line in enumerate(lines, start=1):
        yield number, line.rstrip("\r")


# --------------------------------------------------------------------------- #
# Per-format extractors: yield (topic, line)                                  #
# --------------------------------------------------------------------------- #
def scan_config_text(content: str) -> List[Tuple[str, int]]:
    """Topic keys in YAML/JSON, including ``key:`` followed by a ``- item`` list."""
    found: List[Tuple[str, int]] = []
    pending_indent = -1

    for number, line in _lines(content):
        trimmed = line.strip()
        if not trimmed or trimmed.startswith("#") or trimmed.startswith("//"):
            continue

        if pending_indent >= 0:
            indent = _indent(line)
            if indent > pending_indent and trimmed.startswith("-"):
                found.extend((t, number) for t in extract_candidates(trimmed[1:].strip()))
                continue
            if indent <= pending_indent:
                pending_indent = -1

        match = _TOPIC_CONFIG_LINE.match(line)
        if match is None:
            continue
        value = match.group(2).strip()
        if value in ("", "|", ">"):
            pending_indent = _indent(line)
            continue
        found.extend((t, number) for t in extract_candidates(value))
    return found


def scan_env_text(content: str) -> List[Tuple[str, int]]:
    found: List[Tuple[str, int]] = []
    for number, raw in _lines(content):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        match = _ENV_LINE.match(line)
        if match is None or "TOPIC" not in match.group(1).upper():
            continue
        found.extend((t, number) for t in extract_candidates(match.group(2)))
    return found


def scan_source_text(content: str) -> List[Tuple[str, int]]:
    """Quoted tokens on lines that mention ``topic`` or ``kafka``."""
    found: List[Tuple[str, int]] = []
    for number, line in _lines(content):
        trimmed = line.strip()
        if not trimmed or trimmed.startswith(("//", "#", "*")):
            continue
        lower = line.lower()
        if "topic" not in lower and "kafka" not in lower:
            continue
        for token in _QUOTED_TOKEN.findall(line):
            if is_likely_topic(token, line):
                found.append((token, number))
    return found


_EXTRACTORS = {
    ScanMode.CONFIG: (scan_config_text, OccurrenceSource.CONFIG),
    ScanMode.ENV: (scan_env_text, OccurrenceSource.ENV),
    ScanMode.SOURCE: (scan_source_text, OccurrenceSource.SOURCE_CODE),
}


class RepoScanner:
    """Filesystem scanner producing a :class:`ScanResult`."""

    def __init__(self, max_file_size: int = MAX_FILE_SIZE, skip_dirs: frozenset = SKIP_DIRS) -> None:
        self.max_file_size = max_file_size
        self.skip_dirs = frozenset(d.lower() for d in skip_dirs)

    def scan(self, repo_path: str | os.PathLike) -> ScanResult:
        raw = str(repo_path).strip()
        if not raw:
            raise ScanError(raw, "repo path is required")

        root = Path(raw).resolve()
        if not root.exists():
            raise ScanError(raw, "no such file or directory", not_found=True)
        if not root.is_dir():
            raise ScanError(raw, "is not a directory", not_found=True)

        topics: Dict[str, TopicReference] = {}
        files_scanned = 0
        for path in self._walk(root):
            mode = detect_mode(path)
            if mode is ScanMode.NONE:
                continue
            try:
                st = os.lstat(path)
                if not stat.S_ISREG(st.st_mode) or st.st_size > self.max_file_size:
                    continue
                with open(path, "rb") as fh:
                    content = fh.read().decode("utf-8", errors="replace")
            except OSError as exc:
                raise ScanError(path, str(exc)) from exc
            files_scanned += 1

            rel = Path(path).relative_to(root).as_posix()
            extractor, source = _EXTRACTORS[mode]
            for topic, line in extractor(content):
                ref = topics.setdefault(topic, TopicReference(name=topic))
                ref.add(Occurrence(file=rel, line=line, source=source))

        for ref in topics.values():
            ref.occurrences.sort(key=lambda o: o.sort_key())

        logger.info("scanned repo path=%s files=%d topics=%d", root, files_scanned, len(topics))
        return ScanResult(repo_path=str(root), files_scanned=files_scanned, topics=topics)

    def _walk(self, root: Path) -> Iterator[str]:
        def _raise(exc: OSError) -> None:
            raise ScanError(exc.filename or root, exc.strerror or str(exc)) from exc

        for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
            dirnames[:] = sorted(d for d in dirnames if d.lower() not in self.skip_dirs)
            for name in sorted(filenames):
                yield os.path.join(dirpath, name)
