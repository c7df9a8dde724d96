"""Loader for `.kafkaspectre.yaml` default files.

The file format is a deliberately small YAML-like subset:

* ``key: value`` lines, ``#`` comments outside quotes, blank lines ignored.
* Scalars may be bare, ``'single quoted'`` (taken verbatim) or
  ``"double quoted"`` (Go string literal escapes: ``\\n``, ``\\xHH``, ``\\u00e9``, ...).
* ``exclude_topics`` also takes an inline ``[a, "b"]`` list or an indented
  block list of ``- item`` lines.

Anything outside that grammar is rejected with a line-numbered
:class:`ConfigParseError`; a general YAML parser would silently accept it.
"""
from __future__ import annotations

import logging
import re
from datetime import timedelta
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from kafkaspectre.core.exceptions import ConfigError, ConfigParseError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".kafkaspectre.yaml"
ALTERNATE_FILE_NAME = ".kafkaspectre.yml"

_KNOWN_KEYS = frozenset(
    {"bootstrap_servers", "auth_mechanism", "exclude_topics", "exclude_internal", "format", "timeout"}
)

_TRUE = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE = frozenset({"0", "f", "F", "FALSE", "false", "False"})

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")
_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


class FileConfig(BaseModel):
    """Defaults read from a config file.

    Attributes
    ----------
    exclude_topics : list[str] | None
        ``None`` when the key is absent *or* every entry was blank.
    exclude_internal : bool | None
        ``None`` when the key is absent, so the CLI default stays in force.
    timeout : timedelta | None
        ``None`` when the key is absent.
    """

    model_config = ConfigDict(frozen=True)

    bootstrap_servers: str = ""
    auth_mechanism: str = ""
    exclude_topics: Optional[List[str]] = None
    exclude_internal: Optional[bool] = None
    format: str = ""
    timeout: Optional[timedelta] = None

    @property
    def has_timeout(self) -> bool:
        return self.timeout is not None


# --------------------------------------------------------------------------- #
# Discovery                                                                   #
# --------------------------------------------------------------------------- #
def candidate_paths(cwd: Path, home: Path | None) -> list[Path]:
    """Return the ordered, de-duplicated search list for *cwd* and *home*."""
    paths = [cwd / CONFIG_FILE_NAME, cwd / ALTERNATE_FILE_NAME]
    if home is not None and str(home):
        for path in (home / CONFIG_FILE_NAME, home / ALTERNATE_FILE_NAME):
            if path not in paths:
                paths.append(path)
    return paths


def default_paths(cwd: Path | None = None, home: Path | None = None) -> list[Path]:
    """Search list for *cwd* and *home*, resolved from the process when omitted."""
    if cwd is None:
        cwd = Path.cwd()
    if home is None:
        try:
            home = Path.home()
        except RuntimeError:
            home = None
    return candidate_paths(cwd, home)


def find_config(paths: Iterable[Path]) -> Optional[Tuple[FileConfig, Path]]:
    """Load the first existing file in *paths*; ``None`` when there is none."""
    for path in paths:
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            continue
        except (OSError, UnicodeDecodeError) as exc:
            raise ConfigError(f"read config {str(path)!r}: {exc}") from exc
        return _parse_file(path, text), path
    return None


def load_config(cwd: Path | None = None, home: Path | None = None) -> Optional[Tuple[FileConfig, Path]]:
    """Auto-discover a config file under *cwd*, then *home*."""
    found = find_config(default_paths(cwd, home))
    if found is not None:
        logger.debug("loaded defaults from config path=%s", found[1])
    return found


def load_config_from_path(path: str | Path) -> FileConfig:
    """Load an explicitly named config file; a missing file is an error."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"read config {str(path)!r}: {exc}") from exc
    return _parse_file(path, text)


def _parse_file(path: Path, text: str) -> FileConfig:
    try:
        return parse_config(text)
    except ConfigParseError as exc:
        raise ConfigParseError(exc.line, exc.message, path=path) from exc


# --------------------------------------------------------------------------- #
# Parsing                                                                     #
# --------------------------------------------------------------------------- #
def parse_config(text: str) -> FileConfig:
    """Parse config *text*; raises :class:`ConfigParseError` on any problem."""
    text = text.removeprefix("\ufeff")
    lines = text.split("\n")
    values: dict = {}
    excludes: list[str] = []

    i = 0
    while i < len(lines):
        line_no = i + 1
        line = _strip_comment(lines[i].rstrip("\r"))
        trimmed = line.strip()
        if not trimmed:
            i += 1
            continue

        if trimmed.startswith("-"):
            raise ConfigParseError(line_no, "unexpected list item")

        key, sep, value = line.partition(":")
        if not sep:
            raise ConfigParseError(line_no, "expected key: value")
        key = key.strip()
        value = value.strip()

        if key not in _KNOWN_KEYS:
            raise ConfigParseError(line_no, f"unknown key {key!r}")

        if key == "exclude_topics" and not value:
            items, i = _parse_block_list(lines, i + 1, _indent(line))
            excludes.extend(items)
            continue

        try:
            if key == "exclude_topics":
                excludes.extend(_parse_inline_list(value))
            elif key == "exclude_internal":
                values[key] = parse_bool(_parse_scalar(value).strip())
            elif key == "timeout":
                values[key] = parse_duration(_parse_scalar(value).strip())
            elif key == "format":
                values[key] = _parse_scalar(value).strip().lower()
            else:
                values[key] = _parse_scalar(value).strip()
        except ValueError as exc:
            raise ConfigParseError(line_no, f"parse {key}: {exc}") from exc
        i += 1

    cleaned = [item.strip() for item in excludes if item.strip()]
    if cleaned:
        values["exclude_topics"] = cleaned
    return FileConfig(**values)


def _parse_block_list(lines: list[str], start: int, key_indent: int) -> tuple[list[str], int]:
    """Consume ``- item`` lines indented deeper than the key.

    Returns the items and the index of the first line that is not part of
    the block, which the caller reprocesses as a top-level line.
    """
    items: list[str] = []
    for i in range(start, len(lines)):
        line_no = i + 1
        line = _strip_comment(lines[i].rstrip("\r"))
        if not line.strip():
            continue
        if _indent(line) <= key_indent:
            return items, i

        item = line.lstrip(" \t")
        if not item.startswith("-"):
            raise ConfigParseError(line_no, "invalid list item for exclude_topics")
        item = item[1:].strip()
        if not item:
            raise ConfigParseError(line_no, "empty list item for exclude_topics")
        try:
            items.append(_parse_scalar(item))
        except ValueError as exc:
            raise ConfigParseError(line_no, f"parse exclude_topics item: {exc}") from exc
    return items, len(lines)


def _parse_inline_list(value: str) -> list[str]:
    value = value.strip()
    if not value:
        return []
    # a bare scalar is shorthand for a one-element list
    if not value.startswith("["):
        return [_parse_scalar(value)]
    if not value.endswith("]"):
        raise ValueError("inline list must end with ]")

    inner = value[1:-1].strip()
    if not inner:
        return []
    return [_parse_scalar(part) for part in _split_csv(inner)]


def _split_csv(text: str) -> list[str]:
    """Split on commas outside quotes; backslash escapes only inside ``"``."""
    parts: list[str] = []
    current: list[str] = []
    in_single = in_double = escaped = False

    for ch in text:
        if escaped:
            current.append(ch)
            escaped = False
        elif ch == "\\" and in_double:
            current.append(ch)
            escaped = True
        elif ch == "'" and not in_double:
            in_single = not in_single
            current.append(ch)
        elif ch == '"' and not in_single:
            in_double = not in_double
            current.append(ch)
        elif ch == "," and not in_single and not in_double:
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)

    if in_single or in_double:
        raise ValueError("unterminated quoted string in inline list")
    parts.append("".join(current))
    return parts


def _parse_scalar(value: str) -> str:
    value = value.strip()
    if not value:
        return ""

    if len(value) >= 2 and value[0] == '"' and value[-1] == '"':
        return _unquote_double(value[1:-1])

    if len(value) >= 2 and value[0] == "'" and value[-1] == "'":
        return value[1:-1]

    if value[0] in "'\"" or value[-1] in "'\"":
        raise ValueError("unterminated quoted string")
    return value


_SIMPLE_ESCAPES = {
    "a": "\a", "b": "\b", "f": "\f", "n": "\n", "r": "\r",
    "t": "\t", "v": "\v", "\\": "\\", '"': '"',
}
_HEX_WIDTH = {"x": 2, "u": 4, "U": 8}
_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")
_OCT_DIGITS = frozenset("01234567")


def _unquote_double(body: str) -> str:
    """Unescape the inside of a double-quoted scalar (Go string literal rules).

    ``\\xHH`` and ``\\ooo`` denote raw bytes, so ``"\\xc3\\xa9"`` reads as ``é``.
    """
    out = bytearray()
    i, n = 0, len(body)
    while i < n:
        ch = body[i]
        if ch == '"':
            raise ValueError("invalid double-quoted string: unescaped quote")
        if ch != "\\":
            out += ch.encode("utf-8")
            i += 1
            continue
        if i + 1 >= n:
            raise ValueError("invalid double-quoted string: trailing backslash")
        esc = body[i + 1]
        i += 2
        if esc in _SIMPLE_ESCAPES:
            out += _SIMPLE_ESCAPES[esc].encode("utf-8")
        elif esc in _HEX_WIDTH:
            width = _HEX_WIDTH[esc]
            digits = body[i : i + width]
            if len(digits) != width or not _HEX_DIGITS.issuperset(digits):
                raise ValueError(f"invalid double-quoted string: bad \\{esc} escape")
            code = int(digits, 16)
            i += width
            if esc == "x":
                out.append(code)
            elif code > 0x10FFFF or 0xD800 <= code <= 0xDFFF:
                raise ValueError(f"invalid double-quoted string: invalid code point \\{esc}{digits}")
            else:
                out += chr(code).encode("utf-8")
        elif esc in _OCT_DIGITS:
            digits = body[i - 1 : i + 2]
            if len(digits) != 3 or not _OCT_DIGITS.issuperset(digits) or int(digits, 8) > 0xFF:
                raise ValueError(f"invalid double-quoted string: bad octal escape \\{digits}")
            out.append(int(digits, 8))
            i += 2
        else:
            raise ValueError(f"invalid double-quoted string: unknown escape \\{esc}")
    return out.decode("utf-8", errors="replace")


def _strip_comment(line: str) -> str:
    in_single = in_double = escaped = False
    for i, ch in enumerate(line):
        if escaped:
            escaped = False
        elif ch == "\\" and in_double:
            escaped = True
        elif ch == "'" and not in_double:
            in_single = not in_single
        elif ch == '"' and not in_single:
            in_double = not in_double
        elif ch == "#" and not in_single and not in_double:
            return line[:i]
    return line


def _indent(line: str) -> int:
    """Leading indentation width; a tab counts as two spaces."""
    width = 0
    for ch in line:
        if ch == " ":
            width += 1
        elif ch == "\t":
            width += 2
        else:
            break
    return width


def parse_bool(text: str) -> bool:
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(f"invalid boolean {text!r}")


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``30s``, ``1m30s``, ``1.5h`` or ``500ms``."""
    original = text
    sign = 1.0
    if text[:1] in ("+", "-"):
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]
    if text == "0":
        return timedelta(0)
    if not text:
        raise ValueError(f"invalid duration {original!r}")

    total = 0.0
    pos = 0
    while pos < len(text):
        match = _DURATION_PART.match(text, pos)
        if match is None:
            raise ValueError(f"invalid duration {original!r}")
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()
    return timedelta(seconds=sign * total)
