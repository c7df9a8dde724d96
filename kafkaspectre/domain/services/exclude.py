"""Exclude-topic glob handling.

Pattern syntax, matched case-sensitively against the whole topic name:

    *        any run of characters except ``/``
    ?        any single character except ``/``
    [abc]    character class; ranges as ``[a-z]``, negated as ``[^a-z]``
    \\c       the literal character ``c``

``!`` has no special meaning inside a class. An empty class, an unescaped
``-`` or ``]`` where a class member is expected, an unterminated class and
a trailing backslash are all rejected. A reversed range such as ``[z-a]``
is legal and matches nothing.
"""
from __future__ import annotations

import re
from functools import lru_cache
from typing import Iterable, List, Tuple

from kafkaspectre.core.exceptions import InvalidPatternError


def _class_member(pattern: str, i: int) -> Tuple[str, int]:
    n = len(pattern)
    if i >= n:
        raise InvalidPatternError(pattern, "unterminated character class")
    ch = pattern[i]
    if ch in "-]":
        raise InvalidPatternError(pattern, f"unexpected {ch!r} in character class")
    if ch == "\\":
        i += 1
        if i >= n:
            raise InvalidPatternError(pattern, "unterminated character class")
        ch = pattern[i]
    i += 1
    # a member is always followed by at least the closing ]
    if i >= n:
        raise InvalidPatternError(pattern, "unterminated character class")
    return ch, i


def _translate_class(pattern: str, i: int) -> Tuple[str, int]:
    """Translate the class starting after ``[`` at *i*; return (regex, next index)."""
    negate = i < len(pattern) and pattern[i] == "^"
    if negate:
        i += 1

    members: List[str] = []
    count = 0
    while True:
        if i < len(pattern) and pattern[i] == "]" and count > 0:
            i += 1
            break
        lo, i = _class_member(pattern, i)
        hi = lo
        if pattern[i] == "-":
            hi, i = _class_member(pattern, i + 1)
        count += 1
        if lo == hi:
            members.append(re.escape(lo))
        elif lo < hi:
            members.append(f"{re.escape(lo)}-{re.escape(hi)}")

    if not members:
        # only reversed ranges
        return (r"[\s\S]" if negate else "(?!)"), i
    return f"[{'^' if negate else ''}{''.join(members)}]", i


def translate(pattern: str) -> str:
    """Return a regular expression equivalent to the glob *pattern*.

    Raises
    ------
    InvalidPatternError
        When *pattern* is malformed.
    """
    out: List[str] = []
    i, n = 0, len(pattern)
    while i < n:
        ch = pattern[i]
        if ch == "*":
            out.append("[^/]*")
            i += 1
        elif ch == "?":
            out.append("[^/]")
            i += 1
        elif ch == "\\":
            if i + 1 >= n:
                raise InvalidPatternError(pattern, "trailing backslash")
            out.append(re.escape(pattern[i + 1]))
            i += 2
        elif ch == "[":
            regex, i = _translate_class(pattern, i + 1)
            out.append(regex)
        else:
            out.append(re.escape(ch))
            i += 1
    return "".join(out)


@lru_cache(maxsize=256)
def compile_pattern(pattern: str) -> "re.Pattern[str]":
    return re.compile(translate(pattern))


def normalize_patterns(patterns: Iterable[str]) -> List[str]:
    """Trim, drop blanks and validate every pattern.

    Raises
    ------
    InvalidPatternError
        For the first malformed glob; no partial result is returned.
    """
    normalized: List[str] = []
    for raw in patterns:
        pattern = raw.strip()
        if not pattern:
            continue
        compile_pattern(pattern)
        normalized.append(pattern)
    return normalized


def matches(topic: str, patterns: Iterable[str]) -> bool:
    """True when any pattern matches *topic*; malformed patterns never match."""
    for pattern in patterns:
        try:
            regex = compile_pattern(pattern)
        except InvalidPatternError:
            continue
        if regex.fullmatch(topic):
            return True
    return False
