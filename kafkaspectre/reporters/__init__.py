"""Output encoders, selected by ``--output``."""
from __future__ import annotations

from typing import TextIO

from kafkaspectre.core.exceptions import UsageError
from kafkaspectre.reporters.base import Reporter
from kafkaspectre.reporters.json_report import JSONReporter
from kafkaspectre.reporters.sarif_report import SARIFReporter
from kafkaspectre.reporters.spectrehub_report import SpectreHubReporter
from kafkaspectre.reporters.text_report import TextReporter

OUTPUT_FORMATS = ("json", "sarif", "text", "spectrehub")


def get_reporter(
    output: str,
    stream: TextIO,
    *,
    bootstrap_server: str = "",
    repo: str = "",
    pretty: bool = False,
) -> Reporter:
    """Return the encoder for *output* (case-insensitive, blank means text)."""
    fmt = (output or "").strip().lower() or "text"
    if fmt == "json":
        return JSONReporter(stream, pretty=pretty)
    if fmt == "sarif":
        return SARIFReporter(stream, pretty=pretty)
    if fmt == "text":
        return TextReporter(stream, bootstrap_server=bootstrap_server, repo=repo)
    if fmt == "spectrehub":
        return SpectreHubReporter(stream, bootstrap_server=bootstrap_server)
    raise UsageError(
        f"invalid output format {output!r} (expected {', '.join(OUTPUT_FORMATS[:-1])} or {OUTPUT_FORMATS[-1]})"
    )


__all__ = [
    "JSONReporter",
    "OUTPUT_FORMATS",
    "Reporter",
    "SARIFReporter",
    "SpectreHubReporter",
    "TextReporter",
    "get_reporter",
]
