"""
kafkaspectre command line.

    kafkaspectre audit --bootstrap-server localhost:9092 --exclude-internal
    kafkaspectre check --bootstrap-server localhost:9092 --repo ./services --output sarif

Option precedence: explicit flag > config file > built-in default.
"""
from __future__ import annotations

import argparse
import logging
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence, TextIO

from kafkaspectre import __version__
from kafkaspectre.core.config import Settings, get_settings
from kafkaspectre.core.config_file import FileConfig, load_config, load_config_from_path, parse_duration
from kafkaspectre.core.errors import EXIT_SUCCESS, exit_code_for
from kafkaspectre.core.exceptions import FindingsError, ScanError, UsageError
from kafkaspectre.core.logs import setup_logging
from kafkaspectre.domain.models.cluster import ClusterMetadata
from kafkaspectre.domain.services.audit_service import AuditReconciler
from kafkaspectre.domain.services.check_service import CheckReconciler
from kafkaspectre.domain.services.exclude import normalize_patterns
from kafkaspectre.infra.kafka.inspector import SUPPORTED_MECHANISMS, KafkaConnection, KafkaInspector
from kafkaspectre.infra.scanner import RepoScanner
from kafkaspectre.reporters import OUTPUT_FORMATS, get_reporter

logger = logging.getLogger(__name__)

InspectorFactory = Callable[[KafkaConnection], KafkaInspector]


@dataclass
class RunOptions:
    """Fully resolved options for one ``audit`` or ``check`` run."""

    command: str
    bootstrap_server: str = ""
    auth_mechanism: str = ""
    username: str = ""
    password: str = ""
    tls: bool = False
    tls_cert: str = ""
    tls_key: str = ""
    tls_ca: str = ""
    output: str = "text"
    exclude_internal: bool = False
    exclude_topics: List[str] = field(default_factory=list)
    timeout: float = 10.0
    fail_on_findings: bool = False
    pretty: bool = False
    repo: str = ""

    def connection(self) -> KafkaConnection:
        return KafkaConnection(
            bootstrap_servers=self.bootstrap_server,
            auth_mechanism=self.auth_mechanism,
            username=self.username,
            password=self.password,
            tls=self.tls,
            tls_cert=self.tls_cert,
            tls_key=self.tls_key,
            tls_ca=self.tls_ca,
            timeout=self.timeout,
        )


# ---------- CLI ----------

def _duration_seconds(text: str) -> float:
    try:
        return parse_duration(text.strip()).total_seconds()
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _add_common_flags(ap: argparse.ArgumentParser) -> None:
    # Defaults are None so "flag not given" can fall back to the config file.
    ap.add_argument("--bootstrap-server", default=None,
                    help="Kafka bootstrap server(s) (host:port, comma-separated)")
    ap.add_argument("--auth-mechanism", default=None,
                    help=f"SASL mechanism ({', '.join(SUPPORTED_MECHANISMS)})")
    ap.add_argument("--username", default=None, help="SASL username")
    ap.add_argument("--password", default=None, help="SASL password")
    ap.add_argument("--tls", action=argparse.BooleanOptionalAction, default=None, help="Enable TLS")
    ap.add_argument("--tls-cert", default=None, help="Path to TLS client certificate")
    ap.add_argument("--tls-key", default=None, help="Path to TLS client private key")
    ap.add_argument("--tls-ca", default=None, help="Path to TLS CA certificate")
    ap.add_argument("--output", default=None,
                    help=f"Output format ({'|'.join(OUTPUT_FORMATS)}; default text)")
    ap.add_argument("--exclude-internal", action=argparse.BooleanOptionalAction, default=None,
                    help="Exclude internal (__*) topics from analysis")
    ap.add_argument("--exclude-topics", action="append", default=None, metavar="PATTERNS",
                    help="Exclude topics by name or glob pattern (repeatable, comma-separated)")
    ap.add_argument("--timeout", type=_duration_seconds, default=None,
                    help="Kafka query timeout (for example: 10s, 1m)")
    ap.add_argument("--config", default=None, help="Explicit config file path")
    ap.add_argument("--fail-on-findings", action="store_true",
                    help="Exit with status 1 when findings are reported")
    ap.add_argument("--pretty", action="store_true", help="Indent json and sarif output")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="kafkaspectre",
        description="KafkaSpectre audits Kafka clusters for unused topics",
        allow_abbrev=False,
    )
    ap.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    sub = ap.add_subparsers(dest="command", required=True)

    audit = sub.add_parser("audit", help="Audit a Kafka cluster for unused topics", allow_abbrev=False)
    _add_common_flags(audit)

    check = sub.add_parser(
        "check", help="Scan a repository for topic references and compare with Kafka", allow_abbrev=False
    )
    check.add_argument("--repo", required=True, help="Path to repository to scan for topic references")
    _add_common_flags(check)

    sub.add_parser("version", help="Print version information")
    return ap


# ---------- option resolution ----------

def _split_patterns(values: Optional[Sequence[str]]) -> Optional[List[str]]:
    if values is None:
        return None
    return [part for value in values for part in value.split(",")]


def resolve_options(
    args: argparse.Namespace, file_config: Optional[FileConfig], settings: Settings
) -> RunOptions:
    """Merge flags, config-file values and defaults into :class:`RunOptions`."""
    cfg = file_config or FileConfig()

    def pick(flag: Optional[str], from_file: str, default: str = "") -> str:
        if flag is not None:
            return flag
        return from_file if from_file.strip() else default

    opts = RunOptions(command=args.command)
    opts.bootstrap_server = pick(args.bootstrap_server, cfg.bootstrap_servers)
    opts.auth_mechanism = pick(args.auth_mechanism, cfg.auth_mechanism)
    opts.output = pick(args.output, cfg.format, "text")
    opts.username = args.username or settings.sasl_username or ""
    opts.password = args.password or settings.sasl_password or ""
    opts.tls = bool(args.tls)
    opts.tls_cert = args.tls_cert or ""
    opts.tls_key = args.tls_key or ""
    opts.tls_ca = args.tls_ca or ""
    opts.fail_on_findings = bool(args.fail_on_findings)
    opts.pretty = bool(args.pretty)
    opts.repo = getattr(args, "repo", "") or ""

    if args.exclude_internal is not None:
        opts.exclude_internal = args.exclude_internal
    elif cfg.exclude_internal is not None:
        opts.exclude_internal = cfg.exclude_internal

    patterns = _split_patterns(args.exclude_topics)
    if patterns is None and cfg.exclude_topics:
        patterns = list(cfg.exclude_topics)
    opts.exclude_topics = normalize_patterns(patterns or [])

    opts.timeout = 0.0
    if args.timeout is not None:
        opts.timeout = args.timeout
    elif cfg.has_timeout:
        opts.timeout = cfg.timeout.total_seconds()
    # zero means "not set", whichever layer it came from
    if opts.timeout == 0:
        opts.timeout = settings.default_timeout_sec
    return opts


def validate_options(opts: RunOptions) -> None:
    """Raise :class:`UsageError` (or :class:`ScanError`) for unusable options."""
    if not opts.bootstrap_server.strip():
        raise UsageError("bootstrap-server is required")
    output = opts.output.strip().lower() or "text"
    if output not in OUTPUT_FORMATS:
        raise UsageError(
            f"invalid output format {opts.output!r} (expected {', '.join(OUTPUT_FORMATS)})"
        )
    opts.output = output
    if opts.auth_mechanism:
        if opts.auth_mechanism.upper() not in SUPPORTED_MECHANISMS:
            raise UsageError(f"unsupported SASL mechanism: {opts.auth_mechanism}")
        if not opts.username or not opts.password:
            raise UsageError("auth-mechanism requires both --username and --password")
    if bool(opts.tls_cert) != bool(opts.tls_key):
        raise UsageError("--tls-cert and --tls-key must be provided together")
    if opts.timeout <= 0:
        raise UsageError("timeout must be greater than zero")
    if opts.command == "check":
        if not opts.repo.strip():
            raise UsageError("repo path is required")
        repo = Path(opts.repo)
        if not repo.exists():
            raise ScanError(opts.repo, "no such file or directory", not_found=True)
        if not repo.is_dir():
            raise ScanError(opts.repo, "is not a directory", not_found=True)


def _load_file_config(explicit: Optional[str]) -> Optional[FileConfig]:
    if explicit:
        cfg = load_config_from_path(explicit)
        logger.debug("loaded defaults from config path=%s", explicit)
        return cfg
    found = load_config()
    return found[0] if found else None


# ---------- commands ----------

def _fetch(opts: RunOptions, inspector_factory: InspectorFactory) -> ClusterMetadata:
    with inspector_factory(opts.connection()) as inspector:
        return inspector.fetch()


def _log_completed(command: str, metadata: ClusterMetadata, started: float) -> None:
    logger.info(
        "%s completed topic_count=%d partition_count=%d consumer_group_count=%d duration=%.2fs",
        command, len(metadata.topics), metadata.partition_count(),
        len(metadata.consumer_groups), time.monotonic() - started,
    )


def run_audit(opts: RunOptions, stream: TextIO, inspector_factory: InspectorFactory = KafkaInspector) -> int:
    """Run ``audit``; returns the number of findings (unused topics)."""
    started = time.monotonic()
    metadata = _fetch(opts, inspector_factory)
    result = AuditReconciler().reconcile(metadata, opts.exclude_internal, opts.exclude_topics)
    reporter = get_reporter(
        opts.output, stream, bootstrap_server=opts.bootstrap_server, pretty=opts.pretty
    )
    reporter.generate_audit(result)
    _log_completed("audit", metadata, started)
    return result.unused_count


def run_check(
    opts: RunOptions,
    stream: TextIO,
    inspector_factory: InspectorFactory = KafkaInspector,
    scanner: Optional[RepoScanner] = None,
) -> int:
    """Run ``check``; returns the number of non-OK findings."""
    started = time.monotonic()
    metadata = _fetch(opts, inspector_factory)
    scan = (scanner or RepoScanner()).scan(opts.repo)
    result = CheckReconciler().reconcile(scan, metadata, opts.exclude_internal, opts.exclude_topics)
    reporter = get_reporter(
        opts.output, stream, bootstrap_server=opts.bootstrap_server, repo=opts.repo, pretty=opts.pretty
    )
    reporter.generate_check(result)
    _log_completed("check", metadata, started)
    return result.issue_count


# ---------- entry ----------

def main(
    argv: Optional[Sequence[str]] = None,
    *,
    stdout: Optional[TextIO] = None,
    inspector_factory: InspectorFactory = KafkaInspector,
) -> int:
    """Console entry point; returns the process exit code."""
    ap = build_parser()
    args = ap.parse_args(argv)
    setup_logging(args.verbose)
    stream = stdout or sys.stdout

    if args.command == "version":
        stream.write(f"version: {__version__}\n")
        return EXIT_SUCCESS

    try:
        file_config = _load_file_config(args.config)
        opts = resolve_options(args, file_config, get_settings())
        validate_options(opts)
        if opts.command == "audit":
            findings = run_audit(opts, stream, inspector_factory)
        else:
            findings = run_check(opts, stream, inspector_factory)
        if opts.fail_on_findings and findings > 0:
            raise FindingsError(findings)
    except Exception as exc:  # noqa: BLE001 - mapped to an exit code
        code = exit_code_for(exc)
        logger.error("command failed: %s", exc, exc_info=args.verbose)
        if not isinstance(exc, FindingsError):
            sys.stderr.write(
                "Tip: Use 'kafkaspectre --help' for usage information "
                "or consult the documentation for error codes.\n"
            )
        return code
    return EXIT_SUCCESS


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
