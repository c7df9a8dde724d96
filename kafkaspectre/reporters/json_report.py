"""Plain JSON encoder."""
from __future__ import annotations

from typing import TextIO

from kafkaspectre.domain.models.audit import AuditResult
from kafkaspectre.domain.models.check import CheckResult
from kafkaspectre.reporters.base import Reporter, audit_payload, check_payload


class JSONReporter(Reporter):
    def __init__(self, stream: TextIO, pretty: bool = False) -> None:
        super().__init__(stream)
        self.pretty = pretty

    def generate_audit(self, result: AuditResult) -> None:
        self._write_json(audit_payload(result), indent=2 if self.pretty else None)

    def generate_check(self, result: CheckResult) -> None:
        self._write_json(check_payload(result), indent=2 if self.pretty else None)
