"""
callgate - Reporting and output formatting.

Handles:
- Finding dataclass (a diagnostic tied to a file)
- Human-readable output
- JSON output
"""

from __future__ import annotations

import json
from dataclasses import dataclass, asdict, field
from typing import Optional

from .diagnostics import Diagnostic


@dataclass
class Finding:
    """A single lint finding."""
    rule_id: str
    severity: str  # "ERROR", "WARN"
    path: str
    line: int
    col: int
    message: str
    end_line: int = 0
    end_col: int = 0
    details: list[str] = field(default_factory=list)
    symbol: Optional[str] = None

    @classmethod
    def from_diagnostic(
        cls,
        path: str,
        diagnostic: Diagnostic,
        rule_id: str = "FORBIDDEN_FUNCTION",
        severity: str = "ERROR",
        symbol: Optional[str] = None,
    ) -> "Finding":
        rng = diagnostic.display_range
        return cls(
            rule_id=rule_id,
            severity=severity,
            path=path,
            line=rng.start.row,
            col=rng.start.column,
            end_line=rng.end.row,
            end_col=rng.end.column,
            message=diagnostic.message,
            details=list(diagnostic.details),
            symbol=symbol,
        )

    def __str__(self) -> str:
        loc = f"{self.path}:{self.line}:{self.col}"
        sym = f" [{self.symbol}]" if self.symbol else ""
        return f"{self.severity} {self.rule_id} {loc}{sym} - {self.message}"


class Reporter:
    """Collects and formats findings."""

    def __init__(self) -> None:
        self.findings: list[Finding] = []

    def add(self, finding: Finding) -> None:
        """Add a finding."""
        self.findings.append(finding)

    @property
    def errors(self) -> list[Finding]:
        return [f for f in self.findings if f.severity == "ERROR"]

    @property
    def warnings(self) -> list[Finding]:
        return [f for f in self.findings if f.severity == "WARN"]

    def render_human(self) -> str:
        """Render findings as human-readable text, grouped by file in source order."""
        if not self.findings:
            return "callgate: OK - no findings"

        sorted_findings = sorted(self.findings, key=lambda f: (f.path, f.line, f.col))

        lines = [
            "callgate",
            f"Errors: {len(self.errors)}  Warnings: {len(self.warnings)}",
            "",
        ]

        for f in sorted_findings:
            lines.append(str(f))
            for detail in f.details:
                for detail_line in detail.splitlines():
                    lines.append(f"    {detail_line}")

        return "\n".join(lines)

    def render_json(self) -> str:
        """Render findings as JSON."""
        return json.dumps(
            [asdict(f) for f in self.findings],
            indent=2,
            default=str,
        )
