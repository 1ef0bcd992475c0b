"""
Shared Data Models
===================

Pydantic v2 models for findings and scan results.  Every analysis run
produces one :class:`ScanResult` per target, successful or not, so that
a batch can be reported as a whole.

Severity levels follow the CVSS v3.1 qualitative ratings.

References:
    - FIRST. (2019). Common Vulnerability Scoring System v3.1.
      https://www.first.org/cvss/v3.1/specification-document
    - SARIF v2.1.0 Specification (OASIS, 2020).
    - Pydantic v2 documentation. https://docs.pydantic.dev/latest/
"""

from __future__ import annotations

import datetime as _dt
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> _dt.datetime:
    return _dt.datetime.now(_dt.timezone.utc)


# ========================== Enumerations ===================================


class Severity(str, Enum):
    """Finding severity level, most severe first."""

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    INFO = "INFO"


# ========================== Core Models ====================================


class Finding(BaseModel):
    """A single security finding.

    Attributes:
        severity:       Qualitative severity rating.
        title:          Short, descriptive finding title.
        description:    Detailed explanation of the finding.
        evidence:       Raw data supporting the finding.
        recommendation: Suggested remediation action.
    """

    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
        extra="ignore",
    )

    severity: Severity = Field(..., description="Severity level of this finding")
    title: str = Field(..., min_length=1, max_length=256)
    description: str = Field(..., min_length=1)
    evidence: str = Field(default="")
    recommendation: str = Field(default="")


class ScanResult(BaseModel):
    """Result of analysing one target.

    A failed analysis keeps ``findings`` empty and records why in
    ``error`` and ``error_kind`` (the :class:`DecodeError` kind, or
    ``"io"`` / ``"too-large"``).

    Attributes:
        tool_name:  Name of the producing tool.
        target:     File path that was analysed.
        start_time: UTC timestamp when the analysis started.
        end_time:   UTC timestamp when the analysis ended.
        findings:   Individual findings.
        summary:    Human-readable summary text.
        error:      Failure message, if the target could not be analysed.
        error_kind: Machine-readable failure category.
        metadata:   Tool-specific result payload.
    """

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    tool_name: str = Field(..., min_length=1)
    target: str = Field(..., min_length=1)
    start_time: _dt.datetime = Field(default_factory=_utcnow)
    end_time: Optional[_dt.datetime] = None
    findings: list[Finding] = Field(default_factory=list)
    summary: str = ""
    error: Optional[str] = None
    error_kind: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """``True`` when the target was analysed without error."""
        return self.error is None

    @property
    def duration_seconds(self) -> float | None:
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time).total_seconds()

    @property
    def severity_counts(self) -> dict[str, int]:
        """Count of findings per severity, every level present."""
        counts: dict[str, int] = {s.value: 0 for s in Severity}
        for finding in self.findings:
            counts[finding.severity.value] += 1
        return counts

    @property
    def highest_severity(self) -> Severity | None:
        if not self.findings:
            return None
        order = list(Severity)
        return min((f.severity for f in self.findings), key=order.index)

    def add_finding(self, finding: Finding) -> None:
        self.findings.append(finding)

    def fail(self, error: str, kind: str) -> ScanResult:
        """Mark the analysis as failed and finish it."""
        self.error = error
        self.error_kind = kind
        self.summary = f"Analysis failed ({kind}): {error}"
        self.end_time = _utcnow()
        return self

    def finalize(self, summary: str | None = None) -> ScanResult:
        """Set *end_time* and *summary*, generating one from the findings."""
        self.end_time = _utcnow()
        if summary is not None:
            self.summary = summary
        else:
            parts = [
                f"{sev}: {cnt}" for sev, cnt in self.severity_counts.items() if cnt
            ]
            self.summary = (
                f"Scan complete. Findings: {len(self.findings)} "
                f"({', '.join(parts) if parts else 'none'})"
            )
        return self
