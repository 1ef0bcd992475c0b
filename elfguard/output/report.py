"""
ElfGuard Report Generator
==========================

Writes ElfGuard results as a structured JSON document suitable for CI
gates and downstream tooling.  One report covers a whole batch: every
analysed file appears with its hardening facts and findings, or with the
reason it could not be analysed.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from shared.models import ScanResult

REPORT_TYPE = "elfguard_hardening"
REPORT_VERSION = "1.0.0"


class ElfGuardReportGenerator:
    """Builds and writes JSON hardening reports.

    Usage::

        gen = ElfGuardReportGenerator()
        path = gen.generate_json(scans, "hardening.json")
    """

    def build(self, scans: list[ScanResult]) -> dict[str, Any]:
        """Assemble the report document for *scans*."""
        files: list[dict[str, Any]] = []
        for scan in scans:
            entry: dict[str, Any] = {
                "target": scan.target,
                "ok": scan.ok,
                "summary": scan.summary,
                "duration_seconds": scan.duration_seconds,
            }
            if scan.ok:
                analysis = scan.metadata.get("elf_analysis", {})
                entry["header"] = analysis.get("summary", {})
                entry["options"] = analysis.get("options")
                entry["segments"] = analysis.get("segments", [])
                entry["sections"] = analysis.get("sections", [])
                entry["findings"] = [
                    f.model_dump(mode="json") for f in scan.findings
                ]
                entry["severity_counts"] = scan.severity_counts
            else:
                entry["error"] = {"kind": scan.error_kind, "message": scan.error}
            files.append(entry)

        return {
            "report_type": REPORT_TYPE,
            "version": REPORT_VERSION,
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "file_count": len(scans),
            "failed_count": sum(1 for s in scans if not s.ok),
            "files": files,
        }

    def render_json(self, scans: list[ScanResult]) -> str:
        return json.dumps(self.build(scans), indent=2, default=str)

    def generate_json(self, scans: list[ScanResult], output_path: str | Path) -> str:
        """Write the JSON report for *scans* to *output_path*.

        Returns:
            The absolute path of the generated report.
        """
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.render_json(scans), encoding="utf-8")
        return str(path.resolve())
