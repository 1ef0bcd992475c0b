"""
ElfGuard Console Output
========================

Rich-powered terminal display for ElfGuard results: a header panel, the
hardening table, and (on request) the program and section header tables.

Uses the ToolConsole abstraction for consistent styling.

References:
    - Rich library: https://github.com/Textualize/rich
"""

from __future__ import annotations

from rich.panel import Panel
from rich.table import Table

from shared.console import ToolConsole
from shared.models import ScanResult

from elfguard.core.models import (
    ElfSummary,
    HardeningReport,
    RelroLevel,
    SecurityOptions,
    SectionInfo,
    SegmentInfo,
)


_RELRO_STYLES: dict[RelroLevel, str] = {
    RelroLevel.FULL: "bright_green",
    RelroLevel.PARTIAL: "yellow",
    RelroLevel.NONE: "bright_red",
}


def _enabled(flag: bool) -> str:
    if flag:
        return "[bright_green]Enabled[/bright_green]"
    return "[bright_red]Disabled[/bright_red]"


def _flags_style(flags: str) -> str:
    """Highlight writable-and-executable mappings."""
    if "W" in flags and "X" in flags:
        return f"[bold bright_red]{flags}[/bold bright_red]"
    return flags


# ---------------------------------------------------------------------------
# ElfGuardConsoleOutput
# ---------------------------------------------------------------------------

class ElfGuardConsoleOutput:
    """Rich terminal display for ElfGuard analysis results.

    Usage::

        output = ElfGuardConsoleOutput()
        output.display(report, show_tables=True)
    """

    def __init__(self, console: ToolConsole | None = None) -> None:
        self._console: ToolConsole = console or ToolConsole()

    def display(self, report: HardeningReport, *, show_tables: bool = False) -> None:
        """Display one file's report.

        Args:
            report: The HardeningReport to render.
            show_tables: Also render the segment and section tables.
        """
        self._console.section(f"ElfGuard -- {report.summary.path or 'ELF image'}")
        self.display_header(report.summary)

        if report.options is not None:
            self.display_options(report.options)

        if show_tables:
            if report.segments:
                self.display_segments(report.segments)
            if report.sections:
                self.display_sections(report.sections)

    def display_header(self, summary: ElfSummary) -> None:
        """Display header metadata panel."""
        lines: list[str] = [
            f"[bold]File:[/bold]         {summary.path}",
            f"[bold]Size:[/bold]         {summary.size:,} bytes ({summary.size / 1024:.1f} KiB)",
            f"[bold]Class:[/bold]        {summary.elf_class} ({summary.bits}-bit, {summary.endian}-endian)",
            f"[bold]Type:[/bold]         {summary.object_type}",
            f"[bold]Machine:[/bold]      {summary.machine}",
            f"[bold]OS/ABI:[/bold]       {summary.osabi}",
            f"[bold]Entry Point:[/bold]  0x{summary.entry_point:x}",
            f"[bold]Segments:[/bold]     {summary.phnum}",
            f"[bold]Sections:[/bold]     {summary.shnum} (names at index {summary.shstrndx})",
        ]

        panel = Panel(
            "\n".join(lines),
            title="[bold bright_cyan]ELF Header[/bold bright_cyan]",
            border_style="bright_cyan",
            padding=(1, 2),
        )
        self._console.rich.print(panel)
        self._console.blank()

    def display_options(self, options: SecurityOptions) -> None:
        """Display the four hardening facts."""
        relro_style = _RELRO_STYLES[options.relro]
        self._console.table(
            "Hardening",
            ["Mitigation", "Status"],
            [
                ("Stack canary", _enabled(options.canary)),
                ("NX (non-executable stack)", _enabled(options.nx)),
                ("RELRO", f"[{relro_style}]{options.relro.value.capitalize()}[/{relro_style}]"),
                ("PIE", _enabled(options.pie)),
            ],
            styles=["bold", ""],
        )
        self._console.blank()

    def display_segments(self, segments: list[SegmentInfo]) -> None:
        """Display the program header table."""
        self._console.section("Program Headers")

        tbl = Table(
            border_style="bright_cyan",
            header_style="bold bright_magenta",
            show_lines=False,
            padding=(0, 1),
        )
        tbl.add_column("#", style="dim", width=4, justify="right")
        tbl.add_column("Type", style="bold", min_width=12)
        tbl.add_column("Offset", justify="right")
        tbl.add_column("VAddr", justify="right")
        tbl.add_column("FileSz", justify="right")
        tbl.add_column("MemSz", justify="right")
        tbl.add_column("Flags")
        tbl.add_column("Align", justify="right")

        for i, seg in enumerate(segments):
            tbl.add_row(
                str(i),
                seg.type,
                f"0x{seg.offset:x}",
                f"0x{seg.vaddr:x}",
                f"0x{seg.filesz:x}",
                f"0x{seg.memsz:x}",
                _flags_style(seg.flags),
                f"0x{seg.align:x}",
            )

        self._console.rich.print(tbl)
        self._console.blank()

    def display_sections(self, sections: list[SectionInfo]) -> None:
        """Display the section header table with resolved names."""
        self._console.section("Section Headers")

        tbl = Table(
            border_style="bright_cyan",
            header_style="bold bright_magenta",
            show_lines=False,
            padding=(0, 1),
        )
        tbl.add_column("#", style="dim", width=4, justify="right")
        tbl.add_column("Name", style="bold", min_width=12)
        tbl.add_column("Type")
        tbl.add_column("Addr", justify="right")
        tbl.add_column("Offset", justify="right")
        tbl.add_column("Size", justify="right")
        tbl.add_column("Flags")

        for i, sec in enumerate(sections):
            tbl.add_row(
                str(i),
                sec.name or "<unnamed>",
                sec.type,
                f"0x{sec.addr:x}",
                f"0x{sec.offset:x}",
                f"{sec.size:,}",
                _flags_style(sec.flags),
            )

        self._console.rich.print(tbl)
        self._console.blank()

    def display_batch_summary(self, scans: list[ScanResult]) -> None:
        """One row per analysed file, failures included."""
        rows = []
        for scan in scans:
            if scan.ok:
                status = "[tool.success]ok[/tool.success]"
                detail = scan.summary
            else:
                status = f"[tool.error]{scan.error_kind}[/tool.error]"
                detail = scan.error or ""
            rows.append((scan.target, status, len(scan.findings), detail))

        self._console.table(
            "Summary",
            ["File", "Status", "Findings", "Detail"],
            rows,
            styles=["bold", "", "", "dim"],
        )
