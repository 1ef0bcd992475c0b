"""
Console Interface
==================

Rich-powered console abstraction giving every component the same
section headers, status messages and table styling.

References:
    - Rich library: https://github.com/Textualize/rich
"""

from __future__ import annotations

from typing import Any, Sequence

from rich.console import Console
from rich.table import Table
from rich.theme import Theme

_TOOL_THEME = Theme(
    {
        "tool.section": "bold bright_magenta",
        "tool.success": "bold green",
        "tool.warning": "bold yellow",
        "tool.error": "bold red",
        "tool.info": "bold bright_blue",
        "tool.dim": "dim white",
        "tool.critical": "bold white on red",
        "tool.high": "bold red",
        "tool.medium": "bold yellow",
        "tool.low": "bold bright_cyan",
        "tool.informational": "bold bright_blue",
    }
)

_SEVERITY_STYLES: dict[str, str] = {
    "CRITICAL": "tool.critical",
    "HIGH": "tool.high",
    "MEDIUM": "tool.medium",
    "LOW": "tool.low",
    "INFO": "tool.informational",
}


def severity_markup(severity: str) -> str:
    """Wrap a severity name in its theme style."""
    style = _SEVERITY_STYLES.get(severity)
    return f"[{style}]{severity}[/{style}]" if style else severity


class ToolConsole:
    """Unified console wrapper.

    Usage::

        con = ToolConsole()
        con.section("Hardening")
        con.success("Analysis complete")
    """

    def __init__(
        self,
        *,
        quiet: bool = False,
        record: bool = False,
        stderr: bool = False,
    ) -> None:
        """Initialise the console.

        Args:
            quiet:  Suppress all output (useful in library / test mode).
            record: Enable Rich recording for later export.
            stderr: Write to stderr instead of stdout.
        """
        self._console = Console(
            theme=_TOOL_THEME,
            quiet=quiet,
            record=record,
            stderr=stderr,
            highlight=False,
        )

    @property
    def rich(self) -> Console:
        """Direct access to the underlying Rich Console instance."""
        return self._console

    # ------------------------------------------------------------------ #
    #  Section header
    # ------------------------------------------------------------------ #

    def section(self, title: str) -> None:
        self._console.rule(f"  {title}  ", style="tool.section", characters="─")
        self._console.print()

    # ------------------------------------------------------------------ #
    #  Message helpers
    # ------------------------------------------------------------------ #

    def success(self, message: str) -> None:
        self._console.print(f"[tool.success][✔] SUCCESS:[/tool.success] {message}")

    def warning(self, message: str) -> None:
        self._console.print(f"[tool.warning][⚠] WARNING:[/tool.warning] {message}")

    def error(self, message: str) -> None:
        self._console.print(f"[tool.error][✘] ERROR:[/tool.error] {message}")

    def info(self, message: str) -> None:
        self._console.print(f"[tool.info][ℹ] INFO:[/tool.info] {message}")

    # ------------------------------------------------------------------ #
    #  Table display
    # ------------------------------------------------------------------ #

    def table(
        self,
        title: str,
        columns: Sequence[str],
        rows: Sequence[Sequence[Any]],
        *,
        caption: str | None = None,
        styles: Sequence[str] | None = None,
    ) -> None:
        """Render a styled Rich table.

        Args:
            title:    Table title.
            columns:  Column header labels.
            rows:     Row tuples; each cell is stringified.
            caption:  Optional footer caption.
            styles:   Optional per-column Rich style strings.
        """
        tbl = Table(
            title=title,
            caption=caption,
            border_style="bright_cyan",
            header_style="bold bright_magenta",
            show_lines=False,
            padding=(0, 1),
        )
        for idx, col_name in enumerate(columns):
            style = styles[idx] if styles and idx < len(styles) else ""
            tbl.add_column(col_name, style=style)

        for row in rows:
            tbl.add_row(*(str(cell) for cell in row))

        self._console.print(tbl)

    def findings_table(self, findings: Sequence[Any]) -> None:
        """Render findings with severity colouring.

        Expects objects with ``severity``, ``title`` and ``description``
        attributes (e.g. :class:`shared.models.Finding`).
        """
        tbl = Table(
            title="Findings",
            border_style="bright_cyan",
            header_style="bold bright_magenta",
            show_lines=True,
            padding=(0, 1),
        )
        tbl.add_column("#", style="dim", width=4, justify="right")
        tbl.add_column("Severity", width=10)
        tbl.add_column("Title")
        tbl.add_column("Description", ratio=2)

        for idx, finding in enumerate(findings, start=1):
            sev = getattr(finding, "severity", "INFO")
            sev_name = sev.value if hasattr(sev, "value") else str(sev).upper()
            tbl.add_row(
                str(idx),
                severity_markup(sev_name),
                str(getattr(finding, "title", "")),
                str(getattr(finding, "description", "")),
            )

        self._console.print(tbl)

    # ------------------------------------------------------------------ #
    #  Utility
    # ------------------------------------------------------------------ #

    def print(self, *args: Any, **kwargs: Any) -> None:
        """Proxy to :meth:`rich.console.Console.print`."""
        self._console.print(*args, **kwargs)

    def blank(self, count: int = 1) -> None:
        for _ in range(count):
            self._console.print()
