"""
ElfGuard CLI -- ELF Hardening Checker
======================================

Click-based command-line interface.  Each PATH is decoded and checked for
stack canaries, a non-executable stack, RELRO and PIE.  A file that
cannot be decoded is reported and the remaining files are still analysed.

Usage::

    # Check one binary
    elfguard /usr/bin/ls

    # Several binaries, with program/section header tables
    elfguard /usr/bin/ls /usr/lib/libc.so.6 --tables

    # JSON on stdout for scripting
    elfguard ./a.out --json

    # Write a JSON report file
    elfguard ./a.out --output report.json

Exit status:
    0    every file was analysed
    1    configuration error
    2    at least one file could not be analysed, or bad usage
    130  interrupted

References:
    - Click documentation: https://click.palletsprojects.com/
"""

from __future__ import annotations

import sys

import click

from shared.config import ToolConfig
from shared.console import ToolConsole
from shared.logger import ToolLogger
from shared.models import ScanResult

from elfguard import __version__
from elfguard.core.engine import ElfGuardEngine
from elfguard.core.errors import DecodeError
from elfguard.core.models import HardeningReport
from elfguard.output.console import ElfGuardConsoleOutput
from elfguard.output.report import ElfGuardReportGenerator

EXIT_CONFIG = 1
EXIT_ANALYSIS_FAILED = 2
EXIT_INTERRUPTED = 130


def _display(console: ToolConsole, scans: list[ScanResult], show_tables: bool) -> None:
    output_display = ElfGuardConsoleOutput(console=console)

    for scan in scans:
        if not scan.ok:
            console.error(f"Unparsable file {scan.target}: {scan.error}")
            console.blank()
            continue

        report = HardeningReport.model_validate(scan.metadata["elf_analysis"])
        output_display.display(report, show_tables=show_tables)

        if scan.findings:
            console.findings_table(scan.findings)
        else:
            console.success("All checked mitigations are enabled.")
        console.blank()

    if len(scans) > 1:
        output_display.display_batch_summary(scans)


# ---------------------------------------------------------------------------
# Command
# ---------------------------------------------------------------------------

@click.command("elfguard")
@click.argument("paths", nargs=-1, required=True, type=click.Path())
@click.option(
    "--json", "json_output",
    is_flag=True,
    default=False,
    help="Output results as JSON to stdout.",
)
@click.option(
    "--output", "-o",
    "output_path",
    type=click.Path(),
    default=None,
    help="Write a JSON report to this path.",
)
@click.option(
    "--tables", "-t",
    is_flag=True,
    default=False,
    help="Also print the program and section header tables.",
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    default=False,
    help="Enable verbose/debug output.",
)
@click.option(
    "--config", "-c",
    "config_path",
    type=click.Path(),
    default=None,
    help="Configuration file (TOML).",
)
@click.option(
    "--fail-fast",
    is_flag=True,
    default=False,
    help="Stop at the first file that cannot be analysed.",
)
@click.version_option(__version__, prog_name="elfguard")
def elfguard_cli(
    paths: tuple[str, ...],
    json_output: bool,
    output_path: str | None,
    tables: bool,
    verbose: bool,
    config_path: str | None,
    fail_fast: bool,
) -> None:
    """ElfGuard -- ELF Hardening Checker.

    Report stack canary, NX, RELRO and PIE status for each ELF file.

    PATHS are the ELF executables or shared objects to check.

    Examples:

    \b
        elfguard /usr/bin/ls
        elfguard build/app --tables
        elfguard build/*.so --json
    """
    console = ToolConsole(stderr=json_output)

    try:
        config = ToolConfig.load(config_path)
    except (OSError, ValueError) as exc:
        console.error(f"Cannot load configuration: {exc}")
        sys.exit(EXIT_CONFIG)

    settings = config.global_settings
    if fail_fast:
        config.elfguard.fail_fast = True
    if tables:
        config.elfguard.show_tables = True

    log_level = "DEBUG" if verbose or settings.debug else settings.log_level
    logger = ToolLogger(
        "engine",
        log_level=log_level,
        log_file=settings.log_file,
        json_logs=settings.log_json,
    )

    engine = ElfGuardEngine(config=config, logger=logger)

    try:
        scans = engine.analyze_many(paths)
    except KeyboardInterrupt:
        console.warning("Analysis interrupted by user.")
        sys.exit(EXIT_INTERRUPTED)
    except (DecodeError, OSError) as exc:
        # Only reachable with fail-fast.
        console.error(f"Analysis aborted: {exc}")
        sys.exit(EXIT_ANALYSIS_FAILED)

    report_gen = ElfGuardReportGenerator()

    if json_output:
        click.echo(report_gen.render_json(scans))
    else:
        _display(console, scans, config.elfguard.show_tables)

    report_target = output_path or config.elfguard.report_path
    if report_target:
        written = report_gen.generate_json(scans, report_target)
        console.success(f"JSON report saved: {written}")

    failed = [s for s in scans if not s.ok]
    if failed:
        logger.warning("%d of %d file(s) could not be analysed", len(failed), len(scans))
        sys.exit(EXIT_ANALYSIS_FAILED)


# ---------------------------------------------------------------------------
# Module entry point
# ---------------------------------------------------------------------------

def main() -> None:
    """Entry point for the ``elfguard`` script and ``python -m elfguard``."""
    elfguard_cli()


if __name__ == "__main__":
    main()
