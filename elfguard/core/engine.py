"""
ElfGuard Analysis Engine
=========================

Orchestrates the hardening analysis of ELF files:

    1. Open the file and check its size against the configured limit
    2. Decode identification block, header, PHT and SHT
    3. Infer canary / NX / RELRO / PIE
    4. Build header and table summaries (section names resolved)
    5. Generate findings for every missing mitigation

One file handle is held for the duration of steps 2-4.  A file that
cannot be decoded produces a failed :class:`ScanResult` and the batch
moves on, unless ``fail_fast`` is configured.
"""

from __future__ import annotations

import io
from pathlib import Path
from typing import BinaryIO, Iterable

from shared.config import ToolConfig
from shared.logger import ToolLogger
from shared.models import Finding, ScanResult, Severity

from elfguard.analyzers.security import (
    infer_security_options,
    read_section_name_table,
)
from elfguard.core.errors import DecodeError
from elfguard.core.models import (
    ElfSummary,
    HardeningReport,
    RelroLevel,
    SecurityOptions,
    SectionInfo,
    SegmentInfo,
)
from elfguard.parsers.constants import machine_name
from elfguard.parsers.elf_parser import decode
from elfguard.parsers.structures import DecodedElf

TOOL_NAME = "elfguard"


# ---------------------------------------------------------------------------
# Findings
# ---------------------------------------------------------------------------

def generate_findings(options: SecurityOptions) -> list[Finding]:
    """Turn missing or weak mitigations into findings."""
    findings: list[Finding] = []

    if not options.nx:
        findings.append(Finding(
            severity=Severity.HIGH,
            title="Executable stack",
            description=(
                "The PT_GNU_STACK segment is marked executable, so injected "
                "code on the stack can run."
            ),
            evidence="PT_GNU_STACK flags include PF_X",
            recommendation="Link with -z noexecstack.",
        ))

    if not options.canary:
        findings.append(Finding(
            severity=Severity.MEDIUM,
            title="No stack canary",
            description=(
                "__stack_chk_fail was not found in .strtab; stack buffer "
                "overflows are not detected before return."
            ),
            recommendation="Compile with -fstack-protector-strong.",
        ))

    if options.relro == RelroLevel.NONE:
        findings.append(Finding(
            severity=Severity.MEDIUM,
            title="No RELRO",
            description=(
                "There is no PT_GNU_RELRO segment; relocation data stays "
                "writable for the whole process lifetime."
            ),
            recommendation="Link with -z relro -z now.",
        ))
    elif options.relro == RelroLevel.PARTIAL:
        findings.append(Finding(
            severity=Severity.LOW,
            title="Partial RELRO",
            description=(
                "A .got.plt section is present, so PLT GOT entries remain "
                "writable after start-up."
            ),
            recommendation="Link with -z now for full RELRO.",
        ))

    if not options.pie:
        findings.append(Finding(
            severity=Severity.LOW,
            title="Not position independent",
            description=(
                "The executable is ET_EXEC and loads at a fixed address, "
                "defeating ASLR for its code and data."
            ),
            recommendation="Compile with -fPIE and link with -pie.",
        ))

    return findings


# ---------------------------------------------------------------------------
# Summaries
# ---------------------------------------------------------------------------

def summarize(elf: DecodedElf, path: str = "", size: int = 0) -> ElfSummary:
    """Header-level summary of a decoded file."""
    h = elf.header
    return ElfSummary(
        path=path,
        size=size,
        elf_class=h.ident.elf_class.name,
        bits=64 if elf.is_64bit else 32,
        endian="big" if elf.byte_order == ">" else "little",
        osabi=h.ident.osabi.name,
        object_type=h.e_type.name,
        machine=machine_name(h.e_machine),
        entry_point=h.e_entry,
        phnum=h.e_phnum,
        shnum=h.e_shnum,
        shstrndx=h.e_shstrndx,
    )


def describe_segments(elf: DecodedElf) -> list[SegmentInfo]:
    return [
        SegmentInfo(
            type=ph.p_type.name,
            offset=ph.p_offset,
            vaddr=ph.p_vaddr,
            paddr=ph.p_paddr,
            filesz=ph.p_filesz,
            memsz=ph.p_memsz,
            flags=ph.flags_str,
            align=ph.p_align,
        )
        for ph in elf.program_headers
    ]


def describe_sections(elf: DecodedElf, name_table: bytes) -> list[SectionInfo]:
    return [
        SectionInfo(
            name=DecodedElf.section_name(sh, name_table),
            type=sh.sh_type.name,
            flags=sh.flags_str,
            addr=sh.sh_addr,
            offset=sh.sh_offset,
            size=sh.sh_size,
            link=sh.sh_link,
            info=sh.sh_info,
            addralign=sh.sh_addralign,
            entsize=sh.sh_entsize,
        )
        for sh in elf.section_headers
    ]


# ---------------------------------------------------------------------------
# ElfGuardEngine
# ---------------------------------------------------------------------------

class ElfGuardEngine:
    """Runs the hardening analysis on files or open streams.

    Usage::

        engine = ElfGuardEngine()
        scan = engine.analyze("/usr/bin/ls")
        if scan.ok:
            print(scan.metadata["elf_analysis"]["options"])
    """

    def __init__(
        self,
        config: ToolConfig | None = None,
        logger: ToolLogger | None = None,
    ) -> None:
        """Initialise the engine.

        Args:
            config: Tool configuration.  Defaults are used if not provided.
            logger: Logger instance.  A new one is created if not provided.
        """
        self._config: ToolConfig = config or ToolConfig()
        self._logger: ToolLogger = logger or ToolLogger("engine")

    # ------------------------------------------------------------------ #
    #  Stream analysis
    # ------------------------------------------------------------------ #

    def analyze_stream(self, source: BinaryIO, path: str = "<memory>") -> HardeningReport:
        """Decode *source* and infer its security options.

        Raises:
            DecodeError: If the image cannot be decoded or a structure
                required by the inference is missing.
        """
        elf = decode(source)
        name_table = read_section_name_table(elf, source)
        options = infer_security_options(elf, source, name_table)
        size = source.seek(0, io.SEEK_END)
        return HardeningReport(
            summary=summarize(elf, path, size),
            options=options,
            segments=describe_segments(elf),
            sections=describe_sections(elf, name_table),
        )

    # ------------------------------------------------------------------ #
    #  File analysis
    # ------------------------------------------------------------------ #

    def analyze(self, file_path: str | Path) -> ScanResult:
        """Analyse one file.

        Decode and I/O failures are recorded on the returned
        :class:`ScanResult` and, with ``fail_fast``, re-raised.
        """
        target = str(file_path)
        scan = ScanResult(tool_name=TOOL_NAME, target=target)

        with self._logger.operation(target):
            try:
                path = Path(file_path)
                file_size = path.stat().st_size
                max_size = self._config.elfguard.max_file_size
                if file_size > max_size:
                    self._logger.error(
                        "File too large: %d bytes (max: %d)", file_size, max_size
                    )
                    return scan.fail(
                        f"file too large: {file_size:,} bytes (max: {max_size:,})",
                        "too-large",
                    )

                with self._logger.timed(f"analysis of {target}"):
                    with open(path, "rb") as fh:
                        report = self.analyze_stream(fh, str(path.resolve()))
            except DecodeError as exc:
                self._logger.error("Unparsable file: %s", exc)
                scan.fail(str(exc), exc.kind)
                if self._config.elfguard.fail_fast:
                    raise
                return scan
            except OSError as exc:
                self._logger.error("Cannot read file: %s", exc)
                scan.fail(str(exc), "io")
                if self._config.elfguard.fail_fast:
                    raise
                return scan

            for finding in generate_findings(report.options):
                scan.add_finding(finding)
            scan.metadata = {"elf_analysis": report.model_dump(mode="json")}

            options = report.options
            scan.finalize(
                " | ".join([
                    f"{report.summary.machine} {report.summary.bits}-bit "
                    f"{report.summary.object_type}",
                    f"Canary: {'yes' if options.canary else 'no'}",
                    f"NX: {'yes' if options.nx else 'no'}",
                    f"RELRO: {options.relro.value}",
                    f"PIE: {'yes' if options.pie else 'no'}",
                    f"Findings: {len(scan.findings)}",
                ])
            )
            self._logger.info(scan.summary)

        return scan

    def analyze_many(self, paths: Iterable[str | Path]) -> list[ScanResult]:
        """Analyse *paths* in order, one result per path."""
        return [self.analyze(path) for path in paths]
