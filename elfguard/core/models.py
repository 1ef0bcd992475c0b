"""
ElfGuard Data Models
=====================

Pydantic-based result models for ELF hardening analysis.  The decoded
ELF structures themselves live in :mod:`elfguard.parsers.structures`;
the models here are what the engine, console output and JSON reports
exchange.

References:
    - TIS Committee. (1995). Executable and Linkable Format (ELF) Specification.
    - Drepper, U. (2006). How To Write Shared Libraries.
"""

from __future__ import annotations

import enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class RelroLevel(str, enum.Enum):
    """How much of the relocation data is read-only after start-up."""
    NONE = "none"
    PARTIAL = "partial"
    FULL = "full"


# ---------------------------------------------------------------------------
# Security options
# ---------------------------------------------------------------------------

class SecurityOptions(BaseModel):
    """Hardening facts inferred from one ELF file.

    The four facts are computed independently and recomputed on every run.

    Attributes:
        canary: ``__stack_chk_fail`` appears in the symbol string table.
        nx: The ``PT_GNU_STACK`` segment is not executable.
        relro: RELRO level from ``PT_GNU_RELRO`` and ``.got.plt`` presence.
        pie: The object type is ``ET_DYN``.
    """
    model_config = ConfigDict(frozen=True)

    canary: bool
    nx: bool
    relro: RelroLevel
    pie: bool


# ---------------------------------------------------------------------------
# Table summaries
# ---------------------------------------------------------------------------

class SegmentInfo(BaseModel):
    """Display form of one program header."""
    type: str = ""
    offset: int = 0
    vaddr: int = 0
    paddr: int = 0
    filesz: int = 0
    memsz: int = 0
    flags: str = "-"
    align: int = 0


class SectionInfo(BaseModel):
    """Display form of one section header.

    Attributes:
        name: Section name resolved through the section-name string table.
        type: Section type name (``PROGBITS``, ``STRTAB`` ...).
        flags: ``"WAX"``-style attribute string.
    """
    name: str = ""
    type: str = ""
    flags: str = "-"
    addr: int = 0
    offset: int = 0
    size: int = 0
    link: int = 0
    info: int = 0
    addralign: int = 0
    entsize: int = 0


class ElfSummary(BaseModel):
    """Header-level metadata about an analysed ELF file."""
    path: str = ""
    size: int = 0
    elf_class: str = ""
    bits: int = 0
    endian: str = "little"
    osabi: str = ""
    object_type: str = ""
    machine: str = ""
    entry_point: int = 0
    phnum: int = 0
    shnum: int = 0
    shstrndx: int = 0


# ---------------------------------------------------------------------------
# Aggregate result
# ---------------------------------------------------------------------------

class HardeningReport(BaseModel):
    """Complete analysis result for one ELF file.

    Attributes:
        summary: Header-level metadata.
        options: Inferred security options.
        segments: Program header table, in file order.
        sections: Section header table, in file order.
    """
    summary: ElfSummary = Field(default_factory=ElfSummary)
    options: Optional[SecurityOptions] = None
    segments: list[SegmentInfo] = Field(default_factory=list)
    sections: list[SectionInfo] = Field(default_factory=list)
