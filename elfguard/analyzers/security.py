"""
Security Mitigation Inference
==============================

Derives four hardening facts from a :class:`DecodedElf` and the byte
source it was decoded from:

    - **Canary**  -- ``__stack_chk_fail`` occurs in the ``.strtab`` section.
    - **NX**      -- the ``PT_GNU_STACK`` segment lacks execute permission.
    - **RELRO**   -- ``PT_GNU_RELRO`` present; ``.got.plt`` in the
      section-name table means partial, its absence full.
    - **PIE**     -- object type ``ET_DYN``.

The canary and RELRO checks are substring heuristics over raw string
table bytes, not symbol table or dynamic section parsing.  They can be
fooled by hand-crafted binaries, and the RELRO check does not verify
that ``.got.plt`` is actually writable at run time.

Every read seeks to its own offset first; nothing depends on where a
previous decode left the stream.
"""

from __future__ import annotations

from typing import BinaryIO, Iterator

from elfguard.core.errors import (
    MissingStructureError,
    TruncatedReadError,
    UnsupportedValueError,
)
from elfguard.core.models import RelroLevel, SecurityOptions
from elfguard.parsers.constants import ObjectType, SegmentType
from elfguard.parsers.reader import ByteReader
from elfguard.parsers.structures import DecodedElf, ElfHeader, SectionHeader

STACK_CHK_SYMBOL: bytes = b"__stack_chk_fail"
SYMBOL_STRTAB_NAME: bytes = b".strtab"
GOT_PLT_NAME: bytes = b".got.plt"


def read_section_bytes(
    source: BinaryIO,
    section: SectionHeader,
    label: str = "section",
) -> bytes:
    """Read the raw file contents of *section*.

    The extent is checked against the source length before seeking.

    Raises:
        TruncatedReadError: If the section extends past the end of file.
    """
    reader = ByteReader(source)
    available = max(reader.size() - section.sh_offset, 0)
    if section.sh_size > available:
        raise TruncatedReadError(
            f"{label} at offset {section.sh_offset:#x}",
            section.sh_size,
            available,
        )
    reader.seek(section.sh_offset)
    return reader.read_exact(section.sh_size, f"{label} contents")


def read_section_name_table(elf: DecodedElf, source: BinaryIO) -> bytes:
    """Read the contents of the section-name string table (``e_shstrndx``)."""
    return read_section_bytes(
        source, elf.section_name_table(), "section-name string table"
    )


def _occurrences(haystack: bytes, needle: bytes) -> Iterator[int]:
    """Yield every offset of *needle* in *haystack*, overlapping allowed."""
    start = haystack.find(needle)
    while start != -1:
        yield start
        start = haystack.find(needle, start + 1)


def find_symbol_string_table(
    elf: DecodedElf,
    name_table: bytes,
) -> SectionHeader:
    """Locate the section named exactly ``.strtab``.

    The name may occur more than once in the section-name table; every
    NUL-terminated ``.strtab`` is a candidate ``sh_name`` offset and the
    first section pointing at one of them wins.  ``.shstrtab`` is not a
    candidate since it holds no ``.strtab`` substring.

    Raises:
        MissingStructureError: If no section carries that name.
    """
    offsets = set(_occurrences(name_table, SYMBOL_STRTAB_NAME + b"\x00"))
    for section in elf.section_headers:
        if section.sh_name in offsets:
            return section
    raise MissingStructureError(".strtab", "no section is named .strtab")


def detect_canary(elf: DecodedElf, source: BinaryIO, name_table: bytes) -> bool:
    """``True`` if the symbol string table mentions ``__stack_chk_fail``."""
    strtab = find_symbol_string_table(elf, name_table)
    contents = read_section_bytes(source, strtab, ".strtab")
    return STACK_CHK_SYMBOL in contents


def detect_nx(elf: DecodedElf) -> bool:
    """``True`` if the first ``PT_GNU_STACK`` segment is not executable.

    Raises:
        MissingStructureError: If the file has no ``PT_GNU_STACK`` entry.
    """
    stack = elf.find_segment(SegmentType.GNU_STACK)
    if stack is None:
        raise MissingStructureError("PT_GNU_STACK")
    return not stack.executable


def detect_relro(elf: DecodedElf, name_table: bytes) -> RelroLevel:
    """Classify RELRO from ``PT_GNU_RELRO`` and the ``.got.plt`` name."""
    if elf.find_segment(SegmentType.GNU_RELRO) is None:
        return RelroLevel.NONE
    if GOT_PLT_NAME in name_table:
        return RelroLevel.PARTIAL
    return RelroLevel.FULL


def detect_pie(header: ElfHeader) -> bool:
    """``True`` for ``ET_DYN``, ``False`` for ``ET_EXEC``.

    Raises:
        UnsupportedValueError: For any other object type.
    """
    if header.e_type == ObjectType.DYN:
        return True
    if header.e_type == ObjectType.EXEC:
        return False
    raise UnsupportedValueError(
        "e_type",
        header.e_type.name,
        "PIE status is only defined for EXEC and DYN objects",
    )


def infer_security_options(
    elf: DecodedElf,
    source: BinaryIO,
    name_table: bytes | None = None,
) -> SecurityOptions:
    """Run all four checks against *elf* and its byte *source*.

    *name_table* is the section-name table contents if the caller has
    already read them; otherwise they are read from *source*.

    Raises:
        DecodeError: Any subclass, if a required structure is missing or
            a string table cannot be read.
    """
    if name_table is None:
        name_table = read_section_name_table(elf, source)
    return SecurityOptions(
        canary=detect_canary(elf, source, name_table),
        nx=detect_nx(elf),
        relro=detect_relro(elf, name_table),
        pie=detect_pie(elf.header),
    )
