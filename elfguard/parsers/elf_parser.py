"""
ELF Binary Format Parser
==========================

Stream-based decoder for the Executable and Linkable Format (ELF).
Both 32-bit (ELF32) and 64-bit (ELF64) files are supported, in either
byte order.

The parser produces one immutable :class:`DecodedElf` holding:
    - the identification block (magic, class, byte order, version, OS/ABI)
    - the file header (type, machine, entry point, table offsets/counts)
    - the program header table, in file order
    - the section header table, in file order

Decoding is strict: a bad magic, an unknown tag value or a truncated
field raises a :class:`~elfguard.core.errors.DecodeError` subclass and
no partial result is returned.

References:
    - TIS Committee. (1995). Tool Interface Standard (TIS) Executable and
      Linkable Format (ELF) Specification, Version 1.2.
    - System V Application Binary Interface, Edition 4.1.
    - Linux man page: elf(5).
"""

from __future__ import annotations

import logging
from typing import BinaryIO

from elfguard.core.errors import (
    BadMagicError,
    TruncatedReadError,
    UnsupportedValueError,
)
from elfguard.parsers.constants import (
    EI_NIDENT,
    ELF_MAGIC,
    ElfClass,
    ElfData,
    ElfVersion,
    IdentVersion,
    Machine,
    ObjectType,
    OsAbi,
    SectionType,
    SegmentType,
    decode_enum,
)
from elfguard.parsers.layout import (
    HEADER_FIELDS,
    SECTION_HEADER_FIELDS,
    ElfLayout,
    layout_for,
)
from elfguard.parsers.reader import ByteReader
from elfguard.parsers.structures import (
    DecodedElf,
    ElfHeader,
    Identification,
    ProgramHeader,
    SectionHeader,
)

logger = logging.getLogger("elfguard.parsers.elf_parser")

# Bytes of e_ident following EI_ABIVERSION
_EI_PAD_SIZE: int = EI_NIDENT - 9


# ---------------------------------------------------------------------------
# Identification block
# ---------------------------------------------------------------------------

def decode_identification(reader: ByteReader) -> Identification:
    """Decode the 16-byte ``e_ident`` block at the reader's position.

    The magic is checked before any other byte is read.

    Raises:
        BadMagicError: If the first four bytes are not ``\\x7fELF``.
        InvalidEnumerantError: For an out-of-range class, data encoding,
            version or OS/ABI byte.
        TruncatedReadError: If the block is shorter than 16 bytes.
    """
    magic = reader.stream.read(len(ELF_MAGIC))
    if magic != ELF_MAGIC:
        raise BadMagicError(magic)

    elf_class = decode_enum(ElfClass, reader.u8("EI_CLASS"), "EI_CLASS")
    data = decode_enum(ElfData, reader.u8("EI_DATA"), "EI_DATA")
    version = decode_enum(IdentVersion, reader.u8("EI_VERSION"), "EI_VERSION")
    osabi = decode_enum(OsAbi, reader.u8("EI_OSABI"), "EI_OSABI")
    abi_version = reader.u8("EI_ABIVERSION")
    reader.read_exact(_EI_PAD_SIZE, "EI_PAD")

    return Identification(
        magic=magic,
        elf_class=elf_class,
        data=data,
        version=version,
        osabi=osabi,
        abi_version=abi_version,
    )


# ---------------------------------------------------------------------------
# File header
# ---------------------------------------------------------------------------

def decode_header(
    reader: ByteReader,
    ident: Identification,
    layout: ElfLayout,
) -> ElfHeader:
    """Decode the file header fields that follow ``e_ident``.

    Leaves the reader positioned immediately after the header.
    """
    raw = layout.read_fields(reader, HEADER_FIELDS, "ELF header")

    if raw["e_ehsize"] != layout.header_size:
        logger.debug(
            "e_ehsize is %d, expected %d for %s",
            raw["e_ehsize"], layout.header_size, layout.elf_class.name,
        )

    return ElfHeader(
        ident=ident,
        e_type=decode_enum(ObjectType, raw["e_type"], "e_type"),
        e_machine=decode_enum(Machine, raw["e_machine"], "e_machine"),
        e_version=decode_enum(ElfVersion, raw["e_version"], "e_version"),
        e_entry=raw["e_entry"],
        e_phoff=raw["e_phoff"],
        e_shoff=raw["e_shoff"],
        e_flags=raw["e_flags"],
        e_ehsize=raw["e_ehsize"],
        e_phentsize=raw["e_phentsize"],
        e_phnum=raw["e_phnum"],
        e_shentsize=raw["e_shentsize"],
        e_shnum=raw["e_shnum"],
        e_shstrndx=raw["e_shstrndx"],
    )


# ---------------------------------------------------------------------------
# Program / section header tables
# ---------------------------------------------------------------------------

def _seek_table(
    reader: ByteReader,
    table: str,
    offset: int,
    count: int,
    entry_size: int,
) -> None:
    """Seek to a non-empty table after checking it lies within the source."""
    needed = count * entry_size
    available = max(reader.size() - offset, 0)
    if available < needed:
        raise TruncatedReadError(
            f"{table} at offset {offset:#x} ({count} entries)",
            needed,
            available,
        )
    reader.seek(offset)


def decode_program_headers(
    reader: ByteReader,
    header: ElfHeader,
    layout: ElfLayout,
) -> tuple[ProgramHeader, ...]:
    """Decode ``e_phnum`` program headers starting at ``e_phoff``."""
    if header.e_phnum == 0:
        return ()

    entry_size = layout.program_header_size
    if header.e_phentsize != entry_size:
        logger.debug(
            "e_phentsize is %d, decoding %d-byte entries",
            header.e_phentsize, entry_size,
        )
    _seek_table(
        reader, "program header table", header.e_phoff, header.e_phnum, entry_size
    )

    entries: list[ProgramHeader] = []
    for index in range(header.e_phnum):
        context = f"program header[{index}]"
        raw = layout.read_fields(reader, layout.program_header_fields, context)
        raw["p_type"] = decode_enum(
            SegmentType, raw["p_type"], f"{context}.p_type"
        )
        entries.append(ProgramHeader(**raw))
    return tuple(entries)


def decode_section_headers(
    reader: ByteReader,
    header: ElfHeader,
    layout: ElfLayout,
) -> tuple[SectionHeader, ...]:
    """Decode ``e_shnum`` section headers starting at ``e_shoff``."""
    if header.e_shnum == 0:
        return ()

    entry_size = layout.section_header_size
    if header.e_shentsize != entry_size:
        logger.debug(
            "e_shentsize is %d, decoding %d-byte entries",
            header.e_shentsize, entry_size,
        )
    _seek_table(
        reader, "section header table", header.e_shoff, header.e_shnum, entry_size
    )

    entries: list[SectionHeader] = []
    for index in range(header.e_shnum):
        context = f"section header[{index}]"
        raw = layout.read_fields(reader, SECTION_HEADER_FIELDS, context)
        raw["sh_type"] = decode_enum(
            SectionType, raw["sh_type"], f"{context}.sh_type"
        )
        entries.append(SectionHeader(**raw))
    return tuple(entries)


# ---------------------------------------------------------------------------
# ELF Parser
# ---------------------------------------------------------------------------

class ELFParser:
    """Decode an ELF image from a seekable binary stream.

    The stream is borrowed: the parser seeks and reads it but never
    closes it, and keeps no state once :meth:`parse` returns.

    Usage::

        with open("/bin/ls", "rb") as fh:
            elf = ELFParser(fh).parse()
            print(elf.header.e_entry, len(elf.section_headers))
    """

    def __init__(self, source: BinaryIO) -> None:
        """Initialise the parser.

        Args:
            source: Binary stream supporting ``read``, ``seek`` and ``tell``.
        """
        self._source = source

    def parse(self) -> DecodedElf:
        """Decode identification block, header, PHT and SHT.

        Raises:
            DecodeError: Any subclass, on the first field that cannot be
                decoded.
        """
        reader = ByteReader(self._source)
        reader.seek(0)

        ident = decode_identification(reader)
        layout = layout_for(ident.elf_class)
        if ident.data == ElfData.NONE:
            raise UnsupportedValueError(
                "EI_DATA", ident.data.name, "byte order is not specified"
            )
        reader = reader.with_byte_order(ident.byte_order)

        header = decode_header(reader, ident, layout)
        program_headers = decode_program_headers(reader, header, layout)
        section_headers = decode_section_headers(reader, header, layout)

        logger.debug(
            "Decoded %s %s: %d segment(s), %d section(s)",
            layout.elf_class.name, header.e_type.name,
            len(program_headers), len(section_headers),
        )
        return DecodedElf(
            header=header,
            program_headers=program_headers,
            section_headers=section_headers,
        )


def decode(source: BinaryIO) -> DecodedElf:
    """Decode the ELF image in *source*, dispatching on its class byte."""
    return ELFParser(source).parse()
