"""
Decoded ELF Structures
=======================

Immutable value types produced by :mod:`elfguard.parsers.elf_parser`.
A :class:`DecodedElf` owns the header, program header table and section
header table of one file; it holds no reference to the byte source it
was decoded from.
"""

from __future__ import annotations

from dataclasses import dataclass

from elfguard.core.errors import MissingStructureError
from elfguard.parsers.constants import (
    PF_R,
    PF_W,
    PF_X,
    SHF_ALLOC,
    SHF_EXECINSTR,
    SHF_WRITE,
    ElfClass,
    ElfData,
    ElfVersion,
    IdentVersion,
    Machine,
    ObjectType,
    OsAbi,
    SectionType,
    SegmentType,
)
from elfguard.parsers.reader import BIG_ENDIAN, LITTLE_ENDIAN


@dataclass(frozen=True, slots=True)
class Identification:
    """The 16-byte ``e_ident`` prefix.

    Attributes:
        magic: The four magic bytes (always ``b"\\x7fELF"`` once decoded).
        elf_class: 32-bit or 64-bit file class.
        data: Byte order of every multi-byte field.
        version: Identification version.
        osabi: Target OS ABI.
        abi_version: ABI version byte.
    """
    magic: bytes
    elf_class: ElfClass
    data: ElfData
    version: IdentVersion
    osabi: OsAbi
    abi_version: int

    @property
    def byte_order(self) -> str:
        """``struct`` byte-order prefix matching :attr:`data`."""
        return BIG_ENDIAN if self.data == ElfData.MSB else LITTLE_ENDIAN


@dataclass(frozen=True, slots=True)
class ElfHeader:
    """ELF file header.

    ``e_entry``, ``e_phoff`` and ``e_shoff`` are 4 bytes wide on disk for
    ELF32 and 8 bytes for ELF64; every other field has the same width on
    both classes.
    """
    ident: Identification
    e_type: ObjectType
    e_machine: Machine
    e_version: ElfVersion
    e_entry: int
    e_phoff: int
    e_shoff: int
    e_flags: int
    e_ehsize: int
    e_phentsize: int
    e_phnum: int
    e_shentsize: int
    e_shnum: int
    e_shstrndx: int


@dataclass(frozen=True, slots=True)
class ProgramHeader:
    """One program header table entry (segment)."""
    p_type: SegmentType
    p_flags: int
    p_offset: int
    p_vaddr: int
    p_paddr: int
    p_filesz: int
    p_memsz: int
    p_align: int

    @property
    def readable(self) -> bool:
        return bool(self.p_flags & PF_R)

    @property
    def writable(self) -> bool:
        return bool(self.p_flags & PF_W)

    @property
    def executable(self) -> bool:
        return bool(self.p_flags & PF_X)

    @property
    def flags_str(self) -> str:
        """Permissions as ``"RWX"``-style text, ``"-"`` when none are set."""
        parts = (
            ("R" if self.readable else "")
            + ("W" if self.writable else "")
            + ("X" if self.executable else "")
        )
        return parts or "-"


@dataclass(frozen=True, slots=True)
class SectionHeader:
    """One section header table entry."""
    sh_name: int
    sh_type: SectionType
    sh_flags: int
    sh_addr: int
    sh_offset: int
    sh_size: int
    sh_link: int
    sh_info: int
    sh_addralign: int
    sh_entsize: int

    @property
    def writable(self) -> bool:
        return bool(self.sh_flags & SHF_WRITE)

    @property
    def allocated(self) -> bool:
        return bool(self.sh_flags & SHF_ALLOC)

    @property
    def executable(self) -> bool:
        return bool(self.sh_flags & SHF_EXECINSTR)

    @property
    def flags_str(self) -> str:
        """Attributes as ``"WAX"``-style text, ``"-"`` when none are set."""
        parts = (
            ("W" if self.writable else "")
            + ("A" if self.allocated else "")
            + ("X" if self.executable else "")
        )
        return parts or "-"


@dataclass(frozen=True, slots=True)
class DecodedElf:
    """Header, program header table and section header table of one file.

    Table order is file order.
    """
    header: ElfHeader
    program_headers: tuple[ProgramHeader, ...]
    section_headers: tuple[SectionHeader, ...]

    @property
    def is_64bit(self) -> bool:
        return self.header.ident.elf_class == ElfClass.ELF64

    @property
    def byte_order(self) -> str:
        return self.header.ident.byte_order

    def find_segment(self, p_type: SegmentType) -> ProgramHeader | None:
        """Return the first program header of type *p_type*, if any."""
        for segment in self.program_headers:
            if segment.p_type == p_type:
                return segment
        return None

    def section_name_table(self) -> SectionHeader:
        """Return the section header at ``e_shstrndx``.

        Raises:
            MissingStructureError: If the index does not address an entry
                of the section header table.
        """
        index = self.header.e_shstrndx
        if index >= len(self.section_headers):
            raise MissingStructureError(
                "section-name string table",
                f"e_shstrndx={index} but the SHT has "
                f"{len(self.section_headers)} entries",
            )
        return self.section_headers[index]

    @staticmethod
    def section_name(section: SectionHeader, name_table: bytes) -> str:
        """Read the NUL-terminated name of *section* from *name_table*.

        Returns an empty string when ``sh_name`` lies outside the table.
        """
        offset = section.sh_name
        if offset >= len(name_table):
            return ""
        end = name_table.find(b"\x00", offset)
        if end == -1:
            end = len(name_table)
        return name_table[offset:end].decode("ascii", errors="replace")
