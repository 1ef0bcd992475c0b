"""
ELF Class Layouts
==================

The ELF32 and ELF64 variants of every structure share one skeleton and
differ in the width of address/offset ("word") fields and, for program
headers, in field order.  An :class:`ElfLayout` captures those
differences so that a single decoding routine handles both classes.

On-disk sizes:

    ============  =====  =====
    structure     ELF32  ELF64
    ============  =====  =====
    file header     52     64
    Elf_Phdr        32     56
    Elf_Shdr        40     64
    ============  =====  =====
"""

from __future__ import annotations

from dataclasses import dataclass

from elfguard.core.errors import UnsupportedValueError
from elfguard.parsers.constants import ElfClass
from elfguard.parsers.reader import ByteReader

# Width marker for address/offset/size fields.
WORD: int = 0

# Header fields after e_ident, in file order: (name, width)
HEADER_FIELDS: tuple[tuple[str, int], ...] = (
    ("e_type", 2),
    ("e_machine", 2),
    ("e_version", 4),
    ("e_entry", WORD),
    ("e_phoff", WORD),
    ("e_shoff", WORD),
    ("e_flags", 4),
    ("e_ehsize", 2),
    ("e_phentsize", 2),
    ("e_phnum", 2),
    ("e_shentsize", 2),
    ("e_shnum", 2),
    ("e_shstrndx", 2),
)

# Identical order on both classes.
SECTION_HEADER_FIELDS: tuple[tuple[str, int], ...] = (
    ("sh_name", 4),
    ("sh_type", 4),
    ("sh_flags", WORD),
    ("sh_addr", WORD),
    ("sh_offset", WORD),
    ("sh_size", WORD),
    ("sh_link", 4),
    ("sh_info", 4),
    ("sh_addralign", WORD),
    ("sh_entsize", WORD),
)

# ELF32 keeps p_flags after the sizes ...
_PROGRAM_HEADER_FIELDS_32: tuple[tuple[str, int], ...] = (
    ("p_type", 4),
    ("p_offset", WORD),
    ("p_vaddr", WORD),
    ("p_paddr", WORD),
    ("p_filesz", WORD),
    ("p_memsz", WORD),
    ("p_flags", 4),
    ("p_align", WORD),
)

# ... ELF64 moves it up for alignment.
_PROGRAM_HEADER_FIELDS_64: tuple[tuple[str, int], ...] = (
    ("p_type", 4),
    ("p_flags", 4),
    ("p_offset", WORD),
    ("p_vaddr", WORD),
    ("p_paddr", WORD),
    ("p_filesz", WORD),
    ("p_memsz", WORD),
    ("p_align", WORD),
)


@dataclass(frozen=True, slots=True)
class ElfLayout:
    """Address-width capability of one ELF class.

    Attributes:
        elf_class: The class this layout decodes.
        word_size: Width in bytes of address/offset/size fields.
        header_size: Size of the whole file header, ``e_ident`` included.
        program_header_fields: ``Elf_Phdr`` fields in on-disk order.
    """
    elf_class: ElfClass
    word_size: int
    header_size: int
    program_header_fields: tuple[tuple[str, int], ...]

    @property
    def program_header_size(self) -> int:
        return self._record_size(self.program_header_fields)

    @property
    def section_header_size(self) -> int:
        return self._record_size(SECTION_HEADER_FIELDS)

    def read_fields(
        self,
        reader: ByteReader,
        fields: tuple[tuple[str, int], ...],
        context: str,
    ) -> dict[str, int]:
        """Read *fields* in order and return them keyed by name.

        *context* prefixes each field name in truncation errors, e.g.
        ``"program header[2]"``.
        """
        values: dict[str, int] = {}
        for name, width in fields:
            values[name] = reader.read_uint(
                width or self.word_size, f"{context}.{name}"
            )
        return values

    def _record_size(self, fields: tuple[tuple[str, int], ...]) -> int:
        return sum(width or self.word_size for _, width in fields)


ELF32_LAYOUT = ElfLayout(
    elf_class=ElfClass.ELF32,
    word_size=4,
    header_size=52,
    program_header_fields=_PROGRAM_HEADER_FIELDS_32,
)

ELF64_LAYOUT = ElfLayout(
    elf_class=ElfClass.ELF64,
    word_size=8,
    header_size=64,
    program_header_fields=_PROGRAM_HEADER_FIELDS_64,
)


def layout_for(elf_class: ElfClass) -> ElfLayout:
    """Select the layout for *elf_class*.

    Raises:
        UnsupportedValueError: For ``ElfClass.NONE``.
    """
    if elf_class == ElfClass.ELF64:
        return ELF64_LAYOUT
    if elf_class == ElfClass.ELF32:
        return ELF32_LAYOUT
    raise UnsupportedValueError(
        "EI_CLASS", elf_class.name, "no decoder for an ELF of class NONE"
    )
