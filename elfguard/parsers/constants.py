"""
ELF Constants
==============

Enumerations and flag bits of the ELF identification block, file header,
program header table, and section header table.

Every tag field decoded by :mod:`elfguard.parsers.elf_parser` goes through
:func:`decode_enum`, which turns an unknown value into an
:class:`~elfguard.core.errors.InvalidEnumerantError` instead of a silent
default.

References:
    - TIS Committee. (1995). Tool Interface Standard (TIS) Executable and
      Linkable Format (ELF) Specification, Version 1.2.
    - System V Application Binary Interface, Edition 4.1.
    - Linux man page: elf(5).
"""

from __future__ import annotations

import enum
from typing import TypeVar

from elfguard.core.errors import InvalidEnumerantError

# Magic number
ELF_MAGIC: bytes = b"\x7fELF"

# Size of e_ident
EI_NIDENT: int = 16


_E = TypeVar("_E", bound=enum.IntEnum)


def decode_enum(enum_cls: type[_E], value: int, field: str) -> _E:
    """Convert a raw tag *value* to a member of *enum_cls*.

    Raises:
        InvalidEnumerantError: If *value* is not a known enumerant.
    """
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidEnumerantError(field, value) from None


def _reserved_range_member(
    cls: type[_E],
    value: object,
    ranges: tuple[tuple[int, int], ...],
) -> _E | None:
    """``_missing_`` hook accepting values from the ABI-reserved *ranges*.

    Values inside a ``(low, high)`` range become unnamed pseudo-members
    whose name is the hex value; anything else is rejected.
    """
    if not isinstance(value, int):
        return None
    for low, high in ranges:
        if low <= value <= high:
            member = int.__new__(cls, value)
            member._name_ = hex(value)
            member._value_ = value
            return member
    return None


# ---------------------------------------------------------------------------
# Identification block (e_ident)
# ---------------------------------------------------------------------------

class ElfClass(enum.IntEnum):
    """EI_CLASS -- file word size."""
    NONE = 0
    ELF32 = 1
    ELF64 = 2


class ElfData(enum.IntEnum):
    """EI_DATA -- byte order of multi-byte fields."""
    NONE = 0
    LSB = 1  # Little-endian
    MSB = 2  # Big-endian


class IdentVersion(enum.IntEnum):
    """EI_VERSION."""
    NONE = 0
    CURRENT = 1


class OsAbi(enum.IntEnum):
    """EI_OSABI -- target operating system ABI (informational)."""
    NONE = 0  # System V
    HPUX = 1
    NETBSD = 2
    GNU = 3  # Linux
    SOLARIS = 6
    AIX = 7
    IRIX = 8
    FREEBSD = 9
    TRU64 = 10
    MODESTO = 11
    OPENBSD = 12
    OPENVMS = 13
    NSK = 14
    AROS = 15
    FENIXOS = 16
    CLOUDABI = 17
    OPENVOS = 18
    ARM_AEABI = 64
    ARM = 97
    STANDALONE = 255


# ---------------------------------------------------------------------------
# File header
# ---------------------------------------------------------------------------

class ObjectType(enum.IntEnum):
    """e_type -- object file type."""
    NONE = 0
    REL = 1   # Relocatable
    EXEC = 2  # Executable
    DYN = 3   # Shared object / PIE
    CORE = 4  # Core dump


class Machine(enum.IntEnum):
    """e_machine -- target architecture."""
    NONE = 0
    M32 = 1
    SPARC = 2
    I386 = 3
    M68K = 4
    M88K = 5
    IAMCU = 6
    I860 = 7
    MIPS = 8
    S370 = 9
    MIPS_RS3_LE = 10
    PARISC = 15
    SPARC32PLUS = 18
    PPC = 20
    PPC64 = 21
    S390 = 22
    ARM = 40
    SH = 42
    SPARCV9 = 43
    IA_64 = 50
    X86_64 = 62
    VAX = 75
    AVR = 83
    XTENSA = 94
    MSP430 = 105
    AARCH64 = 183
    TILEGX = 191
    RISCV = 243
    BPF = 247
    LOONGARCH = 258


_MACHINE_NAMES: dict[Machine, str] = {
    Machine.I386: "x86",
    Machine.X86_64: "x86_64",
    Machine.ARM: "ARM",
    Machine.AARCH64: "AArch64",
    Machine.MIPS: "MIPS",
    Machine.PPC: "PowerPC",
    Machine.PPC64: "PowerPC64",
    Machine.RISCV: "RISC-V",
    Machine.SPARC: "SPARC",
    Machine.S390: "S/390",
}


def machine_name(machine: Machine) -> str:
    """Human-readable architecture label for *machine*."""
    return _MACHINE_NAMES.get(machine, machine.name)


class ElfVersion(enum.IntEnum):
    """e_version -- object file version."""
    NONE = 0
    CURRENT = 1


# ---------------------------------------------------------------------------
# Program header table
# ---------------------------------------------------------------------------

_SEGMENT_RESERVED_RANGES: tuple[tuple[int, int], ...] = (
    (0x60000000, 0x6FFFFFFF),  # PT_LOOS .. PT_HIOS
    (0x70000000, 0x7FFFFFFF),  # PT_LOPROC .. PT_HIPROC
)


class SegmentType(enum.IntEnum):
    """p_type -- kind of segment described by a program header."""

    NULL = 0
    LOAD = 1
    DYNAMIC = 2
    INTERP = 3
    NOTE = 4
    SHLIB = 5
    PHDR = 6
    TLS = 7
    LOOS = 0x60000000
    GNU_EH_FRAME = 0x6474E550
    GNU_STACK = 0x6474E551
    GNU_RELRO = 0x6474E552
    GNU_PROPERTY = 0x6474E553
    HIOS = 0x6FFFFFFF
    LOPROC = 0x70000000
    HIPROC = 0x7FFFFFFF

    @classmethod
    def _missing_(cls, value: object) -> SegmentType | None:
        return _reserved_range_member(cls, value, _SEGMENT_RESERVED_RANGES)


# p_flags
PF_X: int = 0x1  # Execute
PF_W: int = 0x2  # Write
PF_R: int = 0x4  # Read


# ---------------------------------------------------------------------------
# Section header table
# ---------------------------------------------------------------------------

_SECTION_RESERVED_RANGES: tuple[tuple[int, int], ...] = (
    (0x60000000, 0x6FFFFFFF),  # SHT_LOOS .. SHT_HIOS
    (0x70000000, 0x7FFFFFFF),  # SHT_LOPROC .. SHT_HIPROC
    (0x80000000, 0xFFFFFFFF),  # SHT_LOUSER .. SHT_HIUSER
)


class SectionType(enum.IntEnum):
    """sh_type -- categorises a section's contents."""

    NULL = 0
    PROGBITS = 1
    SYMTAB = 2
    STRTAB = 3
    RELA = 4
    HASH = 5
    DYNAMIC = 6
    NOTE = 7
    NOBITS = 8
    REL = 9
    SHLIB = 10
    DYNSYM = 11
    INIT_ARRAY = 14
    FINI_ARRAY = 15
    PREINIT_ARRAY = 16
    GROUP = 17
    SYMTAB_SHNDX = 18
    RELR = 19
    LOOS = 0x60000000
    GNU_ATTRIBUTES = 0x6FFFFFF5
    GNU_HASH = 0x6FFFFFF6
    GNU_LIBLIST = 0x6FFFFFF7
    CHECKSUM = 0x6FFFFFF8
    SUNW_COMDAT = 0x6FFFFFFB
    SUNW_SYMINFO = 0x6FFFFFFC
    GNU_VERDEF = 0x6FFFFFFD
    GNU_VERNEED = 0x6FFFFFFE
    GNU_VERSYM = 0x6FFFFFFF
    LOPROC = 0x70000000
    HIPROC = 0x7FFFFFFF
    LOUSER = 0x80000000
    HIUSER = 0xFFFFFFFF

    @classmethod
    def _missing_(cls, value: object) -> SectionType | None:
        return _reserved_range_member(cls, value, _SECTION_RESERVED_RANGES)


# sh_flags
SHF_WRITE: int = 0x1
SHF_ALLOC: int = 0x2
SHF_EXECINSTR: int = 0x4
