"""Pytest configuration and synthetic ELF image fixtures."""

from __future__ import annotations

import io
import struct
from pathlib import Path
from typing import Callable

import pytest

from shared.config import ToolConfig
from shared.logger import ToolLogger

from elfguard.parsers.constants import (
    PF_R,
    PF_W,
    PF_X,
    Machine,
    ObjectType,
    SectionType,
    SegmentType,
)


class ElfImageBuilder:
    """Assemble a minimal but well-formed ELF image in memory.

    File layout: header, program header table, section contents in the
    order added, ``.shstrtab``, then the section header table.  Section 0
    is always the NULL section when any section exists.
    """

    def __init__(
        self,
        *,
        bits: int = 64,
        byte_order: str = "<",
        e_type: int = ObjectType.DYN,
        machine: int = Machine.X86_64,
        entry: int = 0x1040,
        osabi: int = 0,
        with_shstrtab: bool = True,
    ) -> None:
        self.bits = bits
        self.byte_order = byte_order
        self.e_type = int(e_type)
        self.machine = int(machine)
        self.entry = entry
        self.osabi = osabi
        self.with_shstrtab = with_shstrtab
        self.shstrndx: int | None = None
        self.segments: list[tuple[int, ...]] = []
        self.sections: list[dict] = []

    @property
    def word(self) -> str:
        return "Q" if self.bits == 64 else "I"

    @property
    def ehsize(self) -> int:
        return 64 if self.bits == 64 else 52

    @property
    def phentsize(self) -> int:
        return 56 if self.bits == 64 else 32

    @property
    def shentsize(self) -> int:
        return 64 if self.bits == 64 else 40

    def add_segment(
        self,
        p_type: int,
        flags: int = PF_R,
        *,
        offset: int = 0,
        vaddr: int = 0,
        paddr: int = 0,
        filesz: int = 0,
        memsz: int = 0,
        align: int = 0x1000,
    ) -> ElfImageBuilder:
        self.segments.append(
            (int(p_type), flags, offset, vaddr, paddr, filesz, memsz, align)
        )
        return self

    def add_section(
        self,
        name: str,
        sh_type: int = SectionType.PROGBITS,
        *,
        flags: int = 0,
        data: bytes = b"",
        addr: int = 0,
        link: int = 0,
        info: int = 0,
        addralign: int = 1,
        entsize: int = 0,
    ) -> ElfImageBuilder:
        self.sections.append(
            {
                "name": name,
                "type": int(sh_type),
                "flags": flags,
                "data": data,
                "addr": addr,
                "link": link,
                "info": info,
                "addralign": addralign,
                "entsize": entsize,
            }
        )
        return self

    def _pack_segment(self, seg: tuple[int, ...]) -> bytes:
        p_type, flags, offset, vaddr, paddr, filesz, memsz, align = seg
        bo, w = self.byte_order, self.word
        if self.bits == 64:
            return struct.pack(
                f"{bo}II{w * 6}", p_type, flags, offset, vaddr, paddr,
                filesz, memsz, align,
            )
        return struct.pack(
            f"{bo}I{w * 5}I{w}", p_type, offset, vaddr, paddr, filesz,
            memsz, flags, align,
        )

    def _pack_section(self, name_off: int, sec: dict, offset: int) -> bytes:
        bo, w = self.byte_order, self.word
        return struct.pack(
            f"{bo}II{w * 4}II{w * 2}",
            name_off, sec["type"], sec["flags"], sec["addr"], offset,
            len(sec["data"]), sec["link"], sec["info"], sec["addralign"],
            sec["entsize"],
        )

    def build(self) -> bytes:
        bo, w = self.byte_order, self.word
        phnum = len(self.segments)
        phoff = self.ehsize if phnum else 0

        sections = list(self.sections)
        if self.with_shstrtab:
            sections.append(
                {
                    "name": ".shstrtab", "type": int(SectionType.STRTAB),
                    "flags": 0, "data": b"", "addr": 0, "link": 0, "info": 0,
                    "addralign": 1, "entsize": 0,
                }
            )

        names = bytearray(b"\x00")
        name_offsets: list[int] = []
        for sec in sections:
            name_offsets.append(len(names))
            names += sec["name"].encode() + b"\x00"
        if self.with_shstrtab:
            sections[-1]["data"] = bytes(names)

        body = bytearray()
        cursor = self.ehsize + phnum * self.phentsize
        section_offsets: list[int] = []
        for sec in sections:
            section_offsets.append(cursor + len(body))
            body += sec["data"]

        shnum = len(sections) + 1 if sections else 0
        shoff = 0
        if shnum:
            pad = (-(cursor + len(body))) % 8
            body += b"\x00" * pad
            shoff = cursor + len(body)

        if self.shstrndx is not None:
            shstrndx = self.shstrndx
        else:
            shstrndx = shnum - 1 if self.with_shstrtab else 0

        ident = (
            b"\x7fELF"
            + bytes([
                2 if self.bits == 64 else 1,
                1 if bo == "<" else 2,
                1,
                self.osabi,
                0,
            ])
            + b"\x00" * 7
        )
        header = ident + struct.pack(
            f"{bo}HHI{w * 3}IHHHHHH",
            self.e_type, self.machine, 1, self.entry, phoff, shoff, 0,
            self.ehsize, self.phentsize, phnum, self.shentsize, shnum,
            shstrndx,
        )

        image = bytearray(header)
        for seg in self.segments:
            image += self._pack_segment(seg)
        image += body
        if shnum:
            image += b"\x00" * self.shentsize
            for name_off, sec, offset in zip(name_offsets, sections, section_offsets):
                image += self._pack_section(name_off, sec, offset)
        return bytes(image)

    def stream(self) -> io.BytesIO:
        return io.BytesIO(self.build())


def _typical(builder: ElfImageBuilder, *, canary: bool = True) -> ElfImageBuilder:
    symbols = b"\x00main\x00printf\x00"
    if canary:
        symbols += b"__stack_chk_fail\x00"
    return (
        builder
        .add_segment(SegmentType.PHDR, PF_R, offset=builder.ehsize)
        .add_segment(SegmentType.LOAD, PF_R | PF_X, filesz=0x200, memsz=0x200)
        .add_segment(SegmentType.LOAD, PF_R | PF_W, offset=0x200, filesz=0x40, memsz=0x60)
        .add_segment(SegmentType.GNU_STACK, PF_R | PF_W, align=0x10)
        .add_segment(SegmentType.GNU_RELRO, PF_R, offset=0x200, filesz=0x20, memsz=0x20, align=1)
        .add_section(".text", SectionType.PROGBITS, flags=0x6, data=b"\x90" * 16)
        .add_section(".data", SectionType.PROGBITS, flags=0x3, data=b"\x00" * 8)
        .add_section(".symtab", SectionType.SYMTAB, data=b"\x00" * 24, entsize=24)
        .add_section(".strtab", SectionType.STRTAB, data=symbols)
    )


@pytest.fixture
def elf_builder() -> Callable[..., ElfImageBuilder]:
    """Factory for :class:`ElfImageBuilder` instances."""
    return ElfImageBuilder


@pytest.fixture
def hardened_image() -> bytes:
    """64-bit little-endian PIE with canary, NX and full RELRO."""
    return _typical(ElfImageBuilder()).build()


@pytest.fixture
def typical_builder() -> Callable[..., ElfImageBuilder]:
    """Builder pre-populated with the segments and sections of a hardened file."""
    def factory(*, canary: bool = True, **kwargs) -> ElfImageBuilder:
        return _typical(ElfImageBuilder(**kwargs), canary=canary)
    return factory


@pytest.fixture
def write_elf(tmp_path: Path) -> Callable[[str, bytes], Path]:
    def writer(name: str, data: bytes) -> Path:
        path = tmp_path / name
        path.write_bytes(data)
        return path
    return writer


@pytest.fixture
def quiet_logger() -> ToolLogger:
    return ToolLogger("test", console_output=False)


@pytest.fixture
def default_config() -> ToolConfig:
    return ToolConfig()
