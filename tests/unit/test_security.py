from __future__ import annotations

import io

import pytest

from elfguard import decode, infer_security_options
from elfguard.analyzers.security import (
    detect_canary,
    detect_nx,
    detect_pie,
    detect_relro,
    find_symbol_string_table,
    read_section_bytes,
)
from elfguard.core.errors import MissingStructureError, TruncatedReadError, UnsupportedValueError
from elfguard.core.models import RelroLevel, SecurityOptions
from elfguard.parsers.constants import (
    PF_R,
    PF_W,
    PF_X,
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
from elfguard.parsers.structures import DecodedElf, ElfHeader, Identification, SectionHeader


def _infer(data: bytes) -> SecurityOptions:
    stream = io.BytesIO(data)
    return infer_security_options(decode(stream), stream)


def _name_table(data: bytes) -> bytes:
    stream = io.BytesIO(data)
    elf = decode(stream)
    return read_section_bytes(stream, elf.section_name_table())


# ---------------------------------------------------------------------------
# Whole-file inference
# ---------------------------------------------------------------------------

def test_hardened_binary(hardened_image: bytes) -> None:
    options = _infer(hardened_image)
    assert options == SecurityOptions(canary=True, nx=True, relro=RelroLevel.FULL, pie=True)


def test_unhardened_static_executable(elf_builder) -> None:
    builder = elf_builder(e_type=ObjectType.EXEC, entry=0x401000)
    builder.add_segment(SegmentType.LOAD, PF_R | PF_X)
    builder.add_segment(SegmentType.GNU_STACK, PF_R | PF_W)
    builder.add_section(".text", flags=0x6, data=b"\x90" * 8)
    builder.add_section(".strtab", SectionType.STRTAB, data=b"\x00main\x00")

    options = _infer(builder.build())
    assert options.nx is True
    assert options.relro is RelroLevel.NONE
    assert options.pie is False
    assert options.canary is False


@pytest.mark.parametrize("bits", [32, 64])
@pytest.mark.parametrize("byte_order", ["<", ">"])
def test_inference_across_classes(typical_builder, bits: int, byte_order: str) -> None:
    options = _infer(typical_builder(bits=bits, byte_order=byte_order).build())
    assert options == SecurityOptions(canary=True, nx=True, relro=RelroLevel.FULL, pie=True)


def test_inference_does_not_depend_on_stream_position(hardened_image: bytes) -> None:
    stream = io.BytesIO(hardened_image)
    elf = decode(stream)
    stream.seek(7)
    first = infer_security_options(elf, stream)
    stream.seek(0, io.SEEK_END)
    assert infer_security_options(elf, stream) == first


def test_inference_is_deterministic(hardened_image: bytes) -> None:
    assert _infer(hardened_image) == _infer(hardened_image)


def test_missing_section_name_table(typical_builder) -> None:
    builder = typical_builder()
    builder.shstrndx = 40
    with pytest.raises(MissingStructureError):
        _infer(builder.build())


def test_section_contents_past_end_of_file(typical_builder) -> None:
    data = bytearray(typical_builder().build())
    stream = io.BytesIO(bytes(data))
    elf = decode(stream)
    names = elf.section_name_table()
    truncated = io.BytesIO(bytes(data[: names.sh_offset + 2]))
    with pytest.raises(TruncatedReadError):
        read_section_bytes(truncated, names, "section-name string table")


@pytest.mark.parametrize(
    ("sh_offset", "sh_size"),
    [(2**63 + 5, 4), (0, 2**62), (16, 2**64 - 1)],
)
def test_oversized_section_extent_is_truncation(sh_offset: int, sh_size: int) -> None:
    section = SectionHeader(1, SectionType.STRTAB, 0, 0, sh_offset, sh_size, 0, 0, 1, 0)
    with pytest.raises(TruncatedReadError) as excinfo:
        read_section_bytes(io.BytesIO(b"\x00" * 64), section, ".strtab")
    assert excinfo.value.field == f".strtab at offset {sh_offset:#x}"


# ---------------------------------------------------------------------------
# NX
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(("flags", "expected"), [(PF_R | PF_W, True), (PF_R | PF_W | PF_X, False), (0, True)])
def test_nx_follows_stack_execute_bit(typical_builder, flags: int, expected: bool) -> None:
    builder = typical_builder()
    builder.segments = [s for s in builder.segments if s[0] != SegmentType.GNU_STACK]
    builder.add_segment(SegmentType.GNU_STACK, flags)
    assert detect_nx(decode(builder.stream())) is expected


def test_nx_uses_first_stack_segment(elf_builder) -> None:
    builder = elf_builder()
    builder.add_segment(SegmentType.GNU_STACK, PF_R | PF_W | PF_X)
    builder.add_segment(SegmentType.GNU_STACK, PF_R | PF_W)
    assert detect_nx(decode(builder.stream())) is False


def test_nx_requires_stack_segment(elf_builder) -> None:
    builder = elf_builder().add_segment(SegmentType.LOAD, PF_R | PF_X)
    with pytest.raises(MissingStructureError) as excinfo:
        detect_nx(decode(builder.stream()))
    assert excinfo.value.structure == "PT_GNU_STACK"


# ---------------------------------------------------------------------------
# RELRO
# ---------------------------------------------------------------------------

def test_relro_none_without_segment(typical_builder) -> None:
    builder = typical_builder()
    builder.segments = [s for s in builder.segments if s[0] != SegmentType.GNU_RELRO]
    builder.add_section(".got.plt", flags=0x3, data=b"\x00" * 24)
    data = builder.build()
    assert detect_relro(decode(io.BytesIO(data)), _name_table(data)) is RelroLevel.NONE


def test_relro_partial_with_got_plt(typical_builder) -> None:
    data = typical_builder().add_section(".got.plt", flags=0x3, data=b"\x00" * 24).build()
    assert detect_relro(decode(io.BytesIO(data)), _name_table(data)) is RelroLevel.PARTIAL


def test_relro_full_without_got_plt(typical_builder) -> None:
    data = typical_builder().add_section(".got", flags=0x3, data=b"\x00" * 8).build()
    assert detect_relro(decode(io.BytesIO(data)), _name_table(data)) is RelroLevel.FULL


# ---------------------------------------------------------------------------
# PIE
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(("e_type", "expected"), [(ObjectType.DYN, True), (ObjectType.EXEC, False)])
def test_pie_from_object_type(elf_builder, e_type: ObjectType, expected: bool) -> None:
    elf = decode(elf_builder(e_type=e_type).stream())
    assert detect_pie(elf.header) is expected


@pytest.mark.parametrize("e_type", [ObjectType.NONE, ObjectType.REL, ObjectType.CORE])
def test_pie_undefined_for_other_types(elf_builder, e_type: ObjectType) -> None:
    elf = decode(elf_builder(e_type=e_type).stream())
    with pytest.raises(UnsupportedValueError) as excinfo:
        detect_pie(elf.header)
    assert excinfo.value.field == "e_type"


# ---------------------------------------------------------------------------
# Canary
# ---------------------------------------------------------------------------

def test_canary_absent(typical_builder) -> None:
    data = typical_builder(canary=False).build()
    stream = io.BytesIO(data)
    assert detect_canary(decode(stream), stream, _name_table(data)) is False


def test_canary_requires_symbol_string_table(elf_builder) -> None:
    builder = elf_builder().add_segment(SegmentType.GNU_STACK, PF_R | PF_W)
    builder.add_section(".dynstr", SectionType.STRTAB, data=b"\x00__stack_chk_fail\x00")
    data = builder.build()
    stream = io.BytesIO(data)
    with pytest.raises(MissingStructureError) as excinfo:
        detect_canary(decode(stream), stream, _name_table(data))
    assert excinfo.value.structure == ".strtab"


def test_canary_ignores_dynamic_string_table(elf_builder) -> None:
    builder = elf_builder()
    builder.add_section(".dynstr", SectionType.STRTAB, data=b"\x00__stack_chk_fail\x00")
    builder.add_section(".strtab", SectionType.STRTAB, data=b"\x00main\x00")
    data = builder.build()
    stream = io.BytesIO(data)
    assert detect_canary(decode(stream), stream, _name_table(data)) is False


def _bare_elf(sections: list[SectionHeader]) -> DecodedElf:
    ident = Identification(b"\x7fELF", ElfClass.ELF64, ElfData.LSB, IdentVersion.CURRENT, OsAbi.NONE, 0)
    header = ElfHeader(
        ident, ObjectType.DYN, Machine.X86_64, ElfVersion.CURRENT,
        0, 0, 0, 0, 64, 56, 0, 64, len(sections), 0,
    )
    return DecodedElf(header, (), tuple(sections))


def _strtab(sh_name: int) -> SectionHeader:
    return SectionHeader(sh_name, SectionType.STRTAB, 0, 0, 0, 0, 0, 0, 1, 0)


def test_strtab_matches_any_occurrence_of_the_name() -> None:
    table = b"\x00.strtab\x00.symtab\x00.strtab\x00.shstrtab\x00"
    second = table.index(b".strtab\x00", 2)
    strtab = _strtab(second)
    elf = _bare_elf([_strtab(0), _strtab(table.index(b".symtab")), strtab])
    assert find_symbol_string_table(elf, table) is strtab


def test_shstrtab_is_not_taken_for_strtab() -> None:
    table = b"\x00.symtab\x00.shstrtab\x00"
    elf = _bare_elf([_strtab(0), _strtab(table.index(b".shstrtab"))])
    with pytest.raises(MissingStructureError):
        find_symbol_string_table(elf, table)


def test_strtab_name_must_be_exact() -> None:
    table = b"\x00.strtabx\x00.shstrtab\x00"
    # Offset 1 names ".strtabx", which is not an exact match.
    elf = _bare_elf([_strtab(0), _strtab(1), _strtab(table.index(b".shstrtab"))])
    with pytest.raises(MissingStructureError):
        find_symbol_string_table(elf, table)
