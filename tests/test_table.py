"""Tests for the table walker and the header tables it produces."""

import struct

import pytest

from elfscope.parsers.elements import ProgramHeader, SectionHeader
from elfscope.parsers.elf_file import ElfFile
from elfscope.parsers.errors import BoundsError
from elfscope.parsers.table import walk_table


def _minimal_64le_with_one_load() -> bytearray:
    ident = b"\x7fELF\x02\x01\x01" + b"\x00" * 9
    header = struct.pack(
        "<16sHHIQQQIHHHHHH",
        ident, 2, 62, 1, 0, 0x40, 0, 0, 0x40, 0x38, 1, 0x40, 0, 0,
    )
    phdr = struct.pack("<IIQQQQQQ", 1, 5, 0x1000, 0x400000, 0x400000, 0x200, 0x200, 0x1000)
    return bytearray(header + phdr)


def test_minimal_64_bit_program_header():
    data = _minimal_64le_with_one_load()
    assert len(data) == 0x40 + 0x38

    elf = ElfFile(data)
    assert len(elf.program_headers) == 1
    assert elf.section_headers == []

    ph = elf.program_headers[0]
    assert ph.type == 1
    assert ph.offset == 0x1000
    assert ph.filesz == 0x200
    assert ph.flags == 5
    assert ph.start == 0x40


def test_walker_counts_and_start_offsets(elf, built):
    shentsize = 0x40 if built.is64 else 0x28
    phentsize = 0x38 if built.is64 else 0x20

    assert len(elf.section_headers) == 10
    for i, sh in enumerate(elf.section_headers):
        assert sh.start == built.shoff + i * shentsize
        assert sh.length == shentsize

    assert len(elf.program_headers) == 2
    for i, ph in enumerate(elf.program_headers):
        assert ph.start == built.phoff + i * phentsize


@pytest.mark.parametrize("count", [0, 1, 3])
def test_walk_table_returns_exactly_count(elf, count):
    views = walk_table(elf, 0, 4, count, SectionHeader)
    assert len(views) == count
    assert [v.start for v in views] == [i * 4 for i in range(count)]


def test_last_window_past_the_end(elf):
    limit = len(elf.buffer)
    with pytest.raises(BoundsError) as info:
        walk_table(elf, limit - 0x30, 0x20, 2, ProgramHeader)
    assert info.value.limit == limit


def test_zero_table_offset_means_no_table(make_elf):
    built = make_elf(64, "little", with_sections=False, with_segments=False)
    elf = ElfFile(built.data)
    assert elf.program_headers == []
    assert elf.section_headers == []


def test_table_past_buffer_end_fails_decode(make_elf):
    built = make_elf(32, "big")
    # shnum grows past the end of the file
    struct.pack_into(">H", built.data, 0x30, 200)
    with pytest.raises(BoundsError):
        ElfFile(built.data)


def test_program_header_flags_position(built):
    elf = ElfFile(built.data)
    interp = elf.program_headers[0]
    assert interp.type == 3
    assert interp.flags == 4

    interp.flags = 7
    flags_at = interp.start + (0x04 if built.is64 else 0x18)
    assert struct.unpack_from(built.prefix + "I", built.data, flags_at)[0] == 7


def test_program_header_fields(elf, built):
    load = elf.program_headers[1]
    assert load.type == 1
    assert load.offset == 0
    assert load.vaddr == 0x400000
    assert load.paddr == 0x400000
    assert load.filesz == len(built.data)
    assert load.memsz == len(built.data)
    assert load.align == 0x1000
    assert load.has_flag(0x4) and load.has_flag(0x1)
    assert not load.has_flag(0x2)


def test_every_program_header_field_round_trips(elf):
    segment = elf.program_headers[1]
    expected = {}
    for i, (name, spec) in enumerate(segment.layout.fields.items()):
        size = spec.width.size(elf.variant)
        expected[name] = (1 << (size * 8)) - 2 - i
        setattr(segment, name, expected[name])
        assert getattr(segment, name) == expected[name], name
    assert segment.to_dict() == expected
