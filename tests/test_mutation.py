"""Tests for in-place mutation over the shared buffer."""

import struct

import pytest

from elfscope.parsers.elements import SectionHeader
from elfscope.parsers.elf_file import ElfFile
from elfscope.parsers.errors import BoundsError
from elfscope.parsers.records import RecordKind


def _decode_everything(elf: ElfFile) -> dict:
    decoded = {
        "header": {k: v for k, v in elf.header.to_dict().items() if k != "ei_data"},
        "segments": [ph.to_dict() for ph in elf.program_headers],
        "sections": [sh.to_dict() for sh in elf.section_headers],
        "names": [sh.get_name() for sh in elf.section_headers],
    }
    for kind, index in (
        (RecordKind.SYMBOL, 4),
        (RecordKind.RELOCATION, 5),
        (RecordKind.DYNAMIC, 7),
        (RecordKind.NOTE, 8),
    ):
        records = elf.section_headers[index].extract(kind)
        decoded[kind.value] = [r.to_dict() for r in records]
    return decoded


@pytest.mark.parametrize("bits", [32, 64])
def test_byte_swapped_image_decodes_identically(make_elf, bits):
    little = ElfFile(make_elf(bits, "little").data)
    big = ElfFile(make_elf(bits, "big").data)

    assert little.header.ei_data == 1
    assert big.header.ei_data == 2
    assert _decode_everything(little) == _decode_everything(big)


def test_flipping_the_data_byte_and_swapping_the_header():
    ident = bytearray(b"\x7fELF\x01\x01\x01" + b"\x00" * 9)
    fields = (2, 3, 1, 0x8048000, 0x34, 0, 0, 0x34, 0x20, 0, 0x28, 0, 0)
    little = bytearray(struct.pack("<16sHHIIIIIHHHHHH", bytes(ident), *fields))

    ident[5] = 2
    big = bytearray(struct.pack(">16sHHIIIIIHHHHHH", bytes(ident), *fields))

    decoded_le = ElfFile(little).header.to_dict()
    decoded_be = ElfFile(big).header.to_dict()
    decoded_le.pop("ei_data")
    decoded_be.pop("ei_data")
    assert decoded_le == decoded_be


def test_writes_are_visible_through_overlapping_views(elf):
    symtab = elf.section_headers[4]
    foo = symtab.extract(RecordKind.SYMBOL)[1]
    same_foo = symtab.extract(RecordKind.SYMBOL)[1]

    foo.value = 0x1234
    assert same_foo.value == 0x1234

    # st_name and sh_name share offset 0, so a section header laid over the
    # symbol aliases its name field
    alias = SectionHeader(elf, foo.start, foo.length)
    alias.name = 5
    assert foo.get_name() == "bar"

    foo_bytes = bytes(symtab.content[foo.start - symtab.offset:foo.end - symtab.offset])
    assert foo_bytes == bytes(foo.raw)


def test_caller_buffer_is_shared(built):
    elf = ElfFile(built.data)
    elf.header.entry = 0xCAFE
    word = "Q" if built.is64 else "I"
    assert struct.unpack_from(built.prefix + word, built.data, 0x18)[0] == 0xCAFE

    struct.pack_into(built.prefix + word, built.data, 0x18, 0xBEEF)
    assert elf.header.entry == 0xBEEF


def test_header_table_edit_takes_effect_on_redecode(built):
    elf = ElfFile(built.data)
    elf.header.shnum = 3
    assert len(elf.section_headers) == 10
    assert len(ElfFile(elf.buffer).section_headers) == 3


def test_raw_is_a_view_not_a_copy(elf):
    text = elf.section_headers[1]
    raw = text.raw
    text.size = 0x55
    size_at = 0x20 if elf.variant.is_64bit else 0x14
    assert raw[size_at] == (0x55 if elf.variant.is_little_endian else 0)


def test_field_outside_a_short_window(elf):
    short = SectionHeader(elf, 0, 8)
    assert short.name == struct.unpack_from(elf.variant.endianness.struct_prefix + "I", b"\x7fELF")[0]
    with pytest.raises(BoundsError):
        short.size
