"""Shared fixtures: an in-memory ELF image builder for every variant.

The builder packs every structure with explicit :mod:`struct` formats rather
than through the layout tables, so the decoder is checked against an
independent encoding.

Section table of a built image::

    0  (null)
    1  .text        PROGBITS  AX
    2  .shstrtab    STRTAB
    3  .strtab      STRTAB
    4  .symtab      SYMTAB    link=3
    5  .rela.text   RELA/REL  link=4 info=1
    6  .dynstr      STRTAB
    7  .dynamic     DYNAMIC   link=6
    8  .note        NOTE
    9  .bss         NOBITS    WA
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Callable

import pytest


VARIANTS = [(32, "little"), (32, "big"), (64, "little"), (64, "big")]
VARIANT_IDS = ["elf32-le", "elf32-be", "elf64-le", "elf64-be"]

SHSTRTAB = (
    b"\x00.text\x00.shstrtab\x00.strtab\x00.symtab\x00.rela.text\x00"
    b".dynstr\x00.dynamic\x00.note\x00.bss\x00"
)
STRTAB = b"\x00foo\x00bar\x00"
DYNSTR = b"\x00libc.so.6\x00libm.so.6\x00libz.so.1\x00"
INTERP = b"/lib/ld-linux.so.2\x00"
TEXT = b"\x90" * 16

ENTRY = 0x401000
TEXT_ADDR = 0x401000


@dataclass
class BuiltElf:
    """A packed image plus the offsets the tests assert against."""

    data: bytearray
    bits: int
    endian: str
    phoff: int = 0
    shoff: int = 0
    offsets: dict[str, int] = field(default_factory=dict)

    @property
    def prefix(self) -> str:
        return "<" if self.endian == "little" else ">"

    @property
    def is64(self) -> bool:
        return self.bits == 64


def _name_offset(name: bytes) -> int:
    return SHSTRTAB.index(b"\x00" + name + b"\x00") + 1


def build_elf(
    bits: int = 64,
    endian: str = "little",
    *,
    rela: bool = True,
    with_sections: bool = True,
    with_segments: bool = True,
) -> BuiltElf:
    """Pack a small but complete ELF image.

    Args:
        bits: 32 or 64.
        endian: ``"little"`` or ``"big"``.
        rela: Emit the relocation section as SHT_RELA (else SHT_REL).
        with_sections: Emit a section header table.
        with_segments: Emit a program header table (PT_INTERP + PT_LOAD).
    """
    p = "<" if endian == "little" else ">"
    is64 = bits == 64
    ehsize = 0x40 if is64 else 0x34
    phentsize = 0x38 if is64 else 0x20
    shentsize = 0x40 if is64 else 0x28
    word = "Q" if is64 else "I"
    sword = "q" if is64 else "i"

    body = bytearray()
    offsets: dict[str, int] = {}
    phnum = 2 if with_segments else 0
    base = ehsize + phnum * phentsize

    def place(name: str, blob: bytes) -> None:
        offsets[name] = base + len(body)
        body.extend(blob)

    place("interp", INTERP)
    place(".text", TEXT)
    place(".shstrtab", SHSTRTAB)
    place(".strtab", STRTAB)

    if is64:
        sym_fmt = p + "IBBHQQ"
        symbols = [
            struct.pack(sym_fmt, 0, 0, 0, 0, 0, 0),
            struct.pack(sym_fmt, 1, 0x12, 0, 1, 0x401000, 16),   # foo: GLOBAL FUNC
            struct.pack(sym_fmt, 5, 0x01, 2, 0xFFF1, 0x2000, 8),  # bar: LOCAL OBJECT hidden ABS
        ]
    else:
        sym_fmt = p + "IIIBBH"
        symbols = [
            struct.pack(sym_fmt, 0, 0, 0, 0, 0, 0),
            struct.pack(sym_fmt, 1, 0x401000, 16, 0x12, 0, 1),
            struct.pack(sym_fmt, 5, 0x2000, 8, 0x01, 2, 0xFFF1),
        ]
    place(".symtab", b"".join(symbols))

    shift = 32 if is64 else 8
    rel_infos = [(1 << shift) | 7, (2 << shift) | 1]
    if rela:
        rel_fmt = p + word + word + sword
        relocs = [
            struct.pack(rel_fmt, 0x403000, rel_infos[0], -8),
            struct.pack(rel_fmt, 0x403008, rel_infos[1], 0x10),
        ]
    else:
        rel_fmt = p + word + word
        relocs = [
            struct.pack(rel_fmt, 0x403000, rel_infos[0]),
            struct.pack(rel_fmt, 0x403008, rel_infos[1]),
        ]
    place(".rela.text", b"".join(relocs))
    place(".dynstr", DYNSTR)

    dyn_fmt = p + word + word
    dynamic = [
        struct.pack(dyn_fmt, 1, 1),    # DT_NEEDED libc.so.6
        struct.pack(dyn_fmt, 1, 11),   # DT_NEEDED libm.so.6
        struct.pack(dyn_fmt, 0, 0),    # DT_NULL
        struct.pack(dyn_fmt, 1, 21),   # past DT_NULL, never reported
    ]
    place(".dynamic", b"".join(dynamic))
    place(".note", struct.pack(p + word * 3, 4, 16, 3))

    end_of_data = base + len(body)
    offsets["end"] = end_of_data

    sym_size = 0x18 if is64 else 0x10
    rel_size = (0x18 if is64 else 0x0C) if rela else (0x10 if is64 else 0x08)
    dyn_size = 0x10 if is64 else 0x08

    # name, type, flags, addr, offset, size, link, info, addralign, entsize
    sections = [
        (0, 0, 0, 0, 0, 0, 0, 0, 0, 0),
        (_name_offset(b".text"), 1, 0x6, TEXT_ADDR, offsets[".text"], len(TEXT), 0, 0, 16, 0),
        (_name_offset(b".shstrtab"), 3, 0, 0, offsets[".shstrtab"], len(SHSTRTAB), 0, 0, 1, 0),
        (_name_offset(b".strtab"), 3, 0, 0, offsets[".strtab"], len(STRTAB), 0, 0, 1, 0),
        (_name_offset(b".symtab"), 2, 0, 0, offsets[".symtab"], 3 * sym_size, 3, 1, 8, sym_size),
        (_name_offset(b".rela.text"), 4 if rela else 9, 0x40, 0, offsets[".rela.text"],
         2 * rel_size, 4, 1, 8, rel_size),
        (_name_offset(b".dynstr"), 3, 0x2, 0, offsets[".dynstr"], len(DYNSTR), 0, 0, 1, 0),
        (_name_offset(b".dynamic"), 6, 0x3, 0, offsets[".dynamic"], 4 * dyn_size, 6, 0, 8, dyn_size),
        (_name_offset(b".note"), 7, 0x2, 0, offsets[".note"], 3 * (8 if is64 else 4), 0, 0, 4, 0),
        (_name_offset(b".bss"), 8, 0x3, 0x404000, 0x7FFF0000, 0x100, 0, 0, 16, 0),
    ]
    shnum = len(sections) if with_sections else 0
    shoff = end_of_data if with_sections else 0
    if with_sections:
        sh_fmt = p + ("IIQQQQIIQQ" if is64 else "IIIIIIIIII")
        for sh in sections:
            body.extend(struct.pack(sh_fmt, *sh))

    phoff = ehsize if with_segments else 0
    segments = b""
    if with_segments:
        total = base + len(body)
        if is64:
            ph_fmt = p + "IIQQQQQQ"
            segments = (
                struct.pack(ph_fmt, 3, 4, offsets["interp"], 0x400200, 0x400200,
                            len(INTERP), len(INTERP), 1)
                + struct.pack(ph_fmt, 1, 5, 0, 0x400000, 0x400000, total, total, 0x1000)
            )
        else:
            ph_fmt = p + "IIIIIIII"
            segments = (
                struct.pack(ph_fmt, 3, offsets["interp"], 0x400200, 0x400200,
                            len(INTERP), len(INTERP), 4, 1)
                + struct.pack(ph_fmt, 1, 0, 0x400000, 0x400000, total, total, 5, 0x1000)
            )

    ident = b"\x7fELF" + bytes([
        2 if is64 else 1,
        1 if endian == "little" else 2,
        1,   # EI_VERSION
        3,   # EI_OSABI (Linux)
        0,   # EI_ABIVERSION
    ]) + b"\x00" * 7

    eh_fmt = p + ("16sHHIQQQIHHHHHH" if is64 else "16sHHIIIIIHHHHHH")
    header = struct.pack(
        eh_fmt, ident,
        2,                      # ET_EXEC
        62 if is64 else 3,      # EM_X86_64 / EM_386
        1,
        ENTRY, phoff, shoff,
        0,
        ehsize, phentsize, phnum, shentsize, shnum,
        2 if with_sections else 0,
    )

    data = bytearray(header + segments + body)
    return BuiltElf(
        data=data, bits=bits, endian=endian,
        phoff=phoff, shoff=shoff, offsets=offsets,
    )


@pytest.fixture
def make_elf() -> Callable[..., BuiltElf]:
    """The image builder, for tests that need a specific variant."""
    return build_elf


@pytest.fixture(params=VARIANTS, ids=VARIANT_IDS)
def built(request: pytest.FixtureRequest) -> BuiltElf:
    """A complete image in each of the four variants."""
    bits, endian = request.param
    return build_elf(bits, endian)


@pytest.fixture
def elf(built: BuiltElf):
    from elfscope.parsers.elf_file import ElfFile

    return ElfFile(built.data)


@pytest.fixture
def elf_path(tmp_path, make_elf):
    """A 64-bit little-endian image written to disk."""
    path = tmp_path / "sample.elf"
    path.write_bytes(bytes(make_elf(64, "little").data))
    return path
