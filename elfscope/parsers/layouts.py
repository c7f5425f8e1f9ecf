"""
ELF Record Layouts
===================

One declarative table per record type, giving every field's width class and
its byte offset under the 32-bit and the 64-bit layout.  Offsets are relative
to the start of the record.

Most layouts follow the offset-doubling rule: fields before the first
native-word field keep their offset, and everything after it shifts by the
growth of the native words in front of it.  Program headers and symbols do
not: their 64-bit forms reorder fields (``p_flags`` moves up next to
``p_type``; ``st_info``/``st_other``/``st_shndx`` move ahead of
``st_value``), so every offset below is written out rather than derived.
"""

from __future__ import annotations

from dataclasses import dataclass

from elfscope.parsers.codec import Width
from elfscope.parsers.variant import FormatVariant


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """Width and per-variant offset of one field."""

    width: Width
    offset32: int
    offset64: int

    def offset(self, variant: FormatVariant) -> int:
        return self.offset64 if variant.is_64bit else self.offset32


@dataclass(frozen=True, slots=True)
class RecordLayout:
    """Field table plus natural record size for one record type."""

    name: str
    size32: int
    size64: int
    fields: dict[str, FieldSpec]

    def size(self, variant: FormatVariant) -> int:
        return self.size64 if variant.is_64bit else self.size32

    def __getitem__(self, field_name: str) -> FieldSpec:
        return self.fields[field_name]

    def __contains__(self, field_name: object) -> bool:
        return field_name in self.fields


def _f(width: Width, offset32: int, offset64: int | None = None) -> FieldSpec:
    return FieldSpec(width, offset32, offset32 if offset64 is None else offset64)


U8, U16, U32, U64, W = Width.U8, Width.U16, Width.U32, Width.U64, Width.NATIVE


# Elf32_Ehdr / Elf64_Ehdr
FILE_HEADER = RecordLayout(
    name="Ehdr",
    size32=0x34,
    size64=0x40,
    fields={
        "ei_class":      _f(U8, 0x04),
        "ei_data":       _f(U8, 0x05),
        "ei_version":    _f(U8, 0x06),
        "ei_osabi":      _f(U8, 0x07),
        "ei_abiversion": _f(U8, 0x08),
        "type":          _f(U16, 0x10),
        "machine":       _f(U16, 0x12),
        "version":       _f(U32, 0x14),
        "entry":         _f(W, 0x18),
        "phoff":         _f(W, 0x1C, 0x20),
        "shoff":         _f(W, 0x20, 0x28),
        "flags":         _f(U32, 0x24, 0x30),
        "ehsize":        _f(U16, 0x28, 0x34),
        "phentsize":     _f(U16, 0x2A, 0x36),
        "phnum":         _f(U16, 0x2C, 0x38),
        "shentsize":     _f(U16, 0x2E, 0x3A),
        "shnum":         _f(U16, 0x30, 0x3C),
        "shstrndx":      _f(U16, 0x32, 0x3E),
    },
)

# Elf32_Shdr / Elf64_Shdr
SECTION_HEADER = RecordLayout(
    name="Shdr",
    size32=0x28,
    size64=0x40,
    fields={
        "name":      _f(U32, 0x00),
        "type":      _f(U32, 0x04),
        "flags":     _f(W, 0x08),
        "addr":      _f(W, 0x0C, 0x10),
        "offset":    _f(W, 0x10, 0x18),
        "size":      _f(W, 0x14, 0x20),
        "link":      _f(U32, 0x18, 0x28),
        "info":      _f(U32, 0x1C, 0x2C),
        "addralign": _f(W, 0x20, 0x30),
        "entsize":   _f(W, 0x24, 0x38),
    },
)

# Elf32_Phdr / Elf64_Phdr
PROGRAM_HEADER = RecordLayout(
    name="Phdr",
    size32=0x20,
    size64=0x38,
    fields={
        "type":   _f(U32, 0x00),
        "flags":  _f(U32, 0x18, 0x04),
        "offset": _f(W, 0x04, 0x08),
        "vaddr":  _f(W, 0x08, 0x10),
        "paddr":  _f(W, 0x0C, 0x18),
        "filesz": _f(W, 0x10, 0x20),
        "memsz":  _f(W, 0x14, 0x28),
        "align":  _f(W, 0x1C, 0x30),
    },
)

# Elf32_Sym / Elf64_Sym
SYMBOL = RecordLayout(
    name="Sym",
    size32=0x10,
    size64=0x18,
    fields={
        "name":  _f(U32, 0x00),
        "value": _f(W, 0x04, 0x08),
        "size":  _f(W, 0x08, 0x10),
        "info":  _f(U8, 0x0C, 0x04),
        "other": _f(U8, 0x0D, 0x05),
        "shndx": _f(U16, 0x0E, 0x06),
    },
)

# Elf32_Rel / Elf64_Rel
RELOCATION = RecordLayout(
    name="Rel",
    size32=0x08,
    size64=0x10,
    fields={
        "offset": _f(W, 0x00),
        "info":   _f(W, 0x04, 0x08),
    },
)

# Elf32_Rela / Elf64_Rela
RELOCATION_ADDEND = RecordLayout(
    name="Rela",
    size32=0x0C,
    size64=0x18,
    fields={
        "offset": _f(W, 0x00),
        "info":   _f(W, 0x04, 0x08),
        "addend": _f(W, 0x08, 0x10),
    },
)

# Elf32_Dyn / Elf64_Dyn
DYNAMIC_ENTRY = RecordLayout(
    name="Dyn",
    size32=0x08,
    size64=0x10,
    fields={
        "tag":   _f(W, 0x00),
        "value": _f(W, 0x04, 0x08),
    },
)

# Note header: namesz, descsz, type as consecutive native words
NOTE = RecordLayout(
    name="Nhdr",
    size32=0x0C,
    size64=0x18,
    fields={
        "namesz": _f(W, 0x00),
        "descsz": _f(W, 0x04, 0x08),
        "type":   _f(W, 0x08, 0x10),
    },
)
