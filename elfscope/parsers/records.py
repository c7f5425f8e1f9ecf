"""
Typed Record Extractor
=======================

Decodes a section's content as an array of fixed-size records.  The record
kind is a closed enumeration; each member knows which section types may hold
it and which element class views one record.

    symtab = elf.get_section_by_name(".symtab")
    for sym in symtab.extract(RecordKind.SYMBOL):
        print(sym.get_name(), hex(sym.value))

References:
    - System V gABI, chapter 4 "Object Files" (Symbol Table, Relocation,
      Note Section) and chapter 5 "Dynamic Section"
"""

from __future__ import annotations

import enum
from functools import partial
from typing import TYPE_CHECKING, Any

from elfscope.parsers import layouts
from elfscope.parsers.constants import (
    SHT_DYNAMIC,
    SHT_DYNSYM,
    SHT_NAMES,
    SHT_NOTE,
    SHT_REL,
    SHT_RELA,
    SHT_SYMTAB,
    lookup_name,
)
from elfscope.parsers.elements import (
    DynamicEntry,
    Note,
    Relocation,
    SectionRecord,
    Symbol,
)
from elfscope.parsers.errors import BoundsError, InvalidRecordTypeError
from elfscope.parsers.table import walk_table

if TYPE_CHECKING:
    from elfscope.parsers.elements import SectionHeader


class RecordKind(enum.Enum):
    """Kinds of records a section can hold, with their allowed section types."""

    SYMBOL = ("symbol", frozenset({SHT_SYMTAB, SHT_DYNSYM}))
    RELOCATION = ("relocation", frozenset({SHT_REL, SHT_RELA}))
    DYNAMIC = ("dynamic", frozenset({SHT_DYNAMIC}))
    NOTE = ("note", frozenset({SHT_NOTE}))

    def __new__(cls, label: str, section_types: frozenset[int]) -> RecordKind:
        member = object.__new__(cls)
        member._value_ = label
        member.section_types = section_types
        return member

    def accepts(self, section_type: int) -> bool:
        return section_type in self.section_types

    @property
    def element_class(self) -> type[SectionRecord]:
        return _ELEMENT_CLASSES[self]

    def natural_size(self, section: SectionHeader) -> int:
        """Size of one record of this kind in *section*'s variant."""
        variant = section.variant
        if self is RecordKind.RELOCATION:
            layout = (
                layouts.RELOCATION_ADDEND
                if section.type == SHT_RELA
                else layouts.RELOCATION
            )
            return layout.size(variant)
        return self.element_class.layout.size(variant)


_ELEMENT_CLASSES: dict[RecordKind, type[SectionRecord]] = {
    RecordKind.SYMBOL: Symbol,
    RecordKind.RELOCATION: Relocation,
    RecordKind.DYNAMIC: DynamicEntry,
    RecordKind.NOTE: Note,
}


def extract_records(section: SectionHeader, kind: RecordKind) -> list[Any]:
    """Decode *section*'s content as an array of *kind* records.

    The stride is the section's ``entsize``, or the record's natural size when
    ``entsize`` is 0.  Each record is a live view into the shared buffer and
    keeps a reference to *section*.

    Raises:
        InvalidRecordTypeError: If the section type cannot hold *kind*.
        BoundsError: If the content does not divide into whole records or
            lies outside the buffer.
    """
    section_type = section.type
    if not kind.accepts(section_type):
        raise InvalidRecordTypeError(
            f"Section of type {lookup_name(SHT_NAMES, section_type)} "
            f"cannot hold {kind.value} records",
            section_type=section_type,
        )

    stride = section.entsize or kind.natural_size(section)
    size = section.size
    if size % stride:
        raise BoundsError(
            f"Section size {size} is not a multiple of the {stride}-byte "
            f"{kind.value} record",
            offset=section.offset,
            length=size,
            limit=section.offset + size,
        )

    if kind is RecordKind.RELOCATION:
        factory = partial(
            _make_relocation,
            section=section,
            has_addend=section_type == SHT_RELA,
        )
    else:
        factory = partial(_make_record, cls=kind.element_class, section=section)

    return walk_table(section.elf, section.offset, stride, size // stride, factory)


def _make_record(elf, start, length, *, cls, section):
    return cls(elf, start, length, section)


def _make_relocation(elf, start, length, *, section, has_addend):
    return Relocation(elf, start, length, section, has_addend)
