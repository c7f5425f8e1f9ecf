"""
ELF Elements
=============

Typed, mutable views over windows of one shared image buffer.

An element stores nothing but a back-reference to its owning
:class:`~elfscope.parsers.elf_file.ElfFile`, a start offset and a length.
Every field is an :class:`ElfField` descriptor that looks its width and
offset up in the element's :class:`~elfscope.parsers.layouts.RecordLayout`
and reads or writes the shared buffer through the field codec using the
file's variant.  Writing a field through one element is therefore visible
through every other element whose window overlaps it.

Elements are created by the table walker and the record extractor; they are
never copied out of the buffer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar, Optional

from elfscope.parsers import layouts
from elfscope.parsers.codec import read_field, write_field
from elfscope.parsers.constants import (
    ELF_MAGIC,
    SHN_ABS,
    SHN_UNDEF,
    SHT_NOBITS,
    SHT_RELA,
)
from elfscope.parsers.errors import BoundsError, InvalidRecordTypeError
from elfscope.parsers.layouts import RecordLayout
from elfscope.parsers.strings import resolve_name
from elfscope.parsers.variant import FormatVariant

if TYPE_CHECKING:
    from elfscope.parsers.elf_file import ElfFile
    from elfscope.parsers.records import RecordKind


# ---------------------------------------------------------------------------
# Field descriptor
# ---------------------------------------------------------------------------

class ElfField:
    """Descriptor exposing one layout field as a read/write property."""

    def __init__(self, doc: str = "") -> None:
        self.__doc__ = doc
        self._name = ""

    def __set_name__(self, owner: type, name: str) -> None:
        self._name = name

    def __get__(self, obj: Optional[ElfElement], objtype: type | None = None) -> Any:
        if obj is None:
            return self
        return obj.read(self._name)

    def __set__(self, obj: ElfElement, value: int) -> None:
        obj.write(self._name, value)


# ---------------------------------------------------------------------------
# Base element
# ---------------------------------------------------------------------------

class ElfElement:
    """A fixed-length view into the owning file's buffer."""

    layout: ClassVar[RecordLayout]

    __slots__ = ("_elf", "_start", "_length")

    def __init__(self, elf: ElfFile, start: int, length: int | None = None) -> None:
        self._elf = elf
        self._start = start
        self._length = self.layout.size(elf.variant) if length is None else length

        limit = len(elf.buffer)
        if start < 0 or self._length < 0 or start + self._length > limit:
            raise BoundsError(
                f"{type(self).__name__} window [0x{start:x}, "
                f"0x{start + self._length:x}) exceeds buffer of {limit} bytes",
                offset=start,
                length=self._length,
                limit=limit,
            )

    # ------------------------------------------------------------------ #
    #  View geometry
    # ------------------------------------------------------------------ #

    @property
    def elf(self) -> ElfFile:
        """The decoded file this element belongs to."""
        return self._elf

    @property
    def variant(self) -> FormatVariant:
        return self._elf.variant

    @property
    def start(self) -> int:
        """Absolute offset of the first byte of this view."""
        return self._start

    @property
    def length(self) -> int:
        return self._length

    @property
    def end(self) -> int:
        return self._start + self._length

    @property
    def raw(self) -> memoryview:
        """The bytes of this element as a view into the shared buffer."""
        return memoryview(self._elf.buffer)[self._start:self.end]

    # ------------------------------------------------------------------ #
    #  Field access
    # ------------------------------------------------------------------ #

    def _locate(self, field_name: str) -> tuple[int, layouts.FieldSpec]:
        spec = self.layout[field_name]
        relative = spec.offset(self.variant)
        size = spec.width.size(self.variant)
        if relative + size > self._length:
            raise BoundsError(
                f"Field {field_name!r} at +0x{relative:x} ({size} bytes) lies "
                f"outside {type(self).__name__} of {self._length} bytes",
                offset=self._start + relative,
                length=size,
                limit=self.end,
            )
        return self._start + relative, spec

    def read(self, field_name: str) -> int:
        """Decode the named field from the shared buffer."""
        offset, spec = self._locate(field_name)
        return read_field(self._elf.buffer, offset, spec.width, self.variant)

    def write(self, field_name: str, value: int) -> None:
        """Encode *value* into the named field of the shared buffer."""
        offset, spec = self._locate(field_name)
        write_field(self._elf.buffer, offset, spec.width, self.variant, value)

    def to_dict(self) -> dict[str, int]:
        """Decode every layout field into a plain dictionary."""
        return {name: self.read(name) for name in self.layout.fields}

    def __repr__(self) -> str:
        return f"<{type(self).__name__} @0x{self._start:x}+{self._length}>"


def _window(elf: ElfFile, offset: int, size: int, owner: str) -> memoryview:
    limit = len(elf.buffer)
    if offset < 0 or size < 0 or offset + size > limit:
        raise BoundsError(
            f"{owner} content [0x{offset:x}, 0x{offset + size:x}) exceeds "
            f"buffer of {limit} bytes",
            offset=offset,
            length=size,
            limit=limit,
        )
    return memoryview(elf.buffer)[offset:offset + size]


def _write_window(elf: ElfFile, offset: int, size: int, data: bytes, owner: str) -> None:
    if len(data) > size:
        raise BoundsError(
            f"{len(data)} bytes do not fit the {size}-byte {owner} content",
            offset=offset,
            length=len(data),
            limit=offset + size,
        )
    _window(elf, offset, size, owner)
    elf.buffer[offset:offset + len(data)] = data


# ---------------------------------------------------------------------------
# File header
# ---------------------------------------------------------------------------

class FileHeader(ElfElement):
    """The ELF file header at offset 0 (``Elf32_Ehdr`` / ``Elf64_Ehdr``)."""

    layout = layouts.FILE_HEADER
    __slots__ = ()

    ei_class = ElfField("File class (1 = 32-bit, 2 = 64-bit).")
    ei_data = ElfField("Data encoding (1 = little, 2 = big endian).")
    ei_version = ElfField("Identification version.")
    ei_osabi = ElfField("OS/ABI identification.")
    ei_abiversion = ElfField("ABI version.")
    type = ElfField("Object file type (ET_*).")
    machine = ElfField("Target architecture (EM_*).")
    version = ElfField("Object file version.")
    entry = ElfField("Entry point virtual address.")
    phoff = ElfField("Program header table file offset.")
    shoff = ElfField("Section header table file offset.")
    flags = ElfField("Processor-specific flags.")
    ehsize = ElfField("Size of this header in bytes.")
    phentsize = ElfField("Size of one program header table entry.")
    phnum = ElfField("Number of program header table entries.")
    shentsize = ElfField("Size of one section header table entry.")
    shnum = ElfField("Number of section header table entries.")
    shstrndx = ElfField("Index of the section holding section names.")

    @property
    def magic(self) -> bytes:
        return bytes(self.raw[:len(ELF_MAGIC)])

    @property
    def is_valid_magic(self) -> bool:
        return self.magic == ELF_MAGIC

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"magic": self.magic}
        result.update(super().to_dict())
        return result


# ---------------------------------------------------------------------------
# Section header
# ---------------------------------------------------------------------------

class SectionHeader(ElfElement):
    """One section header table entry (``Elf32_Shdr`` / ``Elf64_Shdr``)."""

    layout = layouts.SECTION_HEADER
    __slots__ = ("_index",)

    name = ElfField("Offset of the section name in the section-name table.")
    type = ElfField("Section type (SHT_*).")
    flags = ElfField("Section attribute flags (SHF_*).")
    addr = ElfField("Virtual address when loaded.")
    offset = ElfField("File offset of the section content.")
    size = ElfField("Size of the section content in bytes.")
    link = ElfField("Index of an associated section.")
    info = ElfField("Extra type-dependent information.")
    addralign = ElfField("Address alignment constraint.")
    entsize = ElfField("Size of one entry for table-like sections.")

    def __init__(
        self,
        elf: ElfFile,
        start: int,
        length: int | None = None,
        index: int | None = None,
    ) -> None:
        super().__init__(elf, start, length)
        self._index = index

    @property
    def index(self) -> int:
        """Position of this header in the section header table.

        Raises:
            LookupError: If the header was built outside its file's table.
        """
        if self._index is None:
            raise LookupError("Section header is not part of its file's table")
        return self._index

    @property
    def content(self) -> memoryview:
        """The section bytes ``[offset, offset + size)`` as a live view.

        SHT_NOBITS sections occupy no space in the file, so their view is
        empty.
        """
        if self.type == SHT_NOBITS:
            return memoryview(self._elf.buffer)[0:0]
        return _window(self._elf, self.offset, self.size, "section")

    def write_content(self, data: bytes) -> None:
        """Copy *data* over the start of the section content in place."""
        _write_window(self._elf, self.offset, self.size, data, "section")

    def has_flag(self, flag: int) -> bool:
        return (self.flags & flag) == flag

    def get_name(self) -> str:
        """Resolve this section's name in the section-name string table."""
        return resolve_name(self._elf.section_name_table(), self.name)

    @property
    def linked_section(self) -> SectionHeader:
        """The section named by :attr:`link`."""
        return self._elf.section_at(self.link)

    def extract(self, kind: RecordKind) -> list[Any]:
        """Decode this section's content as an array of *kind* records."""
        from elfscope.parsers.records import extract_records

        return extract_records(self, kind)


# ---------------------------------------------------------------------------
# Program header
# ---------------------------------------------------------------------------

class ProgramHeader(ElfElement):
    """One program header table entry (``Elf32_Phdr`` / ``Elf64_Phdr``)."""

    layout = layouts.PROGRAM_HEADER
    __slots__ = ()

    type = ElfField("Segment type (PT_*).")
    flags = ElfField("Segment permission flags (PF_*).")
    offset = ElfField("File offset of the segment.")
    vaddr = ElfField("Virtual address of the segment.")
    paddr = ElfField("Physical address of the segment.")
    filesz = ElfField("Size of the segment in the file.")
    memsz = ElfField("Size of the segment in memory.")
    align = ElfField("Segment alignment.")

    @property
    def content(self) -> memoryview:
        """The segment bytes ``[offset, offset + filesz)`` as a live view."""
        return _window(self._elf, self.offset, self.filesz, "segment")

    def write_content(self, data: bytes) -> None:
        _write_window(self._elf, self.offset, self.filesz, data, "segment")

    def has_flag(self, flag: int) -> bool:
        return (self.flags & flag) == flag


# ---------------------------------------------------------------------------
# Section records
# ---------------------------------------------------------------------------

class SectionRecord(ElfElement):
    """A fixed-size record extracted from a section's content."""

    __slots__ = ("_section",)

    def __init__(
        self,
        elf: ElfFile,
        start: int,
        length: int | None = None,
        section: SectionHeader | None = None,
    ) -> None:
        super().__init__(elf, start, length)
        self._section = section

    @property
    def section(self) -> SectionHeader | None:
        """The section this record was extracted from."""
        return self._section


class Symbol(SectionRecord):
    """A symbol table entry (``Elf32_Sym`` / ``Elf64_Sym``)."""

    layout = layouts.SYMBOL
    __slots__ = ()

    name = ElfField("Offset of the symbol name in the linked string table.")
    value = ElfField("Symbol value, usually an address.")
    size = ElfField("Size of the object the symbol refers to.")
    info = ElfField("Packed binding (high nibble) and type (low nibble).")
    other = ElfField("Visibility in the low two bits.")
    shndx = ElfField("Index of the section the symbol is defined in.")

    @property
    def binding(self) -> int:
        return self.info >> 4

    @binding.setter
    def binding(self, value: int) -> None:
        self.info = ((value & 0xF) << 4) | (self.info & 0xF)

    @property
    def symbol_type(self) -> int:
        return self.info & 0xF

    @symbol_type.setter
    def symbol_type(self, value: int) -> None:
        self.info = (self.info & 0xF0) | (value & 0xF)

    @property
    def visibility(self) -> int:
        return self.other & 0x3

    @property
    def is_absolute(self) -> bool:
        return self.shndx == SHN_ABS

    @property
    def is_undefined(self) -> bool:
        return self.shndx == SHN_UNDEF

    def get_name(self) -> str:
        """Resolve the name in the string table linked from the source section."""
        if self._section is None:
            raise LookupError("Symbol was not extracted from a section")
        return resolve_name(self._section.linked_section.content, self.name)


class Relocation(SectionRecord):
    """A relocation entry, with or without an explicit addend.

    Whether the addend is present is fixed when the record is extracted
    (from a SHT_RELA or SHT_REL section); it is not stored in the bytes.
    """

    __slots__ = ("_has_addend",)

    offset = ElfField("Location the relocation applies to.")
    info = ElfField("Packed symbol index and relocation type.")

    def __init__(
        self,
        elf: ElfFile,
        start: int,
        length: int | None = None,
        section: SectionHeader | None = None,
        has_addend: bool | None = None,
    ) -> None:
        if has_addend is None:
            has_addend = section is not None and section.type == SHT_RELA
        self._has_addend = has_addend
        super().__init__(elf, start, length, section)

    @property
    def layout(self) -> RecordLayout:  # type: ignore[override]
        return layouts.RELOCATION_ADDEND if self._has_addend else layouts.RELOCATION

    @property
    def has_addend(self) -> bool:
        return self._has_addend

    @property
    def addend(self) -> int | None:
        """The explicit addend, or ``None`` for SHT_REL records."""
        if not self._has_addend:
            return None
        return self.read("addend")

    @addend.setter
    def addend(self, value: int) -> None:
        if not self._has_addend:
            raise InvalidRecordTypeError("Relocation without addend has no addend field")
        self.write("addend", value)

    @property
    def signed_addend(self) -> int | None:
        """The addend reinterpreted as a two's complement signed value."""
        addend = self.addend
        if addend is None:
            return None
        bits = self.variant.word_width
        return addend - (1 << bits) if addend >> (bits - 1) else addend

    @property
    def symbol_index(self) -> int:
        shift = 32 if self.variant.is_64bit else 8
        return self.info >> shift

    @property
    def relocation_type(self) -> int:
        mask = 0xFFFFFFFF if self.variant.is_64bit else 0xFF
        return self.info & mask


class DynamicEntry(SectionRecord):
    """A dynamic section entry (``Elf32_Dyn`` / ``Elf64_Dyn``)."""

    layout = layouts.DYNAMIC_ENTRY
    __slots__ = ()

    tag = ElfField("Entry type (DT_*).")
    value = ElfField("Integer value or address, depending on the tag.")

    @property
    def ptr(self) -> int:
        return self.value

    @ptr.setter
    def ptr(self, value: int) -> None:
        self.value = value


class Note(SectionRecord):
    """The fixed header of a note entry."""

    layout = layouts.NOTE
    __slots__ = ()

    namesz = ElfField("Size of the owner name.")
    descsz = ElfField("Size of the descriptor.")
    type = ElfField("Note type.")
