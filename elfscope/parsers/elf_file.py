"""
Decoded ELF File
=================

:class:`ElfFile` owns the image buffer and everything decoded from it: the
format variant, the file header and the two header tables.  All of these are
live views, so the buffer stays the single authoritative encoded form and
:meth:`ElfFile.save` simply writes it out.

    elf = ElfFile.from_path("/bin/ls")
    text = elf.get_section_by_name(".text")
    text.addralign = 32
    elf.save("/tmp/ls.patched")

References:
    - System V gABI, chapter 4 "Object Files"
    - https://refspecs.linuxfoundation.org/elf/elf.pdf
"""

from __future__ import annotations

import itertools
from pathlib import Path
from typing import Optional, Union

from elfscope.parsers import layouts
from elfscope.parsers.constants import (
    DT_NEEDED,
    DT_NULL,
    PT_INTERP,
    SHT_DYNAMIC,
    SHT_SYMTAB,
)
from elfscope.parsers.elements import (
    DynamicEntry,
    FileHeader,
    ProgramHeader,
    SectionHeader,
    Symbol,
)
from elfscope.parsers.errors import BoundsError
from elfscope.parsers.records import RecordKind
from elfscope.parsers.strings import resolve_name
from elfscope.parsers.table import walk_table
from elfscope.parsers.variant import FormatVariant, resolve_variant


class ElfFile:
    """An ELF image decoded in place over a shared ``bytearray``.

    Passing a ``bytearray`` shares it: edits made through this object are
    visible to the caller's buffer and vice versa.  Use :meth:`from_bytes`
    to decode a private copy.

    Raises:
        BoundsError: If the identification bytes, the file header or either
            header table lies outside the buffer.
        InvalidVariantError: If the image is not a recognised ELF variant.
    """

    def __init__(self, buffer: bytearray) -> None:
        if not isinstance(buffer, bytearray):
            raise TypeError(
                f"ElfFile needs a bytearray, got {type(buffer).__name__}; "
                "use ElfFile.from_bytes() for immutable input"
            )
        self._buffer = buffer
        self._variant = resolve_variant(buffer)
        self._header = FileHeader(self, 0)

        header = self._header
        self._program_headers: list[ProgramHeader] = []
        if header.phoff:
            self._program_headers = walk_table(
                self, header.phoff, header.phentsize, header.phnum, ProgramHeader,
            )

        self._section_headers: list[SectionHeader] = []
        if header.shoff:
            # the walker builds entries in table order
            indices = itertools.count()
            self._section_headers = walk_table(
                self, header.shoff, header.shentsize, header.shnum,
                lambda elf, start, length: SectionHeader(elf, start, length, next(indices)),
            )

    @classmethod
    def from_bytes(cls, data: bytes | bytearray | memoryview) -> ElfFile:
        """Decode a private copy of *data*."""
        return cls(bytearray(data))

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> ElfFile:
        """Read and decode the file at *path*."""
        return cls(bytearray(Path(path).read_bytes()))

    # ------------------------------------------------------------------ #
    #  Decoded structure
    # ------------------------------------------------------------------ #

    @property
    def buffer(self) -> bytearray:
        """The shared, authoritative image bytes."""
        return self._buffer

    @property
    def variant(self) -> FormatVariant:
        return self._variant

    @property
    def header(self) -> FileHeader:
        return self._header

    @property
    def program_headers(self) -> list[ProgramHeader]:
        return self._program_headers

    @property
    def section_headers(self) -> list[SectionHeader]:
        return self._section_headers

    @property
    def header_size(self) -> int:
        return layouts.FILE_HEADER.size(self._variant)

    # ------------------------------------------------------------------ #
    #  Section lookup
    # ------------------------------------------------------------------ #

    def section_at(self, index: int) -> SectionHeader:
        """Return the section header at *index*.

        Raises:
            BoundsError: If *index* is not a valid section table index.
        """
        count = len(self._section_headers)
        if index < 0 or index >= count:
            raise BoundsError(
                f"Section index {index} outside table of {count} entries",
                offset=index,
                length=1,
                limit=count,
            )
        return self._section_headers[index]

    def section_name_table(self) -> memoryview:
        """Content of the section-name string table (``e_shstrndx``)."""
        return self.section_at(self._header.shstrndx).content

    def get_section_by_name(self, name: str) -> Optional[SectionHeader]:
        """Return the first section whose resolved name is *name*."""
        table = self.section_name_table()
        for section in self._section_headers:
            if resolve_name(table, section.name) == name:
                return section
        return None

    def get_sections_by_type(self, sh_type: int) -> list[SectionHeader]:
        return [s for s in self._section_headers if s.type == sh_type]

    # ------------------------------------------------------------------ #
    #  Records
    # ------------------------------------------------------------------ #

    def get_symbols(self) -> list[tuple[SectionHeader, list[Symbol]]]:
        """Symbols of every SHT_SYMTAB section, paired with their section."""
        return [
            (section, section.extract(RecordKind.SYMBOL))
            for section in self.get_sections_by_type(SHT_SYMTAB)
        ]

    def get_dynamic(self) -> list[tuple[SectionHeader, list[DynamicEntry]]]:
        """Entries of every SHT_DYNAMIC section, paired with their section."""
        return [
            (section, section.extract(RecordKind.DYNAMIC))
            for section in self.get_sections_by_type(SHT_DYNAMIC)
        ]

    def get_interpreter(self) -> str:
        """Return the PT_INTERP path (dynamic linker), or ``""``."""
        for segment in self._program_headers:
            if segment.type == PT_INTERP:
                raw = bytes(segment.content)
                return raw.split(b"\x00", 1)[0].decode("utf-8", errors="replace")
        return ""

    def get_needed_libraries(self) -> list[str]:
        """Return the DT_NEEDED names of every dynamic section, in order.

        Names are resolved in the string table linked from the dynamic
        section.  Scanning of a section stops at its DT_NULL entry.
        """
        needed: list[str] = []
        for section, entries in self.get_dynamic():
            strtab = section.linked_section.content
            for entry in entries:
                tag = entry.tag
                if tag == DT_NULL:
                    break
                if tag == DT_NEEDED:
                    needed.append(resolve_name(strtab, entry.value))
        return needed

    # ------------------------------------------------------------------ #
    #  Output
    # ------------------------------------------------------------------ #

    def save(self, path: Union[str, Path]) -> Path:
        """Write the current buffer to *path* and return it."""
        out = Path(path)
        out.write_bytes(bytes(self._buffer))
        return out

    def __len__(self) -> int:
        return len(self._buffer)

    def __repr__(self) -> str:
        return (
            f"<ElfFile {self._variant} sections={len(self._section_headers)} "
            f"segments={len(self._program_headers)}>"
        )

