"""
elfscope Report Models
=======================

Pydantic snapshots of a decoded image, built from the live views for
display and JSON export.  Unlike the views they are detached copies: editing
the buffer afterwards does not change a report.

References:
    - TIS Committee. (1995). Executable and Linkable Format (ELF) Specification.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class HeaderInfo(BaseModel):
    """The file header with its codes translated to names.

    Attributes:
        bits: Word width (32 or 64).
        endian: Byte order (``"little"`` or ``"big"``).
        type: Object file type name (``EXEC``, ``DYN`` ...).
        machine: Target architecture name.
        osabi: OS/ABI name from ``e_ident``.
        entry: Entry point virtual address.
    """
    bits: int = 0
    endian: str = "little"
    type: str = ""
    machine: str = ""
    osabi: str = ""
    abi_version: int = 0
    version: int = 0
    entry: int = 0
    phoff: int = 0
    shoff: int = 0
    flags: int = 0
    ehsize: int = 0
    phentsize: int = 0
    phnum: int = 0
    shentsize: int = 0
    shnum: int = 0
    shstrndx: int = 0


class SectionInfo(BaseModel):
    """One section header.

    ``flags`` holds the readelf-style letter string (``"AX"`` for an
    allocated executable section); ``flags_raw`` keeps the integer.
    """
    index: int = 0
    name: str = ""
    type: str = ""
    flags: str = ""
    flags_raw: int = 0
    addr: int = 0
    offset: int = 0
    size: int = 0
    link: int = 0
    info: int = 0
    addralign: int = 0
    entsize: int = 0


class SegmentInfo(BaseModel):
    """One program header; ``flags`` is an ``RWE`` string."""
    index: int = 0
    type: str = ""
    flags: str = ""
    offset: int = 0
    vaddr: int = 0
    paddr: int = 0
    filesz: int = 0
    memsz: int = 0
    align: int = 0


class SymbolInfo(BaseModel):
    index: int = 0
    name: str = ""
    value: int = 0
    size: int = 0
    type: str = ""
    bind: str = ""
    visibility: str = ""
    shndx: str = ""
    table: str = ""


class RelocationInfo(BaseModel):
    """A relocation entry; ``addend`` is ``None`` for SHT_REL sections."""
    offset: int = 0
    info: int = 0
    type: int = 0
    symbol_index: int = 0
    addend: Optional[int] = None
    section: str = ""


class DynamicInfo(BaseModel):
    tag: str = ""
    value: int = 0
    text: str = ""


class NoteInfo(BaseModel):
    namesz: int = 0
    descsz: int = 0
    type: int = 0
    section: str = ""


class ElfReport(BaseModel):
    """Everything :class:`~elfscope.core.engine.InspectEngine` reports.

    Attributes:
        path: Source path, or ``"<memory>"``.
        size: Image size in bytes.
        md5: MD5 digest of the image.
        sha256: SHA-256 digest of the image.
        interpreter: PT_INTERP path, empty for static images.
        needed: DT_NEEDED library names in dynamic-section order.
        warnings: Sections that could not be decoded, one message each.
    """
    path: str = ""
    size: int = 0
    md5: str = ""
    sha256: str = ""
    header: HeaderInfo = Field(default_factory=HeaderInfo)
    sections: list[SectionInfo] = Field(default_factory=list)
    segments: list[SegmentInfo] = Field(default_factory=list)
    symbols: list[SymbolInfo] = Field(default_factory=list)
    relocations: list[RelocationInfo] = Field(default_factory=list)
    dynamic: list[DynamicInfo] = Field(default_factory=list)
    notes: list[NoteInfo] = Field(default_factory=list)
    interpreter: str = ""
    needed: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class FieldEdit(BaseModel):
    """One applied ``target.field=value`` edit."""
    target: str
    field: str
    old: int
    new: int
