"""
elfscope -- ELF Inspection and In-Place Editing
================================================

elfscope decodes ELF object files, executables and shared libraries into
typed, mutable views over a single byte buffer.  Every field of the file
header, the section and program header tables, and the symbol, relocation,
dynamic and note records they index can be read and written in place; the
buffer is always the authoritative encoded form.

Capabilities:
    - 32/64-bit and little/big-endian images, resolved from ``e_ident``
    - Section and program header tables with live content windows
    - String-table name resolution
    - Typed record extraction (symbols, relocations, dynamic entries, notes)
    - Range-checked field writes and saving of the patched image
    - Rich console summaries and JSON reports

References:
    - TIS Committee. (1995). Tool Interface Standard (TIS) Executable and
      Linking Format (ELF) Specification, Version 1.2.
    - System V Application Binary Interface, gABI chapters 4 and 5.
"""

from elfscope.parsers.elf_file import ElfFile
from elfscope.parsers.errors import (
    BoundsError,
    ElfError,
    FieldRangeError,
    InvalidRecordTypeError,
    InvalidVariantError,
    UnterminatedNameError,
)
from elfscope.parsers.records import RecordKind

__version__ = "1.0.0"
__all__ = [
    "ElfFile",
    "RecordKind",
    "ElfError",
    "BoundsError",
    "FieldRangeError",
    "InvalidRecordTypeError",
    "InvalidVariantError",
    "UnterminatedNameError",
]
