"""
ELF Decoding Errors
====================

Every failure raised by the decoding layer derives from :class:`ElfError`
so callers can catch the whole family at once, while each concrete class
stays individually inspectable.  None of these conditions are transient:
all decoding is synchronous access to an in-memory buffer.
"""

from __future__ import annotations


class ElfError(ValueError):
    """Base class for all ELF decoding and encoding failures."""


class BoundsError(ElfError):
    """A computed offset or length falls outside the buffer or view."""

    def __init__(self, message: str, *, offset: int = 0, length: int = 0, limit: int = 0) -> None:
        super().__init__(message)
        self.offset = offset
        self.length = length
        self.limit = limit


class InvalidVariantError(ElfError):
    """The identification bytes do not describe a known ELF variant."""


class InvalidRecordTypeError(ElfError):
    """A record kind was requested from a section of an incompatible type."""

    def __init__(self, message: str, *, section_type: int = 0) -> None:
        super().__init__(message)
        self.section_type = section_type


class UnterminatedNameError(BoundsError):
    """A string-table scan reached the end of the table without a NUL."""

    def __init__(self, message: str, *, index: int = 0) -> None:
        super().__init__(message, offset=index)
        self.index = index


class FieldRangeError(ElfError):
    """A value does not fit the width of the field it is written to."""
