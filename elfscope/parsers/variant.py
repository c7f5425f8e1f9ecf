"""
ELF Format Variant
===================

An ELF image comes in four encodings: 32- or 64-bit word width crossed with
little- or big-endian byte order.  Both are announced in the identification
bytes (``e_ident[EI_CLASS]`` and ``e_ident[EI_DATA]``) and every multi-byte
field in the file is laid out according to them.

The resolver fails closed: an image whose magic, class or data byte is not
recognised is rejected here rather than being decoded with a guessed layout.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from elfscope.parsers.constants import (
    EI_CLASS,
    EI_DATA,
    EI_NIDENT,
    ELF_MAGIC,
    ELFCLASS32,
    ELFCLASS64,
    ELFDATA2LSB,
    ELFDATA2MSB,
)
from elfscope.parsers.errors import BoundsError, InvalidVariantError


class Endianness(str, enum.Enum):
    """Byte order of every multi-byte field in the image."""
    LITTLE = "little"
    BIG = "big"

    @property
    def struct_prefix(self) -> str:
        """Byte-order prefix for :mod:`struct` format strings."""
        return "<" if self is Endianness.LITTLE else ">"


@dataclass(frozen=True, slots=True)
class FormatVariant:
    """Word width and byte order of one ELF image.

    Attributes:
        word_width: 32 or 64 -- the size in bits of a native word.
        endianness: Byte order of multi-byte fields.
    """

    word_width: int
    endianness: Endianness

    @property
    def is_64bit(self) -> bool:
        return self.word_width == 64

    @property
    def is_little_endian(self) -> bool:
        return self.endianness is Endianness.LITTLE

    @property
    def word_size(self) -> int:
        """Size of a native word in bytes (4 or 8)."""
        return self.word_width // 8

    def __str__(self) -> str:
        return f"ELF{self.word_width} {self.endianness.value}-endian"


_CLASS_WIDTHS: dict[int, int] = {
    ELFCLASS32: 32,
    ELFCLASS64: 64,
}

_DATA_ENDIANNESS: dict[int, Endianness] = {
    ELFDATA2LSB: Endianness.LITTLE,
    ELFDATA2MSB: Endianness.BIG,
}


def resolve_variant(buffer: bytes | bytearray | memoryview) -> FormatVariant:
    """Derive the :class:`FormatVariant` from an image's identification bytes.

    Args:
        buffer: The ELF image, or at least its first 16 bytes.

    Returns:
        The word width and byte order announced by the image.

    Raises:
        BoundsError: If the buffer is shorter than ``e_ident``.
        InvalidVariantError: If the magic, class or data byte is unknown.
    """
    if len(buffer) < EI_NIDENT:
        raise BoundsError(
            f"Buffer of {len(buffer)} bytes is too short for ELF identification",
            offset=0,
            length=EI_NIDENT,
            limit=len(buffer),
        )
    if bytes(buffer[:4]) != ELF_MAGIC:
        raise InvalidVariantError(f"Bad ELF magic: {bytes(buffer[:4])!r}")

    ei_class = buffer[EI_CLASS]
    ei_data = buffer[EI_DATA]

    width = _CLASS_WIDTHS.get(ei_class)
    if width is None:
        raise InvalidVariantError(f"Unknown ELF class byte: {ei_class}")
    endianness = _DATA_ENDIANNESS.get(ei_data)
    if endianness is None:
        raise InvalidVariantError(f"Unknown ELF data encoding byte: {ei_data}")

    return FormatVariant(word_width=width, endianness=endianness)
