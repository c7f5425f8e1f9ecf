"""
Field Codec
============

Reads and writes single unsigned integer fields at a byte offset of the
shared image buffer.  A field's width is one of the fixed classes
(8/16/32/64 bits) or :attr:`Width.NATIVE`, which resolves to 32 or 64 bits
from the image's :class:`~elfscope.parsers.variant.FormatVariant` at call
time.

Values are plain Python ``int`` regardless of width, so 64-bit fields need
no special handling by callers.  Writes are range-checked against the
resolved width.
"""

from __future__ import annotations

import enum
import struct

from elfscope.parsers.errors import BoundsError, FieldRangeError
from elfscope.parsers.variant import FormatVariant


class Width(enum.Enum):
    """Declared width class of a field."""
    U8 = "B"
    U16 = "H"
    U32 = "I"
    U64 = "Q"
    NATIVE = "W"

    def resolve(self, variant: FormatVariant) -> Width:
        """Return the fixed width this class has under *variant*."""
        if self is Width.NATIVE:
            return Width.U64 if variant.is_64bit else Width.U32
        return self

    def size(self, variant: FormatVariant) -> int:
        """Size in bytes of this width under *variant*."""
        return _SIZES[self.resolve(variant)]


_SIZES: dict[Width, int] = {
    Width.U8: 1,
    Width.U16: 2,
    Width.U32: 4,
    Width.U64: 8,
}


def _format(width: Width, variant: FormatVariant) -> str:
    return variant.endianness.struct_prefix + width.resolve(variant).value


def _check_bounds(buffer_len: int, offset: int, size: int) -> None:
    if offset < 0 or offset + size > buffer_len:
        raise BoundsError(
            f"Field of {size} bytes at offset 0x{offset:x} exceeds "
            f"buffer of {buffer_len} bytes",
            offset=offset,
            length=size,
            limit=buffer_len,
        )


def read_field(
    buffer: bytes | bytearray | memoryview,
    offset: int,
    width: Width,
    variant: FormatVariant,
) -> int:
    """Decode an unsigned integer field.

    Args:
        buffer: The image buffer.
        offset: Absolute byte offset of the field.
        width: Declared width class.
        variant: Word width and byte order of the image.

    Returns:
        The decoded value.

    Raises:
        BoundsError: If the field does not lie entirely inside *buffer*.
    """
    _check_bounds(len(buffer), offset, width.size(variant))
    return struct.unpack_from(_format(width, variant), buffer, offset)[0]


def write_field(
    buffer: bytearray | memoryview,
    offset: int,
    width: Width,
    variant: FormatVariant,
    value: int,
) -> None:
    """Encode an unsigned integer field in place.

    Raises:
        BoundsError: If the field does not lie entirely inside *buffer*.
        FieldRangeError: If *value* is negative or too wide for the field.
    """
    size = width.size(variant)
    _check_bounds(len(buffer), offset, size)
    value = int(value)
    if value < 0 or value >= 1 << (size * 8):
        raise FieldRangeError(
            f"Value {value:#x} does not fit a {size * 8}-bit field"
        )
    struct.pack_into(_format(width, variant), buffer, offset, value)
