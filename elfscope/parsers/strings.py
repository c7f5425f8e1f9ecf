"""
String Table Access
====================

ELF string tables (``.shstrtab``, ``.strtab``, ``.dynstr``) are runs of
NUL-terminated byte strings referenced by byte offset.  An offset may point
into the middle of a longer string (``name`` inside ``rename``), so a table
is scanned from the requested index rather than split up front.
"""

from __future__ import annotations

from typing import Iterator

from elfscope.parsers.errors import UnterminatedNameError

# Bytes copied per step while scanning for a terminator
_SCAN_CHUNK = 256


def resolve_name(table: bytes | bytearray | memoryview, index: int) -> str:
    """Read the NUL-terminated string starting at *index* of *table*.

    Only the bytes from *index* up to the terminator are copied, a chunk at
    a time, so resolving many names from one large table stays cheap.

    Args:
        table: String table content (typically a section's content view).
        index: Byte offset of the first character.

    Returns:
        The decoded string, without its terminator.

    Raises:
        UnterminatedNameError: If *index* is outside the table or no NUL
            byte follows it before the table ends.
    """
    view = memoryview(table)
    length = len(view)
    if index < 0 or index >= length:
        raise UnterminatedNameError(
            f"Name index {index} is outside the {length}-byte string table",
            index=index,
        )

    pos = index
    while pos < length:
        chunk = bytes(view[pos:pos + _SCAN_CHUNK])
        nul = chunk.find(b"\x00")
        if nul != -1:
            return bytes(view[index:pos + nul]).decode("utf-8", errors="replace")
        pos += len(chunk)

    raise UnterminatedNameError(
        f"No NUL terminator after name index {index}",
        index=index,
    )


def iter_strings(table: bytes | bytearray | memoryview) -> Iterator[tuple[int, str]]:
    """Yield ``(offset, string)`` for every string in *table*.

    The leading empty string at offset 0 is skipped.  A trailing run of bytes
    without a terminator raises :class:`UnterminatedNameError`.
    """
    data = bytes(table)
    start = 1
    while start < len(data):
        end = data.find(b"\x00", start)
        if end == -1:
            raise UnterminatedNameError(
                f"No NUL terminator after name index {start}",
                index=start,
            )
        yield start, data[start:end].decode("utf-8", errors="replace")
        start = end + 1
