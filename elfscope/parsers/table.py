"""
Table Walker
=============

ELF describes its header tables, and every array-like section, as
``(offset, entry size, count)``.  :func:`walk_table` turns such a descriptor
into one element per fixed-size window of the shared buffer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, TypeVar

from elfscope.parsers.errors import BoundsError

if TYPE_CHECKING:
    from elfscope.parsers.elf_file import ElfFile

_T = TypeVar("_T")

# Called as factory(elf, start, entry_size) for each table entry
ElementFactory = Callable[["ElfFile", int, int], _T]


def walk_table(
    elf: ElfFile,
    table_offset: int,
    entry_size: int,
    count: int,
    factory: ElementFactory[_T],
) -> list[_T]:
    """Instantiate one element per table entry.

    Element *i* views ``[table_offset + i*entry_size,
    table_offset + (i+1)*entry_size)`` of ``elf.buffer``.

    Args:
        elf: Owning decoded file.
        table_offset: Absolute offset of the first entry.
        entry_size: Stride between entries, in bytes.
        count: Number of entries.
        factory: Called as ``factory(elf, start, entry_size)`` per entry.

    Returns:
        Exactly *count* elements, in table order.

    Raises:
        BoundsError: If any window falls outside the buffer.
    """
    if count <= 0:
        return []

    limit = len(elf.buffer)
    table_end = table_offset + count * entry_size
    if table_offset < 0 or entry_size < 0 or table_end > limit:
        raise BoundsError(
            f"Table of {count} x {entry_size} bytes at 0x{table_offset:x} "
            f"exceeds buffer of {limit} bytes",
            offset=table_offset,
            length=count * entry_size,
            limit=limit,
        )

    return [
        factory(elf, table_offset + i * entry_size, entry_size)
        for i in range(count)
    ]
