"""Tests for variant resolution from the identification bytes."""

import pytest

from elfscope.parsers.errors import BoundsError, ElfError, InvalidVariantError
from elfscope.parsers.variant import Endianness, FormatVariant, resolve_variant


def _ident(ei_class: int, ei_data: int) -> bytes:
    return b"\x7fELF" + bytes([ei_class, ei_data, 1]) + b"\x00" * 9


@pytest.mark.parametrize(
    "ei_class, ei_data, width, endianness",
    [
        (1, 1, 32, Endianness.LITTLE),
        (1, 2, 32, Endianness.BIG),
        (2, 1, 64, Endianness.LITTLE),
        (2, 2, 64, Endianness.BIG),
    ],
)
def test_resolves_all_four_variants(ei_class, ei_data, width, endianness):
    variant = resolve_variant(_ident(ei_class, ei_data))
    assert variant == FormatVariant(width, endianness)
    assert variant.is_64bit == (width == 64)
    assert variant.word_size == width // 8


def test_struct_prefix():
    assert Endianness.LITTLE.struct_prefix == "<"
    assert Endianness.BIG.struct_prefix == ">"


@pytest.mark.parametrize("ei_class", [0, 3, 0xFF])
def test_unknown_class_is_rejected(ei_class):
    with pytest.raises(InvalidVariantError):
        resolve_variant(_ident(ei_class, 1))


@pytest.mark.parametrize("ei_data", [0, 3])
def test_unknown_encoding_is_rejected(ei_data):
    with pytest.raises(InvalidVariantError):
        resolve_variant(_ident(2, ei_data))


def test_bad_magic_is_rejected():
    with pytest.raises(InvalidVariantError):
        resolve_variant(b"MZ\x90\x00" + bytes(12))


def test_short_buffer_is_bounds_error():
    with pytest.raises(BoundsError):
        resolve_variant(b"\x7fELF\x02\x01")


def test_errors_share_a_base_class():
    with pytest.raises(ElfError):
        resolve_variant(b"")
    assert issubclass(ElfError, ValueError)


def test_variant_is_immutable():
    variant = resolve_variant(_ident(2, 1))
    with pytest.raises(AttributeError):
        variant.word_width = 32  # type: ignore[misc]


def test_str():
    assert str(resolve_variant(_ident(1, 2))) == "ELF32 big-endian"
