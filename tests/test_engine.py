"""Tests for the inspection engine: reports and field edits."""

import pytest

from elfscope.core.engine import (
    EditError,
    FileTooLargeError,
    InspectEngine,
    section_flags_str,
    segment_flags_str,
)
from elfscope.parsers.elf_file import ElfFile
from elfscope.parsers.errors import FieldRangeError, InvalidVariantError
from shared.config import ElfscopeConfig, InspectConfig


@pytest.fixture
def engine() -> InspectEngine:
    return InspectEngine()


def test_inspect_report(engine, elf_path):
    report = engine.inspect(elf_path)

    assert report.path == str(elf_path.resolve())
    assert report.size == elf_path.stat().st_size
    assert len(report.sha256) == 64
    assert report.header.bits == 64
    assert report.header.endian == "little"
    assert report.header.type == "EXEC (Executable)"
    assert report.header.machine == "Advanced Micro Devices X86-64"
    assert report.header.osabi == "UNIX - GNU"
    assert report.header.entry == 0x401000

    assert [s.name for s in report.sections][:3] == ["", ".text", ".shstrtab"]
    assert report.sections[1].flags == "AX"
    assert report.sections[4].type == "SYMTAB"
    assert [s.type for s in report.segments] == ["INTERP", "LOAD"]
    assert report.segments[1].flags == "RX"

    foo = report.symbols[1]
    assert (foo.name, foo.type, foo.bind, foo.table) == ("foo", "FUNC", "GLOBAL", ".symtab")
    assert report.symbols[2].shndx == "ABS"
    assert report.symbols[2].visibility == "HIDDEN"

    assert [d.tag for d in report.dynamic] == ["NEEDED", "NEEDED", "NULL", "NEEDED"]
    assert report.dynamic[0].text == "libc.so.6"
    assert len(report.notes) == 1
    assert report.notes[0].descsz == 16

    assert report.relocations == []
    assert report.interpreter == "/lib/ld-linux.so.2"
    assert report.needed == ["libc.so.6", "libm.so.6"]
    assert report.warnings == []


def test_relocations_when_enabled(elf_path):
    config = ElfscopeConfig(inspect=InspectConfig(show_relocations=True))
    report = InspectEngine(config=config).inspect(elf_path)
    assert [r.addend for r in report.relocations] == [-8, 0x10]
    assert report.relocations[0].symbol_index == 1
    assert report.relocations[0].section == ".rela.text"


def test_disabled_tables_are_empty(elf_path):
    config = ElfscopeConfig(
        inspect=InspectConfig(
            resolve_names=False, show_symbols=False, show_dynamic=False, show_notes=False,
        )
    )
    report = InspectEngine(config=config).inspect(elf_path)
    assert report.symbols == report.dynamic == report.notes == []
    assert report.sections[1].name == ""
    assert report.needed == []


def test_undecodable_tables_become_warnings(make_elf, engine):
    built = make_elf(32, "big")
    elf = ElfFile(built.data)
    elf.section_headers[4].size -= 1
    report = engine.build_report(elf)
    assert report.symbols == []
    assert any("Symbols of section 4" in w for w in report.warnings)
    assert len(report.dynamic) == 4


def test_inspect_data(engine, make_elf):
    report = engine.inspect_data(bytes(make_elf(32, "little").data))
    assert report.path == "<memory>"
    assert report.header.bits == 32
    assert report.header.machine == "Intel 80386"


def test_file_too_large(elf_path):
    config = ElfscopeConfig(inspect=InspectConfig(max_file_size=16))
    with pytest.raises(FileTooLargeError):
        InspectEngine(config=config).inspect(elf_path)


def test_missing_file(engine, tmp_path):
    with pytest.raises(FileNotFoundError):
        engine.inspect(tmp_path / "nope")


def test_not_an_elf(engine, tmp_path):
    path = tmp_path / "junk.bin"
    path.write_bytes(b"MZ" + b"\x00" * 100)
    with pytest.raises(InvalidVariantError):
        engine.inspect(path)


@pytest.mark.parametrize(
    "expression, expected",
    [
        ("header.entry=0x1000", ("header", "entry", 0x1000)),
        ("section[3].addralign=16", ("section[3]", "addralign", 16)),
        ("section[.text].flags=6", ("section[.text]", "flags", 6)),
        ("segment[0].flags=0o7", ("segment[0]", "flags", 7)),
        ("symbol[1].value=42", ("symbol[1]", "value", 42)),
    ],
)
def test_parse_edit(expression, expected):
    assert InspectEngine.parse_edit(expression) == expected


@pytest.mark.parametrize(
    "expression",
    ["header.entry", "entry=1", "header.entry=abc", "table[1].size=1", "section[].size=1"],
)
def test_parse_edit_rejects(expression):
    with pytest.raises(EditError):
        InspectEngine.parse_edit(expression)


def test_apply_edits(engine, elf):
    applied = engine.apply_edits(
        elf,
        [
            "header.entry=0x402000",
            "section[.text].addralign=64",
            "segment[1].flags=7",
            "symbol[1].size=32",
            "dynamic[0].value=11",
        ],
    )
    assert [(a.target, a.field) for a in applied][0] == ("header", "entry")
    assert applied[0].old == 0x401000 and applied[0].new == 0x402000

    assert elf.header.entry == 0x402000
    assert elf.section_headers[1].addralign == 64
    assert elf.program_headers[1].flags == 7
    assert elf.get_symbols()[0][1][1].size == 32
    assert elf.get_needed_libraries()[0] == "libm.so.6"


@pytest.mark.parametrize(
    "expression",
    [
        "section[10].size=1",
        "section[.nothing].size=1",
        "segment[x].flags=1",
        "header.bogus=1",
        "symbol[99].value=1",
    ],
)
def test_apply_edits_rejects_unknown_targets(engine, elf, expression):
    with pytest.raises(EditError):
        engine.apply_edits(elf, [expression])


def test_apply_edits_range_checks(engine, elf):
    with pytest.raises(FieldRangeError):
        engine.apply_edits(elf, ["header.shstrndx=0x10000"])


def test_patch_writes_output(engine, elf_path, tmp_path):
    out = tmp_path / "patched.elf"
    applied = engine.patch(elf_path, ["header.entry=0x1234"], out)

    assert len(applied) == 1
    assert ElfFile.from_path(out).header.entry == 0x1234
    assert ElfFile.from_path(elf_path).header.entry == 0x401000


def test_failed_patch_writes_nothing(engine, elf_path, tmp_path):
    out = tmp_path / "patched.elf"
    with pytest.raises(EditError):
        engine.patch(elf_path, ["header.entry=1", "header.nope=2"], out)
    assert not out.exists()


def test_flag_strings():
    assert section_flags_str(0x1 | 0x2 | 0x4) == "WAX"
    assert section_flags_str(0) == "-"
    assert segment_flags_str(0x5) == "RX"
    assert segment_flags_str(0) == "-"
