"""Tests for console rendering and JSON report generation."""

import json

import pytest

from elfscope import __version__
from elfscope.core.engine import InspectEngine
from elfscope.core.models import FieldEdit
from elfscope.output.console import ElfConsoleOutput
from elfscope.output.report import ReportGenerator
from shared.config import ElfscopeConfig, InspectConfig
from shared.console import ScopeConsole


@pytest.fixture
def report(elf_path):
    config = ElfscopeConfig(inspect=InspectConfig(show_relocations=True))
    return InspectEngine(config=config).inspect(elf_path)


def _recording_console() -> ScopeConsole:
    console = ScopeConsole(record=True)
    console.rich.width = 200
    return console


def test_console_renders_every_table(report):
    console = _recording_console()
    ElfConsoleOutput(console=console).display(report)
    text = console.export_text()

    for heading in ("ELF Header", "Section Headers", "Program Headers", "Symbols",
                    "Relocations", "Dynamic Section", "Notes"):
        assert heading in text
    assert "Advanced Micro Devices X86-64" in text
    assert ".rela.text" in text
    assert "libm.so.6" in text
    assert "-0x8" in text


def test_console_truncates_symbols(report):
    console = _recording_console()
    ElfConsoleOutput(console=console).display_symbols(report.symbols, max_display=1)
    assert "Showing 1 of 3 symbols" in console.export_text()


def test_console_shows_warnings(report):
    report.warnings.append("Notes of section 8: broken")
    console = _recording_console()
    ElfConsoleOutput(console=console).display(report)
    assert "Notes of section 8: broken" in console.export_text()


def test_console_edit_summary():
    console = _recording_console()
    edits = [FieldEdit(target="header", field="entry", old=0x401000, new=0x402000)]
    ElfConsoleOutput(console=console).display_edits(edits, "a.patched")
    text = console.export_text()
    assert "0x402000" in text
    assert "Wrote a.patched" in text


def test_report_envelope(report):
    document = ReportGenerator().build(report)
    assert document["report_type"] == "elfscope_inspection"
    assert document["version"] == __version__
    assert document["elf"]["relocations"][1]["addend"] == 0x10
    assert document["elf"]["header"]["machine"] == "Advanced Micro Devices X86-64"


def test_generate_json(report, tmp_path):
    out = tmp_path / "nested" / "report.json"
    written = ReportGenerator().generate_json(report, out)

    assert written == str(out.resolve())
    document = json.loads(out.read_text(encoding="utf-8"))
    assert document["elf"]["interpreter"] == "/lib/ld-linux.so.2"
    assert [s["name"] for s in document["elf"]["symbols"]] == ["", "foo", "bar"]
