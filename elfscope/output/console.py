"""
elfscope Console Output
========================

Rich terminal display for :class:`~elfscope.core.models.ElfReport`: a header
panel followed by readelf-style tables for sections, segments, symbols,
relocations, dynamic entries and notes.

References:
    - Rich library: https://github.com/Textualize/rich
"""

from __future__ import annotations

from rich.panel import Panel
from rich.table import Table

from shared.console import ScopeConsole

from elfscope.core.models import (
    DynamicInfo,
    ElfReport,
    FieldEdit,
    HeaderInfo,
    NoteInfo,
    RelocationInfo,
    SectionInfo,
    SegmentInfo,
    SymbolInfo,
)


_FLAG_COLOURS: dict[str, str] = {
    "X": "bright_red",
    "W": "yellow",
    "A": "bright_green",
}


def _flag_colour(flags: str) -> str:
    for letter, colour in _FLAG_COLOURS.items():
        if letter in flags:
            return colour
    return "dim"


def _new_table(title: str = "") -> Table:
    return Table(
        title=title,
        border_style="bright_cyan",
        header_style="bold bright_magenta",
        show_lines=False,
        padding=(0, 1),
    )


class ElfConsoleOutput:
    """Renders reports and edit summaries to the terminal.

    Usage::

        output = ElfConsoleOutput()
        output.display(report)
    """

    def __init__(self, console: ScopeConsole | None = None) -> None:
        self._console: ScopeConsole = console or ScopeConsole()

    def display(self, report: ElfReport, max_symbols: int = 200) -> None:
        """Display every populated part of *report*."""
        self._console.section("ELF Inspection Results")
        self.display_header(report)

        if report.sections:
            self.display_sections(report.sections)
        if report.segments:
            self.display_segments(report.segments)
        if report.symbols:
            self.display_symbols(report.symbols, max_display=max_symbols)
        if report.relocations:
            self.display_relocations(report.relocations)
        if report.dynamic:
            self.display_dynamic(report.dynamic)
        if report.notes:
            self.display_notes(report.notes)

        for warning in report.warnings:
            self._console.warning(warning)

        self._console.divider()

    def display_header(self, report: ElfReport) -> None:
        h: HeaderInfo = report.header
        lines: list[str] = [
            f"[bold]File:[/bold]         {report.path}",
            f"[bold]Size:[/bold]         {report.size:,} bytes ({report.size / 1024:.1f} KiB)",
            f"[bold]Class:[/bold]        ELF{h.bits}, {h.endian}-endian",
            f"[bold]Type:[/bold]         {h.type}",
            f"[bold]Machine:[/bold]      {h.machine}",
            f"[bold]OS/ABI:[/bold]       {h.osabi} (ABI version {h.abi_version})",
            f"[bold]Entry Point:[/bold]  0x{h.entry:x}",
            f"[bold]Flags:[/bold]        0x{h.flags:x}",
            f"[bold]Headers:[/bold]      {h.phnum} program @ 0x{h.phoff:x}, "
            f"{h.shnum} section @ 0x{h.shoff:x} (names in #{h.shstrndx})",
        ]
        if report.interpreter:
            lines.append(f"[bold]Interpreter:[/bold]  {report.interpreter}")
        if report.needed:
            lines.append(f"[bold]Needed:[/bold]       {', '.join(report.needed)}")
        if report.md5:
            lines.append(f"[bold]MD5:[/bold]          {report.md5}")
        if report.sha256:
            lines.append(f"[bold]SHA-256:[/bold]      {report.sha256}")

        panel = Panel(
            "\n".join(lines),
            title="[bold bright_cyan]ELF Header[/bold bright_cyan]",
            border_style="bright_cyan",
            padding=(1, 2),
        )
        self._console.rich.print(panel)
        self._console.blank()

    def display_sections(self, sections: list[SectionInfo]) -> None:
        self._console.section("Section Headers")

        tbl = _new_table()
        tbl.add_column("#", style="dim", width=4, justify="right")
        tbl.add_column("Name", style="bold", min_width=12)
        tbl.add_column("Type")
        tbl.add_column("Addr", justify="right")
        tbl.add_column("Offset", justify="right")
        tbl.add_column("Size", justify="right")
        tbl.add_column("ES", justify="right")
        tbl.add_column("Flags")
        tbl.add_column("Lk", justify="right")
        tbl.add_column("Inf", justify="right")
        tbl.add_column("Al", justify="right")

        for sec in sections:
            colour = _flag_colour(sec.flags)
            tbl.add_row(
                str(sec.index),
                sec.name or "<unnamed>",
                sec.type,
                f"0x{sec.addr:x}",
                f"0x{sec.offset:x}",
                f"{sec.size:,}",
                str(sec.entsize),
                f"[{colour}]{sec.flags}[/{colour}]",
                str(sec.link),
                str(sec.info),
                str(sec.addralign),
            )

        self._console.rich.print(tbl)
        self._console.blank()

    def display_segments(self, segments: list[SegmentInfo]) -> None:
        self._console.section("Program Headers")

        tbl = _new_table()
        tbl.add_column("#", style="dim", width=4, justify="right")
        tbl.add_column("Type", style="bold")
        tbl.add_column("Offset", justify="right")
        tbl.add_column("VirtAddr", justify="right")
        tbl.add_column("PhysAddr", justify="right")
        tbl.add_column("FileSiz", justify="right")
        tbl.add_column("MemSiz", justify="right")
        tbl.add_column("Flg")
        tbl.add_column("Align", justify="right")

        for seg in segments:
            colour = "bright_red" if "X" in seg.flags else "dim"
            tbl.add_row(
                str(seg.index),
                seg.type,
                f"0x{seg.offset:x}",
                f"0x{seg.vaddr:x}",
                f"0x{seg.paddr:x}",
                f"0x{seg.filesz:x}",
                f"0x{seg.memsz:x}",
                f"[{colour}]{seg.flags}[/{colour}]",
                f"0x{seg.align:x}",
            )

        self._console.rich.print(tbl)
        self._console.blank()

    def display_symbols(self, symbols: list[SymbolInfo], max_display: int = 200) -> None:
        """Display symbols, truncated to *max_display* rows."""
        self._console.section("Symbols")

        tbl = _new_table()
        tbl.add_column("#", style="dim", justify="right")
        tbl.add_column("Value", justify="right")
        tbl.add_column("Size", justify="right")
        tbl.add_column("Type")
        tbl.add_column("Bind")
        tbl.add_column("Vis")
        tbl.add_column("Ndx", justify="right")
        tbl.add_column("Name", style="bold", overflow="ellipsis")

        for sym in symbols[:max_display]:
            tbl.add_row(
                str(sym.index),
                f"0x{sym.value:x}",
                str(sym.size),
                sym.type,
                sym.bind,
                sym.visibility,
                sym.shndx,
                sym.name,
            )

        self._console.rich.print(tbl)
        if len(symbols) > max_display:
            self._console.info(
                f"Showing {max_display} of {len(symbols)} symbols (use --json for all)"
            )
        self._console.blank()

    def display_relocations(self, relocations: list[RelocationInfo]) -> None:
        self._console.section("Relocations")

        tbl = _new_table()
        tbl.add_column("Section", style="bold")
        tbl.add_column("Offset", justify="right")
        tbl.add_column("Info", justify="right")
        tbl.add_column("Type", justify="right")
        tbl.add_column("Sym", justify="right")
        tbl.add_column("Addend", justify="right")

        for rel in relocations:
            addend = "" if rel.addend is None else f"{rel.addend:+#x}"
            tbl.add_row(
                rel.section,
                f"0x{rel.offset:x}",
                f"0x{rel.info:x}",
                str(rel.type),
                str(rel.symbol_index),
                addend,
            )

        self._console.rich.print(tbl)
        self._console.blank()

    def display_dynamic(self, entries: list[DynamicInfo]) -> None:
        self._console.section("Dynamic Section")

        tbl = _new_table()
        tbl.add_column("Tag", style="bold")
        tbl.add_column("Value", justify="right")
        tbl.add_column("Name")

        for entry in entries:
            tbl.add_row(entry.tag, f"0x{entry.value:x}", entry.text)

        self._console.rich.print(tbl)
        self._console.blank()

    def display_notes(self, notes: list[NoteInfo]) -> None:
        self._console.section("Notes")

        tbl = _new_table()
        tbl.add_column("Section", style="bold")
        tbl.add_column("Name size", justify="right")
        tbl.add_column("Desc size", justify="right")
        tbl.add_column("Type", justify="right")

        for note in notes:
            tbl.add_row(note.section, str(note.namesz), str(note.descsz), f"0x{note.type:x}")

        self._console.rich.print(tbl)
        self._console.blank()

    def display_edits(self, edits: list[FieldEdit], destination: str) -> None:
        """Summarise the edits written by ``elfscope set``."""
        self._console.table(
            "Applied Edits",
            ["Target", "Field", "Old", "New"],
            [(e.target, e.field, f"0x{e.old:x}", f"0x{e.new:x}") for e in edits],
        )
        self._console.success(f"Wrote {destination}")
