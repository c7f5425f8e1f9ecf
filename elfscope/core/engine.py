"""
elfscope Inspection Engine
===========================

Drives the decoder for the command-line interface: reads an image (within
the configured size limit), decodes it into an
:class:`~elfscope.parsers.elf_file.ElfFile`, and snapshots the result as an
:class:`~elfscope.core.models.ElfReport`.  It also applies textual field
edits of the form ``target.field=value`` to an image and saves it.

Edit targets:
    ``header``            the file header
    ``section[N]``        section header N, or ``section[.name]`` by name
    ``segment[N]``        program header N
    ``symbol[N]``         entry N of the first SHT_SYMTAB section
    ``dynamic[N]``        entry N of the first SHT_DYNAMIC section

Values are integers in any base Python accepts (``0x1000``, ``0o755``,
``42``).
"""

from __future__ import annotations

import hashlib
import re
from pathlib import Path
from typing import Optional, Union

from shared.config import ElfscopeConfig
from shared.logger import ScopeLogger

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
from elfscope.parsers.constants import (
    DT_NAMES,
    DT_NEEDED,
    DT_RPATH,
    DT_RUNPATH,
    DT_SONAME,
    EM_NAMES,
    ET_NAMES,
    OSABI_NAMES,
    PF_R,
    PF_W,
    PF_X,
    PT_NAMES,
    SHF_LETTERS,
    SHN_ABS,
    SHN_COMMON,
    SHN_UNDEF,
    SHT_DYNAMIC,
    SHT_NAMES,
    SHT_NOTE,
    SHT_REL,
    SHT_RELA,
    SHT_SYMTAB,
    STB_NAMES,
    STT_NAMES,
    STV_NAMES,
    lookup_name,
)
from elfscope.parsers.elements import ElfElement, SectionHeader
from elfscope.parsers.elf_file import ElfFile
from elfscope.parsers.errors import ElfError
from elfscope.parsers.records import RecordKind
from elfscope.parsers.strings import resolve_name


_EDIT_PATTERN = re.compile(
    r"^(?P<target>header|(?P<kind>section|segment|symbol|dynamic)\[(?P<key>[^\]]+)\])"
    r"\.(?P<field>[a-z_]+)=(?P<value>.+)$"
)

# Dynamic tags whose value is an offset into the linked string table
_STRING_TAGS = frozenset({DT_NEEDED, DT_SONAME, DT_RPATH, DT_RUNPATH})


class FileTooLargeError(ValueError):
    """The input exceeds ``inspect.max_file_size``."""


class EditError(ValueError):
    """An edit expression is malformed or names an unknown target or field."""


def section_flags_str(flags: int) -> str:
    """Render section flags as readelf-style letters (``"WAX"``)."""
    letters = "".join(
        letter for bit, letter in SHF_LETTERS.items() if flags & bit
    )
    return letters or "-"


def segment_flags_str(flags: int) -> str:
    """Render segment flags as ``"RWX"``-style letters."""
    parts: list[str] = []
    if flags & PF_R:
        parts.append("R")
    if flags & PF_W:
        parts.append("W")
    if flags & PF_X:
        parts.append("X")
    return "".join(parts) if parts else "-"


def _shndx_str(shndx: int) -> str:
    if shndx == SHN_UNDEF:
        return "UND"
    if shndx == SHN_ABS:
        return "ABS"
    if shndx == SHN_COMMON:
        return "COM"
    return str(shndx)


class InspectEngine:
    """Decodes images into reports and applies field edits.

    Usage::

        engine = InspectEngine()
        report = engine.inspect("/bin/true")
        print(report.header.machine, len(report.sections))

        engine.patch("/bin/true", ["header.entry=0x401000"], "true.patched")
    """

    def __init__(
        self,
        config: ElfscopeConfig | None = None,
        logger: ScopeLogger | None = None,
    ) -> None:
        self._config: ElfscopeConfig = config or ElfscopeConfig()
        self._logger: ScopeLogger = logger or ScopeLogger(
            "engine", console_output=False,
        )

    # ------------------------------------------------------------------ #
    #  Loading
    # ------------------------------------------------------------------ #

    def load(self, file_path: Union[str, Path]) -> ElfFile:
        """Read and decode *file_path*, enforcing the size limit.

        Raises:
            FileNotFoundError: If the file does not exist.
            FileTooLargeError: If it exceeds ``inspect.max_file_size``.
            ElfError: If the image cannot be decoded.
        """
        path = Path(file_path)
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {path}")

        file_size = path.stat().st_size
        max_size = self._config.inspect.max_file_size
        if file_size > max_size:
            raise FileTooLargeError(
                f"File too large: {file_size:,} bytes (max: {max_size:,} bytes)"
            )

        with self._logger.operation("decode"):
            elf = ElfFile.from_path(path)
            self._logger.debug(
                "Decoded %s as %s", path, elf.variant,
                sections=len(elf.section_headers),
                segments=len(elf.program_headers),
            )
        return elf

    def inspect(self, file_path: Union[str, Path]) -> ElfReport:
        """Decode *file_path* and return a report of its contents."""
        self._logger.info("Inspecting %s", file_path)
        with self._logger.timed(f"inspect {file_path}"):
            elf = self.load(file_path)
            report = self.build_report(elf, str(Path(file_path).resolve()))
        self._logger.info(
            "%s: %d sections, %d segments, %d symbols",
            file_path, len(report.sections), len(report.segments),
            len(report.symbols),
        )
        return report

    def inspect_data(self, data: bytes, file_path: str = "<memory>") -> ElfReport:
        """Decode an in-memory image and return its report."""
        return self.build_report(ElfFile.from_bytes(data), file_path)

    # ------------------------------------------------------------------ #
    #  Report building
    # ------------------------------------------------------------------ #

    def build_report(self, elf: ElfFile, file_path: str = "<memory>") -> ElfReport:
        """Snapshot *elf* into an :class:`ElfReport`.

        Record tables that fail to decode are skipped and recorded in
        ``report.warnings``; header-level failures propagate.
        """
        opts = self._config.inspect
        data = bytes(elf.buffer)
        report = ElfReport(
            path=file_path,
            size=len(data),
            md5=hashlib.md5(data).hexdigest(),
            sha256=hashlib.sha256(data).hexdigest(),
            header=self._header_info(elf),
        )

        names = self._section_names(elf, report) if opts.resolve_names else {}
        report.sections = [
            self._section_info(i, section, names.get(i, ""))
            for i, section in enumerate(elf.section_headers)
        ]
        report.segments = [
            SegmentInfo(
                index=i,
                type=lookup_name(PT_NAMES, seg.type),
                flags=segment_flags_str(seg.flags),
                offset=seg.offset,
                vaddr=seg.vaddr,
                paddr=seg.paddr,
                filesz=seg.filesz,
                memsz=seg.memsz,
                align=seg.align,
            )
            for i, seg in enumerate(elf.program_headers)
        ]

        if opts.show_symbols:
            self._collect_symbols(elf, report, names)
        if opts.show_relocations:
            self._collect_relocations(elf, report, names)
        if opts.show_dynamic:
            self._collect_dynamic(elf, report)
        if opts.show_notes:
            self._collect_notes(elf, report, names)

        try:
            report.interpreter = elf.get_interpreter()
        except ElfError as exc:
            self._warn(report, f"PT_INTERP: {exc}")
        if opts.resolve_names:
            try:
                report.needed = elf.get_needed_libraries()
            except ElfError as exc:
                self._warn(report, f"DT_NEEDED: {exc}")

        return report

    def _warn(self, report: ElfReport, message: str) -> None:
        report.warnings.append(message)
        self._logger.warning(message)

    @staticmethod
    def _header_info(elf: ElfFile) -> HeaderInfo:
        h = elf.header
        return HeaderInfo(
            bits=elf.variant.word_width,
            endian=elf.variant.endianness.value,
            type=lookup_name(ET_NAMES, h.type),
            machine=lookup_name(EM_NAMES, h.machine),
            osabi=lookup_name(OSABI_NAMES, h.ei_osabi),
            abi_version=h.ei_abiversion,
            version=h.version,
            entry=h.entry,
            phoff=h.phoff,
            shoff=h.shoff,
            flags=h.flags,
            ehsize=h.ehsize,
            phentsize=h.phentsize,
            phnum=h.phnum,
            shentsize=h.shentsize,
            shnum=h.shnum,
            shstrndx=h.shstrndx,
        )

    @staticmethod
    def _section_info(index: int, section: SectionHeader, name: str) -> SectionInfo:
        return SectionInfo(
            index=index,
            name=name,
            type=lookup_name(SHT_NAMES, section.type),
            flags=section_flags_str(section.flags),
            flags_raw=section.flags,
            addr=section.addr,
            offset=section.offset,
            size=section.size,
            link=section.link,
            info=section.info,
            addralign=section.addralign,
            entsize=section.entsize,
        )

    def _section_names(self, elf: ElfFile, report: ElfReport) -> dict[int, str]:
        if not elf.section_headers:
            return {}
        try:
            table = elf.section_name_table()
        except ElfError as exc:
            self._warn(report, f"Section names unavailable: {exc}")
            return {}

        names: dict[int, str] = {}
        for i, section in enumerate(elf.section_headers):
            try:
                names[i] = resolve_name(table, section.name)
            except ElfError as exc:
                self._warn(report, f"Section {i} name: {exc}")
        return names

    def _collect_symbols(
        self, elf: ElfFile, report: ElfReport, names: dict[int, str],
    ) -> None:
        resolve = self._config.inspect.resolve_names
        for section in elf.get_sections_by_type(SHT_SYMTAB):
            table = names.get(section.index, "")
            try:
                symbols = section.extract(RecordKind.SYMBOL)
                strtab = section.linked_section.content if resolve else None
            except ElfError as exc:
                self._warn(report, f"Symbols of section {section.index}: {exc}")
                continue

            for i, sym in enumerate(symbols):
                name = ""
                if strtab is not None:
                    try:
                        name = resolve_name(strtab, sym.name)
                    except ElfError as exc:
                        self._warn(report, f"Symbol {i} name: {exc}")
                report.symbols.append(
                    SymbolInfo(
                        index=i,
                        name=name,
                        value=sym.value,
                        size=sym.size,
                        type=lookup_name(STT_NAMES, sym.symbol_type),
                        bind=lookup_name(STB_NAMES, sym.binding),
                        visibility=lookup_name(STV_NAMES, sym.visibility),
                        shndx=_shndx_str(sym.shndx),
                        table=table,
                    )
                )

    def _collect_relocations(
        self, elf: ElfFile, report: ElfReport, names: dict[int, str],
    ) -> None:
        for section in elf.section_headers:
            if section.type not in (SHT_REL, SHT_RELA):
                continue
            try:
                relocations = section.extract(RecordKind.RELOCATION)
            except ElfError as exc:
                self._warn(report, f"Relocations of section {section.index}: {exc}")
                continue
            table = names.get(section.index, "")
            report.relocations.extend(
                RelocationInfo(
                    offset=rel.offset,
                    info=rel.info,
                    type=rel.relocation_type,
                    symbol_index=rel.symbol_index,
                    addend=rel.signed_addend,
                    section=table,
                )
                for rel in relocations
            )

    def _collect_dynamic(self, elf: ElfFile, report: ElfReport) -> None:
        resolve = self._config.inspect.resolve_names
        for section in elf.get_sections_by_type(SHT_DYNAMIC):
            try:
                entries = section.extract(RecordKind.DYNAMIC)
                strtab = section.linked_section.content if resolve else None
            except ElfError as exc:
                self._warn(report, f"Dynamic section {section.index}: {exc}")
                continue

            for entry in entries:
                tag = entry.tag
                text = ""
                if strtab is not None and tag in _STRING_TAGS:
                    try:
                        text = resolve_name(strtab, entry.value)
                    except ElfError as exc:
                        self._warn(report, f"Dynamic string: {exc}")
                report.dynamic.append(
                    DynamicInfo(
                        tag=lookup_name(DT_NAMES, tag),
                        value=entry.value,
                        text=text,
                    )
                )

    def _collect_notes(
        self, elf: ElfFile, report: ElfReport, names: dict[int, str],
    ) -> None:
        for section in elf.get_sections_by_type(SHT_NOTE):
            try:
                notes = section.extract(RecordKind.NOTE)
            except ElfError as exc:
                self._warn(report, f"Notes of section {section.index}: {exc}")
                continue
            table = names.get(section.index, "")
            report.notes.extend(
                NoteInfo(
                    namesz=note.namesz,
                    descsz=note.descsz,
                    type=note.type,
                    section=table,
                )
                for note in notes
            )

    # ------------------------------------------------------------------ #
    #  Editing
    # ------------------------------------------------------------------ #

    @staticmethod
    def parse_edit(expression: str) -> tuple[str, str, int]:
        """Split ``target.field=value`` into its parts.

        Raises:
            EditError: If the expression or its value is malformed.
        """
        match = _EDIT_PATTERN.match(expression.strip())
        if match is None:
            raise EditError(
                f"Malformed edit {expression!r}; expected target.field=value"
            )
        try:
            value = int(match["value"], 0)
        except ValueError:
            raise EditError(f"Value {match['value']!r} is not an integer") from None
        return match["target"], match["field"], value

    @staticmethod
    def resolve_target(elf: ElfFile, target: str) -> ElfElement:
        """Return the element an edit target names.

        Raises:
            EditError: If the target does not exist in *elf*.
        """
        if target == "header":
            return elf.header

        kind, _, key = target.partition("[")
        key = key.rstrip("]")

        try:
            index = int(key, 0)
        except ValueError:
            if kind != "section":
                raise EditError(f"Bad index in {target!r}") from None
            section = elf.get_section_by_name(key)
            if section is None:
                raise EditError(f"No section named {key!r}") from None
            return section

        if kind == "section":
            candidates: list = elf.section_headers
        elif kind == "segment":
            candidates = elf.program_headers
        elif kind == "symbol":
            tables = elf.get_symbols()
            candidates = tables[0][1] if tables else []
        elif kind == "dynamic":
            tables = elf.get_dynamic()
            candidates = tables[0][1] if tables else []
        else:
            raise EditError(f"Unknown target {target!r}")

        if not 0 <= index < len(candidates):
            raise EditError(
                f"{target} is out of range ({len(candidates)} {kind} entries)"
            )
        return candidates[index]

    def apply_edits(self, elf: ElfFile, edits: list[str]) -> list[FieldEdit]:
        """Apply every edit to *elf*'s buffer in order.

        Raises:
            EditError: On a malformed edit, unknown target or unknown field.
            FieldRangeError: If a value does not fit its field.
        """
        applied: list[FieldEdit] = []
        for expression in edits:
            target, field_name, value = self.parse_edit(expression)
            element = self.resolve_target(elf, target)
            if field_name not in element.layout:
                raise EditError(
                    f"{type(element).__name__} has no field {field_name!r}; "
                    f"choose from {', '.join(element.layout.fields)}"
                )
            old = element.read(field_name)
            element.write(field_name, value)
            applied.append(FieldEdit(target=target, field=field_name, old=old, new=value))
            self._logger.info(
                "%s.%s: 0x%x -> 0x%x", target, field_name, old, value,
            )
        return applied

    def patch(
        self,
        file_path: Union[str, Path],
        edits: list[str],
        output: Optional[Union[str, Path]] = None,
    ) -> list[FieldEdit]:
        """Apply *edits* to *file_path* and save to *output*.

        The image is written only after every edit succeeded; *output*
        defaults to overwriting *file_path*.
        """
        with self._logger.operation("patch"):
            elf = self.load(file_path)
            applied = self.apply_edits(elf, edits)
            destination = elf.save(output if output is not None else file_path)
            self._logger.info(
                "Wrote %d edit(s) to %s", len(applied), destination,
            )
        return applied
