"""
elfscope CLI -- ELF Inspection and In-Place Editing
=====================================================

Click-based command-line interface.

Usage::

    # Header, sections, segments, symbols, dynamic entries and notes
    elfscope show /usr/bin/ls

    # Machine-readable report on stdout, or to a file
    elfscope show /usr/bin/ls --json
    elfscope show /usr/bin/ls --output ls.json

    # Edit fields in place and write the patched image
    elfscope set a.out header.entry=0x401000 "section[.text].addralign=16" \\
        --output a.patched

References:
    - Click documentation: https://click.palletsprojects.com/
"""

from __future__ import annotations

import sys
from contextlib import nullcontext
from typing import Optional

import click

from shared.config import ElfscopeConfig
from shared.console import ScopeConsole
from shared.logger import ScopeLogger

from elfscope import __version__
from elfscope.core.engine import EditError, FileTooLargeError, InspectEngine
from elfscope.output.console import ElfConsoleOutput
from elfscope.output.report import ReportGenerator
from elfscope.parsers.errors import ElfError


def _load_config(console: ScopeConsole, config_path: Optional[str]) -> ElfscopeConfig:
    try:
        return ElfscopeConfig.load(config_path)
    except FileNotFoundError as exc:
        console.error(str(exc))
        sys.exit(2)
    except ValueError as exc:
        # tomllib.TOMLDecodeError is a ValueError
        console.error(f"Invalid configuration file: {exc}")
        sys.exit(2)


def _make_logger(command: str, config: ElfscopeConfig, verbose: bool) -> ScopeLogger:
    settings = config.global_settings
    verbose = verbose or settings.debug
    return ScopeLogger(
        command,
        log_level="DEBUG" if verbose else settings.log_level,
        log_file=settings.log_file or None,
        json_logs=settings.log_json,
    )


_config_option = click.option(
    "--config", "-c",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="TOML configuration file.  Default: config.toml in the project root.",
)
_verbose_option = click.option(
    "--verbose", "-v",
    is_flag=True,
    default=False,
    help="Enable debug logging.",
)


@click.group("elfscope")
@click.version_option(__version__, prog_name="elfscope")
def cli() -> None:
    """elfscope -- inspect and edit ELF files in place."""


@cli.command("show")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--json", "json_output",
    is_flag=True,
    default=False,
    help="Print the report as JSON to stdout.",
)
@click.option(
    "--output", "-o",
    "output_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Also write the JSON report to this path.",
)
@click.option(
    "--relocations", "-r",
    is_flag=True,
    default=False,
    help="Include relocation entries.",
)
@_verbose_option
@_config_option
def show(
    path: str,
    json_output: bool,
    output_path: str | None,
    relocations: bool,
    verbose: bool,
    config_path: str | None,
) -> None:
    """Decode PATH and display its headers and records.

    Examples:

    \b
        elfscope show /usr/bin/ls
        elfscope show libc.so.6 --json > libc.json
    """
    console = ScopeConsole()
    config = _load_config(console, config_path)
    if relocations:
        config.inspect.show_relocations = True
    logger = _make_logger("show", config, verbose)

    engine = InspectEngine(config=config, logger=logger)
    progress = nullcontext() if json_output else console.status(f"Decoding {path}...")
    try:
        with progress:
            report = engine.inspect(path)
    except (ElfError, FileTooLargeError) as exc:
        console.error(f"Cannot decode {path}: {exc}")
        sys.exit(1)

    generator = ReportGenerator()
    if json_output:
        click.echo(generator.to_json(report))
    else:
        console.banner(__version__)
        ElfConsoleOutput(console=console).display(report)

    if output_path:
        report_path = generator.generate_json(report, output_path)
        if not json_output:
            console.success(f"JSON report saved: {report_path}")


@cli.command("set")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.argument("edits", nargs=-1, required=True)
@click.option(
    "--output", "-o",
    "output_path",
    type=click.Path(dir_okay=False),
    required=True,
    help="Where to write the patched image.",
)
@_verbose_option
@_config_option
def set_fields(
    path: str,
    edits: tuple[str, ...],
    output_path: str,
    verbose: bool,
    config_path: str | None,
) -> None:
    """Apply EDITS to PATH and write the result to --output.

    Each edit is TARGET.FIELD=VALUE where TARGET is header, section[N],
    section[NAME], segment[N], symbol[N] or dynamic[N].

    Examples:

    \b
        elfscope set a.out header.entry=0x401000 -o a.patched
        elfscope set a.out "segment[2].flags=5" -o a.patched
    """
    console = ScopeConsole()
    config = _load_config(console, config_path)
    logger = _make_logger("set", config, verbose)

    engine = InspectEngine(config=config, logger=logger)
    try:
        applied = engine.patch(path, list(edits), output_path)
    except (ElfError, EditError, FileTooLargeError) as exc:
        console.error(str(exc))
        sys.exit(1)

    ElfConsoleOutput(console=console).display_edits(applied, output_path)


def main() -> None:
    """Entry point for the ``elfscope`` console script."""
    cli()


if __name__ == "__main__":
    main()
