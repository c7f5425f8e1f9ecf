"""
elfscope Configuration Management
==================================

Configuration for the elfscope tool, held in slotted dataclasses and
persisted as TOML.  Every key is optional: a missing section or key keeps
its dataclass default, and unknown keys are ignored.

Example ``config.toml``::

    [global]
    log_level = "DEBUG"
    log_file = "elfscope.log"

    [inspect]
    max_file_size = 104857600
    show_relocations = true

References:
    - TOML v1.0.0 Specification. https://toml.io/en/v1.0.0
    - PEP 680 -- tomllib: Support for Parsing TOML in the Standard Library.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib  # type: ignore[no-redef]


# ---------------------------------------------------------------------------
# Default configuration file path relative to the project root
# ---------------------------------------------------------------------------
_DEFAULT_CONFIG_PATH: Path = Path(__file__).resolve().parent.parent / "config.toml"


@dataclass(frozen=False, slots=True)
class InspectConfig:
    """Settings for decoding and displaying an image.

    ``max_file_size`` bounds what the engine will read into memory; the
    ``show_*`` switches select which record tables go into a report.
    """

    max_file_size: int = 52_428_800  # 50 MiB
    resolve_names: bool = True
    show_symbols: bool = True
    show_dynamic: bool = True
    show_notes: bool = True
    show_relocations: bool = False


@dataclass(frozen=False, slots=True)
class GlobalConfig:
    """Logging and output settings shared by every command."""

    log_level: str = "INFO"
    log_file: str = ""
    log_json: bool = False
    debug: bool = False


@dataclass(frozen=False, slots=True)
class ElfscopeConfig:
    """Root configuration.

    Usage:
        >>> config = ElfscopeConfig.load()                 # from default path
        >>> config = ElfscopeConfig.load("custom.toml")    # from custom path
        >>> config.inspect.max_file_size
        52428800
    """

    global_settings: GlobalConfig = field(default_factory=GlobalConfig)
    inspect: InspectConfig = field(default_factory=InspectConfig)

    @classmethod
    def load(cls, path: str | Path | None = None) -> ElfscopeConfig:
        """Load configuration from a TOML file.

        If *path* is ``None`` the loader looks for ``config.toml`` in the
        project root and falls back to defaults when it is absent.

        Raises:
            FileNotFoundError: If *path* was given and does not exist.
        """
        config_path = Path(path) if path is not None else _DEFAULT_CONFIG_PATH

        if not config_path.exists():
            if path is not None:
                raise FileNotFoundError(
                    f"Configuration file not found: {config_path}"
                )
            return cls()

        with open(config_path, "rb") as fh:
            raw: dict[str, Any] = tomllib.load(fh)

        return cls(
            global_settings=cls._build_section(GlobalConfig, raw.get("global", {})),
            inspect=cls._build_section(InspectConfig, raw.get("inspect", {})),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @staticmethod
    def _build_section(cls: type, data: dict[str, Any]) -> Any:
        """Instantiate dataclass *cls* from the keys of *data* it declares."""
        valid_keys = {f.name for f in cls.__dataclass_fields__.values()}  # type: ignore[attr-defined]
        filtered = {k: v for k, v in data.items() if k in valid_keys}
        return cls(**filtered)


def get_config(path: str | Path | None = None) -> ElfscopeConfig:
    """Load the configuration once and return the cached instance.

    Passing an explicit *path* always reloads.
    """
    if not hasattr(get_config, "_cached") or path is not None:
        get_config._cached = ElfscopeConfig.load(path)  # type: ignore[attr-defined]
    return get_config._cached  # type: ignore[attr-defined]
