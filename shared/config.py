"""
Configuration Management
=========================

Dataclass-based configuration with TOML persistence.

A configuration file has one table per concern::

    [global]
    log_level = "DEBUG"
    log_file = "elfguard.log"
    log_json = true

    [elfguard]
    max_file_size = 104857600
    fail_fast = false
    show_tables = true

Missing keys fall back to the dataclass defaults and unknown keys are
ignored, so older and newer config files both load.

References:
    - Wiggins, A. (2011). The Twelve-Factor App. https://12factor.net/
    - TOML v1.0.0 Specification. https://toml.io/en/v1.0.0
"""

from __future__ import annotations

import sys
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


# Default configuration file path relative to the project root
_DEFAULT_CONFIG_PATH: Path = Path(__file__).resolve().parent.parent / "config.toml"


# ========================== Tool-Specific Configs ==========================


@dataclass(frozen=False, slots=True)
class ElfGuardConfig:
    """Settings for the ELF hardening checker.

    Attributes:
        max_file_size: Files larger than this many bytes are skipped.
        fail_fast: Abort a batch on the first file that cannot be decoded.
        show_tables: Print the program and section header tables.
        report_path: Write a JSON report here after every run (``""`` = off).
    """

    max_file_size: int = 104_857_600  # 100 MiB
    fail_fast: bool = False
    show_tables: bool = False
    report_path: str = ""


# =========================== Global Settings ===============================


@dataclass(frozen=False, slots=True)
class GlobalConfig:
    """Logging and output settings shared by every component."""

    log_level: str = "INFO"
    log_file: Optional[str] = None
    log_json: bool = False
    debug: bool = False


# =========================== Master Config =================================


@dataclass(frozen=False, slots=True)
class ToolConfig:
    """Master configuration aggregating global and tool settings.

    Usage:
        >>> config = ToolConfig.load()                   # from default path
        >>> config = ToolConfig.load("custom.toml")      # from custom path
        >>> config.elfguard.fail_fast
        False
    """

    global_settings: GlobalConfig = field(default_factory=GlobalConfig)
    elfguard: ElfGuardConfig = field(default_factory=ElfGuardConfig)

    @classmethod
    def load(cls, path: str | Path | None = None) -> ToolConfig:
        """Load configuration from a TOML file.

        If *path* is ``None`` the loader looks for ``config.toml`` in the
        project root and returns pure defaults when it is absent.

        Raises:
            FileNotFoundError: If an explicitly given *path* does not exist.
            tomllib.TOMLDecodeError: If the file is not valid TOML.
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
            elfguard=cls._build_section(ElfGuardConfig, raw.get("elfguard", {})),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialise the entire configuration tree to a plain dictionary."""
        return asdict(self)

    @staticmethod
    def _build_section(section_cls: type, data: dict[str, Any]) -> Any:
        """Instantiate *section_cls* from the keys it declares."""
        valid_keys = {f.name for f in section_cls.__dataclass_fields__.values()}  # type: ignore[attr-defined]
        filtered = {k: v for k, v in data.items() if k in valid_keys}
        return section_cls(**filtered)


def get_config(path: str | Path | None = None) -> ToolConfig:
    """Cached wrapper around :meth:`ToolConfig.load`.

    Passing *path* reloads and replaces the cached instance.
    """
    if not hasattr(get_config, "_cached") or path is not None:
        get_config._cached = ToolConfig.load(path)  # type: ignore[attr-defined]
    return get_config._cached  # type: ignore[attr-defined]
