from __future__ import annotations

from pathlib import Path

import pytest

from shared.config import ElfGuardConfig, GlobalConfig, ToolConfig, get_config


def test_defaults() -> None:
    config = ToolConfig()
    assert config.global_settings.log_level == "INFO"
    assert config.global_settings.log_file is None
    assert config.elfguard.max_file_size == 104_857_600
    assert config.elfguard.fail_fast is False
    assert config.elfguard.show_tables is False
    assert config.elfguard.report_path == ""


def test_load_from_toml(tmp_path: Path) -> None:
    path = tmp_path / "elfguard.toml"
    path.write_text(
        "[global]\n"
        'log_level = "DEBUG"\n'
        "log_json = true\n"
        "\n"
        "[elfguard]\n"
        "max_file_size = 4096\n"
        "fail_fast = true\n"
        "show_tables = true\n"
        'report_path = "out/report.json"\n',
        encoding="utf-8",
    )
    config = ToolConfig.load(path)
    assert config.global_settings.log_level == "DEBUG"
    assert config.global_settings.log_json is True
    assert config.elfguard == ElfGuardConfig(
        max_file_size=4096,
        fail_fast=True,
        show_tables=True,
        report_path="out/report.json",
    )


def test_unknown_keys_ignored(tmp_path: Path) -> None:
    path = tmp_path / "elfguard.toml"
    path.write_text(
        '[global]\nlog_level = "WARNING"\ncolour = "always"\n[plugins]\nenabled = true\n',
        encoding="utf-8",
    )
    config = ToolConfig.load(path)
    assert config.global_settings == GlobalConfig(log_level="WARNING")
    assert config.elfguard == ElfGuardConfig()


def test_explicit_missing_path_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        ToolConfig.load(tmp_path / "absent.toml")


def test_invalid_toml_raises(tmp_path: Path) -> None:
    path = tmp_path / "broken.toml"
    path.write_text("[elfguard\nfail_fast = ", encoding="utf-8")
    with pytest.raises(ValueError):
        ToolConfig.load(path)


def test_to_dict() -> None:
    data = ToolConfig().to_dict()
    assert data["elfguard"]["fail_fast"] is False
    assert data["global_settings"] == {
        "log_level": "INFO", "log_file": None, "log_json": False, "debug": False,
    }


def test_get_config_reloads_with_path(tmp_path: Path) -> None:
    path = tmp_path / "elfguard.toml"
    path.write_text("[elfguard]\nshow_tables = true\n", encoding="utf-8")
    assert get_config(path).elfguard.show_tables is True
    assert get_config() is get_config()
