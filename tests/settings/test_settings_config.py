from __future__ import annotations

import importlib
from pathlib import Path

import pytest


def test_load_yaml_config_none_returns_empty() -> None:
    mod = importlib.import_module("mlstr_opal.settings.config")
    assert mod.load_yaml_config(None) == {}


def test_load_yaml_config_missing_file_raises(tmp_path: Path) -> None:
    mod = importlib.import_module("mlstr_opal.settings.config")
    with pytest.raises(FileNotFoundError):
        mod.load_yaml_config(tmp_path / "missing.yml")


def test_load_yaml_config_non_mapping_raises(write_yaml) -> None:
    mod = importlib.import_module("mlstr_opal.settings.config")
    path = write_yaml("bad.yml", ["a", "b"])
    with pytest.raises(ValueError, match="YAML mapping"):
        mod.load_yaml_config(path)


def test_load_yaml_config_empty_file_is_empty(tmp_path: Path) -> None:
    mod = importlib.import_module("mlstr_opal.settings.config")
    path = tmp_path / "empty.yml"
    path.write_text("")
    assert mod.load_yaml_config(path) == {}


def test_load_yaml_config_reads_opal_section(write_yaml) -> None:
    mod = importlib.import_module("mlstr_opal.settings.config")
    path = write_yaml("opal.yml", {"opal": {"url": "https://opal.test", "timeout_s": 5}})
    assert mod.load_yaml_config(path) == {
        "opal": {"url": "https://opal.test", "timeout_s": 5}
    }


def test_deep_merge_merges_nested_and_overrides() -> None:
    mod = importlib.import_module("mlstr_opal.settings.config")
    base = {"opal": {"url": None, "timeout_s": 30}, "tags": ["a"]}
    updates = {"opal": {"url": "https://opal.test"}, "tags": ["b"], "extra": 1}

    merged = mod.deep_merge(base, updates)

    assert merged == {
        "opal": {"url": "https://opal.test", "timeout_s": 30},
        "tags": ["b"],
        "extra": 1,
    }
    assert base["opal"]["url"] is None


def test_deep_merge_copies_nested_updates() -> None:
    mod = importlib.import_module("mlstr_opal.settings.config")
    updates = {"logging": {"level": "DEBUG"}}

    merged = mod.deep_merge({}, updates)
    merged["logging"]["level"] = "INFO"

    assert updates["logging"]["level"] == "DEBUG"


def test_build_config_precedence_defaults_yaml_overrides(write_yaml) -> None:
    mod = importlib.import_module("mlstr_opal.settings.config")
    defaults = {"opal": {"url": None, "username": None, "timeout_s": 30}}
    yaml_path = write_yaml("cfg.yml", {"opal": {"url": "https://yaml", "username": "u"}})
    overrides = {"opal": {"url": "https://override"}}

    config = mod.build_config(defaults, yaml_path, overrides)

    assert config == {
        "opal": {"url": "https://override", "username": "u", "timeout_s": 30}
    }


def test_resolve_path_expands_home_and_env(monkeypatch, tmp_path: Path) -> None:
    mod = importlib.import_module("mlstr_opal.settings.config")
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("OPAL_EXPORTS", str(tmp_path / "exports"))

    assert mod.resolve_path("~/logs") == tmp_path / "logs"
    assert mod.resolve_path("$OPAL_EXPORTS/2024") == tmp_path / "exports" / "2024"


def test_resolve_path_passthrough_and_none(tmp_path: Path) -> None:
    mod = importlib.import_module("mlstr_opal.settings.config")
    assert mod.resolve_path(None) is None
    assert mod.resolve_path(tmp_path) == tmp_path
