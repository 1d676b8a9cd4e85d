"""Tests for nea_updater.config_loader."""

from __future__ import annotations

from pathlib import Path

import pytest

from nea_updater.config_loader import (
    coerce_bool,
    get_option,
    load_config,
    save_default_config,
    substitute_env_vars,
    validate_config,
)


class TestLoadConfig:
    def test_defaults_without_file(self, tmp_path: Path) -> None:
        config = load_config(tmp_path / "missing.yml")
        assert config == {"options": {"auto-update": True, "verify-checksum": False}}

    def test_none_path_uses_defaults(self) -> None:
        assert load_config(None)["options"]["auto-update"] is True

    def test_user_values_override_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yml"
        path.write_text("options:\n  auto-update: false\n")
        config = load_config(path)
        assert config["options"]["auto-update"] is False
        assert config["options"]["verify-checksum"] is False

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yml"
        path.write_text("")
        assert load_config(path)["options"]["auto-update"] is True

    def test_invalid_yaml_falls_back(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yml"
        path.write_text("options: [unclosed\n")
        assert load_config(path)["options"]["auto-update"] is True

    def test_non_mapping_falls_back(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yml"
        path.write_text("- just\n- a list\n")
        assert load_config(path)["options"]["auto-update"] is True

    def test_env_substitution(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("NEA_AUTO_UPDATE", "false")
        path = tmp_path / "config.yml"
        path.write_text("options:\n  auto-update: ${NEA_AUTO_UPDATE:-true}\n")
        assert load_config(path)["options"]["auto-update"] is False

    def test_env_default_used_when_unset(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NEA_AUTO_UPDATE", raising=False)
        path = tmp_path / "config.yml"
        path.write_text("options:\n  auto-update: ${NEA_AUTO_UPDATE:-true}\n")
        assert load_config(path)["options"]["auto-update"] is True

    def test_defaults_not_mutated(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yml"
        path.write_text("options:\n  auto-update: false\n")
        load_config(path)
        assert load_config(None)["options"]["auto-update"] is True


class TestHelpers:
    def test_substitute_nested(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SERVER_NAME", "lobby")
        result = substitute_env_vars({"a": ["${SERVER_NAME}", 3], "b": {"c": "${MISSING_VAR:-x}"}})
        assert result == {"a": ["lobby", 3], "b": {"c": "x"}}

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("true", True), ("On", True), ("0", False), ("no", False), ("maybe", "maybe"), (1, 1)],
    )
    def test_coerce_bool(self, value: object, expected: object) -> None:
        assert coerce_bool(value) == expected

    def test_get_option(self) -> None:
        config = {"options": {"auto-update": False}}
        assert get_option(config, "options.auto-update") is False
        assert get_option(config, "options.missing", "dflt") == "dflt"
        assert get_option({"options": True}, "options.auto-update") is None


class TestValidateConfig:
    def test_defaults_are_valid(self) -> None:
        assert validate_config(load_config(None)) == (True, [])

    def test_missing_section(self) -> None:
        ok, errors = validate_config({})
        assert ok is False
        assert "options" in errors[0]

    def test_non_boolean_option(self) -> None:
        ok, errors = validate_config({"options": {"auto-update": "sometimes", "verify-checksum": False}})
        assert ok is False
        assert any("auto-update" in e for e in errors)


class TestSaveDefaultConfig:
    def test_writes_loadable_defaults(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NEA_AUTO_UPDATE", raising=False)
        path = tmp_path / "NotEnoughAddons" / "config.yml"

        assert save_default_config(path) is True
        assert validate_config(load_config(path)) == (True, [])

    def test_keeps_existing_file(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yml"
        path.write_text("options:\n  auto-update: false\n")

        assert save_default_config(path) is True
        assert "auto-update: false" in path.read_text()
