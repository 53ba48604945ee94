"""Tests for settings merging and overrides.json handling."""

import json
from pathlib import Path

from unitd.local.config import MergedSettings


def test_defaults_without_overrides(tmp_path):
    settings = MergedSettings(tmp_path / "overrides.json")

    assert isinstance(settings.RUNTIME_DIR, Path)
    assert settings.UNIT_FILE_SUFFIX == ".service"
    assert settings.CREATE_TIME_TOLERANCE == 0.05


def test_modifiable_overrides_are_coerced(tmp_path):
    path = tmp_path / "overrides.json"
    path.write_text(json.dumps({
        "DAEMON_PORT": "7001",
        "DIAGNOSTICS_ENABLED": "no",
        "APP_BASE_DIR": str(tmp_path / "apps"),
    }))

    settings = MergedSettings(path)

    assert settings.DAEMON_PORT == 7001
    assert settings.DIAGNOSTICS_ENABLED is False
    assert settings.APP_BASE_DIR == tmp_path / "apps"


def test_protected_and_unknown_keys_are_ignored(tmp_path, caplog):
    path = tmp_path / "overrides.json"
    path.write_text(json.dumps({"UNIT_FILE_SUFFIX": ".unit", "NOT_A_SETTING": 1}))

    settings = MergedSettings(path)

    assert settings.UNIT_FILE_SUFFIX == ".service"
    assert not hasattr(settings, "NOT_A_SETTING")
    assert "non-modifiable" in caplog.text


def test_malformed_overrides_fall_back_to_defaults(tmp_path, caplog):
    path = tmp_path / "overrides.json"
    path.write_text("{not json")

    settings = MergedSettings(path)

    assert settings.UNIT_FILE_SUFFIX == ".service"
    assert "Failed to load or parse overrides" in caplog.text


def test_save_overrides_keeps_only_modifiable_keys(tmp_path):
    path = tmp_path / "conf" / "overrides.json"
    settings = MergedSettings(path)

    settings.save_overrides({"DAEMON_PORT": 7100, "UNIT_FILE_SUFFIX": ".unit", "APP_BASE_DIR": tmp_path})

    assert json.loads(path.read_text()) == {"DAEMON_PORT": 7100, "APP_BASE_DIR": str(tmp_path)}
    assert settings.DAEMON_PORT == 7100
    assert MergedSettings(path).DAEMON_PORT == 7100


def test_apply_overrides_reports_applied_keys(tmp_path):
    settings = MergedSettings(tmp_path / "overrides.json")

    applied = settings.apply_overrides({"COMMAND_TIMEOUT": "12", "DAEMON_PORT": "not a port", "lower": 1})

    assert applied == ["COMMAND_TIMEOUT"]
    assert settings.COMMAND_TIMEOUT == 12


def test_overrides_must_be_an_object(tmp_path, caplog):
    path = tmp_path / "overrides.json"
    path.write_text("[1, 2]")

    settings = MergedSettings(path)

    assert settings.UNIT_FILE_SUFFIX == ".service"
    assert "must contain a JSON object" in caplog.text
