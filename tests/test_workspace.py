"""Tests for mindwell/workspace.py: settings and timezone."""

from zoneinfo import ZoneInfo

import yaml

from mindwell.workspace import (
    Settings,
    get_user_timezone,
    init_workspace,
    load_settings,
    settings_path,
    workspace_root,
)


def test_workspace_root_from_env(workspace):
    assert workspace_root() == workspace.resolve()


def test_load_settings(workspace):
    settings = load_settings(workspace)
    assert settings.timezone == "UTC"
    assert settings.toast_timeout_seconds == 5.0


def test_missing_settings_use_defaults(tmp_path):
    assert load_settings(tmp_path / "nowhere") == Settings()


def test_bad_timeout_falls_back(workspace):
    settings_path(workspace).write_text(yaml.dump({"toast_timeout_seconds": "soon"}), encoding="utf-8")
    assert load_settings(workspace).toast_timeout_seconds == 5.0


def test_log_level_env_override(workspace, monkeypatch):
    monkeypatch.setenv("MINDWELL_LOG_LEVEL", "debug")
    assert load_settings(workspace).log_level == "DEBUG"


def test_init_workspace_writes_defaults(tmp_path):
    root = init_workspace(tmp_path / "fresh")
    assert (root / "data").is_dir()
    assert yaml.safe_load(settings_path(root).read_text(encoding="utf-8"))["timezone"] == "UTC"


def test_timezone(workspace):
    settings_path(workspace).write_text(yaml.dump({"timezone": "Asia/Tokyo"}), encoding="utf-8")
    assert get_user_timezone(workspace) == ZoneInfo("Asia/Tokyo")
    settings_path(workspace).write_text(yaml.dump({"timezone": "Mars/Base"}), encoding="utf-8")
    assert get_user_timezone(workspace) == ZoneInfo("UTC")
