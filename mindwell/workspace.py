"""Workspace root, settings, timezone and path helpers for MindWell."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from mindwell.fileio import read_yaml, write_yaml_atomic

logger = logging.getLogger(__name__)

DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"
DEFAULT_TOAST_TIMEOUT = 5.0


def workspace_root() -> Path:
    """Get the workspace root directory (contains settings.yaml and data/)."""
    return Path(
        os.environ.get("MINDWELL_ROOT", str(Path.home() / "mindwell"))
    ).expanduser().resolve()


# ── Settings ──────────────────────────────────────────────────


@dataclass
class Settings:
    timezone: str = "UTC"
    toast_timeout_seconds: float = DEFAULT_TOAST_TIMEOUT
    gemini_model: str = DEFAULT_GEMINI_MODEL
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Settings:
        if not d or not isinstance(d, dict):
            return cls()
        try:
            timeout = float(d.get("toast_timeout_seconds", DEFAULT_TOAST_TIMEOUT))
        except (TypeError, ValueError):
            timeout = DEFAULT_TOAST_TIMEOUT
        return cls(
            timezone=str(d.get("timezone", "UTC")),
            toast_timeout_seconds=timeout,
            gemini_model=str(d.get("gemini_model", DEFAULT_GEMINI_MODEL)),
            log_level=str(d.get("log_level", "INFO")).upper(),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "timezone": self.timezone,
            "toast_timeout_seconds": self.toast_timeout_seconds,
            "gemini_model": self.gemini_model,
            "log_level": self.log_level,
        }


def load_settings(root: Path | None = None) -> Settings:
    """Load settings.yaml; a missing or unreadable file yields defaults."""
    if root is None:
        root = workspace_root()
    try:
        data = read_yaml(settings_path(root))
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
        logger.warning("Could not read %s, using defaults: %s", settings_path(root), e)
        data = {}
    settings = Settings.from_dict(data)
    env_level = os.environ.get("MINDWELL_LOG_LEVEL")
    if env_level:
        settings.log_level = env_level.upper()
    return settings


def init_workspace(root: Path | None = None) -> Path:
    """Create the workspace layout with a default settings.yaml if missing."""
    if root is None:
        root = workspace_root()
    data_dir(root).mkdir(parents=True, exist_ok=True)
    path = settings_path(root)
    if not path.exists():
        write_yaml_atomic(path, Settings().to_dict())
    return root


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ── Time ──────────────────────────────────────────────────────


def get_user_timezone(root: Path | None = None) -> ZoneInfo:
    """Get user's timezone from settings.yaml, defaulting to UTC."""
    return timezone_for(load_settings(root))


def timezone_for(settings: Settings) -> ZoneInfo:
    try:
        return ZoneInfo(settings.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r, falling back to UTC", settings.timezone)
        return ZoneInfo("UTC")


# ── Path helpers ──────────────────────────────────────────────

def settings_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "settings.yaml"


def data_dir(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "data"
