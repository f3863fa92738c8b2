"""Configuration loading utilities for Civitas."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


DEFAULT_SETTINGS_PATH = Path(__file__).parent / "data" / "settings.yaml"

MAX_LINK_ATTEMPTS = 2


@dataclass(frozen=True)
class Settings:
    """Typed view over the settings YAML file."""

    interaction_timeout_seconds: float
    delete_confirm_timeout_seconds: float
    bot_owner_id: Optional[int]
    max_member_free_config_count: int
    audit_reason: str
    link_attempts: int
    database_path: str
    event_poll_seconds: float

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Settings":
        discord_cfg = data.get("discord", {}) or {}
        provisioning_cfg = data.get("provisioning", {}) or {}
        storage_cfg = data.get("storage", {}) or {}
        events_cfg = data.get("events", {}) or {}
        owner = discord_cfg.get("bot_owner_id")
        attempts = int(provisioning_cfg.get("link_attempts", MAX_LINK_ATTEMPTS))
        return Settings(
            interaction_timeout_seconds=float(
                discord_cfg.get("interaction_timeout_seconds", 120)
            ),
            delete_confirm_timeout_seconds=float(
                discord_cfg.get("delete_confirm_timeout_seconds", 30)
            ),
            bot_owner_id=int(owner) if owner is not None else None,
            max_member_free_config_count=int(
                discord_cfg.get("max_member_free_config_count", 5)
            ),
            audit_reason=str(
                provisioning_cfg.get("audit_reason", "Server Initialization")
            ),
            # Stale ids get one retry at most; never loop on an inconsistent platform.
            link_attempts=max(1, min(attempts, MAX_LINK_ATTEMPTS)),
            database_path=str(storage_cfg.get("database_path", "civitas.db")),
            event_poll_seconds=float(events_cfg.get("poll_seconds", 60)),
        )


class SettingsLoader:
    """Loads and caches settings from YAML configuration files."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or DEFAULT_SETTINGS_PATH
        self._cache: Settings | None = None

    @property
    def path(self) -> Path:
        return self._path

    def load(self, force: bool = False) -> Settings:
        if self._cache is not None and not force:
            return self._cache
        with self._path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
        self._cache = Settings.from_dict(data)
        return self._cache


def get_settings() -> Settings:
    """Convenience accessor for default settings."""

    return SettingsLoader().load()


__all__ = ["Settings", "SettingsLoader", "get_settings", "MAX_LINK_ATTEMPTS"]
