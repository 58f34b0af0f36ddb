"""
Stalesweep Settings Management

File Purpose: User settings persistence, validation, and environment overrides
Primary Functions/Classes: SettingsManager
Inputs and Outputs (I/O): Settings file I/O, user preference validation

Settings live in a small JSON file. Unknown keys are ignored and an unreadable
file falls back to defaults. Environment variables override file values.
"""

import json
import logging
import os
from dataclasses import asdict, fields
from pathlib import Path
from typing import Any, Dict

from rich.table import Table

from .exceptions import ConfigError
from .models import UserSettings, console

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_FILE = Path.home() / ".stalesweep" / "settings.json"

ENV_OVERRIDES = {
    "STALESWEEP_BASE_URL": "base_url",
    "STALESWEEP_LOG_LEVEL": "log_level",
}

INT_SETTINGS = ("inactivity_days", "threshold", "page_size", "request_timeout", "max_retries")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class SettingsManager:
    """Manages user settings and preferences."""

    def __init__(self, settings_file: Path = DEFAULT_SETTINGS_FILE):
        self.settings_file = Path(settings_file)
        self.settings = self._load_user_settings()
        self._apply_env_overrides()

    def _load_user_settings(self) -> UserSettings:
        """Load settings from file or create defaults."""
        base = UserSettings()
        if not self.settings_file.exists():
            return base
        try:
            with open(self.settings_file, "r") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable settings file %s: %s", self.settings_file, e)
            return base
        if not isinstance(data, dict):
            logger.warning("Ignoring settings file %s: not a JSON object", self.settings_file)
            return base

        for k, v in data.items():
            if not hasattr(base, k):
                continue
            try:
                self._set(base, k, v)
            except ConfigError as e:
                logger.warning("Ignoring setting %s: %s", k, e.message)
        return base

    def _apply_env_overrides(self) -> None:
        for env_name, key in ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value:
                self.update_setting(key, value)

    def save_user_settings(self) -> None:
        """Save current settings to file."""
        try:
            self.settings_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.settings_file, "w") as f:
                json.dump(asdict(self.settings), f, indent=2)
        except OSError as e:
            raise ConfigError(
                f"Could not save settings to {self.settings_file}", details=str(e), original_error=e
            ) from e
        logger.info("Saved settings to %s", self.settings_file)

    def update_setting(self, key: str, new_val: Any) -> None:
        """Update a specific setting with validation."""
        if key not in {f.name for f in fields(UserSettings)}:
            raise ConfigError(f"Unknown setting: {key}")
        self._set(self.settings, key, new_val)

    @staticmethod
    def _set(settings: UserSettings, key: str, new_val: Any) -> None:
        if key in INT_SETTINGS:
            try:
                val = int(new_val)
            except (TypeError, ValueError):
                raise ConfigError(f"{key} must be an integer", details=repr(new_val))
            if key == "page_size":
                val = max(1, min(999, val))
            if key == "inactivity_days" and val <= 0:
                raise ConfigError("inactivity_days must be positive", details=repr(new_val))
            if key in ("request_timeout", "max_retries"):
                val = max(1, val)
            setattr(settings, key, val)
        elif key == "include_never_signed_in":
            if isinstance(new_val, bool):
                settings.include_never_signed_in = new_val
            else:
                settings.include_never_signed_in = str(new_val).strip().lower() in (
                    "on",
                    "true",
                    "yes",
                    "y",
                    "1",
                )
        elif key == "log_level":
            val = str(new_val).strip().upper()
            if val not in LOG_LEVELS:
                raise ConfigError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
            settings.log_level = val
        elif key == "base_url":
            val = str(new_val).strip()
            if not val.startswith(("http://", "https://")):
                raise ConfigError("base_url must be an http(s) URL", details=val)
            settings.base_url = val.rstrip("/")
        else:
            setattr(settings, key, new_val)

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self.settings)

    def show_settings(self) -> None:
        """Print the effective settings."""
        tbl = Table(show_header=True, title=f"Settings ({self.settings_file})")
        tbl.add_column("Setting", style="bold")
        tbl.add_column("Value", style="cyan")
        for key, value in self.as_dict().items():
            tbl.add_row(key, str(value))
        console.print(tbl)
