"""
Settings storage for Keep Active.

Every settings object the application runs with passes through
``SettingsManager.validate``, which builds the runtime configuration and the
action catalog. A stored file that fails there is moved aside to ``.bak``
and the defaults are used instead.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from activity import ActionCatalog
from activity.actions import ActionError
from activity.model import ActivityConfig
from models import ApplicationSettings


SETTINGS_PATH_ENV = "KEEP_ACTIVE_SETTINGS"


@dataclass
class LoadedSettings:
    """Stored preferences together with the runtime objects built from them."""
    settings: ApplicationSettings
    config: ActivityConfig
    catalog: ActionCatalog
    # Message describing why the stored file was rejected, if it was.
    rejected: Optional[str] = None


class SettingsManager:
    """Loads, validates and saves application settings."""

    def __init__(self, storage_path: Optional[Path] = None) -> None:
        if storage_path is None:
            override = os.getenv(SETTINGS_PATH_ENV)
            storage_path = Path(override).expanduser() if override else Path(__file__).resolve().parent / "settings.json"
        self._storage_path = Path(storage_path)

    @property
    def storage_path(self) -> Path:
        return self._storage_path

    @property
    def backup_path(self) -> Path:
        return self._storage_path.with_suffix(".bak")

    @staticmethod
    def validate(settings: ApplicationSettings) -> Tuple[ActivityConfig, ActionCatalog]:
        """Build config and catalog; raises ValueError on anything the runtime would refuse."""
        config = settings.to_config()
        try:
            catalog = ActionCatalog.from_weights(config.action_weights)
        except ActionError as exc:
            raise ValueError(str(exc)) from exc
        return config, catalog

    def load_validated(self) -> LoadedSettings:
        """Load and validate the stored settings, falling back to defaults."""
        path = self.storage_path
        if path.exists():
            try:
                raw_data = json.loads(path.read_text(encoding="utf-8"))
                if not isinstance(raw_data, dict):
                    raise ValueError("Settings file has invalid structure")
                settings = ApplicationSettings.from_dict(raw_data)
                config, catalog = self.validate(settings)
                return LoadedSettings(settings, config, catalog)
            except (OSError, ValueError, TypeError) as exc:
                rejected = str(exc) or exc.__class__.__name__
                self._move_aside()
        else:
            rejected = None

        settings = ApplicationSettings()
        config, catalog = self.validate(settings)
        return LoadedSettings(settings, config, catalog, rejected=rejected)

    def load(self) -> ApplicationSettings:
        return self.load_validated().settings

    def save(self, settings: ApplicationSettings) -> None:
        """Persist settings atomically to disk."""
        path = self.storage_path
        path.parent.mkdir(parents=True, exist_ok=True)

        tmp_path = path.with_suffix(".tmp")
        payload = json.dumps(settings.to_dict(), indent=2, ensure_ascii=False)
        tmp_path.write_text(payload, encoding="utf-8")
        tmp_path.replace(path)

    def _move_aside(self) -> None:
        # Kept for inspection; the next save writes a fresh file.
        try:
            self.storage_path.replace(self.backup_path)
        except OSError:
            pass
