"""Settings management for reel."""
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

from .formatter import (
    DEFAULT_EPISODE_TEMPLATE,
    DEFAULT_MOVIE_TEMPLATE,
    PRESETS,
    validate_template,
)
from .models import MediaKind
from .planner import NamingTemplates
from .tmdb import DEFAULT_LANGUAGE, DEFAULT_TIMEOUT, load_api_key

log = logging.getLogger(__name__)

APP_NAME = "Reel"
SETTINGS_FILENAME = "settings.json"


# ---------------------------------------------------------------------------
# Platform-appropriate settings directory
# ---------------------------------------------------------------------------

def config_dir() -> Path:
    """Return the platform settings directory, creating it if needed."""
    if sys.platform == "win32":
        base = Path(os.environ.get("APPDATA", Path.home()))
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    d = base / APP_NAME
    d.mkdir(parents=True, exist_ok=True)
    return d


# ---------------------------------------------------------------------------
# Default values for every known key
# ---------------------------------------------------------------------------

DEFAULT_SETTINGS: dict[str, Any] = {
    # Naming templates
    "movie_template": DEFAULT_MOVIE_TEMPLATE,
    "episode_template": DEFAULT_EPISODE_TEMPLATE,
    "preset": "Default",

    # TMDB
    "tmdb_api_key": "",
    "tmdb_language": DEFAULT_LANGUAGE,
    "provider_timeout": DEFAULT_TIMEOUT,
    "max_concurrency": 4,

    # Renaming
    "destination_root": "",
    "overwrite": False,

    # State
    "last_input_directory": "",
}


# ---------------------------------------------------------------------------
# SettingsManager -- single authority for reading / writing settings
# ---------------------------------------------------------------------------

class SettingsManager:
    """Settings store backed by a JSON file.

    Usage:
        mgr = SettingsManager()
        templates = mgr.naming_templates()
        mgr.set("preset", "Plex")
        mgr.save()
    """

    def __init__(self, path: Path | None = None):
        self.path = Path(path) if path is not None else config_dir() / SETTINGS_FILENAME
        self._data = self._load()

    # -- public API -------------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        fallback = DEFAULT_SETTINGS.get(key, default)
        return self._data.get(key, fallback)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def save(self) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2, ensure_ascii=False)
            return True
        except OSError as e:
            log.error("Could not save settings to %s: %s", self.path, e)
            return False

    def all(self) -> dict[str, Any]:
        """Return a merged view: defaults + saved values."""
        merged = DEFAULT_SETTINGS.copy()
        merged.update(self._data)
        return merged

    def apply_preset(self, name: str) -> None:
        """Switch both templates to a named preset."""
        if name not in PRESETS:
            raise KeyError(f"Unknown preset: {name}")
        movie, episode = PRESETS[name]
        self.set("preset", name)
        self.set("movie_template", movie)
        self.set("episode_template", episode)

    def naming_templates(self) -> NamingTemplates:
        return NamingTemplates(
            movie=self.get("movie_template") or DEFAULT_MOVIE_TEMPLATE,
            episode=self.get("episode_template") or DEFAULT_EPISODE_TEMPLATE,
        )

    def api_key(self) -> str | None:
        """Environment / .env key first, then the saved one."""
        return load_api_key() or self.get("tmdb_api_key") or None

    def validate(self, templates: NamingTemplates | None = None) -> list[str]:
        """
        Return human-readable problems with the configuration.

        Args:
            templates: Templates to check instead of the saved ones
        """
        problems = []
        templates = templates or self.naming_templates()
        for kind, template in ((MediaKind.MOVIE, templates.movie), (MediaKind.EPISODE, templates.episode)):
            ok, message = validate_template(template, kind)
            if not ok:
                problems.append(f"Invalid {kind.value} template: {message}")
        if int(self.get("max_concurrency")) < 1:
            problems.append("Invalid max_concurrency: must be at least 1")
        return problems

    # -- private ----------------------------------------------------------

    def _load(self) -> dict[str, Any]:
        if self.path.exists():
            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                if isinstance(data, dict):
                    return data
            except (json.JSONDecodeError, OSError) as e:
                log.warning("Ignoring unreadable settings %s: %s", self.path, e)
        return {}


# ---------------------------------------------------------------------------
# Free functions (thin wrappers around SettingsManager)
# ---------------------------------------------------------------------------

def load_settings(path: Path | None = None) -> dict[str, Any]:
    """Load settings. Returns a dict with defaults for missing keys."""
    return SettingsManager(path).all()


def save_settings(settings: dict[str, Any], path: Path | None = None) -> bool:
    """Persist *settings* dict to disk."""
    mgr = SettingsManager(path)
    for k, v in settings.items():
        mgr.set(k, v)
    return mgr.save()
