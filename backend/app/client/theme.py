"""Persisted dark/light theme preference.

Stored as a tiny JSON file, e.g. ``{"theme": "light"}``. A missing or
unreadable file means the default (dark) theme.
"""
import json
import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

THEMES = ("dark", "light")
DEFAULT_THEME = "dark"
DEFAULT_PREFERENCES_PATH = Path.home() / ".config" / "upload-relay" / "preferences.json"


class ThemeStore:
    """Reads and writes the theme preference."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = Path(path) if path else DEFAULT_PREFERENCES_PATH

    def load(self) -> str:
        if not self.path.exists():
            return DEFAULT_THEME
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read preferences {self.path}: {e}")
            return DEFAULT_THEME
        theme = data.get("theme") if isinstance(data, dict) else None
        return theme if theme in THEMES else DEFAULT_THEME

    def save(self, theme: str) -> None:
        if theme not in THEMES:
            raise ValueError(f"Unknown theme: {theme}")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps({"theme": theme}), encoding="utf-8")


def flip_theme(theme: str) -> str:
    return "light" if theme == "dark" else "dark"
