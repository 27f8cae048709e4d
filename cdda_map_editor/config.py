"""
Configuration settings for the map editor.
"""

import logging
import os
from pathlib import Path
from typing import Optional

import toml
from platformdirs import user_data_dir
from pydantic import BaseModel, ConfigDict

from .errors import ParseError

logger = logging.getLogger(__name__)

APP_NAME = "CDDA Map Editor"


class EditorConfig(BaseModel):
    """Configuration settings for the editor."""

    # Game data
    cdda_dir: Optional[str] = None
    tileset: Optional[str] = None

    # Resolution
    seed: int = 0

    # Persistence
    data_dir: Optional[str] = None
    autosave: bool = True

    # Logging
    log_level: str = "DEBUG"
    console_log_level: str = "WARNING"

    model_config = ConfigDict(extra="allow")

    @classmethod
    def load_from_toml(cls, path: str = "editor.toml") -> "EditorConfig":
        """Load configuration from the [editor] table of a TOML file."""
        if not os.path.exists(path):
            logger.warning("Config file %s not found. Using defaults.", path)
            return cls()

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = toml.load(f)
        except toml.TomlDecodeError as e:
            raise ParseError(path, str(e)) from e

        return cls(**data.get("editor", {}))

    def data_directory(self) -> Path:
        """Per-user directory holding auto saves and program data."""
        if self.data_dir:
            return Path(self.data_dir)
        return Path(user_data_dir(APP_NAME, appauthor=False))

    def log_directory(self) -> Path:
        return self.data_directory() / "logs"

    def palettes_dir(self) -> Optional[Path]:
        if not self.cdda_dir:
            return None
        return Path(self.cdda_dir) / "data" / "json" / "mapgen_palettes"

    def region_settings_path(self) -> Optional[Path]:
        if not self.cdda_dir:
            return None
        return Path(self.cdda_dir) / "data" / "json" / "regional_map_settings.json"

    def tileset_dir(self) -> Optional[Path]:
        if not self.cdda_dir or not self.tileset:
            return None
        return Path(self.cdda_dir) / "gfx" / self.tileset
