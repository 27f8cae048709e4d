"""
CDDA Map Editor core: mapgen and palette loading, character resolution,
legacy tileset sprites and the editor state container.
"""

from .common import Coordinates, make_rng
from .config import EditorConfig
from .editor import MapEditor
from .events import ClearTiles, EventBus, SpawnMapEntity, SpawnSprite, TileDeleted, TilePlaced, UpdateSprite
from .logging_config import setup_logging
from .mapgen import MapEntity, MapEntityLoader, MultiMap, NestedMap, SingleMap
from .models import Cell, Layer, Role
from .palettes import Palette, PalettesLoader
from .project import Project, ProjectAutoSaveLoader, ProjectLoader, ProjectSaver
from .resolver import CharacterResolver, TileIdGroup
from .sprites import Empty, Exists, Fallback, SpriteSelector
from .tileset import Tileset

__version__ = "0.1.0"

__all__ = [
    "Cell",
    "CharacterResolver",
    "ClearTiles",
    "Coordinates",
    "EditorConfig",
    "Empty",
    "EventBus",
    "Exists",
    "Fallback",
    "Layer",
    "MapEditor",
    "MapEntity",
    "MapEntityLoader",
    "MultiMap",
    "NestedMap",
    "Palette",
    "PalettesLoader",
    "Project",
    "ProjectAutoSaveLoader",
    "ProjectLoader",
    "ProjectSaver",
    "Role",
    "SingleMap",
    "SpawnMapEntity",
    "SpawnSprite",
    "SpriteSelector",
    "TileDeleted",
    "TileIdGroup",
    "TilePlaced",
    "Tileset",
    "UpdateSprite",
    "make_rng",
    "setup_logging",
]
