"""
Core models for the map editor: roles, cells and their sprite bindings.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from .resolver import TileIdGroup
    from .tileset import Sprite


class Role(Enum):
    TERRAIN = "terrain"
    FURNITURE = "furniture"
    ITEM = "item"
    TOILET = "toilet"


class Layer(Enum):
    """Sprite layers a cell can bind. Fallback replaces all others."""

    FALLBACK = "fallback"
    TERRAIN = "terrain"
    FURNITURE = "furniture"
    ITEMS = "items"
    TOILETS = "toilets"

    @classmethod
    def for_role(cls, role: Role) -> "Layer":
        return _ROLE_LAYERS[role]


_ROLE_LAYERS = {
    Role.TERRAIN: Layer.TERRAIN,
    Role.FURNITURE: Layer.FURNITURE,
    Role.ITEM: Layer.ITEMS,
    Role.TOILET: Layer.TOILETS,
}

# Draw order per layer
LAYER_Z = {
    Layer.FALLBACK: 1,
    Layer.TERRAIN: 1,
    Layer.FURNITURE: 3,
    Layer.TOILETS: 3,
    Layer.ITEMS: 4,
}


@dataclass
class SpriteBinding:
    variant: str
    sprite: "Sprite"


@dataclass
class Cell:
    """A map cell. Only the character is authored; everything else is derived."""

    character: str
    identifiers: Optional["TileIdGroup"] = field(default=None, compare=False, repr=False)
    sprites: Dict[Layer, SpriteBinding] = field(default_factory=dict, compare=False, repr=False)

    def binding(self, layer: Layer) -> Optional[SpriteBinding]:
        return self.sprites.get(layer)

    def variant(self, layer: Layer = Layer.TERRAIN) -> Optional[str]:
        binding = self.sprites.get(layer)
        return binding.variant if binding else None

    def invalidate_sprites(self):
        self.sprites.clear()

    def invalidate(self):
        """Drop cached identifiers too, e.g. after a reseed."""
        self.identifiers = None
        self.sprites.clear()

    def to_json(self) -> Dict[str, Any]:
        return {"character": self.character}

    @classmethod
    def from_json(cls, raw: Any) -> "Cell":
        if isinstance(raw, str):
            return cls(raw)
        return cls(str(raw["character"]))
