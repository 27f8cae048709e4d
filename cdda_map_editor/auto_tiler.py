"""
Auto-tiling logic for multitile sprites.
Selects a sprite variant from the 4-neighbourhood of a cell.
"""

from typing import TYPE_CHECKING, Callable, Optional, Tuple

from .common import Coordinates, TileId
from .models import Role
from .tileset import MultitileVariant, Sprite, SpriteVariants

if TYPE_CHECKING:
    from .mapgen import MapEntity
    from .resolver import TileIdGroup

# Bitmask for neighbors:
#   1
# 8   2
#   4
# (Top=1, Right=2, Bottom=4, Left=8)
NORTH, EAST, SOUTH, WEST = 1, 2, 4, 8

VARIANT_MAP = {
    15: "center",
    7: "t_connection.W",
    11: "t_connection.S",
    13: "t_connection.E",
    14: "t_connection.N",
    3: "corner.SW",
    9: "corner.SE",
    6: "corner.NW",
    12: "corner.NE",
    1: "end_piece.S",
    2: "end_piece.W",
    4: "end_piece.N",
    8: "end_piece.E",
    10: "edge.EW",
    5: "edge.NS",
    0: "unconnected",
}

SINGLE = "single"
FALLBACK = "fallback"

Identify = Callable[[Coordinates], Optional["TileIdGroup"]]


def is_type(identify: Identify, coordinates: Coordinates, role: Role, target_id: TileId) -> bool:
    """True if the cell exists and resolves to target_id in role."""
    identifiers = identify(coordinates)
    return identifiers is not None and identifiers.get(role) == target_id


def get_neighbors_mask(
    map_entity: "MapEntity", coordinates: Coordinates, role: Role, target_id: TileId, identify: Identify
) -> int:
    mask = 0
    north, east, south, west = coordinates.neighbors()
    if north in map_entity.cells and is_type(identify, north, role, target_id):
        mask |= NORTH
    if east in map_entity.cells and is_type(identify, east, role, target_id):
        mask |= EAST
    if south in map_entity.cells and is_type(identify, south, role, target_id):
        mask |= SOUTH
    if west in map_entity.cells and is_type(identify, west, role, target_id):
        mask |= WEST
    return mask


def variant_for_mask(mask: int) -> str:
    return VARIANT_MAP[mask & 15]


def select_variant(
    variants: SpriteVariants,
    map_entity: "MapEntity",
    coordinates: Coordinates,
    role: Role,
    tile_id: TileId,
    identify: Identify,
) -> Tuple[str, Sprite]:
    """Returns (variant name, sprite) for the cell at coordinates."""
    if not isinstance(variants, MultitileVariant):
        return SINGLE, variants.get(SINGLE)

    name = variant_for_mask(get_neighbors_mask(map_entity, coordinates, role, tile_id, identify))
    return name, variants.get(name)
