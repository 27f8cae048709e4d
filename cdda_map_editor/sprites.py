"""
Sprite selection for cells: the contract the renderer consumes.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Optional, Set, Union

from .auto_tiler import FALLBACK, select_variant
from .common import Coordinates, TileId
from .errors import ResolveError, UnknownIdentifierError, UnmappedCharacterError
from .models import Role
from .resolver import TileIdGroup
from .tileset import Sprite, Tileset

if TYPE_CHECKING:
    from .project import Project

logger = logging.getLogger(__name__)


@dataclass
class LayerSprite:
    tile_id: TileId
    variant: str
    sprite: Sprite


@dataclass
class Exists:
    terrain: Optional[LayerSprite] = None
    furniture: Optional[LayerSprite] = None
    item: Optional[LayerSprite] = None
    toilet: Optional[LayerSprite] = None

    def get(self, role: Role) -> Optional[LayerSprite]:
        return getattr(self, role.value)

    def layers(self) -> Dict[Role, LayerSprite]:
        return {role: self.get(role) for role in Role if self.get(role) is not None}


@dataclass
class Fallback:
    sprite: Sprite
    variant: str = FALLBACK


@dataclass
class Empty:
    pass


SpriteChoice = Union[Exists, Fallback, Empty]


class SpriteSelector:
    """Picks sprites for cells of a project from one shared tileset."""

    def __init__(self, tileset: Tileset):
        self.tileset = tileset
        self.unresolvable: Set[str] = set()

    def identify(self, project: "Project", coordinates: Coordinates) -> Optional[TileIdGroup]:
        """Resolved identifiers of the cell at coordinates, cached on the cell."""
        cell = project.map_entity.get_cell(coordinates)
        if cell is None:
            return None
        if cell.identifiers is None:
            cell.identifiers = project.resolver.resolve_all(cell.character)
        return cell.identifiers

    def identify_neighbor(self, project: "Project", coordinates: Coordinates) -> Optional[TileIdGroup]:
        """Like identify, but a neighbour that fails to resolve counts as a different tile."""
        try:
            return self.identify(project, coordinates)
        except ResolveError as e:
            character = project.map_entity.get_cell(coordinates).character
            if character not in self.unresolvable:
                self.unresolvable.add(character)
                logger.warning("Cannot resolve neighbour %r at %s: %s", character, coordinates, e)
            return None

    def get_sprite(
        self,
        project: "Project",
        role: Optional[Role],
        character: str,
        coordinates: Coordinates,
    ) -> SpriteChoice:
        """
        Sprites for character at coordinates.

        role limits the lookup to one layer; None selects every layer.
        Unmapped characters and identifiers missing from the tileset render
        as the fallback sprite and are logged at warning level.
        """
        cell = project.map_entity.get_cell(coordinates)
        if cell is None:
            return Empty()

        try:
            if cell.character == character:
                identifiers = self.identify(project, coordinates)
            else:
                identifiers = project.resolver.resolve_all(character)
        except ResolveError as e:
            logger.warning("Cannot resolve %r at %s: %s", character, coordinates, e)
            return Fallback(self.tileset.fallback)

        roles = list(Role) if role is None else [role]
        if all(identifiers.get(r) is None for r in roles):
            error = UnmappedCharacterError(character, role.value if role else "any role")
            logger.warning("%s at %s", error, coordinates)
            return Fallback(self.tileset.fallback)

        found: Dict[str, LayerSprite] = {}
        for r in roles:
            tile_id = identifiers.get(r)
            if tile_id is None:
                continue
            variants = self.tileset.get_variants(tile_id)
            if variants is None:
                logger.warning("%s at %s", UnknownIdentifierError(tile_id), coordinates)
                continue
            variant, sprite = select_variant(
                variants,
                project.map_entity,
                coordinates,
                r,
                tile_id,
                lambda c: self.identify_neighbor(project, c),
            )
            found[r.value] = LayerSprite(tile_id, variant, sprite)

        if not found:
            return Fallback(self.tileset.fallback)
        return Exists(**found)
