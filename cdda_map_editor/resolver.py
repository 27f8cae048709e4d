"""
Character to identifier resolution.

The map's own mappings and its palette stack are flattened into one ordered
lookup chain: the map first, then every palette in declared order, each
followed by the palettes it includes (depth first). Resolving a character is
a scan over that chain; the first source that maps the character wins.
"""

import logging
import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .common import TileId, get_random_weighted
from .errors import UnmappedCharacterError, UnresolvedParameterError, UnsupportedMapObjectError
from .models import Role
from .palettes import (
    GroupedId,
    ItemPlacement,
    MapObjectId,
    NestedId,
    Palette,
    PaletteId,
    ParamId,
    SingleId,
    SwitchId,
)
from .parameters import ComputedParameters, Lookup, chain_lookup, resolve_identifier, resolve_switch
from .region_settings import RegionSettings

logger = logging.getLogger(__name__)

TOILET_ID = "f_toilet"


@dataclass
class TileIdGroup:
    terrain: Optional[TileId] = None
    furniture: Optional[TileId] = None
    item: Optional[TileId] = None
    toilet: Optional[TileId] = None
    items: List[ItemPlacement] = field(default_factory=list)

    def get(self, role: Role) -> Optional[TileId]:
        return getattr(self, role.value)

    def is_empty(self) -> bool:
        return not (self.terrain or self.furniture or self.item or self.toilet)


@dataclass
class MappingSource:
    """One link of the lookup chain: a set of mappings plus its parameter scope."""

    name: str
    terrain: Dict[str, MapObjectId]
    furniture: Dict[str, MapObjectId]
    items: Dict[str, List[ItemPlacement]]
    toilets: Dict[str, Any]
    lookup: Lookup

    def mapping(self, role: Role) -> Dict[str, Any]:
        if role is Role.TERRAIN:
            return self.terrain
        if role is Role.FURNITURE:
            return self.furniture
        if role is Role.ITEM:
            return self.items
        return self.toilets


def build_lookup_chain(
    selection, palettes: Dict[PaletteId, Palette], name: str = "map"
) -> List[MappingSource]:
    """Flatten a TileSelection and its computed palette tree into scan order."""
    root: ComputedParameters = selection.computed_parameters
    root_lookup = chain_lookup(root)
    chain = [
        MappingSource(
            name, selection.terrain, selection.furniture, selection.items, selection.toilets, root_lookup
        )
    ]

    def visit(node: ComputedParameters, parent: Lookup):
        for palette_id, child in node.palettes.items():
            palette = palettes.get(palette_id)
            if palette is None:
                logger.warning("Computed palette %s is not loaded", palette_id)
                continue
            lookup = chain_lookup(child, parent)
            chain.append(
                MappingSource(
                    palette_id, palette.terrain, palette.furniture, palette.items, palette.toilets, lookup
                )
            )
            visit(child, lookup)

    visit(root, root_lookup)
    return chain


class CharacterResolver:
    """Resolves characters of one map to identifiers."""

    def __init__(
        self,
        map_entity,
        palettes: Dict[PaletteId, Palette],
        rng: random.Random,
        region_settings: Optional[RegionSettings] = None,
    ):
        self.map_entity = map_entity
        self.palettes = palettes
        self.rng = rng
        self.region_settings = region_settings
        self.chain = build_lookup_chain(map_entity.tile_selection, palettes, map_entity.name)

    def evaluate(self, value: MapObjectId, lookup: Lookup, where: str) -> Optional[TileId]:
        if isinstance(value, SingleId):
            return resolve_identifier(value.value.value, lookup)

        if isinstance(value, GroupedId):
            picked = get_random_weighted(value.values, self.rng)
            return resolve_identifier(picked, lookup) if picked is not None else None

        if isinstance(value, ParamId):
            resolved = lookup(value.param)
            if resolved is None:
                resolved = value.fallback
            if resolved is None:
                raise UnresolvedParameterError(value.param)
            return resolved

        if isinstance(value, SwitchId):
            resolved = resolve_switch(value.switch, value.cases, lookup)
            if resolved is None:
                logger.debug("Switch on %s has no matching case for %s", value.switch.param, where)
            return resolved

        if isinstance(value, NestedId):
            raise UnsupportedMapObjectError("Nested", where)

        raise TypeError(f"unknown map object id {value!r}")

    def resolve(self, character: str, role: Role) -> Optional[TileId]:
        """The identifier for character in role, or None when nothing maps it."""
        if role is Role.ITEM:
            placements = self.resolve_items(character)
            return next((p.item_id for p in placements if p.item_id), None)

        if role is Role.TOILET:
            for source in self.chain:
                if character in source.toilets:
                    return TOILET_ID
            return None

        for source in self.chain:
            value = source.mapping(role).get(character)
            if value is None:
                continue
            resolved = self.evaluate(value, source.lookup, f"{role.value} {character!r} in {source.name}")
            if resolved is not None:
                return self._apply_region(resolved, role)

        if role is Role.TERRAIN:
            fill_ter = self.map_entity.tile_selection.fill_ter
            if fill_ter is not None:
                return self._apply_region(resolve_identifier(fill_ter, self.chain[0].lookup), role)

        return None

    def require(self, character: str, role: Role) -> TileId:
        resolved = self.resolve(character, role)
        if resolved is None:
            raise UnmappedCharacterError(character, role.value)
        return resolved

    def resolve_items(self, character: str) -> List[ItemPlacement]:
        for source in self.chain:
            placements = source.items.get(character)
            if placements:
                return list(placements)
        return []

    def resolve_all(self, character: str) -> TileIdGroup:
        return TileIdGroup(
            terrain=self.resolve(character, Role.TERRAIN),
            furniture=self.resolve(character, Role.FURNITURE),
            item=self.resolve(character, Role.ITEM),
            toilet=self.resolve(character, Role.TOILET),
            items=self.resolve_items(character),
        )

    def _apply_region(self, tile_id: TileId, role: Role) -> TileId:
        if self.region_settings is None:
            return tile_id
        if role is Role.TERRAIN:
            return self.region_settings.resolve_terrain(tile_id, self.rng)
        if role is Role.FURNITURE:
            return self.region_settings.resolve_furniture(tile_id, self.rng)
        return tile_id
