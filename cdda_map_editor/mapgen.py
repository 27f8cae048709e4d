"""
Map entities and the mapgen loader.

A mapgen file is a list of objects; the one whose om_terrain names the
requested id is turned into a MapEntity. Its om_terrain shape decides the
kind: a plain string is a Single map, a flat list a Multi map (several
overmap terrains sharing one layout) and a 2D list a Nested map made of
24x24 chunks.
"""

import logging
import random
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from .common import OMT_SIZE, Coordinates
from .data.loader import DataLoader
from .errors import MapgenNotFoundError, ParseError
from .models import Cell
from .palettes import (
    Identifier,
    ItemPlacement,
    MapObjectId,
    Palette,
    PaletteId,
    Parameter,
    ParameterId,
    dump_identifier,
    dump_mapping,
    parse_character_mapping,
    parse_identifier,
    parse_items,
    parse_palette_list,
    parse_parameters,
)
from .parameters import ComputedParameters, ParameterResolver

logger = logging.getLogger(__name__)


@dataclass
class TileSelection:
    """The per-map mapping layer: what each character means."""

    fill_ter: Optional[Identifier] = None
    palettes: List[MapObjectId] = field(default_factory=list)
    terrain: Dict[str, MapObjectId] = field(default_factory=dict)
    furniture: Dict[str, MapObjectId] = field(default_factory=dict)
    items: Dict[str, List[ItemPlacement]] = field(default_factory=dict)
    toilets: Dict[str, Any] = field(default_factory=dict)
    parameters: Dict[ParameterId, Parameter] = field(default_factory=dict)
    computed_parameters: ComputedParameters = field(default_factory=ComputedParameters)

    def compute_parameters(self, palettes: Dict[PaletteId, Palette], rng: random.Random):
        self.computed_parameters = ParameterResolver(palettes, rng).compute(
            self.parameters, self.palettes
        )
        return self.computed_parameters

    @classmethod
    def from_object(cls, obj: Dict[str, Any]) -> "TileSelection":
        fill_ter = obj.get("fill_ter")
        return cls(
            fill_ter=parse_identifier(fill_ter) if fill_ter is not None else None,
            palettes=parse_palette_list(obj.get("palettes")),
            terrain=parse_character_mapping(obj.get("terrain")),
            furniture=parse_character_mapping(obj.get("furniture")),
            items=parse_items(obj.get("items")),
            toilets=dict(obj.get("toilets", {})),
            parameters=parse_parameters(obj.get("parameters")),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "fill_ter": dump_identifier(self.fill_ter) if self.fill_ter is not None else None,
            "palettes": [p.to_json() for p in self.palettes],
            "terrain": dump_mapping(self.terrain),
            "furniture": dump_mapping(self.furniture),
            "items": {c: [i.to_json() for i in entries] for c, entries in self.items.items()},
            "toilets": dict(self.toilets),
            "parameters": {name: p.to_json() for name, p in self.parameters.items()},
            "computed_parameters": self.computed_parameters.to_json(),
        }

    @classmethod
    def from_json(cls, raw: Dict[str, Any]) -> "TileSelection":
        selection = cls.from_object(raw)
        selection.computed_parameters = ComputedParameters.from_json(raw.get("computed_parameters", {}))
        return selection


class MapEntity:
    """Base class for the three map kinds."""

    kind = "Single"

    def __init__(
        self,
        om_terrain: Any,
        size: Tuple[int, int] = (OMT_SIZE, OMT_SIZE),
        cells: Optional[Dict[Coordinates, Cell]] = None,
        tile_selection: Optional[TileSelection] = None,
    ):
        self.om_terrain = om_terrain
        self.size = (int(size[0]), int(size[1]))
        self.cells: Dict[Coordinates, Cell] = cells if cells is not None else {}
        self.tile_selection = tile_selection or TileSelection()

    @property
    def name(self) -> str:
        return str(self.om_terrain)

    @property
    def width(self) -> int:
        return self.size[0]

    @property
    def height(self) -> int:
        return self.size[1]

    def in_bounds(self, coordinates: Coordinates) -> bool:
        return 0 <= coordinates.x < self.width and 0 <= coordinates.y < self.height

    def get_cell(self, coordinates: Coordinates) -> Optional[Cell]:
        return self.cells.get(coordinates)

    def get_cells_around(self, coordinates: Coordinates) -> List[Tuple[Optional[Cell], Coordinates]]:
        """Neighbouring cells in N, E, S, W order, None where empty."""
        return [(self.cells.get(n), n) for n in coordinates.neighbors()]

    def place(self, coordinates: Coordinates, character: str) -> Optional[Cell]:
        """Insert a new cell. Returns None if occupied or out of bounds."""
        if coordinates in self.cells or not self.in_bounds(coordinates):
            return None
        cell = Cell(character)
        self.cells[coordinates] = cell
        return cell

    def delete(self, coordinates: Coordinates) -> Optional[Cell]:
        return self.cells.pop(coordinates, None)

    def clear(self):
        self.cells.clear()

    def invalidate(self):
        for cell in self.cells.values():
            cell.invalidate()

    def to_json(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "om_terrain": self.om_terrain,
            "size": list(self.size),
            "tile_selection": self.tile_selection.to_json(),
            "cells": {c.to_key(): cell.to_json() for c, cell in sorted(self.cells.items())},
        }

    @staticmethod
    def from_json(raw: Dict[str, Any]) -> "MapEntity":
        kind = raw.get("kind", "Single")
        entity_class = _MAP_KINDS.get(kind)
        if entity_class is None:
            raise ValueError(f"unknown map kind {kind!r}")
        return entity_class(
            om_terrain=raw["om_terrain"],
            size=tuple(raw.get("size", (OMT_SIZE, OMT_SIZE))),
            cells={Coordinates.from_key(k): Cell.from_json(v) for k, v in raw.get("cells", {}).items()},
            tile_selection=TileSelection.from_json(raw.get("tile_selection", {})),
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.om_terrain!r}, size={self.size}, cells={len(self.cells)})"


class SingleMap(MapEntity):
    kind = "Single"


class MultiMap(MapEntity):
    """Several overmap terrains sharing one 24x24 layout."""

    kind = "Multi"

    @property
    def name(self) -> str:
        return str(self.om_terrain[0]) if self.om_terrain else "unnamed"


class NestedMap(MapEntity):
    """A 2D grid of overmap terrains, each covering one 24x24 chunk."""

    kind = "Nested"

    @property
    def name(self) -> str:
        for row in self.om_terrain:
            for om_terrain in row:
                if om_terrain:
                    return str(om_terrain)
        return "unnamed"

    @property
    def grid_size(self) -> Tuple[int, int]:
        rows = len(self.om_terrain)
        cols = max((len(row) for row in self.om_terrain), default=0)
        return cols, rows

    def sub_map(self, col: int, row: int) -> Dict[Coordinates, Cell]:
        """Cells of one chunk, in chunk-local coordinates."""
        x0, y0 = col * OMT_SIZE, row * OMT_SIZE
        return {
            Coordinates(c.x - x0, c.y - y0): cell
            for c, cell in self.cells.items()
            if x0 <= c.x < x0 + OMT_SIZE and y0 <= c.y < y0 + OMT_SIZE
        }


_MAP_KINDS = {cls.kind: cls for cls in (SingleMap, MultiMap, NestedMap)}


def om_terrain_matches(om_terrain: Any, target: str) -> bool:
    if isinstance(om_terrain, str):
        return om_terrain == target
    if isinstance(om_terrain, list):
        return any(om_terrain_matches(entry, target) for entry in om_terrain)
    return False


def cells_from_rows(rows: List[str], size: Tuple[int, int]) -> Dict[Coordinates, Cell]:
    """Rows run top-to-bottom, columns left-to-right. Characters outside size are dropped."""
    width, height = size
    return {
        Coordinates(column, row): Cell(character)
        for row, line in enumerate(rows)
        for column, character in enumerate(line)
        if column < width and row < height
    }


def size_from_om_terrain(om_terrain: Any) -> Tuple[int, int]:
    if isinstance(om_terrain, list) and om_terrain and all(isinstance(r, list) for r in om_terrain):
        cols = max(len(row) for row in om_terrain)
        return OMT_SIZE * cols, OMT_SIZE * len(om_terrain)
    return OMT_SIZE, OMT_SIZE


class MapEntityLoader:
    """Loads the mapgen object for one om_terrain id and resolves its parameters."""

    def __init__(
        self,
        path: Union[str, Path],
        om_terrain: str,
        palettes: Dict[PaletteId, Palette],
        rng: random.Random,
        data_loader: Optional[DataLoader] = None,
    ):
        self.path = Path(path)
        self.om_terrain = om_terrain
        self.palettes = palettes
        self.rng = rng
        self.data_loader = data_loader or DataLoader()

    def find_object(self) -> Dict[str, Any]:
        for document in self.data_loader.load_json_list(self.path):
            if isinstance(document, dict) and om_terrain_matches(document.get("om_terrain"), self.om_terrain):
                return document
        raise MapgenNotFoundError(self.om_terrain, str(self.path))

    def load(self) -> MapEntity:
        document = self.find_object()
        om_terrain = document["om_terrain"]

        try:
            obj = document["object"]
            selection = TileSelection.from_object(obj)
            # Nested mapgen sometimes declares parameters next to the object
            for name, parameter in parse_parameters(document.get("parameters")).items():
                selection.parameters.setdefault(name, parameter)
            rows = [str(row) for row in obj.get("rows", [])]
            mapgensize = obj.get("mapgensize")
            if mapgensize:
                size = (int(mapgensize[0]), int(mapgensize[1]))
            else:
                size = size_from_om_terrain(om_terrain)
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise ParseError(str(self.path), f"invalid mapgen object {om_terrain!r}: {e}") from e

        cells = cells_from_rows(rows, size)
        if len(cells) < sum(len(row) for row in rows):
            logger.warning("Rows of %s exceed its size %s, dropping the overflow", om_terrain, size)

        if isinstance(om_terrain, str):
            entity_class = SingleMap
        elif all(isinstance(entry, list) for entry in om_terrain):
            entity_class = NestedMap
        else:
            entity_class = MultiMap

        selection.compute_parameters(self.palettes, self.rng)

        entity = entity_class(
            om_terrain=om_terrain,
            size=size,
            cells=cells,
            tile_selection=selection,
        )
        logger.info("Loaded %s mapgen object %s from %s", entity.kind, om_terrain, self.path)
        return entity
