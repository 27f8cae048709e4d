"""
Regional terrain and furniture aliases.

Mapgen can name a region alias like "t_region_groundcover" instead of a real
id; the active region settings then supply a weighted set of concrete ids.
Aliases may point at other aliases.
"""

import logging
import random
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .common import TileId, Weighted, get_random_weighted, parse_maybe_weighted
from .data.loader import DataLoader

logger = logging.getLogger(__name__)

RegionId = str

DEFAULT_REGION = "default"


def _parse_weight_table(raw: Dict[str, Any]) -> Dict[RegionId, Dict[TileId, int]]:
    return {
        alias: {tile_id: int(weight) for tile_id, weight in table.items()}
        for alias, table in (raw or {}).items()
        if isinstance(table, dict)
    }


@dataclass
class RegionSettings:
    id: str
    default_oter: List[str] = field(default_factory=list)
    default_groundcover: List[Weighted] = field(default_factory=list)
    terrain: Dict[RegionId, Dict[TileId, int]] = field(default_factory=dict)
    furniture: Dict[RegionId, Dict[TileId, int]] = field(default_factory=dict)

    @classmethod
    def from_json(cls, raw: Dict[str, Any]) -> "RegionSettings":
        oter = raw.get("default_oter", [])
        tables = raw.get("region_terrain_and_furniture", {})
        return cls(
            id=str(raw.get("id", DEFAULT_REGION)),
            default_oter=oter if isinstance(oter, list) else [oter],
            default_groundcover=[parse_maybe_weighted(e) for e in raw.get("default_groundcover", [])],
            terrain=_parse_weight_table(tables.get("terrain", {})),
            furniture=_parse_weight_table(tables.get("furniture", {})),
        )

    def resolve_terrain(self, tile_id: TileId, rng: random.Random) -> TileId:
        return self._resolve(self.terrain, tile_id, rng)

    def resolve_furniture(self, tile_id: TileId, rng: random.Random) -> TileId:
        return self._resolve(self.furniture, tile_id, rng)

    @staticmethod
    def _resolve(tables: Dict[RegionId, Dict[TileId, int]], tile_id: TileId, rng: random.Random) -> TileId:
        seen = set()
        while tile_id in tables and tile_id not in seen:
            seen.add(tile_id)
            picked = get_random_weighted(
                [Weighted(value, weight) for value, weight in tables[tile_id].items()], rng
            )
            if picked is None:
                break
            tile_id = picked
        return tile_id


def load_region_settings(
    path: Union[str, Path], region_id: str = DEFAULT_REGION, data_loader: Optional[DataLoader] = None
) -> Optional[RegionSettings]:
    """Read the region_settings object named region_id from path."""
    loader = data_loader or DataLoader()
    for document in loader.load_json_list(path):
        if not isinstance(document, dict) or document.get("type") != "region_settings":
            continue
        if document.get("id") == region_id:
            settings = RegionSettings.from_json(document)
            logger.info("Loaded region settings %s from %s", settings.id, path)
            return settings

    logger.warning("No region settings %r in %s", region_id, path)
    return None
