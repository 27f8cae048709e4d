"""
Legacy tileset loading.

A legacy tileset directory holds a tileset.txt naming the json config, the
config itself (tile_info + tiles-new) and the png atlases it references.
Sprite indices are global: every atlas continues numbering where the
previous one stopped, row-major from its top-left tile.
"""

import logging
import random
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np
from PIL import Image

from .common import TileId, Weighted, get_random_weighted, is_weighted_object
from .data.loader import DataLoader
from .errors import DirectoryNotFoundError, ParseError

logger = logging.getLogger(__name__)

TILESET_INFO_NAME = "tileset.txt"

CORNERS = ("NW", "NE", "SE", "SW")
DIRECTIONS = ("N", "E", "S", "W")
EDGES = ("NS", "EW")


@dataclass(frozen=True)
class TilesetInfo:
    pixelscale: int
    tile_width: int
    tile_height: int


@dataclass(frozen=True)
class SpriteHandle:
    """One sliced sprite. Pixels are an RGBA array of the slice."""

    index: int
    file: str
    pixels: np.ndarray = field(compare=False, repr=False)


@dataclass
class SpriteRef:
    """A foreground or background getter: one or more weighted handles."""

    choices: List[Weighted]

    @property
    def default(self) -> SpriteHandle:
        return self.choices[0].value

    def get_randomized_sprite(self, rng: Optional[random.Random] = None) -> SpriteHandle:
        if rng is None or len(self.choices) == 1:
            return self.default
        return get_random_weighted(self.choices, rng)


@dataclass
class Sprite:
    fg: Optional[SpriteRef] = None
    bg: Optional[SpriteRef] = None
    offset_x: int = 0
    offset_y: int = 0
    is_animated: bool = False


@dataclass
class SingleVariant:
    sprite: Sprite

    def get(self, variant: str) -> Sprite:
        return self.sprite


@dataclass
class MultitileVariant:
    center: Sprite
    corner: Dict[str, Sprite]
    t_connection: Dict[str, Sprite]
    edge: Dict[str, Sprite]
    end_piece: Dict[str, Sprite]
    unconnected: Sprite

    def get(self, variant: str) -> Sprite:
        """Look up a variant name such as "corner.NW" or "center"."""
        group, _, direction = variant.partition(".")
        if not direction:
            return getattr(self, group)
        return getattr(self, group)[direction]


SpriteVariants = Union[SingleVariant, MultitileVariant]


@dataclass
class TileGroup:
    file: str
    tiles: List[Dict[str, Any]]
    sprite_width: Optional[int] = None
    sprite_height: Optional[int] = None
    offset_x: int = 0
    offset_y: int = 0

    @classmethod
    def from_json(cls, raw: Dict[str, Any]) -> "TileGroup":
        return cls(
            file=str(raw["file"]),
            tiles=list(raw.get("tiles", [])),
            sprite_width=raw.get("sprite_width"),
            sprite_height=raw.get("sprite_height"),
            offset_x=int(raw.get("sprite_offset_x", 0)),
            offset_y=int(raw.get("sprite_offset_y", 0)),
        )


@dataclass
class LegacyTileset:
    name: str
    config_file_name: str
    info: TilesetInfo
    groups: List[TileGroup]


def fallback_pixels(width: int = 32, height: int = 32, cell: int = 4) -> np.ndarray:
    """Magenta and black checkerboard used when no sprite exists."""
    ys, xs = np.indices((height, width))
    checker = ((xs // cell) + (ys // cell)) % 2 == 0
    pixels = np.zeros((height, width, 4), dtype=np.uint8)
    pixels[..., 3] = 255
    pixels[checker] = (255, 0, 255, 255)
    return pixels


def fallback_sprite(width: int = 32, height: int = 32) -> Sprite:
    handle = SpriteHandle(-1, "<fallback>", fallback_pixels(width, height))
    return Sprite(fg=SpriteRef([Weighted(handle, 1, explicit=False)]))


def slice_atlas(image: Image.Image, sprite_width: int, sprite_height: int) -> List[np.ndarray]:
    """Cut an atlas into sprites, row-major from the top-left."""
    pixels = np.asarray(image.convert("RGBA"))
    rows = pixels.shape[0] // sprite_height
    cols = pixels.shape[1] // sprite_width
    return [
        pixels[r * sprite_height:(r + 1) * sprite_height, c * sprite_width:(c + 1) * sprite_width].copy()
        for r in range(rows)
        for c in range(cols)
    ]


class LegacyTilesetLoader:
    def __init__(self, path: Union[str, Path], data_loader: Optional[DataLoader] = None):
        self.path = Path(path)
        self.data_loader = data_loader or DataLoader(self.path)
        self.handles: Dict[int, SpriteHandle] = {}

    def read_info_file(self):
        """Returns (name, config file name) from tileset.txt."""
        if not self.path.is_dir():
            raise DirectoryNotFoundError(str(self.path))

        info_path = self.path / TILESET_INFO_NAME
        try:
            lines = info_path.read_text(encoding="utf-8").splitlines()
        except OSError as e:
            raise ParseError(str(info_path), str(e)) from e

        name, config_file_name = "Unknown Name", None
        for line in lines:
            key, _, value = line.partition(":")
            if key.strip() == "NAME":
                name = value.strip()
            elif key.strip() == "JSON":
                config_file_name = value.strip()

        if not config_file_name:
            raise ParseError(str(info_path), "no JSON: line")
        return name, config_file_name

    def load(self) -> LegacyTileset:
        name, config_file_name = self.read_info_file()
        config = self.data_loader.load_json(self.path / config_file_name)

        try:
            tile_info = config["tile_info"][0]
            info = TilesetInfo(
                pixelscale=int(tile_info.get("pixelscale", 1)),
                tile_width=int(tile_info["width"]),
                tile_height=int(tile_info["height"]),
            )
            groups = [TileGroup.from_json(g) for g in config.get("tiles-new", [])]
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise ParseError(config_file_name, str(e)) from e

        logger.info("Loaded tileset %s (%s)", name, config_file_name)
        return LegacyTileset(name, config_file_name, info, groups)

    def load_handles(self, tileset: LegacyTileset) -> Dict[int, SpriteHandle]:
        """Slice every atlas and number sprites globally."""
        handles: Dict[int, SpriteHandle] = {}
        base = 0
        for group in tileset.groups:
            atlas_path = self.path / group.file
            try:
                with Image.open(atlas_path) as image:
                    sprites = slice_atlas(
                        image,
                        group.sprite_width or tileset.info.tile_width,
                        group.sprite_height or tileset.info.tile_height,
                    )
            except OSError as e:
                raise ParseError(str(atlas_path), str(e)) from e

            for offset, pixels in enumerate(sprites):
                handles[base + offset] = SpriteHandle(base + offset, group.file, pixels)
            logger.debug("Sliced %d sprites from %s starting at %d", len(sprites), group.file, base)
            base += len(sprites)

        self.handles = handles
        return handles

    def load_sprite_variants(self) -> "Tileset":
        tileset = self.load()
        self.load_handles(tileset)

        variants: Dict[TileId, SpriteVariants] = {}
        for group in tileset.groups:
            for descriptor in group.tiles:
                ids = descriptor.get("id")
                ids = ids if isinstance(ids, list) else [ids]
                try:
                    variant = self.build_variant(descriptor, group)
                except (KeyError, TypeError, ValueError) as e:
                    logger.warning("Skipping tile %s in %s: %s", ids, group.file, e)
                    continue
                for tile_id in ids:
                    if isinstance(tile_id, str):
                        variants[tile_id] = variant

        logger.info("Built sprite variants for %d tile ids", len(variants))
        return Tileset(
            name=tileset.name,
            info=tileset.info,
            variants=variants,
            fallback=fallback_sprite(tileset.info.tile_width, tileset.info.tile_height),
        )

    # Descriptor parsing

    def _handle(self, index: Any) -> Optional[SpriteHandle]:
        handle = self.handles.get(int(index))
        if handle is None:
            logger.warning("Sprite index %s is outside every atlas", index)
        return handle

    def _weighted_ref(self, entries: List[Any]) -> Optional[SpriteRef]:
        choices = []
        for entry in entries:
            sprite = entry["sprite"]
            # Rotations inside a weighted entry: keep the default orientation
            if isinstance(sprite, list):
                sprite = sprite[0] if sprite else None
            handle = self._handle(sprite) if sprite is not None else None
            if handle is not None:
                choices.append(Weighted(handle, int(entry.get("weight", 1))))
        return SpriteRef(choices) if choices else None

    def _ref(self, index: Any) -> Optional[SpriteRef]:
        handle = self._handle(index)
        return SpriteRef([Weighted(handle, 1, explicit=False)]) if handle is not None else None

    def parse_sprite_values(self, raw: Any, count: int = 1) -> List[Optional[SpriteRef]]:
        """
        Parse an fg/bg value into count per-direction refs.

        A plain list of indices is a rotation list, one entry per direction;
        shorter lists repeat their first entry. A weighted list applies to
        every direction.
        """
        if raw is None:
            return [None] * count
        if isinstance(raw, list):
            if not raw:
                return [None] * count
            if any(is_weighted_object(e) or (isinstance(e, dict) and "sprite" in e) for e in raw):
                ref = self._weighted_ref([e for e in raw if isinstance(e, dict)])
                return [ref] * count
            refs = [self._ref(index) for index in raw]
            return [refs[i] if i < len(refs) else refs[0] for i in range(count)]
        return [self._ref(raw)] * count

    def build_sprites(self, descriptor: Dict[str, Any], group: TileGroup, count: int, parent: Optional[Sprite] = None) -> List[Sprite]:
        fgs = self.parse_sprite_values(descriptor.get("fg"), count)
        bgs = self.parse_sprite_values(descriptor.get("bg"), count)
        animated = bool(descriptor.get("animated", parent.is_animated if parent else False))
        sprites = []
        for fg, bg in zip(fgs, bgs):
            if fg is None and bg is None and parent is not None:
                sprites.append(parent)
                continue
            sprites.append(Sprite(fg, bg, group.offset_x, group.offset_y, animated))
        return sprites

    def build_variant(self, descriptor: Dict[str, Any], group: TileGroup) -> SpriteVariants:
        base = self.build_sprites(descriptor, group, 1)[0]

        multitile = descriptor.get("multitile")
        additional = descriptor.get("additional_tiles")
        if isinstance(multitile, dict):
            additional = multitile.get("additional_tiles", additional)
            multitile = multitile.get("multiline", True)
        if not multitile:
            return SingleVariant(base)

        subtiles = {}
        for subtile in additional or []:
            subtile_id = subtile.get("id")
            subtile_id = subtile_id[0] if isinstance(subtile_id, list) else subtile_id
            subtiles[subtile_id] = subtile

        def directional(role: str, names) -> Dict[str, Sprite]:
            if role not in subtiles:
                return {name: base for name in names}
            sprites = self.build_sprites(subtiles[role], group, len(names), parent=base)
            return dict(zip(names, sprites))

        def single(role: str) -> Sprite:
            if role not in subtiles:
                return base
            return self.build_sprites(subtiles[role], group, 1, parent=base)[0]

        return MultitileVariant(
            center=single("center"),
            corner=directional("corner", CORNERS),
            t_connection=directional("t_connection", DIRECTIONS),
            edge=directional("edge", EDGES),
            end_piece=directional("end_piece", DIRECTIONS),
            unconnected=single("unconnected"),
        )


@dataclass
class Tileset:
    """Sprite variants by tile id, shared read-only by every open project."""

    name: str
    info: TilesetInfo
    variants: Dict[TileId, SpriteVariants]
    fallback: Sprite

    def get_variants(self, tile_id: TileId) -> Optional[SpriteVariants]:
        return self.variants.get(tile_id)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "Tileset":
        return LegacyTilesetLoader(path).load_sprite_variants()

    @classmethod
    def empty(cls, tile_width: int = 32, tile_height: int = 32) -> "Tileset":
        """A tileset without tiles: every cell renders as the fallback."""
        return cls(
            name="none",
            info=TilesetInfo(1, tile_width, tile_height),
            variants={},
            fallback=fallback_sprite(tile_width, tile_height),
        )
