"""
Pytest configuration and shared fixtures for the map editor tests.

The fixtures build a small CDDA-shaped corpus under tmp_path: a palettes
directory, a mapgen file, region settings and a legacy tileset whose
atlases are written with Pillow.
"""

import json
import random

import pytest
from PIL import Image

from cdda_map_editor.common import Coordinates
from cdda_map_editor.config import EditorConfig
from cdda_map_editor.editor import MapEditor
from cdda_map_editor.mapgen import SingleMap, TileSelection
from cdda_map_editor.palettes import PalettesLoader
from cdda_map_editor.project import Project
from cdda_map_editor.region_settings import RegionSettings
from cdda_map_editor.tileset import Tileset

SPRITE_SIZE = 4

PALETTES = [
    {
        "type": "palette",
        "id": "house_palette",
        "parameters": {"door_type": {"type": "ter_str_id", "default": "t_door_locked"}},
        "terrain": {
            "#": "t_wall",
            ".": "t_floor",
            "+": {"param": "door_type", "fallback": "t_door_c"},
            "g": "t_region_groundcover",
            "u": "t_unknown",
            "w": "t_water",
        },
        "furniture": {"h": "f_chair"},
        "toilets": {"t": {}},
        "items": {"i": {"item": "livingroom", "chance": 30}},
        "palettes": ["yard_palette"],
    },
    {
        "type": "palette",
        "id": "yard_palette",
        "terrain": {".": "t_dirt", "y": "t_dirt", "#": "t_fence"},
    },
    {"type": "palette", "id": "cycle_a", "palettes": ["cycle_b"], "terrain": {"a": "t_floor"}},
    {"type": "palette", "id": "cycle_b", "palettes": ["cycle_a"], "terrain": {"b": "t_dirt"}},
    {"type": "overmap_terrain", "id": "house"},
]

MAPGEN = [
    {
        "type": "mapgen",
        "method": "json",
        "om_terrain": "house",
        "object": {
            "fill_ter": "t_grass",
            "rows": ["####", "#.h#", "#+.#", "####"],
            "palettes": ["house_palette"],
            "terrain": {"h": "t_floor"},
        },
    },
    {
        "type": "mapgen",
        "method": "json",
        "om_terrain": "walls",
        "object": {"palettes": ["house_palette"], "rows": []},
    },
    {
        "type": "mapgen",
        "method": "json",
        "om_terrain": ["field_a", "field_b"],
        "object": {"rows": [".."], "terrain": {".": "t_grass"}},
    },
    {
        "type": "mapgen",
        "method": "json",
        "om_terrain": [["block_nw", "block_ne"]],
        "object": {"rows": ["."], "terrain": {".": "t_grass"}},
    },
    {
        "type": "mapgen",
        "method": "json",
        "om_terrain": "shed",
        "object": {"mapgensize": [3, 2], "rows": ["...", "..."], "fill_ter": "t_dirt"},
    },
    {
        "type": "mapgen",
        "method": "json",
        "om_terrain": "cramped",
        "object": {"mapgensize": [2, 1], "rows": ["...", "..."], "fill_ter": "t_dirt"},
    },
    {
        "type": "mapgen",
        "method": "json",
        "om_terrain": "misshapen",
        "object": {"mapgensize": ["wide", 2], "rows": []},
    },
    {
        "type": "mapgen",
        "method": "json",
        "om_terrain": "ruin",
        "object": {"palettes": ["house_palette"], "terrain": {"p": {"param": "missing"}}, "rows": ["#p"]},
    },
    {"type": "mapgen", "method": "json", "om_terrain": "broken"},
    {
        "type": "mapgen",
        "method": "json",
        "om_terrain": "lost",
        "object": {"palettes": ["no_such_palette"], "rows": []},
    },
]

REGION_SETTINGS = [
    {
        "type": "region_settings",
        "id": "default",
        "default_oter": ["field"],
        "region_terrain_and_furniture": {
            "terrain": {"t_region_groundcover": {"t_region_soil": 1}, "t_region_soil": {"t_grass": 1}},
            "furniture": {},
        },
    }
]

TILE_CONFIG = {
    "tile_info": [{"pixelscale": 1, "width": SPRITE_SIZE, "height": SPRITE_SIZE}],
    "tiles-new": [
        {
            "file": "tiles.png",
            "tiles": [
                {"id": "t_floor", "fg": 0},
                {"id": ["t_grass", "t_dirt"], "fg": 1},
                {
                    "id": "t_wall",
                    "fg": 2,
                    "multitile": True,
                    "additional_tiles": [
                        {"id": "center", "fg": 3},
                        {"id": "corner", "fg": [4, 5, 6, 7]},
                        {"id": "t_connection", "fg": [4, 5, 6, 7]},
                        {"id": "edge", "fg": [3, 4]},
                        {"id": "end_piece", "fg": [4, 5, 6, 7]},
                        {"id": "unconnected", "fg": 2},
                    ],
                },
                {"id": "f_chair", "fg": [{"sprite": 5, "weight": 2}, {"sprite": 6, "weight": 1}]},
            ],
        },
        {
            "file": "extra.png",
            "sprite_width": SPRITE_SIZE,
            "sprite_height": SPRITE_SIZE,
            "sprite_offset_x": 1,
            "sprite_offset_y": -2,
            "tiles": [
                {"id": "t_water", "fg": 8, "animated": True},
                {"id": "f_toilet", "fg": 9},
            ],
        },
    ],
}


def sprite_color(index):
    """Distinct colour per atlas slot."""
    return (index * 20, 255 - index * 20, 0, 255)


def write_atlas(path, cols, rows, first_index):
    image = Image.new("RGBA", (cols * SPRITE_SIZE, rows * SPRITE_SIZE))
    for r in range(rows):
        for c in range(cols):
            index = first_index + r * cols + c
            tile = Image.new("RGBA", (SPRITE_SIZE, SPRITE_SIZE), sprite_color(index))
            image.paste(tile, (c * SPRITE_SIZE, r * SPRITE_SIZE))
    image.save(path)


@pytest.fixture
def cdda_dir(tmp_path):
    """A minimal game directory laid out like a CDDA checkout."""
    root = tmp_path / "cdda"
    json_dir = root / "data" / "json"
    palettes_dir = json_dir / "mapgen_palettes"
    (palettes_dir / "broken").mkdir(parents=True)

    (palettes_dir / "house.json").write_text(json.dumps(PALETTES))
    (palettes_dir / "broken" / "no_id.json").write_text(json.dumps([{"type": "palette"}]))
    (json_dir / "regional_map_settings.json").write_text(json.dumps(REGION_SETTINGS))
    (json_dir / "mapgen").mkdir()
    (json_dir / "mapgen" / "house.json").write_text(json.dumps(MAPGEN))

    tileset_dir = root / "gfx" / "TestTiles"
    tileset_dir.mkdir(parents=True)
    (tileset_dir / "tileset.txt").write_text(
        "NAME: TestTiles\nVIEW: Test Tiles\nJSON: tile_config.json\n"
    )
    (tileset_dir / "tile_config.json").write_text(json.dumps(TILE_CONFIG))
    write_atlas(tileset_dir / "tiles.png", cols=4, rows=2, first_index=0)
    write_atlas(tileset_dir / "extra.png", cols=2, rows=1, first_index=8)
    return root


@pytest.fixture
def palettes_dir(cdda_dir):
    return cdda_dir / "data" / "json" / "mapgen_palettes"


@pytest.fixture
def mapgen_path(cdda_dir):
    return cdda_dir / "data" / "json" / "mapgen" / "house.json"


@pytest.fixture
def region_settings_path(cdda_dir):
    return cdda_dir / "data" / "json" / "regional_map_settings.json"


@pytest.fixture
def tileset_dir(cdda_dir):
    return cdda_dir / "gfx" / "TestTiles"


@pytest.fixture
def palettes(palettes_dir):
    """The loaded palette map."""
    return PalettesLoader(palettes_dir).load()


@pytest.fixture
def region_settings():
    return RegionSettings.from_json(REGION_SETTINGS[0])


@pytest.fixture
def tileset(tileset_dir):
    return Tileset.load(tileset_dir)


@pytest.fixture
def rng():
    """A seeded generator for deterministic tests."""
    return random.Random(42)


@pytest.fixture
def config(tmp_path, cdda_dir):
    return EditorConfig(cdda_dir=str(cdda_dir), tileset="TestTiles", data_dir=str(tmp_path / "user"))


@pytest.fixture
def editor(config):
    """An editor with the test corpus and tileset loaded and no project open."""
    editor = MapEditor(config)
    editor.load_game_data()
    editor.load_tileset()
    return editor


@pytest.fixture
def walls_editor(editor, mapgen_path):
    """An editor with the empty "walls" map open."""
    editor.open_project(mapgen_path, "walls")
    editor.tick()
    return editor


@pytest.fixture
def make_project(palettes, rng):
    """Build a bound project from an inline mapgen object."""

    def make(obj, name="test_map", region_settings=None, palettes_map=None):
        palettes_map = palettes if palettes_map is None else palettes_map
        selection = TileSelection.from_object(obj)
        selection.compute_parameters(palettes_map, rng)
        rows = obj.get("rows", [])
        cells = {}
        map_entity = SingleMap(name, tile_selection=selection, cells=cells)
        for y, row in enumerate(rows):
            for x, character in enumerate(row):
                map_entity.place(Coordinates(x, y), character)
        project = Project(name, map_entity)
        project.bind(palettes_map, rng, region_settings)
        return project

    return make
