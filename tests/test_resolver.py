"""
Tests for character to identifier resolution.
"""

import random
from collections import Counter

import pytest

from cdda_map_editor.errors import UnmappedCharacterError, UnsupportedMapObjectError
from cdda_map_editor.mapgen import MapEntityLoader
from cdda_map_editor.models import Role
from cdda_map_editor.palettes import Palette
from cdda_map_editor.resolver import TOILET_ID, CharacterResolver, build_lookup_chain


def make_palettes(*documents):
    return {doc["id"]: Palette.from_json(doc) for doc in documents}


class TestSimpleResolve:
    """Test resolving through the map and its palettes."""

    def test_palette_terrain(self, make_project):
        """Test a character mapped only by a palette."""
        palettes = make_palettes({"id": "p1", "terrain": {"#": "t_wall"}})
        project = make_project({"palettes": ["p1"], "rows": ["##"]}, palettes_map=palettes)

        assert project.resolver.resolve("#", Role.TERRAIN) == "t_wall"
        assert project.resolver.resolve_all("#").terrain == "t_wall"

    def test_map_shadows_palette(self, make_project):
        """Test the map's own mapping wins over its palettes."""
        project = make_project({"palettes": ["house_palette"], "terrain": {"#": "t_brick_wall"}})
        assert project.resolver.resolve("#", Role.TERRAIN) == "t_brick_wall"

    def test_palette_order(self, make_project):
        """Test the earliest declared palette wins."""
        project = make_project({"palettes": ["yard_palette", "house_palette"]})
        assert project.resolver.resolve(".", Role.TERRAIN) == "t_dirt"

        project = make_project({"palettes": ["house_palette", "yard_palette"]})
        assert project.resolver.resolve(".", Role.TERRAIN) == "t_floor"

    def test_palette_shadows_included(self, make_project):
        """Test a palette's own mapping wins over the palettes it includes."""
        project = make_project({"palettes": ["house_palette"]})
        assert project.resolver.resolve("#", Role.TERRAIN) == "t_wall"
        assert project.resolver.resolve("y", Role.TERRAIN) == "t_dirt"

    def test_fill_ter(self, make_project):
        """Test unmapped terrain falls back to fill_ter."""
        project = make_project({"palettes": ["house_palette"], "fill_ter": "t_grass"})
        assert project.resolver.resolve("z", Role.TERRAIN) == "t_grass"
        assert project.resolver.resolve("z", Role.FURNITURE) is None

    def test_unmapped(self, make_project):
        """Test unmapped characters resolve to nothing, and require raises."""
        project = make_project({"palettes": ["house_palette"]})
        assert project.resolver.resolve("z", Role.TERRAIN) is None
        with pytest.raises(UnmappedCharacterError):
            project.resolver.require("z", Role.TERRAIN)

    def test_furniture_and_terrain(self, make_project):
        """Test a character can map in several roles at once."""
        project = make_project({"palettes": ["house_palette"], "terrain": {"h": "t_floor"}})
        identifiers = project.resolver.resolve_all("h")
        assert identifiers.terrain == "t_floor"
        assert identifiers.furniture == "f_chair"
        assert identifiers.toilet is None


class TestParameterizedResolve:
    """Test ids drawn from parameters."""

    def test_param_reference(self, make_project):
        """Test a palette param reference reads the computed value."""
        project = make_project({"palettes": ["house_palette"]})
        assert project.resolver.resolve("+", Role.TERRAIN) == "t_door_locked"

    def test_map_param_shadows_palette_param(self, make_project):
        """Test the map's own parameter value is visible to its palettes."""
        palettes = make_palettes(
            {"id": "p1", "terrain": {"+": {"param": "door_type", "fallback": "t_door_c"}}}
        )
        project = make_project(
            {"palettes": ["p1"], "parameters": {"door_type": {"type": "ter_str_id", "default": "t_door_glass"}}},
            palettes_map=palettes,
        )
        assert project.resolver.resolve("+", Role.TERRAIN) == "t_door_glass"

    def test_param_fallback(self, make_project):
        palettes = make_palettes({"id": "p1", "terrain": {"+": {"param": "nothing", "fallback": "t_door_c"}}})
        project = make_project({"palettes": ["p1"]}, palettes_map=palettes)
        assert project.resolver.resolve("+", Role.TERRAIN) == "t_door_c"

    def test_switch(self, make_project):
        palettes = make_palettes(
            {
                "id": "p1",
                "parameters": {"style": {"type": "string", "default": "wood"}},
                "terrain": {
                    ".": {"switch": {"param": "style"}, "cases": {"wood": "t_floor_wood", "stone": "t_rock_floor"}}
                },
            }
        )
        project = make_project({"palettes": ["p1"]}, palettes_map=palettes)
        assert project.resolver.resolve(".", Role.TERRAIN) == "t_floor_wood"

    def test_switch_without_case_falls_through(self, make_project):
        """Test a switch with no matching case lets later sources answer."""
        palettes = make_palettes(
            {
                "id": "p1",
                "parameters": {"style": {"type": "string", "default": "glass"}},
                "terrain": {".": {"switch": {"param": "style"}, "cases": {"wood": "t_floor_wood"}}},
            },
            {"id": "p2", "terrain": {".": "t_dirt"}},
        )
        project = make_project({"palettes": ["p1", "p2"]}, palettes_map=palettes)
        assert project.resolver.resolve(".", Role.TERRAIN) == "t_dirt"

    def test_nested_is_unsupported(self, make_project):
        project = make_project({"terrain": {"n": [["t_floor"], ["t_dirt"]]}})
        with pytest.raises(UnsupportedMapObjectError):
            project.resolver.resolve("n", Role.TERRAIN)

    def test_distribution_ratio(self, tmp_path):
        """Test a 3:1 floor distribution over repeated loads with one seeded stream."""
        palettes = make_palettes(
            {
                "id": "p1",
                "parameters": {
                    "floor_type": {
                        "type": "ter_str_id",
                        "default": {"distribution": [{"t_floor": 3}, {"t_dirt": 1}]},
                    }
                },
                "terrain": {".": {"param": "floor_type"}},
            }
        )
        path = tmp_path / "floor.json"
        path.write_text('[{"om_terrain": "floor", "object": {"palettes": ["p1"], "rows": ["."]}}]')

        rng = random.Random(1)
        counts = Counter()
        for _ in range(200):
            entity = MapEntityLoader(path, "floor", palettes, rng).load()
            counts[CharacterResolver(entity, palettes, rng).resolve(".", Role.TERRAIN)] += 1

        ratio = counts["t_floor"] / sum(counts.values())
        assert set(counts) <= {"t_floor", "t_dirt"}
        assert 0.5 <= ratio <= 0.9

    def test_grouped_weights(self, make_project):
        """Test grouped ids never pick a zero weight next to a positive one."""
        project = make_project({"terrain": {"x": [["t_grass", 5], ["t_dirt", 0]]}})
        assert {project.resolver.resolve("x", Role.TERRAIN) for _ in range(20)} == {"t_grass"}


class TestOtherRoles:
    """Test item and toilet roles."""

    def test_items(self, make_project):
        project = make_project({"palettes": ["house_palette"]})
        assert project.resolver.resolve("i", Role.ITEM) == "livingroom"
        assert project.resolver.resolve_items("i")[0].chance == 30
        assert project.resolver.resolve("#", Role.ITEM) is None

    def test_toilets(self, make_project):
        project = make_project({"palettes": ["house_palette"]})
        assert project.resolver.resolve("t", Role.TOILET) == TOILET_ID
        assert project.resolver.resolve("#", Role.TOILET) is None


class TestRegionSettings:
    """Test regional alias substitution."""

    def test_alias_chain(self, make_project, region_settings):
        """Test aliases resolve through other aliases to a concrete id."""
        project = make_project({"palettes": ["house_palette"]}, region_settings=region_settings)
        assert project.resolver.resolve("g", Role.TERRAIN) == "t_grass"

    def test_without_settings(self, make_project):
        project = make_project({"palettes": ["house_palette"]})
        assert project.resolver.resolve("g", Role.TERRAIN) == "t_region_groundcover"

    def test_cycle_stops(self, make_project, region_settings):
        region_settings.terrain = {"t_a": {"t_b": 1}, "t_b": {"t_a": 1}}
        project = make_project({"terrain": {"x": "t_a"}}, region_settings=region_settings)
        assert project.resolver.resolve("x", Role.TERRAIN) in {"t_a", "t_b"}


class TestLookupChain:
    """Test the flattened scan order."""

    def test_depth_first_order(self, make_project, palettes):
        project = make_project({"palettes": ["house_palette", "cycle_a"]})
        chain = build_lookup_chain(project.map_entity.tile_selection, palettes, "test_map")
        assert [source.name for source in chain] == ["test_map", "house_palette", "yard_palette", "cycle_a", "cycle_b"]
