"""
Tests for parameter resolution.
"""

import random

import pytest

from cdda_map_editor.errors import (
    UnresolvedPaletteError,
    UnresolvedParameterError,
    UnsupportedMapObjectError,
)
from cdda_map_editor.palettes import Palette, parse_palette_list, parse_parameters
from cdda_map_editor.parameters import ComputedParameters, ParameterResolver


def make_palettes(*documents):
    return {doc["id"]: Palette.from_json(doc) for doc in documents}


class TestComputedParameters:
    """Test the cascading lookup."""

    def test_local_first(self):
        """Test local values shadow palette values."""
        tree = ComputedParameters(
            this={"a": "local"},
            palettes={"p": ComputedParameters(this={"a": "palette", "b": "deep"})},
        )
        assert tree.get_value("a") == "local"
        assert tree.get_value("b") == "deep"
        assert tree.get_value("c") is None

    def test_declared_order(self):
        """Test earlier palettes win over later ones."""
        tree = ComputedParameters(
            palettes={
                "first": ComputedParameters(this={"a": "1"}),
                "second": ComputedParameters(this={"a": "2"}),
            }
        )
        assert tree.get_value("a") == "1"

    def test_json_round_trip(self):
        tree = ComputedParameters(this={"a": "1"}, palettes={"p": ComputedParameters(this={"b": "2"})})
        assert ComputedParameters.from_json(tree.to_json()) == tree


class TestParameterResolver:
    """Test computing ComputedParameters trees."""

    def test_simple_default(self):
        resolver = ParameterResolver({}, random.Random(0))
        computed = resolver.compute(parse_parameters({"floor": {"type": "ter_str_id", "default": "t_floor"}}), [])
        assert computed.this == {"floor": "t_floor"}

    def test_deterministic(self):
        """Test equal seeds yield identical trees."""
        palettes = make_palettes(
            {
                "id": "p1",
                "parameters": {
                    "a": {"type": "ter_str_id", "default": {"distribution": [["t_1", 1], ["t_2", 1], ["t_3", 1]]}}
                },
            }
        )
        parameters = parse_parameters(
            {"b": {"type": "furn_str_id", "default": {"distribution": [["f_1", 1], ["f_2", 1]]}}}
        )
        refs = parse_palette_list(["p1"])

        first = ParameterResolver(palettes, random.Random(7)).compute(parameters, refs)
        second = ParameterResolver(palettes, random.Random(7)).compute(parameters, refs)
        assert first == second

    def test_palette_tree(self):
        """Test every referenced palette gets its own node in declared order."""
        palettes = make_palettes(
            {"id": "p1", "parameters": {"x": {"type": "string", "default": "one"}}},
            {"id": "p2", "parameters": {"x": {"type": "string", "default": "two"}}},
        )
        computed = ParameterResolver(palettes, random.Random(0)).compute({}, parse_palette_list(["p2", "p1"]))
        assert list(computed.palettes) == ["p2", "p1"]
        assert computed.get_value("x") == "two"

    def test_param_palette_reference(self):
        """Test a palette chosen through a parameter of the referencing map."""
        palettes = make_palettes({"id": "brick"}, {"id": "wood"})
        parameters = parse_parameters({"style": {"type": "palette_id", "default": "wood"}})
        computed = ParameterResolver(palettes, random.Random(0)).compute(
            parameters, parse_palette_list([{"param": "style", "fallback": "brick"}])
        )
        assert list(computed.palettes) == ["wood"]

    def test_param_palette_fallback(self):
        palettes = make_palettes({"id": "brick"})
        computed = ParameterResolver(palettes, random.Random(0)).compute(
            {}, parse_palette_list([{"param": "style", "fallback": "brick"}])
        )
        assert list(computed.palettes) == ["brick"]

    def test_switch_palette_reference(self):
        palettes = make_palettes({"id": "p_wood"}, {"id": "p_brick"})
        parameters = parse_parameters({"style": {"type": "string", "default": "brick"}})
        refs = parse_palette_list([{"switch": {"param": "style"}, "cases": {"wood": "p_wood", "brick": "p_brick"}}])
        computed = ParameterResolver(palettes, random.Random(0)).compute(parameters, refs)
        assert list(computed.palettes) == ["p_brick"]

    def test_switch_without_case(self):
        """Test a switch whose value has no case fails the palette reference."""
        palettes = make_palettes({"id": "p_wood"})
        parameters = parse_parameters({"style": {"type": "string", "default": "stone"}})
        refs = parse_palette_list([{"switch": {"param": "style"}, "cases": {"wood": "p_wood"}}])
        with pytest.raises(UnresolvedPaletteError):
            ParameterResolver(palettes, random.Random(0)).compute(parameters, refs)

    def test_grouped_palette_reference(self):
        """Test a weighted palette group is sampled once and stored."""
        palettes = make_palettes({"id": "a"}, {"id": "b"})
        refs = parse_palette_list([[["a", 1], ["b", 0]]])
        computed = ParameterResolver(palettes, random.Random(0)).compute({}, refs)
        assert list(computed.palettes) == ["a"]

    def test_nested_palette_reference(self):
        refs = parse_palette_list([[["a", "b"], ["c"]]])
        with pytest.raises(UnsupportedMapObjectError):
            ParameterResolver({}, random.Random(0)).compute({}, refs)

    def test_missing_palette(self):
        with pytest.raises(UnresolvedPaletteError):
            ParameterResolver({}, random.Random(0)).compute({}, parse_palette_list(["nope"]))

    def test_cycle_terminates(self, palettes):
        """Test palettes that include each other are visited once."""
        computed = ParameterResolver(palettes, random.Random(0)).compute({}, parse_palette_list(["cycle_a"]))
        assert list(computed.palettes) == ["cycle_a"]
        assert list(computed.palettes["cycle_a"].palettes) == ["cycle_b"]
        assert computed.palettes["cycle_a"].palettes["cycle_b"].palettes == {}

    def test_param_default_reads_enclosing_scope(self):
        """Test a palette parameter can default to the including map's value."""
        palettes = make_palettes(
            {"id": "p1", "parameters": {"inner": {"type": "string", "default": {"param": "outer"}}}}
        )
        parameters = parse_parameters({"outer": {"type": "string", "default": "from_map"}})
        computed = ParameterResolver(palettes, random.Random(0)).compute(parameters, parse_palette_list(["p1"]))
        assert computed.palettes["p1"].this["inner"] == "from_map"

    def test_unresolved_param_default(self):
        parameters = parse_parameters({"inner": {"type": "string", "default": {"param": "missing"}}})
        with pytest.raises(UnresolvedParameterError):
            ParameterResolver({}, random.Random(0)).compute(parameters, [])

    def test_switch_default(self):
        parameters = parse_parameters(
            {
                "style": {"type": "string", "default": "wood"},
                "floor": {
                    "type": "ter_str_id",
                    "default": {"switch": {"param": "style"}, "cases": {"wood": "t_floor_wood"}},
                },
            }
        )
        computed = ParameterResolver({}, random.Random(0)).compute(parameters, [])
        assert computed.this["floor"] == "t_floor_wood"
