"""
Palette data model and loading.

The mapgen format is loose about value shapes: the same field can hold a
plain id, a weighted list, a parameter reference or a switch. Everything is
parsed into one of a handful of small dataclasses here so the resolvers can
dispatch on type instead of re-inspecting raw json.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .common import (
    Weighted,
    dump_maybe_weighted,
    is_weighted_pair,
    parse_maybe_weighted,
)
from .data.loader import DataLoader, recurse_files
from .errors import ParseError

logger = logging.getLogger(__name__)

PaletteId = str
ParameterId = str


@dataclass(frozen=True)
class ParameterRef:
    """{"param": name, "fallback": id} used in place of an id."""

    param: ParameterId
    fallback: Optional[str] = None

    def to_json(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"param": self.param}
        if self.fallback is not None:
            data["fallback"] = self.fallback
        return data


# A plain id or a parameter reference
Identifier = Union[str, ParameterRef]


@dataclass(frozen=True)
class SwitchRef:
    param: ParameterId
    fallback: Optional[str] = None

    def to_json(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"param": self.param}
        if self.fallback is not None:
            data["fallback"] = self.fallback
        return data


def parse_identifier(raw: Any) -> Identifier:
    if isinstance(raw, str):
        return raw
    if isinstance(raw, dict) and "param" in raw:
        return ParameterRef(str(raw["param"]), raw.get("fallback"))
    raise ValueError(f"not an identifier: {raw!r}")


def dump_identifier(identifier: Identifier) -> Any:
    if isinstance(identifier, ParameterRef):
        return identifier.to_json()
    return identifier


def _parse_switch(raw: Dict[str, Any]) -> SwitchRef:
    switch = raw["switch"]
    if not isinstance(switch, dict) or "param" not in switch:
        raise ValueError(f"switch without param: {raw!r}")
    return SwitchRef(str(switch["param"]), switch.get("fallback"))


# MapObjectId variants


@dataclass
class SingleId:
    value: Weighted

    def to_json(self) -> Any:
        return dump_maybe_weighted(self.value, dump_identifier)


@dataclass
class GroupedId:
    values: List[Weighted]

    def to_json(self) -> Any:
        return [dump_maybe_weighted(v, dump_identifier) for v in self.values]


@dataclass
class NestedId:
    rows: List[List[Weighted]]

    def to_json(self) -> Any:
        return [[dump_maybe_weighted(v, dump_identifier) for v in row] for row in self.rows]


@dataclass
class ParamId:
    param: ParameterId
    fallback: Optional[str] = None

    def to_json(self) -> Any:
        return ParameterRef(self.param, self.fallback).to_json()


@dataclass
class SwitchId:
    switch: SwitchRef
    cases: Dict[str, str] = field(default_factory=dict)

    def to_json(self) -> Any:
        return {"switch": self.switch.to_json(), "cases": dict(self.cases)}


MapObjectId = Union[SingleId, GroupedId, NestedId, ParamId, SwitchId]


def parse_map_object_id(raw: Any) -> MapObjectId:
    """Parse one terrain/furniture/palette entry. Raises ValueError on junk."""
    if isinstance(raw, dict):
        if "switch" in raw:
            return SwitchId(_parse_switch(raw), {str(k): str(v) for k, v in raw.get("cases", {}).items()})
        if "param" in raw:
            return ParamId(str(raw["param"]), raw.get("fallback"))
        return SingleId(parse_maybe_weighted(raw, parse_identifier))

    if isinstance(raw, list):
        if is_weighted_pair(raw):
            return SingleId(parse_maybe_weighted(raw, parse_identifier))
        if raw and all(isinstance(e, list) and not is_weighted_pair(e) for e in raw):
            return NestedId(
                [[parse_maybe_weighted(e, parse_identifier) for e in row] for row in raw]
            )
        return GroupedId([parse_maybe_weighted(e, parse_identifier) for e in raw])

    if isinstance(raw, str):
        return SingleId(Weighted(raw, 1, explicit=False))

    raise ValueError(f"unsupported map object id: {raw!r}")


# MapGenValue variants (parameter defaults)


@dataclass
class SimpleValue:
    value: str

    def to_json(self) -> Any:
        return self.value


@dataclass
class DistributionValue:
    values: List[Weighted]

    def to_json(self) -> Any:
        return {"distribution": [dump_maybe_weighted(v) for v in self.values]}


@dataclass
class ParamValue:
    param: ParameterId
    fallback: Optional[str] = None

    def to_json(self) -> Any:
        return ParameterRef(self.param, self.fallback).to_json()


@dataclass
class SwitchValue:
    switch: SwitchRef
    cases: Dict[str, str] = field(default_factory=dict)

    def to_json(self) -> Any:
        return {"switch": self.switch.to_json(), "cases": dict(self.cases)}


MapGenValue = Union[SimpleValue, DistributionValue, ParamValue, SwitchValue]


def parse_mapgen_value(raw: Any) -> MapGenValue:
    if isinstance(raw, str):
        return SimpleValue(raw)
    if isinstance(raw, list):
        return DistributionValue([parse_maybe_weighted(e) for e in raw])
    if isinstance(raw, dict):
        if "distribution" in raw:
            return DistributionValue([parse_maybe_weighted(e) for e in raw["distribution"]])
        if "switch" in raw:
            return SwitchValue(_parse_switch(raw), {str(k): str(v) for k, v in raw.get("cases", {}).items()})
        if "param" in raw:
            return ParamValue(str(raw["param"]), raw.get("fallback"))
    raise ValueError(f"unsupported parameter default: {raw!r}")


class ParameterType(Enum):
    TER_STR_ID = "ter_str_id"
    FURN_STR_ID = "furn_str_id"
    NESTED_MAPGEN_ID = "nested_mapgen_id"
    PALETTE_ID = "palette_id"
    STRING = "string"

    @classmethod
    def parse(cls, raw: Any) -> "ParameterType":
        try:
            return cls(raw)
        except ValueError:
            logger.debug("Unknown parameter type %r, treating it as string", raw)
            return cls.STRING


@dataclass
class Parameter:
    parameter_type: ParameterType
    default: MapGenValue

    @classmethod
    def from_json(cls, raw: Dict[str, Any]) -> "Parameter":
        if "default" not in raw:
            raise ValueError(f"parameter without default: {raw!r}")
        return cls(ParameterType.parse(raw.get("type", "string")), parse_mapgen_value(raw["default"]))

    def to_json(self) -> Dict[str, Any]:
        return {"type": self.parameter_type.value, "default": self.default.to_json()}


@dataclass
class ItemPlacement:
    """One entry of an items mapping: an item group placed with some chance."""

    item: Any
    chance: int = 100
    repeat: Any = None

    @property
    def item_id(self) -> Optional[str]:
        return self.item if isinstance(self.item, str) else None

    @classmethod
    def from_json(cls, raw: Dict[str, Any]) -> "ItemPlacement":
        return cls(raw.get("item"), int(raw.get("chance", 100)), raw.get("repeat"))

    def to_json(self) -> Dict[str, Any]:
        data = {"item": self.item, "chance": self.chance}
        if self.repeat is not None:
            data["repeat"] = self.repeat
        return data


def parse_parameters(raw: Optional[Dict[str, Any]]) -> Dict[ParameterId, Parameter]:
    return {name: Parameter.from_json(value) for name, value in (raw or {}).items()}


def parse_character_mapping(raw: Optional[Dict[str, Any]]) -> Dict[str, MapObjectId]:
    return {str(char): parse_map_object_id(value) for char, value in (raw or {}).items()}


def parse_items(raw: Optional[Dict[str, Any]]) -> Dict[str, List[ItemPlacement]]:
    items = {}
    for char, value in (raw or {}).items():
        entries = value if isinstance(value, list) else [value]
        items[str(char)] = [ItemPlacement.from_json(e) for e in entries if isinstance(e, dict)]
    return items


def parse_palette_list(raw: Optional[List[Any]]) -> List[MapObjectId]:
    return [parse_map_object_id(value) for value in (raw or [])]


def dump_mapping(mapping: Dict[str, MapObjectId]) -> Dict[str, Any]:
    return {char: value.to_json() for char, value in mapping.items()}


@dataclass
class Palette:
    id: PaletteId
    parameters: Dict[ParameterId, Parameter] = field(default_factory=dict)
    terrain: Dict[str, MapObjectId] = field(default_factory=dict)
    furniture: Dict[str, MapObjectId] = field(default_factory=dict)
    items: Dict[str, List[ItemPlacement]] = field(default_factory=dict)
    toilets: Dict[str, Any] = field(default_factory=dict)
    palettes: List[MapObjectId] = field(default_factory=list)

    @classmethod
    def from_json(cls, raw: Dict[str, Any]) -> "Palette":
        if "id" not in raw:
            raise ValueError("palette without id")
        return cls(
            id=str(raw["id"]),
            parameters=parse_parameters(raw.get("parameters")),
            terrain=parse_character_mapping(raw.get("terrain")),
            furniture=parse_character_mapping(raw.get("furniture")),
            items=parse_items(raw.get("items")),
            toilets=dict(raw.get("toilets", {})),
            palettes=parse_palette_list(raw.get("palettes")),
        )


class PalettesLoader:
    """Builds the global palette id -> Palette map from a directory tree."""

    def __init__(self, parent_dir: Union[str, Path], data_loader: Optional[DataLoader] = None):
        self.parent_dir = Path(parent_dir)
        self.data_loader = data_loader or DataLoader(self.parent_dir)

    def load(self) -> Dict[PaletteId, Palette]:
        palettes: Dict[PaletteId, Palette] = {}

        for path in recurse_files(self.parent_dir):
            documents = self.data_loader.load_json(path)
            if not isinstance(documents, list):
                raise ParseError(str(path), "expected a list of palette documents")

            for document in documents:
                if not isinstance(document, dict):
                    logger.warning("Skipping non-object entry in %s", path)
                    continue
                if document.get("type", "palette") != "palette":
                    continue
                try:
                    palette = Palette.from_json(document)
                except (ValueError, KeyError, TypeError) as e:
                    logger.warning("Failed to read object in %s as palette: %s", path, e)
                    continue
                logger.info("Loaded palette %s from %s", palette.id, path)
                palettes[palette.id] = palette

        return palettes
