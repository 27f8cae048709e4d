"""
Parameter resolution.

Parameters are drawn once per project load from their declared defaults. The
result is a tree mirroring the palette stack: every palette a map (or palette)
includes gets its own node, keyed by the palette id the reference resolved to.
The insertion order of that tree is the declared palette order, which the
character resolver relies on for shadowing.
"""

import logging
import random
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, List, Optional

from .common import get_random_weighted
from .errors import (
    UnresolvedPaletteError,
    UnresolvedParameterError,
    UnsupportedMapObjectError,
)
from .palettes import (
    DistributionValue,
    GroupedId,
    Identifier,
    MapGenValue,
    MapObjectId,
    NestedId,
    Palette,
    PaletteId,
    Parameter,
    ParameterId,
    ParameterRef,
    ParamId,
    ParamValue,
    SimpleValue,
    SingleId,
    SwitchId,
    SwitchRef,
    SwitchValue,
)

logger = logging.getLogger(__name__)

Lookup = Callable[[ParameterId], Optional[str]]


@dataclass
class ComputedParameters:
    this: Dict[ParameterId, str] = field(default_factory=dict)
    palettes: Dict[PaletteId, "ComputedParameters"] = field(default_factory=dict)

    def get_value(self, name: ParameterId) -> Optional[str]:
        """Local values first, then palette children in declared order."""
        if name in self.this:
            return self.this[name]
        for child in self.palettes.values():
            value = child.get_value(name)
            if value is not None:
                return value
        return None

    def to_json(self) -> Dict[str, Any]:
        return {
            "this": dict(self.this),
            "palettes": {pid: child.to_json() for pid, child in self.palettes.items()},
        }

    @classmethod
    def from_json(cls, raw: Dict[str, Any]) -> "ComputedParameters":
        return cls(
            this={str(k): str(v) for k, v in raw.get("this", {}).items()},
            palettes={pid: cls.from_json(child) for pid, child in raw.get("palettes", {}).items()},
        )


def chain_lookup(node: ComputedParameters, parent: Optional[Lookup] = None) -> Lookup:
    """Look in node (and its palettes) first, then in the enclosing scope."""

    def lookup(name: ParameterId) -> Optional[str]:
        value = node.get_value(name)
        if value is None and parent is not None:
            return parent(name)
        return value

    return lookup


def resolve_identifier(identifier: Identifier, lookup: Lookup) -> str:
    if isinstance(identifier, ParameterRef):
        value = lookup(identifier.param)
        if value is not None:
            return value
        if identifier.fallback is not None:
            return identifier.fallback
        raise UnresolvedParameterError(identifier.param)
    return identifier


def resolve_switch(switch: SwitchRef, cases: Dict[str, str], lookup: Lookup) -> Optional[str]:
    """The case selected by the switch parameter, None when no case matches."""
    key = lookup(switch.param)
    if key is None:
        key = switch.fallback
    if key is None:
        raise UnresolvedParameterError(switch.param)
    return cases.get(key)


class ParameterResolver:
    """Computes ComputedParameters trees. Deterministic for a seeded rng."""

    def __init__(self, palettes: Dict[PaletteId, Palette], rng: random.Random):
        self.palettes = palettes
        self.rng = rng

    def compute(
        self,
        parameters: Dict[ParameterId, Parameter],
        palette_refs: List[MapObjectId],
        parent: Optional[Lookup] = None,
        visited: FrozenSet[PaletteId] = frozenset(),
    ) -> ComputedParameters:
        node = ComputedParameters()
        lookup = chain_lookup(node, parent)

        for name, parameter in parameters.items():
            node.this[name] = self.evaluate(name, parameter.default, lookup)

        for ref in palette_refs:
            palette_id = self.resolve_palette_ref(ref, lookup)
            if palette_id in visited or palette_id in node.palettes:
                logger.debug("Skipping already visited palette %s", palette_id)
                continue

            palette = self.palettes.get(palette_id)
            if palette is None:
                raise UnresolvedPaletteError(palette_id)

            node.palettes[palette_id] = self.compute(
                palette.parameters,
                palette.palettes,
                parent=lookup,
                visited=visited | {palette_id},
            )

        logger.debug("Computed parameters %s", node.this)
        return node

    def evaluate(self, name: ParameterId, value: MapGenValue, lookup: Lookup) -> str:
        if isinstance(value, SimpleValue):
            return value.value

        if isinstance(value, DistributionValue):
            picked = get_random_weighted(value.values, self.rng)
            if picked is None:
                raise UnresolvedParameterError(name)
            return picked

        if isinstance(value, ParamValue):
            resolved = lookup(value.param)
            if resolved is None:
                resolved = value.fallback
            if resolved is None:
                raise UnresolvedParameterError(value.param)
            return resolved

        if isinstance(value, SwitchValue):
            resolved = resolve_switch(value.switch, value.cases, lookup)
            if resolved is None:
                raise UnresolvedParameterError(name)
            return resolved

        raise TypeError(f"unknown parameter value {value!r}")

    def resolve_palette_ref(self, ref: MapObjectId, lookup: Lookup) -> PaletteId:
        """Turn one entry of a palettes list into a concrete palette id."""
        if isinstance(ref, SingleId):
            return resolve_identifier(ref.value.value, lookup)

        if isinstance(ref, ParamId):
            value = lookup(ref.param)
            if value is None:
                value = ref.fallback
            if value is None:
                raise UnresolvedParameterError(ref.param)
            return value

        if isinstance(ref, GroupedId):
            picked = get_random_weighted(ref.values, self.rng)
            if picked is None:
                raise UnresolvedPaletteError("<empty palette group>")
            return resolve_identifier(picked, lookup)

        if isinstance(ref, SwitchId):
            value = resolve_switch(ref.switch, ref.cases, lookup)
            if value is None:
                raise UnresolvedPaletteError(f"<no case of {ref.switch.param} = {lookup(ref.switch.param)}>")
            return value

        if isinstance(ref, NestedId):
            raise UnsupportedMapObjectError("Nested", "palette references")

        raise TypeError(f"unknown palette reference {ref!r}")
