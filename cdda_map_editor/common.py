"""
Shared value types for the mapgen editor.

Coordinates, weighted values as they appear in the CDDA json corpus,
and the weighted random pick every resolver goes through.
"""

import random
from dataclasses import dataclass
from typing import Any, Generic, Iterable, List, Optional, Tuple, TypeVar

T = TypeVar("T")

# Namespaced identifier, e.g. "t_grass" or "f_chair"
TileId = str

# Side length of one overmap terrain tile
OMT_SIZE = 24


@dataclass(frozen=True, order=True)
class Coordinates:
    """A cell position. x grows east, y grows south (rows are top-to-bottom)."""

    x: int
    y: int

    def neighbors(self) -> List["Coordinates"]:
        """The 4-neighbourhood in N, E, S, W order."""
        return [
            Coordinates(self.x, self.y - 1),
            Coordinates(self.x + 1, self.y),
            Coordinates(self.x, self.y + 1),
            Coordinates(self.x - 1, self.y),
        ]

    def to_key(self) -> str:
        return f"{self.x};{self.y}"

    @classmethod
    def from_key(cls, key: str) -> "Coordinates":
        x, _, y = key.partition(";")
        if not y:
            raise ValueError(
                f"expected two numbers separated by a semicolon (example: 10;10), got {key!r}"
            )
        return cls(int(x), int(y))


@dataclass(frozen=True)
class Weighted(Generic[T]):
    value: T
    weight: int = 1
    # False for plain entries, which weigh 1 implicitly
    explicit: bool = True


# Keys the corpus uses for the value half of a weighted object
_VALUE_KEYS = ("value", "sprite", "id")


def is_weighted_pair(raw: Any) -> bool:
    """["t_grass", 10] style entries."""
    return (
        isinstance(raw, list)
        and len(raw) == 2
        and not isinstance(raw[0], list)
        and isinstance(raw[1], (int, float))
        and not isinstance(raw[1], bool)
    )


def is_weighted_object(raw: Any) -> bool:
    if not isinstance(raw, dict) or "weight" not in raw:
        return False
    return any(key in raw for key in _VALUE_KEYS)


def is_single_weight_mapping(raw: Any) -> bool:
    """{"t_floor": 3} style entries."""
    if not isinstance(raw, dict) or len(raw) != 1:
        return False
    (key, value), = raw.items()
    return key not in ("param", "switch", "fallback") and isinstance(value, (int, float))


def parse_maybe_weighted(raw: Any, parse_value=lambda v: v) -> Weighted:
    """Parse any weighted-or-plain authoring shape into a Weighted."""
    if is_weighted_pair(raw):
        return Weighted(parse_value(raw[0]), int(raw[1]))
    if is_weighted_object(raw):
        for key in _VALUE_KEYS:
            if key in raw:
                return Weighted(parse_value(raw[key]), int(raw["weight"]))
    if is_single_weight_mapping(raw):
        (key, weight), = raw.items()
        return Weighted(parse_value(key), int(weight))
    return Weighted(parse_value(raw), 1, explicit=False)


def dump_maybe_weighted(weighted: Weighted, dump_value=lambda v: v) -> Any:
    if not weighted.explicit:
        return dump_value(weighted.value)
    return [dump_value(weighted.value), weighted.weight]


def normalized_weights(weights: Iterable[float]) -> List[float]:
    """All-zero weight lists are treated as uniform."""
    weights = [max(0.0, float(w)) for w in weights]
    if not any(weights):
        return [1.0] * len(weights)
    return weights


def get_random_weighted(items: List[Weighted[T]], rng: random.Random) -> Optional[T]:
    """Pick one value by weight. Returns None for an empty list."""
    if not items:
        return None
    weights = normalized_weights(item.weight for item in items)
    return rng.choices([item.value for item in items], weights=weights, k=1)[0]


def pick_weighted_pairs(pairs: List[Tuple[T, float]], rng: random.Random) -> Optional[T]:
    return get_random_weighted([Weighted(value, weight) for value, weight in pairs], rng)


def make_rng(seed: Optional[int] = None) -> random.Random:
    """A seeded generator. Each project load gets its own instance."""
    return random.Random(seed)
