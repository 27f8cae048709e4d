"""
Editor events and the event bus.

Events sent while a stage runs only become readable after the next flush, so
a stage never sees what it produced itself. Subscribers are notified on send
and are how a renderer observes the stream.
"""

from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, Dict, Iterator, List, Optional, Type, TypeVar

from .common import Coordinates
from .models import Cell, Layer

E = TypeVar("E")


@dataclass
class TilePlaced:
    coordinates: Coordinates
    cell: Cell
    should_update_sprites: bool = True


@dataclass
class TileDeleted:
    coordinates: Coordinates
    cell: Cell


@dataclass
class UpdateSprite:
    coordinates: Coordinates
    cell: Cell


@dataclass
class SpawnSprite:
    coordinates: Coordinates
    cell: Cell
    layer: Layer
    variant: str
    sprite: Any
    z: int = 1
    offset_x: int = 0
    offset_y: int = 0


@dataclass
class ClearTiles:
    pass


@dataclass
class SpawnMapEntity:
    """Carries a shared reference to the map, not a copy."""

    map_entity: Any


class EventBus:
    def __init__(self):
        self._incoming: Dict[type, Deque[Any]] = defaultdict(deque)
        self._ready: Dict[type, Deque[Any]] = defaultdict(deque)
        self._subscribers: Dict[type, List[Callable[[Any], None]]] = defaultdict(list)

    def send(self, event: Any):
        self._incoming[type(event)].append(event)
        for callback in self._subscribers[type(event)]:
            callback(event)

    def subscribe(self, event_type: Type[E], callback: Callable[[E], None]):
        self._subscribers[event_type].append(callback)

    def unsubscribe(self, event_type: Type[E], callback: Callable[[E], None]):
        if callback in self._subscribers[event_type]:
            self._subscribers[event_type].remove(callback)

    def flush(self):
        """Make everything sent so far readable, preserving send order."""
        for event_type, queue in self._incoming.items():
            self._ready[event_type].extend(queue)
            queue.clear()

    def read(self, event_type: Type[E]) -> Iterator[E]:
        queue = self._ready[event_type]
        while queue:
            yield queue.popleft()

    def pending(self, event_type: Optional[type] = None) -> int:
        """Unread events, flushed or not."""
        types = [event_type] if event_type else set(self._incoming) | set(self._ready)
        return sum(len(self._incoming[t]) + len(self._ready[t]) for t in types)

    def clear(self):
        self._incoming.clear()
        self._ready.clear()
