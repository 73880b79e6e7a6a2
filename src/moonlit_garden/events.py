from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EventBus:
    """Thread-safe in-process event bus for garden events.

    Subscribers are keyed by event class; events are emitted by instance and
    delivered synchronously, so handlers run inside the emitting call.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._subscribers: Dict[Type[Any], List[Callable[[Any], None]]] = {}

    def subscribe(self, event_type: Type[T], handler: Callable[[T], None]) -> None:
        with self._lock:
            self._subscribers.setdefault(event_type, []).append(handler)  # type: ignore[arg-type]

    def unsubscribe(self, event_type: Type[T], handler: Callable[[T], None]) -> None:
        with self._lock:
            handlers = self._subscribers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)
                if not handlers:
                    self._subscribers.pop(event_type, None)

    def emit(self, event: Any) -> None:
        with self._lock:
            targets = [
                h
                for event_type, handlers in self._subscribers.items()
                if isinstance(event, event_type)
                for h in handlers
            ]
        logger.debug("Emitting %s to %d handler(s)", type(event).__name__, len(targets))
        for h in targets:
            h(event)


@dataclass(frozen=True)
class PlantPlanted:
    plot_id: int
    plant_id: str
    variety_id: str
    success: bool


@dataclass(frozen=True)
class PlantHarvested:
    plot_id: int
    plant_id: str
    units: int
    seeds: int
    experience: int


@dataclass(frozen=True)
class PlantLost:
    plot_id: int
    plant_id: str
    cause: str


@dataclass(frozen=True)
class HybridCreated:
    variety_id: str
    name: str
    rarity_tier: int
    parent_variety_ids: Tuple[str, str]


__all__ = ["EventBus", "PlantPlanted", "PlantHarvested", "PlantLost", "HybridCreated"]
