from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, replace
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple

from .environment import MoonPhase, Season, WeatherEventType

logger = logging.getLogger(__name__)

MIN_STAT = 0.0
MAX_STAT = 100.0

# Lower bounds of each stage on the growth_progress axis.
SEEDLING_AT = 5.0
GROWING_AT = 30.0
FLOWERING_AT = 60.0
MATURE_AT = 95.0


def clamp(value: float, low: float, high: float) -> float:
    """Bound ``value`` to ``[low, high]``; NaN maps to ``low``."""
    if math.isnan(value):
        return low
    return max(low, min(high, value))


def clamp_stat(value: float) -> float:
    return clamp(float(value), MIN_STAT, MAX_STAT)


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (``round`` would bank to even)."""
    return int(math.floor(value + 0.5))


class Quality(IntEnum):
    """Ordinal quality of plants and harvested goods."""

    POOR = 1
    COMMON = 2
    UNCOMMON = 3
    RARE = 4
    EXCEPTIONAL = 5

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def from_score(cls, score: float) -> "Quality":
        """Map a continuous 1..5 quality score to the nearest tier."""
        return cls(int(clamp(round_half_up(clamp(score, 1.0, 5.0)), 1, 5)))


class PlantStage(Enum):
    SEED = "seed"
    SEEDLING = "seedling"
    GROWING = "growing"
    FLOWERING = "flowering"
    MATURE = "mature"


def stage_for_progress(progress: float) -> PlantStage:
    """The lifecycle stage is a pure function of growth progress."""
    if progress >= MATURE_AT:
        return PlantStage.MATURE
    if progress >= FLOWERING_AT:
        return PlantStage.FLOWERING
    if progress >= GROWING_AT:
        return PlantStage.GROWING
    if progress >= SEEDLING_AT:
        return PlantStage.SEEDLING
    return PlantStage.SEED


class CareActionKind(Enum):
    PLANT = "plant"
    WATER = "water"
    FERTILIZE = "fertilize"
    PRUNE = "prune"
    HARVEST = "harvest"
    PROTECT = "protect"
    ATTUNE = "attune"


@dataclass(frozen=True)
class GeneticTrait:
    id: str
    name: str
    quality_modifier: float = 0.0
    yield_modifier: float = 0.0
    growth_time_modifier: float = 0.0
    rarity_tier: int = 0
    dominant: bool = False
    description: str = ""
    effect: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class GrowthModifier:
    """A transient (or permanent, when ``expires_at`` is None) growth effect.

    ``growth_rate_modifier`` is a multiplicative factor on the hourly growth
    rate; quality and yield modifiers are additive nudges.
    """

    source: str
    quality_modifier: float = 0.0
    yield_modifier: float = 0.0
    growth_rate_modifier: float = 1.0
    expires_at: Optional[datetime] = None
    description: str = ""

    def is_active(self, now: datetime) -> bool:
        return self.expires_at is None or self.expires_at > now

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["expires_at"] = self.expires_at.isoformat() if self.expires_at else None
        return data


@dataclass(frozen=True)
class CareAction:
    timestamp: datetime
    action: CareActionKind
    success: bool
    score: float
    notes: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "action": self.action.value,
            "success": self.success,
            "score": self.score,
            "notes": self.notes,
        }


@dataclass(frozen=True)
class PlantVariety:
    """Immutable template a plant is grown from.

    Optional fields left as None fall back to the documented defaults:
    base_quality 2, base_yield 1, growth_time_days 3, no preferred season.
    """

    id: str
    name: str = ""
    category: str = "herb"
    base_quality: Optional[int] = 2
    base_yield: Optional[int] = 1
    growth_time_days: Optional[float] = 3.0
    preferred_season: Optional[Season] = None
    base_traits: Tuple[GeneticTrait, ...] = ()
    description: str = ""

    def __post_init__(self) -> None:
        if self.base_quality is None:
            object.__setattr__(self, "base_quality", 2)
        if self.base_yield is None:
            object.__setattr__(self, "base_yield", 1)
        if self.growth_time_days is None:
            object.__setattr__(self, "growth_time_days", 3.0)
        if self.preferred_season is not None and not isinstance(self.preferred_season, Season):
            object.__setattr__(self, "preferred_season", Season.try_parse(self.preferred_season))
        if not self.name:
            object.__setattr__(self, "name", self.id)
        object.__setattr__(self, "base_traits", tuple(self.base_traits or ()))


@dataclass(frozen=True)
class Plant:
    """Snapshot of one cultivated plant.

    Instances are never mutated; every engine operation returns a new
    snapshot built with :func:`dataclasses.replace`.
    """

    id: str
    variety_id: str
    plot_id: int
    created_at: datetime
    last_interaction: datetime
    stage: PlantStage = PlantStage.SEED
    health: float = 100.0
    water_level: float = 50.0
    growth_progress: float = 0.0
    predicted_quality: Quality = Quality.COMMON
    predicted_yield: int = 1
    traits: Tuple[GeneticTrait, ...] = ()
    modifiers: Tuple[GrowthModifier, ...] = ()
    care_history: Tuple[CareAction, ...] = ()
    preferred_season: Optional[Season] = None
    next_action_at: Optional[datetime] = None
    age_days: int = 0

    def __post_init__(self) -> None:
        # Stats are clamped and the stage is always derived from progress,
        # whatever the caller passed in.
        progress = clamp_stat(self.growth_progress)
        object.__setattr__(self, "health", clamp_stat(self.health))
        object.__setattr__(self, "water_level", clamp_stat(self.water_level))
        object.__setattr__(self, "growth_progress", progress)
        object.__setattr__(self, "stage", stage_for_progress(progress))
        object.__setattr__(self, "predicted_yield", max(1, int(self.predicted_yield)))
        object.__setattr__(self, "traits", tuple(self.traits))
        object.__setattr__(self, "modifiers", tuple(self.modifiers))
        object.__setattr__(self, "care_history", tuple(self.care_history))

    def evolve(self, **changes: Any) -> "Plant":
        """Copy with changes applied (``stage`` is recomputed, never taken from ``changes``)."""
        return replace(self, **changes)

    def with_care(self, action: CareAction, **changes: Any) -> "Plant":
        return self.evolve(care_history=self.care_history + (action,), **changes)

    def with_modifier(self, modifier: GrowthModifier) -> "Plant":
        return self.evolve(modifiers=self.modifiers + (modifier,))

    def active_modifiers(self, now: datetime) -> Tuple[GrowthModifier, ...]:
        return tuple(m for m in self.modifiers if m.is_active(now))

    def is_harvest_ready(self, ready_progress: float = MATURE_AT) -> bool:
        return self.stage is PlantStage.MATURE and self.growth_progress >= ready_progress

    @property
    def alive(self) -> bool:
        return self.health > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "variety_id": self.variety_id,
            "plot_id": self.plot_id,
            "created_at": self.created_at.isoformat(),
            "last_interaction": self.last_interaction.isoformat(),
            "stage": self.stage.value,
            "health": self.health,
            "water_level": self.water_level,
            "growth_progress": self.growth_progress,
            "predicted_quality": self.predicted_quality.label,
            "predicted_yield": self.predicted_yield,
            "traits": [t.to_dict() for t in self.traits],
            "modifiers": [m.to_dict() for m in self.modifiers],
            "care_history": [c.to_dict() for c in self.care_history],
            "preferred_season": self.preferred_season.value if self.preferred_season else None,
            "next_action_at": self.next_action_at.isoformat() if self.next_action_at else None,
            "age_days": self.age_days,
        }


@dataclass(frozen=True)
class GardenPlot:
    id: int
    fertility: float = 50.0
    moisture: float = 50.0
    is_unlocked: bool = True
    plant: Optional[Plant] = None
    upgrades: Tuple[str, ...] = ()
    specialization: Optional[str] = None
    position: Optional[Tuple[int, int]] = None

    @property
    def occupied(self) -> bool:
        return self.plant is not None

    @property
    def soil_quality(self) -> float:
        """Fertility on a 0..1 scale, as used by the planting mini-game."""
        return clamp(self.fertility, 0.0, 100.0) / 100.0

    def grid_position(self, columns: int) -> Tuple[int, int]:
        if self.position is not None:
            return self.position
        columns = max(1, columns)
        return (self.id % columns, self.id // columns)

    def with_plant(self, plant: Optional[Plant]) -> "GardenPlot":
        return replace(self, plant=plant)


@dataclass(frozen=True)
class ProtectiveStructure:
    """A greenhouse, cloche, windbreak... covering a rectangle of plots."""

    id: str
    kind: str
    x: int
    y: int
    width: int = 1
    height: int = 1
    resistance: float = 0.5
    protects: FrozenSet[WeatherEventType] = frozenset()

    def covers(self, position: Tuple[int, int]) -> bool:
        px, py = position
        return self.x <= px < self.x + self.width and self.y <= py < self.y + self.height

    def guards_against(self, event: WeatherEventType) -> bool:
        return not self.protects or event in self.protects


@dataclass(frozen=True)
class FertilizerItem:
    id: str
    name: str = ""
    potency: Optional[float] = None
    preferred_season: Optional[Season] = None
    duration_hours: Optional[float] = None

    def __post_init__(self) -> None:
        if self.preferred_season is not None and not isinstance(self.preferred_season, Season):
            object.__setattr__(self, "preferred_season", Season.try_parse(self.preferred_season))

    @property
    def effective_potency(self) -> float:
        return 1.0 if self.potency is None else max(0.0, float(self.potency))

    @property
    def effective_duration_hours(self) -> float:
        return 48.0 if self.duration_hours is None else max(0.0, float(self.duration_hours))


@dataclass(frozen=True)
class Ingredient:
    id: str
    name: str
    quality: Quality
    harvested_at: datetime
    source_id: str
    traits: Tuple[str, ...] = ()
    source_type: str = "garden"
    harvested_season: Optional[Season] = None
    harvested_moon_phase: Optional[MoonPhase] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "quality": self.quality.label,
            "harvested_at": self.harvested_at.isoformat(),
            "source_type": self.source_type,
            "source_id": self.source_id,
            "traits": list(self.traits),
            "harvested_season": self.harvested_season.value if self.harvested_season else None,
            "harvested_moon_phase": self.harvested_moon_phase.value if self.harvested_moon_phase else None,
        }


@dataclass(frozen=True)
class Gardener:
    id: str
    name: str = ""
    gardening_skill: float = 0.0


@dataclass(frozen=True)
class CrossBreedingResult:
    success: bool
    rarity_tier: int = 0
    from_parent1: Tuple[GeneticTrait, ...] = ()
    from_parent2: Tuple[GeneticTrait, ...] = ()
    new_mutations: Tuple[GeneticTrait, ...] = ()
    new_variety_id: Optional[str] = None
    new_variety_name: Optional[str] = None

    @classmethod
    def failed(cls) -> "CrossBreedingResult":
        return cls(success=False)

    @property
    def inherited_traits(self) -> Tuple[GeneticTrait, ...]:
        return self.from_parent1 + self.from_parent2 + self.new_mutations

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "rarity_tier": self.rarity_tier,
            "new_variety_id": self.new_variety_id,
            "new_variety_name": self.new_variety_name,
            "trait_inheritance": {
                "from_parent1": [t.to_dict() for t in self.from_parent1],
                "from_parent2": [t.to_dict() for t in self.from_parent2],
                "new_mutations": [t.to_dict() for t in self.new_mutations],
            },
        }


def sum_trait(traits: Iterable[GeneticTrait], attr: str) -> float:
    return sum(float(getattr(t, attr)) for t in traits)


def highest_rarity(traits: Iterable[GeneticTrait]) -> int:
    tiers: List[int] = [t.rarity_tier for t in traits]
    return max(tiers, default=0)


__all__ = [
    "Quality",
    "PlantStage",
    "CareActionKind",
    "GeneticTrait",
    "GrowthModifier",
    "CareAction",
    "PlantVariety",
    "Plant",
    "GardenPlot",
    "ProtectiveStructure",
    "FertilizerItem",
    "Ingredient",
    "Gardener",
    "CrossBreedingResult",
    "stage_for_progress",
    "clamp",
    "clamp_stat",
    "round_half_up",
    "sum_trait",
    "highest_rarity",
]
