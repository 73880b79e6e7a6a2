from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from .clock import millis
from .config import GardenConfig, default_config
from .environment import MoonLike, MoonPhase, Season, SeasonLike, lunar_modifier, seasonal_modifier
from .minigames import HarvestingResult, harvest_gate_open
from .models import Ingredient, Plant, Quality, clamp, round_half_up

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HarvestOutcome:
    ingredients: Tuple[Ingredient, ...]
    seeds: int
    experience: int
    remaining_plant: Optional[Plant]

    @property
    def harvested(self) -> bool:
        return bool(self.ingredients)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ingredients": [i.to_dict() for i in self.ingredients],
            "seeds": self.seeds,
            "experience": self.experience,
            "remaining_plant": self.remaining_plant.id if self.remaining_plant else None,
        }


def batch_quality_score(
    plant: Plant,
    result: HarvestingResult,
    season: Optional[SeasonLike],
    moon: Optional[MoonLike],
) -> float:
    seasonal = seasonal_modifier(plant.preferred_season, season) * 0.2
    lunar = lunar_modifier(moon) * 0.3
    score = plant.predicted_quality.value * (1 + result.quality_bonus) * (1 + seasonal + lunar)
    return clamp(score, 1.0, 5.0)


def harvest(
    plant: Plant,
    result: HarvestingResult,
    season: Optional[SeasonLike],
    moon: Optional[MoonLike],
    *,
    rng: random.Random,
    now: datetime,
    config: Optional[GardenConfig] = None,
) -> HarvestOutcome:
    """Turn a ripe plant into ingredients.

    An unripe plant yields nothing and is handed back untouched as
    ``remaining_plant``. A successful harvest always consumes the plant.
    """
    cfg = config or default_config()
    if not harvest_gate_open(plant, cfg):
        logger.debug("Plant %s not ready for harvest (%.1f%%)", plant.id, plant.growth_progress)
        return HarvestOutcome(ingredients=(), seeds=0, experience=0, remaining_plant=plant)

    score = batch_quality_score(plant, result, season, moon)
    units = max(1, round_half_up(plant.predicted_yield * (1 + result.yield_bonus)))
    stamp = millis(now)
    current = Season.try_parse(season) if season is not None else None
    phase = MoonPhase.try_parse(moon) if moon is not None else None
    trait_names = tuple(t.name for t in plant.traits)

    ingredients = []
    for i in range(units):
        unit_score = score
        if rng.random() > 1 - cfg.harvest.jitter_chance:
            step = cfg.harvest.jitter_step
            unit_score += step if rng.random() > 0.5 else -step
        ingredients.append(
            Ingredient(
                id=f"ingredient_{plant.id}_{i}_{stamp}",
                name=f"Harvested {plant.variety_id}",
                quality=Quality.from_score(unit_score),
                harvested_at=now,
                source_id=plant.id,
                traits=trait_names,
                harvested_season=current,
                harvested_moon_phase=phase,
            )
        )

    if result.success:
        seeds = round_half_up(1 + rng.random() * 2 + result.carefulness_score)
    else:
        seeds = round_half_up(rng.random())
    experience = 10 + 2 * len(ingredients) + seeds + (5 if result.success else 0)

    logger.debug(
        "Harvested %s: %d units at score %.2f, %d seeds, %d xp", plant.id, units, score, seeds, experience
    )
    return HarvestOutcome(ingredients=tuple(ingredients), seeds=seeds, experience=experience, remaining_plant=None)


__all__ = ["HarvestOutcome", "harvest", "batch_quality_score"]
