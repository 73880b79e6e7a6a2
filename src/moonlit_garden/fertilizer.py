from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Optional

from .environment import Season, SeasonLike
from .models import CareAction, CareActionKind, FertilizerItem, GardenPlot, GrowthModifier, clamp

logger = logging.getLogger(__name__)

BASE_FERTILITY_GAIN = 15.0
IN_SEASON_MULTIPLIER = 1.2


@dataclass(frozen=True)
class FertilizerEffects:
    fertility_gain: float = 0.0
    quality_modifier: float = 0.0
    yield_modifier: float = 0.0
    growth_rate_modifier: float = 1.0
    duration_hours: float = 0.0
    in_season: bool = False

    @property
    def applied(self) -> bool:
        return self.fertility_gain > 0 or self.duration_hours > 0


@dataclass(frozen=True)
class FertilizerOutcome:
    plot: GardenPlot
    effects: FertilizerEffects


def apply_fertilizer(
    plot: GardenPlot,
    fertilizer: FertilizerItem,
    season: Optional[SeasonLike],
    skill: float,
    *,
    now: datetime,
) -> FertilizerOutcome:
    """Feed a plot and, when it holds one, its plant.

    A locked plot is left untouched and reported with zero effects.
    """
    if not plot.is_unlocked:
        logger.debug("Plot %s is locked; fertilizer %s not applied", plot.id, fertilizer.id)
        return FertilizerOutcome(plot=plot, effects=FertilizerEffects())

    potency = fertilizer.effective_potency
    current = Season.try_parse(season) if season is not None else None
    in_season = fertilizer.preferred_season is not None and current is fertilizer.preferred_season

    gain = BASE_FERTILITY_GAIN * potency * (1 + skill * 0.01)
    if in_season:
        gain *= IN_SEASON_MULTIPLIER
    fertility = clamp(plot.fertility + gain, 0.0, 100.0)

    effects = FertilizerEffects(
        fertility_gain=fertility - plot.fertility,
        quality_modifier=0.1 * potency,
        yield_modifier=0.15 * potency,
        growth_rate_modifier=1 + 0.1 * potency,
        duration_hours=fertilizer.effective_duration_hours,
        in_season=in_season,
    )

    plant = plot.plant
    if plant is not None:
        modifier = GrowthModifier(
            source="fertilizer",
            quality_modifier=effects.quality_modifier,
            yield_modifier=effects.yield_modifier,
            growth_rate_modifier=effects.growth_rate_modifier,
            expires_at=now + timedelta(hours=effects.duration_hours),
            description=f"Fed with {fertilizer.name or fertilizer.id}",
        )
        care = CareAction(
            timestamp=now,
            action=CareActionKind.FERTILIZE,
            success=True,
            score=min(1.0, potency),
            notes=f"Fertilized with {fertilizer.name or fertilizer.id}{' (in season)' if in_season else ''}.",
        )
        plant = plant.with_care(care, modifiers=plant.modifiers + (modifier,))

    logger.debug(
        "Fertilized plot %s with %s: fertility %.1f -> %.1f", plot.id, fertilizer.id, plot.fertility, fertility
    )
    return FertilizerOutcome(plot=replace(plot, fertility=fertility, plant=plant), effects=effects)


__all__ = ["FertilizerEffects", "FertilizerOutcome", "apply_fertilizer"]
