"""Plant lifecycle: planting, growth ticks and care interactions.

Every function here takes a :class:`~moonlit_garden.models.Plant` snapshot and
returns a new one; nothing is mutated in place. The lifecycle stage is never
assigned directly, it follows ``growth_progress`` (see ``stage_for_progress``).

Care interactions (watering, protection, attunement) stamp
``last_interaction`` with ``now``, so callers that want the elapsed time
accounted for should run :func:`advance_growth` first. The ``Garden`` facade
does exactly that.
"""

from __future__ import annotations

import logging
import math
import random
from datetime import datetime, timedelta
from typing import Dict, Optional, Union

from .clock import hours_between, millis
from .config import GardenConfig, default_config
from .environment import (
    MoonLike,
    MoonPhase,
    Season,
    SeasonLike,
    WeatherCondition,
    WeatherLike,
    lunar_modifier,
    seasonal_modifier,
    weather_modifier,
)
from .genetics import determine_initial_traits
from .minigames import MiniGameAction, PlantingResult, ProtectionResult, WateringResult, harvest_gate_open
from .models import (
    CareAction,
    CareActionKind,
    GardenPlot,
    Gardener,
    GrowthModifier,
    Plant,
    PlantVariety,
    Quality,
    clamp,
    round_half_up,
    sum_trait,
)

logger = logging.getLogger(__name__)

WEATHER_MODIFIER_HOURS = 24
LUNAR_MODIFIER_HOURS = 8
EXPERT_WATERING_HOURS = 24
PROTECTION_HOURS = 12
WEATHER_DAMAGE_HOURS = 24
ATTUNEMENT_HOURS = 24

WATERING_WEATHER_SCALE: Dict[WeatherCondition, float] = {
    WeatherCondition.RAINY: 0.5,
    WeatherCondition.STORMY: 0.3,
    WeatherCondition.SUNNY: 1.3,
}

POTENTIAL_WEATHER_DAMAGE: Dict[WeatherCondition, float] = {
    WeatherCondition.STORMY: 25.0,
    WeatherCondition.WINDY: 15.0,
    WeatherCondition.SNOWY: 20.0,
}
PARCHED_SUN_DAMAGE = 18.0
DEFAULT_WEATHER_DAMAGE = 5.0

SEVERE_WEATHER = frozenset({WeatherCondition.STORMY, WeatherCondition.SNOWY, WeatherCondition.WINDY})

BASE_EXPERIENCE: Dict[MiniGameAction, int] = {
    MiniGameAction.PLANT: 5,
    MiniGameAction.WATER: 2,
    MiniGameAction.HARVEST: 8,
    MiniGameAction.PROTECT: 6,
}


def _season_label(season: Optional[SeasonLike]) -> str:
    parsed = Season.try_parse(season) if season is not None else None
    return parsed.value if parsed else str(season)


def _moon_label(moon: Optional[MoonLike]) -> str:
    parsed = MoonPhase.try_parse(moon) if moon is not None else None
    return parsed.value.replace("_", " ") if parsed else str(moon)


def _weather(weather: Optional[WeatherLike]) -> Optional[WeatherCondition]:
    return WeatherCondition.try_parse(weather) if weather is not None else None


def water_factor(water_level: float) -> float:
    """Growth multiplier from soil water; best in the 40..60 band."""
    if water_level < 20:
        return 0.3
    if water_level < 40:
        return 0.7
    if water_level <= 60:
        return 1.2
    if water_level > 80:
        return 0.6
    return 1.0


def predicted_quality(variety: PlantVariety, quality_bonus: float, traits) -> Quality:
    score = variety.base_quality + quality_bonus + sum_trait(traits, "quality_modifier")
    return Quality.from_score(score)


def predicted_yield(variety: PlantVariety, yield_bonus: float, traits) -> int:
    return max(1, round_half_up(variety.base_yield + yield_bonus + sum_trait(traits, "yield_modifier")))


def plant_new(
    gardener: Gardener,
    plot: GardenPlot,
    variety: PlantVariety,
    result: PlantingResult,
    season: Optional[SeasonLike],
    moon: Optional[MoonLike],
    weather: Optional[WeatherLike],
    *,
    rng: random.Random,
    now: datetime,
    config: Optional[GardenConfig] = None,
) -> Plant:
    """Create a seed on ``plot`` from a scored planting mini-game."""
    traits = determine_initial_traits(variety, result.unique_trait_chance, season, rng=rng, now=now)

    s = seasonal_modifier(variety.preferred_season, season)
    w = weather_modifier(weather)
    lunar = lunar_modifier(moon)
    modifiers = (
        GrowthModifier(
            source="season",
            quality_modifier=s * 0.2,
            yield_modifier=s * 0.1,
            growth_rate_modifier=s,
            description=f"{_season_label(season)} seasonal influence",
        ),
        GrowthModifier(
            source="weather",
            quality_modifier=w * 0.1,
            yield_modifier=w * 0.15,
            growth_rate_modifier=w,
            expires_at=now + timedelta(hours=WEATHER_MODIFIER_HOURS),
            description=f"{weather} weather conditions",
        ),
        GrowthModifier(
            source="lunar",
            quality_modifier=lunar * 0.15,
            yield_modifier=lunar * 0.15,
            growth_rate_modifier=lunar,
            expires_at=now + timedelta(hours=LUNAR_MODIFIER_HOURS),
            description=f"{_moon_label(moon)} lunar influence",
        ),
    )

    care = CareAction(
        timestamp=now,
        action=CareActionKind.PLANT,
        success=result.success,
        score=result.care_score,
        notes=(
            f"Planted by {gardener.name or gardener.id} during {_season_label(season)} season, "
            f"{_moon_label(moon)} moon."
        ),
    )

    plant = Plant(
        id=f"plant_{gardener.id}_{millis(now)}",
        variety_id=variety.id,
        plot_id=plot.id,
        created_at=now,
        last_interaction=now,
        health=80.0 + (20.0 if result.success else 0.0),
        water_level=result.watering_level * 100.0,
        growth_progress=0.0,
        predicted_quality=predicted_quality(variety, result.quality_bonus, traits),
        predicted_yield=predicted_yield(variety, result.yield_bonus, traits),
        traits=traits,
        modifiers=modifiers,
        care_history=(care,),
        preferred_season=variety.preferred_season,
        next_action_at=now + timedelta(hours=(config or default_config()).growth.watering_interval_hours),
    )
    logger.debug(
        "Planted %s (%s) on plot %s: health=%.0f water=%.0f quality=%s yield=%d traits=%d",
        plant.id,
        variety.id,
        plot.id,
        plant.health,
        plant.water_level,
        plant.predicted_quality.label,
        plant.predicted_yield,
        len(traits),
    )
    return plant


def advance_growth(
    plant: Plant,
    now: datetime,
    season: Optional[SeasonLike],
    moon: Optional[MoonLike],
    weather: Optional[WeatherLike],
    config: Optional[GardenConfig] = None,
) -> Plant:
    """Advance ``plant`` to ``now``.

    Elapsed time is measured from ``plant.last_interaction``; a zero or
    negative interval returns the very same snapshot, so repeated ticks at one
    instant are idempotent.
    """
    dt = hours_between(plant.last_interaction, now)
    if dt <= 0:
        return plant
    cfg = config or default_config()

    water = max(0.0, plant.water_level - cfg.water_loss_for(_weather(weather) or weather) * dt)

    health = plant.health
    if water < 20:
        health -= (20 - water) * 0.1 * dt
    elif water > 80:
        health -= (water - 80) * 0.05 * dt
    elif health < 100 and water > 40:
        health += 0.5 * dt
    health = clamp(health, 0.0, 100.0)

    active = plant.active_modifiers(now)
    rate = cfg.growth.base_rate_per_hour * (health / 100.0) * water_factor(water)
    rate *= seasonal_modifier(plant.preferred_season, season)
    rate *= weather_modifier(weather)
    rate *= lunar_modifier(moon)
    for trait in plant.traits:
        rate *= 1 + trait.growth_time_modifier
    for modifier in active:
        rate *= modifier.growth_rate_modifier
    progress = plant.growth_progress + max(0.0, rate * dt)

    quality = plant.predicted_quality
    yield_ = plant.predicted_yield
    if health < 50:
        deficit = (50 - health) / 50
        # Worth at most half a tier, which rounds back up: the tier holds and the yield takes the hit.
        quality = Quality.from_score(max(1.0, quality.value - deficit * 0.5))
        yield_ = max(1, round_half_up(yield_ * (1 - deficit * 0.7)))

    updated = plant.evolve(
        water_level=water,
        health=health,
        growth_progress=progress,
        modifiers=active,
        predicted_quality=quality,
        predicted_yield=yield_,
        last_interaction=now,
        age_days=int(math.floor(hours_between(plant.created_at, now) / 24)),
    )
    if updated.stage is not plant.stage:
        logger.debug("Plant %s moved from %s to %s", plant.id, plant.stage.value, updated.stage.value)
    logger.debug(
        "Tick %s: dt=%.2fh rate=%.3f%%/h progress=%.2f health=%.1f water=%.1f",
        plant.id,
        dt,
        rate,
        updated.growth_progress,
        updated.health,
        updated.water_level,
    )
    return updated


def apply_watering(
    plant: Plant,
    result: WateringResult,
    weather: Optional[WeatherLike],
    *,
    now: datetime,
    config: Optional[GardenConfig] = None,
) -> Plant:
    cfg = config or default_config()
    cond = _weather(weather)

    bonus = 20 + result.amount_score * 30 if result.success else 5 + result.amount_score * 10
    bonus *= WATERING_WEATHER_SCALE.get(cond, 1.0)

    health = plant.health
    if result.success:
        health += 5
    elif result.amount_score < 0.3:
        health -= 8

    interval = cfg.growth.watering_interval_hours
    if cond in (WeatherCondition.SUNNY, WeatherCondition.WINDY):
        interval *= 0.7
    elif cond in (WeatherCondition.RAINY, WeatherCondition.CLOUDY):
        interval *= 1.5
    interval *= 1 + result.distribution_score * 0.5

    modifiers = plant.modifiers
    if result.success and result.distribution_score > 0.7:
        dist = result.distribution_score
        modifiers = modifiers + (
            GrowthModifier(
                source="expert_watering",
                quality_modifier=0.1 * dist,
                yield_modifier=0.1 * dist,
                growth_rate_modifier=1 + 0.15 * dist,
                expires_at=now + timedelta(hours=EXPERT_WATERING_HOURS),
                description="Expert watering technique applied",
            ),
        )

    care = CareAction(
        timestamp=now,
        action=CareActionKind.WATER,
        success=result.success,
        score=result.care_score,
        notes=f"Watered with {'successful' if result.success else 'suboptimal'} technique.",
    )
    logger.debug("Watered %s: +%.1f water, success=%s", plant.id, bonus, result.success)
    return plant.with_care(
        care,
        water_level=plant.water_level + bonus,
        health=health,
        modifiers=modifiers,
        next_action_at=now + timedelta(hours=interval),
        last_interaction=now,
    )


def potential_weather_damage(plant: Plant, weather_event: Optional[WeatherLike]) -> float:
    cond = _weather(weather_event)
    if cond in POTENTIAL_WEATHER_DAMAGE:
        return POTENTIAL_WEATHER_DAMAGE[cond]
    if cond is WeatherCondition.SUNNY and plant.water_level < 30:
        return PARCHED_SUN_DAMAGE
    return DEFAULT_WEATHER_DAMAGE


def apply_weather_protection(
    plant: Plant,
    result: ProtectionResult,
    weather_event: Optional[WeatherLike],
    *,
    now: datetime,
) -> Plant:
    if result.success:
        protection = result.coverage_score * 0.7 + result.reinforcement_score * 0.3
    else:
        protection = result.coverage_score * 0.3 + result.reinforcement_score * 0.1
    damage = potential_weather_damage(plant, weather_event) * (1 - protection)

    modifiers = plant.modifiers
    if result.success:
        modifiers = modifiers + (
            GrowthModifier(
                source="weather_protection",
                quality_modifier=0.05,
                yield_modifier=0.05,
                growth_rate_modifier=1.0,
                expires_at=now + timedelta(hours=PROTECTION_HOURS),
                description=f"Protected from {weather_event} conditions",
            ),
        )
    elif damage > 10:
        modifiers = modifiers + (
            GrowthModifier(
                source="weather_damage",
                quality_modifier=-0.1,
                yield_modifier=-0.15,
                growth_rate_modifier=0.95,
                expires_at=now + timedelta(hours=WEATHER_DAMAGE_HOURS),
                description=f"Damaged by {weather_event} conditions",
            ),
        )

    care = CareAction(
        timestamp=now,
        action=CareActionKind.PROTECT,
        success=result.success,
        score=protection,
        notes=(
            f"Protected from {weather_event} weather with "
            f"{'successful' if result.success else 'partial'} coverage."
        ),
    )
    logger.debug("Protected %s against %s: protection=%.2f damage=%.1f", plant.id, weather_event, protection, damage)
    return plant.with_care(care, health=plant.health - damage, modifiers=modifiers, last_interaction=now)


def apply_seasonal_attunement(
    plant: Plant,
    season: Optional[SeasonLike],
    bonus: float,
    moon: Optional[MoonLike],
    *,
    now: datetime,
) -> Plant:
    """Attune a plant to the season and moon.

    ``bonus`` is clamped to 0..1 and scaled by the moon's potency. A plant
    attuned in its own preferred season gets a small extra quality nudge.
    """
    effective = clamp(float(bonus), 0.0, 1.0) * lunar_modifier(moon)
    current = Season.try_parse(season) if season is not None else None
    in_season = current is not None and current is plant.preferred_season

    modifier = GrowthModifier(
        source="attunement",
        quality_modifier=effective * 0.1 + (0.05 if in_season else 0.0),
        yield_modifier=effective * 0.1,
        growth_rate_modifier=1 + effective * 0.2,
        expires_at=now + timedelta(hours=ATTUNEMENT_HOURS),
        description=f"Attuned to {_season_label(season)} under a {_moon_label(moon)} moon",
    )
    care = CareAction(
        timestamp=now,
        action=CareActionKind.ATTUNE,
        success=True,
        score=effective,
        notes=f"Seasonal attunement{' in season' if in_season else ''}.",
    )
    logger.debug("Attuned %s: effective=%.2f in_season=%s", plant.id, effective, in_season)
    return plant.with_care(
        care,
        health=plant.health + math.floor(effective * 10),
        modifiers=plant.modifiers + (modifier,),
        last_interaction=now,
    )


def recommended_interaction(
    plant: Plant,
    weather: Optional[WeatherLike],
    config: Optional[GardenConfig] = None,
) -> Optional[MiniGameAction]:
    """The mini-game a player should play next on ``plant``, or None."""
    if _weather(weather) in SEVERE_WEATHER:
        return MiniGameAction.PROTECT
    if harvest_gate_open(plant, config):
        return MiniGameAction.HARVEST
    if plant.water_level < 30:
        return MiniGameAction.WATER
    return None


def gardening_experience(
    action: Union[MiniGameAction, str],
    success: bool,
    score: float,
    plant: Plant,
) -> int:
    kind = action if isinstance(action, MiniGameAction) else MiniGameAction(str(action).lower())
    base = BASE_EXPERIENCE.get(kind, 1)
    multiplier = 1.5 if success else 0.5
    score_bonus = score * (5 if success else 1)
    rarity_bonus = sum(t.rarity_tier for t in plant.traits) * 0.5
    return round_half_up(base * multiplier + score_bonus + rarity_bonus)


__all__ = [
    "plant_new",
    "advance_growth",
    "apply_watering",
    "apply_weather_protection",
    "apply_seasonal_attunement",
    "recommended_interaction",
    "gardening_experience",
    "water_factor",
    "potential_weather_damage",
    "predicted_quality",
    "predicted_yield",
]
