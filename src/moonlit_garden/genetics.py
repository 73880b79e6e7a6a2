from __future__ import annotations

import logging
import random
from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from .clock import millis
from .environment import Season, SeasonLike
from .models import GeneticTrait, PlantVariety

logger = logging.getLogger(__name__)

SEASONAL_TRAIT_CHANCE = 0.3
SEASONAL_DOMINANCE_CHANCE = 0.5
UNIQUE_DOMINANCE_CHANCE = 0.7

SEASONAL_KEYWORDS: Dict[Season, Tuple[str, ...]] = {
    Season.SPRING: ("floral", "green", "fresh"),
    Season.SUMMER: ("fruity", "vibrant", "warm"),
    Season.FALL: ("earthy", "spicy", "woody"),
    Season.WINTER: ("cool", "crisp", "soothing"),
}

# Templates; ids and dominance are filled in when a trait is rolled.
UNIQUE_TRAIT_POOL: Tuple[GeneticTrait, ...] = (
    GeneticTrait(
        id="unique_vibrant",
        name="Vibrant",
        quality_modifier=0.5,
        rarity_tier=2,
        description="Unusually vibrant coloration and potent properties.",
        effect="Increases ingredient potency.",
    ),
    GeneticTrait(
        id="unique_hardy",
        name="Hardy",
        quality_modifier=0.2,
        yield_modifier=0.3,
        growth_time_modifier=-0.1,
        rarity_tier=2,
        description="Exceptionally resistant to adverse conditions.",
        effect="Less affected by poor weather.",
    ),
    GeneticTrait(
        id="unique_abundant",
        name="Abundant",
        yield_modifier=0.7,
        growth_time_modifier=0.1,
        rarity_tier=2,
        description="Produces an unusual amount of harvestable material.",
        effect="Significantly increased yield.",
    ),
    GeneticTrait(
        id="unique_swift",
        name="Swift",
        growth_time_modifier=-0.3,
        rarity_tier=2,
        description="Grows at an accelerated rate.",
        effect="Reduced growing time.",
    ),
    GeneticTrait(
        id="unique_radiant",
        name="Radiant",
        quality_modifier=0.8,
        yield_modifier=-0.2,
        growth_time_modifier=0.1,
        rarity_tier=3,
        description="Emits a subtle glow, indicating exceptional potency.",
        effect="Significantly enhanced quality.",
    ),
)


def seasonal_trait(season: Season, rng: random.Random, now: datetime) -> GeneticTrait:
    keyword = rng.choice(SEASONAL_KEYWORDS[season])
    return GeneticTrait(
        id=f"seasonal_{keyword}_{millis(now)}",
        name=f"{keyword.capitalize()} Essence",
        quality_modifier=0.2,
        yield_modifier=0.1,
        growth_time_modifier=-0.05,
        rarity_tier=1,
        dominant=rng.random() < SEASONAL_DOMINANCE_CHANCE,
        description=f"This plant has absorbed the essence of {season.value}.",
        effect=f"Enhanced properties related to {keyword} characteristics.",
    )


def unique_trait(rng: random.Random, now: datetime) -> GeneticTrait:
    template = rng.choice(UNIQUE_TRAIT_POOL)
    return replace(
        template,
        id=f"unique_{template.name.lower()}_{millis(now)}",
        dominant=rng.random() < UNIQUE_DOMINANCE_CHANCE,
    )


def determine_initial_traits(
    variety: PlantVariety,
    unique_trait_chance: float,
    season: Optional[SeasonLike],
    *,
    rng: random.Random,
    now: datetime,
) -> Tuple[GeneticTrait, ...]:
    """Traits a freshly planted seed starts with.

    The variety's base traits are always present. On top of them the plant
    may pick up one trait of the current season and one rare trait whose
    odds come from the planting mini-game.
    """
    traits: List[GeneticTrait] = list(variety.base_traits)
    current = Season.try_parse(season) if season is not None else None

    if rng.random() < SEASONAL_TRAIT_CHANCE:
        if current is None:
            logger.debug("No usable season %r; skipping seasonal trait", season)
        else:
            traits.append(seasonal_trait(current, rng, now))

    if rng.random() < unique_trait_chance:
        traits.append(unique_trait(rng, now))

    logger.debug(
        "Initial traits for %s: %s", variety.id, ", ".join(t.name for t in traits) or "(none)"
    )
    return tuple(traits)


__all__ = [
    "SEASONAL_KEYWORDS",
    "UNIQUE_TRAIT_POOL",
    "seasonal_trait",
    "unique_trait",
    "determine_initial_traits",
]
