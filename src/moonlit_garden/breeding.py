"""Cross-breeding of two plants into a candidate hybrid variety.

``cross_breed`` only describes the hybrid; the caller decides whether to
materialize it (see :func:`materialize_hybrid`) and register it with a
variety catalog before it can be planted.
"""

from __future__ import annotations

import logging
import random
from dataclasses import replace
from datetime import datetime
from typing import List, Optional, Tuple

from .clock import millis
from .environment import MoonLike, MoonPhase, SeasonLike
from .models import CrossBreedingResult, GeneticTrait, Gardener, Plant, PlantVariety, highest_rarity, round_half_up

logger = logging.getLogger(__name__)

SAME_VARIETY_BASE = 0.8
BASE_SUCCESS = 0.5
BASE_MUTATION = 0.2
RECESSIVE_INHERITANCE = 0.7
MUTATION_DOMINANCE_CHANCE = 0.5

MUTATION_POOL: Tuple[GeneticTrait, ...] = (
    GeneticTrait(
        id="mutation_luminescent",
        name="Luminescent",
        quality_modifier=0.5,
        growth_time_modifier=0.1,
        rarity_tier=3,
        description="Glows softly in the dark.",
        effect="Enhances magical potency in recipes.",
    ),
    GeneticTrait(
        id="mutation_harmonious",
        name="Harmonious",
        quality_modifier=0.3,
        yield_modifier=0.3,
        rarity_tier=3,
        description="Perfectly balanced elemental energies.",
        effect="Works better combined with other ingredients.",
    ),
    GeneticTrait(
        id="mutation_adaptive",
        name="Adaptive",
        quality_modifier=0.2,
        yield_modifier=0.2,
        growth_time_modifier=-0.1,
        rarity_tier=2,
        description="Unusually adaptive to changing conditions.",
        effect="Less affected by seasonal penalties.",
    ),
    GeneticTrait(
        id="mutation_resonant",
        name="Resonant",
        quality_modifier=0.3,
        yield_modifier=0.2,
        rarity_tier=3,
        description="Vibrates slightly when touched, resonating with lunar energy.",
        effect="Enhanced lunar phase bonuses.",
    ),
)


def lunar_breeding_bonus(moon: Optional[MoonLike]) -> float:
    phase = MoonPhase.try_parse(moon) if moon is not None else None
    if phase is MoonPhase.FULL:
        return 0.2
    if phase is MoonPhase.NEW:
        return -0.1
    return 0.0


def _short_name(variety_id: str) -> str:
    return (variety_id.split("_")[-1] or "Unknown")[:3]


def hybrid_name(variety_a: str, variety_b: str) -> str:
    return f"{_short_name(variety_a)}{_short_name(variety_b)}"


def _inherit(traits: Tuple[GeneticTrait, ...], rng: random.Random) -> Tuple[GeneticTrait, ...]:
    kept: List[GeneticTrait] = []
    for trait in traits:
        if trait.dominant or rng.random() < RECESSIVE_INHERITANCE:
            kept.append(trait)
    return tuple(kept)


def cross_breed(
    plant_a: Plant,
    plant_b: Plant,
    gardener: Gardener,
    season: Optional[SeasonLike],
    moon: Optional[MoonLike],
    *,
    rng: random.Random,
    now: datetime,
) -> CrossBreedingResult:
    # The season does not influence breeding.
    skill = gardener.gardening_skill
    if plant_a.variety_id == plant_b.variety_id:
        if rng.random() > SAME_VARIETY_BASE + skill * 0.005:
            logger.debug("Same-variety breeding of %s vetoed", plant_a.variety_id)
            return CrossBreedingResult.failed()

    lunar_bonus = lunar_breeding_bonus(moon)
    if not rng.random() < BASE_SUCCESS + skill * 0.01 + lunar_bonus:
        logger.debug("Cross-breeding %s x %s failed", plant_a.id, plant_b.id)
        return CrossBreedingResult.failed()

    name = hybrid_name(plant_a.variety_id, plant_b.variety_id)
    stamp = millis(now)
    from_a = _inherit(plant_a.traits, rng)
    from_b = _inherit(plant_b.traits, rng)

    mutations: Tuple[GeneticTrait, ...] = ()
    if rng.random() < BASE_MUTATION + skill * 0.005 + lunar_bonus * 2:
        template = rng.choice(MUTATION_POOL)
        mutations = (
            replace(
                template,
                id=f"mutation_{template.name.lower()}_{stamp}",
                dominant=rng.random() < MUTATION_DOMINANCE_CHANCE,
            ),
        )

    rarity: float = max(highest_rarity(plant_a.traits), highest_rarity(plant_b.traits))
    mutation_tier = highest_rarity(mutations)
    if mutation_tier > rarity:
        rarity = mutation_tier
    elif mutation_tier > 0:
        rarity += 0.5

    result = CrossBreedingResult(
        success=True,
        rarity_tier=round_half_up(rarity),
        from_parent1=from_a,
        from_parent2=from_b,
        new_mutations=mutations,
        new_variety_id=f"variety_hybrid_{name.lower()}_{stamp}",
        new_variety_name=f"Hybrid {name}",
    )
    logger.debug(
        "Cross-bred %s x %s -> %s (rarity %d, %d mutation(s))",
        plant_a.variety_id,
        plant_b.variety_id,
        result.new_variety_id,
        result.rarity_tier,
        len(mutations),
    )
    return result


def materialize_hybrid(
    result: CrossBreedingResult,
    parent_a: PlantVariety,
    parent_b: PlantVariety,
) -> PlantVariety:
    """Build the catalog entry for a successful cross-breed."""
    if not result.success or not result.new_variety_id:
        raise ValueError("only a successful cross-breeding result can be materialized")
    quality = round_half_up((parent_a.base_quality + parent_b.base_quality) / 2)
    if result.rarity_tier >= 3:
        quality += 1
    return PlantVariety(
        id=result.new_variety_id,
        name=result.new_variety_name or result.new_variety_id,
        category=parent_a.category,
        base_quality=min(5, quality),
        base_yield=max(1, round_half_up((parent_a.base_yield + parent_b.base_yield) / 2)),
        growth_time_days=(parent_a.growth_time_days + parent_b.growth_time_days) / 2,
        preferred_season=parent_a.preferred_season,
        base_traits=result.inherited_traits,
        description=f"A hybrid of {parent_a.name} and {parent_b.name}.",
    )


__all__ = ["MUTATION_POOL", "cross_breed", "materialize_hybrid", "hybrid_name", "lunar_breeding_bonus"]
