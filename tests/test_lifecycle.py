import math
import random
from datetime import timedelta

import pytest

from moonlit_garden.catalog import VarietyCatalog
from moonlit_garden.environment import Season
from moonlit_garden.lifecycle import (
    advance_growth,
    apply_seasonal_attunement,
    apply_watering,
    apply_weather_protection,
    gardening_experience,
    plant_new,
    potential_weather_damage,
    recommended_interaction,
    water_factor,
)
from moonlit_garden.minigames import MiniGameAction, ProtectionResult, WateringResult, score_planting
from moonlit_garden.models import (
    CareActionKind,
    GardenPlot,
    GeneticTrait,
    GrowthModifier,
    PlantStage,
    Quality,
    stage_for_progress,
)


def watering(success=True, amount=1.0, distribution=0.8, technique=1.0):
    return WateringResult(
        action=MiniGameAction.WATER,
        success=success,
        performance_score=0.9 if success else 0.2,
        success_threshold=0.7,
        distribution_score=distribution,
        amount_score=amount,
        technique_score=technique,
    )


def protection(success=True, coverage=1.0, reinforcement=1.0):
    return ProtectionResult(
        action=MiniGameAction.PROTECT,
        success=success,
        performance_score=0.9 if success else 0.1,
        success_threshold=0.6,
        coverage_score=coverage,
        reinforcement_score=reinforcement,
    )


@pytest.fixture
def moonflower():
    return VarietyCatalog().get("flower_moonflower")


def test_moonflower_planted_in_spring_under_full_moon(gardener, moonflower, now):
    plot = GardenPlot(id=4, fertility=50)
    result = score_planting(gardener, plot, {"timing": 0.9, "precision": 0.9, "pattern": 0.9})
    assert result.success is True

    plant = plant_new(gardener, plot, moonflower, result, "spring", "full", "clear", rng=random.Random(7), now=now)

    assert plant.health == 100
    assert plant.stage is PlantStage.SEED
    assert plant.growth_progress == 0
    assert plant.water_level == pytest.approx(98.0)
    assert plant.plot_id == 4
    assert plant.preferred_season is Season.SPRING
    assert plant.id == f"plant_g1_{int(now.timestamp() * 1000)}"
    assert plant.next_action_at == now + timedelta(hours=4)

    mods = {m.source: m for m in plant.modifiers}
    assert mods["lunar"].expires_at == now + timedelta(hours=8)
    assert mods["lunar"].growth_rate_modifier == pytest.approx(1.3)
    assert mods["weather"].expires_at == now + timedelta(hours=24)
    assert mods["season"].expires_at is None
    assert mods["season"].growth_rate_modifier == pytest.approx(1.3)

    assert "Night Bloom" in [t.name for t in plant.traits]
    assert len(plant.care_history) == 1
    care = plant.care_history[0]
    assert care.action is CareActionKind.PLANT
    assert care.success is True
    assert "spring season, full moon" in care.notes


def test_failed_planting_starts_weaker(gardener, moonflower, now):
    plot = GardenPlot(id=0)
    result = score_planting(gardener, plot, {"timing": 0.2})
    plant = plant_new(gardener, plot, moonflower, result, "winter", "new", "snowy", rng=random.Random(1), now=now)
    assert plant.health == 80
    assert plant.predicted_yield >= 1


def test_zero_or_negative_elapsed_time_is_a_no_op(make_plant, now):
    plant = make_plant(growth_progress=40.0)
    assert advance_growth(plant, now, "spring", "full", "clear") is plant
    assert advance_growth(plant, now - timedelta(hours=3), "spring", "full", "clear") is plant


def test_single_hour_of_growth(make_plant, now):
    plant = make_plant()
    grown = advance_growth(plant, now + timedelta(hours=1), "summer", "first_quarter", "clear")

    assert grown.water_level == pytest.approx(48.5)
    assert grown.health == pytest.approx(100.0)
    assert grown.growth_progress == pytest.approx(1.5 * 1.2)
    assert grown.last_interaction == now + timedelta(hours=1)


def test_dehydration_and_overwatering_hurt(make_plant, now):
    dry = advance_growth(make_plant(water_level=10.0), now + timedelta(hours=2), None, None, "clear")
    assert dry.water_level == pytest.approx(7.0)
    assert dry.health == pytest.approx(100 - 13 * 0.1 * 2)

    soaked = advance_growth(make_plant(water_level=100.0), now + timedelta(hours=1), None, None, "clear")
    assert soaked.health == pytest.approx(100 - 18.5 * 0.05)


def test_recovery_in_healthy_band(make_plant, now):
    plant = advance_growth(make_plant(health=60.0), now + timedelta(hours=4), None, None, "rainy")
    assert plant.water_level == pytest.approx(48.0)
    assert plant.health == pytest.approx(62.0)


def test_water_factor_bands():
    assert water_factor(10) == 0.3
    assert water_factor(30) == 0.7
    assert water_factor(40) == 1.2
    assert water_factor(60) == 1.2
    assert water_factor(70) == 1.0
    assert water_factor(90) == 0.6


def test_trait_and_modifier_factors_multiply_growth(make_plant, now):
    swift = GeneticTrait(id="t", name="Swift", growth_time_modifier=-0.3)
    plant = make_plant(
        traits=(swift,),
        modifiers=(
            GrowthModifier(source="short", growth_rate_modifier=2.0, expires_at=now + timedelta(hours=1)),
            GrowthModifier(source="permanent", growth_rate_modifier=2.0),
        ),
    )
    grown = advance_growth(plant, now + timedelta(hours=2), None, None, "clear")

    assert [m.source for m in grown.modifiers] == ["permanent"]
    assert grown.growth_progress == pytest.approx(1.5 * 1.2 * 0.7 * 2.0 * 2)


def test_preferred_season_speeds_growth(make_plant, now):
    later = now + timedelta(hours=1)
    in_season = advance_growth(make_plant(preferred_season=Season.SPRING), later, "spring", None, "clear")
    off_season = advance_growth(make_plant(preferred_season=Season.SPRING), later, "fall", None, "clear")
    assert in_season.growth_progress == pytest.approx(1.8 * 1.3)
    assert off_season.growth_progress == pytest.approx(1.8 * 0.7)


def test_stage_follows_progress_only(make_plant, now):
    forced = make_plant(stage=PlantStage.MATURE, growth_progress=10.0)
    assert forced.stage is PlantStage.SEEDLING

    ripe = advance_growth(make_plant(growth_progress=94.0), now + timedelta(hours=1), None, None, "clear")
    assert ripe.stage is PlantStage.MATURE


def test_nan_stats_are_floored_not_maxed(make_plant):
    plant = make_plant(health=math.nan, water_level=math.nan, growth_progress=math.nan)
    assert plant.health == 0.0
    assert plant.water_level == 0.0
    assert plant.growth_progress == 0.0
    assert plant.stage is PlantStage.SEED
    assert plant.alive is False


def test_poor_health_penalizes_yield_but_not_below_floor(make_plant, now):
    weak = make_plant(health=20.0, predicted_yield=4, predicted_quality=Quality.POOR)
    grown = advance_growth(weak, now + timedelta(hours=1), None, None, "clear")
    assert grown.health == pytest.approx(20.5)
    assert grown.predicted_yield == 2
    assert grown.predicted_quality is Quality.POOR

    dying = advance_growth(make_plant(health=1.0, water_level=0.0), now + timedelta(hours=10), None, None, "sunny")
    assert dying.health == 0
    assert dying.predicted_yield >= 1


@pytest.mark.parametrize("quality", [Quality.UNCOMMON, Quality.EXCEPTIONAL])
def test_poor_health_never_drops_the_quality_tier(make_plant, now, quality):
    frail = make_plant(health=0.5, predicted_yield=5, predicted_quality=quality)
    grown = advance_growth(frail, now + timedelta(hours=1), None, None, "clear")
    assert grown.health < 50
    assert grown.predicted_quality is quality
    assert grown.predicted_yield < 5


def test_age_in_whole_days(make_plant, now):
    plant = advance_growth(make_plant(), now + timedelta(hours=49), None, None, "clear")
    assert plant.age_days == 2


def test_bounds_and_monotonic_progress_over_many_ticks(gardener, moonflower, now):
    plot = GardenPlot(id=0)
    result = score_planting(gardener, plot, {"timing": 1, "precision": 1, "pattern": 1})
    plant = plant_new(gardener, plot, moonflower, result, "spring", "full", "sunny", rng=random.Random(3), now=now)
    weathers = ["sunny", "rainy", "stormy", "snowy", "windy", "clear", "foggy"]

    t = now
    last_progress = plant.growth_progress
    for i in range(80):
        t = t + timedelta(hours=3)
        plant = advance_growth(plant, t, "spring", "new", weathers[i % len(weathers)])
        assert 0 <= plant.health <= 100
        assert 0 <= plant.water_level <= 100
        assert 0 <= plant.growth_progress <= 100
        assert plant.predicted_yield >= 1
        assert plant.growth_progress >= last_progress
        assert plant.stage is stage_for_progress(plant.growth_progress)
        last_progress = plant.growth_progress


def test_successful_expert_watering(make_plant, now):
    plant = make_plant(water_level=40.0, health=90.0)
    watered = apply_watering(plant, watering(), "clear", now=now + timedelta(hours=1))

    assert watered.water_level == pytest.approx(90.0)
    assert watered.health == pytest.approx(95.0)
    assert watered.next_action_at == now + timedelta(hours=1) + timedelta(hours=4 * 1.4)
    expert = watered.modifiers[-1]
    assert expert.source == "expert_watering"
    assert expert.growth_rate_modifier == pytest.approx(1.12)
    assert expert.quality_modifier == pytest.approx(0.08)
    assert expert.expires_at == now + timedelta(hours=25)
    assert watered.care_history[-1].action is CareActionKind.WATER
    assert watered.care_history[-1].score == pytest.approx(2.8 / 3)
    assert plant.care_history == ()


def test_watering_is_scaled_by_weather_and_capped(make_plant, now):
    sunny = apply_watering(make_plant(water_level=20.0), watering(distribution=0.5), "sunny", now=now)
    assert sunny.water_level == pytest.approx(85.0)
    assert sunny.next_action_at == now + timedelta(hours=4 * 0.7 * 1.25)
    assert all(m.source != "expert_watering" for m in sunny.modifiers)

    full = apply_watering(make_plant(water_level=90.0), watering(), "clear", now=now)
    assert full.water_level == 100


def test_poor_failed_watering_damages(make_plant, now):
    plant = apply_watering(make_plant(), watering(success=False, amount=0.2), "rainy", now=now)
    assert plant.water_level == pytest.approx(50 + 7 * 0.5)
    assert plant.health == pytest.approx(92.0)


def test_full_protection_blocks_damage(make_plant, now):
    plant = apply_weather_protection(make_plant(), protection(), "stormy", now=now)
    assert plant.health == 100
    shield = plant.modifiers[-1]
    assert shield.source == "weather_protection"
    assert shield.growth_rate_modifier == 1.0
    assert shield.expires_at == now + timedelta(hours=12)
    assert plant.care_history[-1].action is CareActionKind.PROTECT


def test_failed_protection_takes_damage(make_plant, now):
    plant = apply_weather_protection(make_plant(), protection(False, 0.0, 0.0), "stormy", now=now)
    assert plant.health == pytest.approx(75.0)
    damage = plant.modifiers[-1]
    assert damage.source == "weather_damage"
    assert damage.growth_rate_modifier == pytest.approx(0.95)
    assert damage.expires_at == now + timedelta(hours=24)

    mild = apply_weather_protection(make_plant(), protection(False, 1.0, 1.0), "windy", now=now)
    assert mild.health == pytest.approx(100 - 15 * 0.6)
    assert mild.modifiers == ()


def test_parched_plants_suffer_in_sun(make_plant):
    assert potential_weather_damage(make_plant(water_level=20.0), "sunny") == 18
    assert potential_weather_damage(make_plant(water_level=50.0), "sunny") == 5
    assert potential_weather_damage(make_plant(), "snowy") == 20


def test_attunement_in_preferred_season(make_plant, now):
    plant = make_plant(health=90.0, preferred_season=Season.SPRING)
    attuned = apply_seasonal_attunement(plant, "spring", 0.5, "full", now=now)

    assert attuned.health == pytest.approx(96.0)
    mod = attuned.modifiers[-1]
    assert mod.source == "attunement"
    assert mod.quality_modifier == pytest.approx(0.065 + 0.05)
    assert mod.yield_modifier == pytest.approx(0.065)
    assert mod.growth_rate_modifier == pytest.approx(1.13)
    assert mod.expires_at == now + timedelta(hours=24)
    assert attuned.care_history[-1].action is CareActionKind.ATTUNE

    off = apply_seasonal_attunement(plant, "summer", 0.5, "full", now=now)
    assert off.modifiers[-1].quality_modifier == pytest.approx(0.065)


def test_attunement_bonus_is_clamped(make_plant, now):
    attuned = apply_seasonal_attunement(make_plant(health=50.0), "winter", 5.0, "first_quarter", now=now)
    assert attuned.health == pytest.approx(60.0)
    none = apply_seasonal_attunement(make_plant(health=50.0), "winter", -1.0, "full", now=now)
    assert none.health == pytest.approx(50.0)


def test_recommended_interaction(make_plant):
    assert recommended_interaction(make_plant(), "stormy") is MiniGameAction.PROTECT
    assert recommended_interaction(make_plant(growth_progress=97.0), "clear") is MiniGameAction.HARVEST
    assert recommended_interaction(make_plant(water_level=20.0), "clear") is MiniGameAction.WATER
    assert recommended_interaction(make_plant(), "clear") is None


def test_gardening_experience(make_plant):
    plant = make_plant(traits=(GeneticTrait(id="t", name="Night Bloom", rarity_tier=1),))
    assert gardening_experience("plant", True, 1.0, plant) == 13
    assert gardening_experience(MiniGameAction.WATER, False, 0.5, plant) == 2
