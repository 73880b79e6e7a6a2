import random

import pytest

from moonlit_garden.breeding import cross_breed, hybrid_name, lunar_breeding_bonus, materialize_hybrid
from moonlit_garden.clock import millis
from moonlit_garden.environment import Season
from moonlit_garden.models import CrossBreedingResult, Gardener, GeneticTrait, PlantVariety

BLOOM = GeneticTrait(id="trait_bloom", name="Night Bloom", rarity_tier=1, dominant=True)
HARDY = GeneticTrait(id="unique_hardy_1", name="Hardy", rarity_tier=2, dominant=False)


@pytest.fixture
def parents(make_plant):
    a = make_plant(id="plant_a", variety_id="herb_lavender", traits=(BLOOM,))
    b = make_plant(id="plant_b", variety_id="flower_moonflower", plot_id=1, traits=(HARDY,))
    return a, b


def test_same_rng_stream_gives_same_result(parents, gardener, now):
    a, b = parents
    first = cross_breed(a, b, gardener, "spring", "full", rng=random.Random(42), now=now)
    second = cross_breed(a, b, gardener, "spring", "full", rng=random.Random(42), now=now)
    assert first == second


def test_successful_cross_with_mutation(parents, scripted, now):
    a, b = parents
    novice = Gardener(id="n", gardening_skill=0)
    # success roll, Hardy inheritance roll, mutation roll, mutation dominance
    rng = scripted([0.1, 0.8, 0.3, 0.4], picks=[2])
    result = cross_breed(a, b, novice, "spring", "full", rng=rng, now=now)

    assert result.success is True
    assert result.from_parent1 == (BLOOM,)
    assert result.from_parent2 == ()
    assert [m.name for m in result.new_mutations] == ["Adaptive"]
    assert result.new_mutations[0].dominant is True
    assert result.new_mutations[0].id == f"mutation_adaptive_{millis(now)}"
    # parent max tier 2, mutation tier 2 does not exceed it: 2 + 0.5 rounds up
    assert result.rarity_tier == 3
    assert result.new_variety_name == "Hybrid lavmoo"
    assert result.new_variety_id == f"variety_hybrid_lavmoo_{millis(now)}"
    assert result.inherited_traits == (BLOOM,) + result.new_mutations
    assert rng.remaining == 0


def test_higher_tier_mutation_sets_rarity(parents, scripted, now):
    a, b = parents
    rng = scripted([0.1, 0.1, 0.1, 0.9], picks=[0])
    result = cross_breed(a, b, Gardener(id="n"), None, "full", rng=rng, now=now)
    assert result.from_parent2 == (HARDY,)
    assert result.new_mutations[0].name == "Luminescent"
    assert result.rarity_tier == 3


def test_no_mutation_keeps_parent_rarity(parents, scripted, now):
    a, b = parents
    rng = scripted([0.1, 0.1, 0.99])
    result = cross_breed(a, b, Gardener(id="n"), None, "first_quarter", rng=rng, now=now)
    assert result.new_mutations == ()
    assert result.rarity_tier == 2


def test_new_moon_lowers_success(parents, scripted, now):
    a, b = parents
    assert lunar_breeding_bonus("new") == -0.1
    assert lunar_breeding_bonus("full") == 0.2
    assert lunar_breeding_bonus("waxing_gibbous") == 0.0
    result = cross_breed(a, b, Gardener(id="n"), None, "new", rng=scripted([0.45]), now=now)
    assert result == CrossBreedingResult.failed()


def test_same_variety_can_be_vetoed(make_plant, scripted, now):
    a = make_plant(id="a", variety_id="herb_mint")
    b = make_plant(id="b", variety_id="herb_mint")
    vetoed = cross_breed(a, b, Gardener(id="n"), None, "full", rng=scripted([0.95]), now=now)
    assert vetoed.success is False

    allowed = cross_breed(a, b, Gardener(id="n"), None, "full", rng=scripted([0.5, 0.1, 0.99]), now=now)
    assert allowed.success is True
    assert allowed.new_variety_name == "Hybrid minmin"


def test_parents_are_not_changed(parents, gardener, now):
    a, b = parents
    before = (a.to_dict(), b.to_dict())
    cross_breed(a, b, gardener, "spring", "full", rng=random.Random(5), now=now)
    assert (a.to_dict(), b.to_dict()) == before


def test_hybrid_name_uses_last_id_segment():
    assert hybrid_name("herb_lavender", "root_ginseng") == "lavgin"
    assert hybrid_name("variety_hybrid_lavmoo_1", "mushroom_reishi") == "1rei"


def test_materialize_hybrid():
    lavender = PlantVariety(id="herb_lavender", name="Lavender", base_quality=3, base_yield=2, preferred_season=Season.SUMMER)
    moonflower = PlantVariety(id="flower_moonflower", name="Moonflower", base_quality=3, base_yield=3, growth_time_days=4)
    result = CrossBreedingResult(
        success=True,
        rarity_tier=3,
        from_parent1=(BLOOM,),
        new_variety_id="variety_hybrid_lavmoo_1",
        new_variety_name="Hybrid lavmoo",
    )
    hybrid = materialize_hybrid(result, lavender, moonflower)

    assert hybrid.id == "variety_hybrid_lavmoo_1"
    assert hybrid.name == "Hybrid lavmoo"
    assert hybrid.base_quality == 4
    assert hybrid.base_yield == 3
    assert hybrid.growth_time_days == pytest.approx(3.5)
    assert hybrid.preferred_season is Season.SUMMER
    assert hybrid.base_traits == (BLOOM,)

    with pytest.raises(ValueError):
        materialize_hybrid(CrossBreedingResult.failed(), lavender, moonflower)
