from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Mapping, Optional, Union

from .config import GardenConfig, default_config
from .environment import WeatherCondition, WeatherLike
from .models import GardenPlot, Gardener, Plant, clamp

logger = logging.getLogger(__name__)

THRESHOLD_CEILING = 0.95
PLANTING_TIME_BONUS_MAX = 0.4

# Action-specific sub-score weights.
PLANTING_WEIGHTS: Dict[str, float] = {"timing": 1.0, "precision": 1.0, "pattern": 1.0}
WATERING_WEIGHTS: Dict[str, float] = {"distribution": 0.4, "amount": 0.4, "technique": 0.2}
HARVESTING_WEIGHTS: Dict[str, float] = {"precision": 0.45, "speed": 0.1, "carefulness": 0.45}
PROTECTION_WEIGHTS: Dict[str, float] = {"reaction_time": 0.3, "coverage": 0.4, "reinforcement": 0.3}

WEATHER_SEVERITY: Dict[WeatherCondition, float] = {
    WeatherCondition.STORMY: 0.8,
    WeatherCondition.WINDY: 0.5,
    WeatherCondition.SNOWY: 0.7,
}
DEFAULT_WEATHER_SEVERITY = 0.3


class MiniGameAction(Enum):
    PLANT = "plant"
    WATER = "water"
    HARVEST = "harvest"
    PROTECT = "protect"


@dataclass(frozen=True)
class MiniGameResult:
    """Outcome of a skill check.

    ``ready`` is False only when the action could not be attempted at all
    (harvesting an unripe plant); every bonus is then zero.
    """

    action: MiniGameAction
    success: bool
    performance_score: float
    success_threshold: float
    timing_bonus: float = 0.0
    quality_bonus: float = 0.0
    yield_bonus: float = 0.0
    unique_trait_chance: float = 0.0
    ready: bool = True


@dataclass(frozen=True)
class PlantingResult(MiniGameResult):
    soil_quality: float = 0.0
    watering_level: float = 0.0
    spacing_score: float = 0.0

    @property
    def care_score(self) -> float:
        return (self.soil_quality + self.watering_level + self.spacing_score) / 3


@dataclass(frozen=True)
class WateringResult(MiniGameResult):
    distribution_score: float = 0.0
    amount_score: float = 0.0
    technique_score: float = 0.0

    @property
    def care_score(self) -> float:
        return (self.distribution_score + self.amount_score + self.technique_score) / 3


@dataclass(frozen=True)
class HarvestingResult(MiniGameResult):
    precision_score: float = 0.0
    speed_score: float = 0.0
    carefulness_score: float = 0.0


@dataclass(frozen=True)
class ProtectionResult(MiniGameResult):
    reaction_time: float = 0.0
    coverage_score: float = 0.0
    reinforcement_score: float = 0.0


def _normalize_scores(raw: Mapping[str, float], weights: Mapping[str, float]) -> Dict[str, float]:
    scores: Dict[str, float] = {}
    for key in weights:
        try:
            value = float(raw.get(key, 0.0))
        except (TypeError, ValueError):
            value = math.nan
        if not math.isfinite(value):
            logger.warning("Ignoring non-numeric mini-game sub-score %s=%r", key, raw.get(key))
            value = 0.0
        scores[key] = clamp(value, 0.0, 1.0)
    return scores


def _performance(scores: Mapping[str, float], weights: Mapping[str, float]) -> float:
    total = sum(weights.values())
    return sum(scores[k] * w for k, w in weights.items()) / total


def _threshold(value: float) -> float:
    return clamp(value, 0.0, THRESHOLD_CEILING)


def score_planting(gardener: Gardener, plot: GardenPlot, raw_scores: Mapping[str, float]) -> PlantingResult:
    scores = _normalize_scores(raw_scores, PLANTING_WEIGHTS)
    perf = _performance(scores, PLANTING_WEIGHTS)
    soil = plot.soil_quality
    threshold = _threshold(0.7 + gardener.gardening_skill * 0.01 + soil * 0.05)
    success = perf >= threshold
    result = PlantingResult(
        action=MiniGameAction.PLANT,
        success=success,
        performance_score=perf,
        success_threshold=threshold,
        timing_bonus=perf * PLANTING_TIME_BONUS_MAX if success else 0.0,
        quality_bonus=float(math.floor(perf * 2)) if success else 0.0,
        yield_bonus=float(math.floor(perf * 1.5)) if success else 0.0,
        unique_trait_chance=perf * 0.15 if success else 0.0,
        soil_quality=soil * (1 + perf * 0.3),
        watering_level=0.8 + perf * 0.2,
        spacing_score=0.7 + perf * 0.3,
    )
    logger.debug("Planting mini-game: perf=%.3f threshold=%.3f success=%s", perf, threshold, success)
    return result


def score_watering(gardener: Gardener, plant: Plant, raw_scores: Mapping[str, float]) -> WateringResult:
    scores = _normalize_scores(raw_scores, WATERING_WEIGHTS)
    perf = _performance(scores, WATERING_WEIGHTS)
    water_need = 100.0 - plant.water_level
    threshold = _threshold(0.6 - gardener.gardening_skill * 0.005 + water_need * 0.002)
    success = perf >= threshold
    result = WateringResult(
        action=MiniGameAction.WATER,
        success=success,
        performance_score=perf,
        success_threshold=threshold,
        timing_bonus=perf * 0.2 if success else 0.0,
        quality_bonus=float(math.floor(perf * 0.3)) if success else -0.1,
        yield_bonus=float(math.floor(perf * 0.2)) if success else 0.0,
        unique_trait_chance=perf * 0.05 if success else 0.0,
        distribution_score=scores["distribution"],
        amount_score=scores["amount"],
        technique_score=scores["technique"],
    )
    logger.debug("Watering mini-game: perf=%.3f threshold=%.3f success=%s", perf, threshold, success)
    return result


def harvest_gate_open(plant: Plant, config: Optional[GardenConfig] = None) -> bool:
    """Shared readiness check of the harvesting mini-game and harvest resolution."""
    cfg = config or default_config()
    return plant.is_harvest_ready(cfg.harvest.ready_progress)


def score_harvesting(
    gardener: Gardener,
    plant: Plant,
    raw_scores: Mapping[str, float],
    config: Optional[GardenConfig] = None,
) -> HarvestingResult:
    if not harvest_gate_open(plant, config):
        logger.debug("Harvest mini-game refused: plant %s at %.1f%% is not ready", plant.id, plant.growth_progress)
        return HarvestingResult(
            action=MiniGameAction.HARVEST,
            success=False,
            performance_score=0.0,
            success_threshold=THRESHOLD_CEILING,
            ready=False,
        )

    scores = _normalize_scores(raw_scores, HARVESTING_WEIGHTS)
    perf = _performance(scores, HARVESTING_WEIGHTS)
    threshold = _threshold(0.65 - gardener.gardening_skill * 0.005)
    success = perf >= threshold
    p, s, c = scores["precision"], scores["speed"], scores["carefulness"]
    result = HarvestingResult(
        action=MiniGameAction.HARVEST,
        success=success,
        performance_score=perf,
        success_threshold=threshold,
        timing_bonus=0.0,
        quality_bonus=(p * 0.7 + c * 0.3) if success else -0.5,
        yield_bonus=(p * 0.4 + c * 0.3 + s * 0.3) if success else -0.3,
        unique_trait_chance=perf * 0.08 if success else 0.0,
        precision_score=p,
        speed_score=s,
        carefulness_score=c,
    )
    logger.debug("Harvest mini-game: perf=%.3f threshold=%.3f success=%s", perf, threshold, success)
    return result


def weather_severity(weather: WeatherLike) -> float:
    cond = WeatherCondition.try_parse(weather)
    return WEATHER_SEVERITY.get(cond, DEFAULT_WEATHER_SEVERITY) if cond else DEFAULT_WEATHER_SEVERITY


def score_weather_protection(
    gardener: Gardener,
    plant: Plant,
    weather_event: WeatherLike,
    raw_scores: Mapping[str, float],
) -> ProtectionResult:
    scores = _normalize_scores(raw_scores, PROTECTION_WEIGHTS)
    perf = _performance(scores, PROTECTION_WEIGHTS)
    severity = weather_severity(weather_event)
    threshold = _threshold(0.5 + severity * 0.2 - gardener.gardening_skill * 0.005)
    success = perf >= threshold
    effectiveness = perf if success else perf * 0.5
    result = ProtectionResult(
        action=MiniGameAction.PROTECT,
        success=success,
        performance_score=perf,
        success_threshold=threshold,
        timing_bonus=scores["reaction_time"] * 0.2 if success else 0.0,
        quality_bonus=effectiveness * 0.2 if success else -severity * 0.5,
        yield_bonus=effectiveness * 0.1 if success else -severity * 0.7,
        unique_trait_chance=perf * 0.03 if success else 0.0,
        reaction_time=scores["reaction_time"],
        coverage_score=scores["coverage"],
        reinforcement_score=scores["reinforcement"],
    )
    logger.debug(
        "Protection mini-game vs %s: perf=%.3f threshold=%.3f success=%s", weather_event, perf, threshold, success
    )
    return result


def score_mini_game(
    action: Union[MiniGameAction, str],
    gardener: Gardener,
    target: Union[GardenPlot, Plant],
    raw_scores: Mapping[str, float],
    *,
    weather: Optional[WeatherLike] = None,
    config: Optional[GardenConfig] = None,
) -> MiniGameResult:
    """Score a mini-game for any of the four garden actions.

    ``target`` is the plot for planting and the plant otherwise. Protection
    also needs the threatening ``weather`` (clear when omitted).
    """
    kind = action if isinstance(action, MiniGameAction) else MiniGameAction(str(action).lower())
    if kind is MiniGameAction.PLANT:
        if not isinstance(target, GardenPlot):
            raise TypeError("planting is scored against a GardenPlot")
        return score_planting(gardener, target, raw_scores)
    if not isinstance(target, Plant):
        raise TypeError(f"{kind.value} is scored against a Plant")
    if kind is MiniGameAction.WATER:
        return score_watering(gardener, target, raw_scores)
    if kind is MiniGameAction.HARVEST:
        return score_harvesting(gardener, target, raw_scores, config)
    return score_weather_protection(gardener, target, weather or WeatherCondition.CLEAR, raw_scores)


__all__ = [
    "MiniGameAction",
    "MiniGameResult",
    "PlantingResult",
    "WateringResult",
    "HarvestingResult",
    "ProtectionResult",
    "score_planting",
    "score_watering",
    "score_harvesting",
    "score_weather_protection",
    "score_mini_game",
    "harvest_gate_open",
    "weather_severity",
]
