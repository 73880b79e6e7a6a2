"""Stateful facade over the garden engine.

``Garden`` owns a gardener's plots and the ambient conditions (season, moon
and weather). It scores mini-games from raw player sub-scores, runs the pure
engine functions and stores the resulting snapshots. Each plot has its own
re-entrant lock, so at most one mutation per plot is in flight; operations
spanning several plots take their locks in plot-id order.

Before any interaction the plant is advanced to the current time, so elapsed
growth is never lost when an interaction stamps ``last_interaction``.
"""

from __future__ import annotations

import logging
import math
import threading
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, replace
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Union

from .breeding import cross_breed as breed_plants, materialize_hybrid
from .catalog import VarietyCatalog
from .clock import Clock, SystemClock, millis
from .config import GardenConfig, default_config
from .environment import (
    MoonLike,
    MoonPhase,
    Season,
    SeasonLike,
    WeatherCondition,
    WeatherEventType,
    WeatherLike,
)
from .events import EventBus, HybridCreated, PlantHarvested, PlantLost, PlantPlanted
from .exceptions import PlotUnavailableError
from .fertilizer import FertilizerOutcome, apply_fertilizer
from .harvest import HarvestOutcome, harvest as harvest_plant
from .lifecycle import (
    advance_growth,
    apply_seasonal_attunement,
    apply_watering,
    apply_weather_protection,
    gardening_experience,
    plant_new,
)
from .minigames import (
    MiniGameAction,
    MiniGameResult,
    score_harvesting,
    score_planting,
    score_watering,
    score_weather_protection,
)
from .models import (
    CrossBreedingResult,
    FertilizerItem,
    GardenPlot,
    Gardener,
    Plant,
    PlantStage,
    ProtectiveStructure,
    clamp,
)
from .rng import RNGManager
from .weather_events import WeatherEventReport, process_weather_event

logger = logging.getLogger(__name__)

DEFAULT_PLOT_COUNT = 9
BREEDING_BASE_XP = 15
BREEDING_XP_PER_RARITY = 5
BREEDING_FAILURE_XP = 3


@dataclass(frozen=True)
class ActionReport:
    """What a mini-game driven interaction produced."""

    plant: Plant
    result: MiniGameResult
    experience: int


class Garden:
    def __init__(
        self,
        gardener: Gardener,
        *,
        plot_count: int = DEFAULT_PLOT_COUNT,
        locked_plots: Iterable[int] = (),
        season: SeasonLike = Season.SPRING,
        moon: MoonLike = MoonPhase.FULL,
        weather: WeatherLike = WeatherCondition.CLEAR,
        rngm: Optional[RNGManager] = None,
        clock: Optional[Clock] = None,
        config: Optional[GardenConfig] = None,
        bus: Optional[EventBus] = None,
        catalog: Optional[VarietyCatalog] = None,
    ) -> None:
        self.gardener = gardener
        self.config = config or default_config()
        self.rngm = rngm or RNGManager(None)
        self.clock = clock or SystemClock()
        self.bus = bus or EventBus()
        self.catalog = catalog if catalog is not None else VarietyCatalog()
        self.experience = 0
        self._xp_lock = threading.Lock()
        self.set_conditions(season=season, moon=moon, weather=weather)

        locked = set(locked_plots)
        self._plots: Dict[int, GardenPlot] = {}
        self._locks: Dict[int, threading.RLock] = {}
        for pid in range(plot_count):
            self._plots[pid] = GardenPlot(
                id=pid,
                fertility=self.config.plots.default_fertility,
                moisture=self.config.plots.default_moisture,
                is_unlocked=pid not in locked,
            )
            self._locks[pid] = threading.RLock()
        self._structures: List[ProtectiveStructure] = []

    # Conditions ----------------------------------------------------------

    def set_conditions(
        self,
        *,
        season: Optional[SeasonLike] = None,
        moon: Optional[MoonLike] = None,
        weather: Optional[WeatherLike] = None,
    ) -> None:
        if season is not None:
            self.season = Season.parse(season)
        if moon is not None:
            self.moon = MoonPhase.parse(moon)
        if weather is not None:
            self.weather = WeatherCondition.parse(weather)

    def add_structure(self, structure: ProtectiveStructure) -> None:
        self._structures.append(structure)

    @property
    def structures(self) -> Sequence[ProtectiveStructure]:
        return tuple(self._structures)

    # Plot access ---------------------------------------------------------

    @contextmanager
    def _locked(self, *plot_ids: int) -> Iterator[None]:
        for pid in plot_ids:
            if pid not in self._locks:
                raise PlotUnavailableError(f"No plot with id {pid}")
        with ExitStack() as stack:
            for pid in sorted(set(plot_ids)):
                stack.enter_context(self._locks[pid])
            yield

    def plot(self, plot_id: int) -> GardenPlot:
        with self._locked(plot_id):
            return self._plots[plot_id]

    def plots(self) -> List[GardenPlot]:
        with self._locked(*self._plots):
            return [self._plots[pid] for pid in sorted(self._plots)]

    def unlock_plot(self, plot_id: int) -> GardenPlot:
        with self._locked(plot_id):
            plot = replace(self._plots[plot_id], is_unlocked=True)
            self._plots[plot_id] = plot
            logger.info("Unlocked plot %s", plot_id)
            return plot

    def _require_plant(self, plot_id: int) -> Plant:
        plot = self._plots[plot_id]
        if not plot.is_unlocked:
            raise PlotUnavailableError(f"Plot {plot_id} is locked")
        if plot.plant is None:
            raise PlotUnavailableError(f"Plot {plot_id} has no plant")
        return plot.plant

    def _store(self, plot_id: int, plant: Optional[Plant]) -> None:
        self._plots[plot_id] = self._plots[plot_id].with_plant(plant)

    def _award(self, amount: int) -> None:
        # Experience also trains the gardener; every skill-driven formula caps its own effect.
        with self._xp_lock:
            self.experience += amount
            self.gardener = replace(self.gardener, gardening_skill=self.gardener.gardening_skill + amount)

    def _ticked(self, plot_id: int) -> Plant:
        plant = advance_growth(
            self._require_plant(plot_id), self.clock.now(), self.season, self.moon, self.weather, self.config
        )
        self._store(plot_id, plant)
        return plant

    # Operations ----------------------------------------------------------

    def plant(self, plot_id: int, variety_id: str, raw_scores: Mapping[str, float]) -> ActionReport:
        with self._locked(plot_id):
            plot = self._plots[plot_id]
            if not plot.is_unlocked:
                raise PlotUnavailableError(f"Plot {plot_id} is locked")
            if plot.occupied:
                raise PlotUnavailableError(f"Plot {plot_id} is already occupied")
            variety = self.catalog.get(variety_id)

            now = self.clock.now()
            result = score_planting(self.gardener, plot, raw_scores)
            plant = plant_new(
                self.gardener,
                plot,
                variety,
                result,
                self.season,
                self.moon,
                self.weather,
                rng=self.rngm.for_planting(plot_id, millis(now)),
                now=now,
                config=self.config,
            )
            self._store(plot_id, plant)

        xp = gardening_experience(MiniGameAction.PLANT, result.success, result.performance_score, plant)
        self._award(xp)
        logger.info("Planted %s on plot %s (success=%s)", variety_id, plot_id, result.success)
        self.bus.emit(PlantPlanted(plot_id=plot_id, plant_id=plant.id, variety_id=variety_id, success=result.success))
        return ActionReport(plant=plant, result=result, experience=xp)

    def tick(self, plot_id: int) -> Optional[Plant]:
        """Advance the plant on ``plot_id`` to now; None for an empty plot."""
        with self._locked(plot_id):
            if self._plots[plot_id].plant is None:
                return None
            return self._ticked(plot_id)

    def tick_all(self) -> List[Plant]:
        grown: List[Plant] = []
        for pid in sorted(self._plots):
            plant = self.tick(pid)
            if plant is not None:
                grown.append(plant)
        logger.debug("Ticked %d plant(s)", len(grown))
        return grown

    def water(self, plot_id: int, raw_scores: Mapping[str, float]) -> ActionReport:
        with self._locked(plot_id):
            plant = self._ticked(plot_id)
            result = score_watering(self.gardener, plant, raw_scores)
            plant = apply_watering(plant, result, self.weather, now=self.clock.now(), config=self.config)
            self._store(plot_id, plant)

        xp = gardening_experience(MiniGameAction.WATER, result.success, result.performance_score, plant)
        self._award(xp)
        logger.info("Watered plot %s (success=%s)", plot_id, result.success)
        return ActionReport(plant=plant, result=result, experience=xp)

    def protect(
        self,
        plot_id: int,
        raw_scores: Mapping[str, float],
        weather_event: Optional[WeatherLike] = None,
    ) -> ActionReport:
        threat = weather_event or self.weather
        with self._locked(plot_id):
            plant = self._ticked(plot_id)
            result = score_weather_protection(self.gardener, plant, threat, raw_scores)
            plant = apply_weather_protection(plant, result, threat, now=self.clock.now())
            self._store(plot_id, plant)

        xp = gardening_experience(MiniGameAction.PROTECT, result.success, result.performance_score, plant)
        self._award(xp)
        logger.info("Protected plot %s against %s (success=%s)", plot_id, threat, result.success)
        return ActionReport(plant=plant, result=result, experience=xp)

    def fertilize(self, plot_id: int, fertilizer: FertilizerItem) -> FertilizerOutcome:
        """Feed a plot. A locked plot is reported with zero effects, not an error."""
        with self._locked(plot_id):
            if self._plots[plot_id].is_unlocked and self._plots[plot_id].plant is not None:
                self._ticked(plot_id)
            outcome = apply_fertilizer(
                self._plots[plot_id],
                fertilizer,
                self.season,
                self.gardener.gardening_skill,
                now=self.clock.now(),
            )
            self._plots[plot_id] = outcome.plot
        if outcome.effects.applied:
            logger.info("Fertilized plot %s with %s", plot_id, fertilizer.id)
        return outcome

    def attune_all(self, bonus: float) -> int:
        """Attune every plant and moisten every unlocked plot; returns experience gained."""
        bonus = clamp(float(bonus), 0.0, 1.0)
        moisture_gain = 20 + bonus * 30
        attuned = 0
        for pid in sorted(self._plots):
            with self._locked(pid):
                plot = self._plots[pid]
                if not plot.is_unlocked:
                    continue
                if plot.plant is not None:
                    plant = self._ticked(pid)
                    plant = apply_seasonal_attunement(plant, self.season, bonus, self.moon, now=self.clock.now())
                    self._store(pid, plant)
                    attuned += 1
                plot = self._plots[pid]
                self._plots[pid] = replace(plot, moisture=clamp(plot.moisture + moisture_gain, 0.0, 100.0))

        xp = int(math.floor(5 + bonus * 10))
        self._award(xp)
        logger.info("Attuned %d plant(s) with bonus %.2f", attuned, bonus)
        return xp

    def harvest(self, plot_id: int, raw_scores: Mapping[str, float]) -> HarvestOutcome:
        with self._locked(plot_id):
            plant = self._ticked(plot_id)
            now = self.clock.now()
            result = score_harvesting(self.gardener, plant, raw_scores, self.config)
            outcome = harvest_plant(
                plant,
                result,
                self.season,
                self.moon,
                rng=self.rngm.for_harvest(plant.id, millis(now)),
                now=now,
                config=self.config,
            )
            if not outcome.harvested:
                logger.info("Plant on plot %s is not ready to harvest", plot_id)
                return outcome
            self._store(plot_id, outcome.remaining_plant)

        self._award(outcome.experience)
        logger.info("Harvested plot %s: %d ingredient(s), %d seed(s)", plot_id, len(outcome.ingredients), outcome.seeds)
        self.bus.emit(
            PlantHarvested(
                plot_id=plot_id,
                plant_id=plant.id,
                units=len(outcome.ingredients),
                seeds=outcome.seeds,
                experience=outcome.experience,
            )
        )
        return outcome

    def cross_breed(self, plot_a: int, plot_b: int) -> CrossBreedingResult:
        """Breed the plants on two plots.

        Both plants must be mature. On success both parents are consumed and
        the hybrid variety is added to the catalog, ready to be planted. A
        failed attempt leaves the parents in place but still earns a little
        experience.
        """
        if plot_a == plot_b:
            raise PlotUnavailableError("Cross-breeding needs two different plots")
        with self._locked(plot_a, plot_b):
            parent_a = self._ticked(plot_a)
            parent_b = self._ticked(plot_b)
            for pid, parent in ((plot_a, parent_a), (plot_b, parent_b)):
                if parent.stage is not PlantStage.MATURE:
                    raise PlotUnavailableError(f"Plant on plot {pid} is not mature enough to breed")
            variety_a = self.catalog.get(parent_a.variety_id)
            variety_b = self.catalog.get(parent_b.variety_id)

            now = self.clock.now()
            result = breed_plants(
                parent_a,
                parent_b,
                self.gardener,
                self.season,
                self.moon,
                rng=self.rngm.for_cross_breed(parent_a.id, parent_b.id, millis(now)),
                now=now,
            )
            if not result.success:
                self._award(BREEDING_FAILURE_XP)
                logger.info("Cross-breeding plots %s and %s failed", plot_a, plot_b)
                return result

            hybrid = materialize_hybrid(result, variety_a, variety_b)
            self.catalog.register_hybrid(hybrid)
            self._store(plot_a, None)
            self._store(plot_b, None)
            self._award(BREEDING_BASE_XP + BREEDING_XP_PER_RARITY * result.rarity_tier)

        logger.info("Bred %s from plots %s and %s", hybrid.id, plot_a, plot_b)
        self.bus.emit(
            HybridCreated(
                variety_id=hybrid.id,
                name=hybrid.name,
                rarity_tier=result.rarity_tier,
                parent_variety_ids=(variety_a.id, variety_b.id),
            )
        )
        return result

    def weather_event(
        self,
        event_type: Union[WeatherEventType, str],
        intensity: float,
        player_response: float = 0.0,
    ) -> WeatherEventReport:
        pids = sorted(self._plots)
        with self._locked(*pids):
            for pid in pids:
                if self._plots[pid].plant is not None:
                    self._ticked(pid)
            before = {pid: self._plots[pid].plant for pid in pids}
            report = process_weather_event(
                self.gardener,
                [self._plots[pid] for pid in pids],
                event_type,
                intensity,
                player_response,
                self._structures,
                now=self.clock.now(),
                config=self.config,
            )
            for plot in report.plots:
                self._plots[plot.id] = plot

        logger.info("%s", report.message)
        for plot in report.plots:
            lost = before.get(plot.id)
            if lost is not None and plot.plant is None:
                self.bus.emit(PlantLost(plot_id=plot.id, plant_id=lost.id, cause=report.event.value))
        return report


__all__ = ["Garden", "ActionReport"]
