from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from .config import GardenConfig, default_config
from .environment import WeatherEventType
from .models import GardenPlot, Gardener, GrowthModifier, ProtectiveStructure, clamp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WeatherEventReport:
    plots: Tuple[GardenPlot, ...]
    event: WeatherEventType
    affected: int = 0
    damaged: int = 0
    improved: int = 0
    lost: int = 0
    message: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.event.value,
            "affected": self.affected,
            "damaged": self.damaged,
            "improved": self.improved,
            "lost": self.lost,
            "message": self.message,
        }


def structure_mitigation(
    position: Tuple[int, int],
    event: WeatherEventType,
    structures: Sequence[ProtectiveStructure],
) -> float:
    """Best resistance among structures covering ``position`` that guard against ``event``."""
    return max(
        (s.resistance for s in structures if s.covers(position) and s.guards_against(event)),
        default=0.0,
    )


def mitigation_for(
    plot: GardenPlot,
    event: WeatherEventType,
    skill: float,
    player_response: float,
    structures: Sequence[ProtectiveStructure],
    config: GardenConfig,
) -> float:
    wcfg = config.weather_events
    position = plot.grid_position(config.plots.grid_columns)
    structural = structure_mitigation(position, event, structures)
    from_skill = min(wcfg.skill_mitigation_cap, max(0.0, skill) * wcfg.skill_mitigation_per_level)
    from_response = clamp(player_response, 0.0, 1.0) * wcfg.response_weight
    return min(wcfg.mitigation_cap, structural + from_skill + from_response)


def _summary(event: WeatherEventType, affected: int, damaged: int, improved: int, lost: int) -> str:
    label = event.value.replace("_", " ")
    if affected == 0:
        return f"The {label} passed over an empty garden."
    parts = [f"The {label} affected {affected} plot{'s' if affected != 1 else ''}"]
    details: List[str] = []
    if damaged:
        details.append(f"{damaged} damaged")
    if improved:
        details.append(f"{improved} improved")
    if lost:
        details.append(f"{lost} lost")
    if details:
        parts.append(": " + ", ".join(details))
    return "".join(parts) + "."


def process_weather_event(
    gardener: Gardener,
    plots: Sequence[GardenPlot],
    event_type: Union[WeatherEventType, str],
    intensity: float,
    player_response: float = 0.0,
    structures: Sequence[ProtectiveStructure] = (),
    *,
    now: datetime,
    config: Optional[GardenConfig] = None,
) -> WeatherEventReport:
    """Apply a whole-garden weather event.

    Each occupied plot is handled independently; structures are only read.
    Unknown event types use the ``default`` row of the effect table. Plants
    whose health reaches zero are removed from their plot.
    """
    cfg = config or default_config()
    event = WeatherEventType.try_parse(event_type) or WeatherEventType.DEFAULT
    effect = cfg.weather_events.effect_for(event)
    strength = max(0.0, float(intensity))

    updated: List[GardenPlot] = []
    affected = damaged = improved = lost = 0
    for plot in plots:
        plant = plot.plant
        if plant is None:
            updated.append(plot)
            continue
        affected += 1

        mitigation = mitigation_for(plot, event, gardener.gardening_skill, player_response, structures, cfg)
        effective = strength * (1 - mitigation)
        health_delta = effect.health * effective
        water_delta = effect.water * effective
        quality_delta = effect.quality * effective

        modifier = GrowthModifier(
            source=f"weather_{event.value}",
            quality_modifier=quality_delta,
            yield_modifier=effect.yield_ * effective,
            growth_rate_modifier=max(0.0, 1 + effect.growth * effective),
            expires_at=now + timedelta(hours=effect.duration_hours),
            description=f"{event.value.replace('_', ' ').title()} (mitigated {mitigation:.0%})",
        )
        plant = plant.evolve(
            health=plant.health + health_delta,
            water_level=plant.water_level + water_delta,
            modifiers=plant.modifiers + (modifier,),
        )

        if health_delta < 0:
            damaged += 1
        elif health_delta > 0 or quality_delta > 0:
            improved += 1

        moisture = clamp(plot.moisture + water_delta, 0.0, 100.0)
        if not plant.alive:
            lost += 1
            logger.info("Plant %s on plot %s was lost to %s", plant.id, plot.id, event.value)
            updated.append(replace(plot, plant=None, moisture=moisture))
        else:
            updated.append(replace(plot, plant=plant, moisture=moisture))
        logger.debug(
            "Weather %s on plot %s: mitigation=%.2f effective=%.2f health%+.1f water%+.1f",
            event.value,
            plot.id,
            mitigation,
            effective,
            health_delta,
            water_delta,
        )

    message = _summary(event, affected, damaged, improved, lost)
    return WeatherEventReport(
        plots=tuple(updated),
        event=event,
        affected=affected,
        damaged=damaged,
        improved=improved,
        lost=lost,
        message=message,
    )


__all__ = ["WeatherEventReport", "process_weather_event", "mitigation_for", "structure_mitigation"]
