from __future__ import annotations

import logging
import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .environment import WeatherEventType
from .exceptions import ConfigError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "MOONLIT_GARDEN_CONFIG"
_DEFAULTS_PACKAGE = "moonlit_garden.data"
_DEFAULTS_FILE = "garden.yaml"


class GrowthConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    base_rate_per_hour: float = Field(1.5, gt=0, description="Percent of growth per hour before modifiers")
    water_loss_per_hour: Dict[str, float] = Field(
        default_factory=lambda: {"sunny": 3.0, "windy": 2.5, "rainy": 0.5}
    )
    default_water_loss_per_hour: float = Field(1.5, ge=0)
    watering_interval_hours: float = Field(4.0, gt=0)


class HarvestConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ready_progress: float = Field(95.0, ge=0, le=100)
    jitter_chance: float = Field(0.3, ge=0, le=1)
    jitter_step: float = Field(0.5, ge=0)


class PlotConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    grid_columns: int = Field(3, ge=1)
    default_fertility: float = Field(50.0, ge=0, le=100)
    default_moisture: float = Field(50.0, ge=0, le=100)


class WeatherEffect(BaseModel):
    """Per-unit-of-intensity effect of a weather event on one plant."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    health: float = 0.0
    water: float = 0.0
    quality: float = 0.0
    yield_: float = Field(0.0, alias="yield")
    growth: float = 0.0
    duration_hours: float = Field(24.0, gt=0)


class WeatherEventConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    mitigation_cap: float = Field(0.95, ge=0, le=1)
    skill_mitigation_per_level: float = Field(0.005, ge=0)
    skill_mitigation_cap: float = Field(0.25, ge=0, le=1)
    response_weight: float = Field(0.3, ge=0, le=1)
    effects: Dict[str, WeatherEffect] = Field(default_factory=dict)

    @field_validator("effects")
    @classmethod
    def known_event_types(cls, v: Dict[str, WeatherEffect]) -> Dict[str, WeatherEffect]:
        normalized: Dict[str, WeatherEffect] = {}
        for key, effect in v.items():
            event = WeatherEventType.try_parse(key)
            if event is None:
                raise ValueError(f"unknown weather event type: {key!r}")
            normalized[event.value] = effect
        if normalized and WeatherEventType.DEFAULT.value not in normalized:
            raise ValueError("weather effect table must define a 'default' entry")
        return normalized

    def effect_for(self, event: WeatherEventType) -> WeatherEffect:
        return self.effects.get(event.value) or self.effects.get(WeatherEventType.DEFAULT.value) or WeatherEffect()


class GardenConfig(BaseModel):
    """Tunable constants of the garden engine.

    Defaults ship inside the package (``data/garden.yaml``); a user file can
    override any subset of keys.
    """

    model_config = ConfigDict(extra="forbid")

    growth: GrowthConfig = Field(default_factory=GrowthConfig)
    harvest: HarvestConfig = Field(default_factory=HarvestConfig)
    plots: PlotConfig = Field(default_factory=PlotConfig)
    weather_events: WeatherEventConfig = Field(default_factory=WeatherEventConfig)

    def water_loss_for(self, weather: Any) -> float:
        key = getattr(weather, "value", str(weather)).lower()
        return self.growth.water_loss_per_hour.get(key, self.growth.default_water_loss_per_hour)


def _deep_merge(base: dict, overlay: dict) -> dict:
    merged = dict(base)
    for k, v in (overlay or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            merged[k] = _deep_merge(base[k], v)
        else:
            merged[k] = v
    return merged


def _read_yaml(path: Path) -> dict:
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at the top level")
    return data


def _load_packaged_defaults() -> dict:
    try:
        text = resources.files(_DEFAULTS_PACKAGE).joinpath(_DEFAULTS_FILE).read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.warning("Packaged garden defaults not found; falling back to model defaults.")
        return {}
    return yaml.safe_load(text) or {}


def load_config(path: Optional[Union[str, Path]] = None) -> GardenConfig:
    """Load the garden configuration.

    Packaged defaults are overlaid with the user file given as ``path`` or,
    when omitted, named by the ``MOONLIT_GARDEN_CONFIG`` environment variable.

    Raises:
        ConfigError: if a user file is missing, malformed or fails validation.
    """
    data = _load_packaged_defaults()
    user_path = path or os.environ.get(CONFIG_ENV_VAR)
    if user_path:
        p = Path(user_path)
        if not p.exists():
            raise ConfigError(f"Garden config file not found: {p}")
        data = _deep_merge(data, _read_yaml(p))
        logger.info("Loaded garden config overrides from %s", p)
    try:
        cfg = GardenConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid garden config: {e}") from e
    logger.debug("Garden config resolved: %s", cfg)
    return cfg


@lru_cache(maxsize=1)
def default_config() -> GardenConfig:
    return load_config()


__all__ = [
    "GardenConfig",
    "GrowthConfig",
    "HarvestConfig",
    "PlotConfig",
    "WeatherEffect",
    "WeatherEventConfig",
    "load_config",
    "default_config",
]
