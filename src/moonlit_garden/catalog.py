from __future__ import annotations

import logging
import threading
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .environment import Season
from .exceptions import ConfigError, UnknownVarietyError
from .models import GeneticTrait, PlantVariety

logger = logging.getLogger(__name__)

_DATA_PACKAGE = "moonlit_garden.data"
_VARIETIES_FILE = "varieties.yaml"


class TraitSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    name: str
    description: str = ""
    effect: str = ""
    quality_modifier: float = 0.0
    yield_modifier: float = 0.0
    growth_time_modifier: float = 0.0
    rarity_tier: int = Field(0, ge=0)
    dominant: bool = False

    def to_trait(self) -> GeneticTrait:
        return GeneticTrait(**self.model_dump())


class VarietySpec(BaseModel):
    """One entry of a varieties file; optional fields keep PlantVariety defaults."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1)
    name: str = ""
    category: str = "herb"
    base_quality: Optional[int] = Field(None, ge=1, le=5)
    base_yield: Optional[int] = Field(None, ge=1)
    growth_time_days: Optional[float] = Field(None, gt=0)
    preferred_season: Optional[Season] = None
    base_traits: List[TraitSpec] = Field(default_factory=list)
    description: str = ""

    @field_validator("preferred_season", mode="before")
    @classmethod
    def parse_season(cls, v):
        if v is None or isinstance(v, Season):
            return v
        season = Season.try_parse(v)
        if season is None:
            raise ValueError(f"unknown season: {v!r}")
        return season

    def to_variety(self) -> PlantVariety:
        return PlantVariety(
            id=self.id,
            name=self.name,
            category=self.category,
            base_quality=self.base_quality,
            base_yield=self.base_yield,
            growth_time_days=self.growth_time_days,
            preferred_season=self.preferred_season,
            base_traits=tuple(t.to_trait() for t in self.base_traits),
            description=self.description,
        )


class VarietiesFile(BaseModel):
    model_config = ConfigDict(extra="forbid")

    varieties: List[VarietySpec] = Field(default_factory=list)


def parse_varieties(data: object, source: str = "<memory>") -> List[PlantVariety]:
    try:
        parsed = VarietiesFile.model_validate(data or {})
    except ValidationError as e:
        raise ConfigError(f"Invalid varieties in {source}: {e}") from e
    return [spec.to_variety() for spec in parsed.varieties]


class VarietyCatalog:
    """Registry of plant varieties that can be planted.

    Starter varieties come from the packaged ``varieties.yaml``; hybrids bred
    during play are added with :meth:`register_hybrid`.
    """

    def __init__(self, varieties: Optional[List[PlantVariety]] = None, *, load_defaults: bool = True) -> None:
        self._lock = threading.RLock()
        self._varieties: Dict[str, PlantVariety] = {}
        if load_defaults:
            self._load_defaults()
        for v in varieties or []:
            self.register(v)

    def _load_defaults(self) -> None:
        text = resources.files(_DATA_PACKAGE).joinpath(_VARIETIES_FILE).read_text(encoding="utf-8")
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in packaged {_VARIETIES_FILE}: {e}") from e
        for variety in parse_varieties(data, source=_VARIETIES_FILE):
            self.register(variety)

    def load_file(self, path: Union[str, Path]) -> int:
        """Register every variety in a YAML file; returns how many were loaded."""
        p = Path(path)
        if not p.exists():
            raise ConfigError(f"Varieties file not found: {p}")
        try:
            with p.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {p}: {e}") from e
        loaded = parse_varieties(data, source=str(p))
        for variety in loaded:
            self.register(variety)
        logger.info("Loaded %d varieties from %s", len(loaded), p)
        return len(loaded)

    def register(self, variety: PlantVariety) -> None:
        with self._lock:
            if variety.id in self._varieties:
                logger.debug("Replacing variety %s", variety.id)
            self._varieties[variety.id] = variety

    def register_hybrid(self, variety: PlantVariety) -> None:
        self.register(variety)
        logger.info("Registered hybrid variety %s (%s)", variety.id, variety.name)

    def get(self, variety_id: str) -> PlantVariety:
        with self._lock:
            try:
                return self._varieties[variety_id]
            except KeyError as exc:
                raise UnknownVarietyError(f"Unknown variety id: {variety_id}") from exc

    def __contains__(self, variety_id: object) -> bool:
        with self._lock:
            return variety_id in self._varieties

    def __len__(self) -> int:
        with self._lock:
            return len(self._varieties)

    def all(self) -> List[PlantVariety]:
        with self._lock:
            return sorted(self._varieties.values(), key=lambda v: v.id)


@lru_cache(maxsize=1)
def default_catalog() -> VarietyCatalog:
    return VarietyCatalog()


__all__ = ["TraitSpec", "VarietySpec", "VarietyCatalog", "parse_varieties", "default_catalog"]
