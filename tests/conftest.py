import random
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Ensure 'src' is on sys.path for test imports without installing the package
ROOT = Path(__file__).resolve().parents[1]
src = ROOT / "src"
if str(src) not in sys.path:
    sys.path.insert(0, str(src))

from moonlit_garden.clock import ManualClock  # noqa: E402
from moonlit_garden.models import Gardener, Plant  # noqa: E402

T0 = datetime(2024, 3, 21, 6, 0, tzinfo=timezone.utc)


class ScriptedRandom(random.Random):
    """random.Random whose draws are fixed up front.

    ``values`` feed ``random()`` in order; ``picks`` are the indexes returned
    by ``choice`` (0 once exhausted).
    """

    def __init__(self, values=(), picks=()):
        super().__init__(0)
        self._values = list(values)
        self._picks = list(picks)

    def random(self):
        if not self._values:
            raise AssertionError("ScriptedRandom ran out of values")
        return self._values.pop(0)

    def choice(self, seq):
        index = self._picks.pop(0) if self._picks else 0
        return seq[index]

    @property
    def remaining(self):
        return len(self._values)


@pytest.fixture
def scripted():
    """Factory for ScriptedRandom: ``scripted([0.1, 0.9], picks=[2])``."""
    return ScriptedRandom


@pytest.fixture
def now():
    return T0


@pytest.fixture
def clock():
    return ManualClock(T0)


@pytest.fixture
def gardener():
    return Gardener(id="g1", name="Ivy", gardening_skill=10)


@pytest.fixture
def make_plant():
    def _make(**overrides):
        fields = dict(
            id="plant_g1_1",
            variety_id="flower_moonflower",
            plot_id=0,
            created_at=T0,
            last_interaction=T0,
            health=100.0,
            water_level=50.0,
            growth_progress=0.0,
        )
        fields.update(overrides)
        return Plant(**fields)

    return _make
