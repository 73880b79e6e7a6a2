from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from . import __version__
from .catalog import default_catalog
from .clock import ManualClock
from .config import load_config
from .exceptions import GardenError
from .garden import Garden
from .models import Gardener
from .rng import RNGManager

logger = logging.getLogger(__name__)


def _setup_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="moonlit-garden",
        description="Moonlit Garden - garden simulation runner",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase log verbosity (-v, -vv)")
    parser.add_argument("--config", type=str, default=None, help="YAML file overriding garden defaults")
    sub = parser.add_subparsers(dest="command", required=True)

    sim = sub.add_parser("simulate", help="Grow one plant from seed to harvest and print a JSON summary")
    sim.add_argument("--seed", type=str, default="moonlit", help="Garden seed (int or string)")
    sim.add_argument("--variety", type=str, default="flower_moonflower", help="Variety id to plant")
    sim.add_argument("--season", type=str, default="spring")
    sim.add_argument("--moon", type=str, default="full")
    sim.add_argument("--weather", type=str, default="clear")
    sim.add_argument("--skill", type=float, default=10.0, help="Gardening skill level")
    sim.add_argument("--performance", type=float, default=0.9, help="Sub-score used for every mini-game")
    sim.add_argument("--hours", type=float, default=96.0, help="Simulated hours to grow")
    sim.add_argument("--step", type=float, default=4.0, help="Hours per growth tick")

    sub.add_parser("varieties", help="List the packaged plant varieties")
    return parser


def simulate(args: argparse.Namespace) -> Dict[str, Any]:
    config = load_config(args.config)
    clock = ManualClock()
    garden = Garden(
        Gardener(id="cli", name="Night Gardener", gardening_skill=args.skill),
        plot_count=1,
        season=args.season,
        moon=args.moon,
        weather=args.weather,
        rngm=RNGManager(args.seed),
        clock=clock,
        config=config,
    )
    p = args.performance
    planted = garden.plant(0, args.variety, {"timing": p, "precision": p, "pattern": p})

    timeline: List[Dict[str, Any]] = []
    elapsed = 0.0
    step = max(0.1, args.step)
    while elapsed < args.hours:
        clock.advance(step)
        elapsed += step
        plant = garden.tick(0)
        if plant.water_level < 30:
            plant = garden.water(0, {"distribution": p, "amount": p, "technique": p}).plant
        timeline.append(
            {
                "hour": round(elapsed, 2),
                "stage": plant.stage.value,
                "progress": round(plant.growth_progress, 2),
                "health": round(plant.health, 2),
                "water": round(plant.water_level, 2),
            }
        )
        if plant.is_harvest_ready(config.harvest.ready_progress):
            break

    outcome = garden.harvest(0, {"precision": p, "speed": p, "carefulness": p})
    return {
        "seed": garden.rngm.seed_hex,
        "variety": args.variety,
        "planting_success": planted.result.success,
        "traits": [t.name for t in planted.plant.traits],
        "timeline": timeline,
        "harvest": outcome.to_dict(),
        "experience": garden.experience,
    }


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    _setup_logging(args.verbose)

    try:
        if args.command == "varieties":
            data: Any = [
                {"id": v.id, "name": v.name, "preferred_season": v.preferred_season.value if v.preferred_season else None}
                for v in default_catalog().all()
            ]
        else:
            data = simulate(args)
    except GardenError as e:
        logger.error("%s", e)
        return 2
    # Print JSON summary so it can be diffed across runs
    print(json.dumps(data, indent=2, sort_keys=True))
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
