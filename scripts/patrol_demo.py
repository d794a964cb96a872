#!/usr/bin/env python3
"""Walk one guard through patrol, investigate and chase, logging transitions.

Builds a three-point patrol route on an open grid with a wall across it,
makes a noise near the guard, then walks a target past it and out of sight.

Usage:
    python scripts/patrol_demo.py [--realtime]
"""

# ruff: noqa: E402  # Allow path setup before importing project modules

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import numpy as np

# Add the project root to Python path so running as a script works.
project_root = Path(__file__).resolve().parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from warden.config import AgentConfig
from warden.game.targets import Target
from warden.simulation import Simulation

logger = logging.getLogger("patrol_demo")


def build_grid(size: int = 24) -> np.ndarray:
    """Open square with a wall along x=12 that has a gap near the top."""
    walkable = np.ones((size, size), dtype=bool)
    walkable[12, : size - 4] = False
    return walkable


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument(
        "--realtime", action="store_true", help="pace the loop to the wall clock"
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(message)s")

    sim = Simulation()
    guard = sim.spawn_agent(
        AgentConfig(
            patrol_points=((4.0, 0.0, 4.0), (18.0, 0.0, 4.0), (18.0, 0.0, 18.0)),
        ),
        position=(4.0, 0.0, 4.0),
        walkable=build_grid(),
        name="Guard",
    )
    intruder = Target((40.0, 0.0, 40.0), name="intruder")
    sim.add_target(intruder)

    def run_for(seconds: float) -> None:
        if args.realtime:
            sim.run(seconds)
        else:
            sim.advance(seconds)

    run_for(8.0)
    logger.info(f"Noise near the guard at t={sim.time:.1f}s")
    sim.emit_noise(guard.body.position + np.array([6.0, 0.0, 2.0]), volume=0.8)
    run_for(6.0)

    logger.info(f"Intruder walks up to the guard at t={sim.time:.1f}s")
    intruder.move_to(guard.body.position + np.array([3.0, 0.0, 3.0]))
    run_for(2.0)

    logger.info(f"Intruder slips away at t={sim.time:.1f}s")
    intruder.move_to((40.0, 0.0, 40.0))
    run_for(12.0)

    logger.info(f"Final state: {guard.state}, position {guard.body.position.round(2)}")
    sim.despawn(guard)


if __name__ == "__main__":
    main()
