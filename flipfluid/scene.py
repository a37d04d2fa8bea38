"""
scene.py — Scene Setup
=======================
Builds a ready-to-run FlipFluid: the classic "dam break" block of water
packed into the lower-left corner of a square tank, obstacle parked at
the right-hand edge until the user grabs it.
"""

import logging
import math

import numpy as np

from .simulation import FlipFluid

logger = logging.getLogger(__name__)

DEFAULT_OBSTACLE = (3.0, 2.0, 0.15)


def hex_block(num_x: int, num_y: int, h: float, r: float) -> np.ndarray:
    """
    Hexagonally packed particle block with its first particle at (h + r, h + r).
    Odd rows are shifted right by r; rows are √3·r apart.

    Returns: (num_x * num_y, 2) float32 positions, column-major (i outer).
    """
    dx = 2.0 * r
    dy = math.sqrt(3.0) / 2.0 * dx

    i = np.repeat(np.arange(num_x), num_y)
    j = np.tile(np.arange(num_y), num_x)
    pos = np.empty((num_x * num_y, 2), dtype=np.float32)
    pos[:, 0] = h + r + dx * i + np.where(j % 2 == 0, 0.0, r)
    pos[:, 1] = h + r + dy * j
    return pos


def setup_dam_break(resolution: int = 100, tank_width: float = 3.0, tank_height: float = 3.0,
                    rel_water_width: float = 0.6, rel_water_height: float = 0.8,
                    density: float = 1000.0, obstacle=DEFAULT_OBSTACLE) -> FlipFluid:
    """
    Args:
        resolution       : Grid cells along the tank height
        tank_width/height: Domain size
        rel_water_*      : Fraction of the tank the initial block fills
        density          : Fluid density
        obstacle         : (x, y, radius) of the resting obstacle

    Returns: a seeded FlipFluid with capacity equal to the block size
    """
    h = tank_height / resolution
    r = 0.3 * h
    dx = 2.0 * r
    dy = math.sqrt(3.0) / 2.0 * dx

    num_x = math.floor((rel_water_width * tank_width - 2.0 * h - 2.0 * r) / dx)
    num_y = math.floor((rel_water_height * tank_height - 2.0 * h - 2.0 * r) / dy)
    if num_x <= 0 or num_y <= 0:
        raise ValueError(
            f"Water block of {rel_water_width}x{rel_water_height} holds no particles at resolution {resolution}"
        )

    fluid = FlipFluid(density, tank_width, tank_height, h, r, num_x * num_y)
    fluid.seed_particles(hex_block(num_x, num_y, h, r))

    ox, oy, oradius = obstacle
    fluid.set_obstacle(ox, oy, reset=True, radius=oradius)

    logger.info("Dam break scene: %dx%d particle block, %d particles", num_x, num_y, num_x * num_y)
    return fluid
