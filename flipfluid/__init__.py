"""
flipfluid/ — 2D PIC/FLIP Fluid Solver
======================================
Exports the interfaces a driver or renderer needs.

Driver (animation loop) uses: FlipFluid → simulate() / step(), set_obstacle()
Scene setup uses:             setup_dam_break(), hex_block()
Renderer reads:               FlipFluid.render_state() or the grid / particle arrays
"""

from .config import ConfigError, FluidConfig, StepParams
from .grid import AIR_CELL, FLUID_CELL, SOLID_CELL, FlipGrid
from .particles import ParticleStore
from .scene import hex_block, setup_dam_break
from .simulation import FlipFluid
from .spatial_hash import SpatialHash

__all__ = [
    "AIR_CELL",
    "ConfigError",
    "FLUID_CELL",
    "FlipFluid",
    "FlipGrid",
    "FluidConfig",
    "ParticleStore",
    "SOLID_CELL",
    "SpatialHash",
    "StepParams",
    "hex_block",
    "setup_dam_break",
]
