"""
forces.py — Body Forces & Explicit Particle Integration
========================================================
Particles carry their own velocity, so external forces are applied to
particles, not to the grid:

  v_y += dt * g                          (gravity, vertical only)
  v   -= v² * sign(v) * damping          (quadratic drag, per axis)
  x   += v * dt                          (symplectic Euler)

The drag term always opposes motion and grows with speed squared; with
damping = 0 it vanishes exactly.
"""

import numpy as np


def integrate_particles(pos: np.ndarray, vel: np.ndarray, num_particles: int,
                        dt: float, gravity: float, damping: float):
    """
    Advance velocities and positions of the active particles in-place.

    Args:
        pos, vel      : (max_particles, 2) particle arrays
        num_particles : Active slot count
        dt            : Timestep (seconds)
        gravity       : Vertical acceleration (negative = down)
        damping       : Quadratic drag coefficient
    """
    v = vel[:num_particles]
    x = pos[:num_particles]

    v[:, 1] += dt * gravity
    v -= v * v * damping * np.sign(v)
    x += v * dt

