"""
particles.py — Fixed-Capacity Particle Store
=============================================
The Lagrangian half of the solver. Every particle is a slot in three
preallocated arrays:

  pos   → (max_particles, 2)  world position
  vel   → (max_particles, 2)  velocity
  color → (max_particles, 3)  RGB in [0, 1], starts pure blue

Only slots 0..num_particles-1 are active. Nothing inside a tick creates
or destroys particles; seed() is the only way the active block changes.
"""

import numpy as np


class ParticleStore:
    def __init__(self, max_particles: int, radius: float):
        self.max_particles = int(max_particles)
        self.radius = radius
        self.num_particles = 0

        self.pos = np.zeros((self.max_particles, 2), dtype=np.float32)
        self.vel = np.zeros((self.max_particles, 2), dtype=np.float32)
        self.color = np.zeros((self.max_particles, 3), dtype=np.float32)
        self.color[:, 2] = 1.0

    def seed(self, positions, velocities=None):
        """
        Replace the active block with new particles.

        Args:
            positions  : array-like (m, 2), m <= max_particles
            velocities : array-like (m, 2) or None for particles at rest

        Colors of the seeded slots are reset to blue.
        """
        positions = np.asarray(positions, dtype=np.float32)
        if positions.ndim != 2 or positions.shape[1] != 2:
            raise ValueError(f"positions must be shape (m, 2), got {positions.shape}")
        m = positions.shape[0]
        if m > self.max_particles:
            raise ValueError(f"{m} particles exceed capacity of {self.max_particles}")

        if velocities is None:
            velocities = np.zeros_like(positions)
        else:
            velocities = np.asarray(velocities, dtype=np.float32)
            if velocities.shape != positions.shape:
                raise ValueError(
                    f"velocities must match positions shape {positions.shape}, got {velocities.shape}"
                )

        self.pos[:] = 0.0
        self.vel[:] = 0.0
        self.pos[:m] = positions
        self.vel[:m] = velocities
        self.color[:] = (0.0, 0.0, 1.0)
        self.num_particles = m

    def active_pos(self) -> np.ndarray:
        return self.pos[:self.num_particles]

    def active_vel(self) -> np.ndarray:
        return self.vel[:self.num_particles]

    def active_color(self) -> np.ndarray:
        return self.color[:self.num_particles]

    def save_state(self) -> dict:
        return {
            "num_particles": self.num_particles,
            "pos": self.active_pos().copy(),
            "vel": self.active_vel().copy(),
            "color": self.active_color().copy(),
        }

    def __len__(self):
        return self.num_particles
