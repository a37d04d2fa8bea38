"""
collisions.py — Obstacle & Wall Collision
==========================================
One circular obstacle (the thing the user drags around) plus the tank walls.

Obstacle, for every particle closer than R + r to its center:
  1. inherit the obstacle's velocity        (it drags fluid along)
  2. move out to exactly R + r along the contact normal
  3. kick outward by 3 * penetration²        (stiffer the deeper it was)

Walls: x is clamped to [h + r, (f_num_x - 1) h - r] and the horizontal
velocity zeroed on contact. y is clamped the same way by default; with
vertical_wrap the domain is periodic top-to-bottom instead.
"""

import math

import numba as nb

REPULSION_STIFFNESS = 3.0


@nb.njit(cache=True)
def _collide(pos, vel, num_particles, f_num_x, f_num_y, h, particle_radius,
             obstacle_x, obstacle_y, obstacle_radius, obstacle_vel_x, obstacle_vel_y,
             vertical_wrap, stiffness):
    r = particle_radius
    min_dist = obstacle_radius + r
    min_dist2 = min_dist * min_dist

    min_x = h + r
    max_x = (f_num_x - 1) * h - r
    min_y = h + r
    max_y = (f_num_y - 1) * h - r

    for i in range(num_particles):
        x = pos[i, 0]
        y = pos[i, 1]

        dx = x - obstacle_x
        dy = y - obstacle_y
        d2 = dx * dx + dy * dy

        if d2 < min_dist2:
            vel[i, 0] += obstacle_vel_x
            vel[i, 1] += obstacle_vel_y

            d = math.sqrt(d2)
            if d > 0.0:
                nx = dx / d
                ny = dy / d
            else:
                # dead center: no contact normal, push straight up
                nx = 0.0
                ny = 1.0

            depth = min_dist - d
            x = obstacle_x + nx * min_dist
            y = obstacle_y + ny * min_dist

            kick = stiffness * depth * depth
            vel[i, 0] += nx * kick
            vel[i, 1] += ny * kick

        if x < min_x:
            x = min_x
            vel[i, 0] = 0.0
        if x > max_x:
            x = max_x
            vel[i, 0] = 0.0

        if vertical_wrap:
            if y < min_y:
                y = max_y - (min_y - y)
            if y > max_y:
                y = min_y + (y - max_y)
        else:
            if y < min_y:
                y = min_y
                vel[i, 1] = 0.0
            if y > max_y:
                y = max_y
                vel[i, 1] = 0.0

        pos[i, 0] = x
        pos[i, 1] = y


def handle_particle_collisions(pos, vel, num_particles, f_num_x, f_num_y, h, particle_radius,
                               obstacle_x, obstacle_y, obstacle_radius,
                               obstacle_vel_x=0.0, obstacle_vel_y=0.0, vertical_wrap=False):
    """
    Resolve obstacle contact and wall contact for every active particle.
    Modifies pos and vel in-place.
    """
    _collide(
        pos, vel, num_particles, f_num_x, f_num_y, float(h), float(particle_radius),
        float(obstacle_x), float(obstacle_y), float(obstacle_radius),
        float(obstacle_vel_x), float(obstacle_vel_y), bool(vertical_wrap),
        REPULSION_STIFFNESS,
    )
