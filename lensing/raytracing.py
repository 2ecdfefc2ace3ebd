# raytracing.py
import math
import enum

import numpy as np
from numba import njit, prange

from lensing.constants import (
    CAPTURED, D_LAMBDA, DISK_COLOR, DISK_FALLOFF, DISK_OPACITY,
    DISK_PATTERN_AMP, DISK_PATTERN_FREQ, ESCAPE_R, ESCAPED, GROUP_SIZE,
    HORIZON_FACTOR, MAX_STEPS, MAX_STEPS_REACHED, OPACITY_CUTOFF, OPAQUE,
    SAGA_RS, STEP_SCALE_MAX, STEP_SCALE_MIN,
)
from lensing.geodesic import init_ray, ray_direction, rk4_step, spherical_to_cartesian


class Termination(enum.IntEnum):
    """Why the integration loop of a pixel stopped."""
    MAX_STEPS = MAX_STEPS_REACHED
    CAPTURED = CAPTURED
    ESCAPED = ESCAPED
    OPAQUE = OPAQUE


# ----------------------------------------------------------------------------
# Intersections
# ----------------------------------------------------------------------------

@njit(error_model="numpy")
def step_size(r, rs):
    """Affine step: small near the horizon, large far away."""
    scale = min(STEP_SCALE_MAX, max(STEP_SCALE_MIN, (r - rs) / rs))
    return D_LAMBDA * scale


@njit(error_model="numpy")
def disk_intensity(rho, angle, r1, r2):
    """
    Triangular radial profile around the band midpoint, modulated by an
    azimuthal sinusoid and shaped by exp(-k|.|).  Equals 1 at the midpoint.
    """
    mid = 0.5 * (r1 + r2)
    half = 0.5 * (r2 - r1)
    radial = abs(rho - mid) / half
    pattern = 1.0 + DISK_PATTERN_AMP * math.sin(DISK_PATTERN_FREQ * angle)
    return math.exp(-DISK_FALLOFF * abs(radial * pattern))


@njit(error_model="numpy")
def intersect_disk(prev, cur, disk, color, transmittance):
    """
    Composite the disk if the segment prev -> cur crosses the y = 0 plane
    inside the [r1, r2] band.  Adds into *color* and returns the new
    transmittance.
    """
    if not prev[1] * cur[1] < 0.0:
        return transmittance
    t = prev[1] / (prev[1] - cur[1])
    hx = prev[0] + t * (cur[0] - prev[0])
    hz = prev[2] + t * (cur[2] - prev[2])
    rho = math.sqrt(hx * hx + hz * hz)
    r1 = disk[0]
    r2 = disk[1]
    if rho < r1 or rho > r2:
        return transmittance

    intensity = disk_intensity(rho, math.atan2(hz, hx), r1, r2)
    alpha = DISK_OPACITY * intensity
    glow = intensity * intensity
    weight = alpha * transmittance
    color[0] += DISK_COLOR[0] * glow * weight
    color[1] += DISK_COLOR[1] * glow * weight
    color[2] += DISK_COLOR[2] * glow * weight
    return transmittance * (1.0 - alpha)


@njit(error_model="numpy")
def intersect_objects(pos, objects, num_objects, color, transmittance):
    """
    Point-in-sphere test at *pos* against objects[:num_objects] in order.
    The first hit adds its colour under the current transmittance and makes
    the ray opaque.  Returns the new transmittance.
    """
    for i in range(num_objects):
        dx = pos[0] - objects[i, 0]
        dy = pos[1] - objects[i, 1]
        dz = pos[2] - objects[i, 2]
        radius = objects[i, 3]
        if dx * dx + dy * dy + dz * dz <= radius * radius:
            color[0] += objects[i, 4] * transmittance
            color[1] += objects[i, 5] * transmittance
            color[2] += objects[i, 6] * transmittance
            return 0.0
    return transmittance


# ----------------------------------------------------------------------------
# Integration loop
# ----------------------------------------------------------------------------

@njit(error_model="numpy")
def trace_ray(state, E, rs, disk, objects, num_objects, max_steps, color, path):
    """
    March one ray through the scene.

    *color* (3,) accumulates RGB.  When *path* has rows, the Cartesian
    position before the first step and after every step is written there.
    Returns (termination code, transmittance, steps taken).
    """
    horizon_r = HORIZON_FACTOR * rs
    transmittance = 1.0
    prev = np.empty(3, dtype=np.float64)
    cur = np.empty(3, dtype=np.float64)
    prev[0], prev[1], prev[2] = spherical_to_cartesian(state[0], state[1], state[2])
    if path.shape[0] > 0:
        path[0, :] = prev

    for step in range(max_steps):
        r = state[0]
        # NaN counts as captured
        if not r > horizon_r:
            return CAPTURED, 0.0, step
        if r > ESCAPE_R:
            return ESCAPED, transmittance, step

        rk4_step(state, E, step_size(r, rs), rs)
        cur[0], cur[1], cur[2] = spherical_to_cartesian(state[0], state[1], state[2])
        if step + 1 < path.shape[0]:
            path[step + 1, :] = cur

        transmittance = intersect_disk(prev, cur, disk, color, transmittance)
        transmittance = intersect_objects(cur, objects, num_objects, color, transmittance)
        if transmittance <= OPACITY_CUTOFF:
            return OPAQUE, transmittance, step + 1

        prev[0] = cur[0]
        prev[1] = cur[1]
        prev[2] = cur[2]
    return MAX_STEPS_REACHED, transmittance, max_steps


# ----------------------------------------------------------------------------
# Accumulation
# ----------------------------------------------------------------------------

@njit(error_model="numpy")
def blend_history(color, history, blend_factor, out):
    """
    out = (rgb, 1) * (1 - blend) + history * blend, all four channels.
    *out* and *history* may alias.
    """
    keep = 1.0 - blend_factor
    r = color[0] * keep + history[0] * blend_factor
    g = color[1] * keep + history[1] * blend_factor
    b = color[2] * keep + history[2] * blend_factor
    a = keep + history[3] * blend_factor
    out[0] = r
    out[1] = g
    out[2] = b
    out[3] = a


@njit(error_model="numpy")
def shade_pixel(x, y, width, height, cam, disk, objects, num_objects,
                jitter_x, jitter_y, blend_factor, rs, max_steps, out, history, codes, no_path):
    dx, dy, dz = ray_direction(x, y, width, height, cam, jitter_x, jitter_y)
    state, E = init_ray(cam[0], cam[1], cam[2], dx, dy, dz, rs)
    color = np.zeros(3, dtype=np.float64)
    code, _, _ = trace_ray(state, E, rs, disk, objects, num_objects, max_steps, color, no_path)
    blend_history(color, history[y, x], blend_factor, out[y, x])
    history[y, x, :] = out[y, x]
    codes[y, x] = code


# ----------------------------------------------------------------------------
# Dispatch
# ----------------------------------------------------------------------------

def dispatch_groups(width, height, group_size=GROUP_SIZE):
    """Number of work groups along x and y covering a width x height image."""
    return ((width + group_size - 1) // group_size,
            (height + group_size - 1) // group_size)


@njit(parallel=True, error_model="numpy")
def render_kernel(out, history, codes, cam, disk, objects, num_objects,
                  jitter_x, jitter_y, blend_factor, rs, max_steps):
    """
    Render one frame.  Work groups of GROUP_SIZE x GROUP_SIZE pixels run in
    parallel; every pixel writes only its own out/history/codes cell.
    """
    height = out.shape[0]
    width = out.shape[1]
    groups_x = (width + GROUP_SIZE - 1) // GROUP_SIZE
    groups_y = (height + GROUP_SIZE - 1) // GROUP_SIZE
    no_path = np.empty((0, 3), dtype=np.float64)
    for g in prange(groups_x * groups_y):
        gx = g % groups_x
        gy = g // groups_x
        for ly in range(GROUP_SIZE):
            y = gy * GROUP_SIZE + ly
            if y >= height:
                break
            for lx in range(GROUP_SIZE):
                x = gx * GROUP_SIZE + lx
                if x >= width:
                    break
                shade_pixel(x, y, width, height, cam, disk, objects, num_objects,
                            jitter_x, jitter_y, blend_factor, rs, max_steps,
                            out, history, codes, no_path)


def trace_path(position, direction, disk, objects, rs=SAGA_RS, max_steps=MAX_STEPS):
    """
    Integrate a single ray and return (path, color, termination, transmittance).
    path is (n, 3) Cartesian positions, starting at *position*.
    """
    position = np.asarray(position, dtype=np.float64)
    direction = np.asarray(direction, dtype=np.float64)
    direction = direction / np.linalg.norm(direction)
    state, E = init_ray(position[0], position[1], position[2],
                        direction[0], direction[1], direction[2], rs)
    color = np.zeros(3, dtype=np.float64)
    path = np.zeros((max_steps + 1, 3), dtype=np.float64)
    code, transmittance, steps = trace_ray(state, E, rs, disk, objects, objects.shape[0],
                                           max_steps, color, path)
    return path[:steps + 1], color, Termination(code), transmittance
