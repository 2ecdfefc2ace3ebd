# geodesic.py
import math
import logging

import numpy as np
from numba import njit

from lensing.constants import SIN_FLOOR
logging.getLogger('numba').setLevel(logging.ERROR)

# ----------------------------------------------------------------------------
# Schwarzschild null geodesics in spherical coordinates (r, θ, φ)
# ----------------------------------------------------------------------------
# A ray state is six float64 values (r, θ, φ, dr, dθ, dφ), derivatives taken
# with respect to the affine parameter λ.  The time component is not stored:
# dt/dλ = E / f with f = 1 - r_s / r and E conserved along the ray.
# ----------------------------------------------------------------------------


@njit(error_model="numpy")
def floored_sin(theta):
    """sin(θ) with magnitude at least SIN_FLOOR, sign preserved."""
    s = math.sin(theta)
    if abs(s) < SIN_FLOOR:
        return SIN_FLOOR if s >= 0.0 else -SIN_FLOOR
    return s


@njit(error_model="numpy")
def cartesian_to_spherical(x, y, z):
    r = math.sqrt(x * x + y * y + z * z)
    cos_th = min(1.0, max(-1.0, z / r))
    return r, math.acos(cos_th), math.atan2(y, x)


@njit(error_model="numpy")
def spherical_to_cartesian(r, theta, phi):
    s = floored_sin(theta)
    return (r * s * math.cos(phi),
            r * s * math.sin(phi),
            r * math.cos(theta))


@njit(error_model="numpy")
def ray_direction(px, py, width, height, cam, jitter_x, jitter_y):
    """
    Unit world-space direction through pixel (px, py).

    cam is the (14,) camera argument array: position, right, up, forward,
    tan_half_fov, aspect.  Row 0 is the top of the image.
    """
    tan_half_fov = cam[12]
    aspect = cam[13]
    u = (2.0 * (px + 0.5 + jitter_x) / width - 1.0) * aspect * tan_half_fov
    v = (1.0 - 2.0 * (py + 0.5 + jitter_y) / height) * tan_half_fov
    dx = u * cam[3] + v * cam[6] + cam[9]
    dy = u * cam[4] + v * cam[7] + cam[10]
    dz = u * cam[5] + v * cam[8] + cam[11]
    n = math.sqrt(dx * dx + dy * dy + dz * dz)
    return dx / n, dy / n, dz / n


@njit(error_model="numpy")
def energy(state, rs):
    """
    Conserved E = f * dt/dλ, with dt/dλ solved from the null condition
    f (dt/dλ)² = dr²/f + r² (dθ² + sin²θ dφ²).
    """
    r = state[0]
    sin_th = math.sin(state[1])
    dr = state[3]
    dth = state[4]
    dph = state[5]
    f = 1.0 - rs / r
    radicand = (dr * dr / f + r * r * (dth * dth + sin_th * sin_th * dph * dph)) / f
    return f * math.sqrt(max(0.0, radicand))


@njit(error_model="numpy")
def init_ray(x, y, z, dx, dy, dz, rs):
    """
    Build the ray state at Cartesian position (x, y, z) heading along the
    unit vector (dx, dy, dz).  Returns (state, E).
    """
    r, theta, phi = cartesian_to_spherical(x, y, z)
    sin_th = math.sin(theta)
    cos_th = math.cos(theta)
    sin_ph = math.sin(phi)
    cos_ph = math.cos(phi)

    state = np.empty(6, dtype=np.float64)
    state[0] = r
    state[1] = theta
    state[2] = phi
    state[3] = sin_th * cos_ph * dx + sin_th * sin_ph * dy + cos_th * dz
    state[4] = (cos_th * cos_ph * dx + cos_th * sin_ph * dy - sin_th * dz) / r
    state[5] = (-sin_ph * dx + cos_ph * dy) / (r * floored_sin(theta))
    return state, energy(state, rs)


# ------------------------- Geodesic RHS --------------------------------------
@njit(error_model="numpy")
def geodesic_rhs(state, E, rs):
    """
    Right-hand side of the geodesic equations d²x^a/dλ² = -Γ^a_bc ẋ^b ẋ^c.

    Non-zero Christoffel symbols used:
        Γ^r_tt = r_s f / (2 r²)     Γ^r_rr = -r_s / (2 r² f)
        Γ^r_θθ = -r f               Γ^r_φφ = -r f sin²θ
        Γ^θ_rθ = 1/r                Γ^θ_φφ = -sinθ cosθ
        Γ^φ_rφ = 1/r                Γ^φ_θφ = cosθ / sinθ

    Returns the 6-tuple (dr, dθ, dφ, d²r, d²θ, d²φ).  Accepts an array or a
    6-tuple for *state*.
    """
    r = state[0]
    theta = state[1]
    dr = state[3]
    dth = state[4]
    dph = state[5]

    f = 1.0 - rs / r
    dt = E / f
    sin_th = math.sin(theta)
    cos_th = math.cos(theta)
    r2 = r * r

    ddr = (-(rs / (2.0 * r2)) * f * dt * dt
           + (rs / (2.0 * r2 * f)) * dr * dr
           + r * f * (dth * dth + sin_th * sin_th * dph * dph))
    ddth = -2.0 * dr * dth / r + sin_th * cos_th * dph * dph
    ddph = -2.0 * dr * dph / r - 2.0 * cos_th / floored_sin(theta) * dth * dph
    return dr, dth, dph, ddr, ddth, ddph


@njit(error_model="numpy")
def _offset(state, k, a):
    return (state[0] + a * k[0], state[1] + a * k[1], state[2] + a * k[2],
            state[3] + a * k[3], state[4] + a * k[4], state[5] + a * k[5])


# ------------------------- RK4 stepper ---------------------------------------
@njit(error_model="numpy")
def rk4_step(state, E, h, rs):
    """
    Advance *state* in place by one classical Runge-Kutta step of size h:

        k1 = F(y)
        k2 = F(y + h/2 k1)
        k3 = F(y + h/2 k2)
        k4 = F(y + h k3)
        y <- y + h/6 (k1 + 2 k2 + 2 k3 + k4)
    """
    k1 = geodesic_rhs(state, E, rs)
    k2 = geodesic_rhs(_offset(state, k1, 0.5 * h), E, rs)
    k3 = geodesic_rhs(_offset(state, k2, 0.5 * h), E, rs)
    k4 = geodesic_rhs(_offset(state, k3, h), E, rs)
    w = h / 6.0
    for i in range(6):
        state[i] += w * (k1[i] + 2.0 * k2[i] + 2.0 * k3[i] + k4[i])
