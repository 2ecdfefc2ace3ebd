import math

import numpy as np
import pytest

from lensing.constants import DISK_COLOR, DISK_OPACITY, SAGA_RS
from lensing.geodesic import init_ray
from lensing.raytracing import (
    Termination, blend_history, disk_intensity, intersect_disk, intersect_objects,
    trace_path, trace_ray,
)

RS = SAGA_RS
R1 = 2.2 * RS
R2 = 6.0 * RS
DISK = np.array([R1, R2, 2.0, 1e9])
NO_OBJECTS = np.zeros((0, 9))
NO_PATH = np.empty((0, 3))


def _trace(position, direction, objects=NO_OBJECTS, max_steps=250):
    d = np.asarray(direction, dtype=np.float64)
    d = d / np.linalg.norm(d)
    state, E = init_ray(position[0], position[1], position[2], d[0], d[1], d[2], RS)
    color = np.zeros(3)
    code, transmittance, steps = trace_ray(state, E, RS, DISK, objects, objects.shape[0],
                                           max_steps, color, NO_PATH)
    return Termination(code), transmittance, steps, color


# ------------------------- Termination ---------------------------------------

@pytest.mark.parametrize("r_factor", [0.5, 1.0, 1.005, 1.01])
def test_ray_inside_horizon_is_captured_immediately(r_factor):
    code, transmittance, steps, color = _trace((0.0, 0.0, r_factor * RS), (0.0, 0.3, 1.0))
    assert code == Termination.CAPTURED
    assert transmittance == 0.0
    assert steps == 0
    assert np.all(color == 0.0)


@pytest.mark.parametrize("position", [
    (5 * RS, 0.0, 0.0),
    (1.02 * RS, 0.0, 0.0),
    (3e10, -4e10, 2e10),
    (-2e11, 1e11, 6e11),
])
def test_outward_ray_is_never_captured(position):
    position = np.asarray(position)
    code, transmittance, _, _ = _trace(position, position)
    assert code in (Termination.ESCAPED, Termination.MAX_STEPS)
    assert transmittance == 1.0


def test_outward_ray_escapes_with_enough_steps():
    code, transmittance, steps, color = _trace((5 * RS, 0.0, 0.0), (1.0, 0.0, 0.0), max_steps=20000)
    assert code == Termination.ESCAPED
    assert transmittance == 1.0
    assert np.all(color == 0.0)
    assert steps < 20000


def test_inward_radial_ray_is_captured():
    code, transmittance, _, _ = _trace((8 * RS, 0.0, 0.0), (-1.0, 0.0, 0.0), max_steps=1000)
    assert code == Termination.CAPTURED
    assert transmittance == 0.0


# ------------------------- Disk ----------------------------------------------

def test_disk_intensity_peaks_at_midpoint():
    mid = 0.5 * (R1 + R2)
    for angle in (0.0, 0.3, 2.0):
        assert disk_intensity(mid, angle, R1, R2) == pytest.approx(1.0)
    assert disk_intensity(R1, 0.0, R1, R2) == pytest.approx(math.exp(-3.0))
    assert disk_intensity(R2, 0.0, R1, R2) < disk_intensity(0.75 * R1 + 0.25 * R2, 0.0, R1, R2)


def test_disk_crossing_at_band_midpoint():
    mid = 0.5 * (R1 + R2)
    color = np.zeros(3)
    t = intersect_disk(np.array([mid, 1e9, 0.0]), np.array([mid, -1e9, 0.0]), DISK, color, 1.0)
    assert t == pytest.approx(1.0 - DISK_OPACITY)
    assert color == pytest.approx(np.array(DISK_COLOR) * DISK_OPACITY)


def test_disk_composites_under_transmittance():
    mid = 0.5 * (R1 + R2)
    color = np.zeros(3)
    t = intersect_disk(np.array([0.0, -2e9, mid]), np.array([0.0, 2e9, mid]), DISK, color, 0.5)
    intensity = disk_intensity(mid, math.pi / 2, R1, R2)
    alpha = DISK_OPACITY * intensity
    assert t == pytest.approx(0.5 * (1.0 - alpha))
    assert color == pytest.approx(np.array(DISK_COLOR) * intensity ** 2 * alpha * 0.5)


def test_disk_band_edges_are_inclusive():
    color = np.zeros(3)
    t = intersect_disk(np.array([R1, 1.0, 0.0]), np.array([R1, -1.0, 0.0]), DISK, color, 1.0)
    assert t < 1.0
    assert color[0] > 0.0


@pytest.mark.parametrize("rho", [1.5 * RS, 2.1 * RS, 6.1 * RS, 20 * RS])
def test_disk_crossing_outside_band_is_ignored(rho):
    color = np.zeros(3)
    t = intersect_disk(np.array([rho, 1e9, 0.0]), np.array([rho, -1e9, 0.0]), DISK, color, 0.8)
    assert t == 0.8
    assert np.all(color == 0.0)


def test_disk_without_sign_change_is_ignored():
    mid = 0.5 * (R1 + R2)
    color = np.zeros(3)
    assert intersect_disk(np.array([mid, 2e9, 0.0]), np.array([mid, 1e9, 0.0]), DISK, color, 1.0) == 1.0
    # touching the plane is not a crossing
    assert intersect_disk(np.array([mid, 2e9, 0.0]), np.array([mid, 0.0, 0.0]), DISK, color, 1.0) == 1.0
    assert np.all(color == 0.0)


def test_ray_looking_down_onto_disk_picks_up_colour():
    code, transmittance, _, color = _trace((4 * RS, 2 * RS, 0.5 * RS), (0.0, -1.0, 0.0))
    assert code != Termination.CAPTURED
    assert transmittance < 1.0
    assert color.sum() > 0.0
    assert color[0] > color[1] > color[2]


# ------------------------- Objects -------------------------------------------

def _objects(*rows):
    return np.array(rows, dtype=np.float64)


def test_sphere_boundary_counts_as_hit():
    objects = _objects([1e11, 0.0, 0.0, 5e10, 0.2, 0.4, 0.6, 1.0, 1.0])
    color = np.zeros(3)
    t = intersect_objects(np.array([1.5e11, 0.0, 0.0]), objects, 1, color, 0.5)
    assert t == 0.0
    assert color == pytest.approx([0.1, 0.2, 0.3])

    color = np.zeros(3)
    t = intersect_objects(np.array([1.5e11 + 1e4, 0.0, 0.0]), objects, 1, color, 0.5)
    assert t == 0.5
    assert np.all(color == 0.0)


def test_first_listed_sphere_wins():
    objects = _objects(
        [0.0, 0.0, 0.0, 2.0, 1.0, 0.0, 0.0, 1.0, 1.0],
        [0.5, 0.0, 0.0, 2.0, 0.0, 1.0, 0.0, 1.0, 1.0],
    )
    color = np.zeros(3)
    assert intersect_objects(np.array([0.4, 0.0, 0.0]), objects, 2, color, 1.0) == 0.0
    assert color.tolist() == [1.0, 0.0, 0.0]


def test_object_count_limits_scan():
    objects = _objects([0.0, 0.0, 0.0, 2.0, 1.0, 0.0, 0.0, 1.0, 1.0])
    color = np.zeros(3)
    assert intersect_objects(np.zeros(3), objects, 0, color, 1.0) == 1.0


def test_ray_hitting_object_takes_its_colour():
    objects = _objects([4e11, 2e10, 0.0, 8e10, 1.0, 0.8, 0.0, 1.0, 1.0])
    code, transmittance, _, color = _trace((4e11, 2e10, 3e11), (0.0, 0.0, -1.0), objects)
    assert code == Termination.OPAQUE
    assert transmittance == 0.0
    assert color.tolist() == [1.0, 0.8, 0.0]


def test_trace_path_records_positions():
    objects = _objects([4e11, 2e10, 0.0, 8e10, 1.0, 0.8, 0.0, 1.0, 1.0])
    path, color, code, transmittance = trace_path((4e11, 2e10, 3e11), (0.0, 0.0, -1.0), DISK, objects)
    assert code == Termination.OPAQUE
    assert np.allclose(path[0], (4e11, 2e10, 3e11))
    last = path[-1]
    assert np.sum((last - objects[0, :3]) ** 2) <= objects[0, 3] ** 2
    assert np.all(np.diff(path[:, 2]) < 0.0)


# ------------------------- Blending ------------------------------------------

def test_blend_zero_ignores_history():
    out = np.zeros(4)
    blend_history(np.array([0.2, 0.3, 0.4]), np.array([0.9, 0.9, 0.9, 0.9]), 0.0, out)
    assert out.tolist() == [0.2, 0.3, 0.4, 1.0]


def test_blend_one_keeps_history():
    out = np.zeros(4)
    blend_history(np.array([0.2, 0.3, 0.4]), np.array([0.9, 0.8, 0.7, 0.6]), 1.0, out)
    assert out.tolist() == [0.9, 0.8, 0.7, 0.6]


def test_blend_mixes_linearly_in_place():
    history = np.array([1.0, 0.0, 0.5, 1.0])
    blend_history(np.array([0.0, 1.0, 0.5]), history, 0.25, history)
    assert history == pytest.approx([0.25, 0.75, 0.5, 1.0])
