#blackhole.py
import math

import numpy as np

from lensing.constants import (
    C, G, SAGA_RS, DEFAULT_CAMERA_DISTANCE, DEFAULT_FOV_DEG,
)
from lensing.uniforms import (
    disk_uniforms, look_at, object_data, object_uniforms,
)


class BlackHole:
    """
    Represents a Schwarzschild black hole at the origin.
    rs: Schwarzschild radius in metres
    """
    def __init__(self, rs=SAGA_RS):
        if rs <= 0.0:
            raise ValueError(f"Schwarzschild radius must be positive, got {rs}")
        self.rs = float(rs)

    @classmethod
    def from_mass(cls, mass):
        """r_s = 2GM/c^2 for a mass in kilograms."""
        return cls(rs=2.0 * G * mass / (C * C))

    @property
    def horizon_radius(self):
        return self.rs


class Observer:
    """
    Represents the observer (pinhole camera).
    position: 3-vector in metres
    target: point the camera looks at
    fov_deg: vertical field of view in degrees
    image_size: (height, width)
    """
    def __init__(self, position=(0.0, 0.0, DEFAULT_CAMERA_DISTANCE), target=(0.0, 0.0, 0.0),
                 fov_deg=DEFAULT_FOV_DEG, image_size=(480, 640), moving=False):
        h, w = image_size
        if h <= 0 or w <= 0:
            raise ValueError(f"Image size must be positive, got {image_size}")
        self.position = np.array(position, dtype=np.float64)
        self.target = np.array(target, dtype=np.float64)
        self.fov_deg = fov_deg
        self.image_size = (int(h), int(w))
        self.moving = moving

    @classmethod
    def from_spherical(cls, distance, azimuth=0.0, elevation=math.pi / 2.0, **kwargs):
        """
        Place the camera on a sphere around the black hole, y-up.
        elevation is measured from +y and kept away from the poles.
        """
        el = max(0.01, min(math.pi - 0.01, elevation))
        position = (
            distance * math.sin(el) * math.sin(azimuth),
            distance * math.cos(el),
            distance * math.sin(el) * math.cos(azimuth),
        )
        return cls(position=position, **kwargs)

    @property
    def aspect(self):
        h, w = self.image_size
        return w / h

    def uniforms(self):
        return look_at(self.position, self.target, fov_deg=self.fov_deg,
                       aspect=self.aspect, moving=self.moving)


class Scene:
    """
    Black hole, accretion disk and orbiting bodies.
    objects: list of (pos_radius, color, mass); order decides which sphere wins
    when two are entered in the same step.
    """
    def __init__(self, bh=None, disk_r1=None, disk_r2=None, disk_num=2.0,
                 disk_thickness=1e9, objects=()):
        self.bh = bh if bh is not None else BlackHole()
        rs = self.bh.rs
        r1 = 2.2 * rs if disk_r1 is None else disk_r1
        r2 = 6.0 * rs if disk_r2 is None else disk_r2
        if not r2 > r1 > rs:
            raise ValueError(f"Disk radii must satisfy r2 > r1 > r_s (r1={r1}, r2={r2}, r_s={rs})")
        self.disk = disk_uniforms(r1, r2, disk_num, disk_thickness)
        self.objects = object_data(objects)
        self.object_uniforms = object_uniforms(len(self.objects))

    @classmethod
    def default(cls, bh=None):
        return cls(bh=bh, objects=[
            ((4e11, 2e10, 0.0, 8e10), (1.0, 0.8, 0.0, 1.0), 1.0),
            ((-4e11, -2e10, 2e11, 8e10), (1.0, 0.0, 0.0, 1.0), 1.0),
        ])
