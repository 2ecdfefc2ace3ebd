import os
import logging

import matplotlib.pyplot as plt
import numpy as np
from PIL import Image

from lensing.geodesic import ray_direction
from lensing.raytracing import trace_path
from lensing.uniforms import camera_args, disk_args, object_args


def to_rgb8(image):
    """(H, W, 4) float image -> (H, W, 3) uint8, clipped to [0, 1]."""
    rgb = np.clip(image[..., :3], 0.0, 1.0)
    return (rgb * 255.0 + 0.5).astype(np.uint8)


def save_image(image, out_path):
    out_dir = os.path.dirname(out_path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    Image.fromarray(to_rgb8(image)).save(out_path)
    logging.info(f"Saved image to {out_path}")


def sample_ray_paths(scene, observer, n_samples=8, max_steps=250, seed=None):
    """
    Integrate *n_samples* rays through random pixels of *observer*'s image and
    return their Cartesian paths (list of (N, 3) arrays).
    """
    rng = np.random.default_rng(seed)
    h, w = observer.image_size
    cam = camera_args(observer.uniforms())
    disk = disk_args(scene.disk)
    objects = object_args(scene.objects, scene.object_uniforms)
    paths = []
    for _ in range(n_samples):
        px = int(rng.integers(0, w))
        py = int(rng.integers(0, h))
        direction = ray_direction(px, py, w, h, cam, 0.0, 0.0)
        path, _, _, _ = trace_path(cam[0:3], direction, disk, objects,
                                   rs=scene.bh.rs, max_steps=max_steps)
        paths.append(path)
    return paths


def plot_scene_topdown(scene, observer, out_path='images/scene_topdown.png', ray_paths=None):
    """
    Plot a top-down view (looking down -y onto the disk plane, x-z axes) of:
    - Event horizon
    - Accretion disk band [r1, r2]
    - Orbiting spheres in their own colours
    - Observer position
    - Optional ray paths (list of (N, 3) arrays)
    """
    rs = scene.bh.rs
    r1 = float(scene.disk['r1'])
    r2 = float(scene.disk['r2'])
    fig, ax = plt.subplots(figsize=(8, 8))

    # Disk band
    ring = np.linspace(0.0, 2.0 * np.pi, 400)
    ax.fill(np.concatenate([r2 * np.cos(ring), r1 * np.cos(ring[::-1])]),
            np.concatenate([r2 * np.sin(ring), r1 * np.sin(ring[::-1])]),
            color='orange', alpha=0.3, label='Accretion disk')
    # Black hole
    ax.add_patch(plt.Circle((0, 0), rs, color='black', label='Event horizon'))
    # Objects
    for obj in scene.objects:
        x, _, z, radius = obj['pos_radius']
        ax.add_patch(plt.Circle((x, z), radius, color=tuple(obj['color'][:3]), alpha=0.8))
    # Observer
    obs = observer.position
    ax.plot(obs[0], obs[2], 'bo', markersize=8, label='Observer')

    if ray_paths is not None:
        for path in ray_paths:
            ax.plot(path[:, 0], path[:, 2], color='tab:red', lw=0.8, alpha=0.7)

    extents = [r2, np.linalg.norm(obs)]
    extents += [np.hypot(o['pos_radius'][0], o['pos_radius'][2]) + o['pos_radius'][3] for o in scene.objects]
    lim = max(extents) * 1.1
    ax.set_xlim(-lim, lim)
    ax.set_ylim(-lim, lim)
    ax.set_aspect('equal')
    ax.set_xlabel('x [m]')
    ax.set_ylabel('z [m]')
    ax.set_title('Top-Down Scene View')
    handles, labels = ax.get_legend_handles_labels()
    by_label = dict(zip(labels, handles))
    ax.legend(by_label.values(), by_label.keys())

    out_dir = os.path.dirname(out_path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    plt.savefig(out_path, bbox_inches='tight')
    plt.close(fig)
    logging.info(f"Saved top-down scene image to {out_path}")
