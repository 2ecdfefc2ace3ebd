# renderer.py
import logging

import numpy as np
import pandas as pd
from numba.core.errors import NumbaError

from lensing.constants import DEFAULT_BLEND, MAX_STEPS
from lensing.raytracing import Termination, dispatch_groups, render_kernel
from lensing.uniforms import camera_args, disk_args, frame_uniforms, object_args


class RendererInitError(RuntimeError):
    """The render kernel could not be built."""


class FrameState:
    """
    Per-view state threaded through successive frames.
    history: (height, width, 4) float32, the running blend of past frames
    """
    def __init__(self, width, height):
        self.width = 0
        self.height = 0
        self.history = None
        self.frame_index = 0
        self.elapsed = 0.0
        self.resize(width, height)

    def resize(self, width, height):
        """Reallocate the history when the output size changes; old contents are dropped."""
        if width <= 0 or height <= 0:
            raise ValueError(f"Image size must be positive, got {width}x{height}")
        if self.history is not None and (width, height) == (self.width, self.height):
            return False
        if self.history is not None:
            logging.info(f"Output resized to {width}x{height}; discarding history")
        self.width = width
        self.height = height
        self.history = np.zeros((height, width, 4), dtype=np.float32)
        return True


class JitterSource:
    """
    Sub-pixel jitter for temporal anti-aliasing, uniform in [-0.5, 0.5]^2.
    Pass a seed (or a numpy Generator) for reproducible frames.
    """
    def __init__(self, seed=None):
        if isinstance(seed, np.random.Generator):
            self.rng = seed
        else:
            self.rng = np.random.default_rng(seed)

    def next_frame(self, blend_factor=DEFAULT_BLEND):
        jitter = self.rng.uniform(-0.5, 0.5, size=2)
        return frame_uniforms(jitter, blend_factor)


def termination_summary(codes):
    """Count of pixels per termination reason, as a pandas Series."""
    values = pd.Series(codes.ravel()).map(lambda c: Termination(c).name)
    counts = values.value_counts()
    return counts.reindex([t.name for t in Termination], fill_value=0)


class Renderer:
    """
    Frame driver: packs the scene into kernel arguments once and renders
    frames into a caller-owned FrameState.
    """
    def __init__(self, scene, max_steps=MAX_STEPS):
        self.scene = scene
        self.max_steps = int(max_steps)
        self.rs = scene.bh.rs
        self._disk = disk_args(scene.disk)
        self._objects = object_args(scene.objects, scene.object_uniforms)
        self._compile()

    def _compile(self):
        """Build the kernel up front on a 1x1 image so failures surface here."""
        out = np.zeros((1, 1, 4), dtype=np.float32)
        history = np.zeros((1, 1, 4), dtype=np.float32)
        codes = np.zeros((1, 1), dtype=np.int8)
        cam = np.zeros(14, dtype=np.float64)
        cam[2] = 2.0 * self.rs
        cam[11] = -1.0
        cam[13] = 1.0
        try:
            render_kernel(out, history, codes, cam, self._disk, self._objects,
                          self._objects.shape[0], 0.0, 0.0, 0.0, self.rs, 1)
        except NumbaError as e:
            raise RendererInitError(f"Failed to build render kernel: {e}") from e
        logging.info("Render kernel ready")

    def render(self, state, camera, frame=None, jitter=None):
        """
        Render one frame of *camera* into *state*.

        frame: FrameUniforms; when omitted it is drawn from *jitter*
        (a JitterSource), or zero jitter with no history blend.
        Returns (image, codes): (H, W, 4) float32 RGBA and (H, W) int8
        Termination values.  state.history holds the same image afterwards.
        """
        if frame is None:
            frame = jitter.next_frame() if jitter is not None else frame_uniforms()
        height, width = state.height, state.width
        out = np.empty((height, width, 4), dtype=np.float32)
        codes = np.full((height, width), -1, dtype=np.int8)
        gx, gy = dispatch_groups(width, height)
        logging.debug(f"Dispatching {gx}x{gy} groups for frame {state.frame_index}")
        jx, jy = frame['jitter']
        render_kernel(out, state.history, codes, camera_args(camera), self._disk,
                      self._objects, self._objects.shape[0], float(jx), float(jy),
                      float(frame['blend_factor']), self.rs, self.max_steps)
        state.frame_index += 1
        return out, codes
