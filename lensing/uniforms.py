# uniforms.py
import numpy as np

from lensing.constants import DEFAULT_FOV_DEG

# -----------------------------------------------------------------------------
# Fixed-layout records
# -----------------------------------------------------------------------------
# Each record is a little-endian numpy structured dtype with explicit offsets.
# A vec3 occupies 12 bytes followed by a 4 byte pad so the next member starts on
# a 16 byte boundary; structs are padded to a multiple of their largest member.
# -----------------------------------------------------------------------------

_VEC2 = ('<f4', (2,))
_VEC3 = ('<f4', (3,))
_VEC4 = ('<f4', (4,))

CAMERA_DTYPE = np.dtype({
    'names': ['position', '_pad1', 'right', '_pad2', 'up', '_pad3',
              'forward', '_pad4', 'tan_half_fov', 'aspect', 'moving', '_pad5'],
    'formats': [_VEC3, '<f4', _VEC3, '<f4', _VEC3, '<f4',
                _VEC3, '<f4', '<f4', '<f4', '?', '<i4'],
    'offsets': [0, 12, 16, 28, 32, 44, 48, 60, 64, 68, 72, 76],
    'itemsize': 80,
})

DISK_DTYPE = np.dtype({
    'names': ['r1', 'r2', 'num', 'thickness'],
    'formats': ['<f4', '<f4', '<f4', '<f4'],
    'offsets': [0, 4, 8, 12],
    'itemsize': 16,
})

OBJECT_DTYPE = np.dtype({
    'names': ['pos_radius', 'color', 'mass', '_padding'],
    'formats': [_VEC4, _VEC4, '<f4', _VEC3],
    'offsets': [0, 16, 32, 48],
    'itemsize': 64,
})

OBJECT_UNIFORMS_DTYPE = np.dtype({
    'names': ['num_objects'],
    'formats': ['<i4'],
    'offsets': [0],
    'itemsize': 4,
})

FRAME_DTYPE = np.dtype({
    'names': ['jitter', 'blend_factor', '_pad'],
    'formats': [_VEC2, '<f4', '<f4'],
    'offsets': [0, 8, 12],
    'itemsize': 16,
})


def _normalize(v):
    v = np.asarray(v, dtype=np.float64)
    n = np.linalg.norm(v)
    if n == 0.0:
        raise ValueError("Cannot normalize a zero-length vector.")
    return v / n


def camera_uniforms(position, right, up, forward, tan_half_fov, aspect, moving=False):
    rec = np.zeros((), dtype=CAMERA_DTYPE)
    rec['position'] = position
    rec['right'] = right
    rec['up'] = up
    rec['forward'] = forward
    rec['tan_half_fov'] = tan_half_fov
    rec['aspect'] = aspect
    rec['moving'] = moving
    return rec


def look_at(position, target=(0.0, 0.0, 0.0), fov_deg=DEFAULT_FOV_DEG, aspect=1.0,
            moving=False, world_up=(0.0, 1.0, 0.0)):
    """
    Build CameraUniforms for a pinhole camera at *position* looking at *target*.

    forward = normalize(target - position)
    right   = normalize(forward x world_up)
    up      = right x forward
    """
    position = np.asarray(position, dtype=np.float64)
    forward = _normalize(np.asarray(target, dtype=np.float64) - position)
    right = np.cross(forward, np.asarray(world_up, dtype=np.float64))
    if np.linalg.norm(right) < 1e-9:
        raise ValueError("Camera forward direction is parallel to world_up; pick another up vector.")
    right = right / np.linalg.norm(right)
    up = np.cross(right, forward)
    tan_half_fov = np.tan(np.radians(fov_deg) * 0.5)
    return camera_uniforms(position, right, up, forward, tan_half_fov, aspect, moving)


def disk_uniforms(r1, r2, num=2.0, thickness=1e9):
    rec = np.zeros((), dtype=DISK_DTYPE)
    rec['r1'] = r1
    rec['r2'] = r2
    rec['num'] = num
    rec['thickness'] = thickness
    return rec


def object_data(objects):
    """
    Pack an iterable of (pos_radius, color, mass) tuples into an ObjectData
    array. Order is preserved; the first sphere hit in a step wins.
    """
    objects = list(objects)
    arr = np.zeros(len(objects), dtype=OBJECT_DTYPE)
    for i, (pos_radius, color, mass) in enumerate(objects):
        arr['pos_radius'][i] = pos_radius
        arr['color'][i] = color
        arr['mass'][i] = mass
    return arr


def object_uniforms(num_objects):
    rec = np.zeros((), dtype=OBJECT_UNIFORMS_DTYPE)
    rec['num_objects'] = num_objects
    return rec


def frame_uniforms(jitter=(0.0, 0.0), blend_factor=0.0):
    if not 0.0 <= blend_factor <= 1.0:
        raise ValueError(f"blend_factor must lie in [0, 1], got {blend_factor}")
    rec = np.zeros((), dtype=FRAME_DTYPE)
    rec['jitter'] = jitter
    rec['blend_factor'] = blend_factor
    return rec


# -----------------------------------------------------------------------------
# Record -> kernel argument conversion (float64 arrays the kernels consume)
# -----------------------------------------------------------------------------

def camera_args(cam):
    """(14,) float64: position, right, up, forward, tan_half_fov, aspect."""
    out = np.empty(14, dtype=np.float64)
    out[0:3] = cam['position']
    out[3:6] = cam['right']
    out[6:9] = cam['up']
    out[9:12] = cam['forward']
    out[12] = cam['tan_half_fov']
    out[13] = cam['aspect']
    return out


def disk_args(disk):
    return np.array([disk['r1'], disk['r2'], disk['num'], disk['thickness']], dtype=np.float64)


def object_args(objects, obj_uniforms=None):
    """
    (n, 9) float64 rows of x, y, z, radius, r, g, b, a, mass.
    Only the first ``num_objects`` entries are kept when *obj_uniforms* is given.
    """
    n = len(objects)
    if obj_uniforms is not None:
        n = min(n, int(obj_uniforms['num_objects']))
    out = np.zeros((n, 9), dtype=np.float64)
    for i in range(n):
        out[i, 0:4] = objects[i]['pos_radius']
        out[i, 4:8] = objects[i]['color']
        out[i, 8] = objects[i]['mass']
    return out
