# constants.py
# ---
# Units: metres. The Schwarzschild radius of Sagittarius A* is the natural
# length scale of the scene.
# ---

G = 6.67430e-11
C = 299792458.0

SAGA_RS = 1.269e10
ESCAPE_R = 1.0e13

# Base affine step and its scaling bounds, in units of (r - r_s) / r_s
D_LAMBDA = 2.0e8
STEP_SCALE_MIN = 0.1
STEP_SCALE_MAX = 8.0

MAX_STEPS = 250
HORIZON_FACTOR = 1.01
SIN_FLOOR = 1e-4
OPACITY_CUTOFF = 0.01

# Accretion disk appearance
DISK_PATTERN_FREQ = 10.0
DISK_PATTERN_AMP = 0.1
DISK_FALLOFF = 3.0
DISK_OPACITY = 0.4
DISK_COLOR = (1.0, 0.6, 0.25)

# Dispatch
GROUP_SIZE = 16

# Termination codes reported by the integration loop
MAX_STEPS_REACHED = 0
CAPTURED = 1
ESCAPED = 2
OPAQUE = 3

# Scene defaults
DEFAULT_CAMERA_DISTANCE = 6.34194e10
DEFAULT_FOV_DEG = 70.0
DEFAULT_BLEND = 0.65
INITIAL_BLEND = 0.5
