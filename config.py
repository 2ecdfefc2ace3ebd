import argparse

from lensing.constants import DEFAULT_BLEND, DEFAULT_CAMERA_DISTANCE, DEFAULT_FOV_DEG, MAX_STEPS

def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Schwarzschild Black Hole Lensing Renderer")
    parser.add_argument('--width', type=int, default=320, help='Image width in pixels (default: 320)')
    parser.add_argument('--height', type=int, default=180, help='Image height in pixels (default: 180)')
    parser.add_argument('--fov', type=float, default=DEFAULT_FOV_DEG, help='Vertical field of view in degrees (default: 70)')
    parser.add_argument('--frames', type=int, default=8, help='Number of jittered frames to accumulate (default: 8)')
    parser.add_argument('--blend', type=float, default=DEFAULT_BLEND, help='History weight of the temporal blend, in [0, 1] (default: 0.65)')
    parser.add_argument('--seed', type=int, default=None, help='Seed for the sub-pixel jitter (default: random)')
    parser.add_argument('--max-steps', type=int, default=MAX_STEPS, help='Integration steps per ray (default: 250)')
    # Camera placement
    parser.add_argument('--camera-distance', type=float, default=2.5 * DEFAULT_CAMERA_DISTANCE, help='Camera distance from the black hole in metres')
    parser.add_argument('--camera-azimuth', type=float, default=20.0, help='Camera azimuth around +y in degrees (default: 20)')
    parser.add_argument('--camera-elevation', type=float, default=75.0, help='Camera angle from +y in degrees (default: 75)')
    # Outputs
    parser.add_argument('--out', type=str, default='images/lensing.png', help='Output image path')
    parser.add_argument('--stats-csv', type=str, default=None, help='Write the per-frame termination summary to this CSV')
    parser.add_argument('--plot-rays', type=int, default=0, help='Save a top-down scene plot with this many sampled ray paths')
    parser.add_argument('--show', action='store_true', help='Display the final image with matplotlib')
    return parser.parse_args(argv)
