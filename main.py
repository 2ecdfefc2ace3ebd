#main.py
import logging
import math
import sys

import matplotlib.pyplot as plt
import pandas as pd
from tqdm import tqdm

from config import parse_args
from lensing.blackhole import Observer, Scene
from lensing.constants import INITIAL_BLEND
from lensing.renderer import FrameState, JitterSource, Renderer, RendererInitError, termination_summary
from visualization.plot import plot_scene_topdown, sample_ray_paths, save_image

# ---
# UNITS: metres. The Schwarzschild radius of Sgr A* (1.269e10 m) sets the
# scale; rays that pass 1e13 m are treated as escaped.
# ---

logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s: %(message)s')

def main(argv=None):
    args = parse_args(argv)
    if not 0.0 <= args.blend <= 1.0:
        logging.error(f"--blend must lie in [0, 1], got {args.blend}")
        return 2
    if args.frames < 1:
        logging.error(f"--frames must be at least 1, got {args.frames}")
        return 2

    scene = Scene.default()
    observer = Observer.from_spherical(
        args.camera_distance,
        azimuth=math.radians(args.camera_azimuth),
        elevation=math.radians(args.camera_elevation),
        fov_deg=args.fov,
        image_size=(args.height, args.width),
    )
    camera = observer.uniforms()

    try:
        renderer = Renderer(scene, max_steps=args.max_steps)
    except RendererInitError as e:
        logging.error(str(e))
        return 1

    state = FrameState(args.width, args.height)
    jitter = JitterSource(args.seed)
    rows = []
    image = None
    for frame_idx in tqdm(range(args.frames), desc="Rendering frames", unit="frame"):
        blend = INITIAL_BLEND if frame_idx == 0 else args.blend
        frame = jitter.next_frame(blend_factor=blend)
        image, codes = renderer.render(state, camera, frame)
        state.elapsed += 1.0
        summary = termination_summary(codes)
        rows.append({'frame': frame_idx, **summary.to_dict()})

    stats = pd.DataFrame(rows)
    last = stats.iloc[-1]
    logging.info(
        f"Ray summary (last frame): {last['CAPTURED']} captured, {last['ESCAPED']} escaped, "
        f"{last['OPAQUE']} opaque, {last['MAX_STEPS']} hit the step budget"
    )
    if args.stats_csv:
        stats.to_csv(args.stats_csv, index=False)
        logging.info(f"Saved termination summary to {args.stats_csv}")

    save_image(image, args.out)

    if args.plot_rays > 0:
        logging.info("Saving top-down scene view...")
        paths = sample_ray_paths(scene, observer, n_samples=args.plot_rays,
                                 max_steps=args.max_steps, seed=args.seed)
        plot_scene_topdown(scene, observer, out_path='images/scene_topdown.png', ray_paths=paths)

    if args.show:
        plt.imshow(image[..., :3].clip(0.0, 1.0))
        plt.title('Schwarzschild Lensing')
        plt.axis('off')
        plt.show()
    return 0

if __name__ == "__main__":
    sys.exit(main())
