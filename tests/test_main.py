import pandas as pd
from PIL import Image

from main import main


def test_main_renders_image_and_stats(tmp_path):
    out = tmp_path / "frame.png"
    stats = tmp_path / "stats.csv"
    rc = main(['--width', '12', '--height', '8', '--frames', '2', '--seed', '3',
               '--out', str(out), '--stats-csv', str(stats)])
    assert rc == 0
    with Image.open(out) as img:
        assert img.size == (12, 8)
    df = pd.read_csv(stats)
    assert len(df) == 2
    assert (df[['MAX_STEPS', 'CAPTURED', 'ESCAPED', 'OPAQUE']].sum(axis=1) == 96).all()


def test_main_rejects_bad_blend(tmp_path):
    assert main(['--blend', '2', '--out', str(tmp_path / "x.png")]) == 2
