import numpy as np

from unmatte.colour_convert import normalize_colour
from unmatte.pipeline import (
    composite_over_background,
    composite_pixel_over_background,
    process_colours,
    process_pixels,
)

WHITE = (255, 255, 255)
BLACK = (0, 0, 0)


def _image(pixels):
    return np.array(pixels, dtype=np.uint8).reshape(1, len(pixels), 4)


def test_composite_blends_translucent_and_keeps_opaque():
    rgba = _image([(255, 0, 0, 128), (10, 20, 30, 255), (9, 9, 9, 0)])
    out = composite_over_background(rgba, WHITE)
    assert out.shape == (1, 3, 3)
    assert out[0].tolist() == [[255, 127, 127], [10, 20, 30], [255, 255, 255]]


def test_composite_pixel():
    assert composite_pixel_over_background((255, 0, 0, 128), WHITE) == (255, 127, 127)
    assert composite_pixel_over_background((0, 0, 255, 255), WHITE) == (0, 0, 255)


def test_exact_background_becomes_transparent_in_every_mode():
    fg = normalize_colour([(255, 0, 0)]).reshape(-1, 3)
    bg = normalize_colour(WHITE)
    rows = np.array([WHITE], dtype=np.uint8)
    for mode in ("strict", "min_alpha", "mixed"):
        assert process_colours(rows, fg, bg, mode, 0.05).tolist() == [[0, 0, 0, 0]]


def test_strict_mode_uses_only_declared_colours():
    rgba = _image([(255, 255, 255, 255), (255, 0, 0, 255), (0, 255, 0, 255)])
    out = process_pixels(rgba, [(255, 0, 0)], WHITE, strict=True, threshold=0.05)
    assert out[0].tolist() == [[0, 0, 0, 0], [255, 0, 0, 255], [255, 0, 0, 128]]


def test_strict_mode_without_colours_clears_everything():
    rgba = _image([(255, 0, 0, 255), (0, 255, 0, 255)])
    out = process_pixels(rgba, [], WHITE, strict=True, threshold=0.05)
    assert not out.any()


def test_minimum_alpha_without_colours():
    rgba = _image([(128, 0, 0, 255), (0, 0, 0, 255)])
    out = process_pixels(rgba, [], BLACK, strict=False, threshold=0.05)
    assert out[0].tolist() == [[255, 0, 0, 128], [0, 0, 0, 0]]


def test_mixed_mode_keeps_unexpected_colours():
    rgba = _image([(255, 128, 128, 255), (0, 255, 0, 255)])
    out = process_pixels(rgba, [(255, 0, 0)], WHITE, strict=False, threshold=0.05)
    assert out[0].tolist() == [[255, 0, 0, 127], [0, 255, 0, 255]]


def test_translucent_input_is_composited_first():
    # Half-transparent pure red over white reads as (255, 127, 127).
    rgba = _image([(255, 0, 0, 128)])
    out = process_pixels(rgba, [(255, 0, 0)], WHITE, strict=True, threshold=0.05)
    assert out[0].tolist() == [[255, 0, 0, 128]]


def test_output_does_not_depend_on_workers():
    rng = np.random.default_rng(42)
    rgba = rng.integers(0, 256, size=(80, 80, 4), dtype=np.uint8)
    rgba[..., 3] = 255
    rgba[:10, :10, :3] = 255
    kwargs = dict(strict=False, threshold=0.05)
    fg = [(255, 0, 0), (0, 0, 255)]
    single = process_pixels(rgba, fg, WHITE, workers=1, **kwargs)
    threaded = process_pixels(rgba, fg, WHITE, workers=4, **kwargs)
    assert single.shape == (80, 80, 4)
    assert single.dtype == np.uint8
    assert np.array_equal(single, threaded)
    assert not single[:10, :10].any()


def test_debug_reports_transform(capsys):
    rgba = _image([(1, 2, 3, 255)])
    process_pixels(rgba, [], BLACK, strict=False, threshold=0.05, debug=True)
    out = capsys.readouterr().out
    assert "[debug]" in out
    assert "min_alpha" in out
