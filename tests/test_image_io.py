import io

import numpy as np
from PIL import Image

from unmatte.image_io import (
    decode_image_bytes,
    encode_png_bytes,
    load_image_rgba,
    save_image_rgba,
    trim_to_content,
)


def test_trim_crops_to_visible_pixels():
    img = np.zeros((10, 10, 4), dtype=np.uint8)
    img[2, 3] = (255, 0, 0, 10)
    img[5, 7] = (0, 0, 255, 255)
    out = trim_to_content(img)
    assert out.shape == (4, 5, 4)
    assert out[0, 0].tolist() == [255, 0, 0, 10]
    assert out[-1, -1].tolist() == [0, 0, 255, 255]


def test_trim_fully_transparent_gives_single_pixel():
    img = np.full((4, 4, 4), 200, dtype=np.uint8)
    img[..., 3] = 0
    assert trim_to_content(img).tolist() == [[[0, 0, 0, 0]]]
    assert trim_to_content(np.zeros((0, 3, 4), dtype=np.uint8)).shape == (1, 1, 4)


def test_png_bytes_preserve_rgba():
    rng = np.random.default_rng(0)
    img = rng.integers(0, 256, size=(6, 9, 4), dtype=np.uint8)
    assert np.array_equal(decode_image_bytes(encode_png_bytes(img)), img)


def test_rgb_input_gets_opaque_alpha():
    buf = io.BytesIO()
    Image.new("RGB", (3, 2), (12, 34, 56)).save(buf, format="PNG")
    out = decode_image_bytes(buf.getvalue())
    assert out.shape == (2, 3, 4)
    assert out[0, 0].tolist() == [12, 34, 56, 255]


def test_save_forces_png_suffix(tmp_path):
    img = np.zeros((2, 2, 4), dtype=np.uint8)
    img[0, 0] = (1, 2, 3, 4)
    written = save_image_rgba(tmp_path / "result.jpg", img)
    assert written == tmp_path / "result.png"
    assert np.array_equal(load_image_rgba(written), img)
