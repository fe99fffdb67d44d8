import numpy as np
import pytest

from unmatte.colour_convert import (
    alpha_to_u8,
    colour_distance,
    denormalize_colour,
    normalize_colour,
)


def test_normalize_is_exact_scaling():
    norm = normalize_colour((255, 0, 51))
    assert norm.tolist() == [1.0, 0.0, 51 / 255.0]


def test_denormalize_rounds_and_clamps():
    assert denormalize_colour([1.2, -0.3, 0.5]).tolist() == [255, 0, 128]
    assert denormalize_colour([0.0, 1.0, 127.4 / 255.0]).tolist() == [0, 255, 127]


def test_every_byte_survives_normalize_denormalize():
    values = np.arange(256, dtype=np.uint8)
    rows = np.stack([values, values[::-1], values], axis=1)
    assert np.array_equal(denormalize_colour(normalize_colour(rows)), rows)


def test_alpha_to_u8():
    assert int(alpha_to_u8(0.0)) == 0
    assert int(alpha_to_u8(1.0)) == 255
    assert int(alpha_to_u8(128 / 255.0)) == 128


def test_colour_distance_scalar_and_rows():
    assert colour_distance([0, 0, 0], [1, 1, 1]) == pytest.approx(np.sqrt(3.0))
    rows = colour_distance(np.zeros((2, 3)), np.array([[1.0, 0, 0], [0, 0, 0.5]]))
    assert rows.tolist() == pytest.approx([1.0, 0.5])
