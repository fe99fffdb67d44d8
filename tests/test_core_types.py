import numpy as np
import pytest

from unmatte.core_types import (
    ColourHistogram,
    Known,
    Unknown,
    assert_rgba_image,
    coerce_to_rgb_tuple,
    hex_to_rgb,
    parse_foreground_spec,
    parse_foreground_specs,
    rgb_to_hex,
)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("#ff0000", (255, 0, 0)),
        ("00ff00", (0, 255, 0)),
        ("#f00", (255, 0, 0)),
        ("0f0", (0, 255, 0)),
        ("#FFFFFF", (255, 255, 255)),
        ("#000000", (0, 0, 0)),
        ("#1a2B3c", (26, 43, 60)),
    ],
)
def test_hex_to_rgb_accepts_all_forms(text, expected):
    assert hex_to_rgb(text) == expected


def test_hex_to_rgb_reports_bad_length():
    with pytest.raises(ValueError, match="3 or 6"):
        hex_to_rgb("#ff00")


@pytest.mark.parametrize(
    "text, component",
    [("#zz0000", "red"), ("#00zz00", "green"), ("#0000zz", "blue"), ("g00", "red")],
)
def test_hex_to_rgb_names_invalid_component(text, component):
    with pytest.raises(ValueError, match=component):
        hex_to_rgb(text)


def test_hex_to_rgb_rejects_sign_prefixed_digits():
    with pytest.raises(ValueError, match="red"):
        hex_to_rgb("+f0000")


def test_rgb_to_hex_is_lowercase():
    assert rgb_to_hex((255, 171, 0)) == "#ffab00"


def test_parse_foreground_spec_auto_and_hex():
    assert parse_foreground_spec("auto") == Unknown()
    assert parse_foreground_spec("#00f") == Known((0, 0, 255))


def test_parse_foreground_specs_preserves_order():
    specs = parse_foreground_specs(["#f00", "auto", "00ff00", "auto"])
    assert specs == [Known((255, 0, 0)), Unknown(), Known((0, 255, 0)), Unknown()]


def test_parse_foreground_specs_fails_on_bad_entry():
    with pytest.raises(ValueError):
        parse_foreground_specs(["auto", "#12"])


def test_histogram_entries():
    hist = ColourHistogram(
        np.array([[1, 2, 3], [4, 5, 6]], dtype=np.uint8),
        np.array([7, 1], dtype=np.int64),
    )
    assert len(hist) == 2
    assert hist.entries() == [((1, 2, 3), 7), ((4, 5, 6), 1)]


def test_coerce_to_rgb_tuple():
    assert coerce_to_rgb_tuple(np.array([1, 2, 3], dtype=np.uint8)) == (1, 2, 3)
    assert coerce_to_rgb_tuple([4, 5, 6, 7]) == (4, 5, 6)
    with pytest.raises(ValueError):
        coerce_to_rgb_tuple([1, 2])


def test_assert_rgba_image():
    ok = np.zeros((2, 2, 4), dtype=np.uint8)
    assert assert_rgba_image(ok) is ok
    with pytest.raises(TypeError):
        assert_rgba_image(np.zeros((2, 2, 3), dtype=np.uint8))
    with pytest.raises(TypeError):
        assert_rgba_image(np.zeros((2, 2, 4), dtype=np.float32))
