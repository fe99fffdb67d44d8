import numpy as np
import pytest

from unmatte.colour_convert import normalize_colour
from unmatte.core_types import UnmixResult
from unmatte.process import compute_unmix_result_colour, unmix_colour
from unmatte.unmix import (
    close_to_foreground_batch,
    compute_result_colour,
    is_colour_close_to_foreground,
    unmix_batch,
    unmix_colours,
)

BLACK = np.zeros(3)
WHITE = np.ones(3)


@pytest.mark.parametrize("alpha", [0.0, 0.1, 0.37, 0.5, 0.8, 1.0])
@pytest.mark.parametrize(
    "fg, bg",
    [
        ((200, 30, 30), (255, 255, 255)),
        ((10, 200, 90), (0, 0, 0)),
        ((255, 255, 0), (40, 40, 120)),
    ],
)
def test_single_colour_recovers_blend_alpha(alpha, fg, bg):
    fg_n = normalize_colour(fg)
    bg_n = normalize_colour(bg)
    observed = (alpha * fg_n + (1.0 - alpha) * bg_n).reshape(1, 3)
    weights, out_alpha = unmix_batch(observed, fg_n.reshape(1, 3), bg_n)
    assert weights[0, 0] == pytest.approx(alpha, abs=1e-3)
    assert out_alpha[0] == pytest.approx(alpha, abs=1e-3)


def test_no_foreground_gives_zero_alpha():
    result = unmix_colours((10, 20, 30), [], BLACK)
    assert result == UnmixResult(weights=(), alpha=0.0)


def test_foreground_equal_to_background_gets_zero_weight():
    result = unmix_colours((255, 0, 0), [WHITE], WHITE)
    assert result.weights == (0.0,)
    assert result.alpha == 0.0


def test_strict_red_on_black_is_fully_opaque():
    result = unmix_colour((255, 0, 0), [(255, 0, 0)], (0, 0, 0))
    assert result.weights == (1.0,)
    assert compute_unmix_result_colour(result.weights, result.alpha, [(255, 0, 0)]) == (
        255,
        0,
        0,
        255,
    )


def test_simple_least_squares_renormalises_above_one():
    # Exact solution is (1, 1), a total weight of 2.
    fg = np.array([[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])
    weights, alpha = unmix_batch(
        np.array([[1.0, 1.0, 0.0]]), fg, BLACK, optimise_opacity=False
    )
    assert alpha[0] == 1.0
    assert weights[0].tolist() == pytest.approx([0.5, 0.5])


def test_simple_least_squares_clamps_negative_weights():
    # Red plus yellow: the exact solve asks for -0.2 red.
    fg = np.array([[1.0, 0.0, 0.0], [1.0, 1.0, 0.0]])
    weights, alpha = unmix_batch(
        np.array([[0.2, 0.4, 0.0]]), fg, BLACK, optimise_opacity=False
    )
    assert weights[0, 0] == 0.0
    assert weights[0, 1] == pytest.approx(0.4)
    assert alpha[0] == pytest.approx(0.4)


def test_singular_solve_falls_back_to_first_colour(monkeypatch):
    def broken_pinv(*_args, **_kwargs):
        raise np.linalg.LinAlgError("SVD did not converge")

    monkeypatch.setattr(np.linalg, "pinv", broken_pinv)
    fg = np.array([[1.0, 0.0, 0.0], [0.0, 0.0, 1.0]])
    weights, alpha = unmix_batch(
        np.array([[0.2, 0.3, 0.4]]), fg, BLACK, optimise_opacity=False
    )
    assert weights[0].tolist() == [1.0, 0.0]
    assert alpha[0] == 1.0


def test_opacity_optimised_prefers_single_colour_explanation():
    # Least squares spreads weight over both reds (alpha 0.6); dark red alone
    # reproduces the pixel exactly at alpha 1.
    fg = np.array([[1.0, 0.0, 0.0], [0.5, 0.0, 0.0]])
    observed = np.array([[0.5, 0.0, 0.0]])

    _, simple_alpha = unmix_batch(observed, fg, BLACK, optimise_opacity=False)
    weights, alpha = unmix_batch(observed, fg, BLACK, optimise_opacity=True)

    assert simple_alpha[0] == pytest.approx(0.6)
    assert alpha[0] == pytest.approx(1.0)
    assert weights[0].tolist() == pytest.approx([0.0, 1.0])


def test_opacity_optimised_uses_pairs():
    # Least squares splits the red part over both reds (alpha 0.8); dark red
    # plus green reproduces the pixel at alpha 1.
    fg = np.array([[1.0, 0.0, 0.0], [0.5, 0.0, 0.0], [0.0, 1.0, 0.0]])
    observed = np.array([[0.25, 0.5, 0.0]])

    _, simple_alpha = unmix_batch(observed, fg, BLACK, optimise_opacity=False)
    weights, alpha = unmix_batch(observed, fg, BLACK)

    assert simple_alpha[0] == pytest.approx(0.8)
    assert alpha[0] == pytest.approx(1.0)
    assert weights[0].tolist() == pytest.approx([0.0, 0.5, 0.5])


def test_weights_are_non_negative_and_bounded():
    rng = np.random.default_rng(1234)
    observed = rng.random((500, 3))
    for n_fg in (1, 2, 3, 5):
        fg = rng.random((n_fg, 3))
        bg = rng.random(3)
        for optimise in (True, False):
            weights, alpha = unmix_batch(observed, fg, bg, optimise_opacity=optimise)
            assert np.all(weights >= 0.0)
            assert np.all(weights.sum(axis=1) <= 1.0 + 1e-6)
            assert np.all(weights.sum(axis=1) <= alpha + 1e-6)
            assert np.all((alpha >= 0.0) & (alpha <= 1.0))


def test_result_colour_is_weight_normalised_blend():
    fg = [[1.0, 0.0, 0.0], [0.0, 0.0, 1.0]]
    colour, alpha = compute_result_colour(UnmixResult((0.2, 0.2), 0.4), fg)
    assert colour.tolist() == pytest.approx([0.5, 0.0, 0.5])
    assert alpha == 0.4


def test_result_colour_is_black_when_transparent():
    colour, alpha = compute_result_colour(UnmixResult((0.0,), 0.0), [[1.0, 1.0, 1.0]])
    assert colour.tolist() == [0.0, 0.0, 0.0]
    assert alpha == 0.0


def test_close_to_foreground():
    red = [[1.0, 0.0, 0.0]]
    half_red_on_white = [1.0, 0.5, 0.5]
    green = [0.0, 1.0, 0.0]
    assert is_colour_close_to_foreground(half_red_on_white, red, WHITE, 0.05)
    assert not is_colour_close_to_foreground(green, red, WHITE, 0.05)
    # A foreground equal to the background never matches.
    assert not close_to_foreground_batch(
        np.array([[0.9, 0.9, 0.9]]), np.array([WHITE]), WHITE, 0.5
    )[0]
