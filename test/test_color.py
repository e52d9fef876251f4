import numpy as np
import pytest

from isoviz.core import (
    DEFAULT_PALETTE,
    OUTLIER_COLOR,
    RGB,
    Palette,
    css_gradient,
    map_color,
    map_colors,
)
from isoviz.core.color import to_hex
from isoviz.core.exceptions import InvalidPalette


def test_endpoints_map_to_first_and_last_palette_color():
    p = DEFAULT_PALETTE
    assert map_color(10, 10, 30, p) == p.first
    assert map_color(30, 10, 30, p) == p.last
    assert to_hex(p.first) == "#d7191c"
    assert to_hex(p.last) == "#1a9641"


def test_midpoint_maps_to_palette_midpoint():
    assert to_hex(map_color(20, 10, 30, DEFAULT_PALETTE)) == "#ffffbf"


@pytest.mark.parametrize("value", [9.999, -1e9, 30.0001, 200, float("nan"), None])
def test_values_outside_domain_get_outlier_color(value):
    assert map_color(value, 10, 30, DEFAULT_PALETTE) == OUTLIER_COLOR


def test_example_scenario_outlier_excluded_from_scale():
    assert map_color(200, 10, 30, DEFAULT_PALETTE) == OUTLIER_COLOR


def test_degenerate_domain_uses_t_zero():
    assert map_color(5, 5, 5, DEFAULT_PALETTE) == DEFAULT_PALETTE.first
    assert map_color(6, 5, 5, DEFAULT_PALETTE) == OUTLIER_COLOR


def test_linear_interpolation_between_two_stops():
    p = Palette(colors=("#000000", "#ffffff"))
    assert map_color(0.5, 0, 1, p) == RGB(128, 128, 128)
    assert map_color(0.25, 0, 1, p) == RGB(64, 64, 64)


def test_pure_and_deterministic():
    p = Palette(colors=("blue", "red"))
    assert map_color(3.3, 1, 7, p) == map_color(3.3, 1, 7, p)


def test_invalid_domain_raises():
    with pytest.raises(ValueError):
        map_color(1, 2, 1)
    with pytest.raises(ValueError):
        map_color(1, float("nan"), 1)


def test_map_colors_matches_scalar_version():
    values = np.array([10, 15, 20, 30, 200, np.nan])
    out = map_colors(values, 10, 30, DEFAULT_PALETTE)

    assert out.shape == (6, 3)
    assert out.dtype == np.uint8
    for v, row in zip(values, out):
        assert tuple(int(c) for c in row) == tuple(map_color(v, 10, 30, DEFAULT_PALETTE))


def test_palette_validation():
    with pytest.raises(InvalidPalette):
        Palette(colors=())
    with pytest.raises(InvalidPalette):
        Palette(colors=("red",))
    with pytest.raises(InvalidPalette):
        Palette(colors=("red", "not-a-color"))
    with pytest.raises(InvalidPalette):
        Palette(colors=("red", (300, 0, 0)))


def test_palette_may_not_produce_outlier_color():
    with pytest.raises(InvalidPalette):
        Palette(colors=("#ff00ff", "#00ff00"))
    # magenta as an inner stop
    with pytest.raises(InvalidPalette):
        Palette(colors=("#fe00fe", "#ff00ff", "#0000ff"))


def test_palette_accepts_rgb_triplets_and_lists():
    p = Palette(colors=[[255, 0, 0], (0, 128, 0)])
    assert p.first == RGB(255, 0, 0)
    assert p.last == RGB(0, 128, 0)


def test_int_triplets_are_0_255_and_floats_are_fractions():
    dark = Palette(colors=[(1, 1, 1), (2, 2, 2)])
    assert dark.first == RGB(1, 1, 1)

    red = Palette(colors=[(1.0, 0.0, 0.0), (0.0, 0.0, 1.0)])
    assert red.first == RGB(255, 0, 0)
    assert red.last == RGB(0, 0, 255)

    with pytest.raises(InvalidPalette):
        Palette(colors=[(0, 0, 0), (300, 0, 0)])


def test_palette_from_colormap():
    p = Palette.from_colormap("viridis", n=5)
    assert len(p) == 5
    assert p.name == "viridis"
    assert to_hex(p.first) == "#440154"

    with pytest.raises(InvalidPalette):
        Palette.from_colormap("no-such-map")


def test_css_gradient():
    css = css_gradient(Palette(colors=("#000000", "#ffffff")))
    assert css == "linear-gradient(90deg, rgb(0,0,0) 0%, rgb(255,255,255) 100%)"
