# isoviz/core/color.py
"""
Color Mapper.

One generic scale for every channel: evenly spaced palette stops, linear
interpolation in RGB. Values outside the domain (outliers) get OUTLIER_COLOR,
which no palette is allowed to produce.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple, Sequence

import matplotlib
import matplotlib.colors as mcolors
import numpy as np

from .exceptions import InvalidPalette


class RGB(NamedTuple):
    r: int
    g: int
    b: int


OUTLIER_COLOR = RGB(255, 0, 255)

# Red -> yellow -> green, the TimeLog scale of the viewer
DEFAULT_COLORS: tuple[str, ...] = ("#d7191c", "#fdae61", "#ffffbf", "#a6d96a", "#1a9641")

# Resolution used to prove a palette never produces OUTLIER_COLOR
_SENTINEL_CHECK_STEPS = 4096


def _is_int_triplet(spec) -> bool:
    return (
        isinstance(spec, (tuple, list))
        and len(spec) == 3
        and all(isinstance(c, (int, np.integer)) and not isinstance(c, bool) for c in spec)
    )


def _to_rgb255(spec) -> np.ndarray:
    # ints are 0-255 components; floats and strings go through matplotlib (0-1)
    if _is_int_triplet(spec):
        arr = np.asarray(spec, dtype=float)
        if np.any(arr < 0) or np.any(arr > 255):
            raise ValueError(f"RGB components must be within 0-255, got {spec!r}")
        return arr
    return np.asarray(mcolors.to_rgb(spec), dtype=float) * 255.0


@dataclass(frozen=True, slots=True)
class Palette:
    """
    Ordered color stops spanning the scale.

    colors: anything matplotlib understands ("#ff0000", "red", (1.0, 0.0, 0.0))
            or 0-255 triplets of ints.
    """
    colors: tuple = DEFAULT_COLORS
    name: str = "default"
    stops: np.ndarray = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        colors = tuple(
            tuple(c) if isinstance(c, list) else c for c in (self.colors or ())
        )
        if len(colors) < 2:
            raise InvalidPalette(f"Palette '{self.name}' needs at least 2 colors, got {len(colors)}.")

        try:
            stops = np.vstack([_to_rgb255(c) for c in colors])
        except (ValueError, TypeError) as e:
            raise InvalidPalette(f"Palette '{self.name}': {e}") from e

        object.__setattr__(self, "colors", colors)
        object.__setattr__(self, "stops", stops)

        probe = self.sample_many(np.linspace(0.0, 1.0, _SENTINEL_CHECK_STEPS))
        if np.any(np.all(probe == np.asarray(OUTLIER_COLOR, dtype=np.uint8), axis=1)):
            raise InvalidPalette(
                f"Palette '{self.name}' produces the outlier color {tuple(OUTLIER_COLOR)}."
            )

    @classmethod
    def from_colormap(cls, name: str, n: int = 9) -> "Palette":
        """Sample `n` stops of a named matplotlib colormap ("viridis", "RdYlGn", ...)."""
        if n < 2:
            raise InvalidPalette("A colormap palette needs at least 2 stops.")
        try:
            cmap = matplotlib.colormaps[name]
        except KeyError as e:
            raise InvalidPalette(f"Unknown colormap '{name}'.") from e
        colors = tuple(mcolors.to_hex(cmap(t)) for t in np.linspace(0.0, 1.0, n))
        return cls(colors=colors, name=name)

    def __len__(self) -> int:
        return int(self.stops.shape[0])

    @property
    def first(self) -> RGB:
        return self.sample(0.0)

    @property
    def last(self) -> RGB:
        return self.sample(1.0)

    def sample_many(self, t) -> np.ndarray:
        """(n, 3) uint8 colors for positions t in [0, 1] (clipped)."""
        t = np.clip(np.asarray(t, dtype=float).reshape(-1), 0.0, 1.0)
        xp = np.linspace(0.0, 1.0, len(self))
        channels = [np.interp(t, xp, self.stops[:, i]) for i in range(3)]
        return np.rint(np.column_stack(channels)).astype(np.uint8)

    def sample(self, t: float) -> RGB:
        r, g, b = (int(c) for c in self.sample_many([t])[0])
        return RGB(r, g, b)


DEFAULT_PALETTE = Palette()


def _check_domain(min_value: float, max_value: float) -> None:
    if not (np.isfinite(min_value) and np.isfinite(max_value)):
        raise ValueError(f"Color domain must be finite, got [{min_value}, {max_value}]")
    if min_value > max_value:
        raise ValueError(f"Color domain requires min <= max, got [{min_value}, {max_value}]")


def map_color(value: float, min_value: float, max_value: float, palette: Palette = DEFAULT_PALETTE) -> RGB:
    """
    Color of `value` on the scale stretched over [min_value, max_value].

    t = (value - min) / (max - min), t = 0 when min == max.
    Undefined values and values outside the domain give OUTLIER_COLOR.
    """
    _check_domain(min_value, max_value)
    if value is None or not np.isfinite(value) or value < min_value or value > max_value:
        return OUTLIER_COLOR
    span = max_value - min_value
    t = 0.0 if span == 0 else (value - min_value) / span
    return palette.sample(t)


def map_colors(values, min_value: float, max_value: float, palette: Palette = DEFAULT_PALETTE) -> np.ndarray:
    """Vectorized map_color: (n, 3) uint8, one row per value."""
    _check_domain(min_value, max_value)
    v = np.asarray(values, dtype=float).reshape(-1)
    span = max_value - min_value
    with np.errstate(invalid="ignore"):
        inside = np.isfinite(v) & (v >= min_value) & (v <= max_value)
        t = np.zeros_like(v) if span == 0 else (v - min_value) / span

    out = np.empty((v.size, 3), dtype=np.uint8)
    out[:] = np.asarray(OUTLIER_COLOR, dtype=np.uint8)
    if inside.any():
        out[inside] = palette.sample_many(t[inside])
    return out


def css_gradient(palette: Palette = DEFAULT_PALETTE, direction: str = "90deg") -> str:
    """Legend background, e.g. 'linear-gradient(90deg, rgb(...) 0%, ..., rgb(...) 100%)'."""
    n = len(palette)
    parts = []
    for i, (r, g, b) in enumerate(palette.sample_many(np.linspace(0.0, 1.0, n))):
        pct = round(100.0 * i / (n - 1), 2)
        parts.append(f"rgb({r},{g},{b}) {pct:g}%")
    return f"linear-gradient({direction}, {', '.join(parts)})"


def to_hex(color: Sequence[int]) -> str:
    """'#rrggbb' of a 0-255 color."""
    return mcolors.to_hex(np.asarray(color, dtype=float) / 255.0)
