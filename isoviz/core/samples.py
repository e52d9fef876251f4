# isoviz/core/samples.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Protocol, runtime_checkable

import numpy as np

from .exceptions import InvalidSamples


@runtime_checkable
class SampleSeriesLike(Protocol):
    """Structural interface implemented by both eager and lazy sample series."""

    @property
    def keys(self) -> np.ndarray: ...

    @property
    def values(self) -> np.ndarray: ...

    @property
    def positions(self) -> np.ndarray: ...

    attrs: dict[str, Any]

    @property
    def n(self) -> int: ...

    def defined_mask(self) -> np.ndarray: ...

    def valid_position_mask(self) -> np.ndarray: ...

    def select(self, mask: np.ndarray) -> "SampleSeriesLike": ...

    def to_numpy(self, *, copy: bool = False) -> tuple[np.ndarray, np.ndarray, np.ndarray]: ...


def _validate_columns(keys, values, positions) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    k = np.asarray(keys, dtype=float)
    v = np.asarray(values, dtype=float)
    p = np.asarray(positions, dtype=float)

    if k.ndim != 1:
        raise InvalidSamples(f"`keys` must be 1D, got shape {k.shape}")
    if v.ndim != 1:
        raise InvalidSamples(f"`values` must be 1D, got shape {v.shape}")
    if k.size != v.size:
        raise InvalidSamples(
            f"`keys` and `values` must have same length, got {k.size} vs {v.size}"
        )
    if p.size == 0 and k.size == 0:
        p = p.reshape(0, 2)
    if p.ndim != 2 or p.shape[1] != 2:
        raise InvalidSamples(f"`positions` must have shape (n, 2), got {p.shape}")
    if p.shape[0] != k.size:
        raise InvalidSamples(
            f"`positions` must have one row per sample, got {p.shape[0]} vs {k.size}"
        )

    if k.size > 0:
        if not np.isfinite(k).all():
            raise InvalidSamples("`keys` contains non-finite values (NaN/Inf).")
        if np.any(np.diff(k) < 0):
            raise InvalidSamples("`keys` must be monotonic non-decreasing.")

    return k, v, p


@dataclass(frozen=True, slots=True)
class SampleSeries:
    """
    Immutable ordered samples of one channel.

    - keys: time (s) for TimeLogs, scan index for Grids
    - values: raw values, NaN where the channel is undefined
    - positions: (n, 2) lon/lat for TimeLogs, (col, row) cell index for Grids
    """

    keys: np.ndarray = field(repr=False)
    values: np.ndarray = field(repr=False)
    positions: np.ndarray = field(repr=False)
    attrs: dict[str, Any] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        k, v, p = _validate_columns(self.keys, self.values, self.positions)

        if self.attrs is None:
            object.__setattr__(self, "attrs", {})
        elif not isinstance(self.attrs, dict):
            raise InvalidSamples("`attrs` must be a dict.")

        object.__setattr__(self, "keys", k)
        object.__setattr__(self, "values", v)
        object.__setattr__(self, "positions", p)

    @classmethod
    def empty(cls) -> "SampleSeries":
        return cls(keys=np.empty(0), values=np.empty(0), positions=np.empty((0, 2)))

    @property
    def n(self) -> int:
        return int(self.keys.size)

    def defined_mask(self) -> np.ndarray:
        return np.isfinite(self.values)

    def valid_position_mask(self) -> np.ndarray:
        return np.isfinite(self.positions).all(axis=1)

    def select(self, mask: np.ndarray) -> "SampleSeries":
        mask = np.asarray(mask, dtype=bool)
        if mask.shape != self.keys.shape:
            raise InvalidSamples(f"mask must have shape {self.keys.shape}, got {mask.shape}")
        return SampleSeries(
            keys=self.keys[mask],
            values=self.values[mask],
            positions=self.positions[mask],
            attrs=self.attrs.copy(),
        )

    def to_numpy(self, *, copy: bool = False) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        if copy:
            return self.keys.copy(), self.values.copy(), self.positions.copy()
        return self.keys, self.values, self.positions


@dataclass(slots=True)
class LazySampleSeries:
    """Lazy sample series: parses on first access and caches the columns."""

    loader: Callable[[], tuple[np.ndarray, np.ndarray, np.ndarray]] = field(repr=False)
    attrs: dict[str, Any] = field(default_factory=dict, repr=False)

    _eager: SampleSeries | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        if not callable(self.loader):
            raise InvalidSamples("LazySampleSeries.loader must be callable.")
        if self.attrs is None:
            self.attrs = {}
        elif not isinstance(self.attrs, dict):
            raise InvalidSamples("`attrs` must be a dict.")

    def _ensure_loaded(self) -> SampleSeries:
        if self._eager is None:
            k, v, p = self.loader()
            self._eager = SampleSeries(keys=k, values=v, positions=p, attrs=self.attrs.copy())
        return self._eager

    @property
    def is_loaded(self) -> bool:
        return self._eager is not None

    @property
    def keys(self) -> np.ndarray:
        return self._ensure_loaded().keys

    @property
    def values(self) -> np.ndarray:
        return self._ensure_loaded().values

    @property
    def positions(self) -> np.ndarray:
        return self._ensure_loaded().positions

    @property
    def n(self) -> int:
        return self._ensure_loaded().n

    def defined_mask(self) -> np.ndarray:
        return self._ensure_loaded().defined_mask()

    def valid_position_mask(self) -> np.ndarray:
        return self._ensure_loaded().valid_position_mask()

    def select(self, mask: np.ndarray) -> SampleSeries:
        # Selecting materializes.
        return self._ensure_loaded().select(mask)

    def to_numpy(self, *, copy: bool = False) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        return self._ensure_loaded().to_numpy(copy=copy)
