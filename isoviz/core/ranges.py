# isoviz/core/ranges.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Hashable

import numpy as np

from isoviz.log import get_logger

from .channel import Channel
from .outliers import DEFAULT_POLICY, OutlierPolicy

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ValueRange:
    """Closed interval [min, max] of physical values."""
    min: float
    max: float

    def __post_init__(self) -> None:
        if not (self.min <= self.max):
            raise ValueError(f"ValueRange requires min <= max, got {self.min} > {self.max}")

    def __bool__(self) -> bool:
        return True

    @property
    def span(self) -> float:
        return self.max - self.min

    @property
    def is_degenerate(self) -> bool:
        return self.min == self.max

    def contains(self, value: float) -> bool:
        return self.min <= value <= self.max


class EmptyRange:
    """No qualifying samples. Falsy; a single shared instance."""

    __slots__ = ()
    _instance: "EmptyRange | None" = None

    def __new__(cls) -> "EmptyRange":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "EMPTY_RANGE"

    def contains(self, value: float) -> bool:
        return False


EMPTY_RANGE = EmptyRange()


def _physical(samples: Any) -> np.ndarray:
    if isinstance(samples, Channel):
        return samples.physical_values
    values = getattr(samples, "values", samples)
    if callable(values):
        # plain mappings expose .values() as a method
        values = list(values())
    return np.asarray(values, dtype=float).reshape(-1)


def compute_range(
    samples: Any,
    exclude_outliers: bool = False,
    policy: OutlierPolicy | None = None,
) -> ValueRange | EmptyRange:
    """
    Compute {min, max} over the defined samples.

    samples:
      - Channel: its physical values are used
      - SampleSeries-like: its `values` column is used as-is
      - array-like of values
    exclude_outliers:
      apply `policy` (IQR fences by default) before taking min/max
    """
    v = _physical(samples)
    v = v[np.isfinite(v)]

    if exclude_outliers and v.size:
        v = v[(policy or DEFAULT_POLICY).keep_mask(v)]

    if v.size == 0:
        return EMPTY_RANGE
    return ValueRange(min=float(v.min()), max=float(v.max()))


class RangeCache:
    """
    Explicit memo for ranges keyed by (source_id, channel_key, policy_flags).

    Nothing is invalidated implicitly: callers drop entries with `invalidate`
    when the contributing samples or flags change. Flags are part of the key,
    so a changed flag never reads a stale entry.
    """

    def __init__(self) -> None:
        self._entries: dict[tuple[str, str, Hashable], ValueRange | EmptyRange] = {}
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get_or_compute(
        self,
        source_id: str,
        channel_key: str,
        policy_flags: Hashable,
        compute: Callable[[], ValueRange | EmptyRange],
    ) -> ValueRange | EmptyRange:
        key = (source_id, channel_key, policy_flags)
        try:
            result = self._entries[key]
        except KeyError:
            self.misses += 1
            logger.debug("range cache miss: %s", key)
            result = compute()
            self._entries[key] = result
        else:
            self.hits += 1
        return result

    def invalidate(self, source_id: str | None = None, channel_key: str | None = None) -> int:
        """
        Drop cached entries; returns how many were removed.

        - no arguments: everything
        - source_id: every entry of that source
        - source_id + channel_key: that channel only
        """
        if source_id is None:
            n = len(self._entries)
            self._entries.clear()
            return n

        doomed = [
            k for k in self._entries
            if k[0] == source_id and (channel_key is None or k[1] == channel_key)
        ]
        for k in doomed:
            del self._entries[k]
        if doomed:
            logger.debug("invalidated %d cached range(s) of %s", len(doomed), source_id)
        return len(doomed)
