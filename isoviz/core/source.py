# isoviz/core/source.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, Mapping

import numpy as np

from .channel import Channel
from .exceptions import ChannelNotFound, InvalidSource
from .metadata import ChannelDescriptor, SourceMeta
from .samples import SampleSeriesLike


class SourceKind(str, Enum):
    TIMELOG = "timelog"
    GRID = "grid"
    MERGED = "merged"


def _normalize_channels(channels: Mapping[str, Channel]) -> dict[str, Channel]:
    if not isinstance(channels, Mapping):
        raise InvalidSource("Source.channels must be a mapping (e.g., dict).")

    normalized: dict[str, Channel] = {}
    for key, ch in channels.items():
        if not isinstance(key, str) or not key.strip():
            raise InvalidSource("Source.channels keys must be non-empty strings.")
        if not isinstance(ch, Channel):
            raise InvalidSource("Source.channels values must be Channel instances.")
        # Enforce key consistency (important for predictable API)
        if ch.key != key:
            raise InvalidSource(f"Channel key mismatch: key '{key}' but Channel.key is '{ch.key}'.")
        normalized[key] = ch
    return normalized


class ChannelContainer:
    """
    Shared capability set of every source kind.

    Subclasses provide `source_id`, `kind` and `channels`.
    """

    __slots__ = ()

    # ---- dict-like API ----
    def __len__(self) -> int:
        return len(self.channels)

    def __iter__(self) -> Iterator[str]:
        return iter(self.channels)

    def __contains__(self, key: object) -> bool:
        return key in self.channels

    def __getitem__(self, key: str) -> Channel:
        try:
            return self.channels[key]
        except KeyError as e:
            raise ChannelNotFound(key) from e

    def keys(self) -> Iterable[str]:
        return self.channels.keys()

    def items(self) -> Iterable[tuple[str, Channel]]:
        return self.channels.items()

    def get(self, key: str, default: Channel | None = None) -> Channel | None:
        return self.channels.get(key, default)

    # ---- pipeline capabilities ----
    def sample_channels(self) -> list[ChannelDescriptor]:
        """Descriptors of channels worth selecting: some data, not constant."""
        return [ch.descriptor for ch in self.channels.values() if ch.is_selectable]

    def samples_for(self, key: str) -> SampleSeriesLike:
        return self[key].series

    def descriptor(self, key: str) -> ChannelDescriptor:
        return self[key].descriptor

    @property
    def no_valid_positions(self) -> bool:
        for ch in self.channels.values():
            if ch.n and ch.series.valid_position_mask().any():
                return False
        return True


def _positions_bbox(channels: Iterable[Channel]) -> tuple[float, float, float, float] | None:
    blocks = []
    for ch in channels:
        if ch.n == 0:
            continue
        p = ch.series.positions
        blocks.append(p[ch.series.valid_position_mask()])
    if not blocks:
        return None
    pts = np.concatenate(blocks)
    if pts.size == 0:
        return None
    return (
        float(pts[:, 0].min()),
        float(pts[:, 1].min()),
        float(pts[:, 0].max()),
        float(pts[:, 1].max()),
    )


@dataclass(frozen=True, slots=True)
class TimeLogSource(ChannelContainer):
    """
    One TimeLog: channels sampled along the machine track.

    Sample keys are timestamps (s), positions are (lon, lat).
    """
    source_id: str
    channels: Mapping[str, Channel] = field(default_factory=dict, repr=False)
    meta: SourceMeta = field(default_factory=SourceMeta, repr=False)

    def __post_init__(self) -> None:
        if not isinstance(self.source_id, str) or not self.source_id.strip():
            raise InvalidSource("TimeLogSource.source_id must be a non-empty string.")
        if not isinstance(self.meta, SourceMeta):
            raise InvalidSource("TimeLogSource.meta must be a SourceMeta instance.")
        # Freeze channels to a plain dict (stable / predictable)
        object.__setattr__(self, "channels", _normalize_channels(self.channels))

    @property
    def kind(self) -> SourceKind:
        return SourceKind.TIMELOG

    @property
    def bbox(self) -> tuple[float, float, float, float] | None:
        """(min_lon, min_lat, max_lon, max_lat) of the valid positions."""
        return _positions_bbox(self.channels.values())


@dataclass(frozen=True, slots=True)
class GridSource(ChannelContainer):
    """
    One prescription Grid.

    Samples are the non-empty cells in row-major scan order: keys are
    `row * cols + col`, positions are (col, row) cell indices. Geographic
    placement comes from `origin` (lon, lat of the south-west corner) and
    `cell_size` (dlon, dlat).
    """
    source_id: str
    shape: tuple[int, int]
    origin: tuple[float, float] = (0.0, 0.0)
    cell_size: tuple[float, float] = (1.0, 1.0)
    channels: Mapping[str, Channel] = field(default_factory=dict, repr=False)
    meta: SourceMeta = field(default_factory=SourceMeta, repr=False)

    def __post_init__(self) -> None:
        if not isinstance(self.source_id, str) or not self.source_id.strip():
            raise InvalidSource("GridSource.source_id must be a non-empty string.")
        if not isinstance(self.meta, SourceMeta):
            raise InvalidSource("GridSource.meta must be a SourceMeta instance.")

        try:
            rows, cols = (int(x) for x in self.shape)
        except (TypeError, ValueError) as e:
            raise InvalidSource(f"GridSource.shape must be (rows, cols), got {self.shape!r}") from e
        if rows < 0 or cols < 0:
            raise InvalidSource(f"GridSource.shape must be non-negative, got {self.shape!r}")
        object.__setattr__(self, "shape", (rows, cols))

        dx, dy = (float(x) for x in self.cell_size)
        if dx <= 0 or dy <= 0:
            raise InvalidSource(f"GridSource.cell_size must be positive, got {self.cell_size!r}")
        object.__setattr__(self, "cell_size", (dx, dy))
        object.__setattr__(self, "origin", tuple(float(x) for x in self.origin))

        object.__setattr__(self, "channels", _normalize_channels(self.channels))

    @property
    def kind(self) -> SourceKind:
        return SourceKind.GRID

    @property
    def bbox(self) -> tuple[float, float, float, float] | None:
        rows, cols = self.shape
        if rows == 0 or cols == 0 or self.no_valid_positions:
            return None
        lon, lat = self.origin
        dx, dy = self.cell_size
        return (lon, lat, lon + cols * dx, lat + rows * dy)

    def cell_center(self, col: int, row: int) -> tuple[float, float]:
        lon, lat = self.origin
        dx, dy = self.cell_size
        return (lon + (col + 0.5) * dx, lat + (row + 0.5) * dy)

    def value_at(self, col: int, row: int, key: str) -> float | None:
        """Raw value of one cell, None when outside the grid or empty."""
        series = self.samples_for(key)
        rows, cols = self.shape
        if not (0 <= col < cols and 0 <= row < rows):
            return None

        scan = float(row * cols + col)
        keys = series.keys
        i = int(np.searchsorted(keys, scan))
        if i >= keys.size or keys[i] != scan:
            return None
        v = float(series.values[i])
        return v if np.isfinite(v) else None
