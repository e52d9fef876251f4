# isoviz/core/channel.py

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .exceptions import InvalidChannel
from .metadata import ChannelDescriptor
from .samples import SampleSeries, SampleSeriesLike


@dataclass(slots=True, frozen=True)
class Channel:
    descriptor: ChannelDescriptor
    series: SampleSeriesLike

    def __post_init__(self) -> None:
        if not isinstance(self.descriptor, ChannelDescriptor):
            raise InvalidChannel("Channel.descriptor must be a ChannelDescriptor instance.")

        if not isinstance(self.series, SampleSeriesLike):
            raise InvalidChannel("Channel.series must be a SampleSeries-like object.")

    # Convenience accessors
    @property
    def key(self) -> str:
        return self.descriptor.key

    @property
    def unit(self) -> str | None:
        return self.descriptor.unit

    @property
    def n(self) -> int:
        return self.series.n

    @property
    def raw_values(self) -> np.ndarray:
        return self.series.values

    @property
    def physical_values(self) -> np.ndarray:
        return np.asarray(self.descriptor.to_physical(self.series.values), dtype=float).reshape(-1)

    @property
    def has_data(self) -> bool:
        return bool(np.isfinite(self.physical_values).any())

    @property
    def is_constant(self) -> bool:
        """True when every defined value is the same (or nothing is defined)."""
        v = self.physical_values
        v = v[np.isfinite(v)]
        return v.size == 0 or bool(v.min() == v.max())

    @property
    def is_selectable(self) -> bool:
        return self.has_data and not self.is_constant

    # Core operations
    def select(self, mask: np.ndarray) -> "Channel":
        return Channel(descriptor=self.descriptor, series=self.series.select(mask))

    def with_descriptor(self, descriptor: ChannelDescriptor) -> "Channel":
        if descriptor.key != self.key:
            raise InvalidChannel(
                f"Descriptor key '{descriptor.key}' does not match channel key '{self.key}'."
            )
        return Channel(descriptor=descriptor, series=self.series)

    def defined(self) -> "Channel":
        """Keep only samples with a defined physical value."""
        return self.select(np.isfinite(self.physical_values))

    def to_numpy(self, *, copy: bool = False) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        return self.series.to_numpy(copy=copy)


def empty_channel(descriptor: ChannelDescriptor) -> Channel:
    return Channel(descriptor=descriptor, series=SampleSeries.empty())
