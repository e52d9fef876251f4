# isoviz/core/merge.py
"""
Merge Aggregator.

Combines the TimeLogs of one group (typically a task) into a single logical
source. Excluded sub-sources contribute nothing. With `fill_missing`, an
included sub-source that does not report a channel borrows, for each of its
samples, the value of the nearest-in-time sample of that channel among the
included sub-sources that do report it. Equidistant candidates are resolved
by sub-source order, then by the earlier sample.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping

import numpy as np

from isoviz.log import get_logger

from .channel import Channel
from .exceptions import ChannelNotFound, InvalidSource, SourceNotFound
from .metadata import ChannelDescriptor, SourceMeta
from .samples import SampleSeries
from .source import ChannelContainer, SourceKind, TimeLogSource, _positions_bbox

logger = get_logger(__name__)


def _same_conversion(a: ChannelDescriptor, b: ChannelDescriptor) -> bool:
    return a.scale == b.scale and a.offset == b.offset and a.lookup == b.lookup


def _rebased_values(channel: Channel, target: ChannelDescriptor) -> np.ndarray:
    """Raw values of `channel` expressed in the raw space of `target`."""
    if _same_conversion(channel.descriptor, target):
        return channel.raw_values
    return channel.physical_values / target.scale - target.offset


def nearest_in_time(
    donor_times: np.ndarray,
    donor_order: np.ndarray,
    times: np.ndarray,
) -> np.ndarray:
    """
    Index of the nearest donor sample for every entry of `times`.

    `donor_times` must be sorted ascending, and within equal times by
    `donor_order` (sub-source position, then sample position). On equal
    distance the candidate with the lower `donor_order` wins, then the
    earlier time.
    """
    n = donor_times.size
    if n == 0:
        raise ValueError("nearest_in_time needs at least one donor sample")

    right = np.searchsorted(donor_times, times, side="left")
    right_c = np.clip(right, 0, n - 1)
    left_c = np.clip(right - 1, 0, n - 1)
    # first donor of the left candidate's time block
    left_c = np.searchsorted(donor_times, donor_times[left_c], side="left")

    d_left = np.abs(times - donor_times[left_c])
    d_right = np.abs(donor_times[right_c] - times)

    has_left = right > 0
    has_right = right < n

    pick_right = has_right & (~has_left | (d_right < d_left))
    tie = has_left & has_right & (d_right == d_left)
    pick_right |= tie & (
        (donor_order[right_c] < donor_order[left_c])
        | ((donor_order[right_c] == donor_order[left_c]) & (donor_times[right_c] < donor_times[left_c]))
    )
    return np.where(pick_right, right_c, left_c)


@dataclass(frozen=True, slots=True)
class _Part:
    keys: np.ndarray
    values: np.ndarray
    positions: np.ndarray
    origin: int
    filled: bool


@dataclass(frozen=True, slots=True)
class MergedSource(ChannelContainer):
    """
    Logical union of TimeLogs sharing a parent.

    - sub_sources: in the caller's order (this order breaks fill ties)
    - excluded_ids: sub-sources left out of rendering and range computation
    - fill_missing: borrow nearest-in-time values for channels a sub-source lacks
    """
    source_id: str
    sub_sources: tuple[TimeLogSource, ...] = field(repr=False)
    excluded_ids: frozenset[str] = frozenset()
    fill_missing: bool = False
    meta: SourceMeta = field(default_factory=SourceMeta, repr=False)

    channels: Mapping[str, Channel] = field(init=False, repr=False)
    _origins: Mapping[str, np.ndarray] = field(init=False, repr=False)
    _filled: Mapping[str, np.ndarray] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if not isinstance(self.source_id, str) or not self.source_id.strip():
            raise InvalidSource("MergedSource.source_id must be a non-empty string.")
        if not isinstance(self.meta, SourceMeta):
            raise InvalidSource("MergedSource.meta must be a SourceMeta instance.")

        subs = tuple(self.sub_sources)
        seen: set[str] = set()
        for s in subs:
            if not isinstance(s, TimeLogSource):
                raise InvalidSource(
                    f"Only TimeLog sources can be merged, got {type(s).__name__}."
                )
            if s.source_id in seen:
                raise InvalidSource(f"Duplicate sub-source id '{s.source_id}'.")
            seen.add(s.source_id)
        object.__setattr__(self, "sub_sources", subs)

        unknown = set(self.excluded_ids) - seen
        if unknown:
            logger.warning("ignoring exclusion of unknown sub-source(s): %s", sorted(unknown))
        object.__setattr__(self, "excluded_ids", frozenset(set(self.excluded_ids) & seen))

        channels, origins, filled = self._build()
        object.__setattr__(self, "channels", channels)
        object.__setattr__(self, "_origins", origins)
        object.__setattr__(self, "_filled", filled)

    # ---- construction ----
    def _build(self) -> tuple[dict[str, Channel], dict[str, np.ndarray], dict[str, np.ndarray]]:
        included = [s for s in self.sub_sources if s.source_id not in self.excluded_ids]

        # Union of descriptors over every sub-source, first seen wins
        descriptors: dict[str, ChannelDescriptor] = {}
        for s in self.sub_sources:
            for key, ch in s.items():
                descriptors.setdefault(key, ch.descriptor)

        channels: dict[str, Channel] = {}
        origins: dict[str, np.ndarray] = {}
        filled: dict[str, np.ndarray] = {}
        for key, descriptor in descriptors.items():
            parts = self._parts_for(key, descriptor, included)
            series, origin, is_filled = _concat(parts)
            channels[key] = Channel(descriptor=descriptor, series=series)
            origins[key] = origin
            filled[key] = is_filled

        logger.debug(
            "merged %s: %d/%d sub-sources, %d channel(s), fill_missing=%s",
            self.source_id, len(included), len(self.sub_sources), len(channels), self.fill_missing,
        )
        return channels, origins, filled

    def _parts_for(
        self,
        key: str,
        descriptor: ChannelDescriptor,
        included: list[TimeLogSource],
    ) -> list[_Part]:
        order = {s.source_id: i for i, s in enumerate(self.sub_sources)}

        native: list[_Part] = []
        lacking: list[TimeLogSource] = []
        for s in included:
            ch = s.get(key)
            if ch is not None and ch.n > 0:
                keys, _, positions = ch.to_numpy()
                native.append(
                    _Part(keys, _rebased_values(ch, descriptor), positions, order[s.source_id], False)
                )
            else:
                lacking.append(s)

        if not (self.fill_missing and native and lacking):
            return native

        # donors are defined samples only
        defined = [np.isfinite(p.values) for p in native]
        donor_times = np.concatenate([p.keys[m] for p, m in zip(native, defined)])
        if donor_times.size == 0:
            return native
        donor_values = np.concatenate([p.values[m] for p, m in zip(native, defined)])
        donor_order = np.concatenate([np.full(int(m.sum()), p.origin) for p, m in zip(native, defined)])
        sort = np.lexsort((donor_order, donor_times))
        donor_times, donor_values, donor_order = donor_times[sort], donor_values[sort], donor_order[sort]

        parts = list(native)
        for s in lacking:
            keys, positions = _track_of(s)
            if keys.size == 0:
                continue
            idx = nearest_in_time(donor_times, donor_order, keys)
            parts.append(_Part(keys, donor_values[idx], positions, order[s.source_id], True))
        return parts

    # ---- capabilities ----
    @property
    def kind(self) -> SourceKind:
        return SourceKind.MERGED

    @property
    def sub_source_ids(self) -> tuple[str, ...]:
        return tuple(s.source_id for s in self.sub_sources)

    @property
    def included_ids(self) -> tuple[str, ...]:
        return tuple(i for i in self.sub_source_ids if i not in self.excluded_ids)

    @property
    def bbox(self) -> tuple[float, float, float, float] | None:
        return _positions_bbox(self.channels.values())

    def filled_mask(self, key: str) -> np.ndarray:
        """True for samples whose value was borrowed from another sub-source."""
        try:
            return self._filled[key]
        except KeyError as e:
            raise ChannelNotFound(key) from e

    def sub_source_of(self, key: str, index: int) -> str:
        """Id of the sub-source that contributed sample `index` of `key`."""
        try:
            origin = self._origins[key]
        except KeyError as e:
            raise ChannelNotFound(key) from e
        return self.sub_sources[int(origin[index])].source_id

    def with_excluded(self, excluded_ids: Iterable[str]) -> "MergedSource":
        return MergedSource(
            source_id=self.source_id,
            sub_sources=self.sub_sources,
            excluded_ids=frozenset(excluded_ids),
            fill_missing=self.fill_missing,
            meta=self.meta.copy(),
        )

    def toggle(self, sub_source_id: str) -> "MergedSource":
        """Flip the exclusion of one sub-source."""
        if sub_source_id not in self.sub_source_ids:
            raise SourceNotFound(sub_source_id)
        return self.with_excluded(self.excluded_ids ^ {sub_source_id})

    def with_fill_missing(self, fill_missing: bool) -> "MergedSource":
        return MergedSource(
            source_id=self.source_id,
            sub_sources=self.sub_sources,
            excluded_ids=self.excluded_ids,
            fill_missing=fill_missing,
            meta=self.meta.copy(),
        )


def _track_of(source: TimeLogSource) -> tuple[np.ndarray, np.ndarray]:
    """Distinct (time, position) samples of a TimeLog across all its channels."""
    blocks_k = [ch.series.keys for ch in source.channels.values() if ch.n]
    blocks_p = [ch.series.positions for ch in source.channels.values() if ch.n]
    if not blocks_k:
        return np.empty(0), np.empty((0, 2))
    keys = np.concatenate(blocks_k)
    positions = np.concatenate(blocks_p)
    _, first = np.unique(keys, return_index=True)
    return keys[first], positions[first]


def _concat(parts: list[_Part]) -> tuple[SampleSeries, np.ndarray, np.ndarray]:
    if not parts:
        return SampleSeries.empty(), np.empty(0, dtype=int), np.empty(0, dtype=bool)

    keys = np.concatenate([p.keys for p in parts])
    values = np.concatenate([p.values for p in parts])
    positions = np.concatenate([p.positions for p in parts])
    origin = np.concatenate([np.full(p.keys.size, p.origin, dtype=int) for p in parts])
    filled = np.concatenate([np.full(p.keys.size, p.filled, dtype=bool) for p in parts])

    # time order, ties kept in sub-source order
    sort = np.lexsort((origin, keys))
    series = SampleSeries(keys=keys[sort], values=values[sort], positions=positions[sort])
    return series, origin[sort], filled[sort]


def merge_sources(
    sources: Iterable[TimeLogSource],
    excluded_ids: Iterable[str] = (),
    fill_missing: bool = False,
    *,
    source_id: str | None = None,
    meta: SourceMeta | None = None,
) -> MergedSource:
    """
    Combine TimeLogs into one logical source.

    source_id defaults to the common parent of the sub-sources, else the
    sub-source ids joined with "+".
    """
    subs = tuple(sources)
    if source_id is None:
        parents = {s.meta.parent for s in subs if isinstance(s, TimeLogSource)}
        if len(parents) == 1 and None not in parents:
            source_id = parents.pop()
        else:
            source_id = "+".join(getattr(s, "source_id", "?") for s in subs) or "merged"
    if meta is None:
        meta = SourceMeta(parent=source_id, origin="merge")

    return MergedSource(
        source_id=source_id,
        sub_sources=subs,
        excluded_ids=frozenset(excluded_ids),
        fill_missing=fill_missing,
        meta=meta,
    )
