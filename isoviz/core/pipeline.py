# isoviz/core/pipeline.py
"""
Rendering boundary.

Everything here returns an Outcome instead of raising: a failure in the
middle of a frame must not break the render loop. Errors are logged and
handed back as `Outcome(status="error")`.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Union

import numpy as np

from isoviz.log import get_logger

from .color import DEFAULT_PALETTE, Palette, map_colors
from .exceptions import ChannelNotFound, CoreError
from .formatting import MAX_DECIMALS, format_range, format_value
from .merge import MergedSource
from .outliers import OutlierPolicy
from .ranges import EMPTY_RANGE, RangeCache, ValueRange, compute_range
from .source import GridSource, TimeLogSource
from .state import SourceState

if TYPE_CHECKING:
    from isoviz.config import VizSettings

logger = get_logger(__name__)

AnySource = Union[TimeLogSource, GridSource, MergedSource]

OK = "ok"
EMPTY = "empty"
ERROR = "error"


@dataclass(frozen=True, slots=True)
class Outcome:
    status: str
    value: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == OK

    @property
    def empty(self) -> bool:
        return self.status == EMPTY

    @classmethod
    def success(cls, value: Any) -> "Outcome":
        return cls(status=OK, value=value)

    @classmethod
    def nothing(cls, reason: str | None = None) -> "Outcome":
        return cls(status=EMPTY, error=reason)

    @classmethod
    def failure(cls, error: str) -> "Outcome":
        return cls(status=ERROR, error=error)


@dataclass(frozen=True, slots=True)
class LayerView:
    """Everything a map layer needs to draw one source."""
    source_id: str
    channel_key: str
    domain: ValueRange
    colors: np.ndarray
    positions: np.ndarray
    legend: str


def _guard(what: str, fn: Callable[[], Outcome]) -> Outcome:
    try:
        return fn()
    except ChannelNotFound as e:
        logger.warning("%s: channel not found: %s", what, e.args[0] if e.args else e)
        return Outcome.failure(f"channel not found: {e.args[0] if e.args else ''}")
    except (CoreError, ValueError) as e:
        logger.warning("%s failed: %s", what, e)
        return Outcome.failure(str(e))


def range_flags(source: AnySource, exclude_outliers: bool) -> tuple:
    if isinstance(source, MergedSource):
        return (bool(exclude_outliers), source.fill_missing, tuple(sorted(source.excluded_ids)))
    return (bool(exclude_outliers),)


def channel_range(
    source: AnySource,
    key: str,
    exclude_outliers: bool = False,
    *,
    cache: RangeCache | None = None,
    policy: OutlierPolicy | None = None,
) -> Outcome:
    """Outcome with a ValueRange, empty when nothing qualifies."""

    def run() -> Outcome:
        channel = source[key]

        def compute():
            return compute_range(channel, exclude_outliers, policy)

        if cache is None:
            result = compute()
        else:
            result = cache.get_or_compute(source.source_id, key, range_flags(source, exclude_outliers), compute)
        if result is EMPTY_RANGE:
            return Outcome.nothing("no data")
        return Outcome.success(result)

    return _guard(f"range of {source.source_id}/{key}", run)


def layer_colors(
    source: AnySource,
    key: str,
    domain: ValueRange,
    palette: Palette = DEFAULT_PALETTE,
) -> Outcome:
    """Outcome with an (n, 3) uint8 fill color per sample of `key`."""

    def run() -> Outcome:
        channel = source[key]
        if channel.n == 0:
            return Outcome.nothing("no data")
        return Outcome.success(map_colors(channel.physical_values, domain.min, domain.max, palette))

    return _guard(f"colors of {source.source_id}/{key}", run)


def pick_value(source: AnySource, key: str, index: int, *, max_decimals: int = MAX_DECIMALS) -> Outcome:
    """Tooltip text for sample `index` of channel `key`."""

    def run() -> Outcome:
        channel = source[key]
        if not 0 <= index < channel.n:
            return Outcome.nothing("no sample")
        raw = float(channel.raw_values[index])
        if not np.isfinite(raw):
            return Outcome.nothing("no value")
        return Outcome.success(format_value(raw, channel.descriptor, max_decimals=max_decimals))

    return _guard(f"pick on {source.source_id}/{key}", run)


def pick_grid_value(
    grid: GridSource,
    col: int,
    row: int,
    key: str,
    *,
    max_decimals: int = MAX_DECIMALS,
) -> Outcome:
    """Tooltip text for one grid cell; empty for cells without a value."""

    def run() -> Outcome:
        raw = grid.value_at(col, row, key)
        if raw is None:
            return Outcome.nothing("no value")
        return Outcome.success(format_value(raw, grid.descriptor(key), max_decimals=max_decimals))

    return _guard(f"pick on {grid.source_id}/{key}", run)


def resolve_channel(source: AnySource, state: SourceState) -> Outcome:
    """
    Channel to show for `source`.

    - the selected key when it is selectable
    - the first selectable channel when nothing is selected
    - empty when the source has no selectable channel
    - error when the selected key does not exist (stale selection)
    """

    def run() -> Outcome:
        selectable = [d.key for d in source.sample_channels()]
        if state.selected_key is not None:
            if state.selected_key not in source:
                raise ChannelNotFound(state.selected_key)
            if state.selected_key in selectable:
                return Outcome.success(state.selected_key)
        if not selectable:
            return Outcome.nothing("no selectable channel")
        return Outcome.success(selectable[0])

    return _guard(f"channel of {source.source_id}", run)


def apply_state(source: AnySource, state: SourceState) -> AnySource:
    """Re-merge a MergedSource whose exclusion / fill settings differ from `state`."""
    if isinstance(source, MergedSource) and (
        source.excluded_ids != state.excluded_ids or source.fill_missing != state.fill_missing
    ):
        return MergedSource(
            source_id=source.source_id,
            sub_sources=source.sub_sources,
            excluded_ids=state.excluded_ids,
            fill_missing=state.fill_missing,
            meta=source.meta.copy(),
        )
    return source


def view_for(
    source: AnySource,
    state: SourceState,
    *,
    cache: RangeCache | None = None,
    settings: "VizSettings | None" = None,
) -> Outcome:
    """Outcome with a LayerView for a visible source; empty when hidden or without data."""
    if not state.visible:
        return Outcome.nothing("hidden")

    palette = settings.palette if settings is not None else DEFAULT_PALETTE
    policy = settings.outlier_policy if settings is not None else None
    max_decimals = settings.max_decimals if settings is not None else MAX_DECIMALS

    def run() -> Outcome:
        # state first: a merged source may gain or lose its sub-sources here
        src = apply_state(source, state)
        if src.no_valid_positions:
            return Outcome.nothing("no valid positions")

        chosen = resolve_channel(src, state)
        if not chosen.ok:
            return chosen
        key = chosen.value

        rng = channel_range(src, key, state.exclude_outliers, cache=cache, policy=policy)
        if not rng.ok:
            return rng

        colors = layer_colors(src, key, rng.value, palette)
        if not colors.ok:
            return colors

        channel = src[key]
        return Outcome.success(
            LayerView(
                source_id=src.source_id,
                channel_key=key,
                domain=rng.value,
                colors=colors.value,
                positions=channel.series.positions,
                legend=format_range(rng.value, channel.descriptor, max_decimals=max_decimals),
            )
        )

    return _guard(f"view of {source.source_id}", run)
