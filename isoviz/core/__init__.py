# isoviz/core/__init__.py
"""
Core domain objects and pipeline for isoviz.

This module defines the value-range and color-mapping pipeline of the map
viewer:
- SampleSeries: validated ordered samples of one channel
- Channel: descriptor (conversion, unit, labels) + samples
- TimeLogSource / GridSource / MergedSource: the three source kinds
- compute_range / OutlierPolicy: {min, max} with optional outlier exclusion
- merge_sources: one logical source out of several TimeLogs
- map_color / Palette: deterministic color scale with an outlier color
- format_value: tooltip / legend text

The core layer is independent from ISOXML parsing and from any UI toolkit.
"""

from .samples import SampleSeries, LazySampleSeries, SampleSeriesLike
from .channel import Channel
from .source import SourceKind, TimeLogSource, GridSource
from .merge import MergedSource, merge_sources
from .metadata import ChannelDescriptor, SourceMeta
from .adapter import AdaptedSource, adapt_timelog, adapt_grid
from .outliers import OutlierPolicy, DEFAULT_POLICY
from .ranges import ValueRange, EmptyRange, EMPTY_RANGE, RangeCache, compute_range
from .color import RGB, Palette, DEFAULT_PALETTE, OUTLIER_COLOR, map_color, map_colors, css_gradient
from .formatting import format_value, format_physical, format_range, decimals_for_scale
from .state import SourceState
from .pipeline import Outcome, LayerView, channel_range, layer_colors, pick_value, pick_grid_value, resolve_channel, view_for
from .exceptions import (
    CoreError,
    InvalidSamples,
    InvalidChannel,
    InvalidSource,
    ConfigError,
    InvalidPalette,
    ChannelNotFound,
    SourceNotFound,
)


__all__ = [
    # samples
    "SampleSeries",
    "LazySampleSeries",
    "SampleSeriesLike",

    # domain objects
    "Channel",
    "SourceKind",
    "TimeLogSource",
    "GridSource",
    "MergedSource",

    # metadata
    "ChannelDescriptor",
    "SourceMeta",

    # pipeline
    "AdaptedSource",
    "adapt_timelog",
    "adapt_grid",
    "OutlierPolicy",
    "DEFAULT_POLICY",
    "ValueRange",
    "EmptyRange",
    "EMPTY_RANGE",
    "RangeCache",
    "compute_range",
    "merge_sources",
    "RGB",
    "Palette",
    "DEFAULT_PALETTE",
    "OUTLIER_COLOR",
    "map_color",
    "map_colors",
    "css_gradient",
    "format_value",
    "format_physical",
    "format_range",
    "decimals_for_scale",
    "SourceState",

    # rendering boundary
    "Outcome",
    "LayerView",
    "channel_range",
    "layer_colors",
    "pick_value",
    "pick_grid_value",
    "resolve_channel",
    "view_for",

    # exceptions
    "CoreError",
    "InvalidSamples",
    "InvalidChannel",
    "InvalidSource",
    "ConfigError",
    "InvalidPalette",
    "ChannelNotFound",
    "SourceNotFound",
]
