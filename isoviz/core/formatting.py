# isoviz/core/formatting.py
from __future__ import annotations

import math

from .metadata import ChannelDescriptor
from .ranges import EmptyRange, ValueRange

MAX_DECIMALS = 6
MISSING = "-"


def decimals_for_scale(scale: float, *, max_decimals: int = MAX_DECIMALS) -> int:
    """
    Decimals that show every raw step exactly: 1 -> 0, 0.01 -> 2, 0.25 -> 2, 2.5 -> 1.

    Capped at `max_decimals` for scales that need more.
    """
    s = abs(float(scale))
    if s == 0 or not math.isfinite(s):
        return 0
    for digits in range(max_decimals + 1):
        if math.isclose(round(s, digits), s, rel_tol=1e-9, abs_tol=0.0):
            return digits
    return max_decimals


def precision_of(descriptor: ChannelDescriptor, *, max_decimals: int = MAX_DECIMALS) -> int:
    if descriptor.decimals is not None:
        return min(descriptor.decimals, max_decimals)
    if descriptor.lookup is not None:
        return 0 if all(float(v).is_integer() for v in descriptor.lookup.values()) else 2
    return decimals_for_scale(descriptor.scale, max_decimals=max_decimals)


def format_physical(value, descriptor: ChannelDescriptor, *, max_decimals: int = MAX_DECIMALS) -> str:
    """'12.35 kg/ha'; the bare number when the channel has no unit; '-' when undefined."""
    if value is None:
        return MISSING
    value = float(value)
    if not math.isfinite(value):
        return MISSING

    digits = precision_of(descriptor, max_decimals=max_decimals)
    text = f"{value:.{digits}f}"
    if text.startswith("-") and float(text) == 0:
        text = text[1:]
    return f"{text} {descriptor.unit}" if descriptor.unit else text


def format_value(raw, descriptor: ChannelDescriptor, *, max_decimals: int = MAX_DECIMALS) -> str:
    """Convert a raw sample with the channel's conversion, then format it."""
    if raw is None:
        return MISSING
    return format_physical(descriptor.to_physical(raw), descriptor, max_decimals=max_decimals)


def format_range(
    value_range: ValueRange | EmptyRange,
    descriptor: ChannelDescriptor,
    *,
    max_decimals: int = MAX_DECIMALS,
) -> str:
    """Legend text: '10 kg - 30 kg', or 'no data'."""
    if not value_range:
        return "no data"
    lo = format_physical(value_range.min, descriptor, max_decimals=max_decimals)
    hi = format_physical(value_range.max, descriptor, max_decimals=max_decimals)
    return f"{lo} - {hi}"
