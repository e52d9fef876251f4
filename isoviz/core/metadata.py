# isoviz/core/metadata.py
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Mapping

import numpy as np

from .exceptions import InvalidChannel, InvalidSource

# DDIs from this value upwards are manufacturer specific.
PROPRIETARY_DDI_START = 0xE000


@dataclass(frozen=True, slots=True)
class ChannelDescriptor:
    """
    Describes one measurable quantity of a source.

    - key: unique within a source (e.g. "DLV0_DET-1")
    - ddi: ISOXML data dictionary identifier
    - name / designator / device_element_id: labels shown in the channel menu
    - unit, scale, offset, decimals: raw -> physical conversion and display
    - lookup: raw code -> physical value (grid type 1 treatment zones)
    """
    key: str
    ddi: int | None = None
    name: str | None = None
    designator: str | None = None
    device_element_id: str | None = None
    proprietary: bool | None = None
    unit: str | None = None
    scale: float = 1.0
    offset: float = 0.0
    decimals: int | None = None
    lookup: Mapping[int, float] | None = field(default=None, repr=False)
    attrs: dict[str, Any] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        if not isinstance(self.key, str) or not self.key.strip():
            raise InvalidChannel("ChannelDescriptor.key must be a non-empty string.")

        scale = float(self.scale)
        if not math.isfinite(scale) or scale == 0.0:
            raise InvalidChannel(f"ChannelDescriptor.scale must be finite and non-zero, got {self.scale!r}")
        offset = float(self.offset)
        if not math.isfinite(offset):
            raise InvalidChannel(f"ChannelDescriptor.offset must be finite, got {self.offset!r}")
        object.__setattr__(self, "scale", scale)
        object.__setattr__(self, "offset", offset)

        if self.decimals is not None and (not isinstance(self.decimals, int) or self.decimals < 0):
            raise InvalidChannel("ChannelDescriptor.decimals must be a non-negative int.")

        if self.proprietary is None:
            object.__setattr__(
                self,
                "proprietary",
                self.ddi is not None and self.ddi >= PROPRIETARY_DDI_START,
            )

        if self.lookup is not None:
            if not isinstance(self.lookup, Mapping):
                raise InvalidChannel("ChannelDescriptor.lookup must be a mapping.")
            # Freeze to a plain dict owned by the descriptor
            object.__setattr__(
                self,
                "lookup",
                {int(k): float(v) for k, v in self.lookup.items()},
            )

        if self.attrs is None:
            object.__setattr__(self, "attrs", {})
        elif not isinstance(self.attrs, dict):
            raise InvalidChannel("ChannelDescriptor.attrs must be a dict.")

    # ---- conversion ----
    def to_physical(self, raw):
        """
        Convert raw value(s) to physical value(s).

        Scalars give a float, array-likes give a float ndarray. Undefined raws
        (NaN, or codes missing from the lookup) become NaN.
        """
        arr = np.asarray(raw, dtype=float)
        if self.lookup is not None:
            out = np.full(arr.shape, np.nan, dtype=float)
            flat_in = arr.ravel()
            flat_out = out.ravel()
            for i, r in enumerate(flat_in):
                if np.isfinite(r):
                    flat_out[i] = self.lookup.get(int(r), np.nan)
            out = flat_out.reshape(arr.shape)
        else:
            out = (arr + self.offset) * self.scale

        if out.ndim == 0:
            return float(out)
        return out

    # ---- labels ----
    @property
    def ddi_string(self) -> str | None:
        return None if self.ddi is None else f"{self.ddi:04X}"

    @property
    def title(self) -> str:
        if self.ddi is None:
            return self.name or self.key
        if self.name:
            return f"{self.name} (DDI: {self.ddi_string})"
        return f"DDI {self.ddi_string}"

    @property
    def device_label(self) -> str | None:
        if self.designator:
            return self.designator
        if self.device_element_id:
            return f"Device {self.device_element_id}"
        return None

    def with_unit(self, unit: str | None) -> "ChannelDescriptor":
        return ChannelDescriptor(
            key=self.key,
            ddi=self.ddi,
            name=self.name,
            designator=self.designator,
            device_element_id=self.device_element_id,
            proprietary=self.proprietary,
            unit=unit,
            scale=self.scale,
            offset=self.offset,
            decimals=self.decimals,
            lookup=self.lookup,
            attrs=self.attrs.copy(),
        )


@dataclass(frozen=True, slots=True)
class SourceMeta:
    """
    Metadata attached to a source (TimeLog, Grid or merged group).

    - parent: grouping id (typically the ISOXML task id)
    - description / origin: free text (file name, task designator, ...)
    """
    parent: str | None = None
    description: str | None = None
    origin: str | None = None
    attrs: dict[str, Any] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        if self.attrs is None:
            object.__setattr__(self, "attrs", {})
        elif not isinstance(self.attrs, dict):
            raise InvalidSource("SourceMeta.attrs must be a dict.")

    def copy(self) -> "SourceMeta":
        return SourceMeta(
            parent=self.parent,
            description=self.description,
            origin=self.origin,
            attrs=self.attrs.copy(),
        )
