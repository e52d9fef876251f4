from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

import numpy as np


@dataclass
class ValueInfo:
    """
    Parsed description of one logged/prescribed value, as handed over by the
    ISOXML parser.

    Examples of value_key:
    - "DLV0_DET-1"    (TimeLog data log value)
    - "PDV1"          (Grid process data variable)
    """

    value_key: str
    ddi: int | None = None
    dd_entity_name: str | None = None
    unit: str | None = None
    scale: float = 1.0
    offset: float = 0.0
    number_of_decimals: int | None = None
    device_element_id: str | None = None
    device_element_designator: str | None = None
    is_proprietary: bool | None = None
    # Raw min/max as reported by the parser (optional, informative only)
    min_value: float | None = None
    max_value: float | None = None


@dataclass
class TimeLogRecord:
    """
    One parsed TimeLog.

    times:     (n,) seconds since the log start
    positions: (n, 2) lon/lat, NaN or (0, 0) where no fix was logged
    values:    value_key -> (n,) raw values, NaN where not logged
    """

    timelog_id: str
    times: np.ndarray
    positions: np.ndarray
    values: dict[str, np.ndarray]
    infos: list[ValueInfo]
    parent: str | None = None
    attrs: dict[str, Any] = field(default_factory=dict)


@dataclass
class GridRecord:
    """
    One parsed Grid.

    grid_type 1: `cells` (rows, cols) holds treatment zone codes and
                 `zone_values` maps code -> {value_key: raw value}.
    grid_type 2: `cells` (rows, cols) or (rows, cols, layers) holds raw values,
                 one layer per entry of `infos`.

    Cells equal to `nodata` are empty (the viewer shows no value for them).
    """

    grid_id: str
    grid_type: int
    cells: np.ndarray
    infos: list[ValueInfo]
    origin: tuple[float, float] = (0.0, 0.0)
    cell_size: tuple[float, float] = (1.0, 1.0)
    zone_values: Mapping[int, Mapping[str, float]] = field(default_factory=dict)
    nodata: float | None = 0
    parent: str | None = None
    attrs: dict[str, Any] = field(default_factory=dict)
