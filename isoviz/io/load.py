from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

import numpy as np
import yaml

from isoviz.core import adapt_grid, adapt_timelog
from isoviz.core.adapter import AdaptedSource
from isoviz.core.exceptions import InvalidSource
from isoviz.io.records import GridRecord, TimeLogRecord, ValueInfo
from isoviz.log import get_logger

logger = get_logger(__name__)

TIME_PROPERTY = "time"


def value_info_from_mapping(data: Mapping[str, Any]) -> ValueInfo:
    """Value info as emitted by the ISOXML parser (camelCase keys)."""
    try:
        key = data["valueKey"]
    except KeyError as e:
        raise InvalidSource("value info without 'valueKey'") from e
    return ValueInfo(
        value_key=str(key),
        ddi=data.get("DDINumber"),
        dd_entity_name=data.get("DDEntityName"),
        unit=data.get("unit"),
        scale=data.get("scale", 1.0),
        offset=data.get("offset", 0.0),
        number_of_decimals=data.get("numberOfDecimals"),
        device_element_id=data.get("deviceElementId"),
        device_element_designator=data.get("deviceElementDesignator"),
        is_proprietary=data.get("isProprietary"),
        min_value=data.get("minValue"),
        max_value=data.get("maxValue"),
    )


def timelog_from_mapping(data: Mapping[str, Any]) -> TimeLogRecord:
    """
    TimeLog from a GeoJSON-like mapping.

    {"id": "TLG00001", "parent": "TSK1", "valuesInfo": [...],
     "features": [{"geometry": {"coordinates": [lon, lat]},
                   "properties": {"time": 0.0, "DLV0": 12, ...}}, ...]}

    Missing "time" properties fall back to the feature index; value keys
    missing from a feature's properties are NaN.
    """
    infos = [value_info_from_mapping(v) for v in data.get("valuesInfo", [])]
    features = data.get("features", [])
    n = len(features)

    times = np.arange(n, dtype=float)
    positions = np.full((n, 2), np.nan)
    values = {info.value_key: np.full(n, np.nan) for info in infos}

    for i, feature in enumerate(features):
        coords = (feature.get("geometry") or {}).get("coordinates")
        if coords is not None and len(coords) >= 2:
            positions[i] = (coords[0], coords[1])
        props = feature.get("properties") or {}
        if props.get(TIME_PROPERTY) is not None:
            times[i] = float(props[TIME_PROPERTY])
        for key, column in values.items():
            raw = props.get(key)
            if raw is not None:
                column[i] = float(raw)

    return TimeLogRecord(
        timelog_id=str(data["id"]),
        times=times,
        positions=positions,
        values=values,
        infos=infos,
        parent=data.get("parent"),
    )


def grid_from_mapping(data: Mapping[str, Any]) -> GridRecord:
    zone_values = {
        int(code): {str(k): float(v) for k, v in zone.items()}
        for code, zone in (data.get("zoneValues") or {}).items()
    }
    return GridRecord(
        grid_id=str(data["id"]),
        grid_type=int(data.get("gridType", 2)),
        cells=np.asarray(data.get("cells", []), dtype=float),
        infos=[value_info_from_mapping(v) for v in data.get("valuesInfo", [])],
        origin=tuple(data.get("origin", (0.0, 0.0))),
        cell_size=tuple(data.get("cellSize", (1.0, 1.0))),
        zone_values=zone_values,
        nodata=data.get("nodata", 0),
        parent=data.get("parent"),
    )


def load_sources(path: str | Path) -> dict[str, AdaptedSource]:
    """
    Read a YAML/JSON export of parsed records and adapt every entry.

    {"timelogs": [...], "grids": [...]} -> source_id -> AdaptedSource
    """
    path = Path(path)
    with path.open("r", encoding="utf-8") as fh:
        doc = yaml.safe_load(fh) or {}

    adapted: dict[str, AdaptedSource] = {}
    for entry in doc.get("timelogs", []):
        result = adapt_timelog(timelog_from_mapping(entry))
        adapted[result.source.source_id] = result
    for entry in doc.get("grids", []):
        result = adapt_grid(grid_from_mapping(entry))
        adapted[result.source.source_id] = result

    logger.info("loaded %d source(s) from %s", len(adapted), path)
    return adapted
