# isoviz/core/adapter.py
"""
Sample Source Adapter.

Projects parsed TimeLog / Grid records onto the core model: one Channel per
value key, samples in temporal (TimeLog) or row-major scan (Grid) order.
Pure: the record is never modified.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np

from isoviz.log import get_logger

from .channel import Channel
from .exceptions import InvalidSource
from .metadata import ChannelDescriptor, SourceMeta
from .samples import SampleSeries
from .source import GridSource, TimeLogSource

if TYPE_CHECKING:
    from isoviz.io.records import GridRecord, TimeLogRecord, ValueInfo

logger = get_logger(__name__)

NO_DATA = "no_data"
CONSTANT = "constant"


@dataclass(frozen=True)
class AdaptedSource:
    """
    Result of adapting one record.

    - source: the TimeLogSource / GridSource (channels with at least one value)
    - channels: selectable descriptors (not constant)
    - skipped: value_key -> reason ("no_data" or "constant")
    - no_valid_positions: nothing in the record can be placed on the map
    """
    source: TimeLogSource | GridSource
    channels: list[ChannelDescriptor]
    skipped: dict[str, str] = field(default_factory=dict)
    no_valid_positions: bool = False


def descriptor_from_info(info: "ValueInfo", *, lookup=None) -> ChannelDescriptor:
    return ChannelDescriptor(
        key=info.value_key,
        ddi=info.ddi,
        name=info.dd_entity_name,
        designator=info.device_element_designator,
        device_element_id=info.device_element_id,
        proprietary=info.is_proprietary,
        unit=info.unit or None,
        scale=info.scale if info.scale is not None else 1.0,
        offset=info.offset if info.offset is not None else 0.0,
        decimals=info.number_of_decimals,
        lookup=lookup,
    )


def _split_channels(
    channels: dict[str, Channel],
) -> tuple[dict[str, Channel], list[ChannelDescriptor], dict[str, str]]:
    kept: dict[str, Channel] = {}
    selectable: list[ChannelDescriptor] = []
    skipped: dict[str, str] = {}
    for key, ch in channels.items():
        if not ch.has_data:
            skipped[key] = NO_DATA
            continue
        kept[key] = ch
        if ch.is_constant:
            skipped[key] = CONSTANT
        else:
            selectable.append(ch.descriptor)
    return kept, selectable, skipped


def adapt_timelog(record: "TimeLogRecord") -> AdaptedSource:
    times = np.asarray(record.times, dtype=float)
    positions = np.array(record.positions, dtype=float, copy=True)
    if positions.size == 0:
        positions = positions.reshape(0, 2)
    n = times.size

    if positions.shape != (n, 2):
        raise InvalidSource(
            f"TimeLog '{record.timelog_id}': positions must have shape ({n}, 2), got {positions.shape}"
        )

    # (0, 0) is what loggers write when no GNSS fix is available
    no_fix = (positions[:, 0] == 0) & (positions[:, 1] == 0)
    positions[no_fix] = np.nan

    order = np.argsort(times, kind="stable")
    times = times[order]
    positions = positions[order]
    placed = np.isfinite(times) & np.isfinite(positions).all(axis=1)

    meta = SourceMeta(parent=record.parent, origin=f"TimeLog:{record.timelog_id}", attrs=dict(record.attrs))

    if not placed.any():
        logger.info("TimeLog %s has no valid positions", record.timelog_id)
        return AdaptedSource(
            source=TimeLogSource(source_id=record.timelog_id, meta=meta),
            channels=[],
            skipped={info.value_key: NO_DATA for info in record.infos},
            no_valid_positions=True,
        )

    channels: dict[str, Channel] = {}
    for info in record.infos:
        raw = record.values.get(info.value_key)
        if raw is None:
            values = np.full(n, np.nan)
        else:
            values = np.asarray(raw, dtype=float)
            if values.shape != (n,):
                raise InvalidSource(
                    f"TimeLog '{record.timelog_id}': values for '{info.value_key}' "
                    f"must have shape ({n},), got {values.shape}"
                )
            values = values[order]

        mask = placed & np.isfinite(values)
        series = SampleSeries(keys=times[mask], values=values[mask], positions=positions[mask])
        channels[info.value_key] = Channel(descriptor=descriptor_from_info(info), series=series)

    kept, selectable, skipped = _split_channels(channels)
    logger.debug(
        "TimeLog %s adapted: %d selectable, %d skipped", record.timelog_id, len(selectable), len(skipped)
    )
    return AdaptedSource(
        source=TimeLogSource(source_id=record.timelog_id, channels=kept, meta=meta),
        channels=selectable,
        skipped=skipped,
    )


def _grid_series(raw: np.ndarray, keep: np.ndarray) -> SampleSeries:
    rows, cols = raw.shape
    flat_keep = keep.ravel()
    scan = np.arange(rows * cols, dtype=float)[flat_keep]
    rr, cc = np.divmod(scan.astype(int), max(cols, 1))
    positions = np.column_stack([cc, rr]).astype(float).reshape(-1, 2)
    return SampleSeries(keys=scan, values=raw.ravel()[flat_keep].astype(float), positions=positions)


def adapt_grid(record: "GridRecord") -> AdaptedSource:
    cells = np.asarray(record.cells)
    if cells.ndim == 2:
        layers = cells[:, :, np.newaxis]
    elif cells.ndim == 3:
        layers = cells
    else:
        raise InvalidSource(f"Grid '{record.grid_id}': cells must be 2D or 3D, got shape {cells.shape}")
    rows, cols = layers.shape[:2]

    channels: dict[str, Channel] = {}
    if record.grid_type == 1:
        codes = layers[:, :, 0]
        for info in record.infos:
            descriptor = descriptor_from_info(info)
            lookup = {}
            for code, zone in record.zone_values.items():
                if info.value_key in zone:
                    lookup[int(code)] = descriptor.to_physical(zone[info.value_key])
            keep = np.isin(codes, list(lookup)) if lookup else np.zeros(codes.shape, dtype=bool)
            channels[info.value_key] = Channel(
                descriptor=descriptor_from_info(info, lookup=lookup),
                series=_grid_series(codes, keep),
            )
    elif record.grid_type == 2:
        if layers.shape[2] != len(record.infos):
            raise InvalidSource(
                f"Grid '{record.grid_id}': {layers.shape[2]} layers but {len(record.infos)} value infos"
            )
        for i, info in enumerate(record.infos):
            raw = layers[:, :, i].astype(float)
            keep = np.isfinite(raw)
            if record.nodata is not None:
                keep &= raw != record.nodata
            channels[info.value_key] = Channel(
                descriptor=descriptor_from_info(info),
                series=_grid_series(raw, keep),
            )
    else:
        raise InvalidSource(f"Grid '{record.grid_id}': unsupported grid type {record.grid_type!r}")

    kept, selectable, skipped = _split_channels(channels)
    source = GridSource(
        source_id=record.grid_id,
        shape=(rows, cols),
        origin=record.origin,
        cell_size=record.cell_size,
        channels=kept,
        meta=SourceMeta(parent=record.parent, origin=f"Grid:{record.grid_id}", attrs=dict(record.attrs)),
    )
    return AdaptedSource(
        source=source,
        channels=selectable,
        skipped=skipped,
        no_valid_positions=source.no_valid_positions,
    )
