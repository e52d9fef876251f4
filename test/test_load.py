import numpy as np
import pytest

from isoviz.core import GridSource, InvalidSource, TimeLogSource
from isoviz.io.load import (
    grid_from_mapping,
    load_sources,
    timelog_from_mapping,
    value_info_from_mapping,
)


def _feature(lon, lat, t=None, **props):
    if t is not None:
        props["time"] = t
    return {"geometry": {"type": "Point", "coordinates": [lon, lat]}, "properties": props}


TIMELOG = {
    "id": "TLG00001",
    "parent": "TSK1",
    "valuesInfo": [
        {"valueKey": "DLV0", "DDINumber": 6, "DDEntityName": "Actual Mass Per Area", "unit": "kg/ha", "scale": 0.01},
        {"valueKey": "DLV1", "DDINumber": 0xE001},
    ],
    "features": [
        _feature(9.0, 45.0, t=2.0, DLV0=2000, DLV1=7),
        _feature(9.1, 45.1, t=0.0, DLV0=1000, DLV1=7),
        _feature(0.0, 0.0, t=1.0, DLV0=9999, DLV1=7),
        _feature(9.2, 45.2, t=3.0, DLV1=7),
    ],
}

GRID = {
    "id": "GRD00001",
    "parent": "TSK1",
    "gridType": 2,
    "origin": [9.0, 45.0],
    "cellSize": [0.001, 0.001],
    "cells": [[0, 10], [20, 30]],
    "valuesInfo": [{"valueKey": "PDV0", "DDINumber": 1, "unit": "l/ha"}],
}


def test_value_info_from_mapping():
    info = value_info_from_mapping(TIMELOG["valuesInfo"][0])
    assert info.value_key == "DLV0"
    assert info.ddi == 6
    assert info.dd_entity_name == "Actual Mass Per Area"
    assert info.scale == 0.01
    assert info.offset == 0.0

    with pytest.raises(InvalidSource):
        value_info_from_mapping({"DDINumber": 6})


def test_timelog_from_mapping():
    rec = timelog_from_mapping(TIMELOG)
    assert rec.timelog_id == "TLG00001"
    assert rec.parent == "TSK1"
    assert np.array_equal(rec.times, [2.0, 0.0, 1.0, 3.0])
    assert rec.positions.shape == (4, 2)
    assert np.isnan(rec.values["DLV0"][3])


def test_timelog_without_time_uses_feature_index():
    rec = timelog_from_mapping({"id": "T", "features": [_feature(1, 1), _feature(2, 2)]})
    assert np.array_equal(rec.times, [0.0, 1.0])


def test_grid_from_mapping():
    rec = grid_from_mapping(GRID)
    assert rec.grid_type == 2
    assert rec.cells.shape == (2, 2)
    assert rec.origin == (9.0, 45.0)
    assert rec.nodata == 0


def test_grid_type1_zone_values():
    rec = grid_from_mapping(
        {
            "id": "G1",
            "gridType": 1,
            "cells": [[1, 2]],
            "zoneValues": {"1": {"PDV0": 100}, "2": {"PDV0": 150}},
            "valuesInfo": [{"valueKey": "PDV0"}],
        }
    )
    assert rec.zone_values == {1: {"PDV0": 100.0}, 2: {"PDV0": 150.0}}


def test_load_sources(tmp_path):
    import yaml

    path = tmp_path / "task.yaml"
    path.write_text(yaml.safe_dump({"timelogs": [TIMELOG], "grids": [GRID]}), encoding="utf-8")

    adapted = load_sources(path)
    assert set(adapted) == {"TLG00001", "GRD00001"}

    tlg = adapted["TLG00001"]
    assert isinstance(tlg.source, TimeLogSource)
    # (0, 0) sample has no fix; the sample without DLV0 is undefined
    ch = tlg.source["DLV0"]
    assert np.array_equal(ch.series.keys, [0.0, 2.0])
    assert np.allclose(ch.physical_values, [10.0, 20.0])
    assert [d.key for d in tlg.channels] == ["DLV0"]
    assert tlg.skipped == {"DLV1": "constant"}

    grd = adapted["GRD00001"]
    assert isinstance(grd.source, GridSource)
    assert grd.source["PDV0"].n == 3
    assert grd.source.value_at(0, 0, "PDV0") is None
    assert grd.source.value_at(1, 1, "PDV0") == 30.0


def test_load_sources_empty_file(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    assert load_sources(path) == {}
