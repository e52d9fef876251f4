import numpy as np
import pytest

from isoviz.core.samples import SampleSeries, LazySampleSeries, SampleSeriesLike
from isoviz.core.exceptions import InvalidSamples


def _pos(n):
    return np.column_stack([np.linspace(9.0, 9.1, n), np.linspace(45.0, 45.1, n)])


def test_init_ok_basic():
    s = SampleSeries(keys=[0.0, 1.0, 2.0], values=[10.0, 20.0, 30.0], positions=_pos(3))

    assert s.n == 3
    assert s.keys.dtype == float
    assert s.positions.shape == (3, 2)
    assert isinstance(s, SampleSeriesLike)


def test_init_rejects_non_1d_values():
    with pytest.raises(InvalidSamples):
        SampleSeries(keys=[0.0, 1.0], values=[[1.0, 2.0]], positions=_pos(2))


def test_init_rejects_length_mismatch():
    with pytest.raises(InvalidSamples):
        SampleSeries(keys=[0.0, 1.0, 2.0], values=[1.0, 2.0], positions=_pos(3))


def test_init_rejects_bad_positions_shape():
    with pytest.raises(InvalidSamples):
        SampleSeries(keys=[0.0, 1.0], values=[1.0, 2.0], positions=np.zeros((2, 3)))
    with pytest.raises(InvalidSamples):
        SampleSeries(keys=[0.0, 1.0], values=[1.0, 2.0], positions=_pos(3))


def test_init_rejects_non_finite_or_decreasing_keys():
    with pytest.raises(InvalidSamples):
        SampleSeries(keys=[0.0, np.nan], values=[1.0, 2.0], positions=_pos(2))
    with pytest.raises(InvalidSamples):
        SampleSeries(keys=[1.0, 0.0], values=[1.0, 2.0], positions=_pos(2))


def test_allows_duplicate_keys_and_nan_values():
    s = SampleSeries(keys=[0.0, 1.0, 1.0], values=[1.0, np.nan, 3.0], positions=_pos(3))
    assert s.n == 3
    assert list(s.defined_mask()) == [True, False, True]


def test_empty_series():
    s = SampleSeries.empty()
    assert s.n == 0
    assert s.positions.shape == (0, 2)


def test_valid_position_mask_and_select():
    pos = _pos(3)
    pos[1] = np.nan
    s = SampleSeries(keys=[0.0, 1.0, 2.0], values=[1.0, 2.0, 3.0], positions=pos, attrs={"a": 1})

    assert list(s.valid_position_mask()) == [True, False, True]

    out = s.select(s.valid_position_mask())
    assert np.allclose(out.values, [1.0, 3.0])
    assert out.attrs == {"a": 1}
    assert out.attrs is not s.attrs

    with pytest.raises(InvalidSamples):
        s.select([True, False])


def test_to_numpy_copy_flag():
    s = SampleSeries(keys=[0.0, 1.0], values=[1.0, 2.0], positions=_pos(2))

    k, v, p = s.to_numpy(copy=False)
    k2, v2, p2 = s.to_numpy(copy=True)

    assert k is s.keys and v is s.values and p is s.positions
    assert k2 is not s.keys and v2 is not s.values and p2 is not s.positions
    assert np.allclose(v2, s.values)


def test_lazy_series_loads_on_access_and_caches():
    calls = {"n": 0}

    def loader():
        calls["n"] += 1
        return np.array([0.0, 1.0, 2.0]), np.array([10.0, 20.0, 30.0]), _pos(3)

    s = LazySampleSeries(loader=loader)

    # Not loaded yet
    assert calls["n"] == 0
    assert not s.is_loaded
    assert isinstance(s, SampleSeriesLike)

    # First access triggers load
    assert s.n == 3
    assert calls["n"] == 1

    # Subsequent accesses use cache
    _ = s.values
    _ = s.positions
    _ = s.select(np.array([True, False, True]))
    assert calls["n"] == 1


def test_lazy_series_validates_loaded_columns():
    s = LazySampleSeries(loader=lambda: (np.array([1.0, 0.0]), np.array([1.0, 2.0]), _pos(2)))
    with pytest.raises(InvalidSamples):
        _ = s.values


def test_lazy_series_rejects_non_callable_loader():
    with pytest.raises(InvalidSamples):
        LazySampleSeries(loader=42)
