import numpy as np
import pytest

from isoviz.core.samples import SampleSeries
from isoviz.core.channel import Channel, ChannelDescriptor, InvalidChannel, empty_channel


def _series(values):
    n = len(values)
    return SampleSeries(
        keys=np.arange(n, dtype=float),
        values=np.array(values, dtype=float),
        positions=np.column_stack([np.full(n, 9.5), np.full(n, 45.5)]),
    )


def test_channel_basic_accessors():
    ch = Channel(descriptor=ChannelDescriptor(key="DLV0", unit="l/ha"), series=_series([10, 20]))

    assert ch.key == "DLV0"
    assert ch.n == 2
    assert ch.unit == "l/ha"
    assert np.allclose(ch.raw_values, [10.0, 20.0])


def test_channel_rejects_bad_parts():
    with pytest.raises(InvalidChannel):
        Channel(descriptor="DLV0", series=_series([1]))
    with pytest.raises(InvalidChannel):
        Channel(descriptor=ChannelDescriptor(key="x"), series=[1, 2])


def test_physical_values_apply_conversion():
    ch = Channel(
        descriptor=ChannelDescriptor(key="x", scale=0.5, offset=2),
        series=_series([0, 2, np.nan]),
    )
    assert np.allclose(ch.physical_values, [1.0, 2.0, np.nan], equal_nan=True)


def test_has_data_and_constant_flags():
    d = ChannelDescriptor(key="x")

    assert Channel(descriptor=d, series=_series([1, 2])).is_selectable
    constant = Channel(descriptor=d, series=_series([3, 3, np.nan]))
    assert constant.has_data and constant.is_constant and not constant.is_selectable
    undefined = Channel(descriptor=d, series=_series([np.nan]))
    assert not undefined.has_data and not undefined.is_selectable
    assert not empty_channel(d).has_data


def test_select_and_defined():
    ch = Channel(descriptor=ChannelDescriptor(key="x"), series=_series([1, np.nan, 3]))

    out = ch.defined()
    assert out.n == 2
    assert np.allclose(out.raw_values, [1.0, 3.0])
    assert out.descriptor is ch.descriptor


def test_with_descriptor_requires_same_key():
    ch = Channel(descriptor=ChannelDescriptor(key="x"), series=_series([1, 2]))

    ch2 = ch.with_descriptor(ChannelDescriptor(key="x", unit="kg"))
    assert ch2.unit == "kg"
    assert ch.unit is None

    with pytest.raises(InvalidChannel):
        ch.with_descriptor(ChannelDescriptor(key="y"))
