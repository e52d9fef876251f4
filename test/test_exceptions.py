import pytest

from isoviz.core import (
    CoreError,
    InvalidSamples,
    InvalidChannel,
    InvalidSource,
    ConfigError,
    InvalidPalette,
    ChannelNotFound,
    SourceNotFound,
)


def test_exception_inheritance_validation():
    assert issubclass(InvalidSamples, CoreError)
    assert issubclass(InvalidChannel, CoreError)
    assert issubclass(InvalidSource, CoreError)
    assert issubclass(ConfigError, CoreError)
    assert issubclass(InvalidPalette, ConfigError)


def test_exception_inheritance_lookup_keyerror():
    assert issubclass(ChannelNotFound, KeyError)
    assert issubclass(ChannelNotFound, CoreError)
    assert issubclass(SourceNotFound, KeyError)
    assert issubclass(SourceNotFound, CoreError)


def test_lookup_errors_can_be_raised_and_caught_as_keyerror():
    with pytest.raises(KeyError):
        raise ChannelNotFound("DLV0")

    with pytest.raises(KeyError):
        raise SourceNotFound("TLG00001")
