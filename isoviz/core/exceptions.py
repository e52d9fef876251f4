# isoviz/core/exceptions.py
from __future__ import annotations


class CoreError(Exception):
    """Base error for all core-domain exceptions."""


# ---- Validation / construction errors ----
class InvalidSamples(CoreError):
    """Raised when a SampleSeries is constructed with invalid inputs."""


class InvalidChannel(CoreError):
    """Raised when a Channel / ChannelDescriptor is constructed with invalid inputs."""


class InvalidSource(CoreError):
    """Raised when a source (TimeLog, Grid, merged) is constructed with invalid inputs."""


# ---- Configuration errors (fatal at startup) ----
class ConfigError(CoreError):
    """Raised when settings cannot be loaded or validated."""


class InvalidPalette(ConfigError):
    """Raised when a color palette is empty, unparseable or clashes with the outlier color."""


# ---- Lookup errors (also behave like KeyError for dict-like APIs) ----
class ChannelNotFound(CoreError, KeyError):
    """Raised when a requested channel key is not present."""


class SourceNotFound(CoreError, KeyError):
    """Raised when a requested source id is not present."""
