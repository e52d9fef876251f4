"""
Viewer settings: palette, outlier fences and number formatting.

Loaded once at startup from YAML; any problem raises ConfigError (or
InvalidPalette) so a broken palette never reaches the render loop.

Example::

    palette:
      colors: ["#d7191c", "#fdae61", "#ffffbf", "#a6d96a", "#1a9641"]
      # or: colormap: viridis
      #     stops: 9
    outliers:
      k_low: 1.5
      k_high: 1.5
      min_samples: 4
    format:
      max_decimals: 6
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from isoviz.core.color import DEFAULT_COLORS, Palette
from isoviz.core.exceptions import ConfigError, InvalidPalette
from isoviz.core.outliers import OutlierPolicy
from isoviz.log import get_logger

logger = get_logger(__name__)


@dataclass
class PaletteConfig:
    """Either explicit color stops or a matplotlib colormap name"""
    colors: Optional[List[Any]] = None
    colormap: Optional[str] = None
    stops: int = 9

    def __post_init__(self):
        if self.colors is not None and self.colormap is not None:
            raise InvalidPalette("palette: give either 'colors' or 'colormap', not both")
        if self.colors is not None and not isinstance(self.colors, (list, tuple)):
            raise InvalidPalette("palette.colors must be a list")
        if self.stops < 2:
            raise InvalidPalette("palette.stops must be >= 2")

    def build(self) -> Palette:
        if self.colormap is not None:
            return Palette.from_colormap(self.colormap, n=self.stops)
        if self.colors is not None:
            return Palette(colors=tuple(self.colors), name="custom")
        return Palette(colors=DEFAULT_COLORS)


@dataclass
class OutlierConfig:
    """Tukey fence factors"""
    k_low: float = 1.5
    k_high: float = 1.5
    min_samples: int = 4

    def __post_init__(self):
        try:
            self.policy = OutlierPolicy(
                k_low=float(self.k_low),
                k_high=float(self.k_high),
                min_samples=int(self.min_samples),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"outliers: {e}") from e


@dataclass
class FormatConfig:
    max_decimals: int = 6

    def __post_init__(self):
        if not isinstance(self.max_decimals, int) or not (0 <= self.max_decimals <= 12):
            raise ConfigError("format.max_decimals must be an int between 0 and 12")


@dataclass
class VizSettings:
    palette_config: PaletteConfig = field(default_factory=PaletteConfig)
    outliers: OutlierConfig = field(default_factory=OutlierConfig)
    format: FormatConfig = field(default_factory=FormatConfig)

    def __post_init__(self):
        # Build once: an unusable palette must fail here, not per frame
        self.palette = self.palette_config.build()

    @property
    def outlier_policy(self) -> OutlierPolicy:
        return self.outliers.policy

    @property
    def max_decimals(self) -> int:
        return self.format.max_decimals


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{name}' must be a mapping")
    return value


def settings_from_mapping(data: Optional[Dict[str, Any]]) -> VizSettings:
    """Build validated settings from an already parsed mapping."""
    data = data or {}
    if not isinstance(data, dict):
        raise ConfigError("settings root must be a mapping")

    unknown = set(data) - {"palette", "outliers", "format"}
    if unknown:
        logger.warning("ignoring unknown settings section(s): %s", sorted(unknown))

    try:
        return VizSettings(
            palette_config=PaletteConfig(**_section(data, "palette")),
            outliers=OutlierConfig(**_section(data, "outliers")),
            format=FormatConfig(**_section(data, "format")),
        )
    except TypeError as e:
        # unexpected keyword in a section
        raise ConfigError(str(e)) from e


def load_settings(path: str | Path) -> VizSettings:
    """Load settings from a YAML file."""
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except FileNotFoundError as e:
        raise ConfigError(f"settings file not found: {path}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {path}: {e}") from e

    settings = settings_from_mapping(data)
    logger.info("loaded settings from %s (palette '%s')", path, settings.palette.name)
    return settings
