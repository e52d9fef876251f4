# isoviz/core/outliers.py
"""
Outlier policy: Tukey IQR fences.

- Q1/Q3 by linear percentile interpolation over the defined values
- keep Q1 - k_low * IQR <= v <= Q3 + k_high * IQR
- degenerate (too few samples, IQR 0 or not finite): keep everything

The fences always contain [Q1, Q3], so at least one defined sample survives
and the filtered min/max never lie outside the unfiltered ones.
"""
from __future__ import annotations

from dataclasses import dataclass

import numpy as np

# Treat extremely small IQR as degenerate to avoid numerical instability.
IQR_DEGENERATE_THRESHOLD = 1e-9


@dataclass(frozen=True, slots=True)
class Fences:
    q1: float
    q3: float
    lower: float
    upper: float

    @property
    def iqr(self) -> float:
        return self.q3 - self.q1


@dataclass(frozen=True, slots=True)
class OutlierPolicy:
    k_low: float = 1.5
    k_high: float = 1.5
    min_samples: int = 4

    def __post_init__(self) -> None:
        if not (np.isfinite(self.k_low) and self.k_low >= 0):
            raise ValueError("k_low must be a finite, non-negative number")
        if not (np.isfinite(self.k_high) and self.k_high >= 0):
            raise ValueError("k_high must be a finite, non-negative number")
        if self.min_samples < 1:
            raise ValueError("min_samples must be >= 1")

    def fences(self, values) -> Fences | None:
        """IQR fences of the defined values, None when the policy is degenerate."""
        v = np.asarray(values, dtype=float).reshape(-1)
        v = v[np.isfinite(v)]
        if v.size < self.min_samples:
            return None

        q1, q3 = (float(q) for q in np.percentile(v, [25.0, 75.0]))
        iqr = q3 - q1
        if not np.isfinite(iqr) or iqr < IQR_DEGENERATE_THRESHOLD:
            return None

        return Fences(
            q1=q1,
            q3=q3,
            lower=q1 - float(self.k_low) * iqr,
            upper=q3 + float(self.k_high) * iqr,
        )

    def keep_mask(self, values) -> np.ndarray:
        """
        Boolean mask of samples kept for range computation.

        Undefined (NaN) values are never kept.
        """
        v = np.asarray(values, dtype=float).reshape(-1)
        defined = np.isfinite(v)
        f = self.fences(v)
        if f is None:
            return defined
        with np.errstate(invalid="ignore"):
            return defined & (v >= f.lower) & (v <= f.upper)

    def outlier_mask(self, values) -> np.ndarray:
        """Defined samples excluded by the policy."""
        v = np.asarray(values, dtype=float).reshape(-1)
        return np.isfinite(v) & ~self.keep_mask(v)


DEFAULT_POLICY = OutlierPolicy()
