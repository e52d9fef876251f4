import numpy as np
import pytest

from isoviz.core.outliers import OutlierPolicy, DEFAULT_POLICY


def test_flags_high_extreme():
    v = np.array([10.0, 20.0, 30.0, 200.0])
    f = DEFAULT_POLICY.fences(v)

    # linear percentiles: Q1 = 17.5, Q3 = 72.5
    assert f.q1 == pytest.approx(17.5)
    assert f.q3 == pytest.approx(72.5)
    assert f.upper == pytest.approx(155.0)
    assert list(DEFAULT_POLICY.keep_mask(v)) == [True, True, True, False]
    assert list(DEFAULT_POLICY.outlier_mask(v)) == [False, False, False, True]


def test_symmetric_treatment_of_low_and_high_extremes():
    v = np.array([-200.0, 10.0, 11.0, 12.0, 13.0, 14.0, 15.0, 200.0])
    keep = DEFAULT_POLICY.keep_mask(v)
    assert not keep[0] and not keep[-1]
    assert keep[1:-1].all()


def test_nan_never_kept():
    v = np.array([1.0, np.nan, 2.0, 3.0, 4.0])
    keep = DEFAULT_POLICY.keep_mask(v)
    assert not keep[1]
    assert not DEFAULT_POLICY.outlier_mask(v)[1]


def test_zero_iqr_is_degenerate_and_keeps_everything():
    v = np.array([5.0, 5.0, 5.0, 5.0, 5.0, 100.0])
    assert DEFAULT_POLICY.fences(v) is None
    assert DEFAULT_POLICY.keep_mask(v).all()


def test_tiny_iqr_treated_as_degenerate():
    base = 1.0
    v = np.array([base, base, base + 1e-12, base, base])
    assert DEFAULT_POLICY.fences(v) is None


def test_too_few_samples_keeps_everything():
    v = np.array([1.0, 2.0, 1000.0])
    assert DEFAULT_POLICY.fences(v) is None
    assert DEFAULT_POLICY.keep_mask(v).all()


def test_deterministic():
    rng = np.random.default_rng(7)
    v = rng.normal(50.0, 5.0, size=500)
    v[::50] = 500.0
    assert np.array_equal(DEFAULT_POLICY.keep_mask(v), DEFAULT_POLICY.keep_mask(v.copy()))


def test_asymmetric_factors():
    v = np.array([0.0, 10.0, 11.0, 12.0, 13.0, 14.0, 26.0])
    strict_low = OutlierPolicy(k_low=0.5, k_high=5.0)
    keep = strict_low.keep_mask(v)
    assert not keep[0]
    assert keep[-1]


@pytest.mark.parametrize("kwargs", [{"k_low": -1}, {"k_high": float("nan")}, {"min_samples": 0}])
def test_rejects_invalid_parameters(kwargs):
    with pytest.raises(ValueError):
        OutlierPolicy(**kwargs)
