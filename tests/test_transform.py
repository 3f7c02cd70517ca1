import numpy as np
import pandas as pd
import pytest

from delay_forecaster_src.exceptions import EmptySeriesError, InvalidDomainError
from delay_forecaster_src.transform_utils import (
    TransformParams, apply_transform, fit_transform_params, invert_transform, lambda_grid, select_lambda
)


def _daily(values, start="2013-01-01"):
    idx = pd.date_range(start, periods=len(values), freq="D", name="date")
    return pd.Series(np.asarray(values, dtype=float), index=idx, name="delay")


def test_round_trip_with_negative_values():
    rng = np.random.default_rng(0)
    s = _daily(rng.normal(5.0, 8.0, size=500))
    params = fit_transform_params(s)

    back = invert_transform(apply_transform(s, params), params)

    assert np.allclose(back.to_numpy(), s.to_numpy(), rtol=1e-9, atol=1e-9)
    assert back.index.equals(s.index)


def test_round_trip_log_branch():
    s = _daily([0.5, 3.0, 12.0, 40.0])
    params = TransformParams(lam=0.0, shift=0.0)

    out = apply_transform(s, params)
    assert out.iloc[0] == pytest.approx(np.log(1.5))
    assert np.allclose(invert_transform(out, params).to_numpy(), s.to_numpy(), rtol=1e-9)


def test_shift_rule():
    negative = _daily([-3.0, 0.0, 2.0, 7.0, 15.0, 4.0])
    params = fit_transform_params(negative)
    assert params.shift == -3.0
    # The minimum maps to 1 before the power, hence to 0 after it
    assert apply_transform(negative, params).min() == pytest.approx(0.0, abs=1e-12)

    positive = _daily([1.0, 2.0, 5.0, 9.0, 3.0])
    assert fit_transform_params(positive).shift == 0.0


def test_lognormal_data_selects_lambda_near_zero():
    rng = np.random.default_rng(42)
    s = _daily(rng.lognormal(mean=5.0, sigma=1.0, size=5000))

    params = fit_transform_params(s)

    assert abs(params.lam) <= 0.2


def test_select_lambda_prefers_smallest_magnitude_on_ties():
    grid = [-0.5, -0.1, 0.0, 0.1, 0.3]
    assert select_lambda(grid, [1.0, 5.0, 3.0, 5.0, 5.0]) == -0.1
    assert select_lambda(grid, [1.0, 2.0, 3.0, 2.0, 1.0]) == 0.0


def test_lambda_grid_contains_exact_zero():
    grid = lambda_grid(-2.0, 2.0, 0.1)
    assert len(grid) == 41
    assert 0.0 in grid
    assert grid[0] == -2.0 and grid[-1] == 2.0


def test_apply_transform_domain_violation_names_date():
    params = TransformParams(lam=0.5, shift=0.0)
    s = _daily([3.0, 1.0, -2.5, 4.0], start="2016-03-01")

    with pytest.raises(InvalidDomainError, match="2016-03-03"):
        apply_transform(s, params)


def test_invert_transform_domain_violation():
    params = TransformParams(lam=0.5, shift=0.0)
    with pytest.raises(InvalidDomainError):
        invert_transform(_daily([1.0, -3.0]), params)


def test_fit_rejects_empty_and_non_finite():
    with pytest.raises(EmptySeriesError):
        fit_transform_params(_daily([]))
    with pytest.raises(InvalidDomainError):
        fit_transform_params(_daily([1.0, np.nan, 3.0]))


def test_transform_does_not_mutate_input():
    s = _daily([1.0, 4.0, 9.0, 16.0, 2.0])
    before = s.copy()
    params = fit_transform_params(s, refine=True)
    apply_transform(s, params)

    pd.testing.assert_series_equal(s, before)
    assert -2.0 <= params.lam <= 2.0
