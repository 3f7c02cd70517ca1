import numpy as np
import pandas as pd
import pytest

from delay_forecaster_src.decomposition_utils import decompose_series


def test_weekly_decomposition_components():
    n = 70
    t = np.arange(n)
    values = 10.0 + 0.1 * t + 2.0 * np.sin(2 * np.pi * t / 7)
    s = pd.Series(values, index=pd.date_range("2014-01-01", periods=n, freq="D", name="date"))

    result = decompose_series(s, period=7)

    assert result.period == 7
    assert result.seasonal.iloc[0] == pytest.approx(result.seasonal.iloc[7])
    assert list(result.to_frame().columns) == ["trend", "seasonal", "resid"]
    assert len(result.trend) == n


def test_decomposition_needs_two_cycles():
    s = pd.Series(np.ones(400), index=pd.date_range("2014-01-01", periods=400, freq="D"))
    with pytest.raises(ValueError):
        decompose_series(s, period=365)
