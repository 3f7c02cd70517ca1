import logging

import numpy as np
import pandas as pd
import pytest

from delay_forecaster_src import stationarity_utils
from delay_forecaster_src.stationarity_utils import (
    StationarityTestResult, UnitRootResult, adf_test, kpss_test, verify_stationarity
)


def _ar1(n=500, phi=0.5, seed=123):
    rng = np.random.default_rng(seed)
    e = rng.normal(size=n)
    y = np.zeros(n)
    for t in range(1, n):
        y[t] = phi * y[t - 1] + e[t]
    return pd.Series(y, index=pd.date_range("2013-01-01", periods=n, freq="D"))


def _stub_tests(monkeypatch, adf_p, kpss_stat):
    crit = {"10%": 0.347, "5%": 0.463, "2.5%": 0.574, "1%": 0.739}
    monkeypatch.setattr(stationarity_utils, "adf_test",
                        lambda series: UnitRootResult(statistic=-3.0, p_value=adf_p, used_lag=2, n_obs=100))
    monkeypatch.setattr(stationarity_utils, "kpss_test",
                        lambda series, regression="c": StationarityTestResult(
                            statistic=kpss_stat, p_value=0.05, lags=5, critical_values=crit))


def test_adf_rejects_unit_root_for_stationary_ar1():
    res = adf_test(_ar1())

    assert res.p_value < 0.05
    assert {"1%", "5%", "10%"} <= set(res.critical_values)


def test_trending_series_is_not_stationary():
    rng = np.random.default_rng(1)
    n = 500
    y = pd.Series(0.05 * np.arange(n) + rng.normal(size=n), index=pd.date_range("2013-01-01", periods=n, freq="D"))

    report = verify_stationarity(y)

    assert report.kpss_stationary is False
    assert report.is_stationary is False
    assert report.needs_differencing
    assert report.suggested_d == 1


def test_kpss_statistic_small_for_ar1():
    res = kpss_test(_ar1())
    assert res.statistic > 0
    assert "5%" in res.critical_values


def test_both_tests_agree_on_stationarity(monkeypatch):
    _stub_tests(monkeypatch, adf_p=0.001, kpss_stat=0.1)
    report = verify_stationarity(_ar1(n=50))

    assert report.is_stationary
    assert report.tests_agree
    assert report.suggested_d == 0
    assert report.details["kpss_critical_value"] == pytest.approx(0.463)


def test_disagreement_is_flagged(monkeypatch, caplog):
    _stub_tests(monkeypatch, adf_p=0.001, kpss_stat=0.9)

    with caplog.at_level(logging.WARNING):
        report = verify_stationarity(_ar1(n=50))

    assert report.adf_stationary and not report.kpss_stationary
    assert not report.tests_agree
    assert not report.is_stationary
    assert report.needs_differencing
    assert "disagree" in caplog.text


def test_unknown_kpss_level_raises(monkeypatch):
    _stub_tests(monkeypatch, adf_p=0.001, kpss_stat=0.1)
    with pytest.raises(ValueError):
        verify_stationarity(_ar1(n=50), kpss_level="7%")


def test_too_short_series_raises():
    with pytest.raises(ValueError):
        adf_test(pd.Series([1.0, 2.0, 3.0]))
