import pandas as pd
import pytest

from helpers.temporal import align_to_index, forecast_index, missing_days, normalize_daily_index


def test_normalize_daily_index_drops_time_of_day():
    idx = pd.to_datetime(["2014-03-01 06:15", "2014-03-01 22:40", "2014-03-02 00:00"])
    out = normalize_daily_index(idx)

    assert list(out) == [pd.Timestamp("2014-03-01"), pd.Timestamp("2014-03-01"), pd.Timestamp("2014-03-02")]


def test_forecast_index_covers_leap_year():
    # Training ends 2015-12-31; the 2016 horizon has 366 days
    idx = forecast_index("2015-12-31", 366)

    assert len(idx) == 366
    assert idx[0] == pd.Timestamp("2016-01-01")
    assert idx[-1] == pd.Timestamp("2016-12-31")
    assert idx.name == "date"


def test_forecast_index_rejects_non_positive_horizon():
    with pytest.raises(ValueError):
        forecast_index("2015-12-31", 0)


def test_align_to_index_reports_missing_dates():
    s = pd.Series([1.0, 2.0, 4.0], index=pd.to_datetime(["2016-01-01", "2016-01-02", "2016-01-04"]))
    target = pd.date_range("2016-01-01", periods=4, freq="D")

    aligned, missing = align_to_index(s, target)

    assert missing == [pd.Timestamp("2016-01-03")]
    assert aligned.index.equals(target)
    assert aligned.isna().sum() == 1


def test_missing_days_reports_gaps():
    idx = pd.DatetimeIndex(["2014-01-01", "2014-01-02", "2014-01-05", "2014-01-06"])

    assert missing_days(idx) == [pd.Timestamp("2014-01-03"), pd.Timestamp("2014-01-04")]
    assert missing_days(pd.date_range("2014-01-01", periods=10, freq="D")) == []
    assert missing_days(pd.DatetimeIndex([])) == []
