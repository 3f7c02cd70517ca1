from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from delay_forecaster_src.data_utils import (
    build_daily_series, load_daily_series_csv, load_observations_csv, split_series_by_date
)
from delay_forecaster_src.exceptions import EmptySeriesError


def test_build_daily_series_filters_and_averages():
    observations = {
        pd.Timestamp("2014-01-03"): [12.0, 8.0],
        pd.Timestamp("2014-01-01"): [10.0, None, float("nan"), 20.0],
        pd.Timestamp("2014-01-02"): "not a number",
        pd.Timestamp("2014-01-01 18:30"): 45.0,
    }
    s = build_daily_series(observations)

    # 2014-01-02 has no valid observation and disappears
    assert list(s.index) == [pd.Timestamp("2014-01-01"), pd.Timestamp("2014-01-03")]
    assert s.loc[pd.Timestamp("2014-01-01")] == pytest.approx((10.0 + 20.0 + 45.0) / 3.0)
    assert s.loc[pd.Timestamp("2014-01-03")] == pytest.approx(10.0)
    assert s.index.name == "date"
    assert s.name == "delay"


def test_build_daily_series_output_strictly_increasing():
    rng = np.random.default_rng(7)
    days = pd.date_range("2014-01-01", periods=60, freq="D")
    frame = pd.DataFrame({
        "date": rng.choice(days, size=500),
        "value": rng.normal(10.0, 3.0, size=500),
    })
    s = build_daily_series(frame)

    assert s.index.is_monotonic_increasing
    assert s.index.is_unique


def test_build_daily_series_empty_input_raises():
    with pytest.raises(EmptySeriesError):
        build_daily_series({})
    with pytest.raises(EmptySeriesError):
        build_daily_series({"2014-01-01": [None, float("nan")], "2014-01-02": None})


def test_build_daily_series_dataframe_columns_and_no_mutation():
    frame = pd.DataFrame({
        "FL_DATE": ["2015-02-01", "2015-02-01", "2015-02-02"],
        "ARR_DELAY": [5.0, -3.0, np.inf],
    })
    before = frame.copy()
    s = build_daily_series(frame, date_column="FL_DATE", value_column="ARR_DELAY")

    pd.testing.assert_frame_equal(frame, before)
    assert len(s) == 1
    assert s.iloc[0] == pytest.approx(1.0)


def test_build_daily_series_missing_column_raises():
    with pytest.raises(ValueError, match="ARR_DELAY"):
        build_daily_series(pd.DataFrame({"date": ["2015-01-01"]}), value_column="ARR_DELAY")


def test_load_daily_series_csv_concatenates_partitions(tmp_path: Path):
    p1 = tmp_path / "2013.csv"
    p2 = tmp_path / "2014.csv"
    pd.DataFrame({"date": ["2013-12-31", "2013-12-31"], "delay": [4.0, 6.0], "carrier": ["AA", "DL"]}).to_csv(p1, index=False)
    pd.DataFrame({"date": ["2014-01-01", "2014-01-01", "2014-01-02"], "delay": [3.0, None, 9.0],
                  "carrier": ["UA", "DL", "AA"]}).to_csv(p2, index=False)

    raw = load_observations_csv([p1, p2])
    assert list(raw.columns) == ["date", "delay"]

    s = load_daily_series_csv([p1, p2])
    assert list(s.values) == pytest.approx([5.0, 3.0, 9.0])
    assert s.name == "delay"


def test_load_observations_csv_errors(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_observations_csv(tmp_path / "missing.csv")

    bad = tmp_path / "bad.csv"
    pd.DataFrame({"day": ["2014-01-01"], "delay": [1.0]}).to_csv(bad, index=False)
    with pytest.raises(ValueError):
        load_observations_csv(bad)


def test_split_series_by_date():
    idx = pd.date_range("2015-12-30", periods=4, freq="D")
    s = pd.Series([1.0, 2.0, 3.0, 4.0], index=idx)

    train, test = split_series_by_date(s, "2016-01-01")

    assert list(train.values) == [1.0, 2.0]
    assert list(test.values) == [3.0, 4.0]
