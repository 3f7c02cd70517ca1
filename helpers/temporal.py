# -*- coding: utf-8 -*-
"""
Temporal utilities for daily index construction and date alignment.

Functions
---------
- normalize_daily_index(index): Floor timestamps to calendar days.
- forecast_index(last_date, horizon, freq): Future index starting one period
  after the last observed date.
- align_to_index(series, index): Reindex a series onto a target index and
  report which target dates are missing.
- missing_days(index): Calendar days absent from a daily index.
"""

from __future__ import annotations

from typing import List, Tuple

import pandas as pd


def normalize_daily_index(index) -> pd.DatetimeIndex:
    """
    Convert any date-like index to a DatetimeIndex floored to midnight.

    Time-of-day components are discarded so observations recorded at
    different times of the same calendar day share one key.
    """
    idx = pd.DatetimeIndex(pd.to_datetime(index))
    if idx.tz is not None:
        idx = idx.tz_localize(None)
    return idx.normalize()


def forecast_index(last_date, horizon: int, freq: str = "D") -> pd.DatetimeIndex:
    """
    Build the index of an h-step forecast.

    Parameters
    ----------
    last_date : date-like
        Last date of the training series.
    horizon : int
        Number of forecast steps (>= 1).
    freq : str
        Pandas offset alias of the series ('D' for daily data).

    Returns
    -------
    pd.DatetimeIndex
        ``horizon`` dates, the first one period after ``last_date``.
    """
    if horizon < 1:
        raise ValueError(f"horizon must be a positive integer, got {horizon}")
    offset = pd.tseries.frequencies.to_offset(freq)
    start = pd.Timestamp(last_date).normalize() + offset
    return pd.date_range(start=start, periods=horizon, freq=offset, name="date")


def align_to_index(series: pd.Series, index: pd.DatetimeIndex) -> Tuple[pd.Series, List[pd.Timestamp]]:
    """
    Reindex ``series`` onto ``index``.

    Returns
    -------
    Tuple[pd.Series, List[pd.Timestamp]]
        (aligned series, dates of ``index`` absent from ``series``)
    """
    if not isinstance(series.index, pd.DatetimeIndex):
        raise TypeError("align_to_index expects a Series with DatetimeIndex.")
    aligned = series.reindex(index)
    missing = [ts for ts in index if ts not in series.index]
    return aligned, missing


def missing_days(index: pd.DatetimeIndex) -> List[pd.Timestamp]:
    """Calendar days between the first and last date of ``index`` that it lacks."""
    if len(index) == 0:
        return []
    days = normalize_daily_index(index)
    full = pd.date_range(days.min(), days.max(), freq="D")
    return list(full.difference(days))
