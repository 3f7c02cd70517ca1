# delay_forecaster_src/data_utils.py

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import List, Sequence, Union

import numpy as np
import pandas as pd

from helpers.temporal import normalize_daily_index

from .exceptions import EmptySeriesError

logger = logging.getLogger(__name__)

Observations = Union[Mapping, pd.DataFrame]


def _mapping_to_frame(observations: Mapping) -> pd.DataFrame:
    """Flatten ``{date: value | [values]}`` into a long (date, value) frame."""
    dates: List[object] = []
    values: List[object] = []
    for day, obs in observations.items():
        if isinstance(obs, (str, bytes)) or not isinstance(obs, Iterable):
            obs = [obs]
        for value in obs:
            dates.append(day)
            values.append(value)
    return pd.DataFrame({"date": dates, "value": values})


def build_daily_series(observations: Observations,
                       date_column: str = "date",
                       value_column: str = "value",
                       name: str = "delay") -> pd.Series:
    """
    Build one ordered daily series from raw per-record observations.

    Observations that are missing, NaN or non-numeric are excluded; the
    remaining ones are averaged per calendar date. The result is sorted
    ascending with exactly one value per distinct date.

    Parameters
    ----------
    observations : Mapping or pd.DataFrame
        Either a mapping ``date -> observation`` / ``date -> iterable of
        observations``, or a long frame with one row per record.
    date_column, value_column : str
        Column names used when ``observations`` is a DataFrame.
    name : str
        Name given to the output series.

    Returns
    -------
    pd.Series
        Float series indexed by a DatetimeIndex named 'date'.

    Raises
    ------
    EmptySeriesError
        If no valid observation remains after filtering.
    """
    if isinstance(observations, pd.DataFrame):
        missing = [c for c in (date_column, value_column) if c not in observations.columns]
        if missing:
            raise ValueError(f"Observation frame lacks required columns: {missing}")
        frame = pd.DataFrame({
            "date": observations[date_column].to_numpy(),
            "value": observations[value_column].to_numpy(),
        })
    elif isinstance(observations, Mapping):
        frame = _mapping_to_frame(observations)
    else:
        raise TypeError("observations must be a mapping or a pandas DataFrame")

    n_raw = len(frame)
    frame["date"] = pd.to_datetime(frame["date"], errors="coerce")
    frame["value"] = pd.to_numeric(frame["value"], errors="coerce")
    frame = frame.replace([np.inf, -np.inf], np.nan).dropna(subset=["date", "value"])

    if frame.empty:
        raise EmptySeriesError(f"No valid observations remain after filtering {n_raw} raw records")

    frame["date"] = normalize_daily_index(frame["date"])
    daily = frame.groupby("date", sort=True)["value"].mean().astype(float)
    daily.index.name = "date"
    daily.name = name

    logger.info("Built daily series '%s': %d records -> %d days (%s to %s)",
                name, n_raw, len(daily), daily.index[0].date(), daily.index[-1].date())
    return daily


def load_observations_csv(paths: Union[Path, str, Sequence[Union[Path, str]]],
                          date_column: str = "date",
                          value_column: str = "delay") -> pd.DataFrame:
    """
    Load raw per-record observations from one or more CSV partitions.

    Partitions (typically one file per year) are concatenated; only the date
    and value columns are kept. Parsing is lenient: unparseable entries
    become NaN/NaT and are dropped later by ``build_daily_series``.

    Raises
    ------
    FileNotFoundError
        If a partition does not exist.
    ValueError
        If a partition lacks the requested columns.
    """
    if isinstance(paths, (str, Path)):
        paths = [paths]

    frames = []
    for path in map(Path, paths):
        if not path.is_file():
            raise FileNotFoundError(f"Observation CSV not found: {path}")
        logger.info("Loading observations from: %s", path)
        df = pd.read_csv(path, usecols=lambda c: c in (date_column, value_column))
        missing = [c for c in (date_column, value_column) if c not in df.columns]
        if missing:
            raise ValueError(f"{path} must contain columns {missing}")
        frames.append(df[[date_column, value_column]])

    if not frames:
        raise ValueError("At least one observation CSV is required")
    return pd.concat(frames, ignore_index=True)


def load_daily_series_csv(paths: Union[Path, str, Sequence[Union[Path, str]]],
                          date_column: str = "date",
                          value_column: str = "delay") -> pd.Series:
    """Load CSV partitions and aggregate them into a daily series."""
    raw = load_observations_csv(paths, date_column=date_column, value_column=value_column)
    return build_daily_series(raw, date_column=date_column, value_column=value_column, name=value_column)


def split_series_by_date(series: pd.Series, split_date) -> tuple:
    """
    Split a series into (before, from) parts around ``split_date``.

    The training part holds dates strictly before ``split_date``; the test
    part holds ``split_date`` and later.
    """
    cut = pd.Timestamp(split_date)
    train = series.loc[series.index < cut].copy()
    test = series.loc[series.index >= cut].copy()
    return train, test
