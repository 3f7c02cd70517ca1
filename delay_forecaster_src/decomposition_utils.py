# delay_forecaster_src/decomposition_utils.py

import logging
from dataclasses import dataclass

import pandas as pd
from statsmodels.tsa.seasonal import seasonal_decompose

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class DecompositionResult:
    """Trend / seasonal / residual components of a series."""

    trend: pd.Series
    seasonal: pd.Series
    resid: pd.Series
    period: int
    model: str

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({"trend": self.trend, "seasonal": self.seasonal, "resid": self.resid})


def decompose_series(series: pd.Series, period: int = 365, model: str = "additive") -> DecompositionResult:
    """
    Classical moving-average decomposition, offered as an auxiliary diagnostic.

    Parameters
    ----------
    series : pd.Series
        Series with DatetimeIndex.
    period : int, default=365
        Observations per seasonal cycle (one year of daily data).
    model : str, default="additive"
        'additive' or 'multiplicative'.

    Raises
    ------
    ValueError
        If the series does not cover two complete cycles.
    """
    clean = series.dropna()
    if len(clean) < 2 * period:
        raise ValueError(f"Decomposition needs at least {2 * period} observations, got {len(clean)}")

    res = seasonal_decompose(clean.astype(float), model=model, period=period)
    logger.info("Decomposed series (%s, period=%d)", model, period)
    return DecompositionResult(
        trend=res.trend.rename("trend"),
        seasonal=res.seasonal.rename("seasonal"),
        resid=res.resid.rename("resid"),
        period=period,
        model=model,
    )
