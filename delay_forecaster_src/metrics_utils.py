# delay_forecaster_src/metrics_utils.py

import logging
from dataclasses import asdict, dataclass
from typing import Dict, List, Union

import numpy as np
import pandas as pd

from helpers.temporal import align_to_index

from .exceptions import LengthMismatchError
from .forecasting_utils import ForecastResult
from .transform_utils import TransformParams, invert_transform

logger = logging.getLogger(__name__)

ArrayLike = Union[List[float], np.ndarray, pd.Series]


@dataclass(frozen=True)
class ErrorReport:
    """
    Forecast accuracy against ground truth, in the original scale.

    ``mape`` is a percentage and is NaN when any actual value is exactly
    zero; ``zero_actuals`` counts those values.
    """

    mae: float
    mse: float
    rmse: float
    mape: float
    n: int
    zero_actuals: int = 0

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)

    def __str__(self) -> str:
        mape = "NaN (zero actuals)" if np.isnan(self.mape) else f"{self.mape:.2f}%"
        return f"MAE={self.mae:.4f}  MSE={self.mse:.4f}  RMSE={self.rmse:.4f}  MAPE={mape}  n={self.n}"


def _paired_arrays(y_true: ArrayLike, y_hat: ArrayLike):
    yt = np.asarray(y_true, dtype=float).ravel()
    yh = np.asarray(y_hat, dtype=float).ravel()
    if len(yt) != len(yh):
        raise LengthMismatchError(f"Forecast has {len(yh)} values but ground truth has {len(yt)}")
    return yt, yh


def mae(y_true: ArrayLike, y_hat: ArrayLike) -> float:
    """
    Calculate Mean Absolute Error.

    Returns NaN for empty input.
    """
    yt, yh = _paired_arrays(y_true, y_hat)
    if yt.size == 0:
        return float("nan")
    return float(np.mean(np.abs(yh - yt)))


def mse(y_true: ArrayLike, y_hat: ArrayLike) -> float:
    """Calculate Mean Squared Error."""
    yt, yh = _paired_arrays(y_true, y_hat)
    if yt.size == 0:
        return float("nan")
    return float(np.mean((yh - yt) ** 2))


def rmse(y_true: ArrayLike, y_hat: ArrayLike) -> float:
    """
    Calculate Root Mean Square Error.

    RMSE penalizes large errors more heavily than MAE, making it useful when
    large errors are particularly undesirable.
    """
    return float(np.sqrt(mse(y_true, y_hat)))


def mape(y_true: ArrayLike, y_hat: ArrayLike) -> float:
    """
    Calculate Mean Absolute Percentage Error (percent).

    Undefined when an actual value is exactly zero: the result is NaN rather
    than an average over the remaining points.
    """
    yt, yh = _paired_arrays(y_true, y_hat)
    if yt.size == 0 or np.any(yt == 0.0):
        return float("nan")
    return float(np.mean(np.abs((yh - yt) / yt)) * 100.0)


def compute_metrics(y_true: ArrayLike, y_hat: ArrayLike) -> ErrorReport:
    """
    Compute MAE, MSE, RMSE and MAPE for aligned arrays.

    Raises
    ------
    LengthMismatchError
        If the arrays differ in length.
    """
    yt, yh = _paired_arrays(y_true, y_hat)
    zeros = int(np.sum(yt == 0.0))
    if zeros:
        logger.warning("MAPE undefined: %d ground-truth value(s) are exactly zero", zeros)
    return ErrorReport(
        mae=mae(yt, yh),
        mse=mse(yt, yh),
        rmse=rmse(yt, yh),
        mape=mape(yt, yh),
        n=int(yt.size),
        zero_actuals=zeros,
    )


def detransform_forecast(forecast: ForecastResult, params: TransformParams) -> pd.Series:
    """Invert the variance transform on forecast points with training params."""
    return invert_transform(forecast.to_series(), params)


def score_forecast(forecast: ForecastResult,
                   params: TransformParams,
                   ground_truth: pd.Series) -> ErrorReport:
    """
    Score a transformed-scale forecast against original-scale ground truth.

    The forecast is inverted with the training transform parameters (never
    refit on the ground truth), aligned by date, then scored.

    Parameters
    ----------
    forecast : ForecastResult
        Forecast in the transformed scale.
    params : TransformParams
        Parameters fitted on the training series.
    ground_truth : pd.Series
        Held-out series with DatetimeIndex, same length as the forecast.

    Raises
    ------
    LengthMismatchError
        If lengths differ or forecast dates are missing from ground truth.
    """
    if forecast.horizon != len(ground_truth):
        raise LengthMismatchError(
            f"Forecast horizon is {forecast.horizon} but ground truth has {len(ground_truth)} values"
        )

    predicted = detransform_forecast(forecast, params)
    actual, missing = align_to_index(ground_truth, predicted.index)
    if missing:
        raise LengthMismatchError(
            f"{len(missing)} forecast date(s) absent from ground truth, first: {missing[0].date()}"
        )

    report = compute_metrics(actual.to_numpy(), predicted.to_numpy())
    logger.info("Forecast error: %s", report)
    return report
