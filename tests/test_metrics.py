import numpy as np
import pandas as pd
import pytest

from delay_forecaster_src.exceptions import LengthMismatchError
from delay_forecaster_src.forecasting_utils import ForecastResult
from delay_forecaster_src.metrics_utils import compute_metrics, mae, mape, mse, rmse, score_forecast
from delay_forecaster_src.transform_utils import TransformParams

# lambda = 1 and shift = 0 make the transform the identity
IDENTITY = TransformParams(lam=1.0, shift=0.0)


def _truth(values, start="2016-01-01"):
    return pd.Series(values, index=pd.date_range(start, periods=len(values), freq="D", name="date"), dtype=float)


def _forecast(values, start="2016-01-01"):
    return ForecastResult(horizon=len(values), point_forecasts=tuple(values), start_date=pd.Timestamp(start))


def test_scalar_metrics_exact_values():
    y_true = [2.0, 4.0, 5.0]
    y_hat = [1.0, 5.0, 5.0]

    assert mae(y_true, y_hat) == pytest.approx(2.0 / 3.0)
    assert mse(y_true, y_hat) == pytest.approx(2.0 / 3.0)
    assert rmse(y_true, y_hat) == pytest.approx(np.sqrt(2.0 / 3.0))
    assert mape(y_true, y_hat) == pytest.approx(25.0)


def test_score_forecast_identity_transform():
    report = score_forecast(_forecast([1.0, 5.0, 5.0]), IDENTITY, _truth([2.0, 4.0, 5.0]))

    assert report.n == 3
    assert report.mae == pytest.approx(2.0 / 3.0)
    assert report.mape == pytest.approx(25.0)
    assert report.zero_actuals == 0
    assert "MAE=" in str(report)


def test_score_forecast_inverts_with_training_params():
    # (0.5 * 2 + 1) ** 2 + (-2) - 1 = 1
    params = TransformParams(lam=0.5, shift=-2.0)
    report = score_forecast(_forecast([2.0, 2.0]), params, _truth([1.0, 3.0]))

    assert report.mae == pytest.approx(1.0)
    assert report.rmse == pytest.approx(np.sqrt(2.0))


def test_leap_year_length_mismatch():
    fc = _forecast(np.zeros(366))
    with pytest.raises(LengthMismatchError):
        score_forecast(fc, IDENTITY, _truth(np.ones(365)))


def test_misaligned_dates_raise():
    with pytest.raises(LengthMismatchError, match="absent"):
        score_forecast(_forecast([1.0, 2.0]), IDENTITY, _truth([1.0, 2.0], start="2016-01-02"))


def test_zero_actual_makes_mape_undefined():
    report = score_forecast(_forecast([1.0, 4.0, 5.0]), IDENTITY, _truth([0.0, 4.0, 5.0]))

    assert np.isnan(report.mape)
    assert report.zero_actuals == 1
    assert report.mae == pytest.approx(1.0 / 3.0)
    assert "NaN" in str(report)


def test_compute_metrics_length_mismatch():
    with pytest.raises(LengthMismatchError):
        compute_metrics([1.0, 2.0], [1.0])
