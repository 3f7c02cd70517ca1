import numpy as np
import pandas as pd
import pytest

from diagnostics import DiagnosticsReport, ResidualDiagnostics, diagnose
from delay_forecaster_src.forecasting_utils import FittedModel, ModelOrder


def _model_with_residuals(resid, order=None):
    idx = pd.date_range("2013-01-01", periods=len(resid), freq="D", name="date")
    return FittedModel(
        order=order or ModelOrder(p=1, q=1),
        ar_coefficients=(0.5,),
        ma_coefficients=(0.2,),
        intercept=0.0,
        sigma2=1.0,
        params={},
        endog=pd.Series(np.zeros(len(resid)), index=idx),
        residuals=pd.Series(resid, index=idx, dtype=float),
        log_likelihood=0.0,
        aic=0.0,
        bic=0.0,
        n_obs=len(resid),
    )


def test_white_noise_residuals_report():
    rng = np.random.default_rng(3)
    report = diagnose(_model_with_residuals(rng.normal(size=500)))

    assert isinstance(report, DiagnosticsReport)
    assert report.n_residuals == 500
    assert len(report.acf) == 20 and len(report.pacf) == 20
    assert report.band == pytest.approx(1.96 / np.sqrt(500))
    assert report.normality is not None and report.independence is not None
    assert report.independence.degrees_of_freedom == 10 - 2
    assert report.errors == {}


def test_autocorrelated_residuals_fail_independence():
    rng = np.random.default_rng(5)
    e = rng.normal(size=500)
    resid = np.zeros(500)
    for t in range(1, 500):
        resid[t] = 0.8 * resid[t - 1] + e[t]

    report = diagnose(_model_with_residuals(resid))

    assert report.is_independent is False
    assert 1 in report.significant_acf_lags
    assert not report.overall_adequate
    assert any("Ljung-Box" in issue for issue in report.issues())


def test_tiny_residual_series_never_raises():
    report = diagnose(_model_with_residuals([0.1, -0.2, 0.3]))

    assert report.is_normal is None
    assert report.is_independent is None
    assert "residuals" in report.errors


def test_failing_check_is_recorded(monkeypatch):
    def broken(self, residuals):
        raise ValueError("boom")

    monkeypatch.setattr(ResidualDiagnostics, "shapiro_wilk_test", broken)
    rng = np.random.default_rng(9)
    report = diagnose(_model_with_residuals(rng.normal(size=200)))

    assert report.errors["normality"] == "boom"
    assert report.normality is None
    assert report.independence is not None


def test_ljung_box_degrees_of_freedom_adjustment():
    rng = np.random.default_rng(1)
    resid = pd.Series(rng.normal(size=300))
    diag = ResidualDiagnostics()

    assert diag.ljung_box_test(resid, lags=10, model_df=3).degrees_of_freedom == 7
    # Not enough lags to absorb the model parameters: no adjustment
    assert diag.ljung_box_test(resid, lags=2, model_df=3).degrees_of_freedom == 2


def test_constant_residuals_leave_undefined_tests_unset():
    report = diagnose(_model_with_residuals(np.zeros(50)))

    assert report.independence is None
    assert report.is_independent is None
    assert "independence" in report.errors
    assert not any("Serial correlation" in issue for issue in report.issues())
