# delay_forecaster_src/stationarity_utils.py

import logging
import warnings
from dataclasses import dataclass, field
from typing import Any, Dict, Union

import numpy as np
import pandas as pd
from statsmodels.tools.sm_exceptions import InterpolationWarning
from statsmodels.tsa.stattools import adfuller, kpss

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UnitRootResult:
    """Augmented Dickey-Fuller outcome (H0: the series has a unit root)."""

    statistic: float
    p_value: float
    used_lag: int
    n_obs: int
    critical_values: Dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class StationarityTestResult:
    """KPSS outcome (H0: the series is stationary)."""

    statistic: float
    p_value: float
    lags: int
    critical_values: Dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class StationarityReport:
    """
    Combined verdict of the unit-root and stationarity tests.

    The series is treated as stationary (d = 0) only when both tests agree.
    ``tests_agree`` is False when exactly one test points to stationarity.
    """

    is_stationary: bool
    adf_stationary: bool
    kpss_stationary: bool
    adf: UnitRootResult
    kpss: StationarityTestResult
    alpha: float
    kpss_level: str

    @property
    def tests_agree(self) -> bool:
        return self.adf_stationary == self.kpss_stationary

    @property
    def needs_differencing(self) -> bool:
        return not self.is_stationary

    @property
    def suggested_d(self) -> int:
        return 0 if self.is_stationary else 1

    @property
    def details(self) -> Dict[str, Any]:
        return {
            "adf_statistic": self.adf.statistic,
            "adf_p_value": self.adf.p_value,
            "adf_used_lag": self.adf.used_lag,
            "kpss_statistic": self.kpss.statistic,
            "kpss_p_value": self.kpss.p_value,
            "kpss_critical_value": self.kpss.critical_values.get(self.kpss_level),
            "kpss_lags": self.kpss.lags,
            "tests_agree": self.tests_agree,
        }


def _clean_values(series: Union[pd.Series, np.ndarray]) -> np.ndarray:
    arr = pd.Series(series).dropna().to_numpy(dtype=float)
    if arr.size < 12:
        raise ValueError(f"Stationarity tests need at least 12 observations, got {arr.size}")
    return arr


def adf_test(series: Union[pd.Series, np.ndarray], autolag: str = "AIC") -> UnitRootResult:
    """
    Run the Augmented Dickey-Fuller (ADF) test for unit roots.

    Parameters
    ----------
    series : Union[pd.Series, np.ndarray]
        Input series. NaNs are dropped prior to testing.
    autolag : str, default="AIC"
        Lag-length selection criterion passed to ``adfuller``.

    Returns
    -------
    UnitRootResult

    Notes
    -----
    - ADF null hypothesis: the series has a unit root (non-stationary)
    - Lower p-values (< 0.05) suggest rejection of null (series is stationary)
    """
    stat, pvalue, used_lag, nobs, crit, _ = adfuller(_clean_values(series), autolag=autolag)
    return UnitRootResult(
        statistic=float(stat),
        p_value=float(pvalue),
        used_lag=int(used_lag),
        n_obs=int(nobs),
        critical_values={k: float(v) for k, v in crit.items()},
    )


def kpss_test(series: Union[pd.Series, np.ndarray], regression: str = "c") -> StationarityTestResult:
    """
    Run the Kwiatkowski-Phillips-Schmidt-Shin (KPSS) stationarity test.

    KPSS p-values are interpolated from a table bounded to [0.01, 0.1];
    statsmodels warns when the statistic falls outside it, which only means
    the p-value is clipped. The decision uses the critical-value table.
    """
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", InterpolationWarning)
        stat, pvalue, lags, crit = kpss(_clean_values(series), regression=regression, nlags="auto")
    return StationarityTestResult(
        statistic=float(stat),
        p_value=float(pvalue),
        lags=int(lags),
        critical_values={k: float(v) for k, v in crit.items()},
    )


def verify_stationarity(series: Union[pd.Series, np.ndarray],
                        alpha: float = 0.05,
                        kpss_level: str = "5%",
                        kpss_regression: str = "c") -> StationarityReport:
    """
    Verify stationarity with two complementary tests.

    - ADF: stationary when the unit-root null is rejected (p < alpha).
    - KPSS: consistent with stationarity when the statistic is below the
      critical value at ``kpss_level``.

    The series is declared stationary only if both tests agree; otherwise it
    is flagged for differencing.
    """
    adf = adf_test(series)
    kp = kpss_test(series, regression=kpss_regression)

    if kpss_level not in kp.critical_values:
        raise ValueError(f"Unknown KPSS level '{kpss_level}'. Available: {sorted(kp.critical_values)}")

    adf_ok = adf.p_value < alpha
    kpss_ok = kp.statistic < kp.critical_values[kpss_level]

    report = StationarityReport(
        is_stationary=bool(adf_ok and kpss_ok),
        adf_stationary=bool(adf_ok),
        kpss_stationary=bool(kpss_ok),
        adf=adf,
        kpss=kp,
        alpha=alpha,
        kpss_level=kpss_level,
    )
    logger.info("ADF: statistic=%.3f, p-value=%.4f; KPSS: statistic=%.3f (crit %s=%.3f)",
                adf.statistic, adf.p_value, kp.statistic, kpss_level, kp.critical_values[kpss_level])
    if not report.tests_agree:
        logger.warning("Stationarity tests disagree (ADF stationary=%s, KPSS stationary=%s); flagging for differencing",
                       adf_ok, kpss_ok)
    elif not report.is_stationary:
        logger.warning("Series is not stationary according to both tests; flagging for differencing")
    return report
