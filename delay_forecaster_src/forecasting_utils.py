# delay_forecaster_src/forecasting_utils.py

import hashlib
import logging
import warnings
from dataclasses import dataclass, field
from itertools import product
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from numpy.polynomial import polynomial as npp
from statsmodels.tools.sm_exceptions import ConvergenceWarning
from statsmodels.tsa.statespace.sarimax import SARIMAX
from statsmodels.tsa.stattools import acf, pacf
from tqdm.auto import tqdm

from helpers.temporal import forecast_index

from .exceptions import NonConvergenceError

logger = logging.getLogger(__name__)

# Default seasonal period for daily data when a seasonal component is modeled
DAILY_SEASONAL_PERIOD = 365


@dataclass(frozen=True)
class ModelOrder:
    """ARIMA-class order (p, d, q) with an optional seasonal part (P, D, Q, s)."""

    p: int
    d: int = 0
    q: int = 0
    P: int = 0
    D: int = 0
    Q: int = 0
    seasonal_period: Optional[int] = None

    def __post_init__(self):
        for name in ("p", "d", "q", "P", "D", "Q"):
            value = getattr(self, name)
            if int(value) != value or value < 0:
                raise ValueError(f"Order component {name} must be a non-negative integer, got {value!r}")
        if self.seasonal_period is not None and self.seasonal_period < 2:
            raise ValueError(f"seasonal_period must be >= 2 when set, got {self.seasonal_period}")
        if self.seasonal_period is None and (self.P or self.D or self.Q):
            raise ValueError("Seasonal orders require a seasonal_period")

    @property
    def is_seasonal(self) -> bool:
        return self.seasonal_period is not None and (self.P > 0 or self.D > 0 or self.Q > 0)

    @property
    def n_arma_params(self) -> int:
        return self.p + self.q + self.P + self.Q

    def sarimax_orders(self) -> Tuple[Tuple[int, int, int], Tuple[int, int, int, int]]:
        seasonal = (self.P, self.D, self.Q, self.seasonal_period) if self.is_seasonal else (0, 0, 0, 0)
        return (self.p, self.d, self.q), seasonal

    def __str__(self) -> str:
        label = f"ARIMA({self.p},{self.d},{self.q})"
        if self.is_seasonal:
            label += f"({self.P},{self.D},{self.Q})[{self.seasonal_period}]"
        return label


@dataclass(frozen=True, eq=False)
class FittedModel:
    """
    Immutable result of a maximum-likelihood ARMA fit.

    ``ar_coefficients`` and ``ma_coefficients`` are the expanded lag
    polynomials (seasonal factors multiplied in), in the convention
    ``y_t = c + sum(ar[i] * y_{t-1-i}) + e_t + sum(ma[j] * e_{t-1-j})``.
    """

    order: ModelOrder
    ar_coefficients: Tuple[float, ...]
    ma_coefficients: Tuple[float, ...]
    intercept: float
    sigma2: float
    params: Dict[str, float]
    endog: pd.Series
    residuals: pd.Series
    log_likelihood: float
    aic: float
    bic: float
    n_obs: int
    iterations: Optional[int] = None

    @property
    def coefficients(self) -> Tuple[float, ...]:
        """AR coefficients followed by MA coefficients."""
        return tuple(self.ar_coefficients) + tuple(self.ma_coefficients)

    def summary(self) -> Dict[str, object]:
        return {
            "order": str(self.order),
            "params": dict(self.params),
            "log_likelihood": self.log_likelihood,
            "aic": self.aic,
            "bic": self.bic,
            "n_obs": self.n_obs,
        }


@dataclass(frozen=True)
class ForecastResult:
    """Point forecasts in the modeled (transformed) scale."""

    horizon: int
    point_forecasts: Tuple[float, ...]
    start_date: pd.Timestamp
    freq: str = "D"

    @property
    def index(self) -> pd.DatetimeIndex:
        return pd.date_range(start=self.start_date, periods=self.horizon, freq=self.freq, name="date")

    def to_series(self, name: str = "forecast") -> pd.Series:
        return pd.Series(self.point_forecasts, index=self.index, name=name, dtype=float)

    @property
    def fingerprint(self) -> str:
        return hash_forecast(self.point_forecasts)


@dataclass(frozen=True)
class OrderBounds:
    """Upper bounds for p and q derived from the sample PACF / ACF."""

    p_max: int
    q_max: int
    max_lag: int
    band: float
    significant_acf_lags: Tuple[int, ...] = field(default_factory=tuple)
    significant_pacf_lags: Tuple[int, ...] = field(default_factory=tuple)


@dataclass(frozen=True, eq=False)
class SelectionResult:
    """Outcome of the grid search: chosen model plus the full AIC ranking."""

    best: FittedModel
    ranking: pd.DataFrame
    bounds: Optional[OrderBounds] = None


def confidence_band(n: int) -> float:
    """Approximate 95% significance band for sample autocorrelations."""
    return 1.96 / np.sqrt(n)


def significant_lags(values: Union[pd.Series, np.ndarray], nlags: int, kind: str = "acf") -> List[int]:
    """
    Lags 1..nlags whose sample ACF (or PACF) lies outside +/-1.96/sqrt(n).

    Parameters
    ----------
    values : Union[pd.Series, np.ndarray]
        Input series. NaNs are dropped.
    nlags : int
        Largest lag examined.
    kind : str, default="acf"
        'acf' or 'pacf'.
    """
    x = pd.Series(values).dropna().to_numpy(dtype=float)
    n = len(x)
    if kind == "acf":
        r = acf(x, nlags=nlags, fft=True)
    elif kind == "pacf":
        r = pacf(x, nlags=min(nlags, n // 2 - 1), method="ywadjusted")
    else:
        raise ValueError(f"kind must be 'acf' or 'pacf', got {kind!r}")
    band = confidence_band(n)
    return [lag for lag in range(1, len(r)) if abs(r[lag]) > band]


def leading_cutoff(lags: Sequence[int]) -> int:
    """
    Length of the initial contiguous run of significant lags.

    ``[1, 2, 5]`` -> 2 (the run 1, 2 stops at the gap before 5); ``[3]`` -> 0.
    """
    cutoff = 0
    for expected, lag in enumerate(sorted(lags), start=1):
        if lag != expected:
            break
        cutoff = lag
    return cutoff


def suggest_order_bounds(series: pd.Series,
                         max_lag: Optional[int] = None,
                         max_p: int = 3,
                         max_q: int = 3,
                         max_acf_lag: int = 40) -> OrderBounds:
    """
    Bound the ARMA grid from the sample autocorrelation structure.

    The PACF cutoff bounds p and the ACF cutoff bounds q; both are capped
    by ``max_p`` / ``max_q``. ``max_lag`` defaults to ``min(40, n // 4)``.
    """
    n = len(series.dropna())
    if max_lag is None:
        max_lag = min(max_acf_lag, n // 4)
    if max_lag < 1:
        raise ValueError(f"Series too short to examine autocorrelations (n={n})")

    acf_lags = significant_lags(series, max_lag, kind="acf")
    pacf_lags = significant_lags(series, max_lag, kind="pacf")
    bounds = OrderBounds(
        p_max=min(max_p, leading_cutoff(pacf_lags)),
        q_max=min(max_q, leading_cutoff(acf_lags)),
        max_lag=max_lag,
        band=float(confidence_band(n)),
        significant_acf_lags=tuple(acf_lags),
        significant_pacf_lags=tuple(pacf_lags),
    )
    logger.info("Order bounds from ACF/PACF (max_lag=%d, band=%.4f): p_max=%d, q_max=%d",
                max_lag, bounds.band, bounds.p_max, bounds.q_max)
    return bounds


def _expand_lag_polynomials(params: Dict[str, float], order: ModelOrder) -> Tuple[np.ndarray, np.ndarray]:
    """
    Multiply non-seasonal and seasonal factors into reduced lag polynomials.

    Returns (ar, ma) recursion coefficients for lags 1..n.
    """
    s = order.seasonal_period or 0
    ar = np.r_[1.0, [-params[f"ar.L{i}"] for i in range(1, order.p + 1)]]
    ma = np.r_[1.0, [params[f"ma.L{i}"] for i in range(1, order.q + 1)]]

    if order.is_seasonal:
        sar = np.zeros(order.P * s + 1)
        sar[0] = 1.0
        for i in range(1, order.P + 1):
            sar[i * s] = -params[f"ar.S.L{i * s}"]
        sma = np.zeros(order.Q * s + 1)
        sma[0] = 1.0
        for i in range(1, order.Q + 1):
            sma[i * s] = params[f"ma.S.L{i * s}"]
        ar = npp.polymul(ar, sar)
        ma = npp.polymul(ma, sma)

    return -np.asarray(ar[1:], dtype=float), np.asarray(ma[1:], dtype=float)


def fit_arma(series: pd.Series,
             order: ModelOrder,
             trend: str = "c",
             max_iter: int = 200) -> FittedModel:
    """
    Fit an ARMA(p, q) (optionally seasonal) model by maximum likelihood.

    The exact Gaussian likelihood is evaluated through the state-space
    (Kalman filter) representation; stationarity and invertibility are
    enforced through the parameter transformation.

    Parameters
    ----------
    series : pd.Series
        Stationary, variance-stabilized training series with DatetimeIndex.
    order : ModelOrder
        Orders to fit. Differencing (d, D) must be 0.
    trend : str, default="c"
        'c' for an intercept, 'n' for none.
    max_iter : int, default=200
        Iteration budget of the L-BFGS optimizer.

    Returns
    -------
    FittedModel

    Raises
    ------
    NonConvergenceError
        If the optimizer does not converge within ``max_iter`` iterations,
        fails outright, or yields a non-finite likelihood.
    """
    if order.d != 0 or order.D != 0:
        raise ValueError(f"{order}: differencing is not applied by this fitter; d and D must be 0")

    endog = series.astype(float)
    arima_order, seasonal_order = order.sarimax_orders()
    key = (order.p, order.q, order.P, order.Q)

    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", ConvergenceWarning)
            model = SARIMAX(
                endog.to_numpy(),
                order=arima_order,
                seasonal_order=seasonal_order,
                trend=trend,
                enforce_stationarity=True,
                enforce_invertibility=True,
            )
            res = model.fit(disp=False, method="lbfgs", maxiter=max_iter)
    except (ValueError, np.linalg.LinAlgError) as e:
        raise NonConvergenceError(f"{order}: likelihood optimization failed: {e}", order=key) from e

    retvals = getattr(res, "mle_retvals", None) or {}
    if not retvals.get("converged", True):
        raise NonConvergenceError(
            f"{order}: likelihood optimization did not converge within {max_iter} iterations",
            order=key,
        )
    if not np.isfinite(res.llf):
        raise NonConvergenceError(f"{order}: non-finite log-likelihood", order=key)

    params = dict(zip(res.model.param_names, map(float, np.asarray(res.params))))
    ar, ma = _expand_lag_polynomials(params, order)

    fitted = FittedModel(
        order=order,
        ar_coefficients=tuple(float(v) for v in ar),
        ma_coefficients=tuple(float(v) for v in ma),
        intercept=params.get("intercept", 0.0),
        sigma2=params.get("sigma2", float("nan")),
        params=params,
        endog=endog.copy(),
        residuals=pd.Series(np.asarray(res.resid, dtype=float), index=endog.index.copy(), name="residual"),
        log_likelihood=float(res.llf),
        aic=float(res.aic),
        bic=float(res.bic),
        n_obs=int(res.nobs),
        iterations=retvals.get("iterations"),
    )
    logger.debug("Fitted %s: AIC=%.3f BIC=%.3f params=%s", order, fitted.aic, fitted.bic, params)
    return fitted


def optimize_arma(series: pd.Series,
                  order_list: Sequence[Tuple[int, int]],
                  seasonal_period: Optional[int] = None,
                  seasonal_orders: Tuple[int, int] = (0, 0),
                  trend: str = "c",
                  max_iter: int = 200,
                  progress: bool = True) -> Tuple[pd.DataFrame, Dict[Tuple[int, int], FittedModel]]:
    """
    Grid-search ARMA orders and rank by AIC.

    Parameters
    ----------
    series : pd.Series
        Transformed, stationary training series
    order_list : Sequence[Tuple[int, int]]
        List of (p, q) tuples; d = 0 throughout
    seasonal_period : Optional[int]
        Seasonal period (365 for daily data) or None for a non-seasonal model
    seasonal_orders : Tuple[int, int]
        Seasonal (P, Q) applied to every candidate when ``seasonal_period`` is set
    trend : str
        'c' (intercept) or 'n'
    max_iter : int
        Iteration budget per candidate
    progress : bool
        Display a tqdm progress bar

    Returns
    -------
    Tuple[pd.DataFrame, Dict]
        Ranking with columns ['(p,q)', 'p', 'q', 'complexity', 'AIC', 'BIC',
        'loglik', 'converged'] sorted by AIC, then p+q, then BIC (failed
        candidates last), and the converged FittedModel per (p, q).

    Notes
    -----
    Non-converged candidates stay in the ranking with converged=False so the
    search remains auditable.
    """
    P, Q = seasonal_orders if seasonal_period else (0, 0)
    rows: List[Dict[str, object]] = []
    fitted: Dict[Tuple[int, int], FittedModel] = {}

    for p, q in tqdm(list(order_list), desc="Grid search ARMA", disable=not progress):
        order = ModelOrder(p=p, d=0, q=q, P=P, Q=Q, seasonal_period=seasonal_period)
        try:
            model = fit_arma(series, order, trend=trend, max_iter=max_iter)
        except NonConvergenceError as e:
            logger.warning("Skipping candidate: %s", e)
            rows.append({"(p,q)": (p, q), "p": p, "q": q, "complexity": order.n_arma_params,
                         "AIC": np.nan, "BIC": np.nan, "loglik": np.nan, "converged": False})
            continue
        fitted[(p, q)] = model
        rows.append({"(p,q)": (p, q), "p": p, "q": q, "complexity": order.n_arma_params,
                     "AIC": model.aic, "BIC": model.bic, "loglik": model.log_likelihood, "converged": True})

    columns = ["(p,q)", "p", "q", "complexity", "AIC", "BIC", "loglik", "converged"]
    result_df = pd.DataFrame(rows, columns=columns)
    result_df = result_df.sort_values(
        by=["converged", "AIC", "complexity", "BIC"],
        ascending=[False, True, True, True],
        na_position="last",
        kind="mergesort",
    ).reset_index(drop=True)
    return result_df, fitted


def select_arma_model(series: pd.Series,
                      p_values: Optional[Sequence[int]] = None,
                      q_values: Optional[Sequence[int]] = None,
                      max_p: int = 3,
                      max_q: int = 3,
                      max_acf_lag: int = 40,
                      seasonal_period: Optional[int] = None,
                      seasonal_orders: Tuple[int, int] = (0, 0),
                      trend: str = "c",
                      max_iter: int = 200,
                      progress: bool = True) -> SelectionResult:
    """
    Choose ARMA orders by ACF/PACF bounds plus an AIC grid search.

    The grid is ``p in [0, p_max]``, ``q in [0, q_max]`` with bounds from
    :func:`suggest_order_bounds`, unless explicit ``p_values`` /
    ``q_values`` are given. The lowest-AIC converged candidate wins;
    candidates that fail to converge are passed over for the next-best one.

    Raises
    ------
    NonConvergenceError
        If no candidate of the grid converges.
    """
    bounds = None
    if p_values is None or q_values is None:
        bounds = suggest_order_bounds(series, max_p=max_p, max_q=max_q, max_acf_lag=max_acf_lag)
    p_grid = sorted(set(p_values)) if p_values is not None else list(range(bounds.p_max + 1))
    q_grid = sorted(set(q_values)) if q_values is not None else list(range(bounds.q_max + 1))
    order_list = list(product(p_grid, q_grid))
    logger.info("Searching %d ARMA candidates: p in %s, q in %s", len(order_list), p_grid, q_grid)

    ranking, fitted = optimize_arma(
        series, order_list,
        seasonal_period=seasonal_period,
        seasonal_orders=seasonal_orders,
        trend=trend,
        max_iter=max_iter,
        progress=progress,
    )

    for key in ranking["(p,q)"]:
        if key in fitted:
            best = fitted[key]
            break
    else:
        raise NonConvergenceError(f"No candidate among {len(order_list)} ARMA orders converged")

    n_failed = int((~ranking["converged"]).sum())
    if n_failed:
        logger.warning("%d of %d candidates did not converge", n_failed, len(order_list))
    logger.info("Selected %s with AIC=%.3f", best.order, best.aic)
    return SelectionResult(best=best, ranking=ranking, bounds=bounds)


def forecast_arma(model: FittedModel, horizon: int, freq: str = "D") -> ForecastResult:
    """
    Produce ``horizon`` point forecasts by recursing the fitted ARMA equation.

    Each step uses previously forecasted values as if they were observed and
    sets future innovations to zero; past innovations are the in-sample
    residuals. The result is deterministic for a given model.
    """
    if horizon < 1:
        raise ValueError(f"horizon must be a positive integer, got {horizon}")

    ar = np.asarray(model.ar_coefficients, dtype=float)
    ma = np.asarray(model.ma_coefficients, dtype=float)
    y = list(np.asarray(model.endog, dtype=float))
    e = list(np.asarray(model.residuals, dtype=float))
    if len(y) < len(ar) or len(e) < len(ma):
        raise ValueError(f"Training history too short for {model.order}")

    preds: List[float] = []
    for _ in range(horizon):
        value = model.intercept
        for i, a in enumerate(ar, start=1):
            value += a * y[-i]
        for j, m in enumerate(ma, start=1):
            value += m * e[-j]
        preds.append(float(value))
        y.append(value)
        e.append(0.0)

    idx = forecast_index(model.endog.index[-1], horizon, freq=freq)
    result = ForecastResult(horizon=horizon, point_forecasts=tuple(preds), start_date=idx[0], freq=freq)
    logger.info("Forecast %d steps from %s with %s (hash=%s)",
                horizon, idx[0].date(), model.order, result.fingerprint)
    return result


def hash_forecast(seq: Union[Sequence[float], np.ndarray, pd.Series]) -> str:
    """
    Generate a hash fingerprint for a forecast sequence.

    Returns
    -------
    str
        16-character SHA-1 hash of the float64 forecast values
    """
    arr = np.ascontiguousarray(np.asarray(seq, dtype=np.float64))
    return hashlib.sha1(arr.tobytes()).hexdigest()[:16]
