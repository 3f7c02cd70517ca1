# delay_forecaster_src/transform_utils.py

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np
import pandas as pd
from scipy import optimize, stats

from .exceptions import EmptySeriesError, InvalidDomainError

logger = logging.getLogger(__name__)

# Lambdas closer than this to zero use the logarithmic branch
_LAMBDA_ZERO_TOL = 1e-12


@dataclass(frozen=True)
class TransformParams:
    """
    Parameters of the shifted Box-Cox transform.

    Attributes
    ----------
    lam : float
        Power-transform exponent.
    shift : float
        Subtracted before the +1 offset; equals the training minimum when that
        minimum is <= 0, else 0, so every training value maps above zero.
    """

    lam: float
    shift: float

    @property
    def is_log(self) -> bool:
        return abs(self.lam) < _LAMBDA_ZERO_TOL


def lambda_grid(lower: float = -2.0, upper: float = 2.0, step: float = 0.1) -> np.ndarray:
    """
    Build the bounded lambda search grid.

    Grid points are rounded to 10 decimals so that 0.0 is represented exactly
    and the logarithmic branch is reachable.
    """
    if step <= 0 or upper < lower:
        raise ValueError(f"Invalid lambda grid: lower={lower}, upper={upper}, step={step}")
    n_steps = int(round((upper - lower) / step))
    return np.round(lower + step * np.arange(n_steps + 1), 10)


def select_lambda(grid: Sequence[float], loglik: Sequence[float], atol: float = 1e-9) -> float:
    """
    Pick the arg-max lambda of a profile log-likelihood.

    Ties (log-likelihoods within ``atol`` of the maximum) are broken by the
    smallest absolute lambda, i.e. the transform closest to the logarithm; an exact
    +/- tie resolves to the smaller value.
    """
    g = np.asarray(grid, dtype=float)
    ll = np.asarray(loglik, dtype=float)
    finite = np.isfinite(ll)
    if not finite.any():
        raise ValueError("Box-Cox profile log-likelihood is not finite anywhere on the grid")
    best = ll[finite].max()
    ties = g[finite & (ll >= best - atol)]
    return float(min(ties, key=lambda lam: (abs(lam), lam)))


def _shifted_values(series: pd.Series, shift: float) -> np.ndarray:
    return np.asarray(series, dtype=float) - shift + 1.0


def _check_domain(series: pd.Series, shifted: np.ndarray, what: str) -> None:
    bad = ~(shifted > 0)
    if bad.any():
        pos = int(np.flatnonzero(bad)[0])
        label = series.index[pos]
        label = label.date() if isinstance(label, pd.Timestamp) else label
        raise InvalidDomainError(
            f"{what}: value {float(np.asarray(series)[pos])!r} at {label} is outside the "
            f"transform domain ({int(bad.sum())} offending value(s))"
        )


def fit_transform_params(series: pd.Series,
                         lower: float = -2.0,
                         upper: float = 2.0,
                         step: float = 0.1,
                         refine: bool = False) -> TransformParams:
    """
    Estimate the shift and Box-Cox lambda on a training series.

    The shift makes every value positive: ``shift = min(series)`` when the
    minimum is <= 0, else 0. Lambda maximizes the Box-Cox profile
    log-likelihood of ``series - shift + 1`` over a bounded grid.

    Parameters
    ----------
    series : pd.Series
        Training series (never the test data).
    lower, upper, step : float
        Grid bounds and spacing.
    refine : bool, default=False
        Polish the grid winner with a bounded scalar search in
        ``[best - step, best + step]`` (clipped to the grid bounds).

    Returns
    -------
    TransformParams
    """
    values = np.asarray(series, dtype=float)
    values = values[np.isfinite(values)]
    if values.size == 0:
        raise EmptySeriesError("Cannot fit a variance transform on an empty series", stage="variance_stabilizer")
    if values.size != len(series):
        raise InvalidDomainError("Training series contains non-finite values")

    vmin = float(values.min())
    shift = vmin if vmin <= 0 else 0.0
    x = values - shift + 1.0

    grid = lambda_grid(lower, upper, step)
    if np.ptp(x) == 0.0:
        # Constant series: the likelihood is flat, keep the identity-like choice
        logger.warning("Constant training series; using lambda=1")
        return TransformParams(lam=1.0, shift=shift)

    loglik = np.array([stats.boxcox_llf(lam, x) for lam in grid])
    lam = select_lambda(grid, loglik)

    if refine:
        lo = max(lower, lam - step)
        hi = min(upper, lam + step)
        res = optimize.minimize_scalar(lambda l: -stats.boxcox_llf(l, x), bounds=(lo, hi), method="bounded")
        if res.success and -res.fun >= loglik.max():
            lam = float(res.x)

    logger.info("Variance transform fitted: lambda=%.4f shift=%.4f (n=%d)", lam, shift, values.size)
    return TransformParams(lam=float(lam), shift=float(shift))


def apply_transform(series: pd.Series, params: TransformParams) -> pd.Series:
    """
    Apply the shifted Box-Cox transform.

    ``((v - shift + 1) ** lambda - 1) / lambda`` when lambda != 0, else
    ``log(v - shift + 1)``.

    Raises
    ------
    InvalidDomainError
        If any ``v - shift + 1 <= 0``.
    """
    x = _shifted_values(series, params.shift)
    _check_domain(series, x, "apply_transform")
    if params.is_log:
        out = np.log(x)
    else:
        out = (np.power(x, params.lam) - 1.0) / params.lam
    return pd.Series(out, index=series.index.copy(), name=series.name)


def invert_transform(series: pd.Series, params: TransformParams) -> pd.Series:
    """
    Exact algebraic inverse of :func:`apply_transform`.

    ``(v * lambda + 1) ** (1 / lambda) + shift - 1`` when lambda != 0, else
    ``exp(v) + shift - 1``.

    Raises
    ------
    InvalidDomainError
        If ``v * lambda + 1 <= 0`` for a non-zero lambda.
    """
    v = np.asarray(series, dtype=float)
    if params.is_log:
        out = np.exp(v) + params.shift - 1.0
    else:
        base = v * params.lam + 1.0
        _check_domain(series, base, "invert_transform")
        out = np.power(base, 1.0 / params.lam) + params.shift - 1.0
    return pd.Series(out, index=series.index.copy(), name=series.name)


def get_transform_description(params: TransformParams) -> str:
    """Human-readable description of a fitted transform."""
    if params.is_log:
        return f"log(v - ({params.shift:g}) + 1)"
    return f"Box-Cox(lambda={params.lam:g}) of v - ({params.shift:g}) + 1"
