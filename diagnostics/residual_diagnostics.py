"""Residual diagnostics for fitted ARMA models.

This module checks whether the residuals of a fitted model behave like
white noise. Every check is informational: a failing test is reported in
the returned record, never raised.

Features:
- ACF/PACF of residuals with the +/-1.96/sqrt(n) significance band
- Shapiro-Wilk test for normality
- Jarque-Bera test for normality (supplementary, robust for large n)
- Ljung-Box test for serial correlation, with ARMA degrees-of-freedom adjustment
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
from scipy import stats
from statsmodels.stats.diagnostic import acorr_ljungbox
from statsmodels.stats.stattools import jarque_bera
from statsmodels.tsa.stattools import acf, pacf

logger = logging.getLogger(__name__)


class DiagnosticTest(Enum):
    """Types of residual diagnostic tests."""
    LJUNG_BOX = "ljung_box"
    SHAPIRO_WILK = "shapiro_wilk"
    JARQUE_BERA = "jarque_bera"


@dataclass(frozen=True)
class DiagnosticResult:
    """Results from a single diagnostic test."""

    test_name: str
    test_type: DiagnosticTest
    test_statistic: float
    p_value: float
    significance_level: float = 0.05
    degrees_of_freedom: Optional[int] = None
    test_description: Optional[str] = None
    additional_stats: Dict[str, float] = field(default_factory=dict)

    @property
    def is_significant(self) -> bool:
        """Check if test rejects null hypothesis."""
        return self.p_value < self.significance_level

    @property
    def passed(self) -> bool:
        """True when the null (normality / independence) is retained."""
        return bool(self.p_value > self.significance_level)

    @property
    def interpretation(self) -> str:
        """Get interpretation of test result."""
        if self.test_type == DiagnosticTest.LJUNG_BOX:
            if self.passed:
                return "No significant serial correlation in residuals"
            return "Serial correlation detected in residuals"
        if self.passed:
            return "Residuals appear normally distributed"
        return "Residuals not normally distributed"


@dataclass(frozen=True)
class DiagnosticsReport:
    """Read-only summary of residual behaviour for the presentation layer."""

    n_residuals: int
    lags: Tuple[int, ...] = field(default_factory=tuple)
    acf: Tuple[float, ...] = field(default_factory=tuple)
    pacf: Tuple[float, ...] = field(default_factory=tuple)
    band: float = float("nan")
    significant_acf_lags: Tuple[int, ...] = field(default_factory=tuple)
    significant_pacf_lags: Tuple[int, ...] = field(default_factory=tuple)
    normality: Optional[DiagnosticResult] = None
    jarque_bera: Optional[DiagnosticResult] = None
    independence: Optional[DiagnosticResult] = None
    summary_statistics: Dict[str, float] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def is_normal(self) -> Optional[bool]:
        return None if self.normality is None else self.normality.passed

    @property
    def is_independent(self) -> Optional[bool]:
        return None if self.independence is None else self.independence.passed

    @property
    def overall_adequate(self) -> bool:
        return bool(self.is_independent) and not self.significant_acf_lags

    def issues(self) -> List[str]:
        found = []
        if self.is_independent is False:
            found.append("Serial correlation in residuals (Ljung-Box)")
        if self.significant_acf_lags:
            found.append(f"Significant residual autocorrelation at lags {list(self.significant_acf_lags)}")
        if self.is_normal is False:
            found.append("Residuals not normally distributed (Shapiro-Wilk)")
        for name, message in self.errors.items():
            found.append(f"{name} could not be computed: {message}")
        return found


class ResidualDiagnostics:
    """Residual diagnostic testing."""

    def __init__(self, significance_level: float = 0.05, ljung_box_lags: int = 10, acf_pacf_lags: int = 20):
        """Initialize residual diagnostics.

        Parameters
        ----------
        significance_level : float, default 0.05
            Significance level for all tests
        ljung_box_lags : int, default 10
            Lag count of the Ljung-Box portmanteau test
        acf_pacf_lags : int, default 20
            Largest lag reported for the residual ACF/PACF
        """
        self.significance_level = significance_level
        self.ljung_box_lags = ljung_box_lags
        self.acf_pacf_lags = acf_pacf_lags

    def ljung_box_test(self, residuals: pd.Series, lags: Optional[int] = None, model_df: int = 0) -> DiagnosticResult:
        """Ljung-Box test for serial correlation in residuals.

        Parameters
        ----------
        residuals : pd.Series
            Model residuals
        lags : int, optional
            Number of lags to test
        model_df : int, default 0
            Number of estimated ARMA parameters; subtracted from the degrees of
            freedom when fewer than ``lags``

        Returns
        -------
        DiagnosticResult
            Ljung-Box test results
        """
        resid = pd.Series(residuals).dropna()
        if lags is None:
            lags = self.ljung_box_lags
        lags = int(max(1, min(lags, len(resid) - 1)))
        if model_df >= lags:
            model_df = 0

        logger.debug("Running Ljung-Box test with %d lags (model_df=%d)", lags, model_df)
        lb_result = acorr_ljungbox(resid, lags=[lags], model_df=model_df, return_df=True)
        return DiagnosticResult(
            test_name="Ljung-Box Test",
            test_type=DiagnosticTest.LJUNG_BOX,
            test_statistic=float(lb_result["lb_stat"].iloc[-1]),
            p_value=float(lb_result["lb_pvalue"].iloc[-1]),
            degrees_of_freedom=lags - model_df,
            significance_level=self.significance_level,
            test_description=f"Test for serial correlation in residuals (H0: No serial correlation, lags={lags})",
        )

    def shapiro_wilk_test(self, residuals: pd.Series) -> DiagnosticResult:
        """Shapiro-Wilk test for normality.

        Parameters
        ----------
        residuals : pd.Series
            Model residuals

        Returns
        -------
        DiagnosticResult
            Shapiro-Wilk test results
        """
        resid = pd.Series(residuals).dropna()
        if len(resid) > 5000:
            logger.warning("Shapiro-Wilk test may be unreliable for large samples (n=%d)", len(resid))

        sw_stat, sw_pval = stats.shapiro(resid.to_numpy(dtype=float))
        return DiagnosticResult(
            test_name="Shapiro-Wilk Test",
            test_type=DiagnosticTest.SHAPIRO_WILK,
            test_statistic=float(sw_stat),
            p_value=float(sw_pval),
            significance_level=self.significance_level,
            test_description="Test for normality of residuals (H0: Residuals are normally distributed)",
        )

    def jarque_bera_test(self, residuals: pd.Series) -> DiagnosticResult:
        """Jarque-Bera test for normality of residuals."""
        resid = pd.Series(residuals).dropna()
        jb_stat, jb_pval, skew, kurtosis = jarque_bera(resid.to_numpy(dtype=float))
        return DiagnosticResult(
            test_name="Jarque-Bera Test",
            test_type=DiagnosticTest.JARQUE_BERA,
            test_statistic=float(jb_stat),
            p_value=float(jb_pval),
            degrees_of_freedom=2,
            significance_level=self.significance_level,
            test_description="Test for normality of residuals (H0: Residuals are normally distributed)",
            additional_stats={"skewness": float(skew), "kurtosis": float(kurtosis)},
        )

    def compute_acf_pacf(self, residuals: pd.Series, lags: Optional[int] = None) -> Dict[str, Any]:
        """Compute ACF and PACF for residuals at lags 1..k.

        Returns
        -------
        dict
            'lags', 'acf', 'pacf', 'band', 'significant_acf_lags',
            'significant_pacf_lags'
        """
        resid = pd.Series(residuals).dropna().to_numpy(dtype=float)
        n = len(resid)
        if lags is None:
            lags = self.acf_pacf_lags
        lags = int(max(1, min(lags, n // 2 - 1)))

        logger.debug("Computing ACF/PACF with %d lags", lags)
        acf_vals = acf(resid, nlags=lags, fft=True)[1:]
        pacf_vals = pacf(resid, nlags=lags, method="ywadjusted")[1:]
        band = 1.96 / np.sqrt(n)
        lag_ids = np.arange(1, lags + 1)
        return {
            "lags": lag_ids,
            "acf": acf_vals,
            "pacf": pacf_vals,
            "band": band,
            "significant_acf_lags": [int(k) for k, r in zip(lag_ids, acf_vals) if abs(r) > band],
            "significant_pacf_lags": [int(k) for k, r in zip(lag_ids, pacf_vals) if abs(r) > band],
        }

    def diagnose_residuals(self, residuals: pd.Series, model_df: int = 0, model_name: str = "ARMA") -> DiagnosticsReport:
        """Run every residual check and collect the outcome.

        Never raises: a check that errors, or whose statistic is not finite,
        is recorded under ``errors`` and left unset.
        """
        logger.info("Running residual diagnostics for %s", model_name)
        resid = pd.Series(residuals).dropna()
        errors: Dict[str, str] = {}
        fields: Dict[str, Any] = {}

        if len(resid) < 8:
            errors["residuals"] = f"too few residuals ({len(resid)})"
            logger.warning("Residual diagnostics skipped for %s: %s", model_name, errors["residuals"])
            return DiagnosticsReport(n_residuals=len(resid), errors=errors)

        fields["summary_statistics"] = {
            "mean": float(resid.mean()),
            "std": float(resid.std()),
            "skewness": float(resid.skew()),
            "kurtosis": float(resid.kurtosis()),
            "min": float(resid.min()),
            "max": float(resid.max()),
        }

        try:
            corr = self.compute_acf_pacf(resid)
            fields.update(
                lags=tuple(int(k) for k in corr["lags"]),
                acf=tuple(float(v) for v in corr["acf"]),
                pacf=tuple(float(v) for v in corr["pacf"]),
                band=float(corr["band"]),
                significant_acf_lags=tuple(corr["significant_acf_lags"]),
                significant_pacf_lags=tuple(corr["significant_pacf_lags"]),
            )
        except (ValueError, np.linalg.LinAlgError) as e:
            errors["acf_pacf"] = str(e)

        checks = [
            ("normality", lambda: self.shapiro_wilk_test(resid)),
            ("jarque_bera", lambda: self.jarque_bera_test(resid)),
            ("independence", lambda: self.ljung_box_test(resid, model_df=model_df)),
        ]
        for name, check in checks:
            try:
                result = check()
            except (ValueError, np.linalg.LinAlgError) as e:
                errors[name] = str(e)
                continue
            # Degenerate residuals (e.g. constant) leave the test undefined
            if not (np.isfinite(result.test_statistic) and np.isfinite(result.p_value)):
                errors[name] = f"{result.test_name} is undefined for these residuals"
                continue
            fields[name] = result

        report = DiagnosticsReport(n_residuals=len(resid), errors=errors, **fields)
        for issue in report.issues():
            logger.warning("%s: %s", model_name, issue)
        if not report.issues():
            logger.info("Model diagnostics look good - no major issues detected")
        return report


def diagnose(model, significance_level: float = 0.05, ljung_box_lags: int = 10,
             acf_pacf_lags: int = 20) -> DiagnosticsReport:
    """Diagnose the residuals of a fitted model.

    Parameters
    ----------
    model : FittedModel
        Fitted model; only ``residuals`` and ``order`` are read.
    significance_level : float
        Significance level for tests

    Returns
    -------
    DiagnosticsReport
        Purely informational report; never raises on failing tests.
    """
    diagnostics = ResidualDiagnostics(significance_level, ljung_box_lags=ljung_box_lags, acf_pacf_lags=acf_pacf_lags)
    return diagnostics.diagnose_residuals(
        model.residuals,
        model_df=model.order.n_arma_params,
        model_name=str(model.order),
    )
