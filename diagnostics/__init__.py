"""Residual diagnostics for the delay forecaster.

This package checks the residuals of a fitted ARMA model:
- Residual ACF/PACF against the 95% significance band
- Normality (Shapiro-Wilk, Jarque-Bera)
- Serial independence (Ljung-Box)
"""

from .residual_diagnostics import (
    ResidualDiagnostics,
    DiagnosticResult,
    DiagnosticTest,
    DiagnosticsReport,
    diagnose
)

__all__ = [
    'ResidualDiagnostics',
    'DiagnosticResult',
    'DiagnosticTest',
    'DiagnosticsReport',
    'diagnose'
]

# Version info
__version__ = '1.0.0'
