# delay_forecaster_src/__init__.py

"""
Delay Forecaster ARIMA - Daily Flight Delay Forecasting Package

This package forecasts daily average flight delays with ARMA-class models
fitted on a variance-stabilized series, one focused utility module per
pipeline stage.

Key Components
--------------
- config_utils: Configuration management and CLI override support
- data_utils: Daily series construction from raw observations
- transform_utils: Shifted Box-Cox variance stabilization
- stationarity_utils: ADF and KPSS stationarity verification
- forecasting_utils: ACF/PACF order bounds, AIC grid search, ARMA forecasting
- metrics_utils: Forecast error scoring (MAE, MSE, RMSE, MAPE)
- decomposition_utils: Optional trend/seasonal decomposition
- parsing_utils: Command-line argument parsing
- file_utils: Metrics CSV and JSON report output
- exceptions: Pipeline error taxonomy
- main: Main entry point and workflow orchestration

Usage
-----
The package can be used as a command-line tool or imported for programmatic use:

    # Command-line usage
    python -m delay_forecaster_src.main --train-csv data/2013.csv data/2014.csv --test-csv data/2016.csv

    # Programmatic usage
    from delay_forecaster_src import build_daily_series, run_delay_workflow
"""

__version__ = "1.0.0"
__author__ = "Delay Forecaster Development Team"

# Import key functions for easy access
from .config_utils import initialize_config, get_config_value
from .data_utils import build_daily_series, load_daily_series_csv, load_observations_csv
from .exceptions import (
    ForecastPipelineError, EmptySeriesError, InvalidDomainError, NonConvergenceError, LengthMismatchError
)
from .transform_utils import TransformParams, fit_transform_params, apply_transform, invert_transform
from .stationarity_utils import verify_stationarity
from .forecasting_utils import ModelOrder, fit_arma, select_arma_model, forecast_arma
from .metrics_utils import ErrorReport, score_forecast
from .main import main, run_delay_workflow

__all__ = [
    # Core functionality
    "main",
    "run_delay_workflow",
    "initialize_config",
    "get_config_value",
    "build_daily_series",
    "load_daily_series_csv",
    "load_observations_csv",
    "TransformParams",
    "fit_transform_params",
    "apply_transform",
    "invert_transform",
    "verify_stationarity",
    "ModelOrder",
    "fit_arma",
    "select_arma_model",
    "forecast_arma",
    "ErrorReport",
    "score_forecast",
    # Errors
    "ForecastPipelineError",
    "EmptySeriesError",
    "InvalidDomainError",
    "NonConvergenceError",
    "LengthMismatchError",
    # Version info
    "__version__",
    "__author__"
]
