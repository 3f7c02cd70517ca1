# delay_forecaster_src/main.py

"""
ARMA forecasting of daily average flight delays.

This is the main entry point of the delay forecasting pipeline. Each stage
lives in its own utility module; this module threads one stage's output
into the next and exposes the command-line interface.

Purpose
-------
- Build one ordered daily series per period from raw per-flight observations
- Stabilize the variance with a shifted Box-Cox transform fitted on training data
- Verify stationarity with ADF and KPSS (both must agree)
- Bound (p, q) from the ACF/PACF cutoffs and grid-search ARMA orders by AIC
- Check residuals (ACF/PACF, Shapiro-Wilk, Ljung-Box)
- Forecast the held-out period, invert the transform and score the forecast

Configuration-Driven Workflow
-----------------------------
Model parameters and test settings are managed via a YAML configuration
file (config/forecaster.yaml by default). CLI arguments override
configuration values where applicable.
"""

import argparse
import logging
import sys
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from diagnostics import DiagnosticsReport, diagnose
from helpers.temporal import missing_days

from .config_utils import ConfigurationError, get_config_value, initialize_config
from .data_utils import load_daily_series_csv
from .decomposition_utils import DecompositionResult, decompose_series
from .exceptions import EmptySeriesError, ForecastPipelineError
from .file_utils import append_metrics_csv_row, resolve_path, write_json_report
from .forecasting_utils import (
    DAILY_SEASONAL_PERIOD, FittedModel, ForecastResult, SelectionResult, forecast_arma, select_arma_model
)
from .metrics_utils import ErrorReport, score_forecast
from .parsing_utils import parse_range_arg, validate_log_level
from .stationarity_utils import StationarityReport, verify_stationarity
from .transform_utils import (
    TransformParams, apply_transform, fit_transform_params, get_transform_description, invert_transform
)

logger = logging.getLogger(__name__)

METRICS_HEADER = [
    "train_start", "train_end", "test_start", "test_end", "model", "lambda", "shift",
    "horizon", "MAE", "MSE", "RMSE", "MAPE", "zero_actuals", "hash_forecast",
]


@dataclass(frozen=True, eq=False)
class WorkflowResult:
    """Every intermediate value of one pipeline run, for reporting."""

    train_series: pd.Series
    transform_params: TransformParams
    transformed_train: pd.Series
    stationarity: StationarityReport
    selection: SelectionResult
    diagnostics: DiagnosticsReport
    forecast: ForecastResult
    test_series: Optional[pd.Series] = None
    error_report: Optional[ErrorReport] = None
    decomposition: Optional[DecompositionResult] = None

    @property
    def model(self) -> FittedModel:
        return self.selection.best

    @property
    def predictions(self) -> pd.Series:
        """Forecast in the original scale."""
        return invert_transform(self.forecast.to_series(), self.transform_params)

    def to_report(self) -> Dict[str, Any]:
        train_idx = self.train_series.index
        report: Dict[str, Any] = {
            "train": {"start": str(train_idx[0].date()), "end": str(train_idx[-1].date()), "n": len(train_idx)},
            "transform": {
                "lambda": self.transform_params.lam,
                "shift": self.transform_params.shift,
                "description": get_transform_description(self.transform_params),
            },
            "stationarity": {
                "is_stationary": self.stationarity.is_stationary,
                "adf_stationary": self.stationarity.adf_stationary,
                "kpss_stationary": self.stationarity.kpss_stationary,
                **self.stationarity.details,
            },
            "model": self.model.summary(),
            "ranking": self.selection.ranking.assign(
                **{"(p,q)": self.selection.ranking["(p,q)"].astype(str)}
            ).to_dict(orient="records"),
            "diagnostics": {
                "is_normal": self.diagnostics.is_normal,
                "is_independent": self.diagnostics.is_independent,
                "significant_acf_lags": list(self.diagnostics.significant_acf_lags),
                "significant_pacf_lags": list(self.diagnostics.significant_pacf_lags),
                "issues": self.diagnostics.issues(),
            },
            "forecast": {
                "horizon": self.forecast.horizon,
                "start": str(self.forecast.start_date.date()),
                "hash": self.forecast.fingerprint,
                "values": [float(v) for v in self.predictions],
            },
        }
        if self.error_report is not None:
            report["errors"] = self.error_report.as_dict()
        return report


def run_delay_workflow(train_series: pd.Series,
                       test_series: Optional[pd.Series] = None,
                       horizon: Optional[int] = None,
                       args: Optional[argparse.Namespace] = None,
                       progress: bool = True) -> WorkflowResult:
    """
    Run the full forecasting pipeline on a daily training series.

    Parameters
    ----------
    train_series : pd.Series
        Daily series with DatetimeIndex (output of ``build_daily_series``)
    test_series : pd.Series, optional
        Held-out daily series in the original scale. When given, the
        forecast is scored against it.
    horizon : int, optional
        Forecast steps; defaults to the length of ``test_series``
    args : argparse.Namespace, optional
        CLI arguments overriding configuration values
    progress : bool
        Display the grid-search progress bar

    Returns
    -------
    WorkflowResult

    Raises
    ------
    ForecastPipelineError
        Any stage failure, carrying the stage name.
    ValueError
        If neither ``horizon`` nor ``test_series`` is provided.
    """
    if train_series is None or train_series.dropna().empty:
        raise EmptySeriesError("Training series is empty")
    if horizon is None:
        if test_series is None:
            raise ValueError("A horizon is required when no test series is given")
        horizon = len(test_series)

    logger.info("Training on %d days (%s to %s); horizon=%d",
                len(train_series), train_series.index[0].date(), train_series.index[-1].date(), horizon)
    gaps = missing_days(train_series.index)
    if gaps:
        # The model treats consecutive rows as consecutive days
        logger.warning("Training series is missing %d day(s), first at %s; rows are modeled as consecutive",
                       len(gaps), gaps[0].date())

    # Variance stabilization (fitted on training data only)
    try:
        params = fit_transform_params(
            train_series,
            lower=get_config_value("transform.lambda_grid.lower", -2.0),
            upper=get_config_value("transform.lambda_grid.upper", 2.0),
            step=get_config_value("transform.lambda_grid.step", 0.1),
            refine=get_config_value("transform.refine", False),
        )
    except ValueError as e:
        raise ForecastPipelineError(str(e), stage="variance_stabilizer") from e
    transformed = apply_transform(train_series, params)
    logger.info("Transform: %s", get_transform_description(params))

    # Stationarity
    try:
        stationarity = verify_stationarity(
            transformed,
            alpha=get_config_value("stationarity.alpha", 0.05),
            kpss_level=get_config_value("stationarity.kpss_level", "5%"),
            kpss_regression=get_config_value("stationarity.kpss_regression", "c"),
        )
    except ValueError as e:
        raise ForecastPipelineError(f"{e} (training series of {len(transformed)} days)",
                                    stage="stationarity_verifier") from e
    if not stationarity.is_stationary:
        logger.warning("Proceeding with d=0 although the series is flagged for differencing (suggested d=%d)",
                       stationarity.suggested_d)

    # Order selection and fit
    seasonal_period = get_config_value("model.seasonal_period", None, args, "seasonal_period")
    try:
        p_values = parse_range_arg(getattr(args, "p_range", None), config_key="model.search_space.p_range", args=args)
        q_values = parse_range_arg(getattr(args, "q_range", None), config_key="model.search_space.q_range", args=args)
        selection = select_arma_model(
            transformed,
            p_values=p_values,
            q_values=q_values,
            max_p=get_config_value("model.search_space.max_p", 3),
            max_q=get_config_value("model.search_space.max_q", 3),
            max_acf_lag=get_config_value("model.search_space.max_acf_lag", 40),
            seasonal_period=seasonal_period,
            seasonal_orders=(
                get_config_value("model.seasonal_orders.P", 0),
                get_config_value("model.seasonal_orders.Q", 0),
            ),
            trend=get_config_value("model.trend", "c"),
            max_iter=get_config_value("model.max_iter", 200, args, "max_iter"),
            progress=progress,
        )
    except ValueError as e:
        raise ForecastPipelineError(f"{e} (training series of {len(transformed)} days)",
                                    stage="model_selector") from e
    logger.info("Top models by AIC:\n%s", selection.ranking.head().to_string())
    model = selection.best

    # Residual diagnostics (informational)
    diag = diagnose(
        model,
        significance_level=get_config_value("diagnostics.significance_level", 0.05),
        ljung_box_lags=get_config_value("diagnostics.ljung_box_lags", 10),
        acf_pacf_lags=get_config_value("diagnostics.acf_pacf_lags", 20),
    )

    forecast = forecast_arma(model, horizon)

    error_report = None
    if test_series is not None:
        error_report = score_forecast(forecast, params, test_series)

    decomposition = None
    if get_config_value("decomposition.enabled", False, args, "decompose"):
        try:
            decomposition = decompose_series(
                train_series,
                period=get_config_value("decomposition.period", DAILY_SEASONAL_PERIOD),
                model=get_config_value("decomposition.model", "additive"),
            )
        except ValueError as e:
            logger.warning("Decomposition skipped: %s", e)

    return WorkflowResult(
        train_series=train_series,
        transform_params=params,
        transformed_train=transformed,
        stationarity=stationarity,
        selection=selection,
        diagnostics=diag,
        forecast=forecast,
        test_series=test_series,
        error_report=error_report,
        decomposition=decomposition,
    )


def _export_metrics(result: WorkflowResult, metrics_csv_path: Optional[Path]) -> None:
    """Append one metrics row for a scored run."""
    if metrics_csv_path is None or result.error_report is None:
        return
    rep = result.error_report
    row = {
        "train_start": result.train_series.index[0].date(),
        "train_end": result.train_series.index[-1].date(),
        "test_start": result.test_series.index[0].date(),
        "test_end": result.test_series.index[-1].date(),
        "model": str(result.model.order),
        "lambda": result.transform_params.lam,
        "shift": result.transform_params.shift,
        "horizon": result.forecast.horizon,
        "MAE": rep.mae,
        "MSE": rep.mse,
        "RMSE": rep.rmse,
        "MAPE": rep.mape,
        "zero_actuals": rep.zero_actuals,
        "hash_forecast": result.forecast.fingerprint,
    }
    append_metrics_csv_row(metrics_csv_path, row, METRICS_HEADER)


def setup_cli_parser() -> argparse.ArgumentParser:
    """
    Set up the command-line argument parser.

    Options left unset fall back to the configuration file, then to the
    built-in defaults.

    Returns
    -------
    argparse.ArgumentParser
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        description="ARMA forecasting of daily average flight delays with Box-Cox variance stabilization."
    )

    # Data and output arguments
    parser.add_argument(
        "--train-csv", type=str, nargs="+", required=True,
        help="One or more CSV partitions of raw per-flight observations used for training."
    )
    parser.add_argument(
        "--test-csv", type=str, nargs="+", default=None,
        help="CSV partition(s) of the held-out period. When given, the forecast is scored against it."
    )
    parser.add_argument(
        "--horizon", type=int, default=None,
        help="Forecast horizon in days. Defaults to the length of the test series."
    )
    parser.add_argument(
        "--date-column", type=str, default=None,
        help="Name of the date column in the CSVs. Uses config default if not specified."
    )
    parser.add_argument(
        "--value-column", type=str, default=None,
        help="Name of the delay column in the CSVs. Uses config default if not specified."
    )
    parser.add_argument(
        "--config", type=str, default=None,
        help="Path to a YAML configuration file (default: config/forecaster.yaml)."
    )
    parser.add_argument(
        "--metrics-csv", type=str, default=None,
        help="If provided, append a metrics row to this CSV (resolved relative to the working directory)."
    )
    parser.add_argument(
        "--report-json", type=str, default=None,
        help="If provided, write a JSON report of the run to this path."
    )
    parser.add_argument(
        "--log-level", type=str, default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging verbosity level."
    )

    # Grid search controls
    parser.add_argument(
        "--p-range", type=str, default=None,
        help="Range or list for AR order p (e.g., '0-3' or '0,1,2'). Defaults to the PACF cutoff bound."
    )
    parser.add_argument(
        "--q-range", type=str, default=None,
        help="Range or list for MA order q. Defaults to the ACF cutoff bound."
    )
    parser.add_argument(
        "--seasonal-period", type=int, default=None,
        help="Seasonal period (365 for yearly seasonality of daily data). Non-seasonal if unset."
    )
    parser.add_argument(
        "--max-iter", type=int, default=None,
        help="Iteration budget of the likelihood optimizer per candidate."
    )
    parser.add_argument(
        "--decompose", action="store_true", default=None,
        help="Also decompose the training series into trend, seasonal and residual parts."
    )
    parser.add_argument(
        "--no-progress", action="store_true", default=False,
        help="Hide the grid-search progress bar."
    )

    return parser


def setup_logging(log_level: str) -> None:
    """
    Configure logging with specified level and warning filters.

    Parameters
    ----------
    log_level : str
        Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    level = validate_log_level(log_level)
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
        datefmt="%H:%M:%S",
    )

    # Configure warnings based on log level
    if level == "DEBUG":
        warnings.resetwarnings()
        warnings.filterwarnings("default")
    else:
        from statsmodels.tools.sm_exceptions import ConvergenceWarning
        warnings.filterwarnings("ignore", category=ConvergenceWarning)
        warnings.filterwarnings("ignore", category=FutureWarning)
        warnings.filterwarnings("ignore", category=UserWarning, module="statsmodels")


def _load_series(paths: Sequence[str], args: argparse.Namespace, base_dir: Path) -> pd.Series:
    date_column = get_config_value("data.date_column", "date", args, "date_column")
    value_column = get_config_value("data.value_column", "delay", args, "value_column")
    resolved: List[Path] = [resolve_path(p, base_dir) for p in paths]
    try:
        return load_daily_series_csv(resolved, date_column=date_column, value_column=value_column)
    except (FileNotFoundError, ValueError) as e:
        raise ForecastPipelineError(str(e), stage="series_builder") from e


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main entry point for the delay forecasting application.

    Returns
    -------
    int
        0 on success, 1 when a pipeline stage fails. Invalid usage exits
        with status 2 through argparse.
    """
    parser = setup_cli_parser()
    args = parser.parse_args(argv)
    if args.test_csv is None and args.horizon is None:
        parser.error("--horizon is required when --test-csv is not given")
    if args.horizon is not None and args.horizon < 1:
        parser.error("--horizon must be a positive integer")

    setup_logging(args.log_level)

    try:
        initialize_config(args.config)
    except ConfigurationError as e:
        logger.error("Configuration error: %s", e)
        return 1

    base_dir = Path.cwd()
    try:
        train = _load_series(args.train_csv, args, base_dir)
        test = _load_series(args.test_csv, args, base_dir) if args.test_csv else None
        result = run_delay_workflow(train, test, horizon=args.horizon, args=args, progress=not args.no_progress)
    except ForecastPipelineError as e:
        logger.error("Stage '%s' failed: %s", e.stage, e)
        return 1
    except ValueError as e:
        logger.error("Pipeline failed: %s", e)
        return 1

    print(f"Model: {result.model.order}  AIC={result.model.aic:.3f}  {get_transform_description(result.transform_params)}")
    print(f"Forecast: {result.forecast.horizon} days from {result.forecast.start_date.date()} "
          f"(hash={result.forecast.fingerprint})")
    if result.error_report is not None:
        print(result.error_report)

    if args.metrics_csv:
        _export_metrics(result, resolve_path(args.metrics_csv, base_dir))
    if args.report_json:
        write_json_report(resolve_path(args.report_json, base_dir), result.to_report())

    logger.info("Delay forecasting workflow completed successfully")
    return 0


def cli() -> None:
    """Console-script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    sys.exit(main())
