#!/usr/bin/env python3
"""
ARMA forecasting of daily average flight delays.

Usage
-----
    python forecaster_ARIMA.py --help
    python forecaster_ARIMA.py --train-csv data/2013.csv data/2014.csv data/2015.csv --test-csv data/2016.csv

The pipeline lives in delay_forecaster_src/:
- data_utils.py: Daily series construction
- transform_utils.py: Box-Cox variance stabilization
- stationarity_utils.py: ADF / KPSS checks
- forecasting_utils.py: Order selection, ARMA fit and forecast
- metrics_utils.py: Forecast scoring
- main.py: Main entry point
"""

import sys

from delay_forecaster_src.main import main

if __name__ == "__main__":
    sys.exit(main())
