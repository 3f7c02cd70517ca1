# delay_forecaster_src/exceptions.py

"""
Domain-specific exceptions for the delay forecasting pipeline.

Every exception carries the name of the pipeline stage that raised it so the
command-line entry point can report which stage failed and on what input.
All exceptions inherit from ForecastPipelineError for easy catching.
"""

from typing import Optional, Tuple


class ForecastPipelineError(Exception):
    """Base exception for all forecasting pipeline errors."""

    stage = "pipeline"

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        if stage is not None:
            self.stage = stage


class EmptySeriesError(ForecastPipelineError):
    """Raised when no valid observation remains after filtering.

    This exception is raised when:
    - every observation for every date is missing or non-numeric
    - an input mapping or frame is empty
    """

    stage = "series_builder"


class InvalidDomainError(ForecastPipelineError):
    """Raised when the power transform meets a value outside its domain.

    For a value v and shift s the transform needs ``v - s + 1 > 0``; the
    inverse needs ``v * lambda + 1 > 0`` when lambda is non-zero.
    """

    stage = "variance_stabilizer"


class NonConvergenceError(ForecastPipelineError):
    """Raised when likelihood optimization does not converge within budget.

    Recoverable during order selection (the next-best AIC candidate is
    used); fatal only when no candidate of the grid converges.
    """

    stage = "model_fitter"

    def __init__(self, message: str, order: Optional[Tuple[int, ...]] = None, stage: Optional[str] = None):
        super().__init__(message, stage=stage)
        self.order = order


class LengthMismatchError(ForecastPipelineError):
    """Raised when a forecast and its ground truth cannot be aligned.

    This exception is raised when:
    - the forecast horizon differs from the ground-truth length
    - the forecast dates are not all present in the ground truth
    """

    stage = "scorer"
