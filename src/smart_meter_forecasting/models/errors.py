# thirdpartylib
import numpy as np

class ForecastingError(Exception):
    """Base class for every failure raised by the forecasting core."""

class InsufficientData(ForecastingError, ValueError):
    """A training window or bucket is shorter than a strategy requires."""

class EmptyBucket(ForecastingError, ValueError):
    """A required weekday has no observations in the training window."""

class DecompositionError(ForecastingError):
    """Seasonal decomposition is undefined for the given input."""

class SingularMatrixError(ForecastingError, np.linalg.LinAlgError):
    """A regression design matrix is rank-deficient."""

class DivisionUndefined(ForecastingError, ZeroDivisionError):
    """A percentage error was requested against a zero actual value."""
