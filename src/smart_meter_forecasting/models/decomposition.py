# stdlib
import warnings
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence, Tuple, cast
# thirdpartylib
import numpy as np
from statsmodels.tsa.seasonal import ( # pyright: ignore[reportMissingTypeStubs]
    STL,
    DecomposeResult,
)
from statsmodels.tsa.arima.model import ( # pyright: ignore
    ARIMA
)
from statsmodels.tsa.exponential_smoothing.ets import ( # pyright: ignore
    ETSModel
)
# projectlib
from smart_meter_forecasting.models.errors import (
    DecompositionError,
    ForecastingError,
    InsufficientData,
)
from smart_meter_forecasting.utils.logging import Logger
from smart_meter_forecasting.utils.typing import (
    ArimaOrder,
    ArrayLike1D,
    ErrorKind,
    FloatArray,
    TrendKind,
    Verbosity,
)

# auto.arima-style search space, kept small so per-bucket fits stay fast
DEFAULT_ARIMA_ORDERS: Tuple[ArimaOrder, ...] = tuple(
    (p, d, q) for d in (0, 1) for p in (0, 1, 2) for q in (0, 1, 2)
)
DEFAULT_ETS_ERRORS: Tuple[ErrorKind, ...] = ("add", "mul")
DEFAULT_ETS_TRENDS: Tuple[TrendKind, ...] = ("none", "add", "add_damped")


def validate_periodic(y: ArrayLike1D, period: int) -> FloatArray:
    """
    Check that ``y`` can be decomposed with seasonal period ``period``.

    Raises
    ------
    InsufficientData
        If the length of ``y`` is not a multiple of ``period``.
    DecompositionError
        If ``y`` is shorter than two periods, holds non-finite values,
        or is constant.
    """
    if period < 2:
        raise DecompositionError(f"Seasonal period must be >= 2, got {period}.")
    values = np.asarray(y, dtype=float).reshape(-1)
    if values.size < 2 * period:
        raise DecompositionError(
            f"Decomposition needs at least {2 * period} values "
            f"(two periods), got {values.size}."
        )
    if values.size % period:
        raise InsufficientData(
            f"Length {values.size} is not a multiple of period {period}."
        )
    if not np.all(np.isfinite(values)):
        raise DecompositionError("Input holds missing or infinite values.")
    if np.allclose(values, values[0]):
        raise DecompositionError(
            "Input is constant; its seasonal decomposition is degenerate."
        )
    return values

def stl_decompose(
        y: ArrayLike1D, 
        period: int, 
        *, 
        robust: bool = True
    ) -> DecomposeResult:
    """
    Robust STL decomposition of a periodic series.

    Parameters
    ----------
    y : array-like
        Series whose length is a multiple of ``period``.
    period : int
        Seasonal period.
    robust : bool, default True
        Use iteratively reweighted fits that down-weight outliers.

    Returns
    -------
    statsmodels.tsa.seasonal.DecomposeResult
        Seasonal, trend and remainder components.
    """
    values = validate_periodic(y, period)
    try:
        return STL(values, period=period, robust=robust).fit()
    except (ValueError, np.linalg.LinAlgError) as e:
        raise DecompositionError(f"STL decomposition failed: {e}") from e


class DecompositionForecaster(ABC):
    """
    Forecast a periodic series by decomposition.

    The series is split with robust STL. The seasonally adjusted part
    (trend plus remainder) is forecast ``period`` steps ahead by
    :meth:`forecast_adjusted`, and the last full period of the seasonal
    component is added back (seasonal naive extrapolation).

    Subclasses implement :meth:`forecast_adjusted`.
    """
    name = "stl"

    def __init__(
            self, 
            *, 
            robust: bool = True, 
            verbose: Verbosity = 0,
            logger: Optional[Logger] = None
        ) -> None:
        self.robust = robust
        self.logger = logger or Logger(verbose, name=self.name)

    def __call__(self, y: FloatArray, period: int) -> FloatArray:
        decomposition = stl_decompose(y, period, robust=self.robust)
        seasonal = np.asarray(decomposition.seasonal, dtype=float)
        adjusted = np.asarray(y, dtype=float).reshape(-1) - seasonal
        forecast = self.forecast_adjusted(adjusted, period)
        if forecast.shape != (period,) or not np.all(np.isfinite(forecast)):
            raise ForecastingError(
                f"{self.name} produced an invalid forecast of shape "
                f"{forecast.shape}."
            )
        return forecast + seasonal[-period:]

    @abstractmethod
    def forecast_adjusted(self, adjusted: FloatArray, steps: int) -> FloatArray:
        """Forecast ``steps`` values of the seasonally adjusted series."""

    def _fit_quietly(self, model: Any, **kwargs: Any) -> Any:
        """Fit a statsmodels model, logging instead of emitting warnings."""
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            result = model.fit(**kwargs)
        for w in caught:
            self.logger(f"{w.category.__name__}: {w.message}", verbosity=2)
        return result


class STLArimaForecaster(DecompositionForecaster):
    """
    STL decomposition followed by an ARIMA model on the seasonally
    adjusted series.

    The ARIMA order is the one with the lowest AIC among ``orders``;
    ties keep the earliest order, so selection is deterministic. A
    constant is fitted for undifferenced orders.
    """
    name = "stl_arima"

    def __init__(
            self,
            orders: Sequence[ArimaOrder] = DEFAULT_ARIMA_ORDERS,
            *,
            robust: bool = True,
            verbose: Verbosity = 0,
            logger: Optional[Logger] = None,
        ) -> None:
        super().__init__(robust=robust, verbose=verbose, logger=logger)
        if not orders:
            raise ValueError("At least one ARIMA order is required.")
        self.orders = tuple(orders)

    def forecast_adjusted(self, adjusted: FloatArray, steps: int) -> FloatArray:
        best: Optional[Tuple[float, ArimaOrder, Any]] = None
        failures: List[str] = []
        for order in self.orders:
            trend = "c" if order[1] == 0 else "n"
            try:
                result = self._fit_quietly(
                    ARIMA(adjusted, order=order, trend=trend)
                )
            except (ValueError, np.linalg.LinAlgError) as e:
                failures.append(f"{order}: {e}")
                continue
            aic = float(result.aic)
            if np.isfinite(aic) and (best is None or aic < best[0]):
                best = (aic, order, result)
        if best is None:
            raise ForecastingError(
                "No ARIMA order could be fitted: " + "; ".join(failures)
            )
        aic, order, result = best
        self.logger(f"Selected ARIMA{order} (AIC={aic:.2f})", verbosity=2)
        return np.asarray(result.forecast(steps=steps), dtype=float)


class STLETSForecaster(DecompositionForecaster):
    """
    STL decomposition followed by an exponential smoothing model on the
    seasonally adjusted series.

    Candidate models combine every error form in ``errors`` with every
    trend form in ``trends`` and no seasonal component; the lowest AIC
    wins. Multiplicative errors are only tried on strictly positive
    data.
    """
    name = "stl_ets"

    def __init__(
            self,
            errors: Sequence[ErrorKind] = DEFAULT_ETS_ERRORS,
            trends: Sequence[TrendKind] = DEFAULT_ETS_TRENDS,
            *,
            robust: bool = True,
            verbose: Verbosity = 0,
            logger: Optional[Logger] = None,
        ) -> None:
        super().__init__(robust=robust, verbose=verbose, logger=logger)
        if not errors or not trends:
            raise ValueError("At least one error and one trend form are required.")
        self.errors = tuple(errors)
        self.trends = tuple(trends)

    def candidates(self, adjusted: FloatArray) -> List[Tuple[ErrorKind, TrendKind]]:
        positive = bool(np.all(adjusted > 0))
        return [
            (error, trend)
            for error in self.errors
            for trend in self.trends
            if error == "add" or positive
        ]

    def forecast_adjusted(self, adjusted: FloatArray, steps: int) -> FloatArray:
        best: Optional[Tuple[float, Tuple[ErrorKind, TrendKind], Any]] = None
        failures: List[str] = []
        for error, trend in self.candidates(adjusted):
            try:
                model = ETSModel(
                    adjusted,
                    error=error,
                    trend=None if trend == "none" else "add",
                    damped_trend=trend == "add_damped",
                    seasonal=None,
                )
                result = self._fit_quietly(model, disp=False)
            except (ValueError, np.linalg.LinAlgError) as e:
                failures.append(f"ETS({error}, {trend}): {e}")
                continue
            aic = float(result.aic)
            if np.isfinite(aic) and (best is None or aic < best[0]):
                best = (aic, (error, trend), result)
        if best is None:
            raise ForecastingError(
                "No exponential smoothing model could be fitted: "
                + "; ".join(failures)
            )
        aic, (error, trend), result = best
        self.logger(
            f"Selected ETS(error={error}, trend={trend}, seasonal=none) "
            f"(AIC={aic:.2f})",
            verbosity=2,
        )
        return np.asarray(cast(Any, result).forecast(steps), dtype=float)
