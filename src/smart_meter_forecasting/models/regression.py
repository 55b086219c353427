# stdlib
from typing import List, Optional
# thirdpartylib
import numpy as np
from sklearn.linear_model import LinearRegression
# projectlib
from smart_meter_forecasting.data.entities import LoadSeries
from smart_meter_forecasting.data.schemas import WEEKDAY_ORDER
from smart_meter_forecasting.evaluation.metrics import strict_r2
from smart_meter_forecasting.models.errors import (
    InsufficientData,
    SingularMatrixError,
)
from smart_meter_forecasting.preprocessing.design import (
    build_design_matrix,
    week_codes,
)
from smart_meter_forecasting.utils.logging import Logger
from smart_meter_forecasting.utils.typing import FloatArray, Verbosity


class SeasonalDummyRegression(object):
    """
    Double-seasonal linear regression on slot and weekday indicators.

    The load of every observation is regressed without intercept on
    one-hot slot indicators, weekday indicators and their full
    interaction (see
    :func:`~smart_meter_forecasting.preprocessing.design.build_design_matrix`).
    The interaction lets weekdays change the shape of the daily
    profile, not only its level. Because the indicators repeat every
    week, the forecast of the next week is the fitted profile of one
    Monday..Sunday week.

    Attributes
    ----------
    coef_ : numpy.ndarray or None
        Least-squares coefficients, one per design column.
    columns_ : list[str]
        Names of the design columns.
    r2_ : float
        In-sample coefficient of determination of the last fit.
    """
    name = "seasonal_dummy_regression"

    def __init__(
            self, 
            *, 
            verbose: Verbosity = 0, 
            logger: Optional[Logger] = None
        ) -> None:
        self.logger = logger or Logger(verbose, name=self.name)
        self.model: Optional[LinearRegression] = None
        self.period: Optional[int] = None
        self.coef_: Optional[FloatArray] = None
        self.columns_: List[str] = []
        self.r2_ = float("nan")

    def fit(self, series: LoadSeries) -> "SeasonalDummyRegression":
        """
        Fit the regression on a training window of whole weeks.

        Raises
        ------
        InsufficientData
            If the series is empty or not a whole number of weeks.
        SingularMatrixError
            If some (slot, weekday) cell is never observed, e.g. a
            weekday is absent from the window.
        """
        period = series.period
        n_days = series.n_days
        if n_days == 0 or n_days % len(WEEKDAY_ORDER):
            raise InsufficientData(
                f"Regression needs whole weeks of {7 * period} values, "
                f"got {n_days * period} values ({n_days} days)."
            )
        slots = np.tile(np.arange(1, period + 1), n_days)
        weekdays = np.repeat([int(w) for w in series.weekdays], period)
        X, names = build_design_matrix(slots, weekdays, period)
        rank = int(np.linalg.matrix_rank(X))
        if rank < X.shape[1]:
            raise SingularMatrixError(
                f"Design matrix has rank {rank} for {X.shape[1]} columns; "
                "every weekday and slot must be observed."
            )
        y = series.flat
        model = LinearRegression(fit_intercept=False)
        model.fit(X, y)
        self.model = model
        self.period = period
        self.coef_ = np.asarray(model.coef_, dtype=float)
        self.columns_ = names
        self.r2_ = strict_r2(y, model.predict(X))
        self.logger(
            f"Fitted {len(names)} coefficients on {n_days // 7} week(s) "
            f"of {series.series_id!r} (R2={self.r2_:.4f})",
            verbosity=1,
        )
        return self

    def predict(self) -> FloatArray:
        """Fitted profile of one week, Monday..Sunday in slot order."""
        if self.model is None or self.period is None:
            raise RuntimeError("Call fit() before predict().")
        slots, weekdays = week_codes(self.period)
        X, _ = build_design_matrix(slots, weekdays, self.period)
        return np.asarray(self.model.predict(X), dtype=float)

    def forecast_week(self, series: LoadSeries) -> FloatArray:
        """Fit on ``series`` and return the next week's ``7 * period``
        values."""
        return self.fit(series).predict()
