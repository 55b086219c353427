# stdlib
from typing import List, Optional
# thirdpartylib
import numpy as np
# projectlib
from smart_meter_forecasting.config.env import DEFAULT_TRAIN_WINDOW_DAYS
from smart_meter_forecasting.data.entities import (
    ForecastResult,
    LoadSeries,
    TrainingWindow,
)
from smart_meter_forecasting.data.schemas import Weekday, MID_WEEK
from smart_meter_forecasting.models.base import (
    SeriesForecaster,
    Strategy,
    WeekForecaster,
    strategy_name,
)
from smart_meter_forecasting.models.errors import (
    EmptyBucket,
    ForecastingError,
    InsufficientData,
)
from smart_meter_forecasting.utils.logging import Logger
from smart_meter_forecasting.utils.typing import FloatArray, Verbosity

# Weekdays forecast from all of their own history
SINGLE_DAYS = (Weekday.FRIDAY, Weekday.SATURDAY, Weekday.SUNDAY)


def _call(
        forecast_fn: SeriesForecaster, 
        y: FloatArray, 
        period: int, 
        label: str
    ) -> FloatArray:
    """Run one strategy call and check it honours the output contract."""
    out = np.asarray(forecast_fn(np.array(y, copy=True), period), dtype=float)
    out = out.reshape(-1)
    if out.size != period:
        raise ForecastingError(
            f"{strategy_name(forecast_fn)} returned {out.size} values for "
            f"{label}, expected {period}."
        )
    return out

def mid_week_windows(
        flat: FloatArray, 
        period: int, 
        train_window_days: int
    ) -> List[FloatArray]:
    """
    Trailing training windows of the Tuesday-Thursday sequence.

    Tuesday, Wednesday and Thursday each get a window of
    ``train_window_days * period`` values ending ``2``, ``1`` and ``0``
    days before the end of ``flat`` respectively.

    Raises
    ------
    InsufficientData
        If a window would start before the beginning of ``flat``.
    """
    length = train_window_days * period
    windows = []
    for lag in (2, 1, 0):
        end = flat.size - lag * period
        start = end - length
        if start < 0:
            raise InsufficientData(
                f"Mid-week window of {train_window_days} days lagged by "
                f"{lag} day(s) needs {length + lag * period} values, the "
                f"Tuesday-Thursday history holds {flat.size}."
            )
        windows.append(flat[start:end])
    return windows

def predict_week(
        series: LoadSeries,
        window: TrainingWindow,
        forecast_fn: SeriesForecaster,
        *,
        train_window_days: int = DEFAULT_TRAIN_WINDOW_DAYS,
        logger: Optional[Logger] = None,
    ) -> ForecastResult:
    """
    Similar-day forecast of one week.

    Days of ``window`` are grouped by weekday and ``forecast_fn`` is
    applied per group:

    - Monday, Friday, Saturday and Sunday: one call on all of that
      weekday's history, concatenated in date order.
    - Tuesday, Wednesday and Thursday share one concatenated history;
      each is forecast from a trailing window of ``train_window_days``
      days of it (see :func:`mid_week_windows`).

    Parameters
    ----------
    series : LoadSeries
        Aligned series; only days inside ``window`` are used.
    window : TrainingWindow
        Training dates.
    forecast_fn : SeriesForecaster
        Single-series strategy returning ``period`` values.
    train_window_days : int, default 6
        Length of the mid-week trailing windows in days.
    logger : Logger, optional
        Progress logger.

    Returns
    -------
    ForecastResult
        ``7 * period`` values, Monday..Sunday.

    Raises
    ------
    EmptyBucket
        If a weekday has no observations in ``window``.
    InsufficientData
        If the mid-week history is too short for its trailing windows.
    """
    if train_window_days < 1:
        raise ValueError("train_window_days must be at least 1.")
    logger = logger or Logger(name="similar_day")
    data = series.select(window)
    if data.n_days == 0:
        raise EmptyBucket(
            f"Series {series.series_id!r} has no observations between "
            f"{window.start} and {window.end}."
        )
    period = data.period
    # Every weekday must be present before any model is fitted
    buckets = {day: data.bucket(day) for day in Weekday}
    for day, bucket in buckets.items():
        logger(
            f"{day.name.title()}: {bucket.n_days} day(s) of history", 
            verbosity=2
        )

    forecasts: List[FloatArray] = [
        _call(forecast_fn, buckets[Weekday.MONDAY].flat, period, "Monday")
    ]
    mid_week = data.bucket(*MID_WEEK).flat
    for day, y in zip(
            MID_WEEK, mid_week_windows(mid_week, period, train_window_days)
        ):
        forecasts.append(_call(forecast_fn, y, period, day.name.title()))
    for day in SINGLE_DAYS:
        forecasts.append(
            _call(forecast_fn, buckets[day].flat, period, day.name.title())
        )
    logger(
        f"Forecast week after {window.end} for {series.series_id!r} with "
        f"{strategy_name(forecast_fn)}",
        verbosity=1,
    )
    return ForecastResult(
        series_id=series.series_id,
        period=period,
        values=np.concatenate(forecasts),
        strategy=strategy_name(forecast_fn),
    )

def forecast_week(
        series: LoadSeries,
        window: TrainingWindow,
        strategy: Strategy,
        *,
        train_window_days: int = DEFAULT_TRAIN_WINDOW_DAYS,
        verbose: Verbosity = 0,
        logger: Optional[Logger] = None,
    ) -> ForecastResult:
    """
    Forecast the week following ``window`` with ``strategy``.

    Week forecasters (e.g.
    :class:`~smart_meter_forecasting.models.regression.SeasonalDummyRegression`)
    receive the whole training window; single-series forecasters are
    run per weekday bucket by :func:`predict_week`.
    """
    logger = logger or Logger(verbose, name="forecast_week")
    if isinstance(strategy, WeekForecaster):
        data = series.select(window)
        values = strategy.forecast_week(data)
        logger(
            f"Forecast week after {window.end} for {series.series_id!r} "
            f"with {strategy_name(strategy)}",
            verbosity=1,
        )
        return ForecastResult(
            series_id=series.series_id,
            period=series.period,
            values=values,
            strategy=strategy_name(strategy),
        )
    return predict_week(
        series,
        window,
        strategy,
        train_window_days=train_window_days,
        logger=logger,
    )
