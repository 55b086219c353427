# stdlib
from datetime import date, timedelta
from typing import Any, Dict, List, Mapping, Optional
# thirdpartylib
import numpy as np
import pandas as pd
from tqdm.auto import tqdm
# projectlib
from smart_meter_forecasting.config.env import DEFAULT_TRAIN_WINDOW_DAYS
from smart_meter_forecasting.data.entities import LoadSeries, TrainingWindow
from smart_meter_forecasting.data.schemas import Weekday
from smart_meter_forecasting.evaluation.metrics import mape
from smart_meter_forecasting.models.base import Strategy
from smart_meter_forecasting.models.errors import (
    ForecastingError,
    InsufficientData,
)
from smart_meter_forecasting.models.similar_day import forecast_week
from smart_meter_forecasting.utils.logging import Logger
from smart_meter_forecasting.utils.typing import FloatArray, Verbosity

# Result table columns
RESULT_COLUMNS = ["week_start", "strategy", "mape", "error"]


def actual_week(series: LoadSeries, start: date) -> FloatArray:
    """
    Actual values of the 7 days starting on ``start``, reordered
    Monday..Sunday to pair with a forecast.

    Raises
    ------
    InsufficientData
        If any of the 7 days is missing from ``series``.
    """
    window = TrainingWindow(start, start + timedelta(days=6))
    week = series.select(window)
    if week.n_days != 7:
        raise InsufficientData(
            f"Only {week.n_days} of the 7 days starting {start} are "
            f"present in series {series.series_id!r}."
        )
    rows = [week.bucket(day).values[0] for day in Weekday]
    return np.concatenate(rows)

def week_starts(
        series: LoadSeries, 
        train_days: int, 
        test_weeks: Optional[int] = None
    ) -> List[date]:
    """
    First dates of the test weeks of a rolling-origin backtest.

    Test weeks follow each other without overlap, starting right after
    the first ``train_days`` days. When ``test_weeks`` is given, only
    the most recent ``test_weeks`` are kept.
    """
    if series.n_days == 0:
        return []
    first, last = series.dates[0], series.dates[-1]
    start = first + timedelta(days=train_days)
    starts: List[date] = []
    while start + timedelta(days=6) <= last:
        starts.append(start)
        start += timedelta(days=7)
    if test_weeks is not None:
        starts = starts[-test_weeks:] if test_weeks > 0 else []
    return starts

def backtest(
        series: LoadSeries,
        strategies: Mapping[str, Strategy],
        *,
        train_days: int = 28,
        test_weeks: Optional[int] = None,
        train_window_days: int = DEFAULT_TRAIN_WINDOW_DAYS,
        verbose: Verbosity = 0,
        progress: bool = False,
    ) -> pd.DataFrame:
    """
    Evaluate strategies on consecutive test weeks of one series.

    For every test week the training window is the ``train_days`` days
    just before it. Each strategy forecasts the week through
    :func:`~smart_meter_forecasting.models.similar_day.forecast_week`
    and is scored with MAPE against the actual week.

    A strategy failing on one week with a
    :class:`~smart_meter_forecasting.models.errors.ForecastingError`
    yields a row with ``NaN`` MAPE and the error message; the remaining
    weeks and strategies still run.
    A test week with missing days cannot be scored and yields such a row
    for every strategy.

    Parameters
    ----------
    series : LoadSeries
        Aligned series holding training and test days.
    strategies : Mapping[str, Strategy]
        Strategies to compare, keyed by the label used in the result.
    train_days : int, default 28
        Length of every training window in days.
    test_weeks : int, optional
        Number of most recent test weeks to evaluate. All by default.
    train_window_days : int, default 6
        Mid-week trailing window length passed to the orchestrator.
    verbose : Verbosity, default 0
        Logger verbosity.
    progress : bool, default False
        Show a progress bar over test weeks.

    Returns
    -------
    pandas.DataFrame
        Columns ``week_start``, ``strategy``, ``mape`` and ``error``;
        one row per (test week, strategy).
    """
    logger = Logger(verbose, name="backtest")
    starts = week_starts(series, train_days, test_weeks)
    logger(
        f"Backtesting {len(strategies)} strategy(ies) on {len(starts)} "
        f"week(s) of {series.series_id!r}",
        verbosity=1,
    )
    rows: List[Dict[str, Any]] = []
    for start in tqdm(starts, desc="weeks", disable=not progress):
        window = TrainingWindow.ending_before(start, train_days)
        try:
            actual: Optional[FloatArray] = actual_week(series, start)
            missing = None
        except InsufficientData as e:
            logger(f"Cannot score week {start}: {e}", verbosity=0)
            actual, missing = None, f"{type(e).__name__}: {e}"
        for label, strategy in strategies.items():
            row: Dict[str, Any] = {
                "week_start": start, 
                "strategy": label, 
                "mape": np.nan, 
                "error": missing,
            }
            if actual is None:
                rows.append(row)
                continue
            try:
                result = forecast_week(
                    series,
                    window,
                    strategy,
                    train_window_days=train_window_days,
                    logger=logger.child(label),
                )
                row["mape"] = mape(actual, result.values)
            except ForecastingError as e:
                logger(f"{label} failed for week {start}: {e}", verbosity=0)
                row["error"] = f"{type(e).__name__}: {e}"
            rows.append(row)

    return pd.DataFrame(rows, columns=RESULT_COLUMNS)

def summarize(results: pd.DataFrame) -> pd.DataFrame:
    """Mean, median and count of successful MAPE scores per strategy."""
    return (
        results
        .dropna(subset=["mape"])
        .groupby("strategy")["mape"]
        .agg(["mean", "median", "count"])
        .sort_values("mean")
    )
