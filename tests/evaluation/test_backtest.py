from __future__ import annotations

from datetime import timedelta

import numpy as np
import pytest

from smart_meter_forecasting.evaluation.backtest import (
    RESULT_COLUMNS,
    actual_week,
    backtest,
    summarize,
    week_starts,
)
from smart_meter_forecasting.models.errors import InsufficientData
from smart_meter_forecasting.models.regression import SeasonalDummyRegression

PERIOD = 4


def test_week_starts_follow_the_training_span(make_series, monday) -> None:
    series = make_series(56, period=PERIOD)

    starts = week_starts(series, train_days=28)

    assert starts == [monday + timedelta(days=d) for d in (28, 35, 42, 49)]
    assert week_starts(series, train_days=28, test_weeks=2) == starts[-2:]
    assert week_starts(series, train_days=28, test_weeks=0) == []


def test_actual_week_is_reordered_monday_first(make_series, monday) -> None:
    series = make_series(14, period=PERIOD)

    actual = actual_week(series, monday + timedelta(days=2))

    assert np.array_equal(actual[:PERIOD], 110.0 + np.arange(1, PERIOD + 1))
    assert actual.size == 7 * PERIOD


def test_actual_week_needs_seven_days(make_series, monday) -> None:
    series = make_series(10, period=PERIOD)

    with pytest.raises(InsufficientData):
        actual_week(series, monday + timedelta(days=5))


def test_backtest_scores_every_week_and_strategy(make_series, mean_forecast) -> None:
    series = make_series(49, period=PERIOD)
    strategies = {"regression": SeasonalDummyRegression(), "mean": mean_forecast}

    results = backtest(series, strategies, train_days=28)

    assert list(results.columns) == RESULT_COLUMNS
    assert len(results) == 3 * 2
    regression = results[results["strategy"] == "regression"]
    assert np.allclose(regression["mape"], 0.0, atol=1e-8)
    assert results["error"].isna().all()


def test_failing_strategy_is_recorded_without_stopping(
    make_series, mean_forecast, capsys
) -> None:
    series = make_series(35, period=PERIOD)
    strategies = {"mean": mean_forecast, "regression": SeasonalDummyRegression()}

    results = backtest(series, strategies, train_days=14, train_window_days=6)

    failed = results[results["strategy"] == "mean"]
    assert failed["mape"].isna().all()
    assert failed["error"].str.startswith("InsufficientData").all()
    assert results[results["strategy"] == "regression"]["mape"].notna().all()
    assert "mean failed" in capsys.readouterr().out


def test_summarize_ranks_strategies_by_mean_mape(make_series, mean_forecast) -> None:
    series = make_series(42, period=PERIOD)
    results = backtest(
        series,
        {"mean": mean_forecast, "regression": SeasonalDummyRegression()},
        train_days=28,
    )

    summary = summarize(results)

    assert summary.index[0] == "regression"
    assert summary.loc["mean", "count"] == 2


def test_week_with_a_missing_day_is_recorded_without_stopping(
    make_series, mean_forecast, monday
) -> None:
    dates = [monday + timedelta(days=d) for d in range(49) if d != 45]
    series = make_series(len(dates), period=PERIOD, dates=dates)
    strategies = {"regression": SeasonalDummyRegression(), "mean": mean_forecast}

    results = backtest(series, strategies, train_days=28)

    assert len(results) == 3 * 2
    last = results["week_start"] == monday + timedelta(days=42)
    assert results.loc[last, "mape"].isna().all()
    assert results.loc[last, "error"].str.startswith("InsufficientData").all()
    earlier = results[~last]
    assert earlier["mape"].notna().all()
    assert earlier["error"].isna().all()
