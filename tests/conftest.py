from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Callable, Optional, Sequence

import numpy as np
import polars as pl
import pytest

from smart_meter_forecasting.data.entities import LoadSeries

# 2024-01-01 is a Monday
MONDAY = date(2024, 1, 1)

DayFn = Callable[[int, int, int], float]


def additive_pattern(weekday: int, slot: int, day_index: int) -> float:
    return 100.0 + 10.0 * weekday + 1.0 * slot


@pytest.fixture()
def monday() -> date:
    return MONDAY


@pytest.fixture()
def make_series() -> Callable[..., LoadSeries]:
    """Factory for aligned series built from ``fn(weekday, slot, day)``."""

    def _make(
        n_days: int,
        period: int = 8,
        *,
        start: date = MONDAY,
        fn: DayFn = additive_pattern,
        series_id: str = "meter-1",
        noise: float = 0.0,
        seed: int = 0,
        dates: Optional[Sequence[date]] = None,
    ) -> LoadSeries:
        if dates is None:
            dates = [start + timedelta(days=i) for i in range(n_days)]
        values = np.array(
            [
                [fn(d.isoweekday(), s, i) for s in range(1, period + 1)]
                for i, d in enumerate(dates)
            ],
            dtype=float,
        )
        if noise:
            rng = np.random.default_rng(seed)
            values = values + rng.normal(0.0, noise, size=values.shape)
        return LoadSeries(series_id, tuple(dates), values)

    return _make


@pytest.fixture()
def make_readings() -> Callable[..., pl.DataFrame]:
    """Factory for raw long-format readings on a ``period``-slot grid."""

    def _make(
        n_days: int,
        period: int = 4,
        *,
        start: date = MONDAY,
        series_ids: Sequence[str] = ("meter-1",),
        fn: DayFn = additive_pattern,
    ) -> pl.DataFrame:
        step = timedelta(minutes=24 * 60 // period)
        origin = datetime(start.year, start.month, start.day)
        rows = []
        for sid in series_ids:
            for i in range(n_days):
                day = origin + timedelta(days=i)
                for s in range(period):
                    ts = day + s * step
                    rows.append((sid, ts, fn(ts.isoweekday(), s + 1, i)))
        return pl.DataFrame(
            rows,
            schema={"series_id": pl.String, "timestamp": pl.Datetime, "value": pl.Float64},
            orient="row",
        )

    return _make


@pytest.fixture()
def mean_forecast() -> Callable[[np.ndarray, int], np.ndarray]:
    def mean_of_input(y: np.ndarray, period: int) -> np.ndarray:
        return np.full(period, float(np.mean(y)))

    return mean_of_input
