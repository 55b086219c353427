from __future__ import annotations

from datetime import date, datetime, timedelta

import numpy as np
import polars as pl
import pytest

from smart_meter_forecasting.data.entities import TrainingWindow
from smart_meter_forecasting.models.errors import EmptyBucket, InsufficientData
from smart_meter_forecasting.preprocessing.reshape import (
    add_calendar_columns,
    aggregate_series,
    drop_incomplete_days,
    select_window,
    slot_minutes,
    to_load_series,
    whole_weeks,
)

PERIOD = 4


def _aligned(readings: pl.DataFrame) -> pl.DataFrame:
    return drop_incomplete_days(add_calendar_columns(readings, PERIOD), PERIOD)


def test_slot_minutes_requires_an_even_split() -> None:
    assert slot_minutes(48) == 30
    with pytest.raises(ValueError):
        slot_minutes(7)


def test_calendar_columns_from_left_labelled_timestamps(make_readings) -> None:
    frame = add_calendar_columns(make_readings(2, PERIOD), PERIOD)

    assert frame["slot"].to_list() == [1, 2, 3, 4, 1, 2, 3, 4]
    assert frame["weekday"].to_list() == [1, 1, 1, 1, 2, 2, 2, 2]
    assert frame["date"][0] == date(2024, 1, 1)


def test_right_labelled_midnight_belongs_to_previous_day() -> None:
    frame = pl.DataFrame(
        {
            "series_id": ["m", "m"],
            "timestamp": [datetime(2024, 1, 1, 6), datetime(2024, 1, 2, 0)],
            "value": [1.0, 2.0],
        }
    )

    out = add_calendar_columns(frame, PERIOD, label="right")

    assert out["date"].to_list() == [date(2024, 1, 1), date(2024, 1, 1)]
    assert out["slot"].to_list() == [1, 4]


def test_calendar_columns_work_lazily(make_readings) -> None:
    lazy = add_calendar_columns(make_readings(1, PERIOD).lazy(), PERIOD)

    assert isinstance(lazy, pl.LazyFrame)
    assert lazy.collect().height == PERIOD


def test_days_with_missing_slots_are_dropped(make_readings) -> None:
    readings = make_readings(3, PERIOD)
    gappy = readings.filter(pl.col("timestamp") != datetime(2024, 1, 2, 6))

    aligned = _aligned(gappy)

    assert aligned["date"].unique().sort().to_list() == [
        date(2024, 1, 1),
        date(2024, 1, 3),
    ]


def test_days_with_duplicate_slots_are_dropped(make_readings) -> None:
    readings = make_readings(2, PERIOD)
    duplicated = pl.concat([readings, readings.head(1)])

    aligned = _aligned(duplicated)

    assert aligned["date"].unique().to_list() == [date(2024, 1, 2)]


def test_tolerance_keeps_and_fills_nearly_complete_days(make_readings) -> None:
    readings = make_readings(2, PERIOD)
    gappy = readings.filter(pl.col("timestamp") != datetime(2024, 1, 1, 6))

    aligned = drop_incomplete_days(
        add_calendar_columns(gappy, PERIOD), PERIOD, tolerance=1
    )

    first_day = aligned.filter(pl.col("date") == date(2024, 1, 1))
    assert first_day.height == PERIOD
    # Slot 2 is interpolated between slot 1 (111) and slot 3 (113)
    assert first_day["value"].to_list() == [111.0, 112.0, 113.0, 114.0]
    assert first_day["weekday"].to_list() == [1, 1, 1, 1]


def test_filled_slots_follow_right_labelled_timestamps(make_readings) -> None:
    readings = make_readings(2, PERIOD).with_columns(
        pl.col("timestamp") + pl.duration(hours=6)
    )
    gappy = readings.filter(pl.col("timestamp") != datetime(2024, 1, 1, 12))

    aligned = drop_incomplete_days(
        add_calendar_columns(gappy, PERIOD, label="right"), PERIOD, tolerance=1
    )

    first_day = aligned.filter(pl.col("date") == date(2024, 1, 1))
    assert first_day["timestamp"].to_list() == [
        datetime(2024, 1, 1, 6),
        datetime(2024, 1, 1, 12),
        datetime(2024, 1, 1, 18),
        datetime(2024, 1, 2, 0),
    ]
    assert first_day["value"].to_list() == [111.0, 112.0, 113.0, 114.0]


def test_negative_tolerance_is_rejected(make_readings) -> None:
    with pytest.raises(ValueError):
        drop_incomplete_days(
            add_calendar_columns(make_readings(1, PERIOD), PERIOD), PERIOD, -1
        )


def test_aggregate_series_sums_all_meters(make_readings) -> None:
    readings = make_readings(1, PERIOD, series_ids=("a", "b"))

    total = aggregate_series(readings)

    assert total["series_id"].unique().to_list() == ["total"]
    assert total["value"].to_list() == [222.0, 224.0, 226.0, 228.0]


def test_aggregate_series_by_group_ignores_unmapped_meters(make_readings) -> None:
    readings = make_readings(1, PERIOD, series_ids=("a", "b", "c"))

    grouped = aggregate_series(readings, {"a": "retail", "b": "retail"})

    assert grouped["series_id"].unique().to_list() == ["retail"]
    assert grouped["value"][0] == 222.0


def test_select_window_is_inclusive(make_readings) -> None:
    aligned = _aligned(make_readings(5, PERIOD))

    out = select_window(aligned, TrainingWindow(date(2024, 1, 2), date(2024, 1, 3)))

    assert out.height == 2 * PERIOD


def test_whole_weeks_drops_the_earliest_days(make_readings) -> None:
    aligned = _aligned(make_readings(10, PERIOD))

    out = whole_weeks(aligned)

    assert out["date"].min() == date(2024, 1, 4)
    assert out["date"].n_unique() == 7


def test_whole_weeks_needs_one_week(make_readings) -> None:
    with pytest.raises(InsufficientData):
        whole_weeks(_aligned(make_readings(6, PERIOD)))


def test_to_load_series_builds_day_by_slot_matrix(make_readings) -> None:
    aligned = _aligned(make_readings(3, PERIOD))

    series = to_load_series(aligned, PERIOD)

    assert series.series_id == "meter-1"
    assert series.values.shape == (3, PERIOD)
    assert series.dates == (date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3))
    assert np.array_equal(series.values[1], [121.0, 122.0, 123.0, 124.0])


def test_to_load_series_rejects_incomplete_days(make_readings) -> None:
    frame = add_calendar_columns(make_readings(2, PERIOD), PERIOD).head(7)

    with pytest.raises(InsufficientData):
        to_load_series(frame, PERIOD)


def test_to_load_series_needs_an_id_for_many_series(make_readings) -> None:
    aligned = _aligned(make_readings(1, PERIOD, series_ids=("a", "b")))

    with pytest.raises(ValueError):
        to_load_series(aligned, PERIOD)
    assert to_load_series(aligned, PERIOD, "b").series_id == "b"


def test_to_load_series_unknown_id_raises_empty_bucket(make_readings) -> None:
    aligned = _aligned(make_readings(1, PERIOD))

    with pytest.raises(EmptyBucket):
        to_load_series(aligned, PERIOD, "missing")
