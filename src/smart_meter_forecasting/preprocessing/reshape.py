# stdlib
from datetime import timedelta
from typing import Literal, Mapping, Optional, Union, overload
# thirdpartylib
import numpy as np
import polars as pl
# projectlib
from smart_meter_forecasting.data.schemas import Column, KEYS
from smart_meter_forecasting.data.entities import LoadSeries, TrainingWindow
from smart_meter_forecasting.models.errors import InsufficientData, EmptyBucket

SID = Column.SERIES_ID.value
TS = Column.TIMESTAMP.value
DATE = Column.DATE.value
SLOT = Column.SLOT.value
WEEKDAY = Column.WEEKDAY.value
VALUE = Column.VALUE.value
SORT_KEYS = [k.value for k in KEYS]
MINUTES_PER_DAY = 24 * 60


def slot_minutes(period: int) -> int:
    """Length of one slot in minutes for a ``period``-slot day."""
    if period < 1 or MINUTES_PER_DAY % period:
        raise ValueError(
            f"A day of {MINUTES_PER_DAY} minutes cannot be split into "
            f"{period} equal slots."
        )
    return MINUTES_PER_DAY // period

@overload
def add_calendar_columns(
        frame: pl.LazyFrame, 
        period: int, 
        *, 
        label: Literal["left", "right"] = "left"
    ) -> pl.LazyFrame: ...

@overload
def add_calendar_columns(
        frame: pl.DataFrame, 
        period: int, 
        *, 
        label: Literal["left", "right"] = "left"
    ) -> pl.DataFrame: ...

def add_calendar_columns(
        frame: Union[pl.DataFrame, pl.LazyFrame],
        period: int,
        *,
        label: Literal["left", "right"] = "left",
    ) -> Union[pl.DataFrame, pl.LazyFrame]:
    """
    Derive ``date``, ``slot`` and ``weekday`` columns from ``timestamp``.

    Parameters
    ----------
    frame : pl.DataFrame or pl.LazyFrame
        Readings with a datetime ``timestamp`` column.
    period : int
        Number of slots per day. Must divide a day evenly.
    label : {"left", "right"}, default "left"
        Whether a timestamp marks the start (``"left"``) or the end
        (``"right"``) of its interval. End-labelled readings at
        midnight belong to the last slot of the previous day.

    Returns
    -------
    pl.DataFrame or pl.LazyFrame
        Input with ``date`` (date), ``slot`` (1-based Int32) and
        ``weekday`` (1 = Monday ... 7 = Sunday, Int8) columns added.
    """
    step = slot_minutes(period)
    ts = pl.col(TS)
    if label == "right":
        ts = ts - pl.duration(minutes=step)
    minute_of_day = (
        ts.dt.hour().cast(pl.Int32) * 60 + ts.dt.minute().cast(pl.Int32)
    )
    return frame.with_columns(
        ts.dt.date().alias(DATE),
        (minute_of_day // step + 1).cast(pl.Int32).alias(SLOT),
        ts.dt.weekday().cast(pl.Int8).alias(WEEKDAY),
    )

def drop_incomplete_days(
        frame: pl.DataFrame, 
        period: int, 
        tolerance: int = 0
    ) -> pl.DataFrame:
    """
    Remove every (series, date) whose slot count deviates from
    ``period``.

    With the default ``tolerance=0`` a day survives only if it holds
    exactly ``period`` rows covering ``period`` distinct slots. A
    positive tolerance keeps days missing at most ``tolerance`` slots;
    those gaps are then filled by :func:`fill_missing_slots`. Days with
    duplicate slots are always dropped.
    """
    if tolerance < 0:
        raise ValueError("Slot tolerance cannot be negative.")
    group = [SID, DATE]
    n_rows = pl.len().over(group)
    n_slots = pl.col(SLOT).n_unique().over(group)
    keep = (
        (n_rows == n_slots)
        & (n_slots <= period)
        & (n_slots >= period - tolerance)
        & pl.col(SLOT).is_between(1, period).all().over(group)
    )
    out = frame.filter(keep)
    if tolerance:
        out = fill_missing_slots(out, period)

    return out.sort(SORT_KEYS)

def fill_missing_slots(frame: pl.DataFrame, period: int) -> pl.DataFrame:
    """
    Complete every (series, date) to ``period`` slots.

    Missing values are linearly interpolated within the day; gaps at
    the start or end of a day take the nearest observed value. Observed
    rows keep their ``timestamp``; filled rows are stamped with the same
    offset from their slot start as the observed rows of that day.
    """
    step = slot_minutes(period)
    observed = [SID, DATE, SLOT, VALUE]
    slot_start = (
        pl.col(DATE).cast(pl.Datetime)
        + pl.duration(minutes=(pl.col(SLOT) - 1) * step)
    )
    timestamp = slot_start
    if TS in frame.columns:
        observed.append(TS)
        offset = (
            (pl.col(TS) - slot_start)
            .forward_fill()
            .backward_fill()
            .over([SID, DATE])
        )
        timestamp = pl.coalesce(pl.col(TS), slot_start + offset)
    days = frame.select(SID, DATE).unique()
    slots = pl.DataFrame(
        {SLOT: np.arange(1, period + 1)}, 
        schema={SLOT: pl.Int32}
    )
    grid = days.join(slots, how="cross")
    out = (
        grid
        .join(frame.select(observed), on=[SID, DATE, SLOT], how="left")
        .sort(SORT_KEYS)
        .with_columns(
            pl.col(VALUE)
            .interpolate()
            .forward_fill()
            .backward_fill()
            .over([SID, DATE]),
            timestamp.alias(TS),
            pl.col(DATE).dt.weekday().cast(pl.Int8).alias(WEEKDAY),
        )
    )
    return out.select([c for c in frame.columns if c in out.columns])

def aggregate_series(
        frame: pl.DataFrame,
        groups: Optional[Mapping[str, str]] = None,
        *,
        name: str = "total",
    ) -> pl.DataFrame:
    """
    Sum readings of many meters into aggregate series.

    Parameters
    ----------
    frame : pl.DataFrame
        Long-format readings of individual meters.
    groups : Mapping[str, str], optional
        Meter id to group label (e.g. industry). Meters absent from the
        mapping are ignored. When None, all meters are summed into one
        series called ``name``.
    name : str, default "total"
        Series id used when ``groups`` is None.

    Returns
    -------
    pl.DataFrame
        One row per (group, timestamp) with the summed ``value``.
    """
    if groups is None:
        labelled = frame.with_columns(pl.lit(name).alias(SID))
    else:
        labelled = (
            frame
            .filter(pl.col(SID).is_in(list(groups)))
            .with_columns(
                pl.col(SID).replace_strict(dict(groups), return_dtype=pl.String)
            )
        )
    return (
        labelled
        .group_by(SID, TS)
        .agg(pl.col(VALUE).sum())
        .sort(SID, TS)
    )

def select_window(frame: pl.DataFrame, window: TrainingWindow) -> pl.DataFrame:
    """Rows whose ``date`` lies inside ``window`` (inclusive)."""
    return frame.filter(pl.col(DATE).is_between(window.start, window.end))

def whole_weeks(frame: pl.DataFrame) -> pl.DataFrame:
    """
    Trim the earliest dates so the frame spans a whole number of weeks.

    The span is measured on the calendar from the first to the last
    date, so missing days inside the span still count toward it.

    Raises
    ------
    InsufficientData
        If the frame spans less than one week.
    """
    if frame.is_empty():
        raise InsufficientData("Cannot trim an empty frame to whole weeks.")
    first = frame[DATE].min()
    last = frame[DATE].max()
    n_weeks = ((last - first).days + 1) // 7
    if n_weeks < 1:
        raise InsufficientData(
            f"Frame spans {(last - first).days + 1} days, less than one week."
        )
    start = last - timedelta(days=7 * n_weeks - 1)
    return frame.filter(pl.col(DATE) >= start)

def to_load_series(
        frame: Union[pl.DataFrame, pl.LazyFrame],
        period: int,
        series_id: Optional[str] = None,
    ) -> LoadSeries:
    """
    Build an immutable :class:`LoadSeries` from aligned readings.

    Parameters
    ----------
    frame : pl.DataFrame or pl.LazyFrame
        Readings carrying ``date``, ``slot`` and ``value`` columns,
        typically the output of :func:`drop_incomplete_days`.
    period : int
        Number of slots per day.
    series_id : str, optional
        Series to extract. May be omitted when the frame holds a
        single series.

    Raises
    ------
    EmptyBucket
        If the requested series has no rows.
    InsufficientData
        If any day does not hold exactly slots ``1..period`` or a value
        is null.
    """
    if isinstance(frame, pl.LazyFrame):
        frame = frame.collect()
    if series_id is None:
        ids = frame[SID].unique().to_list()
        if len(ids) != 1:
            raise ValueError(
                f"Frame holds {len(ids)} series; pass series_id explicitly."
            )
        series_id = str(ids[0])
    rows = frame.filter(pl.col(SID) == series_id).sort(DATE, SLOT)
    if rows.is_empty():
        raise EmptyBucket(f"No observations for series {series_id!r}.")
    per_day = rows.group_by(DATE).agg(
        pl.len().alias("n"),
        pl.col(SLOT).n_unique().alias("n_slots"),
        pl.col(SLOT).min().alias("first"),
        pl.col(SLOT).max().alias("last"),
    ).sort(DATE)
    bad = per_day.filter(
        (pl.col("n") != period) 
        | (pl.col("n_slots") != period)
        | (pl.col("first") != 1)
        | (pl.col("last") != period)
    )
    if not bad.is_empty():
        raise InsufficientData(
            f"{bad.height} day(s) of series {series_id!r} do not hold "
            f"exactly {period} slots, first is {bad[DATE][0]}."
        )
    if rows[VALUE].null_count():
        raise InsufficientData(
            f"Series {series_id!r} holds null values."
        )
    values = rows[VALUE].to_numpy().astype(float)
    return LoadSeries(
        series_id=series_id,
        dates=tuple(per_day[DATE].to_list()),
        values=values.reshape(per_day.height, period),
    )
