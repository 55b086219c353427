# stdlib
from datetime import date, timedelta
from dataclasses import dataclass, field
from typing import Iterator, Tuple
# thirdpartylib
import numpy as np
# projectlib
from smart_meter_forecasting.data.schemas import Weekday, WEEKDAY_ORDER
from smart_meter_forecasting.models.errors import (
    InsufficientData, 
    EmptyBucket
)
from smart_meter_forecasting.utils.typing import FloatArray


def _freeze(array: np.ndarray) -> np.ndarray:
    out = np.array(array, copy=True)
    out.setflags(write=False)
    return out


@dataclass(frozen=True)
class TrainingWindow(object):
    """
    Inclusive span of calendar dates used to build one forecast.

    Attributes
    ----------
    start : datetime.date
        First date of the window.
    end : datetime.date
        Last date of the window (inclusive).
    """
    start: date
    end: date

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(
                f"Window end {self.end} precedes window start {self.start}."
            )

    @classmethod
    def ending_before(cls, day: date, n_days: int) -> "TrainingWindow":
        """Window of ``n_days`` days ending the day before ``day``."""
        if n_days < 1:
            raise ValueError("A training window needs at least one day.")
        end = day - timedelta(days=1)
        return cls(end - timedelta(days=n_days - 1), end)

    @property
    def n_days(self) -> int:
        return (self.end - self.start).days + 1

    @property
    def is_whole_weeks(self) -> bool:
        return self.n_days % 7 == 0

    def dates(self) -> Iterator[date]:
        for offset in range(self.n_days):
            yield self.start + timedelta(days=offset)

    def __contains__(self, day: object) -> bool:
        return isinstance(day, date) and self.start <= day <= self.end


@dataclass(frozen=True, eq=False)
class WeekdayBucket(object):
    """
    Same-weekday days of a series, ordered by date.

    ``values`` has shape ``(n_days, period)``; ``flat`` concatenates the
    days in date order into one sequence.
    """
    weekdays: Tuple[Weekday, ...]
    dates: Tuple[date, ...]
    values: FloatArray

    @property
    def n_days(self) -> int:
        return len(self.dates)

    @property
    def flat(self) -> FloatArray:
        return self.values.reshape(-1)


@dataclass(frozen=True, eq=False)
class LoadSeries(object):
    """
    Immutable load series aligned to a fixed sub-daily grid.

    Each row of ``values`` holds the ``period`` slot values of one
    calendar day in ascending slot order. Rows are sorted by date and
    every day is complete; incomplete days must be removed before
    construction (see
    :func:`smart_meter_forecasting.preprocessing.reshape.drop_incomplete_days`).

    Attributes
    ----------
    series_id : str
        Identifier of the series.
    dates : tuple of datetime.date
        Calendar dates, one per row, strictly increasing.
    values : numpy.ndarray
        Array of shape ``(n_days, period)``.
    """
    series_id: str
    dates: Tuple[date, ...]
    values: FloatArray = field(repr=False)

    def __post_init__(self) -> None:
        values = np.asarray(self.values, dtype=float)
        if values.ndim != 2:
            raise InsufficientData(
                "Series values must be a (days, period) matrix, "
                f"got shape {values.shape}."
            )
        if values.shape[0] != len(self.dates):
            raise InsufficientData(
                f"Series has {len(self.dates)} dates but "
                f"{values.shape[0]} rows of values."
            )
        if any(b <= a for a, b in zip(self.dates, self.dates[1:])):
            raise ValueError("Series dates must be strictly increasing.")
        object.__setattr__(self, "dates", tuple(self.dates))
        object.__setattr__(self, "values", _freeze(values))

    @classmethod
    def from_flat(
            cls, 
            series_id: str, 
            start: date, 
            values: np.ndarray, 
            period: int
        ) -> "LoadSeries":
        """Build a gap-free series from a flat array starting on ``start``."""
        values = np.asarray(values, dtype=float)
        if values.size % period:
            raise InsufficientData(
                f"Length {values.size} is not a multiple of period {period}."
            )
        n_days = values.size // period
        dates = tuple(start + timedelta(days=i) for i in range(n_days))
        return cls(series_id, dates, values.reshape(n_days, period))

    @property
    def period(self) -> int:
        return int(self.values.shape[1])

    @property
    def n_days(self) -> int:
        return len(self.dates)

    @property
    def weekdays(self) -> Tuple[Weekday, ...]:
        return tuple(Weekday(d.isoweekday()) for d in self.dates)

    @property
    def flat(self) -> FloatArray:
        return self.values.reshape(-1)

    def select(self, window: TrainingWindow) -> "LoadSeries":
        """Return the days of this series that fall inside ``window``."""
        mask = np.array([d in window for d in self.dates], dtype=bool)
        dates = tuple(d for d, keep in zip(self.dates, mask) if keep)
        return LoadSeries(
            self.series_id, 
            dates, 
            self.values[mask].reshape(len(dates), self.period)
        )

    def bucket(self, *weekdays: Weekday) -> WeekdayBucket:
        """
        Collect the days falling on any of ``weekdays`` in date order.

        Raises
        ------
        EmptyBucket
            If none of the requested weekdays is present.
        """
        wanted = set(weekdays)
        idx = [i for i, w in enumerate(self.weekdays) if w in wanted]
        if not idx:
            names = ", ".join(w.name.title() for w in weekdays)
            raise EmptyBucket(
                f"No observations for {names} in series {self.series_id!r}."
            )
        return WeekdayBucket(
            weekdays=tuple(weekdays),
            dates=tuple(self.dates[i] for i in idx),
            values=_freeze(self.values[idx]),
        )


@dataclass(frozen=True, eq=False)
class ForecastResult(object):
    """
    Seven days of forecast values ordered Monday..Sunday.

    ``values`` has length ``7 * period``; each day's ``period`` values
    are in slot order.
    """
    series_id: str
    period: int
    values: FloatArray = field(repr=False)
    strategy: str = ""

    def __post_init__(self) -> None:
        values = np.asarray(self.values, dtype=float).reshape(-1)
        if values.size != 7 * self.period:
            raise ValueError(
                f"A weekly forecast needs {7 * self.period} values, "
                f"got {values.size}."
            )
        object.__setattr__(self, "values", _freeze(values))

    def day(self, weekday: Weekday) -> FloatArray:
        """Forecast values of one weekday."""
        start = (int(weekday) - 1) * self.period
        return self.values[start:start + self.period]

    def by_day(self) -> np.ndarray:
        """Forecast reshaped to ``(7, period)`` with rows Monday..Sunday."""
        return self.values.reshape(len(WEEKDAY_ORDER), self.period)

    def __len__(self) -> int:
        return int(self.values.size)
