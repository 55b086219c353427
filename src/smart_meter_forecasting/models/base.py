# stdlib
from typing import Protocol, Union, runtime_checkable
# projectlib
from smart_meter_forecasting.data.entities import LoadSeries
from smart_meter_forecasting.utils.typing import FloatArray


class SeriesForecaster(Protocol):
    """
    Single-series forecaster used per weekday bucket.

    Called with an ordered sequence whose length is a multiple of
    ``period`` and returns the next ``period`` values. May raise
    :class:`~smart_meter_forecasting.models.errors.ForecastingError`.
    """
    def __call__(self, y: FloatArray, period: int) -> FloatArray: ...


@runtime_checkable
class WeekForecaster(Protocol):
    """
    Forecaster producing a whole Monday..Sunday week from a training
    window of whole weeks.
    """
    name: str

    def forecast_week(self, series: LoadSeries) -> FloatArray: ...


type Strategy = Union[SeriesForecaster, WeekForecaster]

def strategy_name(strategy: Strategy) -> str:
    """Human readable identifier of a strategy."""
    name = getattr(strategy, "name", None)
    if isinstance(name, str) and name:
        return name
    return getattr(strategy, "__name__", type(strategy).__name__)
