# stdlib
import argparse
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence
# thirdpartylib
import pandas as pd
import polars as pl
# projectlib
from smart_meter_forecasting.config.env import ForecastConfig
from smart_meter_forecasting.data.loaders import load_observations
from smart_meter_forecasting.data.schemas import Column
from smart_meter_forecasting.evaluation.backtest import backtest, summarize
from smart_meter_forecasting.models.base import Strategy
from smart_meter_forecasting.models.decomposition import (
    STLArimaForecaster,
    STLETSForecaster,
)
from smart_meter_forecasting.models.regression import SeasonalDummyRegression
from smart_meter_forecasting.preprocessing.reshape import (
    add_calendar_columns,
    aggregate_series,
    drop_incomplete_days,
    to_load_series,
)
from smart_meter_forecasting.utils.logging import Logger
from smart_meter_forecasting.utils.paths import validate_address
from smart_meter_forecasting.utils.typing import Address, Verbosity

STRATEGY_REGISTRY: Dict[str, Callable[[Verbosity], Strategy]] = {
    "stl_arima": lambda v: STLArimaForecaster(verbose=v),
    "stl_ets": lambda v: STLETSForecaster(verbose=v),
    "regression": lambda v: SeasonalDummyRegression(verbose=v),
}

def read_groups(source: Address) -> Dict[str, str]:
    """Read a two-column CSV mapping ``series_id`` to ``group``."""
    path = validate_address(source, mode="r")
    frame = pl.read_csv(path, schema_overrides={Column.SERIES_ID.value: pl.String})
    if Column.SERIES_ID.value not in frame.columns or "group" not in frame.columns:
        raise ValueError(
            f"{path} must hold '{Column.SERIES_ID.value}' and 'group' columns."
        )
    return dict(zip(
        frame[Column.SERIES_ID.value].to_list(), 
        frame["group"].cast(pl.String).to_list()
    ))

def backtest_pipeline(
        *,
        source: Address,
        output_dir: Address,
        strategies: Sequence[str],
        config: ForecastConfig,
        train_days: int = 28,
        test_weeks: Optional[int] = None,
        groups: Optional[Address] = None,
        aggregate: bool = False,
        write_log: bool = False,
    ) -> pd.DataFrame:
    """
    Load readings, align them to the slot grid and backtest every
    selected strategy on every series.

    Per-week MAPE scores are written to ``backtest_mape.csv`` and the
    per-strategy summary to ``backtest_summary.csv`` in ``output_dir``.
    """
    output_dir = validate_address(output_dir, mkdir=True)
    log = Logger(
        config.verbosity, 
        output_dir, 
        write_log, 
        name="similar_day_backtest"
    )
    readings = load_observations(source).collect()
    if groups is not None:
        readings = aggregate_series(readings, read_groups(groups))
    elif aggregate:
        readings = aggregate_series(readings)
    aligned = drop_incomplete_days(
        add_calendar_columns(readings, config.period),
        config.period,
        config.slot_tolerance,
    )
    log(
        f"{aligned.height} aligned readings from "
        f"{readings.height} raw readings", 
        1
    )
    chosen = {
        name: STRATEGY_REGISTRY[name](config.verbosity) for name in strategies
    }
    tables: List[pd.DataFrame] = []
    for series_id in sorted(aligned[Column.SERIES_ID.value].unique().to_list()):
        series = to_load_series(aligned, config.period, series_id)
        table = backtest(
            series,
            chosen,
            train_days=train_days,
            test_weeks=test_weeks,
            train_window_days=config.train_window_days,
            verbose=config.verbosity,
            progress=config.verbosity > 0,
        )
        table.insert(0, Column.SERIES_ID.value, series_id)
        tables.append(table)
    if not tables:
        raise ValueError(f"No complete days found in {source}.")
    results = pd.concat(tables, ignore_index=True)
    results.to_csv(output_dir / "backtest_mape.csv", index=False)
    summary = summarize(results)
    summary.to_csv(output_dir / "backtest_summary.csv")
    for name, row in summary.iterrows():
        log(f"[{name}] mean MAPE {row['mean']:.2f}% over {int(row['count'])} week(s)", 1)
    log(f"Artifacts saved in: {output_dir}", 1)

    return results

def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse input arguments for the similar-day backtest."""
    parser = argparse.ArgumentParser(
        description="Backtest similar-day weekly load forecasts",
    )
    parser.add_argument(
        "source",
        type=Path,
        help="CSV or parquet file of long-format readings.",
    )
    parser.add_argument(
        "--output_dir",
        type=Path,
        default=Path.cwd() / "outputs" / "backtest",
        help="Directory for the result tables.",
    )
    parser.add_argument(
        "--strategies",
        nargs="+",
        default=list(STRATEGY_REGISTRY),
        choices=list(STRATEGY_REGISTRY),
        help="Strategies to evaluate.",
    )
    parser.add_argument(
        "--train_days",
        type=int,
        default=28,
        help="Length of every training window in days.",
    )
    parser.add_argument(
        "--test_weeks",
        type=int,
        default=None,
        help="Number of most recent weeks to evaluate (default: all).",
    )
    parser.add_argument(
        "--groups",
        type=Path,
        default=None,
        help="CSV mapping series_id to group; series are summed per group.",
    )
    parser.add_argument(
        "--aggregate",
        action="store_true",
        help="Sum all series into a single total series.",
    )
    parser.add_argument(
        "--write_log",
        action="store_true",
        help="Store message/info outputs to a log file.",
    )

    return parser.parse_args(argv)

def main(argv: Optional[Sequence[str]] = None) -> None:
    """Entry point for running the backtest from the command line."""
    args = parse_args(argv)
    config = ForecastConfig.from_env()
    source = args.source
    if not source.is_absolute():
        source = config.data_root / source
    backtest_pipeline(
        source=source,
        output_dir=args.output_dir,
        strategies=args.strategies,
        config=config,
        train_days=args.train_days,
        test_weeks=args.test_weeks,
        groups=args.groups,
        aggregate=args.aggregate,
        write_log=args.write_log,
    )

if __name__ == "__main__":
    main()
