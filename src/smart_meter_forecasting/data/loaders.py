# stdlib
from typing import Mapping, Optional
# thirdpartylib
import polars as pl
# projectlib
from smart_meter_forecasting.utils.typing import Address
from smart_meter_forecasting.utils.paths import validate_address
from smart_meter_forecasting.data.schemas import Column, RAW_COLUMNS

def map_names(
        lf: pl.LazyFrame, 
        column_map: Optional[Mapping[str, str]] = None
    ) -> pl.LazyFrame:
    """
    Rename source columns to the public ``Column`` names and drop
    everything else.

    Parameters
    ----------
    lf : pl.LazyFrame
        Raw readings.
    column_map : Mapping[str, str], optional
        Mapping from source column names to ``Column`` values. Columns
        already named after ``Column`` members are kept as they are.

    Raises
    ------
    ValueError
        If a required column is missing after renaming.
    """
    schema = lf.collect_schema()
    column_map = dict(column_map or {})
    safe_map = {
        old: str(new.value if isinstance(new, Column) else new)
        for old, new in column_map.items()
        if old in schema
    }
    lf = lf.rename(safe_map)
    names = set(lf.collect_schema().names())
    missing = [c.value for c in RAW_COLUMNS if c.value not in names]
    if missing:
        msg = (
            f"Readings are missing required columns {missing}; "
            f"available columns are {sorted(names)}."
        )
        raise ValueError(msg)

    return lf.select([c.value for c in RAW_COLUMNS])

def cast_types(
        lf: pl.LazyFrame, 
        timestamp_format: Optional[str] = None
    ) -> pl.LazyFrame:
    """Cast identifiers to strings, timestamps to datetimes and values
    to floats."""
    schema = lf.collect_schema()
    ts = pl.col(Column.TIMESTAMP.value)
    if schema[Column.TIMESTAMP.value] == pl.String:
        ts = ts.str.to_datetime(format=timestamp_format)
    else:
        ts = ts.cast(pl.Datetime)
    return lf.with_columns(
        pl.col(Column.SERIES_ID.value).cast(pl.String),
        ts.alias(Column.TIMESTAMP.value),
        pl.col(Column.VALUE.value).cast(pl.Float64),
    )

def load_observations(
        source: Address,
        *,
        column_map: Optional[Mapping[str, str]] = None,
        timestamp_format: Optional[str] = None,
    ) -> pl.LazyFrame:
    """
    Lazily read long-format smart-meter readings from CSV or parquet.

    Parameters
    ----------
    source : Address
        Path to a ``.csv`` or ``.parquet`` file.
    column_map : Mapping[str, str], optional
        Source-to-public column renames, see :func:`map_names`.
    timestamp_format : str, optional
        ``strftime`` format of string timestamps. Inferred when None.

    Returns
    -------
    pl.LazyFrame
        Frame with ``series_id``, ``timestamp`` and ``value`` columns.

    Raises
    ------
    FileNotFoundError
        If ``source`` does not exist.
    """
    path = validate_address(source, mode="r")
    if path.suffix == ".parquet":
        lf = pl.scan_parquet(path)
    else:
        lf = pl.scan_csv(path, try_parse_dates=False)
    lf = map_names(lf, column_map)

    return cast_types(lf, timestamp_format)
