# stdlib
import os
from pathlib import Path
from dataclasses import dataclass
from typing import Optional, cast
# thirdpartylib
from dotenv import load_dotenv
# projectlib
from smart_meter_forecasting.utils.typing import Verbosity

# Defaults used when the corresponding variable is not set
DEFAULT_PERIOD = 48
DEFAULT_TRAIN_WINDOW_DAYS = 6
DEFAULT_SLOT_TOLERANCE = 0
DEFAULT_VERBOSITY = 0

def fetch_var(name: str, default: Optional[str] = None) -> str:
    """Fetch an environment variable, falling back to ``default``."""
    try:
        value = os.environ[name].strip()
        if not value:
            raise RuntimeError(
                f"Environment variable '{name}' is empty."
            )
        return value
    except KeyError as e:
        if default is not None:
            return default
        raise RuntimeError(
            f"Environment variable '{name}' is not set. "
            "Create a .env file or define the variable."
        ) from e

def fetch_int(name: str, default: int, minimum: int = 0) -> int:
    """Fetch an integer environment variable of at least ``minimum``."""
    raw = fetch_var(name, str(default))
    try:
        value = int(raw)
    except ValueError as e:
        raise RuntimeError(
            f"Environment variable '{name}' must be an integer, got {raw!r}."
        ) from e
    if value < minimum:
        raise RuntimeError(
            f"Environment variable '{name}' must be >= {minimum}, got {value}."
        )
    return value


@dataclass(frozen=True)
class ForecastConfig(object):
    """
    Run-time configuration shared by data preparation and forecasting.

    Attributes
    ----------
    period : int
        Number of sampling slots per calendar day.
    train_window_days : int
        Number of trailing mid-week days used per Tuesday-Thursday
        forecast.
    slot_tolerance : int
        Allowed deviation of a day's slot count from ``period`` before
        the day is dropped.
    data_root : Path
        Root directory for input files used by the scripts.
    verbosity : Verbosity
        Logger verbosity threshold.
    """
    period: int = DEFAULT_PERIOD
    train_window_days: int = DEFAULT_TRAIN_WINDOW_DAYS
    slot_tolerance: int = DEFAULT_SLOT_TOLERANCE
    data_root: Path = Path.cwd()
    verbosity: Verbosity = DEFAULT_VERBOSITY

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "ForecastConfig":
        """Build a configuration from ``SMF_*`` environment variables."""
        if dotenv:
            load_dotenv()
        verbosity = fetch_int("SMF_VERBOSITY", DEFAULT_VERBOSITY)
        if verbosity > 2:
            raise RuntimeError(
                f"Environment variable 'SMF_VERBOSITY' must be 0, 1 or 2, "
                f"got {verbosity}."
            )
        return cls(
            period=fetch_int("SMF_PERIOD", DEFAULT_PERIOD, minimum=2),
            train_window_days=fetch_int(
                "SMF_TRAIN_WINDOW_DAYS", DEFAULT_TRAIN_WINDOW_DAYS, minimum=1
            ),
            slot_tolerance=fetch_int(
                "SMF_SLOT_TOLERANCE", DEFAULT_SLOT_TOLERANCE
            ),
            data_root=Path(fetch_var("SMF_DATA_ROOT", str(Path.cwd()))),
            verbosity=cast(Verbosity, verbosity),
        )
