# stdlib
from typing import Literal, Union, Sequence, Tuple
from pathlib import Path
# thirdpartylib
import numpy as np
import pandas as pd
from numpy.typing import NDArray

# Verbosity for classes, functions, methods, etc.
type Verbosity = Literal[0, 1, 2]
# Mode for opening documents
type ReadMode = Literal["r"]
type WriteMode = Literal["w", "x"]
type OpenMode = Literal[ReadMode, WriteMode]
# Type alias for file/folder paths
type Address = Union[str, Path]
# One-dimensional numeric input accepted by metrics and strategies
type ArrayLike1D = Union[Sequence[float], NDArray[np.floating], pd.Series]
type FloatArray = NDArray[np.float64]
# ARIMA (p, d, q) order
type ArimaOrder = Tuple[int, int, int]
# ETS component choices (seasonal component is always absent)
type ErrorKind = Literal["add", "mul"]
type TrendKind = Literal["none", "add", "add_damped"]
