# thirdpartylib
import numpy as np
# projectlib
from smart_meter_forecasting.utils.typing import ArrayLike1D
from smart_meter_forecasting.models.errors import DivisionUndefined

def _paired(
        y_true: ArrayLike1D, 
        y_pred: ArrayLike1D
    ) -> tuple[np.ndarray, np.ndarray]:
    y_true = np.asarray(y_true, dtype=float).reshape(-1)
    y_pred = np.asarray(y_pred, dtype=float).reshape(-1)
    if y_true.shape != y_pred.shape:
        raise ValueError(
            f"Cannot pair {y_true.size} actual values with "
            f"{y_pred.size} predictions."
        )
    if y_true.size == 0:
        raise ValueError("Metrics need at least one value.")
    return y_true, y_pred

def mape(y_true: ArrayLike1D, y_pred: ArrayLike1D) -> float:
    """
    Mean Absolute Percentage Error.

    ``100 * mean(|y_true - y_pred| / y_true)`` over index-paired values.
    The denominator is the signed actual value, as in the usual load
    forecasting definition; load series are positive by construction.

    Parameters
    ----------
    y_true : array-like
        Actual values.
    y_pred : array-like
        Predicted values, same length as ``y_true``.

    Returns
    -------
    float
        MAPE expressed as a percentage.

    Raises
    ------
    DivisionUndefined
        If any actual value is zero.
    ValueError
        If the inputs differ in length or are empty.
    """
    y_true, y_pred = _paired(y_true, y_pred)
    zeros = np.flatnonzero(y_true == 0)
    if zeros.size:
        raise DivisionUndefined(
            f"MAPE is undefined: {zeros.size} actual value(s) are zero, "
            f"first at index {zeros[0]}."
        )
    return float(np.mean(np.abs(y_true - y_pred) / y_true) * 100.0)

def strict_r2(
    y_true: ArrayLike1D,
    y_pred: ArrayLike1D,
    eps: float = 1e-12
) -> float:
    """
    Coefficient of determination without fallback conventions.

        R² = 1 - Σ(y_true - y_pred)² / Σ(y_true - ȳ_true)²

    Returns ``NaN`` when the total variance of ``y_true`` is at most
    ``eps``, where R² is undefined.
    """
    y_true, y_pred = _paired(y_true, y_pred)
    denom = np.sum((y_true - y_true.mean()) ** 2)
    if denom <= eps:
        return float("nan")

    return float(1.0 - np.sum((y_true - y_pred) ** 2) / denom)
