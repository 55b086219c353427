# stdlib
from typing import List, Sequence, Tuple
# thirdpartylib
import numpy as np
from numpy.typing import NDArray
# projectlib
from smart_meter_forecasting.data.schemas import WEEKDAY_ORDER

type Design = Tuple[NDArray[np.float64], List[str]]

def one_hot(
        codes: Sequence[int], 
        levels: Sequence[int], 
        *, 
        prefix: str,
        drop_first: bool = False
    ) -> Design:
    """
    Encode integer category codes as indicator columns.

    Parameters
    ----------
    codes : Sequence[int]
        Observed category of every row.
    levels : Sequence[int]
        Ordered set of admissible categories; defines column order.
    prefix : str
        Column name prefix, e.g. ``"slot"`` gives ``"slot[3]"``.
    drop_first : bool, default False
        Drop the indicator of ``levels[0]``, which then acts as the
        reference level.

    Returns
    -------
    matrix : numpy.ndarray
        Array of shape ``(len(codes), n_columns)`` holding 0/1 floats.
        Columns are mutually orthogonal.
    names : list[str]
        Column names.

    Raises
    ------
    ValueError
        If a code is not one of ``levels``.
    """
    codes_arr = np.asarray(codes)
    levels_arr = np.asarray(levels)
    unknown = np.setdiff1d(np.unique(codes_arr), levels_arr)
    if unknown.size:
        raise ValueError(
            f"Codes {unknown.tolist()} are not levels of {prefix!r}."
        )
    kept = levels_arr[1:] if drop_first else levels_arr
    matrix = (codes_arr[:, None] == kept[None, :]).astype(float)
    names = [f"{prefix}[{level}]" for level in kept.tolist()]

    return matrix, names

def interact(left: Design, right: Design) -> Design:
    """Row-wise products of every left column with every right column."""
    l_mat, l_names = left
    r_mat, r_names = right
    if l_mat.shape[0] != r_mat.shape[0]:
        raise ValueError("Interacted designs must have the same rows.")
    matrix = (l_mat[:, :, None] * r_mat[:, None, :]).reshape(
        l_mat.shape[0], -1
    )
    names = [f"{a}:{b}" for a in l_names for b in r_names]

    return matrix, names

def build_design_matrix(
        slots: Sequence[int], 
        weekdays: Sequence[int], 
        period: int
    ) -> Design:
    """
    Design matrix of the double-seasonal dummy regression.

    The model has no intercept. Slot indicators keep all ``period``
    levels, weekday indicators drop Monday, and the slot x weekday
    interaction drops slot 1 and Monday, so the matrix has
    ``period + 6 + 6 * (period - 1) = 7 * period`` columns: one free
    coefficient per (slot, weekday) cell.

    Parameters
    ----------
    slots : Sequence[int]
        1-based slot of every row, in ``1..period``.
    weekdays : Sequence[int]
        ISO weekday of every row, in ``1..7``.
    period : int
        Number of slots per day.
    """
    slot_levels = list(range(1, period + 1))
    day_levels = [int(d) for d in WEEKDAY_ORDER]
    slot_main = one_hot(slots, slot_levels, prefix="slot")
    day_main = one_hot(weekdays, day_levels, prefix="weekday", drop_first=True)
    slot_ref = one_hot(slots, slot_levels, prefix="slot", drop_first=True)
    pairs = interact(slot_ref, day_main)
    matrix = np.hstack([slot_main[0], day_main[0], pairs[0]])
    names = slot_main[1] + day_main[1] + pairs[1]

    return matrix, names

def week_codes(period: int) -> Tuple[NDArray[np.int_], NDArray[np.int_]]:
    """Slot and weekday codes of one Monday..Sunday week."""
    slots = np.tile(np.arange(1, period + 1), len(WEEKDAY_ORDER))
    weekdays = np.repeat([int(d) for d in WEEKDAY_ORDER], period)
    return slots, weekdays
