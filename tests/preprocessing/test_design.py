from __future__ import annotations

import numpy as np
import pytest

from smart_meter_forecasting.preprocessing.design import (
    build_design_matrix,
    interact,
    one_hot,
    week_codes,
)


def test_one_hot_columns_are_orthogonal_indicators() -> None:
    matrix, names = one_hot([1, 2, 3, 2], [1, 2, 3], prefix="slot")

    gram = matrix.T @ matrix
    assert names == ["slot[1]", "slot[2]", "slot[3]"]
    assert np.array_equal(gram, np.diag([1.0, 2.0, 1.0]))
    assert np.array_equal(matrix.sum(axis=1), np.ones(4))


def test_one_hot_drop_first_uses_first_level_as_reference() -> None:
    matrix, names = one_hot([1, 2, 3], [1, 2, 3], prefix="weekday", drop_first=True)

    assert names == ["weekday[2]", "weekday[3]"]
    assert np.array_equal(matrix[0], [0.0, 0.0])


def test_one_hot_rejects_unknown_codes() -> None:
    with pytest.raises(ValueError, match="not levels"):
        one_hot([1, 9], [1, 2], prefix="slot")


def test_interact_multiplies_every_column_pair() -> None:
    left = one_hot([1, 2], [1, 2], prefix="a")
    right = one_hot([1, 1], [1, 2], prefix="b")

    matrix, names = interact(left, right)

    assert names == ["a[1]:b[1]", "a[1]:b[2]", "a[2]:b[1]", "a[2]:b[2]"]
    assert np.array_equal(matrix, [[1, 0, 0, 0], [0, 0, 1, 0]])


@pytest.mark.parametrize("period", [2, 4, 8])
def test_design_has_one_column_per_cell_and_full_rank(period: int) -> None:
    slots, weekdays = week_codes(period)
    slots = np.tile(slots, 2)
    weekdays = np.tile(weekdays, 2)

    matrix, names = build_design_matrix(slots, weekdays, period)

    assert matrix.shape == (14 * period, 7 * period)
    assert len(names) == period + 6 + 6 * (period - 1)
    assert np.linalg.matrix_rank(matrix) == 7 * period


def test_design_is_rank_deficient_without_a_weekday() -> None:
    slots, weekdays = week_codes(4)
    keep = weekdays != 7

    matrix, _ = build_design_matrix(slots[keep], weekdays[keep], 4)

    assert np.linalg.matrix_rank(matrix) < matrix.shape[1]


def test_week_codes_are_monday_first_and_slot_ascending() -> None:
    slots, weekdays = week_codes(3)

    assert slots[:4].tolist() == [1, 2, 3, 1]
    assert weekdays[:4].tolist() == [1, 1, 1, 2]
    assert weekdays[-1] == 7
