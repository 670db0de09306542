"""Tests for the texture coordinate dictionary."""

from __future__ import annotations

import pytest

from btcstats.features import COORDINATES, ORDER_KINDS, coordinate_kinds, get_coordinate


def test_ten_coordinates_with_unique_codes() -> None:
    codes = [coord.code for coord in COORDINATES]
    assert codes == list("gbcdetuvwa")


@pytest.mark.parametrize(
    ("code", "kind", "order"),
    [
        ("g", "gamma", 1),
        ("b", "beta_hv", 2),
        ("e", "beta_diag", 2),
        ("w", "theta", 3),
        ("a", "alpha", 4),
    ],
)
def test_get_coordinate(code: str, kind: str, order: int) -> None:
    coord = get_coordinate(code)
    assert coord.order_kind == kind
    assert coord.order == order


def test_get_coordinate_unknown() -> None:
    with pytest.raises(ValueError, match="Unknown coordinate code"):
        get_coordinate("z")


def test_coordinate_kinds_groups_rotations() -> None:
    kinds = coordinate_kinds("bctw")
    assert list(kinds) == list(ORDER_KINDS)
    assert kinds["beta_hv"] == [0, 1]
    assert kinds["theta"] == [0, 3]
    assert kinds["gamma"] == []
    assert kinds["alpha"] == []


def test_coordinate_kinds_unknown_code() -> None:
    with pytest.raises(ValueError, match="Unknown coordinate code"):
        coordinate_kinds(["b", "q"])
