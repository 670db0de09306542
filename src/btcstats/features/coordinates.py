"""Dictionary of binary/ternary texture correlation coordinates.

Texture statistics are computed over 2x2 "gliders" whose pixels are
labeled

    A B
    C D

Each coordinate correlates a subset of the glider. Coordinates are grouped
by order kind; within a kind, the standard member has rotation 0 (b, d and
t are standard for beta_hv, beta_diag and theta) and the others are rotated
copies of it.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

ORDER_KINDS: tuple[str, ...] = ("gamma", "beta_hv", "beta_diag", "theta", "alpha")


@dataclass(frozen=True)
class Coordinate:
    """One texture coordinate.

    Attributes:
        code: Single-letter code.
        order_kind: Name of the coordinate's order kind.
        rotation: Rotation index relative to the standard member of its kind.
        positions: Glider pixels entering the correlation.
    """

    code: str
    order_kind: str
    rotation: int
    positions: tuple[str, ...]

    @property
    def order(self) -> int:
        """Number of glider pixels correlated by this coordinate."""
        return len(self.positions)


COORDINATES: tuple[Coordinate, ...] = (
    Coordinate("g", "gamma", 0, ("A",)),
    Coordinate("b", "beta_hv", 0, ("A", "B")),
    Coordinate("c", "beta_hv", 1, ("A", "C")),
    Coordinate("d", "beta_diag", 0, ("A", "D")),
    Coordinate("e", "beta_diag", 1, ("B", "C")),
    Coordinate("t", "theta", 0, ("A", "B", "C")),
    Coordinate("u", "theta", 1, ("A", "B", "D")),
    Coordinate("v", "theta", 2, ("A", "C", "D")),
    Coordinate("w", "theta", 3, ("B", "C", "D")),
    Coordinate("a", "alpha", 0, ("A", "B", "C", "D")),
)

_BY_CODE: dict[str, Coordinate] = {coord.code: coord for coord in COORDINATES}


def get_coordinate(code: str) -> Coordinate:
    """Look up a coordinate by its letter code.

    Raises:
        ValueError: If the code is unknown.
    """
    try:
        return _BY_CODE[code]
    except KeyError:
        raise ValueError(
            f"Unknown coordinate code '{code}'. Known: {''.join(_BY_CODE)}"
        ) from None


def coordinate_kinds(codes: Iterable[str]) -> dict[str, list[int]]:
    """Group letter codes by order kind, recording their rotations.

    Every order kind is present in the output; kinds not represented by any
    of the codes map to an empty list.

    Args:
        codes: Letter codes, e.g. "bcdt" or ["b", "c"].

    Returns:
        Mapping order kind -> rotations present, in input order.

    Raises:
        ValueError: If a code is unknown.
    """
    kinds: dict[str, list[int]] = {kind: [] for kind in ORDER_KINDS}
    for code in codes:
        coord = get_coordinate(code)
        kinds[coord.order_kind].append(coord.rotation)
    return kinds
