"""
Hexagonal grid mathematics for the battlefield.

This module implements the coordinate operations used by the battle grid.
It supports:
- Parity-dependent neighbour lookup on an offset-row layout
- Distance metrics used by targeting and path heuristics
- Pixel-space centres, used to project straight lines across the grid

Coordinate System:
------------------
The battlefield uses "offset rows" addressed by ``(row, column)``. Odd rows
(``row % 2 == 1``) are flush with the left edge, even rows are shifted right by
half a hex. As a result the six neighbour offsets depend on row parity.

Pixel space uses unit hexes (side length 1, pointy top): a hex is
``sqrt(3)`` wide and 2 tall, and consecutive rows are 1.5 apart.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

HEX_SIDE = 1.0
HEX_HALF_WIDTH = math.sqrt(HEX_SIDE**2 - (HEX_SIDE / 2) ** 2)
HEX_WIDTH = HEX_HALF_WIDTH * 2
HEX_HEIGHT = HEX_SIDE * 2
ROW_STEP = HEX_SIDE * 1.5


@dataclass(frozen=True)
class Position:
    """
    A battlefield cell addressed by row and column.

    Example:
        >>> Position(row=2, column=3)
        Position(row=2, column=3)
    """

    row: int
    column: int


# (column delta, row delta), ordered W, NW, NE, E, SE, SW
NEIGHBOR_OFFSETS: dict[bool, tuple[tuple[int, int], ...]] = {
    True: ((-1, 0), (-1, -1), (0, -1), (1, 0), (0, 1), (-1, 1)),
    False: ((-1, 0), (0, -1), (1, -1), (1, 0), (1, 1), (0, 1)),
}


def is_flush_row(row: int) -> bool:
    """
    Return True for rows that are not shifted by half a hex.

    Args:
        row: Row index

    Returns:
        True when ``row`` is odd

    Example:
        >>> is_flush_row(1), is_flush_row(2)
        (True, False)
    """
    return row % 2 == 1


def neighbor_offsets(row: int) -> tuple[tuple[int, int], ...]:
    """Return the six ``(column, row)`` deltas valid for the given row."""
    return NEIGHBOR_OFFSETS[is_flush_row(row)]


def hex_neighbors(position: Position) -> list[Position]:
    """
    Return all six neighbours of a cell, without any bounds checking.

    Args:
        position: The centre cell

    Returns:
        Neighbouring positions ordered W, NW, NE, E, SE, SW

    Example:
        >>> hex_neighbors(Position(1, 1))[0]
        Position(row=1, column=0)
    """
    return [
        Position(row=position.row + d_row, column=position.column + d_column)
        for d_column, d_row in neighbor_offsets(position.row)
    ]


def are_adjacent(a: Position, b: Position) -> bool:
    """Return True if ``b`` is one of the six neighbours of ``a``."""
    return b in hex_neighbors(a)


def chebyshev_distance(a: Position, b: Position) -> int:
    """
    Distance used to find the closest stack: the larger of row/column deltas.

    Example:
        >>> chebyshev_distance(Position(0, 0), Position(3, 1))
        3
    """
    return max(abs(a.row - b.row), abs(a.column - b.column))


def manhattan_distance(a: Position, b: Position) -> int:
    """
    Sum of row and column deltas, the admissible-enough A* heuristic.

    Example:
        >>> manhattan_distance(Position(0, 0), Position(3, 1))
        4
    """
    return abs(a.row - b.row) + abs(a.column - b.column)


def pixel_center(position: Position) -> tuple[float, float]:
    """
    Return the pixel-space centre of a cell.

    Args:
        position: Cell to convert

    Returns:
        ``(x, y)`` tuple in unit-hex space
    """
    shift = 0.0 if is_flush_row(position.row) else HEX_HALF_WIDTH
    x = shift + HEX_WIDTH * position.column + HEX_HALF_WIDTH
    y = ROW_STEP * position.row + HEX_SIDE
    return x, y


def position_at_point(x: float, y: float, rows: int, columns: int) -> Position | None:
    """
    Find the cell containing a pixel-space point.

    Hexes tile the plane, so the containing cell is the one with the nearest
    centre. Points farther than one circumradius from every centre lie
    outside the grid.

    Args:
        x: Horizontal pixel coordinate
        y: Vertical pixel coordinate
        rows: Number of grid rows
        columns: Number of grid columns

    Returns:
        The containing position, or None when the point is off the grid
    """
    approx_row = round((y - HEX_SIDE) / ROW_STEP)
    best: Position | None = None
    best_distance = math.inf
    for row in range(approx_row - 1, approx_row + 2):
        if not 0 <= row < rows:
            continue
        shift = 0.0 if is_flush_row(row) else HEX_HALF_WIDTH
        approx_column = round((x - shift - HEX_HALF_WIDTH) / HEX_WIDTH)
        for column in range(approx_column - 1, approx_column + 2):
            if not 0 <= column < columns:
                continue
            cx, cy = pixel_center(Position(row, column))
            distance = math.hypot(x - cx, y - cy)
            if distance < best_distance:
                best_distance = distance
                best = Position(row, column)
    if best is None or best_distance > HEX_SIDE:
        return None
    return best


def project_through(
    origin: Position,
    through: Position,
    *,
    widths: float,
    rows: int,
    columns: int,
) -> Position | None:
    """
    Project a line from ``origin`` through ``through`` and return the cell it ends in.

    The direction is normalised in pixel space, then scaled independently by
    ``widths`` hex widths horizontally and ``widths`` hex heights vertically.

    Args:
        origin: Start of the line
        through: Cell the line passes through (defines the direction)
        widths: How many hex widths/heights to travel from ``origin``
        rows: Number of grid rows
        columns: Number of grid columns

    Returns:
        The cell under the projected point, or None if it falls off the grid
    """
    ox, oy = pixel_center(origin)
    tx, ty = pixel_center(through)
    length = math.hypot(tx - ox, ty - oy)
    if length == 0:
        return None
    x = ox + (tx - ox) / length * HEX_WIDTH * widths
    y = oy + (ty - oy) / length * HEX_HEIGHT * widths
    return position_at_point(x, y, rows, columns)
