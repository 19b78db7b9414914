"""
Test suite for battlefield hex math.

The battlefield uses offset rows: odd rows are flush with the left edge and
even rows are shifted right by half a hex, so neighbour offsets depend on the
row parity.  Pixel-space helpers are used to project the dragon breath line.
"""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from hexbattle.utils.hex_math import (
    HEX_HALF_WIDTH,
    Position,
    are_adjacent,
    chebyshev_distance,
    hex_neighbors,
    is_flush_row,
    manhattan_distance,
    pixel_center,
    position_at_point,
    project_through,
)


class TestPosition:
    """Test the Position dataclass."""

    def test_positions_compare_by_value(self) -> None:
        assert Position(2, 3) == Position(row=2, column=3)
        assert Position(2, 3) != Position(3, 2)

    def test_positions_are_hashable(self) -> None:
        assert len({Position(1, 1), Position(1, 1)}) == 1


class TestNeighbors:
    """Test parity-dependent neighbour lookup."""

    def test_row_parity(self) -> None:
        assert is_flush_row(1)
        assert not is_flush_row(0)

    def test_flush_row_neighbors(self) -> None:
        """Odd rows reach up-left and down-left."""
        assert hex_neighbors(Position(1, 1)) == [
            Position(1, 0),
            Position(0, 0),
            Position(0, 1),
            Position(1, 2),
            Position(2, 1),
            Position(2, 0),
        ]

    def test_shifted_row_neighbors(self) -> None:
        """Even rows reach up-right and down-right."""
        assert hex_neighbors(Position(2, 2)) == [
            Position(2, 1),
            Position(1, 2),
            Position(1, 3),
            Position(2, 3),
            Position(3, 3),
            Position(3, 2),
        ]

    @given(
        row=st.integers(min_value=0, max_value=10),
        column=st.integers(min_value=0, max_value=14),
    )
    def test_adjacency_is_symmetric(self, row: int, column: int) -> None:
        position = Position(row, column)
        for neighbor in hex_neighbors(position):
            assert are_adjacent(neighbor, position)

    def test_cell_is_not_its_own_neighbor(self) -> None:
        assert not are_adjacent(Position(4, 4), Position(4, 4))


class TestDistances:
    def test_chebyshev(self) -> None:
        assert chebyshev_distance(Position(0, 0), Position(3, 1)) == 3
        assert chebyshev_distance(Position(5, 5), Position(5, 5)) == 0

    def test_manhattan(self) -> None:
        assert manhattan_distance(Position(0, 0), Position(3, 1)) == 4


class TestPixelSpace:
    def test_shifted_rows_start_half_a_hex_right(self) -> None:
        flush_x, _ = pixel_center(Position(1, 0))
        shifted_x, _ = pixel_center(Position(0, 0))
        assert shifted_x - flush_x == pytest.approx(HEX_HALF_WIDTH)

    @given(
        row=st.integers(min_value=0, max_value=10),
        column=st.integers(min_value=0, max_value=14),
    )
    def test_centre_maps_back_to_its_cell(self, row: int, column: int) -> None:
        x, y = pixel_center(Position(row, column))
        assert position_at_point(x, y, 11, 15) == Position(row, column)

    def test_point_outside_grid(self) -> None:
        assert position_at_point(-10.0, -10.0, 11, 15) is None

    def test_projection_along_a_row(self) -> None:
        end = project_through(Position(5, 5), Position(5, 6), widths=2, rows=11, columns=15)
        assert end == Position(5, 7)

    def test_projection_off_the_grid(self) -> None:
        end = project_through(Position(5, 13), Position(5, 14), widths=2, rows=11, columns=15)
        assert end is None

    def test_projection_needs_a_direction(self) -> None:
        assert project_through(Position(5, 5), Position(5, 5), widths=2, rows=11, columns=15) is None
