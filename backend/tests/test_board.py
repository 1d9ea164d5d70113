import random

import pytest

from quizgrid.services.games.board import (
    Board,
    choose_starting_tile,
    evenly_spaced_edge_cell,
    is_claimable,
)

A, B = 1, 2


def test_orthogonal_neighbour_is_claimable():
    board = Board(4, {(0, 0): A})
    assert is_claimable(board, (1, 0), A)
    assert is_claimable(board, (0, 1), A)


def test_diagonal_never_counts():
    board = Board(4, {(1, 1): A})
    for tile in [(0, 0), (2, 2), (0, 2), (2, 0)]:
        assert not is_claimable(board, tile, A)


def test_distant_tile_is_not_claimable():
    board = Board(4, {(0, 0): A})
    assert not is_claimable(board, (2, 0), A)
    assert not is_claimable(board, (3, 3), A)


def test_owned_tile_is_not_claimable_even_when_adjacent():
    board = Board(4, {(0, 0): A, (1, 0): B})
    assert not is_claimable(board, (1, 0), A)
    assert not is_claimable(board, (0, 0), B)


def test_adjacency_to_another_players_tile_does_not_help():
    board = Board(4, {(0, 0): A, (3, 3): B})
    assert not is_claimable(board, (3, 2), A)
    assert is_claimable(board, (3, 2), B)


def test_edges_do_not_wrap():
    board = Board(4, {(0, 0): A})
    assert not is_claimable(board, (3, 0), A)
    assert not is_claimable(board, (0, 3), A)
    assert not is_claimable(board, (-1, 0), A)
    assert not is_claimable(board, (4, 0), A)


def test_corner_and_centre_neighbour_counts():
    board = Board(5)
    assert sorted(board.neighbors(0, 0)) == [(0, 1), (1, 0)]
    assert len(list(board.neighbors(0, 2))) == 3
    assert len(list(board.neighbors(2, 2))) == 4


def test_claimable_tiles_lists_vacant_frontier():
    board = Board(4, {(0, 0): A, (1, 0): A, (0, 1): B})
    assert board.claimable_tiles(A) == [(1, 1), (2, 0)]
    assert board.claimable_tiles(B) == [(0, 2), (1, 1)]


def test_board_rejects_out_of_range_owner():
    with pytest.raises(ValueError):
        Board(3, {(3, 0): A})


def test_perimeter_walks_every_edge_cell_once():
    board = Board(4)
    cells = board.perimeter()
    assert len(cells) == 12
    assert len(set(cells)) == 12
    assert cells[:4] == [(0, 0), (1, 0), (2, 0), (3, 0)]
    assert all(x in (0, 3) or y in (0, 3) for x, y in cells)


def test_evenly_spaced_positions_for_two_players_are_opposite_corners():
    board = Board(4)
    assert evenly_spaced_edge_cell(board, 0, 1) == (0, 0)
    assert evenly_spaced_edge_cell(board, 1, 2) == (3, 3)


def test_starting_tile_prefers_evenly_spaced_cell():
    board = Board(10)
    assert choose_starting_tile(board, 0, rng=random.Random(1)) == (0, 0)
    board.set_owner(0, 0, A)
    # perimeter of 36 cells, second of two players lands halfway round
    assert choose_starting_tile(board, 1, rng=random.Random(1)) == (9, 9)


def test_starting_tiles_never_collide():
    rng = random.Random(7)
    for size in (4, 8, 10, 12):
        board = Board(size)
        capacity = len(board.perimeter())
        for index in range(capacity):
            cell = choose_starting_tile(board, index, rng=rng)
            assert cell is not None
            assert not board.is_owned(*cell)
            board.set_owner(*cell, index + 1)


def test_falls_back_to_centre_when_edge_is_full():
    board = Board(5)
    for i, cell in enumerate(board.perimeter()):
        board.set_owner(*cell, i + 1)
    assert choose_starting_tile(board, 16, attempts=5, rng=random.Random(3)) == (2, 2)


def test_returns_none_when_nothing_is_free():
    board = Board(3)
    for i, cell in enumerate(board.perimeter() + [board.center]):
        board.set_owner(*cell, i + 1)
    assert choose_starting_tile(board, 9, attempts=5, rng=random.Random(3)) is None
