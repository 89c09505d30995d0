import numpy as np
import pytest

from conftest import make_board
from tetris_config import CLEAR, FREE
from tetris_core import (DELTAS, Board, Direction, Piece, PieceKind, Rotation, rotate_index,
                         rotation_count, rotations, spawn_col)


# ── piece catalog
@pytest.mark.parametrize("kind,count", [(PieceKind.I, 2), (PieceKind.O, 1), (PieceKind.T, 4),
                                        (PieceKind.S, 4), (PieceKind.Z, 4), (PieceKind.J, 4),
                                        (PieceKind.L, 4)])
def test_rotation_counts(kind, count):
    assert rotation_count(kind) == count
    for grid in rotations(kind):
        assert grid.shape[0] == grid.shape[1]
        assert set(np.unique(grid)) <= {0, int(kind)}
        assert np.count_nonzero(grid) == 4


def test_rotate_index_wraps():
    assert rotate_index(3, Rotation.CW, 4) == 0
    assert rotate_index(0, Rotation.CCW, 4) == 3
    assert rotate_index(0, Rotation.CW, 1) == 0


def test_unknown_kind_fails_fast():
    with pytest.raises(AssertionError):
        Piece(8)
    with pytest.raises(AssertionError):
        rotations(0)


def test_rotation_index_out_of_range():
    with pytest.raises(AssertionError):
        Piece(PieceKind.O, rotation=1)


def test_spawn_is_centered(config):
    assert Piece.spawn(PieceKind.I, config).col == 3
    assert Piece.spawn(PieceKind.T, config).col == 4
    assert Piece.spawn(PieceKind.O, config).col == 4
    assert spawn_col(3, 10) == 4


def test_rotate_points_at_catalog_grid():
    piece = Piece(PieceKind.T)
    piece.rotate(Rotation.CCW)
    assert piece.rotation == 3
    assert piece.cells is rotations(PieceKind.T)[3]
    assert not piece.cells.flags.writeable


def test_clone_is_independent():
    piece = Piece(PieceKind.L, rotation=2, row=5, col=3)
    copy = piece.clone()
    copy.rotate()
    copy.row += 1
    assert (piece.rotation, piece.row, piece.col) == (2, 5, 3)


# ── legality
def test_move_legal_walls_and_floor(board):
    piece = Piece(PieceKind.O, col=0)
    assert not board.is_move_legal(piece, Direction.LEFT)
    assert board.is_move_legal(piece, Direction.RIGHT)
    piece.col = board.cols - 2
    assert not board.is_move_legal(piece, Direction.RIGHT)
    piece.row = board.rows - 2
    assert not board.is_move_legal(piece, Direction.DOWN)


def test_move_blocked_by_blocks_not_by_sentinel(config):
    board = make_board(config, ["1.........", "1........."])
    piece = Piece(PieceKind.O, row=config.rows - 2, col=1)
    assert not board.is_move_legal(piece, Direction.LEFT)
    board.grid[board.grid == 1] = CLEAR
    assert board.is_move_legal(piece, Direction.LEFT)


def test_legal_move_never_overlaps(config):
    board = make_board(config, ["..3.......", ".333......"])
    for kind in PieceKind:
        for rot in range(rotation_count(kind)):
            for col in range(-3, config.cols):
                for row in range(config.rows - 4, config.rows):
                    piece = Piece(kind, rot, row, col)
                    for direction in Direction:
                        if board.is_move_legal(piece, direction):
                            dr, dc = DELTAS[direction]
                            for r, c in piece.cells_at(dr, dc):
                                assert 0 <= r < config.rows and 0 <= c < config.cols
                                assert board.grid[r, c] <= FREE


def test_rotation_legal_leaves_piece_untouched(board):
    piece = Piece(PieceKind.I, rotation=1, row=0, col=-2)     # vertical against the left wall
    assert not board.is_rotation_legal(piece, Rotation.CW)
    assert piece.rotation == 1
    piece.col = 3
    assert board.is_rotation_legal(piece, Rotation.CW)
    assert piece.rotation == 1


# ── placement
def test_drop_and_place(board):
    piece = Piece(PieceKind.I, col=0)
    assert board.drop(piece) == board.rows - 2         # row 1 of the grid holds the bar
    board.place(piece)
    assert list(board.grid[-1, :4]) == [1, 1, 1, 1]
    assert np.count_nonzero(board.grid) == 4


def test_place_clips_out_of_bounds(board):
    piece = Piece(PieceKind.I, rotation=0, row=-1, col=8)
    board.place(piece)
    assert list(board.grid[0, 8:]) == [1, 1]
    assert np.count_nonzero(board.grid) == 2


# ── row clearing
def test_completed_row_is_removed_one_call_later(config):
    board = make_board(config, [".111111111"])
    piece = Piece(PieceKind.I, rotation=1, col=-2)
    board.drop(piece)
    board.place(piece)

    assert board.clear_full_rows() == 0
    assert FREE not in board.grid[-1]
    assert not (board.grid == CLEAR).any()          # marks only live in staging
    assert (board.staging[-1] == CLEAR).all()

    board.commit_staged()
    assert board.clear_full_rows() == config.bonus
    assert list(board.grid[-1]) == [1] + [0] * 9
    assert np.count_nonzero(board.grid) == 3


def test_clear_is_idempotent_once_flushed(config):
    board = make_board(config, ["2222222222", "2222222222", "3........."])
    assert board.clear_full_rows() == 0
    board.commit_staged()
    assert board.clear_full_rows() == config.bonus
    assert board.clear_full_rows() == config.bonus
    assert board.clear_full_rows() == 0
    assert board.clear_full_rows() == 0
    assert list(board.grid[-1]) == [3] + [0] * 9


def test_two_phase_api(config):
    board = make_board(config, ["4444444444", "5.........", "4444444444"])
    assert board.mark_full_rows() == 2
    board.commit_staged()
    assert list(board.marked_rows()) == [config.rows - 3, config.rows - 1]
    assert board.collapse_marked_rows() == 2 * config.bonus
    assert list(board.grid[-1]) == [5] + [0] * 9
    assert np.count_nonzero(board.grid) == 1


def test_clear_now(config):
    board = make_board(config, ["6.........", "7777777777", "1.1.1.1.1.", "7777777777"])
    assert board.clear_full_rows_now() == 2 * config.bonus
    assert list(board.grid[-1]) == [1, 0] * 5
    assert list(board.grid[-2]) == [6] + [0] * 9
    assert board.clear_full_rows_now() == 0


def test_settled_does_not_touch_original(config):
    board = make_board(config, ["1111111111", "2........."])
    board.mark_full_rows()
    board.commit_staged()
    settled = board.settled()
    assert not len(settled.marked_rows())
    assert list(settled.grid[-1]) == [2] + [0] * 9
    assert len(board.marked_rows()) == 1


# ── state
def test_terminal_band(config):
    board = Board(config)
    assert not board.is_terminal()
    board.grid[config.hidden, 0] = 1                # first visible row
    assert not board.is_terminal()
    board.grid[config.hidden - 1, 5] = 3
    assert board.is_terminal()


def test_clone_round_trip(config):
    board = make_board(config, ["1.2.3.4.5."])
    before = board.grid.tobytes()
    copy = board.clone()
    copy.place(Piece(PieceKind.O, row=10, col=2))
    copy.clear_full_rows_now()
    copy.grid[-1] = 7
    assert board.grid.tobytes() == before


def test_str_renders_rows(small_config):
    board = make_board(small_config, ["12.4.."])
    assert str(board).splitlines()[-1] == "12 4  "
