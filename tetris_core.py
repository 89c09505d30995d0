# tetris_core.py – piece catalog and board logic shared by the AI, the game and the trainer
from __future__ import annotations
import math
from enum import IntEnum
from typing import Dict, Iterator, List, Optional, Tuple

import numpy as np

from tetris_config import CLEAR, DEFAULT_CONFIG, FREE, GameConfig


class PieceKind(IntEnum):
    I = 1
    O = 2
    T = 3
    S = 4
    Z = 5
    J = 6
    L = 7


class Direction(IntEnum):
    DOWN = 0
    LEFT = 1
    RIGHT = 2


class Rotation(IntEnum):
    CW = 1
    CCW = -1


DELTAS: Dict[Direction, Tuple[int, int]] = {
    Direction.DOWN: (1, 0), Direction.LEFT: (0, -1), Direction.RIGHT: (0, 1),
}

# ────────── rotation tables (row 0 = top) ──────────
_TABLES: Dict[PieceKind, List[List[List[int]]]] = {
    PieceKind.I: [[[0, 0, 0, 0], [1, 1, 1, 1], [0, 0, 0, 0], [0, 0, 0, 0]],
                  [[0, 0, 1, 0], [0, 0, 1, 0], [0, 0, 1, 0], [0, 0, 1, 0]]],
    PieceKind.O: [[[1, 1], [1, 1]]],
    PieceKind.T: [[[0, 1, 0], [1, 1, 1], [0, 0, 0]], [[0, 1, 0], [0, 1, 1], [0, 1, 0]],
                  [[0, 0, 0], [1, 1, 1], [0, 1, 0]], [[0, 1, 0], [1, 1, 0], [0, 1, 0]]],
    PieceKind.S: [[[0, 1, 1], [1, 1, 0], [0, 0, 0]], [[0, 1, 0], [0, 1, 1], [0, 0, 1]],
                  [[0, 0, 0], [0, 1, 1], [1, 1, 0]], [[1, 0, 0], [1, 1, 0], [0, 1, 0]]],
    PieceKind.Z: [[[1, 1, 0], [0, 1, 1], [0, 0, 0]], [[0, 0, 1], [0, 1, 1], [0, 1, 0]],
                  [[0, 0, 0], [1, 1, 0], [0, 1, 1]], [[0, 1, 0], [1, 1, 0], [1, 0, 0]]],
    PieceKind.J: [[[1, 0, 0], [1, 1, 1], [0, 0, 0]], [[0, 1, 1], [0, 1, 0], [0, 1, 0]],
                  [[0, 0, 0], [1, 1, 1], [0, 0, 1]], [[0, 1, 0], [0, 1, 0], [1, 1, 0]]],
    PieceKind.L: [[[0, 0, 1], [1, 1, 1], [0, 0, 0]], [[0, 1, 0], [0, 1, 0], [0, 1, 1]],
                  [[0, 0, 0], [1, 1, 1], [1, 0, 0]], [[1, 1, 0], [0, 1, 0], [0, 1, 0]]],
}


def _freeze(kind: PieceKind, table: List[List[int]]) -> np.ndarray:
    grid = np.array(table, dtype=np.int8) * int(kind)
    grid.setflags(write=False)
    return grid


PIECE_SHAPES: Dict[PieceKind, Tuple[np.ndarray, ...]] = {
    k: tuple(_freeze(k, t) for t in tables) for k, tables in _TABLES.items()
}
# occupied (row, col) offsets per rotation, precomputed for the hot loops
_OFFSETS: Dict[PieceKind, Tuple[Tuple[Tuple[int, int], ...], ...]] = {
    k: tuple(tuple((int(r), int(c)) for r, c in zip(*np.nonzero(g))) for g in grids)
    for k, grids in PIECE_SHAPES.items()
}


def rotations(kind: int) -> Tuple[np.ndarray, ...]:
    assert kind in PIECE_SHAPES, f"unknown piece kind {kind!r}"
    return PIECE_SHAPES[PieceKind(kind)]


def rotation_count(kind: int) -> int:
    return len(rotations(kind))


def rotate_index(current: int, direction: int, count: int) -> int:
    assert direction in (Rotation.CW, Rotation.CCW), direction
    return (current + direction) % count


def spawn_col(size: int, cols: int) -> int:
    """Anchor column that centers a `size` wide grid."""
    return math.floor(-size / 2 + cols / 2 + .5)


# ───────────── Piece ─────────────
class Piece:
    __slots__ = ("kind", "rotation", "row", "col")

    def __init__(self, kind: int, rotation: int = 0, row: int = 0, col: int = 0):
        assert kind in PIECE_SHAPES, f"unknown piece kind {kind!r}"
        self.kind = PieceKind(kind)
        self.row, self.col = row, col
        self.rotation = 0
        self.set_rotation(rotation)

    @classmethod
    def spawn(cls, kind: int, config: GameConfig = DEFAULT_CONFIG) -> "Piece":
        size = len(rotations(kind)[0])
        return cls(kind, col=spawn_col(size, config.cols))

    @property
    def cells(self) -> np.ndarray:
        return PIECE_SHAPES[self.kind][self.rotation]

    @property
    def size(self) -> int:
        return len(self.cells)

    @property
    def rotation_count(self) -> int:
        return len(PIECE_SHAPES[self.kind])

    def set_rotation(self, rotation: int):
        assert 0 <= rotation < self.rotation_count, f"rotation {rotation} out of range for {self.kind.name}"
        self.rotation = rotation

    def rotate(self, direction: int = Rotation.CW):
        self.rotation = rotate_index(self.rotation, direction, self.rotation_count)

    def cells_at(self, dr: int = 0, dc: int = 0) -> Iterator[Tuple[int, int]]:
        for r, c in _OFFSETS[self.kind][self.rotation]:
            yield self.row + r + dr, self.col + c + dc

    def clone(self) -> "Piece":
        return Piece(self.kind, self.rotation, self.row, self.col)

    def __repr__(self) -> str:
        return f"Piece({self.kind.name}, rot={self.rotation}, row={self.row}, col={self.col})"


# ───────────── Board ─────────────
class Board:
    """Grid of cell values with collision tests and row clearing.

    `staging` receives rows marked for removal so the marks only become
    visible to collision checks and features after `commit_staged()`.
    Outside that window it is the same array as `grid`.
    """

    def __init__(self, config: GameConfig = DEFAULT_CONFIG, grid: Optional[np.ndarray] = None):
        self.config = config
        if grid is None:
            grid = np.zeros((config.rows, config.cols), dtype=np.int8)
        assert grid.shape == (config.rows, config.cols), grid.shape
        self.grid = grid
        self.staging = self.grid

    @property
    def rows(self) -> int:
        return self.config.rows

    @property
    def cols(self) -> int:
        return self.config.cols

    # ── legality
    def fits(self, piece: Piece, dr: int = 0, dc: int = 0) -> bool:
        rows, cols = self.grid.shape
        for r, c in piece.cells_at(dr, dc):
            if r < 0 or r >= rows or c < 0 or c >= cols:
                return False
            if self.grid[r, c] > FREE:
                return False
        return True

    def is_move_legal(self, piece: Piece, direction: Direction) -> bool:
        return self.fits(piece, *DELTAS[direction])

    def is_rotation_legal(self, piece: Piece, direction: int = Rotation.CW) -> bool:
        probe = piece.clone()
        probe.rotate(direction)
        return self.fits(probe)

    def drop(self, piece: Piece) -> int:
        """Move `piece` down while legal; returns its resting row."""
        while self.fits(piece, 1, 0):
            piece.row += 1
        return piece.row

    # ── placement
    def place(self, piece: Piece):
        rows, cols = self.grid.shape
        for r, c in piece.cells_at():
            if 0 <= r < rows and 0 <= c < cols:
                self.grid[r, c] = piece.kind

    # ── row clearing
    def full_rows(self) -> np.ndarray:
        return np.flatnonzero((self.grid != FREE).all(axis=1))

    def marked_rows(self) -> np.ndarray:
        return np.flatnonzero((self.grid == CLEAR).any(axis=1))

    def mark_full_rows(self) -> int:
        full = self.full_rows()
        self.staging = self.grid.copy()
        self.staging[full] = CLEAR
        return len(full)

    def commit_staged(self):
        self.grid = self.staging

    def _collapse(self, row: int):
        self.grid[1:row + 1] = self.grid[:row].copy()
        self.grid[0] = FREE

    def collapse_marked_rows(self, limit: Optional[int] = None) -> int:
        removed = 0
        while limit is None or removed < limit:
            marked = self.marked_rows()
            if not len(marked):
                break
            self._collapse(int(marked[-1]))     # lowest first
            removed += 1
        return removed * self.config.bonus

    def clear_full_rows(self) -> int:
        """Staged clear: remove one marked row, or mark completed rows for a later call."""
        if len(self.marked_rows()):
            return self.collapse_marked_rows(limit=1)
        self.mark_full_rows()
        return 0

    def clear_full_rows_now(self) -> int:
        full = self.full_rows()
        if not len(full):
            return 0
        kept = np.delete(self.grid, full, axis=0)
        self.grid[:len(full)] = FREE
        self.grid[len(full):] = kept
        return len(full) * self.config.bonus

    # ── state
    def is_terminal(self) -> bool:
        return bool((self.grid[:self.config.hidden] > FREE).any())

    def clone(self) -> "Board":
        return Board(self.config, self.grid.copy())

    def settled(self) -> "Board":
        """Clone with every pending row removal applied."""
        board = self.clone()
        board.collapse_marked_rows()
        return board

    def __str__(self) -> str:
        return "\n".join("".join(" " if v == FREE else ("x" if v == CLEAR else str(v)) for v in row)
                         for row in self.grid)
