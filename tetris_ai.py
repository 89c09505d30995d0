# tetris_ai.py – exhaustive placement search (rotation × column) ranked by the SBE
from __future__ import annotations
import math
from typing import Iterator, Mapping, NamedTuple, Optional, Sequence, Tuple, Union

from tetris_core import Board, Piece
from tetris_eval import DEFAULT_WEIGHTS, as_weights, score


class Placement(NamedTuple):
    column: int
    rotation: int
    score: float


def candidate_placements(board: Board, piece: Piece) -> Iterator[Tuple[int, int, Board]]:
    """Yield (column, rotation, trial board) for every legal resting position.

    Per rotation, in table order, every in-bounds anchor column is scanned
    left to right and kept when the piece fits at row 0; a blocked column
    does not hide the ones beyond it. Each trial board is a private clone
    holding the dropped piece.
    """
    probe = piece.clone()
    for rotation in range(probe.rotation_count):
        probe.set_rotation(rotation)
        probe.row, probe.col = 0, 0
        offsets = [c for _, c in probe.cells_at()]
        for col in range(-min(offsets), board.cols - max(offsets)):
            probe.col = col
            if not board.fits(probe):
                continue
            landed = probe.clone()
            board.drop(landed)
            trial = board.clone()
            trial.place(landed)
            yield col, rotation, trial


def best_score(board: Board, piece: Piece, weights: Sequence[float] = DEFAULT_WEIGHTS) -> float:
    return max((score(trial, weights) for _, _, trial in candidate_placements(board, piece)),
               default=-math.inf)


def select_move(board: Board, piece: Piece, next_piece: Optional[Piece] = None,
                weights: Sequence[float] = DEFAULT_WEIGHTS, *, lookahead: bool = False) -> Placement:
    """Best (column, rotation) for `piece` on `board`.

    Ties keep the first placement scanned. A score of -inf means every
    placement tops out, i.e. the game is lost whatever is chosen.
    """
    best: Optional[Placement] = None
    for col, rot, trial in candidate_placements(board, piece):
        value = score(trial, weights)
        trial.clear_full_rows_now()
        if lookahead and next_piece is not None and value > -math.inf:
            value += best_score(trial, next_piece, weights)
        if best is None or value > best.score:
            best = Placement(col, rot, value)
    if best is None:
        return Placement(piece.col, piece.rotation, -math.inf)
    return best


# ────────── Heuristic AI ──────────
class HeuristicAI:
    def __init__(self, weights: Union[Sequence[float], Mapping[str, float], None] = None,
                 *, lookahead: bool = False):
        self.weights = DEFAULT_WEIGHTS if weights is None else as_weights(weights)
        self.lookahead = lookahead

    def best_move(self, board: Board, piece: Piece, next_piece: Optional[Piece] = None) -> Placement:
        return select_move(board, piece, next_piece, self.weights, lookahead=self.lookahead)

    def __repr__(self) -> str:
        return f"HeuristicAI({tuple(round(w, 3) for w in self.weights)}, lookahead={self.lookahead})"
