# tetris_game.py – headless game loop (gravity, 7-bag, staged clears) driven by the AI
from __future__ import annotations
import argparse
import logging
import pathlib
import random
import time
from typing import List, Optional

from tetris_ai import HeuristicAI
from tetris_config import DEFAULT_CONFIG, GameConfig, TrainerConfig
from tetris_core import DELTAS, Board, Direction, Piece, PieceKind, Rotation
from tetris_eval import load_weights

logger = logging.getLogger(__name__)


class Game:
    def __init__(self, config: GameConfig = DEFAULT_CONFIG, ai: Optional[HeuristicAI] = None,
                 *, use_ai: bool = True, rng: Optional[random.Random] = None):
        self.config = config
        self.ai = ai or HeuristicAI()
        self.use_ai = use_ai
        self.rng = rng or random.Random()
        self.reset()

    def reset(self):
        self.board = Board(self.config)
        self.score = 0
        self.ticks = 0
        self.over = False
        self.ai_moved = False
        self.bag: List[int] = []
        self.current = self._next()
        self.next_piece = self._next()

    # 7 kinds per shuffled bag
    def _new_bag(self) -> List[int]:
        bag = [int(k) for k in PieceKind]
        self.rng.shuffle(bag)
        return bag

    def _next(self) -> Piece:
        if not self.bag:
            self.bag = self._new_bag()
        return Piece.spawn(self.bag.pop(), self.config)

    @property
    def rows_cleared(self) -> int:
        return self.score // self.config.bonus

    # ── moves
    def move_piece(self, direction: Direction):
        piece = self.current
        if self.board.is_move_legal(piece, direction):
            dr, dc = DELTAS[direction]
            piece.row += dr
            piece.col += dc
        elif direction == Direction.DOWN:
            self.board.place(piece)
            self.current, self.next_piece = self.next_piece, self._next()
            self.ai_moved = False
        self.score += self.board.clear_full_rows()

    def rotate_piece(self, direction: Rotation = Rotation.CW):
        if self.board.is_rotation_legal(self.current, direction):
            self.current.rotate(direction)

    def ai_move(self):
        move = self.ai.best_move(self.board.settled(), self.current, self.next_piece)
        self.current.col = move.column
        self.current.set_rotation(move.rotation)
        self.ai_moved = True

    def tick(self) -> bool:
        self.board.commit_staged()
        if self.use_ai and not self.ai_moved:
            self.ai_move()
        if not self.use_ai or self.ai_moved:
            self.move_piece(Direction.DOWN)
        self.ticks += 1
        self.over = self.board.is_terminal()
        return not self.over

    def play(self, max_ticks: Optional[int] = None, max_seconds: Optional[float] = None) -> int:
        """Run until game over or a budget runs out; returns the score."""
        start = time.monotonic()
        while self.tick():
            if max_ticks is not None and self.ticks >= max_ticks:
                logger.debug("tick budget reached after %d ticks (score %d)", self.ticks, self.score)
                break
            if max_seconds is not None and time.monotonic() - start >= max_seconds:
                logger.debug("time budget reached after %d ticks (score %d)", self.ticks, self.score)
                break
        else:
            logger.debug("game over after %d ticks (score %d)", self.ticks, self.score)
        return self.score


# ─────────────────── main ───────────────────────
def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Play one headless AI game.")
    p.add_argument("--weights", type=pathlib.Path, default=pathlib.Path("best_weights.json"))
    p.add_argument("--seed", type=int, default=None)
    p.add_argument("--max-ticks", type=int, default=None)
    p.add_argument("--max-seconds", type=float, default=TrainerConfig().max_seconds)
    p.add_argument("--lookahead", action="store_true")
    p.add_argument("--rows", type=int, default=DEFAULT_CONFIG.rows)
    p.add_argument("--cols", type=int, default=DEFAULT_CONFIG.cols)
    p.add_argument("--hidden", type=int, default=DEFAULT_CONFIG.hidden)
    p.add_argument("-v", "--verbose", action="store_true")
    return p


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s %(name)s %(message)s")

    weights = load_weights(args.weights) if args.weights.exists() else None
    ai = HeuristicAI(weights, lookahead=args.lookahead)
    config = GameConfig(rows=args.rows, cols=args.cols, hidden=args.hidden)
    game = Game(config, ai, rng=random.Random(args.seed))
    score = game.play(max_ticks=args.max_ticks, max_seconds=args.max_seconds)
    print(f"{ai}: score {score}, rows {game.rows_cleared}, ticks {game.ticks}")
    print(game.board)


if __name__ == "__main__":  # pragma: no cover
    main()
