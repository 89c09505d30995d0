# tetris_eval.py – static board evaluation (SBE): feature extraction + weighted score
from __future__ import annotations
import json
import math
import pathlib
from typing import Mapping, NamedTuple, Sequence, Union

import numpy as np

from tetris_config import FREE
from tetris_core import Board


class Features(NamedTuple):
    holes: int
    jaggedness: int
    height: int
    filled_rows: int


class Weights(NamedTuple):
    holes: float
    jaggedness: float
    height: float
    filled_rows: float


FEATURES = Features._fields
NEGATIVE_FEATURES = ("holes", "jaggedness", "height")      # conventionally penalized

DEFAULT_WEIGHTS = Weights(
    holes=-0.9699411317621118,
    jaggedness=-0.11608888863398259,
    height=-0.4320928025669635,
    filled_rows=0.951499783994008,
)


def as_weights(values: Union[Sequence[float], Mapping[str, float]]) -> Weights:
    """Weights from a 4-sequence or a dict keyed by feature name."""
    if isinstance(values, Mapping):
        return Weights(**{f: float(values[f]) for f in FEATURES})
    assert len(values) == len(FEATURES), f"expected {len(FEATURES)} weights, got {len(values)}"
    return Weights(*(float(v) for v in values))


def column_heights(grid: np.ndarray) -> np.ndarray:
    occupied = grid != FREE
    top = occupied.argmax(axis=0)
    return np.where(occupied.any(axis=0), grid.shape[0] - top, 0)


def extract_features(board: Board) -> Features:
    grid = board.grid
    occupied = grid != FREE
    heights = column_heights(grid)
    # every occupied cell sits at or below its column top, so the rest of the span is holes
    return Features(
        holes=int(heights.sum() - occupied.sum()),
        jaggedness=int(np.abs(np.diff(heights)).sum()),
        height=int(heights.sum()),
        filled_rows=int(occupied.all(axis=1).sum()),
    )


def score(board: Board, weights: Sequence[float]) -> float:
    if board.is_terminal():
        return -math.inf
    return float(np.dot(extract_features(board), weights))


# ── weight file (JSON keyed by feature name)
def save_weights(path: Union[str, pathlib.Path], weights: Sequence[float]) -> None:
    data = {f: float(w) for f, w in zip(FEATURES, weights)}
    pathlib.Path(path).write_text(json.dumps(data, indent=2))


def load_weights(path: Union[str, pathlib.Path]) -> Weights:
    return as_weights(json.loads(pathlib.Path(path).read_text()))
