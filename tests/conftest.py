import random

import numpy as np
import pytest

from tetris_config import GameConfig
from tetris_core import Board


@pytest.fixture
def config():
    return GameConfig()


@pytest.fixture
def small_config():
    return GameConfig(rows=12, cols=6, hidden=2)


@pytest.fixture
def board(config):
    return Board(config)


@pytest.fixture
def rng():
    return random.Random(1234)


def make_board(config, bottom_rows):
    """Board whose last rows are given as strings ('.' free, digit = kind)."""
    grid = np.zeros((config.rows, config.cols), dtype=np.int8)
    for i, line in enumerate(reversed(bottom_rows)):
        grid[config.rows - 1 - i] = [0 if ch == "." else int(ch) for ch in line]
    return Board(config, grid)
