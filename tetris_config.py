# tetris_config.py – board / trainer settings shared by every module
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

# ────────── cell values ──────────
FREE  = 0      # empty cell
CLEAR = -1     # row queued for removal by the next clear


@dataclass(frozen=True)
class GameConfig:
    """Board geometry and scoring."""
    rows: int = 24
    cols: int = 10
    hidden: int = 4          # top rows outside the visible field, game over when touched
    bonus: int = 100         # points per removed row

    def __post_init__(self) -> None:
        assert self.rows > 0 and self.cols >= 4, (self.rows, self.cols)
        assert 0 <= self.hidden < self.rows, self.hidden
        assert self.bonus > 0, self.bonus


@dataclass(frozen=True)
class TrainerConfig:
    epochs: int = 12
    population_size: int = 960
    iterations: int = 48                   # games per individual
    max_seconds: Optional[float] = 48.0    # wall-clock budget per game
    max_ticks: Optional[int] = None        # tick budget per game
    elite_fraction: float = 0.2            # share of the ranked pool kept as is
    fresh: int = 480                       # random genomes injected each epoch
    mutation_rate: float = 0.05
    mutation_step: float = 0.05
    processes: Optional[int] = 1           # None → os.cpu_count()

    def __post_init__(self) -> None:
        assert self.epochs > 0 and self.population_size > 0 and self.iterations > 0
        assert 0.0 <= self.elite_fraction <= 1.0, self.elite_fraction
        assert 0 <= self.fresh <= self.population_size, self.fresh
        assert 0.0 <= self.mutation_rate <= 1.0, self.mutation_rate
        assert self.max_ticks is None or self.max_ticks > 0
        assert self.max_seconds is None or self.max_seconds > 0


DEFAULT_CONFIG = GameConfig()
