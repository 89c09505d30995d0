# ga_train.py – DEAP generational GA over the SBE weights (roulette + elitism + fresh blood)
from __future__ import annotations
import argparse
import logging
import math
import multiprocessing as mp
import pathlib
import random
import time
from bisect import bisect_right
from typing import List, Optional, Sequence, Tuple

import numpy as np
from deap import base, creator, tools

from tetris_ai import HeuristicAI
from tetris_config import DEFAULT_CONFIG, GameConfig, TrainerConfig
from tetris_eval import FEATURES, NEGATIVE_FEATURES, Weights, as_weights, load_weights, save_weights
from tetris_game import Game

logger = logging.getLogger(__name__)

# ───────────────────────── DEAP types ─────────────────────────
creator.create("FitMax", base.Fitness, weights=(1.0,))
creator.create("Ind", list, fitness=creator.FitMax, probability=0.0)


# ───────────────────────── simulation ─────────────────────────
def run_game(weights: Sequence[float], seed: int, game_config: GameConfig = DEFAULT_CONFIG,
             max_ticks: Optional[int] = None, max_seconds: Optional[float] = None) -> int:
    game = Game(game_config, HeuristicAI(weights), rng=random.Random(seed))
    return game.play(max_ticks=max_ticks, max_seconds=max_seconds)


def evaluate(job: Tuple[Sequence[float], Sequence[int], GameConfig, TrainerConfig]) -> Tuple[float]:
    """Average rows cleared per game, one game per seed."""
    weights, seeds, game_config, config = job
    total = sum(run_game(weights, s, game_config, config.max_ticks, config.max_seconds) for s in seeds)
    return (total / game_config.bonus / len(seeds),)


# ───────────────────────── operators ─────────────────────────
def random_weights(rng: random.Random) -> List[float]:
    return [-rng.random() if f in NEGATIVE_FEATURES else rng.random() for f in FEATURES]


def crossover(parent1, parent2):
    """Child = fitness-weighted average of both parents."""
    f1, f2 = parent1.fitness.values[0], parent2.fitness.values[0]
    if f1 + f2 > 0:
        genes = [(a * f1 + b * f2) / (f1 + f2) for a, b in zip(parent1, parent2)]
    else:
        genes = [(a + b) / 2 for a, b in zip(parent1, parent2)]
    return creator.Ind(genes)


def mutate(ind, rng: random.Random, step: float):
    for i in range(len(ind)):
        ind[i] += (rng.random() - .5) * step
    return ind,


def assign_probabilities(population: list) -> None:
    """Sort ascending by fitness and store cumulative roulette probabilities."""
    population.sort(key=lambda ind: ind.fitness.values[0])
    total = sum(ind.fitness.values[0] for ind in population)
    running = 0.0
    for ind in population:
        running += ind.fitness.values[0] / total if total > 0 else 1.0 / len(population)
        ind.probability = running


def select_roulette(pool: list, rng: random.Random):
    cumulative = [ind.probability for ind in pool]
    return pool[min(bisect_right(cumulative, rng.random()), len(pool) - 1)]


def build_toolbox(rng: random.Random, config: TrainerConfig) -> base.Toolbox:
    tb = base.Toolbox()
    tb.register("individual", lambda: creator.Ind(random_weights(rng)))
    tb.register("population", tools.initRepeat, list, tb.individual)
    tb.register("mate", crossover)
    tb.register("mutate", mutate, rng=rng, step=config.mutation_step)
    tb.register("select", select_roulette, rng=rng)
    tb.register("evaluate", evaluate)
    return tb


def next_generation(population: list, best, rng: random.Random, config: TrainerConfig,
                    tb: base.Toolbox) -> list:
    """Elites (best-ever first), roulette crossover children, then fresh genomes."""
    assign_probabilities(population)
    pool = population + [tb.clone(best)]
    pool[-1].probability = 1.0

    def maybe_mutate(ind):
        if rng.random() < config.mutation_rate:
            tb.mutate(ind)
        return ind

    keep = min(max(1, round(len(pool) * config.elite_fraction)), config.population_size)
    offspring = [maybe_mutate(tb.clone(ind)) for ind in reversed(pool[-keep:])]
    while len(offspring) < config.population_size - config.fresh:
        parent1, parent2 = tb.select(pool), tb.select(pool)
        offspring.append(maybe_mutate(tb.mate(parent1, parent2)))
    while len(offspring) < config.population_size:
        offspring.append(tb.individual())
    for ind in offspring:
        del ind.fitness.values
    return offspring


# ───────────────────────── training loop ─────────────────────────
def train(config: TrainerConfig, game_config: GameConfig = DEFAULT_CONFIG,
          rng: Optional[random.Random] = None,
          seed_weights: Optional[Sequence[float]] = None) -> Tuple[Weights, float, tools.Logbook]:
    rng = rng or random.Random()
    tb = build_toolbox(rng, config)
    pop = tb.population(n=config.population_size)
    if seed_weights is not None:
        pop[0] = creator.Ind(as_weights(seed_weights))

    hof = tools.HallOfFame(1)
    stats = tools.Statistics(key=lambda ind: ind.fitness.values[0])
    stats.register("avg", np.mean)
    stats.register("max", np.max)
    stats.register("min", np.min)
    logbook = tools.Logbook()
    logbook.header = ["epoch", "evals", "avg", "max", "min", "best"]

    pool = mp.Pool(config.processes) if config.processes != 1 else None
    try:
        for epoch in range(config.epochs):
            jobs = [(tuple(ind), [rng.randrange(2 ** 32) for _ in range(config.iterations)],
                     game_config, config) for ind in pop]
            fits = pool.map(evaluate, jobs) if pool else map(tb.evaluate, jobs)
            for ind, fit in zip(pop, fits):
                ind.fitness.values = fit

            previous = hof[0].fitness.values[0] if len(hof) else -math.inf
            hof.update(pop)
            if hof[0].fitness.values[0] > previous:
                logger.info("new best %.3f w=%s", hof[0].fitness.values[0], [round(w, 3) for w in hof[0]])
            logbook.record(epoch=epoch, evals=len(pop), best=hof[0].fitness.values[0], **stats.compile(pop))
            logger.info(logbook.stream)

            if epoch < config.epochs - 1:
                pop = next_generation(pop, hof[0], rng, config, tb)
    finally:
        if pool is not None:
            pool.close()
            pool.join()

    return as_weights(hof[0]), hof[0].fitness.values[0], logbook


# ───────────────────────── main ──────────────────────────────
def build_parser() -> argparse.ArgumentParser:
    d = TrainerConfig()
    p = argparse.ArgumentParser(description="Evolve the board evaluation weights.")
    p.add_argument("--epochs", type=int, default=d.epochs)
    p.add_argument("--population", type=int, default=d.population_size)
    p.add_argument("--iterations", type=int, default=d.iterations, help="games per individual")
    p.add_argument("--max-seconds", type=float, default=d.max_seconds)
    p.add_argument("--max-ticks", type=int, default=d.max_ticks)
    p.add_argument("--elite-fraction", type=float, default=d.elite_fraction)
    p.add_argument("--fresh", type=int, default=d.fresh)
    p.add_argument("--mutation-rate", type=float, default=d.mutation_rate)
    p.add_argument("--mutation-step", type=float, default=d.mutation_step)
    p.add_argument("--processes", type=int, default=d.processes, help="0 = one per CPU")
    p.add_argument("--rows", type=int, default=DEFAULT_CONFIG.rows)
    p.add_argument("--cols", type=int, default=DEFAULT_CONFIG.cols)
    p.add_argument("--hidden", type=int, default=DEFAULT_CONFIG.hidden)
    p.add_argument("--seed", type=int, default=None)
    p.add_argument("--out", type=pathlib.Path, default=pathlib.Path("best_weights.json"))
    p.add_argument("--resume", action="store_true", help="seed the population with --out")
    p.add_argument("-v", "--verbose", action="store_true")
    return p


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s %(name)s %(message)s")

    config = TrainerConfig(
        epochs=args.epochs, population_size=args.population, iterations=args.iterations,
        max_seconds=args.max_seconds, max_ticks=args.max_ticks,
        elite_fraction=args.elite_fraction, fresh=min(args.fresh, args.population),
        mutation_rate=args.mutation_rate, mutation_step=args.mutation_step,
        processes=args.processes or None,
    )
    game_config = GameConfig(rows=args.rows, cols=args.cols, hidden=args.hidden)

    seed_weights = None
    if args.resume and args.out.exists():
        try:
            seed_weights = load_weights(args.out)
            logger.info("seed individual loaded from %s", args.out)
        except (OSError, ValueError, KeyError) as e:
            logger.warning("%s load error -> %s", args.out, e)

    start = time.time()
    best, fitness, _ = train(config, game_config, random.Random(args.seed), seed_weights)
    save_weights(args.out, best)
    print(f"best fitness {fitness:.2f} w={[round(w, 4) for w in best]}")
    print(f"Saved → {args.out}")
    print(f"Total GA training time: {time.time() - start:.1f} sec")


if __name__ == "__main__":
    mp.freeze_support()
    main()
