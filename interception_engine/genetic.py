#!/usr/bin/env python3
"""
Genetic Algorithm for the Interception Engine.

A generic generational optimizer over named numeric genes:
- Random initialization within gene bounds (snapped to step, ints rounded)
- Concurrent fitness evaluation of each generation (asyncio.gather)
- Elitism, tournament selection, uniform crossover, uniform mutation
- Convergence detection over a window of generations

Higher fitness is better. Fitness functions may be plain callables or
coroutine functions returning a float.

Usage:
    ga = GeneticAlgorithm(genes, fitness, GAConfig(population_size=30),
                          rng=random.Random(1))
    result = ga.run()
    print(result.best_genome.genes, result.best_genome.fitness)
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import math
import random
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Sequence, Union

import numpy as np

from .diagnostics import GENETIC, get_logger, log_event


# =============================================================================
# CONSTANTS
# =============================================================================

# Mutation perturbs a gene uniformly within +/- this fraction of its range
MUTATION_SCALE = 0.1

# Probability of taking a gene from the first parent in uniform crossover
CROSSOVER_BIAS = 0.5


# =============================================================================
# GENES AND GENOMES
# =============================================================================

@dataclass(frozen=True)
class Gene:
    """
    Definition of one tunable parameter.

    Attributes:
        name: Gene name, used as the key in ``Genome.genes``.
        min: Lower bound (inclusive).
        max: Upper bound (inclusive).
        step: Optional grid spacing measured from ``min``.
        type: ``"float"`` or ``"int"``.

    Raises:
        ValueError: If min > max, step is not positive, or type is unknown.
    """
    name: str
    min: float
    max: float
    step: Optional[float] = None
    type: str = "float"

    def __post_init__(self):
        if self.min > self.max:
            raise ValueError(f"Gene {self.name}: min {self.min} > max {self.max}")
        if self.step is not None and self.step <= 0:
            raise ValueError(f"Gene {self.name}: step must be positive, got {self.step}")
        if self.type not in ("float", "int"):
            raise ValueError(f"Gene {self.name}: unknown type {self.type!r}")

    @property
    def span(self) -> float:
        return self.max - self.min

    def clamp(self, value: float) -> float:
        return max(self.min, min(self.max, value))

    def normalize(self, value: float) -> float:
        """Clamp, snap to step, round ints, then clamp again."""
        value = self.clamp(value)
        if self.step:
            value = self.min + math.floor((value - self.min) / self.step + 0.5) * self.step
        if self.type == "int":
            value = float(math.floor(value + 0.5))
        return self.clamp(value)

    def random_value(self, rng: random.Random) -> float:
        return self.normalize(self.min + rng.random() * self.span)


@dataclass
class Genome:
    """
    A candidate solution.

    Fitness is assigned exactly once per instance; a new generation always
    builds fresh instances.
    """
    genes: dict[str, float]
    fitness: Optional[float] = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def assign_fitness(self, value: float) -> None:
        """
        Record the fitness of this genome.

        Raises:
            RuntimeError: If fitness was already assigned.
        """
        if self.fitness is not None:
            raise RuntimeError("Genome fitness is already assigned")
        self.fitness = value

    def copy(self) -> Genome:
        """Fresh, unevaluated copy with the same genes."""
        return Genome(genes=dict(self.genes), metadata=dict(self.metadata))

    def format(self) -> str:
        return ", ".join(f"{name}={value:.2f}" for name, value in self.genes.items())


FitnessFunction = Callable[[Genome], Union[float, Awaitable[float]]]


# =============================================================================
# CONFIGURATION AND RESULTS
# =============================================================================

@dataclass(frozen=True)
class GAConfig:
    """
    Genetic algorithm parameters.

    Attributes:
        population_size: Genomes per generation.
        generations: Maximum number of generations.
        mutation_rate: Per-gene mutation probability.
        crossover_rate: Probability a child comes from crossover.
        elitism_rate: Fraction of the population carried over.
        tournament_size: Contestants per tournament selection.
        convergence_threshold: Best-fitness span that counts as converged.
        convergence_window: Generations the span is measured over.
        verbose: Log progress at INFO instead of DEBUG.
        log_interval: Generations between progress messages.
    """
    population_size: int = 50
    generations: int = 100
    mutation_rate: float = 0.1
    crossover_rate: float = 0.7
    elitism_rate: float = 0.1
    tournament_size: int = 3
    convergence_threshold: float = 0.001
    convergence_window: int = 10
    verbose: bool = True
    log_interval: int = 10


@dataclass(frozen=True)
class GenerationStats:
    generation: int
    best_fitness: float
    avg_fitness: float
    best_genome: Genome


@dataclass
class GAResult:
    best_genome: Genome
    history: list[GenerationStats]
    converged: bool


# =============================================================================
# GENETIC ALGORITHM
# =============================================================================

class GeneticAlgorithm:
    """
    Generational genetic algorithm.

    The random source is injected so runs are reproducible with a seeded
    ``random.Random``.
    """

    def __init__(
        self,
        genes: Sequence[Gene],
        fitness_function: FitnessFunction,
        config: Optional[GAConfig] = None,
        rng: Optional[random.Random] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.config = config or GAConfig()
        if self.config.population_size < 1:
            raise ValueError(
                f"Population size must be at least 1, got {self.config.population_size}"
            )
        self.genes = list(genes)
        self.fitness_function = fitness_function
        self.rng = rng or random.Random()
        self.logger = logger or get_logger(GENETIC)

        self.population: list[Genome] = []
        self.best_genome: Optional[Genome] = None
        self.history: list[GenerationStats] = []

    # -------------------------------------------------------------------------
    # Operators
    # -------------------------------------------------------------------------

    def _random_genome(self) -> Genome:
        return Genome(genes={g.name: g.random_value(self.rng) for g in self.genes})

    def _select_parent(self) -> Genome:
        """Tournament selection among already evaluated genomes."""
        best = None
        for _ in range(max(1, self.config.tournament_size)):
            candidate = self.rng.choice(self.population)
            if best is None or candidate.fitness > best.fitness:
                best = candidate
        return best

    def _crossover(self, parent1: Genome, parent2: Genome) -> Genome:
        genes = {}
        for gene in self.genes:
            source = parent1 if self.rng.random() < CROSSOVER_BIAS else parent2
            genes[gene.name] = source.genes[gene.name]
        return Genome(genes=genes)

    def _mutate(self, genome: Genome) -> None:
        for gene in self.genes:
            if self.rng.random() < self.config.mutation_rate:
                delta = (self.rng.random() - 0.5) * 2 * MUTATION_SCALE * gene.span
                genome.genes[gene.name] = gene.normalize(genome.genes[gene.name] + delta)

    def _next_generation(self) -> list[Genome]:
        size = self.config.population_size
        elite_count = min(size, int(size * self.config.elitism_rate))
        next_population = [g.copy() for g in self.population[:elite_count]]

        while len(next_population) < size:
            if self.rng.random() < self.config.crossover_rate:
                child = self._crossover(self._select_parent(), self._select_parent())
            else:
                child = self._select_parent().copy()
            self._mutate(child)
            next_population.append(child)

        return next_population

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    async def _evaluate(self, genome: Genome) -> None:
        value = self.fitness_function(genome)
        if inspect.isawaitable(value):
            value = await value
        genome.assign_fitness(float(value))

    async def _evaluate_population(self) -> None:
        pending = [g for g in self.population if g.fitness is None]
        await asyncio.gather(*(self._evaluate(g) for g in pending))

        self.population.sort(key=lambda g: g.fitness, reverse=True)
        leader = self.population[0]
        if self.best_genome is None or leader.fitness > self.best_genome.fitness:
            self.best_genome = leader

    def has_converged(self) -> bool:
        window = self.config.convergence_window
        if len(self.history) < window:
            return False
        recent = np.array([s.best_fitness for s in self.history[-window:]])
        return float(np.ptp(recent)) < self.config.convergence_threshold

    # -------------------------------------------------------------------------
    # Main loop
    # -------------------------------------------------------------------------

    async def run_async(self) -> GAResult:
        """
        Evolve the population until convergence or the generation limit.

        Returns:
            GAResult with the best genome ever evaluated, per-generation
            statistics and whether the run converged.
        """
        self.history = []
        self.best_genome = None
        self.population = [self._random_genome() for _ in range(self.config.population_size)]
        progress_level = logging.INFO if self.config.verbose else logging.DEBUG

        for generation in range(self.config.generations):
            await self._evaluate_population()

            fitnesses = np.array([g.fitness for g in self.population])
            stats = GenerationStats(
                generation=generation,
                best_fitness=float(fitnesses[0]),
                avg_fitness=float(np.mean(fitnesses)),
                best_genome=self.population[0],
            )
            self.history.append(stats)

            if generation % max(1, self.config.log_interval) == 0:
                log_event(
                    self.logger, progress_level, "generation",
                    generation=generation,
                    best_fitness=stats.best_fitness,
                    avg_fitness=stats.avg_fitness,
                    best_genome=stats.best_genome.format()
                )

            if self.has_converged():
                log_event(self.logger, progress_level, "converged", generation=generation)
                break

            if generation < self.config.generations - 1:
                self.population = self._next_generation()

        if self.best_genome is None:
            raise ValueError("Genetic algorithm needs at least one generation")

        return GAResult(
            best_genome=self.best_genome,
            history=self.history,
            converged=self.has_converged(),
        )

    def run(self) -> GAResult:
        """
        Synchronous entry point.

        Must not be called from inside a running event loop; use
        ``await run_async()`` there.
        """
        return asyncio.run(self.run_async())
