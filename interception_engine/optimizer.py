#!/usr/bin/env python3
"""
Proximity Fuse Optimizer for the Interception Engine.

Tunes arming distance, detonation radius, optimal radius and scan rate with
the genetic algorithm, scoring each candidate against a weighted set of
engagement scenarios:

    fitness = 0.3 * hit + 0.5 * kill_probability + 0.2 * efficiency
    efficiency = 1 - |detonation_distance - optimal_radius| / detonation_radius

Settings with optimal_radius >= detonation_radius score 0.

Usage:
    optimizer = ProximityFuseOptimizer(seed=3)
    result = optimizer.optimize(population_size=30, generations=20)
    print(result.best_settings, result.performance.hit_rate)
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, replace
from typing import Optional, Sequence

import numpy as np

from .blast import BlastPhysics
from .diagnostics import OPTIMIZER, get_logger, log_event
from .genetic import GAConfig, Gene, GeneticAlgorithm, Genome
from .interception import ProximityFuseSettings
from .scenarios import EngagementScenario, ThreatType, create_realistic_scenario
from .simulator import InterceptionSimulator, SimulationResult


# =============================================================================
# CONSTANTS
# =============================================================================

HIT_WEIGHT = 0.3
KILL_PROBABILITY_WEIGHT = 0.5
EFFICIENCY_WEIGHT = 0.2

OPTIMIZER_MUTATION_RATE = 0.15
DEFAULT_PERFORMANCE_TRIALS = 10

FUSE_GENES = (
    Gene("arming_distance", 10, 50, step=5, type="int"),
    Gene("detonation_radius", 4, 15, step=0.5),
    Gene("optimal_radius", 2, 8, step=0.5),
    Gene("scan_rate", 1, 10, step=1, type="int"),
)


# =============================================================================
# DATA TYPES
# =============================================================================

@dataclass(frozen=True)
class WeightedScenario:
    scenario: EngagementScenario
    weight: float


@dataclass(frozen=True)
class PerformanceReport:
    """
    Detailed performance of one set of fuse settings.

    Attributes:
        hit_rate: Fraction of trials where the fuse fired.
        avg_interceptors_per_kill: Interceptors spent per sampled kill
            (inf when nothing was killed).
        avg_detonation_distance: Mean separation at detonation.
        avg_kill_probability: Mean kill probability at detonation.
    """
    hit_rate: float
    avg_interceptors_per_kill: float
    avg_detonation_distance: float
    avg_kill_probability: float

    @property
    def efficiency(self) -> float:
        return (self.hit_rate * self.avg_kill_probability
                / max(1.0, self.avg_interceptors_per_kill))


@dataclass(frozen=True)
class OptimizationResult:
    best_settings: ProximityFuseSettings
    performance: PerformanceReport
    fitness: float
    converged: bool = False


def default_weighted_scenarios() -> tuple[WeightedScenario, ...]:
    """
    Default evaluation set: realistic geometries plus degraded guidance.

    High-value geometries carry more weight than edge cases.
    """
    head_on = create_realistic_scenario(ThreatType.BALLISTIC, "head-on").to_engagement()
    degraded = replace(
        head_on,
        name="Ballistic Head-on (degraded guidance)",
        guidance=replace(head_on.guidance, proportional_gain=1.5),
    )
    return (
        WeightedScenario(head_on, 2.0),
        WeightedScenario(
            create_realistic_scenario(ThreatType.BALLISTIC, "crossing").to_engagement(), 2.0),
        WeightedScenario(
            create_realistic_scenario(ThreatType.DRONE, "head-on").to_engagement(), 1.5),
        WeightedScenario(
            create_realistic_scenario(ThreatType.MORTAR, "high-angle").to_engagement(), 1.5),
        WeightedScenario(
            create_realistic_scenario(ThreatType.CRUISE, "crossing").to_engagement(), 1.0),
        WeightedScenario(
            create_realistic_scenario(ThreatType.BALLISTIC, "tail-chase").to_engagement(), 0.5),
        WeightedScenario(degraded, 1.0),
    )


# =============================================================================
# OPTIMIZER
# =============================================================================

class ProximityFuseOptimizer:
    """
    Genetic optimization of proximity fuse settings.

    The weighted scenario set is built once and never modified. Each fitness
    evaluation builds its own simulator and blast model, so concurrent
    evaluations share no mutable state.
    """

    def __init__(
        self,
        simulator: Optional[InterceptionSimulator] = None,
        scenarios: Optional[Sequence[WeightedScenario]] = None,
        seed: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
        performance_trials: int = DEFAULT_PERFORMANCE_TRIALS
    ):
        self.simulator = simulator or InterceptionSimulator()
        self.scenarios = tuple(scenarios) if scenarios is not None else default_weighted_scenarios()
        self.seed = seed
        self.rng = random.Random(seed)
        self.logger = logger or get_logger(OPTIMIZER)
        self.performance_trials = performance_trials

    def _simulator_for(self, settings: ProximityFuseSettings) -> InterceptionSimulator:
        return InterceptionSimulator(
            guidance_settings=self.simulator.guidance_settings,
            proximity_settings=settings,
            logger=self.simulator.logger,
        )

    def _blast_for(self, settings: ProximityFuseSettings) -> BlastPhysics:
        if self.seed is None:
            return BlastPhysics()
        key = (self.seed,) + tuple(settings.to_dict().values())
        return BlastPhysics(rng=random.Random(hash(key)))

    @staticmethod
    def _kill_probability(result: SimulationResult, blast: BlastPhysics) -> float:
        detonation = result.proximity_detonation
        if not detonation.detonated:
            return 0.0
        return blast.calculate_damage(
            detonation.detonation_point,
            detonation.target_point,
            detonation.target_velocity,
        ).kill_probability

    def fitness(self, genome: Genome) -> float:
        """Weighted mean scenario fitness of a genome; 0 for invalid settings."""
        settings = ProximityFuseSettings.from_mapping(genome.genes)
        genome.metadata["settings"] = settings.to_dict()
        if not settings.is_valid:
            return 0.0

        simulator = self._simulator_for(settings)
        blast = self._blast_for(settings)
        total = 0.0
        total_weight = 0.0

        for weighted in self.scenarios:
            result = simulator.simulate_interception(weighted.scenario)
            detonation = result.proximity_detonation

            hit = 1.0 if detonation.detonated else 0.0
            kill_probability = self._kill_probability(result, blast)
            distance = (detonation.detonation_distance if detonation.detonated
                        else settings.detonation_radius)
            efficiency = 1 - abs(distance - settings.optimal_radius) / settings.detonation_radius

            scenario_fitness = (HIT_WEIGHT * hit
                                + KILL_PROBABILITY_WEIGHT * kill_probability
                                + EFFICIENCY_WEIGHT * efficiency)
            total += scenario_fitness * weighted.weight
            total_weight += weighted.weight

        return total / total_weight if total_weight > 0 else 0.0

    def optimize(
        self,
        population_size: int = 50,
        generations: int = 100,
        verbose: bool = True
    ) -> OptimizationResult:
        """
        Run the genetic algorithm and analyze the winner.

        Args:
            population_size: Genomes per generation.
            generations: Maximum generations.
            verbose: Log GA progress at INFO.

        Returns:
            OptimizationResult with the best settings and their performance.
        """
        config = GAConfig(
            population_size=population_size,
            generations=generations,
            mutation_rate=OPTIMIZER_MUTATION_RATE,
            crossover_rate=0.7,
            elitism_rate=0.1,
            convergence_threshold=0.001,
            verbose=verbose,
        )
        ga = GeneticAlgorithm(FUSE_GENES, self.fitness, config, rng=self.rng)

        log_event(
            self.logger, logging.INFO, "optimization_started",
            scenarios=len(self.scenarios),
            population_size=population_size,
            generations=generations
        )
        result = ga.run()

        best_settings = ProximityFuseSettings.from_mapping(result.best_genome.genes)
        performance = self.evaluate_performance(best_settings)

        log_event(
            self.logger, logging.INFO, "optimization_complete",
            fitness=result.best_genome.fitness,
            converged=result.converged,
            **best_settings.to_dict()
        )

        return OptimizationResult(
            best_settings=best_settings,
            performance=performance,
            fitness=result.best_genome.fitness,
            converged=result.converged,
        )

    def evaluate_performance(self, settings: ProximityFuseSettings) -> PerformanceReport:
        """
        Repeat every scenario ``performance_trials`` times with sampled blasts.

        Returns:
            PerformanceReport; averages over detonations only.
        """
        simulator = self._simulator_for(settings)
        blast = BlastPhysics(rng=self.rng)
        total_tests = len(self.scenarios) * self.performance_trials

        hits = 0
        kills = 0
        detonation_distances = []
        kill_probabilities = []

        for weighted in self.scenarios:
            for _ in range(self.performance_trials):
                result = simulator.simulate_interception(weighted.scenario)
                if not result.success:
                    continue
                hits += 1

                detonation = result.proximity_detonation
                damage = blast.calculate_damage(
                    detonation.detonation_point,
                    detonation.target_point,
                    detonation.target_velocity,
                )
                detonation_distances.append(detonation.detonation_distance)
                kill_probabilities.append(damage.kill_probability)
                if damage.hit:
                    kills += 1

        return PerformanceReport(
            hit_rate=hits / total_tests if total_tests else 0.0,
            avg_interceptors_per_kill=hits / kills if kills else math.inf,
            avg_detonation_distance=(
                float(np.mean(detonation_distances)) if detonation_distances else 0.0),
            avg_kill_probability=(
                float(np.mean(kill_probabilities)) if kill_probabilities else 0.0),
        )

    def compare_settings(
        self,
        named_settings: Sequence[tuple[str, ProximityFuseSettings]]
    ) -> dict[str, PerformanceReport]:
        """Evaluate and log several named settings side by side."""
        reports = {}
        for name, settings in named_settings:
            report = self.evaluate_performance(settings)
            reports[name] = report
            log_event(
                self.logger, logging.INFO, "settings_comparison",
                name=name,
                hit_rate=report.hit_rate,
                avg_kill_probability=report.avg_kill_probability,
                interceptors_per_kill=report.avg_interceptors_per_kill,
                avg_detonation_distance=report.avg_detonation_distance,
                efficiency=report.efficiency,
                **settings.to_dict()
            )
        return reports


def optimize_proximity_fuse(
    population_size: int = 50,
    generations: int = 100,
    verbose: bool = True,
    seed: Optional[int] = None
) -> OptimizationResult:
    """Run a default optimization against the standard weighted scenarios."""
    optimizer = ProximityFuseOptimizer(seed=seed)
    return optimizer.optimize(population_size, generations, verbose)
