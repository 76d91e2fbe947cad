#!/usr/bin/env python3
"""
Tests for the proximity fuse optimizer.

Uses a single cheap engagement (a hovering drone close to the battery) so
the genetic search stays fast.
"""

import math
import random

import pytest

from interception_engine.genetic import GAConfig, Gene, GeneticAlgorithm, Genome
from interception_engine.interception import ProximityFuseSettings
from interception_engine.optimizer import (
    FUSE_GENES,
    HIT_WEIGHT,
    PerformanceReport,
    ProximityFuseOptimizer,
    WeightedScenario,
    default_weighted_scenarios,
)
from interception_engine.physics import Vector3D
from interception_engine.scenarios import BatterySpec, EngagementScenario, ThreatSpec, ThreatType


EAGER = ProximityFuseSettings(arming_distance=10, detonation_radius=8.0, optimal_radius=0.0)


@pytest.fixture
def scenarios():
    drone = EngagementScenario(
        name="Hovering Drone",
        threat=ThreatSpec(Vector3D(100, 100, 0), Vector3D.zero(), ThreatType.DRONE),
        battery=BatterySpec(Vector3D.zero()),
    )
    return [WeightedScenario(drone, 1.0)]


@pytest.fixture
def optimizer(scenarios):
    return ProximityFuseOptimizer(scenarios=scenarios, seed=3, performance_trials=2)


# =============================================================================
# CONFIGURATION
# =============================================================================

class TestConfiguration:
    """Tests for genes, scenario sets and reports."""

    def test_fuse_genes(self):
        assert [g.name for g in FUSE_GENES] == [
            "arming_distance", "detonation_radius", "optimal_radius", "scan_rate"
        ]
        assert FUSE_GENES[0].type == "int"

    def test_default_weighted_scenarios(self):
        weighted = default_weighted_scenarios()
        assert len(weighted) == 7
        assert all(w.weight > 0 for w in weighted)
        degraded = weighted[-1].scenario
        assert degraded.guidance.proportional_gain == 1.5
        assert degraded.threat == weighted[0].scenario.threat

    @pytest.mark.parametrize("report,expected", [
        (PerformanceReport(0.8, 2.0, 5.0, 0.6), 0.24),
        (PerformanceReport(0.5, 0.5, 5.0, 0.6), 0.3),
        (PerformanceReport(0.0, math.inf, 0.0, 0.0), 0.0),
    ])
    def test_report_efficiency(self, report, expected):
        assert report.efficiency == pytest.approx(expected)


# =============================================================================
# FITNESS
# =============================================================================

class TestFitness:
    """Tests for genome scoring."""

    def test_invalid_settings_score_zero(self, optimizer):
        genome = Genome(genes={
            "arming_distance": 20, "detonation_radius": 6.0,
            "optimal_radius": 8.0, "scan_rate": 4,
        })
        assert optimizer.fitness(genome) == 0.0
        assert genome.metadata["settings"]["optimal_radius"] == 8.0

    def test_detonation_scores_hit_weight(self, optimizer):
        genome = Genome(genes=EAGER.to_dict())
        assert optimizer.fitness(genome) > HIT_WEIGHT

    def test_seeded_fitness_is_repeatable(self, optimizer):
        first = optimizer.fitness(Genome(genes=EAGER.to_dict()))
        second = optimizer.fitness(Genome(genes=EAGER.to_dict()))
        assert first == second

    def test_fitness_bounded(self, optimizer):
        genome = Genome(genes=EAGER.to_dict())
        assert 0.0 <= optimizer.fitness(genome) <= 1.0


# =============================================================================
# PERFORMANCE AND OPTIMIZATION
# =============================================================================

class TestPerformance:
    """Tests for performance evaluation."""

    def test_evaluate_performance(self, optimizer):
        report = optimizer.evaluate_performance(EAGER)
        assert report.hit_rate == 1.0
        assert 5.0 < report.avg_detonation_distance <= 8.0
        assert 0.0 < report.avg_kill_probability <= 1.0

    def test_compare_settings(self, optimizer):
        invalid = ProximityFuseSettings(detonation_radius=4.0, optimal_radius=6.0)
        reports = optimizer.compare_settings([("eager", EAGER), ("invalid", invalid)])
        assert list(reports) == ["eager", "invalid"]
        assert reports["invalid"].hit_rate == 0.0
        assert reports["invalid"].avg_interceptors_per_kill == math.inf
        assert reports["invalid"].efficiency == 0.0

    def test_optimize_returns_settings_within_gene_bounds(self, optimizer):
        result = optimizer.optimize(population_size=4, generations=2, verbose=False)
        settings = result.best_settings.to_dict()
        for gene in FUSE_GENES:
            assert gene.min <= settings[gene.name] <= gene.max
        assert result.best_settings.is_valid
        assert result.fitness >= 0.0
        assert 0.0 <= result.performance.hit_rate <= 1.0


class TestPartialGenes:
    """Genomes that carry only some of the fuse genes."""

    RADIUS_GENES = [
        Gene("detonation_radius", 6, 12),
        Gene("optimal_radius", 1, 6),
    ]

    def test_missing_genes_use_defaults(self, optimizer):
        genome = Genome(genes={"detonation_radius": 8.0, "optimal_radius": 0.0})
        fitness = optimizer.fitness(genome)
        assert fitness > HIT_WEIGHT
        assert genome.metadata["settings"]["arming_distance"] == 20.0
        assert fitness == optimizer.fitness(Genome(genes=dict(genome.genes)))

    def test_radius_search_returns_valid_settings(self, optimizer):
        config = GAConfig(population_size=10, generations=20, verbose=False)
        ga = GeneticAlgorithm(self.RADIUS_GENES, optimizer.fitness, config,
                              rng=random.Random(1))
        result = ga.run()
        best = result.best_genome.genes
        assert len(result.history) <= 20
        assert best["optimal_radius"] < best["detonation_radius"]
        assert ProximityFuseSettings.from_mapping(best).is_valid
