#!/usr/bin/env python3
"""
Tests for the end-to-end interception simulator.

Tests:
- Parameter range expansion and combinations
- Single engagements (no solution, first-match detonation)
- Batch statistics
- Guidance parameter sweeps
"""

import math
import random

import pytest

from interception_engine.guidance import GuidanceSettings
from interception_engine.interception import ProximityFuseSettings
from interception_engine.physics import Vector3D
from interception_engine.scenarios import (
    BatterySpec,
    EngagementScenario,
    ThreatSpec,
    ThreatType,
)
from interception_engine.simulator import (
    InterceptionSimulator,
    ParameterRange,
    ProximityDetonation,
    generate_parameter_combinations,
)


def hovering_drone(name="Hovering Drone"):
    """Stationary drone 141 m from the battery, reachable in about a second."""
    return EngagementScenario(
        name=name,
        threat=ThreatSpec(Vector3D(100, 100, 0), Vector3D.zero(), ThreatType.DRONE),
        battery=BatterySpec(Vector3D.zero()),
    )


def unreachable_drone():
    return EngagementScenario(
        name="Out Of Reach",
        threat=ThreatSpec(Vector3D(60000, 500, 0), Vector3D.zero(), ThreatType.DRONE),
        battery=BatterySpec(Vector3D.zero()),
    )


@pytest.fixture
def eager_fuse():
    """Fuse that fires as soon as it is armed and inside the radius."""
    return ProximityFuseSettings(optimal_radius=0.0, detonation_radius=8.0)


@pytest.fixture
def simulator(eager_fuse):
    return InterceptionSimulator(proximity_settings=eager_fuse, rng=random.Random(1))


# =============================================================================
# PARAMETER COMBINATIONS
# =============================================================================

class TestParameterCombinations:
    """Tests for generate_parameter_combinations."""

    def test_cartesian_product(self):
        combos = generate_parameter_combinations([
            ParameterRange("proportional_gain", 1.0, 2.0, 0.5),
            ParameterRange("max_g_force", 20, 40, 20),
        ])
        assert len(combos) == 6
        assert {"proportional_gain": 1.5, "max_g_force": 40} in combos

    def test_inclusive_upper_bound_with_float_step(self):
        combos = generate_parameter_combinations([ParameterRange("gain", 0.1, 0.3, 0.1)])
        assert [c["gain"] for c in combos] == pytest.approx([0.1, 0.2, 0.3])

    def test_empty_range(self):
        assert generate_parameter_combinations([ParameterRange("gain", 2.0, 1.0, 0.5)]) == []

    @pytest.mark.parametrize("step", [0.0, -1.0])
    def test_non_positive_step_raises(self, step):
        with pytest.raises(ValueError):
            generate_parameter_combinations([ParameterRange("gain", 1.0, 2.0, step)])


# =============================================================================
# SINGLE ENGAGEMENT
# =============================================================================

class TestSimulateInterception:
    """Tests for simulate_interception."""

    def test_no_solution_short_circuits(self, simulator):
        result = simulator.simulate_interception(unreachable_drone())
        assert result.success is False
        assert result.interception_solution.should_fire is False
        assert result.guidance_result.hit_distance == math.inf
        assert result.proximity_detonation == ProximityDetonation.none()

    def test_stationary_target_is_destroyed(self, simulator, eager_fuse):
        result = simulator.simulate_interception(hovering_drone())
        assert result.interception_solution.should_fire
        assert result.interception_solution.time_to_intercept == pytest.approx(1.0)

        detonation = result.proximity_detonation
        assert detonation.detonated is True
        assert detonation.detonation_distance <= eager_fuse.detonation_radius
        assert 0.5 <= detonation.detonation_quality <= 1.0
        assert detonation.detonation_point is not None
        assert detonation.target_point == Vector3D(100, 100, 0)

    def test_first_detonation_wins(self, simulator):
        result = simulator.simulate_interception(hovering_drone())
        # The walk stops at the first state inside the radius, which is not
        # necessarily the closest one
        assert result.guidance_result.hit_distance <= result.proximity_detonation.detonation_distance
        assert result.proximity_detonation.detonation_distance > 5.0

    def test_success_matches_detonation(self, simulator):
        for scenario in (hovering_drone(), unreachable_drone()):
            result = simulator.simulate_interception(scenario)
            assert result.success == result.proximity_detonation.detonated

    def test_unarmed_fuse_never_fires(self):
        simulator = InterceptionSimulator(
            proximity_settings=ProximityFuseSettings(arming_distance=10000.0)
        )
        result = simulator.simulate_interception(hovering_drone())
        assert result.success is False
        assert result.guidance_result.hit_distance < 8.0

    def test_default_fuse_holds_until_guidance_stops(self):
        # Closest approach stays predicted inside 3 m, and the run ends
        # inside 5 m before the fuse reaches its optimal radius
        simulator = InterceptionSimulator()
        result = simulator.simulate_interception(hovering_drone())
        assert result.guidance_result.hit_distance < 5.0
        assert result.proximity_detonation == ProximityDetonation.none()
        assert result.success is False

    def test_scenario_guidance_override_is_used(self, eager_fuse):
        # With zero speed and gain the interceptor only compensates gravity
        # and coasts on its launch velocity
        scenario = hovering_drone()
        scenario.guidance = GuidanceSettings(proportional_gain=0.0, target_speed=0.0)
        simulator = InterceptionSimulator(proximity_settings=eager_fuse)
        result = simulator.simulate_interception(scenario)
        assert result.guidance_result.final_speed == pytest.approx(
            result.interception_solution.launch_velocity.magnitude, rel=1e-6
        )


# =============================================================================
# BATCHES AND SWEEPS
# =============================================================================

class TestRunScenarios:
    """Tests for batch statistics."""

    def test_mixed_batch(self, simulator):
        batch = simulator.run_scenarios([hovering_drone(), unreachable_drone()])
        stats = batch.statistics
        assert stats.total_scenarios == 2
        assert stats.successful_interceptions == 1
        assert stats.success_rate == pytest.approx(0.5)
        assert 0 < stats.avg_hit_distance < 8.0
        assert stats.avg_hit_time > 0
        assert 0.5 <= stats.avg_detonation_quality <= 1.0
        assert [r.scenario.name for r in batch.results] == ["Hovering Drone", "Out Of Reach"]

    def test_empty_batch(self, simulator):
        stats = simulator.run_scenarios([]).statistics
        assert stats.total_scenarios == 0
        assert stats.success_rate == 0.0
        assert stats.avg_hit_distance == 0.0

    def test_all_failures_average_to_zero(self, simulator):
        stats = simulator.run_scenarios([unreachable_drone()] * 3).statistics
        assert stats.success_rate == 0.0
        assert stats.avg_detonation_quality == 0.0


class TestParameterSweep:
    """Tests for run_parameter_sweep."""

    def test_sweep_sorted_by_success_rate(self, simulator):
        results = simulator.run_parameter_sweep(
            hovering_drone(),
            [ParameterRange("proportional_gain", 1.0, 2.0, 1.0)],
            test_count=2,
        )
        assert len(results) == 2
        assert {r.parameters["proportional_gain"] for r in results} == {1.0, 2.0}
        rates = [r.success_rate for r in results]
        assert rates == sorted(rates, reverse=True)
        assert all(0.0 <= rate <= 1.0 for rate in rates)

    def test_unknown_parameter_raises(self, simulator):
        with pytest.raises(TypeError):
            simulator.run_parameter_sweep(
                hovering_drone(), [ParameterRange("warp_factor", 1.0, 1.0, 1.0)], test_count=1
            )
