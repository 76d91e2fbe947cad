#!/usr/bin/env python3
"""
Interception Simulator for the Interception Engine.

Runs complete engagements end to end:
1. Solve for a launch solution (``calculate_interception``)
2. Fly the guided interceptor (``run_guidance_simulation``)
3. Walk the trajectory checking the proximity fuse, first match wins
4. Report the outcome

Also provides batch statistics over many scenarios and a parameter sweep
over guidance settings with randomized threat velocities.

Usage:
    simulator = InterceptionSimulator(rng=random.Random(7))
    result = simulator.simulate_interception(scenario)
    if result.success:
        print(result.proximity_detonation.detonation_distance)
"""

from __future__ import annotations

import itertools
import logging
import math
import random
from dataclasses import dataclass, field, replace
from typing import Optional, Sequence

import numpy as np

from .diagnostics import SIMULATOR, get_logger, log_event
from .guidance import GuidanceSettings, GuidanceState, run_guidance_simulation
from .interception import (
    InterceptionScenario,
    InterceptionSolution,
    ProximityFuseSettings,
    calculate_interception,
    calculate_proximity,
    should_detonate,
)
from .physics import G_STANDARD, Vector3D
from .scenarios import EngagementScenario


# =============================================================================
# CONSTANTS
# =============================================================================

# Four times finer than the interactive guidance step
SIMULATION_TIME_STEP_S = 0.016 / 4

# Guidance run lasts this multiple of the planned time to intercept
DURATION_MARGIN = 1.5

# Parameter sweep threat velocity variation (+/- half of this)
SWEEP_VELOCITY_VARIATION = 0.1


# =============================================================================
# RESULT TYPES
# =============================================================================

@dataclass(frozen=True)
class GuidanceSummary:
    """
    Guidance outcome of one engagement.

    Attributes:
        hit_distance: Minimum separation seen during the proximity walk.
        hit_time: Time of minimum separation in the guidance run.
        final_speed: Interceptor speed at the last state.
    """
    hit_distance: float
    hit_time: float
    final_speed: float


@dataclass(frozen=True)
class ProximityDetonation:
    """
    Proximity fuse outcome of one engagement.

    Attributes:
        detonated: Whether the fuse fired.
        detonation_distance: Separation at detonation (inf if none).
        detonation_quality: Quality reported by the decision table.
        detonation_time: Seconds after launch.
        detonation_point: Interceptor position at detonation.
        target_point: Target position at detonation.
        target_velocity: Target velocity at detonation.
    """
    detonated: bool
    detonation_distance: float
    detonation_quality: float
    detonation_time: float = 0.0
    detonation_point: Optional[Vector3D] = None
    target_point: Optional[Vector3D] = None
    target_velocity: Optional[Vector3D] = None

    @classmethod
    def none(cls) -> ProximityDetonation:
        return cls(detonated=False, detonation_distance=math.inf, detonation_quality=0.0)


@dataclass(frozen=True)
class SimulationResult:
    """
    Outcome of one end-to-end engagement.

    ``success`` is ``detonated and detonation_distance <= detonation_radius``.
    The fuse only fires inside the detonation radius, so it always equals
    ``proximity_detonation.detonated``; both are reported.

    The guidance run ends once the interceptor is within 5 m. A fuse whose
    optimal radius is below that keeps holding on the "will get closer" rule
    for a well-aimed shot, so the engagement can end undetonated with a
    minimum distance under 5 m.
    """
    scenario: EngagementScenario
    interception_solution: InterceptionSolution
    guidance_result: GuidanceSummary
    proximity_detonation: ProximityDetonation
    success: bool


@dataclass(frozen=True)
class BatchStatistics:
    """Aggregate statistics; averages are over successful engagements only."""
    total_scenarios: int
    successful_interceptions: int
    success_rate: float
    avg_hit_distance: float
    avg_hit_time: float
    avg_detonation_quality: float


@dataclass
class ScenarioBatch:
    results: list[SimulationResult] = field(default_factory=list)
    statistics: Optional[BatchStatistics] = None


@dataclass(frozen=True)
class ParameterRange:
    """
    Inclusive range of one guidance parameter.

    Attributes:
        parameter: GuidanceSettings field name, e.g. ``"proportional_gain"``.
        min: First value.
        max: Last value (inclusive).
        step: Increment, must be positive.
    """
    parameter: str
    min: float
    max: float
    step: float


@dataclass(frozen=True)
class SweepResult:
    parameters: dict[str, float]
    success_rate: float
    avg_hit_distance: float
    avg_hit_time: float


# =============================================================================
# PARAMETER COMBINATIONS
# =============================================================================

def _range_values(param_range: ParameterRange) -> list[float]:
    if param_range.step <= 0:
        raise ValueError(
            f"Step for {param_range.parameter} must be positive, got {param_range.step}"
        )
    if param_range.max < param_range.min:
        return []
    count = int(math.floor((param_range.max - param_range.min) / param_range.step + 1e-9)) + 1
    return [param_range.min + i * param_range.step for i in range(count)]


def generate_parameter_combinations(
    ranges: Sequence[ParameterRange]
) -> list[dict[str, float]]:
    """
    Cartesian product of every parameter range.

    Raises:
        ValueError: If a range has a non-positive step.
    """
    names = [r.parameter for r in ranges]
    values = [_range_values(r) for r in ranges]
    return [dict(zip(names, combo)) for combo in itertools.product(*values)]


# =============================================================================
# SIMULATOR
# =============================================================================

class InterceptionSimulator:
    """
    End-to-end engagement harness.

    Each call to ``simulate_interception`` is independent; the simulator
    holds only its settings and random source.
    """

    def __init__(
        self,
        guidance_settings: Optional[GuidanceSettings] = None,
        proximity_settings: Optional[ProximityFuseSettings] = None,
        logger: Optional[logging.Logger] = None,
        rng: Optional[random.Random] = None
    ):
        self.guidance_settings = guidance_settings or GuidanceSettings()
        self.proximity_settings = proximity_settings or ProximityFuseSettings()
        self.logger = logger or get_logger(SIMULATOR)
        self.rng = rng or random.Random()

    def _guidance_for(self, scenario: EngagementScenario) -> GuidanceSettings:
        settings = scenario.guidance or self.guidance_settings
        if not scenario.threat.threat_type.affected_by_gravity:
            settings = replace(settings, target_gravity=0.0)
        return settings

    def simulate_interception(self, scenario: EngagementScenario) -> SimulationResult:
        """
        Run one engagement: solve, guide, walk the proximity fuse.

        Args:
            scenario: Threat and battery description.

        Returns:
            SimulationResult; a failed result with infinite distances when
            no launch solution exists.
        """
        threat = scenario.threat
        battery = scenario.battery
        guidance = self._guidance_for(scenario)
        target_gravity = G_STANDARD if threat.threat_type.affected_by_gravity else 0.0

        solution = calculate_interception(
            InterceptionScenario(
                interceptor_position=battery.position,
                interceptor_velocity=Vector3D.zero(),
                threat_position=threat.position,
                threat_velocity=threat.velocity,
                interceptor_speed=battery.interceptor_speed,
                target_gravity=target_gravity,
            ),
            logger=self.logger,
        )

        if not solution.should_fire:
            log_event(self.logger, logging.INFO, "engagement_no_solution", scenario=scenario.name)
            return SimulationResult(
                scenario=scenario,
                interception_solution=solution,
                guidance_result=GuidanceSummary(math.inf, 0.0, 0.0),
                proximity_detonation=ProximityDetonation.none(),
                success=False,
            )

        initial_state = GuidanceState(
            position=battery.position,
            velocity=solution.launch_velocity,
            mass=battery.interceptor_mass,
            target=threat.position,
            target_velocity=threat.velocity,
            time=0.0,
        )
        run = run_guidance_simulation(
            initial_state,
            guidance,
            max_time=solution.time_to_intercept * DURATION_MARGIN,
            dt=SIMULATION_TIME_STEP_S,
            logger=self.logger,
        )

        launch_position = battery.position
        min_distance = math.inf
        detonation = ProximityDetonation.none()

        for state in run.states:
            distance_traveled = state.position.distance_to(launch_position)
            proximity = calculate_proximity(
                state.position, state.velocity, state.target, state.target_velocity
            )
            min_distance = min(min_distance, proximity.distance)

            decision = should_detonate(proximity, self.proximity_settings, distance_traveled)
            if decision.detonate:
                detonation = ProximityDetonation(
                    detonated=True,
                    detonation_distance=proximity.distance,
                    detonation_quality=decision.quality,
                    detonation_time=state.time,
                    detonation_point=state.position,
                    target_point=state.target,
                    target_velocity=state.target_velocity,
                )
                break

        final_speed = run.states[-1].velocity.magnitude
        success = (
            detonation.detonated and
            detonation.detonation_distance <= self.proximity_settings.detonation_radius
        )

        log_event(
            self.logger, logging.INFO, "engagement_complete",
            scenario=scenario.name,
            success=success,
            min_distance=min_distance,
            detonation_distance=detonation.detonation_distance,
            quality=detonation.detonation_quality,
        )

        return SimulationResult(
            scenario=scenario,
            interception_solution=solution,
            guidance_result=GuidanceSummary(
                hit_distance=min_distance,
                hit_time=run.hit_time,
                final_speed=final_speed,
            ),
            proximity_detonation=detonation,
            success=success,
        )

    def run_scenarios(self, scenarios: Sequence[EngagementScenario]) -> ScenarioBatch:
        """
        Simulate every scenario and aggregate statistics.

        Averages cover successful engagements only and are 0 when there are
        none. An empty batch has a success rate of 0.
        """
        results = [self.simulate_interception(s) for s in scenarios]
        successful = [r for r in results if r.success]

        def _mean(values: list[float]) -> float:
            return float(np.mean(values)) if values else 0.0

        statistics = BatchStatistics(
            total_scenarios=len(results),
            successful_interceptions=len(successful),
            success_rate=len(successful) / len(results) if results else 0.0,
            avg_hit_distance=_mean([r.guidance_result.hit_distance for r in successful]),
            avg_hit_time=_mean([r.guidance_result.hit_time for r in successful]),
            avg_detonation_quality=_mean(
                [r.proximity_detonation.detonation_quality for r in successful]
            ),
        )
        return ScenarioBatch(results=results, statistics=statistics)

    def run_parameter_sweep(
        self,
        base_scenario: EngagementScenario,
        ranges: Sequence[ParameterRange],
        test_count: int = 10
    ) -> list[SweepResult]:
        """
        Evaluate every combination of guidance parameters.

        Each combination runs ``test_count`` copies of the base scenario with
        the threat velocity scaled by a random factor in [0.95, 1.05].

        Args:
            base_scenario: Scenario to vary.
            ranges: Guidance parameters to sweep.
            test_count: Trials per combination.

        Returns:
            SweepResult list sorted by success rate, best first.

        Raises:
            TypeError: If a range names an unknown guidance parameter.
        """
        base_guidance = base_scenario.guidance or self.guidance_settings
        results = []

        for params in generate_parameter_combinations(ranges):
            swept = replace(base_guidance, **params)
            tester = InterceptionSimulator(
                swept, self.proximity_settings, self.logger, self.rng
            )

            trials = []
            for _ in range(test_count):
                variation = 1 + (self.rng.random() - 0.5) * SWEEP_VELOCITY_VARIATION
                trial = base_scenario.with_threat_velocity(
                    base_scenario.threat.velocity * variation
                )
                trials.append(replace(trial, guidance=None))

            stats = tester.run_scenarios(trials).statistics
            results.append(SweepResult(
                parameters=params,
                success_rate=stats.success_rate,
                avg_hit_distance=stats.avg_hit_distance,
                avg_hit_time=stats.avg_hit_time,
            ))

        results.sort(key=lambda r: r.success_rate, reverse=True)

        if results:
            log_event(
                self.logger, logging.INFO, "parameter_sweep_complete",
                combinations=len(results),
                best_success_rate=results[0].success_rate,
            )
        return results
