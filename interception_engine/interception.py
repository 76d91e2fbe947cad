#!/usr/bin/env python3
"""
Interception Calculator for the Interception Engine.

Pure functions that decide whether and how to engage a threat:
- Intercept-point solver (discrete flight-time search)
- Hit probability model for a candidate solution
- Relative-motion proximity geometry
- Proximity-fuse detonation decision table

Nothing here keeps state between calls; infeasible engagements are reported
through sentinel results, never exceptions.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Mapping, Optional, Union

from .diagnostics import SOLVER, get_logger, log_event
from .physics import G_STANDARD, Vector3D, ballistic_position


# =============================================================================
# SOLVER CONSTANTS
# =============================================================================

DEFAULT_MAX_FLIGHT_TIME_S = 30.0
MIN_FLIGHT_TIME_S = 1.0
FLIGHT_TIME_STEP_S = 0.5

# Required speed may exceed the interceptor's nominal speed by 20%
SPEED_MARGIN = 1.2

# Hit probability model
BASE_HIT_PROBABILITY = 0.95
RANGE_DECAY_START_M = 5000.0
RANGE_DECAY_SCALE_M = 3000.0
FLIGHT_TIME_DECAY_START_S = 10.0
FLIGHT_TIME_DECAY_SCALE_S = 10.0
SPEED_RATIO_PENALTY_THRESHOLD = 0.9

# Relative speed^2 below which closest approach is undefined (m^2/s^2)
MIN_RELATIVE_SPEED_SQ = 0.001

# Proximity fuse defaults
DEFAULT_ARMING_DISTANCE_M = 20.0
DEFAULT_DETONATION_RADIUS_M = 8.0
DEFAULT_OPTIMAL_RADIUS_M = 3.0
DEFAULT_SCAN_RATE = 4

# Quality floors of the two "fire now" branches.
MOVING_AWAY_QUALITY_FLOOR = 0.3
CLOSEST_APPROACH_QUALITY_FLOOR = 0.5


# =============================================================================
# DATA TYPES
# =============================================================================

@dataclass(frozen=True)
class InterceptionScenario:
    """
    Inputs of a single intercept-point calculation.

    Attributes:
        interceptor_position: Launch position (meters).
        interceptor_velocity: Launcher velocity (m/s), usually zero.
        threat_position: Current threat position (meters).
        threat_velocity: Current threat velocity (m/s).
        interceptor_speed: Nominal interceptor speed (m/s).
        gravity: Gravity acting on the interceptor (m/s^2).
        max_flight_time: Longest flight time considered (seconds).
        target_gravity: Gravity acting on the threat; None means ``gravity``.
            Level-flight threats (drones, cruise missiles) use 0.
    """
    interceptor_position: Vector3D
    interceptor_velocity: Vector3D
    threat_position: Vector3D
    threat_velocity: Vector3D
    interceptor_speed: float
    gravity: float = G_STANDARD
    max_flight_time: float = DEFAULT_MAX_FLIGHT_TIME_S
    target_gravity: Optional[float] = None

    @property
    def effective_target_gravity(self) -> float:
        return self.gravity if self.target_gravity is None else self.target_gravity


@dataclass(frozen=True)
class InterceptionSolution:
    """
    Launch solution for one engagement.

    ``should_fire=False`` with zeroed fields is the "no feasible solution"
    result.

    Attributes:
        should_fire: Whether a feasible solution was found.
        aim_point: Predicted intercept point (meters).
        launch_velocity: Required launch velocity vector (m/s).
        time_to_intercept: Planned flight time (seconds).
        probability: Estimated hit probability (0.0 to 1.0).
        distance: Straight-line distance from launcher to aim point (meters).
    """
    should_fire: bool
    aim_point: Vector3D
    launch_velocity: Vector3D
    time_to_intercept: float
    probability: float
    distance: float

    @classmethod
    def no_solution(cls) -> InterceptionSolution:
        return cls(
            should_fire=False,
            aim_point=Vector3D.zero(),
            launch_velocity=Vector3D.zero(),
            time_to_intercept=0.0,
            probability=0.0,
            distance=0.0
        )


@dataclass(frozen=True)
class ProximityResult:
    """
    Relative-motion geometry between interceptor and threat.

    Attributes:
        distance: Current separation (meters).
        closing_rate: Rate at which separation shrinks (m/s, positive = closing).
        time_to_closest_approach: Seconds until closest approach (0 if passed
            or undefined).
        closest_approach_distance: Predicted separation at closest approach.
    """
    distance: float
    closing_rate: float
    time_to_closest_approach: float
    closest_approach_distance: float


@dataclass(frozen=True)
class ProximityFuseSettings:
    """
    Tunable proximity-fuse parameters.

    Attributes:
        arming_distance: Distance from launch before the fuse arms (meters).
        detonation_radius: Largest distance at which detonation is allowed.
        optimal_radius: Distance giving the best kill probability.
        scan_rate: Frames between proximity scans on the live fuse. The batch
            engagement walk checks every state regardless.
    """
    arming_distance: float = DEFAULT_ARMING_DISTANCE_M
    detonation_radius: float = DEFAULT_DETONATION_RADIUS_M
    optimal_radius: float = DEFAULT_OPTIMAL_RADIUS_M
    scan_rate: int = DEFAULT_SCAN_RATE

    @property
    def is_valid(self) -> bool:
        """Settings are usable only when optimal < detonation radius."""
        return 0 <= self.optimal_radius < self.detonation_radius

    @classmethod
    def from_mapping(cls, data: Mapping[str, float]) -> ProximityFuseSettings:
        """
        Build settings from a mapping such as a genome's genes.

        Missing keys fall back to the defaults.
        """
        return cls(
            arming_distance=data.get("arming_distance", DEFAULT_ARMING_DISTANCE_M),
            detonation_radius=data.get("detonation_radius", DEFAULT_DETONATION_RADIUS_M),
            optimal_radius=data.get("optimal_radius", DEFAULT_OPTIMAL_RADIUS_M),
            scan_rate=int(data.get("scan_rate", DEFAULT_SCAN_RATE)),
        )

    def to_dict(self) -> dict[str, float]:
        return {
            "arming_distance": self.arming_distance,
            "detonation_radius": self.detonation_radius,
            "optimal_radius": self.optimal_radius,
            "scan_rate": self.scan_rate,
        }


class FuseState(Enum):
    """State of the fuse implied by a detonation decision."""
    UNARMED = auto()
    ARMED_WAITING = auto()
    ARMED_FIRE = auto()


@dataclass(frozen=True)
class DetonationDecision:
    """
    Outcome of one proximity-fuse evaluation.

    Attributes:
        detonate: Whether to detonate now.
        quality: Detonation quality (0.0 to 1.0), 0 when holding.
        rule: Name of the rule that produced the decision.
    """
    detonate: bool
    quality: float
    rule: str

    @property
    def state(self) -> FuseState:
        if self.detonate:
            return FuseState.ARMED_FIRE
        if self.rule in (RULE_INVALID_SETTINGS, RULE_NOT_ARMED):
            return FuseState.UNARMED
        return FuseState.ARMED_WAITING


# =============================================================================
# INTERCEPT SOLVER
# =============================================================================

def calculate_hit_probability(
    distance: float,
    flight_time: float,
    speed_ratio: float
) -> float:
    """
    Estimate the probability that a launch solution hits.

    Starts from 0.95 and applies:
    - exponential decay beyond 5 km range
    - exponential decay beyond 10 s flight time
    - a penalty when the required speed exceeds 90% of the interceptor's

    Args:
        distance: Launcher-to-aim-point distance (meters).
        flight_time: Planned flight time (seconds).
        speed_ratio: Required speed / interceptor speed.

    Returns:
        Probability clamped to [0, 1].
    """
    probability = BASE_HIT_PROBABILITY

    if distance > RANGE_DECAY_START_M:
        probability *= math.exp(-(distance - RANGE_DECAY_START_M) / RANGE_DECAY_SCALE_M)

    if flight_time > FLIGHT_TIME_DECAY_START_S:
        probability *= math.exp(
            -(flight_time - FLIGHT_TIME_DECAY_START_S) / FLIGHT_TIME_DECAY_SCALE_S
        )

    if speed_ratio > SPEED_RATIO_PENALTY_THRESHOLD:
        probability *= (1 - speed_ratio) * 10

    return max(0.0, min(1.0, probability))


def calculate_interception(
    scenario: InterceptionScenario,
    logger: Optional[logging.Logger] = None
) -> InterceptionSolution:
    """
    Find the best launch solution against a threat.

    Candidate flight times run from 1 s to ``max_flight_time`` in 0.5 s steps.
    For each, the threat position is predicted (constant horizontal velocity,
    ballistic fall), candidates below ground or requiring more than 120% of
    the interceptor speed are rejected, and the rest are scored by
    ``hit_probability / t`` so that fast, probable shots win.

    Args:
        scenario: Engagement geometry and interceptor capability.
        logger: Optional logger for diagnostic events.

    Returns:
        Best InterceptionSolution, or ``InterceptionSolution.no_solution()``.
    """
    logger = logger or get_logger(SOLVER)
    gravity = scenario.gravity
    target_gravity = scenario.effective_target_gravity
    interceptor_pos = scenario.interceptor_position

    best_solution: Optional[InterceptionSolution] = None
    best_score = -math.inf

    candidate_count = int(
        math.floor((scenario.max_flight_time - MIN_FLIGHT_TIME_S) / FLIGHT_TIME_STEP_S + 1e-9)
    ) + 1

    for i in range(max(0, candidate_count)):
        t = MIN_FLIGHT_TIME_S + i * FLIGHT_TIME_STEP_S

        predicted = ballistic_position(
            scenario.threat_position, scenario.threat_velocity, t, target_gravity
        )
        if predicted.y < 0:
            continue

        displacement = predicted - interceptor_pos
        horizontal_disp = displacement.horizontal()
        horizontal_dist = horizontal_disp.magnitude

        required_horizontal_speed = horizontal_dist / t
        required_vertical_vel = displacement.y / t + 0.5 * gravity * t
        required_speed = math.sqrt(
            required_horizontal_speed**2 + required_vertical_vel**2
        )

        if required_speed > scenario.interceptor_speed * SPEED_MARGIN:
            continue

        launch_velocity = horizontal_disp.normalized() * required_horizontal_speed
        launch_velocity = Vector3D(launch_velocity.x, required_vertical_vel, launch_velocity.z)

        distance = displacement.magnitude
        probability = calculate_hit_probability(
            distance, t, required_speed / scenario.interceptor_speed
        )
        score = probability * (1 / t)

        if score > best_score:
            best_score = score
            best_solution = InterceptionSolution(
                should_fire=True,
                aim_point=predicted,
                launch_velocity=launch_velocity,
                time_to_intercept=t,
                probability=probability,
                distance=distance
            )

    if best_solution is None:
        log_event(
            logger, logging.DEBUG, "solution_not_found",
            threat_x=scenario.threat_position.x,
            threat_y=scenario.threat_position.y,
            threat_z=scenario.threat_position.z,
            interceptor_speed=scenario.interceptor_speed
        )
        return InterceptionSolution.no_solution()

    log_event(
        logger, logging.DEBUG, "solution_found",
        time_to_intercept=best_solution.time_to_intercept,
        probability=best_solution.probability,
        distance=best_solution.distance
    )
    return best_solution


# =============================================================================
# PROXIMITY GEOMETRY
# =============================================================================

def calculate_proximity(
    interceptor_pos: Vector3D,
    interceptor_vel: Vector3D,
    threat_pos: Vector3D,
    threat_vel: Vector3D
) -> ProximityResult:
    """
    Relative-motion geometry between an interceptor and a threat.

    closing_rate = -(r . v) / |r|, positive while the separation shrinks.
    time_to_closest_approach = -(r . v) / |v|^2, 0 when |v|^2 is negligible.

    Args:
        interceptor_pos: Interceptor position (meters).
        interceptor_vel: Interceptor velocity (m/s).
        threat_pos: Threat position (meters).
        threat_vel: Threat velocity (m/s).

    Returns:
        ProximityResult for the current instant.
    """
    rel_pos = threat_pos - interceptor_pos
    rel_vel = threat_vel - interceptor_vel
    distance = rel_pos.magnitude
    range_rate_numerator = rel_pos.dot(rel_vel)

    if distance > 0:
        closing_rate = -range_rate_numerator / distance
    else:
        closing_rate = 0.0

    rel_speed_sq = rel_vel.magnitude_squared
    if rel_speed_sq > MIN_RELATIVE_SPEED_SQ:
        time_to_closest = -range_rate_numerator / rel_speed_sq
    else:
        time_to_closest = 0.0

    closest_distance = distance
    if time_to_closest > 0:
        closest_distance = (rel_pos + rel_vel * time_to_closest).magnitude

    return ProximityResult(
        distance=distance,
        closing_rate=closing_rate,
        time_to_closest_approach=time_to_closest,
        closest_approach_distance=closest_distance
    )


# =============================================================================
# PROXIMITY FUSE DECISION TABLE
# =============================================================================

RULE_INVALID_SETTINGS = "invalid_settings"
RULE_NOT_ARMED = "not_armed"
RULE_OUT_OF_RANGE = "out_of_range"
RULE_MOVING_AWAY = "moving_away"
RULE_WITHIN_OPTIMAL = "within_optimal"
RULE_WILL_GET_CLOSER = "will_get_closer"
RULE_CLOSEST_APPROACH = "closest_approach"

FuseRule = Callable[
    [ProximityResult, ProximityFuseSettings, float],
    Optional[DetonationDecision]
]


def _falloff_quality(distance: float, settings: ProximityFuseSettings) -> float:
    """Linear quality from 1.0 at optimal radius to 0.0 at detonation radius."""
    return 1 - (distance - settings.optimal_radius) / (
        settings.detonation_radius - settings.optimal_radius
    )


def _rule_invalid_settings(proximity, settings, distance_traveled):
    if not settings.is_valid:
        return DetonationDecision(False, 0.0, RULE_INVALID_SETTINGS)
    return None


def _rule_not_armed(proximity, settings, distance_traveled):
    if distance_traveled < settings.arming_distance:
        return DetonationDecision(False, 0.0, RULE_NOT_ARMED)
    return None


def _rule_out_of_range(proximity, settings, distance_traveled):
    if proximity.distance > settings.detonation_radius:
        return DetonationDecision(False, 0.0, RULE_OUT_OF_RANGE)
    return None


def _rule_moving_away(proximity, settings, distance_traveled):
    if proximity.closing_rate < 0:
        if proximity.distance <= settings.optimal_radius:
            quality = 1.0
        else:
            quality = _falloff_quality(proximity.distance, settings)
        return DetonationDecision(
            True, max(MOVING_AWAY_QUALITY_FLOOR, quality), RULE_MOVING_AWAY
        )
    return None


def _rule_within_optimal(proximity, settings, distance_traveled):
    if proximity.distance <= settings.optimal_radius:
        return DetonationDecision(True, 1.0, RULE_WITHIN_OPTIMAL)
    return None


def _rule_will_get_closer(proximity, settings, distance_traveled):
    if (proximity.time_to_closest_approach > 0 and
            proximity.closest_approach_distance < settings.optimal_radius):
        return DetonationDecision(False, 0.0, RULE_WILL_GET_CLOSER)
    return None


def _rule_closest_approach(proximity, settings, distance_traveled):
    quality = _falloff_quality(proximity.distance, settings)
    return DetonationDecision(
        True, max(CLOSEST_APPROACH_QUALITY_FLOOR, quality), RULE_CLOSEST_APPROACH
    )


# Evaluated top to bottom; the first rule returning a decision wins.
DETONATION_RULES: tuple[tuple[str, FuseRule], ...] = (
    (RULE_INVALID_SETTINGS, _rule_invalid_settings),
    (RULE_NOT_ARMED, _rule_not_armed),
    (RULE_OUT_OF_RANGE, _rule_out_of_range),
    (RULE_MOVING_AWAY, _rule_moving_away),
    (RULE_WITHIN_OPTIMAL, _rule_within_optimal),
    (RULE_WILL_GET_CLOSER, _rule_will_get_closer),
    (RULE_CLOSEST_APPROACH, _rule_closest_approach),
)


def should_detonate(
    proximity: ProximityResult,
    settings: Union[ProximityFuseSettings, Mapping[str, float]],
    distance_traveled: float
) -> DetonationDecision:
    """
    Decide whether the proximity fuse fires at this instant.

    Rules, in priority order:
    1. Invalid settings (optimal >= detonation radius): hold
    2. Not armed (traveled < arming distance): hold
    3. Beyond detonation radius: hold
    4. Moving away inside the radius: fire, quality floored at 0.3
    5. Inside optimal radius: fire, quality 1.0
    6. Closing and closest approach will fall inside optimal radius: hold
    7. Otherwise (as close as it gets): fire, quality floored at 0.5

    Args:
        proximity: Current proximity geometry.
        settings: Fuse settings or a mapping with the same keys.
        distance_traveled: Distance flown since launch (meters).

    Returns:
        DetonationDecision naming the rule that decided.
    """
    if not isinstance(settings, ProximityFuseSettings):
        settings = ProximityFuseSettings.from_mapping(settings)

    for _, rule in DETONATION_RULES:
        decision = rule(proximity, settings, distance_traveled)
        if decision is not None:
            return decision

    # Unreachable: the last rule always decides
    raise RuntimeError("Detonation rule table produced no decision")
