#!/usr/bin/env python3
"""
Blast Physics Module for the Interception Engine

Models the fragmentation warhead of an interceptor:
- Four-zone kill probability profile (direct, severe, moderate, light)
- Crossing-speed penalty for fast targets
- Optimal detonation point accounting for fragment travel time
- Multi-target damage check for a single detonation

Kill probability by zone (f = 1 - ((d - inner) / (outer - inner))^2):
    direct   d <= lethal      0.95
    severe   d <= severe      0.80 + 0.15 * f
    moderate d <= moderate    0.30 + 0.50 * f
    light    d <= light       0.30 * f
    none     beyond           0.0

The profile is continuous at every zone boundary and never increases with
distance. A single uniform jitter in [0.9, 1.1] is applied on top.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Protocol

from .diagnostics import BLAST, get_logger, log_event
from .physics import Vector3D


# =============================================================================
# CONSTANTS
# =============================================================================

# Fragment velocity for modern fragmentation warheads (m/s)
FRAGMENT_VELOCITY_MS = 1000.0

# Crossing penalty: min(1, REFERENCE / (speed + OFFSET))
CROSSING_REFERENCE_SPEED_MS = 300.0
CROSSING_SPEED_OFFSET_MS = 100.0

# Uniform jitter applied to kill probability
JITTER_MIN = 0.9
JITTER_SPAN = 0.2

# Zone probabilities
DIRECT_KILL_PROBABILITY = 0.95
SEVERE_BASE_PROBABILITY = 0.8
SEVERE_FALLOFF_WEIGHT = 0.15
MODERATE_BASE_PROBABILITY = 0.3
MODERATE_FALLOFF_WEIGHT = 0.5
LIGHT_FALLOFF_WEIGHT = 0.3

# Relative speed^2 below which the bodies are treated as already at closest approach
MIN_RELATIVE_SPEED_SQ = 1e-9


# =============================================================================
# DATA TYPES
# =============================================================================

class DamageType(Enum):
    """Damage zone a target fell in."""
    DIRECT = "direct"
    SEVERE = "severe"
    MODERATE = "moderate"
    LIGHT = "light"
    NONE = "none"


@dataclass(frozen=True)
class BlastConfig:
    """
    Warhead characteristics and damage zones.

    Attributes:
        warhead_mass_kg: Explosive mass (kg).
        fragmentation_radius_m: Effective fragment range (meters).
        blast_radius_m: Overpressure damage range (meters).
        lethal_radius_m: Direct hit zone outer radius.
        severe_radius_m: High fragment density outer radius.
        moderate_radius_m: Medium fragment density outer radius.
        light_radius_m: Low fragment density outer radius.

    Raises:
        ValueError: If the zone radii are not strictly increasing.
    """
    warhead_mass_kg: float
    fragmentation_radius_m: float
    blast_radius_m: float
    lethal_radius_m: float
    severe_radius_m: float
    moderate_radius_m: float
    light_radius_m: float

    def __post_init__(self):
        radii = (
            self.lethal_radius_m,
            self.severe_radius_m,
            self.moderate_radius_m,
            self.light_radius_m,
        )
        if radii[0] <= 0 or any(a >= b for a, b in zip(radii, radii[1:])):
            raise ValueError(
                f"Blast zone radii must be positive and strictly increasing, got {radii}"
            )


# Tamir interceptor warhead (public figures)
TAMIR_CONFIG = BlastConfig(
    warhead_mass_kg=11.0,
    fragmentation_radius_m=20.0,
    blast_radius_m=15.0,
    lethal_radius_m=3.0,
    severe_radius_m=6.0,
    moderate_radius_m=10.0,
    light_radius_m=15.0,
)


@dataclass(frozen=True)
class DamageResult:
    """
    Outcome of a single blast against a single target.

    Attributes:
        hit: Whether the target was destroyed (sampled).
        damage: Jittered kill probability before capping (may exceed 1).
        kill_probability: Jittered kill probability capped at 1.0.
        damage_type: Zone the target was in.
        distance: Blast-to-target distance (meters).
        crossing_factor: Speed penalty that was applied.
    """
    hit: bool
    damage: float
    kill_probability: float
    damage_type: DamageType
    distance: float
    crossing_factor: float


@dataclass(frozen=True)
class DetonationPlan:
    """
    Predicted best detonation for an interceptor/target pair.

    Attributes:
        should_detonate: Whether the predicted miss is inside the detonation radius.
        detonation_point: Where the interceptor will be when it detonates.
        time_to_detonation: Seconds from now (0 if closest approach has passed).
        predicted_distance: Miss distance including fragment travel time.
    """
    should_detonate: bool
    detonation_point: Vector3D
    time_to_detonation: float
    predicted_distance: float


@dataclass(frozen=True)
class BlastTarget:
    """A target exposed to a blast."""
    target_id: str
    position: Vector3D
    velocity: Vector3D


@dataclass(frozen=True)
class BlastTargetResult:
    """Damage summary of one target in a multi-target blast check."""
    target_id: str
    damage: float
    will_be_destroyed: bool
    damage_type: DamageType


class FuseRadii(Protocol):
    detonation_radius: float
    optimal_radius: float


# =============================================================================
# DETERMINISTIC MODEL
# =============================================================================

def crossing_factor(target_speed: float) -> float:
    """Penalty for fast crossing targets: 1.0 up to 200 m/s, then decreasing."""
    return min(1.0, CROSSING_REFERENCE_SPEED_MS / (target_speed + CROSSING_SPEED_OFFSET_MS))


def _falloff(distance: float, inner: float, outer: float) -> float:
    return 1 - ((distance - inner) / (outer - inner)) ** 2


def base_kill_probability(
    distance: float,
    target_speed: float,
    config: BlastConfig = TAMIR_CONFIG
) -> tuple[float, DamageType]:
    """
    Kill probability before jitter.

    Args:
        distance: Blast-to-target distance (meters).
        target_speed: Target speed (m/s), used for the crossing penalty.
        config: Warhead configuration.

    Returns:
        Tuple of (probability, damage zone).
    """
    factor = crossing_factor(target_speed)

    if distance <= config.lethal_radius_m:
        return DIRECT_KILL_PROBABILITY * factor, DamageType.DIRECT

    if distance <= config.severe_radius_m:
        f = _falloff(distance, config.lethal_radius_m, config.severe_radius_m)
        return (SEVERE_BASE_PROBABILITY + f * SEVERE_FALLOFF_WEIGHT) * factor, DamageType.SEVERE

    if distance <= config.moderate_radius_m:
        f = _falloff(distance, config.severe_radius_m, config.moderate_radius_m)
        return (MODERATE_BASE_PROBABILITY + f * MODERATE_FALLOFF_WEIGHT) * factor, DamageType.MODERATE

    if distance <= config.light_radius_m:
        f = _falloff(distance, config.moderate_radius_m, config.light_radius_m)
        return f * LIGHT_FALLOFF_WEIGHT * factor, DamageType.LIGHT

    return 0.0, DamageType.NONE


def calculate_optimal_detonation_point(
    interceptor_pos: Vector3D,
    interceptor_vel: Vector3D,
    target_pos: Vector3D,
    target_vel: Vector3D,
    settings: FuseRadii
) -> DetonationPlan:
    """
    Predict the best detonation for a moving target.

    Projects both bodies to their closest approach, then advances the target
    by the time fragments need to cover the miss distance.

    Args:
        interceptor_pos: Interceptor position (meters).
        interceptor_vel: Interceptor velocity (m/s).
        target_pos: Target position (meters).
        target_vel: Target velocity (m/s).
        settings: Anything exposing ``detonation_radius`` and ``optimal_radius``.

    Returns:
        DetonationPlan for the pair.
    """
    rel_pos = target_pos - interceptor_pos
    rel_vel = target_vel - interceptor_vel
    rel_speed_sq = rel_vel.magnitude_squared

    if rel_speed_sq > MIN_RELATIVE_SPEED_SQ:
        time_to_closest = -rel_pos.dot(rel_vel) / rel_speed_sq
    else:
        time_to_closest = 0.0

    if time_to_closest <= 0:
        current_distance = rel_pos.magnitude
        return DetonationPlan(
            should_detonate=current_distance <= settings.detonation_radius,
            detonation_point=interceptor_pos,
            time_to_detonation=0.0,
            predicted_distance=current_distance
        )

    future_interceptor = interceptor_pos + interceptor_vel * time_to_closest
    future_target = target_pos + target_vel * time_to_closest
    closest_distance = future_interceptor.distance_to(future_target)

    fragment_travel_time = closest_distance / FRAGMENT_VELOCITY_MS
    adjusted_target = future_target + target_vel * fragment_travel_time
    adjusted_distance = future_interceptor.distance_to(adjusted_target)

    return DetonationPlan(
        should_detonate=adjusted_distance <= settings.detonation_radius,
        detonation_point=future_interceptor,
        time_to_detonation=time_to_closest,
        predicted_distance=adjusted_distance
    )


# =============================================================================
# BLAST PHYSICS
# =============================================================================

class BlastPhysics:
    """
    Stochastic blast damage model.

    The random source is injected so that runs can be reproduced:

        physics = BlastPhysics(rng=random.Random(42))
        result = physics.calculate_damage(blast, target, velocity)
    """

    def __init__(
        self,
        config: BlastConfig = TAMIR_CONFIG,
        rng: Optional[random.Random] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.config = config
        self.rng = rng or random.Random()
        self.logger = logger or get_logger(BLAST)

    def calculate_damage(
        self,
        blast_position: Vector3D,
        target_position: Vector3D,
        target_velocity: Vector3D
    ) -> DamageResult:
        """
        Sample the damage a detonation does to one target.

        Args:
            blast_position: Detonation point (meters).
            target_position: Target position at detonation (meters).
            target_velocity: Target velocity at detonation (m/s).

        Returns:
            DamageResult with the sampled hit outcome.
        """
        distance = blast_position.distance_to(target_position)
        target_speed = target_velocity.magnitude
        probability, damage_type = base_kill_probability(distance, target_speed, self.config)

        probability *= JITTER_MIN + self.rng.random() * JITTER_SPAN
        hit = self.rng.random() < probability

        log_event(
            self.logger, logging.DEBUG, "blast_damage",
            distance=distance,
            damage_type=damage_type.value,
            kill_probability=probability,
            hit=hit
        )

        return DamageResult(
            hit=hit,
            damage=probability,
            kill_probability=min(1.0, probability),
            damage_type=damage_type,
            distance=distance,
            crossing_factor=crossing_factor(target_speed)
        )

    def check_blast_damage(
        self,
        blast_position: Vector3D,
        targets: Iterable[BlastTarget]
    ) -> list[BlastTargetResult]:
        """Evaluate one detonation against several targets, in order."""
        results = []
        for target in targets:
            damage = self.calculate_damage(blast_position, target.position, target.velocity)
            results.append(BlastTargetResult(
                target_id=target.target_id,
                damage=damage.kill_probability,
                will_be_destroyed=damage.hit,
                damage_type=damage.damage_type
            ))
        return results


def calculate_damage(
    blast_position: Vector3D,
    target_position: Vector3D,
    target_velocity: Vector3D,
    config: BlastConfig = TAMIR_CONFIG,
    rng: Optional[random.Random] = None
) -> DamageResult:
    """Convenience wrapper around ``BlastPhysics.calculate_damage``."""
    return BlastPhysics(config, rng).calculate_damage(
        blast_position, target_position, target_velocity
    )
