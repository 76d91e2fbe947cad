#!/usr/bin/env python3
"""
Guidance Module for the Interception Engine

Closed-loop interceptor guidance:
- Lead-pursuit velocity controller with a g-limit (GuidanceSimulator)
- Semi-implicit Euler integration of interceptor and target
- Full engagement run producing a time-ordered list of states
- True proportional navigation law with terminal compensation

Control law of the guidance simulator:
    lead_time   = 0.5 * distance / speed
    desired_vel = unit(predicted_target - position) * target_speed
    force       = (desired_vel - velocity) * mass * gain + mass * g * y_hat
    force       = force limited to mass * max_g * g
    force      += unit(velocity) * max(0, (target_speed - speed) * mass * 0.5)

Proportional navigation:
    a_cmd = N * Vc * omega,  omega = (r x v) / |r|^2
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from typing import Optional

from .diagnostics import GUIDANCE, get_logger, log_event
from .physics import G_STANDARD, Vector3D


# =============================================================================
# CONSTANTS
# =============================================================================

DEFAULT_TIME_STEP_S = 0.016
DEFAULT_MAX_TIME_S = 30.0

# No guidance below this speed or inside this distance
MIN_GUIDANCE_SPEED_MS = 10.0
MIN_GUIDANCE_DISTANCE_M = 3.0

# Lead time as a fraction of time to impact
LEAD_TIME_FRACTION = 0.5

# Speed-hold thrust gain (per second)
SPEED_HOLD_GAIN = 0.5

# Run stops inside this distance
HIT_DISTANCE_M = 5.0

# Proportional navigation defaults
DEFAULT_NAVIGATION_CONSTANT = 3.0
DEFAULT_MAX_ACCELERATION = 300.0   # m/s^2 (~30 g)
DEFAULT_MIN_CLOSING_VELOCITY = 50.0
MAX_ELEVATION_BIAS_RAD = math.radians(15.0)
ELEVATION_BIAS_RANGE_M = 10000.0


# =============================================================================
# DATA TYPES
# =============================================================================

@dataclass(frozen=True)
class GuidanceSettings:
    """
    Tunable parameters of the guidance controller.

    Attributes:
        max_g_force: Lateral force limit in multiples of g.
        target_speed: Speed the controller tries to hold (m/s).
        proportional_gain: Velocity error gain (1/s).
        gravity: Gravity acting on the interceptor (m/s^2).
        target_gravity: Gravity acting on the target; None means ``gravity``.
    """
    max_g_force: float = 40.0
    target_speed: float = 180.0
    proportional_gain: float = 2.0
    gravity: float = G_STANDARD
    target_gravity: Optional[float] = None

    @property
    def effective_target_gravity(self) -> float:
        return self.gravity if self.target_gravity is None else self.target_gravity

    def to_dict(self) -> dict:
        return {
            "max_g_force": self.max_g_force,
            "target_speed": self.target_speed,
            "proportional_gain": self.proportional_gain,
            "gravity": self.gravity,
            "target_gravity": self.target_gravity,
        }

    @classmethod
    def from_dict(cls, data: dict) -> GuidanceSettings:
        """Create settings from a dictionary; missing keys use defaults."""
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


@dataclass(frozen=True)
class GuidanceState:
    """
    Snapshot of an engagement at one instant.

    Attributes:
        position: Interceptor position (meters).
        velocity: Interceptor velocity (m/s).
        mass: Interceptor mass (kg).
        target: Target position (meters).
        target_velocity: Target velocity (m/s).
        time: Seconds since launch.
    """
    position: Vector3D
    velocity: Vector3D
    mass: float
    target: Vector3D
    target_velocity: Vector3D
    time: float = 0.0

    @property
    def distance_to_target(self) -> float:
        return self.position.distance_to(self.target)


@dataclass(frozen=True)
class GuidanceCommand:
    """Thrust force (N) and the force limit that applied to it."""
    thrust: Vector3D
    max_thrust: float

    @classmethod
    def none(cls) -> GuidanceCommand:
        return cls(thrust=Vector3D.zero(), max_thrust=0.0)


@dataclass
class GuidanceRun:
    """
    Result of a full guidance simulation.

    Attributes:
        states: Time-ordered states, starting with the initial state.
        commands: Command applied at each step (one fewer than states).
        hit_distance: Minimum interceptor-target distance reached.
        hit_time: Time at which the minimum distance occurred.
    """
    states: list[GuidanceState] = field(default_factory=list)
    commands: list[GuidanceCommand] = field(default_factory=list)
    hit_distance: float = math.inf
    hit_time: float = 0.0


# =============================================================================
# GUIDANCE SIMULATOR
# =============================================================================

def calculate_guidance_command(
    state: GuidanceState,
    settings: Optional[GuidanceSettings] = None
) -> GuidanceCommand:
    """
    Compute the thrust command for the current state.

    Args:
        state: Current engagement state.
        settings: Controller settings (defaults if None).

    Returns:
        GuidanceCommand; zero thrust when too slow or too close to guide.
    """
    settings = settings or GuidanceSettings()
    to_target = state.target - state.position
    distance = to_target.magnitude
    speed = state.velocity.magnitude

    if speed < MIN_GUIDANCE_SPEED_MS or distance < MIN_GUIDANCE_DISTANCE_M:
        return GuidanceCommand.none()

    lead_time = (distance / speed) * LEAD_TIME_FRACTION
    target_gravity = settings.effective_target_gravity
    predicted = Vector3D(
        state.target.x + state.target_velocity.x * lead_time,
        state.target.y + state.target_velocity.y * lead_time
        - 0.5 * target_gravity * lead_time ** 2,
        state.target.z + state.target_velocity.z * lead_time
    )

    line_of_sight = (predicted - state.position).normalized()
    desired_velocity = line_of_sight * settings.target_speed
    velocity_error = desired_velocity - state.velocity

    force = velocity_error * (state.mass * settings.proportional_gain)
    force = force + Vector3D(0.0, state.mass * settings.gravity, 0.0)

    max_force = state.mass * settings.max_g_force * settings.gravity
    force_magnitude = force.magnitude
    if force_magnitude > max_force:
        force = force * (max_force / force_magnitude)

    thrust_magnitude = max(0.0, (settings.target_speed - speed) * state.mass * SPEED_HOLD_GAIN)
    if thrust_magnitude > 0:
        force = force + (state.velocity / speed) * thrust_magnitude

    return GuidanceCommand(thrust=force, max_thrust=max_force)


def simulate_guidance_step(
    state: GuidanceState,
    command: GuidanceCommand,
    dt: float,
    gravity: float = G_STANDARD,
    target_gravity: Optional[float] = None
) -> GuidanceState:
    """
    Advance the engagement by one timestep.

    The interceptor uses semi-implicit Euler (velocity first, then position
    with the new velocity). The target follows an exact ballistic update.

    Args:
        state: Current state.
        command: Thrust command to apply.
        dt: Timestep (seconds).
        gravity: Gravity on the interceptor.
        target_gravity: Gravity on the target; None means ``gravity``.

    Returns:
        New GuidanceState at ``state.time + dt``.
    """
    if target_gravity is None:
        target_gravity = gravity

    acceleration = command.thrust / state.mass - Vector3D(0.0, gravity, 0.0)
    new_velocity = state.velocity + acceleration * dt
    new_position = state.position + new_velocity * dt

    tv = state.target_velocity
    new_target = Vector3D(
        state.target.x + tv.x * dt,
        state.target.y + tv.y * dt - 0.5 * target_gravity * dt * dt,
        state.target.z + tv.z * dt
    )
    new_target_velocity = Vector3D(tv.x, tv.y - target_gravity * dt, tv.z)

    return replace(
        state,
        position=new_position,
        velocity=new_velocity,
        target=new_target,
        target_velocity=new_target_velocity,
        time=state.time + dt
    )


def run_guidance_simulation(
    initial_state: GuidanceState,
    settings: Optional[GuidanceSettings] = None,
    max_time: float = DEFAULT_MAX_TIME_S,
    dt: float = DEFAULT_TIME_STEP_S,
    logger: Optional[logging.Logger] = None
) -> GuidanceRun:
    """
    Fly a guided interceptor until it hits, crashes or runs out of time.

    Stops when the interceptor goes below ground, comes within 5 m of the
    target, or after ``ceil(max_time / dt)`` steps.

    Args:
        initial_state: State at launch.
        settings: Controller settings (defaults if None).
        max_time: Simulated time limit (seconds).
        dt: Timestep (seconds).
        logger: Optional logger for the run summary.

    Returns:
        GuidanceRun with every state and command.

    Raises:
        ValueError: If dt is not positive.
    """
    if dt <= 0:
        raise ValueError(f"Timestep must be positive, got {dt}")

    settings = settings or GuidanceSettings()
    logger = logger or get_logger(GUIDANCE)
    run = GuidanceRun(states=[initial_state])

    max_steps = max(0, math.ceil(max_time / dt))
    state = initial_state

    for _ in range(max_steps):
        command = calculate_guidance_command(state, settings)
        run.commands.append(command)

        state = simulate_guidance_step(
            state, command, dt, settings.gravity, settings.effective_target_gravity
        )
        run.states.append(state)

        distance = state.distance_to_target
        if distance < run.hit_distance:
            run.hit_distance = distance
            run.hit_time = state.time

        if state.position.y < 0 or distance < HIT_DISTANCE_M:
            break

    log_event(
        logger, logging.DEBUG, "guidance_run_complete",
        steps=len(run.commands),
        hit_distance=run.hit_distance,
        hit_time=run.hit_time
    )
    return run


# =============================================================================
# PROPORTIONAL NAVIGATION
# =============================================================================

@dataclass(frozen=True)
class PNCommand:
    """
    Proportional navigation acceleration command.

    Attributes:
        acceleration: Commanded acceleration, already limited (m/s^2).
        required_g: Magnitude of the limited command in g.
        time_to_go: Estimated seconds to intercept.
    """
    acceleration: Vector3D
    required_g: float
    time_to_go: float


@dataclass(frozen=True)
class LaunchAngles:
    """Launch direction in radians (azimuth from +z toward +x)."""
    azimuth: float
    elevation: float


class ProportionalNavigation:
    """
    True proportional navigation guidance law.

    Stateless: the line-of-sight rate is computed from the kinematics of
    each call, so one instance can serve any number of interceptors.
    """

    def __init__(
        self,
        navigation_constant: float = DEFAULT_NAVIGATION_CONSTANT,
        max_acceleration: float = DEFAULT_MAX_ACCELERATION,
        min_closing_velocity: float = DEFAULT_MIN_CLOSING_VELOCITY,
        logger: Optional[logging.Logger] = None
    ):
        self.navigation_constant = navigation_constant
        self.max_acceleration = max_acceleration
        self.min_closing_velocity = min_closing_velocity
        self.logger = logger or get_logger(GUIDANCE)

    def _limit(self, acceleration: Vector3D) -> Vector3D:
        if acceleration.magnitude > self.max_acceleration:
            return acceleration.normalized() * self.max_acceleration
        return acceleration

    def calculate_command(
        self,
        interceptor_pos: Vector3D,
        interceptor_vel: Vector3D,
        target_pos: Vector3D,
        target_vel: Vector3D
    ) -> PNCommand:
        """
        Compute a = N * Vc * omega with omega = (r x v) / |r|^2.

        Time to go uses the closing velocity, floored at
        ``min_closing_velocity`` so it stays finite when opening.
        """
        r = target_pos - interceptor_pos
        v = target_vel - interceptor_vel
        rng = r.magnitude
        if rng == 0:
            return PNCommand(acceleration=Vector3D.zero(), required_g=0.0, time_to_go=0.0)

        closing_velocity = -r.dot(v) / rng
        time_to_go = rng / max(closing_velocity, self.min_closing_velocity)

        omega = r.cross(v) / (rng * rng)
        raw = omega * (self.navigation_constant * closing_velocity)
        acceleration = self._limit(raw)

        log_event(
            self.logger, logging.DEBUG, "pn_command",
            range=rng,
            closing_velocity=closing_velocity,
            time_to_go=time_to_go,
            required_g=raw.magnitude / G_STANDARD,
            commanded_g=acceleration.magnitude / G_STANDARD
        )

        return PNCommand(
            acceleration=acceleration,
            required_g=acceleration.magnitude / G_STANDARD,
            time_to_go=time_to_go
        )

    def terminal_guidance(
        self,
        interceptor_pos: Vector3D,
        interceptor_vel: Vector3D,
        target_pos: Vector3D,
        target_vel: Vector3D,
        target_accel: Vector3D
    ) -> PNCommand:
        """Augmented PN: base command plus target acceleration * N * t_go / 2."""
        base = self.calculate_command(interceptor_pos, interceptor_vel, target_pos, target_vel)
        compensation = target_accel * (base.time_to_go * self.navigation_constant / 2)
        acceleration = self._limit(base.acceleration + compensation)
        return PNCommand(
            acceleration=acceleration,
            required_g=acceleration.magnitude / G_STANDARD,
            time_to_go=base.time_to_go
        )

    @staticmethod
    def predicted_miss_distance(
        interceptor_pos: Vector3D,
        interceptor_vel: Vector3D,
        target_pos: Vector3D,
        target_vel: Vector3D,
        interceptor_accel: Vector3D
    ) -> float:
        """
        Zero-effort miss distance at closest approach.

        Returns the current range when closest approach has already passed
        or the relative velocity is zero.
        """
        r = target_pos - interceptor_pos
        v = target_vel - interceptor_vel
        rel_speed_sq = v.magnitude_squared
        if rel_speed_sq == 0:
            return r.magnitude

        time_to_go = -r.dot(v) / rel_speed_sq
        if time_to_go <= 0:
            return r.magnitude

        interceptor_final = (
            interceptor_pos
            + interceptor_vel * time_to_go
            + interceptor_accel * (0.5 * time_to_go * time_to_go)
        )
        target_final = target_pos + target_vel * time_to_go
        return interceptor_final.distance_to(target_final)

    @staticmethod
    def optimal_launch_angle(
        launch_pos: Vector3D,
        target_pos: Vector3D,
        target_vel: Vector3D,
        interceptor_speed: float
    ) -> LaunchAngles:
        """
        Launch direction toward a first-order predicted intercept.

        Elevation gets an energy-optimal bias growing linearly with range up
        to 15 degrees at 10 km, then is clamped to [-90, 90] degrees.
        """
        rng = target_pos.distance_to(launch_pos)
        time_to_intercept = rng / interceptor_speed
        predicted = target_pos + target_vel * time_to_intercept
        direction = (predicted - launch_pos).normalized()

        azimuth = math.atan2(direction.x, direction.z)
        elevation = math.asin(max(-1.0, min(1.0, direction.y)))
        bias = MAX_ELEVATION_BIAS_RAD * min(rng / ELEVATION_BIAS_RANGE_M, 1.0)

        return LaunchAngles(
            azimuth=azimuth,
            elevation=max(-math.pi / 2, min(math.pi / 2, elevation + bias))
        )
