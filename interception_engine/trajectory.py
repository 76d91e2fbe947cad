#!/usr/bin/env python3
"""
Improved Trajectory Calculator for the Interception Engine.

Higher-precision alternative to the discrete flight-time search in
``interception``:
- Constant-velocity targets (drones): closed-form quadratic solution,
  with a fixed-step iterative fallback for degenerate speed ratios
- Accelerating targets (ballistic): Newton-Raphson on the time of flight
- Shoot-look-shoot: a second interception window after the first

All solvers return None instead of raising when no feasible intercept exists.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

from .diagnostics import TRAJECTORY, get_logger, log_event
from .physics import (
    G_STANDARD,
    Vector3D,
    ballistic_position,
    ballistic_velocity,
    ground_impact_time,
)


# =============================================================================
# CONSTANTS
# =============================================================================

DEFAULT_MAX_FLIGHT_TIME_S = 30.0

# Closed-form drone solver
SPEED_DEGENERACY_MS = 0.1
QUADRATIC_DEGENERACY = 1e-4
QUADRATIC_CONFIDENCE = 0.95

# Iterative fallback
ITERATIVE_STEP_S = 0.1
ITERATIVE_TOLERANCE_S = 0.05
ITERATIVE_CONFIDENCE = 0.85

# Newton-Raphson
NEWTON_MAX_ITERATIONS = 20
NEWTON_TOLERANCE_S = 0.001
NEWTON_MIN_CONFIDENCE = 0.5
NEWTON_MIN_DERIVATIVE = 1e-9

# Shoot-look-shoot
DEFAULT_WINDOW_SEPARATION_S = 2.0
SECOND_WINDOW_MIN_ALTITUDE_M = 100.0
SECOND_WINDOW_TIME_TOLERANCE_S = 1.0
SECOND_WINDOW_QUALITY = 0.8


@dataclass(frozen=True)
class InterceptPoint:
    """
    A predicted intercept.

    Attributes:
        point: Intercept position (meters).
        time: Time of flight to the intercept (seconds).
        confidence: Solver confidence (0.0 to 1.0).
    """
    point: Vector3D
    time: float
    confidence: float


@dataclass(frozen=True)
class InterceptionWindow:
    """An engagement opportunity for shoot-look-shoot planning."""
    point: Vector3D
    time: float
    quality: float


class ImprovedTrajectoryCalculator:
    """
    Intercept-point solver using closed-form and Newton-Raphson methods.

    Example:
        calc = ImprovedTrajectoryCalculator()
        hit = calc.calculate_interception_point(
            threat_pos, threat_vel, battery_pos, interceptor_speed=180.0
        )
        if hit is not None:
            print(hit.time, hit.point)
    """

    def __init__(
        self,
        gravity: float = G_STANDARD,
        max_flight_time: float = DEFAULT_MAX_FLIGHT_TIME_S,
        logger: Optional[logging.Logger] = None
    ):
        self.gravity = gravity
        self.max_flight_time = max_flight_time
        self.logger = logger or get_logger(TRAJECTORY)

    def calculate_interception_point(
        self,
        threat_pos: Vector3D,
        threat_vel: Vector3D,
        interceptor_pos: Vector3D,
        interceptor_speed: float,
        is_drone: bool = False
    ) -> Optional[InterceptPoint]:
        """
        Solve for the intercept point of a threat.

        Args:
            threat_pos: Current threat position (meters).
            threat_vel: Current threat velocity (m/s).
            interceptor_pos: Launch position (meters).
            interceptor_speed: Interceptor speed (m/s).
            is_drone: True for constant-velocity targets.

        Returns:
            InterceptPoint, or None if no feasible intercept exists.
        """
        if is_drone:
            return self._drone_interception(
                threat_pos, threat_vel, interceptor_pos, interceptor_speed
            )
        return self._ballistic_interception(
            threat_pos, threat_vel, interceptor_pos, interceptor_speed
        )

    # -------------------------------------------------------------------------
    # Constant-velocity targets
    # -------------------------------------------------------------------------

    def _drone_interception(
        self,
        threat_pos: Vector3D,
        threat_vel: Vector3D,
        interceptor_pos: Vector3D,
        interceptor_speed: float
    ) -> Optional[InterceptPoint]:
        # Solve |P + V*t| = s*t
        rel_pos = threat_pos - interceptor_pos
        s = interceptor_speed
        threat_speed = threat_vel.magnitude

        a = threat_vel.dot(threat_vel) - s * s
        if abs(threat_speed - s) < SPEED_DEGENERACY_MS or abs(a) < QUADRATIC_DEGENERACY:
            log_event(
                self.logger, logging.WARNING, "quadratic_degenerate",
                threat_speed=threat_speed, interceptor_speed=s
            )
            return self._drone_interception_iterative(
                threat_pos, threat_vel, interceptor_pos, interceptor_speed
            )

        b = 2 * rel_pos.dot(threat_vel)
        c = rel_pos.dot(rel_pos)
        discriminant = b * b - 4 * a * c
        if discriminant < 0:
            log_event(self.logger, logging.DEBUG, "negative_discriminant",
                      discriminant=discriminant)
            return None

        sqrt_disc = math.sqrt(discriminant)
        roots = ((-b - sqrt_disc) / (2 * a), (-b + sqrt_disc) / (2 * a))
        positive = [t for t in roots if t > 0]
        if not positive:
            return None

        t = min(positive)
        if t > self.max_flight_time:
            log_event(self.logger, logging.DEBUG, "intercept_too_late", time=t)
            return None

        point = threat_pos + threat_vel * t
        if point.y <= 0:
            log_event(self.logger, logging.DEBUG, "intercept_below_ground", altitude=point.y)
            return None

        return InterceptPoint(point=point, time=t, confidence=QUADRATIC_CONFIDENCE)

    def _drone_interception_iterative(
        self,
        threat_pos: Vector3D,
        threat_vel: Vector3D,
        interceptor_pos: Vector3D,
        interceptor_speed: float
    ) -> Optional[InterceptPoint]:
        """
        Fixed-step search for |threat(t) - interceptor| / s == t.

        A step whose residual is within tolerance is refined by a secant
        through its bracketing neighbour step. Otherwise the root is linearly
        interpolated inside the first step where the residual changes sign.
        """
        if interceptor_speed <= 0:
            return None

        def residual(t: float) -> tuple[Vector3D, float]:
            future = threat_pos + threat_vel * t
            return future, future.distance_to(interceptor_pos) / interceptor_speed - t

        steps = int(math.floor(self.max_flight_time / ITERATIVE_STEP_S))
        prev_t: Optional[float] = None
        prev_f = 0.0

        for i in range(1, steps + 1):
            t = i * ITERATIVE_STEP_S
            future, f = residual(t)

            if future.y <= 0:
                return None

            if abs(f) < ITERATIVE_TOLERANCE_S:
                if prev_t is not None and (prev_f > 0) != (f > 0):
                    neighbour_t = prev_t
                else:
                    neighbour_t = t + ITERATIVE_STEP_S
                _, neighbour_f = residual(neighbour_t)
                if neighbour_f != f:
                    t = t + (neighbour_t - t) * f / (f - neighbour_f)
                    future, _ = residual(t)
                if future.y <= 0:
                    return None
                return InterceptPoint(point=future, time=t, confidence=ITERATIVE_CONFIDENCE)

            if prev_t is not None and (prev_f > 0) != (f > 0):
                root_t = prev_t + (t - prev_t) * prev_f / (prev_f - f)
                root_point, _ = residual(root_t)
                return InterceptPoint(
                    point=root_point, time=root_t, confidence=ITERATIVE_CONFIDENCE
                )

            prev_t, prev_f = t, f

        return None

    # -------------------------------------------------------------------------
    # Ballistic targets
    # -------------------------------------------------------------------------

    def _initial_time_estimate(
        self,
        threat_pos: Vector3D,
        threat_vel: Vector3D,
        interceptor_pos: Vector3D,
        interceptor_speed: float
    ) -> float:
        """Straight-line distance over interceptor speed plus closing speed."""
        offset = interceptor_pos - threat_pos
        direct_distance = offset.magnitude
        closing_speed = threat_vel.dot(offset.normalized())
        return direct_distance / (interceptor_speed + max(0.0, closing_speed))

    def _ballistic_interception(
        self,
        threat_pos: Vector3D,
        threat_vel: Vector3D,
        interceptor_pos: Vector3D,
        interceptor_speed: float
    ) -> Optional[InterceptPoint]:
        """
        Newton-Raphson on f(t) = |threat(t) - interceptor| - s*t.

        f'(t) = los_dir . (V - g*t*y_hat) - s
        """
        if interceptor_speed <= 0:
            return None

        t = self._initial_time_estimate(
            threat_pos, threat_vel, interceptor_pos, interceptor_speed
        )
        impact_time = self.find_ground_hit_time(threat_pos, threat_vel)

        for iteration in range(NEWTON_MAX_ITERATIONS):
            future = ballistic_position(threat_pos, threat_vel, t, self.gravity)
            line_of_sight = future - interceptor_pos
            f = line_of_sight.magnitude - interceptor_speed * t

            velocity_at_t = ballistic_velocity(threat_vel, t, self.gravity)
            df = line_of_sight.normalized().dot(velocity_at_t) - interceptor_speed
            if abs(df) < NEWTON_MIN_DERIVATIVE:
                log_event(self.logger, logging.WARNING, "newton_flat_derivative",
                          iteration=iteration, time=t)
                return None

            step = -f / df
            t += step

            if abs(step) < NEWTON_TOLERANCE_S:
                if t <= 0:
                    return None
                if impact_time is not None and t > impact_time:
                    log_event(self.logger, logging.DEBUG, "intercept_after_impact",
                              time=t, impact_time=impact_time)
                    return None
                if impact_time is None and self.gravity > 0:
                    return None

                confidence = max(
                    NEWTON_MIN_CONFIDENCE, 1 - iteration / NEWTON_MAX_ITERATIONS
                )
                log_event(self.logger, logging.DEBUG, "newton_converged",
                          iterations=iteration + 1, time=t)
                return InterceptPoint(
                    point=ballistic_position(threat_pos, threat_vel, t, self.gravity),
                    time=t,
                    confidence=confidence
                )

        log_event(self.logger, logging.DEBUG, "newton_not_converged", time=t)
        return None

    def find_ground_hit_time(
        self,
        threat_pos: Vector3D,
        threat_vel: Vector3D
    ) -> Optional[float]:
        """Seconds until the threat reaches the ground, or None."""
        return ground_impact_time(threat_pos, threat_vel, self.gravity)

    # -------------------------------------------------------------------------
    # Shoot-look-shoot
    # -------------------------------------------------------------------------

    def calculate_multiple_interception_windows(
        self,
        threat_pos: Vector3D,
        threat_vel: Vector3D,
        interceptor_pos: Vector3D,
        interceptor_speed: float,
        min_separation: float = DEFAULT_WINDOW_SEPARATION_S
    ) -> list[InterceptionWindow]:
        """
        Engagement windows against a ballistic threat.

        The first window is the Newton-Raphson solution. A second window
        ``min_separation`` seconds later is offered when the threat is still
        above 100 m and an interceptor could reach it within one second of
        that time.

        Returns:
            Zero, one or two windows in time order.
        """
        windows: list[InterceptionWindow] = []

        first = self.calculate_interception_point(
            threat_pos, threat_vel, interceptor_pos, interceptor_speed, is_drone=False
        )
        if first is None:
            return windows

        windows.append(InterceptionWindow(
            point=first.point, time=first.time, quality=first.confidence
        ))

        second_time = first.time + min_separation
        second_pos = ballistic_position(threat_pos, threat_vel, second_time, self.gravity)
        if second_pos.y > SECOND_WINDOW_MIN_ALTITUDE_M:
            intercept_time = second_pos.distance_to(interceptor_pos) / interceptor_speed
            if abs(second_time - intercept_time) < SECOND_WINDOW_TIME_TOLERANCE_S:
                windows.append(InterceptionWindow(
                    point=second_pos, time=second_time, quality=SECOND_WINDOW_QUALITY
                ))

        return windows
