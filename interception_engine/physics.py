#!/usr/bin/env python3
"""
Physics Module for the Interception Engine

Provides the shared kinematic vocabulary used by every solver:
- 3D vector operations (value semantics, y is up)
- Ballistic position/velocity prediction under constant gravity
- Ground impact time of a falling body

All units are SI (meters, m/s, m/s^2) unless stated otherwise.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Mapping, Optional


# =============================================================================
# PHYSICAL CONSTANTS
# =============================================================================

# Standard gravity (m/s^2), shared by every solver variant
G_STANDARD = 9.81

# Altitude of the ground plane (meters)
GROUND_LEVEL_M = 0.0


# =============================================================================
# VECTOR3D CLASS
# =============================================================================

@dataclass
class Vector3D:
    """
    3D vector for positions, velocities and accelerations.

    Uses the scene coordinate system of the simulation:
    - X: east
    - Y: up (altitude)
    - Z: south

    Vectors are treated as values: operations always return new instances.
    """
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def __add__(self, other: Vector3D) -> Vector3D:
        return Vector3D(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: Vector3D) -> Vector3D:
        return Vector3D(self.x - other.x, self.y - other.y, self.z - other.z)

    def __mul__(self, scalar: float) -> Vector3D:
        return Vector3D(self.x * scalar, self.y * scalar, self.z * scalar)

    def __rmul__(self, scalar: float) -> Vector3D:
        return self.__mul__(scalar)

    def __truediv__(self, scalar: float) -> Vector3D:
        if scalar == 0:
            raise ValueError("Cannot divide vector by zero")
        return Vector3D(self.x / scalar, self.y / scalar, self.z / scalar)

    def __neg__(self) -> Vector3D:
        return Vector3D(-self.x, -self.y, -self.z)

    def __eq__(self, other: object) -> bool:
        """Equality check with tolerance."""
        if not isinstance(other, Vector3D):
            return False
        eps = 1e-10
        return (abs(self.x - other.x) < eps and
                abs(self.y - other.y) < eps and
                abs(self.z - other.z) < eps)

    def dot(self, other: Vector3D) -> float:
        return self.x * other.x + self.y * other.y + self.z * other.z

    def cross(self, other: Vector3D) -> Vector3D:
        return Vector3D(
            self.y * other.z - self.z * other.y,
            self.z * other.x - self.x * other.z,
            self.x * other.y - self.y * other.x
        )

    @property
    def magnitude(self) -> float:
        """Vector magnitude (length)."""
        return math.sqrt(self.x**2 + self.y**2 + self.z**2)

    @property
    def magnitude_squared(self) -> float:
        """Squared magnitude (avoids sqrt for comparisons)."""
        return self.x**2 + self.y**2 + self.z**2

    def normalized(self) -> Vector3D:
        """Return unit vector in same direction (zero vector stays zero)."""
        mag = self.magnitude
        if mag == 0:
            return Vector3D(0.0, 0.0, 0.0)
        return self / mag

    def horizontal(self) -> Vector3D:
        """Projection onto the ground plane (y dropped)."""
        return Vector3D(self.x, 0.0, self.z)

    def distance_to(self, other: Vector3D) -> float:
        return (self - other).magnitude

    def to_tuple(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "z": self.z}

    @classmethod
    def from_tuple(cls, t: tuple[float, float, float]) -> Vector3D:
        return cls(float(t[0]), float(t[1]), float(t[2]))

    @classmethod
    def from_dict(cls, data: Mapping[str, float]) -> Vector3D:
        """
        Create from a mapping with x, y and z keys.

        Raises:
            KeyError: If a component is missing.
        """
        return cls(float(data["x"]), float(data["y"]), float(data["z"]))

    @classmethod
    def zero(cls) -> Vector3D:
        return cls(0.0, 0.0, 0.0)

    @classmethod
    def unit_y(cls) -> Vector3D:
        """Unit vector pointing up."""
        return cls(0.0, 1.0, 0.0)

    def __repr__(self) -> str:
        return f"Vector3D({self.x:.6g}, {self.y:.6g}, {self.z:.6g})"


# =============================================================================
# BALLISTIC KINEMATICS
# =============================================================================

def ballistic_position(
    position: Vector3D,
    velocity: Vector3D,
    t: float,
    gravity: float = G_STANDARD
) -> Vector3D:
    """
    Predict the position of a body in free fall after t seconds.

    Horizontal velocity is constant; the vertical axis follows
    y(t) = y0 + vy*t - 0.5*g*t^2.

    Args:
        position: Initial position (meters)
        velocity: Initial velocity (m/s)
        t: Elapsed time (seconds)
        gravity: Downward acceleration (m/s^2), 0 for level flight

    Returns:
        Predicted position
    """
    return Vector3D(
        position.x + velocity.x * t,
        position.y + velocity.y * t - 0.5 * gravity * t * t,
        position.z + velocity.z * t
    )


def ballistic_velocity(
    velocity: Vector3D,
    t: float,
    gravity: float = G_STANDARD
) -> Vector3D:
    """Velocity of a body in free fall after t seconds."""
    return Vector3D(velocity.x, velocity.y - gravity * t, velocity.z)


def ground_impact_time(
    position: Vector3D,
    velocity: Vector3D,
    gravity: float = G_STANDARD
) -> Optional[float]:
    """
    Time until a falling body reaches the ground plane.

    Solves y0 + vy*t - 0.5*g*t^2 = GROUND_LEVEL_M for the positive root.

    Args:
        position: Current position (meters)
        velocity: Current velocity (m/s)
        gravity: Downward acceleration (m/s^2)

    Returns:
        Seconds until impact, or None if the body never lands (no gravity)
        or has no positive impact time.
    """
    if gravity <= 0:
        return None

    a = -0.5 * gravity
    b = velocity.y
    c = position.y - GROUND_LEVEL_M

    discriminant = b * b - 4 * a * c
    if discriminant < 0:
        return None

    sqrt_disc = math.sqrt(discriminant)
    # a < 0, so the "minus" branch is the later root
    t_late = (-b - sqrt_disc) / (2 * a)
    t_early = (-b + sqrt_disc) / (2 * a)

    if t_late > 0:
        return t_late
    if t_early > 0:
        return t_early
    return None
