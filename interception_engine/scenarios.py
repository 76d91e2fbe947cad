#!/usr/bin/env python3
"""
Engagement Scenario Definitions for the Interception Engine.

Scenarios describe one threat against one battery:
- Threat kinematics and type (ballistic, mortar, drone, cruise)
- Battery position and interceptor capability
- Optional expected outcome and guidance overrides

Catalogues:
- Standard scenarios: fixed geometries plus threats from eight bearings
- Realistic scenarios: threat type x engagement geometry, with interceptor
  guidance characteristics
- Salvo scenarios: randomized multi-threat raids
- Edge cases: very close, extreme range, evasive

Usage:
    simulator = InterceptionSimulator()
    batch = simulator.run_scenarios(generate_standard_scenarios())
"""

from __future__ import annotations

import json
import math
import random
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from .guidance import GuidanceSettings
from .interception import ProximityFuseSettings
from .physics import G_STANDARD, Vector3D


# =============================================================================
# THREAT TYPES
# =============================================================================

class ThreatType(Enum):
    """Threat classification, which decides whether gravity acts on it."""
    BALLISTIC = "ballistic"
    MORTAR = "mortar"
    DRONE = "drone"
    CRUISE = "cruise"

    @property
    def affected_by_gravity(self) -> bool:
        return self in (ThreatType.BALLISTIC, ThreatType.MORTAR)

    @classmethod
    def from_name(cls, name: str) -> ThreatType:
        """
        Look up a threat type by name, case-insensitive.

        Raises:
            KeyError: If the name is not a known threat type.
        """
        return cls[name.upper()]


DEFAULT_INTERCEPTOR_SPEED_MS = 180.0
DEFAULT_INTERCEPTOR_MASS_KG = 5.0


# =============================================================================
# ENGAGEMENT SCENARIOS
# =============================================================================

@dataclass
class ThreatSpec:
    """
    Incoming threat at the start of an engagement.

    Attributes:
        position: Initial position (meters).
        velocity: Initial velocity (m/s).
        threat_type: Threat classification.
        mass: Threat mass (kg).
        radius: Threat body radius (meters).
    """
    position: Vector3D
    velocity: Vector3D
    threat_type: ThreatType = ThreatType.BALLISTIC
    mass: float = 100.0
    radius: float = 0.5

    def to_dict(self) -> dict[str, Any]:
        return {
            "position": self.position.to_dict(),
            "velocity": self.velocity.to_dict(),
            "type": self.threat_type.value,
            "mass": self.mass,
            "radius": self.radius,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ThreatSpec:
        return cls(
            position=Vector3D.from_dict(data["position"]),
            velocity=Vector3D.from_dict(data["velocity"]),
            threat_type=ThreatType.from_name(data.get("type", "ballistic")),
            mass=float(data.get("mass", 100.0)),
            radius=float(data.get("radius", 0.5)),
        )


@dataclass
class BatterySpec:
    """Launcher position and interceptor capability."""
    position: Vector3D
    interceptor_speed: float = DEFAULT_INTERCEPTOR_SPEED_MS
    interceptor_mass: float = DEFAULT_INTERCEPTOR_MASS_KG

    def to_dict(self) -> dict[str, Any]:
        return {
            "position": self.position.to_dict(),
            "interceptor_speed": self.interceptor_speed,
            "interceptor_mass": self.interceptor_mass,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BatterySpec:
        return cls(
            position=Vector3D.from_dict(data["position"]),
            interceptor_speed=float(data.get("interceptor_speed", DEFAULT_INTERCEPTOR_SPEED_MS)),
            interceptor_mass=float(data.get("interceptor_mass", DEFAULT_INTERCEPTOR_MASS_KG)),
        )


@dataclass
class ExpectedOutcome:
    """What a scenario is expected to produce, for regression checks."""
    should_intercept: bool
    hit_distance: Optional[float] = None
    hit_time: Optional[float] = None


@dataclass
class EngagementScenario:
    """
    One threat against one battery.

    Attributes:
        name: Human-readable scenario name.
        threat: Threat at engagement start.
        battery: Launcher and interceptor capability.
        expected_outcome: Optional expectation for regression checks.
        guidance: Optional guidance override, taking precedence over the
            simulator's defaults.
    """
    name: str
    threat: ThreatSpec
    battery: BatterySpec
    expected_outcome: Optional[ExpectedOutcome] = None
    guidance: Optional[GuidanceSettings] = None

    def with_threat_velocity(self, velocity: Vector3D) -> EngagementScenario:
        """Copy of this scenario with a different threat velocity."""
        return replace(self, threat=replace(self.threat, velocity=velocity))

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "threat": self.threat.to_dict(),
            "battery": self.battery.to_dict(),
        }
        if self.expected_outcome is not None:
            data["expected_outcome"] = {
                "should_intercept": self.expected_outcome.should_intercept,
                "hit_distance": self.expected_outcome.hit_distance,
                "hit_time": self.expected_outcome.hit_time,
            }
        if self.guidance is not None:
            data["guidance"] = self.guidance.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EngagementScenario:
        """
        Create a scenario from a dictionary.

        Raises:
            KeyError: If a required key or threat type is missing/unknown.
        """
        expected = None
        if data.get("expected_outcome") is not None:
            outcome = data["expected_outcome"]
            expected = ExpectedOutcome(
                should_intercept=bool(outcome["should_intercept"]),
                hit_distance=outcome.get("hit_distance"),
                hit_time=outcome.get("hit_time"),
            )

        guidance = None
        if data.get("guidance") is not None:
            guidance = GuidanceSettings.from_dict(data["guidance"])

        return cls(
            name=data["name"],
            threat=ThreatSpec.from_dict(data["threat"]),
            battery=BatterySpec.from_dict(data["battery"]),
            expected_outcome=expected,
            guidance=guidance,
        )


def load_scenarios(filepath: str | Path) -> list[EngagementScenario]:
    """
    Load engagement scenarios from a JSON file.

    The file holds a list of scenario objects in the ``to_dict`` format.

    Args:
        filepath: Path to the JSON file.

    Returns:
        List of EngagementScenario.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
        KeyError: If a scenario is missing a required key.
        TypeError: If the top-level value is not a list.
    """
    with open(filepath, "r") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise TypeError(f"Expected a list of scenarios, got {type(data).__name__}")
    return [EngagementScenario.from_dict(item) for item in data]


# =============================================================================
# STANDARD SCENARIOS
# =============================================================================

def _origin_battery() -> BatterySpec:
    return BatterySpec(position=Vector3D.zero())


def generate_standard_scenarios() -> list[EngagementScenario]:
    """
    Standard regression set: four fixed geometries plus eight bearings.

    Every battery sits at the origin with 180 m/s, 5 kg interceptors.
    """
    scenarios = [
        EngagementScenario(
            name="Direct Ballistic Threat",
            threat=ThreatSpec(Vector3D(3000, 1000, 0), Vector3D(-150, -50, 0)),
            battery=_origin_battery(),
            expected_outcome=ExpectedOutcome(should_intercept=True, hit_distance=8, hit_time=8),
        ),
        EngagementScenario(
            name="Crossing Cruise Missile",
            threat=ThreatSpec(
                Vector3D(-2000, 500, 2000), Vector3D(100, 0, -100),
                ThreatType.CRUISE, mass=150.0, radius=0.6
            ),
            battery=_origin_battery(),
        ),
        EngagementScenario(
            name="Low Altitude Drone",
            threat=ThreatSpec(
                Vector3D(1000, 100, 1000), Vector3D(-30, 0, -30),
                ThreatType.DRONE, mass=25.0, radius=0.8
            ),
            battery=_origin_battery(),
        ),
        EngagementScenario(
            name="High Altitude Ballistic",
            threat=ThreatSpec(Vector3D(5000, 3000, 0), Vector3D(-200, -100, 0)),
            battery=_origin_battery(),
        ),
    ]

    for bearing in range(0, 360, 45):
        rad = math.radians(bearing)
        scenarios.append(EngagementScenario(
            name=f"Threat from {bearing} deg",
            threat=ThreatSpec(
                Vector3D(2000 * math.cos(rad), 800, 2000 * math.sin(rad)),
                Vector3D(-100 * math.cos(rad), -40, -100 * math.sin(rad)),
            ),
            battery=_origin_battery(),
        ))

    return scenarios


# =============================================================================
# REALISTIC SCENARIOS
# =============================================================================

@dataclass
class InterceptorSpec:
    """
    Interceptor characteristics for realistic scenarios.

    Attributes:
        initial_position: Launch position (meters).
        launch_velocity: Nominal launch velocity (m/s).
        mass: Interceptor mass (kg).
        radius: Body radius (meters).
        max_acceleration: Lateral acceleration limit (m/s^2).
        proportional_gain: Guidance gain.
        max_turn_rate: Turn rate limit (rad/s).
    """
    initial_position: Vector3D
    launch_velocity: Vector3D
    mass: float = 20.0
    radius: float = 0.3
    max_acceleration: float = 40 * G_STANDARD
    proportional_gain: float = 3.0
    max_turn_rate: float = 20.0


@dataclass
class RealisticScenario:
    """A threat/interceptor pair with a time budget and description."""
    name: str
    threat: ThreatSpec
    interceptor: InterceptorSpec
    duration: float
    description: str
    proximity_settings: Optional[ProximityFuseSettings] = None

    def to_engagement(
        self,
        interceptor_speed: float = DEFAULT_INTERCEPTOR_SPEED_MS
    ) -> EngagementScenario:
        """
        Convert to an engagement scenario for the simulator.

        The battery sits at the interceptor's launch position; the
        interceptor's acceleration limit and gain become a guidance override.
        """
        guidance = GuidanceSettings(
            max_g_force=self.interceptor.max_acceleration / G_STANDARD,
            target_speed=interceptor_speed,
            proportional_gain=self.interceptor.proportional_gain,
        )
        return EngagementScenario(
            name=self.name,
            threat=self.threat,
            battery=BatterySpec(
                position=self.interceptor.initial_position,
                interceptor_speed=interceptor_speed,
                interceptor_mass=self.interceptor.mass,
            ),
            guidance=guidance,
        )


_LAUNCH_POSITION = Vector3D(0, 50, 0)


def _realistic_catalogue() -> dict[str, RealisticScenario]:
    return {
        "ballistic-head-on": RealisticScenario(
            name="Ballistic Head-on",
            threat=ThreatSpec(Vector3D(1000, 500, 0), Vector3D(-150, -60, 0),
                              ThreatType.BALLISTIC, mass=100.0, radius=0.5),
            interceptor=InterceptorSpec(_LAUNCH_POSITION, Vector3D(100, 120, 0),
                                        max_acceleration=40 * G_STANDARD,
                                        proportional_gain=3.0, max_turn_rate=20.0),
            duration=5.0,
            description="Classic ballistic missile interception",
        ),
        "ballistic-crossing": RealisticScenario(
            name="Ballistic Crossing",
            threat=ThreatSpec(Vector3D(800, 600, -500), Vector3D(-120, -80, 100),
                              ThreatType.BALLISTIC, mass=100.0, radius=0.5),
            interceptor=InterceptorSpec(_LAUNCH_POSITION, Vector3D(80, 140, -60),
                                        max_acceleration=40 * G_STANDARD,
                                        proportional_gain=3.0, max_turn_rate=20.0),
            duration=6.0,
            description="Crossing engagement with lateral motion",
        ),
        "drone-head-on": RealisticScenario(
            name="Drone Head-on",
            threat=ThreatSpec(Vector3D(600, 200, 0), Vector3D(-30, -5, 0),
                              ThreatType.DRONE, mass=25.0, radius=0.8),
            interceptor=InterceptorSpec(_LAUNCH_POSITION, Vector3D(60, 100, 0),
                                        max_acceleration=30 * G_STANDARD,
                                        proportional_gain=2.5, max_turn_rate=15.0),
            duration=8.0,
            description="Slow-moving drone interception",
        ),
        "mortar-high-angle": RealisticScenario(
            name="Mortar High Angle",
            threat=ThreatSpec(Vector3D(300, 400, 0), Vector3D(-50, -80, 0),
                              ThreatType.MORTAR, mass=30.0, radius=0.3),
            interceptor=InterceptorSpec(_LAUNCH_POSITION, Vector3D(40, 150, 0),
                                        max_acceleration=50 * G_STANDARD,
                                        proportional_gain=4.0, max_turn_rate=25.0),
            duration=4.0,
            description="High-angle mortar round interception",
        ),
        "cruise-crossing": RealisticScenario(
            name="Cruise Missile Crossing",
            threat=ThreatSpec(Vector3D(1200, 300, -600), Vector3D(-200, 0, 120),
                              ThreatType.CRUISE, mass=150.0, radius=0.6),
            interceptor=InterceptorSpec(_LAUNCH_POSITION, Vector3D(120, 100, -80),
                                        max_acceleration=45 * G_STANDARD,
                                        proportional_gain=3.5, max_turn_rate=22.0),
            duration=5.0,
            description="Fast crossing cruise missile",
        ),
        "ballistic-tail-chase": RealisticScenario(
            name="Ballistic Tail Chase",
            threat=ThreatSpec(Vector3D(200, 800, 0), Vector3D(-100, -150, 0),
                              ThreatType.BALLISTIC, mass=100.0, radius=0.5),
            interceptor=InterceptorSpec(_LAUNCH_POSITION, Vector3D(50, 180, 0),
                                        max_acceleration=35 * G_STANDARD,
                                        proportional_gain=2.8, max_turn_rate=18.0),
            duration=6.0,
            description="Tail-chase engagement from below",
        ),
    }


def create_realistic_scenario(
    threat_type: ThreatType | str,
    engagement_type: str
) -> RealisticScenario:
    """
    Look up a realistic scenario by threat type and engagement geometry.

    Engagement types: "head-on", "crossing", "tail-chase", "high-angle".
    Unknown combinations fall back to the ballistic head-on scenario.
    """
    type_name = threat_type.value if isinstance(threat_type, ThreatType) else threat_type
    catalogue = _realistic_catalogue()
    return catalogue.get(f"{type_name}-{engagement_type}", catalogue["ballistic-head-on"])


# Base velocities used for randomized salvos
_SALVO_VELOCITIES = {
    ThreatType.BALLISTIC: Vector3D(-150, -60, 0),
    ThreatType.DRONE: Vector3D(-30, -5, 0),
    ThreatType.MORTAR: Vector3D(-50, -80, 0),
    ThreatType.CRUISE: Vector3D(-200, 0, 0),
}

# Weighted draw: ballistic twice as likely
_SALVO_TYPES = (ThreatType.BALLISTIC, ThreatType.BALLISTIC, ThreatType.MORTAR, ThreatType.DRONE)


def create_multiple_threat_scenarios(
    count: int,
    spread_radius: float = 200.0,
    rng: Optional[random.Random] = None
) -> list[RealisticScenario]:
    """
    Randomized salvo spread evenly around the battery.

    Threats start 800-1200 m out at 400-600 m altitude, with base velocities
    scaled by 0.8-1.2.

    Args:
        count: Number of threats.
        spread_radius: Random lateral offset range (meters).
        rng: Random source (a fresh one if None).
    """
    rng = rng or random.Random()
    scenarios = []

    for i in range(count):
        angle = (i / count) * math.pi * 2
        distance = 800 + rng.random() * 400
        height = 400 + rng.random() * 200
        spread = rng.random() * spread_radius
        threat_type = rng.choice(_SALVO_TYPES)

        position = Vector3D(
            distance * math.cos(angle) + spread * (rng.random() - 0.5),
            height,
            distance * math.sin(angle) + spread * (rng.random() - 0.5),
        )
        velocity = _SALVO_VELOCITIES[threat_type] * (0.8 + rng.random() * 0.4)

        if threat_type == ThreatType.CRUISE:
            mass = 150.0
        elif threat_type == ThreatType.BALLISTIC:
            mass = 100.0
        else:
            mass = 30.0

        scenarios.append(RealisticScenario(
            name=f"Threat {i + 1} ({threat_type.value})",
            threat=ThreatSpec(position, velocity, threat_type, mass=mass,
                              radius=0.8 if threat_type == ThreatType.DRONE else 0.5),
            interceptor=InterceptorSpec(_LAUNCH_POSITION, Vector3D(100, 120, 0)),
            duration=8.0,
            description=f"Salvo threat {i + 1}",
        ))

    return scenarios


def create_edge_case_scenarios() -> list[RealisticScenario]:
    """Very close range, extreme long range and an evasive target."""
    return [
        RealisticScenario(
            name="Very Close Range",
            threat=ThreatSpec(Vector3D(200, 150, 0), Vector3D(-100, -50, 0),
                              ThreatType.BALLISTIC, mass=50.0),
            interceptor=InterceptorSpec(_LAUNCH_POSITION, Vector3D(80, 100, 0),
                                        max_acceleration=50 * G_STANDARD,
                                        proportional_gain=4.0, max_turn_rate=30.0),
            duration=3.0,
            description="Very close range engagement",
        ),
        RealisticScenario(
            name="Extreme Long Range",
            threat=ThreatSpec(Vector3D(2000, 800, 0), Vector3D(-180, -40, 0),
                              ThreatType.BALLISTIC, mass=120.0, radius=0.6),
            interceptor=InterceptorSpec(_LAUNCH_POSITION, Vector3D(140, 100, 0),
                                        max_acceleration=35 * G_STANDARD,
                                        proportional_gain=2.5, max_turn_rate=15.0),
            duration=10.0,
            description="Extreme long range shot",
        ),
        RealisticScenario(
            name="Evasive Maneuver",
            threat=ThreatSpec(Vector3D(800, 400, 0), Vector3D(-120, -30, 0),
                              ThreatType.CRUISE, mass=80.0),
            interceptor=InterceptorSpec(_LAUNCH_POSITION, Vector3D(100, 110, 0),
                                        max_acceleration=45 * G_STANDARD,
                                        proportional_gain=3.5, max_turn_rate=25.0),
            duration=6.0,
            description="Target with evasive capability",
        ),
    ]
