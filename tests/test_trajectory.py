#!/usr/bin/env python3
"""
Tests for the improved trajectory calculator.

Tests:
- Closed-form drone solution and its iterative fallback
- Newton-Raphson ballistic solution
- Ground hit time
- Shoot-look-shoot windows
"""

import math

import pytest

from interception_engine.physics import Vector3D, ballistic_position
from interception_engine.trajectory import (
    ITERATIVE_CONFIDENCE,
    QUADRATIC_CONFIDENCE,
    SECOND_WINDOW_QUALITY,
    ImprovedTrajectoryCalculator,
)


@pytest.fixture
def calc():
    return ImprovedTrajectoryCalculator()


ORIGIN = Vector3D(0, 0, 0)


class TestDroneInterception:
    """Tests for constant-velocity targets."""

    def test_closed_form_solution(self, calc):
        hit = calc.calculate_interception_point(
            Vector3D(1000, 100, 0), Vector3D(-30, 0, 0), ORIGIN, 180, is_drone=True
        )
        assert hit is not None
        assert hit.confidence == QUADRATIC_CONFIDENCE
        # Interceptor covers the distance to the intercept point in exactly t
        assert hit.point.magnitude == pytest.approx(180 * hit.time)
        assert hit.point.y == pytest.approx(100.0)

    def test_iterative_agrees_with_closed_form(self, calc):
        threat_pos, threat_vel = Vector3D(1000, 100, 0), Vector3D(-30, 0, 0)
        exact = calc.calculate_interception_point(
            threat_pos, threat_vel, ORIGIN, 180, is_drone=True
        )
        approx = calc._drone_interception_iterative(threat_pos, threat_vel, ORIGIN, 180)
        assert approx is not None
        assert approx.confidence == ITERATIVE_CONFIDENCE
        assert approx.time == pytest.approx(exact.time, rel=0.05)
        assert approx.point.distance_to(exact.point) < 1.0

    @pytest.mark.parametrize("drone_speed", [30, 60, 100, 150, 250])
    def test_iterative_agrees_across_drone_speeds(self, calc, drone_speed):
        threat_pos, threat_vel = Vector3D(1500, 300, 400), Vector3D(-drone_speed, 0, 0)
        exact = calc.calculate_interception_point(
            threat_pos, threat_vel, ORIGIN, 180, is_drone=True
        )
        approx = calc._drone_interception_iterative(threat_pos, threat_vel, ORIGIN, 180)
        assert exact is not None and approx is not None
        assert approx.time == pytest.approx(exact.time, rel=0.05)
        assert approx.point.distance_to(exact.point) < 1.0

    def test_equal_speeds_fall_back_to_iterative(self, calc):
        hit = calc.calculate_interception_point(
            Vector3D(2000, 500, 0), Vector3D(-180, 0, 0), ORIGIN, 180, is_drone=True
        )
        assert hit is not None
        assert hit.confidence == ITERATIVE_CONFIDENCE
        # |(2000 - 180t, 500)| = 180t  ->  t = 4.25e6 / 720000
        assert hit.time == pytest.approx(4.25e6 / 720000, rel=0.05)

    def test_faster_receding_drone_cannot_be_caught(self, calc):
        hit = calc.calculate_interception_point(
            Vector3D(1000, 100, 0), Vector3D(300, 0, 0), ORIGIN, 180, is_drone=True
        )
        assert hit is None

    def test_intercept_below_ground_rejected(self, calc):
        hit = calc.calculate_interception_point(
            Vector3D(1000, 10, 0), Vector3D(-30, -10, 0), ORIGIN, 180, is_drone=True
        )
        assert hit is None

    def test_intercept_beyond_max_flight_time_rejected(self, calc):
        hit = calc.calculate_interception_point(
            Vector3D(10000, 100, 0), Vector3D(-10, 0, 0), ORIGIN, 180, is_drone=True
        )
        assert hit is None


class TestBallisticInterception:
    """Tests for the Newton-Raphson solver."""

    def test_converges_for_incoming_threat(self, calc):
        threat_pos, threat_vel = Vector3D(2000, 800, 0), Vector3D(-150, -60, 0)
        hit = calc.calculate_interception_point(threat_pos, threat_vel, ORIGIN, 180)
        assert hit is not None
        assert 0.5 <= hit.confidence <= 1.0
        assert hit.point == ballistic_position(threat_pos, threat_vel, hit.time)
        assert hit.point.magnitude == pytest.approx(180 * hit.time, abs=1.0)

    def test_solution_precedes_ground_impact(self, calc):
        threat_pos, threat_vel = Vector3D(2000, 800, 0), Vector3D(-150, -60, 0)
        hit = calc.calculate_interception_point(threat_pos, threat_vel, ORIGIN, 180)
        impact = calc.find_ground_hit_time(threat_pos, threat_vel)
        assert hit.time < impact
        assert hit.point.y > 0

    def test_threat_landing_first_has_no_solution(self, calc):
        hit = calc.calculate_interception_point(
            Vector3D(20000, 500, 0), Vector3D(-100, 0, 0), ORIGIN, 180
        )
        assert hit is None


class TestGroundHitTime:
    """Tests for the ground hit time helper."""

    def test_positive_root(self, calc):
        t = calc.find_ground_hit_time(Vector3D(0, 100, 0), Vector3D.zero())
        assert t == pytest.approx(math.sqrt(200 / 9.81))

    def test_injected_gravity(self):
        moon = ImprovedTrajectoryCalculator(gravity=1.62)
        t = moon.find_ground_hit_time(Vector3D(0, 100, 0), Vector3D.zero())
        assert t == pytest.approx(math.sqrt(200 / 1.62))

    def test_zero_gravity_never_lands(self):
        calc = ImprovedTrajectoryCalculator(gravity=0.0)
        assert calc.find_ground_hit_time(Vector3D(0, 100, 0), Vector3D(0, -5, 0)) is None


class TestInterceptionWindows:
    """Tests for shoot-look-shoot windows."""

    def test_second_window_when_reachable(self, calc):
        windows = calc.calculate_multiple_interception_windows(
            Vector3D(2000, 800, 0), Vector3D(-150, -60, 0), ORIGIN, 180, min_separation=0.3
        )
        assert len(windows) == 2
        assert windows[1].time == pytest.approx(windows[0].time + 0.3)
        assert windows[1].quality == SECOND_WINDOW_QUALITY

    def test_single_window_when_threat_too_low(self, calc):
        windows = calc.calculate_multiple_interception_windows(
            Vector3D(2000, 800, 0), Vector3D(-150, -60, 0), ORIGIN, 180
        )
        assert len(windows) == 1
        assert windows[0].quality > 0

    def test_no_windows_without_solution(self, calc):
        windows = calc.calculate_multiple_interception_windows(
            Vector3D(20000, 500, 0), Vector3D(-100, 0, 0), ORIGIN, 180
        )
        assert windows == []
