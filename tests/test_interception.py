#!/usr/bin/env python3
"""
Tests for the interception calculator.

Tests:
- Intercept solver (selection, rejection, sentinel)
- Hit probability model
- Proximity geometry
- Proximity fuse decision table, branch by branch
"""

import math

import pytest

from interception_engine.interception import (
    CLOSEST_APPROACH_QUALITY_FLOOR,
    MOVING_AWAY_QUALITY_FLOOR,
    RULE_CLOSEST_APPROACH,
    RULE_INVALID_SETTINGS,
    RULE_MOVING_AWAY,
    RULE_NOT_ARMED,
    RULE_OUT_OF_RANGE,
    RULE_WILL_GET_CLOSER,
    RULE_WITHIN_OPTIMAL,
    FuseState,
    InterceptionScenario,
    InterceptionSolution,
    ProximityFuseSettings,
    ProximityResult,
    calculate_hit_probability,
    calculate_interception,
    calculate_proximity,
    should_detonate,
)
from interception_engine.physics import Vector3D, ballistic_position


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def ballistic_scenario():
    """Incoming ballistic threat 2 km out at 800 m."""
    return InterceptionScenario(
        interceptor_position=Vector3D(0, 0, 0),
        interceptor_velocity=Vector3D(0, 0, 0),
        threat_position=Vector3D(2000, 800, 0),
        threat_velocity=Vector3D(-150, -60, 0),
        interceptor_speed=180,
    )


@pytest.fixture
def settings():
    """Default proximity fuse settings (20 / 8 / 3)."""
    return ProximityFuseSettings()


def proximity(distance, closing_rate=100.0, ttca=0.0, closest=None):
    return ProximityResult(
        distance=distance,
        closing_rate=closing_rate,
        time_to_closest_approach=ttca,
        closest_approach_distance=distance if closest is None else closest,
    )


# =============================================================================
# INTERCEPT SOLVER
# =============================================================================

class TestCalculateInterception:
    """Tests for the discrete flight-time solver."""

    def test_ballistic_threat_fires(self, ballistic_scenario):
        solution = calculate_interception(ballistic_scenario)
        assert solution.should_fire is True
        assert solution.probability > 0
        assert 1.0 <= solution.time_to_intercept <= 30.0

    def test_selects_fastest_high_probability_candidate(self, ballistic_scenario):
        # Earlier candidates need more than 90% of interceptor speed and
        # are penalized; t = 7 s is the first at full probability
        solution = calculate_interception(ballistic_scenario)
        assert solution.time_to_intercept == pytest.approx(7.0)
        assert solution.probability == pytest.approx(0.95)

    def test_aim_point_is_threat_position_at_intercept(self, ballistic_scenario):
        solution = calculate_interception(ballistic_scenario)
        expected = ballistic_position(
            ballistic_scenario.threat_position,
            ballistic_scenario.threat_velocity,
            solution.time_to_intercept,
        )
        assert solution.aim_point == expected
        assert solution.distance == pytest.approx(expected.magnitude)

    def test_launch_velocity_reaches_aim_point(self, ballistic_scenario):
        """An unguided ballistic interceptor would arrive exactly on time."""
        solution = calculate_interception(ballistic_scenario)
        arrival = ballistic_position(
            ballistic_scenario.interceptor_position,
            solution.launch_velocity,
            solution.time_to_intercept,
        )
        assert arrival.distance_to(solution.aim_point) < 1e-6

    def test_required_speed_within_margin(self, ballistic_scenario):
        solution = calculate_interception(ballistic_scenario)
        assert solution.launch_velocity.magnitude <= 180 * 1.2

    def test_unreachable_threat_returns_sentinel(self):
        scenario = InterceptionScenario(
            interceptor_position=Vector3D.zero(),
            interceptor_velocity=Vector3D.zero(),
            threat_position=Vector3D(50000, 20000, 0),
            threat_velocity=Vector3D(-100, 0, 0),
            interceptor_speed=180,
        )
        solution = calculate_interception(scenario)
        assert solution == InterceptionSolution.no_solution()
        assert solution.should_fire is False
        assert solution.time_to_intercept == 0.0
        assert solution.aim_point == Vector3D.zero()

    def test_threat_about_to_land_has_no_solution(self):
        scenario = InterceptionScenario(
            interceptor_position=Vector3D.zero(),
            interceptor_velocity=Vector3D.zero(),
            threat_position=Vector3D(1000, 5, 0),
            threat_velocity=Vector3D(-100, -50, 0),
            interceptor_speed=180,
        )
        assert calculate_interception(scenario).should_fire is False

    def test_level_flight_target_keeps_altitude(self):
        scenario = InterceptionScenario(
            interceptor_position=Vector3D.zero(),
            interceptor_velocity=Vector3D.zero(),
            threat_position=Vector3D(1000, 100, 0),
            threat_velocity=Vector3D(-30, 0, 0),
            interceptor_speed=180,
            target_gravity=0.0,
        )
        solution = calculate_interception(scenario)
        assert solution.should_fire is True
        assert solution.aim_point.y == pytest.approx(100.0)

    def test_short_max_flight_time_limits_candidates(self, ballistic_scenario):
        scenario = InterceptionScenario(
            interceptor_position=ballistic_scenario.interceptor_position,
            interceptor_velocity=ballistic_scenario.interceptor_velocity,
            threat_position=ballistic_scenario.threat_position,
            threat_velocity=ballistic_scenario.threat_velocity,
            interceptor_speed=ballistic_scenario.interceptor_speed,
            max_flight_time=3.0,
        )
        assert calculate_interception(scenario).should_fire is False


class TestHitProbability:
    """Tests for the hit probability model."""

    def test_base_probability(self):
        assert calculate_hit_probability(1000, 5, 0.5) == pytest.approx(0.95)

    def test_range_decay(self):
        assert calculate_hit_probability(8000, 5, 0.5) == pytest.approx(0.95 * math.exp(-1))

    def test_flight_time_decay(self):
        assert calculate_hit_probability(1000, 20, 0.5) == pytest.approx(0.95 * math.exp(-1))

    def test_speed_ratio_penalty(self):
        assert calculate_hit_probability(1000, 5, 0.95) == pytest.approx(0.475)

    def test_required_speed_above_nominal_clamps_to_zero(self):
        assert calculate_hit_probability(1000, 5, 1.1) == 0.0

    @pytest.mark.parametrize("distance,time,ratio", [
        (0, 1, 0),
        (20000, 30, 0.99),
        (5000, 10, 0.9),
    ])
    def test_probability_in_unit_interval(self, distance, time, ratio):
        assert 0.0 <= calculate_hit_probability(distance, time, ratio) <= 1.0


# =============================================================================
# PROXIMITY GEOMETRY
# =============================================================================

class TestCalculateProximity:
    """Tests for relative-motion geometry."""

    def test_head_on_closing(self):
        result = calculate_proximity(
            Vector3D(0, 0, 0), Vector3D(100, 0, 0),
            Vector3D(100, 0, 0), Vector3D(-100, 0, 0),
        )
        assert result.distance == pytest.approx(100.0)
        assert result.closing_rate == pytest.approx(200.0)
        assert result.time_to_closest_approach == pytest.approx(0.5)
        assert result.closest_approach_distance == pytest.approx(0.0)

    def test_offset_pass(self):
        result = calculate_proximity(
            Vector3D(0, 0, 0), Vector3D(100, 0, 0),
            Vector3D(100, 5, 0), Vector3D(-100, 0, 0),
        )
        assert result.closest_approach_distance == pytest.approx(5.0)

    def test_receding_target(self):
        result = calculate_proximity(
            Vector3D(0, 0, 0), Vector3D(100, 0, 0),
            Vector3D(-10, 0, 0), Vector3D(0, 0, 0),
        )
        assert result.closing_rate == pytest.approx(-100.0)
        assert result.time_to_closest_approach < 0
        assert result.closest_approach_distance == pytest.approx(10.0)

    def test_negligible_relative_velocity(self):
        result = calculate_proximity(
            Vector3D(0, 0, 0), Vector3D(50, 0, 0),
            Vector3D(30, 40, 0), Vector3D(50, 0, 0),
        )
        assert result.closing_rate == pytest.approx(0.0)
        assert result.time_to_closest_approach == 0.0
        assert result.closest_approach_distance == pytest.approx(50.0)

    def test_coincident_positions(self):
        result = calculate_proximity(
            Vector3D(1, 1, 1), Vector3D(10, 0, 0),
            Vector3D(1, 1, 1), Vector3D(-10, 0, 0),
        )
        assert result.distance == 0.0
        assert result.closing_rate == 0.0


# =============================================================================
# DETONATION DECISION TABLE
# =============================================================================

class TestShouldDetonate:
    """One test per rule of the decision table, in priority order."""

    @pytest.mark.parametrize("optimal,detonation", [(8, 8), (9, 8)])
    def test_invalid_settings_never_detonate(self, optimal, detonation):
        invalid = ProximityFuseSettings(
            arming_distance=20, detonation_radius=detonation, optimal_radius=optimal
        )
        decision = should_detonate(proximity(1.0), invalid, 100)
        assert decision.detonate is False
        assert decision.rule == RULE_INVALID_SETTINGS
        assert decision.state == FuseState.UNARMED

    def test_not_armed_holds_even_at_point_blank(self, settings):
        decision = should_detonate(proximity(0.5), settings, 10)
        assert decision.detonate is False
        assert decision.rule == RULE_NOT_ARMED
        assert decision.state == FuseState.UNARMED

    def test_arms_exactly_at_arming_distance(self, settings):
        decision = should_detonate(proximity(2.0), settings, 20)
        assert decision.detonate is True

    def test_beyond_detonation_radius_holds(self, settings):
        decision = should_detonate(proximity(8.01), settings, 100)
        assert decision.detonate is False
        assert decision.rule == RULE_OUT_OF_RANGE
        assert decision.state == FuseState.ARMED_WAITING

    def test_moving_away_inside_optimal(self, settings):
        decision = should_detonate(proximity(2.0, closing_rate=-10), settings, 100)
        assert decision.detonate is True
        assert decision.quality == pytest.approx(1.0)
        assert decision.rule == RULE_MOVING_AWAY

    def test_moving_away_interpolates_quality(self, settings):
        decision = should_detonate(proximity(5.5, closing_rate=-10), settings, 100)
        assert decision.quality == pytest.approx(0.5)

    def test_moving_away_quality_floor(self, settings):
        decision = should_detonate(proximity(7.5, closing_rate=-10), settings, 100)
        assert decision.detonate is True
        assert decision.quality == pytest.approx(MOVING_AWAY_QUALITY_FLOOR)

    def test_within_optimal_radius(self, settings):
        decision = should_detonate(
            proximity(2.5, closing_rate=50, ttca=0.1, closest=0.5), settings, 100
        )
        assert decision.detonate is True
        assert decision.quality == 1.0
        assert decision.rule == RULE_WITHIN_OPTIMAL
        assert decision.state == FuseState.ARMED_FIRE

    def test_holds_when_closest_approach_will_be_better(self, settings):
        decision = should_detonate(
            proximity(6.0, closing_rate=100, ttca=0.05, closest=1.0), settings, 100
        )
        assert decision.detonate is False
        assert decision.rule == RULE_WILL_GET_CLOSER
        assert decision.state == FuseState.ARMED_WAITING

    def test_fires_when_it_will_not_get_closer(self, settings):
        decision = should_detonate(
            proximity(4.0, closing_rate=100, ttca=0.01, closest=3.5), settings, 100
        )
        assert decision.detonate is True
        assert decision.quality == pytest.approx(0.8)
        assert decision.rule == RULE_CLOSEST_APPROACH

    def test_closest_approach_quality_floor(self, settings):
        decision = should_detonate(
            proximity(6.0, closing_rate=100, ttca=0.05, closest=4.0), settings, 100
        )
        assert decision.quality == pytest.approx(CLOSEST_APPROACH_QUALITY_FLOOR)

    def test_at_detonation_radius_boundary(self, settings):
        decision = should_detonate(proximity(8.0), settings, 100)
        assert decision.detonate is True
        assert decision.quality == pytest.approx(0.5)

    def test_accepts_mapping_settings(self):
        mapping = {"arming_distance": 20, "detonation_radius": 8, "optimal_radius": 3}
        decision = should_detonate(proximity(2.0), mapping, 100)
        assert decision.detonate is True
        assert decision.rule == RULE_WITHIN_OPTIMAL


class TestProximityFuseSettings:
    """Tests for fuse settings helpers."""

    def test_defaults(self, settings):
        assert settings.to_dict() == {
            "arming_distance": 20.0,
            "detonation_radius": 8.0,
            "optimal_radius": 3.0,
            "scan_rate": 4,
        }
        assert settings.is_valid

    def test_from_mapping_fills_defaults(self):
        s = ProximityFuseSettings.from_mapping({"detonation_radius": 12})
        assert s.detonation_radius == 12
        assert s.optimal_radius == 3.0

    def test_from_mapping_scan_rate_is_int(self):
        s = ProximityFuseSettings.from_mapping({"scan_rate": 6.0})
        assert s.scan_rate == 6
        assert isinstance(s.scan_rate, int)
