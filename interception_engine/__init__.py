"""Interception engine for air-defence engagement simulation."""

import logging

from .physics import (
    G_STANDARD,
    Vector3D,
    ballistic_position,
    ballistic_velocity,
    ground_impact_time,
)

from .blast import (
    TAMIR_CONFIG,
    BlastConfig,
    BlastPhysics,
    BlastTarget,
    BlastTargetResult,
    DamageResult,
    DamageType,
    DetonationPlan,
    base_kill_probability,
    calculate_damage,
    calculate_optimal_detonation_point,
    crossing_factor,
)

from .interception import (
    # Data types
    InterceptionScenario,
    InterceptionSolution,
    ProximityResult,
    ProximityFuseSettings,
    DetonationDecision,
    FuseState,
    # Operations
    calculate_interception,
    calculate_hit_probability,
    calculate_proximity,
    should_detonate,
)

from .trajectory import (
    ImprovedTrajectoryCalculator,
    InterceptPoint,
    InterceptionWindow,
)

from .guidance import (
    # Guidance simulator
    GuidanceSettings,
    GuidanceState,
    GuidanceCommand,
    GuidanceRun,
    calculate_guidance_command,
    simulate_guidance_step,
    run_guidance_simulation,
    # Proportional navigation
    ProportionalNavigation,
    PNCommand,
    LaunchAngles,
)

from .scenarios import (
    ThreatType,
    ThreatSpec,
    BatterySpec,
    ExpectedOutcome,
    EngagementScenario,
    InterceptorSpec,
    RealisticScenario,
    generate_standard_scenarios,
    create_realistic_scenario,
    create_multiple_threat_scenarios,
    create_edge_case_scenarios,
    load_scenarios,
)

from .simulator import (
    InterceptionSimulator,
    SimulationResult,
    GuidanceSummary,
    ProximityDetonation,
    BatchStatistics,
    ScenarioBatch,
    ParameterRange,
    SweepResult,
    generate_parameter_combinations,
)

from .genetic import (
    Gene,
    Genome,
    GAConfig,
    GAResult,
    GenerationStats,
    GeneticAlgorithm,
)

from .optimizer import (
    FUSE_GENES,
    OptimizationResult,
    PerformanceReport,
    ProximityFuseOptimizer,
    WeightedScenario,
    default_weighted_scenarios,
    optimize_proximity_fuse,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Physics
    "G_STANDARD",
    "Vector3D",
    "ballistic_position",
    "ballistic_velocity",
    "ground_impact_time",
    # Blast
    "TAMIR_CONFIG",
    "BlastConfig",
    "BlastPhysics",
    "BlastTarget",
    "BlastTargetResult",
    "DamageResult",
    "DamageType",
    "DetonationPlan",
    "base_kill_probability",
    "calculate_damage",
    "calculate_optimal_detonation_point",
    "crossing_factor",
    # Interception - Data types
    "InterceptionScenario",
    "InterceptionSolution",
    "ProximityResult",
    "ProximityFuseSettings",
    "DetonationDecision",
    "FuseState",
    # Interception - Operations
    "calculate_interception",
    "calculate_hit_probability",
    "calculate_proximity",
    "should_detonate",
    # Trajectory
    "ImprovedTrajectoryCalculator",
    "InterceptPoint",
    "InterceptionWindow",
    # Guidance - Simulator
    "GuidanceSettings",
    "GuidanceState",
    "GuidanceCommand",
    "GuidanceRun",
    "calculate_guidance_command",
    "simulate_guidance_step",
    "run_guidance_simulation",
    # Guidance - Proportional navigation
    "ProportionalNavigation",
    "PNCommand",
    "LaunchAngles",
    # Scenarios
    "ThreatType",
    "ThreatSpec",
    "BatterySpec",
    "ExpectedOutcome",
    "EngagementScenario",
    "InterceptorSpec",
    "RealisticScenario",
    "generate_standard_scenarios",
    "create_realistic_scenario",
    "create_multiple_threat_scenarios",
    "create_edge_case_scenarios",
    "load_scenarios",
    # Simulator
    "InterceptionSimulator",
    "SimulationResult",
    "GuidanceSummary",
    "ProximityDetonation",
    "BatchStatistics",
    "ScenarioBatch",
    "ParameterRange",
    "SweepResult",
    "generate_parameter_combinations",
    # Genetic algorithm
    "Gene",
    "Genome",
    "GAConfig",
    "GAResult",
    "GenerationStats",
    "GeneticAlgorithm",
    # Optimizer
    "FUSE_GENES",
    "OptimizationResult",
    "PerformanceReport",
    "ProximityFuseOptimizer",
    "WeightedScenario",
    "default_weighted_scenarios",
    "optimize_proximity_fuse",
]
