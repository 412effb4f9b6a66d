"""
Search over region assignments.

Exports:
    StochasticOptimizer: Simulated annealing driver
    OptimizationResult: Outcome of a run
    TerminationReason: Why a run stopped
    GeneratorPicker: Weighted choice between action generators
    TemperatureSchedule, compute_max_steps: Run budget helpers
"""

from balancer_core.search.generators import (
    GENERATOR_TYPES,
    GeneratorPicker,
    LoadGreedyGenerator,
    LocalityGreedyGenerator,
    RandomRegionMoveGenerator,
    RandomRegionSwapGenerator,
)
from balancer_core.search.optimizer import OptimizationResult, StochasticOptimizer, TerminationReason
from balancer_core.search.schedule import TemperatureSchedule, compute_max_steps

__all__ = [
    "GENERATOR_TYPES",
    "GeneratorPicker",
    "LoadGreedyGenerator",
    "LocalityGreedyGenerator",
    "OptimizationResult",
    "RandomRegionMoveGenerator",
    "RandomRegionSwapGenerator",
    "StochasticOptimizer",
    "TemperatureSchedule",
    "TerminationReason",
    "compute_max_steps",
]
