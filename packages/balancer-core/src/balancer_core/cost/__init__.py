"""
Cost model.

Exports:
    WeightedCost: Weighted sum of the enabled cost functions
    COST_FUNCTION_TYPES: Registry of cost function classes by config name
    CostFunction and the concrete cost functions
    cost_from_stats, compute_skew_cost: Normalization helpers
"""

from balancer_core.cost.functions import (
    CostFunction,
    LocalityCostFunction,
    MemstoreSizeCostFunction,
    MoveCostFunction,
    ReadRequestCostFunction,
    RegionCountSkewCostFunction,
    RegionLoadCostFunction,
    StoreFileSizeCostFunction,
    TableSkewCostFunction,
    WriteRequestCostFunction,
    compute_skew_cost,
)
from balancer_core.cost.registry import COST_FUNCTION_TYPES, WeightedCost
from balancer_core.cost.stats import cost_from_stats

__all__ = [
    "COST_FUNCTION_TYPES",
    "CostFunction",
    "LocalityCostFunction",
    "MemstoreSizeCostFunction",
    "MoveCostFunction",
    "ReadRequestCostFunction",
    "RegionCountSkewCostFunction",
    "RegionLoadCostFunction",
    "StoreFileSizeCostFunction",
    "TableSkewCostFunction",
    "WeightedCost",
    "WriteRequestCostFunction",
    "compute_skew_cost",
    "cost_from_stats",
]
