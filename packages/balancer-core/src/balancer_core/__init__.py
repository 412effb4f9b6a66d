"""
Balancer Core Library

Stochastic region balancer for a distributed, range-partitioned storage
system. Given the current region-to-server assignment, it searches for a
better one with simulated annealing over a weighted cost model and returns
the region moves needed to get there.

- Cluster model: ClusterSnapshot with O(1) apply/undo of moves and swaps
- Cost model: skew, table skew, move, locality and region load costs
- Search: action generators and the stochastic optimizer
- Plans: ordered moves grouped into per-destination capped rounds
- CLI infrastructure: Typer-based command structure
"""

__version__ = "0.1.0"

# Re-export public types for convenient imports
from balancer_core.balancer import BalanceResult, BalanceStatus, CostReport, StochasticLoadBalancer
from balancer_core.cluster import ClusterSnapshot, MoveRegionAction, SwapRegionsAction
from balancer_core.config import BalancerConfig, CostWeights, GeneratorWeights, load_balancer_config
from balancer_core.cost import WeightedCost, compute_skew_cost, cost_from_stats
from balancer_core.exceptions import (
    BalancerBusyError,
    BalancerError,
    ConfigError,
    DuplicateAssignmentError,
    InvalidActionError,
    InvalidAssignmentError,
)
from balancer_core.loader import ClusterState, load_cluster_state
from balancer_core.plan import PlanBuilder
from balancer_core.search import OptimizationResult, StochasticOptimizer, TerminationReason

__all__ = [
    "__version__",
    # Balancer
    "BalanceResult",
    "BalanceStatus",
    "CostReport",
    "StochasticLoadBalancer",
    # Cluster model
    "ClusterSnapshot",
    "MoveRegionAction",
    "SwapRegionsAction",
    # Config
    "BalancerConfig",
    "CostWeights",
    "GeneratorWeights",
    "load_balancer_config",
    # Cost
    "WeightedCost",
    "compute_skew_cost",
    "cost_from_stats",
    # Errors
    "BalancerBusyError",
    "BalancerError",
    "ConfigError",
    "DuplicateAssignmentError",
    "InvalidActionError",
    "InvalidAssignmentError",
    # Documents
    "ClusterState",
    "load_cluster_state",
    # Search and plans
    "OptimizationResult",
    "PlanBuilder",
    "StochasticOptimizer",
    "TerminationReason",
]
