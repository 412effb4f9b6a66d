"""
Weighted registry of the cost functions used in one run.

This module provides:
- COST_FUNCTION_TYPES: Config weight name -> cost function class
- WeightedCost: Total cost as the weighted sum of the enabled functions

Functions are registered explicitly here instead of being discovered, so the
set of names accepted in CostWeights and the set of functions the optimizer
can run stay the same.

Example:
    ```python
    cost = WeightedCost.from_config(config, region_loads=loads)
    current = cost.prepare(snapshot)
    snapshot.apply_action(action)
    new = cost.total_delta(snapshot, action)
    ```
"""

import logging
import math
from collections.abc import Mapping, Sequence

from balancer_core.cluster import Action, ClusterSnapshot
from balancer_core.cluster.locality import Locality
from balancer_core.config import BalancerConfig
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
)
from balancer_protocols import RegionInfo, RegionLoad

logger = logging.getLogger(__name__)

COST_FUNCTION_TYPES: dict[str, type[CostFunction]] = {
    cls.name: cls
    for cls in (
        RegionCountSkewCostFunction,
        TableSkewCostFunction,
        MoveCostFunction,
        LocalityCostFunction,
        ReadRequestCostFunction,
        WriteRequestCostFunction,
        MemstoreSizeCostFunction,
        StoreFileSizeCostFunction,
    )
}


class WeightedCost:
    """
    Weighted sum of a fixed list of cost functions.

    Attributes:
        functions: Enabled cost functions in evaluation order.
    """

    def __init__(self, functions: Sequence[CostFunction]) -> None:
        self.functions = list(functions)

    @classmethod
    def from_config(
        cls,
        config: BalancerConfig,
        region_loads: Mapping[RegionInfo, RegionLoad] | None = None,
        locality: Locality | None = None,
    ) -> "WeightedCost":
        """
        Build the functions enabled by the configured weights.

        Functions with weight 0 are left out. Load functions need
        region_loads and the locality function needs locality; without the
        data they are left out as well.
        """
        functions: list[CostFunction] = []
        for name, cost_type in COST_FUNCTION_TYPES.items():
            weight = getattr(config.weights, name)
            if weight <= 0:
                continue
            if issubclass(cost_type, RegionLoadCostFunction):
                if not region_loads:
                    logger.debug(f"Skipping {name} cost: no region loads")
                    continue
                functions.append(cost_type(weight, region_loads))
            elif cost_type is LocalityCostFunction:
                if not locality:
                    logger.debug(f"Skipping {name} cost: no locality data")
                    continue
                functions.append(LocalityCostFunction(weight, locality))
            elif cost_type is MoveCostFunction:
                functions.append(MoveCostFunction(weight, config.max_move_percent, config.min_max_moves))
            else:
                functions.append(cost_type(weight))
        return cls(functions)

    @property
    def names(self) -> list[str]:
        return [f.name for f in self.functions]

    @property
    def total_weight(self) -> float:
        return math.fsum(f.weight for f in self.functions)

    def prepare(self, snapshot: ClusterSnapshot) -> float:
        """Initialize every function's cache and return the starting total cost."""
        for function in self.functions:
            function.prepare(snapshot)
        return self.total(snapshot)

    def total(self, snapshot: ClusterSnapshot) -> float:
        """Weighted total from full rescans."""
        return math.fsum(f.weight * f.score(snapshot) for f in self.functions)

    def total_delta(self, snapshot: ClusterSnapshot, last_action: Action) -> float:
        """Weighted total after last_action, from the incremental caches."""
        return math.fsum(f.weight * f.score_delta(snapshot, last_action) for f in self.functions)

    def breakdown(self, snapshot: ClusterSnapshot) -> dict[str, float]:
        """Unweighted score of each function, keyed by name."""
        return {f.name: f.score(snapshot) for f in self.functions}
