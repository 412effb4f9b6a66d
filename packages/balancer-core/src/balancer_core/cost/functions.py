"""
Cost functions scoring one balance dimension of a snapshot each.

This module provides:
- CostFunction: Base class implementing CostFunctionProtocol
- RegionCountSkewCostFunction: Skew of per-server region counts
- TableSkewCostFunction: Dispersion of each table's regions across servers
- MoveCostFunction: Share of regions moved away from their original server
- LocalityCostFunction: Data locality lost by the current placement
- RegionLoadCostFunction and its four metric subclasses: Skew of per-server
  sums of a region load metric
- compute_skew_cost: Skew of a plain list of per-server counts

Every score is in [0, 1]. Functions with cached state keep it in sync in
score_delta(), which the optimizer calls after applying an action and again,
with the inverse action, after undoing one.
"""

import math
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import ClassVar

from balancer_core.cluster import Action, ClusterSnapshot, MoveRegionAction, SwapRegionsAction
from balancer_core.cluster.locality import Locality, index_locality
from balancer_core.cost.stats import (
    cost_from_moments,
    cost_from_stats,
    scaled_deviation,
    skew_cost,
    skew_cost_from_deviation,
)
from balancer_protocols import RegionInfo, RegionLoad

_NO_LOAD = RegionLoad()


class CostFunction(ABC):
    """
    Base class for cost functions.

    Subclasses implement score(); the default score_delta() rescans, which
    is right for functions that are O(1) anyway.

    Attributes:
        name: Registry name, matches the field in CostWeights.
        weight: Multiplier of the score in the total cost.
    """

    name: ClassVar[str] = ""

    def __init__(self, weight: float) -> None:
        self.weight = weight

    def prepare(self, snapshot: ClusterSnapshot) -> None:
        """Initialize cached state. No-op for functions without a cache."""

    @abstractmethod
    def score(self, snapshot: ClusterSnapshot) -> float:
        """Score the snapshot from scratch without touching cached state."""

    def score_delta(self, snapshot: ClusterSnapshot, last_action: Action) -> float:
        return self.score(snapshot)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(weight={self.weight})"


class RegionCountSkewCostFunction(CostFunction):
    """
    Skew of the number of regions per server.

    0 when every server holds the same number of regions, 1 when one server
    holds all of them. Tracks the scaled absolute deviation as an integer so
    repeated apply/undo never drifts.
    """

    name = "region_count_skew"

    def __init__(self, weight: float) -> None:
        super().__init__(weight)
        self._servers = 0
        self._total = 0
        self._deviation = 0

    def prepare(self, snapshot: ClusterSnapshot) -> None:
        self._servers = snapshot.server_count
        self._total = snapshot.total_regions
        self._deviation = scaled_deviation(snapshot.region_counts)

    def score(self, snapshot: ClusterSnapshot) -> float:
        return skew_cost(snapshot.region_counts)

    def score_delta(self, snapshot: ClusterSnapshot, last_action: Action) -> float:
        # Swaps leave both counts unchanged
        if isinstance(last_action, MoveRegionAction):
            source_count = snapshot.region_count(last_action.source)
            destination_count = snapshot.region_count(last_action.destination)
            self._shift(source_count + 1, source_count)
            self._shift(destination_count - 1, destination_count)
        return skew_cost_from_deviation(self._deviation, self._servers, self._total)

    def _shift(self, old: int, new: int) -> None:
        n, total = self._servers, self._total
        self._deviation += abs(n * new - total) - abs(n * old - total)


class TableSkewCostFunction(CostFunction):
    """
    Mean over tables of the dispersion of each table's regions across servers.

    Penalizes a table whose regions cluster on a few servers even when the
    cluster as a whole looks balanced. Each table keeps the integer sum of
    squares of its per-server counts, so a move touches one table and a swap
    at most two.
    """

    name = "table_skew"

    def __init__(self, weight: float) -> None:
        super().__init__(weight)
        self._servers = 0
        self._totals: list[int] = []
        self._sum_squares: list[int] = []
        self._costs: list[float] = []
        self._cost_sum = 0.0
        self._nonzero = 0

    def prepare(self, snapshot: ClusterSnapshot) -> None:
        self._servers = snapshot.server_count
        self._totals = [snapshot.table_total(t) for t in range(snapshot.table_count)]
        self._sum_squares = [
            sum(c * c for c in snapshot.table_region_counts(t)) for t in range(snapshot.table_count)
        ]
        self._costs = [
            cost_from_moments(self._servers, total, squares)
            for total, squares in zip(self._totals, self._sum_squares)
        ]
        self._cost_sum = math.fsum(self._costs)
        self._nonzero = sum(1 for c in self._costs if c > 0)

    def score(self, snapshot: ClusterSnapshot) -> float:
        if snapshot.table_count == 0:
            return 0.0
        costs = [cost_from_stats(snapshot.table_region_counts(t)) for t in range(snapshot.table_count)]
        return math.fsum(costs) / len(costs)

    def score_delta(self, snapshot: ClusterSnapshot, last_action: Action) -> float:
        if isinstance(last_action, MoveRegionAction):
            table = snapshot.region_table(last_action.region)
            self._shift(snapshot, table, last_action.source, last_action.destination)
        elif isinstance(last_action, SwapRegionsAction):
            table = snapshot.region_table(last_action.region)
            other_table = snapshot.region_table(last_action.other_region)
            if table != other_table:
                self._shift(snapshot, table, last_action.source, last_action.destination)
                self._shift(snapshot, other_table, last_action.destination, last_action.source)
        if not self._costs or self._nonzero == 0:
            return 0.0
        return max(0.0, self._cost_sum) / len(self._costs)

    def _shift(self, snapshot: ClusterSnapshot, table: int, from_server: int, to_server: int) -> None:
        """Account for one region of a table having moved; counts are post-move."""
        from_count = snapshot.table_region_count(table, from_server)
        to_count = snapshot.table_region_count(table, to_server)
        self._sum_squares[table] += (
            from_count * from_count
            - (from_count + 1) * (from_count + 1)
            + to_count * to_count
            - (to_count - 1) * (to_count - 1)
        )
        old = self._costs[table]
        new = cost_from_moments(self._servers, self._totals[table], self._sum_squares[table])
        self._costs[table] = new
        self._cost_sum += new - old
        self._nonzero += (new > 0) - (old > 0)


class MoveCostFunction(CostFunction):
    """
    Share of regions that would have to move.

    Saturates at 1 once the number of moved regions reaches the tolerated
    limit, max(total * max_move_percent, min_max_moves) capped at the number
    of regions.
    """

    name = "move"

    def __init__(self, weight: float, max_move_percent: float = 0.25, min_max_moves: int = 600) -> None:
        super().__init__(weight)
        self.max_move_percent = max_move_percent
        self.min_max_moves = min_max_moves

    def move_limit(self, total_regions: int) -> int:
        return min(total_regions, max(int(total_regions * self.max_move_percent), self.min_max_moves))

    def score(self, snapshot: ClusterSnapshot) -> float:
        limit = self.move_limit(snapshot.total_regions)
        if limit <= 0:
            return 0.0
        return min(1.0, snapshot.moved_regions / limit)


class LocalityCostFunction(CostFunction):
    """
    Mean locality lost over all regions: 1 - average locality of each
    region on the server it currently sits on.
    """

    name = "locality"

    def __init__(self, weight: float, locality: Locality) -> None:
        super().__init__(weight)
        self._locality = locality
        self._indexed: list[dict[int, float]] = []
        self._local_sum = 0.0
        self._regions = 0

    def prepare(self, snapshot: ClusterSnapshot) -> None:
        self._indexed = index_locality(snapshot, self._locality)
        self._regions = snapshot.total_regions
        self._local_sum = math.fsum(
            self._indexed[r].get(snapshot.server_of(r), 0.0) for r in range(snapshot.total_regions)
        )

    def score(self, snapshot: ClusterSnapshot) -> float:
        if snapshot.total_regions == 0:
            return 0.0
        local_sum = math.fsum(
            self._locality.get(region, {}).get(snapshot.servers[snapshot.server_of(r)], 0.0)
            for r, region in enumerate(snapshot.regions)
        )
        return _clamp(1.0 - local_sum / snapshot.total_regions)

    def score_delta(self, snapshot: ClusterSnapshot, last_action: Action) -> float:
        if isinstance(last_action, MoveRegionAction):
            self._relocate(last_action.region, last_action.source, last_action.destination)
        elif isinstance(last_action, SwapRegionsAction):
            self._relocate(last_action.region, last_action.source, last_action.destination)
            self._relocate(last_action.other_region, last_action.destination, last_action.source)
        if self._regions == 0:
            return 0.0
        return _clamp(1.0 - self._local_sum / self._regions)

    def _relocate(self, region: int, from_server: int, to_server: int) -> None:
        fractions = self._indexed[region]
        self._local_sum += fractions.get(to_server, 0.0) - fractions.get(from_server, 0.0)


class RegionLoadCostFunction(CostFunction):
    """
    Skew of the per-server sum of one integer region load metric.

    Uses the same normalization as the region count skew, with each region
    weighted by its metric value instead of 1.

    Attributes:
        metric: RegionLoad attribute to balance.
    """

    metric: ClassVar[str] = ""

    def __init__(self, weight: float, region_loads: Mapping[RegionInfo, RegionLoad]) -> None:
        super().__init__(weight)
        self._region_loads = region_loads
        self._values: list[int] = []
        self._server_sums: list[int] = []
        self._total = 0
        self._deviation = 0

    def _region_values(self, snapshot: ClusterSnapshot) -> list[int]:
        return [getattr(self._region_loads.get(region, _NO_LOAD), self.metric) for region in snapshot.regions]

    def _sums(self, snapshot: ClusterSnapshot, values: list[int]) -> list[int]:
        sums = [0] * snapshot.server_count
        for r, value in enumerate(values):
            sums[snapshot.server_of(r)] += value
        return sums

    def prepare(self, snapshot: ClusterSnapshot) -> None:
        self._values = self._region_values(snapshot)
        self._server_sums = self._sums(snapshot, self._values)
        self._total = sum(self._server_sums)
        self._deviation = scaled_deviation(self._server_sums)

    def score(self, snapshot: ClusterSnapshot) -> float:
        return skew_cost(self._sums(snapshot, self._region_values(snapshot)))

    def score_delta(self, snapshot: ClusterSnapshot, last_action: Action) -> float:
        if isinstance(last_action, MoveRegionAction):
            value = self._values[last_action.region]
            self._add(last_action.source, -value)
            self._add(last_action.destination, value)
        elif isinstance(last_action, SwapRegionsAction):
            difference = self._values[last_action.other_region] - self._values[last_action.region]
            self._add(last_action.source, difference)
            self._add(last_action.destination, -difference)
        return skew_cost_from_deviation(self._deviation, len(self._server_sums), self._total)

    def _add(self, server: int, amount: int) -> None:
        if amount == 0:
            return
        n, total = len(self._server_sums), self._total
        old = self._server_sums[server]
        new = old + amount
        self._server_sums[server] = new
        self._deviation += abs(n * new - total) - abs(n * old - total)


class ReadRequestCostFunction(RegionLoadCostFunction):
    name = "read_request"
    metric = "read_requests"


class WriteRequestCostFunction(RegionLoadCostFunction):
    name = "write_request"
    metric = "write_requests"


class MemstoreSizeCostFunction(RegionLoadCostFunction):
    name = "memstore_size"
    metric = "memstore_size_mb"


class StoreFileSizeCostFunction(RegionLoadCostFunction):
    name = "storefile_size"
    metric = "storefile_size_mb"


def _clamp(value: float) -> float:
    return min(1.0, max(0.0, value))


def compute_skew_cost(counts: Sequence[int]) -> float:
    """
    Skew cost of per-server region counts, without building a snapshot.

    Example:
        compute_skew_cost([0, 0, 1, 1, 1])  # 0.5
    """
    return skew_cost(counts)
