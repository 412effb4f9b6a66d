"""
Entry point used by the master to compute a balancing plan.

StochasticLoadBalancer ties the pieces of one run together: it builds the
snapshot, the cost model and the generators from the configuration, runs the
optimizer and turns the result into a plan. It also guards against runs that
would compute a plan against a stale assignment.

Example:
    ```python
    balancer = StochasticLoadBalancer(config, rng=random.Random(7))
    result = balancer.balance_cluster(assignment)
    if result.status is BalanceStatus.MOVES:
        for round_plans in result.rounds:
            execute(round_plans)
        balancer.plan_completed()
    ```
"""

import logging
import random
import threading
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum

from balancer_core.cluster import ClusterSnapshot
from balancer_core.cluster.locality import Locality
from balancer_core.config import BalancerConfig
from balancer_core.cost import WeightedCost
from balancer_core.exceptions import BalancerBusyError
from balancer_core.plan import PlanBuilder
from balancer_core.search import GeneratorPicker, OptimizationResult, StochasticOptimizer, TerminationReason
from balancer_protocols import RegionInfo, RegionLoad, RegionPlan, ServerName

logger = logging.getLogger(__name__)


class BalanceStatus(str, Enum):
    """Outcome of a balance_cluster call."""

    MOVES = "moves"
    ALREADY_BALANCED = "already_balanced"
    TRIVIAL = "trivial"
    CANCELLED = "cancelled"


@dataclass
class BalanceResult:
    """
    Plan and statistics of one balancing run.

    Attributes:
        status: What the run concluded.
        plans: Ordered moves; empty unless status is MOVES.
        rounds: The same moves grouped into rounds.
        optimization: Search statistics; None for trivial clusters.
        assignment: Server -> regions once the plan is executed. The
            current assignment unless status is MOVES.
    """

    status: BalanceStatus
    plans: list[RegionPlan] = field(default_factory=list)
    rounds: list[list[RegionPlan]] = field(default_factory=list)
    optimization: OptimizationResult | None = None
    assignment: dict[ServerName, list[RegionInfo]] = field(default_factory=dict)

    @property
    def has_plan(self) -> bool:
        return bool(self.plans)


@dataclass
class CostReport:
    """
    Cost of an assignment without searching.

    Attributes:
        total: Weighted total cost.
        breakdown: Unweighted score of each enabled cost function.
        weights: Weight of each enabled cost function.
    """

    total: float
    breakdown: dict[str, float]
    weights: dict[str, float]


class StochasticLoadBalancer:
    """
    Computes region move plans with the stochastic optimizer.

    At most one run is active at a time, and after a run that produced moves
    no new run starts until the caller reports the plan as executed with
    plan_completed(). Both conditions raise BalancerBusyError.
    """

    def __init__(
        self,
        config: BalancerConfig | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Args:
            config: Run configuration (defaults when omitted).
            rng: Random source shared by all runs. Seed it for reproducible plans.
            clock: Monotonic clock in seconds.
        """
        self.config = config or BalancerConfig()
        self.rng = rng or random.Random()
        self.clock = clock
        self._lock = threading.Lock()
        self._running = False
        self._plan_in_flight = False
        self._cancel = threading.Event()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def plan_in_flight(self) -> bool:
        return self._plan_in_flight

    def balance_cluster(
        self,
        assignment: Mapping[ServerName, Sequence[RegionInfo]],
        servers: Sequence[ServerName] | None = None,
        region_loads: Mapping[RegionInfo, RegionLoad] | None = None,
        locality: Locality | None = None,
    ) -> BalanceResult:
        """
        Compute a plan for the given assignment.

        Args:
            assignment: Server -> regions currently open on it.
            servers: Live servers, including empty ones. Defaults to the
                keys of assignment.
            region_loads: Optional per-region load metrics.
            locality: Optional region -> server -> local data fraction.

        Returns:
            BalanceResult. TRIVIAL for fewer than two servers or no regions,
            ALREADY_BALANCED when no plan is worth executing, CANCELLED when
            cancel() stopped the search, MOVES otherwise.

        Raises:
            BalancerBusyError: If a run is active or a plan is outstanding.
            DuplicateAssignmentError: If a region is listed more than once.
            InvalidAssignmentError: If the assignment cannot be modelled.
        """
        self._begin_run()
        try:
            snapshot = ClusterSnapshot(assignment, servers)
            if snapshot.server_count < 2 or snapshot.total_regions == 0:
                logger.info(
                    f"Nothing to balance: {snapshot.total_regions} regions on {snapshot.server_count} servers"
                )
                return BalanceResult(BalanceStatus.TRIVIAL, assignment=snapshot.to_assignment())

            optimizer = StochasticOptimizer(
                self.config,
                cost=WeightedCost.from_config(self.config, region_loads, locality),
                picker=GeneratorPicker.from_config(self.config, locality),
                rng=self.rng,
                clock=self.clock,
                cancel_event=self._cancel,
            )
            result = optimizer.optimize(snapshot)

            if result.termination is TerminationReason.CANCELLED:
                return BalanceResult(
                    BalanceStatus.CANCELLED, optimization=result, assignment=snapshot.to_assignment()
                )
            if not result.plan_needed:
                logger.info(
                    f"Cluster already balanced: cost {result.initial_cost:.4f} -> {result.best_cost:.4f}"
                )
                return BalanceResult(
                    BalanceStatus.ALREADY_BALANCED,
                    optimization=result,
                    assignment=snapshot.to_assignment(snapshot.initial_vector),
                )

            rounds = PlanBuilder(self.config.max_moves_per_server).build_rounds(
                snapshot, result.best_assignment
            )
            plans = [plan for round_plans in rounds for plan in round_plans]
            with self._lock:
                self._plan_in_flight = True
            logger.info(f"Computed plan: {len(plans)} moves in {len(rounds)} rounds")
            return BalanceResult(
                BalanceStatus.MOVES,
                plans=plans,
                rounds=rounds,
                optimization=result,
                assignment=snapshot.to_assignment(result.best_assignment),
            )
        finally:
            with self._lock:
                self._running = False

    def plan_completed(self) -> None:
        """Report that the last plan has been executed, allowing the next run."""
        with self._lock:
            self._plan_in_flight = False

    def cancel(self) -> None:
        """Ask the active run to stop at its next iteration. No-op when idle."""
        self._cancel.set()

    def compute_cost(
        self,
        assignment: Mapping[ServerName, Sequence[RegionInfo]],
        servers: Sequence[ServerName] | None = None,
        region_loads: Mapping[RegionInfo, RegionLoad] | None = None,
        locality: Locality | None = None,
    ) -> CostReport:
        """Score an assignment with the configured cost model."""
        snapshot = ClusterSnapshot(assignment, servers)
        cost = WeightedCost.from_config(self.config, region_loads, locality)
        total = cost.prepare(snapshot)
        return CostReport(
            total=total,
            breakdown=cost.breakdown(snapshot),
            weights={f.name: f.weight for f in cost.functions},
        )

    def _begin_run(self) -> None:
        with self._lock:
            if self._running:
                raise BalancerBusyError("running")
            if self._plan_in_flight:
                raise BalancerBusyError("plan_in_flight")
            self._running = True
            self._cancel.clear()
