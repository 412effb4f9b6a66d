"""
Stochastic search for a better region assignment.

This module provides:
- TerminationReason: Why the search loop stopped
- OptimizationResult: Costs, best assignment and statistics of one run
- StochasticOptimizer: Simulated annealing over move and swap actions

Each step picks a generator, applies its proposal to the working snapshot,
scores it incrementally and either keeps it or undoes it. Improvements are
always kept; a worse state is kept with probability exp(-delta / T) while
the temperature T is above 0. The best state seen is remembered and, after
the loop, brought back and repaired so that every server holds
floor(average) or ceil(average) regions.

Example:
    ```python
    optimizer = StochasticOptimizer(
        config,
        cost=WeightedCost.from_config(config),
        picker=GeneratorPicker.from_config(config),
        rng=random.Random(42),
    )
    result = optimizer.optimize(ClusterSnapshot(assignment))
    if result.plan_needed:
        ...
    ```
"""

import logging
import math
import random
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from balancer_core.cluster import ClusterSnapshot, MoveRegionAction
from balancer_core.config import BalancerConfig
from balancer_core.cost import WeightedCost
from balancer_core.search.generators import GeneratorPicker
from balancer_core.search.schedule import TemperatureSchedule, compute_max_steps

logger = logging.getLogger(__name__)


class TerminationReason(str, Enum):
    """Condition that ended the search loop."""

    ZERO_COST = "zero_cost"
    MAX_STEPS = "max_steps"
    DEADLINE = "deadline"
    CANCELLED = "cancelled"


@dataclass
class OptimizationResult:
    """
    Outcome of one optimization run.

    Attributes:
        initial_cost: Weighted cost of the starting assignment.
        best_cost: Weighted cost of best_assignment.
        best_assignment: Region index -> server index of the chosen state.
        steps: Iterations performed, including ones without a proposal.
        accepted: Proposals kept.
        max_steps: Step budget of the run.
        termination: Why the loop stopped.
        repaired_moves: Moves added after the loop to restore count balance.
        elapsed_seconds: Wall-clock duration according to the run's clock.
        plan_needed: Whether best_assignment is worth turning into a plan.
    """

    initial_cost: float
    best_cost: float
    best_assignment: tuple[int, ...]
    steps: int
    accepted: int
    max_steps: int
    termination: TerminationReason
    repaired_moves: int
    elapsed_seconds: float
    plan_needed: bool

    @property
    def improvement(self) -> float:
        return self.initial_cost - self.best_cost


class StochasticOptimizer:
    """
    Simulated annealing over a ClusterSnapshot.

    The optimizer owns no cluster state between runs. Randomness comes only
    from rng and time only from clock, so tests can drive both.
    """

    def __init__(
        self,
        config: BalancerConfig,
        cost: WeightedCost,
        picker: GeneratorPicker,
        rng: random.Random,
        clock: Callable[[], float] = time.monotonic,
        cancel_event: threading.Event | None = None,
    ) -> None:
        """
        Args:
            config: Step budget, deadline, temperatures and plan threshold.
            cost: Weighted cost model for the run.
            picker: Source of candidate actions.
            rng: Random source for generators and acceptance.
            clock: Monotonic clock in seconds.
            cancel_event: Set to stop the search at the next iteration.
        """
        self.config = config
        self.cost = cost
        self.picker = picker
        self.rng = rng
        self.clock = clock
        self.cancel_event = cancel_event or threading.Event()

    def optimize(self, snapshot: ClusterSnapshot) -> OptimizationResult:
        """
        Search for a lower-cost assignment, mutating snapshot in place.

        On return the snapshot holds the chosen assignment (the starting one
        when cancelled).
        """
        start = self.clock()
        deadline = start + self.config.max_run_time_seconds
        max_steps = compute_max_steps(self.config, snapshot.total_regions, snapshot.server_count)
        schedule = TemperatureSchedule.from_config(self.config, max_steps)

        start_vector = snapshot.assignment_vector()
        initially_balanced = snapshot.is_count_balanced()
        initial_cost = self.cost.prepare(snapshot)
        current = initial_cost
        best = initial_cost
        best_vector = start_vector
        steps = 0
        accepted = 0

        logger.info(
            f"Starting search: {snapshot.total_regions} regions on {snapshot.server_count} servers, "
            f"cost {initial_cost:.4f}, budget {max_steps} steps"
        )
        logger.debug(
            f"Cost functions {self.cost.names} (total weight {self.cost.total_weight:g}), "
            f"generators {self.picker.names}"
        )

        while True:
            if current <= 0:
                termination = TerminationReason.ZERO_COST
                break
            if steps >= max_steps:
                termination = TerminationReason.MAX_STEPS
                break
            if self.cancel_event.is_set():
                termination = TerminationReason.CANCELLED
                break
            if self.clock() >= deadline:
                termination = TerminationReason.DEADLINE
                break

            temperature = schedule.at(steps)
            steps += 1
            action = self.picker.generate(snapshot, self.rng)
            if action is None:
                continue

            snapshot.apply_action(action)
            new = self.cost.total_delta(snapshot, action)
            if self._accept(new - current, temperature):
                snapshot.commit()
                current = new
                accepted += 1
                if current < best:
                    best = current
                    best_vector = snapshot.assignment_vector()
            else:
                snapshot.undo_last_action()
                self.cost.total_delta(snapshot, action.inverse())

        repaired = 0
        if termination is TerminationReason.CANCELLED:
            logger.info(f"Search cancelled after {steps} steps")
            snapshot.reset_to(start_vector)
            best_vector = start_vector
            best_cost = initial_cost
            plan_needed = False
        else:
            snapshot.reset_to(best_vector)
            repaired = self.repair(snapshot)
            best_vector = snapshot.assignment_vector()
            best_cost = self.cost.total(snapshot)
            improvement = initial_cost - best_cost
            plan_needed = best_vector != start_vector and (
                not initially_balanced
                or (improvement > 0 and improvement >= self.config.min_cost_improvement)
            )

        elapsed = self.clock() - start
        logger.info(
            f"Search finished ({termination.value}) after {steps} steps, {accepted} accepted: "
            f"cost {initial_cost:.4f} -> {best_cost:.4f} in {elapsed:.3f}s"
        )
        return OptimizationResult(
            initial_cost=initial_cost,
            best_cost=best_cost,
            best_assignment=best_vector,
            steps=steps,
            accepted=accepted,
            max_steps=max_steps,
            termination=termination,
            repaired_moves=repaired,
            elapsed_seconds=elapsed,
            plan_needed=plan_needed,
        )

    def _accept(self, delta: float, temperature: float) -> bool:
        if delta <= 0:
            return True
        if temperature <= 0:
            return False
        return self.rng.random() < math.exp(-delta / temperature)

    def repair(self, snapshot: ClusterSnapshot) -> int:
        """
        Move regions until every server holds floor(average) or ceil(average).

        Each move goes from the most loaded to the least loaded server, which
        differ by at least two regions while the bounds are violated, so the
        total deviation from the average drops with every move.

        Returns:
            Number of moves made.
        """
        moves = 0
        while not snapshot.is_count_balanced():
            counts = snapshot.region_counts
            source = max(range(len(counts)), key=lambda s: (counts[s], -s))
            destination = min(range(len(counts)), key=lambda s: (counts[s], s))
            region = self._repair_region(snapshot, source, destination)
            snapshot.apply_action(MoveRegionAction(region, source, destination))
            snapshot.commit()
            moves += 1
        if moves:
            logger.debug(f"Repair moved {moves} regions to restore count balance")
        return moves

    @staticmethod
    def _repair_region(snapshot: ClusterSnapshot, source: int, destination: int) -> int:
        """Region to move: one going back to its original server, else one from the most crowded table."""
        candidates = snapshot.regions_on(source)
        returning = [r for r in candidates if snapshot.initial_server_of(r) == destination]
        if returning:
            return min(returning)

        def surplus(region: int) -> tuple[int, int]:
            table = snapshot.region_table(region)
            excess = snapshot.table_region_count(table, source) - snapshot.table_region_count(table, destination)
            return excess, -region

        return max(candidates, key=surplus)
