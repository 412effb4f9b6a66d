"""
Turn the chosen assignment into an ordered list of region moves.

The plan lists one RegionPlan per region whose server changed, grouped into
rounds. Within a round no destination server receives more than
max_moves_per_server regions, so a caller executing round by round never
floods a single server with incoming regions. The flat plan is the rounds
concatenated.
"""

from collections.abc import Sequence

from balancer_core.cluster import ClusterSnapshot
from balancer_core.exceptions import InvalidAssignmentError
from balancer_protocols import RegionPlan, ServerName


class PlanBuilder:
    """
    Diff a target assignment against the original one.

    Attributes:
        max_moves_per_server: Most moves into one destination per round.
    """

    def __init__(self, max_moves_per_server: int = 4) -> None:
        if max_moves_per_server < 1:
            raise ValueError("max_moves_per_server must be at least 1")
        self.max_moves_per_server = max_moves_per_server

    def moves(self, snapshot: ClusterSnapshot, target: Sequence[int]) -> list[RegionPlan]:
        """One RegionPlan per region whose target server differs, in region order."""
        if len(target) != snapshot.total_regions:
            raise InvalidAssignmentError(
                f"target has {len(target)} entries, snapshot has {snapshot.total_regions} regions"
            )
        plans = []
        for r_idx, s_idx in enumerate(target):
            original = snapshot.initial_server_of(r_idx)
            if s_idx != original:
                plans.append(
                    RegionPlan(
                        region=snapshot.regions[r_idx],
                        source=snapshot.servers[original],
                        destination=snapshot.servers[s_idx],
                    )
                )
        return plans

    def schedule_rounds(self, plans: Sequence[RegionPlan]) -> list[list[RegionPlan]]:
        """
        Group moves into rounds capped per destination.

        The n-th move into a destination (counting from 0) goes to round
        n // max_moves_per_server. Order within a round follows plans.
        """
        rounds: list[list[RegionPlan]] = []
        incoming: dict[ServerName, int] = {}
        for plan in plans:
            seen = incoming.get(plan.destination, 0)
            incoming[plan.destination] = seen + 1
            round_index = seen // self.max_moves_per_server
            while len(rounds) <= round_index:
                rounds.append([])
            rounds[round_index].append(plan)
        return rounds

    def build_rounds(self, snapshot: ClusterSnapshot, target: Sequence[int]) -> list[list[RegionPlan]]:
        return self.schedule_rounds(self.moves(snapshot, target))

    def build(self, snapshot: ClusterSnapshot, target: Sequence[int]) -> list[RegionPlan]:
        """
        Ordered move list from the original assignment to target.

        Returns an empty list when target equals the original assignment.
        """
        return [plan for round_plans in self.build_rounds(snapshot, target) for plan in round_plans]
