"""
In-memory model of which regions sit on which server during one balancing run.

The snapshot is built once per run from the master's assignment view and is
then mutated in place by the optimizer, one action at a time. Every counter
the cost functions need is maintained incrementally:

- per-server region count
- per-(table, server) region count
- region -> (server, position) reverse index
- number of regions that are no longer on their original server

Apply and undo are O(1). Undo restores the counters and the order of each
server's region list exactly, so a rejected trial action leaves no trace.

The snapshot is owned by a single run and is never shared between threads.

Example:
    snapshot = ClusterSnapshot({server_a: [r1, r2, r3], server_b: []})
    snapshot.apply_action(MoveRegionAction(region=0, source=0, destination=1))
    snapshot.region_count(1)  # 1
    snapshot.undo_last_action()
    snapshot.region_count(1)  # 0
"""

from collections.abc import Mapping, Sequence
from typing import Any

from balancer_core.cluster.actions import Action, MoveRegionAction, SwapRegionsAction
from balancer_core.exceptions import (
    DuplicateAssignmentError,
    InvalidActionError,
    InvalidAssignmentError,
)
from balancer_protocols import RegionInfo, ServerName, TableName


class ClusterSnapshot:
    """
    Mutable region-to-server assignment with incrementally tracked counters.

    Servers, regions and tables are addressed by integer indices. Index order
    follows the input: servers in assignment (or explicit server list) order,
    regions in the order they are listed per server, tables in order of first
    appearance.

    Attributes:
        servers: Server identities, indexed by server index.
        regions: Region identities, indexed by region index.
        tables: Table names, indexed by table index.
        server_index: ServerName -> server index.
        region_index: RegionInfo -> region index.
        table_index: TableName -> table index.
    """

    def __init__(
        self,
        assignment: Mapping[ServerName, Sequence[RegionInfo]],
        servers: Sequence[ServerName] | None = None,
    ) -> None:
        """
        Build a snapshot from the current assignment.

        Args:
            assignment: Server -> regions currently open on it.
            servers: Optional explicit list of live servers. Servers without
                regions only need to be listed here. Defaults to the keys of
                assignment.

        Raises:
            DuplicateAssignmentError: If a region is listed more than once.
            InvalidAssignmentError: If there are regions but no servers, or
                a server in assignment is missing from servers.
        """
        region_total = sum(len(regions) for regions in assignment.values())

        if servers is None:
            server_list = list(assignment.keys())
        else:
            server_list = list(servers)

        if not server_list and region_total > 0:
            raise InvalidAssignmentError(f"no servers available to host {region_total} regions")

        self.servers: list[ServerName] = server_list
        self.server_index: dict[ServerName, int] = {}
        for idx, server in enumerate(server_list):
            if server in self.server_index:
                raise InvalidAssignmentError(f"server {server} is listed more than once")
            self.server_index[server] = idx

        self.regions: list[RegionInfo] = []
        self.region_index: dict[RegionInfo, int] = {}
        self.tables: list[TableName] = []
        self.table_index: dict[TableName, int] = {}
        self._region_table: list[int] = []
        initial: list[int] = []

        for server, server_regions in assignment.items():
            s_idx = self.server_index.get(server)
            if s_idx is None:
                raise InvalidAssignmentError(f"server {server} hosts regions but is not a live server")
            for region in server_regions:
                if region in self.region_index:
                    first = self.servers[initial[self.region_index[region]]]
                    raise DuplicateAssignmentError(region, first, server)
                t_idx = self.table_index.get(region.table)
                if t_idx is None:
                    t_idx = len(self.tables)
                    self.tables.append(region.table)
                    self.table_index[region.table] = t_idx
                self.region_index[region] = len(self.regions)
                self.regions.append(region)
                self._region_table.append(t_idx)
                initial.append(s_idx)

        self._initial: tuple[int, ...] = tuple(initial)
        self._load(initial)

    # ── Loading ───────────────────────────────────────────────────

    def _load(self, region_to_server: Sequence[int]) -> None:
        server_count = len(self.servers)
        self._region_to_server: list[int] = list(region_to_server)
        self._regions_per_server: list[list[int]] = [[] for _ in range(server_count)]
        self._region_position: list[int] = [0] * len(self.regions)
        self._table_region_counts: list[list[int]] = [[0] * server_count for _ in self.tables]

        for r_idx, s_idx in enumerate(self._region_to_server):
            server_regions = self._regions_per_server[s_idx]
            self._region_position[r_idx] = len(server_regions)
            server_regions.append(r_idx)
            self._table_region_counts[self._region_table[r_idx]][s_idx] += 1

        self._region_counts: list[int] = [len(lst) for lst in self._regions_per_server]
        self._table_totals: list[int] = [sum(counts) for counts in self._table_region_counts]
        self._moved = sum(
            1 for r_idx, s_idx in enumerate(self._region_to_server) if s_idx != self._initial[r_idx]
        )
        self._history: list[tuple[Action, int]] = []

    def reset_to(self, region_to_server: Sequence[int]) -> None:
        """
        Reload the snapshot from a region -> server vector.

        Rebuilds every counter from scratch in O(regions) and clears the undo
        history. Used outside the search loop, e.g. to load the best state
        found.

        Raises:
            InvalidAssignmentError: If the vector does not fit this snapshot.
        """
        if len(region_to_server) != len(self.regions):
            raise InvalidAssignmentError(
                f"vector has {len(region_to_server)} entries, snapshot has {len(self.regions)} regions"
            )
        server_count = len(self.servers)
        for s_idx in region_to_server:
            if not 0 <= s_idx < server_count:
                raise InvalidAssignmentError(f"server index {s_idx} out of range")
        self._load(region_to_server)

    # ── Counters ──────────────────────────────────────────────────

    @property
    def server_count(self) -> int:
        return len(self.servers)

    @property
    def table_count(self) -> int:
        return len(self.tables)

    @property
    def total_regions(self) -> int:
        return len(self.regions)

    @property
    def average(self) -> float:
        """Mean number of regions per server (0 for an empty cluster)."""
        if not self.servers:
            return 0.0
        return len(self.regions) / len(self.servers)

    @property
    def moved_regions(self) -> int:
        """Number of regions not on the server they started the run on."""
        return self._moved

    @property
    def region_counts(self) -> Sequence[int]:
        """Per-server region counts. Read only."""
        return self._region_counts

    def region_count(self, server: int) -> int:
        return self._region_counts[server]

    def table_region_count(self, table: int, server: int) -> int:
        return self._table_region_counts[table][server]

    def table_region_counts(self, table: int) -> Sequence[int]:
        """Per-server region counts of one table. Read only."""
        return self._table_region_counts[table]

    def table_total(self, table: int) -> int:
        return self._table_totals[table]

    def region_table(self, region: int) -> int:
        return self._region_table[region]

    def server_of(self, region: int) -> int:
        return self._region_to_server[region]

    def initial_server_of(self, region: int) -> int:
        return self._initial[region]

    def regions_on(self, server: int) -> Sequence[int]:
        """Region indices currently on a server, in list order. Read only."""
        return self._regions_per_server[server]

    def load_bounds(self) -> tuple[int, int]:
        """Return (floor(average), ceil(average))."""
        if not self.servers:
            return 0, 0
        total = len(self.regions)
        count = len(self.servers)
        return total // count, -(-total // count)

    def is_count_balanced(self) -> bool:
        """True if every server holds floor(average) or ceil(average) regions."""
        low, high = self.load_bounds()
        return all(low <= count <= high for count in self._region_counts)

    def counters(self) -> dict[str, Any]:
        """
        Copy of every tracked counter.

        Two snapshots in the same state return equal dicts, which makes this
        the reference for checking that an undo restored everything.
        """
        return {
            "region_to_server": tuple(self._region_to_server),
            "regions_per_server": tuple(tuple(lst) for lst in self._regions_per_server),
            "region_position": tuple(self._region_position),
            "region_counts": tuple(self._region_counts),
            "table_region_counts": tuple(tuple(c) for c in self._table_region_counts),
            "moved_regions": self._moved,
        }

    # ── Assignment views ──────────────────────────────────────────

    @property
    def initial_vector(self) -> tuple[int, ...]:
        return self._initial

    def assignment_vector(self) -> tuple[int, ...]:
        """Immutable copy of the current region -> server index vector."""
        return tuple(self._region_to_server)

    def to_assignment(self, region_to_server: Sequence[int] | None = None) -> dict[ServerName, list[RegionInfo]]:
        """
        Render a state as ServerName -> [RegionInfo].

        Args:
            region_to_server: Vector to render. Defaults to the current state,
                in which case each server's list follows the snapshot's order.
        """
        if region_to_server is None:
            return {
                server: [self.regions[r] for r in self._regions_per_server[s_idx]]
                for s_idx, server in enumerate(self.servers)
            }
        result: dict[ServerName, list[RegionInfo]] = {server: [] for server in self.servers}
        for r_idx, s_idx in enumerate(region_to_server):
            result[self.servers[s_idx]].append(self.regions[r_idx])
        return result

    # ── Mutation ──────────────────────────────────────────────────

    def apply_action(self, action: Action) -> None:
        """
        Apply a move or swap and record it for undo.

        Raises:
            InvalidActionError: If the action does not match the current
                state (region not on the stated server, same source and
                destination, index out of range).
        """
        if isinstance(action, MoveRegionAction):
            self._check_placement(action, action.region, action.source)
            self._check_server(action, action.destination)
            if action.source == action.destination:
                raise InvalidActionError(action, "source and destination are the same server")
            position = self._detach(action.region)
            self._attach(action.region, action.destination)
            self._history.append((action, position))
        elif isinstance(action, SwapRegionsAction):
            self._check_placement(action, action.region, action.source)
            self._check_placement(action, action.other_region, action.destination)
            if action.source == action.destination:
                raise InvalidActionError(action, "both regions are on the same server")
            self._exchange(action.region, action.other_region)
            self._history.append((action, -1))
        else:
            raise InvalidActionError(action, "unknown action type")

    def undo_last_action(self) -> Action:
        """
        Revert the most recently applied, not yet committed action.

        Returns:
            The action that was undone.

        Raises:
            InvalidActionError: If there is nothing to undo.
        """
        if not self._history:
            raise InvalidActionError(None, "No action to undo")
        action, position = self._history.pop()
        if isinstance(action, MoveRegionAction):
            self._detach(action.region)
            self._attach(action.region, action.source, position)
        else:
            self._exchange(action.region, action.other_region)
        return action

    def commit(self) -> None:
        """Forget the undo history. Called once an action is accepted."""
        self._history.clear()

    def _check_server(self, action: Action, server: int) -> None:
        if not 0 <= server < len(self.servers):
            raise InvalidActionError(action, f"server index {server} out of range")

    def _check_placement(self, action: Action, region: int, server: int) -> None:
        if not 0 <= region < len(self.regions):
            raise InvalidActionError(action, f"region index {region} out of range")
        if self._region_to_server[region] != server:
            raise InvalidActionError(
                action,
                f"region {region} is on server {self._region_to_server[region]}, not {server}",
            )

    def _set_server(self, region: int, server: int) -> None:
        initial = self._initial[region]
        was_moved = self._region_to_server[region] != initial
        self._region_to_server[region] = server
        self._moved += (server != initial) - was_moved

    def _detach(self, region: int) -> int:
        """Remove a region from its server list by swapping in the last entry."""
        server = self._region_to_server[region]
        server_regions = self._regions_per_server[server]
        position = self._region_position[region]
        last = server_regions.pop()
        if last != region:
            server_regions[position] = last
            self._region_position[last] = position
        self._region_counts[server] -= 1
        self._table_region_counts[self._region_table[region]][server] -= 1
        return position

    def _attach(self, region: int, server: int, position: int | None = None) -> None:
        """Add a region to a server list, at the end or back at a former position."""
        server_regions = self._regions_per_server[server]
        if position is None or position == len(server_regions):
            self._region_position[region] = len(server_regions)
            server_regions.append(region)
        else:
            displaced = server_regions[position]
            self._region_position[displaced] = len(server_regions)
            server_regions.append(displaced)
            server_regions[position] = region
            self._region_position[region] = position
        self._region_counts[server] += 1
        self._table_region_counts[self._region_table[region]][server] += 1
        self._set_server(region, server)

    def _exchange(self, region: int, other_region: int) -> None:
        server = self._region_to_server[region]
        other_server = self._region_to_server[other_region]
        position = self._region_position[region]
        other_position = self._region_position[other_region]

        self._regions_per_server[server][position] = other_region
        self._regions_per_server[other_server][other_position] = region
        self._region_position[region] = other_position
        self._region_position[other_region] = position

        table = self._region_table[region]
        other_table = self._region_table[other_region]
        if table != other_table:
            self._table_region_counts[table][server] -= 1
            self._table_region_counts[table][other_server] += 1
            self._table_region_counts[other_table][other_server] -= 1
            self._table_region_counts[other_table][server] += 1

        self._set_server(region, other_server)
        self._set_server(other_region, server)
