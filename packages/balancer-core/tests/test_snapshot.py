"""
Tests for ClusterSnapshot.

These tests verify the snapshot correctly:
- Indexes servers, regions and tables from the input assignment
- Rejects duplicate regions and unknown or missing servers
- Keeps every counter in sync under moves and swaps
- Restores counters and list order exactly on undo
- Renders and reloads assignment vectors
"""

import random

import pytest

from balancer_core.cluster import ClusterSnapshot, MoveRegionAction, SwapRegionsAction
from balancer_core.exceptions import (
    DuplicateAssignmentError,
    InvalidActionError,
    InvalidAssignmentError,
)
from balancer_core.search.generators import RandomRegionMoveGenerator, RandomRegionSwapGenerator
from balancer_protocols import RegionInfo, ServerName


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def servers():
    return [ServerName("rs1", 16020, 1), ServerName("rs2", 16020, 1), ServerName("rs3", 16020, 1)]


@pytest.fixture
def regions():
    """Two tables: 'a' with three regions, 'b' with two."""
    return [
        RegionInfo("a", b"", b"k", 1),
        RegionInfo("a", b"k", b"t", 2),
        RegionInfo("a", b"t", b"", 3),
        RegionInfo("b", b"", b"m", 4),
        RegionInfo("b", b"m", b"", 5),
    ]


@pytest.fixture
def snapshot(servers, regions):
    """rs1 holds a1 a2 b4, rs2 holds a3 b5, rs3 is empty."""
    assignment = {
        servers[0]: [regions[0], regions[1], regions[3]],
        servers[1]: [regions[2], regions[4]],
        servers[2]: [],
    }
    return ClusterSnapshot(assignment)


def _random_action(snapshot, rng):
    generators = [RandomRegionMoveGenerator(), RandomRegionSwapGenerator()]
    for _ in range(100):
        action = rng.choice(generators).generate(snapshot, rng)
        if action is not None:
            return action
    return None


# =============================================================================
# Construction
# =============================================================================


class TestSnapshotConstruction:
    """Tests for building a snapshot from an assignment."""

    def test_counts_follow_assignment(self, snapshot):
        """Region counts per server should match the input lists."""
        assert snapshot.server_count == 3
        assert snapshot.total_regions == 5
        assert list(snapshot.region_counts) == [3, 2, 0]
        assert snapshot.average == pytest.approx(5 / 3)

    def test_tables_indexed_in_order_of_first_appearance(self, snapshot):
        """Table indices should follow the order tables are first seen."""
        assert snapshot.tables == ["a", "b"]
        assert list(snapshot.table_region_counts(0)) == [2, 1, 0]
        assert list(snapshot.table_region_counts(1)) == [1, 1, 0]
        assert snapshot.table_total(0) == 3
        assert snapshot.table_total(1) == 2

    def test_region_order_follows_input_lists(self, snapshot, regions):
        """Regions should be indexed in the order they are listed per server."""
        assert snapshot.regions == [regions[0], regions[1], regions[3], regions[2], regions[4]]
        assert list(snapshot.regions_on(0)) == [0, 1, 2]
        assert list(snapshot.regions_on(1)) == [3, 4]

    def test_explicit_server_list_adds_empty_servers(self, servers, regions):
        """Servers only in the explicit list should exist with zero regions."""
        snap = ClusterSnapshot({servers[0]: regions}, servers=servers)
        assert snap.server_count == 3
        assert list(snap.region_counts) == [5, 0, 0]

    def test_duplicate_region_across_servers_rejected(self, servers, regions):
        """A region listed under two servers should raise DuplicateAssignmentError."""
        with pytest.raises(DuplicateAssignmentError) as exc_info:
            ClusterSnapshot({servers[0]: [regions[0]], servers[1]: [regions[0]]})
        assert exc_info.value.region == regions[0]
        assert exc_info.value.first_server == servers[0]
        assert exc_info.value.second_server == servers[1]

    def test_duplicate_region_on_one_server_rejected(self, servers, regions):
        """A region listed twice under one server should be rejected too."""
        with pytest.raises(DuplicateAssignmentError):
            ClusterSnapshot({servers[0]: [regions[0], regions[0]]})

    def test_regions_without_servers_rejected(self, servers, regions):
        """Regions with an empty live server list cannot be modelled."""
        with pytest.raises(InvalidAssignmentError):
            ClusterSnapshot({servers[0]: regions}, servers=[])

    def test_unknown_server_rejected(self, servers, regions):
        """An assignment key missing from the live server list should be rejected."""
        with pytest.raises(InvalidAssignmentError):
            ClusterSnapshot({servers[0]: regions}, servers=[servers[1], servers[2]])

    def test_server_listed_twice_rejected(self, servers, regions):
        """The explicit server list must not contain duplicates."""
        with pytest.raises(InvalidAssignmentError):
            ClusterSnapshot({servers[0]: regions}, servers=[servers[0], servers[0]])

    def test_empty_cluster(self):
        """No servers and no regions should be a valid, balanced snapshot."""
        snap = ClusterSnapshot({})
        assert snap.server_count == 0
        assert snap.total_regions == 0
        assert snap.average == 0.0
        assert snap.is_count_balanced()


# =============================================================================
# Actions
# =============================================================================


class TestApplyAndUndo:
    """Tests for apply_action and undo_last_action."""

    def test_move_updates_counters(self, snapshot):
        """A move should update region, table and moved counts."""
        snapshot.apply_action(MoveRegionAction(region=0, source=0, destination=2))

        assert list(snapshot.region_counts) == [2, 2, 1]
        assert snapshot.table_region_count(0, 0) == 1
        assert snapshot.table_region_count(0, 2) == 1
        assert snapshot.server_of(0) == 2
        assert snapshot.moved_regions == 1
        assert 0 in snapshot.regions_on(2)

    def test_move_back_clears_moved_count(self, snapshot):
        """Returning a region to its original server should not count as moved."""
        snapshot.apply_action(MoveRegionAction(0, 0, 2))
        snapshot.commit()
        snapshot.apply_action(MoveRegionAction(0, 2, 0))
        assert snapshot.moved_regions == 0

    def test_swap_keeps_region_counts(self, snapshot):
        """A swap should exchange regions without changing per-server counts."""
        # region 0 is table a on rs1, region 4 is table b on rs2
        snapshot.apply_action(SwapRegionsAction(region=0, source=0, other_region=4, destination=1))

        assert list(snapshot.region_counts) == [3, 2, 0]
        assert snapshot.server_of(0) == 1
        assert snapshot.server_of(4) == 0
        assert list(snapshot.table_region_counts(0)) == [1, 2, 0]
        assert list(snapshot.table_region_counts(1)) == [2, 0, 0]
        assert snapshot.moved_regions == 2

    def test_undo_move_restores_everything(self, snapshot):
        """Undoing a move should restore every counter and the list order."""
        before = snapshot.counters()
        snapshot.apply_action(MoveRegionAction(0, 0, 1))
        undone = snapshot.undo_last_action()

        assert undone == MoveRegionAction(0, 0, 1)
        assert snapshot.counters() == before

    def test_undo_swap_restores_everything(self, snapshot):
        """Undoing a swap should restore every counter and the list order."""
        before = snapshot.counters()
        snapshot.apply_action(SwapRegionsAction(1, 0, 3, 1))
        snapshot.undo_last_action()
        assert snapshot.counters() == before

    def test_nested_undo_in_reverse_order(self, snapshot):
        """Several applied actions should undo back to the original state."""
        before = snapshot.counters()
        snapshot.apply_action(MoveRegionAction(0, 0, 2))
        snapshot.apply_action(MoveRegionAction(1, 0, 2))
        snapshot.apply_action(SwapRegionsAction(0, 2, 3, 1))
        for _ in range(3):
            snapshot.undo_last_action()
        assert snapshot.counters() == before

    def test_random_interleavings_are_reversible(self, make_cluster):
        """Random applies followed by undoing them all should be a no-op."""
        rng = random.Random(1234)
        snap = ClusterSnapshot(make_cluster([7, 0, 3, 12, 1], tables=4))
        before = snap.counters()

        applied = 0
        for _ in range(500):
            if applied and rng.random() < 0.4:
                snap.undo_last_action()
                applied -= 1
                continue
            action = _random_action(snap, rng)
            assert action is not None
            snap.apply_action(action)
            applied += 1
        while applied:
            snap.undo_last_action()
            applied -= 1

        assert snap.counters() == before

    def test_inverse_action_restores_counts(self, snapshot):
        """Applying the inverse of an action should restore the counts."""
        before = snapshot.counters()
        action = SwapRegionsAction(0, 0, 4, 1)
        snapshot.apply_action(action)
        snapshot.commit()
        snapshot.apply_action(action.inverse())
        after = snapshot.counters()
        assert after["region_counts"] == before["region_counts"]
        assert after["table_region_counts"] == before["table_region_counts"]
        assert after["region_to_server"] == before["region_to_server"]
        assert after["moved_regions"] == 0

    def test_undo_without_history_raises(self, snapshot):
        """undo_last_action with nothing applied should raise InvalidActionError."""
        with pytest.raises(InvalidActionError):
            snapshot.undo_last_action()

    def test_commit_clears_history(self, snapshot):
        """After commit the applied action can no longer be undone."""
        snapshot.apply_action(MoveRegionAction(0, 0, 1))
        snapshot.commit()
        with pytest.raises(InvalidActionError):
            snapshot.undo_last_action()

    def test_move_from_wrong_server_rejected(self, snapshot):
        """A move whose source is not the region's server should be rejected."""
        before = snapshot.counters()
        with pytest.raises(InvalidActionError):
            snapshot.apply_action(MoveRegionAction(0, 1, 2))
        assert snapshot.counters() == before

    def test_move_to_same_server_rejected(self, snapshot):
        with pytest.raises(InvalidActionError):
            snapshot.apply_action(MoveRegionAction(0, 0, 0))

    def test_move_to_unknown_server_rejected(self, snapshot):
        with pytest.raises(InvalidActionError):
            snapshot.apply_action(MoveRegionAction(0, 0, 7))

    def test_swap_on_same_server_rejected(self, snapshot):
        """Both regions of a swap on one server should be rejected."""
        with pytest.raises(InvalidActionError):
            snapshot.apply_action(SwapRegionsAction(0, 0, 1, 0))


# =============================================================================
# Views
# =============================================================================


class TestAssignmentViews:
    """Tests for vectors, rendering and balance bounds."""

    def test_load_bounds(self, snapshot):
        """Bounds should be floor and ceil of the average."""
        assert snapshot.load_bounds() == (1, 2)
        assert not snapshot.is_count_balanced()

    def test_balanced_after_move(self, snapshot):
        snapshot.apply_action(MoveRegionAction(0, 0, 2))
        assert snapshot.is_count_balanced()

    def test_to_assignment_round_trips(self, servers, regions, snapshot):
        """Rendering the unchanged snapshot should give back the input."""
        rendered = snapshot.to_assignment()
        assert rendered == {
            servers[0]: [regions[0], regions[1], regions[3]],
            servers[1]: [regions[2], regions[4]],
            servers[2]: [],
        }

    def test_to_assignment_of_vector(self, servers, regions, snapshot):
        """Rendering a vector should place each region on its server."""
        rendered = snapshot.to_assignment((2, 0, 0, 1, 1))
        assert rendered[servers[2]] == [regions[0]]
        assert rendered[servers[0]] == [regions[1], regions[3]]

    def test_reset_to_reloads_counters(self, snapshot):
        """reset_to should rebuild counters and track moves against the original."""
        snapshot.reset_to((2, 0, 0, 1, 1))
        assert list(snapshot.region_counts) == [2, 2, 1]
        assert snapshot.moved_regions == 1
        assert snapshot.initial_vector == (0, 0, 0, 1, 1)
        with pytest.raises(InvalidActionError):
            snapshot.undo_last_action()

    def test_reset_to_rejects_bad_vectors(self, snapshot):
        with pytest.raises(InvalidAssignmentError):
            snapshot.reset_to((0, 0))
        with pytest.raises(InvalidAssignmentError):
            snapshot.reset_to((0, 0, 0, 1, 9))

    def test_assignment_vector_is_a_copy(self, snapshot):
        """The vector should not change when the snapshot does."""
        vector = snapshot.assignment_vector()
        snapshot.apply_action(MoveRegionAction(0, 0, 2))
        assert vector == (0, 0, 0, 1, 1)
        assert snapshot.assignment_vector() == (2, 0, 0, 1, 1)
