"""
Cluster model for one balancing run.

Exports:
    ClusterSnapshot: Mutable assignment with O(1) apply/undo and tracked counters
    MoveRegionAction: Move one region to another server
    SwapRegionsAction: Exchange two regions between two servers
    Action: Union of the action types
"""

from balancer_core.cluster.actions import Action, MoveRegionAction, SwapRegionsAction
from balancer_core.cluster.snapshot import ClusterSnapshot

__all__ = ["Action", "ClusterSnapshot", "MoveRegionAction", "SwapRegionsAction"]
