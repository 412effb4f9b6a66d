"""
Cost function protocol.

A cost function scores one balance dimension of a cluster snapshot as a
value in [0, 1], where 0 means perfectly balanced along that dimension and 1
means the worst possible arrangement. The optimizer sums the scores of all
enabled functions, each scaled by its configured weight.
"""

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from balancer_core.cluster import ClusterSnapshot


@runtime_checkable
class CostFunctionProtocol(Protocol):
    """
    Protocol for pluggable cost functions.

    Implementations may cache partial sums in prepare() and keep them up to
    date in score_delta(), so a single action can be re-scored without a full
    rescan. Functions without an efficient incremental form simply rescan.

    Attributes:
        name: Registry name of the function (e.g., "region_count_skew").
        weight: Multiplier applied to the score in the total cost.
            A weight of 0 disables the function.
    """

    name: str
    weight: float

    def prepare(self, snapshot: "ClusterSnapshot") -> None:
        """
        Initialize cached state from a snapshot.

        Called once before a search and again whenever the snapshot is
        reloaded outside of apply/undo.
        """
        ...

    def score(self, snapshot: "ClusterSnapshot") -> float:
        """
        Score the snapshot from scratch.

        Must not modify cached state.

        Returns:
            Cost in [0, 1].
        """
        ...

    def score_delta(self, snapshot: "ClusterSnapshot", last_action: Any) -> float:
        """
        Score the snapshot after last_action has been applied to it.

        Also called with last_action.inverse() after an action is undone,
        so that cached state follows the snapshot back.

        Returns:
            Cost in [0, 1].
        """
        ...
