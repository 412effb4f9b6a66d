"""
Action generator protocol.

An action generator proposes a single local mutation of a cluster snapshot:
move one region, or swap two regions between two servers.
"""

import random
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from balancer_core.cluster import ClusterSnapshot


@runtime_checkable
class ActionGeneratorProtocol(Protocol):
    """
    Protocol for action generators.

    Generators only propose; they never mutate the snapshot. The optimizer
    applies the proposal, scores it and keeps or undoes it.

    Attributes:
        name: Registry name of the generator (e.g., "random_move").
    """

    name: str

    def generate(self, snapshot: "ClusterSnapshot", rng: random.Random) -> Any | None:
        """
        Propose one action for the snapshot.

        Args:
            snapshot: Current working snapshot (read only).
            rng: Random source owned by the optimization run.

        Returns:
            A move or swap action, or None when the generator has nothing
            applicable to propose for this snapshot.
        """
        ...
