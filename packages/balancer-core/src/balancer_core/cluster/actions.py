"""
Snapshot mutations proposed by generators and applied by the optimizer.

Actions refer to regions and servers by their snapshot indices. Every action
has an inverse: applying the inverse to the post-action state gives back the
pre-action counters, which is how cost functions follow an undo.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class MoveRegionAction:
    """
    Move one region from its current server to another.

    Attributes:
        region: Region index in the snapshot.
        source: Server index the region is on before the move.
        destination: Server index the region is on after the move.
    """

    region: int
    source: int
    destination: int

    def inverse(self) -> "MoveRegionAction":
        return MoveRegionAction(self.region, self.destination, self.source)


@dataclass(frozen=True)
class SwapRegionsAction:
    """
    Exchange two regions between two servers.

    Both servers keep their region count; only which regions (and therefore
    which tables) they hold changes.

    Attributes:
        region: Region index that starts on source and ends on destination.
        source: Server index of region before the swap.
        other_region: Region index that starts on destination and ends on source.
        destination: Server index of other_region before the swap.
    """

    region: int
    source: int
    other_region: int
    destination: int

    def inverse(self) -> "SwapRegionsAction":
        return SwapRegionsAction(self.region, self.destination, self.other_region, self.source)


Action = MoveRegionAction | SwapRegionsAction
