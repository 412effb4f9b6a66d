"""Locality lookup keyed by snapshot indices."""

from collections.abc import Mapping

from balancer_core.cluster.snapshot import ClusterSnapshot
from balancer_protocols import RegionInfo, ServerName

Locality = Mapping[RegionInfo, Mapping[ServerName, float]]
"""Region -> server -> fraction of the region's data stored locally on that server."""


def index_locality(snapshot: ClusterSnapshot, locality: Locality) -> list[dict[int, float]]:
    """
    Translate a locality map to region index -> server index -> fraction.

    Regions without data and servers that are not part of the snapshot are
    dropped; their locality counts as 0.
    """
    indexed: list[dict[int, float]] = []
    for region in snapshot.regions:
        per_server = locality.get(region, {})
        indexed.append(
            {
                snapshot.server_index[server]: fraction
                for server, fraction in per_server.items()
                if server in snapshot.server_index
            }
        )
    return indexed
