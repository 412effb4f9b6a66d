"""
Shared fixtures for balancer-core tests.

Mock clusters are described by their per-server region counts, e.g.
[2, 0, 1] is three servers holding two, zero and one regions.
"""

import pytest

from balancer_protocols import RegionInfo, ServerName

CLUSTER_STATE_MOCKS = [
    # 1 server
    [0],
    [1],
    [10],
    # 2 servers
    [0, 0],
    [2, 0],
    [2, 1],
    [2, 2],
    [2, 3],
    [2, 4],
    [1, 1],
    [0, 1],
    [10, 1],
    [514, 1432],
    [47, 53],
    # 3 servers
    [0, 1, 2],
    [1, 2, 3],
    [0, 2, 2],
    [0, 3, 0],
    [0, 4, 0],
    [20, 20, 0],
    # 4 servers
    [0, 1, 2, 3],
    [4, 0, 0, 0],
    [5, 0, 0, 0],
    [6, 6, 0, 0],
    [6, 2, 0, 0],
    [6, 1, 0, 0],
    [6, 0, 0, 0],
    [4, 4, 4, 7],
    [4, 4, 4, 8],
    [0, 0, 0, 7],
    # 5 servers
    [1, 1, 1, 1, 4],
    # more servers
    [1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11, 12, 13, 14, 15],
    [0, 0, 0, 0, 0, 0, 0, 0, 0, 10],
    [6, 6, 5, 6, 6, 6, 6, 6, 6, 1],
    [0, 0, 0, 0, 0, 0, 0, 0, 0, 54],
    [0, 0, 0, 0, 0, 0, 0, 0, 0, 55],
    [0, 0, 0, 0, 0, 0, 0, 0, 0, 56],
    [0, 0, 0, 0, 0, 0, 0, 0, 0, 16],
    [1, 1, 1, 1, 1, 1, 1, 1, 1, 8],
    [1, 1, 1, 1, 1, 1, 1, 1, 1, 9],
    [1, 1, 1, 1, 1, 1, 1, 1, 1, 10],
    [1, 1, 1, 1, 1, 1, 1, 1, 1, 123],
    [1, 1, 1, 1, 1, 1, 1, 1, 1, 155],
]


def build_cluster(counts, tables=3):
    """
    Assignment with len(counts) servers holding counts[i] regions each.

    Regions are numbered across the cluster and spread round robin over
    the given number of tables.
    """
    assignment = {}
    region_id = 0
    for idx, count in enumerate(counts):
        server = ServerName(f"server{idx}.example.com", 16020, 1000 + idx)
        regions = []
        for _ in range(count):
            regions.append(
                RegionInfo(
                    table=f"table{region_id % tables}",
                    start_key=f"{region_id:08d}".encode(),
                    end_key=f"{region_id + 1:08d}".encode(),
                    region_id=region_id,
                )
            )
            region_id += 1
        assignment[server] = regions
    return assignment


@pytest.fixture
def make_cluster():
    """Factory for mock assignments from per-server region counts."""
    return build_cluster


@pytest.fixture(params=CLUSTER_STATE_MOCKS, ids=lambda counts: "-".join(map(str, counts)))
def cluster_mock(request):
    """Each mock cluster in turn, as per-server region counts."""
    return request.param
