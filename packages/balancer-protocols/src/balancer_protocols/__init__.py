"""
Protocol definitions for the stochastic region balancer.

This package provides the identities and Protocol definitions shared by the
balancer packages. It has zero dependencies on other balancer-* packages.

Key protocols:
- CostFunctionProtocol: Interface for pluggable balance cost functions
- ActionGeneratorProtocol: Interface for snapshot mutation proposers

Key types:
- ServerName: Identity of a storage server (host, port, start code)
- RegionInfo: Identity of a region (table + key range)
- RegionLoad: Integer load metrics for one region
- RegionPlan: A single move instruction
- TableName: Type alias for table identifiers
"""

from balancer_protocols.cost import CostFunctionProtocol
from balancer_protocols.generator import ActionGeneratorProtocol
from balancer_protocols.types import RegionInfo, RegionLoad, RegionPlan, ServerName, TableName

__all__ = [
    # Protocols
    "CostFunctionProtocol",
    "ActionGeneratorProtocol",
    # Data types
    "ServerName",
    "RegionInfo",
    "RegionLoad",
    "RegionPlan",
    "TableName",
]
