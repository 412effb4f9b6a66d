"""
Cluster-state documents.

A cluster-state document describes the live servers, the regions open on
each of them, and optionally per-region load and locality. Documents are
YAML (or JSON) and are validated with Pydantic before being converted to the
plain types the balancer works with.

Example document:

    ```yaml
    servers:
      - host: rs1.example.com
        port: 16020
        start_code: 1700000000000
        regions:
          - table: users
            start_key: ""
            end_key: "m"
            region_id: 1
            load: {read_requests: 120, write_requests: 30}
            locality: {"rs1.example.com,16020,1700000000000": 1.0}
      - host: rs2.example.com
        port: 16020
        regions: []
    ```
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field

from balancer_core.exceptions import ConfigError, InvalidAssignmentError
from balancer_protocols import RegionInfo, RegionLoad, ServerName


class RegionLoadDocument(BaseModel):
    model_config = ConfigDict(extra="forbid")

    read_requests: int = Field(default=0, ge=0)
    write_requests: int = Field(default=0, ge=0)
    memstore_size_mb: int = Field(default=0, ge=0)
    storefile_size_mb: int = Field(default=0, ge=0)


class RegionDocument(BaseModel):
    """
    One region as listed under its server.

    Attributes:
        table: Table the region belongs to
        start_key: First row key (inclusive), as text
        end_key: Last row key (exclusive), as text; empty for the last region
        region_id: Region id, usually the creation timestamp
        load: Optional load metrics
        locality: Optional "host,port[,start_code]" -> local data fraction
    """

    model_config = ConfigDict(extra="forbid")

    table: str = Field(..., min_length=1)
    start_key: str = ""
    end_key: str = ""
    region_id: int = Field(default=0, ge=0)
    load: RegionLoadDocument | None = None
    locality: dict[str, float] = Field(default_factory=dict)

    def to_region_info(self) -> RegionInfo:
        return RegionInfo(
            table=self.table,
            start_key=self.start_key.encode("utf-8"),
            end_key=self.end_key.encode("utf-8"),
            region_id=self.region_id,
        )


class ServerDocument(BaseModel):
    model_config = ConfigDict(extra="forbid")

    host: str = Field(..., min_length=1)
    port: int = Field(..., ge=0, le=65535)
    start_code: int = Field(default=0, ge=0)
    regions: list[RegionDocument] = Field(default_factory=list)

    def to_server_name(self) -> ServerName:
        return ServerName(self.host, self.port, self.start_code)


class ClusterDocument(BaseModel):
    model_config = ConfigDict(extra="forbid")

    servers: list[ServerDocument] = Field(default_factory=list)


@dataclass
class ClusterState:
    """
    Balancer input decoded from a cluster-state document.

    Attributes:
        assignment: Server -> regions, in document order
        servers: Live servers, in document order
        region_loads: Load of each region that has load data
        locality: Locality of each region that has locality data
    """

    assignment: dict[ServerName, list[RegionInfo]]
    servers: list[ServerName]
    region_loads: dict[RegionInfo, RegionLoad] = field(default_factory=dict)
    locality: dict[RegionInfo, dict[ServerName, float]] = field(default_factory=dict)


def parse_cluster_state(data: Any) -> ClusterState:
    """
    Validate and decode a cluster-state document.

    Raises:
        pydantic.ValidationError: If the data does not match the schema
        InvalidAssignmentError: If a server is listed twice or locality
            names a malformed or unknown server
    """
    document = ClusterDocument.model_validate(data)

    servers: list[ServerName] = []
    assignment: dict[ServerName, list[RegionInfo]] = {}
    for server_doc in document.servers:
        server = server_doc.to_server_name()
        if server in assignment:
            raise InvalidAssignmentError(f"server {server} is listed more than once")
        servers.append(server)
        assignment[server] = [region_doc.to_region_info() for region_doc in server_doc.regions]

    known = set(servers)
    region_loads: dict[RegionInfo, RegionLoad] = {}
    locality: dict[RegionInfo, dict[ServerName, float]] = {}
    for server_doc in document.servers:
        for region_doc in server_doc.regions:
            region = region_doc.to_region_info()
            if region_doc.load is not None:
                region_loads[region] = RegionLoad(**region_doc.load.model_dump())
            if region_doc.locality:
                per_server: dict[ServerName, float] = {}
                for name, fraction in region_doc.locality.items():
                    try:
                        server = ServerName.parse(name)
                    except ValueError as e:
                        raise InvalidAssignmentError(f"locality of region {region}: {e}") from e
                    if server not in known:
                        raise InvalidAssignmentError(
                            f"locality of region {region} refers to unknown server {name}"
                        )
                    if not 0.0 <= fraction <= 1.0:
                        raise InvalidAssignmentError(
                            f"locality of region {region} on {name} is {fraction}, expected 0..1"
                        )
                    per_server[server] = fraction
                locality[region] = per_server

    return ClusterState(assignment=assignment, servers=servers, region_loads=region_loads, locality=locality)


def load_cluster_state(path: Path) -> ClusterState:
    """
    Load a cluster-state document from a YAML or JSON file.

    Raises:
        ConfigError: If the file cannot be read or parsed
        pydantic.ValidationError: If the content doesn't match the schema
        InvalidAssignmentError: If the document is inconsistent
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(path, str(e)) from e
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(path, "expected a mapping at the top level")
    return parse_cluster_state(data)
