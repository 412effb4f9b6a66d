"""
Generic types shared by the balancer packages.

This module defines the identities the balancer works with: servers, regions,
per-region load metrics and the move instructions a balancing run produces.
They are plain value objects used as dictionary keys throughout the core, so
all of them are frozen dataclasses.
"""

import hashlib
from dataclasses import dataclass

# Type aliases for common patterns
TableName = str
"""Name of the table a region belongs to."""


@dataclass(frozen=True, order=True)
class ServerName:
    """
    Identity of a storage server.

    Attributes:
        host: Hostname the server listens on.
        port: RPC port.
        start_code: Startup token. Two processes that reuse the same
            host:port across a restart get different start codes, so a
            restarted server is a different ServerName.
    """

    host: str
    port: int
    start_code: int = 0

    @classmethod
    def parse(cls, text: str) -> "ServerName":
        """
        Parse the "host,port,start_code" form produced by str().

        The start code may be omitted ("host,port").

        Raises:
            ValueError: If the text is not in the expected form.
        """
        parts = [p.strip() for p in text.split(",")]
        if len(parts) not in (2, 3) or not parts[0]:
            raise ValueError(f"Invalid server name '{text}', expected host,port[,start_code]")
        start_code = int(parts[2]) if len(parts) == 3 else 0
        return cls(host=parts[0], port=int(parts[1]), start_code=start_code)

    def __str__(self) -> str:
        return f"{self.host},{self.port},{self.start_code}"


@dataclass(frozen=True)
class RegionInfo:
    """
    Identity of a region (a contiguous key range of one table).

    Two RegionInfo values are the same region if and only if they are equal.

    Attributes:
        table: Table the region belongs to.
        start_key: First key of the range (inclusive). Empty means "table start".
        end_key: End of the range (exclusive). Empty means "table end".
        region_id: Creation timestamp or sequence id, disambiguates regions
            that were split from the same parent and share a start key.
    """

    table: TableName
    start_key: bytes = b""
    end_key: bytes = b""
    region_id: int = 0

    @property
    def region_name(self) -> str:
        """Full region name in the conventional "table,start_key,id" form."""
        return f"{self.table},{self.start_key.decode('utf-8', 'replace')},{self.region_id}"

    @property
    def encoded_name(self) -> str:
        """Stable hex digest of the region name, handy for logs and plans."""
        digest = hashlib.md5(
            self.table.encode("utf-8")
            + b","
            + self.start_key
            + b","
            + str(self.region_id).encode("ascii")
        )
        return digest.hexdigest()

    def __str__(self) -> str:
        return f"{self.table}.{self.encoded_name[:8]}"


@dataclass(frozen=True)
class RegionLoad:
    """
    Load metrics reported for a single region.

    All metrics are integers so per-server sums stay exact while the
    balancer adds and removes regions from them.

    Attributes:
        read_requests: Read requests served since the region opened.
        write_requests: Write requests served since the region opened.
        memstore_size_mb: Current memstore size in megabytes.
        storefile_size_mb: Total size of the region's store files in megabytes.
    """

    read_requests: int = 0
    write_requests: int = 0
    memstore_size_mb: int = 0
    storefile_size_mb: int = 0


@dataclass(frozen=True)
class RegionPlan:
    """
    One move instruction: take a region off one server and open it on another.

    Attributes:
        region: The region to move.
        source: Server currently hosting the region.
        destination: Server that should host the region afterwards.
    """

    region: RegionInfo
    source: ServerName
    destination: ServerName

    def __str__(self) -> str:
        return f"{self.region} {self.source} -> {self.destination}"
