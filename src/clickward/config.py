"""Deployment configuration and port allocation."""

import os
from dataclasses import dataclass, field, fields
from enum import StrEnum
from pathlib import Path

from clickward.exceptions import TopologyError
from clickward.topology import NodeKind

# Everything lives in a subdirectory of the user path for easy cleanup
DEPLOYMENT_DIR = "deployment"

# Always directly below <path>/deployment
METADATA_FILENAME = "clickward-metadata.json"

KEEPER_CONFIG_FILENAME = "keeper-config.xml"
KEEPER_PIDFILE = "keeper.pid"
SERVER_CONFIG_FILENAME = "clickhouse-config.xml"
SERVER_PIDFILE = "clickhouse.pid"

CLICKHOUSE_BIN_ENV = "CLICKWARD_CLICKHOUSE_BIN"

MAX_PORT = 65535


class ServiceKind(StrEnum):
    """A logical service with its own base port."""

    KEEPER = "keeper"
    RAFT = "raft"
    CLICKHOUSE_TCP = "clickhouse_tcp"
    CLICKHOUSE_HTTP = "clickhouse_http"
    CLICKHOUSE_INTERSERVER_HTTP = "clickhouse_interserver_http"


@dataclass(frozen=True)
class PortAllocation:
    """Base port per service; node ``id`` listens on ``base + id``."""

    keeper: int = 20000
    raft: int = 21000
    clickhouse_tcp: int = 22000
    clickhouse_http: int = 23000
    clickhouse_interserver_http: int = 24000

    @property
    def spacing(self) -> int:
        """Smallest gap between two bases; ids must stay below it."""
        bases = sorted(getattr(self, f.name) for f in fields(self))
        return min(b - a for a, b in zip(bases, bases[1:], strict=False))

    def port(self, service: ServiceKind, node_id: int) -> int:
        """Get the port for ``node_id`` providing ``service``.

        Raises:
            TopologyError: If the id would run into the next base or past
                the last valid port.
        """
        if node_id < 0 or node_id >= self.spacing:
            raise TopologyError(
                f"Node id {node_id} outside supported range 0..{self.spacing - 1}"
            )
        port = getattr(self, service.value) + node_id
        if port > MAX_PORT:
            raise TopologyError(f"Port {port} for {service} node {node_id} exceeds {MAX_PORT}")
        return port


DEFAULT_BASE_PORTS = PortAllocation()


def default_clickhouse_binary() -> str:
    return os.environ.get(CLICKHOUSE_BIN_ENV, "clickhouse")


@dataclass(frozen=True)
class DeploymentConfig:
    """Where a local test deployment lives and how its nodes are addressed.

    Args:
        root: User supplied path; everything is written below
            ``root/deployment``.
        base_ports: Base port table for every service.
        listen_host: Loopback address every node listens on.
        cluster_name: Name of the replicated cluster and its macro.
        secret: Inter-server secret for ``remote_servers``.
        clickhouse_binary: Path or name of the ``clickhouse`` executable.
    """

    root: Path
    base_ports: PortAllocation = DEFAULT_BASE_PORTS
    listen_host: str = "::1"
    cluster_name: str = "test_cluster"
    secret: str = "some-unique-value"
    clickhouse_binary: str = field(default_factory=default_clickhouse_binary)

    @property
    def path(self) -> Path:
        """The deployment directory."""
        return Path(self.root) / DEPLOYMENT_DIR

    @property
    def metadata_path(self) -> Path:
        return self.path / METADATA_FILENAME

    def node_dir(self, kind: NodeKind, node_id: int) -> Path:
        prefix = "keeper" if kind is NodeKind.KEEPER else "clickhouse"
        return self.path / f"{prefix}-{node_id}"

    def config_file(self, kind: NodeKind, node_id: int) -> Path:
        name = KEEPER_CONFIG_FILENAME if kind is NodeKind.KEEPER else SERVER_CONFIG_FILENAME
        return self.node_dir(kind, node_id) / name

    def pidfile(self, kind: NodeKind, node_id: int) -> Path:
        name = KEEPER_PIDFILE if kind is NodeKind.KEEPER else SERVER_PIDFILE
        return self.node_dir(kind, node_id) / name
