"""Per-node configuration views computed from a topology.

Every view is rebuilt from scratch on each membership change rather than
patched, so two projections of the same topology are always equal.
"""

from dataclasses import dataclass

from clickward.config import DeploymentConfig, ServiceKind
from clickward.exceptions import TopologyError
from clickward.topology import Topology

# Replication uses a single shard
SHARD = 1


@dataclass(frozen=True)
class Address:
    """A host and port a node must be able to reach."""

    host: str
    port: int


@dataclass(frozen=True)
class Macros:
    shard: int
    replica: int
    cluster: str


@dataclass(frozen=True)
class RaftPeer:
    id: int
    hostname: str
    port: int


@dataclass(frozen=True)
class ServerConfigView:
    """Everything a server replica must know about the cluster."""

    server_id: int
    macros: Macros
    listen_host: str
    tcp_port: int
    http_port: int
    interserver_http_port: int
    secret: str
    replicas: tuple[Address, ...]
    keepers: tuple[Address, ...]


@dataclass(frozen=True)
class KeeperConfigView:
    """Everything a keeper must know about the ensemble."""

    server_id: int
    listen_host: str
    tcp_port: int
    raft_port: int
    raft_peers: tuple[RaftPeer, ...]


def _bracketed(host: str) -> str:
    # IPv6 literals must be bracketed in the zookeeper node list
    if ":" in host and not host.startswith("["):
        return f"[{host}]"
    return host


def project_server_view(
    topology: Topology, config: DeploymentConfig, this_id: int
) -> ServerConfigView:
    """Compute the configuration view of server ``this_id``.

    Raises:
        TopologyError: If ``this_id`` is not a live server.
    """
    if this_id not in topology.servers:
        raise TopologyError(f"Server {this_id} is not part of the cluster")

    ports = config.base_ports
    replicas = tuple(
        Address(config.listen_host, ports.port(ServiceKind.CLICKHOUSE_TCP, server_id))
        for server_id in topology.servers
    )
    keepers = tuple(
        Address(_bracketed(config.listen_host), ports.port(ServiceKind.KEEPER, keeper_id))
        for keeper_id in topology.keepers
    )
    return ServerConfigView(
        server_id=this_id,
        macros=Macros(shard=SHARD, replica=this_id, cluster=config.cluster_name),
        listen_host=config.listen_host,
        tcp_port=ports.port(ServiceKind.CLICKHOUSE_TCP, this_id),
        http_port=ports.port(ServiceKind.CLICKHOUSE_HTTP, this_id),
        interserver_http_port=ports.port(ServiceKind.CLICKHOUSE_INTERSERVER_HTTP, this_id),
        secret=config.secret,
        replicas=replicas,
        keepers=keepers,
    )


def project_keeper_view(
    topology: Topology, config: DeploymentConfig, this_id: int
) -> KeeperConfigView:
    """Compute the configuration view of keeper ``this_id``.

    The raft peer list includes the keeper itself.

    Raises:
        TopologyError: If ``this_id`` is not a live keeper.
    """
    if this_id not in topology.keepers:
        raise TopologyError(f"Keeper {this_id} is not part of the cluster")

    ports = config.base_ports
    peers = tuple(
        RaftPeer(
            id=keeper_id,
            hostname=config.listen_host,
            port=ports.port(ServiceKind.RAFT, keeper_id),
        )
        for keeper_id in topology.keepers
    )
    return KeeperConfigView(
        server_id=this_id,
        listen_host=config.listen_host,
        tcp_port=ports.port(ServiceKind.KEEPER, this_id),
        raft_port=ports.port(ServiceKind.RAFT, this_id),
        raft_peers=peers,
    )
