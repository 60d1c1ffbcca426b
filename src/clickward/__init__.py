"""Local ClickHouse keeper and server cluster provisioning."""

from pathlib import Path

from clickward.config import (
    DEFAULT_BASE_PORTS,
    DeploymentConfig,
    PortAllocation,
    ServiceKind,
    default_clickhouse_binary,
)
from clickward.deployment import Deployment
from clickward.exceptions import (
    ClickwardError,
    LifecycleError,
    NotFoundError,
    PersistenceError,
    TopologyError,
)
from clickward.lifecycle import NodeLifecycle, ProcessLifecycle
from clickward.metadata_store import FileMetadataStore, MemoryMetadataStore, MetadataStore
from clickward.projection import project_keeper_view, project_server_view
from clickward.topology import IdAllocator, NodeKind, Topology

__all__ = [
    "open_deployment",
    "Deployment",
    "DeploymentConfig",
    "PortAllocation",
    "ServiceKind",
    "DEFAULT_BASE_PORTS",
    "Topology",
    "IdAllocator",
    "NodeKind",
    "project_server_view",
    "project_keeper_view",
    "MetadataStore",
    "MemoryMetadataStore",
    "FileMetadataStore",
    "NodeLifecycle",
    "ProcessLifecycle",
    "ClickwardError",
    "NotFoundError",
    "TopologyError",
    "PersistenceError",
    "LifecycleError",
]

__version__ = "0.1.0"


def open_deployment(
    path: str,
    *,
    base_ports: PortAllocation = DEFAULT_BASE_PORTS,
    clickhouse_binary: str | None = None,
) -> Deployment:
    """Open a deployment rooted at a path.

    Args:
        path: Root path; the deployment lives in ``path/deployment``
        base_ports: Base port table for every service
        clickhouse_binary: The clickhouse executable; defaults to
            $CLICKWARD_CLICKHOUSE_BIN or "clickhouse"

    Returns:
        A Deployment backed by the metadata file and local processes
    """
    config = DeploymentConfig(
        Path(path),
        base_ports=base_ports,
        clickhouse_binary=clickhouse_binary or default_clickhouse_binary(),
    )
    return Deployment.from_config(config)
