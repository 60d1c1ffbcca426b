"""Pytest configuration for clickward tests."""

from pathlib import Path

import pytest

from clickward.config import DeploymentConfig, PortAllocation
from clickward.deployment import Deployment
from clickward.exceptions import LifecycleError
from clickward.lifecycle import NodeLifecycle
from clickward.metadata_store import FileMetadataStore
from clickward.topology import NodeKind


class RecordingLifecycle(NodeLifecycle):
    """Records start/stop calls instead of touching processes.

    Each event captures which configuration files existed at the time of the
    call and the keeper ids the rendered configurations referenced, so tests
    can check what peers had been told when a node was started or stopped.
    """

    def __init__(self, config: DeploymentConfig) -> None:
        self.config = config
        self.events: list[tuple[str, NodeKind, int]] = []
        self.snapshots: list[dict[Path, str]] = []
        self.fail_on: set[tuple[str, NodeKind, int]] = set()

    def _record(self, action: str, kind: NodeKind, node_id: int) -> None:
        self.events.append((action, kind, node_id))
        self.snapshots.append(
            {path: path.read_text() for path in sorted(self.config.path.glob("*/*.xml"))}
        )
        if (action, kind, node_id) in self.fail_on:
            raise LifecycleError(kind, node_id, f"failed to {action}")

    async def start(self, kind: NodeKind, node_id: int) -> None:
        self._record("start", kind, node_id)

    async def stop(self, kind: NodeKind, node_id: int) -> None:
        self._record("stop", kind, node_id)

    async def keeper_config(self, node_id: int) -> str:
        return f"server.{node_id}=::1:{self.config.base_ports.raft + node_id};participant;1"


@pytest.fixture
def config(tmp_path: Path) -> DeploymentConfig:
    """Create a deployment config rooted in a temporary directory."""
    return DeploymentConfig(tmp_path, base_ports=PortAllocation(), clickhouse_binary="clickhouse")


@pytest.fixture
def lifecycle(config: DeploymentConfig) -> RecordingLifecycle:
    return RecordingLifecycle(config)


@pytest.fixture
def store(config: DeploymentConfig) -> FileMetadataStore:
    return FileMetadataStore(config.metadata_path)


@pytest.fixture
def deployment(
    config: DeploymentConfig, store: FileMetadataStore, lifecycle: RecordingLifecycle
) -> Deployment:
    return Deployment(config, store, lifecycle)


@pytest.fixture
async def three_keepers_two_servers(deployment: Deployment) -> Deployment:
    """A deployment generated with keepers 1..3 and servers 1..2."""
    await deployment.genesis(3, 2)
    return deployment
