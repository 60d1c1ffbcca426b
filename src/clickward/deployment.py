"""Reconfiguration of a local keeper ensemble and its server replicas.

None of the operations here are transactional. The new topology is saved
before any node configuration is written or any process is touched, so a
failure part way through leaves the saved topology authoritative; re-run
the operation against it to converge the nodes.
"""

import logging
from pathlib import Path

from clickward.config import DeploymentConfig, ServiceKind
from clickward.exceptions import LifecycleError, NotFoundError, PersistenceError, TopologyError
from clickward.lifecycle import NodeLifecycle, ProcessLifecycle
from clickward.metadata_store import FileMetadataStore, MetadataStore
from clickward.projection import project_keeper_view, project_server_view
from clickward.render import render_keeper_config, render_server_config
from clickward.topology import NodeKind, Topology

logger = logging.getLogger(__name__)


class Deployment:
    """A deployment of ClickHouse servers and a keeper ensemble on localhost."""

    def __init__(
        self,
        config: DeploymentConfig,
        store: MetadataStore,
        lifecycle: NodeLifecycle,
    ) -> None:
        """Initialize deployment.

        Args:
            config: Deployment directory, ports and naming
            store: Store holding the persisted topology
            lifecycle: Starts and stops node processes
        """
        self._config = config
        self._store = store
        self._lifecycle = lifecycle

    @classmethod
    def from_config(cls, config: DeploymentConfig) -> "Deployment":
        """Create a deployment with file metadata and local processes."""
        return cls(config, FileMetadataStore(config.metadata_path), ProcessLifecycle(config))

    @property
    def config(self) -> DeploymentConfig:
        return self._config

    async def show(self) -> Topology:
        """Get the persisted topology."""
        return await self._store.load()

    async def genesis(
        self, num_keepers: int, num_replicas: int, *, force: bool = False
    ) -> Topology:
        """Generate configuration for a new cluster with ids ``1..=N``.

        Nodes are not started; see ``deploy``.
        """
        topology = Topology.genesis(num_keepers, num_replicas)

        async with self._store.lock():
            if not force and await self._store.exists():
                raise TopologyError(
                    f"Deployment already exists at {self._config.path}; pass force to overwrite"
                )
            self._config.path.mkdir(parents=True, exist_ok=True)
            self._write_server_configs(topology)
            for keeper_id in topology.keepers:
                self._write_keeper_config(topology, keeper_id)
            await self._store.save(topology)

        logger.info(
            "Generated config for %d keepers and %d servers in %s",
            num_keepers,
            num_replicas,
            self._config.path,
        )
        return topology

    async def deploy(self) -> list[tuple[NodeKind, int]]:
        """Start every keeper, then every server.

        Best effort: a node that fails to start is logged and skipped.

        Returns:
            The nodes that failed to start.
        """
        topology = await self._store.load()
        failed: list[tuple[NodeKind, int]] = []

        nodes = [(NodeKind.KEEPER, i) for i in topology.keepers]
        nodes += [(NodeKind.SERVER, i) for i in topology.servers]
        for kind, node_id in nodes:
            try:
                await self._lifecycle.start(kind, node_id)
            except LifecycleError as e:
                logger.error("Failed to start %s-%d: %s", kind, node_id, e)
                failed.append((kind, node_id))

        return failed

    async def add_keeper(self) -> int:
        """Add a keeper to the ensemble and start it.

        The new keeper is configured and running before any peer's
        configuration mentions it; ensemble reconfiguration needs the joining
        member to be reachable. Existing keepers reload their rewritten
        configuration on their own.
        """
        async with self._store.lock():
            topology = await self._store.load()
            new_id = topology.allocate_keeper()
            self._check_ports(NodeKind.KEEPER, new_id)
            logger.info("Updating config to include new keeper: %d", new_id)

            await self._store.save(topology)
            self._write_keeper_config(topology, new_id)
            await self._lifecycle.start(NodeKind.KEEPER, new_id)

            for keeper_id in topology.keepers:
                if keeper_id != new_id:
                    self._write_keeper_config(topology, keeper_id)

            # Servers need the new keeper list
            self._write_server_configs(topology)

        return new_id

    async def remove_keeper(self, node_id: int) -> None:
        """Remove a keeper from the ensemble and stop it.

        Remaining keepers see the smaller ensemble before the process is
        killed, so no peer ever expects a keeper that cannot answer.

        Raises:
            NotFoundError: If ``node_id`` is not a live keeper. Nothing is
                changed in that case.
        """
        logger.info("Updating config to remove keeper: %d", node_id)
        async with self._store.lock():
            topology = await self._store.load()
            topology.release_keeper(node_id)

            await self._store.save(topology)
            for keeper_id in topology.keepers:
                self._write_keeper_config(topology, keeper_id)
            await self._lifecycle.stop(NodeKind.KEEPER, node_id)

            self._write_server_configs(topology)

    async def add_server(self) -> int:
        """Add a server replica and start it."""
        async with self._store.lock():
            topology = await self._store.load()
            new_id = topology.allocate_server()
            self._check_ports(NodeKind.SERVER, new_id)
            logger.info("Updating config to include new server: %d", new_id)

            await self._store.save(topology)
            self._write_server_configs(topology)
            await self._lifecycle.start(NodeKind.SERVER, new_id)

        return new_id

    async def remove_server(self, node_id: int) -> None:
        """Remove a server replica and stop it.

        Raises:
            NotFoundError: If ``node_id`` is not a live server.
        """
        logger.info("Updating config to remove server: %d", node_id)
        async with self._store.lock():
            topology = await self._store.load()
            topology.release_server(node_id)

            await self._store.save(topology)
            self._write_server_configs(topology)
            await self._lifecycle.stop(NodeKind.SERVER, node_id)

    async def keeper_config(self, node_id: int) -> str:
        """Get the raft configuration reported by a running keeper."""
        topology = await self._store.load()
        if node_id not in topology.keepers:
            raise NotFoundError(NodeKind.KEEPER, node_id)
        return await self._lifecycle.keeper_config(node_id)

    def _check_ports(self, kind: NodeKind, node_id: int) -> None:
        """Reject a new id whose ports would run into the next base, before it is saved."""
        if kind is NodeKind.KEEPER:
            services = (ServiceKind.KEEPER, ServiceKind.RAFT)
        else:
            services = (
                ServiceKind.CLICKHOUSE_TCP,
                ServiceKind.CLICKHOUSE_HTTP,
                ServiceKind.CLICKHOUSE_INTERSERVER_HTTP,
            )
        for service in services:
            self._config.base_ports.port(service, node_id)

    def _write_keeper_config(self, topology: Topology, keeper_id: int) -> None:
        """Write a keeper's configuration, projected fresh from ``topology``."""
        view = project_keeper_view(topology, self._config, keeper_id)
        node_dir = self._config.node_dir(NodeKind.KEEPER, keeper_id)
        path = self._config.config_file(NodeKind.KEEPER, keeper_id)
        self._write(path, render_keeper_config(view, node_dir))

    def _write_server_configs(self, topology: Topology) -> None:
        for server_id in topology.servers:
            view = project_server_view(topology, self._config, server_id)
            node_dir = self._config.node_dir(NodeKind.SERVER, server_id)
            path = self._config.config_file(NodeKind.SERVER, server_id)
            self._write(path, render_server_config(view, node_dir))

    def _write(self, path: Path, text: str) -> None:
        try:
            (path.parent / "logs").mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        except OSError as e:
            raise PersistenceError(f"Failed to write {path}: {e}") from e
