"""Starting and stopping node processes."""

import asyncio
import logging
import os
import signal
from abc import ABC, abstractmethod

from clickward.config import DeploymentConfig, ServiceKind
from clickward.exceptions import LifecycleError
from clickward.topology import NodeKind

logger = logging.getLogger(__name__)


class NodeLifecycle(ABC):
    """Abstract interface for controlling node processes."""

    @abstractmethod
    async def start(self, kind: NodeKind, node_id: int) -> None:
        """Start a node from its already written configuration."""
        ...

    @abstractmethod
    async def stop(self, kind: NodeKind, node_id: int) -> None:
        """Stop a running node."""
        ...

    @abstractmethod
    async def keeper_config(self, node_id: int) -> str:
        """Get the raft configuration a running keeper reports."""
        ...


class ProcessLifecycle(NodeLifecycle):
    """Runs nodes as local ``clickhouse`` processes.

    Processes are spawned detached and never awaited; each writes its pid
    to a pidfile in its node directory, which ``stop`` reads back.
    """

    def __init__(self, config: DeploymentConfig) -> None:
        self._config = config

    async def start(self, kind: NodeKind, node_id: int) -> None:
        node_dir = self._config.node_dir(kind, node_id)
        command = "keeper" if kind is NodeKind.KEEPER else "server"
        logger.info("Deploying %s: %s", kind, node_dir)

        try:
            await asyncio.create_subprocess_exec(
                self._config.clickhouse_binary,
                command,
                "-C",
                str(self._config.config_file(kind, node_id)),
                "--pidfile",
                str(self._config.pidfile(kind, node_id)),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as e:
            raise LifecycleError(kind, node_id, f"failed to start: {e}") from e

    async def stop(self, kind: NodeKind, node_id: int) -> None:
        pidfile = self._config.pidfile(kind, node_id)
        try:
            pid = int(pidfile.read_text().strip())
        except (OSError, ValueError) as e:
            raise LifecycleError(kind, node_id, f"no usable pidfile {pidfile}: {e}") from e

        logger.info("Stopping %s: %s at pid %d", kind, pidfile.parent, pid)
        try:
            os.kill(pid, signal.SIGKILL)
        except ProcessLookupError:
            logger.warning("%s-%d at pid %d was not running", kind, node_id, pid)
        except OSError as e:
            raise LifecycleError(kind, node_id, f"failed to kill pid {pid}: {e}") from e

        pidfile.unlink(missing_ok=True)

    async def keeper_config(self, node_id: int) -> str:
        port = self._config.base_ports.port(ServiceKind.KEEPER, node_id)
        try:
            process = await asyncio.create_subprocess_exec(
                self._config.clickhouse_binary,
                "keeper-client",
                "--port",
                str(port),
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
            stdout, _ = await process.communicate(b"get /keeper/config\nexit\n")
        except OSError as e:
            raise LifecycleError(
                NodeKind.KEEPER, node_id, f"failed to connect to keeper client at port {port}: {e}"
            ) from e
        return stdout.decode()
