"""Metadata store interfaces for the persisted topology."""

import fcntl
import json
import logging
import os
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from clickward.exceptions import PersistenceError
from clickward.topology import Topology

logger = logging.getLogger(__name__)


class MetadataStore(ABC):
    """Abstract interface for storing the deployment topology."""

    @abstractmethod
    async def exists(self) -> bool:
        """Check whether a topology has been saved."""
        ...

    @abstractmethod
    async def load(self) -> Topology:
        """Load the persisted topology."""
        ...

    @abstractmethod
    async def save(self, topology: Topology) -> None:
        """Persist the topology."""
        ...

    @asynccontextmanager
    async def lock(self) -> AsyncIterator[None]:
        """Hold exclusive access for a load-mutate-save sequence."""
        yield


class MemoryMetadataStore(MetadataStore):
    """In-memory metadata store."""

    def __init__(self, topology: Topology | None = None) -> None:
        self._data = topology.to_dict() if topology is not None else None

    async def exists(self) -> bool:
        return self._data is not None

    async def load(self) -> Topology:
        """Load a fresh copy of the stored topology."""
        if self._data is None:
            raise PersistenceError("No topology saved")
        return Topology.from_dict(self._data)

    async def save(self, topology: Topology) -> None:
        self._data = topology.to_dict()


class FileMetadataStore(MetadataStore):
    """Topology stored as a JSON object in a single file."""

    def __init__(self, path: Path) -> None:
        """Initialize file store.

        Args:
            path: Location of the metadata JSON file
        """
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def lock_path(self) -> Path:
        return self._path.with_name(self._path.name + ".lock")

    async def exists(self) -> bool:
        return self._path.exists()

    async def load(self) -> Topology:
        try:
            text = self._path.read_text(encoding="utf-8")
        except OSError as e:
            raise PersistenceError(f"Failed to read {self._path}: {e}") from e

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise PersistenceError(f"Invalid metadata in {self._path}: {e}") from e

        return Topology.from_dict(data)

    async def save(self, topology: Topology) -> None:
        """Write the topology, replacing the previous file atomically."""
        tmp = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(topology.to_dict()), encoding="utf-8")
            os.replace(tmp, self._path)
        except OSError as e:
            raise PersistenceError(f"Failed to write {self._path}: {e}") from e
        logger.debug("Saved topology to %s", self._path)

    @asynccontextmanager
    async def lock(self) -> AsyncIterator[None]:
        """Take an exclusive advisory lock next to the metadata file."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(self.lock_path, os.O_RDWR | os.O_CREAT, 0o644)
        except OSError as e:
            raise PersistenceError(f"Failed to open lock {self.lock_path}: {e}") from e

        try:
            fcntl.flock(fd, fcntl.LOCK_EX)
            yield
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
            os.close(fd)
