"""Cluster membership: live node ids and their high-water marks."""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from clickward.exceptions import NotFoundError, TopologyError


class NodeKind(StrEnum):
    """The two independent id spaces of a deployment."""

    KEEPER = "keeper"
    SERVER = "server"


@dataclass
class IdAllocator:
    """Ordered set of live ids plus the largest id ever handed out.

    Ids are never reused: releasing an id leaves ``max_id`` untouched, so
    the next allocation always moves past it.
    """

    kind: NodeKind
    ids: set[int] = field(default_factory=set)
    max_id: int = 0

    def __post_init__(self) -> None:
        if self.ids and max(self.ids) > self.max_id:
            raise TopologyError(
                f"{self.kind} high-water mark {self.max_id} is below live id {max(self.ids)}"
            )
        if any(node_id < 1 for node_id in self.ids):
            raise TopologyError(f"{self.kind} ids must be positive")

    @classmethod
    def from_range(cls, kind: NodeKind, count: int) -> "IdAllocator":
        """Create an allocator holding the contiguous ids ``1..=count``."""
        if count < 1:
            raise TopologyError(f"Need at least one {kind}, got {count}")
        return cls(kind, set(range(1, count + 1)), count)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.ids

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self.ids))

    def allocate(self) -> int:
        """Allocate the next id past the high-water mark."""
        self.max_id += 1
        self.ids.add(self.max_id)
        return self.max_id

    def release(self, node_id: int) -> None:
        """Remove a live id.

        Raises:
            NotFoundError: If ``node_id`` is not live.
        """
        if node_id not in self.ids:
            raise NotFoundError(self.kind, node_id)
        self.ids.remove(node_id)


@dataclass
class Topology:
    """Current membership of the keeper ensemble and the server replicas."""

    keepers: IdAllocator
    servers: IdAllocator

    @classmethod
    def genesis(cls, num_keepers: int, num_replicas: int) -> "Topology":
        """Create the initial topology with ids ``1..=N`` in both spaces."""
        return cls(
            keepers=IdAllocator.from_range(NodeKind.KEEPER, num_keepers),
            servers=IdAllocator.from_range(NodeKind.SERVER, num_replicas),
        )

    @property
    def keeper_ids(self) -> list[int]:
        return list(self.keepers)

    @property
    def server_ids(self) -> list[int]:
        return list(self.servers)

    @property
    def max_keeper_id(self) -> int:
        return self.keepers.max_id

    @property
    def max_server_id(self) -> int:
        return self.servers.max_id

    def allocate_keeper(self) -> int:
        return self.keepers.allocate()

    def release_keeper(self, node_id: int) -> None:
        self.keepers.release(node_id)

    def allocate_server(self) -> int:
        return self.servers.allocate()

    def release_server(self, node_id: int) -> None:
        self.servers.release(node_id)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the persisted metadata shape."""
        return {
            "keeper_ids": self.keeper_ids,
            "max_keeper_id": self.max_keeper_id,
            "server_ids": self.server_ids,
            "max_server_id": self.max_server_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Topology":
        """Rebuild a topology from its persisted metadata shape."""
        try:
            keepers = IdAllocator(
                NodeKind.KEEPER, _id_set(data["keeper_ids"]), int(data["max_keeper_id"])
            )
            servers = IdAllocator(
                NodeKind.SERVER, _id_set(data["server_ids"]), int(data["max_server_id"])
            )
        except (KeyError, TypeError, ValueError) as e:
            raise TopologyError(f"Malformed metadata: {e!r}") from e
        return cls(keepers=keepers, servers=servers)


def _id_set(values: Iterable[Any]) -> set[int]:
    ids = set()
    for value in values:
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"node id must be an integer, got {value!r}")
        ids.add(value)
    return ids
