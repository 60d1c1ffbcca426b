"""Exceptions for clickward."""


class ClickwardError(Exception):
    """Base exception for clickward errors."""

    pass


class NotFoundError(ClickwardError):
    """Node id is not a live member of its id space."""

    kind: str
    node_id: int

    def __init__(self, kind: str, node_id: int) -> None:
        self.kind = kind
        self.node_id = node_id
        super().__init__(f"No such {kind}: {node_id}")


class TopologyError(ClickwardError):
    """Invalid topology (bad genesis, corrupt metadata, unknown node)."""

    pass


class PersistenceError(ClickwardError):
    """Error loading or saving deployment metadata."""

    pass


class LifecycleError(ClickwardError):
    """Error starting or stopping a node process."""

    kind: str
    node_id: int

    def __init__(self, kind: str, node_id: int, message: str) -> None:
        self.kind = kind
        self.node_id = node_id
        super().__init__(f"{kind}-{node_id}: {message}")
