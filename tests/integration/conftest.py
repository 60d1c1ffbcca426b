"""Integration test fixtures for clickward.

These tests start real keeper and server processes and need a
``clickhouse`` binary on PATH, or one named by CLICKWARD_CLICKHOUSE_BIN.
"""

import contextlib
import shutil
from collections.abc import AsyncIterator
from pathlib import Path

import pytest

from clickward import Deployment, open_deployment
from clickward.config import default_clickhouse_binary
from clickward.exceptions import LifecycleError
from clickward.lifecycle import ProcessLifecycle
from clickward.topology import NodeKind

CLICKHOUSE_BIN = default_clickhouse_binary()


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "integration: marks tests as requiring a clickhouse binary")


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    if shutil.which(CLICKHOUSE_BIN) is not None:
        return
    skip = pytest.mark.skip(reason=f"{CLICKHOUSE_BIN} not found")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip)


@pytest.fixture
async def local_cluster(tmp_path: Path) -> AsyncIterator[Deployment]:
    """A deployed cluster of three keepers and two servers, torn down afterwards."""
    deployment = open_deployment(str(tmp_path), clickhouse_binary=CLICKHOUSE_BIN)
    await deployment.genesis(3, 2)
    await deployment.deploy()
    try:
        yield deployment
    finally:
        lifecycle = ProcessLifecycle(deployment.config)
        topology = await deployment.show()
        nodes = [(NodeKind.KEEPER, i) for i in topology.keepers]
        nodes += [(NodeKind.SERVER, i) for i in topology.servers]
        for kind, node_id in nodes:
            with contextlib.suppress(LifecycleError):
                await lifecycle.stop(kind, node_id)
