"""Tests for deployment configuration and port allocation."""

from pathlib import Path

import pytest

from clickward.config import (
    CLICKHOUSE_BIN_ENV,
    DEFAULT_BASE_PORTS,
    DeploymentConfig,
    PortAllocation,
    ServiceKind,
)
from clickward.exceptions import TopologyError
from clickward.topology import NodeKind


class TestPortAllocation:
    def test_defaults(self) -> None:
        assert DEFAULT_BASE_PORTS.keeper == 20000
        assert DEFAULT_BASE_PORTS.raft == 21000
        assert DEFAULT_BASE_PORTS.clickhouse_tcp == 22000
        assert DEFAULT_BASE_PORTS.clickhouse_http == 23000
        assert DEFAULT_BASE_PORTS.clickhouse_interserver_http == 24000

    def test_port_is_base_plus_id(self) -> None:
        assert DEFAULT_BASE_PORTS.port(ServiceKind.KEEPER, 7) == 20007
        assert DEFAULT_BASE_PORTS.port(ServiceKind.CLICKHOUSE_HTTP, 7) == 23007

    def test_spacing(self) -> None:
        assert DEFAULT_BASE_PORTS.spacing == 1000
        ports = PortAllocation(
            keeper=100,
            raft=150,
            clickhouse_tcp=300,
            clickhouse_http=400,
            clickhouse_interserver_http=500,
        )
        assert ports.spacing == 50

    def test_no_collisions_within_supported_range(self) -> None:
        seen: set[int] = set()
        for service in ServiceKind:
            for node_id in range(DEFAULT_BASE_PORTS.spacing):
                seen.add(DEFAULT_BASE_PORTS.port(service, node_id))
        assert len(seen) == len(ServiceKind) * DEFAULT_BASE_PORTS.spacing

    def test_id_outside_spacing(self) -> None:
        with pytest.raises(TopologyError, match="outside supported range"):
            DEFAULT_BASE_PORTS.port(ServiceKind.RAFT, 1000)

    def test_port_past_max(self) -> None:
        ports = PortAllocation(clickhouse_interserver_http=65000)
        with pytest.raises(TopologyError, match="exceeds 65535"):
            ports.port(ServiceKind.CLICKHOUSE_INTERSERVER_HTTP, 600)


class TestDeploymentConfig:
    def test_paths(self, tmp_path: Path) -> None:
        config = DeploymentConfig(tmp_path)
        assert config.path == tmp_path / "deployment"
        assert config.metadata_path == tmp_path / "deployment" / "clickward-metadata.json"
        assert config.node_dir(NodeKind.KEEPER, 2) == tmp_path / "deployment" / "keeper-2"
        assert (
            config.config_file(NodeKind.SERVER, 1)
            == tmp_path / "deployment" / "clickhouse-1" / "clickhouse-config.xml"
        )
        assert config.pidfile(NodeKind.KEEPER, 3).name == "keeper.pid"
        assert config.pidfile(NodeKind.SERVER, 3).name == "clickhouse.pid"

    def test_binary_from_environment(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv(CLICKHOUSE_BIN_ENV, "/opt/clickhouse/bin/clickhouse")
        assert DeploymentConfig(tmp_path).clickhouse_binary == "/opt/clickhouse/bin/clickhouse"

    def test_binary_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv(CLICKHOUSE_BIN_ENV, raising=False)
        assert DeploymentConfig(tmp_path).clickhouse_binary == "clickhouse"
