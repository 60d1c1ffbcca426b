"""Render configuration views into ClickHouse XML documents."""

import xml.etree.ElementTree as ET
from pathlib import Path

from clickward.projection import KeeperConfigView, ServerConfigView

LOG_LEVEL = "trace"
LOG_SIZE = "100M"
LOG_COUNT = 1

OPERATION_TIMEOUT_MS = 10000
SESSION_TIMEOUT_MS = 30000


def _sub(parent: ET.Element, tag: str, text: object = None, **attrib: str) -> ET.Element:
    element = ET.SubElement(parent, tag, attrib)
    if text is not None:
        element.text = str(text)
    return element


def _tree(parent: ET.Element, tag: str, children: dict[str, object]) -> ET.Element:
    element = _sub(parent, tag)
    for child, text in children.items():
        _sub(element, child, text)
    return element


def _logger(root: ET.Element, logs: Path, name: str) -> None:
    _tree(
        root,
        "logger",
        {
            "level": LOG_LEVEL,
            "log": logs / f"{name}.log",
            "errorlog": logs / f"{name}.err.log",
            "size": LOG_SIZE,
            "count": LOG_COUNT,
        },
    )


def _to_string(root: ET.Element) -> str:
    ET.indent(root, space="    ")
    return ET.tostring(root, encoding="unicode") + "\n"


def render_server_config(view: ServerConfigView, node_dir: Path) -> str:
    """Render a server replica's ``clickhouse-config.xml``."""
    data_path = node_dir / "data"
    root = ET.Element("clickhouse")
    _logger(root, node_dir / "logs", "clickhouse")
    _sub(root, "path", data_path)

    profiles = _sub(root, "profiles")
    _tree(profiles, "default", {"load_balancing": "random"})

    users = _sub(root, "users")
    user = _sub(users, "default")
    _sub(user, "password", "")
    _tree(user, "networks", {"ip": "::/0"})
    _sub(user, "profile", "default")
    _sub(user, "quota", "default")

    quotas = _sub(root, "quotas")
    _tree(
        _sub(quotas, "default"),
        "interval",
        {
            "duration": 3600,
            "queries": 0,
            "errors": 0,
            "result_rows": 0,
            "read_rows": 0,
            "execution_time": 0,
        },
    )

    _sub(root, "user_files_path", data_path / "user_files")
    _sub(root, "default_profile", "default")
    _sub(root, "format_schema_path", data_path / "format_schemas")
    macros = view.macros
    _sub(root, "display_name", f"{macros.cluster}-{macros.replica}")
    _sub(root, "listen_host", view.listen_host)
    _sub(root, "http_port", view.http_port)
    _sub(root, "tcp_port", view.tcp_port)
    _sub(root, "interserver_http_port", view.interserver_http_port)
    _sub(root, "interserver_http_host", view.listen_host)
    _tree(
        root,
        "distributed_ddl",
        {"task_max_lifetime": 604800, "cleanup_delay_period": 60, "max_tasks_in_queue": 1000},
    )
    _tree(
        root,
        "macros",
        {"shard": macros.shard, "replica": macros.replica, "cluster": macros.cluster},
    )

    remote_servers = _sub(root, "remote_servers", replace="true")
    cluster = _sub(remote_servers, macros.cluster)
    _sub(cluster, "secret", view.secret)
    shard = _sub(cluster, "shard")
    _sub(shard, "internal_replication", "true")
    for replica in view.replicas:
        _tree(shard, "replica", {"host": replica.host, "port": replica.port})

    zookeeper = _sub(root, "zookeeper")
    for keeper in view.keepers:
        _tree(zookeeper, "node", {"host": keeper.host, "port": keeper.port})

    return _to_string(root)


def render_keeper_config(view: KeeperConfigView, node_dir: Path) -> str:
    """Render a keeper's ``keeper-config.xml``."""
    coordination = node_dir / "coordination"
    root = ET.Element("clickhouse")
    _logger(root, node_dir / "logs", "clickhouse-keeper")
    _sub(root, "listen_host", view.listen_host)

    keeper_server = _sub(root, "keeper_server")
    _sub(keeper_server, "tcp_port", view.tcp_port)
    _sub(keeper_server, "server_id", view.server_id)
    _sub(keeper_server, "log_storage_path", coordination / "log")
    _sub(keeper_server, "snapshot_storage_path", coordination / "snapshots")
    _tree(
        keeper_server,
        "coordination_settings",
        {
            "operation_timeout_ms": OPERATION_TIMEOUT_MS,
            "session_timeout_ms": SESSION_TIMEOUT_MS,
            "raft_logs_level": LOG_LEVEL,
        },
    )
    raft = _sub(keeper_server, "raft_configuration")
    for peer in view.raft_peers:
        _tree(raft, "server", {"id": peer.id, "hostname": peer.hostname, "port": peer.port})

    return _to_string(root)
