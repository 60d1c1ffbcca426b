"""Command line interface for clickward."""

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from clickward import __version__
from clickward.config import DeploymentConfig, default_clickhouse_binary
from clickward.deployment import Deployment
from clickward.exceptions import ClickwardError
from clickward.topology import Topology

logger = logging.getLogger(__name__)


def setup_parser() -> argparse.ArgumentParser:
    """Set up the command line argument parser."""
    parser = argparse.ArgumentParser(
        prog="clickward",
        description="Manage a local ClickHouse keeper ensemble and server replicas",
    )
    parser.add_argument("--version", action="version", version=f"clickward {__version__}")
    parser.add_argument(
        "--log-level",
        default="info",
        choices=["debug", "info", "warning", "error"],
        help="Logging level",
    )
    parser.add_argument(
        "--clickhouse-bin",
        default=default_clickhouse_binary(),
        help="clickhouse executable (default: $CLICKWARD_CLICKHOUSE_BIN or 'clickhouse')",
    )

    # Every command works on a deployment rooted at --path
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-p", "--path", type=Path, required=True, help="Root path of all configuration"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    gen_config = subparsers.add_parser(
        "gen-config", parents=[common], help="Generate configuration for a new cluster"
    )
    gen_config.add_argument("--num-keepers", type=int, required=True, help="Number of keepers")
    gen_config.add_argument("--num-replicas", type=int, required=True, help="Number of replicas")
    gen_config.add_argument(
        "--force", action="store_true", help="Overwrite an existing deployment"
    )

    subparsers.add_parser("deploy", parents=[common], help="Start every node of the deployment")
    subparsers.add_parser("show", parents=[common], help="Show the current topology")
    subparsers.add_parser("add-keeper", parents=[common], help="Add and start a new keeper")
    subparsers.add_parser("add-server", parents=[common], help="Add and start a new server")

    for name, help_text in [
        ("remove-keeper", "Remove and stop a keeper"),
        ("remove-server", "Remove and stop a server"),
        ("keeper-config", "Show the raft configuration of a running keeper"),
    ]:
        command = subparsers.add_parser(name, parents=[common], help=help_text)
        command.add_argument("--id", type=int, required=True, help="Node id")

    return parser


def format_topology(topology: Topology) -> str:
    keepers = ", ".join(str(i) for i in topology.keeper_ids)
    servers = ", ".join(str(i) for i in topology.server_ids)
    return (
        f"keepers: [{keepers}] (max id {topology.max_keeper_id})\n"
        f"servers: [{servers}] (max id {topology.max_server_id})"
    )


async def run(deployment: Deployment, args: argparse.Namespace) -> int:
    """Run a parsed command against a deployment."""
    match args.command:
        case "gen-config":
            await deployment.genesis(args.num_keepers, args.num_replicas, force=args.force)
        case "deploy":
            failed = await deployment.deploy()
            if failed:
                names = ", ".join(f"{kind}-{node_id}" for kind, node_id in failed)
                logger.error("Failed to start: %s", names)
                return 1
        case "show":
            print(format_topology(await deployment.show()))
        case "add-keeper":
            print(await deployment.add_keeper())
        case "add-server":
            print(await deployment.add_server())
        case "remove-keeper":
            await deployment.remove_keeper(args.id)
        case "remove-server":
            await deployment.remove_server(args.id)
        case "keeper-config":
            print(await deployment.keeper_config(args.id))
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point for the CLI."""
    args = setup_parser().parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = DeploymentConfig(args.path, clickhouse_binary=args.clickhouse_bin)
    deployment = Deployment.from_config(config)

    try:
        return asyncio.run(run(deployment, args))
    except ClickwardError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
