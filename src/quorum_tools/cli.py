"""Command-line interface for quorum-tools (``qctl``)."""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from quorum_tools import __version__
from quorum_tools.config import QuorumBuilderConfig, load_config, load_config_file
from quorum_tools.core.builder import QuorumBuilder, destroy, open_docker_client
from quorum_tools.errors import QuorumToolsError
from quorum_tools.utils.logger import logger, set_verbosity

DEFAULT_CONFIG = "quorum.yml"


def _read_config(path: str) -> QuorumBuilderConfig:
    if path == "-":
        return load_config(sys.stdin.buffer)
    return load_config_file(path)


def up(config: QuorumBuilderConfig, export: Optional[str] = None, tx_managers_only: bool = False) -> None:
    """
    Build a network: create it, start the transaction managers and,
    unless ``tx_managers_only`` is set, the Quorum nodes.
    """
    builder = QuorumBuilder(config)
    logger.info(f"Building network {builder.name} with {len(config.nodes)} nodes")
    builder.build()
    if not tx_managers_only:
        builder.start_quorums()
    builder.export(export)
    logger.info(f"Network {builder.name} is up")


def down(name: str) -> None:
    """Destroy every resource labelled with the provisioning ``name``."""
    logger.info(f"Destroying network {name}")
    destroy(open_docker_client(), name)
    logger.info(f"Network {name} destroyed")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="qctl",
        description="qctl provides a set of tools for Quorum"
    )
    parser.add_argument(
        "-v", "--verbosity",
        type=int,
        default=3,
        help="Logging verbosity: 0=silent, 1=error, 2=warn, 3=info, 4=debug, 5=detail (default: 3)"
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help="Available commands"
    )

    # Quorum network commands
    quorum_parser = subparsers.add_parser(
        "quorum",
        help="Manage Quorum test networks"
    )
    quorum_sub = quorum_parser.add_subparsers(
        dest="quorum_command",
        help="Network commands"
    )

    up_parser = quorum_sub.add_parser(
        "up",
        help="Build a network with specified configuration"
    )
    up_parser.add_argument(
        "-c", "--config",
        default=DEFAULT_CONFIG,
        help=f"Network description file, '-' for stdin (default: {DEFAULT_CONFIG})"
    )
    up_parser.add_argument(
        "-e", "--export",
        default=None,
        help="Export information about the network to a file or stdout (use hyphen)"
    )
    up_parser.add_argument(
        "--tx-managers-only",
        action="store_true",
        help="Only start the transaction managers, not the Quorum nodes"
    )

    down_parser = quorum_sub.add_parser(
        "down",
        help="Destroy a network and everything it created"
    )
    target = down_parser.add_mutually_exclusive_group()
    target.add_argument(
        "-c", "--config",
        default=None,
        help=f"Network description file to take the name from (default: {DEFAULT_CONFIG})"
    )
    target.add_argument(
        "-n", "--name",
        default=None,
        help="Provisioning name of the network"
    )

    # Version command
    subparsers.add_parser(
        "version",
        help="Display version of this tool"
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run the qctl CLI.

    Args:
        argv: Command-line arguments. If None, uses sys.argv.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)
    set_verbosity(args.verbosity)

    if args.command == "version":
        print(f"Version: {__version__}")
        return 0

    if args.command != "quorum" or not args.quorum_command:
        parser.print_help()
        return 1

    try:
        if args.quorum_command == "up":
            up(_read_config(args.config), export=args.export, tx_managers_only=args.tx_managers_only)
        elif args.quorum_command == "down":
            name = args.name or _read_config(args.config or DEFAULT_CONFIG).name
            down(name)
    except QuorumToolsError as e:
        print(e, file=sys.stderr)
        return 1
    except Exception as e:
        logger.debug("Unexpected error", exc_info=True)
        print(f"unexpected error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
