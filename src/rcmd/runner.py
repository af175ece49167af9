#!/usr/bin/env python3
"""Main entry point for rcmd."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import asyncssh

from .config import (
    ConfigError,
    Defaults,
    KeyReader,
    ParamError,
    Params,
    load_config,
    parse_params,
    read_key_file,
)
from .dashboard import Dashboard
from .executor import Connector, OutputChannel, dispatch, load_credential
from .log import configure_logging, get_level_from_verbosity
from .multiplexer import FAREWELL, Multiplexer, interrupt_event

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rcmd",
        description="Run a command on multiple SSH hosts and merge their output",
    )
    parser.add_argument("-H", dest="hosts", help="List of host IPs (comma separated)")
    parser.add_argument("-k", dest="key", help="Path to PEM key")
    parser.add_argument("-u", dest="user", help="Username")
    parser.add_argument("-c", dest="command", help="Command to run")
    parser.add_argument("-t", dest="timeout", type=int, help="Timeout in seconds (default: 30)")
    parser.add_argument(
        "--show-ip",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Show host IP for every line (default: on)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="YAML file with default values for the options above",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (-v, -vv)",
    )
    parser.add_argument(
        "--dashboard",
        action="store_true",
        help="Run with the TUI dashboard",
    )
    return parser


def _first(*values):
    """Return the first value that isn't None."""
    for value in values:
        if value is not None:
            return value
    return None


def main(argv: list[str] | None = None, read_key: KeyReader = read_key_file) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(get_level_from_verbosity(args.verbose))

    # Load YAML defaults; explicit flags win over them
    defaults = Defaults()
    if args.config:
        try:
            defaults = load_config(args.config)
        except ConfigError as e:
            print(f"Configuration error: {e}", file=sys.stderr)
            return 1
        if defaults.extra:
            logger.warning(f"Ignoring unknown config keys: {', '.join(sorted(defaults.extra))}")

    try:
        params = parse_params(
            hosts=_first(args.hosts, defaults.hosts),
            key_path=_first(args.key, defaults.key),
            user=_first(args.user, defaults.user),
            command=_first(args.command, defaults.command),
            timeout=_first(args.timeout, defaults.timeout),
            show_host=_first(args.show_ip, defaults.show_ip, True),
            read_key=read_key,
        )
    except ParamError as e:
        print(e, file=sys.stderr)
        parser.print_help(sys.stderr)
        return 1

    # No session could authenticate with a broken key
    try:
        credential = load_credential(params.key)
    except asyncssh.KeyImportError as e:
        logger.critical(f"Can't parse private key: {e}")
        return 1

    if args.dashboard:
        return _run_dashboard(params, credential)

    return asyncio.run(run(params, credential))


async def run(
    params: Params,
    credential: asyncssh.SSHKey,
    interrupted: asyncio.Event | None = None,
    connect: Connector = asyncssh.connect,
) -> int:
    """Fan the command out to every host and print output until interrupted."""
    channel = OutputChannel()
    if interrupted is None:
        interrupted = interrupt_event()

    sessions = dispatch(params, credential, channel, connect=connect)
    logger.debug(f"{len(sessions)} sessions running")

    return await Multiplexer(channel).run(interrupted)


def _run_dashboard(params: Params, credential: asyncssh.SSHKey) -> int:
    """Run the sessions behind the TUI dashboard."""
    app = Dashboard(params, credential)
    app.run()
    print(FAREWELL, end="")
    return app.return_code or 0


if __name__ == "__main__":
    sys.exit(main())
