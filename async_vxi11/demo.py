#!/usr/bin/env python3
# Copyright 2025 Maida.AI
# SPDX-License-Identifier: Apache-2.0
"""Command line tool: send one command to an instrument and print the reply.

Usage
-----
$ vxi11-query 192.168.0.60 "*IDN?"
$ vxi11-query 192.168.0.60 --mappings
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .client import RpcClient
from . import constants
from .constants import PMAP_PROG, PMAP_VERS, IPProtocol
from .core import CoreClient
from .errors import Vxi11Error
from .options import VxiOptions
from .portmapper import Mapping, PortMapper
from .transports import DEFAULT_TRANSPORT, list_transports

console = Console()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="vxi11-query", description=__doc__.splitlines()[0])
    parser.add_argument("host", help="Instrument hostname or address")
    parser.add_argument("command", nargs="?", help="Command to send, e.g. '*IDN?'")
    parser.add_argument("--transport", choices=list_transports(), default=DEFAULT_TRANSPORT)
    parser.add_argument("--term-char", type=int, default=10, help="Read termination character, -1 to disable")
    parser.add_argument("--io-timeout", type=int, default=1000, help="I/O timeout in milliseconds")
    parser.add_argument("--lock", action="store_true", help="Lock the device while linked")
    parser.add_argument("--no-read", action="store_true", help="Only write the command")
    parser.add_argument("--mappings", action="store_true", help="List the port mapper registrations")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log protocol traffic")
    return parser.parse_args(argv)


def print_mappings(host: str, mappings: list[Mapping]) -> None:
    """Print port mapper registrations as a table."""
    table = Table(title=f"Port mapper on {host}", box=box.SIMPLE_HEAVY)
    table.add_column("Program", justify="right")
    table.add_column("Version", justify="right")
    table.add_column("Protocol")
    table.add_column("Port", justify="right")

    for m in mappings:
        try:
            proto = IPProtocol(m.prot).name
        except ValueError:
            proto = str(m.prot)
        table.add_row(f"{m.prog:#x}", str(m.vers), proto, str(m.port))

    console.print(table)


async def list_mappings(args: argparse.Namespace) -> None:
    client = await RpcClient.connect(args.host, constants.PMAP_PORT, PMAP_PROG, PMAP_VERS, transport=args.transport)
    async with client:
        mappings = await PortMapper(client).dump()
    print_mappings(args.host, mappings)


async def run_query(args: argparse.Namespace) -> None:
    options = VxiOptions(
        term_char=None if args.term_char < 0 else args.term_char,
        io_timeout_ms=args.io_timeout,
    )
    command = args.command
    if not command.endswith("\n"):
        command += "\n"

    start = time.perf_counter()
    async with await CoreClient.connect(args.host, options, lock=args.lock, transport=args.transport) as core:
        await core.write(command)
        if args.no_read:
            reply = None
        else:
            reply = await core.read()
    elapsed = time.perf_counter() - start

    if reply is not None:
        console.print(reply.decode(errors="replace").rstrip("\r\n"), markup=False, highlight=False)
    logging.getLogger(__name__).debug("Round trip took %.2f ms", elapsed * 1000)


async def main_async(args: argparse.Namespace) -> int:
    try:
        if args.mappings:
            await list_mappings(args)
        if args.command:
            await run_query(args)
    except Vxi11Error as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the command line tool."""
    args = parse_args(argv)
    if not args.command and not args.mappings:
        console.print("[red]Nothing to do:[/red] give a command or --mappings")
        return 2

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )
    return asyncio.run(main_async(args))


if __name__ == "__main__":
    sys.exit(main())
