"""Command line entry point.

``cyphalmon serve`` starts the browser surface; ``cyphalmon watch IFACE``
subscribes directly and prints the node table to the terminal on every
update.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from typing import Any

from cyphalmon.config import MonitorConfig
from cyphalmon.exceptions import CyphalMonError
from cyphalmon.session import MonitorSession
from cyphalmon.sync.channel import SyncChannel
from cyphalmon.view.console import render_table
from cyphalmon.view.live import LiveView
from cyphalmon.view.reducer import ViewState


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="cyphalmon",
        description="Live table of Cyphal node heartbeats.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logs.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Serve the monitor page in a browser.")
    serve.add_argument("--host", default=None, help="Bind address (default from config).")
    serve.add_argument("--port", type=int, default=None, help="Port (default from config).")

    watch = commands.add_parser("watch", help="Print the node table in the terminal.")
    watch.add_argument("interface", help="Network interface, e.g. vcan0 or 192.168.1.1.")
    return parser.parse_args(argv)


def _print_view(state: ViewState) -> None:
    print("\033[2J\033[H" + render_table(state), flush=True)


async def _watch(config: MonitorConfig, interface: str) -> int:
    view = LiveView(render=_print_view)
    channel = SyncChannel(on_snapshot=view.on_snapshot)
    loop = asyncio.get_running_loop()

    async with MonitorSession(config, channel=channel) as session:
        if not await session.submit_interface(interface):
            print(f"[cyphalmon] could not start acquisition on {interface!r}", file=sys.stderr)
            return 2

        acquisition = asyncio.ensure_future(session.wait_acquisition())
        stop = asyncio.Event()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop.set)
        stopper = asyncio.ensure_future(stop.wait())
        try:
            await asyncio.wait({acquisition, stopper}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)
            stopper.cancel()
            acquisition.cancel()
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    overrides: dict[str, Any] = {}
    if args.command == "serve":
        if args.host is not None:
            overrides["web_host"] = args.host
        if args.port is not None:
            overrides["web_port"] = args.port

    try:
        config = MonitorConfig.from_env(**overrides)
    except CyphalMonError as exc:
        print(f"[cyphalmon] {exc}", file=sys.stderr)
        return 2

    if args.command == "serve":
        from cyphalmon.web import run_server

        run_server(config)
        return 0

    return asyncio.run(_watch(config, args.interface))
