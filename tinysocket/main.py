"""tinysocket command line — send a request or wake a host."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from tinysocket.config import load_settings, load_wol_settings
from tinysocket.errors import TinySocketError
from tinysocket.services.endpoint import Endpoint
from tinysocket.utils.wol import parse_mac, send_magic_packet

logger = logging.getLogger(__name__)

def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tinysocket",
        description="Timeout-bounded TCP request/response and Wake-on-LAN",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: TINYSOCKET_LOG_LEVEL or INFO)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    wake = commands.add_parser("wake", help="Broadcast a Wake-on-LAN magic packet")
    wake.add_argument("--mac", required=True, help="Target MAC address (aa:bb:cc:dd:ee:ff)")
    wake.add_argument(
        "--address",
        dest="network_wol_address",
        default=None,
        help="Broadcast address (default: TINYSOCKET_NETWORK_WOL_ADDRESS or 255.255.255.255)",
    )
    wake.add_argument(
        "--port",
        dest="network_wol_port",
        type=int,
        default=None,
        help="UDP port (default: TINYSOCKET_NETWORK_WOL_PORT or 9)",
    )

    send = commands.add_parser("send", help="Connect, send bytes and print the reply")
    send.add_argument("host", help="Host name or IP address")
    send.add_argument("--hex", required=True, help="Request payload as hex, e.g. 0102ff")
    send.add_argument(
        "--port",
        dest="network_port",
        type=int,
        default=None,
        help="TCP port (default: TINYSOCKET_NETWORK_PORT)",
    )
    send.add_argument(
        "--timeout",
        dest="network_timeout",
        type=int,
        default=None,
        help="Timeout in milliseconds (default: TINYSOCKET_NETWORK_TIMEOUT or 2000)",
    )
    return parser


async def _wake(args: argparse.Namespace) -> None:
    settings = load_wol_settings(
        network_wol_address=args.network_wol_address,
        network_wol_port=args.network_wol_port,
    )
    parse_mac(args.mac)
    await send_magic_packet(args.mac, settings.network_wol_address, settings.network_wol_port)
    print(f"Magic packet sent to {args.mac}")


async def _send(args: argparse.Namespace) -> None:
    try:
        payload = bytes.fromhex(args.hex)
    except ValueError as e:
        raise TinySocketError(f"Invalid hex payload: {e}") from e

    settings = load_settings(
        network_port=args.network_port,
        network_timeout=args.network_timeout,
    )
    async with Endpoint(args.host, None, settings) as endpoint:
        reply = await endpoint.send_receive(payload)
    print(reply.hex())


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    level = args.log_level
    if level is None:
        try:
            level = load_wol_settings().log_level
        except TinySocketError:
            level = "INFO"
    _setup_logging(level)

    handler = _wake if args.command == "wake" else _send
    try:
        asyncio.run(handler(args))
    except (TinySocketError, OSError) as e:
        logger.error("%s failed: %s", args.command, e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
