"""Wake-on-LAN (WOL) magic packet construction and broadcast."""

from __future__ import annotations

import asyncio
import ipaddress
import logging
import re
import socket

from tinysocket.errors import MacAddressError

logger = logging.getLogger(__name__)

MAC_ADDRESS_PATTERN = re.compile(r"([0-9a-f]{2}:){5}[0-9a-f]{2}", re.IGNORECASE)

SYNC_BYTE = 0xFF
SYNC_COUNT = 6
MAC_REPETITIONS = 16
MAGIC_PACKET_SIZE = SYNC_COUNT + 6 * MAC_REPETITIONS  # 102


def is_valid_mac(mac_address: object) -> bool:
    """True for six colon-separated two-digit hex groups, any case."""
    return isinstance(mac_address, str) and MAC_ADDRESS_PATTERN.fullmatch(mac_address) is not None


def parse_mac(mac_address: str) -> bytes:
    """Turn "aa:bb:cc:dd:ee:ff" into its six raw octets."""
    if not is_valid_mac(mac_address):
        raise MacAddressError(f"Invalid MAC address: {mac_address!r}")
    return bytes.fromhex(mac_address.replace(":", ""))


def build_magic_packet(mac_address: str) -> bytes:
    """
    Build a Wake-on-LAN magic packet.

    Args:
        mac_address: MAC address in format "aa:bb:cc:dd:ee:ff" (case-insensitive)

    Returns:
        102 bytes: 6x 0xFF followed by 16x the MAC address
    """
    mac_bytes = parse_mac(mac_address)
    return bytes([SYNC_BYTE]) * SYNC_COUNT + mac_bytes * MAC_REPETITIONS


async def send_magic_packet(mac_address: str, address: str, port: int) -> None:
    """
    Broadcast one magic packet over a throwaway UDP socket.

    Args:
        mac_address: target MAC address
        address: IPv4 or IPv6 broadcast/target address
        port: UDP port

    The socket is closed before returning, whether or not the send succeeded.
    Socket errors propagate as OSError.
    """
    packet = build_magic_packet(mac_address)
    family = socket.AF_INET6 if ipaddress.ip_address(address).version == 6 else socket.AF_INET
    loop = asyncio.get_running_loop()

    with socket.socket(family, socket.SOCK_DGRAM) as sock:
        sock.setblocking(False)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        await loop.sock_sendto(sock, packet, (address, port))

    logger.debug("WoL packet sent to %s via %s:%s", mac_address, address, port)
